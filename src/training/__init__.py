"""
Training Module
===============

Training infrastructure for the catch environment.

Components:
    - config: Training hyperparameter configuration
    - metrics: Logging and metrics tracking
    - trainer: Main training loop

Example:
    >>> from training import Trainer, get_debug_config
    >>> trainer = Trainer(get_debug_config())
    >>> trainer.train()
"""

from .config import (
    TrainingConfig,
    EnvironmentConfig,
    NetworkConfig,
    get_debug_config,
    get_default_config
)

from .metrics import (
    MetricsLogger,
    RollingStats,
    EvaluationResult
)

from .trainer import Trainer, evaluate_policy, load_checkpoint_weights

__all__ = [
    # Config
    "TrainingConfig",
    "EnvironmentConfig",
    "NetworkConfig",
    "get_debug_config",
    "get_default_config",
    # Metrics
    "MetricsLogger",
    "RollingStats",
    "EvaluationResult",
    # Trainer
    "Trainer",
    "evaluate_policy",
    "load_checkpoint_weights"
]
