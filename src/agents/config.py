"""
Agent Configuration Module
==========================

Hyperparameters and facade configuration for the PPO engine.

Both structures are frozen dataclasses validated in ``__post_init__`` so a
bad value fails at construction instead of surfacing mid-training.

Author: EZPPO Team
"""

from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple


# Weight snapshot: [actor_layers, critic_layers], each a list of flat arrays
Weights = List[List[List[float]]]


class ConfigurationError(ValueError):
    """Raised when shapes, dimensions or hyperparameters are invalid."""


@dataclass(frozen=True)
class PPOHyperparameters:
    """PPO algorithm hyperparameters (immutable per agent)."""

    clip_epsilon: float = 0.2           # PPO clipping epsilon
    gamma: float = 0.99                 # Discount factor
    gae_lambda: float = 1.0             # GAE smoothing parameter
    entropy_coefficient: float = 0.0    # Entropy bonus coefficient
    num_epochs: int = 10                # Passes over the rollout per train()
    num_mini_batches: int = 32          # Minibatches per pass
    learning_rate: float = 3e-4         # Shared Adam learning rate
    max_grad_norm: Optional[float] = None  # Global grad-norm clip (off by default)

    def __post_init__(self):
        self.validate()

    def validate(self):
        """Raise ConfigurationError on out-of-range values."""
        if self.clip_epsilon <= 0:
            raise ConfigurationError(
                f"clip_epsilon must be > 0, got {self.clip_epsilon}"
            )
        if not 0.0 <= self.gamma <= 1.0:
            raise ConfigurationError(f"gamma must be in [0, 1], got {self.gamma}")
        if not 0.0 <= self.gae_lambda <= 1.0:
            raise ConfigurationError(
                f"gae_lambda must be in [0, 1], got {self.gae_lambda}"
            )
        if self.entropy_coefficient < 0:
            raise ConfigurationError(
                f"entropy_coefficient must be >= 0, got {self.entropy_coefficient}"
            )
        if self.num_epochs < 1:
            raise ConfigurationError(f"num_epochs must be >= 1, got {self.num_epochs}")
        if self.num_mini_batches < 1:
            raise ConfigurationError(
                f"num_mini_batches must be >= 1, got {self.num_mini_batches}"
            )
        if self.learning_rate <= 0:
            raise ConfigurationError(
                f"learning_rate must be > 0, got {self.learning_rate}"
            )
        if self.max_grad_norm is not None and self.max_grad_norm <= 0:
            raise ConfigurationError(
                f"max_grad_norm must be > 0 when set, got {self.max_grad_norm}"
            )


@dataclass(frozen=True)
class EzppoConfig:
    """
    Construction config for the per-step facade.

    Attributes:
        state_dim: Length of the feature vector given on every step
        action_dim: Number of discrete actions
        batch_size: Minimum number of steps collected before training
        custom_weights: Optional snapshot to warm-start both networks
        training_mode: If False, the facade only acts greedily
        network_layer_set: Hidden layer widths shared by actor and critic
        hyperparameters: PPO hyperparameters
        seed: Optional seed for torch initialization and action sampling
    """

    state_dim: int
    action_dim: int
    batch_size: int
    custom_weights: Optional[Weights] = None
    training_mode: bool = True
    network_layer_set: Tuple[int, ...] = (64, 64)
    hyperparameters: PPOHyperparameters = field(default_factory=PPOHyperparameters)
    seed: Optional[int] = None

    def __post_init__(self):
        # Normalise lists from JSON into a hashable tuple
        object.__setattr__(self, "network_layer_set", tuple(self.network_layer_set))
        self.validate()

    def validate(self):
        """Raise ConfigurationError on invalid dimensions."""
        for name in ("state_dim", "action_dim", "batch_size"):
            value = getattr(self, name)
            if not isinstance(value, int) or value <= 0:
                raise ConfigurationError(f"{name} must be a positive int, got {value!r}")
        validate_layer_set(self.network_layer_set)


def validate_layer_set(layer_set: Sequence[int]):
    """Check that every hidden layer width is a positive int."""
    for width in layer_set:
        if not isinstance(width, int) or width <= 0:
            raise ConfigurationError(
                f"network layer widths must be positive ints, got {list(layer_set)}"
            )
