"""
Training Configuration Module
=============================

Centralized configuration for training runs on the catch environment.

Author: EZPPO Team
"""

from dataclasses import dataclass, field, asdict
from typing import List, Dict, Any
import json
from pathlib import Path

from agents.config import ConfigurationError, PPOHyperparameters, validate_layer_set


@dataclass
class EnvironmentConfig:
    """Catch environment configuration."""

    move_speed: float = 0.02        # Paddle/object displacement per step
    catch_radius: float = 0.05      # Half-width of the paddle
    max_steps: int = 1024           # Max steps per episode


@dataclass
class NetworkConfig:
    """Neural network configuration."""

    state_dim: int = 5              # Catch observation size
    action_dim: int = 3             # left / stay / right
    layer_set: List[int] = field(default_factory=lambda: [64, 32])


@dataclass
class TrainingConfig:
    """Complete training configuration."""

    # Sub-configs
    env: EnvironmentConfig = field(default_factory=EnvironmentConfig)
    network: NetworkConfig = field(default_factory=NetworkConfig)
    ppo: PPOHyperparameters = field(default_factory=PPOHyperparameters)

    # Training budget
    batch_size: int = 4096          # Steps per training pass (minimum)
    total_episodes: int = 2000      # Episodes to run

    # Logging
    log_interval: int = 10          # Print stats every N episodes
    eval_interval: int = 100        # Evaluate every N episodes
    eval_episodes: int = 5          # Episodes per evaluation

    # Paths
    experiment_name: str = "catch_ppo"
    output_dir: str = "outputs"

    # Reproducibility
    seed: int = 42

    def validate(self):
        """Raise ConfigurationError on invalid values."""
        validate_layer_set(self.network.layer_set)
        for name in ("batch_size", "total_episodes", "log_interval",
                     "eval_interval", "eval_episodes"):
            if getattr(self, name) < 1:
                raise ConfigurationError(f"{name} must be >= 1, got {getattr(self, name)}")
        if self.env.max_steps < 1:
            raise ConfigurationError(f"env.max_steps must be >= 1, got {self.env.max_steps}")

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "env": asdict(self.env),
            "network": asdict(self.network),
            "ppo": asdict(self.ppo),
            "batch_size": self.batch_size,
            "total_episodes": self.total_episodes,
            "log_interval": self.log_interval,
            "eval_interval": self.eval_interval,
            "eval_episodes": self.eval_episodes,
            "experiment_name": self.experiment_name,
            "output_dir": self.output_dir,
            "seed": self.seed
        }

    def save(self, path: str):
        """Save configuration to JSON."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            json.dump(self.to_dict(), f, indent=2)

    @classmethod
    def load(cls, path: str) -> "TrainingConfig":
        """Load configuration from JSON."""
        with open(path, "r") as f:
            data = json.load(f)

        config = cls()

        # Environment
        if "env" in data:
            for k, v in data["env"].items():
                if hasattr(config.env, k):
                    setattr(config.env, k, v)

        # Network
        if "network" in data:
            for k, v in data["network"].items():
                if hasattr(config.network, k):
                    setattr(config.network, k, v)

        # PPO (frozen, rebuilt in one go so it is validated)
        if "ppo" in data:
            known = {k: v for k, v in data["ppo"].items() if hasattr(config.ppo, k)}
            config.ppo = PPOHyperparameters(**known)

        # Top-level
        for k in ["batch_size", "total_episodes", "log_interval",
                  "eval_interval", "eval_episodes", "experiment_name",
                  "output_dir", "seed"]:
            if k in data:
                setattr(config, k, data[k])

        config.validate()
        return config


# =============================================================================
# PRESETS
# =============================================================================

def get_debug_config() -> TrainingConfig:
    """Fast config for debugging."""
    config = TrainingConfig()
    config.env.max_steps = 64
    config.network.layer_set = [16, 16]
    config.ppo = PPOHyperparameters(num_epochs=2, num_mini_batches=4)
    config.batch_size = 128
    config.total_episodes = 8
    config.log_interval = 1
    config.eval_interval = 4
    config.eval_episodes = 1
    return config


def get_default_config() -> TrainingConfig:
    """Full-length catch run: batch 4096, layers 64-32."""
    config = TrainingConfig()
    config.network.layer_set = [64, 32]
    config.batch_size = 4096
    return config
