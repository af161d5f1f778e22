"""
Agents Module
=============

PPO learning engine.
    - config: Hyperparameters, facade config, ConfigurationError
    - network: Feed-forward actor/critic network
    - rollout_buffer: Experience buffer with minibatch partitioning
    - ppo_agent: PPO agent with GAE and clipped objective
    - ezppo: Per-step facade and weight persistence
"""

from .config import ConfigurationError, PPOHyperparameters, EzppoConfig, Weights
from .network import Network
from .rollout_buffer import RolloutBuffer, MiniBatches
from .ppo_agent import PPOAgent
from .ezppo import Ezppo, save_weights, load_weights

__all__ = [
    # Config
    "ConfigurationError",
    "PPOHyperparameters",
    "EzppoConfig",
    "Weights",
    # Network
    "Network",
    # Buffer
    "RolloutBuffer",
    "MiniBatches",
    # PPO
    "PPOAgent",
    # Facade
    "Ezppo",
    "save_weights",
    "load_weights",
]
