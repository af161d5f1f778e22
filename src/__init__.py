"""
EZPPO
=====

Embeddable Proximal Policy Optimization engine for discrete-action
control loops.

Modules:
    - agents: Networks, rollout buffer, PPO agent and the per-step facade
    - environment: Gymnasium catch game used for training and tests
    - training: Config, metrics logging and training loop
"""

__version__ = "1.0.0"
__author__ = "EZPPO Team"
