"""
Environment Module
==================

Gymnasium environments for exercising the PPO engine.
    - catch_env: Falling gold/bomb catch game
"""

from .catch_env import CatchEnv, LEFT, STAY, RIGHT

__all__ = [
    "CatchEnv",
    "LEFT",
    "STAY",
    "RIGHT",
]
