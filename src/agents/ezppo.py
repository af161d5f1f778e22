"""
Ezppo Facade Module
===================

Per-step wrapper around PPOAgent for embedding in any control loop.

Usage:
    ezppo = Ezppo(state_dim=5, action_dim=3, batch_size=4096)

    # every step
    ezppo.mark_step_begin()
    action = ezppo.get_step_action(env_inputs)
    ezppo.give_step_reward(reward)

    # every episode end
    if ezppo.epoch_finished():
        save_weights("weights.json", ezppo.get_weights())

Author: EZPPO Team
"""

import json
import logging
import numpy as np
from pathlib import Path
from typing import List, Optional, Sequence

from .config import ConfigurationError, EzppoConfig, Weights
from .ppo_agent import PPOAgent


logger = logging.getLogger(__name__)


class Ezppo:
    """
    Step-level facade: tracks the current episode and the step counter and
    decides when the agent trains.

    Attributes:
        config: Frozen facade configuration
        agent: Underlying PPO agent
        step_index: Steps since the last training pass
        episode_rewards: Rewards of the current episode
        episode_values: Critic values of the current episode
    """

    def __init__(self, config: Optional[EzppoConfig] = None, **kwargs):
        """
        Initialize facade.

        Args:
            config: Facade configuration; alternatively pass its fields as
                keyword arguments (state_dim, action_dim, batch_size, ...)
        """
        if config is None:
            config = EzppoConfig(**kwargs)
        elif kwargs:
            raise TypeError("pass either a config or keyword arguments, not both")

        self.config = config
        self.agent = PPOAgent(
            state_dim=config.state_dim,
            action_dim=config.action_dim,
            network_layer_set=config.network_layer_set,
            custom_weights=config.custom_weights,
            hyperparameters=config.hyperparameters,
            training_mode=config.training_mode,
            seed=config.seed
        )

        self.step_index = 0
        self.episode_rewards: List[float] = []
        self.episode_values: List[float] = []

        self.last_action: Optional[int] = None
        self.last_env_inputs: Optional[np.ndarray] = None
        self.last_probs: Optional[np.ndarray] = None

    @property
    def training_mode(self) -> bool:
        return self.config.training_mode

    @property
    def batch_size(self) -> int:
        return self.config.batch_size

    def mark_step_begin(self):
        """Count one environment step."""
        self.step_index += 1

    def get_step_action(self, env_inputs: Sequence[float]) -> int:
        """
        Choose an action for the current state.

        Args:
            env_inputs: Feature vector of length state_dim

        Returns:
            Action index in [0, action_dim)
        """
        env_inputs = np.asarray(env_inputs, dtype=np.float32)
        if env_inputs.shape != (self.config.state_dim,):
            raise ConfigurationError(
                f"env_inputs must have length {self.config.state_dim}, "
                f"got shape {env_inputs.shape}"
            )

        probs = self.agent.action_probabilities(env_inputs)
        action = self.agent.select_action(probs)

        self.last_action = action
        self.last_env_inputs = env_inputs
        self.last_probs = probs
        return action

    def give_step_reward(self, reward: float):
        """
        Record the reward for the last chosen action and store the transition.

        No-op in non-training mode.
        """
        if not self.training_mode:
            return
        if self.last_action is None:
            raise ConfigurationError("give_step_reward called before get_step_action")

        one_hot_action = np.zeros(self.config.action_dim, dtype=np.float32)
        one_hot_action[self.last_action] = 1.0

        value = self.agent.state_value(self.last_env_inputs)
        self.episode_rewards.append(float(reward))
        self.episode_values.append(value)

        self.agent.store_transition(
            self.last_env_inputs.copy(),
            value,
            one_hot_action,
            float(self.last_probs[self.last_action])
        )

    def epoch_finished(self) -> bool:
        """
        Close the current episode and train once enough steps accumulated.

        Rewards are used unshifted: reward i belongs to the action chosen
        in step i, with no leading reward dropped and no trailing 0 added.

        Returns:
            True if this call ran a training pass
        """
        if not self.training_mode:
            return False

        if self.episode_rewards:
            self.agent.finish_episode(self.episode_rewards, self.episode_values)
        self.episode_rewards = []
        self.episode_values = []

        if self.step_index < self.batch_size:
            return False

        stats = self.agent.train()
        logger.info(
            "Training pass %d after %d steps: clip=%.4f critic=%.4f entropy=%.4f",
            self.agent.total_updates, self.step_index,
            stats["clip_objective"], stats["critic_loss"], stats["entropy"]
        )
        self.step_index = 0
        return True

    def get_weights(self) -> Weights:
        """Current [actor_layers, critic_layers] snapshot."""
        return self.agent.get_weights()


# =============================================================================
# PERSISTENCE
# =============================================================================

def save_weights(path: str, weights: Weights):
    """Write a weight snapshot to a JSON file."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        json.dump(weights, f)


def load_weights(path: str) -> Optional[Weights]:
    """Read a weight snapshot, or None if the file does not exist."""
    path = Path(path)
    if not path.exists():
        return None
    with open(path, "r") as f:
        weights = json.load(f)

    if not isinstance(weights, list) or len(weights) != 2:
        raise ConfigurationError(f"{path} is not a [actor, critic] weight snapshot")
    if not all(isinstance(entry, list) and entry for entry in weights):
        raise ConfigurationError(f"{path} has an empty actor or critic entry")
    return weights
