"""
Trainer Module
==============

Main training loop connecting the catch environment, the Ezppo facade and
metrics logging.

The loop mirrors how an embedding application drives the facade:
1. mark_step_begin / get_step_action / give_step_reward every step
2. epoch_finished at every episode end (trains once batch_size steps
   have accumulated)
3. Weights saved after every training pass
4. Periodic greedy evaluation

Author: EZPPO Team
"""

import json
import logging
import random
import time
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Tuple

import numpy as np
import torch

from agents.config import EzppoConfig, Weights
from agents.ezppo import Ezppo, load_weights, save_weights
from environment.catch_env import CatchEnv

from .config import TrainingConfig
from .metrics import MetricsLogger, EvaluationResult


logger = logging.getLogger(__name__)


def load_checkpoint_weights(path: str) -> Tuple[Weights, Path]:
    """
    Read the snapshot of a checkpoint directory or a bare weights JSON file.

    Returns:
        Tuple of (weights, path of the weights file)

    Raises:
        FileNotFoundError: If no weights file exists at path
    """
    path = Path(path)
    weights_file = path / "weights.json" if path.is_dir() else path
    weights = load_weights(weights_file)
    if weights is None:
        raise FileNotFoundError(f"no weights found at {weights_file}")
    return weights, weights_file


def evaluate_policy(ezppo: Ezppo, env: CatchEnv, n_episodes: int) -> EvaluationResult:
    """Play n_episodes with a non-training facade and collect statistics."""
    result = EvaluationResult()

    for _ in range(n_episodes):
        obs, info = env.reset()
        episode_reward = 0.0
        episode_length = 0

        done = False
        while not done:
            ezppo.mark_step_begin()
            action = ezppo.get_step_action(obs)
            obs, reward, terminated, truncated, info = env.step(action)
            episode_reward += reward
            episode_length += 1
            done = terminated or truncated

        result.add_episode(
            reward=episode_reward,
            length=episode_length,
            gold_caught=info["gold_caught"],
            bombs_hit=info["bombs_hit"]
        )

    return result


class Trainer:
    """
    Catch-game trainer for the Ezppo facade.

    Attributes:
        config: Training configuration
        env: Catch environment
        ezppo: Facade in training mode
        logger: Metrics logger

    Example:
        >>> config = get_debug_config()
        >>> trainer = Trainer(config)
        >>> trainer.train()
    """

    def __init__(
        self,
        config: Optional[TrainingConfig] = None,
        env: Optional[CatchEnv] = None,
        custom_weights: Optional[Weights] = None,
        seed: Optional[int] = None,
        resume_from: Optional[str] = None
    ):
        """
        Initialize trainer.

        Args:
            config: Training configuration (uses defaults if None)
            env: Pre-initialized environment (creates new if None)
            custom_weights: Optional snapshot to warm-start from
            seed: Random seed (uses config.seed if None)
            resume_from: Checkpoint directory or weights JSON to continue
                from; the existing CSV log is appended to and the run's
                config.json is kept
        """
        self.config = config or TrainingConfig()
        self.config.validate()
        self.seed = seed if seed is not None else self.config.seed

        self._set_seeds(self.seed)

        self.env = env or self._create_env()
        self.ezppo = self._create_ezppo(custom_weights, training_mode=True)

        self.output_dir = Path(self.config.output_dir) / self.config.experiment_name
        self.output_dir.mkdir(parents=True, exist_ok=True)
        self.weights_path = self.output_dir / "weights.json"

        self.logger = MetricsLogger(
            output_dir=self.config.output_dir,
            experiment_name=self.config.experiment_name,
            append=resume_from is not None
        )

        config_path = self.output_dir / "config.json"
        if resume_from is None or not config_path.exists():
            self.config.save(config_path)

        self.total_timesteps = 0
        self.total_episodes = 0
        self.best_eval_reward = -float("inf")

        self.callbacks: List[Callable] = []

        if resume_from is not None:
            self.load_checkpoint(resume_from)

    def _set_seeds(self, seed: int):
        """Set random seeds for reproducibility."""
        random.seed(seed)
        np.random.seed(seed)
        torch.manual_seed(seed)

    def _create_env(self, seed: Optional[int] = None) -> CatchEnv:
        """Create environment from config."""
        return CatchEnv(
            move_speed=self.config.env.move_speed,
            catch_radius=self.config.env.catch_radius,
            max_steps=self.config.env.max_steps,
            seed=self.seed if seed is None else seed
        )

    def _create_ezppo(self, custom_weights: Optional[Weights], training_mode: bool) -> Ezppo:
        """Create facade from config."""
        return Ezppo(EzppoConfig(
            state_dim=self.config.network.state_dim,
            action_dim=self.config.network.action_dim,
            batch_size=self.config.batch_size,
            custom_weights=custom_weights,
            training_mode=training_mode,
            network_layer_set=tuple(self.config.network.layer_set),
            hyperparameters=self.config.ppo,
            seed=self.seed if training_mode else None
        ))

    def run_episode(self) -> Dict[str, Any]:
        """
        Play one training episode through the facade.

        Returns:
            Dictionary with episode statistics
        """
        obs, info = self.env.reset()
        episode_reward = 0.0
        episode_length = 0

        done = False
        while not done:
            self.ezppo.mark_step_begin()
            action = self.ezppo.get_step_action(obs)
            obs, reward, terminated, truncated, info = self.env.step(action)
            self.ezppo.give_step_reward(reward)

            episode_reward += reward
            episode_length += 1
            done = terminated or truncated

        trained = self.ezppo.epoch_finished()

        self.total_timesteps += episode_length
        self.total_episodes += 1

        if trained:
            stats = self.ezppo.agent.training_stats
            self.logger.log_update(
                clip_objective=stats["clip_objective"][-1],
                critic_loss=stats["critic_loss"][-1],
                entropy=stats["entropy"][-1]
            )
            save_weights(self.weights_path, self.ezppo.get_weights())

        self.logger.log_episode(
            reward=episode_reward,
            length=episode_length,
            gold_caught=info["gold_caught"],
            bombs_hit=info["bombs_hit"],
            trained=trained
        )

        return {
            "reward": episode_reward,
            "length": episode_length,
            "gold_caught": info["gold_caught"],
            "bombs_hit": info["bombs_hit"],
            "trained": trained
        }

    def evaluate(self, n_episodes: int = 5) -> EvaluationResult:
        """
        Evaluate the current policy greedily on a separate environment.

        Args:
            n_episodes: Number of episodes to evaluate

        Returns:
            EvaluationResult with episode statistics
        """
        greedy = self._create_ezppo(self.ezppo.get_weights(), training_mode=False)
        env = self._create_env(seed=self.seed + 10_000 + self.total_episodes)
        return evaluate_policy(greedy, env, n_episodes)

    def save_checkpoint(self, name: str = "checkpoint"):
        """Save weights and trainer state."""
        checkpoint_dir = self.output_dir / "checkpoints" / name
        save_weights(checkpoint_dir / "weights.json", self.ezppo.get_weights())

        state = {
            "total_timesteps": self.total_timesteps,
            "total_episodes": self.total_episodes,
            "best_eval_reward": self.best_eval_reward
        }
        with open(checkpoint_dir / "trainer_state.json", "w") as f:
            json.dump(state, f, indent=2)

    def load_checkpoint(self, path: str):
        """
        Resume from a checkpoint directory or a bare weights JSON file.

        Any partially collected rollout is discarded.
        """
        weights, weights_file = load_checkpoint_weights(path)
        self.ezppo = self._create_ezppo(weights, training_mode=True)

        state_path = weights_file.parent / "trainer_state.json"
        if state_path.exists():
            with open(state_path) as f:
                state = json.load(f)
            self.total_timesteps = state.get("total_timesteps", 0)
            self.total_episodes = state.get("total_episodes", 0)
            self.best_eval_reward = state.get("best_eval_reward", -float("inf"))

        # Keep CSV episode/timestep columns continuous across the resume
        self.logger.total_timesteps = self.total_timesteps
        self.logger.total_episodes = self.total_episodes

        logger.info("Resumed from %s at episode %d", weights_file, self.total_episodes)

    def train(self) -> Dict[str, Any]:
        """
        Main training loop.

        Returns:
            Dictionary with final training statistics
        """
        print("=" * 70)
        print(f"Starting Training: {self.config.experiment_name}")
        print(f"  Episodes: {self.config.total_episodes:,}")
        print(f"  Batch size: {self.config.batch_size}")
        print(f"  Layers: {self.config.network.layer_set}")
        print("=" * 70)

        start_time = time.time()
        episodes_run = 0

        while episodes_run < self.config.total_episodes:
            self.run_episode()
            episodes_run += 1

            if episodes_run % self.config.log_interval == 0:
                self.logger.print_stats(prefix=f"[Episode {self.total_episodes}] ")

            if episodes_run % self.config.eval_interval == 0:
                summary = self.evaluate(n_episodes=self.config.eval_episodes).summary()
                print(f"  [Eval] Reward: {summary['reward_mean']:.2f} | "
                      f"Gold: {summary['gold_caught_mean']:.2f} | "
                      f"Bomb rate: {summary['bomb_rate']:.2f}")

                if summary["reward_mean"] > self.best_eval_reward:
                    self.best_eval_reward = summary["reward_mean"]
                    self.save_checkpoint("best")
                    print(f"  [*] New best model! Reward: {self.best_eval_reward:.2f}")

            for callback in self.callbacks:
                callback(self)

        self.save_checkpoint("final")
        self.logger.save()

        elapsed = time.time() - start_time
        final_stats = {
            "total_timesteps": self.total_timesteps,
            "total_episodes": self.total_episodes,
            "total_updates": self.ezppo.agent.total_updates,
            "best_eval_reward": self.best_eval_reward,
            "time_elapsed": elapsed,
            "fps": self.total_timesteps / max(elapsed, 1e-6)
        }

        print("=" * 70)
        print("Training Complete!")
        print(f"  Total timesteps: {self.total_timesteps:,}")
        print(f"  Total episodes: {self.total_episodes}")
        print(f"  Training passes: {final_stats['total_updates']}")
        print(f"  Time: {elapsed / 60:.1f} minutes")
        print("=" * 70)

        self.logger.close()

        return final_stats
