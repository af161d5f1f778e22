"""
Metrics Logger Module
=====================

Logging and metrics tracking for training.

Features:
    - Rolling statistics
    - CSV logging (one row per episode)
    - JSON history and final stats

Author: EZPPO Team
"""

import csv
import json
import time
from pathlib import Path
from typing import Dict, List
from collections import deque
from dataclasses import dataclass, field
import numpy as np


@dataclass
class RollingStats:
    """Rolling statistics tracker."""

    window_size: int = 100
    _values: deque = field(default_factory=deque)

    def __post_init__(self):
        self._values = deque(maxlen=self.window_size)

    def add(self, value: float):
        self._values.append(value)

    @property
    def mean(self) -> float:
        if len(self._values) == 0:
            return 0.0
        return float(np.mean(self._values))

    @property
    def std(self) -> float:
        if len(self._values) < 2:
            return 0.0
        return float(np.std(self._values))

    @property
    def max(self) -> float:
        if len(self._values) == 0:
            return 0.0
        return float(np.max(self._values))

    def __len__(self) -> int:
        return len(self._values)


class MetricsLogger:
    """
    Metrics logging for catch training runs.

    Tracks:
        - Episode rewards and lengths
        - Gold caught / bombs hit per episode
        - PPO loss components per training pass

    Example:
        >>> logger = MetricsLogger("outputs", "run1")
        >>> logger.log_episode(reward=120.5, length=300, gold_caught=2, bombs_hit=1)
        >>> logger.log_update(clip_objective=0.01, critic_loss=0.5, entropy=1.0)
        >>> logger.save()
        >>> logger.close()
    """

    _csv_file = None

    FIELDNAMES = [
        "episode", "timestep", "reward", "episode_length", "gold_caught",
        "bombs_hit", "trained", "clip_objective", "critic_loss", "entropy",
        "time_elapsed"
    ]

    def __init__(
        self,
        output_dir: str,
        experiment_name: str = "experiment",
        window_size: int = 100,
        append: bool = False
    ):
        """
        Initialize logger.

        Args:
            output_dir: Directory for log files
            experiment_name: Name of experiment (sub-directory)
            window_size: Size of rolling statistics window
            append: Continue an existing training_log.csv instead of
                starting a new one (used when resuming)
        """
        self.output_dir = Path(output_dir) / experiment_name
        self.output_dir.mkdir(parents=True, exist_ok=True)

        self.experiment_name = experiment_name
        self.window_size = window_size

        self.episode_rewards = RollingStats(window_size)
        self.episode_lengths = RollingStats(window_size)
        self.gold_caught = RollingStats(window_size)
        self.bombs_hit = RollingStats(window_size)

        self.clip_objectives = RollingStats(window_size)
        self.critic_losses = RollingStats(window_size)
        self.entropies = RollingStats(window_size)

        # Full history for plotting
        self.history: Dict[str, List[float]] = {key: [] for key in self.FIELDNAMES}

        self.total_timesteps = 0
        self.total_episodes = 0
        self.total_updates = 0
        self.start_time = time.time()

        csv_path = self.output_dir / "training_log.csv"
        write_header = not (append and csv_path.exists())
        self._csv_file = open(csv_path, "a" if append else "w", newline="")
        self._csv_writer = csv.DictWriter(self._csv_file, fieldnames=self.FIELDNAMES)
        if write_header:
            self._csv_writer.writeheader()

    def log_update(self, clip_objective: float, critic_loss: float, entropy: float):
        """Record the loss components of one training pass."""
        self.clip_objectives.add(clip_objective)
        self.critic_losses.add(critic_loss)
        self.entropies.add(entropy)
        self.total_updates += 1

    def log_episode(
        self,
        reward: float,
        length: int,
        gold_caught: int = 0,
        bombs_hit: int = 0,
        trained: bool = False
    ):
        """
        Record a finished episode and write its CSV row.

        Args:
            reward: Total episode reward
            length: Episode length (steps)
            gold_caught: Gold caught this episode
            bombs_hit: Bombs hit this episode
            trained: Whether the episode end triggered a training pass
        """
        self.episode_rewards.add(reward)
        self.episode_lengths.add(length)
        self.gold_caught.add(gold_caught)
        self.bombs_hit.add(bombs_hit)

        self.total_episodes += 1
        self.total_timesteps += length

        record = {
            "episode": self.total_episodes,
            "timestep": self.total_timesteps,
            "reward": reward,
            "episode_length": length,
            "gold_caught": gold_caught,
            "bombs_hit": bombs_hit,
            "trained": int(trained),
            "clip_objective": self.clip_objectives.mean,
            "critic_loss": self.critic_losses.mean,
            "entropy": self.entropies.mean,
            "time_elapsed": time.time() - self.start_time
        }

        for key, value in record.items():
            self.history[key].append(value)

        if self._csv_writer:
            self._csv_writer.writerow(record)
            self._csv_file.flush()

    def get_stats(self) -> Dict[str, float]:
        """Get current rolling statistics."""
        return {
            "reward_mean": self.episode_rewards.mean,
            "reward_std": self.episode_rewards.std,
            "reward_max": self.episode_rewards.max,
            "episode_length_mean": self.episode_lengths.mean,
            "gold_caught_mean": self.gold_caught.mean,
            "bombs_hit_mean": self.bombs_hit.mean,
            "clip_objective_mean": self.clip_objectives.mean,
            "critic_loss_mean": self.critic_losses.mean,
            "entropy_mean": self.entropies.mean,
            "total_timesteps": self.total_timesteps,
            "total_episodes": self.total_episodes,
            "total_updates": self.total_updates,
            "time_elapsed": time.time() - self.start_time
        }

    def print_stats(self, prefix: str = ""):
        """Print current statistics."""
        stats = self.get_stats()
        fps = self.total_timesteps / max(stats["time_elapsed"], 1e-6)

        print(f"{prefix}Steps: {self.total_timesteps:,} | "
              f"Episodes: {self.total_episodes} | "
              f"Reward: {stats['reward_mean']:.2f}+/-{stats['reward_std']:.2f} | "
              f"Gold: {stats['gold_caught_mean']:.2f} | "
              f"Updates: {self.total_updates} | "
              f"FPS: {fps:.0f}")

    def save(self):
        """Save history and final stats as JSON."""
        with open(self.output_dir / "history.json", "w") as f:
            json.dump(self.history, f, indent=2)

        with open(self.output_dir / "final_stats.json", "w") as f:
            json.dump(self.get_stats(), f, indent=2)

    def close(self):
        """Close file handles."""
        if self._csv_file:
            self._csv_file.close()
            self._csv_file = None
            self._csv_writer = None

    def __del__(self):
        self.close()


class EvaluationResult:
    """Container for greedy evaluation results."""

    def __init__(self):
        self.rewards: List[float] = []
        self.episode_lengths: List[int] = []
        self.gold_caught: List[int] = []
        self.bombs_hit: List[int] = []

    def add_episode(self, reward: float, length: int, gold_caught: int = 0, bombs_hit: int = 0):
        self.rewards.append(reward)
        self.episode_lengths.append(length)
        self.gold_caught.append(gold_caught)
        self.bombs_hit.append(bombs_hit)

    def summary(self) -> Dict[str, float]:
        """Get summary statistics."""
        if not self.rewards:
            return {
                "reward_mean": 0.0,
                "reward_std": 0.0,
                "episode_length_mean": 0.0,
                "gold_caught_mean": 0.0,
                "bomb_rate": 0.0
            }
        return {
            "reward_mean": float(np.mean(self.rewards)),
            "reward_std": float(np.std(self.rewards)),
            "episode_length_mean": float(np.mean(self.episode_lengths)),
            "gold_caught_mean": float(np.mean(self.gold_caught)),
            "bomb_rate": sum(1 for b in self.bombs_hit if b > 0) / len(self.bombs_hit)
        }
