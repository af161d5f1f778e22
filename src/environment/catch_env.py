"""
Catch Environment Module
========================

Gymnasium-compatible catch game used to exercise the PPO engine.

A gold piece and a bomb fall down a unit square. A paddle at the bottom
moves left, stays, or moves right. Catching gold is rewarded, catching the
bomb ends the episode.

Observation (5-dim, all in [0, 1]):
    [gold_x, gold_y, bomb_x, bomb_y, agent_x]

Action (Discrete(3)):
    0 = left, 1 = stay, 2 = right

Reward per step:
    +1 base, +0.2 for staying, -0.2 for pushing into a wall,
    +5 when gold lands within the catch radius,
    -10 (replaces the step reward) when the bomb lands within it.

Author: EZPPO Team
"""

import numpy as np
from typing import Any, Dict, Optional, Tuple

import gymnasium as gym
from gymnasium import spaces


LEFT, STAY, RIGHT = 0, 1, 2


class CatchEnv(gym.Env):
    """
    Falling gold/bomb catch game.

    Attributes:
        move_speed: Paddle and object displacement per step
        catch_radius: Max |agent_x - object_x| for a catch
        max_steps: Episode truncation length
        gold_caught: Gold caught this episode
        bombs_hit: Bombs hit this episode (0 or 1)

    Example:
        >>> env = CatchEnv(seed=0)
        >>> obs, info = env.reset()
        >>> obs, reward, terminated, truncated, info = env.step(1)
    """

    metadata = {"render_modes": ["human", "ansi"]}

    def __init__(
        self,
        move_speed: float = 0.02,
        catch_radius: float = 0.05,
        max_steps: int = 1024,
        board_cols: int = 40,
        board_rows: int = 20,
        seed: Optional[int] = None,
        render_mode: Optional[str] = None
    ):
        """
        Initialize the catch environment.

        Args:
            move_speed: Displacement per step
            catch_radius: Half-width of the paddle
            max_steps: Maximum steps per episode
            board_cols: Text render width
            board_rows: Text render height
            seed: Optional random seed
            render_mode: None, "human" or "ansi"
        """
        super().__init__()

        if render_mode is not None and render_mode not in self.metadata["render_modes"]:
            raise ValueError(f"unsupported render_mode {render_mode!r}")

        self.move_speed = move_speed
        self.catch_radius = catch_radius
        self.max_steps = max_steps
        self.board_cols = board_cols
        self.board_rows = board_rows
        self.render_mode = render_mode

        self.observation_space = spaces.Box(
            low=0.0,
            high=1.0,
            shape=(5,),
            dtype=np.float32
        )
        self.action_space = spaces.Discrete(3)

        self._rng = np.random.default_rng(seed)
        self.step_count = 0
        self.gold_caught = 0
        self.bombs_hit = 0
        self.gold = np.zeros(2)
        self.bomb = np.zeros(2)
        self.agent_x = 0.5

    def reset(
        self,
        seed: Optional[int] = None,
        options: Optional[Dict[str, Any]] = None
    ) -> Tuple[np.ndarray, Dict[str, Any]]:
        """
        Reset to a random initial state.

        Returns:
            Tuple of (observation, info_dict)
        """
        super().reset(seed=seed)
        if seed is not None:
            self._rng = np.random.default_rng(seed)

        self.step_count = 0
        self.gold_caught = 0
        self.bombs_hit = 0
        self.gold = self._spawn()
        self.bomb = self._spawn()
        self.agent_x = float(self._rng.random())

        return self._observation(), self._info()

    def step(self, action: int) -> Tuple[np.ndarray, float, bool, bool, Dict[str, Any]]:
        """
        Execute one step.

        Args:
            action: 0 (left), 1 (stay) or 2 (right)

        Returns:
            Tuple of (observation, reward, terminated, truncated, info)
        """
        if not self.action_space.contains(int(action)):
            raise ValueError(f"invalid action {action!r}")

        self.step_count += 1
        reward = 1.0
        terminated = False

        if action == LEFT:
            if self.agent_x < self.move_speed:
                self.agent_x = 0.0
                reward -= 0.2
            else:
                self.agent_x -= self.move_speed
        elif action == STAY:
            reward += 0.2
        else:
            if self.agent_x > 1.0 - self.move_speed:
                self.agent_x = 1.0
                reward -= 0.2
            else:
                self.agent_x += self.move_speed

        # Drop
        self.gold[1] += self.move_speed
        self.bomb[1] += self.move_speed

        if self.gold[1] >= 1.0:
            if abs(self.agent_x - self.gold[0]) <= self.catch_radius:
                reward += 5.0
                self.gold_caught += 1
            self.gold = self._spawn()

        if self.bomb[1] >= 1.0:
            if abs(self.agent_x - self.bomb[0]) <= self.catch_radius:
                reward = -10.0
                self.bombs_hit += 1
                terminated = True
            self.bomb = self._spawn()

        truncated = not terminated and self.step_count >= self.max_steps

        if self.render_mode == "human":
            self.render()

        return self._observation(), reward, terminated, truncated, self._info()

    def _spawn(self) -> np.ndarray:
        """New object at a random x, near the top."""
        return np.array([self._rng.random(), self._rng.random() / 4])

    def _observation(self) -> np.ndarray:
        return np.array(
            [self.gold[0], self.gold[1], self.bomb[0], self.bomb[1], self.agent_x],
            dtype=np.float32
        )

    def _info(self) -> Dict[str, Any]:
        return {
            "step": self.step_count,
            "gold_caught": self.gold_caught,
            "bombs_hit": self.bombs_hit
        }

    def render(self) -> Optional[str]:
        """Text board; printed in "human" mode, returned in "ansi" mode."""
        cols, rows = self.board_cols, self.board_rows
        grid = [[" "] * cols for _ in range(rows)]

        def cell(x: float, y: float) -> Tuple[int, int]:
            col = min(int(x * cols), cols - 1)
            row = min(int(y * rows), rows - 1)
            return row, col

        row, col = cell(*self.gold)
        grid[row][col] = "$"
        row, col = cell(*self.bomb)
        grid[row][col] = "*"

        half = max(1, int(self.catch_radius * cols))
        _, center = cell(self.agent_x, 0.0)
        paddle = [" "] * cols
        for c in range(max(0, center - half), min(cols, center + half + 1)):
            paddle[c] = "="

        lines = [
            f"step: {self.step_count}, gold: {self.gold_caught}, bomb: {self.bombs_hit}",
            "+" + "-" * cols + "+"
        ]
        lines += ["|" + "".join(r) + "|" for r in grid]
        lines.append("|" + "".join(paddle) + "|")
        lines.append("+" + "-" * cols + "+")
        board = "\n".join(lines)

        if self.render_mode == "human":
            print(board)
            return None
        return board

    def close(self):
        pass
