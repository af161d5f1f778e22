"""
Rollout Buffer Module
=====================

Implements the experience buffer for PPO training.

Stores (one entry per transition, always index-aligned):
    - States
    - One-hot actions
    - Old action probabilities
    - Advantages (appended per finished episode)
    - Returns (appended per finished episode)

Critic values and rewards are kept alongside for diagnostics.

Produces:
    - A shuffled view of the rollout
    - Minibatch tensors, split as evenly as possible

Author: EZPPO Team
"""

import numpy as np
from typing import List, NamedTuple, Optional, Sequence

import torch

from .config import ConfigurationError


class MiniBatches(NamedTuple):
    """Per-minibatch tensors; index i of every list is the same minibatch."""
    states: List[torch.Tensor]
    actions: List[torch.Tensor]
    old_probs: List[torch.Tensor]
    advantages: List[torch.Tensor]
    returns: List[torch.Tensor]


class RolloutBuffer:
    """
    Rollout buffer for PPO training.

    Transitions are appended one step at a time with ``store``; return and
    advantage data arrive once per finished episode with
    ``store_return_data``. Training then shuffles, partitions into
    minibatches and finally resets the buffer.

    Attributes:
        state_dim: Feature vector length
        action_dim: Number of discrete actions (one-hot length)
        num_mini_batches: Number of minibatches per pass

    Example:
        >>> buffer = RolloutBuffer(state_dim=5, action_dim=3, num_mini_batches=4)
        >>> buffer.store(state, value, one_hot_action, old_prob)
        >>> # ... rest of the episode ...
        >>> buffer.store_return_data(returns, advantages)
        >>> buffer.shuffle()
        >>> buffer.create_mini_batches()
        >>> batches = buffer.get_mini_batches()
    """

    def __init__(
        self,
        state_dim: int,
        action_dim: int,
        num_mini_batches: int = 32,
        rng: Optional[np.random.Generator] = None
    ):
        """
        Initialize rollout buffer.

        Args:
            state_dim: Feature vector length
            action_dim: Number of discrete actions
            num_mini_batches: Number of minibatches per training pass
            rng: Random generator used for shuffling
        """
        if state_dim <= 0 or action_dim <= 0:
            raise ConfigurationError(
                f"state_dim and action_dim must be > 0, got {state_dim}, {action_dim}"
            )
        if num_mini_batches < 1:
            raise ConfigurationError(
                f"num_mini_batches must be >= 1, got {num_mini_batches}"
            )

        self.state_dim = state_dim
        self.action_dim = action_dim
        self.num_mini_batches = num_mini_batches
        self.rng = rng if rng is not None else np.random.default_rng()

        self.reset()

    def reset(self):
        """Clear all stored data."""
        self.states: List[np.ndarray] = []
        self.actions: List[np.ndarray] = []
        self.old_probs: List[float] = []
        self.advantages: List[float] = []
        self.returns: List[float] = []

        self.values: List[float] = []
        self.rewards: List[float] = []

        self._mini_batches = MiniBatches([], [], [], [], [])

    def store(
        self,
        state: Sequence[float],
        value: float,
        one_hot_action: Sequence[float],
        old_prob: float
    ):
        """
        Add a transition to the buffer.

        Args:
            state: Feature vector, shape (state_dim,)
            value: Critic value estimate at this state
            one_hot_action: One-hot action vector, shape (action_dim,)
            old_prob: Probability of the chosen action at selection time
        """
        state = np.asarray(state, dtype=np.float32)
        action = np.asarray(one_hot_action, dtype=np.float32)

        if state.shape != (self.state_dim,):
            raise ConfigurationError(
                f"state must have shape ({self.state_dim},), got {state.shape}"
            )
        if action.shape != (self.action_dim,):
            raise ConfigurationError(
                f"one-hot action must have shape ({self.action_dim},), got {action.shape}"
            )

        self.states.append(state)
        self.values.append(float(value))
        self.actions.append(action)
        self.old_probs.append(float(old_prob))

    def store_rewards(self, rewards: Sequence[float]):
        """Record one episode's rewards (diagnostic copy)."""
        self.rewards.extend(float(r) for r in rewards)

    def store_return_data(
        self,
        returns: Sequence[float],
        advantages: Sequence[float]
    ):
        """
        Append one finished episode's returns and advantages.

        Must be called once per episode, after all of that episode's
        ``store`` calls.

        Raises:
            ConfigurationError: If lengths do not match the pending transitions
        """
        pending = self.pending_steps
        if len(returns) != pending or len(advantages) != pending:
            raise ConfigurationError(
                f"episode has {pending} pending transitions, got "
                f"{len(returns)} returns and {len(advantages)} advantages"
            )

        self.returns.extend(float(r) for r in returns)
        self.advantages.extend(float(a) for a in advantages)

    @property
    def pending_steps(self) -> int:
        """Transitions stored since the last episode boundary."""
        return len(self.states) - len(self.returns)

    def shuffle(self):
        """Apply one random permutation to every parallel sequence."""
        if self.pending_steps:
            raise RuntimeError(
                f"{self.pending_steps} transitions have no return data; "
                "finish the episode before shuffling"
            )

        permutation = self.rng.permutation(len(self.states))

        self.states = [self.states[i] for i in permutation]
        self.actions = [self.actions[i] for i in permutation]
        self.old_probs = [self.old_probs[i] for i in permutation]
        self.advantages = [self.advantages[i] for i in permutation]
        self.returns = [self.returns[i] for i in permutation]
        self.values = [self.values[i] for i in permutation]
        if len(self.rewards) == len(permutation):
            self.rewards = [self.rewards[i] for i in permutation]

    def create_mini_batches(self):
        """
        Partition the (shuffled) rollout into minibatch tensors.

        Chunk sizes differ by at most one. When there are fewer transitions
        than minibatches the empty chunks are dropped.
        """
        n_samples = len(self.returns)

        states = np.asarray(self.states, dtype=np.float32).reshape(n_samples, self.state_dim)
        actions = np.asarray(self.actions, dtype=np.float32).reshape(n_samples, self.action_dim)
        old_probs = np.asarray(self.old_probs, dtype=np.float32)
        advantages = np.asarray(self.advantages, dtype=np.float32)
        returns = np.asarray(self.returns, dtype=np.float32)

        batches = MiniBatches([], [], [], [], [])
        for chunk in np.array_split(np.arange(n_samples), self.num_mini_batches):
            if len(chunk) == 0:
                continue
            lo, hi = chunk[0], chunk[-1] + 1
            batches.states.append(torch.from_numpy(states[lo:hi]))
            batches.actions.append(torch.from_numpy(actions[lo:hi]))
            batches.old_probs.append(torch.from_numpy(old_probs[lo:hi]))
            batches.advantages.append(torch.from_numpy(advantages[lo:hi]))
            batches.returns.append(torch.from_numpy(returns[lo:hi]))

        self._mini_batches = batches

    def get_mini_batches(self) -> MiniBatches:
        """Return the minibatches built by the last create_mini_batches call."""
        return self._mini_batches

    def __len__(self) -> int:
        """Return number of stored transitions."""
        return len(self.states)
