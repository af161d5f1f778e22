"""
PPO Agent Module
================

Implements the Proximal Policy Optimization (PPO) agent.

Key Features:
    - Clipped surrogate objective
    - GAE for advantage estimation (unnormalized advantages)
    - Entropy bonus for exploration
    - One Adam optimizer over actor + critic parameters, one combined loss
    - Categorical sampling and greedy action selection

Author: EZPPO Team
"""

import logging
import numpy as np
from typing import Dict, List, Optional, Sequence, Tuple

import torch
import torch.optim as optim
from torch.nn.utils import clip_grad_norm_

from .config import ConfigurationError, PPOHyperparameters, Weights, validate_layer_set
from .network import Network
from .rollout_buffer import RolloutBuffer


logger = logging.getLogger(__name__)

PROB_FLOOR = 1e-8


class PPOAgent:
    """
    PPO agent with a softmax actor and a linear critic.

    Learning cycle (driven by the caller):
        ROLLOUT      store_transition() per step
        EPISODE_END  finish_episode() computes returns/advantages
        TRAIN        train() runs num_epochs passes, then resets the buffer

    In non-training mode no buffer or optimizer exists, both networks are
    frozen and action selection is always greedy.

    Attributes:
        actor: Policy network, outputs action probabilities
        critic: Value network, outputs a single state value
        optimizer: Adam over actor + critic parameters (training mode only)
        buffer: Rollout buffer (training mode only)
        hyperparameters: Frozen PPO hyperparameters

    Example:
        >>> agent = PPOAgent(state_dim=5, action_dim=3)
        >>> probs = agent.action_probabilities(state)
        >>> action = agent.sample_action(probs)
        >>> # ... store the episode ...
        >>> agent.finish_episode(rewards, values)
        >>> stats = agent.train()
    """

    def __init__(
        self,
        state_dim: int,
        action_dim: int,
        network_layer_set: Sequence[int] = (64, 64),
        custom_weights: Optional[Weights] = None,
        hyperparameters: Optional[PPOHyperparameters] = None,
        training_mode: bool = True,
        seed: Optional[int] = None
    ):
        """
        Initialize PPO agent.

        Args:
            state_dim: Feature vector length
            action_dim: Number of discrete actions
            network_layer_set: Hidden layer widths for both networks
            custom_weights: Optional [actor, critic] snapshot to restore
            hyperparameters: PPO hyperparameters (defaults if None)
            training_mode: Whether storage and learning are available
            seed: Optional seed for weight init and action sampling

        Raises:
            ConfigurationError: On invalid dims or a mismatched snapshot
        """
        if state_dim <= 0 or action_dim <= 0:
            raise ConfigurationError(
                f"state_dim and action_dim must be > 0, got {state_dim}, {action_dim}"
            )
        validate_layer_set(network_layer_set)

        self.state_dim = state_dim
        self.action_dim = action_dim
        self.network_layer_set = list(network_layer_set)
        self.hyperparameters = hyperparameters or PPOHyperparameters()
        self.training_mode = training_mode

        self.rng = np.random.default_rng(seed)
        if seed is not None:
            torch.manual_seed(seed)

        actor_weights, critic_weights = None, None
        if custom_weights:
            if len(custom_weights) != 2:
                raise ConfigurationError(
                    f"snapshot must have 2 entries (actor, critic), got {len(custom_weights)}"
                )
            actor_weights, critic_weights = custom_weights

        # Actor: one softmax output per action
        self.actor = Network(
            [state_dim, *self.network_layer_set, action_dim],
            weights=actor_weights,
            output_activation="softmax"
        )

        # Critic: single linear output, the state value
        self.critic = Network(
            [state_dim, *self.network_layer_set, 1],
            weights=critic_weights,
            output_activation="linear"
        )

        self.trainables = self.actor.trainables + self.critic.trainables

        if training_mode:
            self.optimizer = optim.Adam(
                self.trainables,
                lr=self.hyperparameters.learning_rate
            )
            self.buffer = RolloutBuffer(
                state_dim=state_dim,
                action_dim=action_dim,
                num_mini_batches=self.hyperparameters.num_mini_batches,
                rng=self.rng
            )
        else:
            self.optimizer = None
            self.buffer = None
            for network in (self.actor, self.critic):
                network.requires_grad_(False)
                network.eval()

        self._is_training = False
        self.total_updates = 0
        self.training_stats: Dict[str, List[float]] = {
            "clip_objective": [],
            "critic_loss": [],
            "entropy": [],
            "total_loss": []
        }

    # ------------------------------------------------------------------
    # Action selection
    # ------------------------------------------------------------------

    def sample_action(self, probs: Sequence[float]) -> int:
        """
        Sample an index from a categorical distribution.

        Walks the cumulative sum of probs until it exceeds a uniform draw.
        If round-off leaves the total short of the draw, the last index with
        a nonzero probability is returned (the last index if all are zero).
        """
        rand = self.rng.random()
        total = 0.0
        for i, p in enumerate(probs):
            total += float(p)
            if rand < total:
                return i
        for i in reversed(range(len(probs))):
            if probs[i] > 0:
                return i
        return len(probs) - 1

    @staticmethod
    def most_likely_action(probs: Sequence[float]) -> int:
        """Index of the largest probability; the first one wins ties."""
        max_index = 0
        max_prob = probs[0]
        for i in range(1, len(probs)):
            if probs[i] > max_prob:
                max_index = i
                max_prob = probs[i]
        return max_index

    def select_action(self, probs: Sequence[float]) -> int:
        """Sample in training mode, otherwise act greedily."""
        if self.training_mode:
            return self.sample_action(probs)
        return self.most_likely_action(probs)

    def action_probabilities(self, state: Sequence[float]) -> np.ndarray:
        """Actor output for one state, shape (action_dim,)."""
        return self.actor.array_forward(state)

    def state_value(self, state: Sequence[float]) -> float:
        """Critic estimate for one state."""
        return float(self.critic.array_forward(state)[0])

    # ------------------------------------------------------------------
    # Returns and advantages
    # ------------------------------------------------------------------

    def compute_returns(self, rewards: Sequence[float]) -> List[float]:
        """
        Discounted returns with a zero bootstrap after the last step.

            R_{T-1} = r_{T-1}
            R_t     = r_t + γ R_{t+1}
        """
        gamma = self.hyperparameters.gamma
        returns = [0.0] * len(rewards)
        value_next = 0.0
        for t in reversed(range(len(rewards))):
            returns[t] = float(rewards[t]) + gamma * value_next
            value_next = returns[t]
        return returns

    def compute_advantage_estimates(
        self,
        rewards: Sequence[float],
        values: Sequence[float]
    ) -> Tuple[List[float], List[float]]:
        """
        Compute returns and GAE advantages for one finished episode.

            δ_j = r_j + γ V(s_{j+1}) - V(s_j),   V(s_T) = 0
            A_t = Σ_{j=t}^{T-1} (γλ)^{j-t} δ_j

        Each A_t is summed directly, O(T²) per episode.

        Returns:
            Tuple of (returns, advantages), each of length T
        """
        if len(rewards) != len(values):
            raise ConfigurationError(
                f"got {len(rewards)} rewards but {len(values)} values"
            )

        gamma = self.hyperparameters.gamma
        gamma_lambda = gamma * self.hyperparameters.gae_lambda
        T = len(rewards)

        returns = self.compute_returns(rewards)
        advantages = [0.0] * T
        for t in range(T):
            discount = 1.0
            estimate = 0.0
            for j in range(t, T):
                value_next = float(values[j + 1]) if j < T - 1 else 0.0
                delta = float(rewards[j]) + gamma * value_next - float(values[j])
                estimate += discount * delta
                discount *= gamma_lambda
            advantages[t] = estimate

        return returns, advantages

    # ------------------------------------------------------------------
    # Losses
    # ------------------------------------------------------------------

    @staticmethod
    def clipped_surrogate(
        ratios: torch.Tensor,
        advantages: torch.Tensor,
        epsilon: float
    ) -> torch.Tensor:
        """Mean of min(ratio·A, clip(ratio, 1-ε, 1+ε)·A)."""
        surr1 = ratios * advantages
        surr2 = torch.clamp(ratios, 1 - epsilon, 1 + epsilon) * advantages
        return torch.min(surr1, surr2).mean()

    def compute_actor_objective(
        self,
        states: torch.Tensor,
        actions: torch.Tensor,
        old_probs: torch.Tensor,
        advantages: torch.Tensor
    ) -> torch.Tensor:
        """
        Clipped surrogate objective for one minibatch.

        Args:
            states: Shape (batch, state_dim)
            actions: One-hot actions, shape (batch, action_dim)
            old_probs: Probabilities at selection time, shape (batch,)
            advantages: GAE advantages, shape (batch,)

        Returns:
            Scalar objective (to be maximized)
        """
        probs = self.actor.tensor_forward(states)
        return self._actor_objective_from_probs(probs, actions, old_probs, advantages)

    def _actor_objective_from_probs(
        self,
        probs: torch.Tensor,
        actions: torch.Tensor,
        old_probs: torch.Tensor,
        advantages: torch.Tensor
    ) -> torch.Tensor:
        # Probability of the action actually taken
        prob_actions = (probs * actions).sum(dim=1)
        ratios = prob_actions / torch.clamp(old_probs.detach(), min=PROB_FLOOR)
        return self.clipped_surrogate(
            ratios, advantages.detach(), self.hyperparameters.clip_epsilon
        )

    @staticmethod
    def get_entropy(probs: torch.Tensor) -> torch.Tensor:
        """Mean categorical entropy, probabilities floored to avoid log(0)."""
        floored = torch.clamp(probs, min=PROB_FLOOR)
        state_entropies = -(floored * torch.log(floored)).sum(dim=1)
        return state_entropies.mean()

    def compute_critic_loss(
        self,
        states: torch.Tensor,
        returns: torch.Tensor
    ) -> torch.Tensor:
        """Mean squared error between returns and critic predictions."""
        values = self.critic.tensor_forward(states).squeeze(-1)
        return ((returns - values) ** 2).mean()

    def compute_total_loss(
        self,
        states: torch.Tensor,
        actions: torch.Tensor,
        old_probs: torch.Tensor,
        returns: torch.Tensor,
        advantages: torch.Tensor
    ) -> Tuple[torch.Tensor, Dict[str, float]]:
        """
        Combined loss minimized by one optimizer step.

            loss = -(clip_objective - critic_loss + c_ent * entropy)

        Returns:
            Tuple of (scalar loss tensor, detached components)
        """
        probs = self.actor.tensor_forward(states)
        clip_objective = self._actor_objective_from_probs(
            probs, actions, old_probs, advantages
        )
        critic_loss = self.compute_critic_loss(states, returns)
        entropy = self.get_entropy(probs)

        objective = (
            clip_objective
            - critic_loss
            + self.hyperparameters.entropy_coefficient * entropy
        )
        loss = -objective

        components = {
            "clip_objective": clip_objective.item(),
            "critic_loss": critic_loss.item(),
            "entropy": entropy.item(),
            "total_loss": loss.item()
        }
        return loss, components

    # ------------------------------------------------------------------
    # Storage and training
    # ------------------------------------------------------------------

    def _require_training_mode(self, operation: str):
        if not self.training_mode:
            raise RuntimeError(f"{operation} is unavailable in non-training mode")

    def store_transition(
        self,
        state: Sequence[float],
        value: float,
        one_hot_action: Sequence[float],
        old_prob: float
    ):
        """Store one step in the rollout buffer."""
        self._require_training_mode("store_transition")
        self.buffer.store(state, value, one_hot_action, old_prob)

    def finish_episode(
        self,
        rewards: Sequence[float],
        values: Sequence[float]
    ) -> Tuple[List[float], List[float]]:
        """
        Close an episode: compute returns/advantages and store them.

        Returns:
            Tuple of (returns, advantages)
        """
        self._require_training_mode("finish_episode")
        returns, advantages = self.compute_advantage_estimates(rewards, values)
        self.buffer.store_rewards(rewards)
        self.buffer.store_return_data(returns, advantages)
        return returns, advantages

    def train(self) -> Dict[str, float]:
        """
        Run the PPO update over the whole rollout, then reset the buffer.

        For each of num_epochs passes: reshuffle, repartition, and take one
        combined-loss Adam step per minibatch.

        Returns:
            Mean loss components over all minibatch steps
        """
        self._require_training_mode("train")
        if self._is_training:
            raise RuntimeError("train() is not re-entrant")

        self._is_training = True
        try:
            stats = self._run_epochs()
        finally:
            self._is_training = False

        self.buffer.reset()
        self.total_updates += 1
        for key, value in stats.items():
            self.training_stats[key].append(value)
        return stats

    def _run_epochs(self) -> Dict[str, float]:
        hp = self.hyperparameters
        logger.info(
            "Updating networks: %d transitions, %d epochs, %d minibatches",
            len(self.buffer), hp.num_epochs, hp.num_mini_batches
        )

        history: Dict[str, List[float]] = {key: [] for key in self.training_stats}

        self.actor.train()
        self.critic.train()
        for epoch in range(hp.num_epochs):
            self.buffer.shuffle()
            self.buffer.create_mini_batches()
            batches = self.buffer.get_mini_batches()

            for states, actions, old_probs, advantages, returns in zip(*batches):
                self.optimizer.zero_grad(set_to_none=True)
                loss, components = self.compute_total_loss(
                    states, actions, old_probs, returns, advantages
                )
                loss.backward()
                if hp.max_grad_norm is not None:
                    clip_grad_norm_(self.trainables, hp.max_grad_norm)
                self.optimizer.step()

                logger.debug(
                    "epoch %d: clip_objective=%.5f critic_loss=%.5f entropy=%.5f",
                    epoch, components["clip_objective"],
                    components["critic_loss"], components["entropy"]
                )
                for key, value in components.items():
                    history[key].append(value)

        self.optimizer.zero_grad(set_to_none=True)

        return {
            key: float(np.mean(values)) if values else 0.0
            for key, values in history.items()
        }

    def get_weights(self) -> Weights:
        """Snapshot [actor_layers, critic_layers]."""
        return [self.actor.save_weights(), self.critic.save_weights()]
