"""
Network Module
==============

Feed-forward network used both as actor (policy) and critic (value).

Architecture for layer sizes [in, h1, ..., hk, out]:
    FC(in→h1) → ReLU → ... → FC(hk→out) → softmax (actor) | identity (critic)

The actor and critic share the same hidden template and differ only in
output width and output activation.

Two evaluation paths:
    - array_forward: plain vector in, numpy vector out, no autograd state.
      Used during rollout for action selection and value lookups.
    - tensor_forward: batched tensor in, batched tensor out with gradient
      tracking. Used only inside PPO updates.

Weights can be exported/imported as flat per-parameter lists in
construction order: [W0, b0, W1, b1, ...], each W flattened from an
(in, out) matrix.

Author: EZPPO Team
"""

import numpy as np
from typing import List, Optional, Sequence

import torch
import torch.nn as nn
import torch.nn.functional as F

from .config import ConfigurationError


OUTPUT_ACTIVATIONS = ("softmax", "linear")


class Network(nn.Module):
    """
    Configurable multilayer perceptron.

    Attributes:
        layer_sizes: Widths [input, *hidden, output]
        output_activation: "softmax" for the actor, "linear" for the critic
        layers: nn.ModuleList of nn.Linear, input to output

    Example:
        >>> actor = Network([5, 64, 64, 3], output_activation="softmax")
        >>> probs = actor.array_forward([0.1, 0.2, 0.3, 0.4, 0.5])
        >>> print(probs.shape)  # (3,), sums to 1
    """

    def __init__(
        self,
        layer_sizes: Sequence[int],
        weights: Optional[List[List[float]]] = None,
        output_activation: str = "linear"
    ):
        """
        Initialize network.

        Args:
            layer_sizes: Widths [input, *hidden, output]
            weights: Optional snapshot entry to restore from
            output_activation: "softmax" or "linear"

        Raises:
            ConfigurationError: On invalid sizes or a mismatched snapshot
        """
        super().__init__()

        layer_sizes = list(layer_sizes)
        if len(layer_sizes) < 2:
            raise ConfigurationError(
                f"layer_sizes needs at least input and output, got {layer_sizes}"
            )
        if any(not isinstance(s, int) or s <= 0 for s in layer_sizes):
            raise ConfigurationError(f"layer sizes must be positive ints, got {layer_sizes}")
        if output_activation not in OUTPUT_ACTIVATIONS:
            raise ConfigurationError(
                f"output_activation must be one of {OUTPUT_ACTIVATIONS}, "
                f"got {output_activation!r}"
            )

        self.layer_sizes = layer_sizes
        self.output_activation = output_activation

        self.layers = nn.ModuleList(
            nn.Linear(n_in, n_out)
            for n_in, n_out in zip(layer_sizes[:-1], layer_sizes[1:])
        )

        if weights is not None:
            self.load_weights(weights)
        else:
            self._init_weights()

    @property
    def input_dim(self) -> int:
        return self.layer_sizes[0]

    @property
    def output_dim(self) -> int:
        return self.layer_sizes[-1]

    @property
    def trainables(self) -> List[nn.Parameter]:
        """Parameters handed to the optimizer, in construction order."""
        return list(self.parameters())

    def _init_weights(self):
        """He initialization (variance scaled by fan-in), zero biases."""
        for layer in self.layers:
            nn.init.kaiming_normal_(layer.weight, nonlinearity="relu")
            nn.init.constant_(layer.bias, 0.0)

    def forward(self, x: torch.Tensor) -> torch.Tensor:
        """
        Forward pass.

        Args:
            x: Input, shape (batch, input_dim) or (input_dim,)

        Returns:
            Output, shape (batch, output_dim) or (output_dim,)
        """
        for layer in self.layers[:-1]:
            x = F.relu(layer(x))
        x = self.layers[-1](x)

        if self.output_activation == "softmax":
            x = F.softmax(x, dim=-1)
        return x

    def array_forward(self, x: Sequence[float]) -> np.ndarray:
        """
        Evaluate a single feature vector without tracking gradients.

        Args:
            x: Feature vector of length input_dim

        Returns:
            Output vector as float32 numpy array, shape (output_dim,)
        """
        x = np.asarray(x, dtype=np.float32)
        if x.shape != (self.input_dim,):
            raise ConfigurationError(
                f"expected input of length {self.input_dim}, got shape {x.shape}"
            )

        with torch.no_grad():
            out = self.forward(torch.from_numpy(x))
            return out.numpy().copy()

    def tensor_forward(self, batch: torch.Tensor) -> torch.Tensor:
        """
        Evaluate a batch with autograd enabled.

        Args:
            batch: Inputs, shape (batch, input_dim)

        Returns:
            Outputs, shape (batch, output_dim)
        """
        if batch.dim() != 2 or batch.shape[1] != self.input_dim:
            raise ConfigurationError(
                f"expected batch of shape (B, {self.input_dim}), got {tuple(batch.shape)}"
            )
        return self.forward(batch)

    def save_weights(self) -> List[List[float]]:
        """
        Export parameters as flat lists [W0, b0, W1, b1, ...].

        Weight matrices are flattened in (in, out) order.
        """
        weights = []
        with torch.no_grad():
            for layer in self.layers:
                weights.append(layer.weight.t().reshape(-1).tolist())
                weights.append(layer.bias.reshape(-1).tolist())
        return weights

    def load_weights(self, weights: List[List[float]]):
        """
        Restore parameters from flat lists produced by save_weights.

        Raises:
            ConfigurationError: If the snapshot does not fit this architecture
        """
        expected = 2 * len(self.layers)
        if len(weights) != expected:
            raise ConfigurationError(
                f"snapshot has {len(weights)} arrays, architecture "
                f"{self.layer_sizes} needs {expected}"
            )

        # Check every shape before touching any parameter
        arrays = []
        for i, layer in enumerate(self.layers):
            kernel = np.asarray(weights[2 * i], dtype=np.float32)
            bias = np.asarray(weights[2 * i + 1], dtype=np.float32)
            n_in, n_out = layer.in_features, layer.out_features
            if kernel.size != n_in * n_out or bias.size != n_out:
                raise ConfigurationError(
                    f"snapshot layer {i} has {kernel.size} weights / {bias.size} "
                    f"biases, expected {n_in * n_out} / {n_out}"
                )
            arrays.append((kernel.reshape(n_in, n_out), bias.reshape(n_out)))

        with torch.no_grad():
            for layer, (kernel, bias) in zip(self.layers, arrays):
                layer.weight.copy_(torch.from_numpy(kernel.T.copy()))
                layer.bias.copy_(torch.from_numpy(bias))
