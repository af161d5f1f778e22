"""
Ezppo Facade Tests
==================

Tests for src/agents/ezppo.py

Test Categories:
    - Configuration
    - Per-step action/reward protocol
    - Episode boundaries and training trigger
    - Non-training mode
    - JSON weight persistence

Author: EZPPO Team
"""

import pytest
import numpy as np
import json
import sys
import os

# Add src to path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..', 'src'))

from agents import (
    ConfigurationError,
    Ezppo,
    EzppoConfig,
    PPOHyperparameters,
    load_weights,
    save_weights,
)


SMALL_HP = PPOHyperparameters(num_epochs=2, num_mini_batches=4)


def make_ezppo(**overrides):
    kwargs = dict(
        state_dim=5,
        action_dim=3,
        batch_size=10,
        network_layer_set=(16,),
        hyperparameters=SMALL_HP,
        seed=0
    )
    kwargs.update(overrides)
    return Ezppo(**kwargs)


def play_steps(ezppo, n_steps, rng):
    for _ in range(n_steps):
        ezppo.mark_step_begin()
        ezppo.get_step_action(rng.random(5))
        ezppo.give_step_reward(float(rng.normal()))


# =============================================================================
# CONFIG TESTS
# =============================================================================

class TestEzppoConfig:
    """Test facade configuration."""

    def test_defaults(self):
        config = EzppoConfig(state_dim=5, action_dim=3, batch_size=4096)

        assert config.training_mode is True
        assert config.custom_weights is None
        assert config.network_layer_set == (64, 64)
        assert config.hyperparameters == PPOHyperparameters()

    def test_layer_set_normalized_to_tuple(self):
        config = EzppoConfig(state_dim=5, action_dim=3, batch_size=1,
                             network_layer_set=[32, 16])

        assert config.network_layer_set == (32, 16)

    @pytest.mark.parametrize("field,value", [
        ("state_dim", 0),
        ("action_dim", -1),
        ("batch_size", 0),
    ])
    def test_invalid_dimensions(self, field, value):
        kwargs = dict(state_dim=5, action_dim=3, batch_size=8)
        kwargs[field] = value

        with pytest.raises(ConfigurationError):
            EzppoConfig(**kwargs)

    def test_invalid_layer_set(self):
        with pytest.raises(ConfigurationError):
            EzppoConfig(state_dim=5, action_dim=3, batch_size=8, network_layer_set=(16, -4))

    def test_config_and_kwargs_exclusive(self):
        config = EzppoConfig(state_dim=5, action_dim=3, batch_size=8)

        with pytest.raises(TypeError):
            Ezppo(config, batch_size=16)

    def test_from_config_object(self):
        ezppo = Ezppo(EzppoConfig(state_dim=4, action_dim=2, batch_size=8))

        assert ezppo.agent.state_dim == 4
        assert ezppo.agent.action_dim == 2
        assert ezppo.batch_size == 8


# =============================================================================
# STEP PROTOCOL TESTS
# =============================================================================

class TestStepProtocol:
    """Test mark/act/reward sequencing."""

    def test_action_in_range(self):
        ezppo = make_ezppo()
        rng = np.random.default_rng(0)

        for _ in range(50):
            action = ezppo.get_step_action(rng.random(5))
            assert 0 <= action < 3

    def test_wrong_input_length(self):
        ezppo = make_ezppo()

        with pytest.raises(ConfigurationError):
            ezppo.get_step_action([0.1, 0.2])

    def test_reward_before_action(self):
        ezppo = make_ezppo()

        with pytest.raises(ConfigurationError):
            ezppo.give_step_reward(1.0)

    def test_mark_step_begin_counts(self):
        ezppo = make_ezppo()
        ezppo.mark_step_begin()
        ezppo.mark_step_begin()

        assert ezppo.step_index == 2

    def test_reward_stores_transition(self):
        ezppo = make_ezppo()
        state = [0.1, 0.2, 0.3, 0.4, 0.5]

        ezppo.mark_step_begin()
        action = ezppo.get_step_action(state)
        ezppo.give_step_reward(1.5)

        buffer = ezppo.agent.buffer
        assert len(buffer) == 1
        assert np.allclose(buffer.states[0], state)
        assert int(np.argmax(buffer.actions[0])) == action
        assert buffer.actions[0].sum() == 1.0
        assert buffer.old_probs[0] == pytest.approx(float(ezppo.last_probs[action]))
        assert buffer.values[0] == pytest.approx(ezppo.agent.state_value(state))
        assert ezppo.episode_rewards == [1.5]
        assert ezppo.episode_values == [buffer.values[0]]


# =============================================================================
# EPISODE / TRAINING TESTS
# =============================================================================

class TestEpochFinished:
    """Test episode closing and the training trigger."""

    def test_trains_once_batch_size_reached(self):
        ezppo = make_ezppo(batch_size=10)
        rng = np.random.default_rng(0)

        play_steps(ezppo, 4, rng)
        assert ezppo.epoch_finished() is False
        play_steps(ezppo, 4, rng)
        assert ezppo.epoch_finished() is False
        assert len(ezppo.agent.buffer) == 8
        assert len(ezppo.agent.buffer.returns) == 8

        play_steps(ezppo, 4, rng)
        assert ezppo.epoch_finished() is True

        assert ezppo.step_index == 0
        assert len(ezppo.agent.buffer) == 0
        assert ezppo.agent.total_updates == 1

    def test_episode_lists_cleared(self):
        ezppo = make_ezppo(batch_size=100)
        play_steps(ezppo, 3, np.random.default_rng(0))

        ezppo.epoch_finished()

        assert ezppo.episode_rewards == []
        assert ezppo.episode_values == []
        assert ezppo.agent.buffer.pending_steps == 0

    def test_training_changes_policy(self):
        ezppo = make_ezppo(batch_size=5)
        before = ezppo.get_weights()

        play_steps(ezppo, 6, np.random.default_rng(0))
        assert ezppo.epoch_finished() is True

        assert ezppo.get_weights() != before

    def test_empty_episode(self):
        ezppo = make_ezppo()

        assert ezppo.epoch_finished() is False
        assert len(ezppo.agent.buffer) == 0


# =============================================================================
# NON-TRAINING MODE TESTS
# =============================================================================

class TestNonTrainingMode:
    """Test greedy inference mode."""

    def test_no_buffer(self):
        ezppo = make_ezppo(training_mode=False)

        assert ezppo.agent.buffer is None
        assert ezppo.agent.optimizer is None

    def test_reward_and_epoch_are_noops(self):
        ezppo = make_ezppo(training_mode=False, batch_size=1)
        before = ezppo.get_weights()

        ezppo.give_step_reward(1.0)
        play_steps(ezppo, 5, np.random.default_rng(0))

        assert ezppo.epoch_finished() is False
        assert ezppo.episode_rewards == []
        assert ezppo.get_weights() == before

    def test_greedy_actions(self):
        ezppo = make_ezppo(training_mode=False)
        rng = np.random.default_rng(0)

        for _ in range(20):
            state = rng.random(5)
            probs = ezppo.agent.action_probabilities(state)
            assert ezppo.get_step_action(state) == int(np.argmax(probs))
            assert ezppo.get_step_action(state) == ezppo.get_step_action(state)


# =============================================================================
# PERSISTENCE TESTS
# =============================================================================

class TestWeightPersistence:
    """Test JSON save/load of snapshots."""

    def test_save_and_load(self, tmp_path):
        ezppo = make_ezppo()
        path = tmp_path / "nested" / "weights.json"

        save_weights(path, ezppo.get_weights())
        loaded = load_weights(path)

        assert path.exists()
        assert loaded == ezppo.get_weights()

    def test_file_is_plain_json(self, tmp_path):
        ezppo = make_ezppo()
        path = tmp_path / "weights.json"
        save_weights(path, ezppo.get_weights())

        with open(path) as f:
            data = json.load(f)

        actor_layers, critic_layers = data
        assert len(actor_layers) == 4
        assert len(critic_layers) == 4

    def test_missing_file_returns_none(self, tmp_path):
        assert load_weights(tmp_path / "missing.json") is None

    def test_malformed_file(self, tmp_path):
        path = tmp_path / "bad.json"
        path.write_text("[1, 2, 3]")

        with pytest.raises(ConfigurationError):
            load_weights(path)

    def test_empty_entries_rejected(self, tmp_path):
        path = tmp_path / "truncated.json"
        path.write_text("[[], []]")

        with pytest.raises(ConfigurationError):
            load_weights(path)

    def test_warm_start_reproduces_policy(self, tmp_path):
        ezppo = make_ezppo()
        path = tmp_path / "weights.json"
        save_weights(path, ezppo.get_weights())

        restored = make_ezppo(custom_weights=load_weights(path), training_mode=False)
        state = [0.5, 0.1, 0.2, 0.3, 0.6]

        assert np.allclose(
            ezppo.agent.action_probabilities(state),
            restored.agent.action_probabilities(state),
            atol=1e-6
        )

    def test_warm_start_with_wrong_layers(self):
        ezppo = make_ezppo(network_layer_set=(16,))

        with pytest.raises(ConfigurationError):
            make_ezppo(network_layer_set=(8,), custom_weights=ezppo.get_weights())
