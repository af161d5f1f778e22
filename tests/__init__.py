"""
EZPPO Tests Package
===================

Unit tests for the PPO engine and its training pipeline:
    - test_network: Actor/critic network and weight snapshots
    - test_rollout_buffer: Storage, shuffling and minibatches
    - test_ppo_agent: Sampling, GAE, losses and training passes
    - test_ezppo: Per-step facade and JSON persistence
    - test_catch_env: Catch game rules
    - test_training: Config, metrics, trainer and CLI
"""
