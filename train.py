#!/usr/bin/env python
"""
EZPPO Training Script
=====================

Trains the PPO engine on the catch game.

Usage:
    # Quick debug run
    python train.py --mode debug

    # Default run (batch size 4096, layers 64-32)
    python train.py --name my_experiment

    # Custom config
    python train.py --config my_config.json

    # Continue from saved weights
    python train.py --resume outputs/catch_ppo/weights.json

    # Greedy evaluation of saved weights
    python train.py --resume outputs/catch_ppo/weights.json --eval-only

Author: EZPPO Team
"""

import argparse
import logging
import sys
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent / "src"))


def parse_args(argv=None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Train the EZPPO agent on the catch game",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python train.py --mode debug              # Quick test (8 episodes)
  python train.py --mode default            # Full run
  python train.py --config my_config.json   # Custom configuration
        """
    )

    parser.add_argument(
        "--mode",
        type=str,
        choices=["debug", "default"],
        default="default",
        help="Training preset (default: default)"
    )
    parser.add_argument("--config", type=str, default=None, help="Path to config JSON file")
    parser.add_argument("--name", type=str, default=None, help="Experiment name")
    parser.add_argument("--output", type=str, default=None, help="Output directory")
    parser.add_argument("--seed", type=int, default=None, help="Random seed")
    parser.add_argument("--episodes", type=int, default=None, help="Episodes to run")
    parser.add_argument("--batch-size", type=int, default=None, help="Steps per training pass")
    parser.add_argument(
        "--layers",
        type=int,
        nargs="+",
        default=None,
        help="Hidden layer widths, e.g. --layers 64 32"
    )
    parser.add_argument("--resume", type=str, default=None, help="Weights JSON or checkpoint dir")
    parser.add_argument(
        "--eval-only",
        action="store_true",
        help="Evaluate --resume weights greedily and exit"
    )
    parser.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING"],
        default="INFO",
        help="Logging level (default: INFO)"
    )

    return parser.parse_args(argv)


def get_config(args):
    """Get training configuration from args."""
    from training.config import TrainingConfig, get_debug_config, get_default_config

    if args.config:
        config = TrainingConfig.load(args.config)
        print(f"Loaded config from: {args.config}")
    else:
        config_map = {
            "debug": get_debug_config,
            "default": get_default_config
        }
        config = config_map[args.mode]()
        print(f"Using preset: {args.mode}")

    if args.name:
        config.experiment_name = args.name
    if args.output:
        config.output_dir = args.output
    if args.seed is not None:
        config.seed = args.seed
    if args.episodes is not None:
        config.total_episodes = args.episodes
    if args.batch_size is not None:
        config.batch_size = args.batch_size
    if args.layers:
        config.network.layer_set = list(args.layers)

    config.validate()
    return config


def evaluate_only(config, resume):
    """Evaluate saved weights greedily without touching the run directory."""
    from agents.config import ConfigurationError, EzppoConfig
    from agents.ezppo import Ezppo
    from environment.catch_env import CatchEnv
    from training.trainer import evaluate_policy, load_checkpoint_weights

    if not resume:
        raise ConfigurationError("--eval-only needs --resume")

    weights, weights_file = load_checkpoint_weights(resume)
    print(f"Evaluating: {weights_file}")
    ezppo = Ezppo(EzppoConfig(
        state_dim=config.network.state_dim,
        action_dim=config.network.action_dim,
        batch_size=config.batch_size,
        custom_weights=weights,
        training_mode=False,
        network_layer_set=tuple(config.network.layer_set),
        hyperparameters=config.ppo
    ))
    env = CatchEnv(
        move_speed=config.env.move_speed,
        catch_radius=config.env.catch_radius,
        max_steps=config.env.max_steps,
        seed=config.seed
    )

    summary = evaluate_policy(ezppo, env, config.eval_episodes).summary()
    print(f"[Eval] Reward: {summary['reward_mean']:.2f}+/-{summary['reward_std']:.2f} | "
          f"Gold: {summary['gold_caught_mean']:.2f} | "
          f"Bomb rate: {summary['bomb_rate']:.2f}")
    return summary


def main(argv=None):
    """Main training entry point."""
    args = parse_args(argv)

    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(name)s %(levelname)s: %(message)s"
    )

    import torch
    print(f"PyTorch version: {torch.__version__}")

    from agents.config import ConfigurationError
    from training.trainer import Trainer

    try:
        config = get_config(args)
        if args.eval_only:
            evaluate_only(config, args.resume)
            return 0
        if args.resume:
            print(f"Resuming from: {args.resume}")
        trainer = Trainer(config, resume_from=args.resume)
    except (ConfigurationError, FileNotFoundError) as e:
        print(f"Configuration error: {e}")
        return 2

    try:
        results = trainer.train()

        print("\nFinal Results:")
        print(f"  Best eval reward: {results['best_eval_reward']:.2f}")
        print(f"  Total timesteps: {results['total_timesteps']:,}")
        print(f"  Weights: {trainer.weights_path}")
        return 0

    except KeyboardInterrupt:
        print("\n\nTraining interrupted by user.")
        print("Saving checkpoint...")
        trainer.save_checkpoint("interrupted")
        trainer.logger.save()
        trainer.logger.close()
        return 1


if __name__ == "__main__":
    sys.exit(main())
