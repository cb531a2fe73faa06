"""Command-line interface for the ARSX protocol model."""
from __future__ import annotations

import argparse
import asyncio
import sys
from pathlib import Path

from .config import AppConfig, load_config
from .constants import FEED_PRECISION
from .logging_setup import configure_logging
from .price_updater import compute_scaled_rate, fetch_ars_quotes
from .simulation import SimulationParams, run_simulation


def build_parser() -> argparse.ArgumentParser:
    """Build the argparse CLI parser."""
    parser = argparse.ArgumentParser(
        prog="arsx-model",
        description="ARSX collateralized stablecoin protocol model",
    )
    parser.add_argument(
        "--config",
        default=None,
        help="Path to config.yaml (default: config.yaml in project root)",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: INFO)",
    )

    sub = parser.add_subparsers(dest="command")

    simulate_parser = sub.add_parser("simulate", help="Run a liquidation stress simulation")
    simulate_parser.add_argument("--steps", type=int, default=None, help="Number of price steps (overrides config)")
    simulate_parser.add_argument("--seed", type=int, default=None, help="Random seed (overrides config)")
    simulate_parser.add_argument("--output", default=None, help="Output directory (overrides config)")

    sub.add_parser("quote", help="Fetch ARS quotes and print the scaled oracle rate")

    return parser


def _simulate(config: AppConfig, args: argparse.Namespace) -> None:
    collateral = config.collateral[0]
    params = SimulationParams.from_config(
        config.simulation,
        initial_price=collateral.price / FEED_PRECISION,
        ars_per_usd=FEED_PRECISION / config.oracle.initial_rate,
    )
    if args.steps is not None:
        params.steps = args.steps
    if args.seed is not None:
        params.random_seed = args.seed
    output = Path(args.output or config.simulation.output_dir)

    summary = run_simulation(params, output, config)
    for key, value in summary.items():
        print(f"{key}: {value}")


async def _quote(config: AppConfig) -> None:
    quotes = await fetch_ars_quotes(config.price_sources)
    rate = compute_scaled_rate(quotes)
    print(f"quotes: {', '.join(f'{q:.2f}' for q in quotes)}")
    print(f"scaled USD/ARS rate: {rate}")


def main() -> None:
    """Entry point."""
    parser = build_parser()
    args = parser.parse_args()

    if not args.command:
        parser.print_help()
        sys.exit(1)

    configure_logging(args.log_level)
    config = load_config(args.config)

    if args.command == "simulate":
        _simulate(config, args)
    elif args.command == "quote":
        asyncio.run(_quote(config))
