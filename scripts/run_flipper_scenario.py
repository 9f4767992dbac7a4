#!/usr/bin/env python3
"""
Contract Client - Flipper Scenario Runner

Deploys a boolean-state contract on a node and checks the two-phase call
protocol end to end:
1. Deploy with an initial value
2. Estimate-mode read returns the initial value
3. Estimate flip, commit flip with the estimated gas budget
4. Estimate-mode read returns the flipped value

Usage:
    python scripts/run_flipper_scenario.py --metadata artifacts/flipper/flipper.json
    python scripts/run_flipper_scenario.py --endpoint ws://127.0.0.1:9944 --seed //Bob
    python scripts/run_flipper_scenario.py --initial-state false

Exit codes:
    0 - All checks passed
    1 - A check failed, or the scenario could not run
"""

import argparse
import sys
from dataclasses import replace
from pathlib import Path

# Add src to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from inkclient import (
    ClientConfig,
    ConnectivityError,
    ContractMetadata,
    DeploymentError,
    InvalidSeedError,
    MetadataError,
    RPCError,
    open_scenario,
    run_flip_scenario,
)
from inkclient.logger import configure_logging


def parse_bool(value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in ("true", "1", "yes", "on"):
        return True
    if lowered in ("false", "0", "no", "off"):
        return False
    raise argparse.ArgumentTypeError(f"Expected a boolean, got {value!r}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Deploy a flipper contract and verify estimate/commit round trips"
    )
    parser.add_argument(
        "--metadata",
        type=Path,
        help="Contract artifact JSON (default: <INK_ARTIFACTS_DIR>/flipper/flipper.json)"
    )
    parser.add_argument(
        "--endpoint",
        type=str,
        help="Node endpoint (default: INK_NODE_URL or ws://127.0.0.1:9944)"
    )
    parser.add_argument(
        "--seed",
        type=str,
        help="Deployer seed phrase (default: INK_SEED_PHRASE or //Alice)"
    )
    parser.add_argument(
        "--initial-state",
        type=parse_bool,
        default=True,
        help="Constructor value (default: true)"
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        help="Log level (default: INK_LOG_LEVEL or INFO)"
    )
    return parser


def main(argv=None, session=None) -> int:
    """Run the scenario and return the process exit code."""
    args = build_parser().parse_args(argv)

    config = ClientConfig.from_env()
    if args.endpoint:
        config = replace(config, node_url=args.endpoint)
    if args.seed:
        config = replace(config, seed_phrase=args.seed)

    configure_logging(args.log_level or config.log_level, json_output=False)

    is_valid, errors = config.validate()
    if not is_valid:
        print("[FAIL] Configuration Validation Failed:")
        for error in errors:
            print(f"  - {error}")
        return 1

    metadata_path = args.metadata or config.metadata_path("flipper")

    print("=" * 70)
    print("Contract Client - Flipper Scenario")
    print("=" * 70)
    print(f"Endpoint: {config.endpoint}")
    print(f"Metadata: {metadata_path}")

    try:
        metadata = ContractMetadata.from_file(metadata_path)
        with open_scenario(config, session=session) as ctx:
            print(f"Deployer: {ctx.deployer.address}")
            report = run_flip_scenario(ctx, metadata, initial_state=args.initial_state)
    except (MetadataError, InvalidSeedError, ConnectivityError, DeploymentError, RPCError) as e:
        print(f"[ERROR] {type(e).__name__}: {e}")
        return 1

    print()
    print(report.summary())
    print("=" * 70)
    return report.exit_code


if __name__ == "__main__":
    sys.exit(main())
