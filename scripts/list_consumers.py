#!/usr/bin/env python3
"""
List the consumer pacts a provider has to verify.

Reads broker settings from config/broker_config.yml (PACT_* environment
variables override it) and prints one line per consumer.

    python scripts/list_consumers.py Orders
    python scripts/list_consumers.py Orders --tag prod
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

try:
    from dotenv import load_dotenv
    load_dotenv()
except ImportError:
    pass  # run without .env if python-dotenv not installed

from halbroker.error_handler import HalClientError
from halbroker.integrations.broker import BrokerClient
from halbroker.utils.config_loader import load_broker_config


def setup_logging(verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")


def main() -> int:
    parser = argparse.ArgumentParser(description="List consumer pacts for a provider")
    parser.add_argument("provider", help="Provider name as registered in the broker")
    parser.add_argument("--tag", default=None, help="Only pacts carrying this consumer tag")
    parser.add_argument("--all", action="store_true", help="Latest pacts regardless of tags")
    parser.add_argument("--config", type=Path, default=None, help="Path to broker_config.yml")
    parser.add_argument("--verbose", "-v", action="store_true")
    args = parser.parse_args()

    setup_logging(args.verbose)
    config = load_broker_config(args.config)
    client = BrokerClient(config.url, config.client_options())

    try:
        if args.tag:
            consumers = client.fetch_consumers_with_tag(args.provider, args.tag)
        elif args.all:
            consumers = client.fetch_consumers(args.provider)
        else:
            consumers = client.fetch_latest_consumers_with_no_tag(args.provider)
    except HalClientError as e:
        print(f"Failed to load pacts from {config.url}: {e}", file=sys.stderr)
        return 1

    if not consumers:
        print(f"No consumer pacts found for provider '{args.provider}'.")
        return 0

    for consumer in consumers:
        print(f"{consumer.name}\t{consumer.source}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
