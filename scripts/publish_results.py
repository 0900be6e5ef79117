#!/usr/bin/env python3
"""
Publish a pass/fail verification result for one pact.

The link map is the `_links` object saved with the pact when it was fetched
from the broker (a JSON file). Results go to its
`pb:publish-verification-results` link.

    python scripts/publish_results.py links.json --success --provider-version 1.4.0
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

try:
    from dotenv import load_dotenv
    load_dotenv()
except ImportError:
    pass  # run without .env if python-dotenv not installed

from halbroker.integrations.broker import BrokerClient
from halbroker.utils.config_loader import load_broker_config
from halbroker.verification.reporter import VerificationReporter


def setup_logging(verbose: bool = False) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")


def main() -> int:
    parser = argparse.ArgumentParser(description="Publish a verification result to the broker")
    parser.add_argument("links", type=Path, help="JSON file holding the pact's _links map")
    outcome = parser.add_mutually_exclusive_group(required=True)
    outcome.add_argument("--success", action="store_true")
    outcome.add_argument("--failure", action="store_true")
    parser.add_argument("--provider-version", default=None)
    parser.add_argument("--build-url", default=None)
    parser.add_argument("--config", type=Path, default=None, help="Path to broker_config.yml")
    parser.add_argument("--verbose", "-v", action="store_true")
    args = parser.parse_args()

    setup_logging(args.verbose)
    config = load_broker_config(args.config)

    with open(args.links, "r", encoding="utf-8") as f:
        links = json.load(f)
    links = links.get("_links", links)

    client = BrokerClient(config.url, config.client_options())
    reporter = VerificationReporter(client, config.verification)
    version = args.provider_version or reporter.lookup_provider_version()

    result = client.publish_verification_results(
        links, args.success, version, args.build_url or config.verification.build_url
    )
    if not result.ok:
        print(f"Publishing failed: {result.error}", file=sys.stderr)
        return 1
    if not result.value:
        print("Broker rejected the verification result.", file=sys.stderr)
        return 1
    print(f"Published {'successful' if args.success else 'failed'} verification for version {version}.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
