"""
Verification reporter.

Decides whether results may be published and sends them to the broker
using the link map saved with each pact.
"""
from __future__ import annotations

import logging
import os
from typing import Optional

from halbroker.integrations.broker.broker_client import BrokerClient
from halbroker.integrations.contracts.interfaces import ContractRef, Result
from halbroker.integrations.contracts.verification import VerificationOutcome
from halbroker.utils.config_loader import VerificationConfig

logger = logging.getLogger(__name__)

PACT_VERIFIER_PUBLISH_RESULTS = "PACT_VERIFIER_PUBLISH_RESULTS"
PACT_PROVIDER_VERSION = "PACT_PROVIDER_VERSION"
DEFAULT_PROVIDER_VERSION = "0.0.0"


class VerificationReporter:
    def __init__(self, broker_client: BrokerClient, config: Optional[VerificationConfig] = None) -> None:
        self.broker_client = broker_client
        self.config = config or VerificationConfig()

    def publishing_results_disabled(self) -> bool:
        flag = os.getenv(PACT_VERIFIER_PUBLISH_RESULTS)
        if flag is not None:
            return flag.strip().lower() != "true"
        return not self.config.publish_results

    def lookup_provider_version(self) -> str:
        version = os.getenv(PACT_PROVIDER_VERSION) or self.config.provider_version
        if not version:
            logger.warning(
                f"Set the provider version using the '{PACT_PROVIDER_VERSION}' environment variable. "
                f"Defaulting to '{DEFAULT_PROVIDER_VERSION}'"
            )
            return DEFAULT_PROVIDER_VERSION
        return version

    def report_results(
        self,
        contract: ContractRef,
        outcome: VerificationOutcome,
        version: str,
        build_url: Optional[str] = None,
    ) -> Result[bool]:
        result = self.broker_client.publish_verification_results(
            contract.links, outcome, version, build_url or self.config.build_url
        )
        if not result.ok:
            logger.error(
                f"Failed to publish verification results for {contract.provider}-{contract.consumer}: {result.error}"
            )
        elif not result.value:
            logger.error(f"Broker rejected verification results for {contract.provider}-{contract.consumer}")
        return result
