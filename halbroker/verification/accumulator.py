"""
Accumulates verification outcomes per interaction. Once every interaction of
a pact has an outcome, the combined result is published to the broker and
the pact is forgotten.
"""
from __future__ import annotations

import logging
import threading
from contextlib import contextmanager
from typing import Dict, Iterator, List, Optional, Union

from halbroker.integrations.contracts.interfaces import ContractRef, InteractionRef, Result
from halbroker.integrations.contracts.verification import (
    VerificationOutcome,
    calculate_contract_hash,
    calculate_interaction_hash,
    combine_outcomes,
)
from halbroker.verification.reporter import PACT_VERIFIER_PUBLISH_RESULTS, VerificationReporter

logger = logging.getLogger(__name__)


def contract_hash(contract: ContractRef) -> str:
    return calculate_contract_hash(contract.consumer, contract.provider)


def interaction_hash(interaction: InteractionRef) -> str:
    return calculate_interaction_hash(interaction.description, interaction.provider_states)


class AccumulatorService:
    """
    Keyed store of outcomes: contract hash -> interaction hash -> outcome.

    One instance per verification run, shared by reference. Each contract
    hash has its own lock; merge, completeness check, publish and removal all
    happen while holding it. A lock is dropped once no thread is using it.
    """

    def __init__(self, reporter: VerificationReporter) -> None:
        self.reporter = reporter
        self.test_results: Dict[str, Dict[str, VerificationOutcome]] = {}
        # contract hash -> [lock, number of threads using it]
        self._locks: Dict[str, list] = {}
        self._locks_guard = threading.Lock()

    @contextmanager
    def _contract_lock(self, pact_hash: str) -> Iterator[None]:
        with self._locks_guard:
            entry = self._locks.setdefault(pact_hash, [threading.Lock(), 0])
            entry[1] += 1
        try:
            with entry[0]:
                yield
        finally:
            with self._locks_guard:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._locks[pact_hash]

    def update_test_result(
        self,
        contract: ContractRef,
        interaction: InteractionRef,
        outcome: Union[VerificationOutcome, bool],
    ) -> Optional[Result[bool]]:
        """
        Merge the outcome for one interaction.

        Returns the publish result when this update completed the contract and
        results were published, otherwise None.
        """
        if isinstance(outcome, bool):
            outcome = VerificationOutcome.from_bool(outcome)
        logger.debug(
            f"Received test result '{outcome}' for Pact {contract.provider}-{contract.consumer} "
            f"and {interaction.description}"
        )

        pact_hash = contract_hash(contract)
        with self._contract_lock(pact_hash):
            interaction_results = self.test_results.setdefault(pact_hash, {})
            key = interaction_hash(interaction)
            existing = interaction_results.get(key)
            interaction_results[key] = outcome if existing is None else existing.merge(outcome)

            unverified = self.unverified_interactions(contract, interaction_results)
            if unverified:
                logger.warning(
                    f"Not all of the {len(contract.interactions)} were verified. The following were missing:"
                )
                for missing in unverified:
                    logger.warning(f"    {missing.description}")
                return None

            logger.debug(
                f"All interactions for Pact {contract.provider}-{contract.consumer} have a verification result"
            )
            if self.reporter.publishing_results_disabled():
                logger.warning(
                    "Skipping publishing of verification results as it has been disabled "
                    f"({PACT_VERIFIER_PUBLISH_RESULTS} is not 'true')"
                )
                del self.test_results[pact_hash]
                return None

            result = self.reporter.report_results(
                contract,
                combine_outcomes(interaction_results.values()),
                self.reporter.lookup_provider_version(),
            )
            if result.ok and result.value:
                del self.test_results[pact_hash]
            return result

    def unverified_interactions(
        self, contract: ContractRef, results: Dict[str, VerificationOutcome]
    ) -> List[InteractionRef]:
        logger.debug(f"Number of interactions #{len(contract.interactions)} and results: {list(results.values())}")
        return [i for i in contract.interactions if interaction_hash(i) not in results]

    def clear_test_result(self, contract: ContractRef) -> None:
        pact_hash = contract_hash(contract)
        with self._contract_lock(pact_hash):
            self.test_results.pop(pact_hash, None)
