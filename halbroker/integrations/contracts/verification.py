"""
Verification outcome contract.

An outcome is either `Success` or a `Failure` carrying the structured
mismatch records reported by the verifier. Each mismatch record is a plain
dict with at least an `interactionId` and a `type` (`body`, `status`,
`header`, `metadata`, ...). A record may instead carry an `exception` entry
holding the exception raised while verifying the interaction.

Outcomes are merged as results arrive for the same interaction or contract:
- Success + Success = Success
- Success + Failure(f) = Failure(f)
- Failure(a) + Failure(b) = Failure(a.mismatches + b.mismatches)

Mismatch lists are never de-duplicated.
"""

import hashlib
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from functools import reduce
from typing import Any, Dict, Iterable, List, Sequence


class VerificationOutcome(ABC):
    @abstractmethod
    def to_bool(self) -> bool:
        """True only for a successful outcome."""

    @abstractmethod
    def merge(self, other: "VerificationOutcome") -> "VerificationOutcome":
        """Combine two outcomes for the same interaction or contract."""

    @staticmethod
    def from_bool(result: bool) -> "VerificationOutcome":
        return SUCCESS if result else Failure()


@dataclass(frozen=True)
class Success(VerificationOutcome):
    def to_bool(self) -> bool:
        return True

    def merge(self, other: VerificationOutcome) -> VerificationOutcome:
        return other


@dataclass(frozen=True)
class Failure(VerificationOutcome):
    mismatches: List[Dict[str, Any]] = field(default_factory=list)
    description: str = ""

    def to_bool(self) -> bool:
        return False

    def merge(self, other: VerificationOutcome) -> VerificationOutcome:
        if isinstance(other, Success):
            return self
        return Failure(
            mismatches=list(self.mismatches) + list(other.mismatches),  # type: ignore[attr-defined]
            description=_combine_descriptions(self.description, other.description),  # type: ignore[attr-defined]
        )


SUCCESS = Success()


def _combine_descriptions(first: str, second: str) -> str:
    if first and second and first != second:
        return f"{first}, {second}"
    return first or second


def combine_outcomes(outcomes: Iterable[VerificationOutcome]) -> VerificationOutcome:
    """Fold outcomes left to right, starting from Success."""
    return reduce(lambda acc, outcome: acc.merge(outcome), outcomes, SUCCESS)


# ---------------------------------------------------------------------------
# Identity hashes
# ---------------------------------------------------------------------------

def _digest(parts: Sequence[str]) -> str:
    hasher = hashlib.sha256()
    for part in parts:
        encoded = part.encode("utf-8")
        # length prefix keeps ("ab", "c") and ("a", "bc") apart
        hasher.update(len(encoded).to_bytes(4, "big"))
        hasher.update(encoded)
    return hasher.hexdigest()


def calculate_contract_hash(consumer: str, provider: str) -> str:
    return _digest(["consumer", consumer, "provider", provider])


def calculate_interaction_hash(description: str, provider_states: Sequence[str] = ()) -> str:
    return _digest([description, *provider_states])
