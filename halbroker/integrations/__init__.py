"""
Integrations layer.
This package contains all code used to communicate with the broker:
- HAL navigation (integrations/hal)
- Broker domain operations: consumer discovery, result publishing (integrations/broker)
- HTTP transports, real and in-memory (integrations/clients)

Key rule:
- Only the transports under integrations/clients perform network I/O.
"""

from .contracts.interfaces import (
    BrokerConsumer,
    ContractRef,
    InteractionRef,
    LinkQuery,
    ResolvedLink,
    Result,
    Transport,
    TransportResponse,
)
from .contracts.verification import (
    SUCCESS,
    Failure,
    Success,
    VerificationOutcome,
    combine_outcomes,
)

__all__ = [
    # interfaces
    "BrokerConsumer", "ContractRef", "InteractionRef", "LinkQuery",
    "ResolvedLink", "Result", "Transport", "TransportResponse",
    # verification
    "SUCCESS", "Failure", "Success", "VerificationOutcome", "combine_outcomes",
]
