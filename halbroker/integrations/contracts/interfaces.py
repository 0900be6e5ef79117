from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Generic, List, Mapping, NamedTuple, Optional, TypeVar

T = TypeVar("T")


# ---------------------------------------------------------------------------
# Link models
# ---------------------------------------------------------------------------

@dataclass
class LinkQuery:
    """
    A link name plus the values used to pick and expand it.

    `name` selects an entry of an array-valued link; `params` fills
    URI-template placeholders. Unknown template tokens go in `params` too.
    """
    link: str
    name: Optional[str] = None
    params: Dict[str, Any] = field(default_factory=dict)

    def options(self) -> Dict[str, Any]:
        options = dict(self.params)
        if self.name is not None:
            options["name"] = self.name
        return options

    @classmethod
    def from_options(cls, link: str, options: Optional[Mapping[str, Any]] = None) -> "LinkQuery":
        params = dict(options or {})
        name = params.pop("name", None)
        return cls(link=link, name=name, params=params)


class ResolvedLink(NamedTuple):
    path: str
    requires_encoding: bool


# ---------------------------------------------------------------------------
# Broker data models
# ---------------------------------------------------------------------------

@dataclass
class BrokerConsumer:
    name: str
    source: str                          # percent-decoded pact href
    pact_broker_url: str
    authentication: List[str] = field(default_factory=list)


@dataclass
class InteractionRef:
    description: str
    provider_states: List[str] = field(default_factory=list)


@dataclass
class ContractRef:
    """Consumer/provider pair with its interactions and the broker links it was loaded with."""
    consumer: str
    provider: str
    interactions: List[InteractionRef] = field(default_factory=list)
    links: Dict[str, Dict[str, Any]] = field(default_factory=dict)


# ---------------------------------------------------------------------------
# Transport
# ---------------------------------------------------------------------------

@dataclass
class TransportResponse:
    status_code: int
    reason: str = ""
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""

    @property
    def status_line(self) -> str:
        return f"{self.status_code} {self.reason}".strip()

    @property
    def content_type(self) -> Optional[str]:
        for key, value in self.headers.items():
            if key.lower() == "content-type":
                return value
        return None

    @property
    def text(self) -> str:
        return self.body.decode("utf-8", errors="replace")


class Transport(ABC):
    """Every HTTP transport used by the HAL client must implement this interface."""

    @abstractmethod
    def execute(
        self,
        method: str,
        url: str,
        headers: Optional[Dict[str, str]] = None,
        body: Optional[str] = None,
    ) -> TransportResponse:
        """Send one request and return the final response after any retries."""

    def close(self) -> None:
        """Release pooled connections. The default holds none."""


# ---------------------------------------------------------------------------
# Result wrapper
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class Result(Generic[T]):
    value: Optional[T] = None
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T) -> "Result[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: Exception) -> "Result[T]":
        return cls(error=error)

    def unwrap(self) -> T:
        if self.error is not None:
            raise self.error
        return self.value  # type: ignore[return-value]
