"""
In-memory broker transport.

Purpose:
- Serves canned responses keyed by (method, url) without any network calls
- Records every request so callers can assert on what was sent

Usage:
- Injected into HalClient / BrokerClient in tests and dry runs

Swap:
Replace with clients/real_http/transport.py to talk to a real broker.
"""
from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple, Union

from halbroker.integrations.contracts.interfaces import Transport, TransportResponse

HAL_JSON = "application/hal+json"


@dataclass
class RecordedRequest:
    method: str
    url: str
    headers: Dict[str, str] = field(default_factory=dict)
    body: Optional[str] = None

    def json(self) -> Any:
        return json.loads(self.body) if self.body else None


def json_response(document: Any, status_code: int = 200, reason: str = "OK",
                  content_type: str = HAL_JSON) -> TransportResponse:
    return TransportResponse(
        status_code=status_code,
        reason=reason,
        headers={"Content-Type": content_type},
        body=json.dumps(document).encode("utf-8"),
    )


def text_response(text: str, status_code: int = 200, reason: str = "OK",
                  content_type: str = "text/html") -> TransportResponse:
    return TransportResponse(
        status_code=status_code,
        reason=reason,
        headers={"Content-Type": content_type},
        body=text.encode("utf-8"),
    )


Route = Union[TransportResponse, Exception]


class InMemoryTransport(Transport):
    def __init__(self, routes: Optional[Dict[Tuple[str, str], Route]] = None) -> None:
        self.routes: Dict[Tuple[str, str], Route] = dict(routes or {})
        self.requests: List[RecordedRequest] = []

    def add(self, method: str, url: str, response: Route) -> "InMemoryTransport":
        self.routes[(method.upper(), url)] = response
        return self

    def execute(self, method, url, headers=None, body=None) -> TransportResponse:
        self.requests.append(RecordedRequest(method.upper(), url, dict(headers or {}), body))
        route = self.routes.get((method.upper(), url))
        if route is None:
            return text_response(f"No route for {method} {url}", status_code=404, reason="Not Found",
                                 content_type="text/plain")
        if isinstance(route, Exception):
            raise route
        return route

    def calls(self, method: Optional[str] = None) -> List[RecordedRequest]:
        if method is None:
            return list(self.requests)
        return [r for r in self.requests if r.method == method.upper()]
