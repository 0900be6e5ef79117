"""
Requests-backed HTTP transport for the broker.

Purpose:
- Performs GET/PUT/POST for the HAL client and returns status, headers and body
- Retries connection failures and 429/5xx responses a bounded number of times,
  waiting a fixed interval between attempts
- Applies broker credentials: basic auth (preemptive or on 401 challenge) or a bearer token

Important:
- This is the only place in the package that sleeps or retries.
"""
from __future__ import annotations

import logging
from typing import Dict, List, Optional, Sequence

import requests
from requests.adapters import HTTPAdapter
from requests.auth import HTTPBasicAuth
from urllib3.util.retry import Retry

from halbroker.error_handler import TransportError
from halbroker.integrations.contracts.interfaces import Transport, TransportResponse

logger = logging.getLogger(__name__)

RETRY_STATUSES = (429, 500, 502, 503, 504)


class FixedIntervalRetry(Retry):
    """Retry that waits `backoff_factor` seconds between every attempt."""

    def get_backoff_time(self) -> float:
        return float(self.backoff_factor)


class RequestsTransport(Transport):
    def __init__(
        self,
        authentication: Optional[Sequence[str]] = None,
        default_headers: Optional[Dict[str, str]] = None,
        max_retries: int = 5,
        retry_interval_ms: int = 3000,
        preemptive: bool = False,
        timeout: float = 30.0,
    ) -> None:
        self.authentication: List[str] = [str(a) for a in (authentication or [])]
        self.default_headers = dict(default_headers or {})
        self.max_retries = max_retries
        self.retry_interval_ms = retry_interval_ms
        self.preemptive = preemptive
        self.timeout = timeout
        self.session = self._create_session()

    def _create_session(self) -> requests.Session:
        """Create a requests session with fixed-interval retry logic"""
        session = requests.Session()
        retry_strategy = FixedIntervalRetry(
            total=self.max_retries,
            backoff_factor=self.retry_interval_ms / 1000.0,
            status_forcelist=list(RETRY_STATUSES),
            allowed_methods=frozenset({"GET", "PUT", "POST"}),
            raise_on_status=False,
        )
        adapter = HTTPAdapter(max_retries=retry_strategy)
        session.mount("http://", adapter)
        session.mount("https://", adapter)
        session.headers.update(self.default_headers)
        return session

    @property
    def scheme(self) -> str:
        return self.authentication[0].lower() if self.authentication else "none"

    def _basic_auth(self) -> Optional[HTTPBasicAuth]:
        if self.scheme != "basic":
            return None
        if len(self.authentication) < 3:
            logger.warning("Basic authentication needs a username and password, ignoring.")
            return None
        return HTTPBasicAuth(self.authentication[1], self.authentication[2])

    def _auth_headers(self) -> Dict[str, str]:
        if self.scheme == "bearer" and len(self.authentication) > 1:
            return {"Authorization": f"Bearer {self.authentication[1]}"}
        return {}

    def execute(
        self,
        method: str,
        url: str,
        headers: Optional[Dict[str, str]] = None,
        body: Optional[str] = None,
    ) -> TransportResponse:
        request_headers = {**self._auth_headers(), **(headers or {})}
        basic_auth = self._basic_auth()
        data = body.encode("utf-8") if body is not None else None

        response = self._send(method, url, request_headers, data, basic_auth if self.preemptive else None)
        if response.status_code == 401 and basic_auth is not None and not self.preemptive:
            logger.debug("Broker challenged %s %s, retrying with basic authentication", method, url)
            response = self._send(method, url, request_headers, data, basic_auth)

        logger.debug("Got response %s %s from %s %s", response.status_code, response.reason, method, url)
        return TransportResponse(
            status_code=response.status_code,
            reason=response.reason or "",
            headers=dict(response.headers),
            body=response.content or b"",
        )

    def _send(self, method, url, headers, data, auth) -> requests.Response:
        try:
            return self.session.request(method, url, headers=headers, data=data, auth=auth, timeout=self.timeout)
        except requests.RequestException as e:
            raise TransportError(f"{method} request to '{url}' failed: {e}", url=url) from e

    def close(self) -> None:
        self.session.close()
