"""
HAL client for navigating broker links.

The client holds the last fetched HAL document and moves from it to the
next one by link name, so callers never build broker paths by hand:

    client = HalClient("https://broker.example.com")
    client.navigate("pb:latest-provider-pacts", {"provider": "Orders"})

Navigation state is read and then replaced by every call. One client per
navigation context; do not share an instance between threads without
external locking.
"""
from __future__ import annotations

import json
import logging
import os
import re
from typing import Any, Callable, Dict, Mapping, Optional
from urllib.parse import quote, unquote, urlsplit, urlunsplit

from halbroker.error_handler import (
    ErrorHandler,
    HalClientError,
    InvalidHalResponse,
    NotFoundResponse,
    RequestFailed,
    is_json_content_type,
)
from halbroker.integrations.clients.real_http.transport import RequestsTransport
from halbroker.integrations.contracts.interfaces import Result, ResolvedLink, Transport, TransportResponse
from halbroker.integrations.hal.link_resolver import HREF, LINKS, Options, link_href, resolve

logger = logging.getLogger(__name__)

ROOT = "/"
PREEMPTIVE_AUTHENTICATION = "PACT_BROKER_PREEMPTIVE_AUTHENTICATION"
ACCEPT_HAL = "application/hal+json, application/json"
CONTENT_TYPE_JSON = "application/json"

DEFAULT_MAX_PUBLISH_RETRIES = 5
DEFAULT_PUBLISH_RETRY_INTERVAL = 3000

_ABSOLUTE_URL = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.-]*://")
# pchar plus "/" and "%" so existing escapes are left alone
_PATH_SAFE = "/%!$&'()*+,;=:@-._~"

ResponseHandler = Callable[[int, TransportResponse], bool]
UploadInterpreter = Callable[[str, str], Any]


def build_url(base_url: str, path: str, encode_path: bool = True) -> str:
    """
    Join `path` onto the broker base URL.

    Absolute URLs are used as given (apart from encoding). When `encode_path`
    is set, characters that are not valid in a URL path are percent-encoded.
    """
    if _ABSOLUTE_URL.match(path):
        url = path
    else:
        url = base_url.rstrip("/") + ("" if path.startswith("/") else "/") + path
    if not encode_path:
        return url
    parts = urlsplit(url)
    return urlunsplit(parts._replace(path=quote(parts.path, safe=_PATH_SAFE)))


def preemptive_authentication_enabled() -> bool:
    return os.getenv(PREEMPTIVE_AUTHENTICATION, "").strip().lower() == "true"


def _serialize(body: Any) -> str:
    if isinstance(body, str):
        return body
    if isinstance(body, bytes):
        return body.decode("utf-8")
    return json.dumps(body)


class HalClient:
    def __init__(
        self,
        base_url: str,
        options: Optional[Mapping[str, Any]] = None,
        transport: Optional[Transport] = None,
    ) -> None:
        """
        Args:
            base_url: Broker root URL
            options: Legacy option map. Recognised keys:
                `authentication` - credential list, e.g. ["basic", user, pass]
                `halClient` - {"maxPublishRetries": int, "publishRetryInterval": ms}
                `preemptiveAuthentication` - force preemptive basic auth
            transport: Pre-built transport; when omitted one is created on first use
        """
        self.base_url = base_url
        self.options: Dict[str, Any] = dict(options or {})
        self.path_info: Optional[Any] = None
        self.last_url: Optional[str] = None
        self.default_headers: Dict[str, str] = {}
        self.max_publish_retries = DEFAULT_MAX_PUBLISH_RETRIES
        self.publish_retry_interval = DEFAULT_PUBLISH_RETRY_INTERVAL
        self.error_handler = ErrorHandler()
        self._transport = transport
        self._owns_transport = transport is None

        hal_client_options = self.options.get("halClient")
        if isinstance(hal_client_options, Mapping):
            self.max_publish_retries = int(hal_client_options.get("maxPublishRetries", self.max_publish_retries))
            self.publish_retry_interval = int(
                hal_client_options.get("publishRetryInterval", self.publish_retry_interval)
            )

    # -- Transport --

    def setup_transport(self) -> Transport:
        if self._transport is None:
            authentication = self.options.get("authentication")
            if authentication is not None and not isinstance(authentication, (list, tuple)):
                logger.warning("Authentication options needs to be a list of values, ignoring.")
                authentication = None

            preemptive = bool(self.options.get("preemptiveAuthentication")) or preemptive_authentication_enabled()
            if preemptive and authentication:
                logger.warning(f"Using preemptive basic authentication with the pact broker at {self.base_url}")

            self._transport = RequestsTransport(
                authentication=authentication,
                default_headers=self.default_headers,
                max_retries=self.max_publish_retries,
                retry_interval_ms=self.publish_retry_interval,
                preemptive=preemptive,
            )
        return self._transport

    def close(self) -> None:
        """Close the transport if this client created it; injected transports are left open."""
        if self._owns_transport and self._transport is not None:
            self._transport.close()
            self._transport = None

    def _execute(self, method: str, url: str, headers: Dict[str, str], body: Optional[str] = None):
        request_headers = {**self.default_headers, **headers}
        return self.setup_transport().execute(method, url, request_headers, body)

    # -- Navigation --

    def navigate(self, link: Optional[str] = None, options: Options = None) -> "HalClient":
        """
        Fetch the root document, or follow `link` from the current document.

        Following a link fetches the root first if nothing has been fetched yet.
        """
        if link is None:
            self.path_info = self.fetch(ROOT)
            return self
        self.init_path_info()
        self.path_info = self._fetch_link(link, options)
        return self

    def init_path_info(self) -> None:
        if self.path_info is None:
            self.path_info = self.fetch(ROOT)

    def href_for_link(self, link: str, options: Options = None) -> ResolvedLink:
        return resolve(self.path_info, link, options, base_url=self.base_url)

    def _fetch_link(self, link: str, options: Options) -> Any:
        path, requires_encoding = self.href_for_link(link, options)
        return self.fetch(path, requires_encoding)

    def fetch(self, path: str, encode_path: bool = True) -> Any:
        """Fetch the HAL document at `path`, raising on any failure."""
        self.last_url = path
        logger.debug(f"Fetching: {path}")
        return self.get_json(path, encode_path).unwrap()

    def with_doc_context(self, doc_attributes: Mapping[str, Any]) -> "HalClient":
        """
        Seed navigation state from a link map saved with a previously fetched pact.

        Every href is percent-decoded; no request is made.
        """
        links: Dict[str, Any] = {}
        for name, attributes in doc_attributes.items():
            if isinstance(attributes, Mapping):
                links[name] = {
                    key: unquote(str(value)) if key == HREF else value
                    for key, value in attributes.items()
                }
            else:
                links[name] = None
        self.path_info = {LINKS: links}
        return self

    def with_document(self, document: Any) -> "HalClient":
        self.path_info = document
        return self

    def link_url(self, name: str) -> Optional[str]:
        return link_href(self.path_info, name)

    def for_all(self, link_name: str, closure: Callable[[Dict[str, Any]], None]) -> None:
        """Call `closure` with the attributes of every link filed under `link_name`."""
        self.init_path_info()
        links = self.path_info.get(LINKS) if isinstance(self.path_info, Mapping) else None
        if not isinstance(links, Mapping) or link_name not in links:
            return
        matching = links[link_name]
        if isinstance(matching, list):
            for entry in matching:
                if isinstance(entry, Mapping):
                    closure(dict(entry))
        elif isinstance(matching, Mapping):
            closure(dict(matching))

    # -- Reads --

    def get_json(self, path: str, encode_path: bool = True) -> Result[Any]:
        try:
            response = self._execute(
                "GET",
                build_url(self.base_url, path, encode_path),
                {"Content-Type": CONTENT_TYPE_JSON, "Accept": ACCEPT_HAL},
            )
            return Result.success(self._handle_hal_response(response, path))
        except (HalClientError, ValueError) as e:
            return Result.failure(e)

    def _handle_hal_response(self, response: TransportResponse, path: str) -> Any:
        if response.status_code < 300:
            if not is_json_content_type(response.content_type):
                raise InvalidHalResponse(
                    f"Expected a HAL+JSON response from the pact broker, but got '{response.content_type}'. "
                    f"URL: '{self.base_url}', PATH: '{path}'"
                )
            try:
                return json.loads(response.text)
            except ValueError as e:
                raise InvalidHalResponse(
                    f"Response from the pact broker is not valid JSON: {e}. URL: '{self.base_url}', PATH: '{path}'"
                ) from e
        if response.status_code == 404:
            raise NotFoundResponse(f"No HAL document found at path '{path}'. URL: '{self.base_url}'")
        raise RequestFailed(
            f"Request to path '{path}' failed with response '{response.status_line}'. URL: '{self.base_url}'",
            status_code=response.status_code,
            status_line=response.status_line,
        )

    # -- Writes --

    def post_json(self, url: str, body: Any, handler: Optional[ResponseHandler] = None) -> Result[bool]:
        """
        POST a JSON body to an absolute URL.

        The result holds `status < 300`, or whatever `handler(status, response)`
        returns when a handler is given. Any exception raised by the transport or
        the handler becomes a failed result.
        """
        payload = _serialize(body)
        logger.debug(f"Posting JSON to {url}\n{payload}")
        try:
            response = self._execute("POST", url, {"Content-Type": CONTENT_TYPE_JSON}, payload)
            logger.debug(f"Got response {response.status_line}")
            logger.debug(f"Response body: {response.text}")
            if handler is not None:
                return Result.success(handler(response.status_code, response))
            return Result.success(response.status_code < 300)
        except Exception as e:
            logger.debug(f"POST to {url} failed: {e}")
            return Result.failure(e)

    def put_json(self, url: str, body: Any) -> Result[bool]:
        try:
            response = self._execute("PUT", url, {"Content-Type": CONTENT_TYPE_JSON}, _serialize(body))
        except HalClientError as e:
            return Result.failure(e)
        return Result.success(self._put_succeeded(response))

    def put_json_link(self, link: str, options: Options, body: Any) -> Result[bool]:
        """PUT a JSON body to the href of `link` in the current document."""
        try:
            path, requires_encoding = self.href_for_link(link, options)
            response = self._execute(
                "PUT",
                build_url(self.base_url, path, requires_encoding),
                {"Content-Type": CONTENT_TYPE_JSON},
                _serialize(body),
            )
        except HalClientError as e:
            return Result.failure(e)
        return Result.success(self._put_succeeded(response))

    @staticmethod
    def _put_succeeded(response: TransportResponse) -> bool:
        if response.status_code < 300:
            return True
        logger.error(f"PUT JSON request failed with status {response.status_line}")
        return False

    def post_json_link(self, link: str, options: Options, body: Any) -> Result[Any]:
        """POST a JSON body to the href of `link` and parse the HAL document returned."""
        try:
            path, requires_encoding = self.href_for_link(link, options)
            response = self._execute(
                "POST",
                build_url(self.base_url, path, requires_encoding),
                {"Content-Type": CONTENT_TYPE_JSON, "Accept": ACCEPT_HAL},
                _serialize(body),
            )
            return Result.success(self._handle_hal_response(response, path))
        except (HalClientError, ValueError) as e:
            return Result.failure(e)

    def upload_json(
        self,
        path: str,
        body: Any,
        interpreter: Optional[UploadInterpreter] = None,
        encode_path: bool = True,
    ) -> Any:
        """
        Legacy PUT upload.

        `interpreter("OK", status_line)` is called on success and
        `interpreter("FAILED", message)` on any HTTP failure; its return value is
        returned. HTTP failures are never raised.
        """
        interpreter = interpreter or (lambda status, message: None)
        response = self._execute(
            "PUT",
            build_url(self.base_url, path, encode_path),
            {"Content-Type": CONTENT_TYPE_JSON},
            _serialize(body),
        )
        if response.status_code < 300:
            return interpreter("OK", response.status_line)
        return interpreter("FAILED", self.error_handler.format_upload_failure(response))
