"""Error types and upload-failure formatting for the HAL broker client."""
import json
import logging
from typing import Any, Optional

from halbroker.integrations.contracts.interfaces import TransportResponse

logger = logging.getLogger(__name__)


class HalClientError(Exception):
    pass


class InvalidHalResponse(HalClientError):
    """The broker answered with something that is not a HAL+JSON document."""


class MalformedDocument(InvalidHalResponse):
    """The document has no usable `_links` map."""


class LinkNotFound(HalClientError):
    pass


class NamedLinkMissing(LinkNotFound):
    """An array-valued link has no entry with the requested name."""


class AmbiguousLink(HalClientError):
    """An array-valued link was requested without a `name` to pick an entry."""


class NotFoundResponse(HalClientError):
    pass


class RequestFailed(HalClientError):
    def __init__(self, message: str, *, status_code: Optional[int] = None, status_line: str = "") -> None:
        super().__init__(message)
        self.status_code = status_code
        self.status_line = status_line


class PublishLinkMissing(HalClientError):
    pass


class TransportError(HalClientError):
    def __init__(self, message: str, *, url: str = "") -> None:
        super().__init__(message)
        self.url = url


def is_json_content_type(content_type: Optional[str]) -> bool:
    if not content_type:
        return False
    mime = content_type.split(";", 1)[0].strip().lower()
    return mime == "application/json" or mime.endswith("+json")


class ErrorHandler:
    def format_upload_failure(self, response: TransportResponse) -> str:
        """
        Build the message handed to a legacy upload interpreter for a failed PUT.

        JSON bodies with an `errors` field are flattened onto the status line;
        anything else is appended verbatim.
        """
        status = response.status_line
        body = response.text
        if response.status_code == 409 or not is_json_content_type(response.content_type):
            return f"{status} - {body}"

        error = ""
        if body:
            try:
                parsed = json.loads(body)
            except ValueError as e:
                logger.debug("Failed to parse JSON error body: %s", e)
                return f"{status} - {body}"
            if isinstance(parsed, dict) and "errors" in parsed:
                error = self._flatten_errors(parsed["errors"])
        return f"{status}{error}"

    @staticmethod
    def _flatten_errors(errors: Any) -> str:
        if isinstance(errors, list):
            return " - " + ", ".join(str(e) for e in errors)
        if isinstance(errors, dict):
            parts = []
            for key, value in errors.items():
                if isinstance(value, list):
                    parts.append(f"{key}: {', '.join(str(v) for v in value)}")
                else:
                    parts.append(f"{key}: {value}")
            return " - " + ", ".join(parts)
        return ""
