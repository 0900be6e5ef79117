from .hal_client import HalClient, build_url
from .link_resolver import parse_link_url, resolve

__all__ = ["HalClient", "build_url", "parse_link_url", "resolve"]
