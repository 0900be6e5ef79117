from .broker_client import BrokerClient
from .payload import build_payload

__all__ = ["BrokerClient", "build_payload"]
