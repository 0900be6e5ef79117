from .transport import InMemoryTransport, RecordedRequest, json_response, text_response

__all__ = ["InMemoryTransport", "RecordedRequest", "json_response", "text_response"]
