import pytest
import requests

from halbroker.error_handler import TransportError
from halbroker.integrations.clients.real_http.transport import FixedIntervalRetry, RequestsTransport


class FakeResponse:
    def __init__(self, status_code, reason="OK", content=b"", headers=None):
        self.status_code = status_code
        self.reason = reason
        self.content = content
        self.headers = headers or {}


class FakeSession:
    def __init__(self, responses):
        self.responses = list(responses)
        self.calls = []

    def request(self, method, url, headers=None, data=None, auth=None, timeout=None):
        self.calls.append({"method": method, "url": url, "headers": headers, "data": data, "auth": auth})
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


def _transport(responses, **kwargs):
    transport = RequestsTransport(**kwargs)
    transport.session = FakeSession(responses)
    return transport


def test_session_retries_with_fixed_interval():
    transport = RequestsTransport(max_retries=4, retry_interval_ms=1500)
    retry = transport.session.get_adapter("https://broker").max_retries

    assert isinstance(retry, FixedIntervalRetry)
    assert retry.total == 4
    assert retry.get_backoff_time() == 1.5
    assert retry.new(total=1).get_backoff_time() == 1.5
    assert 503 in retry.status_forcelist
    assert "POST" in retry.allowed_methods


def test_execute_returns_transport_response():
    transport = _transport([FakeResponse(200, "OK", b'{"a": 1}', {"Content-Type": "application/hal+json"})])

    response = transport.execute("POST", "http://broker/x", {"Accept": "application/json"}, '{"b": 2}')

    assert response.status_code == 200
    assert response.status_line == "200 OK"
    assert response.content_type == "application/hal+json"
    assert response.body == b'{"a": 1}'
    assert transport.session.calls[0]["data"] == b'{"b": 2}'


def test_basic_auth_sent_after_challenge_when_not_preemptive():
    transport = _transport(
        [FakeResponse(401, "Unauthorized"), FakeResponse(200)],
        authentication=["basic", "user", "pass"],
    )

    response = transport.execute("GET", "http://broker/")

    assert response.status_code == 200
    first, second = transport.session.calls
    assert first["auth"] is None
    assert (second["auth"].username, second["auth"].password) == ("user", "pass")


def test_preemptive_basic_auth_sent_up_front():
    transport = _transport([FakeResponse(200)], authentication=["basic", "user", "pass"], preemptive=True)
    transport.execute("GET", "http://broker/")
    assert transport.session.calls[0]["auth"].username == "user"


def test_bearer_token_header():
    transport = _transport([FakeResponse(200)], authentication=["Bearer", "abc"])
    transport.execute("GET", "http://broker/", {"Accept": "application/json"})
    assert transport.session.calls[0]["headers"]["Authorization"] == "Bearer abc"


def test_request_errors_become_transport_errors():
    transport = _transport([requests.ConnectionError("refused")])
    with pytest.raises(TransportError) as exc:
        transport.execute("GET", "http://broker/")
    assert exc.value.url == "http://broker/"
    assert "refused" in str(exc.value)
