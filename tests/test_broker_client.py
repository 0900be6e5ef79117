import pytest

from halbroker.error_handler import NotFoundResponse, PublishLinkMissing, RequestFailed, TransportError
from halbroker.integrations.broker.broker_client import BrokerClient
from halbroker.integrations.clients.mocks.transport import InMemoryTransport, json_response, text_response
from halbroker.integrations.contracts.interfaces import TransportResponse
from halbroker.integrations.contracts.verification import SUCCESS, Failure
from halbroker.integrations.hal.hal_client import HalClient

BROKER_URL = "http://broker.example.com"

UNTAGGED_URL = BROKER_URL + "/pacts/provider/Orders/latest-untagged"
PUBLISH_URL = BROKER_URL + "/pacts/provider/Orders/consumer/Web/pact-version/abc/verification-results"

PACTS_DOCUMENT = {
    "_links": {
        "pacts": [
            {"name": "Web", "href": BROKER_URL + "/pacts/provider/Orders/consumer/Web%20App/latest-untagged"},
            {"name": "Mobile", "href": BROKER_URL + "/pacts/provider/Orders/consumer/Mobile/latest-untagged"},
        ]
    }
}


def test_fetch_latest_consumers_with_no_tag(transport):
    transport.add("GET", UNTAGGED_URL, json_response(PACTS_DOCUMENT))
    client = BrokerClient(BROKER_URL, {"authentication": ["basic", "user", "secret"]}, transport=transport)

    consumers = client.fetch_latest_consumers_with_no_tag("Orders")

    assert [c.name for c in consumers] == ["Web", "Mobile"]
    assert consumers[0].source == BROKER_URL + "/pacts/provider/Orders/consumer/Web App/latest-untagged"
    assert consumers[0].pact_broker_url == BROKER_URL
    assert consumers[0].authentication == ["basic", "user", "secret"]


def test_single_pact_link_is_returned_as_one_consumer(transport):
    transport.add("GET", UNTAGGED_URL, json_response({"_links": {"pacts": {"name": "Web", "href": "/p"}}}))
    consumers = BrokerClient(BROKER_URL, transport=transport).fetch_latest_consumers_with_no_tag("Orders")
    assert [(c.name, c.source, c.authentication) for c in consumers] == [("Web", "/p", [])]


def test_unknown_provider_yields_empty_list(transport):
    client = BrokerClient(BROKER_URL, transport=transport)

    assert client.fetch_latest_consumers_with_no_tag("Orders") == []

    # the same 404 is a hard failure everywhere else
    with pytest.raises(NotFoundResponse):
        HalClient(BROKER_URL, transport=transport).fetch("/pacts/provider/Orders/latest-untagged")
    with pytest.raises(NotFoundResponse):
        client.fetch_consumers("Orders")


def test_other_failures_are_not_swallowed(transport):
    transport.add("GET", UNTAGGED_URL, text_response("down", status_code=503, reason="Service Unavailable"))
    with pytest.raises(RequestFailed):
        BrokerClient(BROKER_URL, transport=transport).fetch_latest_consumers_with_no_tag("Orders")


def test_fetch_consumers_with_tag(transport):
    transport.add("GET", BROKER_URL + "/pacts/provider/Orders/latest/prod", json_response(PACTS_DOCUMENT))
    consumers = BrokerClient(BROKER_URL, transport=transport).fetch_consumers_with_tag("Orders", "prod")
    assert [c.name for c in consumers] == ["Web", "Mobile"]


def test_get_url_for_provider(transport):
    client = BrokerClient(BROKER_URL, transport=transport)
    assert client.get_url_for_provider("Orders") == BROKER_URL + "/pacts/provider/Orders/latest"
    assert client.get_url_for_provider("Orders", "prod") == BROKER_URL + "/pacts/provider/Orders/latest/prod"


def test_publish_posts_payload_to_link_case_insensitively():
    transport = InMemoryTransport().add("POST", PUBLISH_URL, TransportResponse(201, "Created"))
    client = BrokerClient(BROKER_URL, transport=transport)
    links = {"PB:Publish-Verification-Results": {"Title": "Publish", "HREF": PUBLISH_URL}}

    result = client.publish_verification_results(links, SUCCESS, "1.0.0", "http://ci/7")

    assert result.ok and result.value is True
    (request,) = transport.requests
    assert request.method == "POST"
    assert request.json() == {"success": True, "providerApplicationVersion": "1.0.0", "buildUrl": "http://ci/7"}


def test_publish_accepts_boolean_result():
    transport = InMemoryTransport().add("POST", PUBLISH_URL, TransportResponse(200, "OK"))
    client = BrokerClient(BROKER_URL, transport=transport)

    client.publish_verification_results({"pb:publish-verification-results": {"href": PUBLISH_URL}}, False, "1")

    assert transport.requests[0].json() == {"success": False, "providerApplicationVersion": "1"}


def test_publish_failure_payload_includes_test_results():
    transport = InMemoryTransport().add("POST", PUBLISH_URL, TransportResponse(200, "OK"))
    client = BrokerClient(BROKER_URL, transport=transport)
    failure = Failure([{"interactionId": "i1", "type": "status", "description": "500"}], "failed")

    client.publish_verification_results({"pb:publish-verification-results": {"href": PUBLISH_URL}}, failure, "1")

    body = transport.requests[0].json()
    assert body["success"] is False
    assert body["testResults"][0]["interactionId"] == "i1"


@pytest.mark.parametrize("links", [
    {},
    {"self": {"href": "/"}},
    {"pb:publish-verification-results": {"title": "no href"}},
])
def test_publish_without_link_fails(links):
    transport = InMemoryTransport()
    result = BrokerClient(BROKER_URL, transport=transport).publish_verification_results(links, SUCCESS, "1")

    assert not result.ok
    assert isinstance(result.error, PublishLinkMissing)
    assert BROKER_URL in str(result.error)
    assert "pb:publish-verification-results" in str(result.error)
    assert transport.requests == []


def test_publish_transport_failure_is_a_failed_result():
    transport = InMemoryTransport().add("POST", PUBLISH_URL, TransportError("refused", url=PUBLISH_URL))
    result = BrokerClient(BROKER_URL, transport=transport).publish_verification_results(
        {"pb:publish-verification-results": {"href": PUBLISH_URL}}, SUCCESS, "1"
    )
    assert isinstance(result.error, TransportError)
    assert result.error.url == PUBLISH_URL


def test_publish_rejected_by_broker_is_false():
    transport = InMemoryTransport().add("POST", PUBLISH_URL, TransportResponse(400, "Bad Request"))
    result = BrokerClient(BROKER_URL, transport=transport).publish_verification_results(
        {"pb:publish-verification-results": {"href": PUBLISH_URL}}, SUCCESS, "1"
    )
    assert result.ok
    assert result.value is False


def test_facade_operations_close_their_hal_client(transport, monkeypatch):
    closed = []
    monkeypatch.setattr(HalClient, "close", lambda self: closed.append(self))
    transport.add("GET", UNTAGGED_URL, json_response(PACTS_DOCUMENT))
    client = BrokerClient(BROKER_URL, transport=transport)

    client.fetch_latest_consumers_with_no_tag("Orders")
    client.get_url_for_provider("Orders")
    with pytest.raises(NotFoundResponse):
        client.fetch_consumers("Orders")

    assert len(closed) == 3
    assert len({id(c) for c in closed}) == 3
