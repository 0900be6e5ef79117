"""Pytest fixtures for HAL navigation and broker client tests."""

import pytest

from halbroker.integrations.clients.mocks.transport import InMemoryTransport, json_response

BROKER_URL = "http://broker.example.com"


def root_document():
    return {
        "_links": {
            "self": {"href": BROKER_URL},
            "pb:latest-untagged-pact-version": {
                "href": BROKER_URL + "/pacts/provider/{provider}/latest-untagged",
                "templated": True,
            },
            "pb:latest-provider-pacts": {
                "href": BROKER_URL + "/pacts/provider/{provider}/latest",
                "templated": True,
            },
            "pb:latest-provider-pacts-with-tag": {
                "href": BROKER_URL + "/pacts/provider/{provider}/latest/{tag}",
                "templated": True,
            },
        }
    }


@pytest.fixture
def transport():
    """In-memory transport that already serves the broker root."""
    return InMemoryTransport().add("GET", BROKER_URL + "/", json_response(root_document()))
