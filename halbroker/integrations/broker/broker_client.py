"""
Broker client.

Domain operations on top of the HAL client:
- discover the consumer pacts a provider has to verify
- publish the consolidated verification result for a pact

Every request path comes from the broker's own links; the only URL the
client is configured with is the broker root.
"""
from __future__ import annotations

import json
import logging
from typing import Any, Dict, List, Mapping, Optional, Union
from urllib.parse import unquote

from halbroker.error_handler import NotFoundResponse, PublishLinkMissing
from halbroker.integrations.broker.payload import build_payload
from halbroker.integrations.contracts.interfaces import BrokerConsumer, Result, Transport
from halbroker.integrations.contracts.verification import VerificationOutcome
from halbroker.integrations.hal.hal_client import HalClient
from halbroker.integrations.hal.link_resolver import parse_link_url

logger = logging.getLogger(__name__)

LATEST_PROVIDER_PACTS_WITH_NO_TAG = "pb:latest-untagged-pact-version"
LATEST_PROVIDER_PACTS = "pb:latest-provider-pacts"
LATEST_PROVIDER_PACTS_WITH_TAG = "pb:latest-provider-pacts-with-tag"
PUBLISH_VERIFICATION_RESULTS = "pb:publish-verification-results"
PACTS = "pacts"


class BrokerClient:
    def __init__(
        self,
        pact_broker_url: str,
        options: Optional[Mapping[str, Any]] = None,
        transport: Optional[Transport] = None,
    ) -> None:
        self.pact_broker_url = pact_broker_url
        self.options: Dict[str, Any] = dict(options or {})
        self.transport = transport

    def new_hal_client(self) -> HalClient:
        return HalClient(self.pact_broker_url, self.options, transport=self.transport)

    # -- Consumer discovery --

    def _authentication(self) -> List[str]:
        authentication = self.options.get("authentication")
        return [str(a) for a in authentication] if isinstance(authentication, (list, tuple)) else []

    def _collect_consumers(self, hal_client: HalClient) -> List[BrokerConsumer]:
        consumers: List[BrokerConsumer] = []

        def collect(pact: Dict[str, Any]) -> None:
            consumers.append(BrokerConsumer(
                name=str(pact.get("name")),
                source=unquote(str(pact.get("href"))),
                pact_broker_url=self.pact_broker_url,
                authentication=self._authentication(),
            ))

        hal_client.for_all(PACTS, collect)
        return consumers

    def fetch_latest_consumers_with_no_tag(self, provider: str) -> List[BrokerConsumer]:
        """
        Latest untagged pact for each consumer of `provider`.

        A provider the broker has never seen yields an empty list.
        """
        hal_client = self.new_hal_client()
        try:
            hal_client.navigate(LATEST_PROVIDER_PACTS_WITH_NO_TAG, {"provider": provider})
            return self._collect_consumers(hal_client)
        except NotFoundResponse:
            # the provider is not defined in the broker yet
            logger.debug(f"No pacts found for provider '{provider}' at {self.pact_broker_url}")
            return []
        finally:
            hal_client.close()

    def _consumers_for(self, link: str, options: Dict[str, Any]) -> List[BrokerConsumer]:
        hal_client = self.new_hal_client()
        try:
            hal_client.navigate(link, options)
            return self._collect_consumers(hal_client)
        finally:
            hal_client.close()

    def fetch_consumers(self, provider: str) -> List[BrokerConsumer]:
        return self._consumers_for(LATEST_PROVIDER_PACTS, {"provider": provider})

    def fetch_consumers_with_tag(self, provider: str, tag: str) -> List[BrokerConsumer]:
        return self._consumers_for(LATEST_PROVIDER_PACTS_WITH_TAG, {"provider": provider, "tag": tag})

    def get_url_for_provider(self, provider: str, tag: Optional[str] = None) -> Optional[str]:
        hal_client = self.new_hal_client()
        try:
            hal_client.navigate()
            link = LATEST_PROVIDER_PACTS_WITH_TAG if tag else LATEST_PROVIDER_PACTS
            href = hal_client.link_url(link)
        finally:
            hal_client.close()
        if href is None:
            return None
        return parse_link_url(href, {"provider": provider, "tag": tag})

    # -- Publishing --

    def build_payload(self, result: VerificationOutcome, version: str, build_url: Optional[str] = None) -> Dict[str, Any]:
        return build_payload(result, version, build_url)

    def publish_verification_results(
        self,
        doc_attributes: Mapping[str, Mapping[str, Any]],
        result: Union[VerificationOutcome, bool],
        version: str,
        build_url: Optional[str] = None,
    ) -> Result[bool]:
        """
        POST the result to the `pb:publish-verification-results` link of a pact.

        Args:
            doc_attributes: Link map stored with the pact when it was fetched
            result: Combined outcome for the pact (a bool is accepted for older callers)
            version: Provider application version
            build_url: Optional CI build link
        """
        if isinstance(result, bool):
            result = VerificationOutcome.from_bool(result)

        links = {str(key).lower(): value for key, value in doc_attributes.items()}
        publish_link = links.get(PUBLISH_VERIFICATION_RESULTS)
        attributes = (
            {str(key).lower(): value for key, value in publish_link.items()}
            if isinstance(publish_link, Mapping) else {}
        )
        if "href" not in attributes:
            return Result.failure(PublishLinkMissing(
                "Unable to publish verification results as there is no "
                f"{PUBLISH_VERIFICATION_RESULTS} link. URL: '{self.pact_broker_url}', "
                f"LINK: '{PUBLISH_VERIFICATION_RESULTS}'"
            ))

        payload = self.build_payload(result, version, build_url)
        hal_client = self.new_hal_client()
        try:
            return hal_client.post_json(str(attributes["href"]), json.dumps(payload))
        finally:
            hal_client.close()
