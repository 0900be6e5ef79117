import pytest

from halbroker.error_handler import AmbiguousLink, LinkNotFound, MalformedDocument, NamedLinkMissing
from halbroker.integrations.contracts.interfaces import LinkQuery
from halbroker.integrations.hal.link_resolver import parse_link_url, resolve


@pytest.mark.parametrize("document", [{}, {"name": "x"}, {"_links": None}, [], None])
def test_document_without_links_is_malformed(document):
    for link in ("self", "pb:anything", ""):
        with pytest.raises(MalformedDocument):
            resolve(document, link)


def test_links_that_are_not_a_map_are_malformed():
    with pytest.raises(MalformedDocument):
        resolve({"_links": ["a", "b"]}, "a")


def test_missing_link_lists_available_links():
    with pytest.raises(LinkNotFound) as exc:
        resolve({"_links": {"self": {"href": "/"}, "pb:pacts": {"href": "/pacts"}}}, "pb:missing",
                base_url="http://broker")
    assert "self" in str(exc.value)
    assert "pb:pacts" in str(exc.value)
    assert "http://broker" in str(exc.value)


def test_plain_link_needs_encoding():
    path, requires_encoding = resolve({"_links": {"pb:pacts": {"href": "/pacts/provider/a b"}}}, "pb:pacts")
    assert path == "/pacts/provider/a b"
    assert requires_encoding is True


def test_templated_link_is_expanded_and_already_encoded():
    doc = {"_links": {"pb:tag": {"href": "/tags/{tag}", "templated": True}}}
    resolved = resolve(doc, "pb:tag", {"tag": "prod"})
    assert resolved.path == "/tags/prod"
    assert resolved.requires_encoding is False


def test_templated_flag_must_be_boolean_true():
    doc = {"_links": {"pb:tag": {"href": "/tags/{tag}", "templated": "true"}}}
    assert resolve(doc, "pb:tag", {"tag": "prod"}) == ("/tags/{tag}", True)


def test_unresolved_placeholder_falls_back_to_escaped_source_text():
    assert parse_link_url("/tags/{tag}", {}) == "/tags/%7Btag%7D"
    assert parse_link_url("/tags/{tag}", {"other": "x"}) == "/tags/%7Btag%7D"


@pytest.mark.parametrize("href", ["", "/", "/pacts/provider/Orders/latest", "http://broker/a%20b?x=1"])
def test_href_without_placeholders_is_unchanged(href):
    assert parse_link_url(href, {"provider": "ignored"}) == href


def test_placeholder_values_are_path_segment_escaped():
    href = "/pacts/provider/{provider}/consumer/{consumer}"
    assert parse_link_url(href, {"provider": "Order Service", "consumer": "a/b"}) == \
        "/pacts/provider/Order%20Service/consumer/a%2Fb"


def test_placeholders_are_replaced_left_to_right_and_text_copied_verbatim():
    href = "http://broker/{a}-{b}/{a} x"
    assert parse_link_url(href, {"a": 1, "b": "two"}) == "http://broker/1-two/1 x"


def test_array_link_selected_by_name():
    doc = {"_links": {"pb:version": [
        {"name": "a", "href": "/versions/a"},
        {"name": "b", "href": "/versions/b"},
    ]}}
    assert resolve(doc, "pb:version", {"name": "b"}) == ("/versions/b", True)
    assert resolve(doc, "pb:version", LinkQuery(link="pb:version", name="a")).path == "/versions/a"


def test_array_link_first_matching_entry_wins():
    doc = {"_links": {"pb:version": [
        {"name": "a", "href": "/first"},
        {"name": "a", "href": "/second"},
    ]}}
    assert resolve(doc, "pb:version", {"name": "a"}).path == "/first"


def test_array_link_without_name_is_ambiguous():
    doc = {"_links": {"pb:version": [{"name": "a", "href": "/a"}, {"name": "b", "href": "/b"}]}}
    with pytest.raises(AmbiguousLink):
        resolve(doc, "pb:version")


def test_array_link_with_unknown_name():
    doc = {"_links": {"pb:version": [{"name": "a", "href": "/a"}]}}
    with pytest.raises(NamedLinkMissing):
        resolve(doc, "pb:version", {"name": "zzz"})
    with pytest.raises(LinkNotFound):
        resolve(doc, "pb:version", {"name": "zzz"})


def test_templated_array_entry_is_expanded():
    doc = {"_links": {"pb:env": [{"name": "prod", "href": "/env/{env}/{v}", "templated": True}]}}
    assert resolve(doc, "pb:env", {"name": "prod", "env": "prod", "v": "1.0"}) == ("/env/prod/1.0", False)


@pytest.mark.parametrize("value", ["http://x", 42, None, True])
def test_link_that_is_not_object_or_array_is_malformed(value):
    with pytest.raises(MalformedDocument):
        resolve({"_links": {"pb:odd": value}}, "pb:odd")


def test_link_query_round_trips_options():
    query = LinkQuery.from_options("pb:tag", {"name": "x", "tag": "prod"})
    assert query.name == "x"
    assert query.params == {"tag": "prod"}
    assert query.options() == {"name": "x", "tag": "prod"}
