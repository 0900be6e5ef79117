"""
Link resolution over HAL documents.

Turns a link name plus options into the concrete path to request. Pure
functions, no I/O: the HAL client feeds in whatever document it currently
holds.
"""

import re
from typing import Any, Dict, Mapping, Optional, Union
from urllib.parse import quote

from halbroker.error_handler import AmbiguousLink, LinkNotFound, MalformedDocument, NamedLinkMissing
from halbroker.integrations.contracts.interfaces import LinkQuery, ResolvedLink

LINKS = "_links"
HREF = "href"
NAME = "name"
TEMPLATED = "templated"

URL_TEMPLATE_REGEX = re.compile(r"\{(\w+)\}")

# RFC 3986 pchar minus "/" (what may appear unescaped inside one path segment)
_PATH_SEGMENT_SAFE = "!$&'()*+,;=:@-._~"

Options = Union[Mapping[str, Any], LinkQuery, None]


def escape_path_segment(value: str) -> str:
    return quote(value, safe=_PATH_SEGMENT_SAFE)


def as_options(options: Options) -> Dict[str, Any]:
    if options is None:
        return {}
    if isinstance(options, LinkQuery):
        return options.options()
    return dict(options)


def parse_link_url(href: str, options: Options = None) -> str:
    """
    Expand `{token}` placeholders in a templated href.

    Each placeholder becomes the path-segment-escaped option value. A
    placeholder with no matching option is replaced by its own escaped
    source text, so `/tags/{tag}` with no `tag` becomes `/tags/%7Btag%7D`.
    """
    values = as_options(options)
    result = []
    index = 0
    for match in URL_TEMPLATE_REGEX.finditer(href):
        result.append(href[index:match.start()])
        value = values.get(match.group(1))
        result.append(escape_path_segment(str(value) if value is not None else match.group(0)))
        index = match.end()
    result.append(href[index:])
    return "".join(result)


def _context(base_url: str, link: str) -> str:
    return f"URL: '{base_url}', LINK: '{link}'"


def _href_of(link_data: Mapping[str, Any], link: str, base_url: str, options: Dict[str, Any]) -> ResolvedLink:
    href = link_data.get(HREF)
    if not isinstance(href, str):
        raise MalformedDocument(f"Link '{link}' has no href. {_context(base_url, link)}")
    if link_data.get(TEMPLATED) is True:
        return ResolvedLink(parse_link_url(href, options), False)
    return ResolvedLink(href, True)


def resolve(document: Any, link: str, options: Options = None, base_url: str = "") -> ResolvedLink:
    """
    Resolve `link` against the `_links` map of `document`.

    Returns (path, requires_encoding). Templated hrefs come back expanded and
    already encoded; plain hrefs come back verbatim and still need encoding.

    Raises:
        MalformedDocument: no `_links` map, or the link value is not an object/array
        LinkNotFound: `_links` has no entry for `link`
        AmbiguousLink: the link is an array and no `name` option was given
        NamedLinkMissing: no array entry carries the requested `name`
    """
    values = as_options(options)
    links = document.get(LINKS) if isinstance(document, Mapping) else None
    if links is None:
        raise MalformedDocument(
            "Expected a HAL+JSON response from the pact broker, but got a response with no "
            f"'{LINKS}'. {_context(base_url, link)}"
        )
    if not isinstance(links, Mapping):
        raise MalformedDocument(
            f"Expected a map of links in the response, but found: {links!r}. {_context(base_url, link)}"
        )

    if link not in links:
        raise LinkNotFound(
            f"Link '{link}' was not found in the response, only the following links were found: "
            f"{', '.join(links.keys())}. {_context(base_url, link)}"
        )
    link_data = links[link]

    if isinstance(link_data, list):
        if NAME not in values:
            raise AmbiguousLink(
                f"Link '{link}' has multiple entries. You need to filter by the link name. "
                f"{_context(base_url, link)}"
            )
        wanted = values[NAME]
        for entry in link_data:
            if isinstance(entry, Mapping) and entry.get(NAME) == wanted:
                return _href_of(entry, link, base_url, values)
        raise NamedLinkMissing(
            f"Link '{link}' does not have an entry with name '{wanted}'. {_context(base_url, link)}"
        )

    if isinstance(link_data, Mapping):
        return _href_of(link_data, link, base_url, values)

    raise MalformedDocument(
        f"Expected link in map form in the response, but found: {link_data!r}. {_context(base_url, link)}"
    )


def link_href(document: Any, name: str) -> Optional[str]:
    """Href of a single-object link, or None when absent or array-valued."""
    links = document.get(LINKS) if isinstance(document, Mapping) else None
    if isinstance(links, Mapping):
        link_data = links.get(name)
        if isinstance(link_data, Mapping) and HREF in link_data:
            return str(link_data[HREF])
    return None
