"""URL and anchor construction for stateful search links."""

from html import escape
from typing import Mapping, Optional, Sequence, Union
from urllib.parse import urlencode

QueryMapping = Mapping[str, Union[str, Sequence[str]]]


def build_href(url: str, query: QueryMapping) -> str:
    """
    Build ``url?query`` with sequences encoded as repeated keys.

    The ``?`` is omitted when there is no query, so an empty base url with an
    empty query yields an empty href (the current page).
    """
    query_string = urlencode(
        {key: value for key, value in query.items() if value not in (None, "", [], ())},
        doseq=True,
    )
    if not query_string:
        return url
    return f"{url}?{query_string}"


def build_link(
    url: str,
    label: str,
    query: QueryMapping,
    css_class: Optional[str] = None,
) -> str:
    """Build an escaped anchor tag pointing at ``build_href(url, query)``."""
    href = escape(build_href(url, query), quote=True)
    class_attr = f' class="{escape(css_class, quote=True)}"' if css_class else ""
    # Streamlit opens markdown links in a new tab unless told otherwise.
    return f'<a href="{href}"{class_attr} target="_self">{escape(label)}</a>'
