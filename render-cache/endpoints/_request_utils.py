# リクエストURLのユーティリティ

from typing import NamedTuple
from urllib.parse import urlsplit

from werkzeug import Request


class UrlParts(NamedTuple):
    path: str
    query: str


def get_url(r: Request) -> UrlParts:
    """Split the request URL into path and query.

    If the URL cannot be parsed, the raw URL is used for both parts so the
    caller still gets a stable value to key the cache on.
    """
    try:
        parts = urlsplit(r.url)
    except ValueError:
        return UrlParts(path=r.url, query=r.url)
    return UrlParts(path=parts.path, query=parts.query)
