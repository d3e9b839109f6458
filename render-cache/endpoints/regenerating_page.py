# SSR ページ再生成エンドポイント
# Serves a rendered page from the disk cache while it is fresh, renders and re-caches it otherwise

import logging
from abc import abstractmethod
from collections.abc import Mapping

from dify_plugin import Endpoint
from dify_plugin.config.logger_format import plugin_logger_handler
from werkzeug import Request, Response

from data.cache_store import CACHE_ROOT, CacheManager, read_cache
from data.hashing import hash_string
from endpoints._request_utils import get_url

logger = logging.getLogger(__name__)
logger.setLevel(logging.INFO)
logger.addHandler(plugin_logger_handler)

DEFAULT_REVALIDATE_SECONDS = 60
DEFAULT_CONTENT_TYPE = "text/html; charset=utf-8"


def _revalidate_ms(settings: Mapping) -> float:
    value = settings.get("revalidate_seconds", DEFAULT_REVALIDATE_SECONDS)
    try:
        seconds = float(value)
    except (TypeError, ValueError):
        return DEFAULT_REVALIDATE_SECONDS * 1000
    if seconds < 0:
        return DEFAULT_REVALIDATE_SECONDS * 1000
    return seconds * 1000


class RegeneratingPageEndpoint(Endpoint):
    """Base endpoint for cached server-side rendered pages.

    Subclasses implement _render(). Successful renders are written to the
    cache in the background and served from it until revalidate_seconds pass.
    """

    cache_root = CACHE_ROOT

    def _invoke(self, r: Request, values: Mapping, settings: Mapping) -> Response:
        url = get_url(r)
        cache_key = hash_string(f"{url.path}?{url.query}")
        manager = CacheManager(_revalidate_ms(settings), cache_key, root=self.cache_root)

        if manager.is_cache_valid:
            content = read_cache(manager.cache_file_path, root=self.cache_root)
            if content is not None:
                logger.info("Cache hit for %s", url.path)
                return Response(
                    content,
                    status=200,
                    content_type=settings.get("content_type") or DEFAULT_CONTENT_TYPE,
                    headers={"X-Cache": "HIT"},
                )

        logger.info("Cache miss for %s, rendering", url.path)
        response = self._render(r, values, settings)
        if response.status_code == 200:
            manager.save_response(response)

        response.headers["X-Cache"] = "MISS"
        return response

    @abstractmethod
    def _render(self, r: Request, values: Mapping, settings: Mapping) -> Response:
        """Render the page. Only 200 responses are cached."""
