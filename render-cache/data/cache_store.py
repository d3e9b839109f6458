# SSR 再生成用のディスクキャッシュ
# Stores rendered page bodies as files under /tmp and serves them back while fresh

import logging
import os
import tempfile
import threading
import time
from datetime import datetime, timezone

from dify_plugin.config.logger_format import plugin_logger_handler
from werkzeug import Response

from data.filename import ValidationError, sanitize_cache_filename

logger = logging.getLogger(__name__)
logger.addHandler(plugin_logger_handler)

# /tmp is the only location guaranteed to be writable across invocations on
# serverless hosts: https://github.com/orgs/vercel/discussions/314
CACHE_ROOT = "/tmp"


class CacheMiss(Exception):
    """A cache entry could not be read. Collapsed to None by read_cache()."""

    def __init__(self, path: str, reason: str):
        super().__init__(f"{reason}: {path}")
        self.path = path
        self.reason = reason


def file_exists(path: str) -> bool:
    """stat() the path. Missing files, permission errors etc. all count as absent."""
    try:
        os.stat(path)
    except (OSError, ValueError):
        return False
    return True


def _is_within_root(resolved_path: str, root: str) -> bool:
    # Lower-cased compare assumes the Linux hosts this is deployed on. A path
    # that differs from the root only in case passes this check.
    root_lower = os.path.abspath(root).lower()
    path_lower = resolved_path.lower()
    return path_lower == root_lower or path_lower.startswith(root_lower.rstrip("/") + "/")


def _read_entry(cache_file_path: str, root: str) -> bytes:
    resolved_path = os.path.abspath(cache_file_path)
    if not _is_within_root(resolved_path, root):
        raise CacheMiss(resolved_path, "outside-root")

    try:
        with open(resolved_path, "rb") as f:
            return f.read()
    except FileNotFoundError as e:
        raise CacheMiss(resolved_path, "not-found") from e
    except PermissionError as e:
        raise CacheMiss(resolved_path, "access-denied") from e
    except (OSError, ValueError) as e:
        raise CacheMiss(resolved_path, "io-error") from e


def read_cache(cache_file_path: str, root: str = CACHE_ROOT) -> bytes | None:
    """Read a cache file, or None if it cannot be read.

    The path is normalized first (resolving "." and ".."), then it must be the
    cache root itself or lie beneath it. Anything else, as well as any read
    failure, is treated as a cache miss.
    """
    try:
        return _read_entry(cache_file_path, root)
    except CacheMiss as e:
        logger.debug("Cache miss (%s): %s", e.reason, e.path)
        return None


class CacheManager:
    """One cache entry under the cache root, addressed by a sanitized identifier.

    Args:
        revalidate_ms: time in milliseconds after which the entry is stale
        cache_file: cache identifier, usually a hash. It is sanitized.
        root: directory holding the cache files

    Raises:
        ValidationError: if the identifier is empty after sanitization
    """

    def __init__(self, revalidate_ms: float, cache_file: str, root: str = CACHE_ROOT):
        try:
            self._sanitized_cache_file = sanitize_cache_filename(cache_file)
        except ValidationError as e:
            raise ValidationError(
                f'Invalid cache_file parameter: "{cache_file}" results in an empty sanitized filename.'
            ) from e

        self.revalidate_ms = revalidate_ms
        self.root = root

    @property
    def cache_file_path(self) -> str:
        return f"{self.root.rstrip('/')}/{self._sanitized_cache_file}"

    @property
    def cache_file_exists(self) -> bool:
        return file_exists(self.cache_file_path)

    @property
    def cache_file_last_modified(self) -> datetime | None:
        last_modified_ms = self.cache_file_last_modified_ms
        if last_modified_ms is None:
            return None
        return datetime.fromtimestamp(last_modified_ms / 1000, tz=timezone.utc)

    @property
    def cache_file_last_modified_ms(self) -> int | None:
        """Modification time as epoch milliseconds, or None if there is no entry."""
        if not self.cache_file_exists:
            return None
        try:
            return os.stat(self.cache_file_path).st_mtime_ns // 1_000_000
        except OSError:
            # Removed between the two stat() calls
            return None

    @property
    def is_cache_valid(self) -> bool:
        last_modified_ms = self.cache_file_last_modified_ms
        if last_modified_ms is None:
            return False
        return time.time() * 1000 - last_modified_ms < self.revalidate_ms

    def save(self, content: bytes) -> threading.Thread:
        """Write the content in the background, creating or overwriting the entry.

        Failures are only logged. The started thread is returned for callers
        that need to wait for the write; the response path does not.
        """
        writer = threading.Thread(
            target=self._write,
            args=(bytes(content),),
            name=f"cache-save-{self._sanitized_cache_file}",
            daemon=True,
        )
        writer.start()
        return writer

    def save_response(self, response: Response | None) -> threading.Thread | None:
        if response is None:
            return None
        if response.direct_passthrough:
            # Streamed file bodies can only be read once
            logger.warning("Not caching %s: response body is in direct passthrough mode", self.cache_file_path)
            return None
        # get_data() buffers the body, so the response can still be sent afterwards
        return self.save(response.get_data())

    def _write(self, content: bytes) -> None:
        # A failed write must not leave an empty entry with a fresh mtime.
        # Dot-prefixed temp names never collide with sanitized filenames.
        tmp_path = None
        try:
            with tempfile.NamedTemporaryFile(
                dir=self.root, prefix=f".{self._sanitized_cache_file}.", delete=False
            ) as f:
                tmp_path = f.name
                f.write(content)
            os.replace(tmp_path, self.cache_file_path)
        except OSError as e:
            logger.warning("Failed to save cache file %s: %s", self.cache_file_path, e)
            if tmp_path is not None:
                try:
                    os.unlink(tmp_path)
                except OSError:
                    pass