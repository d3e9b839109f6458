# キャッシュファイル名のサニタイズ
# Turns an untrusted cache identifier into a filename that is safe to join onto the cache root

import re

# Everything outside this class is dropped, including "/", "\", ".", "%" and NUL.
# Percent-encoded input is not decoded first: "..%2Fetc" becomes "2Fetc".
_UNSAFE_CHARS = re.compile(r"[^a-zA-Z0-9_-]")


class ValidationError(ValueError):
    """Raised when a cache identifier cannot be turned into a usable filename."""


def sanitize_cache_filename(filename: str) -> str:
    """Strip a cache filename down to alphanumerics, hyphens and underscores.

    Path separators and relative path sequences disappear with the rest of the
    unsafe characters, so the result can never leave the cache root.

    Raises:
        ValidationError: if nothing is left after sanitization.
    """
    sanitized = _UNSAFE_CHARS.sub("", filename)

    if not sanitized:
        raise ValidationError("Invalid cache filename: sanitization resulted in empty string")

    return sanitized
