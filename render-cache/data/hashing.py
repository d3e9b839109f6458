import hashlib


def hash_string(message: str) -> str:
    """Return the SHA-256 hex digest of a string (UTF-8 encoded)."""
    return hashlib.sha256(message.encode("utf-8")).hexdigest()
