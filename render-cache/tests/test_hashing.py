import hashlib
import sys
import unittest
from pathlib import Path

PLUGIN_ROOT = Path(__file__).resolve().parents[1]
if str(PLUGIN_ROOT) not in sys.path:
    sys.path.insert(0, str(PLUGIN_ROOT))

from data.filename import sanitize_cache_filename
from data.hashing import hash_string


class TestHashString(unittest.TestCase):
    def test_known_digest(self) -> None:
        self.assertEqual(
            hash_string("hello"),
            "2cf24dba5fb0a30e26e83b2ac5b9e29e1b161e5c1fa7425e73043362938b9824",
        )

    def test_empty_string(self) -> None:
        self.assertEqual(
            hash_string(""),
            "e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855",
        )

    def test_non_ascii_is_hashed_as_utf8(self) -> None:
        expected = hashlib.sha256("からあげ".encode("utf-8")).hexdigest()
        self.assertEqual(hash_string("からあげ"), expected)

    def test_digest_survives_sanitization(self) -> None:
        digest = hash_string("/posts/1?page=2")
        self.assertEqual(len(digest), 64)
        self.assertEqual(sanitize_cache_filename(digest), digest)


if __name__ == "__main__":
    unittest.main()
