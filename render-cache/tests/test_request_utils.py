import sys
import unittest
from pathlib import Path
from unittest.mock import MagicMock

from werkzeug import Request
from werkzeug.test import EnvironBuilder

PLUGIN_ROOT = Path(__file__).resolve().parents[1]
if str(PLUGIN_ROOT) not in sys.path:
    sys.path.insert(0, str(PLUGIN_ROOT))

from endpoints._request_utils import UrlParts, get_url


class TestGetUrl(unittest.TestCase):
    def test_splits_path_and_query(self) -> None:
        r = Request(EnvironBuilder(path="/posts/1", query_string="page=2").get_environ())
        self.assertEqual(get_url(r), UrlParts(path="/posts/1", query="page=2"))

    def test_empty_query(self) -> None:
        r = Request(EnvironBuilder(path="/about").get_environ())
        self.assertEqual(get_url(r), UrlParts(path="/about", query=""))

    def test_falls_back_to_raw_url_when_unparsable(self) -> None:
        r = MagicMock()
        r.url = "http://[invalid/page"

        self.assertEqual(
            get_url(r),
            UrlParts(path="http://[invalid/page", query="http://[invalid/page"),
        )


if __name__ == "__main__":
    unittest.main()
