import tempfile
import unittest
from pathlib import Path

from memobridge.storage.token_store import TokenStore


class TokenStoreTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.db_path = Path(self._tmp.name) / "nested" / "tokens.db"
        self.store = TokenStore(self.db_path)

    def tearDown(self) -> None:
        self.store.close()
        self._tmp.cleanup()

    def test_unknown_user_has_no_token(self) -> None:
        self.assertIsNone(self.store.get_user_access_token(1))

    def test_set_then_get(self) -> None:
        self.store.set_user_access_token(1, "abc")
        self.store.set_user_access_token(2, "def")
        self.assertEqual(self.store.get_user_access_token(1), "abc")
        self.assertEqual(self.store.get_user_access_token(2), "def")

    def test_overwrite_token(self) -> None:
        self.store.set_user_access_token(1, "old")
        self.store.set_user_access_token(1, "new")
        self.assertEqual(self.store.get_user_access_token(1), "new")

    def test_tokens_survive_reopen(self) -> None:
        self.store.set_user_access_token(42, "persisted")
        self.store.close()
        self.store = TokenStore(self.db_path)
        self.assertEqual(self.store.get_user_access_token(42), "persisted")


if __name__ == "__main__":
    unittest.main()
