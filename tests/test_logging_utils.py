import logging
import tempfile
import unittest
from pathlib import Path
from types import SimpleNamespace

from memobridge import logging_utils


class SetupLoggingTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        root = logging.getLogger()
        self._saved_handlers = list(root.handlers)
        self._saved_level = root.level
        self._saved_library_levels = {
            name: logging.getLogger(name).level for name in logging_utils.LIBRARY_LOGGERS
        }
        logging_utils._configured = False

    def tearDown(self) -> None:
        root = logging.getLogger()
        for handler in list(root.handlers):
            root.removeHandler(handler)
            handler.close()
        for handler in self._saved_handlers:
            root.addHandler(handler)
        root.setLevel(self._saved_level)
        for name, level in self._saved_library_levels.items():
            logging.getLogger(name).setLevel(level)
        logging_utils._configured = False
        self._tmp.cleanup()

    def _settings(self, level: str) -> SimpleNamespace:
        return SimpleNamespace(log_level=level, log_file_path=Path(self._tmp.name) / "bridge.log")

    def test_level_applies_to_console_and_file(self) -> None:
        settings = self._settings("warning")
        logging_utils.setup_logging(settings)
        root = logging.getLogger()
        self.assertEqual(root.level, logging.WARNING)
        logging.getLogger("memobridge.notes").info("hidden")
        logging.getLogger("memobridge.notes").warning("kept")
        for handler in root.handlers:
            handler.flush()
        written = settings.log_file_path.read_text(encoding="utf-8")
        self.assertIn("kept", written)
        self.assertNotIn("hidden", written)

    def test_library_loggers_quiet_unless_debug(self) -> None:
        logging_utils.setup_logging(self._settings("INFO"))
        for name in logging_utils.LIBRARY_LOGGERS:
            self.assertEqual(logging.getLogger(name).level, logging.WARNING)

        logging_utils._configured = False
        logging_utils.setup_logging(self._settings("DEBUG"))
        for name in logging_utils.LIBRARY_LOGGERS:
            self.assertEqual(logging.getLogger(name).level, logging.DEBUG)

    def test_unknown_level_falls_back_to_info(self) -> None:
        self.assertEqual(logging_utils.resolve_level("chatty"), logging.INFO)
        self.assertEqual(logging_utils.resolve_level(" debug "), logging.DEBUG)


if __name__ == "__main__":
    unittest.main()
