import io
import tempfile
import unittest
from pathlib import Path

from rich.console import Console

from devsetup.logger import RunLogger


class TestRunLogger(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.output = io.StringIO()

    def tearDown(self):
        self._tmp.cleanup()

    def logger(self, **kwargs):
        return RunLogger("provision", log_dir=Path(self._tmp.name), console=Console(file=self.output), **kwargs)

    def test_log_file_has_header_and_status(self):
        logger = self.logger()
        logger.step("Applying File Locations")
        logger.success("Create directory: /tmp/dev")
        logger.close()

        text = logger.log_path.read_text(encoding="utf-8")
        self.assertTrue(logger.log_path.name.endswith("_provision.log"))
        self.assertIn("Operation: provision", text)
        self.assertIn("[INFO] Step: Applying File Locations", text)
        self.assertIn("Status: SUCCESS", text)

    def test_errors_mark_run_failed(self):
        logger = self.logger()
        logger.log_error("[signing] no key", context="Set signing.signingKey")
        logger.close()

        text = logger.log_path.read_text(encoding="utf-8")
        self.assertIn("Context: Set signing.signingKey", text)
        self.assertIn("Status: FAILED", text)
        self.assertIn("[signing] no key", self.output.getvalue())

    def test_command_output_strips_ansi(self):
        with self.logger() as logger:
            logger.log_output("\x1b[32mok\x1b[0m\nsecond")
            path = logger.log_path

        text = path.read_text(encoding="utf-8")
        self.assertIn("  [stdout] ok\n", text)
        self.assertIn("  [stdout] second\n", text)


if __name__ == "__main__":
    unittest.main()
