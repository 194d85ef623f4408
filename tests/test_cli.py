import io
import json
import tempfile
import unittest
from pathlib import Path

from click.testing import CliRunner
from rich.console import Console

from devsetup.commands.doctor import DoctorCommand
from devsetup.main import cli
from tests.fakes import FakeRunner


class CliTestCase(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.tmp = Path(self._tmp.name)
        self.dev = self.tmp / "dev"
        self.config_path = self.tmp / "config.json"
        self.config_path.write_text(
            json.dumps(
                {
                    "fileLocations": {
                        "developmentRoot": str(self.dev),
                        "defaultFolders": ["tools"],
                        "setEnvironmentVariables": False,
                    }
                }
            ),
            encoding="utf-8",
        )
        self.runner = CliRunner(env={"DEVSETUP_LOG_DIR": str(self.tmp / "logs"), "DEVSETUP_CONFIG": None})

    def tearDown(self):
        self._tmp.cleanup()

    def invoke(self, *args, **kwargs):
        return self.runner.invoke(cli, list(args), **kwargs)


class TestProvision(CliTestCase):
    def test_help(self):
        result = self.invoke("--help")
        self.assertEqual(result.exit_code, 0)
        self.assertIn("--dry-run", result.output)
        self.assertIn("doctor", result.output)

    def test_dry_run_changes_nothing(self):
        result = self.invoke("--dry-run", "--config", str(self.config_path))

        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("2 change(s) planned", result.output)
        self.assertFalse(self.dev.exists())

    def test_force_applies_everything(self):
        result = self.invoke("--force", "--config", str(self.config_path))

        self.assertEqual(result.exit_code, 0, result.output)
        self.assertTrue((self.dev / "tools").is_dir())
        self.assertTrue(list((self.tmp / "logs").glob("*/*_provision.log")))

    def test_skipped_domain_is_not_run(self):
        result = self.invoke("--force", "--skip-file-locations", "--config", str(self.config_path))
        self.assertEqual(result.exit_code, 0, result.output)
        self.assertFalse(self.dev.exists())

    def test_missing_config_exits_with_error(self):
        result = self.invoke("--dry-run", "--config", str(self.tmp / "missing.json"))
        self.assertEqual(result.exit_code, 1)
        self.assertIn("Configuration file not found", result.output)

    def test_invalid_config_exits_with_error(self):
        self.config_path.write_text('{"terminal": {"opacity": 150}}', encoding="utf-8")
        result = self.invoke("--force", "--config", str(self.config_path))
        self.assertEqual(result.exit_code, 1)

    def test_missing_development_root_fails_only_that_domain(self):
        self.config_path.write_text('{"fileLocations": {"defaultFolders": ["tools"]}}', encoding="utf-8")
        result = self.invoke("--force", "--config", str(self.config_path))
        self.assertEqual(result.exit_code, 1)
        self.assertIn("developmentRoot is not set", result.output)

    def test_menu_dry_run_then_quit(self):
        result = self.invoke("--config", str(self.config_path), input="7\nq\n")

        self.assertEqual(result.exit_code, 0, result.output)
        self.assertIn("2 change(s) planned", result.output)
        self.assertFalse(self.dev.exists())

    def test_menu_runs_single_domain(self):
        result = self.invoke("--config", str(self.config_path), input="1\nq\n")

        self.assertEqual(result.exit_code, 0, result.output)
        self.assertTrue(self.dev.is_dir())


class TestDoctor(CliTestCase):
    def doctor(self, config_path, tools=("git",)):
        output = io.StringIO()
        command = DoctorCommand(
            runner=FakeRunner(tools),
            config_path=str(config_path),
            console=Console(file=output, width=200),
        )
        return command, output

    def test_healthy_configuration(self):
        command, output = self.doctor(self.config_path)

        command.run()

        text = output.getvalue()
        self.assertIn("Installed", text)
        self.assertIn("Missing", text)
        self.assertIn("Valid", text)
        self.assertIn("fileLocations", text)

    def test_invalid_configuration_fails(self):
        command, output = self.doctor(self.tmp / "missing.json")

        with self.assertRaises(SystemExit) as ctx:
            command.run()

        self.assertEqual(ctx.exception.code, 1)
        self.assertIn("Invalid", output.getvalue())

    def test_signed_out_vault_reported(self):
        command, output = self.doctor(self.config_path, tools=("op",))
        command.runner.on("op", "whoami", returncode=1)

        command.run()

        self.assertIn("Signed out", output.getvalue())

    def test_vault_check_uses_configured_account(self):
        self.config_path.write_text(
            json.dumps({"fileLocations": {"developmentRoot": "X"}, "1password": {"account": "my.1password.com"}}),
            encoding="utf-8",
        )
        command, output = self.doctor(self.config_path, tools=("op",))

        command.run()

        self.assertEqual(
            command.runner.called("op", "whoami"), [["op", "whoami", "--account", "my.1password.com"]]
        )
        self.assertIn("Signed in", output.getvalue())

    def test_vault_check_without_account(self):
        command, _ = self.doctor(self.config_path, tools=("op",))
        command.run()
        self.assertEqual(command.runner.called("op", "whoami"), [["op", "whoami"]])


if __name__ == "__main__":
    unittest.main()
