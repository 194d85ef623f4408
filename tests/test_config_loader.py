import json
import tempfile
import unittest
from pathlib import Path

from pydantic import ValidationError

from devsetup.core.config_loader import (
    ConfigLoader,
    PackageManagerKind,
    load_config,
    resolve_config_path,
)
from devsetup.exceptions import ConfigNotFoundError, ConfigParseError, ConfigurationError


class ConfigFileTestCase(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.tmp = Path(self._tmp.name)

    def tearDown(self):
        self._tmp.cleanup()

    def write(self, document, name="config.json"):
        path = self.tmp / name
        if isinstance(document, str):
            path.write_text(document, encoding="utf-8")
        else:
            path.write_text(json.dumps(document), encoding="utf-8")
        return path


class TestConfigLoading(ConfigFileTestCase):
    def test_loads_camel_case_sections(self):
        path = self.write(
            {
                "fileLocations": {"developmentRoot": "%USERPROFILE%\\dev", "defaultFolders": ["a", "b"]},
                "terminal": {"fontFace": "Cascadia Code", "fontSize": 11, "prompt": {"engine": "builtin"}},
                "github": {"userName": "Jane", "signing": {"commitSigning": True}},
            }
        )
        config = load_config(path)

        self.assertEqual(config.file_locations.development_root, "%USERPROFILE%\\dev")
        self.assertEqual(config.file_locations.default_folders, ["a", "b"])
        self.assertTrue(config.file_locations.set_environment_variables)
        self.assertEqual(config.terminal.font_size, 11)
        self.assertTrue(config.terminal.prompt.show_git_branch)
        self.assertTrue(config.github.signing.enabled)
        self.assertIsNone(config.software)
        self.assertIsNone(config.explorer)

    def test_paths_are_not_expanded_at_load(self):
        config = load_config(self.write({"fileLocations": {"developmentRoot": "$HOME/dev"}}))
        self.assertEqual(config.file_locations.development_root, "$HOME/dev")

    def test_unknown_keys_are_ignored(self):
        config = load_config(
            self.write({"somethingElse": 1, "explorer": {"showHiddenFiles": True, "bogus": "x"}})
        )
        self.assertTrue(config.explorer.show_hidden_files)
        self.assertIsNone(config.explorer.show_file_extensions)

    def test_vault_section_aliases(self):
        config = load_config(self.write({"1password": {"account": "me.1password.com"}}))
        self.assertTrue(config.vault_enabled)
        self.assertEqual(config.secrets_vault.account, "me.1password.com")

        config = load_config(self.write({"secretsVault": {"enabled": False}}, "other.json"))
        self.assertFalse(config.vault_enabled)

        config = load_config(self.write({}, "empty.json"))
        self.assertFalse(config.vault_enabled)

    def test_application_source_is_a_closed_enum(self):
        config = load_config(
            self.write(
                {
                    "software": {
                        "packageManagers": ["Choco"],
                        "applications": [
                            {"name": "Git", "packageId": "Git.Git"},
                            {"name": "Node", "packageId": "nodejs-lts", "source": "choco"},
                        ],
                    }
                }
            )
        )
        apps = config.software.applications
        self.assertEqual(apps[0].source, PackageManagerKind.WINGET)
        self.assertEqual(apps[1].source, PackageManagerKind.CHOCOLATEY)
        self.assertEqual(
            config.software.required_managers,
            [PackageManagerKind.CHOCOLATEY, PackageManagerKind.WINGET],
        )

        with self.assertRaises(ConfigParseError) as ctx:
            load_config(
                self.write(
                    {"software": {"applications": [{"name": "X", "packageId": "x", "sourceManager": "scoop"}]}},
                    "bad.json",
                )
            )
        self.assertIn("software.applications.0.sourceManager", ctx.exception.context)

    def test_source_manager_key(self):
        config = load_config(
            self.write(
                {
                    "software": {
                        "applications": [
                            {"name": "Node", "packageId": "nodejs-lts", "sourceManager": "chocolatey"},
                            {"name": "Git", "packageId": "Git.Git", "source": "winget"},
                        ]
                    }
                }
            )
        )
        node, git = config.software.applications
        self.assertEqual(node.source, PackageManagerKind.CHOCOLATEY)
        self.assertEqual(node.key, ("nodejs-lts", PackageManagerKind.CHOCOLATEY))
        self.assertEqual(git.source, PackageManagerKind.WINGET)

    def test_git_settings_accept_primitive_values(self):
        config = load_config(
            self.write(
                {"github": {"gitSettings": {"pull.rebase": True, "core.abbrev": 12, "core.editor": "code"}}}
            )
        )
        settings = config.github.git_settings
        self.assertIs(settings["pull.rebase"], True)
        self.assertEqual(settings["core.abbrev"], 12)
        self.assertEqual(settings["core.editor"], "code")

    def test_configuration_is_immutable(self):
        config = load_config(self.write({"fileLocations": {"developmentRoot": "X"}}))
        with self.assertRaises(ValidationError):
            config.file_locations.development_root = "Y"


class TestConfigErrors(ConfigFileTestCase):
    def test_missing_file(self):
        with self.assertRaises(ConfigNotFoundError) as ctx:
            ConfigLoader(self.tmp / "nope.json").load()
        self.assertIsInstance(ctx.exception, ConfigurationError)
        self.assertIn("nope.json", ctx.exception.message)

    def test_invalid_json_reports_position(self):
        path = self.write('{\n  "fileLocations": {,}\n}')
        with self.assertRaises(ConfigParseError) as ctx:
            load_config(path)
        self.assertIn("Line 2", ctx.exception.context)

    def test_root_must_be_an_object(self):
        with self.assertRaises(ConfigParseError):
            load_config(self.write("[1, 2, 3]"))

    def test_missing_development_root_still_loads(self):
        config = load_config(
            self.write(
                {"fileLocations": {"defaultFolders": ["Projects"]}, "explorer": {"showHiddenFiles": True}}
            )
        )
        self.assertIsNone(config.file_locations.development_root)
        self.assertEqual(config.file_locations.default_folders, ["Projects"])
        self.assertTrue(config.explorer.show_hidden_files)

    def test_out_of_range_value(self):
        with self.assertRaises(ConfigParseError):
            load_config(self.write({"terminal": {"opacity": 150}}))


class TestResolveConfigPath(unittest.TestCase):
    def test_explicit_path_wins(self):
        path = resolve_config_path("custom.json", environ={"DEVSETUP_CONFIG": "env.json"})
        self.assertEqual(path, Path("custom.json"))

    def test_environment_variable(self):
        self.assertEqual(resolve_config_path(None, environ={"DEVSETUP_CONFIG": "env.json"}), Path("env.json"))

    def test_default_is_cwd_config(self):
        self.assertEqual(resolve_config_path(None, environ={}), Path.cwd() / "config.json")


if __name__ == "__main__":
    unittest.main()
