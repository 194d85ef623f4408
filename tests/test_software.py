import unittest

from devsetup.core.config_loader import ConfigLoader
from devsetup.core.context import EnvironmentContext
from devsetup.reconcilers.software import SoftwareReconciler
from tests.fakes import FakeRunner, result


class FakeWinget:
    """winget list/install over an installed-id set."""

    def __init__(self, runner, installed=(), failing=()):
        self.installed = {i.lower() for i in installed}
        self.failing = set(failing)
        runner.tools.add("winget")
        runner.handle("winget", "list", handler=self._list)
        runner.handle("winget", "install", handler=self._install)

    def _list(self, args, _input):
        package_id = args[args.index("--id") + 1]
        if package_id.lower() in self.installed:
            return result(stdout=f"Name   Id   Version\n{package_id}  {package_id}  1.0\n")
        return result(1, stdout="No installed package found matching input criteria.")

    def _install(self, args, _input):
        package_id = args[args.index("--id") + 1]
        if package_id in self.failing:
            return result(1, stderr="Installer failed with exit code: 1603")
        self.installed.add(package_id.lower())
        return result()


class SoftwareTestCase(unittest.TestCase):
    def setUp(self):
        self.runner = FakeRunner()
        self.context = EnvironmentContext({}, windows=True)

    def run_software(self, section, dry_run=False):
        config = ConfigLoader.parse({"software": section})
        return SoftwareReconciler(self.context, self.runner).run(config, dry_run=dry_run)


class TestApplications(SoftwareTestCase):
    def test_missing_apps_installed_then_idempotent(self):
        winget = FakeWinget(self.runner, installed=["Git.Git"])
        section = {
            "packageManagers": ["winget"],
            "applications": [
                {"name": "Git", "packageId": "Git.Git"},
                {"name": "GitHub CLI", "packageId": "GitHub.cli", "source": "winget"},
            ],
        }

        first = self.run_software(section)

        self.assertEqual(first.descriptions, ["Install GitHub CLI (GitHub.cli) via winget"])
        self.assertIn("github.cli", winget.installed)
        self.assertEqual(self.run_software(section).descriptions, [])

    def test_duplicate_applications_planned_once(self):
        FakeWinget(self.runner)
        section = {
            "applications": [
                {"name": "Git", "packageId": "Git.Git"},
                {"name": "Git again", "packageId": "git.git", "source": "winget"},
            ]
        }
        outcome = self.run_software(section, dry_run=True)
        self.assertEqual(outcome.descriptions, ["Install Git (Git.Git) via winget"])

    def test_dry_run_never_installs(self):
        FakeWinget(self.runner)
        self.run_software({"applications": [{"name": "Git", "packageId": "Git.Git"}]}, dry_run=True)
        self.assertEqual(self.runner.called("winget", "install"), [])

    def test_one_failed_install_does_not_stop_the_rest(self):
        FakeWinget(self.runner, failing=["Broken.App"])
        section = {
            "applications": [
                {"name": "Broken", "packageId": "Broken.App"},
                {"name": "Git", "packageId": "Git.Git"},
            ]
        }

        outcome = self.run_software(section)

        failures = outcome.apply_result.failures
        self.assertEqual(len(failures), 1)
        self.assertEqual(failures[0].change.description, "Install Broken (Broken.App) via winget")
        self.assertIn("Command failed (1)", failures[0].error)
        self.assertEqual(
            [c.description for c in outcome.apply_result.applied], ["Install Git (Git.Git) via winget"]
        )

    def test_chocolatey_list_output_parsed(self):
        self.runner.tools.add("choco")
        self.runner.on("choco", "list", stdout="nodejs-lts|20.11.0\n")
        section = {"applications": [{"name": "Node", "packageId": "nodejs-lts", "source": "choco"}]}

        self.assertEqual(self.run_software(section, dry_run=True).descriptions, [])


class TestPackageManagers(SoftwareTestCase):
    def test_missing_manager_reported_with_guidance(self):
        FakeWinget(self.runner)
        section = {
            "packageManagers": ["winget", "chocolatey"],
            "applications": [
                {"name": "Node", "packageId": "nodejs-lts", "source": "choco"},
                {"name": "Git", "packageId": "Git.Git"},
            ],
        }

        outcome = self.run_software(section)

        self.assertEqual(
            outcome.descriptions,
            ["Install package manager: Chocolatey", "Install Git (Git.Git) via winget"],
        )
        self.assertEqual(outcome.errors, ["[applications] Cannot check Node: Chocolatey is not installed"])
        failures = outcome.apply_result.failures
        self.assertEqual(len(failures), 1)
        self.assertIn("must be installed manually", failures[0].error)
        self.assertEqual(len(outcome.apply_result.applied), 1)
        self.assertEqual(self.runner.called("choco"), [])


class TestExtensions(SoftwareTestCase):
    def test_only_missing_extensions_installed(self):
        self.runner.tools.add("code")
        self.runner.on("code", "--list-extensions", stdout="MS-Python.Python\n")
        section = {"vscodeExtensions": ["ms-python.python", "eamodio.gitlens", "EAMODIO.gitlens"]}

        outcome = self.run_software(section)

        self.assertEqual(outcome.descriptions, ["Install VS Code extension: eamodio.gitlens"])
        self.assertEqual(
            self.runner.called("code", "--install-extension"),
            [["code", "--install-extension", "eamodio.gitlens", "--force"]],
        )

    def test_missing_code_cli_is_a_plan_error(self):
        outcome = self.run_software({"vscodeExtensions": ["eamodio.gitlens"]})
        self.assertEqual(outcome.changes, [])
        self.assertEqual(outcome.errors, ["[extensions] VS Code CLI 'code' not found; extensions skipped"])

    def test_empty_section_has_nothing_to_do(self):
        outcome = self.run_software({})
        self.assertEqual(outcome.changes, [])
        self.assertEqual(outcome.errors, [])


if __name__ == "__main__":
    unittest.main()
