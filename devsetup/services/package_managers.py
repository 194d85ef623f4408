"""Package manager adapters (winget, Chocolatey)."""

from abc import ABC, abstractmethod
from typing import Dict, List, Type

from devsetup.constants import (
    CHOCOLATEY_MANUAL_INSTALL,
    INSTALL_TIMEOUT,
    WINGET_MANUAL_INSTALL,
)
from devsetup.core.config_loader import PackageManagerKind
from devsetup.services.command_runner import CommandRunner, check_result


class PackageManager(ABC):
    """Capability interface every package manager implements."""

    kind: PackageManagerKind
    executable: str
    manual_install: str

    def __init__(self, runner: CommandRunner):
        self.runner = runner

    @property
    def label(self) -> str:
        return self.kind.label

    def is_installed(self) -> bool:
        """Check if the package manager itself is available."""
        return self.runner.which(self.executable)

    @abstractmethod
    def is_package_present(self, package_id: str) -> bool:
        """Check whether a package is installed. Failures read as not installed."""

    @abstractmethod
    def install(self, package_id: str, name: str) -> None:
        """Install a package. Raises CommandError on failure."""


class WingetManager(PackageManager):
    """Windows Package Manager"""

    kind = PackageManagerKind.WINGET
    executable = "winget"
    manual_install = WINGET_MANUAL_INSTALL

    def is_package_present(self, package_id: str) -> bool:
        result = self.runner.run(
            [
                "winget",
                "list",
                "--id",
                package_id,
                "--exact",
                "--accept-source-agreements",
                "--disable-interactivity",
            ]
        )
        return result.is_success and package_id.lower() in result.stdout.lower()

    def install(self, package_id: str, name: str) -> None:
        check_result(
            self.runner.run(
                [
                    "winget",
                    "install",
                    "--id",
                    package_id,
                    "--exact",
                    "--silent",
                    "--accept-package-agreements",
                    "--accept-source-agreements",
                    "--disable-interactivity",
                ],
                timeout=INSTALL_TIMEOUT,
                description=f"Installing {name}",
            )
        )


class ChocolateyManager(PackageManager):
    """Chocolatey"""

    kind = PackageManagerKind.CHOCOLATEY
    executable = "choco"
    manual_install = CHOCOLATEY_MANUAL_INSTALL

    def is_package_present(self, package_id: str) -> bool:
        # --limit-output prints "id|version" per installed match
        result = self.runner.run(["choco", "list", "--exact", package_id, "--limit-output"])
        if result.is_failure:
            return False
        prefix = f"{package_id.lower()}|"
        return any(
            line.strip().lower().startswith(prefix) for line in result.stdout.splitlines()
        )

    def install(self, package_id: str, name: str) -> None:
        check_result(
            self.runner.run(
                ["choco", "install", package_id, "-y", "--no-progress"],
                timeout=INSTALL_TIMEOUT,
                description=f"Installing {name}",
            )
        )


PACKAGE_MANAGERS: Dict[PackageManagerKind, Type[PackageManager]] = {
    PackageManagerKind.WINGET: WingetManager,
    PackageManagerKind.CHOCOLATEY: ChocolateyManager,
}


def get_package_manager(kind: PackageManagerKind, runner: CommandRunner) -> PackageManager:
    """Build the adapter for a package manager kind."""
    return PACKAGE_MANAGERS[kind](runner)


class ExtensionManager:
    """VS Code extension manager (`code` CLI)."""

    executable = "code"

    def __init__(self, runner: CommandRunner):
        self.runner = runner

    def is_installed(self) -> bool:
        return self.runner.which(self.executable)

    def list_extensions(self) -> List[str]:
        """Installed extension ids, lower-cased. Failures read as none installed."""
        result = self.runner.run([self.executable, "--list-extensions"])
        if result.is_failure:
            return []
        return [line.strip().lower() for line in result.stdout.splitlines() if line.strip()]

    def install(self, extension_id: str) -> None:
        check_result(
            self.runner.run(
                [self.executable, "--install-extension", extension_id, "--force"],
                timeout=INSTALL_TIMEOUT,
                description=f"Installing extension {extension_id}",
            )
        )
