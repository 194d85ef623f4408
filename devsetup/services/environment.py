"""Persistent user-level environment variables."""

import re
import shlex
import sys
from pathlib import Path
from typing import Dict, Optional, Protocol

from devsetup.constants import POSIX_ENVIRONMENT_FILE, USER_ENVIRONMENT_KEY
from devsetup.services.command_runner import CommandRunner, check_result
from devsetup.services.registry import PreferenceStore, WindowsRegistryAccessor

_EXPORT_LINE = re.compile(r"^export\s+([A-Za-z_][A-Za-z0-9_]*)=(.*)$")


class EnvironmentStore(Protocol):
    """Get/set variables that survive the current process."""

    def get(self, name: str) -> Optional[str]:  # pragma: no cover - protocol
        ...

    def set(self, name: str, value: str) -> None:  # pragma: no cover - protocol
        ...


class WindowsEnvironmentStore:
    """User environment under HKCU\\Environment; writes go through setx so Explorer is notified."""

    def __init__(self, registry: PreferenceStore, runner: CommandRunner):
        self.registry = registry
        self.runner = runner

    def get(self, name: str) -> Optional[str]:
        value = self.registry.get_value(USER_ENVIRONMENT_KEY, name)
        return None if value is None else str(value)

    def set(self, name: str, value: str) -> None:
        check_result(self.runner.run(["setx", name, value]))


class ProfileEnvironmentStore:
    """
    POSIX fallback: a managed shell file of `export NAME=value` lines.

    Users source it from their shell profile.
    """

    def __init__(self, path: Path):
        self.path = Path(path).expanduser()

    def _read(self) -> Dict[str, str]:
        values: Dict[str, str] = {}
        if not self.path.exists():
            return values
        for line in self.path.read_text(encoding="utf-8").splitlines():
            match = _EXPORT_LINE.match(line.strip())
            if match:
                parsed = shlex.split(match.group(2))
                values[match.group(1)] = parsed[0] if parsed else ""
        return values

    def get(self, name: str) -> Optional[str]:
        return self._read().get(name)

    def set(self, name: str, value: str) -> None:
        values = self._read()
        values[name] = value
        self.path.parent.mkdir(parents=True, exist_ok=True)
        lines = ["# Managed by devsetup"]
        lines += [f"export {key}={shlex.quote(val)}" for key, val in values.items()]
        self.path.write_text("\n".join(lines) + "\n", encoding="utf-8")


def default_environment_store(runner: CommandRunner) -> EnvironmentStore:
    """Registry-backed store on Windows, the managed shell file elsewhere."""
    if sys.platform == "win32":
        return WindowsEnvironmentStore(WindowsRegistryAccessor(), runner)
    return ProfileEnvironmentStore(Path(POSIX_ENVIRONMENT_FILE))
