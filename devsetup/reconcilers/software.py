"""Software: package managers, applications and VS Code extensions."""

from functools import partial
from typing import Dict, List, Optional

from devsetup.constants import DOMAIN_SOFTWARE
from devsetup.core.config_loader import (
    ApplicationDescriptor,
    Configuration,
    PackageManagerKind,
    SoftwareConfig,
)
from devsetup.core.reconciler import Reconciler
from devsetup.exceptions import ApplyError
from devsetup.models.results import Change
from devsetup.models.state import MachineState
from devsetup.services.package_managers import (
    ExtensionManager,
    PackageManager,
    get_package_manager,
)


def _manager_probe(kind: PackageManagerKind) -> str:
    return f"Manager:{kind.value}"


def _app_probe(app: ApplicationDescriptor) -> str:
    return f"App:{app.source.value}:{app.package_id}"


def _extension_probe(extension_id: str) -> str:
    return f"Extension:{extension_id.lower()}"


class SoftwareReconciler(Reconciler):
    """
    Three independent levels, each idempotent on its own:

    1. package managers (presence only, manual install guidance when absent)
    2. applications (queried and installed through their package manager)
    3. VS Code extensions (queried and installed through `code`)
    """

    domain = DOMAIN_SOFTWARE
    config_key = "software"

    def __init__(
        self,
        *args,
        managers: Optional[Dict[PackageManagerKind, PackageManager]] = None,
        extensions: Optional[ExtensionManager] = None,
        **kwargs,
    ):
        super().__init__(*args, **kwargs)
        self._managers = dict(managers or {})
        self.extensions = extensions or ExtensionManager(self.runner)

    def section(self, config: Configuration) -> Optional[SoftwareConfig]:
        return config.software

    def manager(self, kind: PackageManagerKind) -> PackageManager:
        if kind not in self._managers:
            self._managers[kind] = get_package_manager(kind, self.runner)
        return self._managers[kind]

    @staticmethod
    def _applications(section: SoftwareConfig) -> List[ApplicationDescriptor]:
        """Applications with duplicates (same package id and source) dropped."""
        seen = set()
        unique = []
        for app in section.applications:
            if app.key not in seen:
                seen.add(app.key)
                unique.append(app)
        return unique

    def snapshot(self, section: SoftwareConfig) -> MachineState:
        state = MachineState(self.domain)

        for kind in section.required_managers:
            self.probe(state, _manager_probe(kind), self.manager(kind).is_installed, False)

        for app in self._applications(section):
            if not state.flag(_manager_probe(app.source)):
                continue
            self.probe(
                state,
                _app_probe(app),
                partial(self.manager(app.source).is_package_present, app.package_id),
                False,
            )

        if section.vscode_extensions:
            self.probe(state, "VSCodeInstalled", self.extensions.is_installed, False)
            if state.flag("VSCodeInstalled"):
                installed = []
                try:
                    installed = self.extensions.list_extensions()
                except OSError as e:
                    if self.logger:
                        self.logger.log(f"Extension listing failed: {e}", "DEBUG")
                for extension_id in section.vscode_extensions:
                    state.set(_extension_probe(extension_id), extension_id.lower() in installed)

        return state

    def plan(self, section: SoftwareConfig, state: MachineState) -> List[Change]:
        changes: List[Change] = []

        for kind in section.required_managers:
            probe = _manager_probe(kind)
            if state.flag(probe):
                continue
            manager = self.manager(kind)
            changes.append(
                Change(
                    f"Install package manager: {manager.label}",
                    action=partial(self._manual_install, manager),
                    probe=probe,
                    before=False,
                    after=True,
                    step="package_managers",
                )
            )

        for app in self._applications(section):
            if not state.flag(_manager_probe(app.source)):
                self.add_plan_error(
                    f"Cannot check {app.name}: {app.source.label} is not installed",
                    step="applications",
                )
                continue
            if state.flag(_app_probe(app)):
                continue
            manager = self.manager(app.source)
            changes.append(
                Change(
                    f"Install {app.name} ({app.package_id}) via {manager.label}",
                    action=partial(manager.install, app.package_id, app.name),
                    probe=_app_probe(app),
                    before=False,
                    after=True,
                    step="applications",
                )
            )

        if section.vscode_extensions:
            if not state.flag("VSCodeInstalled"):
                self.add_plan_error(
                    "VS Code CLI 'code' not found; extensions skipped",
                    step="extensions",
                    context="Install VS Code and make sure 'code' is on PATH",
                )
            else:
                planned = set()
                for extension_id in section.vscode_extensions:
                    probe = _extension_probe(extension_id)
                    if state.flag(probe) or probe in planned:
                        continue
                    planned.add(probe)
                    changes.append(
                        Change(
                            f"Install VS Code extension: {extension_id}",
                            action=partial(self.extensions.install, extension_id),
                            probe=probe,
                            before=False,
                            after=True,
                            step="extensions",
                        )
                    )

        return changes

    @staticmethod
    def _manual_install(manager: PackageManager) -> None:
        raise ApplyError(
            f"{manager.label} is not installed and must be installed manually",
            context=manager.manual_install,
        )
