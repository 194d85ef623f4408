"""Explorer: display preferences stored in the user registry hive."""

from functools import partial
from typing import Callable, List, NamedTuple, Optional

from devsetup.constants import DOMAIN_EXPLORER, EXPLORER_ADVANCED_KEY, EXPLORER_CABINET_KEY
from devsetup.core.config_loader import Configuration, ExplorerConfig
from devsetup.core.reconciler import Reconciler
from devsetup.exceptions import PlatformNotSupportedError
from devsetup.models.results import Change
from devsetup.models.state import MachineState
from devsetup.services.command_runner import check_result
from devsetup.services.registry import PreferenceStore, WindowsRegistryAccessor

RESTART_PROBE = "ExplorerRestart"
REGISTRY_PROBE = "RegistryAvailable"


class ExplorerSetting(NamedTuple):
    """One config flag and the registry value it maps to."""

    field: str
    key: str
    value_name: str
    on: int
    off: int
    label: str

    def desired(self, enabled: bool) -> int:
        return self.on if enabled else self.off


EXPLORER_SETTINGS = [
    ExplorerSetting("show_file_extensions", EXPLORER_ADVANCED_KEY, "HideFileExt", 0, 1, "file extensions"),
    ExplorerSetting("show_hidden_files", EXPLORER_ADVANCED_KEY, "Hidden", 1, 2, "hidden files"),
    ExplorerSetting("show_protected_os_files", EXPLORER_ADVANCED_KEY, "ShowSuperHidden", 1, 0, "protected OS files"),
    ExplorerSetting("launch_to_this_pc", EXPLORER_ADVANCED_KEY, "LaunchTo", 1, 2, "open to This PC"),
    ExplorerSetting("show_full_path_in_title_bar", EXPLORER_CABINET_KEY, "FullPath", 1, 0, "full path in title bar"),
    ExplorerSetting("compact_mode", EXPLORER_ADVANCED_KEY, "UseCompactMode", 1, 0, "compact mode"),
]


class ExplorerReconciler(Reconciler):
    """
    Maps boolean flags 1:1 onto Explorer registry values.

    Any applied flag schedules a single Explorer restart at the end of the
    plan; it runs at most once per run no matter how many flags changed.
    """

    domain = DOMAIN_EXPLORER
    config_key = "explorer"

    def __init__(
        self,
        *args,
        registry: Optional[PreferenceStore] = None,
        registry_factory: Optional[Callable[[], PreferenceStore]] = None,
        **kwargs,
    ):
        super().__init__(*args, **kwargs)
        self._registry = registry
        self._registry_factory = registry_factory
        self._restarted = False

    @property
    def registry(self) -> PreferenceStore:
        """Registry accessor, created on first use."""
        if self._registry is None:
            factory = self._registry_factory or WindowsRegistryAccessor
            self._registry = factory()
        return self._registry

    def section(self, config: Configuration) -> Optional[ExplorerConfig]:
        return config.explorer

    def _read(self, setting: ExplorerSetting):
        return self.registry.get_value(setting.key, setting.value_name)

    def snapshot(self, section: ExplorerConfig) -> MachineState:
        state = MachineState(self.domain)
        try:
            self.registry
        except PlatformNotSupportedError as e:
            state.set(REGISTRY_PROBE, False)
            if self.logger:
                self.logger.log(f"Registry unavailable: {e.message}", "DEBUG")
            return state
        state.set(REGISTRY_PROBE, True)
        for setting in EXPLORER_SETTINGS:
            if getattr(section, setting.field) is None:
                continue
            self.probe(state, setting.value_name, partial(self._read, setting), None)
        return state

    def plan(self, section: ExplorerConfig, state: MachineState) -> List[Change]:
        if not state.flag(REGISTRY_PROBE):
            self.add_plan_error(
                "Windows registry is not available on this platform",
                step="registry",
                context="Explorer settings can only be applied on Windows",
            )
            return []

        changes: List[Change] = []

        for setting in EXPLORER_SETTINGS:
            enabled = getattr(section, setting.field)
            if enabled is None:
                continue
            desired = setting.desired(enabled)
            current = state.get(setting.value_name)
            if current == desired:
                continue
            verb = "Show" if enabled else "Hide"
            if setting.field in ("launch_to_this_pc", "compact_mode"):
                verb = "Enable" if enabled else "Disable"
            changes.append(
                Change(
                    f"{verb} {setting.label} ({setting.value_name}={desired})",
                    action=partial(self.registry_set, setting, desired),
                    probe=setting.value_name,
                    before=current,
                    after=desired,
                )
            )

        if changes and section.restart_explorer:
            changes.append(
                Change(
                    "Restart Windows Explorer",
                    action=self.restart_explorer,
                    probe=RESTART_PROBE,
                    before=None,
                    after="restarted",
                )
            )
        return changes

    def registry_set(self, setting: ExplorerSetting, value: int) -> None:
        self.registry.set_value(setting.key, setting.value_name, value)

    def restart_explorer(self) -> None:
        """Restart explorer.exe so the new preferences take effect. Runs once per run."""
        if self._restarted:
            return
        self._restarted = True
        check_result(
            self.runner.run(
                [
                    "powershell",
                    "-NoProfile",
                    "-Command",
                    "Stop-Process -Name explorer -Force",
                ],
                description="Restarting Windows Explorer",
            )
        )
