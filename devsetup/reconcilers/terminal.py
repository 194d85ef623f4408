"""Terminal: Windows Terminal appearance and the PowerShell prompt."""

from functools import partial
from pathlib import Path
from typing import Any, Dict, List, Optional

from devsetup.constants import (
    DEFAULT_POWERSHELL_PROFILE_PATH,
    DEFAULT_TERMINAL_SETTINGS_PATH,
    DOMAIN_TERMINAL,
    PROMPT_ENGINE_BUILTIN,
    PROMPT_ENGINE_OH_MY_POSH,
)
from devsetup.core.config_loader import Configuration, TerminalConfig
from devsetup.core.reconciler import Reconciler
from devsetup.exceptions import ProbeError
from devsetup.models.results import Change
from devsetup.models.state import MachineState
from devsetup.services.terminal_service import (
    OhMyPoshService,
    PowerShellProfile,
    TerminalSettingsStore,
    render_prompt_block,
)

# (probe name, config attribute, label, path inside profiles.defaults)
APPEARANCE_SETTINGS = [
    ("FontFace", "font_face", "font face", ("font", "face")),
    ("FontSize", "font_size", "font size", ("font", "size")),
    ("ColorScheme", "color_scheme", "color scheme", ("colorScheme",)),
    ("CursorShape", "cursor_shape", "cursor shape", ("cursorShape",)),
    ("Opacity", "opacity", "opacity", ("opacity",)),
]


def _read_nested(document: Dict[str, Any], path: tuple) -> Any:
    node: Any = document
    for part in path:
        if not isinstance(node, dict):
            return None
        node = node.get(part)
    return node


def _write_nested(document: Dict[str, Any], path: tuple, value: Any) -> None:
    node = document
    for part in path[:-1]:
        child = node.get(part)
        if not isinstance(child, dict):
            child = {}
            node[part] = child
        node = child
    node[path[-1]] = value


class TerminalReconciler(Reconciler):
    """Font, colors and prompt, applied only when the terminal settings store exists."""

    domain = DOMAIN_TERMINAL
    config_key = "terminal"

    def __init__(self, *args, oh_my_posh: Optional[OhMyPoshService] = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.oh_my_posh = oh_my_posh or OhMyPoshService(self.runner)

    def section(self, config: Configuration) -> Optional[TerminalConfig]:
        return config.terminal

    def _settings_store(self, section: TerminalConfig) -> TerminalSettingsStore:
        return TerminalSettingsStore(
            Path(self.context.expand(section.settings_path or DEFAULT_TERMINAL_SETTINGS_PATH))
        )

    def _profile(self, section: TerminalConfig) -> PowerShellProfile:
        return PowerShellProfile(
            Path(self.context.expand(section.profile_path or DEFAULT_POWERSHELL_PROFILE_PATH))
        )

    def snapshot(self, section: TerminalConfig) -> MachineState:
        state = MachineState(self.domain)
        store = self._settings_store(section)

        self.probe(state, "SettingsStoreExists", store.exists, False)
        if not state.flag("SettingsStoreExists"):
            return state

        try:
            document = store.load()
        except ProbeError:
            state.set("SettingsReadable", False)
            return state
        state.set("SettingsReadable", True)

        defaults = document.get("profiles", {})
        defaults = defaults.get("defaults", {}) if isinstance(defaults, dict) else {}
        for probe, _, _, path in APPEARANCE_SETTINGS:
            state.set(probe, _read_nested(defaults, path))

        if section.custom_scheme is not None:
            desired = section.custom_scheme.as_settings()
            schemes = document.get("schemes", [])
            installed = next(
                (s for s in schemes if isinstance(s, dict) and s.get("name") == desired["name"]),
                None,
            )
            state.set("CustomSchemeInstalled", installed == desired)

        if section.prompt is not None:
            if section.prompt.engine == PROMPT_ENGINE_OH_MY_POSH:
                self.probe(state, "PromptEngineInstalled", self.oh_my_posh.is_installed, False)
            self.probe(state, "PromptBlock", self._profile(section).read_block, None)

        return state

    def plan(self, section: TerminalConfig, state: MachineState) -> List[Change]:
        store = self._settings_store(section)
        if not state.flag("SettingsStoreExists"):
            self.warn(f"Terminal settings not found at {store.path}; skipping terminal setup")
            return []
        if not state.flag("SettingsReadable"):
            self.add_plan_error(
                f"Terminal settings are not valid JSON: {store.path}",
                step="settings",
                context="Remove comments/trailing commas or fix the file by hand",
            )
            return []

        changes: List[Change] = []

        for probe, attribute, label, path in APPEARANCE_SETTINGS:
            desired = getattr(section, attribute)
            if desired is None or state.get(probe) == desired:
                continue
            changes.append(
                Change(
                    f"Set terminal {label}: {desired}",
                    action=partial(self._update_defaults, store, path, desired),
                    probe=probe,
                    before=state.get(probe),
                    after=desired,
                )
            )

        if section.custom_scheme is not None and not state.flag("CustomSchemeInstalled"):
            scheme = section.custom_scheme.as_settings()
            changes.append(
                Change(
                    f"Install color scheme: {scheme['name']}",
                    action=partial(self._install_scheme, store, scheme),
                    probe="CustomSchemeInstalled",
                    before=False,
                    after=True,
                )
            )

        if section.prompt is not None:
            engine = section.prompt.engine
            if engine == PROMPT_ENGINE_OH_MY_POSH and not state.flag("PromptEngineInstalled"):
                self.warn("oh-my-posh is not installed; using the built-in prompt")
                engine = PROMPT_ENGINE_BUILTIN
            theme = self.context.expand(section.prompt.theme) if section.prompt.theme else None
            block = render_prompt_block(section.prompt, engine, theme)
            if state.get("PromptBlock") != block:
                profile = self._profile(section)
                changes.append(
                    Change(
                        f"Configure {engine} prompt in {profile.path}",
                        action=partial(profile.write_block, block),
                        probe="PromptBlock",
                        before="configured" if state.get("PromptBlock") else "none",
                        after=engine,
                    )
                )

        return changes

    @staticmethod
    def _update_defaults(store: TerminalSettingsStore, path: tuple, value: Any) -> None:
        document = store.load()
        _write_nested(TerminalSettingsStore.profile_defaults(document), path, value)
        store.save(document)

    @staticmethod
    def _install_scheme(store: TerminalSettingsStore, scheme: Dict[str, Any]) -> None:
        document = store.load()
        schemes = [
            s for s in document.get("schemes", [])
            if not (isinstance(s, dict) and s.get("name") == scheme["name"])
        ]
        schemes.append(scheme)
        document["schemes"] = schemes
        store.save(document)
