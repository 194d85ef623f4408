"""File locations: development directories and the variables pointing at them."""

from functools import partial
from pathlib import Path
from typing import List, Optional, Tuple

from devsetup.constants import DOMAIN_FILE_LOCATIONS, ENV_DEV_HOME, ENV_PROJECTS_HOME
from devsetup.core.config_loader import Configuration, FileLocationsConfig
from devsetup.core.reconciler import Reconciler
from devsetup.exceptions import PlanError
from devsetup.models.results import Change
from devsetup.models.state import MachineState

ROOT_PROBES = {
    "developmentRoot": "DevelopmentRootExists",
    "projectsRoot": "ProjectsRootExists",
    "githubRoot": "GitHubRootExists",
}


class FileLocationsReconciler(Reconciler):
    """Creates root/default folders and sets DEV_HOME / PROJECTS_HOME."""

    domain = DOMAIN_FILE_LOCATIONS
    config_key = "fileLocations"

    def section(self, config: Configuration) -> Optional[FileLocationsConfig]:
        return config.file_locations

    def _roots(self, section: FileLocationsConfig) -> List[Tuple[str, Optional[str]]]:
        return [
            ("developmentRoot", section.development_root),
            ("projectsRoot", section.projects_root),
            ("githubRoot", section.github_root),
        ]

    def _resolve(self, field: str, raw: str) -> str:
        """
        Expand a required path.

        Raises:
            PlanError: If it is empty or still has unexpanded variables
        """
        expanded = self.context.expand(raw)
        if not expanded:
            raise PlanError(f"{field} is empty", step=field)
        if self.context.has_unresolved(expanded):
            raise PlanError(
                f"{field} could not be expanded: {expanded}",
                step=field,
                context="Check that the referenced environment variables exist",
            )
        return expanded

    def snapshot(self, section: FileLocationsConfig) -> MachineState:
        state = MachineState(self.domain)

        for field, raw in self._roots(section):
            if raw is None:
                continue
            expanded = self.context.expand(raw)
            if expanded and not self.context.has_unresolved(expanded):
                self.probe(state, ROOT_PROBES[field], partial(Path(expanded).is_dir), False)
            else:
                state.set(ROOT_PROBES[field], False)

        development_root = self.context.expand(section.development_root)
        for folder in section.default_folders:
            if not development_root:
                state.set(f"Folder:{folder}", False)
                continue
            path = self.context.join(development_root, folder)
            self.probe(state, f"Folder:{folder}", partial(Path(path).is_dir), False)

        if section.set_environment_variables:
            self.probe(state, ENV_DEV_HOME, partial(self.context.get_persistent, ENV_DEV_HOME))
            if section.projects_root:
                self.probe(
                    state, ENV_PROJECTS_HOME, partial(self.context.get_persistent, ENV_PROJECTS_HOME)
                )

        return state

    def plan(self, section: FileLocationsConfig, state: MachineState) -> List[Change]:
        if not section.development_root:
            raise PlanError(
                "developmentRoot is not set",
                step="developmentRoot",
                context="Add fileLocations.developmentRoot to the configuration",
            )

        resolved = {}
        for field, raw in self._roots(section):
            if raw is not None:
                resolved[field] = self._resolve(field, raw)

        changes: List[Change] = []

        for field, path in resolved.items():
            probe = ROOT_PROBES[field]
            if not state.flag(probe):
                changes.append(
                    Change(
                        f"Create {field} directory: {path}",
                        action=partial(self._create_directory, path),
                        probe=probe,
                        before=False,
                        after=True,
                    )
                )

        development_root = resolved["developmentRoot"]
        for folder in section.default_folders:
            probe = f"Folder:{folder}"
            if not state.flag(probe):
                path = self.context.join(development_root, folder)
                changes.append(
                    Change(
                        f"Create directory: {path}",
                        action=partial(self._create_directory, path),
                        probe=probe,
                        before=False,
                        after=True,
                    )
                )

        if section.set_environment_variables:
            variables = [(ENV_DEV_HOME, development_root)]
            if "projectsRoot" in resolved:
                variables.append((ENV_PROJECTS_HOME, resolved["projectsRoot"]))
            for name, path in variables:
                current = state.get(name)
                # Compared expanded, so %USERPROFILE%\dev equals C:\Users\me\dev
                if not self.context.same_path(current, path):
                    changes.append(
                        Change(
                            f"Set {name}={path}",
                            action=partial(self.context.set_persistent, name, path),
                            probe=name,
                            before=current,
                            after=path,
                        )
                    )

        return changes

    @staticmethod
    def _create_directory(path: str) -> None:
        Path(path).mkdir(parents=True, exist_ok=True)
