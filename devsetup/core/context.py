"""
Environment Context

Explicit replacement for ambient process state: the environment mapping
used for path expansion and the persistent user-level environment store.
Every reconciler receives one of these instead of reading os.environ.
"""

import ntpath
import os
import posixpath
import re
import sys
from typing import Dict, Mapping, Optional

from devsetup.services.environment import EnvironmentStore

_PERCENT_VAR = re.compile(r"%([A-Za-z_][A-Za-z0-9_()]*)%")
_DOLLAR_VAR = re.compile(r"\$(?:\{([A-Za-z_][A-Za-z0-9_]*)\}|([A-Za-z_][A-Za-z0-9_]*))")


class EnvironmentContext:
    """
    Expands and compares paths against an explicit environment.

    Values set through set_persistent() are also visible to later
    expansions in the same run.
    """

    def __init__(
        self,
        environ: Optional[Mapping[str, str]] = None,
        store: Optional[EnvironmentStore] = None,
        windows: Optional[bool] = None,
    ):
        """
        Initialize environment context.

        Args:
            environ: Environment mapping to expand against (defaults to a copy of os.environ)
            store: Persistent user environment store
            windows: Use Windows path/variable semantics (defaults to the running OS)
        """
        self.windows = sys.platform == "win32" if windows is None else windows
        self.store = store
        self._environ: Dict[str, str] = {}
        for key, value in (os.environ if environ is None else environ).items():
            self._environ[self._key(key)] = value

    def _key(self, name: str) -> str:
        # Windows variable names are case-insensitive
        return name.upper() if self.windows else name

    def get(self, name: str) -> Optional[str]:
        """Look up a variable in the context environment."""
        return self._environ.get(self._key(name))

    def expand(self, value: Optional[str]) -> str:
        """
        Expand %VAR%, $VAR, ${VAR} and a leading ~.

        Unknown variables are left untouched so has_unresolved() can
        report them.

        Args:
            value: Raw configuration string

        Returns:
            Expanded string ("" for None)
        """
        if not value:
            return ""

        def percent(match):
            found = self.get(match.group(1))
            return found if found is not None else match.group(0)

        def dollar(match):
            found = self.get(match.group(1) or match.group(2))
            return found if found is not None else match.group(0)

        expanded = _PERCENT_VAR.sub(percent, value)
        expanded = _DOLLAR_VAR.sub(dollar, expanded)

        if expanded == "~" or expanded.startswith(("~/", "~\\")):
            home = self.get("USERPROFILE") if self.windows else None
            home = home or self.get("HOME")
            if home:
                expanded = home + expanded[1:]

        return expanded.strip()

    def has_unresolved(self, value: str) -> bool:
        """Check whether an expanded value still carries variable tokens."""
        return bool(
            _PERCENT_VAR.search(value)
            or _DOLLAR_VAR.search(value)
            or value.startswith("~")
        )

    def normalize(self, path: str) -> str:
        """
        Canonical form of a path for comparisons.

        Args:
            path: Raw or expanded path

        Returns:
            Expanded, normalized, case-folded (on Windows) path
        """
        expanded = self.expand(path)
        if not expanded:
            return ""
        if self.windows:
            normalized = ntpath.normpath(expanded.replace("/", "\\"))
            if len(normalized) > 3:
                normalized = normalized.rstrip("\\")
            return normalized.lower()
        return posixpath.normpath(expanded)

    def same_path(self, left: Optional[str], right: Optional[str]) -> bool:
        """Compare two paths after expansion and normalization."""
        if not left or not right:
            return False
        return self.normalize(left) == self.normalize(right)

    def join(self, base: str, *parts: str) -> str:
        """Join path parts with the separator of the target OS."""
        sep = "\\" if self.windows else "/"
        joined = base.rstrip("\\/")
        for part in parts:
            joined = joined + sep + part.strip("\\/")
        return joined

    def get_persistent(self, name: str) -> Optional[str]:
        """Read a user-level persistent environment variable."""
        if self.store is None:
            return None
        return self.store.get(name)

    def set_persistent(self, name: str, value: str) -> None:
        """
        Write a user-level persistent environment variable.

        The value is also made visible to this context.
        """
        if self.store is not None:
            self.store.set(name, value)
        self._environ[self._key(name)] = value

    @classmethod
    def from_process(cls, store: Optional[EnvironmentStore] = None) -> "EnvironmentContext":
        """Build a context from the current process environment."""
        return cls(dict(os.environ), store=store)

    def __repr__(self) -> str:
        return f"EnvironmentContext(windows={self.windows}, vars={len(self._environ)})"
