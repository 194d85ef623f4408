"""OS preference store backed by the Windows registry."""

from typing import Optional, Protocol, Tuple, Union

from devsetup.exceptions import PlatformNotSupportedError

try:  # Windows-only dependency, optional for test doubles
    import winreg  # type: ignore
except ImportError:  # pragma: no cover - not available on Linux runners
    winreg = None  # type: ignore

RegistryValue = Union[str, int]


class PreferenceStore(Protocol):
    """Read/write a typed value under a fixed key path."""

    def get_value(self, path: str, value_name: str) -> Optional[RegistryValue]:  # pragma: no cover - protocol
        ...

    def set_value(self, path: str, value_name: str, value: RegistryValue) -> None:  # pragma: no cover - protocol
        ...


class WindowsRegistryAccessor:
    """Minimal registry helper backed by winreg."""

    def __init__(self) -> None:
        if winreg is None:
            raise PlatformNotSupportedError(
                "Windows registry is not available on this platform",
                context="Explorer and user environment settings need Windows",
            )

    def get_value(self, path: str, value_name: str) -> Optional[RegistryValue]:
        """Read a value; a missing key or value reads as None."""
        hive, subkey = self._split_path(path)
        try:
            with winreg.OpenKey(hive, subkey) as key:
                value, _ = winreg.QueryValueEx(key, value_name)
                return value
        except FileNotFoundError:
            return None

    def set_value(self, path: str, value_name: str, value: RegistryValue) -> None:
        """Write a value, creating the key if needed. ints are stored as DWORD."""
        hive, subkey = self._split_path(path)
        value_type = winreg.REG_DWORD if isinstance(value, int) else winreg.REG_SZ
        with winreg.CreateKeyEx(hive, subkey) as key:
            winreg.SetValueEx(key, value_name, 0, value_type, value)

    @staticmethod
    def _split_path(path: str) -> Tuple[int, str]:
        root, _, subkey = path.replace("HKCU:\\", "HKCU\\").partition("\\")
        hives = {
            "HKCU": winreg.HKEY_CURRENT_USER,
            "HKEY_CURRENT_USER": winreg.HKEY_CURRENT_USER,
            "HKLM": winreg.HKEY_LOCAL_MACHINE,
            "HKEY_LOCAL_MACHINE": winreg.HKEY_LOCAL_MACHINE,
        }
        if root.upper() not in hives:
            raise ValueError(f"Unsupported registry hive: {root}")
        return hives[root.upper()], subkey
