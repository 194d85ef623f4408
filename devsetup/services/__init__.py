"""
devsetup Services Layer

One adapter per external tool. Each wraps a CommandRunner (or a file /
registry store) behind a narrow, mockable interface.
"""

from .command_runner import CommandRunner, SubprocessRunner, check_result
from .environment import (
    EnvironmentStore,
    ProfileEnvironmentStore,
    WindowsEnvironmentStore,
    default_environment_store,
)
from .git_service import GitHubCliService, GitService
from .key_service import GpgKey, GpgService, SshKeyService
from .package_managers import ExtensionManager, PackageManager, get_package_manager
from .prompt_service import DefaultsPromptProvider, PromptProvider, RichPromptProvider
from .registry import PreferenceStore, WindowsRegistryAccessor
from .secret_service import OnePasswordProvider, SecretProvider, mask_secret
from .terminal_service import OhMyPoshService, PowerShellProfile, TerminalSettingsStore

__all__ = [
    "CommandRunner",
    "SubprocessRunner",
    "check_result",
    "EnvironmentStore",
    "ProfileEnvironmentStore",
    "WindowsEnvironmentStore",
    "default_environment_store",
    "GitHubCliService",
    "GitService",
    "GpgKey",
    "GpgService",
    "SshKeyService",
    "ExtensionManager",
    "PackageManager",
    "get_package_manager",
    "DefaultsPromptProvider",
    "PromptProvider",
    "RichPromptProvider",
    "PreferenceStore",
    "WindowsRegistryAccessor",
    "OnePasswordProvider",
    "SecretProvider",
    "mask_secret",
    "OhMyPoshService",
    "PowerShellProfile",
    "TerminalSettingsStore",
]
