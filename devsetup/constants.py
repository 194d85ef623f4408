"""
devsetup Constants

Centralized constants for magic values, defaults, and configuration.
"""

# Configuration discovery
CONFIG_ENV_VAR = "DEVSETUP_CONFIG"
DEFAULT_CONFIG_FILENAME = "config.json"
LOG_DIR_ENV_VAR = "DEVSETUP_LOG_DIR"
DEFAULT_LOG_DIR = "~/.devsetup/logs"
POSIX_ENVIRONMENT_FILE = "~/.config/devsetup/environment.sh"

# Domains, in execution order
DOMAIN_FILE_LOCATIONS = "file_locations"
DOMAIN_TERMINAL = "terminal"
DOMAIN_SOFTWARE = "software"
DOMAIN_EXPLORER = "explorer"
DOMAIN_IDENTITY = "github"

DOMAIN_ORDER = [
    DOMAIN_FILE_LOCATIONS,
    DOMAIN_TERMINAL,
    DOMAIN_SOFTWARE,
    DOMAIN_EXPLORER,
    DOMAIN_IDENTITY,
]

DOMAIN_LABELS = {
    DOMAIN_FILE_LOCATIONS: "File Locations",
    DOMAIN_TERMINAL: "Terminal",
    DOMAIN_SOFTWARE: "Software",
    DOMAIN_EXPLORER: "Explorer",
    DOMAIN_IDENTITY: "Git & GitHub",
}

# File locations
ENV_DEV_HOME = "DEV_HOME"
ENV_PROJECTS_HOME = "PROJECTS_HOME"

# Terminal
DEFAULT_TERMINAL_SETTINGS_PATH = (
    "%LOCALAPPDATA%\\Packages\\Microsoft.WindowsTerminal_8wekyb3d8bbwe"
    "\\LocalState\\settings.json"
)
DEFAULT_POWERSHELL_PROFILE_PATH = (
    "%USERPROFILE%\\Documents\\PowerShell\\Microsoft.PowerShell_profile.ps1"
)
PROMPT_BLOCK_START = "# >>> devsetup prompt >>>"
PROMPT_BLOCK_END = "# <<< devsetup prompt <<<"
PROMPT_ENGINE_OH_MY_POSH = "oh-my-posh"
PROMPT_ENGINE_BUILTIN = "builtin"
DEFAULT_TIMESTAMP_FORMAT = "HH:mm:ss"

# Explorer
EXPLORER_ADVANCED_KEY = (
    "HKCU\\Software\\Microsoft\\Windows\\CurrentVersion\\Explorer\\Advanced"
)
EXPLORER_CABINET_KEY = (
    "HKCU\\Software\\Microsoft\\Windows\\CurrentVersion\\Explorer\\CabinetState"
)
USER_ENVIRONMENT_KEY = "HKCU\\Environment"

# Identity
DEFAULT_SSH_KEY_PATH = "~/.ssh/id_ed25519"
DEFAULT_SSH_KEY_TYPE = "ed25519"
DEFAULT_GPG_PROGRAM = "gpg"
DEFAULT_SSH_KEY_FIELD = "private key"
DEFAULT_PUBLIC_KEY_FIELD = "public key"
DEFAULT_GPG_KEY_FIELD = "private key"
DEFAULT_TOKEN_FIELD = "credential"

# Package managers
WINGET_MANUAL_INSTALL = (
    "Install 'App Installer' from the Microsoft Store: "
    "https://apps.microsoft.com/detail/9nblggh4nns1"
)
CHOCOLATEY_MANUAL_INSTALL = (
    "Run the official installer from an elevated PowerShell: "
    "https://chocolatey.org/install"
)

# Tools checked by `devsetup doctor`
REQUIRED_TOOLS = [
    "git",
    "gh",
    "gpg",
    "ssh-keygen",
    "op",
    "winget",
    "choco",
    "code",
    "oh-my-posh",
]

# Command timeouts (seconds)
COMMAND_TIMEOUT = 120
INSTALL_TIMEOUT = 1800

# Log Configuration
LOG_DATE_FORMAT = "%Y-%m-%d"
LOG_TIME_FORMAT = "%H-%M-%S"
