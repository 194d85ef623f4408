"""Configuration management for devsetup"""

import json
import os
from enum import Enum
from pathlib import Path
from typing import Dict, List, Literal, Mapping, Optional, Union

from pydantic import (
    AliasChoices,
    BaseModel,
    ConfigDict,
    Field,
    ValidationError,
    field_validator,
)
from pydantic.alias_generators import to_camel

from devsetup.constants import (
    CONFIG_ENV_VAR,
    DEFAULT_CONFIG_FILENAME,
    DEFAULT_GPG_KEY_FIELD,
    DEFAULT_PUBLIC_KEY_FIELD,
    DEFAULT_SSH_KEY_FIELD,
    DEFAULT_SSH_KEY_PATH,
    DEFAULT_SSH_KEY_TYPE,
    DEFAULT_TIMESTAMP_FORMAT,
    DEFAULT_TOKEN_FIELD,
    PROMPT_ENGINE_BUILTIN,
)
from devsetup.exceptions import ConfigNotFoundError, ConfigParseError


class _Section(BaseModel):
    """Base for every config section: immutable, camelCase keys, unknown keys ignored."""

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        alias_generator=to_camel,
        extra="ignore",
    )


class PackageManagerKind(str, Enum):
    """Package managers devsetup knows how to drive."""

    WINGET = "winget"
    CHOCOLATEY = "chocolatey"

    @property
    def label(self) -> str:
        return {"winget": "winget", "chocolatey": "Chocolatey"}[self.value]


def _coerce_manager(value):
    if isinstance(value, str):
        value = value.strip().lower()
        if value == "choco":
            return PackageManagerKind.CHOCOLATEY.value
    return value


class FileLocationsConfig(_Section):
    """Directory layout and the environment variables pointing at it"""

    development_root: Optional[str] = None
    projects_root: Optional[str] = None
    github_root: Optional[str] = None
    default_folders: List[str] = Field(default_factory=list)
    set_environment_variables: bool = True


class ColorScheme(_Section):
    """A terminal color scheme. Extra color keys are passed through untouched."""

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="allow")

    name: str
    background: Optional[str] = None
    foreground: Optional[str] = None

    def as_settings(self) -> Dict[str, str]:
        """Scheme as it appears in the terminal settings document."""
        return self.model_dump(exclude_none=True)


class PromptConfig(_Section):
    """Prompt engine selection and built-in prompt segments"""

    engine: Literal["oh-my-posh", "builtin"] = PROMPT_ENGINE_BUILTIN
    theme: Optional[str] = None
    show_directory: bool = True
    show_git_branch: bool = True
    show_git_status: bool = True
    show_timestamp: bool = False
    timestamp_format: str = DEFAULT_TIMESTAMP_FORMAT


class TerminalConfig(_Section):
    """Terminal appearance and shell prompt"""

    settings_path: Optional[str] = None
    profile_path: Optional[str] = None
    font_face: Optional[str] = None
    font_size: Optional[int] = Field(default=None, gt=0)
    color_scheme: Optional[str] = None
    cursor_shape: Optional[str] = None
    opacity: Optional[int] = Field(default=None, ge=0, le=100)
    custom_scheme: Optional[ColorScheme] = None
    prompt: Optional[PromptConfig] = None


class ApplicationDescriptor(_Section):
    """An application to install. Identity is (package_id, source); read from `sourceManager`."""

    name: str
    package_id: str
    source: PackageManagerKind = Field(
        default=PackageManagerKind.WINGET,
        validation_alias=AliasChoices("sourceManager", "source"),
    )

    @field_validator("source", mode="before")
    @classmethod
    def normalize_source(cls, value):
        return _coerce_manager(value)

    @property
    def key(self) -> tuple:
        return (self.package_id.lower(), self.source)


class SoftwareConfig(_Section):
    """Package managers, applications and editor extensions"""

    package_managers: List[PackageManagerKind] = Field(default_factory=list)
    applications: List[ApplicationDescriptor] = Field(default_factory=list)
    vscode_extensions: List[str] = Field(default_factory=list)

    @field_validator("package_managers", mode="before")
    @classmethod
    def normalize_managers(cls, value):
        if isinstance(value, list):
            return [_coerce_manager(v) for v in value]
        return value

    @property
    def required_managers(self) -> List[PackageManagerKind]:
        """Configured managers plus any an application needs, first-seen order."""
        seen: List[PackageManagerKind] = []
        for kind in list(self.package_managers) + [a.source for a in self.applications]:
            if kind not in seen:
                seen.append(kind)
        return seen


class ExplorerConfig(_Section):
    """Explorer display preferences. Unset flags are left alone."""

    show_file_extensions: Optional[bool] = None
    show_hidden_files: Optional[bool] = None
    show_protected_os_files: Optional[bool] = None
    launch_to_this_pc: Optional[bool] = None
    show_full_path_in_title_bar: Optional[bool] = None
    compact_mode: Optional[bool] = None
    restart_explorer: bool = True


class SshKeyConfig(_Section):
    """SSH key location and where to get it from"""

    key_path: str = DEFAULT_SSH_KEY_PATH
    key_type: str = DEFAULT_SSH_KEY_TYPE
    comment: Optional[str] = None
    vault_item: Optional[str] = None
    private_key_field: str = DEFAULT_SSH_KEY_FIELD
    public_key_field: str = DEFAULT_PUBLIC_KEY_FIELD
    generate_if_missing: bool = True
    upload_to_github: bool = Field(default=False, validation_alias=AliasChoices("uploadToGitHub", "uploadToGithub"))
    title: Optional[str] = None


class SigningConfig(_Section):
    """Commit and tag signing"""

    commit_signing: bool = False
    tag_signing: bool = False
    signing_key: Optional[str] = None
    program: Optional[str] = None
    vault_item: Optional[str] = None
    vault_field: str = DEFAULT_GPG_KEY_FIELD

    @property
    def enabled(self) -> bool:
        return self.commit_signing or self.tag_signing


class GitHubConfig(_Section):
    """Git identity, SSH/GPG key material and GitHub CLI authentication"""

    user_name: Optional[str] = None
    user_email: Optional[str] = None
    default_branch: Optional[str] = None
    git_settings: Dict[str, Union[str, bool, int]] = Field(default_factory=dict)
    ssh: Optional[SshKeyConfig] = None
    signing: Optional[SigningConfig] = None
    authenticate_cli: bool = False
    token_vault_item: Optional[str] = None
    token_vault_field: str = DEFAULT_TOKEN_FIELD


class SecretsVaultConfig(_Section):
    """1Password CLI settings"""

    enabled: bool = True
    account: Optional[str] = None
    vault: Optional[str] = None


class Configuration(_Section):
    """Represents a loaded and validated devsetup configuration"""

    file_locations: Optional[FileLocationsConfig] = None
    terminal: Optional[TerminalConfig] = None
    software: Optional[SoftwareConfig] = None
    explorer: Optional[ExplorerConfig] = None
    github: Optional[GitHubConfig] = None
    secrets_vault: Optional[SecretsVaultConfig] = Field(
        default=None,
        validation_alias=AliasChoices("1password", "secretsVault", "secrets_vault"),
    )

    @property
    def vault_enabled(self) -> bool:
        return self.secrets_vault is not None and self.secrets_vault.enabled


def resolve_config_path(
    explicit: Optional[str] = None, environ: Optional[Mapping[str, str]] = None
) -> Path:
    """
    Work out which configuration file to load.

    Args:
        explicit: Path given on the command line
        environ: Environment mapping (defaults to os.environ)

    Returns:
        Path to the configuration file (may not exist)
    """
    environ = os.environ if environ is None else environ
    if explicit:
        return Path(explicit).expanduser()
    if environ.get(CONFIG_ENV_VAR):
        return Path(environ[CONFIG_ENV_VAR]).expanduser()
    return Path.cwd() / DEFAULT_CONFIG_FILENAME


class ConfigLoader:
    """Loads and validates the JSON configuration file"""

    def __init__(self, path: Path):
        self.path = Path(path)

    def load(self) -> Configuration:
        """
        Load configuration.

        Environment variables in path fields are NOT expanded here; that
        happens per field through EnvironmentContext when a domain uses it.

        Returns:
            Configuration object

        Raises:
            ConfigNotFoundError: If the file does not exist
            ConfigParseError: If the file is not valid JSON or fails validation
        """
        if not self.path.is_file():
            raise ConfigNotFoundError(str(self.path))

        try:
            raw = json.loads(self.path.read_text(encoding="utf-8-sig"))
        except json.JSONDecodeError as e:
            raise ConfigParseError(
                f"Invalid JSON in {self.path}",
                context=f"Line {e.lineno}, column {e.colno}: {e.msg}",
            )

        return self.parse(raw, source=str(self.path))

    @staticmethod
    def parse(raw: object, source: str = "<config>") -> Configuration:
        """
        Validate an already-decoded configuration document.

        Args:
            raw: Decoded JSON document
            source: Where it came from (for error messages)

        Returns:
            Configuration object

        Raises:
            ConfigParseError: If validation fails
        """
        if not isinstance(raw, dict):
            raise ConfigParseError(
                f"Configuration root must be a JSON object: {source}"
            )

        try:
            return Configuration.model_validate(raw)
        except ValidationError as e:
            first = e.errors()[0]
            location = ".".join(str(part) for part in first["loc"])
            raise ConfigParseError(
                f"Invalid configuration in {source}",
                context=f"{location}: {first['msg']}",
            )


def load_config(path: Path) -> Configuration:
    """Load configuration from a path."""
    return ConfigLoader(path).load()
