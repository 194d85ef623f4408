"""
devsetup Exception Hierarchy

Clean exception hierarchy for consistent error handling across the CLI.
Only configuration errors are fatal for a run; everything else is
recorded against the domain it happened in.
"""

from typing import Optional


class DevSetupError(Exception):
    """Base exception for all devsetup errors."""

    def __init__(self, message: str, context: Optional[str] = None):
        self.message = message
        self.context = context
        super().__init__(self.format_message())

    def format_message(self) -> str:
        """Format error message with optional context."""
        if self.context:
            return f"{self.message}\nContext: {self.context}"
        return self.message


class ConfigurationError(DevSetupError):
    """Raised when configuration is invalid or missing."""

    pass


class ConfigNotFoundError(ConfigurationError):
    """Raised when the configuration file does not exist."""

    def __init__(self, path: str):
        self.path = path
        super().__init__(
            f"Configuration file not found: {path}",
            context="Pass --config PATH or set DEVSETUP_CONFIG",
        )


class ConfigParseError(ConfigurationError):
    """Raised when the configuration file is not valid JSON or fails validation."""

    pass


class ProbeError(DevSetupError):
    """Raised when machine state cannot be read. Always defaulted by probes."""

    pass


class PlanError(DevSetupError):
    """Raised when a domain (or one step of it) cannot be planned."""

    def __init__(self, message: str, step: Optional[str] = None, context: Optional[str] = None):
        self.step = step
        super().__init__(message, context)


class ApplyError(DevSetupError):
    """Raised when a single planned change fails to apply."""

    pass


class CommandError(ApplyError):
    """Raised when an external command exits non-zero during apply."""

    def __init__(self, command: str, returncode: int, output: str = ""):
        self.command = command
        self.returncode = returncode
        self.output = output
        context = output.strip().splitlines()[-1] if output.strip() else None
        super().__init__(f"Command failed ({returncode}): {command}", context)


class SecretError(DevSetupError):
    """Raised when secret operations fail."""

    pass


class VaultAuthenticationError(SecretError):
    """Raised when the secrets vault cannot be authenticated."""

    def __init__(self, account: Optional[str] = None):
        self.account = account
        message = "Secrets vault is not authenticated"
        context = f"Account: {account}" if account else "Run: op signin"
        super().__init__(message, context)


class SecretNotFoundError(SecretError):
    """Raised when a vault item or field does not exist."""

    def __init__(self, item: str, field: str, vault: Optional[str] = None):
        self.item = item
        self.field = field
        self.vault = vault
        message = f"Secret '{field}' not found in item '{item}'"
        context = f"Vault: {vault}" if vault else None
        super().__init__(message, context)


class PlatformNotSupportedError(DevSetupError):
    """Raised when a domain needs an OS facility that is not available here."""

    pass
