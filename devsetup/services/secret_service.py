"""
Secret Provider Service

1Password CLI (`op`) backed secret lookups. Authentication is attempted at
most once per run; after a failure every lookup short-circuits.
"""

import os
import stat
from pathlib import Path
from typing import List, Optional, Protocol

from devsetup.core.config_loader import SecretsVaultConfig
from devsetup.exceptions import (
    SecretError,
    SecretNotFoundError,
    VaultAuthenticationError,
)
from devsetup.logger import RunLogger
from devsetup.models.secrets import SecretReference
from devsetup.services.command_runner import CommandRunner
from devsetup.services.prompt_service import PromptProvider


class SecretProvider(Protocol):
    """Vault abstraction consulted lazily by the identity domain."""

    def authenticate(self) -> bool:  # pragma: no cover - protocol
        ...

    def get_secret(self, item: str, field: str, vault: Optional[str] = None) -> str:  # pragma: no cover - protocol
        ...

    def import_key_material(
        self,
        item: str,
        destination: Path,
        private_field: str,
        public_field: Optional[str] = None,
    ) -> bool:  # pragma: no cover - protocol
        ...


def mask_secret(value: str, show_chars: int = 4) -> str:
    """
    Mask secret value for safe display.

    Args:
        value: Secret value to mask
        show_chars: Number of characters to show at end

    Returns:
        Masked string (e.g., "***abcd")
    """
    if not value or len(value) <= show_chars * 2:
        return "***"
    return f"***{value[-show_chars:]}"


class OnePasswordProvider:
    """
    Secret provider backed by the 1Password CLI.

    Responsibilities:
    - Memoized account/session check and sign-in
    - Field retrieval from vault items
    - Writing key material to disk with private permissions
    """

    def __init__(
        self,
        runner: CommandRunner,
        config: Optional[SecretsVaultConfig] = None,
        prompt: Optional[PromptProvider] = None,
        logger: Optional[RunLogger] = None,
    ):
        """
        Initialize secret provider.

        Args:
            runner: Command runner
            config: Vault settings (account, default vault)
            prompt: Used to ask before an interactive sign-in
            logger: Run logger
        """
        self.runner = runner
        self.config = config or SecretsVaultConfig()
        self.prompt = prompt
        self.logger = logger
        self._authenticated: Optional[bool] = None

    def _account_args(self) -> List[str]:
        return ["--account", self.config.account] if self.config.account else []

    def authenticate(self) -> bool:
        """
        Make sure the CLI has a usable session.

        Returns:
            True if authenticated (memoized for the rest of the run)
        """
        if self._authenticated is not None:
            return self._authenticated

        self._authenticated = self._try_authenticate()
        if self.logger:
            if self._authenticated:
                self.logger.log("1Password CLI authenticated")
            else:
                self.logger.warning("1Password CLI not authenticated; vault lookups disabled")
        return self._authenticated

    def _try_authenticate(self) -> bool:
        if not self.config.enabled or not self.runner.which("op"):
            return False

        if self.runner.run(["op", "whoami", *self._account_args()]).is_success:
            return True

        if self.prompt is not None and not self.prompt.confirm(
            "Sign in to 1Password now?", default=True
        ):
            return False

        signin = self.runner.run(
            ["op", "signin", *self._account_args()], timeout=None, interactive=True
        )
        if signin.is_failure:
            return False
        return self.runner.run(["op", "whoami", *self._account_args()]).is_success

    def get_secret(self, item: str, field: str, vault: Optional[str] = None) -> str:
        """
        Fetch one field of a vault item.

        Args:
            item: Item name or id
            field: Field label
            vault: Vault name (defaults to the configured vault)

        Returns:
            Field value

        Raises:
            VaultAuthenticationError: If the vault is not authenticated
            SecretNotFoundError: If the item or field does not exist
        """
        if not self.authenticate():
            raise VaultAuthenticationError(self.config.account)

        vault = vault or self.config.vault
        args = ["op", "item", "get", item, "--fields", f"label={field}", "--reveal"]
        if vault:
            args += ["--vault", vault]
        args += self._account_args()

        result = self.runner.run(args)
        value = result.stdout.strip()
        if result.is_failure or not value:
            raise SecretNotFoundError(item, field, vault)

        # Multi-line fields come back wrapped in double quotes
        if len(value) > 1 and value.startswith('"') and value.endswith('"'):
            value = value[1:-1]
        return value

    def resolve(self, reference: SecretReference) -> str:
        """Resolve a SecretReference."""
        return self.get_secret(reference.item_name, reference.field, reference.vault_hint)

    def import_key_material(
        self,
        item: str,
        destination: Path,
        private_field: str,
        public_field: Optional[str] = None,
    ) -> bool:
        """
        Write a key pair from the vault to disk.

        Args:
            item: Vault item holding the key
            destination: Private key path; the public key goes to destination + ".pub"
            private_field: Field holding the private key
            public_field: Field holding the public key (optional)

        Returns:
            True if the private key was written
        """
        try:
            private_key = self.get_secret(item, private_field)
        except SecretError as e:
            if self.logger:
                self.logger.warning(f"Could not read key from vault: {e.message}")
            return False

        destination = Path(destination)
        destination.parent.mkdir(parents=True, exist_ok=True)
        destination.write_text(private_key.rstrip("\n") + "\n", encoding="utf-8")
        os.chmod(destination, stat.S_IRUSR | stat.S_IWUSR)

        if public_field:
            try:
                public_key = self.get_secret(item, public_field)
            except SecretNotFoundError:
                public_key = None
            if public_key:
                public_path = destination.with_name(destination.name + ".pub")
                public_path.write_text(public_key.strip() + "\n", encoding="utf-8")

        if self.logger:
            self.logger.log(f"Key material from '{item}' written to {destination}")
        return True
