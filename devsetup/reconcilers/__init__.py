"""
devsetup Reconcilers

One reconciler per configuration domain, built through build_reconciler().
"""

from typing import Dict, Optional, Type

from devsetup.constants import (
    DOMAIN_EXPLORER,
    DOMAIN_FILE_LOCATIONS,
    DOMAIN_IDENTITY,
    DOMAIN_SOFTWARE,
    DOMAIN_TERMINAL,
)
from devsetup.core.config_loader import Configuration
from devsetup.core.context import EnvironmentContext
from devsetup.core.reconciler import Reconciler
from devsetup.logger import RunLogger
from devsetup.services.command_runner import CommandRunner
from devsetup.services.prompt_service import PromptProvider
from devsetup.services.secret_service import OnePasswordProvider, SecretProvider

from .explorer import ExplorerReconciler
from .file_locations import FileLocationsReconciler
from .identity import IdentityReconciler
from .software import SoftwareReconciler
from .terminal import TerminalReconciler

RECONCILERS: Dict[str, Type[Reconciler]] = {
    DOMAIN_FILE_LOCATIONS: FileLocationsReconciler,
    DOMAIN_TERMINAL: TerminalReconciler,
    DOMAIN_SOFTWARE: SoftwareReconciler,
    DOMAIN_EXPLORER: ExplorerReconciler,
    DOMAIN_IDENTITY: IdentityReconciler,
}


def build_reconciler(
    domain: str,
    config: Configuration,
    context: EnvironmentContext,
    runner: CommandRunner,
    logger: Optional[RunLogger] = None,
    prompt: Optional[PromptProvider] = None,
    secrets: Optional[SecretProvider] = None,
) -> Reconciler:
    """
    Build the reconciler for a domain with its collaborators wired in.

    Args:
        domain: Domain name (see DOMAIN_ORDER)
        config: Loaded configuration
        context: Environment context shared by the run
        runner: Command runner
        logger: Run logger
        prompt: Prompt provider
        secrets: Vault provider to share between runs (built from config when omitted)

    Returns:
        Reconciler instance
    """
    if domain not in RECONCILERS:
        raise ValueError(f"Unknown domain: {domain}")

    if domain == DOMAIN_IDENTITY:
        if secrets is None and config.vault_enabled:
            secrets = OnePasswordProvider(runner, config.secrets_vault, prompt=prompt, logger=logger)
        return IdentityReconciler(context, runner, logger=logger, prompt=prompt, secrets=secrets)

    return RECONCILERS[domain](context, runner, logger=logger, prompt=prompt)


__all__ = [
    "RECONCILERS",
    "build_reconciler",
    "ExplorerReconciler",
    "FileLocationsReconciler",
    "IdentityReconciler",
    "SoftwareReconciler",
    "TerminalReconciler",
]
