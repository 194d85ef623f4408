"""
Identity Reconciler

Git identity, SSH key material, commit/tag signing and GitHub CLI
authentication. Progress is tracked as a small state machine:

    Unconfigured -> KeyMaterialResolved -> GitSettingsApplied
                 -> SigningVerified -> Authenticated

A stage whose config is off is passed through. A failing stage parks the
machine at the last stage that completed; nothing is rolled back.
"""

from collections import OrderedDict
from functools import partial
from pathlib import Path
from typing import Dict, List, Optional

from devsetup.constants import DEFAULT_GPG_PROGRAM, DOMAIN_IDENTITY
from devsetup.core.config_loader import Configuration, GitHubConfig, SshKeyConfig
from devsetup.core.reconciler import Reconciler
from devsetup.exceptions import ApplyError, SecretError
from devsetup.models.results import Change, DomainResult
from devsetup.models.secrets import SecretReference
from devsetup.models.state import MachineState
from devsetup.services.git_service import GitHubCliService, GitService
from devsetup.services.key_service import GpgKey, GpgService, SshKeyService
from devsetup.services.secret_service import SecretProvider

STAGE_UNCONFIGURED = "Unconfigured"
STAGE_KEY_MATERIAL = "KeyMaterialResolved"
STAGE_GIT_SETTINGS = "GitSettingsApplied"
STAGE_SIGNING = "SigningVerified"
STAGE_AUTHENTICATED = "Authenticated"

STEP_KEY_MATERIAL = "key_material"
STEP_GIT_SETTINGS = "git_settings"
STEP_SIGNING = "signing"
STEP_AUTHENTICATION = "authentication"

# (stage reached, step that reaches it), in order
STAGES = [
    (STAGE_KEY_MATERIAL, STEP_KEY_MATERIAL),
    (STAGE_GIT_SETTINGS, STEP_GIT_SETTINGS),
    (STAGE_SIGNING, STEP_SIGNING),
    (STAGE_AUTHENTICATED, STEP_AUTHENTICATION),
]

SIGNING_KEYS = ["commit.gpgsign", "tag.gpgsign", "user.signingkey", "gpg.program"]


def _git_probe(key: str) -> str:
    return f"git:{key}"


def _bool_setting(value: bool) -> str:
    return "true" if value else "false"


def _key_known(wanted: Optional[str], key_ids: List[str]) -> bool:
    """Match a key id or fingerprint against listed long key ids."""
    if not wanted:
        return False
    wanted = wanted.upper()
    if wanted.startswith("0X"):
        wanted = wanted[2:]
    return any(wanted.endswith(kid.upper()) or kid.upper().endswith(wanted) for kid in key_ids)


def _public_key_body(text: Optional[str]) -> Optional[str]:
    """"<type> <base64>" of an OpenSSH public key, without the comment."""
    if not text:
        return None
    parts = text.split()
    return " ".join(parts[:2]) if len(parts) >= 2 else None


class IdentityReconciler(Reconciler):
    """Git/GitHub identity. The only domain that consults the secrets vault."""

    domain = DOMAIN_IDENTITY
    config_key = "github"

    def __init__(self, *args, secrets: Optional[SecretProvider] = None, **kwargs):
        super().__init__(*args, **kwargs)
        self.secrets = secrets
        self.git = GitService(self.runner)
        self.gh = GitHubCliService(self.runner)
        self.ssh_keys = SshKeyService(self.runner)
        self.gpg = GpgService(self.runner)

    def section(self, config: Configuration) -> Optional[GitHubConfig]:
        return config.github

    def _key_path(self, ssh: SshKeyConfig) -> str:
        return self.context.expand(ssh.key_path)

    @staticmethod
    def _uses_github_cli(section: GitHubConfig) -> bool:
        return section.authenticate_cli or (section.ssh is not None and section.ssh.upload_to_github)

    @staticmethod
    def _identity_settings(section: GitHubConfig) -> Dict[str, str]:
        settings: Dict[str, str] = OrderedDict()
        if section.user_name:
            settings["user.name"] = section.user_name
        if section.user_email:
            settings["user.email"] = section.user_email
        if section.default_branch:
            settings["init.defaultBranch"] = section.default_branch
        for key, value in section.git_settings.items():
            settings[key] = _bool_setting(value) if isinstance(value, bool) else str(value)
        return settings

    # ------------------------------------------------------------------
    # Snapshot
    # ------------------------------------------------------------------

    def snapshot(self, section: GitHubConfig) -> MachineState:
        state = MachineState(self.domain)
        signing = section.signing
        self.gpg = GpgService(self.runner, signing.program if signing else None)

        if section.ssh is not None:
            key_path = Path(self._key_path(section.ssh))
            public_path = key_path.with_name(key_path.name + ".pub")
            self.probe(state, "SshKeyExists", key_path.is_file, False)
            self.probe(state, "SshKeygenInstalled", self.ssh_keys.is_installed, False)
            if section.ssh.upload_to_github:
                self.probe(
                    state,
                    "SshPublicKey",
                    lambda: _public_key_body(public_path.read_text(encoding="utf-8")),
                    None,
                )

        self.probe(state, "GitInstalled", self.git.is_installed, False)
        if state.flag("GitInstalled"):
            keys = list(self._identity_settings(section))
            if signing is not None and signing.enabled:
                keys += [key for key in SIGNING_KEYS if key not in keys]
            for key in keys:
                self.probe(state, _git_probe(key), partial(self.git.get_global, key), None)

        if signing is not None and signing.enabled:
            self.probe(state, "GpgInstalled", self.gpg.is_installed, False)
            if state.flag("GpgInstalled"):
                keys = [k for k in self.gpg.list_secret_keys() if k.usable]
                state.set("GpgKeys", [k.key_id for k in keys])
                state.set(
                    "GpgKeysForEmail",
                    [k.key_id for k in keys if k.matches_email(section.user_email)],
                )

        if self._uses_github_cli(section):
            self.probe(state, "GhInstalled", self.gh.is_installed, False)
            if state.flag("GhInstalled"):
                self.probe(state, "GhAuthenticated", self.gh.is_authenticated, False)
                if section.ssh is not None and section.ssh.upload_to_github and state.flag("GhAuthenticated"):
                    self.probe(state, "GhSshKeys", self.gh.list_ssh_keys, "")

        return state

    # ------------------------------------------------------------------
    # Plan
    # ------------------------------------------------------------------

    def plan(self, section: GitHubConfig, state: MachineState) -> List[Change]:
        changes: List[Change] = []
        if section.ssh is not None:
            changes += self._plan_key_material(section, section.ssh, state)
        changes += self._plan_git_settings(section, state)
        if section.signing is not None and section.signing.enabled:
            changes += self._plan_signing(section, state)
        if self._uses_github_cli(section):
            key_planned = any(c.step == STEP_KEY_MATERIAL for c in changes)
            changes += self._plan_authentication(section, state, key_planned)
        return changes

    def _plan_key_material(self, section: GitHubConfig, ssh: SshKeyConfig, state: MachineState) -> List[Change]:
        if state.flag("SshKeyExists"):
            return []

        key_path = self._key_path(ssh)
        if ssh.vault_item and self.secrets is not None:
            return [
                Change(
                    f"Import SSH key from vault item '{ssh.vault_item}' to {key_path}",
                    action=partial(self._import_ssh_key, section, ssh, key_path),
                    probe="SshKeyExists",
                    before=False,
                    after=True,
                    step=STEP_KEY_MATERIAL,
                )
            ]
        if ssh.vault_item:
            self.warn(f"Secrets vault disabled; SSH key '{ssh.vault_item}' will be generated instead")

        if not ssh.generate_if_missing:
            self.add_plan_error(
                f"SSH key not found: {key_path}",
                step=STEP_KEY_MATERIAL,
                context="Set ssh.vaultItem or ssh.generateIfMissing",
            )
            return []
        if not state.flag("SshKeygenInstalled"):
            self.add_plan_error(
                "ssh-keygen not found; cannot generate an SSH key",
                step=STEP_KEY_MATERIAL,
                context="Install the OpenSSH client",
            )
            return []
        return [
            Change(
                f"Generate {ssh.key_type} SSH key: {key_path}",
                action=partial(self._generate_ssh_key, section, ssh, key_path),
                probe="SshKeyExists",
                before=False,
                after=True,
                step=STEP_KEY_MATERIAL,
            )
        ]

    def _plan_git_settings(self, section: GitHubConfig, state: MachineState) -> List[Change]:
        settings = self._identity_settings(section)
        if not settings:
            return []
        if not state.flag("GitInstalled"):
            self.add_plan_error(
                "git not found; git settings skipped",
                step=STEP_GIT_SETTINGS,
                context="Install Git (e.g. winget Git.Git)",
            )
            return []
        return [
            self._git_change(key, value, state, STEP_GIT_SETTINGS)
            for key, value in settings.items()
            if state.get(_git_probe(key)) != value
        ]

    def _git_change(self, key: str, value: str, state: MachineState, step: str) -> Change:
        return Change(
            f"Set git {key}={value}",
            action=partial(self.git.set_global, key, value),
            probe=_git_probe(key),
            before=state.get(_git_probe(key)),
            after=value,
            step=step,
        )

    def _plan_signing(self, section: GitHubConfig, state: MachineState) -> List[Change]:
        signing = section.signing
        program = signing.program or DEFAULT_GPG_PROGRAM

        if not state.flag("GitInstalled"):
            self.add_plan_error("git not found; signing skipped", step=STEP_SIGNING)
            return []
        if not state.flag("GpgInstalled"):
            self.add_plan_error(
                f"Signing program '{program}' not found",
                step=STEP_SIGNING,
                context="Install GnuPG (e.g. winget GnuPG.GnuPG)",
            )
            return []

        key_changes = self._plan_signing_key(section, state)
        if key_changes is None:
            self.add_plan_error(
                "Signing is enabled but no signing key is resolvable",
                step=STEP_SIGNING,
                context="Set signing.signingKey, add a GPG key for "
                f"{section.user_email or 'your email'}, or set signing.vaultItem",
            )
            return []

        desired = OrderedDict()
        desired["commit.gpgsign"] = _bool_setting(signing.commit_signing)
        desired["tag.gpgsign"] = _bool_setting(signing.tag_signing)
        if signing.program:
            desired["gpg.program"] = signing.program

        changes = [
            self._git_change(key, value, state, STEP_SIGNING)
            for key, value in desired.items()
            if state.get(_git_probe(key)) != value
        ]
        changes += key_changes

        # Turning signing on makes the backend check mandatory
        if changes:
            changes.append(
                Change(
                    "Verify signing backend and selected key",
                    action=partial(self._verify_signing, program),
                    probe="SigningVerified",
                    before=None,
                    after=True,
                    step=STEP_SIGNING,
                )
            )
        return changes

    def _plan_signing_key(self, section: GitHubConfig, state: MachineState) -> Optional[List[Change]]:
        """
        Changes that select user.signingkey, or None when no key can be found.

        Order: explicit key, local keys for the user's email, vault import,
        any usable local key.
        """
        signing = section.signing
        local_keys = state.get("GpgKeys") or []
        email_keys = state.get("GpgKeysForEmail") or []
        current = state.get(_git_probe("user.signingkey"))

        if signing.signing_key:
            if current == signing.signing_key:
                return []
            return [self._git_change("user.signingkey", signing.signing_key, state, STEP_SIGNING)]

        if current and _key_known(current, local_keys):
            return []

        if email_keys:
            return self._local_key_changes(section, state, email_keys)

        if signing.vault_item and self.secrets is not None:
            return [
                Change(
                    f"Import GPG key from vault item '{signing.vault_item}'",
                    action=partial(self._import_gpg_key, signing.vault_item, signing.vault_field),
                    probe="GpgKeys",
                    before=len(local_keys),
                    after="imported",
                    step=STEP_SIGNING,
                ),
                self._select_key_change(section, state, "imported GPG key"),
            ]

        if local_keys:
            return self._local_key_changes(section, state, local_keys)
        return None

    def _local_key_changes(self, section: GitHubConfig, state: MachineState, key_ids: List[str]) -> List[Change]:
        if len(key_ids) == 1:
            return [self._git_change("user.signingkey", key_ids[0], state, STEP_SIGNING)]
        return [self._select_key_change(section, state, "local GPG keys")]

    def _select_key_change(self, section: GitHubConfig, state: MachineState, source: str) -> Change:
        return Change(
            f"Set git user.signingkey from {source}",
            action=partial(self._select_signing_key, section.user_email),
            probe=_git_probe("user.signingkey"),
            before=state.get(_git_probe("user.signingkey")),
            after="selected at apply",
            step=STEP_SIGNING,
        )

    def _plan_authentication(self, section: GitHubConfig, state: MachineState, key_planned: bool) -> List[Change]:
        if not state.flag("GhInstalled"):
            self.add_plan_error(
                "GitHub CLI 'gh' not found; authentication skipped",
                step=STEP_AUTHENTICATION,
                context="Install it with winget GitHub.cli",
            )
            return []

        changes: List[Change] = []
        if section.authenticate_cli and not state.flag("GhAuthenticated"):
            if section.token_vault_item and self.secrets is not None:
                description = f"Log in to GitHub CLI with token from vault item '{section.token_vault_item}'"
            else:
                description = "Log in to GitHub CLI"
            changes.append(
                Change(
                    description,
                    action=partial(self._login, section),
                    probe="GhAuthenticated",
                    before=False,
                    after=True,
                    step=STEP_AUTHENTICATION,
                )
            )

        ssh = section.ssh
        if ssh is not None and ssh.upload_to_github:
            if not state.flag("GhAuthenticated") and not section.authenticate_cli:
                self.add_plan_error(
                    "GitHub CLI is not authenticated; SSH key upload skipped",
                    step=STEP_AUTHENTICATION,
                    context="Run 'gh auth login' or set github.authenticateCli",
                )
                return changes
            body = state.get("SshPublicKey")
            if key_planned or not body or body not in (state.get("GhSshKeys") or ""):
                public_path = self._key_path(ssh) + ".pub"
                changes.append(
                    Change(
                        f"Upload SSH public key to GitHub: {public_path}",
                        action=partial(self.gh.add_ssh_key, public_path, ssh.title or ssh.comment or "devsetup"),
                        probe="GhSshKeys",
                        before="missing",
                        after="uploaded",
                        step=STEP_AUTHENTICATION,
                    )
                )
        return changes

    # ------------------------------------------------------------------
    # Apply actions
    # ------------------------------------------------------------------

    def _generate_ssh_key(self, section: GitHubConfig, ssh: SshKeyConfig, key_path: str) -> None:
        Path(key_path).parent.mkdir(parents=True, exist_ok=True)
        interactive = self.prompt.confirm("Protect the new SSH key with a passphrase?", default=False)
        comment = ssh.comment or section.user_email or ""
        self.ssh_keys.generate(key_path, ssh.key_type, comment, interactive=interactive)

    def _import_ssh_key(self, section: GitHubConfig, ssh: SshKeyConfig, key_path: str) -> None:
        if self.secrets.import_key_material(
            ssh.vault_item, Path(key_path), ssh.private_key_field, ssh.public_key_field
        ):
            return
        if not ssh.generate_if_missing or not self.ssh_keys.is_installed():
            raise ApplyError(
                f"Could not import SSH key from vault item '{ssh.vault_item}'",
                context="Check the vault item or enable ssh.generateIfMissing",
            )
        if self.logger:
            self.logger.warning("Vault import failed; generating a new SSH key instead")
        self._generate_ssh_key(section, ssh, key_path)

    def _import_gpg_key(self, item: str, field: str) -> None:
        try:
            armored = self.secrets.resolve(SecretReference(item, field))
        except SecretError as e:
            raise ApplyError(f"Could not read GPG key from vault: {e.message}", context=e.context)
        self.gpg.import_key(armored)

    def _select_signing_key(self, email: Optional[str]) -> None:
        keys: List[GpgKey] = [k for k in self.gpg.list_secret_keys() if k.usable]
        matching = [k for k in keys if k.matches_email(email)] or keys
        if not matching:
            raise ApplyError("No usable GPG secret key found", context="Import or create a GPG key first")
        if len(matching) == 1:
            chosen = matching[0]
        else:
            labels = [k.label for k in matching]
            answer = self.prompt.choose("Select the GPG key used for signing", labels)
            chosen = matching[labels.index(answer)]
        self.git.set_global("user.signingkey", chosen.key_id)

    def _verify_signing(self, program: str) -> None:
        if not self.gpg.is_installed():
            raise ApplyError(f"Signing program '{program}' is not installed")
        selected = self.git.get_global("user.signingkey")
        if not selected:
            raise ApplyError("git user.signingkey is not set")
        key_ids = [k.key_id for k in self.gpg.list_secret_keys() if k.usable]
        if not _key_known(selected, key_ids):
            raise ApplyError(
                f"Signing key {selected} is not in the {program} keyring",
                context="Import the secret key or change signing.signingKey",
            )

    def _login(self, section: GitHubConfig) -> None:
        if section.token_vault_item and self.secrets is not None:
            try:
                token = self.secrets.resolve(
                    SecretReference(section.token_vault_item, section.token_vault_field)
                )
            except SecretError as e:
                if self.logger:
                    self.logger.warning(f"Token lookup failed ({e.message}); falling back to interactive login")
            else:
                self.gh.login_with_token(token)
                return
        if not self.prompt.confirm("Log in to GitHub CLI interactively now?", default=True):
            raise ApplyError("GitHub CLI login declined")
        self.gh.login_interactive()

    # ------------------------------------------------------------------
    # Stage tracking
    # ------------------------------------------------------------------

    def _stage_enabled(self, section: GitHubConfig, step: str) -> bool:
        if step == STEP_KEY_MATERIAL:
            return section.ssh is not None
        if step == STEP_GIT_SETTINGS:
            return bool(self._identity_settings(section))
        if step == STEP_SIGNING:
            return section.signing is not None and section.signing.enabled
        return self._uses_github_cli(section)

    def _stage_failed(self, step: str, result: DomainResult) -> bool:
        if any(error.step == step for error in self.plan_errors):
            return True
        if result.apply_result is None:
            return False
        return any(f.change.step == step for f in result.apply_result.failures)

    def finalize(self, section: GitHubConfig, result: DomainResult) -> None:
        """Record the stage the identity state machine reached."""
        if result.dry_run:
            return
        stage = STAGE_UNCONFIGURED
        for name, step in STAGES:
            if not self._stage_enabled(section, step):
                continue
            if self._stage_failed(step, result):
                break
            stage = name
        result.stage = stage
        if self.logger:
            self.logger.log(f"Identity stage: {stage}")
