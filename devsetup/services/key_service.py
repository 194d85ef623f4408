"""SSH and GPG key tools."""

from dataclasses import dataclass, field
from typing import List, Optional

from devsetup.constants import DEFAULT_GPG_PROGRAM
from devsetup.services.command_runner import CommandRunner, check_result

# Validity codes gpg uses for keys that can no longer sign
_UNUSABLE_VALIDITY = {"r", "e", "d", "i", "n"}


@dataclass
class GpgKey:
    """A secret key from `gpg --list-secret-keys --with-colons`."""

    key_id: str
    validity: str = ""
    fingerprint: Optional[str] = None
    uids: List[str] = field(default_factory=list)

    @property
    def usable(self) -> bool:
        return self.validity not in _UNUSABLE_VALIDITY

    def matches_email(self, email: Optional[str]) -> bool:
        if not email:
            return False
        needle = f"<{email.lower()}>"
        return any(needle in uid.lower() for uid in self.uids)

    @property
    def label(self) -> str:
        return f"{self.key_id} {self.uids[0]}" if self.uids else self.key_id


def parse_secret_keys(output: str) -> List[GpgKey]:
    """
    Parse gpg colon-delimited listing.

    Args:
        output: stdout of `gpg --list-secret-keys --with-colons`

    Returns:
        One GpgKey per `sec` record, in listing order
    """
    keys: List[GpgKey] = []
    current: Optional[GpgKey] = None
    in_subkey = False
    for line in output.splitlines():
        fields = line.split(":")
        record = fields[0]
        if record == "sec" and len(fields) > 4:
            current = GpgKey(key_id=fields[4], validity=fields[1])
            keys.append(current)
            in_subkey = False
        elif record == "ssb":
            # fpr lines after a subkey belong to the subkey
            in_subkey = True
        elif current is None or in_subkey or len(fields) <= 9:
            continue
        elif record == "fpr" and current.fingerprint is None:
            current.fingerprint = fields[9]
        elif record == "uid":
            current.uids.append(fields[9])
    return keys


class SshKeyService:
    """`ssh-keygen` wrapper."""

    def __init__(self, runner: CommandRunner):
        self.runner = runner

    def is_installed(self) -> bool:
        return self.runner.which("ssh-keygen")

    def generate(self, path: str, key_type: str, comment: str, interactive: bool = False) -> None:
        """
        Generate a key pair at path.

        Args:
            path: Private key path (public key lands at path + ".pub")
            key_type: ssh-keygen -t value
            comment: Key comment, usually the user's email
            interactive: Let ssh-keygen prompt for a passphrase
        """
        args = ["ssh-keygen", "-t", key_type, "-C", comment, "-f", path]
        if interactive:
            check_result(self.runner.run(args, timeout=None, interactive=True))
        else:
            check_result(self.runner.run(args + ["-N", ""]))


class GpgService:
    """GnuPG wrapper."""

    def __init__(self, runner: CommandRunner, program: Optional[str] = None):
        self.runner = runner
        self.program = program or DEFAULT_GPG_PROGRAM

    def is_installed(self) -> bool:
        return self.runner.which(self.program)

    def list_secret_keys(self) -> List[GpgKey]:
        """Secret keys in the local keyring ([] when gpg is unavailable)."""
        result = self.runner.run(
            [self.program, "--list-secret-keys", "--with-colons", "--keyid-format", "LONG"]
        )
        if result.is_failure:
            return []
        return parse_secret_keys(result.stdout)

    def import_key(self, armored_key: str) -> None:
        """Import an ASCII-armored key; the key material only travels over stdin."""
        check_result(self.runner.run([self.program, "--batch", "--import"], input=armored_key))
