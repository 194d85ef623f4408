"""Git and GitHub CLI adapters."""

from typing import Optional

from devsetup.services.command_runner import CommandRunner, check_result


class GitService:
    """Global git configuration."""

    def __init__(self, runner: CommandRunner):
        self.runner = runner

    def is_installed(self) -> bool:
        return self.runner.which("git")

    def get_global(self, key: str) -> Optional[str]:
        """
        Read a global config value.

        Args:
            key: Config key (e.g., "user.email")

        Returns:
            Value, or None when unset or git is unavailable
        """
        result = self.runner.run(["git", "config", "--global", "--get", key])
        if result.is_failure:
            return None
        return result.stdout.strip()

    def set_global(self, key: str, value: str) -> None:
        """Write a global config value. Raises CommandError on failure."""
        check_result(self.runner.run(["git", "config", "--global", key, value]))


class GitHubCliService:
    """GitHub CLI (`gh`) authentication and SSH key registration."""

    def __init__(self, runner: CommandRunner):
        self.runner = runner

    def is_installed(self) -> bool:
        return self.runner.which("gh")

    def is_authenticated(self) -> bool:
        return self.runner.run(["gh", "auth", "status"]).is_success

    def login_with_token(self, token: str) -> None:
        """Log in non-interactively; the token only travels over stdin."""
        check_result(
            self.runner.run(
                ["gh", "auth", "login", "--git-protocol", "ssh", "--with-token"],
                input=f"{token}\n",
            )
        )

    def login_interactive(self) -> None:
        """Hand the terminal to `gh auth login`."""
        check_result(
            self.runner.run(
                ["gh", "auth", "login", "--git-protocol", "ssh"],
                timeout=None,
                interactive=True,
            )
        )

    def list_ssh_keys(self) -> str:
        """Raw `gh ssh-key list` output ("" when unavailable)."""
        result = self.runner.run(["gh", "ssh-key", "list"])
        return result.stdout if result.is_success else ""

    def add_ssh_key(self, public_key_path: str, title: str) -> None:
        check_result(
            self.runner.run(["gh", "ssh-key", "add", public_key_path, "--title", title])
        )
