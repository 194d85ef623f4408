"""
Terminal Services

Terminal emulator settings document, prompt engine and the managed
prompt block inside the PowerShell profile.
"""

import json
from pathlib import Path
from typing import Any, Dict, Optional

from jinja2 import Template

from devsetup.constants import PROMPT_BLOCK_END, PROMPT_BLOCK_START, PROMPT_ENGINE_OH_MY_POSH
from devsetup.core.config_loader import PromptConfig
from devsetup.exceptions import ApplyError, ProbeError
from devsetup.services.command_runner import CommandRunner

PROMPT_TEMPLATE = """{{ start }}
{% if engine == "oh-my-posh" %}
{{ init_line }}
{% else %}
function prompt {
    $segments = @()
{% if show_timestamp %}
    $segments += "[$(Get-Date -Format '{{ timestamp_format }}')]"
{% endif %}
{% if show_directory %}
    $segments += (Get-Location).Path
{% endif %}
{% if show_git_branch %}
    $branch = git rev-parse --abbrev-ref HEAD 2>$null
    if ($branch) {
{% if show_git_status %}
        if (git status --porcelain 2>$null) { $branch += "*" }
{% endif %}
        $segments += "($branch)"
    }
{% endif %}
    "$($segments -join ' ')> "
}
{% endif %}
{{ end }}"""


class TerminalSettingsStore:
    """Windows Terminal settings.json"""

    def __init__(self, path: Path):
        self.path = Path(path)

    def exists(self) -> bool:
        return self.path.is_file()

    def load(self) -> Dict[str, Any]:
        """
        Read the settings document.

        Raises:
            ProbeError: If the file is missing or not plain JSON
        """
        try:
            document = json.loads(self.path.read_text(encoding="utf-8-sig"))
        except (OSError, json.JSONDecodeError) as e:
            raise ProbeError(f"Cannot read terminal settings: {self.path}", context=str(e))
        if not isinstance(document, dict):
            raise ProbeError(f"Terminal settings root is not an object: {self.path}")
        return document

    def save(self, document: Dict[str, Any]) -> None:
        self.path.write_text(json.dumps(document, indent=4) + "\n", encoding="utf-8")

    @staticmethod
    def profile_defaults(document: Dict[str, Any]) -> Dict[str, Any]:
        """
        profiles.defaults of the document, created if absent.

        Older settings files keep profiles as a bare list; that is
        converted to the {defaults, list} form.
        """
        profiles = document.get("profiles")
        if isinstance(profiles, list):
            profiles = {"defaults": {}, "list": profiles}
            document["profiles"] = profiles
        elif not isinstance(profiles, dict):
            profiles = {"defaults": {}, "list": []}
            document["profiles"] = profiles
        return profiles.setdefault("defaults", {})


class OhMyPoshService:
    """oh-my-posh prompt engine"""

    def __init__(self, runner: CommandRunner):
        self.runner = runner

    def is_installed(self) -> bool:
        return self.runner.which("oh-my-posh")

    @staticmethod
    def init_line(theme: Optional[str]) -> str:
        if theme:
            return f"oh-my-posh init pwsh --config '{theme}' | Invoke-Expression"
        return "oh-my-posh init pwsh | Invoke-Expression"


def render_prompt_block(prompt: PromptConfig, engine: str, theme: Optional[str] = None) -> str:
    """
    Render the managed profile block for a prompt configuration.

    Args:
        prompt: Prompt settings
        engine: Engine actually used (may differ from the configured one)
        theme: Expanded theme path for oh-my-posh

    Returns:
        Block text including start/end markers
    """
    template = Template(PROMPT_TEMPLATE, trim_blocks=True, lstrip_blocks=True)
    return template.render(
        start=PROMPT_BLOCK_START,
        end=PROMPT_BLOCK_END,
        engine=engine,
        init_line=OhMyPoshService.init_line(theme) if engine == PROMPT_ENGINE_OH_MY_POSH else "",
        show_timestamp=prompt.show_timestamp,
        timestamp_format=prompt.timestamp_format,
        show_directory=prompt.show_directory,
        show_git_branch=prompt.show_git_branch,
        show_git_status=prompt.show_git_status,
    ).strip()


class PowerShellProfile:
    """The devsetup-managed block inside a PowerShell profile script."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def read_block(self) -> Optional[str]:
        """Current managed block (markers included), or None."""
        if not self.path.is_file():
            return None
        text = self.path.read_text(encoding="utf-8-sig")
        start = text.find(PROMPT_BLOCK_START)
        end = text.find(PROMPT_BLOCK_END, start + 1)
        if start == -1 or end == -1:
            return None
        return text[start:end + len(PROMPT_BLOCK_END)].strip()

    def write_block(self, block: str) -> None:
        """Replace the managed block, or append it when absent."""
        text = self.path.read_text(encoding="utf-8-sig") if self.path.is_file() else ""
        start = text.find(PROMPT_BLOCK_START)
        end = text.find(PROMPT_BLOCK_END, start + 1)
        if start != -1 and end == -1:
            raise ApplyError(
                f"Unterminated devsetup block in {self.path}",
                context=f"Add '{PROMPT_BLOCK_END}' or remove '{PROMPT_BLOCK_START}'",
            )
        if start != -1:
            text = text[:start] + block + text[end + len(PROMPT_BLOCK_END):]
        else:
            separator = "\n\n" if text.strip() else ""
            text = text.rstrip("\n") + separator + block + "\n"
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(text, encoding="utf-8")
