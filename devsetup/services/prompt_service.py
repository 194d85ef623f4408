"""Operator prompts, injected wherever business logic needs an answer."""

from typing import List, Optional, Protocol

import inquirer
from rich.console import Console
from rich.prompt import Confirm, Prompt


class PromptProvider(Protocol):
    """Questions a reconciler may ask while applying a plan."""

    def ask(self, question: str, default: Optional[str] = None) -> str:  # pragma: no cover - protocol
        ...

    def confirm(self, question: str, default: bool = False) -> bool:  # pragma: no cover - protocol
        ...

    def choose(self, question: str, choices: List[str]) -> str:  # pragma: no cover - protocol
        ...


class RichPromptProvider:
    """Interactive prompts on the terminal."""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()

    def ask(self, question: str, default: Optional[str] = None) -> str:
        return Prompt.ask(question, default=default, console=self.console) or ""

    def confirm(self, question: str, default: bool = False) -> bool:
        return Confirm.ask(question, default=default, console=self.console)

    def choose(self, question: str, choices: List[str]) -> str:
        questions = [
            inquirer.List(
                "choice",
                message=question,
                choices=choices,
                carousel=True,
            )
        ]
        answers = inquirer.prompt(questions, raise_keyboard_interrupt=True)
        return answers["choice"]


class DefaultsPromptProvider:
    """Never blocks: answers every question with its default (used by --force)."""

    def ask(self, question: str, default: Optional[str] = None) -> str:
        return default or ""

    def confirm(self, question: str, default: bool = False) -> bool:
        return default

    def choose(self, question: str, choices: List[str]) -> str:
        return choices[0]
