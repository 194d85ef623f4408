"""
Secret Reference Models

Opaque handles to vault items. The resolved value is never stored on them.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass(frozen=True)
class SecretReference:
    """Points at one field of one vault item."""

    item_name: str
    field: str
    vault_hint: Optional[str] = None

    @property
    def display(self) -> str:
        """Human-readable location, safe to log."""
        if self.vault_hint:
            return f"{self.vault_hint}/{self.item_name}/{self.field}"
        return f"{self.item_name}/{self.field}"

    def __repr__(self) -> str:
        return f"SecretReference({self.display})"
