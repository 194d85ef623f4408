"""
Machine State Models

A MachineState is a throwaway snapshot of named probes for one domain.
It is created fresh per run and never persisted.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Tuple, Union

ProbeValue = Union[bool, str, int, None, List[str]]


@dataclass
class MachineState:
    """Named probe values read from the machine for one domain."""

    domain: str
    probes: Dict[str, ProbeValue] = field(default_factory=dict)

    def get(self, name: str, default: ProbeValue = None) -> ProbeValue:
        """Get a probe value, or the default when it was never recorded."""
        return self.probes.get(name, default)

    def set(self, name: str, value: ProbeValue) -> None:
        """Record a probe value."""
        self.probes[name] = value

    def flag(self, name: str) -> bool:
        """Boolean view of a probe (missing probes read as False)."""
        return bool(self.probes.get(name, False))

    def rows(self) -> List[Tuple[str, Any]]:
        """Probe rows in recording order, for display."""
        return list(self.probes.items())

    def __contains__(self, name: str) -> bool:
        return name in self.probes

    def __iter__(self) -> Iterator[str]:
        return iter(self.probes)

    def __len__(self) -> int:
        return len(self.probes)

    def __repr__(self) -> str:
        return f"MachineState(domain={self.domain}, probes={len(self.probes)})"
