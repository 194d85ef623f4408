"""
devsetup Domain Models

Clean dataclass-based models for type-safe data handling.
"""

from .state import MachineState
from .results import (
    ApplyResult,
    Change,
    ChangeFailure,
    DomainResult,
    ExecutionResult,
    ResultStatus,
)
from .secrets import SecretReference

__all__ = [
    # State
    "MachineState",
    # Results
    "ApplyResult",
    "Change",
    "ChangeFailure",
    "DomainResult",
    "ExecutionResult",
    "ResultStatus",
    # Secrets
    "SecretReference",
]
