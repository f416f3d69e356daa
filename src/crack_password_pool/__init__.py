"""
Crack Password Pool

Bounded concurrent dispatch of password candidates against an external
tester, with graceful and abrupt termination and resumable progress.
"""

__version__ = "1.0.0"

from .core.errors import (
    ConfigError,
    CrackPoolError,
    DictionaryError,
    NoCandidatesError,
    PoolShutdownError,
    TesterError,
)
from .core.interfaces import DictionaryStore, PasswordTester
from .core.outcomes import RawResult, StepDecision, TrialOutcome, TrialStatus
from .core.registry import CandidateRegistry
from .pipeline.dispatcher import DispatchLoop
from .pipeline.executor import TrialExecutor
from .pipeline.pool import PoolState, WorkerPool
from .pipeline.runner import CrackPasswordPool, RunReport
from .pipeline.termination import TerminationController, TerminationKind

__all__ = [
    "CandidateRegistry",
    "ConfigError",
    "CrackPasswordPool",
    "CrackPoolError",
    "DictionaryError",
    "DictionaryStore",
    "DispatchLoop",
    "NoCandidatesError",
    "PasswordTester",
    "PoolShutdownError",
    "PoolState",
    "RawResult",
    "RunReport",
    "StepDecision",
    "TerminationController",
    "TerminationKind",
    "TesterError",
    "TrialExecutor",
    "TrialOutcome",
    "TrialStatus",
    "WorkerPool",
]
