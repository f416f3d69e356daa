"""
Collaborator interfaces used by the dispatch engine.

The engine only talks to these abstract classes. Concrete implementations
live in ``crack_password_pool.io``.
"""

from abc import ABC, abstractmethod
from typing import Any, Set

from .outcomes import RawResult


class DictionaryStore(ABC):
    """Persistent set of candidates."""

    @abstractmethod
    def load(self) -> Set[str]:
        """Return every stored candidate, or an empty set if the store is absent."""

    @abstractmethod
    def append(self, candidates: Set[str]) -> None:
        """Persist additional candidates. Re-appending stored entries must not duplicate them."""

    @abstractmethod
    def dispose(self) -> None:
        """Release any held resources."""


class PasswordTester(ABC):
    """Performs one trial of a candidate against the real target."""

    @abstractmethod
    def test(self, candidate: str) -> RawResult:
        """Try ``candidate``. May raise on transport failure or interruption."""

    @abstractmethod
    def is_disposed(self) -> bool:
        """True once the tester has been disposed, by success or from outside."""

    @abstractmethod
    def reconfigure(self, payload: Any) -> None:
        """Apply new transport settings, e.g. switch to another proxy."""

    @abstractmethod
    def dispose(self) -> None:
        """Stop accepting trials and release resources."""
