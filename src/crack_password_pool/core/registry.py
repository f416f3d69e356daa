"""
Candidate Registry Module

Thread-safe bookkeeping of which candidates are still untested and which
have been tested without success during the current run.
"""

import logging
import threading
from typing import FrozenSet, Iterable, Optional

logger = logging.getLogger(__name__)


class CandidateRegistry:
    """Holds the untested and tested candidate sets of a run."""

    def __init__(self, candidates: Iterable[str], already_tested: Optional[Iterable[str]] = None):
        """
        Seed the registry.

        Args:
            candidates: Every candidate of the dictionary
            already_tested: Candidates persisted as tested by earlier runs
        """
        untested = set(candidates)
        if already_tested:
            untested.difference_update(already_tested)

        self._untested = untested
        self._untested_lock = threading.Lock()
        self._tested = set()
        self._tested_lock = threading.Lock()
        self._sealed = False
        self._closed = threading.Event()
        logger.info(f"Candidate registry seeded with {len(untested)} untested candidates")

    def claim_one(self) -> Optional[str]:
        """
        Remove and return an arbitrary untested candidate.

        Returns:
            Optional[str]: The claimed candidate, None when nothing is left
        """
        with self._untested_lock:
            if not self._untested:
                return None
            return self._untested.pop()

    def requeue(self, candidate: str) -> bool:
        """
        Put a claimed candidate back so it can be tried again.

        Returns:
            bool: True if the candidate was re-added
        """
        if self._closed.is_set():
            return False
        with self._tested_lock:
            if candidate in self._tested:
                return False
        with self._untested_lock:
            self._untested.add(candidate)
        return True

    def mark_tested(self, candidate: str) -> bool:
        """
        Record a candidate as definitively rejected.

        Returns:
            bool: False if the tested set was already sealed for persistence
        """
        with self._tested_lock:
            if self._sealed:
                return False
            self._tested.add(candidate)
            return True

    def seal_tested(self) -> FrozenSet[str]:
        """
        Freeze the tested set and return it.

        A mark either lands before the seal and is in the returned set, or
        is refused afterwards.
        """
        with self._tested_lock:
            self._sealed = True
            return frozenset(self._tested)

    def close(self) -> None:
        """Stop accepting requeues; called once the run starts terminating."""
        self._closed.set()

    @property
    def is_closed(self) -> bool:
        return self._closed.is_set()

    def untested_count(self) -> int:
        with self._untested_lock:
            return len(self._untested)

    def tested_count(self) -> int:
        with self._tested_lock:
            return len(self._tested)

    def tested_snapshot(self) -> FrozenSet[str]:
        with self._tested_lock:
            return frozenset(self._tested)

    def untested_snapshot(self) -> FrozenSet[str]:
        with self._untested_lock:
            return frozenset(self._untested)
