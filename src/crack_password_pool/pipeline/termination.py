"""
Termination Controller Module

Owns the two ways a run ends:

- abrupt: a candidate was accepted; stop the pool at once, discard
  whatever is still running, persist the tested set and report the value.
- graceful: the candidates ran out or the run was stopped from outside;
  let in-flight trials drain, then persist the tested set.

Exactly one of them runs per run. The worker pool's lifecycle is the
guard: only the caller that moves the pool out of RUNNING executes a
protocol.
"""

import logging
import threading
from enum import Enum
from typing import Callable, Iterable, Optional

from ..core.interfaces import DictionaryStore, PasswordTester
from ..core.registry import CandidateRegistry
from ..core.utils.run_summary import RunSummaryWriter
from ..io.output import OperatorOutput
from .pool import WorkerPool
from .tracking import AcceptedValue, InFlightTracker

logger = logging.getLogger(__name__)

DEFAULT_DRAIN_TIMEOUT_SECONDS = 300.0


class TerminationKind(str, Enum):
    """How a run ended."""

    FOUND = "found"
    EXHAUSTED = "exhausted"
    STOPPED = "stopped"


class TerminationController:
    """Runs the shutdown protocols and the single persistence checkpoint."""

    def __init__(
        self,
        pool: WorkerPool,
        registry: CandidateRegistry,
        tester: PasswordTester,
        accepted: AcceptedValue,
        tested_dictionary: DictionaryStore,
        password_dictionary: Optional[DictionaryStore] = None,
        output: Optional[OperatorOutput] = None,
        in_flight: Optional[InFlightTracker] = None,
        drain_timeout_seconds: float = DEFAULT_DRAIN_TIMEOUT_SECONDS,
        message_formatter: Optional[Callable[[str], str]] = None,
        summary_writer: Optional[RunSummaryWriter] = None,
    ):
        """
        Initialize the controller.

        Args:
            pool: Worker pool whose lifecycle guards the protocols
            registry: Registry holding the tested set to persist
            tester: Tester whose disposal marks a successful run
            accepted: Write-once cell of the accepted value
            tested_dictionary: Store the tested set is appended to
            password_dictionary: Candidate store, disposed at the end
            output: Where the accepted value is reported
            in_flight: Tracker of dispatch steps still applying outcomes
            drain_timeout_seconds: How long one wait for the pool to drain lasts
            message_formatter: Builds the human-readable success message
            summary_writer: Optional run event stream
        """
        self.pool = pool
        self.registry = registry
        self.tester = tester
        self.accepted = accepted
        self.tested_dictionary = tested_dictionary
        self.password_dictionary = password_dictionary
        self.output = output or OperatorOutput()
        self.in_flight = in_flight
        self.drain_timeout_seconds = float(drain_timeout_seconds)
        self.message_formatter = message_formatter or (lambda value: f"Accepted value: {value}")
        self.summary_writer = summary_writer

        self.kind: Optional[TerminationKind] = None
        self.persisted_count = 0
        self.persistence_error: Optional[str] = None
        self._persist_lock = threading.Lock()
        self._persisted = False
        self._finished = threading.Event()

    # -------------------------------------------------------------- protocols

    def abrupt_shutdown(self) -> bool:
        """
        Success path. Does not wait for in-flight trials.

        Returns:
            bool: True if this call ran the protocol
        """
        cancelled = self.pool.shutdown_now()
        if cancelled is None:
            return False

        self.registry.close()
        self.kind = TerminationKind.FOUND
        logger.info(f"[SHUTDOWN] abrupt: accepted value found, {len(cancelled)} queued trials cancelled")
        self._event({"event": "shutdown_started", "protocol": "abrupt", "cancelled": len(cancelled)})

        self._report_accepted()
        self._persist(self.registry.seal_tested())
        self._finished.set()
        return True

    def graceful_shutdown(self, reason: TerminationKind = TerminationKind.EXHAUSTED) -> bool:
        """
        Exhaustion or external stop. Waits for every in-flight trial.

        Returns:
            bool: True if this call ran the protocol
        """
        if not self.pool.shutdown():
            return False

        self.registry.close()
        self.kind = reason
        logger.info(f"[SHUTDOWN] graceful ({reason.value}): draining in-flight trials")
        self._event({"event": "shutdown_started", "protocol": "graceful", "reason": reason.value})

        self._wait_until(self.pool.await_termination, "worker pool")
        if self.in_flight is not None:
            self._wait_until(self.in_flight.wait_idle, "dispatch steps")

        # A trial accepted while draining still counts
        if self.accepted.is_set():
            self.kind = TerminationKind.FOUND
            self._report_accepted()

        self._persist(self.registry.seal_tested())
        self._finished.set()
        return True

    def shutdown(self, reason: TerminationKind = TerminationKind.STOPPED) -> Optional[TerminationKind]:
        """
        End the run from outside the dispatch loop, e.g. on process exit.

        Picks the abrupt protocol when a value was accepted and the graceful
        one otherwise. If a protocol already started, waits for it to finish.

        Returns:
            Optional[TerminationKind]: How the run ended
        """
        if self.accepted.is_set():
            self.abrupt_shutdown()
        else:
            self.graceful_shutdown(reason)
        self._wait_until(self._finished.wait, "shutdown")
        return self.kind

    def _wait_until(self, wait: Callable[[float], bool], what: str) -> None:
        while True:
            try:
                if wait(self.drain_timeout_seconds):
                    return
                logger.warning(f"[SHUTDOWN] still waiting for {what} to drain")
            except KeyboardInterrupt:
                logger.warning(f"[SHUTDOWN] interrupted while waiting for {what}; waiting again")

    # ---------------------------------------------------------------- status

    @property
    def finished(self) -> bool:
        return self._finished.is_set()

    def wait_finished(self, timeout: Optional[float] = None) -> bool:
        return self._finished.wait(timeout)

    # ------------------------------------------------------------ checkpoint

    def _report_accepted(self) -> None:
        value = self.accepted.get()
        if value is None:
            return
        message = self.message_formatter(value)
        logger.info(f"[SHUTDOWN] {message}")
        self.output.accepted(value, message)
        self._event({"event": "candidate_accepted", "value": value, "message": message})

    def _persist(self, tested: Iterable[str]) -> None:
        """Append the tested set and dispose the stores. Runs once per controller."""
        with self._persist_lock:
            if self._persisted:
                return
            self._persisted = True

            tested = set(tested)
            try:
                self.tested_dictionary.append(tested)
                self.persisted_count = len(tested)
                logger.info(f"[SHUTDOWN] persisted {len(tested)} tested candidates")
            except Exception as e:
                self.persistence_error = str(e)
                logger.error(f"[SHUTDOWN] failed to persist tested candidates: {e}")
                self._event({"event": "persistence_failed", "error": str(e)})

            for store in (self.password_dictionary, self.tested_dictionary):
                if store is None:
                    continue
                try:
                    store.dispose()
                except Exception as e:
                    logger.error(f"[SHUTDOWN] failed to dispose dictionary store: {e}")

    def _event(self, event: dict) -> None:
        if self.summary_writer is None:
            return
        try:
            self.summary_writer.append_event(event)
        except OSError as e:
            logger.warning(f"Failed to write run event: {e}")
