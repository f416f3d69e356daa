"""
Dispatch Loop Module

``DispatchLoop.step`` is the operation driver threads call over and over:
submit one trial, wait for it, and act on the outcome. Any number of
drivers may call it concurrently; each call is bounded by the pool.
"""

import logging
from concurrent.futures import CancelledError

from ..core.errors import NoCandidatesError, PoolShutdownError, TesterError
from ..core.interfaces import PasswordTester
from ..core.outcomes import StepDecision, TrialOutcome, TrialStatus
from ..core.registry import CandidateRegistry
from ..io.output import OperatorOutput
from .executor import TrialExecutor
from .pool import WorkerPool
from .termination import TerminationController
from .tracking import AcceptedValue, InFlightTracker

logger = logging.getLogger(__name__)


class DispatchLoop:
    """Submits trials and applies the retry / accept / record / stop policy."""

    def __init__(
        self,
        pool: WorkerPool,
        executor: TrialExecutor,
        registry: CandidateRegistry,
        tester: PasswordTester,
        controller: TerminationController,
        accepted: AcceptedValue,
        output: OperatorOutput,
        in_flight: InFlightTracker,
    ):
        self.pool = pool
        self.executor = executor
        self.registry = registry
        self.tester = tester
        self.controller = controller
        self.accepted = accepted
        self.output = output
        self.in_flight = in_flight

    def can_continue(self) -> bool:
        """True while the tester is live and the pool is still running."""
        return not self.tester.is_disposed() and self.pool.is_running()

    def _continue_if_possible(self) -> StepDecision:
        return StepDecision.CONTINUE if self.can_continue() else StepDecision.STOP

    def step(self) -> StepDecision:
        """
        Run one trial through the pool and apply its outcome.

        Returns:
            StepDecision: STOP once the run is over for this driver, CONTINUE otherwise
        """
        if not self.can_continue():
            return StepDecision.STOP

        with self.in_flight.track():
            try:
                outcome = self.pool.submit(self.executor.run_one_trial).result()
            except NoCandidatesError:
                pass
            except (CancelledError, PoolShutdownError):
                return StepDecision.STOP
            except Exception:
                logger.exception("[DISPATCH] trial raised unexpectedly")
                return self._continue_if_possible()
            else:
                return self._apply(outcome)

        # Outside the tracked region: the graceful protocol waits for tracked steps
        logger.info("[DISPATCH] no candidates left, starting graceful shutdown")
        self.controller.graceful_shutdown()
        return StepDecision.STOP

    def _apply(self, outcome: TrialOutcome) -> StepDecision:
        candidate = outcome.candidate

        if self.accepted.is_set():
            # The run already succeeded; late results are discarded
            logger.debug(f"[DISPATCH] discarding late outcome for {candidate!r}")
            return StepDecision.STOP

        if outcome.status is TrialStatus.ACCEPTED:
            if self.accepted.set(candidate):
                logger.info(f"[DISPATCH] candidate {candidate!r} accepted")
            self.tester.dispose()
            self.controller.abrupt_shutdown()
            return StepDecision.STOP

        if outcome.status is TrialStatus.NEEDS_RECONFIGURATION:
            try:
                self.tester.reconfigure(outcome.reconfiguration)
                logger.info(f"[DISPATCH] tester reconfigured: {outcome.reconfiguration}")
            except (OSError, TesterError) as e:
                logger.warning(f"[DISPATCH] failed to reconfigure tester: {e}")

        if outcome.is_retryable:
            if self.can_continue():
                self.registry.requeue(candidate)
            else:
                logger.debug(f"[DISPATCH] run ending, dropping retry of {candidate!r}")
            return self._continue_if_possible()

        if not self.registry.mark_tested(candidate):
            # Lost the race with a success that already persisted the tested set
            logger.debug(f"[DISPATCH] tested set sealed, discarding late outcome for {candidate!r}")
            return StepDecision.STOP
        self.output.non_match(candidate)
        return self._continue_if_possible()

    def drive(self) -> int:
        """
        Call ``step`` until it says STOP.

        Returns:
            int: Number of steps taken
        """
        steps = 0
        while True:
            steps += 1
            if self.step() is StepDecision.STOP:
                return steps
