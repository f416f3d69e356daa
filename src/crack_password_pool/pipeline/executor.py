"""
Trial Executor Module

One unit of work: claim a candidate, try it, and turn whatever the tester
reports into a typed outcome.
"""

import logging

from ..core.errors import NoCandidatesError, TesterError
from ..core.interfaces import PasswordTester
from ..core.outcomes import TrialOutcome
from ..core.registry import CandidateRegistry

logger = logging.getLogger(__name__)


class TrialExecutor:
    """Runs a single trial against the external tester."""

    def __init__(self, registry: CandidateRegistry, tester: PasswordTester):
        self.registry = registry
        self.tester = tester

    def run_one_trial(self) -> TrialOutcome:
        """
        Claim one candidate and test it.

        Returns:
            TrialOutcome: The mapped outcome for the claimed candidate

        Raises:
            NoCandidatesError: If there is nothing left to claim
        """
        candidate = self.registry.claim_one()
        if candidate is None:
            raise NoCandidatesError()

        try:
            raw = self.tester.test(candidate)
        except (OSError, TesterError) as e:
            # Transport noise is never an authoritative "wrong password"
            logger.debug(f"[TRIAL] {candidate!r} failed in transport, will retry: {e}")
            return TrialOutcome.retryable(candidate)
        except Exception:
            # The candidate is already claimed; it must come back either way
            logger.exception(f"[TRIAL] tester raised unexpectedly for {candidate!r}, will retry")
            return TrialOutcome.retryable(candidate)

        if raw.candidate != candidate:
            logger.warning(
                f"[TRIAL] tester reported {raw.candidate!r} for claimed {candidate!r}; using claimed value"
            )
            raw = raw.model_copy(update={"candidate": candidate})

        return TrialOutcome.from_raw(raw)

    __call__ = run_one_trial
