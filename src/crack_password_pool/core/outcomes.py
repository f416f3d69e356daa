"""
Schema definitions for trial results.

This module defines the records exchanged between the external tester,
the trial executor and the dispatch loop.
"""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field, model_validator


class TrialStatus(str, Enum):
    """Tag of a trial outcome."""

    ACCEPTED = "accepted"
    RETRYABLE_FAILURE = "retryable_failure"
    TERMINAL_FAILURE = "terminal_failure"
    NEEDS_RECONFIGURATION = "needs_reconfiguration"


class StepDecision(str, Enum):
    """What a driver should do after one dispatch step."""

    CONTINUE = "continue"
    STOP = "stop"


class RawResult(BaseModel):
    """Result reported by a tester for a single candidate."""

    candidate: str = Field(..., description="Candidate that was tried")
    accepted: bool = Field(default=False, description="The candidate was accepted")
    needs_reconfiguration: bool = Field(
        default=False, description="The transport must be reconfigured before retrying"
    )
    reconfiguration: Optional[Any] = Field(
        None, description="Reconfiguration payload, e.g. the next proxy to use"
    )
    transport_error: bool = Field(
        default=False, description="The trial failed for transport reasons"
    )
    detail: Optional[str] = Field(None, description="Free-form detail from the endpoint")


class TrialOutcome(BaseModel):
    """Typed outcome of one trial."""

    candidate: str
    status: TrialStatus
    reconfiguration: Optional[Any] = None

    @model_validator(mode="after")
    def _reconfiguration_only_when_needed(self):
        if self.status is not TrialStatus.NEEDS_RECONFIGURATION:
            self.reconfiguration = None
        return self

    @property
    def is_retryable(self) -> bool:
        return self.status in (TrialStatus.RETRYABLE_FAILURE, TrialStatus.NEEDS_RECONFIGURATION)

    @classmethod
    def retryable(cls, candidate: str) -> "TrialOutcome":
        return cls(candidate=candidate, status=TrialStatus.RETRYABLE_FAILURE)

    @classmethod
    def from_raw(cls, raw: RawResult) -> "TrialOutcome":
        """
        Map a tester's raw result to an outcome.

        Acceptance wins over everything else; a reconfiguration request wins
        over a plain transport error. Only a result with no flag set is an
        authoritative negative.
        """
        if raw.accepted:
            status = TrialStatus.ACCEPTED
        elif raw.needs_reconfiguration:
            status = TrialStatus.NEEDS_RECONFIGURATION
        elif raw.transport_error:
            status = TrialStatus.RETRYABLE_FAILURE
        else:
            status = TrialStatus.TERMINAL_FAILURE
        return cls(candidate=raw.candidate, status=status, reconfiguration=raw.reconfiguration)
