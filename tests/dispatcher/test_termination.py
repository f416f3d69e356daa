"""
Tests for the TerminationController protocols.

Checklist:
- Abrupt and graceful protocols are mutually exclusive
- Persistence happens once, and a failing store does not block shutdown
- Graceful shutdown waits for dispatch steps still applying outcomes
- shutdown() picks the protocol from the accepted value
- Run events are written when a summary writer is attached
"""

import io
import json
import threading

import pytest

from crack_password_pool.core.registry import CandidateRegistry
from crack_password_pool.io.output import OperatorOutput
from crack_password_pool.core.utils.run_summary import RunSummaryWriter
from crack_password_pool.pipeline.pool import PoolState, WorkerPool
from crack_password_pool.pipeline.termination import TerminationController, TerminationKind
from crack_password_pool.pipeline.tracking import AcceptedValue, InFlightTracker

from tests.fakes import FakeTester, InMemoryDictionary


def _controller(tested_dictionary=None, password_dictionary=None, **kwargs):
    registry = CandidateRegistry({"a", "b", "c"})
    parts = {
        "pool": WorkerPool(core_size=1, max_size=1),
        "registry": registry,
        "tester": FakeTester(),
        "accepted": AcceptedValue(),
        "tested_dictionary": tested_dictionary or InMemoryDictionary(),
        "password_dictionary": password_dictionary or InMemoryDictionary({"a", "b", "c"}),
        "output": OperatorOutput(stream=io.StringIO()),
        "in_flight": InFlightTracker(),
        "drain_timeout_seconds": 0.05,
    }
    parts.update(kwargs)
    return TerminationController(**parts)


def test_abrupt_then_graceful_runs_only_abrupt():
    controller = _controller()
    controller.registry.claim_one()
    controller.registry.mark_tested("a")
    controller.accepted.set("b")

    assert controller.abrupt_shutdown() is True
    assert controller.graceful_shutdown() is False

    assert controller.kind is TerminationKind.FOUND
    assert controller.tested_dictionary.append_calls == 1
    assert controller.tested_dictionary.entries == ["a"]
    assert controller.output.stream.getvalue().splitlines() == ["b", "Accepted value: b"]


def test_graceful_then_abrupt_runs_only_graceful():
    controller = _controller()

    assert controller.graceful_shutdown() is True
    assert controller.abrupt_shutdown() is False

    assert controller.kind is TerminationKind.EXHAUSTED
    assert controller.pool.state is PoolState.TERMINATED
    assert controller.tested_dictionary.append_calls == 1
    assert controller.registry.is_closed


def test_persistence_failure_does_not_block_shutdown():
    tested = InMemoryDictionary(fail_on_append=True)
    controller = _controller(tested_dictionary=tested)

    assert controller.graceful_shutdown() is True

    assert controller.finished
    assert controller.persistence_error == "disk full"
    assert tested.disposed
    assert controller.password_dictionary.disposed
    assert controller.pool.is_terminated()


@pytest.mark.timeout(10)
def test_graceful_waits_for_in_flight_steps():
    controller = _controller()
    release = threading.Event()
    entered = threading.Event()

    def slow_step():
        with controller.in_flight.track():
            entered.set()
            release.wait(5)
            controller.registry.mark_tested("c")

    step_thread = threading.Thread(target=slow_step)
    step_thread.start()
    entered.wait(5)

    shutdown_thread = threading.Thread(target=controller.graceful_shutdown)
    shutdown_thread.start()

    assert not controller.wait_finished(0.2)
    release.set()
    assert controller.wait_finished(5)
    step_thread.join(5)
    shutdown_thread.join(5)

    # The outcome applied during the drain is part of the checkpoint
    assert controller.tested_dictionary.entries == ["c"]


def test_shutdown_picks_abrupt_when_value_accepted():
    controller = _controller()
    controller.accepted.set("a")

    assert controller.shutdown() is TerminationKind.FOUND
    assert controller.pool.state in (PoolState.SHUTTING_DOWN_ABRUPTLY, PoolState.TERMINATED)


def test_shutdown_is_graceful_without_accepted_value():
    controller = _controller()

    assert controller.shutdown() is TerminationKind.STOPPED
    assert controller.shutdown() is TerminationKind.STOPPED
    assert controller.tested_dictionary.append_calls == 1


def test_value_accepted_during_drain_is_reported():
    controller = _controller(message_formatter=lambda v: f"found {v}")
    assert controller.pool.shutdown() is True  # draining already started elsewhere
    controller.accepted.set("c")

    # The abrupt protocol cannot run any more; the value is still reported
    assert controller.abrupt_shutdown() is False

    fresh = _controller(message_formatter=lambda v: f"found {v}")
    with fresh.in_flight.track():
        fresh.accepted.set("c")
    assert fresh.graceful_shutdown() is True
    assert fresh.kind is TerminationKind.FOUND
    assert "found c" in fresh.output.stream.getvalue()


def test_events_written_to_run_summary(tmp_path):
    writer = RunSummaryWriter(run_id="run-1", base_dir=str(tmp_path))
    controller = _controller(summary_writer=writer, tested_dictionary=InMemoryDictionary(fail_on_append=True))
    controller.accepted.set("a")

    controller.abrupt_shutdown()

    events = [json.loads(line)["event"] for line in writer.ndjson_path.read_text().splitlines()]
    assert events == ["run_initialized", "shutdown_started", "candidate_accepted", "persistence_failed"]


def test_wait_retries_after_timeout_and_interrupt():
    controller = _controller()
    answers = [False, KeyboardInterrupt(), True]
    timeouts = []

    def wait(timeout):
        timeouts.append(timeout)
        answer = answers.pop(0)
        if isinstance(answer, BaseException):
            raise answer
        return answer

    controller._wait_until(wait, "test waiter")

    assert timeouts == [0.05, 0.05, 0.05]
    assert answers == []


@pytest.mark.timeout(20)
def test_interrupted_run_stops_gracefully(make_cracker, monkeypatch):
    candidates = {f"{i:02d}" for i in range(60)}
    cracker, tester, tested_dictionary = make_cracker(candidates, delay=0.05)
    original_wait = cracker.controller.wait_finished
    interrupts = [KeyboardInterrupt()]

    def wait_finished(timeout=None):
        if interrupts:
            raise interrupts.pop()
        return original_wait(timeout)

    monkeypatch.setattr(cracker.controller, "wait_finished", wait_finished)

    report = cracker.run(poll_interval=0.05)

    assert report.interrupted
    assert report.termination is TerminationKind.STOPPED
    assert cracker.controller.finished
    assert tested_dictionary.append_calls == 1
    assert set(tested_dictionary.entries) == cracker.registry.tested_snapshot()
    assert report.untested_count > 0
