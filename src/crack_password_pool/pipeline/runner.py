"""
Main Cracking Pipeline

This module wires the registry, worker pool, dispatch loop and termination
controller together, runs the driver threads, and provides the
command-line entry point.
"""

import logging
import sys
import threading
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional
from uuid import uuid4

from dotenv import load_dotenv
from pydantic import BaseModel, Field

from ..core.errors import CrackPoolError
from ..core.interfaces import DictionaryStore, PasswordTester
from ..core.outcomes import StepDecision
from ..core.registry import CandidateRegistry
from ..core.utils.logging import setup_logging
from ..core.utils.run_summary import RunSummaryWriter
from ..io.dictionary import create_password_dictionary
from ..io.output import OperatorOutput
from ..io.tester import compose_share_message, create_share_link_tester
from .config import POOL_DEFAULTS, create_config_loader
from .dispatcher import DispatchLoop
from .executor import TrialExecutor
from .pool import WorkerPool
from .termination import TerminationController, TerminationKind
from .tracking import AcceptedValue, InFlightTracker

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_INTERRUPTED = 130


class RunReport(BaseModel):
    """Summary of one cracking run."""

    run_id: str
    termination: Optional[TerminationKind] = None
    accepted_value: Optional[str] = None
    message: Optional[str] = None
    tested_count: int = 0
    persisted_count: int = 0
    untested_count: int = 0
    initial_untested_count: int = 0
    drivers: int = 0
    interrupted: bool = False
    persistence_error: Optional[str] = None
    start_time: str = Field(default_factory=lambda: datetime.now().isoformat())
    end_time: Optional[str] = None


class CrackPasswordPool:
    """Runs one pass over the untested candidates with a bounded pool of workers."""

    def __init__(
        self,
        tester: PasswordTester,
        password_dictionary: DictionaryStore,
        tested_dictionary: DictionaryStore,
        pool_config: Optional[Dict[str, Any]] = None,
        output: Optional[OperatorOutput] = None,
        message_formatter: Optional[Callable[[str], str]] = None,
        summary_writer: Optional[RunSummaryWriter] = None,
        run_id: Optional[str] = None,
    ):
        """
        Build every component and seed the registry.

        Args:
            tester: External tester the trials run against
            password_dictionary: Store of every candidate
            tested_dictionary: Store of candidates tested in earlier runs
            pool_config: Pool section of the configuration
            output: Operator output (default: stdout)
            message_formatter: Builds the success message from the accepted value
            summary_writer: Optional run event stream
            run_id: Identifier of this run (default: random UUID)
        """
        cfg = {**POOL_DEFAULTS, **(pool_config or {})}
        self.run_id = run_id or (summary_writer.run_id if summary_writer else str(uuid4()))
        self.tester = tester
        self.output = output or OperatorOutput()
        self.summary_writer = summary_writer

        self.registry = CandidateRegistry(password_dictionary.load(), tested_dictionary.load())
        self.pool = WorkerPool(
            core_size=cfg.get("core_size"),
            max_size=cfg.get("max_size"),
            backlog_size=int(cfg["backlog_size"]),
            keep_alive_seconds=float(cfg["keep_alive_seconds"]),
            thread_name_prefix=cfg.get("thread_name_prefix") or POOL_DEFAULTS["thread_name_prefix"],
        )
        self.drivers = int(cfg.get("drivers") or self.pool.core_size)

        self.accepted = AcceptedValue()
        self.in_flight = InFlightTracker()
        self.controller = TerminationController(
            pool=self.pool,
            registry=self.registry,
            tester=tester,
            accepted=self.accepted,
            tested_dictionary=tested_dictionary,
            password_dictionary=password_dictionary,
            output=self.output,
            in_flight=self.in_flight,
            drain_timeout_seconds=float(cfg["drain_timeout_seconds"]),
            message_formatter=message_formatter,
            summary_writer=summary_writer,
        )
        self.executor = TrialExecutor(self.registry, tester)
        self.dispatcher = DispatchLoop(
            pool=self.pool,
            executor=self.executor,
            registry=self.registry,
            tester=tester,
            controller=self.controller,
            accepted=self.accepted,
            output=self.output,
            in_flight=self.in_flight,
        )
        self.report = RunReport(
            run_id=self.run_id,
            initial_untested_count=self.registry.untested_count(),
            drivers=self.drivers,
        )

    def step(self) -> StepDecision:
        return self.dispatcher.step()

    def _drive(self) -> None:
        try:
            steps = self.dispatcher.drive()
            logger.debug(f"[DISPATCH] driver finished after {steps} steps")
        except Exception:
            logger.exception("[DISPATCH] driver thread failed")

    def run(self, poll_interval: float = 0.5) -> RunReport:
        """
        Drive the dispatch loop from ``self.drivers`` threads until the run ends.

        Ctrl-C stops the run gracefully: in-flight trials drain and the
        tested set is persisted.

        Returns:
            RunReport: How the run ended
        """
        logger.info(
            f"RUN {self.run_id} | drivers={self.drivers} pool_core={self.pool.core_size} "
            f"pool_max={self.pool.max_size} untested={self.report.initial_untested_count}"
        )
        self._event(
            {
                "event": "run_started",
                "drivers": self.drivers,
                "pool": {
                    "core_size": self.pool.core_size,
                    "max_size": self.pool.max_size,
                    "backlog_size": self.pool.backlog_size,
                },
                "untested_count": self.report.initial_untested_count,
            }
        )

        threads: List[threading.Thread] = [
            threading.Thread(target=self._drive, name=f"CrackPool-Driver-{i}", daemon=True)
            for i in range(self.drivers)
        ]
        for thread in threads:
            thread.start()

        try:
            while not self.controller.wait_finished(poll_interval):
                if not any(thread.is_alive() for thread in threads):
                    # Drivers stopped without a protocol running, e.g. tester disposed from outside
                    self.controller.shutdown(TerminationKind.STOPPED)
        except KeyboardInterrupt:
            logger.warning("Interrupted, stopping gracefully (waiting for in-flight trials)")
            self.report.interrupted = True
            self.controller.shutdown(TerminationKind.STOPPED)

        return self._finalize()

    def _finalize(self) -> RunReport:
        report = self.report
        report.termination = self.controller.kind
        report.accepted_value = self.accepted.get()
        if report.accepted_value is not None:
            report.message = self.controller.message_formatter(report.accepted_value)
        report.tested_count = self.registry.tested_count()
        report.persisted_count = self.controller.persisted_count
        report.persistence_error = self.controller.persistence_error
        report.untested_count = self.registry.untested_count()
        report.end_time = datetime.now().isoformat()

        logger.info(
            f"RUN {self.run_id} finished: termination={report.termination.value if report.termination else None} "
            f"tested={report.tested_count} untested={report.untested_count}"
        )
        if self.summary_writer:
            try:
                self.summary_writer.write_final_summary(report.model_dump(mode="json"))
            except OSError as e:
                logger.warning(f"Failed to write run summary: {e}")
        return report

    def _event(self, event: Dict[str, Any]) -> None:
        if self.summary_writer is None:
            return
        try:
            self.summary_writer.append_event(event)
        except OSError as e:
            logger.warning(f"Failed to write run event: {e}")


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the cracking pipeline."""
    import argparse

    parser = argparse.ArgumentParser(description="Crack a share link's extraction code")
    parser.add_argument("--config", default="config/config.yaml", help="Configuration file path")
    parser.add_argument("--surl", help="Share identifier (overrides config and CRACK_SURL)")
    parser.add_argument("--password-file", help="Candidate dictionary file")
    parser.add_argument("--tested-file", help="Tested-candidates dictionary file")
    parser.add_argument("--drivers", type=int, help="Number of driver threads")
    parser.add_argument(
        "--proxy", action="append", help="Proxy URL to rotate through (repeatable)"
    )
    parser.add_argument("--log-level", help="Log level (DEBUG, INFO, WARNING, ...)")
    parser.add_argument("--summary-dir", help="Directory for run summaries")
    parser.add_argument(
        "--stats", action="store_true", help="Show dictionary statistics and exit"
    )

    args = parser.parse_args(argv)

    load_dotenv()
    config_loader = create_config_loader(args.config)
    config_loader.apply_overrides("pool", {"drivers": args.drivers})
    config_loader.apply_overrides(
        "dictionary", {"password_file": args.password_file, "tested_file": args.tested_file}
    )
    config_loader.apply_overrides("tester", {"surl": args.surl, "proxies": args.proxy})
    config_loader.apply_overrides("logging", {"level": args.log_level})
    config_loader.apply_overrides("summary", {"base_dir": args.summary_dir})

    log_cfg = config_loader.get_logging_config()
    setup_logging(
        level=log_cfg["level"],
        log_file=log_cfg.get("file"),
        max_bytes=int(log_cfg["max_bytes"]),
        backup_count=int(log_cfg["backup_count"]),
    )

    try:
        dict_cfg = config_loader.get_dictionary_config()
        password_dictionary = create_password_dictionary(
            dict_cfg["password_file"], length=int(dict_cfg["length"]), alphabet=dict_cfg["alphabet"]
        )
        tested_dictionary = create_password_dictionary(
            dict_cfg["tested_file"], length=int(dict_cfg["length"]), alphabet=dict_cfg["alphabet"]
        )
        password_dictionary.ensure_generated()

        if args.stats:
            total = len(password_dictionary.load())
            tested = len(tested_dictionary.load())
            print("Dictionary Statistics:")
            print(f"password_file: {password_dictionary.file_path}")
            print(f"tested_file: {tested_dictionary.file_path}")
            print(f"total_candidates: {total}")
            print(f"tested_candidates: {tested}")
            print(f"remaining_candidates: {max(total - tested, 0)}")
            return EXIT_OK

        tester_cfg = config_loader.get_tester_config()
        # CLI wins over the environment
        if args.surl:
            tester_cfg["surl"] = args.surl
        if args.proxy:
            tester_cfg["proxies"] = args.proxy
        if not tester_cfg.get("surl"):
            parser.error("a share identifier is required (--surl, CRACK_SURL or tester.surl)")
        tester = create_share_link_tester(tester_cfg)
        surl = tester_cfg["surl"]

        summary_cfg = config_loader.get_summary_config()
        summary_writer = None
        if summary_cfg.get("enabled"):
            summary_writer = RunSummaryWriter(run_id=str(uuid4()), base_dir=summary_cfg["base_dir"])

        output_cfg = config_loader.get_output_config()
        cracker = CrackPasswordPool(
            tester=tester,
            password_dictionary=password_dictionary,
            tested_dictionary=tested_dictionary,
            pool_config=config_loader.get_pool_config(),
            output=OperatorOutput(mirror_file=output_cfg.get("mirror_file")),
            message_formatter=lambda value: compose_share_message(surl, value),
            summary_writer=summary_writer,
        )
        report = cracker.run()

    except CrackPoolError as e:
        logger.error(f"Error in main: {str(e)}")
        print(f"Error: {str(e)}", file=sys.stderr)
        return EXIT_ERROR

    print("Run completed:", file=sys.stderr)
    print(f"Termination: {report.termination.value if report.termination else 'unknown'}", file=sys.stderr)
    print(f"Tested this run: {report.tested_count}", file=sys.stderr)
    print(f"Remaining untested: {report.untested_count}", file=sys.stderr)
    if report.message:
        print(report.message, file=sys.stderr)

    return EXIT_INTERRUPTED if report.interrupted else EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
