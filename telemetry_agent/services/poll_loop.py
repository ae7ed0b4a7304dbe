"""
Poll loop: scan, check, parse, publish and finalize once per interval.

The loop alternates between Idle (sleeping for the configured interval) and
Cycle (processing every matching file). Errors are contained at three
levels: a bad row is skipped, a failing file is left for the next cycle, and
a failing cycle is logged before the loop sleeps and tries again.
"""

import asyncio
import logging
from datetime import datetime
from typing import Optional

from telemetry_agent.core.config_store import ConfigStore
from telemetry_agent.core.exceptions import (
    FileAccessError,
    HeaderError,
    PublishError,
    RenameError,
    RowShapeError,
)
from telemetry_agent.models import (
    AgentStatus,
    CandidateFile,
    CycleReport,
    FileOutcome,
    FileState,
)
from .domain_objects import PollLoopConfiguration
from .file_finalizer import FileFinalizer
from .file_safety import FileSafetyChecker
from .file_scanner import FileScanner
from .row_parser import open_row_parser
from .telemetry_publisher import TelemetryPublisher


class PollLoop:
    def __init__(
        self,
        config: PollLoopConfiguration,
        config_store: ConfigStore,
        scanner: FileScanner,
        safety_checker: FileSafetyChecker,
        publisher: TelemetryPublisher,
        finalizer: FileFinalizer,
    ):
        self.config = config
        self._config_store = config_store
        self._scanner = scanner
        self._safety_checker = safety_checker
        self._publisher = publisher
        self._finalizer = finalizer

        self._running = False
        self._task: Optional[asyncio.Task] = None
        self._stop_event = asyncio.Event()

        self.last_report: Optional[CycleReport] = None
        self.cycles_completed = 0
        self.total_rows_published = 0
        self.total_files_finalized = 0

        logging.info("PollLoop initialized")
        logging.info(f"Watching: {config.watch_directory}")
        logging.info(f"Encoding: {config.file_encoding}, delimiter: {config.delimiter!r}")

    @property
    def is_running(self) -> bool:
        return self._running

    async def start(self) -> None:
        if self._running:
            logging.warning("Poll loop is already running")
            return

        self._stop_event.clear()
        self._running = True
        self._task = asyncio.create_task(self._run())
        logging.info("Poll loop task started in background")

    async def stop(self) -> None:
        """
        Interrupt the sleep at once; let an in-flight cycle finish its
        current file. The task is cancelled only after the grace period.
        """
        if not self._running or self._task is None:
            logging.warning("Poll loop is not running")
            return

        logging.info("Poll loop stop requested")
        self._stop_event.set()

        done, _ = await asyncio.wait(
            {self._task}, timeout=self.config.shutdown_grace_seconds
        )
        if not done:
            logging.warning(
                f"Poll loop did not stop within {self.config.shutdown_grace_seconds}s - cancelling"
            )
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                logging.debug("Poll loop task cancelled")

        self._task = None
        logging.info("Poll loop stopped")

    async def _run(self) -> None:
        try:
            while not self._stop_event.is_set():
                await self.run_cycle()

                if self._stop_event.is_set():
                    break

                # Read fresh so an interval change applies to this very sleep
                interval = self._config_store.get().interval_seconds
                await self._sleep(interval)
        except asyncio.CancelledError:
            logging.info("Poll loop cancelled")
            raise
        finally:
            self._running = False
            logging.info("Poll loop completed")

    async def _sleep(self, seconds: float) -> bool:
        """Sleep for `seconds`; return True if woken by the stop event."""
        try:
            await asyncio.wait_for(self._stop_event.wait(), timeout=seconds)
            return True
        except asyncio.TimeoutError:
            return False

    async def run_cycle(self) -> CycleReport:
        config = self._config_store.get()
        report = CycleReport(file_pattern=config.file_pattern)

        try:
            candidates = await self._scanner.scan(
                config.file_pattern, exclude_suffix=config.processed_suffix
            )
            logging.info(
                f"Seen {len(candidates)} files with pattern '{config.file_pattern}'"
            )

            for candidate in candidates:
                if self._stop_event.is_set():
                    logging.info("Stop requested - remaining files wait for the next run")
                    break
                report.files.append(await self.process_file(candidate))

        except Exception as e:
            logging.error(f"Poll cycle failed: {e}")
            report.error_message = str(e)

        report.completed_at = datetime.now()
        self._record(report)
        return report

    async def process_file(self, candidate: CandidateFile) -> FileOutcome:
        name = candidate.name

        try:
            await self._safety_checker.ensure_accessible(candidate.path)
        except FileAccessError as e:
            logging.warning(f"Skipping {name}: {e}")
            candidate.last_state = FileState.SKIPPED
            return FileOutcome(file_name=name, state=candidate.last_state, error_message=str(e))

        candidate.last_state = FileState.LOCK_CHECKED
        outcome = FileOutcome(file_name=name, state=candidate.last_state)

        try:
            async with open_row_parser(
                candidate.path, self.config.file_encoding, self.config.delimiter
            ) as parser:
                await parser.parse_header()

                while True:
                    try:
                        record = await parser.next_record()
                    except RowShapeError as e:
                        logging.warning(f"{name}: skipping row - {e}")
                        outcome.rows_skipped += 1
                        continue

                    if record is None:
                        break

                    message = self._publisher.build_message(
                        record, source_file=name, row_number=parser.line_number - 1
                    )
                    await self._publisher.send(message)
                    outcome.rows_published += 1

        except PublishError as e:
            logging.error(
                f"{name}: publish failed after {outcome.rows_published} rows - "
                f"file left for full retry next cycle: {e}"
            )
            return self._fail(candidate, outcome, e)
        except HeaderError as e:
            logging.error(str(e))
            return self._fail(candidate, outcome, e)
        except UnicodeDecodeError as e:
            logging.error(f"{name}: cannot decode as {self.config.file_encoding}: {e}")
            return self._fail(candidate, outcome, e)
        except OSError as e:
            logging.error(f"{name}: read failed: {e}")
            return self._fail(candidate, outcome, e)

        candidate.last_state = FileState.PARSED
        logging.info(
            f"{name}: published {outcome.rows_published} rows"
            + (f", skipped {outcome.rows_skipped}" if outcome.rows_skipped else "")
        )

        suffix = self._config_store.get().processed_suffix
        try:
            # A rename in flight completes even if the task is cancelled
            outcome.renamed_to = await asyncio.shield(
                self._finalizer.finalize(candidate.path, suffix)
            )
        except RenameError as e:
            logging.warning(f"{e} - retrying next cycle")
            return self._fail(candidate, outcome, e)

        candidate.last_state = FileState.FINALIZED
        outcome.state = candidate.last_state
        return outcome

    @staticmethod
    def _fail(candidate: CandidateFile, outcome: FileOutcome, error: Exception) -> FileOutcome:
        candidate.last_state = FileState.FAILED
        outcome.state = candidate.last_state
        outcome.error_message = str(error)
        return outcome

    def _record(self, report: CycleReport) -> None:
        self.last_report = report
        self.cycles_completed += 1
        self.total_rows_published += report.rows_published
        self.total_files_finalized += report.count(FileState.FINALIZED)

    def status(self) -> AgentStatus:
        return AgentStatus(
            running=self._running,
            watch_directory=self.config.watch_directory,
            config=self._config_store.get(),
            cycles_completed=self.cycles_completed,
            total_rows_published=self.total_rows_published,
            total_files_finalized=self.total_files_finalized,
            last_cycle=self.last_report,
        )
