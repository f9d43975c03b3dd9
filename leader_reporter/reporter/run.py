from __future__ import annotations

import sys
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum

from leader_reporter.shared.app_logging import configure_logging, structlog
from leader_reporter.shared.client import ReportClient
from leader_reporter.shared.config import ReporterConfig, parse_args
from leader_reporter.shared.errors import ConfigError, ReporterError
from leader_reporter.shared.marker import MarkerStore, RunLock
from leader_reporter.shared.node import NodeQuery

logger = structlog.get_logger(__name__)


class RunState(str, Enum):
    start = "Start"
    epoch_check = "EpochCheck"
    no_new_epoch = "NoNewEpoch"
    processing = "Processing"
    done = "Done"
    failed = "Failed"


@dataclass
class RunResult:
    state: RunState
    current_epoch: int | None = None
    last_processed_epoch: int | None = None
    processed: bool = False
    lock_busy: bool = False
    error: Exception | None = None

    @property
    def exit_code(self) -> int:
        return 1 if self.state == RunState.failed else 0


def should_process(current_epoch: int, last_processed_epoch: int) -> bool:
    return current_epoch > last_processed_epoch


class Reporter:
    """
    One cron invocation: check the node's epoch against the marker and, on a new
    epoch, fetch the leadership schedule, report it and advance the marker.

    The marker is written last, so any failure leaves it untouched and the next
    run retries the same epoch.
    """

    def __init__(
        self,
        config: ReporterConfig,
        node: NodeQuery | None = None,
        client: ReportClient | None = None,
        store: MarkerStore | None = None,
        lock: RunLock | None = None,
    ):
        self.config = config
        self.node = node or NodeQuery(config.node)
        self.client = client or ReportClient(config.report)
        self.store = store or MarkerStore(config.marker.path)
        self.lock = lock or RunLock(config.marker.lock_path)
        self.state = RunState.start

    def _transition(self, state: RunState, **kw) -> None:
        logger.debug("State transition", frm=self.state.value, to=state.value, **kw)
        self.state = state

    def _process(self) -> RunResult:
        self._transition(RunState.epoch_check)
        current_epoch = self.node.current_epoch()
        last_processed_epoch = self.store.read()

        logger.info("Current node epoch", epoch=current_epoch)
        logger.info("Last processed epoch", epoch=last_processed_epoch)

        if not should_process(current_epoch, last_processed_epoch):
            self._transition(RunState.no_new_epoch)
            logger.info("No new epoch detected. Exiting.")
            self._transition(RunState.done)
            return RunResult(RunState.done, current_epoch, last_processed_epoch)

        self._transition(RunState.processing, epoch=current_epoch)
        logger.info(f"New epoch detected! Processing for epoch {current_epoch}...")

        pool = self.config.pool
        schedule = self.node.leadership_schedule(pool.pool_id, pool.genesis_file, pool.vrf_skey_file)
        logger.info("Successfully fetched leadership schedule", size=len(schedule))

        self.client.report(pool.pool_id, current_epoch, schedule)
        logger.info("Successfully reported schedule to API", epoch=current_epoch)

        self.store.write(current_epoch)

        self._transition(RunState.done)
        return RunResult(RunState.done, current_epoch, last_processed_epoch, processed=True)

    def run(self) -> RunResult:
        self.state = RunState.start
        logger.info(f"--- Leadership Reporter Run @ {datetime.now(timezone.utc).isoformat()} ---")

        try:
            if not self.lock.acquire():
                logger.warning("Another run holds the lock, skipping", lock=str(self.lock.path))
                self._transition(RunState.done)
                return RunResult(RunState.done, lock_busy=True)
            try:
                result = self._process()
            finally:
                self.lock.release()
        except ReporterError as e:
            self._transition(RunState.failed)
            logger.error(
                "An error occurred during the run",
                error_type=type(e).__name__,
                error=str(e),
                marker=str(self.store.path),
            )
            logger.info("--- Run Finished with Errors ---")
            return RunResult(RunState.failed, error=e)

        logger.info("--- Run Finished ---")
        return result


def main(argv: list[str] | None = None) -> int:
    configure_logging()
    args = parse_args(argv)

    try:
        config = ReporterConfig.load(path=args.path, marker_path=args.marker)
    except ConfigError as e:
        logger.error("Configuration error", error=str(e))
        return 1
    logger.debug("Effective configuration", config=config.to_dict())

    try:
        result = Reporter(config).run()
    except Exception:
        logger.exception("Unexpected error during the run")
        return 1
    return result.exit_code


if __name__ == "__main__":
    sys.exit(main())
