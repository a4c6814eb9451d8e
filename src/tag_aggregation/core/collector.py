"""
Collector for periodic hashtag timeline ingestion.

Uses APScheduler to run collection cycles at a fixed poll interval. A
collector moves through ``STOPPED -> RUNNING -> DRAINING -> STOPPED``; stopping
is cooperative, the running cycle checks a cancellation event between tags.
"""

import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Optional, Sequence

from apscheduler.executors.pool import ThreadPoolExecutor
from apscheduler.schedulers import SchedulerNotRunningError
from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.interval import IntervalTrigger

from tag_aggregation.config import CollectorConfig
from tag_aggregation.errors import (
    AllSourcesFailedError,
    CollectorError,
    CollectorStateError,
    SourceFetchError,
)
from tag_aggregation.logger import get_logger
from tag_aggregation.sources import FeedSource
from tag_aggregation.storage import PostStore

logger = get_logger(__name__)

COLLECT_JOB_ID = "collect"


class CollectorState(str, Enum):
    """Lifecycle states of a collector."""

    STOPPED = "stopped"
    RUNNING = "running"
    DRAINING = "draining"


class ErrorPolicy(str, Enum):
    """What a cycle does when a source fails."""

    CONTINUE = "continue"
    ABORT = "abort"


@dataclass
class CollectStats:
    """Result of one collection cycle."""

    inserted: int = 0
    skipped: int = 0
    fetches: int = 0
    fetch_errors: int = 0
    cancelled: bool = False


@dataclass
class CollectorStats:
    """Statistics accumulated across cycles."""

    total_cycles: int = 0
    successful_cycles: int = 0
    failed_cycles: int = 0
    inserted: int = 0
    skipped: int = 0
    fetch_errors: int = 0
    last_cycle_time: Optional[datetime] = None
    last_error: Optional[str] = None

    def add_cycle(self, result: CollectStats) -> None:
        """Add a completed cycle to the statistics.

        Args:
            result: CollectStats of the cycle
        """
        self.total_cycles += 1
        self.successful_cycles += 1
        self.inserted += result.inserted
        self.skipped += result.skipped
        self.fetch_errors += result.fetch_errors
        self.last_cycle_time = datetime.now(timezone.utc)

    def add_failure(self, error: Exception) -> None:
        """Record a cycle that ended with a fatal error."""
        self.total_cycles += 1
        self.failed_cycles += 1
        self.last_error = f"{type(error).__name__}: {error}"
        self.last_cycle_time = datetime.now(timezone.utc)


class Collector:
    """Polls feed sources for tags and writes their posts to the store."""

    def __init__(
        self,
        sources: Sequence[FeedSource],
        store: PostStore,
        config: Optional[CollectorConfig] = None,
    ):
        """Initialize collector.

        Args:
            sources: Feed sources, visited in this order
            store: Store receiving the posts
            config: Collector settings (poll interval, grace period, policy)
        """
        config = config or CollectorConfig()

        self.sources = list(sources)
        self.store = store
        self.poll_interval_seconds = config.poll_interval_seconds
        self.stop_grace_seconds = config.stop_grace_seconds
        self.error_policy = ErrorPolicy(config.error_policy)
        self.timezone = config.timezone
        self.misfire_grace_time = config.misfire_grace_time

        self.stats = CollectorStats()

        self._lock = threading.Lock()
        self._scheduler_lock = threading.Lock()
        self._state = CollectorState.STOPPED
        self._scheduler: Optional[BackgroundScheduler] = None
        self._tag_names: list[str] = []
        self._stop_event = threading.Event()
        self._idle = threading.Event()
        self._idle.set()

    @property
    def state(self) -> CollectorState:
        return self._state

    def is_running(self) -> bool:
        """Check whether the collector is polling."""
        return self._state is CollectorState.RUNNING

    def get_stats(self) -> CollectorStats:
        return self.stats

    def collect_once(self, tag_names: Sequence[str]) -> CollectStats:
        """Run one collection cycle synchronously.

        Sources are visited in configuration order and tags in the given
        order within each source. Writes committed before a failure stay
        committed.

        Args:
            tag_names: Tags to collect

        Returns:
            CollectStats for the cycle

        Raises:
            SourceFetchError: Under the abort policy on the first failed fetch,
                or AllSourcesFailedError when every source failed
            StoreWriteError: When a post cannot be written
        """
        return self._collect(list(tag_names), cancel=None)

    def start(self, tag_names: Sequence[str]) -> None:
        """Start polling in the background.

        The first cycle runs immediately, then every poll interval.

        Args:
            tag_names: Tags to collect on each cycle

        Raises:
            CollectorStateError: If the collector is not stopped
        """
        with self._lock:
            if self._state is not CollectorState.STOPPED:
                raise CollectorStateError(f"Cannot start collector in state '{self._state.value}'")

            self._tag_names = list(tag_names)
            self._stop_event = threading.Event()
            self._idle.set()

            # One worker and one instance: a cycle never overlaps the next
            scheduler = BackgroundScheduler(
                executors={"default": ThreadPoolExecutor(max_workers=1)},
                job_defaults={
                    "coalesce": True,
                    "max_instances": 1,
                    "misfire_grace_time": self.misfire_grace_time,
                },
                timezone=self.timezone,
            )
            scheduler.add_job(
                func=self._run_cycle,
                trigger=IntervalTrigger(seconds=self.poll_interval_seconds),
                args=[self._stop_event, self._tag_names],
                id=COLLECT_JOB_ID,
                name=f"Collect {len(self._tag_names)} tags",
                next_run_time=datetime.now(timezone.utc),
            )
            scheduler.start()

            self._scheduler = scheduler
            self._state = CollectorState.RUNNING

        logger.info(f"Collector started. Will refresh every {self.poll_interval_seconds}s")

    def stop(self) -> bool:
        """Stop polling, waiting a bounded time for the running cycle.

        Returns:
            True if the background work acknowledged within the grace period,
            False if it may still be running (state stays DRAINING until the
            in-flight cycle exits)
        """
        with self._lock:
            if self._state is CollectorState.STOPPED:
                logger.warning("Collector is not running")
                return True

            self._state = CollectorState.DRAINING
            self._stop_event.set()
            scheduler = self._scheduler

        self._shutdown_scheduler(scheduler)

        if self._idle.wait(self.stop_grace_seconds):
            with self._lock:
                self._state = CollectorState.STOPPED
            logger.debug("Collector finished")
            return True

        logger.warning(
            f"Collector did not finish within {self.stop_grace_seconds}s; shutting down now"
        )
        return False

    def _run_cycle(self, stop_event: threading.Event, tag_names: list[str]) -> None:
        """Scheduled job: run one cycle unless its run was asked to stop.

        Args:
            stop_event: Cancellation event of the run that scheduled this job
            tag_names: Tags to collect
        """
        with self._lock:
            if stop_event.is_set():
                return
            self._idle.clear()

        logger.debug("Collector run starting")

        try:
            result = self._collect(tag_names, cancel=stop_event)
            self.stats.add_cycle(result)
        except CollectorError as e:
            logger.error(f"Collector failed with error: {e}")
            self.stats.add_failure(e)
            self._halt(stop_event)
        finally:
            with self._lock:
                if stop_event.is_set() and stop_event is self._stop_event:
                    self._state = CollectorState.STOPPED
                self._idle.set()

    def _halt(self, stop_event: threading.Event) -> None:
        """Stop scheduling further cycles after a fatal error."""
        with self._lock:
            stop_event.set()
            scheduler = self._scheduler if stop_event is self._stop_event else None
        self._shutdown_scheduler(scheduler)

    def _shutdown_scheduler(self, scheduler: Optional[BackgroundScheduler]) -> None:
        """Shut the scheduler down without waiting for the running job."""
        if scheduler is None:
            return

        with self._scheduler_lock:
            if not scheduler.running:
                return
            try:
                scheduler.shutdown(wait=False)
            except SchedulerNotRunningError:
                pass

    def _collect(self, tag_names: list[str], cancel: Optional[threading.Event]) -> CollectStats:
        """Collect all tags from all sources.

        Args:
            tag_names: Tags to collect
            cancel: Event checked between tags; None for an uncancellable run

        Returns:
            CollectStats for the cycle
        """
        result = CollectStats()
        failed_sources: list[SourceFetchError] = []

        for source in self.sources:
            logger.info(f"Collecting from source: {source.name}")
            source_errors: list[SourceFetchError] = []

            for tag in tag_names:
                if cancel is not None and cancel.is_set():
                    logger.debug("Collector cycle cancelled")
                    result.cancelled = True
                    return result

                result.fetches += 1
                try:
                    records = source.fetch(tag)
                except SourceFetchError as e:
                    result.fetch_errors += 1
                    if self.error_policy is ErrorPolicy.ABORT:
                        logger.error(f"Error collecting data: {e}")
                        raise
                    logger.error(f"Error collecting data, continuing: {e}")
                    source_errors.append(e)
                    continue

                for record in records:
                    if self.store.insert_post(record, record.tag_names) is None:
                        result.skipped += 1
                    else:
                        result.inserted += 1

            if tag_names and len(source_errors) == len(tag_names):
                failed_sources.extend(source_errors)
            elif source_errors:
                logger.warning(f"{len(source_errors)} of {len(tag_names)} tags failed for {source.name}")

        if self.sources and tag_names and len(failed_sources) == len(self.sources) * len(tag_names):
            raise AllSourcesFailedError(failed_sources)

        logger.info(
            f"Collected {result.inserted} new posts ({result.skipped} already stored) "
            f"from {len(self.sources)} sources"
        )
        return result
