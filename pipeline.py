"""Pipeline orchestration for HN Brief.

This module coordinates one ingestion run:

Pipeline Flow:
    1. CHECK: Ask the source for its max item ID and newest story IDs;
       compare against the stats of the previous run
    2. SELECT: Take the first max_stories new story IDs, newest first
    3. PROCESS: In batches of batch_size, for each ID:
       - skip if the tracker already has a success record for it
       - load from the raw cache, or fetch and cache it
       - skip deleted/dead items and items that already have an analysis
         and brief; rebuild the brief when only the analysis was saved
       - analyze, persist analysis and brief, record the outcome
    4. STATS: Add this run's counts to the stored totals
    5. PRUNE: Drop tracker records past the retention window

Every candidate ID ends the run with exactly one outcome (processed, error
or skipped) and at least one tracker record. Failures for one item never
stop the run; it aborts only when the storage directories or the
tracker files are unusable.
"""

import asyncio
import contextlib
import logging
import signal
import time
import uuid
from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any

from agents.analyzer import AnalyzerAgent
from briefs import build_brief
from config import Config
from errors import TrackerError, UpstreamModelError
from hn_client import HNClient
from models.analysis import AnalysisFailure, AnalysisResult
from models.item import Item
from models.tracking import ProcessingRecord, RecordStatus
from observability.logging import clear_context, set_run_context
from observability.tracing import setup_tracing, trace_operation
from storage.brief_store import BriefStore
from storage.cache import RawCache
from storage.tracker import ProgressTracker

logger = logging.getLogger(__name__)


class PipelineState(str, Enum):
    IDLE = "idle"
    CHECKING_FOR_WORK = "checking_for_work"
    NO_NEW_WORK = "no_new_work"
    PROCESSING_BATCH = "processing_batch"
    UPDATING_STATS = "updating_stats"


class ItemOutcome(str, Enum):
    PROCESSED = "processed"
    ERROR = "error"
    SKIPPED = "skipped"


@dataclass
class RunStats:
    """Statistics from a single pipeline run.

    Attributes:
        candidates: IDs selected for this run
        processed: Items that produced a real (or limited-info) analysis
        errors: Items that failed at any step
        skipped: Items already done, unavailable for analysis, or analyzed before
        max_item_id: Source max item ID observed at the start of the run
        new_stories_count: Length of the source's new-stories list
        new_work: False when the run stopped at the pre-check
        stopped: True if a stop request cut the run short
        pruned: Tracker records removed at the end of the run
        duration: Total run time in seconds
    """

    candidates: int = 0
    processed: int = 0
    errors: int = 0
    skipped: int = 0
    max_item_id: int = 0
    new_stories_count: int = 0
    new_work: bool = True
    stopped: bool = False
    pruned: int = 0
    duration: float = 0.0

    def count(self, outcome: ItemOutcome) -> None:
        if outcome is ItemOutcome.PROCESSED:
            self.processed += 1
        elif outcome is ItemOutcome.ERROR:
            self.errors += 1
        else:
            self.skipped += 1

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        d = asdict(self)
        d["duration"] = round(d["duration"], 2)
        return d


class Pipeline:
    """Async ingestion pipeline over Hacker News.

    Components are built from config unless injected:
        - ProgressTracker: dedup gate, record log, run statistics
        - RawCache: verbatim items keyed by ID
        - BriefStore: analyses and briefs
        - HNClient: source API (opened per run)
        - AnalyzerAgent: model-backed analysis

    Example:
        >>> pipeline = Pipeline(config)
        >>> stats = await pipeline.run_once()
        >>> stats.processed, stats.errors, stats.skipped
        (3, 1, 0)
    """

    def __init__(
        self,
        config: Config,
        tracker: ProgressTracker | None = None,
        cache: RawCache | None = None,
        store: BriefStore | None = None,
        client: Any = None,
        analyzer: AnalyzerAgent | None = None,
    ):
        """Initialize pipeline with all components.

        Args:
            config: Application configuration
            tracker, cache, store, analyzer: Override the default components
            client: Source client to use instead of opening an HNClient per run
        """
        self.config = config
        self.tracker = tracker or ProgressTracker(config.tracker_dir)
        self.cache = cache or RawCache(config.data_dir)
        self.store = store or BriefStore(config.data_dir, config.posts_dir)
        self.analyzer = analyzer or AnalyzerAgent(config)
        self._client = client
        self._stop = asyncio.Event()
        self.state = PipelineState.IDLE

        if config.enable_logfire:
            setup_tracing(enabled=True, service_name="hn-brief", token=config.logfire_token)

    def request_stop(self) -> None:
        """Stop after the current batch; in-flight items finish."""
        if not self._stop.is_set():
            logger.info("Stop requested | state=%s", self.state.value)
        self._stop.set()

    @property
    def stop_requested(self) -> bool:
        return self._stop.is_set()

    def _open_client(self):
        if self._client is not None:
            return contextlib.nullcontext(self._client)
        return HNClient(self.config.hn_api_base_url, timeout=self.config.http_timeout_seconds)

    def _record(self, record: ProcessingRecord) -> None:
        self.tracker.record_outcome(record)

    async def _process_item(self, client: Any, item_id: int, done: set[int]) -> ItemOutcome:
        """Run one candidate through fetch, analysis and persistence.

        Any exception is turned into a source-item error record so the
        rest of the batch is unaffected. A TrackerError is re-raised and
        aborts the run.
        """
        try:
            return await self._process_item_steps(client, item_id, done)
        except TrackerError:
            raise
        except Exception as e:
            logger.error(
                "Item failed | id=%d type=%s error=%s", item_id, type(e).__name__, e, exc_info=True,
            )
            self._record(ProcessingRecord.for_item(item_id, RecordStatus.ERROR, f"{type(e).__name__}: {e}"))
            return ItemOutcome.ERROR

    async def _process_item_steps(self, client: Any, item_id: int, done: set[int]) -> ItemOutcome:
        if item_id in done:
            logger.debug("Item already processed | id=%d", item_id)
            self._record(ProcessingRecord.for_item(item_id, RecordStatus.SKIPPED, "Already processed"))
            return ItemOutcome.SKIPPED

        # Fetch
        item = self.cache.load(item_id)
        if item is None:
            item = await client.get_item(item_id)
            if item is None:
                logger.warning("Item unavailable | id=%d", item_id)
                self._record(ProcessingRecord.for_item(
                    item_id, RecordStatus.ERROR, "Item unavailable from cache and source",
                ))
                return ItemOutcome.ERROR
            self.cache.save(item)
        else:
            logger.debug("Item loaded from cache | id=%d", item_id)

        if not item.is_available:
            logger.info("Item deleted or dead | id=%d", item_id)
            self._record(ProcessingRecord.for_item(item_id, RecordStatus.SKIPPED, "Item deleted or dead"))
            return ItemOutcome.SKIPPED

        if self.store.has_analysis(item_id):
            if self.store.has_brief_for(item_id):
                logger.info("Analysis already exists | id=%d", item_id)
                self._record(ProcessingRecord.for_analysis(item_id, RecordStatus.SKIPPED, "Analysis already exists"))
                return ItemOutcome.SKIPPED
            # An earlier run saved the analysis but not its brief
            analysis = self.store.load_analysis(item_id)
            if analysis is not None:
                logger.info("Rebuilding brief from saved analysis | id=%d", item_id)
                return self._persist_brief(item, analysis)

        # Analyze
        with trace_operation("analyze_item", {"item_id": item_id}) as span_attrs:
            try:
                analysis = await self.analyzer.run_analysis(item)
            except UpstreamModelError as e:
                logger.error("Upstream model error | id=%d error=%s", item_id, e)
                span_attrs["outcome"] = "upstream_error"
                self._record(ProcessingRecord.for_analysis(item_id, RecordStatus.ERROR, str(e)))
                return ItemOutcome.ERROR
            span_attrs["outcome"] = analysis.failure.value if analysis.failure else "analyzed"

        self.store.save_analysis(item_id, analysis)
        return self._persist_brief(item, analysis)

    def _persist_brief(self, item: Item, analysis: AnalysisResult) -> ItemOutcome:
        """Save the brief for a stored analysis and record both outcomes."""
        brief = build_brief(item, analysis)
        self.store.save_brief(brief)

        if analysis.failure is AnalysisFailure.PARSE:
            self._record(ProcessingRecord.for_analysis(
                item.id, RecordStatus.ERROR, "Model reply could not be parsed",
            ))
            self._record(ProcessingRecord.for_brief(item.id, brief.id))
            return ItemOutcome.ERROR

        self._record(ProcessingRecord.for_analysis(item.id, RecordStatus.SUCCESS))
        self._record(ProcessingRecord.for_brief(item.id, brief.id))
        logger.info("Item processed | id=%d brief=%s title=%s", item.id, brief.id, brief.title[:60])
        return ItemOutcome.PROCESSED

    async def _process_batches(self, client: Any, candidates: list[int], stats: RunStats) -> None:
        batch_size = self.config.batch_size
        for start_index in range(0, len(candidates), batch_size):
            if self._stop.is_set():
                stats.stopped = True
                logger.info("Run stopped early | remaining=%d", len(candidates) - start_index)
                break
            batch = candidates[start_index:start_index + batch_size]
            # One read of the record log per batch
            done = self.tracker.done_item_ids()
            outcomes = await asyncio.gather(
                *(self._process_item(client, item_id, done) for item_id in batch),
                return_exceptions=True,
            )
            for outcome in outcomes:
                if isinstance(outcome, BaseException):
                    raise outcome
                stats.count(outcome)
            logger.info(
                "Progress: %d/%d | processed=%d errors=%d skipped=%d",
                start_index + len(batch), stats.candidates,
                stats.processed, stats.errors, stats.skipped,
            )
            if start_index + batch_size < len(candidates) and not self._stop.is_set():
                await asyncio.sleep(self.config.batch_delay_seconds)

    async def run_once(self, max_stories: int = 0) -> RunStats:
        """Execute one complete pipeline run.

        Args:
            max_stories: Candidates to take from the new-stories list
                         (0 = use config.max_stories)

        Returns:
            RunStats with this run's counts

        Raises:
            StorageError: Local storage cannot be initialised, the tracker
                record log cannot be read or appended, or stats cannot be written
        """
        run_id = uuid.uuid4().hex[:8]
        set_run_context(run_id)
        start = time.time()
        stats = RunStats()
        limit = max_stories or self.config.max_stories

        logger.info("Pipeline started | max_stories=%d batch_size=%d", limit, self.config.batch_size)

        try:
            with trace_operation("pipeline_run", {"run_id": run_id}) as span_attrs:
                self.tracker.initialize()
                self.cache.initialize()
                self.store.initialize()

                self.state = PipelineState.CHECKING_FOR_WORK
                async with self._open_client() as client:
                    stats.max_item_id = await client.get_max_item_id()
                    new_ids = await client.get_new_story_ids()
                    stats.new_stories_count = len(new_ids)

                    if stats.max_item_id == 0 and not new_ids:
                        logger.warning("Source unavailable, nothing to do this run")
                        stats.new_work = False
                    elif not self.tracker.has_new_work(stats.max_item_id, stats.new_stories_count):
                        logger.info(
                            "No new work | max_id=%d new_stories=%d",
                            stats.max_item_id, stats.new_stories_count,
                        )
                        stats.new_work = False

                    if not stats.new_work:
                        self.state = PipelineState.NO_NEW_WORK
                    else:
                        candidates = new_ids[:limit]
                        stats.candidates = len(candidates)
                        logger.info(
                            "New work found | max_id=%d new_stories=%d candidates=%d",
                            stats.max_item_id, stats.new_stories_count, stats.candidates,
                        )
                        self.state = PipelineState.PROCESSING_BATCH
                        await self._process_batches(client, candidates, stats)

                if stats.new_work:
                    self.state = PipelineState.UPDATING_STATS
                    previous = self.tracker.get_stats()
                    # A stopped run keeps the old watermarks so its leftover candidates pass the next pre-check
                    watermarks = {} if stats.stopped else {
                        "last_max_item_id": stats.max_item_id,
                        "last_new_stories_count": stats.new_stories_count,
                    }
                    self.tracker.update_stats(
                        total_processed=previous.total_processed + stats.processed,
                        total_errors=previous.total_errors + stats.errors,
                        total_skipped=previous.total_skipped + stats.skipped,
                        **watermarks,
                    )

                stats.pruned = self.tracker.prune(self.config.prune_after_days)
                span_attrs.update(
                    candidates=stats.candidates,
                    processed=stats.processed,
                    errors=stats.errors,
                    skipped=stats.skipped,
                )

        except asyncio.CancelledError:
            logger.info("Pipeline run cancelled")
            raise
        finally:
            self.state = PipelineState.IDLE
            stats.duration = time.time() - start
            logger.info(
                "Pipeline done | duration=%.1fs processed=%d errors=%d skipped=%d",
                stats.duration, stats.processed, stats.errors, stats.skipped,
            )
            clear_context()

        return stats

    def _install_signal_handlers(self) -> list[signal.Signals]:
        loop = asyncio.get_running_loop()
        installed = []
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, self.request_stop)
                installed.append(sig)
            except (NotImplementedError, RuntimeError):
                # Not supported on this platform or not the main thread
                logger.debug("Signal handler unavailable | signal=%s", sig.name)
        return installed

    async def run_continuous(self, max_stories: int = 0) -> None:
        """Run the pipeline repeatedly until a stop is requested.

        SIGINT/SIGTERM request a graceful stop: the current batch finishes,
        stats are written, and the loop exits.
        """
        run_count = 0
        total_processed = 0
        total_errors = 0
        installed = self._install_signal_handlers()

        logger.info("Starting continuous mode | interval=%ds", self.config.poll_interval_seconds)

        try:
            while not self._stop.is_set():
                run_count += 1
                try:
                    stats = await self.run_once(max_stories=max_stories)
                    total_processed += stats.processed
                    total_errors += stats.errors
                except Exception as e:
                    logger.error("Run failed | run=%d error=%s", run_count, e, exc_info=True)
                    total_errors += 1

                logger.info(
                    "Run complete | run=%d total_processed=%d total_errors=%d",
                    run_count, total_processed, total_errors,
                )
                try:
                    await asyncio.wait_for(self._stop.wait(), timeout=self.config.poll_interval_seconds)
                except asyncio.TimeoutError:
                    pass
        finally:
            loop = asyncio.get_running_loop()
            for sig in installed:
                loop.remove_signal_handler(sig)
            logger.info(
                "Pipeline stopped | runs=%d total_processed=%d total_errors=%d",
                run_count, total_processed, total_errors,
            )


async def run_once(config: Config, max_stories: int = 0) -> dict[str, Any]:
    """Run pipeline once and return stats dict.

    Args:
        config: Application configuration
        max_stories: Candidates per run (0 = config.max_stories)
    """
    pipeline = Pipeline(config)
    return (await pipeline.run_once(max_stories=max_stories)).to_dict()


async def run_continuous(config: Config, max_stories: int = 0) -> None:
    """Run pipeline continuously until SIGINT/SIGTERM."""
    pipeline = Pipeline(config)
    await pipeline.run_continuous(max_stories=max_stories)
