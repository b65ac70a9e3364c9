from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from functools import lru_cache, partial

from botocore.exceptions import BotoCoreError

from vehiculos.core import metrics
from vehiculos.core.config import get_settings
from vehiculos.db.session import SessionLocal
from vehiculos.ingestion.errors import FeedSourceError
from vehiculos.ingestion.fetcher import FeedHandle, LocalFeedSource, S3FeedSource
from vehiculos.ingestion.parser import DEFAULT_ID_COLUMN, DEFAULT_PRICE_COLUMN, PriceUpdateRecord, materialize_feed
from vehiculos.services.vehicles import apply_price_update

logger = logging.getLogger(__name__)

PriceWriter = Callable[[str, Decimal], bool]


@dataclass(frozen=True)
class IngestionRunSummary:
    started_at: datetime
    finished_at: datetime
    applied: int
    not_found: int
    failed: int
    sources: tuple[str, ...]


@dataclass
class IngestionRunState:
    active: bool = False
    started_at: datetime | None = None
    records_queued: int = 0
    applied: int = 0
    not_found: int = 0
    failed: int = 0
    sources: list[str] = field(default_factory=list)
    last_run: IngestionRunSummary | None = None

    def begin(self) -> None:
        self.active = True
        self.started_at = datetime.now(timezone.utc)
        self.records_queued = 0
        self.applied = 0
        self.not_found = 0
        self.failed = 0
        self.sources = []

    def finish(self) -> None:
        self.last_run = IngestionRunSummary(
            started_at=self.started_at or datetime.now(timezone.utc),
            finished_at=datetime.now(timezone.utc),
            applied=self.applied,
            not_found=self.not_found,
            failed=self.failed,
            sources=tuple(self.sources),
        )
        self.active = False
        self.started_at = None
        self.records_queued = 0


@dataclass(frozen=True)
class ProcessingStatus:
    is_processing: bool
    queue_length: int
    started_at: datetime | None = None
    last_run: IngestionRunSummary | None = None


class PriceIngestionCoordinator:
    """Single-flight runner for the price feed: remote source first, then the local fallback.

    At most one run is active at a time. The active flag is checked and set without
    yielding to the event loop, so concurrent callers either start the run or observe
    it already in progress and return without doing any work.
    """

    def __init__(
        self,
        remote: S3FeedSource,
        local: LocalFeedSource,
        update_price: PriceWriter,
        id_column: str = DEFAULT_ID_COLUMN,
        price_column: str = DEFAULT_PRICE_COLUMN,
    ) -> None:
        self.remote = remote
        self.local = local
        self._update_price = update_price
        self.id_column = id_column
        self.price_column = price_column
        self._run = IngestionRunState()
        self._background: set[asyncio.Task[None]] = set()

    def is_currently_processing(self) -> bool:
        return self._run.active

    def get_processing_status(self) -> ProcessingStatus:
        run = self._run
        return ProcessingStatus(
            is_processing=run.active,
            queue_length=run.records_queued,
            started_at=run.started_at,
            last_run=run.last_run,
        )

    def _claim(self) -> bool:
        if self._run.active:
            logger.warning("Price processing already in progress")
            return False
        self._run.begin()
        metrics.PRICE_INGESTION_ACTIVE.set(1)
        return True

    async def start_processing(self) -> bool:
        """Run the feed to completion; returns False without side effects if a run is active."""
        if not self._claim():
            return False
        await self._execute()
        return True

    def trigger(self) -> bool:
        """Claim the run and continue it as a background task on the running loop."""
        loop = asyncio.get_running_loop()
        if not self._claim():
            return False
        task = loop.create_task(self._execute())
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        return True

    async def _execute(self) -> None:
        outcome = "completed"
        try:
            logger.info("Starting price processing")
            await self._process_source(self.remote.source, self.remote.fetch_latest)
            await self._process_source(self.local.source, self.local.fetch_local_fallback)
            logger.info(
                "Price processing completed: applied=%d not_found=%d failed=%d",
                self._run.applied,
                self._run.not_found,
                self._run.failed,
            )
        except Exception:
            outcome = "failed"
            logger.exception("Price processing failed")
        finally:
            self._run.finish()
            metrics.PRICE_INGESTION_ACTIVE.set(0)
            metrics.PRICE_RUNS.labels(outcome=outcome).inc()

    async def _process_source(self, source: str, fetch: Callable[[], FeedHandle | None]) -> None:
        try:
            handle = await asyncio.to_thread(fetch)
        except FeedSourceError as exc:
            logger.error("Failed to fetch %s price feed, treating it as empty: %s", source, exc)
            return
        except Exception:
            logger.exception("Unexpected error fetching %s price feed, treating it as empty", source)
            return
        if handle is None:
            return

        try:
            result = await asyncio.to_thread(
                materialize_feed,
                handle.stream,
                handle.name,
                self.id_column,
                self.price_column,
            )
        except (BotoCoreError, OSError) as exc:
            logger.error("Failed to read %s price feed %s, treating it as empty: %s", source, handle.name, exc)
            return
        except Exception:
            logger.exception("Unexpected error reading %s price feed %s, treating it as empty", source, handle.name)
            return
        finally:
            handle.close()

        if not result.ok:
            logger.error("Rejected price feed %s, no rows applied: %s", handle.name, result.error)
            metrics.PRICE_RECORDS.labels(source=source, result="rejected_file").inc()
            return
        if not result.records:
            logger.info("Price feed %s has no rows", handle.name)
            return

        self._run.sources.append(handle.name)
        logger.info("Applying %d price updates from %s", len(result.records), handle.name)
        await asyncio.to_thread(self._apply_best_effort, source, result.records)

    def _apply_best_effort(self, source: str, records: list[PriceUpdateRecord]) -> None:
        """Apply each record independently; a failed record never stops the rest of the batch."""
        run = self._run
        run.records_queued = len(records)
        for record in records:
            try:
                applied = self._update_price(record.vehicle_id, record.new_price)
            except Exception:
                run.failed += 1
                metrics.PRICE_RECORDS.labels(source=source, result="failed").inc()
                logger.exception("Failed to apply price update for vehicle %s", record.vehicle_id)
            else:
                if applied:
                    run.applied += 1
                    metrics.PRICE_RECORDS.labels(source=source, result="applied").inc()
                else:
                    run.not_found += 1
                    metrics.PRICE_RECORDS.labels(source=source, result="not_found").inc()
                    logger.warning("Price update skipped, vehicle %s not found", record.vehicle_id)
            finally:
                run.records_queued -= 1


def build_price_processor() -> PriceIngestionCoordinator:
    settings = get_settings()
    return PriceIngestionCoordinator(
        remote=S3FeedSource.from_settings(settings),
        local=LocalFeedSource(settings.price_feed_local_path),
        update_price=partial(apply_price_update, SessionLocal),
        id_column=settings.price_feed_id_column,
        price_column=settings.price_feed_price_column,
    )


@lru_cache
def get_price_processor() -> PriceIngestionCoordinator:
    return build_price_processor()
