import logging
import random
import threading
import time
from dataclasses import dataclass
from datetime import datetime

from django.db import DatabaseError

from . import summary, utils
from .exceptions import ExternalSourceError, PersistenceError, RefreshInProgressError, RenderError
from .repository import CountryStore
from .serializers import RefreshRecordSerializer

logger = logging.getLogger(__name__)

# Guards against overlapping refreshes within one process only.
_refresh_lock = threading.Lock()


@dataclass
class RefreshResult:
    total: int
    last_refreshed_at: datetime
    skipped: int = 0


class RefreshService:
    """
    Fetch both feeds, derive each country, upsert the batch in one transaction,
    regenerate the summary artifact, then commit.

    Any failure after the transaction opens rolls the whole batch back; the
    artifact is written before commit, so a render failure aborts the refresh.
    """

    def __init__(self, store=None, fetcher=None, renderer=None, rng=None, clock=None):
        self.store = store or CountryStore()
        self.fetcher = fetcher or utils.fetch_external_data
        self.renderer = renderer or summary.render_summary
        self.rng = rng or random.Random()
        self.clock = clock or utils.get_now

    def refresh(self) -> RefreshResult:
        if not _refresh_lock.acquire(blocking=False):
            raise RefreshInProgressError("A refresh is already running")
        try:
            return self._refresh()
        finally:
            _refresh_lock.release()

    def _refresh(self):
        start_time = time.monotonic()
        logger.info("Country refresh started")

        try:
            countries_data, rates = self.fetcher()
        except ExternalSourceError as exc:
            logger.warning("Refresh aborted, %s source failed: %s", exc.source.value, exc.message)
            raise

        records = [utils.normalize_country(item, rates, self.rng) for item in countries_data if isinstance(item, dict)]
        malformed = len(countries_data) - len(records)

        try:
            with self.store.atomic():
                now = self.clock()
                skipped = malformed
                for record in records:
                    if not self.is_valid(record):
                        skipped += 1
                        continue
                    self.store.upsert(record, now)

                rows = self.store.all()
                self.renderer(rows, now)
        except DatabaseError as exc:
            logger.exception("Refresh rolled back, database error")
            raise PersistenceError(str(exc)) from exc
        except RenderError:
            logger.exception("Refresh rolled back, summary image failed")
            raise

        duration = time.monotonic() - start_time
        logger.info(
            "Country refresh committed: total=%d skipped=%d duration=%.2fs",
            len(rows), skipped, duration,
        )
        return RefreshResult(total=len(rows), last_refreshed_at=now, skipped=skipped)

    @staticmethod
    def is_valid(record):
        serializer = RefreshRecordSerializer(data={
            "name": record.name,
            "population": record.population,
        })
        if serializer.is_valid():
            return True
        logger.debug("Skipping country %r: %s", record.name, dict(serializer.errors))
        return False
