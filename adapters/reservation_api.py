import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import timedelta

import requests

from errors import FetchError
from .base import BaseAdapter, DateWindow

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10


class ReservationApiAdapter(BaseAdapter):
    def __init__(self, endpoint: str, timeout: float = DEFAULT_TIMEOUT, max_workers: int = None):
        self.endpoint = endpoint
        self.timeout = timeout
        self.max_workers = max_workers

    # ── Availability ───────────────────────────────────────────────────────────

    def get_availability(self, venue_id: str, windows: list[DateWindow]) -> list[list[dict]]:
        if not windows:
            return []

        workers = self.max_workers or len(windows)
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="availability") as pool:
            futures = [pool.submit(self._fetch_window, venue_id, w) for w in windows]

        # Every request has finished by now; the earliest failed window wins.
        results = [future.result() for future in futures]
        logger.info(
            "Fetched %d record(s) across %d window(s) for venue %s",
            sum(len(r) for r in results), len(windows), venue_id,
        )
        return results

    def _fetch_window(self, venue_id: str, window: DateWindow) -> list:
        params = self._query_params(venue_id, window)
        try:
            resp = requests.get(self.endpoint, params=params, timeout=self.timeout)
            resp.raise_for_status()
        except requests.RequestException as e:
            logger.error("Availability request failed for %s..%s: %s", window.start, window.end, e)
            raise FetchError(window, str(e)) from e

        try:
            records = resp.json()
        except ValueError as e:
            raise FetchError(window, "response body is not valid JSON") from e
        if not isinstance(records, list):
            raise FetchError(window, f"expected a JSON array, got {type(records).__name__}")

        logger.debug("Window %s..%s returned %d record(s)", window.start, window.end, len(records))
        return records

    def _query_params(self, venue_id: str, window: DateWindow) -> dict:
        # date_end is inclusive on the wire
        last_day = window.end - timedelta(days=1)
        return {
            "venueId": venue_id,
            "date_begin": window.start.isoformat(),
            "date_end": last_day.isoformat(),
        }
