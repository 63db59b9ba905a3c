"""Background ingestion loop: search, paginate, persist, repeat.

States:
- QUERYING: fresh search, no page token
- PAGINATING: following nextPageToken, no delay between pages
- IDLE: result set exhausted, waiting poll_interval before the next search

Failure handling:
- QuotaExceededError: rotate to the next API key and retry the same page
  immediately. Once every key has been tried in a row, back off instead.
- TransientSearchError: wait retry_backoff and retry the same page, forever.
- InvalidVideoError: skip the item, keep the rest of the page.
- PersistenceError: log, skip the item, keep the rest of the page.

Nothing escapes run(); it returns only after stop().
"""

import logging
import threading
from collections.abc import Callable
from datetime import datetime, UTC

from ..models import IngestionState, IngestionStats, SearchPage
from ..utils.logging_utils import log_exception_json
from .credential_pool import CredentialPool
from .errors import (
    InvalidVideoError,
    PersistenceError,
    QuotaExceededError,
    TransientSearchError,
)
from .video_store import VideoStore
from .youtube_client import YouTubeClient, parse_search_item

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL_SECONDS = 10.0
DEFAULT_RETRY_BACKOFF_SECONDS = 10.0


class IngestionLoop:
    """
    Polls YouTube search for a fixed query and stores every parsed result.

    Owns its CredentialPool and the current client. Page tokens live here,
    not in the client, so a client rebuilt with a new key continues the
    same pagination.
    """

    def __init__(
        self,
        credential_pool: CredentialPool,
        video_store: VideoStore,
        query: str,
        client_factory: Callable[[str], YouTubeClient] = YouTubeClient,
        poll_interval: float = DEFAULT_POLL_INTERVAL_SECONDS,
        retry_backoff: float = DEFAULT_RETRY_BACKOFF_SECONDS,
        stop_event: threading.Event | None = None,
    ):
        """
        Initialize the loop.

        Args:
            credential_pool: API keys to rotate through
            video_store: Where parsed videos are inserted
            query: Search query issued every cycle
            client_factory: Builds a search client from an API key
            poll_interval: Seconds to wait after the last page of a cycle
            retry_backoff: Seconds to wait after a transient failure
            stop_event: Set to stop the loop at its next wait point
        """
        self.credentials = credential_pool
        self.store = video_store
        self.query = query
        self.client_factory = client_factory
        self.poll_interval = poll_interval
        self.retry_backoff = retry_backoff

        self._stop_event = stop_event or threading.Event()
        self._client: YouTubeClient | None = None
        # Key index active when quota exhaustion was first seen, None when healthy
        self._exhausted_from: int | None = None

        self.stats = IngestionStats(active_credential_index=credential_pool.index)

    @property
    def stopped(self) -> bool:
        return self._stop_event.is_set()

    def stop(self) -> None:
        """Ask the loop to exit at its next wait point."""
        logger.info("Ingestion stop requested")
        self._stop_event.set()

    def run(self) -> None:
        """Run cycles until stop() is called."""
        logger.info(
            f"Ingestion loop started: query='{self.query}', "
            f"{len(self.credentials)} API key(s), poll every {self.poll_interval}s"
        )

        page_token: str | None = None
        self.stats.state = IngestionState.QUERYING

        while not self.stopped:
            try:
                page_token = self.run_once(page_token)
            except Exception as e:
                # Retry the same page
                log_exception_json(
                    logger,
                    "Unexpected ingestion failure",
                    e,
                    page_token=page_token,
                )
                self.stats.transient_failures += 1
                self._wait(self.retry_backoff)
                continue

            if self.stopped:
                break

            if page_token:
                self.stats.state = IngestionState.PAGINATING
                continue

            self.stats.cycles_completed += 1
            self.stats.state = IngestionState.IDLE
            logger.info(
                f"Cycle {self.stats.cycles_completed} complete, "
                f"next search in {self.poll_interval}s"
            )
            if not self._wait(self.poll_interval):
                break
            self.stats.state = IngestionState.QUERYING

        self.stats.state = IngestionState.STOPPED
        logger.info("Ingestion loop stopped")

    def run_once(self, page_token: str | None = None) -> str | None:
        """
        Fetch one page and persist it.

        Args:
            page_token: Token of the page to fetch, None for the first page

        Returns:
            Next page token, or None at the end of the result set (or on stop)
        """
        page = self._fetch_page(page_token)
        if page is None:
            return None

        self._persist(page)
        return page.next_page_token

    def _fetch_page(self, page_token: str | None) -> SearchPage | None:
        """Search until a page comes back. Returns None only when stopped."""
        while not self.stopped:
            try:
                client = self._get_client()
                page = client.search(self.query, page_token)
            except QuotaExceededError as e:
                logger.warning(
                    f"API key {self.credentials.index + 1}/{len(self.credentials)} "
                    f"exhausted: {e}"
                )
                if self._rotate_credentials():
                    continue
                self.stats.exhaustion_backoffs += 1
                logger.error(
                    f"All {len(self.credentials)} API keys exhausted, "
                    f"retrying in {self.retry_backoff}s"
                )
                self._wait(self.retry_backoff)
                continue
            except TransientSearchError as e:
                self.stats.transient_failures += 1
                logger.warning(f"Search failed, retrying in {self.retry_backoff}s: {e}")
                self._wait(self.retry_backoff)
                continue

            self._exhausted_from = None
            self.stats.pages_fetched += 1
            self.stats.last_success_at = datetime.now(UTC)
            return page

        return None

    def _get_client(self) -> YouTubeClient:
        """Return the current client, building it for the active key if needed."""
        if self._client is None:
            self._client = self.client_factory(self.credentials.current())
        return self._client

    def _rotate_credentials(self) -> bool:
        """
        Switch to the next API key.

        Returns:
            True to retry immediately, False when the rotation wrapped back to
            the key that was active when exhaustion started
        """
        if self._exhausted_from is None:
            self._exhausted_from = self.credentials.index

        self.credentials.rotate()
        self._client = None
        self.stats.credential_rotations += 1
        self.stats.active_credential_index = self.credentials.index

        if self.credentials.index == self._exhausted_from:
            self._exhausted_from = None
            return False
        return True

    def _persist(self, page: SearchPage) -> int:
        """Insert every parseable item of a page. Returns the number inserted."""
        inserted = 0

        for item in page.items:
            try:
                video = parse_search_item(item)
            except InvalidVideoError as e:
                self.stats.items_skipped += 1
                logger.warning(f"Skipping search item: {e}")
                continue

            try:
                self.store.insert(video)
            except PersistenceError as e:
                self.stats.insert_failures += 1
                logger.error(f"Insert failed, skipping: {e}")
                continue

            inserted += 1

        self.stats.videos_inserted += inserted
        logger.info(
            f"Page stored: {inserted}/{len(page.items)} videos inserted "
            f"(has next page: {page.next_page_token is not None})"
        )
        return inserted

    def _wait(self, seconds: float) -> bool:
        """Sleep unless stopped. Returns False if stop() was called."""
        return not self._stop_event.wait(seconds)
