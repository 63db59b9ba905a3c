"""Background worker running the ingestion loop in a daemon thread."""

import functools
import logging
import threading

from .config import Settings
from .core.credential_pool import CredentialPool
from .core.ingestion_loop import IngestionLoop
from .core.video_store import VideoStore
from .core.youtube_client import YouTubeClient
from .utils.logging_utils import log_exception_json

logger = logging.getLogger(__name__)

# Seconds to wait for the loop to reach a wait point on shutdown
SHUTDOWN_TIMEOUT_SECONDS = 30.0


class IngestionWorker:
    """Owns the store, the ingestion loop and the thread that runs it."""

    def __init__(self, settings: Settings):
        self.settings = settings
        self.video_store: VideoStore | None = None
        self.ingestion_loop: IngestionLoop | None = None
        self._thread: threading.Thread | None = None

    def start(self) -> None:
        """
        Connect to the database, create the schema and start polling.

        Raises:
            ConfigurationError: If settings, database or schema are unusable
        """
        settings = self.settings
        settings.require_runtime_config()

        logger.info("Initializing ingestion worker...")

        self.video_store = VideoStore(
            settings.database_url,
            min_connections=settings.db_min_connections,
            max_connections=settings.db_max_connections,
        )
        try:
            self.video_store.create_schema()
        except Exception:
            self.video_store.close()
            self.video_store = None
            raise

        self.ingestion_loop = IngestionLoop(
            credential_pool=CredentialPool(settings.api_keys),
            video_store=self.video_store,
            query=settings.search_query,
            client_factory=functools.partial(
                YouTubeClient, max_results=settings.max_results_per_request
            ),
            poll_interval=settings.poll_interval_seconds,
            retry_backoff=settings.retry_backoff_seconds,
        )

        self._thread = threading.Thread(
            target=self._run, name="ingestion-loop", daemon=True
        )
        self._thread.start()

        logger.info("Ingestion worker started")

    def _run(self) -> None:
        try:
            self.ingestion_loop.run()
        except Exception as e:
            log_exception_json(
                logger,
                "Ingestion loop crashed",
                e,
                severity="CRITICAL",
                service=self.settings.service_name,
            )

    def stop(self, timeout: float = SHUTDOWN_TIMEOUT_SECONDS) -> None:
        """Stop the loop, wait for the thread and close the store."""
        logger.info("Stopping ingestion worker...")

        if self.ingestion_loop is not None:
            self.ingestion_loop.stop()

        if self._thread is not None:
            self._thread.join(timeout)
            if self._thread.is_alive():
                logger.warning(
                    f"Ingestion thread still busy after {timeout}s, leaving it to exit"
                )

        if self.video_store is not None:
            self.video_store.close()

        logger.info("Ingestion worker stopped")

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()
