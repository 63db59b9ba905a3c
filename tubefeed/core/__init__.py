"""Core ingestion and storage logic for the feed service."""

from .credential_pool import CredentialPool
from .ingestion_loop import IngestionLoop
from .video_store import VideoStore
from .youtube_client import YouTubeClient

__all__ = [
    "CredentialPool",
    "IngestionLoop",
    "VideoStore",
    "YouTubeClient",
]
