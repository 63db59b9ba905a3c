"""YouTube API client - one search.list call per request, one API key per client."""

import json
import logging
import re
from datetime import datetime
from typing import Any

import httplib2
from googleapiclient.discovery import build
from googleapiclient.errors import HttpError
from pydantic import ValidationError

from ..models import SearchPage, Video
from .errors import InvalidVideoError, QuotaExceededError, TransientSearchError

logger = logging.getLogger(__name__)

# Error reasons YouTube returns when a key is out of quota or throttled
QUOTA_REASONS = frozenset(
    {
        "quotaExceeded",
        "dailyLimitExceeded",
        "rateLimitExceeded",
        "userRateLimitExceeded",
    }
)

RFC3339_PATTERN = re.compile(
    r"(\d{4}-\d{2}-\d{2})[Tt](\d{2}:\d{2}:\d{2})(\.\d+)?([Zz]|[+-]\d{2}:\d{2})"
)


def _error_reasons(error: HttpError) -> set[str]:
    """Collect the ``reason`` fields of a Google API error response."""
    reasons = set()

    details = getattr(error, "error_details", None)
    if isinstance(details, list):
        for detail in details:
            if isinstance(detail, dict) and detail.get("reason"):
                reasons.add(detail["reason"])

    try:
        content = error.content
        if isinstance(content, bytes):
            content = content.decode("utf-8")
        payload = json.loads(content)
    except (ValueError, TypeError, UnicodeDecodeError):
        return reasons

    body = payload.get("error") if isinstance(payload, dict) else None
    if isinstance(body, dict):
        for item in body.get("errors") or []:
            if isinstance(item, dict) and item.get("reason"):
                reasons.add(item["reason"])

    return reasons


def is_quota_error(error: HttpError) -> bool:
    """True if the error means the key's quota or rate limit is spent."""
    status = getattr(error.resp, "status", None)
    if status not in (403, 429):
        return False
    return bool(_error_reasons(error) & QUOTA_REASONS)


def parse_publish_time(value: Any) -> datetime:
    """
    Parse an RFC 3339 timestamp into a timezone-aware datetime.

    Raises:
        InvalidVideoError: If the value is missing, malformed, or has no offset
    """
    if not isinstance(value, str) or not value:
        raise InvalidVideoError(f"Missing publishedAt: {value!r}")

    match = RFC3339_PATTERN.fullmatch(value)
    if match is None:
        raise InvalidVideoError(f"publishedAt is not RFC 3339: {value!r}")

    date_part, time_part, fraction, offset = match.groups()
    if offset in ("Z", "z"):
        offset = "+00:00"
    # datetime holds microseconds; finer digits are dropped
    fraction = (fraction or "")[:7]

    try:
        return datetime.fromisoformat(f"{date_part}T{time_part}{fraction}{offset}")
    except ValueError as e:
        raise InvalidVideoError(f"Invalid publishedAt {value!r}: {e}") from e


def parse_search_item(item: dict[str, Any]) -> Video:
    """
    Turn one search.list item into a Video.

    Args:
        item: Raw item with a ``snippet`` object

    Returns:
        Parsed video

    Raises:
        InvalidVideoError: If the item has no snippet or a bad publish time
    """
    snippet = item.get("snippet") if isinstance(item, dict) else None
    if not isinstance(snippet, dict):
        raise InvalidVideoError("Search item has no snippet")

    published_at = parse_publish_time(snippet.get("publishedAt"))

    thumbnails = snippet.get("thumbnails")
    if not isinstance(thumbnails, dict):
        thumbnails = {}
    default_thumbnail = thumbnails.get("default")
    thumbnail = default_thumbnail.get("url", "") if isinstance(default_thumbnail, dict) else ""

    try:
        return Video(
            title=snippet.get("title") or "",
            description=snippet.get("description") or "",
            publish_time=published_at,
            thumbnail=thumbnail,
        )
    except ValidationError as e:
        raise InvalidVideoError(f"Malformed search item: {e}") from e


class YouTubeClient:
    """
    YouTube API client bound to a single API key.

    Holds no pagination state: the caller passes page tokens in, so a client
    can be thrown away and rebuilt with another key mid-pagination.
    """

    def __init__(self, api_key: str, max_results: int = 50):
        """
        Build the YouTube service for one API key.

        Args:
            api_key: YouTube Data API key
            max_results: Page size (1-50)

        Raises:
            TransientSearchError: If the service cannot be built
        """
        self.api_key = api_key
        self.max_results = max(1, min(max_results, 50))
        self._youtube = self._build_youtube_service()

    def _build_youtube_service(self) -> Any:
        """Build YouTube API service."""
        try:
            return build("youtube", "v3", developerKey=self.api_key, cache_discovery=False)
        except Exception as e:
            raise TransientSearchError(f"Could not build YouTube client: {e}") from e

    def search(self, query: str, page_token: str | None = None) -> SearchPage:
        """
        Fetch one page of video search results.

        Args:
            query: Search query
            page_token: Token from the previous page, None for the first page

        Returns:
            Raw items and the next page token

        Raises:
            QuotaExceededError: If this key's quota or rate limit is spent
            TransientSearchError: On any other API or network failure
        """
        request_params = {
            "part": "id,snippet",
            "q": query,
            "type": "video",
            "maxResults": self.max_results,
        }
        if page_token:
            request_params["pageToken"] = page_token

        try:
            response = self._youtube.search().list(**request_params).execute()
        except HttpError as e:
            if is_quota_error(e):
                raise QuotaExceededError(f"YouTube quota exceeded: {e}") from e
            raise TransientSearchError(f"YouTube API error: {e}") from e
        except (httplib2.HttpLib2Error, OSError) as e:
            raise TransientSearchError(f"YouTube request failed: {e}") from e

        items = response.get("items", [])
        next_page_token = response.get("nextPageToken") or None

        logger.debug(
            f"search.list returned {len(items)} items "
            f"(page_token={page_token!r}, next={next_page_token!r})"
        )

        return SearchPage(items=items, next_page_token=next_page_token)
