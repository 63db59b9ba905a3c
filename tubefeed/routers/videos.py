"""Video search router."""

import logging

from fastapi import APIRouter, Depends, Query, Request, Response
from fastapi.responses import JSONResponse

from ..core.errors import PersistenceError
from ..core.video_store import VideoStore

logger = logging.getLogger(__name__)

router = APIRouter(tags=["videos"])


def get_video_store(request: Request) -> VideoStore | None:
    """Get the store opened by the ingestion worker, None before startup."""
    worker = getattr(request.app.state, "worker", None)
    return worker.video_store if worker is not None else None


@router.get("/videos")
def search_videos(
    title: str | None = Query(default=None, description="Substring of the title"),
    description: str | None = Query(default=None, description="Substring of the description"),
    store: VideoStore | None = Depends(get_video_store),
) -> Response:
    """
    Search stored videos by title and/or description, newest first.

    Matching is case-insensitive substring containment; when both
    parameters are given a video must match both. Error responses have an
    empty body.
    """
    title = title or None
    description = description or None

    if title is None and description is None:
        return Response(status_code=400)

    if store is None:
        logger.error("Video search before the store was opened")
        return Response(status_code=500)

    try:
        videos = store.query(title=title, description=description)
    except PersistenceError as e:
        logger.error(f"Video search failed: {e}")
        return Response(status_code=500)

    logger.debug(
        f"Video search title={title!r} description={description!r}: {len(videos)} results"
    )

    return JSONResponse(
        content=[video.model_dump(mode="json", by_alias=True) for video in videos]
    )
