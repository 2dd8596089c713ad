"""Live ingestion endpoint.

Streams the events of one ingestion session to the client as server-sent
events, one ``data: <json>`` frame per event.
"""

import logging
from typing import AsyncIterator

from fastapi import APIRouter, HTTPException
from fastapi.responses import StreamingResponse
from pydantic import ValidationError
from starlette.types import Receive, Scope, Send

from src.adapters.ingesters.ingestion_session import IngestionSession
from src.dashboard.api.dependencies import StoreDep
from src.dashboard.models.ingest import ParseRequest
from src.domain.health_record import DateWindow

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["ingest"])

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
}


async def _sse_frames(session: IngestionSession) -> AsyncIterator[str]:
    events = session.events()
    try:
        async for event in events:
            yield event.to_sse()
    finally:
        # Runs when the client disconnects, so the session releases its source
        await events.aclose()


class SessionStreamingResponse(StreamingResponse):
    """Event stream that releases its session however the response ends.

    Covers clients that go away before the body is first iterated, where the
    session generator never starts and so never runs its own cleanup.
    """

    def __init__(self, session: IngestionSession, **kwargs):
        super().__init__(_sse_frames(session), media_type="text/event-stream", **kwargs)
        self.session = session

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        try:
            await super().__call__(scope, receive, send)
        finally:
            self.session.release()


@router.post("/parse-xml")
async def parse_xml(request: ParseRequest, store: StoreDep) -> SessionStreamingResponse:
    """Ingest a previously uploaded export and stream its events.

    Raises:
        HTTPException: 400 if the file id is missing or the date range is invalid
    """
    if not request.file_id:
        raise HTTPException(status_code=400, detail="File ID is required")

    window = None
    if request.date_range is not None:
        try:
            window = DateWindow.from_bounds(request.date_range.start_date, request.date_range.end_date)
        except ValidationError as e:
            reason = "; ".join(error["msg"] for error in e.errors())
            raise HTTPException(status_code=400, detail=f"Invalid date range: {reason}")

    session = IngestionSession(store, request.file_id, window=window)
    logger.info(f"Streaming ingestion of {request.file_id}", extra={"session_id": session.session_id})

    return SessionStreamingResponse(session, headers=SSE_HEADERS)
