import json
from typing import Any, Dict, Generator
from fastapi import HTTPException
from fastapi.requests import HTTPConnection, Request
from sqlalchemy.orm import Session
from encodenote.core.config import settings
from encodenote.db.base import SessionLocal
from encodenote.services.presence import PresenceHub


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_hub(conn: HTTPConnection) -> PresenceHub:
    """The process-wide presence hub, shared by HTTP and WebSocket routes."""
    return conn.app.state.presence


async def get_json_object(request: Request) -> Dict[str, Any]:
    """Read the request body as a JSON object.

    The size limit applies to the bytes actually received, so chunked uploads
    without a Content-Length are capped too. Anything that is not a JSON
    object comes back as ``{}`` and fails the required-field check later.
    """
    body = bytearray()
    async for chunk in request.stream():
        body.extend(chunk)
        if len(body) > settings.MAX_BODY_BYTES:
            raise HTTPException(status_code=413, detail="Payload too large")
    try:
        payload = json.loads(bytes(body))
    except ValueError:
        return {}
    return payload if isinstance(payload, dict) else {}
