import json
import logging
from datetime import datetime, timezone
from typing import Optional
from fastapi import APIRouter, WebSocket, WebSocketDisconnect, Query, status

from ...db.database import AsyncSessionLocal
from ...services.realtime import manager, parse_tables
from ..deps import get_user_for_token

logger = logging.getLogger(__name__)

router = APIRouter()


@router.websocket("/realtime")
async def realtime_feed(
    websocket: WebSocket,
    token: str = Query(...),
    tables: Optional[str] = Query(None),
):
    """Change feed for the caller's organization.

    ``tables`` is a comma-separated subset of projects, comments, subtasks and
    notifications; notification events only reach their recipient.
    """
    async with AsyncSessionLocal() as db:
        user = await get_user_for_token(token, db)
    if user is None:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    subscribed = parse_tables(tables)
    connection_id = await manager.connect(websocket, user.id, user.organization_id, subscribed)
    try:
        await websocket.send_json({
            "type": "connected",
            "user_id": user.id,
            "organization_id": user.organization_id,
            "tables": sorted(subscribed),
            "sequence": manager.last_sequence,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        })

        while True:
            data = await websocket.receive_text()
            try:
                message = json.loads(data)
            except ValueError:
                continue
            if isinstance(message, dict) and message.get("type") == "ping":
                await websocket.send_json({
                    "type": "pong",
                    "sequence": manager.last_sequence,
                    "timestamp": datetime.now(timezone.utc).isoformat(),
                })
    except WebSocketDisconnect:
        pass
    finally:
        manager.disconnect(connection_id, user.organization_id)
        logger.info(f"Realtime client disconnected: user={user.id}")
