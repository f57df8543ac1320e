"""WebSocket endpoint that delivers achievement toasts."""

import json
import uuid

import jwt
import structlog
from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect

from casino.auth.jwt import verify_token
from casino.ws.manager import manager

logger = structlog.get_logger()

router = APIRouter()


@router.websocket("/ws")
async def websocket_endpoint(
    websocket: WebSocket,
    token: str = Query(...),
) -> None:
    """Authenticated socket for achievement toasts.

    Protocol:
        Client -> Server:
            {"action": "ping"}

        Server -> Client:
            {"type": "achievement_toast", "action": "show", "achievement": {...}}
            {"type": "achievement_toast", "action": "hide"}
            {"type": "achievement_toast", "action": "reset"}
            {"type": "pong"}
            {"type": "error", "message": "..."}
    """
    try:
        payload = verify_token(token, expected_type="access")
    except jwt.InvalidTokenError:
        await websocket.close(code=4001, reason="Authentication failed")
        return

    conn_id = str(uuid.uuid4())
    await manager.connect(websocket, conn_id, str(payload["sub"]))

    try:
        while True:
            raw = await websocket.receive_text()
            try:
                msg = json.loads(raw)
            except json.JSONDecodeError:
                await websocket.send_json({"type": "error", "message": "Invalid JSON"})
                continue

            action = msg.get("action") if isinstance(msg, dict) else None
            if action == "ping":
                await websocket.send_json({"type": "pong"})
            else:
                await websocket.send_json({
                    "type": "error",
                    "message": f"Unknown action: {action}",
                })

    except WebSocketDisconnect:
        await manager.disconnect(conn_id)
    except Exception:
        logger.exception("ws_error", conn_id=conn_id)
        await manager.disconnect(conn_id)
