from fastapi import APIRouter, Depends, WebSocket

from .broadcaster import Broadcaster, get_broadcaster

router = APIRouter(tags=["live"])

@router.websocket("/ws")
async def live_channel(
    websocket: WebSocket,
    token: str | None = None,
    broadcaster: Broadcaster = Depends(get_broadcaster),
):
    """
    Push channel. The only handshake parameter is the session token
    (``/ws?token=...``); on success the client receives ``signal:created``
    and ``signal:deleted`` events until it disconnects.
    """
    connection = await broadcaster.handshake(websocket, token)
    if connection is None:
        return
    await broadcaster.serve(connection)
