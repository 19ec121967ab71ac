import asyncio
import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from rafflehub.services.events import get_broadcaster

logger = logging.getLogger(__name__)

MAX_PENDING_EVENTS = 100

router = APIRouter(tags=["events"])


async def _wait_for_disconnect(websocket: WebSocket) -> None:
    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        logger.debug("Event stream client disconnected")


@router.websocket("/ws")
async def event_stream(websocket: WebSocket):
    await websocket.accept()
    loop = asyncio.get_running_loop()
    queue: asyncio.Queue = asyncio.Queue(maxsize=MAX_PENDING_EVENTS)

    def _put(event: dict) -> None:
        if queue.full():
            queue.get_nowait()
        queue.put_nowait(event)

    # Publishers run on worker threads; hand events over to this socket's loop.
    unsubscribe = get_broadcaster().subscribe(lambda event: loop.call_soon_threadsafe(_put, event))
    receiver = asyncio.create_task(_wait_for_disconnect(websocket))
    try:
        while not receiver.done():
            getter = asyncio.ensure_future(queue.get())
            done, _ = await asyncio.wait({getter, receiver}, return_when=asyncio.FIRST_COMPLETED)
            if getter in done:
                await websocket.send_json(getter.result())
            else:
                getter.cancel()
    finally:
        unsubscribe()
        receiver.cancel()
