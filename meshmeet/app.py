import logging
from typing import Optional

import uvicorn
from fastapi import FastAPI, Request, WebSocket, WebSocketDisconnect
from fastapi.responses import HTMLResponse
from starlette.websockets import WebSocketState

from .config import Settings
from .identity import new_connection_id, new_room_id
from .messages import ErrorNotice, InvalidMessage, JoinRoom, SendMessage, encode, parse_client_message
from .pages import render_index, render_room
from .relay import SignalRelay
from .rooms import DuplicateLinkError, RoomRegistry

logger = logging.getLogger(__name__)


def create_app(settings: Optional[Settings] = None, relay: Optional[SignalRelay] = None) -> FastAPI:
    settings = settings or Settings.from_env()
    relay = relay or SignalRelay(RoomRegistry())

    app = FastAPI(title="meshmeet")
    app.state.settings = settings
    app.state.relay = relay

    async def handle_join(conn_id: str, websocket: WebSocket, message: JoinRoom):
        try:
            await relay.join(conn_id, message.room_id, message.link_id, message.name)
        except DuplicateLinkError as e:
            logger.warning(f"Join refused for {conn_id}: {e}")
            await websocket.send_json(encode(ErrorNotice(detail=str(e))))

    async def handle_send_message(conn_id: str, websocket: WebSocket, message: SendMessage):
        await relay.relay_chat(message.room_id, conn_id, message.text, message.name)

    # Bound once; every connection dispatches through the same table
    handlers = {
        JoinRoom: handle_join,
        SendMessage: handle_send_message,
    }

    @app.get("/", response_class=HTMLResponse)
    async def get_index_route():
        return HTMLResponse(content=render_index())

    @app.post("/create-room")
    async def create_room(request: Request):
        room_id = new_room_id()
        base = settings.public_url or request.headers.get("host", "")
        return {"roomId": room_id, "roomLink": f"{base}/{room_id}"}

    @app.get("/{room_id}", response_class=HTMLResponse)
    async def get_room_route(room_id: str):
        return HTMLResponse(content=render_room(room_id))

    @app.websocket("/ws")
    async def websocket_endpoint(websocket: WebSocket):
        await websocket.accept()
        conn_id = new_connection_id()
        relay.attach(conn_id, websocket)
        logger.info(f"Connection {conn_id} opened.")

        try:
            while True:
                data = await websocket.receive_text()
                try:
                    message = parse_client_message(data)
                except InvalidMessage as e:
                    logger.warning(f"Malformed message from {conn_id}: {data[:200]}...")
                    await websocket.send_json(encode(ErrorNotice(detail=f"Invalid message: {e}")))
                    continue
                await handlers[type(message)](conn_id, websocket, message)

        except WebSocketDisconnect as e:
            logger.info(f"WebSocketDisconnect for {conn_id}. Code: {e.code}")
        except Exception as e:
            logger.error(f"Unexpected WS Error for {conn_id}: {e}", exc_info=True)
        finally:
            # Any way out of the loop counts as leaving the room
            await relay.detach(conn_id)
            if websocket.client_state == WebSocketState.CONNECTED:
                await websocket.close()
            logger.info(f"WS connection finalized and cleaned up for {conn_id}.")

    return app


def main():
    settings = Settings.from_env()
    logging.basicConfig(level=settings.log_level.upper())
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port, log_level=settings.log_level)


if __name__ == "__main__":
    main()
