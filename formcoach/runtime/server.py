from __future__ import annotations
import asyncio
import contextlib
import json
import logging
from typing import Any, Optional, Set

import uvicorn
from fastapi import FastAPI, HTTPException, WebSocket, WebSocketDisconnect
from fastapi.responses import JSONResponse, Response
from pydantic import ValidationError

from formcoach.common import config
from formcoach.common.errors import SessionError, UnknownExerciseError
from formcoach.common.events import EventType, SessionEvent
from formcoach.common.schemas import FrameMessage
from formcoach.counter.exercises import catalog
from formcoach.counter.session import RepSessionManager

log = logging.getLogger(__name__)


class SessionActor:
    """
    Serializes every session mutation (HTTP commands, websocket frames, ticks)
    through one queue drained by a single task.
    """
    def __init__(self, manager: RepSessionManager, on_change=None):
        self.manager = manager
        self.on_change = on_change
        self.queue: Optional[asyncio.Queue] = None
        self._task: Optional[asyncio.Task] = None

    async def start(self):
        self.queue = asyncio.Queue()
        self._task = asyncio.create_task(self._run())

    async def stop(self):
        if self._task is not None:
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
            self._task = None

    async def submit(self, event: SessionEvent) -> Any:
        fut = asyncio.get_running_loop().create_future()
        await self.queue.put((event, fut))
        return await fut

    async def _run(self):
        while True:
            event, fut = await self.queue.get()
            try:
                result = self.manager.dispatch(event)
            except Exception as e:
                if not fut.done():
                    fut.set_exception(e)
            else:
                if not fut.done():
                    fut.set_result(result)
                if self.on_change is not None:
                    await self.on_change(event)
            finally:
                self.queue.task_done()


class Broadcaster:
    def __init__(self):
        self.clients: Set[WebSocket] = set()

    async def broadcast(self, obj: dict):
        dead = []
        for ws in list(self.clients):
            try:
                await ws.send_text(json.dumps(obj))
            except Exception:
                dead.append(ws)
        for d in dead:
            self.clients.discard(d)


def create_app(manager: Optional[RepSessionManager] = None, tick_seconds: Optional[float] = None) -> FastAPI:
    manager = manager or RepSessionManager()
    tick_seconds = config.TICK_SECONDS if tick_seconds is None else tick_seconds
    hub = Broadcaster()

    async def _state_changed(event: SessionEvent):
        await hub.broadcast({"type": EventType.STATE.value, **manager.snapshot()})

    actor = SessionActor(manager, on_change=_state_changed)

    # let the manager emit rep/phase/trace events to all WS clients
    def _sink(ev: dict):
        try:
            asyncio.get_running_loop().create_task(hub.broadcast(ev))
        except RuntimeError:
            log.debug("no running loop for %s event", ev.get("type"))

    manager.set_event_sink(_sink)

    async def _ticker():
        while True:
            await asyncio.sleep(tick_seconds)
            await actor.submit(SessionEvent(EventType.TICK))

    @contextlib.asynccontextmanager
    async def lifespan(app: FastAPI):
        await actor.start()
        ticker = asyncio.create_task(_ticker()) if tick_seconds > 0 else None
        log.info("session actor running (tick=%ss)", tick_seconds)
        try:
            yield
        finally:
            if ticker is not None:
                ticker.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await ticker
            await actor.stop()

    app = FastAPI(title="formcoach", lifespan=lifespan)
    app.state.manager = manager
    app.state.actor = actor
    app.state.hub = hub

    async def _command(event: SessionEvent):
        try:
            return await actor.submit(event)
        except UnknownExerciseError as e:
            raise HTTPException(status_code=404, detail=str(e))
        except SessionError as e:
            raise HTTPException(status_code=409, detail=str(e))

    @app.get("/favicon.ico")
    async def favicon():
        return Response(status_code=204)

    @app.get("/exercises")
    async def exercises():
        return JSONResponse(catalog())

    @app.get("/sessions/current")
    async def current():
        return JSONResponse(manager.snapshot())

    @app.post("/counter/select")
    async def select(exercise: str):
        status = await _command(SessionEvent(EventType.SELECT, exercise=exercise))
        return status.to_dict()

    @app.post("/counter/start")
    async def start():
        status = await _command(SessionEvent(EventType.START))
        return status.to_dict()

    @app.post("/counter/end")
    async def end():
        summary = await _command(SessionEvent(EventType.END))
        return summary.to_dict()

    @app.post("/counter/reset")
    async def reset():
        status = await _command(SessionEvent(EventType.RESET))
        return status.to_dict()

    @app.websocket("/ws/frames")
    async def ws_frames(ws: WebSocket):
        await ws.accept()
        hub.clients.add(ws)
        await hub.broadcast({"type": "trace", "msg": "ws: client connected"})
        try:
            while True:
                raw = await ws.receive_text()
                try:
                    msg = FrameMessage.model_validate_json(raw)
                except ValidationError as e:
                    await ws.send_text(json.dumps({"type": "trace", "msg": f"ignored message: {e.error_count()} error(s)"}))
                    continue
                draw = await actor.submit(SessionEvent(EventType.FRAME, frame=msg.to_frame()))
                if msg.draw:
                    await ws.send_text(json.dumps({"type": "draw", **draw.to_dict()}))
        except WebSocketDisconnect:
            pass
        finally:
            hub.clients.discard(ws)
            await hub.broadcast({"type": "trace", "msg": "ws closed"})

    return app


app = create_app()


def main():
    config.configure_logging()
    uvicorn.run(app, host=config.HOST, port=config.PORT)


if __name__ == "__main__":
    main()
