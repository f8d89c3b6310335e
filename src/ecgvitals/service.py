"""FastAPI service wrapping ECG sessions for a browser or BLE bridge.

The bridge POSTs batches of ECG samples to `/sessions/{sid}/ingest`; each
batch is appended to that session's buffer and all metrics are recomputed
before the response is sent. Metrics are also pushed to websocket clients of
the session.
"""

from __future__ import annotations

import asyncio
import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from fastapi import FastAPI, HTTPException, WebSocket, WebSocketDisconnect
from pydantic import BaseModel, Field

from .peaks import ThresholdMode
from .respiration_rate import RateStrategy
from .session import EcgSession, SessionConfig

logger = logging.getLogger(__name__)


@dataclass
class SessionState:
    session: EcgSession
    lock: asyncio.Lock = field(default_factory=asyncio.Lock)
    ws_clients: set[WebSocket] = field(default_factory=set)


class SessionModel(BaseModel):
    # ms timestamps stop being strictly increasing above 1 kHz
    sampling_rate: float = Field(250.0, ge=50.0, le=1000.0)


class ControlModel(BaseModel):
    threshold_factor: Optional[float] = Field(None, ge=0.1, le=0.95)
    threshold_mode: Optional[ThresholdMode] = None
    refractory_ms: Optional[float] = Field(None, ge=100.0, le=600.0)
    strategy: Optional[RateStrategy] = None
    hysteresis: Optional[float] = Field(None, ge=0.0, le=0.2)


class IngestModel(BaseModel):
    t0: int  # ms timestamp of values[0]
    dt: float = Field(..., gt=0.0)  # ms between samples
    values: list[float]


async def broadcast(st: SessionState) -> None:
    """Push the latest metrics to every websocket client of a session."""
    if not st.ws_clients:
        return
    msg = json.dumps(st.session.metrics.to_dict())
    # Clients may disconnect (and leave the set) while a send is suspended
    for w in list(st.ws_clients):
        try:
            await w.send_text(msg)
        except Exception:
            logger.debug("Dropping websocket client after failed send")
            st.ws_clients.discard(w)


def make_app() -> FastAPI:
    app = FastAPI(title="ECG Vitals Service", version="0.1.0")
    sessions: dict[str, SessionState] = {}

    def get_state(sid: str) -> SessionState:
        st = sessions.get(sid)
        if st is None:
            raise HTTPException(status_code=404, detail=f"unknown session {sid}")
        return st

    @app.get("/health")
    async def health() -> dict[str, str]:  # pragma: no cover - trivial
        return {"status": "ok"}

    @app.post("/sessions/{sid}")
    async def open_session(sid: str, cfg: SessionModel) -> dict:
        if sid in sessions:
            raise HTTPException(status_code=409, detail=f"session {sid} already open")
        try:
            session_cfg = SessionConfig(sampling_rate=cfg.sampling_rate)
        except ValueError as e:
            raise HTTPException(status_code=422, detail=str(e)) from e
        sessions[sid] = SessionState(EcgSession(session_cfg))
        logger.info("Opened session %s at %.1f Hz", sid, cfg.sampling_rate)
        return {"status": "ok", "sid": sid, "sampling_rate": cfg.sampling_rate}

    @app.delete("/sessions/{sid}")
    async def close_session(sid: str) -> dict:
        st = get_state(sid)
        async with st.lock:
            st.session.close()
            sessions.pop(sid, None)
        for w in list(st.ws_clients):
            try:
                await w.close()
            except Exception:
                logger.debug("Websocket already closed for session %s", sid)
        logger.info("Closed session %s", sid)
        return {"status": "closed"}

    @app.post("/sessions/{sid}/ingest")
    async def post_ingest(sid: str, payload: IngestModel) -> dict:
        st = get_state(sid)
        if not payload.values:
            return {"status": "empty"}
        samples = [
            (int(round(payload.t0 + i * payload.dt)), v) for i, v in enumerate(payload.values)
        ]
        async with st.lock:
            metrics = st.session.update(samples)
        await broadcast(st)
        return {"status": "ok", "count": len(samples), "metrics": metrics.to_dict()}

    @app.get("/sessions/{sid}/metrics")
    async def get_metrics(sid: str) -> dict:
        st = get_state(sid)
        async with st.lock:
            return st.session.metrics.to_dict()

    @app.get("/sessions/{sid}/view")
    async def get_view(sid: str, points: int = 1000) -> dict:
        st = get_state(sid)
        async with st.lock:
            v = st.session.view(max(1, min(points, 10000)))
        return {
            "timestamps": v.timestamps,
            "values": v.values,
            "r_peaks": v.r_peaks,
            "s_peaks": v.s_peaks,
        }

    @app.post("/sessions/{sid}/control")
    async def post_control(sid: str, cfg: ControlModel) -> dict:
        st = get_state(sid)
        async with st.lock:
            c = st.session.cfg
            data = cfg.model_dump(exclude_none=True)
            for k, v in data.items():
                if k in ("strategy", "hysteresis"):
                    setattr(c.rate, k, v)
                else:
                    setattr(c.peaks, k, v)
            metrics = st.session.recompute()
        return {"status": "ok", "applied": sorted(data), "metrics": metrics.to_dict()}

    @app.websocket("/sessions/{sid}/ws")
    async def ws_metrics(ws: WebSocket, sid: str) -> None:  # pragma: no cover - integration
        st = sessions.get(sid)
        await ws.accept()
        if st is None:
            await ws.close(code=1008)
            return
        st.ws_clients.add(ws)
        try:
            while True:
                # keep alive; updates are pushed after each ingest
                await ws.receive_text()
        except WebSocketDisconnect:
            st.ws_clients.discard(ws)
        except Exception:
            st.ws_clients.discard(ws)

    return app


def configure_logging(logs_dir: Path = Path("logs")) -> None:
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    try:
        logs_dir.mkdir(exist_ok=True)
        handlers.append(logging.FileHandler(logs_dir / "service.log", encoding="utf-8"))
    except OSError:
        logger.warning("Cannot write logs to %s; logging to stderr only", logs_dir)
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
        handlers=handlers,
    )


app = make_app()


def main() -> None:  # pragma: no cover - manual run helper
    import uvicorn

    configure_logging()
    uvicorn.run(app, host="127.0.0.1", port=8000)


if __name__ == "__main__":  # pragma: no cover
    main()
