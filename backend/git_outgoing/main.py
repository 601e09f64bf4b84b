import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import UTC, datetime

from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from rich.logging import RichHandler

from git_outgoing.api.routes import events, outgoing
from git_outgoing.api.websocket import manager
from git_outgoing.config import get_settings
from git_outgoing.services.outgoing_service import outgoing_service

settings = get_settings()

logging.basicConfig(
    level=settings.LOG_LEVEL.upper(),
    format="%(message)s",
    handlers=[RichHandler(rich_tracebacks=True)],
)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
    """Manage application startup and shutdown lifecycle."""
    await outgoing_service.start()

    yield

    await outgoing_service.stop()


app = FastAPI(
    title=settings.PROJECT_NAME,
    version=settings.VERSION,
    openapi_url=f"{settings.API_V1_STR}/openapi.json",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.BACKEND_CORS_ORIGINS,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(events.router, prefix=f"{settings.API_V1_STR}")
app.include_router(outgoing.router, prefix=f"{settings.API_V1_STR}")


@app.get("/health")
async def health_check() -> dict[str, str]:
    return {"status": "ok", "repo": str(outgoing_service.repo_path)}


@app.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket) -> None:
    await manager.connect(websocket)

    await manager.send_personal_message(
        {
            "type": "push_state",
            "timestamp": datetime.now(UTC).isoformat(),
            "generation": outgoing_service.view.generation,
            "pushState": outgoing_service.view.push_state.model_dump(mode="json", by_alias=True),
        },
        websocket,
    )

    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        await manager.disconnect(websocket)
