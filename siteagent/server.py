"""FastAPI server binding browser WebSocket connections to agent runs."""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from contextlib import asynccontextmanager
from dataclasses import dataclass, field

from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from siteagent import __version__
from siteagent.agent import deliver, run_agent
from siteagent.config import Settings, load_settings
from siteagent.model_client import GeminiClient
from siteagent.schemas import ErrorResponse, ExecutionEvent, HealthResponse
from siteagent.workspace import clear_output_dir, ensure_output_dir

logger = logging.getLogger(__name__)

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)

BUSY_MESSAGE = "A run is already in progress for this connection. Wait for it to finish."
CRITICAL_MESSAGE = "A critical error occurred on the server. Please try again."


class TransportError(Exception):
    """Raised when an event cannot be delivered to the client connection."""

    pass


# --- Session Management ---


@dataclass
class Session:
    """State for one client connection."""

    session_id: str
    websocket: WebSocket
    created_at: float = field(default_factory=time.time)
    run_task: asyncio.Task | None = None
    runs_started: int = 0
    closed: bool = False

    @property
    def busy(self) -> bool:
        return self.run_task is not None and not self.run_task.done()

    async def emit(self, event: ExecutionEvent) -> None:
        """Send one event to the client."""
        if self.closed:
            logger.debug(f"[{self.session_id}] connection gone, dropping {event.type.value}")
            return
        try:
            await self.websocket.send_text(event.to_wire())
        except (WebSocketDisconnect, RuntimeError, OSError) as e:
            self.closed = True
            raise TransportError(f"Connection {self.session_id} is closed") from e


class SessionRegistry:
    """Live sessions and the background runs they started."""

    def __init__(self):
        self._sessions: dict[str, Session] = {}
        self._runs: set[asyncio.Task] = set()

    def open(self, websocket: WebSocket) -> Session:
        session = Session(session_id=f"sess-{uuid.uuid4().hex[:12]}", websocket=websocket)
        self._sessions[session.session_id] = session
        return session

    def close(self, session: Session) -> None:
        session.closed = True
        self._sessions.pop(session.session_id, None)

    def track(self, task: asyncio.Task) -> None:
        # Runs outlive their connection; keep a reference until they finish
        self._runs.add(task)
        task.add_done_callback(self._runs.discard)

    def __len__(self) -> int:
        return len(self._sessions)


def create_app(settings: Settings | None = None, client=None) -> FastAPI:
    """Build the application.

    Args:
        settings: Runtime settings (loaded from the environment if omitted)
        client: Model client (a GeminiClient built from settings if omitted)
    """
    settings = settings or load_settings()
    client = client or GeminiClient.from_settings(settings)
    output_root = settings.output_root
    registry = SessionRegistry()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        ensure_output_dir(output_root)
        logger.info(f"Serving generated site from '{output_root}' at /site")
        yield

    app = FastAPI(
        title="SiteAgent",
        description="Website builder driven by a single executeCommand tool",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.sessions = registry

    async def start_run(session: Session, problem: str) -> None:
        if session.busy:
            logger.warning(f"[{session.session_id}] rejected statement, run in flight")
            await deliver(session.emit, ExecutionEvent.error(BUSY_MESSAGE))
            return

        await asyncio.to_thread(clear_output_dir, output_root)

        session.runs_started += 1
        logger.info(f"[{session.session_id}] starting run {session.runs_started}")
        task = asyncio.create_task(
            run_agent(problem, client, session.emit, settings=settings)
        )
        session.run_task = task
        registry.track(task)

    @app.websocket("/ws")
    async def agent_socket(websocket: WebSocket) -> None:
        """Accept problem statements and stream run events back."""
        await websocket.accept()
        session = registry.open(websocket)
        logger.info(f"[{session.session_id}] connection opened")

        try:
            while True:
                problem = await websocket.receive_text()
                try:
                    await start_run(session, problem)
                except Exception as e:
                    logger.error(f"Fatal error in message handler: {e}", exc_info=True)
                    await deliver(session.emit, ExecutionEvent.error(CRITICAL_MESSAGE))
        except WebSocketDisconnect:
            logger.info(f"[{session.session_id}] connection closed")
        finally:
            registry.close(session)

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        """Report server status."""
        return HealthResponse(
            model=settings.model,
            output_dir=str(output_root),
            active_sessions=len(registry),
        )

    @app.exception_handler(Exception)
    async def generic_exception_handler(request, exc: Exception) -> JSONResponse:
        """Handle uncaught exceptions."""
        logger.error(f"Unhandled exception: {exc}", exc_info=True)
        return JSONResponse(
            status_code=500,
            content=ErrorResponse(
                detail=str(exc),
                error_code="INTERNAL_ERROR",
            ).model_dump(),
        )

    app.mount(
        "/site",
        StaticFiles(directory=str(output_root), html=True, check_dir=False),
        name="site",
    )

    return app


app = create_app()
