# main.py
import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, Response

from campusvote import __version__, config
from campusvote.dependencies import Services, build_services
from campusvote.errors import CastError, PersistenceError
from campusvote.routes.auth_routes import router as auth_router
from campusvote.routes.election_routes import router as election_router
from campusvote.routes.vote_routes import results_router, vote_router

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)


def log_push_failure(task: asyncio.Task) -> None:
    """Done-callback for a dashboard sender task; retrieves and logs its error."""
    if task.cancelled():
        return
    error = task.exception()
    if error is not None and not isinstance(error, WebSocketDisconnect):
        logger.warning(f"Dashboard push failed: {error!r}")


def create_app(
    services: Optional[Services] = None,
    admin_username: str = config.ADMIN_USERNAME,
    admin_password: str = config.ADMIN_PASSWORD,
) -> FastAPI:

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if getattr(app.state, "services", None) is None:
            app.state.services = build_services()
        await app.state.services.startup(admin_username, admin_password)
        logger.info(f"Campus voting API ready ({config.STORAGE_BACKEND} storage)")
        yield
        app.state.services.shutdown()

    app = FastAPI(title="Campus Voting API", version=__version__, lifespan=lifespan)
    app.state.services = services

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(CastError)
    async def cast_error_handler(request: Request, exc: CastError):
        return JSONResponse(
            status_code=exc.status_code,
            content={"code": exc.code, "detail": exc.message, "retryable": exc.retryable},
        )

    @app.exception_handler(PersistenceError)
    async def persistence_error_handler(request: Request, exc: PersistenceError):
        logger.error(f"Persistence failure on {request.method} {request.url.path}: {exc.message}")
        return JSONResponse(
            status_code=exc.status_code,
            content={"code": exc.code, "detail": exc.message, "retryable": exc.retryable},
        )

    app.include_router(auth_router)
    app.include_router(vote_router)
    app.include_router(results_router)
    app.include_router(election_router)

    @app.websocket("/ws")
    async def dashboard_updates(websocket: WebSocket):
        bus = websocket.app.state.services.bus
        queue = bus.subscribe()

        async def forward():
            while True:
                await websocket.send_json(await queue.get())

        await websocket.accept()
        sender = asyncio.create_task(forward())
        sender.add_done_callback(log_push_failure)
        try:
            # dashboards only listen; reading here is how a disconnect shows up
            while True:
                await websocket.receive_text()
        except WebSocketDisconnect:
            logger.info("Dashboard subscriber disconnected")
        finally:
            sender.cancel()
            bus.unsubscribe(queue)

    @app.get("/health", tags=["General"])
    async def health_check():
        return {"status": "healthy", "storage": config.STORAGE_BACKEND}

    @app.get("/", tags=["General"])
    def read_root():
        return {"message": "Welcome to the Campus Voting API"}

    @app.get("/favicon.ico", include_in_schema=False)
    async def favicon():
        return Response(status_code=204)

    return app


app = create_app()
