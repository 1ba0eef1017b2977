# src/interfaces/api/main.py
"""FastAPI application exposing the command collection and its sync.

Serves the collaborator operations (CRUD, favorites, tags, manual
push/pull, sync status and settings) as a local REST API. Run with
``uvicorn src.interfaces.api.main:app``.
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Annotated, Any

from dotenv import load_dotenv
from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

# Load environment variables from .env file
load_dotenv()

from src.config import settings  # noqa: E402
from src.core.commands.models import CommandUpdate  # noqa: E402
from src.core.commands.query import SortKey, SortOrder  # noqa: E402
from src.core.commands.service import CommandService  # noqa: E402
from src.core.errors import (  # noqa: E402
    AuthFailure,
    CommandNotFoundError,
    ConfigurationError,
    NetworkFailure,
    NotFoundError,
    ParseFailure,
    RemoteRejected,
    SniptError,
    StorageError,
    SyncInProgressError,
)
from src.core.factory import create_app, register_lifecycle  # noqa: E402
from src.core.lifecycle import get_lifecycle_manager, reset_lifecycle_manager  # noqa: E402
from src.interfaces.api.schemas import (  # noqa: E402
    CommandCreate,
    CommandResponse,
    ConnectionTestResponse,
    PullResponse,
    PushResponse,
    SyncConfigUpdate,
    SyncStatusResponse,
)
from src.interfaces.api.security import (  # noqa: E402
    get_rate_limit_string,
    limiter,
    verify_api_key,
)
from src.utils.logging import configure_logging  # noqa: E402
from src.utils.observability import setup_logfire  # noqa: E402

logger = logging.getLogger(__name__)

ApiKey = Annotated[str, Depends(verify_api_key)]

# Most specific classes first
_ERROR_STATUS: list[tuple[type[SniptError], int]] = [
    (ConfigurationError, 400),
    (AuthFailure, 401),
    (CommandNotFoundError, 404),
    (NotFoundError, 404),
    (SyncInProgressError, 409),
    (RemoteRejected, 502),
    (ParseFailure, 502),
    (NetworkFailure, 503),
    (StorageError, 500),
]


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Build components, load the collection, and flush on shutdown."""
    configure_logging(settings.log_level, json_format=settings.log_json)
    setup_logfire()

    snipt = create_app(settings)
    snipt.service.load_commands()
    app.state.snipt = snipt
    app.state.settings = settings

    lifecycle = get_lifecycle_manager()
    register_lifecycle(snipt, lifecycle)
    await lifecycle.startup()

    yield

    await lifecycle.shutdown()
    reset_lifecycle_manager()
    logger.info("Shutting down...")


app = FastAPI(
    title="SniptNote API",
    description="Local REST API for the command collection and its remote sync",
    version="1.0.0",
    lifespan=lifespan,
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


@app.exception_handler(SniptError)
async def snipt_error_handler(request: Request, exc: SniptError) -> JSONResponse:
    """Map the error taxonomy onto HTTP status codes."""
    status_code = next(
        (code for error_type, code in _ERROR_STATUS if isinstance(exc, error_type)), 500
    )
    return JSONResponse(status_code=status_code, content={"detail": str(exc)})


def get_service(request: Request) -> CommandService:
    """Return the CommandService built by the lifespan handler."""
    snipt = getattr(request.app.state, "snipt", None)
    if snipt is None:
        raise HTTPException(status_code=503, detail="Application not initialized")
    return snipt.service


Service = Annotated[CommandService, Depends(get_service)]


def _sync_status(service: CommandService) -> SyncStatusResponse:
    return SyncStatusResponse.build(
        service.get_sync_status(), service.engine.config, service.engine.username
    )


@app.get("/health")
@limiter.limit(get_rate_limit_string)
async def health_check(request: Request) -> dict[str, Any]:
    """Health check endpoint."""
    snipt = getattr(request.app.state, "snipt", None)
    return {
        "status": "healthy",
        "commands_loaded": snipt is not None and snipt.engine.last_load_error is None,
    }


@app.get("/commands", response_model=list[CommandResponse])
@limiter.limit(get_rate_limit_string)
async def list_commands(
    request: Request,
    service: Service,
    _api_key: ApiKey,
    search: str = "",
    tag: str = "",
    sort_key: SortKey = "updated_at",
    sort_order: SortOrder = "desc",
    favorites_first: bool = True,
) -> list[CommandResponse]:
    """List commands, filtered and sorted."""
    commands = service.list_commands(
        search=search,
        tag=tag,
        sort_key=sort_key,
        sort_order=sort_order,
        favorites_first=favorites_first,
    )
    return [CommandResponse.from_command(cmd) for cmd in commands]


@app.post("/commands", status_code=201, response_model=CommandResponse)
@limiter.limit(get_rate_limit_string)
async def create_command(
    request: Request, body: CommandCreate, service: Service, _api_key: ApiKey
) -> CommandResponse:
    """Create a new command."""
    try:
        cmd = service.add_command(
            title=body.title,
            command=body.command,
            description=body.description,
            tags=body.tags,
            favorite=body.favorite,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    return CommandResponse.from_command(cmd)


@app.get("/commands/{command_id}", response_model=CommandResponse)
@limiter.limit(get_rate_limit_string)
async def get_command(
    request: Request, command_id: str, service: Service, _api_key: ApiKey
) -> CommandResponse:
    """Get a specific command by id."""
    return CommandResponse.from_command(service.require_command(command_id))


@app.patch("/commands/{command_id}", response_model=CommandResponse)
@limiter.limit(get_rate_limit_string)
async def update_command(
    request: Request,
    command_id: str,
    body: CommandUpdate,
    service: Service,
    _api_key: ApiKey,
) -> CommandResponse:
    """Apply a partial update to a command."""
    cmd = service.update_command(command_id, body)
    if cmd is None:
        raise HTTPException(status_code=404, detail=f"Command {command_id} not found")
    return CommandResponse.from_command(cmd)


@app.delete("/commands/{command_id}")
@limiter.limit(get_rate_limit_string)
async def delete_command(
    request: Request, command_id: str, service: Service, _api_key: ApiKey
) -> dict[str, bool]:
    """Delete a command."""
    if not service.delete_command(command_id):
        raise HTTPException(status_code=404, detail=f"Command {command_id} not found")
    return {"deleted": True}


@app.post("/commands/{command_id}/favorite", response_model=CommandResponse)
@limiter.limit(get_rate_limit_string)
async def toggle_favorite(
    request: Request, command_id: str, service: Service, _api_key: ApiKey
) -> CommandResponse:
    """Flip the favorite flag of a command."""
    cmd = service.toggle_favorite(command_id)
    if cmd is None:
        raise HTTPException(status_code=404, detail=f"Command {command_id} not found")
    return CommandResponse.from_command(cmd)


@app.get("/tags")
@limiter.limit(get_rate_limit_string)
async def list_tags(request: Request, service: Service, _api_key: ApiKey) -> list[str]:
    """List every tag in first-seen order."""
    return service.get_tags()


@app.get("/sync/status", response_model=SyncStatusResponse)
@limiter.limit(get_rate_limit_string)
async def get_sync_status(
    request: Request, service: Service, _api_key: ApiKey
) -> SyncStatusResponse:
    """Current sync status and configuration (without the token)."""
    return _sync_status(service)


@app.put("/sync/config", response_model=SyncStatusResponse)
@limiter.limit(get_rate_limit_string)
async def update_sync_config(
    request: Request, body: SyncConfigUpdate, service: Service, _api_key: ApiKey
) -> SyncStatusResponse:
    """Change sync settings. Omitted fields keep their value."""
    service.configure_sync(**body.model_dump(exclude_unset=True))
    return _sync_status(service)


@app.post("/sync/push", response_model=PushResponse)
@limiter.limit(get_rate_limit_string)
async def push(request: Request, service: Service, _api_key: ApiKey) -> PushResponse:
    """Upload the local collection to the remote document."""
    gist_id = await service.manual_push()
    return PushResponse(gist_id=gist_id)


@app.post("/sync/pull", response_model=PullResponse)
@limiter.limit(get_rate_limit_string)
async def pull(request: Request, service: Service, _api_key: ApiKey) -> PullResponse:
    """Fetch the remote document and merge it locally."""
    result = await service.manual_pull()
    return PullResponse(merged=result.merged, conflict=result.conflict, count=result.count)


@app.post("/sync/test", response_model=ConnectionTestResponse)
@limiter.limit(get_rate_limit_string)
async def test_connection(
    request: Request, service: Service, _api_key: ApiKey
) -> ConnectionTestResponse:
    """Check the token and the recorded remote document."""
    result = await service.test_connection()
    return ConnectionTestResponse(success=result.success, message=result.message)


@app.post("/sync/clear-error", response_model=SyncStatusResponse)
@limiter.limit(get_rate_limit_string)
async def clear_sync_error(
    request: Request, service: Service, _api_key: ApiKey
) -> SyncStatusResponse:
    """Reset an error status back to idle."""
    service.clear_sync_error()
    return _sync_status(service)
