from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from .audit import OperationAuditMiddleware
from .config import settings
from .db.database import init_db
from .errors import (
    AlreadyRevoked,
    Conflict,
    NodeDNSError,
    NotFound,
    PartialFailure,
    Unauthorized,
    UpstreamError,
    ValidationError,
)
from .logger import logger
from .routers import aliases, nodes
from .scheduler import ReconcileScheduler
from .services import Services, build_services

# Most specific classes first; ConditionFailed falls through to Conflict
ERROR_STATUS_CODES: list[tuple[type[NodeDNSError], int]] = [
    (ValidationError, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (NotFound, status.HTTP_404_NOT_FOUND),
    (AlreadyRevoked, status.HTTP_409_CONFLICT),
    (Unauthorized, status.HTTP_403_FORBIDDEN),
    (Conflict, status.HTTP_409_CONFLICT),
    (UpstreamError, status.HTTP_502_BAD_GATEWAY),
    (PartialFailure, status.HTTP_207_MULTI_STATUS),
]


def status_code_for(error: NodeDNSError) -> int:
    for error_type, status_code in ERROR_STATUS_CODES:
        if isinstance(error, error_type):
            return status_code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


async def handle_nodedns_error(request: Request, exc: Exception) -> JSONResponse:
    assert isinstance(exc, NodeDNSError)
    status_code = status_code_for(exc)
    if status_code >= 500:
        logger.error(f"{request.method} {request.url.path} failed: {exc}")
    return JSONResponse(status_code=status_code, content=exc.to_dict())


def create_app(services: Services | None = None) -> FastAPI:
    """
    Build the HTTP application.

    When ``services`` is given it is used as is (tests inject fakes);
    otherwise the database, Route 53 zone and manifest source are built from
    settings at startup.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Starting up...")
        app_services = services
        if app_services is None:
            app_services = build_services(settings)
            assert app_services.engine is not None
            await init_db(app_services.engine)
        app.state.services = app_services

        scheduler = None
        if settings.reconcile.enabled:
            scheduler = ReconcileScheduler(
                app_services.reconciler, settings.reconcile.interval_seconds
            )
            scheduler.start()

        logger.info("Startup complete.")
        yield

        if scheduler is not None:
            scheduler.shutdown()
        await app_services.close()
        logger.info("Shutdown complete.")

    app = FastAPI(lifespan=lifespan, title="nodedns")
    app.add_middleware(OperationAuditMiddleware)
    app.add_exception_handler(NodeDNSError, handle_nodedns_error)

    app.include_router(nodes.router)
    app.include_router(aliases.router)

    @app.get("/health")
    async def health():
        return {"status": "ok"}

    return app


app = create_app()
