from contextlib import asynccontextmanager
import asyncio
import logging
import uuid

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.core.errors import LedgerError
from app.core.logging import configure_logging, request_id_var
from app.services.outbox_worker import start_outbox_worker_task
from app.routers.assignments import router as assignments_router
from app.routers.auth import router as auth_router
from app.routers.finance import router as finance_router
from app.routers.notifications import router as notifications_router
from app.routers.outbox import router as outbox_router
from app.routers.payments import router as payments_router
from app.routers.projects import router as projects_router
from app.routers.users import router as users_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()

    task = start_outbox_worker_task()
    try:
        yield
    finally:
        if task is not None:
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
            except Exception:
                # worker crash during shutdown; already logged.
                pass


app = FastAPI(
    title="Project Ledger",
    lifespan=lifespan,
)


@app.exception_handler(LedgerError)
async def ledger_error_handler(request: Request, exc: LedgerError):
    logger.info(
        "Request refused",
        extra={"path": request.url.path, "status_code": exc.status_code, "error": type(exc).__name__},
    )
    return JSONResponse(status_code=exc.status_code, content={"success": False, "message": exc.message})


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "message": str(exc.detail)},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    first = exc.errors()[0] if exc.errors() else {}
    location = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
    message = first.get("msg", "Invalid request")
    return JSONResponse(
        status_code=400,
        content={"success": False, "message": f"{location}: {message}" if location else message},
    )


@app.middleware("http")
async def catch_unhandled_exceptions(request: Request, call_next):
    try:
        return await call_next(request)
    except Exception:
        logger.exception("Unhandled exception", extra={"path": request.url.path, "method": request.method})
        return JSONResponse(status_code=500, content={"success": False, "message": "Internal Server Error"})


@app.middleware("http")
async def assign_request_id(request: Request, call_next):
    request_id = request.headers.get("X-Request-Id") or uuid.uuid4().hex
    token = request_id_var.set(request_id)
    try:
        response = await call_next(request)
    finally:
        request_id_var.reset(token)
    response.headers["X-Request-Id"] = request_id
    return response


app.include_router(auth_router)
app.include_router(users_router)
app.include_router(projects_router)
app.include_router(assignments_router)
app.include_router(payments_router)
app.include_router(finance_router)
app.include_router(notifications_router)
app.include_router(outbox_router)


@app.get("/")
def root():
    return {"status": "Project Ledger running"}


@app.get("/health")
def health():
    return {
        "status": "ok",
        "version": "1.0.0",
    }
