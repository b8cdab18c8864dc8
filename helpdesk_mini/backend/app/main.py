# helpdesk_mini/backend/app/main.py
import logging
import time

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import utils
from .api.auth import router as auth_router
from .api.comments import router as comments_router
from .api.tickets import router as tickets_router
from .config import APP_ENV, AUTO_CREATE_SCHEMA, FRONTEND_URL, LOG_LEVEL
from .db import init_db
from .errors import HelpdeskError, RateLimited

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
)
logger = logging.getLogger(__name__)

STARTED_AT = time.monotonic()

app = FastAPI(title="Helpdesk Mini", version="1.0.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=[FRONTEND_URL],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=[
        "Retry-After",
        "X-RateLimit-Limit",
        "X-RateLimit-Remaining",
        "X-RateLimit-Reset",
    ],
)


@app.on_event("startup")
def create_schema():
    if AUTO_CREATE_SCHEMA:
        init_db()
    logger.info("Helpdesk Mini started (environment=%s)", APP_ENV)


# Error envelope: {"error": {"code", "field"?, "message"}}

@app.exception_handler(HelpdeskError)
async def helpdesk_error_handler(request: Request, exc: HelpdeskError):
    headers = None
    if isinstance(exc, RateLimited):
        headers = {
            "Retry-After": str(exc.retry_after),
            "X-RateLimit-Limit": str(exc.limit),
            "X-RateLimit-Remaining": "0",
            "X-RateLimit-Reset": str(exc.retry_after),
        }
    return JSONResponse(
        status_code=exc.status_code, content=exc.to_dict(), headers=headers
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    first = errors[0] if errors else {}
    loc = [part for part in first.get("loc", ()) if part not in ("body", "query", "path", "header")]
    field = str(loc[-1]) if loc and isinstance(loc[-1], str) else None

    if first.get("type") == "missing":
        code = "FIELD_REQUIRED"
        message = f"{field.capitalize()} is required" if field else "Request body is required"
    else:
        code = "VALIDATION_ERROR"
        message = first.get("msg", "Invalid request")

    body = {"code": code}
    if field:
        body["field"] = field
    body["message"] = message
    return JSONResponse(status_code=400, content={"error": body})


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == 404:
        body = {"code": "ENDPOINT_NOT_FOUND", "message": "Endpoint not found"}
    elif exc.status_code == 405:
        body = {"code": "METHOD_NOT_ALLOWED", "message": "Method not allowed"}
    else:
        body = {"code": "HTTP_ERROR", "message": str(exc.detail)}
    return JSONResponse(status_code=exc.status_code, content={"error": body})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(
        status_code=500,
        content={"error": {"code": "INTERNAL_ERROR", "message": "Internal server error"}},
    )


@app.get("/health")
def health_check():
    return {
        "status": "ok",
        "timestamp": utils.utcnow().isoformat(),
        "uptime": round(time.monotonic() - STARTED_AT, 3),
        "environment": APP_ENV,
    }


app.include_router(auth_router)
app.include_router(tickets_router)
app.include_router(comments_router)
