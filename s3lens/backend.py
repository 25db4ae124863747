from __future__ import annotations

import hmac
import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import Settings
from .s3 import S3Service, is_access_denied_error, is_not_found_error

logger = logging.getLogger(__name__)

CORS_ALLOW_HEADERS = [
    "Content-Type",
    "X-Amz-Date",
    "Authorization",
    "X-Api-Key",
    "X-Amz-Security-Token",
]
CORS_ALLOW_METHODS = ["GET", "POST", "OPTIONS"]
CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": ",".join(CORS_ALLOW_HEADERS),
    "Access-Control-Allow-Methods": ",".join(CORS_ALLOW_METHODS),
}
ACCESS_DENIED_HINT = (
    "Access Denied. Ensure the backend role has permissions and the S3 bucket "
    "does not have conflicting policies. Error: {error}"
)


class PresignRequest(BaseModel):
    bucket: Optional[str] = None
    key: Optional[str] = None


class BackendError(Exception):
    def __init__(self, status_code: int, message: str, error: Optional[str] = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.message = message
        self.error = error


def _error_body(message: str, error: Optional[str] = None) -> dict[str, str]:
    body = {"message": message}
    if error is not None:
        body["error"] = error
    return body


def provider_error(exc: Exception) -> BackendError:
    logger.error("Storage provider call failed: %s", exc)
    if is_access_denied_error(exc):
        return BackendError(403, ACCESS_DENIED_HINT.format(error=exc))
    if is_not_found_error(exc):
        return BackendError(404, f"Not found: {exc}")
    return BackendError(500, "Internal Server Error", error=str(exc))


def create_app(
    service: Optional[S3Service] = None, settings: Optional[Settings] = None
) -> FastAPI:
    settings = settings or Settings()
    if service is None:
        service = S3Service(
            profile=settings.profile,
            region=settings.region,
            expiry_seconds=settings.expiry_seconds,
        )
    app = FastAPI(title="s3lens backend", version="0.1.0")
    app.state.service = service
    app.state.settings = settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=CORS_ALLOW_METHODS,
        allow_headers=CORS_ALLOW_HEADERS,
    )

    @app.middleware("http")
    async def short_circuit_options(request: Request, call_next):
        if request.method == "OPTIONS":
            return JSONResponse({}, status_code=200, headers=CORS_HEADERS)
        logger.info("%s %s", request.method, request.url.path)
        expected = app.state.settings.api_token
        provided = request.headers.get("Authorization", "")
        if expected and not hmac.compare_digest(provided.encode(), expected.encode()):
            logger.warning("Rejected request without a valid token: %s", request.url.path)
            return JSONResponse(
                _error_body("Unauthorized"), status_code=401, headers=CORS_HEADERS
            )
        return await call_next(request)

    @app.exception_handler(BackendError)
    async def backend_error_handler(request: Request, exc: BackendError):
        return JSONResponse(
            _error_body(exc.message, exc.error),
            status_code=exc.status_code,
            headers=CORS_HEADERS,
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        if exc.status_code in (404, 405):
            message = f"Route not found: {request.method} {request.url.path}"
            return JSONResponse(_error_body(message), status_code=404, headers=CORS_HEADERS)
        return JSONResponse(
            _error_body(str(exc.detail)), status_code=exc.status_code, headers=CORS_HEADERS
        )

    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            _error_body("Bucket and key are required."),
            status_code=400,
            headers=CORS_HEADERS,
        )

    @app.get("/buckets")
    async def list_buckets(request: Request):
        try:
            buckets = await request.app.state.service.list_buckets()
        except Exception as exc:
            raise provider_error(exc) from exc
        return JSONResponse(jsonable_encoder(buckets), headers=CORS_HEADERS)

    @app.get("/buckets/{name}/objects")
    async def list_objects(request: Request, name: str, prefix: str = ""):
        try:
            listing = await request.app.state.service.list_objects(name, prefix)
        except Exception as exc:
            raise provider_error(exc) from exc
        body = {
            "Contents": listing.get("Contents") or [],
            "CommonPrefixes": listing.get("CommonPrefixes") or [],
        }
        return JSONResponse(jsonable_encoder(body), headers=CORS_HEADERS)

    @app.post("/presign")
    async def presign(request: Request, body: Optional[PresignRequest] = None):
        if body is None or not body.bucket or not body.key:
            raise BackendError(400, "Bucket and key are required.")
        try:
            url = await request.app.state.service.presign(body.bucket, body.key)
        except Exception as exc:
            raise provider_error(exc) from exc
        return JSONResponse({"url": url}, headers=CORS_HEADERS)

    return app
