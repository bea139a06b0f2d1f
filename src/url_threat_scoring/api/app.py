"""FastAPI entrypoint."""

from __future__ import annotations

import logging
from typing import Awaitable, Callable

import httpx
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from url_threat_scoring.config.settings import AppConfig, configure_logging, load_config
from url_threat_scoring.domain.url.tables import load_tables
from url_threat_scoring.orchestrator.pipeline import PipelinePolicy, validate

logger = logging.getLogger(__name__)

MAX_URL_LENGTH = 2048
_RESPONSE_HEADERS = {"X-Content-Type-Options": "nosniff", "Cache-Control": "no-store"}


class ValidateUrlRequest(BaseModel):
    model_config = ConfigDict(extra="ignore")

    url: str = Field(min_length=1, max_length=MAX_URL_LENGTH)

    @field_validator("url", mode="before")
    @classmethod
    def _strip(cls, value: object) -> object:
        return value.strip() if isinstance(value, str) else value


def _error(status_code: int, message: str, details: object | None = None) -> JSONResponse:
    body: dict[str, object] = {"error": message}
    if details is not None:
        body["details"] = details
    return JSONResponse(status_code=status_code, content=body, headers=_RESPONSE_HEADERS)


def create_app(config: AppConfig | None = None, *, client: httpx.AsyncClient | None = None) -> FastAPI:
    """Build the app; tables and policies are loaded once here, so bad config fails at startup."""

    cfg = config or load_config()
    configure_logging(cfg)
    tables = load_tables(cfg.tables_path)
    policy = PipelinePolicy.from_config(cfg)

    app = FastAPI(title="url-threat-scoring")

    @app.middleware("http")
    async def _security_headers(request: Request, call_next: Callable[[Request], Awaitable[Response]]) -> Response:
        response = await call_next(request)
        for name, value in _RESPONSE_HEADERS.items():
            response.headers.setdefault(name, value)
        return response

    @app.get("/health")
    def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.post("/validate-url")
    async def validate_url(request: Request) -> JSONResponse:
        try:
            payload = await request.json()
        except ValueError:
            return _error(400, "Request body must be valid JSON")

        try:
            body = ValidateUrlRequest.model_validate(payload)
        except ValidationError as exc:
            details = [{"loc": list(item["loc"]), "msg": item["msg"]} for item in exc.errors()]
            return _error(422, "Invalid request body", details)

        try:
            result = await validate(body.url, config=policy, client=client, tables=tables)
        except Exception:
            logger.exception("local analysis failed for submitted URL")
            return _error(503, "URL analysis is temporarily unavailable")
        return JSONResponse(content=result.to_payload(), headers=_RESPONSE_HEADERS)

    return app
