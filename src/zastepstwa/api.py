"""HTTP surface of the substitution mirror."""

from __future__ import annotations

import logging
from datetime import date
from typing import Any, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import FileResponse, JSONResponse

from zastepstwa.config import MirrorConfig, load_config
from zastepstwa.results import (
    DateKey,
    ErrorKind,
    ExplicitDate,
    Ready,
    RelativeDate,
    RequestResult,
)
from zastepstwa.services.orchestrator import CacheOrchestrator

logger = logging.getLogger(__name__)


def result_payload(result: RequestResult, *, base_url: str = "") -> dict[str, Any]:
    """Render a request result as the public JSON body."""

    if isinstance(result, Ready):
        return {"code": result.code, "link": file_link(result.key, base_url=base_url)}
    return {"code": result.code, "error": result.message}


def file_link(key: DateKey, *, base_url: str = "") -> str:
    return f"{base_url.rstrip('/')}/files/{key}.pdf"


def _error(kind_or_code: ErrorKind | int, message: str) -> JSONResponse:
    code = kind_or_code.code if isinstance(kind_or_code, ErrorKind) else kind_or_code
    return JSONResponse(status_code=code, content={"code": code, "error": message})


def create_app(
    config: Optional[MirrorConfig] = None,
    *,
    orchestrator: Optional[CacheOrchestrator] = None,
) -> FastAPI:
    """Build the API around `orchestrator` (or one built from `config`)."""

    config = config or load_config()
    orchestrator = orchestrator or CacheOrchestrator.from_config(config)
    base_url = config.runtime.public_base_url

    app = FastAPI(title="Substitutions Mirror API", version="0.1.0")
    app.state.orchestrator = orchestrator
    app.state.config = config

    def respond(result: RequestResult) -> JSONResponse:
        payload = result_payload(result, base_url=base_url)
        return JSONResponse(status_code=payload["code"], content=payload)

    @app.exception_handler(RequestValidationError)
    async def _invalid_params(request: Request, exc: RequestValidationError) -> JSONResponse:
        fields = sorted({str(err["loc"][-1]) for err in exc.errors() if err.get("loc")})
        detail = ", ".join(fields) if fields else "request"
        return _error(ErrorKind.INVALID_DATE, f"Invalid or missing parameters: {detail}")

    @app.exception_handler(OSError)
    async def _io_failure(request: Request, exc: OSError) -> JSONResponse:
        logger.error("I/O failure while serving %s", request.url.path, exc_info=exc)
        return _error(500, "internal error")

    @app.get("/health")
    def health() -> dict[str, Any]:
        return {"status": "ok", "maintenance": orchestrator.maintenance}

    @app.get("/")
    def by_date(day: int, month: int, year: int) -> JSONResponse:
        """Returns the link for an explicit ``day``/``month``/``year``."""
        return respond(orchestrator.resolve_request(ExplicitDate(day=day, month=month, year=year)))

    @app.get("/auto")
    def by_relative_date(when: str = "today") -> JSONResponse:
        """Returns the link for ``when`` = ``today`` or ``tomorrow``."""
        return respond(orchestrator.resolve_request(RelativeDate(when=when)))

    @app.get("/get/{day}/{month}")
    def legacy_by_day_month(day: int, month: int) -> JSONResponse:
        year = orchestrator.resolver.today().year
        return respond(orchestrator.resolve_request(ExplicitDate(day=day, month=month, year=year)))

    @app.get("/files/{day}.{month}.{year}.pdf", response_model=None)
    def download(day: int, month: int, year: int) -> FileResponse | JSONResponse:
        try:
            key = DateKey.for_date(date(year, month, day))
        except (ValueError, OverflowError):
            return _error(ErrorKind.INVALID_DATE, f"{day}.{month}.{year} is not a valid date")

        path = orchestrator.store.path_for(key)
        if not path.is_file():
            return _error(ErrorKind.NOT_FOUND, f"No cached substitutions for {key}")
        return FileResponse(path, media_type="application/pdf", filename=path.name)

    return app


__all__ = ["create_app", "file_link", "result_payload"]
