from __future__ import annotations

import logging
from time import monotonic

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.trustedhost import TrustedHostMiddleware

from boardpilot.config import settings
from boardpilot.errors import BoardpilotError
from boardpilot.metrics import runtime_metrics
from boardpilot.routers.board_context import router as board_context_router
from boardpilot.routers.boards import router as boards_router
from boardpilot.routers.chat import router as chat_router
from boardpilot.routers.realtime import router as realtime_router
from boardpilot.routers.suggestions import router as suggestions_router

logging.basicConfig(
  level=getattr(logging, settings.log_level.upper(), logging.INFO),
  format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
  title="Boardpilot API",
  version="0.1.0",
  docs_url="/docs" if settings.api_docs_enabled else None,
  redoc_url="/redoc" if settings.api_docs_enabled else None,
  openapi_url="/openapi.json" if settings.api_docs_enabled else None,
)


@app.exception_handler(BoardpilotError)
async def _boardpilot_error_handler(_, exc: BoardpilotError) -> JSONResponse:
  return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


app.add_middleware(
  CORSMiddleware,
  allow_origins=settings.cors_origin_list(),
  allow_origin_regex=settings.cors_origin_regex,
  allow_credentials=True,
  allow_methods=["*"],
  allow_headers=["*"],
)
app.add_middleware(TrustedHostMiddleware, allowed_hosts=settings.trusted_host_list())

app.include_router(board_context_router)
app.include_router(boards_router)
app.include_router(suggestions_router)
app.include_router(chat_router)
app.include_router(realtime_router)


@app.middleware("http")
async def _request_metrics_middleware(request, call_next):
  start = monotonic()
  response = await call_next(request)
  runtime_metrics.observe_request(response.status_code, (monotonic() - start) * 1000.0)
  response.headers.setdefault("X-Content-Type-Options", "nosniff")
  response.headers.setdefault("X-Frame-Options", "DENY")
  return response


@app.get("/health")
async def health() -> dict:
  return {"ok": True}


@app.get("/version")
async def version() -> dict:
  return {"version": settings.app_version, "buildSha": settings.build_sha}


@app.get("/metrics")
async def metrics() -> dict:
  return runtime_metrics.snapshot()


def _is_test_db() -> bool:
  return "test" in settings.database_url.rsplit("/", 1)[-1]


@app.on_event("startup")
async def _startup() -> None:
  if _is_test_db():
    return
  if not settings.app_secret or settings.app_secret.strip().lower() in {"dev-secret-change-me", "replace_with_strong_random_secret"}:
    raise RuntimeError("APP_SECRET is required and must not be a placeholder")
  logger.info("boardpilot %s (%s) starting", settings.app_version, settings.build_sha)
