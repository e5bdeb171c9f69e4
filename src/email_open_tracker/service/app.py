"""Marker service FastAPI application.

Issues tracking pixels for outgoing mail and records every fetch of them.
The recording endpoint answers with the same 1x1 GIF no matter what happens
behind it: whatever loads the pixel (a mail client, an image proxy) has no way
to handle an error, so failures there are logged and never returned.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone

import structlog
from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, JSONResponse, Response

from email_open_tracker import __version__
from email_open_tracker.config import Settings, get_settings
from email_open_tracker.exceptions import PersistenceError, RecordNotFoundError
from email_open_tracker.models import EmailDetailResponse
from email_open_tracker.models import EmailListResponse
from email_open_tracker.models import EmailSummary
from email_open_tracker.models import HealthResponse
from email_open_tracker.models import TrackRequest
from email_open_tracker.models import TrackResponse
from email_open_tracker.service.pixel import PIXEL_GIF
from email_open_tracker.service.pixel import PIXEL_HEADERS
from email_open_tracker.service.pixel import build_pixel_html
from email_open_tracker.service.pixel import build_pixel_url
from email_open_tracker.service.pixel import resolve_referer
from email_open_tracker.service.pixel import resolve_source_address
from email_open_tracker.service.repository import TrackingRepository

logger = structlog.get_logger()

router = APIRouter()


_TEST_PAGE = """<!DOCTYPE html>
<html>
<head>
  <title>Email Tracking Test</title>
  <style>
    body { font-family: Arial; padding: 20px; max-width: 800px; margin: 0 auto; }
    .success { color: green; font-weight: bold; }
    .info { background: #e3f2fd; padding: 10px; margin: 10px 0; border-radius: 4px; }
  </style>
</head>
<body>
  <h1>Email Tracking Test Page</h1>
  <p>This page simulates an email being opened. Check the server logs.</p>
  <div class="info">
    <ol>
      <li>This page loads a 1x1 tracking pixel</li>
      <li>The server receives a GET request to /track/test-tracking-id-12345.png</li>
      <li>A pixel_hit entry shows up in the service log</li>
    </ol>
  </div>
  <p class="success">If you see the log entry, tracking works.</p>
  <img src="/track/test-tracking-id-12345.png?test=true" width="1" height="1" style="display:none;">
</body>
</html>
"""


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


def get_repository(request: Request) -> TrackingRepository:
    return request.app.state.repository


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def _error(status_code: int, error: str, details: str | None = None) -> JSONResponse:
    body = {"error": error}
    if details:
        body["details"] = details
    return JSONResponse(status_code=status_code, content=body)


@router.post("/api/v1/track", response_model=TrackResponse)
def issue_tracker(
    payload: TrackRequest,
    repo: TrackingRepository = Depends(get_repository),
    settings: Settings = Depends(get_app_settings),
):
    logger.info(
        "tracking_requested",
        user_id=payload.user_id,
        recipient=payload.recipient,
        subject=payload.subject,
    )
    if not payload.user_id:
        return _error(400, "Missing userId")

    try:
        record = repo.create_record(
            owner_id=payload.user_id,
            recipient=payload.recipient,
            subject=payload.subject,
        )
    except PersistenceError as e:
        logger.error("tracking_issue_failed", error=str(e))
        return _error(500, "Server Error", str(e))

    pixel_url = build_pixel_url(settings.pixel_base_url(), record.tracking_id)
    logger.info(
        "tracking_issued",
        tracking_id=record.tracking_id,
        recipient=record.recipient,
        pixel_url=pixel_url,
    )
    return TrackResponse(
        pixel_html=build_pixel_html(pixel_url),
        tracking_id=record.tracking_id,
        pixel_url=pixel_url,
    )


@router.get("/track/{tracking_id}.png", include_in_schema=False)
def record_open(tracking_id: str, request: Request, repo: TrackingRepository = Depends(get_repository)):
    headers = request.headers
    source_address = resolve_source_address(headers, request.client.host if request.client else None)
    client_agent = headers.get("user-agent") or "unknown"
    referer = resolve_referer(headers)

    log = logger.bind(tracking_id=tracking_id, source_address=source_address)
    log.info("pixel_hit", client_agent=client_agent, referer=referer, query=dict(request.query_params))

    try:
        recorded = repo.append_open(
            tracking_id,
            source_address=source_address,
            client_agent=client_agent,
            referer=referer,
        )
    except PersistenceError as e:
        log.error("pixel_open_log_failed", error=str(e))
    else:
        if recorded:
            log.info("pixel_open_logged")
        else:
            log.warning("pixel_tracking_id_unknown")

    return Response(content=PIXEL_GIF, media_type="image/gif", headers=PIXEL_HEADERS)


@router.get("/api/v1/emails/{user_id}", response_model=EmailListResponse)
def list_emails(user_id: str, repo: TrackingRepository = Depends(get_repository)):
    try:
        records = repo.list_records_for_owner(user_id)
    except PersistenceError as e:
        logger.error("emails_list_failed", user_id=user_id, error=str(e))
        return _error(500, "Server Error")

    return EmailListResponse(
        emails=[EmailSummary.from_record(r) for r in records],
        total_emails=len(records),
        total_opens=sum(r.open_count for r in records),
    )


@router.get("/api/v1/email/{tracking_id}", response_model=EmailDetailResponse)
def email_detail(tracking_id: str, repo: TrackingRepository = Depends(get_repository)):
    try:
        record = repo.require_record(tracking_id)
    except RecordNotFoundError:
        return _error(404, "Email not found")
    except PersistenceError as e:
        logger.error("email_detail_failed", tracking_id=tracking_id, error=str(e))
        return _error(500, "Server Error")

    return EmailDetailResponse(
        email=record,
        open_count=record.open_count,
        first_opened=record.first_opened,
        last_opened=record.last_opened,
    )


@router.get("/api/health", response_model=HealthResponse)
def health(repo: TrackingRepository = Depends(get_repository)) -> HealthResponse:
    return HealthResponse(
        status="ok",
        timestamp=_now_utc(),
        database="connected" if repo.ping() else "disconnected",
    )


@router.get("/test", response_class=HTMLResponse, include_in_schema=False)
def test_page() -> str:
    return _TEST_PAGE


async def _validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    # The issuance contract only knows 400; keep malformed bodies on the same shape.
    logger.warning("request_validation_failed", path=request.url.path, errors=len(exc.errors()))
    return _error(400, "Invalid request body", json.dumps(exc.errors(), default=str))


def create_app(
    settings: Settings | None = None,
    repository: TrackingRepository | None = None,
) -> FastAPI:
    """Build the marker service application.

    Args:
        settings: Application settings. If None, uses default settings.
        repository: Tracking store. If None, one is created from settings.database_url.

    Returns:
        Configured FastAPI application.
    """

    settings = settings or get_settings()
    repository = repository or TrackingRepository.from_url(settings.database_url)

    app = FastAPI(title="Email Open Tracker", version=__version__)
    app.state.settings = settings
    app.state.repository = repository

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(RequestValidationError, _validation_error_handler)

    @app.middleware("http")
    async def _log_requests(request: Request, call_next):
        logger.debug(
            "http_request",
            method=request.method,
            path=request.url.path,
            client=request.headers.get("x-forwarded-for") or (request.client.host if request.client else None),
            user_agent=request.headers.get("user-agent"),
        )
        return await call_next(request)

    app.include_router(router)
    logger.info("marker_service_created", pixel_base_url=settings.pixel_base_url())
    return app
