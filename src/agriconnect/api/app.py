# src/agriconnect/api/app.py
"""
FastAPI application wiring.

This file creates the `FastAPI` instance and configures CORS and logging.
Business logic lives in `agriconnect.services.marketplace`; routes live in
`agriconnect.api.routes`.

Run with: `uvicorn agriconnect.api.app:app` or `agriconnect serve`.
"""

from __future__ import annotations

import os

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.middleware.cors import CORSMiddleware

from agriconnect.core.logging import configure_logging

from .routes import router

configure_logging()

app = FastAPI(title="AgriConnect API", version="0.1.0")

# Mobile and web clients are served from other origins.
# Configure via env:
# - AGRICONNECT_CORS_ORIGINS="https://app.example.org,http://localhost:3000"
# - AGRICONNECT_CORS_ALLOW_LOCAL=0 to disable the default localhost allowance
cors_origins = [s.strip() for s in os.getenv("AGRICONNECT_CORS_ORIGINS", "").split(",") if s.strip()]
cors_allow_local = os.getenv("AGRICONNECT_CORS_ALLOW_LOCAL", "1").strip().lower() in {"1", "true", "yes", "y"}
cors_origin_regex = os.getenv("AGRICONNECT_CORS_ALLOW_ORIGIN_REGEX", "").strip() or (
    r"^https?://(localhost|127\.0\.0\.1)(:\d+)?$" if cors_allow_local and not cors_origins else ""
)
if cors_origins or cors_origin_regex:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cors_origins,
        allow_origin_regex=cors_origin_regex or None,
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )


@app.exception_handler(RequestValidationError)
async def _validation_error(_: Request, exc: RequestValidationError) -> JSONResponse:
    # Same body shape as the HTTPException details raised in routes.
    first = exc.errors()[0] if exc.errors() else {}
    where = ".".join(str(p) for p in first.get("loc", ()) if p != "body")
    message = f"{where}: {first.get('msg', 'invalid request')}" if where else str(first.get("msg", "invalid request"))
    return JSONResponse(status_code=400, content={"detail": {"code": "VALIDATION_ERROR", "message": message}})


app.include_router(router)
