"""Browser access for the dashboard single-page app."""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ldash.config import Settings
from ldash.middleware.request_id import REQUEST_ID_HEADER

# The dashboard only reads, upserts progress and posts joins/discussions.
DASHBOARD_METHODS = ["GET", "POST", "PUT", "OPTIONS"]


def setup_cors(app: FastAPI, settings: Settings) -> None:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=DASHBOARD_METHODS,
        allow_headers=["Authorization", "Content-Type", REQUEST_ID_HEADER],
        expose_headers=[REQUEST_ID_HEADER],
    )
