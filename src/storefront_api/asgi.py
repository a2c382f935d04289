from __future__ import annotations

from fastapi import FastAPI

from storefront_api.adapters.inbound.web.fastapi_app import create_app
from storefront_api.bootstrap import build_usecases
from storefront_api.config import load_settings
from storefront_api.utils.logging import configure_logging


def create_asgi_app() -> FastAPI:
    settings = load_settings()
    configure_logging(settings.log_level, settings.log_format)
    return create_app(build_usecases(settings))
