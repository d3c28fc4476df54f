# -*- coding: utf-8 -*-

import os
from contextlib import asynccontextmanager
from typing import Optional

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.endpoints.arcium import router as arcium_router
from app.clients.arcium_client import ArciumClient
from app.config import GatewaySettings, load_settings
from utils.logging import configure_logging, get_logger

load_dotenv()

logger = get_logger(__name__)

APP_TITLE = "Arcium Gateway"
APP_VERSION = "1.0.0"


def create_app(
    settings: Optional[GatewaySettings] = None,
    client: Optional[ArciumClient] = None,
) -> FastAPI:
    """Build the gateway application.

    The Arcium client is created up front so the app also works without
    running the lifespan (plain ``TestClient(app)``); shutdown closes it.
    """
    settings = settings or load_settings()
    configure_logging(settings.log_level)
    arcium_client = client or ArciumClient(settings)

    if not settings.auth_tokens:
        logger.warning("GATEWAY_AUTH_TOKENS is empty; every protected endpoint will answer 401.")

    @asynccontextmanager
    async def lifespan(_app: FastAPI):
        yield
        await arcium_client.aclose()

    application = FastAPI(title=APP_TITLE, version=APP_VERSION, lifespan=lifespan)
    application.state.settings = settings
    application.state.arcium_client = arcium_client

    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    application.include_router(arcium_router)

    @application.get("/")
    async def root():
        return {"message": "Arcium Gateway API", "version": APP_VERSION}

    return application


app = create_app()


def run() -> None:
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host=os.getenv("HOST", "0.0.0.0"),
        port=int(os.getenv("PORT", "8000")),
    )


if __name__ == "__main__":
    run()
