"""FastAPI application emulating the companion device.

Serves a directory over the same HTTP protocol RemoteLink speaks, for
development and end-to-end testing without a phone.

Usage:
    recsync device ./device-root --port 8087
"""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI

from recsync.core.config import DEFAULT_DEVICE_PORT
from recsync.device.api import router
from recsync.links.local import LocalLink

logger = logging.getLogger(__name__)


def create_device_app(root: Path | str) -> FastAPI:
    """Create the device application serving a directory.

    Args:
        root: Device repository root.

    Returns:
        Configured FastAPI application. Received notifications are kept
        in ``app.state.notifications``.
    """
    link = LocalLink(root)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Application lifespan handler for startup/shutdown."""
        logger.info("=" * 60)
        logger.info("recsync device emulator starting")
        logger.info("  Root: %s", link.root)
        logger.info("=" * 60)

        yield

        logger.info("recsync device emulator shutting down")

    application = FastAPI(
        title="recsync device",
        description="Companion device emulator for recording synchronization",
        version="0.1.0",
        lifespan=lifespan,
    )

    application.state.link = link
    application.state.notifications = []

    application.include_router(router)

    return application


def run_device(root: Path | str, host: str = "0.0.0.0", port: int = DEFAULT_DEVICE_PORT) -> None:
    """Serve a directory as a device until interrupted."""
    import uvicorn

    uvicorn.run(create_device_app(root), host=host, port=port)
