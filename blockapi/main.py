"""
Blocks API FastAPI application.

Entry point for the editor API server.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI

from blockapi.config import settings
from blockapi.routes import blocks as block_routes

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL, logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(title="Custom Blocks", version="0.1.0")

app.include_router(block_routes.router)


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "ok", "environment": settings.ENVIRONMENT}
