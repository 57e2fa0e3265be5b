"""
FastAPI application entry point.

Wires the model manager and generation gateway into application state and
mounts the generation, pipeline and health routers.
"""

import logging
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from contextlib import asynccontextmanager
from typing import AsyncGenerator
from dotenv import load_dotenv

from .routers import generation, pipeline, health
from fitlab.models.gateway import GenerationGateway
from fitlab.models.manager import ModelManager

logger = logging.getLogger(__name__)

load_dotenv()

# Global application state
app_state = {}

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan manager.

    The model manager and gateway are created once at startup and shared by
    every request. A missing API credential is a warning, not a startup failure.
    """
    logger.info("Starting Model Fit Lab API server...")

    model_manager = ModelManager()
    for provider_name in model_manager.missing_credentials():
        logger.warning(f"Warning: no API key set for provider '{provider_name}'.")

    app_state["model_manager"] = model_manager
    app_state["gateway"] = GenerationGateway(model_manager)
    logger.info("API server ready to accept requests")

    yield  # Server runs here

    logger.info("Shutting down Model Fit Lab API server...")
    app_state.clear()

def create_app() -> FastAPI:
    """
    Factory function to create and configure the FastAPI application.
    """

    app = FastAPI(
        title="Model Fit Lab API",
        description="Garment describer, interpreter and guarded image execution pipeline",
        version="1.0.0",
        lifespan=lifespan
    )

    # Configure CORS middleware for frontend communication
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["http://localhost:3000", "http://localhost:5173"],  # Common frontend ports
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health.router, prefix="/health", tags=["health"])
    app.include_router(generation.router, prefix="/api", tags=["generation"])
    app.include_router(pipeline.router, prefix="/api/pipeline", tags=["pipeline"])

    return app

# Create the FastAPI app instance
app = create_app()

# Root endpoint
@app.get("/")
async def root():
    """Root endpoint with basic API information."""
    return {
        "name": "Model Fit Lab API",
        "version": "1.0.0",
        "status": "operational",
        "endpoints": {
            "health": "/health",
            "text": "/api/text",
            "image": "/api/image",
            "pipeline": "/api/pipeline/run",
            "docs": "/docs",
        }
    }
