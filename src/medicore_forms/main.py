#!/usr/bin/env python3
"""MediCore Forms - form builder API and public form server"""

import uvicorn
from fastapi import FastAPI
from uvicorn.middleware.proxy_headers import ProxyHeadersMiddleware

from medicore_forms.config import config
from medicore_forms.logging_config import get_logger, setup_logging
from medicore_forms.models.field_type import build_field_type_registry
from medicore_forms.routers.builder import router as builder_router
from medicore_forms.routers.forms import router as forms_router
from medicore_forms.routers.health import health
from medicore_forms.routers.public_forms import router as public_forms_router
from medicore_forms.routers.submissions import router as submissions_router

# Configure logging (INFO -> stdout, WARNING/ERROR -> stderr)
setup_logging()
logger = get_logger(__name__)


# Create FastAPI app
app = FastAPI(
    title="MediCore Forms",
    description="Dynamic intake forms for medical practices - build forms, publish them by slug and review patient submissions",
    version="1.0.0",
)

# Trust proxy headers so client IPs recorded on submissions are the real ones
app.add_middleware(ProxyHeadersMiddleware, trusted_hosts="*")

# Field type catalog shared by the builder, the public renderer and the viewer
app.state.field_registry = build_field_type_registry()

# Include routers
app.include_router(health)
app.include_router(public_forms_router)
app.include_router(builder_router)
app.include_router(forms_router)
app.include_router(submissions_router)


if __name__ == "__main__":
    port = config.get("port")
    logger.info(f"Starting MediCore Forms on 0.0.0.0:{port}")
    logger.info("Health check available at /health")

    try:
        uvicorn.run(
            app, host="0.0.0.0", port=port, log_level=config["log_level"].lower()
        )
    except Exception as e:
        logger.error(f"Failed to start server: {e}")
        raise
