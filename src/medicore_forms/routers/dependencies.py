"""Shared FastAPI dependencies and error translation for the routers"""

import logging

from fastapi import Depends, HTTPException, Request

from medicore_forms.config import config
from medicore_forms.exceptions import (
    FormEngineError,
    IndexOutOfRange,
    NotFoundError,
    StorageError,
    ValidationError,
)
from medicore_forms.models.field_type import FieldTypeRegistry
from medicore_forms.services.email_service import EmailService

logger = logging.getLogger(__name__)


def get_field_registry(request: Request) -> FieldTypeRegistry:
    """The field type registry built at startup"""
    return request.app.state.field_registry


def get_email_service(
    registry: FieldTypeRegistry = Depends(get_field_registry),
) -> EmailService:
    return EmailService(config, registry)


def http_error(error: FormEngineError) -> HTTPException:
    """Map a form engine error to the HTTP status the API reports it with"""
    if isinstance(error, (ValidationError, IndexOutOfRange)):
        return HTTPException(status_code=400, detail=str(error))
    if isinstance(error, NotFoundError):
        return HTTPException(status_code=404, detail=str(error))
    if isinstance(error, StorageError):
        logger.error(f"Storage failure: {error}")
        return HTTPException(status_code=502, detail=str(error))
    logger.error(f"Unexpected form engine error: {error}")
    return HTTPException(status_code=500, detail="Internal server error")
