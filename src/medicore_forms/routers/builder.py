"""Form builder session endpoints for doctors"""

import logging
import uuid
from typing import Any, Dict, List, Optional

import redis
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from sqlmodel import Session

from medicore_forms.auth.dependencies import get_current_doctor
from medicore_forms.auth.models import Doctor
from medicore_forms.config import config
from medicore_forms.exceptions import FormEngineError
from medicore_forms.models.database import get_db, get_redis
from medicore_forms.models.drafts import ValidationRules
from medicore_forms.models.field_type import FieldType, FieldTypeRegistry
from medicore_forms.routers.dependencies import get_field_registry, http_error
from medicore_forms.services.builder_state_manager import BuilderStateManager
from medicore_forms.services.form_builder import FormBuilder
from medicore_forms.services.form_service import FormService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/builder", tags=["Form Builder"])


class CreateSessionRequest(BaseModel):
    form_id: Optional[uuid.UUID] = Field(
        default=None, description="Existing form to edit; omit to start a new form"
    )


class SettingsPatch(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    slug: Optional[str] = None
    is_active: Optional[bool] = None
    requires_patient_info: Optional[bool] = None
    success_message: Optional[str] = None
    notification_email: Optional[str] = None
    allow_multiple_submissions: Optional[bool] = None


class AddFieldRequest(BaseModel):
    field_type: FieldType


class FieldPatch(BaseModel):
    field_type: Optional[FieldType] = None
    label: Optional[str] = None
    placeholder: Optional[str] = None
    help_text: Optional[str] = None
    required: Optional[bool] = None
    options: Optional[List[str]] = None
    validation_rules: Optional[ValidationRules] = None


class MoveFieldRequest(BaseModel):
    to_index: int


class OptionRequest(BaseModel):
    value: Optional[str] = None


class UpdateOptionRequest(BaseModel):
    value: str


def get_builder_state_manager(
    redis_client: redis.Redis = Depends(get_redis),
    registry: FieldTypeRegistry = Depends(get_field_registry),
    doctor: Doctor = Depends(get_current_doctor),
) -> BuilderStateManager:
    return BuilderStateManager(
        redis_client,
        registry,
        doctor.doctor_id,
        ttl_seconds=config["builder_session_ttl_seconds"],
    )


def _session_response(session_id: str, builder: FormBuilder) -> Dict[str, Any]:
    return {"session_id": session_id, **builder.to_state()}


def _sessions_unavailable(e: redis.RedisError) -> HTTPException:
    logger.error(f"Builder session store unavailable: {e}")
    return HTTPException(status_code=503, detail="Builder sessions are unavailable")


def _edit(manager: BuilderStateManager, session_id: str, operation) -> Dict[str, Any]:
    """Load a builder, apply operation to it and store it again"""
    try:
        builder = manager.get_session(session_id)
        operation(builder)
        manager.save_session(session_id, builder)
    except FormEngineError as e:
        raise http_error(e)
    except redis.RedisError as e:
        raise _sessions_unavailable(e)
    return _session_response(session_id, builder)


@router.post("/sessions", status_code=201)
async def create_session(
    request: Optional[CreateSessionRequest] = None,
    manager: BuilderStateManager = Depends(get_builder_state_manager),
    doctor: Doctor = Depends(get_current_doctor),
    db: Session = Depends(get_db),
):
    """Start a builder session, blank or loaded from a saved form"""
    try:
        if request is not None and request.form_id is not None:
            form_service = FormService(db, doctor.doctor_id)
            form, fields = form_service.get_form_with_fields(request.form_id)
            builder = FormBuilder.from_form(manager.registry, form, fields)
        else:
            builder = FormBuilder(manager.registry)
        session_id = manager.create_session(builder)
    except FormEngineError as e:
        raise http_error(e)
    except redis.RedisError as e:
        raise _sessions_unavailable(e)

    return _session_response(session_id, builder)


@router.get("/sessions/{session_id}")
async def get_session(
    session_id: str,
    manager: BuilderStateManager = Depends(get_builder_state_manager),
):
    try:
        builder = manager.get_session(session_id)
    except FormEngineError as e:
        raise http_error(e)
    except redis.RedisError as e:
        raise _sessions_unavailable(e)
    return _session_response(session_id, builder)


@router.patch("/sessions/{session_id}/settings")
async def update_settings(
    session_id: str,
    request: SettingsPatch,
    manager: BuilderStateManager = Depends(get_builder_state_manager),
):
    changes = request.model_dump(exclude_unset=True)
    return _edit(manager, session_id, lambda b: b.update_settings(changes))


@router.post("/sessions/{session_id}/fields", status_code=201)
async def add_field(
    session_id: str,
    request: AddFieldRequest,
    manager: BuilderStateManager = Depends(get_builder_state_manager),
):
    return _edit(manager, session_id, lambda b: b.add_field(request.field_type))


@router.patch("/sessions/{session_id}/fields/{index}")
async def update_field(
    session_id: str,
    index: int,
    request: FieldPatch,
    manager: BuilderStateManager = Depends(get_builder_state_manager),
):
    changes = request.model_dump(exclude_unset=True)
    return _edit(manager, session_id, lambda b: b.update_field(index, changes))


@router.post("/sessions/{session_id}/fields/{index}/move")
async def move_field(
    session_id: str,
    index: int,
    request: MoveFieldRequest,
    manager: BuilderStateManager = Depends(get_builder_state_manager),
):
    return _edit(manager, session_id, lambda b: b.move_field(index, request.to_index))


@router.post("/sessions/{session_id}/fields/{index}/duplicate", status_code=201)
async def duplicate_field(
    session_id: str,
    index: int,
    manager: BuilderStateManager = Depends(get_builder_state_manager),
):
    return _edit(manager, session_id, lambda b: b.duplicate_field(index))


@router.post("/sessions/{session_id}/fields/{index}/select")
async def select_field(
    session_id: str,
    index: int,
    manager: BuilderStateManager = Depends(get_builder_state_manager),
):
    return _edit(manager, session_id, lambda b: b.select_field(index))


@router.delete("/sessions/{session_id}/fields/{index}")
async def delete_field(
    session_id: str,
    index: int,
    manager: BuilderStateManager = Depends(get_builder_state_manager),
):
    return _edit(manager, session_id, lambda b: b.delete_field(index))


@router.post("/sessions/{session_id}/fields/{index}/options", status_code=201)
async def add_option(
    session_id: str,
    index: int,
    request: OptionRequest,
    manager: BuilderStateManager = Depends(get_builder_state_manager),
):
    return _edit(manager, session_id, lambda b: b.add_option(index, request.value))


@router.patch("/sessions/{session_id}/fields/{index}/options/{option_index}")
async def update_option(
    session_id: str,
    index: int,
    option_index: int,
    request: UpdateOptionRequest,
    manager: BuilderStateManager = Depends(get_builder_state_manager),
):
    return _edit(
        manager,
        session_id,
        lambda b: b.update_option(index, option_index, request.value),
    )


@router.delete("/sessions/{session_id}/fields/{index}/options/{option_index}")
async def remove_option(
    session_id: str,
    index: int,
    option_index: int,
    manager: BuilderStateManager = Depends(get_builder_state_manager),
):
    return _edit(manager, session_id, lambda b: b.remove_option(index, option_index))


@router.post("/sessions/{session_id}/save")
async def save_form(
    session_id: str,
    manager: BuilderStateManager = Depends(get_builder_state_manager),
    doctor: Doctor = Depends(get_current_doctor),
    db: Session = Depends(get_db),
):
    """Persist the session's form and fields in one transaction and end the session"""
    form_service = FormService(db, doctor.doctor_id)
    try:
        builder = manager.get_session(session_id)
        form = builder.save(form_service)
        manager.clear_session(session_id)
        fields = form_service.get_fields(form.id)
    except FormEngineError as e:
        raise http_error(e)
    except redis.RedisError as e:
        raise _sessions_unavailable(e)

    return {
        "form": form,
        "fields": fields,
        "public_url": f"{config['app_base_url'].rstrip('/')}/forms/{form.slug}",
    }
