"""Authentication dependencies for FastAPI"""

from fastapi import HTTPException, Request, status

from medicore_forms.auth.models import Doctor
from medicore_forms.logging_config import get_logger

# Set by the authenticating proxy in front of the doctor API
DOCTOR_ID_HEADER = "X-Doctor-Id"

logger = get_logger(__name__)


async def get_current_doctor(request: Request) -> Doctor:
    """
    FastAPI dependency resolving the doctor (tenant) for a request

    Identity is established upstream; this only reads the verified doctor id
    the proxy forwards. Every doctor-facing service is constructed with it.

    Args:
        request: FastAPI Request object

    Returns:
        Doctor for the forwarded id

    Raises:
        HTTPException: 401 if no doctor id was forwarded
    """
    doctor_id = (request.headers.get(DOCTOR_ID_HEADER) or "").strip()
    if not doctor_id:
        logger.warning(f"Rejected {request.url.path}: missing {DOCTOR_ID_HEADER}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
        )
    return Doctor(doctor_id=doctor_id)
