"""Authentication models for FastAPI"""

from pydantic import BaseModel


class Doctor(BaseModel):
    """The tenant behind a doctor API request"""

    doctor_id: str
