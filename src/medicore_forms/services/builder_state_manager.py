import json
import logging
import uuid
from typing import Any, Dict

import redis

from medicore_forms.exceptions import NotFoundError
from medicore_forms.models.field_type import FieldTypeRegistry
from medicore_forms.services.form_builder import FormBuilder

logger = logging.getLogger(__name__)


class BuilderStateManager:
    """
    Manages form builder sessions in Redis with automatic TTL.

    A doctor editing a form works through many HTTP requests; the builder
    state (settings, field drafts, selection) lives here between them:
    - One key per doctor and session, so sessions never leak across tenants
    - Automatic expiration (30-minute sliding window by default)
    - Corrupted entries are treated as expired
    """

    def __init__(
        self,
        redis_client: redis.Redis,
        registry: FieldTypeRegistry,
        doctor_id: str,
        ttl_seconds: int = 1800,
    ):
        """
        Initialize BuilderStateManager with Redis backend.

        Args:
            redis_client: Redis client instance (from dependency injection)
            registry: Field type registry handed to restored builders
            doctor_id: Tenant owning the sessions
            ttl_seconds: Time-to-live in seconds (default: 1800 = 30 minutes)
        """
        self.redis_client = redis_client
        self.registry = registry
        self.doctor_id = doctor_id
        self.ttl_seconds = ttl_seconds

    def _state_key(self, session_id: str) -> str:
        """
        Generate Redis key for builder state.

        Returns:
            Redis key (format: "form_builder:{doctor_id}:{session_id}")
        """
        return f"form_builder:{self.doctor_id}:{session_id}"

    def create_session(self, builder: FormBuilder) -> str:
        """
        Store a new builder and return its session id.

        Raises:
            redis.RedisError: If Redis operation fails
        """
        session_id = uuid.uuid4().hex
        self.save_session(session_id, builder)
        logger.info(f"Created builder session {session_id} for doctor {self.doctor_id}")
        return session_id

    def get_session(self, session_id: str) -> FormBuilder:
        """
        Restore the builder for a session.

        Raises:
            NotFoundError: Session is unknown, expired or corrupted
            redis.RedisError: If Redis operation fails
        """
        key = self._state_key(session_id)
        try:
            state_json = self.redis_client.get(key)
        except redis.RedisError as e:
            logger.error(f"Redis error getting builder session {session_id}: {e}")
            raise

        if not state_json:
            raise NotFoundError("Builder session not found or expired")

        try:
            state: Dict[str, Any] = json.loads(state_json)
        except json.JSONDecodeError:
            logger.error(f"Corrupted state for builder session {session_id}")
            raise NotFoundError("Builder session not found or expired")

        return FormBuilder.from_state(self.registry, state)

    def save_session(self, session_id: str, builder: FormBuilder) -> None:
        """
        Persist builder state and refresh TTL (sliding window).

        Raises:
            redis.RedisError: If Redis operation fails
        """
        key = self._state_key(session_id)
        try:
            self.redis_client.setex(key, self.ttl_seconds, json.dumps(builder.to_state()))
        except redis.RedisError as e:
            logger.error(f"Redis error saving builder session {session_id}: {e}")
            raise

    def clear_session(self, session_id: str) -> None:
        """
        Remove a builder session, typically right after a successful save.

        Raises:
            redis.RedisError: If Redis operation fails
        """
        key = self._state_key(session_id)
        try:
            self.redis_client.delete(key)
            logger.info(f"Cleared builder session {session_id}")
        except redis.RedisError as e:
            logger.error(f"Redis error clearing builder session {session_id}: {e}")
            raise
