"""Database engine, Redis client and their FastAPI dependencies"""

import redis
from sqlalchemy import create_engine
from sqlmodel import Session

from medicore_forms.config import config

DATABASE_URL = config["database_url"]

if not DATABASE_URL:
    raise ValueError(
        "DATABASE_URL environment variable is not set. "
        "Set DATABASE_URL in the deployment environment or a local .env file."
    )

engine = create_engine(
    DATABASE_URL,
    echo=config["database_echo"],
    pool_pre_ping=True,
)

# Builder sessions are the only Redis data; one shared pool per process
redis_client = redis.from_url(
    config["redis_url"],
    decode_responses=True,
    max_connections=config["redis_max_connections"],
    socket_connect_timeout=config["redis_connect_timeout_seconds"],
    socket_keepalive=True,
    retry_on_timeout=True,
)


def get_db():
    """Yield a database session for one request"""
    with Session(engine) as session:
        yield session


def get_redis() -> redis.Redis:
    return redis_client
