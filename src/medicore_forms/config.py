"""Configuration loader for MediCore Forms with environment-specific support"""

import os
from pathlib import Path

from dotenv import load_dotenv

project_dir = Path(__file__).parent.parent.parent
env_path = project_dir / ".env"

# Load .env file if it exists. For local development only.
if env_path.exists():
    load_dotenv(env_path)

# Configuration dictionary - set once at initialization
config = {
    "database_url": os.getenv("DATABASE_URL"),
    "database_echo": os.getenv("DATABASE_ECHO", "false").lower() == "true",
    "redis_url": os.getenv("REDIS_URL", "redis://localhost:6379/0"),
    "redis_max_connections": int(os.getenv("REDIS_MAX_CONNECTIONS", "20")),
    "redis_connect_timeout_seconds": int(os.getenv("REDIS_CONNECT_TIMEOUT_SECONDS", "5")),
    "port": int(os.getenv("PORT", "8080")),
    "log_level": os.getenv("LOG_LEVEL", "INFO"),
    "app_base_url": os.getenv("APP_BASE_URL", "http://localhost:8080"),
    "environment": os.getenv("ENVIRONMENT", "development"),
    # Object storage for file-type form fields
    "minio_endpoint": os.getenv("MINIO_ENDPOINT"),
    "minio_access_key": os.getenv("MINIO_ACCESS_KEY"),
    "minio_secret_key": os.getenv("MINIO_SECRET_KEY"),
    "minio_bucket": os.getenv("MINIO_BUCKET", "form-attachments"),
    "minio_use_ssl": os.getenv("MINIO_USE_SSL", "true").lower() == "true",
    # Base URL used to build public links to uploaded objects
    "minio_public_url": os.getenv("MINIO_PUBLIC_URL"),
    "max_upload_bytes": int(os.getenv("MAX_UPLOAD_BYTES", str(10 * 1024 * 1024))),
    "mailgun_api_key": os.getenv("MAILGUN_API_KEY"),
    "mailgun_domain": os.getenv("MAILGUN_DOMAIN"),
    "sender_email": os.getenv("SENDER_EMAIL"),
    "builder_session_ttl_seconds": int(
        os.getenv("BUILDER_SESSION_TTL_SECONDS", "1800")
    ),
}
