"""Centralized object storage client for the application"""

import logging
import threading
from typing import Optional

from medicore_forms.backends.blob_client import BlobClient
from medicore_forms.config import config

_blob_lock = threading.Lock()
_blob_client = None

logger = logging.getLogger(__name__)


def get_blob_client() -> Optional[BlobClient]:
    """
    Get the singleton object storage client

    Returns None when no object store is configured; forms without file
    fields keep working and file uploads are refused at submit time.
    """
    global _blob_client
    if not config.get("minio_endpoint"):
        logger.warning("MINIO_ENDPOINT not set, file uploads are disabled")
        return None

    if _blob_client is None:
        with _blob_lock:
            if _blob_client is None:
                _blob_client = BlobClient(config)
                logger.info("Initialized singleton object storage client")

    return _blob_client
