import io
import logging

from minio import Minio
from minio.error import S3Error

from medicore_forms.exceptions import StorageError

logger = logging.getLogger(__name__)


class BlobClient:
    """Uploads form attachments to an S3-compatible bucket via MinIO"""

    def __init__(self, config: dict):
        self.endpoint = config["minio_endpoint"]
        self.bucket = config["minio_bucket"]
        secure = config.get("minio_use_ssl", True)

        if not self.endpoint:
            raise ValueError(
                "MINIO_ENDPOINT is not set. File fields need an object store."
            )

        self.client = Minio(
            self.endpoint,
            access_key=config["minio_access_key"],
            secret_key=config["minio_secret_key"],
            secure=secure,
        )
        scheme = "https" if secure else "http"
        self.public_base_url = (
            config.get("minio_public_url") or f"{scheme}://{self.endpoint}"
        ).rstrip("/")

    def public_url(self, path: str) -> str:
        return f"{self.public_base_url}/{self.bucket}/{path}"

    def upload(self, path: str, data: bytes, content_type: str) -> str:
        """
        Upload bytes to the bucket and return the public URL

        Args:
            path: Object path inside the bucket
            data: File contents
            content_type: MIME type stored with the object

        Returns:
            Public URL of the stored object

        Raises:
            StorageError: If the upload fails
        """
        try:
            self.client.put_object(
                self.bucket,
                path,
                io.BytesIO(data),
                length=len(data),
                content_type=content_type or "application/octet-stream",
            )
        except S3Error as e:
            logger.error(f"Object store rejected upload of {path}: {e}")
            raise StorageError(f"Failed to upload file: {e}") from e
        except Exception as e:
            logger.error(f"Failed to upload {path}: {e}")
            raise StorageError(f"Failed to upload file: {e}") from e

        logger.info(f"Uploaded {len(data)} bytes to {self.bucket}/{path}")
        return self.public_url(path)

    def delete(self, path: str) -> None:
        """
        Remove an object from the bucket

        Raises:
            StorageError: If the removal fails
        """
        try:
            self.client.remove_object(self.bucket, path)
        except Exception as e:
            logger.error(f"Failed to delete {self.bucket}/{path}: {e}")
            raise StorageError(f"Failed to delete file: {e}") from e

        logger.info(f"Deleted {self.bucket}/{path}")
