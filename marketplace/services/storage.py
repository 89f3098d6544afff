# marketplace/services/storage.py
import logging
import posixpath
import uuid
from io import BytesIO
from typing import Optional

from azure.core.exceptions import AzureError, ResourceExistsError
from azure.storage.blob import BlobServiceClient, ContentSettings
from PIL import Image, UnidentifiedImageError

from marketplace.core.config import settings
from marketplace.core.errors import MarketError, ValidationFailed

logger = logging.getLogger(__name__)


class UploadFailed(MarketError):
    status_code = 502


class ObjectStore:
    """upload(path, bytes, overwrite) / get_public_url(path)."""

    def upload(self, path: str, data: bytes, overwrite: bool = False, content_type: Optional[str] = None) -> None:
        raise NotImplementedError

    def get_public_url(self, path: str) -> str:
        raise NotImplementedError


class AzureBlobStore(ObjectStore):
    def __init__(self, connection_string: str, container: str):
        if not connection_string:
            raise UploadFailed("storage_not_configured", status_code=503)
        self.container = container
        self._service = BlobServiceClient.from_connection_string(connection_string)
        try:
            self._service.create_container(container)
        except ResourceExistsError:
            pass  # 이미 있으면 스킵

    def upload(self, path: str, data: bytes, overwrite: bool = False, content_type: Optional[str] = None) -> None:
        blob = self._service.get_blob_client(container=self.container, blob=path)
        content_settings = ContentSettings(content_type=content_type) if content_type else None
        try:
            blob.upload_blob(data, overwrite=overwrite, content_settings=content_settings)
        except ResourceExistsError:
            raise UploadFailed("object_exists", status_code=409)
        except AzureError:
            logger.exception("blob upload failed: %s", path)
            raise UploadFailed("upload_failed")

    def get_public_url(self, path: str) -> str:
        return self._service.get_blob_client(container=self.container, blob=path).url


_store: Optional[ObjectStore] = None


def get_object_store() -> ObjectStore:
    global _store
    if _store is None:
        _store = AzureBlobStore(settings.AZURE_STORAGE_CONNECTION_STRING, settings.AZURE_CONTAINER_NAME)
    return _store


def ensure_image(data: bytes) -> str:
    """Return the lowercase image format, or raise if ``data`` is not an image."""
    if not data:
        raise ValidationFailed("empty_file")
    try:
        with Image.open(BytesIO(data)) as img:
            img.verify()
            fmt = (img.format or "").lower()
    except (UnidentifiedImageError, OSError, SyntaxError):
        raise ValidationFailed("not_an_image")
    return fmt


def upload_image(store: ObjectStore, owner_id: int, filename: str, data: bytes, content_type: Optional[str] = None) -> str:
    fmt = ensure_image(data)
    ext = posixpath.splitext(filename or "")[1].lower() or f".{fmt or 'bin'}"
    path = f"{owner_id}/{uuid.uuid4().hex}{ext}"
    store.upload(path, data, overwrite=False, content_type=content_type)
    url = store.get_public_url(path)
    logger.info("uploaded %s (%d bytes)", path, len(data))
    return url
