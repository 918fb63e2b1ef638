"""Firebase Admin SDK initialization and profile image storage."""

import asyncio
import json
import os
from typing import Protocol
from uuid import uuid4

import firebase_admin
from firebase_admin import credentials, storage
from structlog import get_logger

from app.core.exceptions import BlobStorageFailedException

logger = get_logger(__name__)

_firebase_app: firebase_admin.App | None = None


def initialize_firebase(
    firebase_credentials_path: str | None = None,
    firebase_config_json: str | None = None,
    storage_bucket: str | None = None,
) -> None:
    """
    Initialize Firebase Admin SDK.

    Args:
        firebase_credentials_path: Optional path to service account JSON file.
        firebase_config_json: Optional raw JSON string of service account.
        storage_bucket: Default Cloud Storage bucket for uploads.

    Looks for Firebase credentials in order:
    1. firebase_config_json parameter
    2. firebase_credentials_path parameter
    3. Default application credentials
    """
    global _firebase_app

    if _firebase_app is not None:
        logger.info("firebase_already_initialized")
        return

    options = {"storageBucket": storage_bucket} if storage_bucket else None

    try:
        cred = None

        if firebase_config_json:
            logger.info("firebase_init_from_json")
            cred = credentials.Certificate(json.loads(firebase_config_json))
        elif firebase_credentials_path and os.path.exists(firebase_credentials_path):
            logger.info("firebase_init_from_file", path=firebase_credentials_path)
            cred = credentials.Certificate(firebase_credentials_path)

        if cred:
            _firebase_app = firebase_admin.initialize_app(cred, options)
        else:
            _firebase_app = firebase_admin.initialize_app(options=options)
            logger.info("firebase_init_default_credentials")

    except Exception as e:
        logger.error("firebase_init_failed", error=str(e))
        raise


def get_firebase_app() -> firebase_admin.App:
    """
    Get the Firebase app instance.

    Raises:
        RuntimeError: If Firebase is not initialized
    """
    if _firebase_app is None:
        raise RuntimeError("Firebase not initialized. Call initialize_firebase() first.")
    return _firebase_app


class BlobStore(Protocol):
    """Stores a binary object and returns a URL it can be fetched from."""

    async def store(self, data: bytes, filename: str, content_type: str, folder: str) -> str: ...


class FirebaseBlobStore:
    """Blob store backed by the Firebase default Cloud Storage bucket."""

    async def store(self, data: bytes, filename: str, content_type: str, folder: str) -> str:
        """
        Upload bytes and make them publicly readable.

        Returns:
            Public URL of the stored object

        Raises:
            BlobStorageFailedException: If Firebase is not set up or the upload fails
        """
        extension = os.path.splitext(filename)[1].lower()
        object_name = f"{folder}/{uuid4().hex}{extension}"

        def _upload() -> str:
            bucket = storage.bucket(app=get_firebase_app())
            blob = bucket.blob(object_name)
            blob.upload_from_string(data, content_type=content_type)
            blob.make_public()
            return blob.public_url

        try:
            url = await asyncio.to_thread(_upload)
        except Exception as e:
            raise BlobStorageFailedException() from e

        logger.info("blob_stored", object_name=object_name, size=len(data))
        return url
