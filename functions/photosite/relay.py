"""
Upload relay: accepts a base64 data URL plus metadata, re-validates it and
writes the bytes to object storage under a generated key.
"""

from __future__ import annotations

import base64
import binascii
import logging
import secrets
import string
import time
from dataclasses import dataclass
from typing import Callable, Optional

from photosite.storage import ObjectStorage
from photosite.uploads import GENERAL_RULES, UploadRules

logger = logging.getLogger(__name__)

RANDOM_SUFFIX_LENGTH = 13
_KEY_ALPHABET = string.ascii_lowercase + string.digits


class RelayError(Exception):
    """Relay failure carrying the HTTP status and JSON body to return."""

    status_code = 500

    def __init__(self, error: str, message: Optional[str] = None):
        self.error = error
        self.message = message
        super().__init__(message or error)

    def as_dict(self) -> dict:
        body = {"error": self.error}
        if self.message is not None:
            body["message"] = self.message
        return body


class RelayConfigError(RelayError):
    status_code = 500


class RelayValidationError(RelayError):
    status_code = 400


def generate_object_key(
    file_name: str,
    folder: Optional[str] = None,
    *,
    now_millis: Optional[int] = None,
) -> tuple[str, str]:
    """
    Return ``(key, unique_file_name)`` for an upload.

    The name is ``{unix millis}-{random suffix}.{original extension}``;
    uniqueness is best-effort and collisions are not retried.
    """
    timestamp = now_millis if now_millis is not None else int(time.time() * 1000)
    suffix = "".join(secrets.choice(_KEY_ALPHABET) for _ in range(RANDOM_SUFFIX_LENGTH))
    extension = file_name.rsplit(".", 1)[-1]
    unique_name = f"{timestamp}-{suffix}.{extension}"
    prefix = f"{folder}/" if folder else ""
    return f"{prefix}{unique_name}", unique_name


def decode_data_url(data_url: str) -> bytes:
    """Decode the payload after the first comma of a data URL."""
    _, separator, encoded = data_url.partition(",")
    if not separator:
        raise RelayValidationError("Invalid file data", "missing data URL header")
    try:
        body = base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise RelayValidationError("Invalid file data", str(exc)) from exc
    if not body:
        raise RelayValidationError("Invalid file data", "empty file")
    return body


@dataclass
class UploadRelay:
    """Validates relay requests and forwards the decoded bytes to storage."""

    storage_factory: Callable[[], Optional[ObjectStorage]]
    rules: UploadRules = GENERAL_RULES

    def handle(self, payload: dict) -> dict:
        storage = self.storage_factory()
        if storage is None:
            raise RelayConfigError("AWS credentials not configured")

        file_data = payload.get("file")
        file_name = payload.get("fileName")
        file_type = payload.get("fileType")
        folder = payload.get("folder") or None
        if not file_data or not file_name or not file_type:
            raise RelayValidationError("Missing required fields: file, fileName, fileType")

        if file_type not in self.rules.allowed_types:
            raise RelayValidationError(
                f"Invalid file type. Only {self.rules.type_label} are allowed"
            )

        body = decode_data_url(file_data)
        if len(body) > self.rules.max_bytes:
            raise RelayValidationError(f"File size exceeds {self.rules.max_mb}MB limit")

        key, unique_name = generate_object_key(file_name, folder)
        try:
            storage.put_object(key, body, file_type, public=True)
        except Exception as exc:
            logger.exception("S3 upload error for %s", key)
            raise RelayError("Upload failed", str(exc) or "Unknown error") from exc

        logger.info("Stored %s (%d bytes) as %s", file_name, len(body), key)
        return {
            "success": True,
            "url": storage.public_url(key),
            "key": key,
            "fileName": unique_name,
            "originalFileName": file_name,
        }
