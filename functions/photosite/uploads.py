"""
Client side of the upload relay: validate a file locally, encode it as a
data URL and post it to the relay, which stores it and answers with a
public URL.
"""

from __future__ import annotations

import base64
import logging
from dataclasses import dataclass
from typing import Callable, Iterable, Optional

import requests

logger = logging.getLogger(__name__)

MB = 1024 * 1024

IMAGE_TYPES = frozenset(
    {"image/jpeg", "image/jpg", "image/png", "image/gif", "image/webp"}
)
LOGO_TYPES = IMAGE_TYPES | {"image/svg+xml"}

# Encoding works on multiples of 3 bytes so chunks concatenate cleanly.
ENCODE_CHUNK_SIZE = 3 * 256 * 1024


@dataclass(frozen=True)
class UploadRules:
    allowed_types: frozenset
    max_bytes: int
    type_label: str

    @property
    def max_mb(self) -> int:
        return self.max_bytes // MB


GENERAL_RULES = UploadRules(IMAGE_TYPES, 10 * MB, "JPEG, PNG, GIF, and WebP")
SECTION_IMAGE_RULES = UploadRules(IMAGE_TYPES, 5 * MB, "JPEG, PNG, GIF, and WebP")
LOGO_RULES = UploadRules(LOGO_TYPES, 2 * MB, "JPEG, PNG, GIF, WebP, and SVG")


class UploadValidationError(ValueError):
    """Base class for files rejected before any request is made."""


class InvalidFileType(UploadValidationError):
    def __init__(self, content_type: str, rules: UploadRules):
        self.content_type = content_type
        super().__init__(
            f"Invalid file type. Only {rules.type_label} are allowed."
        )


class FileTooLarge(UploadValidationError):
    def __init__(self, size: int, rules: UploadRules):
        self.size = size
        super().__init__(
            f"File size exceeds {rules.max_mb}MB limit. "
            f"Current size: {size / MB:.2f}MB"
        )


class UploadFailed(Exception):
    """The relay rejected the upload or could not be reached."""


@dataclass(frozen=True)
class UploadFile:
    name: str
    content_type: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)


@dataclass(frozen=True)
class UploadProgress:
    loaded: int
    total: int

    @property
    def percentage(self) -> int:
        if not self.total:
            return 100
        return round(self.loaded / self.total * 100)


@dataclass
class UploadResult:
    success: bool
    url: str
    key: str
    file_name: str
    original_file_name: str
    error: Optional[str] = None

    @classmethod
    def from_relay(cls, payload: dict) -> "UploadResult":
        return cls(
            success=bool(payload.get("success", True)),
            url=payload.get("url", ""),
            key=payload.get("key", ""),
            file_name=payload.get("fileName", ""),
            original_file_name=payload.get("originalFileName", ""),
        )

    @classmethod
    def failed(cls, file: UploadFile, error: str) -> "UploadResult":
        return cls(
            success=False,
            url="",
            key="",
            file_name=file.name,
            original_file_name=file.name,
            error=error,
        )

    def as_dict(self) -> dict:
        data = {
            "success": self.success,
            "url": self.url,
            "key": self.key,
            "fileName": self.file_name,
            "originalFileName": self.original_file_name,
        }
        if self.error is not None:
            data["error"] = self.error
        return data


ProgressCallback = Callable[[UploadProgress], None]


def validate(file: UploadFile, rules: UploadRules = GENERAL_RULES) -> None:
    """Raise InvalidFileType or FileTooLarge when ``file`` breaks ``rules``."""
    if file.content_type not in rules.allowed_types:
        raise InvalidFileType(file.content_type, rules)
    if file.size > rules.max_bytes:
        raise FileTooLarge(file.size, rules)


def encode_data_url(
    file: UploadFile,
    on_progress: Optional[ProgressCallback] = None,
    *,
    chunk_size: int = ENCODE_CHUNK_SIZE,
) -> str:
    if chunk_size <= 0 or chunk_size % 3:
        raise ValueError("chunk_size must be a positive multiple of 3")
    total = file.size
    parts: list[str] = []
    for offset in range(0, total, chunk_size):
        chunk = file.data[offset : offset + chunk_size]
        parts.append(base64.b64encode(chunk).decode("ascii"))
        if on_progress:
            on_progress(UploadProgress(loaded=offset + len(chunk), total=total))
    if not total and on_progress:
        on_progress(UploadProgress(loaded=0, total=0))
    return f"data:{file.content_type};base64,{''.join(parts)}"


def file_info(file: UploadFile) -> dict:
    return {
        "name": file.name,
        "size": file.size,
        "type": file.content_type,
        "size_formatted": f"{file.size / 1024:.2f} KB",
        "size_mb": f"{file.size / MB:.2f}",
    }


class UploadRelayClient:
    """Posts files to the upload relay endpoint one request per file."""

    def __init__(
        self,
        endpoint: str,
        api_key: str,
        *,
        session: requests.Session | None = None,
        rules: UploadRules = GENERAL_RULES,
    ):
        self.endpoint = endpoint
        self.api_key = api_key
        self.session = session or requests.Session()
        self.rules = rules

    def upload(
        self,
        file: UploadFile,
        folder: Optional[str] = None,
        on_progress: Optional[ProgressCallback] = None,
    ) -> UploadResult:
        validate(file, self.rules)
        payload = {
            "file": encode_data_url(file, on_progress),
            "fileName": file.name,
            "fileType": file.content_type,
            "folder": folder,
        }
        try:
            response = self.session.post(
                self.endpoint,
                json=payload,
                headers={
                    "Authorization": f"Bearer {self.api_key}",
                    "Content-Type": "application/json",
                },
            )
        except requests.RequestException as exc:
            raise UploadFailed(str(exc)) from exc

        try:
            body = response.json()
        except ValueError:
            body = None
        if not isinstance(body, dict):
            if not response.ok:
                raise UploadFailed("Upload failed")
            raise UploadFailed("Upload failed: invalid relay response")
        if not response.ok or body.get("success") is False:
            raise UploadFailed(body.get("error") or "Upload failed")
        try:
            return UploadResult.from_relay(body)
        except ValueError as exc:
            raise UploadFailed("Upload failed: invalid relay response") from exc

    def upload_many(
        self,
        files: Iterable[UploadFile],
        folder: Optional[str] = None,
        on_progress: Optional[Callable[[int, UploadProgress], None]] = None,
    ) -> list[UploadResult]:
        """Upload files in order; a failed file is recorded and the rest continue."""
        results: list[UploadResult] = []
        for index, file in enumerate(files):
            callback = None
            if on_progress:
                callback = lambda progress, i=index: on_progress(i, progress)
            try:
                results.append(self.upload(file, folder, callback))
            except (UploadValidationError, UploadFailed) as exc:
                logger.warning("Upload of %s failed: %s", file.name, exc)
                results.append(UploadResult.failed(file, str(exc) or "Upload failed"))
        return results
