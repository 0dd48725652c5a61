"""
Object storage abstraction for S3 and in-memory testing.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Protocol

import boto3
from botocore.config import Config


class ObjectStorage(Protocol):
    """Defines the operations the upload relay needs from object storage."""

    bucket: str

    def put_object(
        self, key: str, body: bytes, content_type: str, *, public: bool = True
    ) -> None:
        ...

    def public_url(self, key: str) -> str:
        ...


@dataclass
class StoredObject:
    body: bytes
    content_type: str
    public: bool


@dataclass
class InMemoryObjectStorage:
    """Test double for storage interactions."""

    bucket: str = "photosite-test"
    region: str = "us-east-1"
    objects: dict[str, StoredObject] = field(default_factory=dict)

    def put_object(
        self, key: str, body: bytes, content_type: str, *, public: bool = True
    ) -> None:
        self.objects[key] = StoredObject(body=body, content_type=content_type, public=public)

    def public_url(self, key: str) -> str:
        return f"https://{self.bucket}.s3.{self.region}.amazonaws.com/{key}"

    def reset(self) -> None:
        self.objects.clear()


@dataclass
class S3ObjectStorage:
    """
    S3 storage client. Objects are written with a public-read ACL so the
    returned URL can be embedded directly in pages.
    """

    bucket: str
    region: str
    access_key_id: str
    secret_access_key: str
    endpoint: Optional[str] = None

    def __post_init__(self):
        config = Config(signature_version="s3v4")
        self._client = boto3.client(
            "s3",
            endpoint_url=self.endpoint,
            region_name=self.region,
            aws_access_key_id=self.access_key_id,
            aws_secret_access_key=self.secret_access_key,
            config=config,
        )

    def put_object(
        self, key: str, body: bytes, content_type: str, *, public: bool = True
    ) -> None:
        params = {
            "Bucket": self.bucket,
            "Key": key,
            "Body": body,
            "ContentType": content_type,
        }
        if public:
            params["ACL"] = "public-read"
        self._client.put_object(**params)

    def public_url(self, key: str) -> str:
        if self.endpoint:
            return f"{self.endpoint.rstrip('/')}/{self.bucket}/{key}"
        return f"https://{self.bucket}.s3.{self.region}.amazonaws.com/{key}"
