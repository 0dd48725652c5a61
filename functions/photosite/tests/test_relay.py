import base64
import re
import unittest
from unittest.mock import MagicMock, patch

from photosite.relay import (
    RelayConfigError,
    RelayError,
    RelayValidationError,
    UploadRelay,
    decode_data_url,
    generate_object_key,
)
from photosite.storage import InMemoryObjectStorage, S3ObjectStorage
from photosite.uploads import MB


def data_url(body: bytes, content_type: str = "image/jpeg") -> str:
    return f"data:{content_type};base64,{base64.b64encode(body).decode('ascii')}"


class ObjectKeyTests(unittest.TestCase):
    def test_key_format(self):
        key, name = generate_object_key("My Photo.final.JPG", now_millis=1700000000000)
        self.assertRegex(name, r"^1700000000000-[a-z0-9]{13}\.JPG$")
        self.assertEqual(key, name)

    def test_folder_prefix(self):
        key, name = generate_object_key("a.png", "landing")
        self.assertEqual(key, f"landing/{name}")

    def test_keys_differ(self):
        keys = {generate_object_key("a.png", now_millis=1)[0] for _ in range(20)}
        self.assertEqual(len(keys), 20)


class UploadRelayTests(unittest.TestCase):
    def setUp(self):
        self.storage = InMemoryObjectStorage(bucket="photos", region="eu-west-2")
        self.relay = UploadRelay(storage_factory=lambda: self.storage)

    def test_stores_object_and_returns_public_url(self):
        result = self.relay.handle(
            {"file": data_url(b"jpegbytes"), "fileName": "shot.jpg",
             "fileType": "image/jpeg", "folder": "blog"}
        )
        self.assertTrue(result["success"])
        self.assertTrue(result["key"].startswith("blog/"))
        self.assertEqual(result["originalFileName"], "shot.jpg")
        self.assertTrue(re.match(r"^\d+-[a-z0-9]{13}\.jpg$", result["fileName"]))
        self.assertEqual(
            result["url"], f"https://photos.s3.eu-west-2.amazonaws.com/{result['key']}"
        )
        stored = self.storage.objects[result["key"]]
        self.assertEqual(stored.body, b"jpegbytes")
        self.assertEqual(stored.content_type, "image/jpeg")
        self.assertTrue(stored.public)

    def test_missing_credentials(self):
        relay = UploadRelay(storage_factory=lambda: None)
        with self.assertRaises(RelayConfigError) as ctx:
            relay.handle({"file": data_url(b"x"), "fileName": "a.jpg", "fileType": "image/jpeg"})
        self.assertEqual(ctx.exception.status_code, 500)
        self.assertEqual(ctx.exception.as_dict(), {"error": "AWS credentials not configured"})

    def test_missing_fields(self):
        with self.assertRaises(RelayValidationError) as ctx:
            self.relay.handle({"file": data_url(b"x"), "fileName": "a.jpg"})
        self.assertEqual(ctx.exception.status_code, 400)
        self.assertEqual(ctx.exception.error, "Missing required fields: file, fileName, fileType")

    def test_rejects_disallowed_type_and_oversize(self):
        with self.assertRaises(RelayValidationError):
            self.relay.handle({"file": data_url(b"x"), "fileName": "a.bmp", "fileType": "image/bmp"})
        with self.assertRaises(RelayValidationError) as ctx:
            self.relay.handle(
                {"file": data_url(b"\0" * (10 * MB + 1)), "fileName": "a.png", "fileType": "image/png"}
            )
        self.assertEqual(ctx.exception.error, "File size exceeds 10MB limit")
        self.assertEqual(self.storage.objects, {})

    def test_invalid_base64(self):
        with self.assertRaises(RelayValidationError):
            decode_data_url("data:image/png;base64,@@@")

    def test_bare_base64_without_header_is_rejected(self):
        bare = base64.b64encode(b"realpngbytes").decode("ascii")
        with self.assertRaises(RelayValidationError) as ctx:
            self.relay.handle({"file": bare, "fileName": "a.png", "fileType": "image/png"})
        self.assertEqual(ctx.exception.status_code, 400)
        self.assertEqual(ctx.exception.error, "Invalid file data")
        self.assertEqual(self.storage.objects, {})

    def test_empty_body_is_rejected(self):
        with self.assertRaises(RelayValidationError) as ctx:
            self.relay.handle(
                {"file": "data:image/png;base64,", "fileName": "a.png", "fileType": "image/png"}
            )
        self.assertEqual(ctx.exception.error, "Invalid file data")
        self.assertEqual(self.storage.objects, {})

    def test_storage_failure_is_reported(self):
        storage = MagicMock()
        storage.put_object.side_effect = RuntimeError("Access Denied")
        relay = UploadRelay(storage_factory=lambda: storage)
        with self.assertRaises(RelayError) as ctx:
            relay.handle({"file": data_url(b"x"), "fileName": "a.png", "fileType": "image/png"})
        self.assertEqual(ctx.exception.status_code, 500)
        self.assertEqual(
            ctx.exception.as_dict(), {"error": "Upload failed", "message": "Access Denied"}
        )


class S3ObjectStorageTests(unittest.TestCase):
    @patch("photosite.storage.boto3.client")
    def test_put_object_is_public_read(self, client_factory):
        storage = S3ObjectStorage(
            bucket="photos", region="us-east-1", access_key_id="id", secret_access_key="secret"
        )
        storage.put_object("blog/a.png", b"png", "image/png")
        client_factory.return_value.put_object.assert_called_once_with(
            Bucket="photos",
            Key="blog/a.png",
            Body=b"png",
            ContentType="image/png",
            ACL="public-read",
        )
        self.assertEqual(
            storage.public_url("blog/a.png"),
            "https://photos.s3.us-east-1.amazonaws.com/blog/a.png",
        )

    @patch("photosite.storage.boto3.client")
    def test_custom_endpoint_url(self, client_factory):
        storage = S3ObjectStorage(
            bucket="photos",
            region="us-east-1",
            access_key_id="id",
            secret_access_key="secret",
            endpoint="http://localhost:9000/",
        )
        self.assertEqual(storage.public_url("k.png"), "http://localhost:9000/photos/k.png")


if __name__ == "__main__":
    unittest.main()
