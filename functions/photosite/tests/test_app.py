import base64
import unittest
from unittest.mock import patch

from fastapi.testclient import TestClient

from photosite.app import create_app
from photosite.auth import InMemorySessionStore, PlaintextVerifier
from photosite.config import Settings
from photosite.dependencies import (
    get_credential_verifier,
    get_record_store,
    get_session_store,
    get_upload_relay,
)
from photosite.relay import UploadRelay
from photosite.storage import InMemoryObjectStorage
from photosite.store import InMemoryRecordStore

PASSWORD = "correct horse"


def data_url(body: bytes, content_type: str) -> str:
    return f"data:{content_type};base64,{base64.b64encode(body).decode('ascii')}"


class PhotositeApiTestCase(unittest.TestCase):
    def setUp(self):
        self.store = InMemoryRecordStore()
        self.sessions = InMemorySessionStore()
        self.storage = InMemoryObjectStorage(bucket="photos")
        app = create_app()
        app.dependency_overrides[get_record_store] = lambda: self.store
        app.dependency_overrides[get_session_store] = lambda: self.sessions
        app.dependency_overrides[get_credential_verifier] = lambda: PlaintextVerifier(PASSWORD)
        app.dependency_overrides[get_upload_relay] = lambda: UploadRelay(
            storage_factory=lambda: self.storage
        )
        self.client = TestClient(app)

    def login(self):
        response = self.client.post("/api/admin/login", json={"password": PASSWORD})
        self.assertEqual(response.status_code, 200)

    def create_post(self, title, **overrides):
        body = {
            "title": title,
            "excerpt": f"{title} excerpt",
            "content": "First\n\nSecond",
            "category": "Weddings",
            "tags": ["outdoor"],
            "published": True,
        }
        body.update(overrides)
        return self.client.post("/api/admin/posts", json=body)


class PublicApiTests(PhotositeApiTestCase):
    def test_health(self):
        self.assertEqual(self.client.get("/api/health").json(), {"status": "ok"})

    def test_post_listing_and_detail(self):
        self.login()
        for i in range(12):
            self.assertEqual(self.create_post(f"Post {i}").status_code, 201)
        self.create_post("Hidden draft", published=False)

        page = self.client.get("/api/posts", params={"page": 2}).json()
        self.assertEqual(page["total"], 12)
        self.assertEqual(page["total_pages"], 2)
        self.assertEqual(len(page["posts"]), 2)
        self.assertEqual((page["start_index"], page["end_index"]), (11, 12))
        self.assertEqual(page["categories"], ["Weddings"])

        detail = self.client.get("/api/posts/post-3")
        self.assertEqual(detail.status_code, 200)
        self.assertEqual(detail.json()["paragraphs"], ["First", "Second"])
        self.assertEqual(self.client.get("/api/posts/hidden-draft").status_code, 404)

        recent = self.client.get("/api/posts/recent").json()
        self.assertEqual(len(recent), 3)

    def test_search(self):
        self.login()
        self.create_post("Beach Session", tags=["beach", "sunset"])
        self.create_post("Studio Day", category="Portraits", tags=["studio"])

        result = self.client.get("/api/search", params={"q": "sunset"}).json()
        self.assertEqual([p["title"] for p in result["results"]], ["Beach Session"])

        result = self.client.get("/api/search", params={"category": "Portraits"}).json()
        self.assertEqual(result["total"], 1)
        self.assertEqual(set(result["tags"]), {"beach", "sunset", "studio"})

        result = self.client.get("/api/search", params={"tags": "studio,beach"}).json()
        self.assertEqual(result["total"], 2)

    def test_home_page_shows_active_images_and_default_logo(self):
        self.login()
        self.client.post(
            "/api/admin/home-images",
            json={"image_url": "https://x/1.jpg", "image_name": "one", "category": "hero"},
        )
        self.client.post(
            "/api/admin/home-images",
            json={"image_url": "https://x/2.jpg", "image_name": "two", "category": "hero",
                  "is_active": False},
        )
        home = self.client.get("/api/pages/home").json()
        self.assertEqual([i["image_name"] for i in home["hero_images"]], ["one"])
        self.assertEqual(home["gallery_images"], [])
        self.assertEqual(home["logo_url"], Settings().default_logo_url)

    def test_page_content_not_found(self):
        self.assertEqual(self.client.get("/api/page-content/about").status_code, 404)


class AdminApiTests(PhotositeApiTestCase):
    def test_admin_routes_require_login(self):
        self.assertEqual(self.client.get("/api/admin/posts").status_code, 401)
        self.assertEqual(self.create_post("Nope").status_code, 401)
        self.assertFalse(self.client.get("/api/admin/session").json()["authenticated"])

    def test_dashboard_redirects_anonymous_users(self):
        response = self.client.get("/api/admin/dashboard", follow_redirects=False)
        self.assertEqual(response.status_code, 303)
        self.assertEqual(response.headers["location"], "/admin")

    def test_wrong_password(self):
        response = self.client.post("/api/admin/login", json={"password": "guess"})
        self.assertEqual(response.status_code, 401)

    def test_login_dashboard_logout(self):
        self.login()
        self.assertTrue(self.client.get("/api/admin/session").json()["authenticated"])
        self.create_post("Draft", published=False)
        dashboard = self.client.get("/api/admin/dashboard").json()
        self.assertEqual(dashboard["posts"], 1)
        self.assertEqual(dashboard["published_posts"], 0)

        self.client.post("/api/admin/logout")
        self.assertEqual(self.client.get("/api/admin/posts").status_code, 401)

    def test_post_validation_and_update(self):
        self.login()
        response = self.create_post("Incomplete", category=" ")
        self.assertEqual(response.status_code, 400)

        post = self.create_post("Original", tags="a, b").json()
        self.assertEqual(post["tags"], ["a", "b"])
        response = self.client.put(f"/api/admin/posts/{post['id']}", json={"title": "Renamed"})
        self.assertEqual(response.json()["title"], "Renamed")
        self.assertEqual(
            self.client.put("/api/admin/posts/missing", json={"title": "x"}).status_code, 404
        )
        self.assertEqual(self.client.delete(f"/api/admin/posts/{post['id']}").status_code, 204)
        self.assertEqual(self.client.get("/api/admin/posts").json(), [])

    def test_duplicate_slug_is_a_write_failure(self):
        self.login()
        self.create_post("Same")
        self.assertEqual(self.create_post("Same").status_code, 502)

    def test_landing_image_section_is_validated(self):
        self.login()
        response = self.client.post(
            "/api/admin/landing-images",
            json={"image_url": "https://x/1.jpg", "image_name": "one", "section": "footer"},
        )
        self.assertEqual(response.status_code, 422)

    def test_inline_section_image_size_limit(self):
        self.login()
        response = self.client.post(
            "/api/admin/landing-images",
            json={
                "image_url": data_url(b"\0" * (5 * 1024 * 1024 + 1), "image/png"),
                "image_name": "big.png",
                "section": "gallery",
            },
        )
        self.assertEqual(response.status_code, 400)
        self.assertIn("5MB", response.json()["detail"])

    def test_updating_missing_image_is_not_found(self):
        self.login()
        for path in ("/api/admin/landing-images/nope", "/api/admin/home-images/nope"):
            response = self.client.put(path, json={"display_order": 2})
            self.assertEqual(response.status_code, 404)
            self.assertEqual(response.json(), {"detail": "Image not found"})

    def test_bulk_home_image_updates(self):
        self.login()
        ids = [
            self.client.post(
                "/api/admin/home-images",
                json={"image_url": f"https://x/{i}.jpg", "image_name": str(i)},
            ).json()["id"]
            for i in range(3)
        ]
        response = self.client.post(
            "/api/admin/home-images/bulk-update",
            json={"ids": ids[:2], "updates": {"is_active": False}},
        )
        self.assertEqual(response.status_code, 204)
        active = self.client.get("/api/home-images").json()
        self.assertEqual([i["id"] for i in active], [ids[2]])

        self.client.post("/api/admin/home-images/bulk-delete", json={"ids": ids})
        self.assertEqual(self.client.get("/api/admin/home-images").json(), [])

    def test_logo_upload_and_reset(self):
        self.login()
        response = self.client.put(
            "/api/admin/settings/logo",
            json={"value": data_url(b"<svg/>", "image/svg+xml"), "file_name": "logo.svg"},
        )
        self.assertEqual(response.status_code, 200)
        self.assertTrue(self.client.get("/api/settings/logo").json()["url"].startswith("data:image/svg+xml"))

        response = self.client.put(
            "/api/admin/settings/logo",
            json={"value": data_url(b"BM", "image/bmp"), "file_name": "logo.bmp"},
        )
        self.assertEqual(response.status_code, 400)

        self.client.delete("/api/admin/settings/logo")
        self.assertEqual(
            self.client.get("/api/settings/logo").json()["url"], Settings().default_logo_url
        )

    def test_settings_and_page_content(self):
        self.login()
        self.client.put("/api/admin/settings/contact_email", json={"value": "a@b.c"})
        setting = self.client.get("/api/admin/settings/contact_email").json()
        self.assertEqual(setting["setting_value"], "a@b.c")
        self.assertEqual(self.client.get("/api/admin/settings/unknown").status_code, 404)

        self.client.put(
            "/api/admin/page-content",
            json={"page_id": "about", "title": "About", "content": {"body": "Hi"}},
        )
        page = self.client.get("/api/page-content/about").json()
        self.assertEqual(page["content"], {"body": "Hi"})
        self.assertEqual(len(self.client.get("/api/admin/page-content").json()), 1)


class UploadRelayApiTests(PhotositeApiTestCase):
    def test_preflight_has_cors_headers(self):
        response = self.client.options("/api/upload-to-s3")
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.headers["access-control-allow-origin"], "*")

    def test_upload(self):
        response = self.client.post(
            "/api/upload-to-s3",
            json={"file": data_url(b"png", "image/png"), "fileName": "a.png",
                  "fileType": "image/png", "folder": "blog"},
        )
        self.assertEqual(response.status_code, 200)
        body = response.json()
        self.assertTrue(body["key"].startswith("blog/"))
        self.assertIn(body["key"], self.storage.objects)
        self.assertEqual(response.headers["access-control-allow-origin"], "*")

    def test_missing_fields(self):
        response = self.client.post("/api/upload-to-s3", json={"fileName": "a.png"})
        self.assertEqual(response.status_code, 400)
        self.assertEqual(
            response.json(), {"error": "Missing required fields: file, fileName, fileType"}
        )

    def test_bearer_token_checked_when_configured(self):
        settings = Settings(store_api_key="anon-key")
        with patch("photosite.routes.get_settings", return_value=settings):
            response = self.client.post("/api/upload-to-s3", json={})
            self.assertEqual(response.status_code, 401)
            response = self.client.post(
                "/api/upload-to-s3",
                json={},
                headers={"Authorization": "Bearer anon-key"},
            )
            self.assertEqual(response.status_code, 400)


class CorsTests(unittest.TestCase):
    def client_for(self, settings):
        with patch("photosite.app.get_settings", return_value=settings):
            return TestClient(create_app())

    def test_wildcard_origin_disables_credentials(self):
        client = self.client_for(Settings())
        response = client.get("/api/health", headers={"Origin": "https://evil.example"})
        self.assertEqual(response.headers["access-control-allow-origin"], "*")
        self.assertNotIn("access-control-allow-credentials", response.headers)

    def test_listed_origin_keeps_credentials(self):
        client = self.client_for(Settings(cors_allow_origins=["https://site.example"]))
        response = client.get("/api/health", headers={"Origin": "https://site.example"})
        self.assertEqual(response.headers["access-control-allow-origin"], "https://site.example")
        self.assertEqual(response.headers["access-control-allow-credentials"], "true")


if __name__ == "__main__":
    unittest.main()
