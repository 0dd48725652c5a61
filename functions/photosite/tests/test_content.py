import unittest
from unittest.mock import MagicMock

from photosite.config import DEFAULT_POST_IMAGE_URL
from photosite.content import LOGO_SETTING_KEY, ContentService, PostValidationError
from photosite.store import InMemoryRecordStore, StoreError

LOGO = "https://example.com/default-logo.png"


def post_fields(**overrides) -> dict:
    fields = {
        "title": "Morning Light",
        "excerpt": "Short",
        "content": "Para one\n\nPara two",
        "category": "Tips",
        "tags": "light, morning",
        "published": True,
    }
    fields.update(overrides)
    return fields


class ContentServiceTests(unittest.TestCase):
    def setUp(self):
        self.store = InMemoryRecordStore()
        self.content = ContentService(self.store, default_logo_url=LOGO)

    def test_create_post_derives_slug_and_parses_tags(self):
        post = self.content.create_post(post_fields())
        self.assertEqual(post.slug, "morning-light")
        self.assertEqual(post.tags, ["light", "morning"])
        self.assertEqual(self.content.get_post_by_slug("morning-light").id, post.id)

    def test_create_post_requires_fields(self):
        with self.assertRaises(PostValidationError) as ctx:
            self.content.create_post(post_fields(title=" ", category=""))
        self.assertEqual(ctx.exception.missing, ["title", "category"])

    def test_create_post_fills_blank_image_and_author(self):
        post = self.content.create_post(post_fields(featured_image=" ", author=""))
        self.assertEqual(post.featured_image, DEFAULT_POST_IMAGE_URL)
        self.assertEqual(post.author, "Admin")
        kept = self.content.create_post(
            post_fields(title="Other", featured_image="https://example.com/a.jpg", author="Jo")
        )
        self.assertEqual(kept.featured_image, "https://example.com/a.jpg")
        self.assertEqual(kept.author, "Jo")

    def test_unpublished_posts_are_hidden_from_public_reads(self):
        draft = self.content.create_post(post_fields(title="Draft", published=False))
        self.content.create_post(post_fields(title="Live"))
        self.assertEqual([p.title for p in self.content.list_published_posts()], ["Live"])
        self.assertEqual(len(self.content.list_all_posts()), 2)
        self.assertIsNone(self.content.get_post_by_slug(draft.slug))
        self.assertEqual(self.content.get_post(draft.id).title, "Draft")

    def test_update_post_touches_updated_at(self):
        post = self.content.create_post(post_fields())
        self.store.update("blog_posts", {"id": post.id}, {"updated_at": "2000-01-01T00:00:00+00:00"})
        updated = self.content.update_post(post.id, {"excerpt": "Changed"})
        self.assertEqual(updated.excerpt, "Changed")
        self.assertEqual(updated.title, "Morning Light")
        self.assertNotEqual(updated.updated_at, "2000-01-01T00:00:00+00:00")
        self.assertIsNone(self.content.update_post("missing", {"excerpt": "x"}))

    def test_duplicate_slug_is_reported_as_failure(self):
        self.assertIsNotNone(self.content.create_post(post_fields()))
        self.assertIsNone(self.content.create_post(post_fields()))

    def test_section_images_sorted_by_display_order(self):
        for order, name in ((2, "c"), (0, "a"), (1, "b")):
            self.content.create_section_image(
                {"image_url": f"https://x/{name}.jpg", "image_name": name,
                 "display_order": order, "section": "hero"}
            )
        self.content.create_section_image(
            {"image_url": "https://x/g.jpg", "image_name": "g", "section": "gallery",
             "is_active": False}
        )
        self.assertEqual([i.image_name for i in self.content.list_section_images("hero")], ["a", "b", "c"])
        self.assertEqual(len(self.content.list_section_images()), 4)
        self.assertEqual(self.content.list_active_section_images("gallery"), [])

    def test_bulk_home_image_operations(self):
        ids = [
            self.content.create_home_image(
                {"image_url": f"https://x/{i}.jpg", "image_name": str(i), "category": "gallery"}
            ).id
            for i in range(3)
        ]
        self.assertTrue(self.content.bulk_update_home_images(ids[:2], {"is_active": False}))
        self.assertEqual([i.id for i in self.content.list_active_home_images()], [ids[2]])
        self.assertTrue(self.content.bulk_delete_home_images(ids[1:]))
        self.assertEqual([i.id for i in self.content.list_home_images()], [ids[0]])
        self.assertTrue(self.content.bulk_delete_home_images([]))

    def test_logo_defaults_and_upserts(self):
        self.assertEqual(self.content.get_logo_url(), LOGO)
        self.content.set_logo("https://cdn/logo-1.png")
        self.content.set_logo("https://cdn/logo-2.png")
        self.assertEqual(self.content.get_logo_url(), "https://cdn/logo-2.png")
        self.assertEqual(len(self.store.select("site_settings")), 1)
        self.assertEqual(self.content.get_setting(LOGO_SETTING_KEY).setting_type, "image")
        self.content.reset_logo()
        self.assertEqual(self.content.get_logo_url(), LOGO)

    def test_page_content_save_is_keyed_by_page_id(self):
        self.content.save_page_content("about", title="About", content={"body": "v1"})
        self.content.save_page_content("about", title="About us", images=["a.jpg"])
        page = self.content.get_page_content("about")
        self.assertEqual(page.title, "About us")
        self.assertEqual(page.images, ["a.jpg"])
        self.assertEqual(len(self.content.list_page_content()), 1)
        self.assertIsNone(self.content.get_page_content("missing"))

    def test_library_images_newest_first(self):
        self.store.insert("images", {"name": "old", "url": "u1", "size": 1, "uploaded_at": "2020-01-01"})
        added = self.content.add_library_image("new", "u2", 2)
        self.assertEqual([i.name for i in self.content.list_library_images()], ["new", "old"])
        self.assertTrue(self.content.delete_library_image(added.id))
        self.assertEqual(len(self.content.list_library_images()), 1)


class ContentServiceStoreFailureTests(unittest.TestCase):
    def setUp(self):
        store = MagicMock()
        for name in ("select", "select_one", "insert", "update", "delete", "upsert"):
            getattr(store, name).side_effect = StoreError("connection refused")
        self.content = ContentService(store, default_logo_url=LOGO)

    def test_reads_degrade_to_empty(self):
        with self.assertLogs("photosite.content", level="ERROR"):
            self.assertEqual(self.content.list_published_posts(), [])
        self.assertEqual(self.content.list_section_images(), [])
        self.assertEqual(self.content.list_library_images(), [])
        self.assertIsNone(self.content.get_post_by_slug("x"))
        self.assertIsNone(self.content.get_page_content("home"))
        self.assertEqual(self.content.get_logo_url(), LOGO)

    def test_writes_report_failure(self):
        self.assertIsNone(self.content.create_post(post_fields()))
        self.assertIsNone(self.content.update_post("1", {"title": "x"}))
        self.assertFalse(self.content.delete_post("1"))
        self.assertIsNone(self.content.set_logo("x"))
        self.assertFalse(self.content.bulk_update_home_images(["1"], {"is_active": True}))
        self.assertFalse(self.content.bulk_delete_home_images(["1"]))
        self.assertIsNone(self.content.save_page_content("home"))


if __name__ == "__main__":
    unittest.main()
