"""
Content service: one entry point per content type over the record store.

Reads never raise on store failures: lists degrade to ``[]`` and single
records to ``None``. Writes return ``None``/``False`` on failure so the
caller can report it; nothing is retried.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable, Optional

from photosite import store as collections
from photosite.blog import parse_tags, slugify
from photosite.config import DEFAULT_LOGO_URL, DEFAULT_POST_IMAGE_URL
from photosite.records import (
    BlogPost,
    GalleryImage,
    LibraryImage,
    PageContent,
    SiteSetting,
    utc_now_iso,
)
from photosite.store import RecordStore, StoreError

logger = logging.getLogger(__name__)

LOGO_SETTING_KEY = "site_logo"
DEFAULT_POST_AUTHOR = "Admin"
REQUIRED_POST_FIELDS = ("title", "excerpt", "content", "category")
POST_FIELDS = (
    "title",
    "slug",
    "excerpt",
    "content",
    "category",
    "tags",
    "featured_image",
    "author",
    "published",
)
IMAGE_FIELDS = (
    "image_url",
    "image_name",
    "alt_text",
    "file_size",
    "display_order",
    "is_active",
)


class PostValidationError(ValueError):
    """Raised when a blog post is missing required fields."""

    def __init__(self, missing: Iterable[str]):
        self.missing = list(missing)
        super().__init__(
            "Please fill in all required fields: " + ", ".join(self.missing)
        )


def _pick(fields: dict, allowed: Iterable[str]) -> dict:
    return {key: fields[key] for key in allowed if key in fields}


def _blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def normalize_post_fields(fields: dict, *, partial: bool = False) -> dict:
    """
    Apply the admin form rules to post fields.

    Required fields must be non-blank (only those present when ``partial``),
    tags may be given as a comma-separated string, and a blank slug is
    derived from the title.
    """
    values = _pick(fields, POST_FIELDS)
    checked = [f for f in REQUIRED_POST_FIELDS if f in values] if partial else REQUIRED_POST_FIELDS
    missing = [f for f in checked if _blank(values.get(f))]
    if missing:
        raise PostValidationError(missing)
    if "tags" in values:
        values["tags"] = parse_tags(values["tags"])
    if "slug" in values or not partial:
        if _blank(values.get("slug")) and values.get("title"):
            values["slug"] = slugify(values["title"])
        elif values.get("slug"):
            values["slug"] = values["slug"].strip()
    return values


class ContentService:
    def __init__(
        self,
        store: RecordStore,
        *,
        default_logo_url: str = DEFAULT_LOGO_URL,
        default_post_image_url: str = DEFAULT_POST_IMAGE_URL,
    ):
        self.store = store
        self.default_logo_url = default_logo_url
        self.default_post_image_url = default_post_image_url

    # Blog posts

    def list_published_posts(self) -> list[BlogPost]:
        try:
            rows = self.store.select(
                collections.BLOG_POSTS,
                filters={"published": True},
                order_by="created_at",
                descending=True,
            )
        except StoreError as exc:
            logger.error("Error fetching blog posts: %s", exc)
            return []
        return [BlogPost.from_row(row) for row in rows]

    def list_all_posts(self) -> list[BlogPost]:
        try:
            rows = self.store.select(
                collections.BLOG_POSTS, order_by="created_at", descending=True
            )
        except StoreError as exc:
            logger.error("Error fetching all blog posts: %s", exc)
            return []
        return [BlogPost.from_row(row) for row in rows]

    def get_post_by_slug(self, slug: str) -> Optional[BlogPost]:
        try:
            row = self.store.select_one(
                collections.BLOG_POSTS, {"slug": slug, "published": True}
            )
        except StoreError as exc:
            logger.error("Error fetching blog post: %s", exc)
            return None
        return BlogPost.from_row(row) if row else None

    def get_post(self, post_id: str) -> Optional[BlogPost]:
        try:
            row = self.store.select_one(collections.BLOG_POSTS, {"id": post_id})
        except StoreError as exc:
            logger.error("Error fetching blog post %s: %s", post_id, exc)
            return None
        return BlogPost.from_row(row) if row else None

    def create_post(self, fields: dict) -> Optional[BlogPost]:
        values = normalize_post_fields(fields)
        values.setdefault("tags", [])
        values.setdefault("published", False)
        if _blank(values.get("featured_image")):
            values["featured_image"] = self.default_post_image_url
        if _blank(values.get("author")):
            values["author"] = DEFAULT_POST_AUTHOR
        try:
            row = self.store.insert(collections.BLOG_POSTS, values)
        except StoreError as exc:
            logger.error("Error creating blog post: %s", exc)
            return None
        return BlogPost.from_row(row)

    def update_post(self, post_id: str, fields: dict) -> Optional[BlogPost]:
        values = normalize_post_fields(fields, partial=True)
        values["updated_at"] = utc_now_iso()
        try:
            rows = self.store.update(collections.BLOG_POSTS, {"id": post_id}, values)
        except StoreError as exc:
            logger.error("Error updating blog post: %s", exc)
            return None
        return BlogPost.from_row(rows[0]) if rows else None

    def delete_post(self, post_id: str) -> bool:
        try:
            self.store.delete(collections.BLOG_POSTS, {"id": post_id})
        except StoreError as exc:
            logger.error("Error deleting blog post: %s", exc)
            return False
        return True

    # Landing page (section) and home page (category) images

    def _list_images(
        self, collection: str, column: str, value: Optional[str]
    ) -> list[GalleryImage]:
        filters = {column: value} if value else None
        try:
            rows = self.store.select(
                collection, filters=filters, order_by="display_order"
            )
        except StoreError as exc:
            logger.error("Error fetching %s: %s", collection, exc)
            return []
        return [GalleryImage.from_row(row) for row in rows]

    def _get_image(self, collection: str, image_id: str) -> Optional[GalleryImage]:
        try:
            row = self.store.select_one(collection, {"id": image_id})
        except StoreError as exc:
            logger.error("Error fetching %s row %s: %s", collection, image_id, exc)
            return None
        return GalleryImage.from_row(row) if row else None

    def _create_image(self, collection: str, column: str, fields: dict) -> Optional[GalleryImage]:
        values = _pick(fields, IMAGE_FIELDS + (column,))
        try:
            row = self.store.insert(collection, values)
        except StoreError as exc:
            logger.error("Error creating %s row: %s", collection, exc)
            return None
        return GalleryImage.from_row(row)

    def _update_images(self, collection: str, column: str, filters: dict, fields: dict) -> list[dict]:
        values = _pick(fields, IMAGE_FIELDS + (column,))
        values["updated_at"] = utc_now_iso()
        return self.store.update(collection, filters, values)

    def _update_image(
        self, collection: str, column: str, image_id: str, fields: dict
    ) -> Optional[GalleryImage]:
        try:
            rows = self._update_images(collection, column, {"id": image_id}, fields)
        except StoreError as exc:
            logger.error("Error updating %s row: %s", collection, exc)
            return None
        return GalleryImage.from_row(rows[0]) if rows else None

    def _delete_images(self, collection: str, filters: dict) -> bool:
        try:
            self.store.delete(collection, filters)
        except StoreError as exc:
            logger.error("Error deleting from %s: %s", collection, exc)
            return False
        return True

    def list_section_images(self, section: Optional[str] = None) -> list[GalleryImage]:
        return self._list_images(collections.LANDING_PAGE_IMAGES, "section", section)

    def list_active_section_images(self, section: Optional[str] = None) -> list[GalleryImage]:
        return [image for image in self.list_section_images(section) if image.is_active]

    def get_section_image(self, image_id: str) -> Optional[GalleryImage]:
        return self._get_image(collections.LANDING_PAGE_IMAGES, image_id)

    def create_section_image(self, fields: dict) -> Optional[GalleryImage]:
        return self._create_image(collections.LANDING_PAGE_IMAGES, "section", fields)

    def update_section_image(self, image_id: str, fields: dict) -> Optional[GalleryImage]:
        return self._update_image(collections.LANDING_PAGE_IMAGES, "section", image_id, fields)

    def delete_section_image(self, image_id: str) -> bool:
        return self._delete_images(collections.LANDING_PAGE_IMAGES, {"id": image_id})

    def list_home_images(self, category: Optional[str] = None) -> list[GalleryImage]:
        return self._list_images(collections.HOME_PAGE_IMAGES, "category", category)

    def list_active_home_images(self, category: Optional[str] = None) -> list[GalleryImage]:
        return [image for image in self.list_home_images(category) if image.is_active]

    def get_home_image(self, image_id: str) -> Optional[GalleryImage]:
        return self._get_image(collections.HOME_PAGE_IMAGES, image_id)

    def create_home_image(self, fields: dict) -> Optional[GalleryImage]:
        return self._create_image(collections.HOME_PAGE_IMAGES, "category", fields)

    def update_home_image(self, image_id: str, fields: dict) -> Optional[GalleryImage]:
        return self._update_image(collections.HOME_PAGE_IMAGES, "category", image_id, fields)

    def delete_home_image(self, image_id: str) -> bool:
        return self._delete_images(collections.HOME_PAGE_IMAGES, {"id": image_id})

    def bulk_delete_home_images(self, image_ids: list[str]) -> bool:
        if not image_ids:
            return True
        return self._delete_images(collections.HOME_PAGE_IMAGES, {"id": list(image_ids)})

    def bulk_update_home_images(self, image_ids: list[str], fields: dict) -> bool:
        if not image_ids:
            return True
        try:
            self._update_images(
                collections.HOME_PAGE_IMAGES, "category", {"id": list(image_ids)}, fields
            )
        except StoreError as exc:
            logger.error("Error bulk updating home page images: %s", exc)
            return False
        return True

    # Image library

    def list_library_images(self) -> list[LibraryImage]:
        try:
            rows = self.store.select(
                collections.LIBRARY_IMAGES, order_by="uploaded_at", descending=True
            )
        except StoreError as exc:
            logger.error("Error fetching images: %s", exc)
            return []
        return [LibraryImage.from_row(row) for row in rows]

    def add_library_image(self, name: str, url: str, size: int) -> Optional[LibraryImage]:
        try:
            row = self.store.insert(
                collections.LIBRARY_IMAGES, {"name": name, "url": url, "size": size}
            )
        except StoreError as exc:
            logger.error("Error uploading image: %s", exc)
            return None
        return LibraryImage.from_row(row)

    def delete_library_image(self, image_id: str) -> bool:
        try:
            self.store.delete(collections.LIBRARY_IMAGES, {"id": image_id})
        except StoreError as exc:
            logger.error("Error deleting image: %s", exc)
            return False
        return True

    # Site settings

    def get_setting(self, key: str) -> Optional[SiteSetting]:
        try:
            row = self.store.select_one(collections.SITE_SETTINGS, {"setting_key": key})
        except StoreError as exc:
            logger.error("Error fetching site setting: %s", exc)
            return None
        return SiteSetting.from_row(row) if row else None

    def upsert_setting(
        self, key: str, value: str, setting_type: str = "text"
    ) -> Optional[SiteSetting]:
        row = {
            "setting_key": key,
            "setting_value": value,
            "setting_type": setting_type,
            "updated_at": utc_now_iso(),
        }
        try:
            stored = self.store.upsert(collections.SITE_SETTINGS, row, on="setting_key")
        except StoreError as exc:
            logger.error("Error saving site setting %s: %s", key, exc)
            return None
        return SiteSetting.from_row(stored)

    def get_logo_url(self) -> str:
        setting = self.get_setting(LOGO_SETTING_KEY)
        if setting and setting.setting_value:
            return setting.setting_value
        return self.default_logo_url

    def set_logo(self, value: str) -> Optional[SiteSetting]:
        return self.upsert_setting(LOGO_SETTING_KEY, value, "image")

    def reset_logo(self) -> Optional[SiteSetting]:
        return self.set_logo(self.default_logo_url)

    # Page content

    def get_page_content(self, page_id: str) -> Optional[PageContent]:
        try:
            row = self.store.select_one(collections.PAGE_CONTENT, {"page_id": page_id})
        except StoreError as exc:
            logger.error("Error fetching page content: %s", exc)
            return None
        return PageContent.from_row(row) if row else None

    def save_page_content(
        self,
        page_id: str,
        *,
        title: Optional[str] = None,
        subtitle: Optional[str] = None,
        content: Optional[dict] = None,
        images: Optional[list[str]] = None,
    ) -> Optional[PageContent]:
        row = {
            "page_id": page_id,
            "title": title,
            "subtitle": subtitle,
            "content": content or {},
            "images": list(images or []),
            "updated_at": utc_now_iso(),
        }
        try:
            stored = self.store.upsert(collections.PAGE_CONTENT, row, on="page_id")
        except StoreError as exc:
            logger.error("Error saving page content %s: %s", page_id, exc)
            return None
        return PageContent.from_row(stored)

    def list_page_content(self) -> list[PageContent]:
        try:
            rows = self.store.select(
                collections.PAGE_CONTENT, order_by="updated_at", descending=True
            )
        except StoreError as exc:
            logger.error("Error fetching all page content: %s", exc)
            return []
        return [PageContent.from_row(row) for row in rows]
