"""
Legacy local fallback cache for posts, images and page content.

Older deployments kept content in a local key-value cache before the
record store existed. The cache is kept readable and writable for
backward compatibility but is never consulted by the primary data path.
"""

from __future__ import annotations

import json
import logging
import os
from typing import Any, Optional

logger = logging.getLogger(__name__)

BLOG_POSTS_KEY = "blog_posts_data"
IMAGES_KEY = "uploaded_images"
PAGE_CONTENT_KEY = "page_content_data"


class LegacyCache:
    def __init__(self, directory: str):
        self.directory = directory

    def _path(self, key: str) -> str:
        return os.path.join(self.directory, f"{key}.json")

    def _read(self, key: str) -> list[dict]:
        path = self._path(key)
        if not os.path.exists(path):
            return []
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as exc:
            logger.warning("Ignoring unreadable legacy cache %s: %s", path, exc)
            return []
        return data if isinstance(data, list) else []

    def _write(self, key: str, items: list[dict]) -> None:
        os.makedirs(self.directory, exist_ok=True)
        with open(self._path(key), "w", encoding="utf-8") as f:
            json.dump(items, f)

    def get_blog_posts(self) -> list[dict]:
        return self._read(BLOG_POSTS_KEY)

    def save_blog_posts(self, posts: list[dict]) -> None:
        self._write(BLOG_POSTS_KEY, posts)

    def add_blog_post(self, post: dict) -> None:
        self.save_blog_posts([post] + self.get_blog_posts())

    def update_blog_post(self, post_id: str, changes: dict[str, Any]) -> None:
        posts = self.get_blog_posts()
        for index, post in enumerate(posts):
            if post.get("id") == post_id:
                posts[index] = {**post, **changes}
                self.save_blog_posts(posts)
                return

    def delete_blog_post(self, post_id: str) -> None:
        self.save_blog_posts([p for p in self.get_blog_posts() if p.get("id") != post_id])

    def get_images(self) -> list[dict]:
        return self._read(IMAGES_KEY)

    def save_image(self, image: dict) -> None:
        self._write(IMAGES_KEY, [image] + self.get_images())

    def delete_image(self, image_id: str) -> None:
        self._write(IMAGES_KEY, [i for i in self.get_images() if i.get("id") != image_id])

    def get_page_content(self, page_id: str) -> Optional[dict]:
        for content in self._read(PAGE_CONTENT_KEY):
            if content.get("pageId") == page_id:
                return content
        return None

    def save_page_content(self, content: dict) -> None:
        all_content = self._read(PAGE_CONTENT_KEY)
        for index, existing in enumerate(all_content):
            if existing.get("pageId") == content.get("pageId"):
                all_content[index] = content
                break
        else:
            all_content.append(content)
        self._write(PAGE_CONTENT_KEY, all_content)

    def get_all_page_content(self) -> list[dict]:
        return self._read(PAGE_CONTENT_KEY)
