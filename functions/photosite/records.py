"""
Typed records for rows held in the record store.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields
from datetime import datetime, timezone
from typing import Any, Optional

LANDING_SECTIONS = ("hero", "gallery", "features", "testimonials")
HOME_CATEGORIES = ("hero", "gallery")


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _known_fields(cls, row: dict) -> dict:
    names = {f.name for f in fields(cls)}
    return {k: v for k, v in row.items() if k in names}


@dataclass
class BlogPost:
    id: str
    title: str
    slug: str
    excerpt: str
    content: str
    category: str
    tags: list[str] = field(default_factory=list)
    featured_image: str = ""
    author: str = ""
    published: bool = False
    created_at: str = field(default_factory=utc_now_iso)
    updated_at: str = field(default_factory=utc_now_iso)

    @classmethod
    def from_row(cls, row: dict) -> "BlogPost":
        data = _known_fields(cls, row)
        data["tags"] = list(data.get("tags") or [])
        data["featured_image"] = data.get("featured_image") or ""
        data["author"] = data.get("author") or ""
        return cls(**data)

    def as_dict(self) -> dict:
        return asdict(self)


@dataclass
class GalleryImage:
    """An image placed on the landing page (by section) or home page (by category)."""

    id: str
    image_url: str
    image_name: str
    alt_text: Optional[str] = None
    file_size: int = 0
    display_order: int = 0
    section: Optional[str] = None
    category: Optional[str] = None
    is_active: bool = True
    created_at: str = field(default_factory=utc_now_iso)
    updated_at: str = field(default_factory=utc_now_iso)

    @classmethod
    def from_row(cls, row: dict) -> "GalleryImage":
        return cls(**_known_fields(cls, row))

    def as_dict(self) -> dict:
        data = asdict(self)
        # Landing rows carry a section, home rows a category; drop the other.
        if self.section is None:
            data.pop("section")
        if self.category is None:
            data.pop("category")
        return data


@dataclass
class LibraryImage:
    id: str
    name: str
    url: str
    size: int = 0
    uploaded_at: str = field(default_factory=utc_now_iso)

    @classmethod
    def from_row(cls, row: dict) -> "LibraryImage":
        return cls(**_known_fields(cls, row))

    def as_dict(self) -> dict:
        return asdict(self)


@dataclass
class SiteSetting:
    id: str
    setting_key: str
    setting_value: str
    setting_type: str = "text"
    updated_at: str = field(default_factory=utc_now_iso)

    @classmethod
    def from_row(cls, row: dict) -> "SiteSetting":
        return cls(**_known_fields(cls, row))

    def as_dict(self) -> dict:
        return asdict(self)


@dataclass
class PageContent:
    id: str
    page_id: str
    title: Optional[str] = None
    subtitle: Optional[str] = None
    content: dict[str, Any] = field(default_factory=dict)
    images: list[str] = field(default_factory=list)
    updated_at: str = field(default_factory=utc_now_iso)

    @classmethod
    def from_row(cls, row: dict) -> "PageContent":
        data = _known_fields(cls, row)
        data["content"] = dict(data.get("content") or {})
        data["images"] = list(data.get("images") or [])
        return cls(**data)

    def as_dict(self) -> dict:
        return asdict(self)
