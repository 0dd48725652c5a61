"""
Pydantic schemas for the photosite API.
"""

from __future__ import annotations

from typing import Annotated, Any, Literal, Optional

from pydantic import AfterValidator, BaseModel, Field

from photosite.records import LANDING_SECTIONS


def _check_section(value: Optional[str]) -> Optional[str]:
    if value is not None and value not in LANDING_SECTIONS:
        raise ValueError(f"section must be one of: {', '.join(LANDING_SECTIONS)}")
    return value


Section = Annotated[str, AfterValidator(_check_section)]


class BlogPostOut(BaseModel):
    id: str
    title: str
    slug: str
    excerpt: str
    content: str
    category: str
    tags: list[str]
    featured_image: str
    author: str
    published: bool
    created_at: str
    updated_at: str


class BlogPostDetail(BlogPostOut):
    paragraphs: list[str]


class BlogPostCreate(BaseModel):
    title: str
    slug: Optional[str] = None
    excerpt: str
    content: str
    category: str
    # A list, or the admin form's comma-separated string.
    tags: list[str] | str = Field(default_factory=list)
    featured_image: str = ""
    author: str = ""
    published: bool = False


class BlogPostUpdate(BaseModel):
    title: Optional[str] = None
    slug: Optional[str] = None
    excerpt: Optional[str] = None
    content: Optional[str] = None
    category: Optional[str] = None
    tags: Optional[list[str] | str] = None
    featured_image: Optional[str] = None
    author: Optional[str] = None
    published: Optional[bool] = None


class PostPageResponse(BaseModel):
    posts: list[BlogPostOut]
    page: int
    per_page: int
    total: int
    total_pages: int
    start_index: int
    end_index: int
    has_previous: bool
    has_next: bool
    visible_pages: list[int]
    categories: list[str]


class SearchResponse(BaseModel):
    query: str
    results: list[BlogPostOut]
    total: int
    categories: list[str]
    tags: list[str]


class GalleryImageOut(BaseModel):
    id: str
    image_url: str
    image_name: str
    alt_text: Optional[str] = None
    file_size: int
    display_order: int
    section: Optional[str] = None
    category: Optional[str] = None
    is_active: bool
    created_at: str
    updated_at: str


class SectionImageCreate(BaseModel):
    image_url: str = Field(..., min_length=1)
    image_name: str = Field(..., min_length=1)
    alt_text: Optional[str] = None
    file_size: int = Field(default=0, ge=0)
    display_order: int = 0
    section: Section = "hero"
    is_active: bool = True


class SectionImageUpdate(BaseModel):
    image_url: Optional[str] = None
    image_name: Optional[str] = None
    alt_text: Optional[str] = None
    file_size: Optional[int] = Field(default=None, ge=0)
    display_order: Optional[int] = None
    section: Optional[Section] = None
    is_active: Optional[bool] = None


class HomeImageCreate(BaseModel):
    image_url: str = Field(..., min_length=1)
    image_name: str = Field(..., min_length=1)
    alt_text: Optional[str] = None
    file_size: int = Field(default=0, ge=0)
    display_order: int = 0
    category: str = Field(default="gallery", min_length=1)
    is_active: bool = True


class HomeImageUpdate(BaseModel):
    image_url: Optional[str] = None
    image_name: Optional[str] = None
    alt_text: Optional[str] = None
    file_size: Optional[int] = Field(default=None, ge=0)
    display_order: Optional[int] = None
    category: Optional[str] = None
    is_active: Optional[bool] = None


class BulkIdsRequest(BaseModel):
    ids: list[str]


class BulkUpdateRequest(BaseModel):
    ids: list[str]
    updates: HomeImageUpdate


class LibraryImageOut(BaseModel):
    id: str
    name: str
    url: str
    size: int
    uploaded_at: str


class LibraryImageCreate(BaseModel):
    name: str = Field(..., min_length=1)
    url: str = Field(..., min_length=1)
    size: int = Field(default=0, ge=0)


class SiteSettingOut(BaseModel):
    id: str
    setting_key: str
    setting_value: str
    setting_type: str
    updated_at: str


class SiteSettingUpdate(BaseModel):
    value: str
    type: str = "text"


class LogoUpdate(BaseModel):
    # Either a public URL or a data URL of the uploaded image.
    value: str = Field(..., min_length=1)
    file_name: Optional[str] = None


class LogoResponse(BaseModel):
    url: str


class PageContentOut(BaseModel):
    id: str
    page_id: str
    title: Optional[str] = None
    subtitle: Optional[str] = None
    content: dict[str, Any]
    images: list[str]
    updated_at: str


class PageContentSave(BaseModel):
    page_id: str = Field(..., min_length=1)
    title: Optional[str] = None
    subtitle: Optional[str] = None
    content: dict[str, Any] = Field(default_factory=dict)
    images: list[str] = Field(default_factory=list)


class LandingPageResponse(BaseModel):
    logo_url: str
    hero_images: list[GalleryImageOut]


class HomePageResponse(BaseModel):
    logo_url: str
    hero_images: list[GalleryImageOut]
    gallery_images: list[GalleryImageOut]
    recent_posts: list[BlogPostOut]


class LoginRequest(BaseModel):
    password: str


class SessionResponse(BaseModel):
    authenticated: bool


class DashboardResponse(BaseModel):
    posts: int
    published_posts: int
    library_images: int
    landing_images: int
    home_images: int
    logo_url: str


class UploadRequest(BaseModel):
    file: Optional[str] = None
    fileName: Optional[str] = None
    fileType: Optional[str] = None
    folder: Optional[str] = None


class UploadResponse(BaseModel):
    success: Literal[True]
    url: str
    key: str
    fileName: str
    originalFileName: str


class HealthResponse(BaseModel):
    status: Literal["ok"]
