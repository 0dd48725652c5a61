"""
Public HTTP routes: blog, search, page images, settings and the upload relay.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, Header, HTTPException, Query, Response
from fastapi.responses import JSONResponse

from photosite import blog
from photosite.config import get_settings
from photosite.content import ContentService
from photosite.dependencies import get_content_service, get_upload_relay
from photosite.records import BlogPost, GalleryImage
from photosite.relay import RelayError, UploadRelay
from photosite.schemas import (
    BlogPostDetail,
    BlogPostOut,
    GalleryImageOut,
    HealthResponse,
    HomePageResponse,
    LandingPageResponse,
    LogoResponse,
    PageContentOut,
    PostPageResponse,
    SearchResponse,
    UploadRequest,
    UploadResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter()

RELAY_CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
    "Access-Control-Allow-Headers": "Content-Type, Authorization, X-Client-Info, Apikey",
}


def _post_out(post: BlogPost) -> BlogPostOut:
    return BlogPostOut(**post.as_dict())


def _image_out(image: GalleryImage) -> GalleryImageOut:
    return GalleryImageOut(**image.as_dict())


def _split_csv(value: str | None) -> list[str]:
    return [part.strip() for part in value.split(",") if part.strip()] if value else []


@router.get("/health", response_model=HealthResponse)
def health():
    return HealthResponse(status="ok")


@router.get("/posts", response_model=PostPageResponse)
def list_posts(
    page: int = Query(1),
    per_page: int = Query(blog.POSTS_PER_PAGE, ge=1, le=100),
    category: str | None = Query(None),
    content: ContentService = Depends(get_content_service),
):
    """
    One page of published posts, newest first. Out-of-range pages are
    clamped to the first/last page.
    """
    posts = content.list_published_posts()
    categories = blog.list_categories(posts)
    if category:
        posts = blog.search_posts(posts, category=category)
    result = blog.paginate(posts, page, per_page)
    return PostPageResponse(
        posts=[_post_out(post) for post in result.items],
        page=result.page,
        per_page=result.per_page,
        total=result.total,
        total_pages=result.total_pages,
        start_index=result.start_index,
        end_index=result.end_index,
        has_previous=result.has_previous,
        has_next=result.has_next,
        visible_pages=result.visible_pages,
        categories=categories,
    )


@router.get("/posts/recent", response_model=list[BlogPostOut])
def list_recent_posts(
    limit: int = Query(blog.RECENT_POSTS_LIMIT, ge=1, le=20),
    content: ContentService = Depends(get_content_service),
):
    posts = blog.recent_posts(content.list_published_posts(), limit)
    return [_post_out(post) for post in posts]


@router.get("/posts/{slug}", response_model=BlogPostDetail)
def get_post(slug: str, content: ContentService = Depends(get_content_service)):
    post = content.get_post_by_slug(slug)
    if not post:
        raise HTTPException(status_code=404, detail="Post not found")
    return BlogPostDetail(
        **post.as_dict(), paragraphs=blog.split_paragraphs(post.content)
    )


@router.get("/search", response_model=SearchResponse)
def search(
    q: str = Query(""),
    category: str | None = Query(None),
    tags: str | None = Query(None, description="Comma-separated tags"),
    content: ContentService = Depends(get_content_service),
):
    posts = content.list_published_posts()
    results = blog.search_posts(posts, q, category=category, tags=_split_csv(tags))
    return SearchResponse(
        query=q,
        results=[_post_out(post) for post in results],
        total=len(results),
        categories=blog.list_categories(posts),
        tags=blog.list_tags(posts),
    )


@router.get("/landing-images", response_model=list[GalleryImageOut])
def landing_images(
    section: str | None = Query(None),
    content: ContentService = Depends(get_content_service),
):
    return [_image_out(image) for image in content.list_active_section_images(section)]


@router.get("/home-images", response_model=list[GalleryImageOut])
def home_images(
    category: str | None = Query(None),
    content: ContentService = Depends(get_content_service),
):
    return [_image_out(image) for image in content.list_active_home_images(category)]


@router.get("/pages/landing", response_model=LandingPageResponse)
def landing_page(content: ContentService = Depends(get_content_service)):
    return LandingPageResponse(
        logo_url=content.get_logo_url(),
        hero_images=[
            _image_out(image) for image in content.list_active_section_images("hero")
        ],
    )


@router.get("/pages/home", response_model=HomePageResponse)
def home_page(content: ContentService = Depends(get_content_service)):
    return HomePageResponse(
        logo_url=content.get_logo_url(),
        hero_images=[
            _image_out(image) for image in content.list_active_home_images("hero")
        ],
        gallery_images=[
            _image_out(image) for image in content.list_active_home_images("gallery")
        ],
        recent_posts=[
            _post_out(post)
            for post in blog.recent_posts(content.list_published_posts())
        ],
    )


@router.get("/settings/logo", response_model=LogoResponse)
def site_logo(content: ContentService = Depends(get_content_service)):
    return LogoResponse(url=content.get_logo_url())


@router.get("/page-content/{page_id}", response_model=PageContentOut)
def page_content(page_id: str, content: ContentService = Depends(get_content_service)):
    record = content.get_page_content(page_id)
    if not record:
        raise HTTPException(status_code=404, detail="Page content not found")
    return PageContentOut(**record.as_dict())


@router.options("/upload-to-s3")
def upload_preflight():
    return Response(status_code=200, headers=RELAY_CORS_HEADERS)


@router.post("/upload-to-s3", response_model=UploadResponse)
def upload_to_s3(
    payload: UploadRequest,
    authorization: str | None = Header(None),
    relay: UploadRelay = Depends(get_upload_relay),
):
    """
    Store a base64 data URL in object storage and return its public URL.
    """
    api_key = get_settings().store_api_key
    if api_key and authorization != f"Bearer {api_key}":
        return JSONResponse(
            status_code=401,
            content={"error": "Unauthorized"},
            headers=RELAY_CORS_HEADERS,
        )
    try:
        result = relay.handle(payload.model_dump())
    except RelayError as exc:
        if exc.status_code >= 500:
            logger.error("Upload relay error: %s", exc)
        return JSONResponse(
            status_code=exc.status_code,
            content=exc.as_dict(),
            headers=RELAY_CORS_HEADERS,
        )
    return JSONResponse(status_code=200, content=result, headers=RELAY_CORS_HEADERS)
