"""
Admin HTTP routes. Everything except login/logout/session requires an
authenticated admin session.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from fastapi.responses import RedirectResponse

from photosite.auth import AdminSession
from photosite.config import get_settings
from photosite.content import ContentService, PostValidationError
from photosite.dependencies import (
    get_admin_session,
    get_content_service,
    get_legacy_cache,
)
from photosite.legacy_cache import LegacyCache
from photosite.records import LibraryImage, SiteSetting
from photosite.relay import decode_data_url, RelayValidationError
from photosite.routes import _image_out, _post_out
from photosite.schemas import (
    BlogPostCreate,
    BlogPostOut,
    BlogPostUpdate,
    BulkIdsRequest,
    BulkUpdateRequest,
    DashboardResponse,
    GalleryImageOut,
    HomeImageCreate,
    HomeImageUpdate,
    LibraryImageCreate,
    LibraryImageOut,
    LoginRequest,
    LogoResponse,
    LogoUpdate,
    PageContentOut,
    PageContentSave,
    SectionImageCreate,
    SectionImageUpdate,
    SessionResponse,
    SiteSettingOut,
    SiteSettingUpdate,
)
from photosite.uploads import (
    LOGO_RULES,
    SECTION_IMAGE_RULES,
    UploadFile,
    UploadValidationError,
    validate,
)

logger = logging.getLogger(__name__)

LOGIN_PATH = "/admin"

router = APIRouter()


def require_admin(session: AdminSession = Depends(get_admin_session)) -> AdminSession:
    if not session.is_authenticated:
        raise HTTPException(status_code=401, detail="Admin login required")
    return session


def _write_failed(what: str) -> HTTPException:
    return HTTPException(status_code=502, detail=f"Failed to {what}. Please try again.")


def _setting_out(setting: SiteSetting) -> SiteSettingOut:
    return SiteSettingOut(**setting.as_dict())


def _library_out(image: LibraryImage) -> LibraryImageOut:
    return LibraryImageOut(**image.as_dict())


def _data_url_file(value: str, file_name: str | None) -> UploadFile | None:
    """Turn a ``data:<type>;base64,...`` value into an UploadFile, else None."""
    if not value.startswith("data:"):
        return None
    header, _, _ = value.partition(",")
    content_type = header[len("data:") :].split(";", 1)[0]
    try:
        data = decode_data_url(value)
    except RelayValidationError as exc:
        raise HTTPException(status_code=400, detail=exc.error) from exc
    return UploadFile(name=file_name or "upload", content_type=content_type, data=data)


def _check_inline_image(value: str, file_name: str | None, rules) -> None:
    file = _data_url_file(value, file_name)
    if file is None:
        return
    try:
        validate(file, rules)
    except UploadValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


# Session


@router.post("/login", response_model=SessionResponse)
def login(
    payload: LoginRequest,
    response: Response,
    session: AdminSession = Depends(get_admin_session),
):
    if not session.login(payload.password):
        raise HTTPException(status_code=401, detail="Invalid password. Please try again.")
    settings = get_settings()
    # No max_age: the cookie lives for the browser session only.
    response.set_cookie(
        settings.session_cookie_name,
        session.token,
        httponly=True,
        samesite="lax",
    )
    logger.info("Admin login succeeded")
    return SessionResponse(authenticated=True)


@router.post("/logout", response_model=SessionResponse)
def logout(response: Response, session: AdminSession = Depends(get_admin_session)):
    session.logout()
    response.delete_cookie(get_settings().session_cookie_name)
    return SessionResponse(authenticated=False)


@router.get("/session", response_model=SessionResponse)
def session_status(session: AdminSession = Depends(get_admin_session)):
    return SessionResponse(authenticated=session.is_authenticated)


@router.get("/dashboard", response_model=DashboardResponse)
def dashboard(
    session: AdminSession = Depends(get_admin_session),
    content: ContentService = Depends(get_content_service),
):
    if not session.is_authenticated:
        return RedirectResponse(url=LOGIN_PATH, status_code=303)
    posts = content.list_all_posts()
    return DashboardResponse(
        posts=len(posts),
        published_posts=sum(1 for post in posts if post.published),
        library_images=len(content.list_library_images()),
        landing_images=len(content.list_section_images()),
        home_images=len(content.list_home_images()),
        logo_url=content.get_logo_url(),
    )


# Blog posts


@router.get("/posts", response_model=list[BlogPostOut])
def admin_list_posts(
    _: AdminSession = Depends(require_admin),
    content: ContentService = Depends(get_content_service),
):
    return [_post_out(post) for post in content.list_all_posts()]


@router.post("/posts", response_model=BlogPostOut, status_code=201)
def admin_create_post(
    payload: BlogPostCreate,
    _: AdminSession = Depends(require_admin),
    content: ContentService = Depends(get_content_service),
):
    try:
        post = content.create_post(payload.model_dump())
    except PostValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    if not post:
        raise _write_failed("save post")
    return _post_out(post)


@router.put("/posts/{post_id}", response_model=BlogPostOut)
def admin_update_post(
    post_id: str,
    payload: BlogPostUpdate,
    _: AdminSession = Depends(require_admin),
    content: ContentService = Depends(get_content_service),
):
    try:
        post = content.update_post(post_id, payload.model_dump(exclude_unset=True))
    except PostValidationError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    if not post:
        if content.get_post(post_id) is None:
            raise HTTPException(status_code=404, detail="Post not found")
        raise _write_failed("save post")
    return _post_out(post)


@router.delete("/posts/{post_id}", status_code=204)
def admin_delete_post(
    post_id: str,
    _: AdminSession = Depends(require_admin),
    content: ContentService = Depends(get_content_service),
):
    if not content.delete_post(post_id):
        raise _write_failed("delete post")
    return Response(status_code=204)


# Landing page images


@router.get("/landing-images", response_model=list[GalleryImageOut])
def admin_list_landing_images(
    section: str | None = Query(None),
    _: AdminSession = Depends(require_admin),
    content: ContentService = Depends(get_content_service),
):
    return [_image_out(image) for image in content.list_section_images(section)]


@router.post("/landing-images", response_model=GalleryImageOut, status_code=201)
def admin_create_landing_image(
    payload: SectionImageCreate,
    _: AdminSession = Depends(require_admin),
    content: ContentService = Depends(get_content_service),
):
    _check_inline_image(payload.image_url, payload.image_name, SECTION_IMAGE_RULES)
    image = content.create_section_image(payload.model_dump())
    if not image:
        raise _write_failed("save image")
    return _image_out(image)


@router.put("/landing-images/{image_id}", response_model=GalleryImageOut)
def admin_update_landing_image(
    image_id: str,
    payload: SectionImageUpdate,
    _: AdminSession = Depends(require_admin),
    content: ContentService = Depends(get_content_service),
):
    if payload.image_url:
        _check_inline_image(payload.image_url, payload.image_name, SECTION_IMAGE_RULES)
    image = content.update_section_image(image_id, payload.model_dump(exclude_unset=True))
    if not image:
        if content.get_section_image(image_id) is None:
            raise HTTPException(status_code=404, detail="Image not found")
        raise _write_failed("save image")
    return _image_out(image)


@router.delete("/landing-images/{image_id}", status_code=204)
def admin_delete_landing_image(
    image_id: str,
    _: AdminSession = Depends(require_admin),
    content: ContentService = Depends(get_content_service),
):
    if not content.delete_section_image(image_id):
        raise _write_failed("delete image")
    return Response(status_code=204)


# Home page images


@router.get("/home-images", response_model=list[GalleryImageOut])
def admin_list_home_images(
    category: str | None = Query(None),
    _: AdminSession = Depends(require_admin),
    content: ContentService = Depends(get_content_service),
):
    return [_image_out(image) for image in content.list_home_images(category)]


@router.post("/home-images", response_model=GalleryImageOut, status_code=201)
def admin_create_home_image(
    payload: HomeImageCreate,
    _: AdminSession = Depends(require_admin),
    content: ContentService = Depends(get_content_service),
):
    _check_inline_image(payload.image_url, payload.image_name, SECTION_IMAGE_RULES)
    image = content.create_home_image(payload.model_dump())
    if not image:
        raise _write_failed("save image")
    return _image_out(image)


@router.post("/home-images/bulk-delete", status_code=204)
def admin_bulk_delete_home_images(
    payload: BulkIdsRequest,
    _: AdminSession = Depends(require_admin),
    content: ContentService = Depends(get_content_service),
):
    if not content.bulk_delete_home_images(payload.ids):
        raise _write_failed("delete images")
    return Response(status_code=204)


@router.post("/home-images/bulk-update", status_code=204)
def admin_bulk_update_home_images(
    payload: BulkUpdateRequest,
    _: AdminSession = Depends(require_admin),
    content: ContentService = Depends(get_content_service),
):
    updates = payload.updates.model_dump(exclude_unset=True)
    if not content.bulk_update_home_images(payload.ids, updates):
        raise _write_failed("update images")
    return Response(status_code=204)


@router.put("/home-images/{image_id}", response_model=GalleryImageOut)
def admin_update_home_image(
    image_id: str,
    payload: HomeImageUpdate,
    _: AdminSession = Depends(require_admin),
    content: ContentService = Depends(get_content_service),
):
    if payload.image_url:
        _check_inline_image(payload.image_url, payload.image_name, SECTION_IMAGE_RULES)
    image = content.update_home_image(image_id, payload.model_dump(exclude_unset=True))
    if not image:
        if content.get_home_image(image_id) is None:
            raise HTTPException(status_code=404, detail="Image not found")
        raise _write_failed("save image")
    return _image_out(image)


@router.delete("/home-images/{image_id}", status_code=204)
def admin_delete_home_image(
    image_id: str,
    _: AdminSession = Depends(require_admin),
    content: ContentService = Depends(get_content_service),
):
    if not content.delete_home_image(image_id):
        raise _write_failed("delete image")
    return Response(status_code=204)


# Image library


@router.get("/library", response_model=list[LibraryImageOut])
def admin_list_library(
    _: AdminSession = Depends(require_admin),
    content: ContentService = Depends(get_content_service),
):
    return [_library_out(image) for image in content.list_library_images()]


@router.post("/library", response_model=LibraryImageOut, status_code=201)
def admin_add_library_image(
    payload: LibraryImageCreate,
    _: AdminSession = Depends(require_admin),
    content: ContentService = Depends(get_content_service),
):
    image = content.add_library_image(payload.name, payload.url, payload.size)
    if not image:
        raise _write_failed("save image")
    return _library_out(image)


@router.delete("/library/{image_id}", status_code=204)
def admin_delete_library_image(
    image_id: str,
    _: AdminSession = Depends(require_admin),
    content: ContentService = Depends(get_content_service),
):
    if not content.delete_library_image(image_id):
        raise _write_failed("delete image")
    return Response(status_code=204)


# Site settings


@router.put("/settings/logo", response_model=LogoResponse)
def admin_set_logo(
    payload: LogoUpdate,
    _: AdminSession = Depends(require_admin),
    content: ContentService = Depends(get_content_service),
):
    _check_inline_image(payload.value, payload.file_name, LOGO_RULES)
    setting = content.set_logo(payload.value)
    if not setting:
        raise _write_failed("update logo")
    return LogoResponse(url=setting.setting_value)


@router.delete("/settings/logo", response_model=LogoResponse)
def admin_reset_logo(
    _: AdminSession = Depends(require_admin),
    content: ContentService = Depends(get_content_service),
):
    setting = content.reset_logo()
    if not setting:
        raise _write_failed("reset logo")
    return LogoResponse(url=setting.setting_value)


@router.get("/settings/{key}", response_model=SiteSettingOut)
def admin_get_setting(
    key: str,
    _: AdminSession = Depends(require_admin),
    content: ContentService = Depends(get_content_service),
):
    setting = content.get_setting(key)
    if not setting:
        raise HTTPException(status_code=404, detail="Setting not found")
    return _setting_out(setting)


@router.put("/settings/{key}", response_model=SiteSettingOut)
def admin_put_setting(
    key: str,
    payload: SiteSettingUpdate,
    _: AdminSession = Depends(require_admin),
    content: ContentService = Depends(get_content_service),
):
    setting = content.upsert_setting(key, payload.value, payload.type)
    if not setting:
        raise _write_failed("save setting")
    return _setting_out(setting)


# Page content


@router.get("/page-content", response_model=list[PageContentOut])
def admin_list_page_content(
    _: AdminSession = Depends(require_admin),
    content: ContentService = Depends(get_content_service),
):
    return [PageContentOut(**record.as_dict()) for record in content.list_page_content()]


@router.put("/page-content", response_model=PageContentOut)
def admin_save_page_content(
    payload: PageContentSave,
    _: AdminSession = Depends(require_admin),
    content: ContentService = Depends(get_content_service),
):
    record = content.save_page_content(
        payload.page_id,
        title=payload.title,
        subtitle=payload.subtitle,
        content=payload.content,
        images=payload.images,
    )
    if not record:
        raise _write_failed("save page content")
    return PageContentOut(**record.as_dict())


@router.get("/legacy-cache")
def admin_legacy_cache(
    _: AdminSession = Depends(require_admin),
    cache: LegacyCache = Depends(get_legacy_cache),
):
    """Read-only export of the legacy local cache, for migrating old content."""
    return {
        "blog_posts": cache.get_blog_posts(),
        "images": cache.get_images(),
        "page_content": cache.get_all_page_content(),
    }
