import logging
from typing import Optional

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile
from fastapi.concurrency import run_in_threadpool

from inkpages import dependencies as deps
from inkpages.exceptions import (
    ImageProcessingError,
    ImageUploadError,
    ImageValidationError,
    LocalStorageError,
    PostNotFoundError,
    PostValidationError,
)
from inkpages.schemas.blog import (
    Dashboard,
    Draft,
    EditorPayload,
    ImageUploadResult,
    Post,
    PostForm,
)
from inkpages.security import get_settings
from inkpages.services.editor import EditSession
from inkpages.services.image_service import compress_image, validate_image
from inkpages.services.posts_service import PostsService
from inkpages.settings import Settings

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin")

NEW_DRAFT_KEY = "new"


def _save_error(e: Exception, post_id: Optional[str]) -> HTTPException:
    if isinstance(e, (PostValidationError, ImageValidationError, ImageProcessingError)):
        return HTTPException(status_code=422, detail=str(e))
    if isinstance(e, PostNotFoundError):
        return HTTPException(status_code=404, detail="Post not found")
    if isinstance(e, ImageUploadError):
        return HTTPException(status_code=500, detail="Failed to upload image")
    if isinstance(e, LocalStorageError):
        return HTTPException(status_code=507, detail=str(e))
    logger.error(f"Unexpected error saving post {post_id or '(new)'}: {e}")
    return HTTPException(status_code=500, detail="Failed to save post")


def _form_fields(form: PostForm) -> dict:
    return form.model_dump(exclude_unset=True, exclude={"published"})


def _session(post_id, service, hosted, drafts, images, current_settings) -> EditSession:
    return EditSession(
        post_id,
        posts_service=service,
        hosted=hosted,
        drafts=drafts,
        images=images,
        config=current_settings,
    )


@router.get("", response_model=Dashboard)
async def dashboard(service: PostsService = Depends(deps.get_posts_service)):
    """Every post, drafts included, with counts."""
    try:
        posts = await service.list_all_posts()
    except Exception as e:
        logger.error(f"Unexpected error loading dashboard: {e}")
        raise HTTPException(status_code=500, detail="Failed to retrieve posts")

    published = sum(1 for p in posts if p.published)
    return Dashboard(
        total=len(posts),
        published=published,
        drafts=len(posts) - published,
        posts=[p.summary() for p in posts],
    )


@router.post("/posts", response_model=Post, status_code=201)
async def create_post(
    form: PostForm,
    service: PostsService = Depends(deps.get_posts_service),
    hosted=Depends(deps.get_posts_repo),
    drafts=Depends(deps.get_drafts_repo),
    current_settings: Settings = Depends(get_settings),
):
    session = _session(None, service, hosted, drafts, None, current_settings)
    session.update_form(**_form_fields(form))
    try:
        return await session.save(published=bool(form.published))
    except Exception as e:
        raise _save_error(e, None)


@router.get("/posts/{post_id}", response_model=EditorPayload)
async def edit_post(
    post_id: str,
    service: PostsService = Depends(deps.get_posts_service),
    hosted=Depends(deps.get_posts_repo),
    drafts=Depends(deps.get_drafts_repo),
    current_settings: Settings = Depends(get_settings),
):
    """The stored post plus any unsaved draft for it."""
    session = _session(post_id, service, hosted, drafts, None, current_settings)
    try:
        post = await session.load()
    except PostNotFoundError:
        raise HTTPException(status_code=404, detail="Post not found")
    return EditorPayload(post=post, draft=session.restore_draft())


@router.put("/posts/{post_id}", response_model=Post)
async def update_post(
    post_id: str,
    form: PostForm,
    service: PostsService = Depends(deps.get_posts_service),
    hosted=Depends(deps.get_posts_repo),
    drafts=Depends(deps.get_drafts_repo),
    current_settings: Settings = Depends(get_settings),
):
    session = _session(post_id, service, hosted, drafts, None, current_settings)
    try:
        await session.load()
        session.update_form(**_form_fields(form))
        return await session.save(published=form.published)
    except Exception as e:
        raise _save_error(e, post_id)


@router.delete("/posts/{post_id}", status_code=204)
async def delete_post(post_id: str, hosted=Depends(deps.get_posts_repo)):
    try:
        await hosted.delete_post(post_id)
    except PostNotFoundError:
        raise HTTPException(status_code=404, detail="Post not found")
    except Exception as e:
        logger.error(f"Unexpected error deleting post {post_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to delete post")
    logger.info(f"Deleted post {post_id}")
    return None


@router.post("/posts/{post_id}/cover-image", response_model=Post)
async def replace_cover_image(
    post_id: str,
    file: UploadFile = File(...),
    service: PostsService = Depends(deps.get_posts_service),
    hosted=Depends(deps.get_posts_repo),
    drafts=Depends(deps.get_drafts_repo),
    images=Depends(deps.get_image_service),
    current_settings: Settings = Depends(get_settings),
):
    """Compress an uploaded cover image and store it on the post."""
    data = await file.read()
    session = _session(post_id, service, hosted, drafts, images, current_settings)
    try:
        await session.load()
        session.attach_image(file.filename or "cover.jpg", file.content_type, data)
        return await session.save()
    except Exception as e:
        raise _save_error(e, post_id)


@router.delete("/posts/{post_id}/cover-image", response_model=Post)
async def remove_cover_image(
    post_id: str,
    service: PostsService = Depends(deps.get_posts_service),
    hosted=Depends(deps.get_posts_repo),
    drafts=Depends(deps.get_drafts_repo),
    current_settings: Settings = Depends(get_settings),
):
    session = _session(post_id, service, hosted, drafts, None, current_settings)
    try:
        await session.load()
        session.remove_image()
        return await session.save()
    except Exception as e:
        raise _save_error(e, post_id)


@router.post("/images", response_model=ImageUploadResult, status_code=201)
async def upload_image(
    file: UploadFile = File(...),
    images=Depends(deps.get_image_service),
    current_settings: Settings = Depends(get_settings),
):
    data = await file.read()
    try:
        validate_image(file.content_type, len(data), current_settings.IMAGE_MAX_UPLOAD_BYTES)
        compressed = await run_in_threadpool(
            compress_image,
            data,
            max_width=current_settings.IMAGE_MAX_WIDTH,
            max_height=current_settings.IMAGE_MAX_HEIGHT,
            quality=current_settings.IMAGE_QUALITY,
            max_size_kb=current_settings.IMAGE_TARGET_KB,
        )
        stem = (file.filename or "image").rsplit(".", 1)[0]
        url = await run_in_threadpool(images.upload_image, f"{stem}.jpg", compressed)
    except Exception as e:
        raise _save_error(e, None)
    return ImageUploadResult(url=url, size=len(compressed))


# --- drafts ---


def _draft_post_id(key: str) -> Optional[str]:
    return None if key == NEW_DRAFT_KEY else key


def _require_drafts(drafts):
    if drafts is None:
        raise HTTPException(status_code=503, detail="Local draft storage is disabled")
    return drafts


@router.get("/drafts/{key}", response_model=Optional[Draft])
def get_draft(key: str, drafts=Depends(deps.get_drafts_repo)):
    return _require_drafts(drafts).get_draft(_draft_post_id(key))


@router.put("/drafts/{key}", response_model=Optional[Draft])
async def save_draft(
    key: str,
    draft: Draft,
    service: PostsService = Depends(deps.get_posts_service),
    hosted=Depends(deps.get_posts_repo),
    drafts=Depends(deps.get_drafts_repo),
    current_settings: Settings = Depends(get_settings),
):
    """One autosave tick from the editor. Empty forms are not stored."""
    post_id = _draft_post_id(key)
    session = _session(post_id, service, hosted, _require_drafts(drafts), None, current_settings)
    try:
        if post_id is not None:
            await session.load()
        session.update_form(
            title=draft.title,
            content=draft.content,
            excerpt=draft.excerpt,
            tags=draft.tags,
            coverImage=draft.coverImage,
        )
        return session.autosave()
    except PostNotFoundError:
        raise HTTPException(status_code=404, detail="Post not found")
    except LocalStorageError as e:
        raise HTTPException(status_code=507, detail=str(e))


@router.delete("/drafts/{key}", status_code=204)
def clear_draft(key: str, drafts=Depends(deps.get_drafts_repo)):
    try:
        _require_drafts(drafts).clear_draft(_draft_post_id(key))
    except LocalStorageError as e:
        raise HTTPException(status_code=507, detail=str(e))
    return None
