import logging
from enum import Enum
from pathlib import PurePath
from typing import Optional

from fastapi.concurrency import run_in_threadpool

from inkpages.exceptions import (
    LocalStorageError,
    PostNotFoundError,
    PostValidationError,
)
from inkpages.schemas.blog import Draft, Post, PostForm
from inkpages.services.image_service import (
    compress_image,
    data_uri_size,
    to_data_uri,
    validate_image,
)
from inkpages.settings import Settings, settings
from inkpages.utils import (
    calculate_reading_time,
    generate_excerpt,
    now_ms,
    parse_tags,
    strip_html,
)

logger = logging.getLogger(__name__)


class EditState(str, Enum):
    LOADING = "loading"
    EDITING = "editing"
    SAVING = "saving"
    SAVED = "saved"
    ERROR = "error"


class EditSession:
    """
    One pass through the editor for a single post.

    loading -> editing -> saving -> (saved | error) -> editing

    Drafts go to the local draft slot only; ``save`` is the only path that
    writes to the hosted store.
    """

    def __init__(
        self,
        post_id: Optional[str],
        *,
        posts_service,
        hosted,
        drafts=None,
        images=None,
        config: Settings = settings,
    ):
        self.post_id = post_id
        self.posts_service = posts_service
        self.hosted = hosted
        self.drafts = drafts
        self.images = images
        self.config = config

        self.form = PostForm()
        self.original: Optional[Post] = None
        self.error: Optional[str] = None
        self.last_saved: Optional[int] = None
        self.state = EditState.LOADING if post_id else EditState.EDITING

        self._pending_image: Optional[tuple] = None

    # --- lifecycle ---

    async def load(self) -> Post:
        self.state = EditState.LOADING
        post = await self.posts_service.get_post_by_id_async(self.post_id)
        if post is None:
            raise PostNotFoundError(self.post_id)

        self.original = post
        self.form = PostForm(
            title=post.title,
            content=post.content,
            excerpt=post.excerpt,
            tags=", ".join(post.tags),
            published=post.published,
            coverImage=post.coverImage,
        )
        self.state = EditState.EDITING
        return post

    # --- editing ---

    def update_form(self, **fields) -> PostForm:
        self.form = self.form.model_copy(update=fields)
        if self.state in (EditState.SAVED, EditState.ERROR):
            self.state = EditState.EDITING
        return self.form

    def restore_draft(self) -> Optional[Draft]:
        if self.drafts is None:
            return None
        draft = self.drafts.get_draft(self.post_id)
        if draft is not None:
            self.update_form(
                title=draft.title,
                content=draft.content,
                excerpt=draft.excerpt,
                tags=draft.tags,
                coverImage=draft.coverImage,
            )
        return draft

    def autosave(self) -> Optional[Draft]:
        """Write the form to the draft slot; skipped while saving or when empty."""
        if self.drafts is None or self.state != EditState.EDITING:
            return None
        if self.form.is_empty():
            return None
        tags = self.form.tags
        draft = Draft(
            postId=self.post_id,
            title=self.form.title.strip(),
            content=self.form.content,
            excerpt=self.form.excerpt.strip(),
            tags=tags if isinstance(tags, str) else ", ".join(tags),
            coverImage=self.form.coverImage,
            lastSaved=now_ms(),
        )
        self.drafts.save_draft(draft)
        self.last_saved = draft.lastSaved
        return draft

    def attach_image(self, filename: str, content_type: Optional[str], data: bytes) -> None:
        validate_image(content_type, len(data), self.config.IMAGE_MAX_UPLOAD_BYTES)
        self._pending_image = (filename, data)

    def remove_image(self) -> None:
        self._pending_image = None
        self.update_form(coverImage=None)

    # --- saving ---

    def validate(self) -> None:
        if not self.form.title.strip() or not strip_html(self.form.content).strip():
            raise PostValidationError("Please fill in both title and content")

    async def save(self, published: Optional[bool] = None) -> Post:
        self.validate()

        self.state = EditState.SAVING
        self.error = None
        try:
            cover_image = await self._process_pending_image()
            data = self._build_payload(cover_image, published)
            if self.post_id is None:
                post = await self.hosted.create_post(data)
            else:
                post = await self.hosted.update_post(self.post_id, data)
        except Exception as e:
            self.state = EditState.ERROR
            self.error = str(e) or e.__class__.__name__
            logger.error(f"Error saving post {self.post_id or '(new)'}: {e}")
            self.state = EditState.EDITING
            raise

        self._clear_draft()
        self.post_id = post.id
        self.original = post
        self._pending_image = None
        self.state = EditState.SAVED
        action = {True: "published", False: "unpublished"}.get(published, "updated")
        logger.info(f'Post "{post.title}" {action}')
        return post

    async def _process_pending_image(self) -> Optional[str]:
        if self._pending_image is None:
            return self.form.coverImage

        filename, data = self._pending_image
        inline = self.config.COVER_IMAGE_MODE == "inline" or self.images is None
        compressed = await run_in_threadpool(
            compress_image,
            data,
            max_width=self.config.IMAGE_MAX_WIDTH,
            max_height=self.config.IMAGE_MAX_HEIGHT,
            quality=self.config.IMAGE_QUALITY,
            max_size_kb=self.config.IMAGE_TARGET_KB,
            measure=data_uri_size if inline else len,
        )
        if inline:
            return to_data_uri(compressed)

        jpeg_name = f"{PurePath(filename).stem}.jpg"
        return await run_in_threadpool(self.images.upload_image, jpeg_name, compressed)

    def _build_payload(self, cover_image: Optional[str], published: Optional[bool]) -> dict:
        content = self.form.content
        data = {
            "title": self.form.title.strip(),
            "content": content,
            "excerpt": self.form.excerpt.strip()
            or generate_excerpt(content, self.config.EXCERPT_MAX_LENGTH),
            "tags": parse_tags(self.form.tags),
            "readingTime": calculate_reading_time(
                strip_html(content), self.config.READING_WORDS_PER_MINUTE
            ),
            "coverImage": cover_image,
        }
        if published is None and self.post_id is None:
            published = bool(self.form.published)
        if published is not None:
            data["published"] = published
            if self.form.publishedAt is not None:
                data["publishedAt"] = self.form.publishedAt
        return data

    def _clear_draft(self) -> None:
        if self.drafts is None:
            return
        try:
            self.drafts.clear_draft(self.post_id)
        except LocalStorageError as e:
            logger.warning(f"Could not clear draft for {self.post_id}: {e}")
