import json
import logging
from typing import List, Optional

from pydantic import ValidationError

from inkpages.db.local_store import LocalSlotStore
from inkpages.schemas.blog import Post, PostForm
from inkpages.settings import settings
from inkpages.utils import (
    calculate_reading_time,
    generate_excerpt,
    generate_post_id,
    now_ms,
    parse_tags,
    strip_html,
)

logger = logging.getLogger(__name__)

POSTS_STORAGE_KEY = "inkandpages_posts"


class LocalPostsRepo:
    """
    Offline post list kept in a single local slot. Every write reads the
    whole list, changes it in memory and stores it back.
    """

    def __init__(self, store: LocalSlotStore, key: str = POSTS_STORAGE_KEY):
        self.store = store
        self.key = key

    def list_posts(self) -> List[Post]:
        try:
            raw = self.store.get_item(self.key)
            records = json.loads(raw) if raw else []
        except (OSError, ValueError) as e:
            logger.error(f"Error reading posts from local cache: {e}")
            return []

        posts = []
        for record in records:
            try:
                posts.append(Post.model_validate(record))
            except ValidationError as e:
                logger.warning(f"Skipping malformed cached post {record!r}: {e}")
        return posts

    def get_post(self, post_id: str) -> Optional[Post]:
        return next((p for p in self.list_posts() if p.id == post_id), None)

    def create_post(self, form: PostForm) -> Post:
        now = now_ms()
        post = Post(
            id=generate_post_id(form.title, now),
            title=form.title.strip(),
            excerpt=form.excerpt.strip()
            or generate_excerpt(form.content, settings.EXCERPT_MAX_LENGTH),
            content=form.content.strip(),
            tags=parse_tags(form.tags),
            readingTime=calculate_reading_time(
                strip_html(form.content), settings.READING_WORDS_PER_MINUTE
            ),
            published=bool(form.published),
            publishedAt=now if form.published else None,
            createdAt=now,
            updatedAt=now,
            coverImage=form.coverImage,
        )
        # Same id twice means the newer post replaces the older one
        existing = [p for p in self.list_posts() if p.id != post.id]
        self._save([post, *existing])
        return post

    def update_post(self, post_id: str, form: PostForm) -> Optional[Post]:
        posts = self.list_posts()
        index = next((i for i, p in enumerate(posts) if p.id == post_id), None)
        if index is None:
            return None

        current = posts[index]
        now = now_ms()
        published = current.published if form.published is None else form.published
        if not published:
            published_at = None
        elif current.publishedAt is None:
            published_at = now
        else:
            published_at = current.publishedAt

        updated = current.model_copy(
            update={
                "title": form.title.strip(),
                "excerpt": form.excerpt.strip()
                or generate_excerpt(form.content, settings.EXCERPT_MAX_LENGTH),
                "content": form.content.strip(),
                "tags": parse_tags(form.tags),
                "readingTime": calculate_reading_time(
                    strip_html(form.content), settings.READING_WORDS_PER_MINUTE
                ),
                "published": published,
                "publishedAt": published_at,
                "updatedAt": now,
                "coverImage": form.coverImage
                if form.coverImage is not None
                else current.coverImage,
            }
        )
        posts[index] = updated
        self._save(posts)
        return updated

    def delete_post(self, post_id: str) -> bool:
        posts = self.list_posts()
        remaining = [p for p in posts if p.id != post_id]
        if len(remaining) == len(posts):
            return False
        self._save(remaining)
        return True

    def clear(self) -> None:
        self.store.remove_item(self.key)

    def _save(self, posts: List[Post]) -> None:
        payload = json.dumps([p.model_dump() for p in posts])
        self.store.set_item(self.key, payload)
