import logging
from functools import lru_cache
from pathlib import Path
from typing import List, Optional, Sequence

import frontmatter

from inkpages.repos.base import sort_by_recency
from inkpages.schemas.blog import Post
from inkpages.settings import settings
from inkpages.utils import calculate_reading_time, generate_excerpt

logger = logging.getLogger(__name__)

CONTENT_DIR = Path(__file__).resolve().parent.parent / "content"


def parse_static_post(text: str, fallback_id: str) -> Post:
    """Build a Post from a Markdown file with front matter."""
    parsed = frontmatter.loads(text)
    metadata = parsed.metadata or {}
    content = parsed.content.strip()

    return Post(
        id=str(metadata.get("id") or fallback_id),
        title=metadata.get("title") or fallback_id.replace("-", " ").title(),
        excerpt=metadata.get("excerpt")
        or generate_excerpt(content, settings.EXCERPT_MAX_LENGTH),
        content=content,
        tags=metadata.get("tags") or [],
        readingTime=metadata.get("readingTime")
        or calculate_reading_time(content, settings.READING_WORDS_PER_MINUTE),
        published=bool(metadata.get("published", False)),
        publishedAt=metadata.get("publishedAt"),
        createdAt=metadata.get("createdAt") or metadata.get("publishedAt"),
        updatedAt=metadata.get("updatedAt") or metadata.get("publishedAt"),
        coverImage=metadata.get("coverImage"),
    )


def load_static_posts(directory: Path = CONTENT_DIR) -> List[Post]:
    posts = [
        parse_static_post(path.read_text(encoding="utf-8"), path.stem)
        for path in sorted(directory.glob("*.md"))
    ]
    logger.debug(f"Loaded {len(posts)} static posts from {directory}")
    return posts


@lru_cache(maxsize=1)
def bundled_posts() -> tuple:
    return tuple(load_static_posts())


class StaticPostsRepo:
    """Read-only posts shipped with the package."""

    def __init__(self, posts: Optional[Sequence[Post]] = None):
        self.posts = list(posts) if posts is not None else list(bundled_posts())

    def list_posts(self) -> List[Post]:
        return list(self.posts)

    def list_published_posts(self) -> List[Post]:
        return sort_by_recency([p for p in self.posts if p.published])

    def get_post(self, post_id: str) -> Optional[Post]:
        return next((p for p in self.posts if p.id == post_id), None)
