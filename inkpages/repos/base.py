from typing import List, Optional, Protocol

from inkpages.schemas.blog import Post


class SyncPostSource(Protocol):
    """Sources that can answer immediately (static content, local cache)."""

    def list_posts(self) -> List[Post]: ...

    def get_post(self, post_id: str) -> Optional[Post]: ...


class AsyncPostSource(Protocol):
    """Sources that need a network round trip (the hosted document store)."""

    async def list_posts(self) -> List[Post]: ...

    async def list_published_posts(self) -> List[Post]: ...

    async def list_posts_by_tag(self, tag: str) -> List[Post]: ...

    async def get_post(self, post_id: str) -> Optional[Post]: ...


def sort_by_recency(posts: List[Post]) -> List[Post]:
    """Newest first by publishedAt; drafts fall back to createdAt and sort last."""
    return sorted(
        posts,
        key=lambda p: (p.publishedAt is not None, p.publishedAt or p.createdAt or 0),
        reverse=True,
    )
