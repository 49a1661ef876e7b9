import logging
from typing import Dict, Iterable, List, Optional

from inkpages.repos.base import sort_by_recency
from inkpages.schemas.blog import Post

logger = logging.getLogger(__name__)


class PostsService:
    """
    Resolves posts across the hosted store, the bundled static posts and the
    optional local cache.

    Listings merge all three, keeping the first copy of every id in the order
    hosted, static, local. Single lookups have two paths: ``get_post_by_id``
    only looks at the sources that answer immediately, while
    ``get_post_by_id_async`` falls through to the hosted store on a miss.
    The two can disagree when the hosted store holds a newer copy of an id
    that also exists statically or locally.
    """

    def __init__(self, hosted, static, local=None):
        self.hosted = hosted
        self.static = static
        self.local = local

    async def list_all_posts(self) -> List[Post]:
        return sort_by_recency(await self._merged())

    async def list_published_posts(self) -> List[Post]:
        return sort_by_recency([p for p in await self._merged() if p.published])

    async def list_posts_by_tag(self, tag: str) -> List[Post]:
        return [p for p in await self.list_published_posts() if tag in p.tags]

    def get_post_by_id(self, post_id: str) -> Optional[Post]:
        post = self.static.get_post(post_id)
        if post is None and self.local is not None:
            post = self._local_get(post_id)
        return post

    async def get_post_by_id_async(self, post_id: str) -> Optional[Post]:
        post = self.get_post_by_id(post_id)
        if post is not None:
            return post
        try:
            return await self.hosted.get_post(post_id)
        except Exception as e:
            logger.error(f"Hosted lookup failed for {post_id}: {e}")
            return None

    async def _merged(self) -> List[Post]:
        try:
            hosted = await self.hosted.list_posts()
        except Exception as e:
            logger.warning(f"Hosted posts unavailable, using static and local only: {e}")
            hosted = []

        local = self._local_list() if self.local is not None else []
        return merge_posts(hosted, self.static.list_posts(), local)

    def _local_list(self) -> List[Post]:
        try:
            return self.local.list_posts()
        except Exception as e:
            logger.error(f"Local cache unavailable: {e}")
            return []

    def _local_get(self, post_id: str) -> Optional[Post]:
        try:
            return self.local.get_post(post_id)
        except Exception as e:
            logger.error(f"Local cache lookup failed for {post_id}: {e}")
            return None


def merge_posts(*sources: Iterable[Post]) -> List[Post]:
    """Union by id; earlier sources win on collision."""
    merged: Dict[str, Post] = {}
    for source in sources:
        for post in source:
            merged.setdefault(post.id, post)
    return list(merged.values())
