import logging
from typing import Callable, List, Optional

import pycouchdb
from fastapi.concurrency import run_in_threadpool
from pydantic import ValidationError

from inkpages.db.couchdb import get_couch
from inkpages.exceptions import PostNotFoundError
from inkpages.repos.base import sort_by_recency
from inkpages.schemas.blog import Post
from inkpages.utils import now_ms, to_epoch_ms

logger = logging.getLogger(__name__)

POST_DOC_TYPE = "post"
WRITABLE_FIELDS = (
    "title",
    "excerpt",
    "content",
    "tags",
    "readingTime",
    "published",
    "publishedAt",
    "coverImage",
)


def doc_to_post(doc: dict) -> Post:
    return Post(
        id=doc["_id"],
        title=doc.get("title") or "",
        excerpt=doc.get("excerpt") or "",
        content=doc.get("content") or "",
        tags=doc.get("tags") or [],
        readingTime=doc.get("readingTime"),
        published=bool(doc.get("published", False)),
        publishedAt=to_epoch_ms(doc.get("publishedAt")),
        createdAt=to_epoch_ms(doc.get("createdAt")),
        updatedAt=to_epoch_ms(doc.get("updatedAt")),
        coverImage=doc.get("coverImage") or None,
    )


class CouchPostsRepo:
    """
    Posts stored as CouchDB documents. Reads never raise: failures are
    logged and reported as empty results. Writes let errors through.
    """

    def __init__(self, couch_db=None, *, connect: Callable = get_couch):
        self._db = couch_db
        self._connect = connect

    @property
    def db(self):
        if self._db is None:
            self._db = self._connect()
        return self._db

    # --- reads ---

    async def list_posts(self) -> List[Post]:
        try:
            docs = await run_in_threadpool(self._load_post_docs)
        except Exception as e:
            logger.error(f"Error getting all posts: {e}")
            return []

        posts = self._to_posts(docs)
        posts.sort(key=lambda p: p.createdAt or 0, reverse=True)
        logger.info(f"Retrieved {len(posts)} posts from CouchDB")
        return posts

    async def list_published_posts(self) -> List[Post]:
        posts = [p for p in await self.list_posts() if p.published]
        return sort_by_recency(posts)

    async def list_posts_by_tag(self, tag: str) -> List[Post]:
        posts = [p for p in await self.list_published_posts() if tag in p.tags]
        logger.info(f'Retrieved {len(posts)} posts with tag "{tag}" from CouchDB')
        return posts

    async def get_post(self, post_id: str) -> Optional[Post]:
        if not post_id or not post_id.strip():
            logger.info(f"Invalid post ID provided: {post_id!r}")
            return None

        clean_id = post_id.strip()
        try:
            doc = await run_in_threadpool(self.db.get, clean_id)
        except pycouchdb.exceptions.NotFound:
            logger.info(f"No post found with ID: '{clean_id}'")
            return None
        except Exception as e:
            logger.error(f"Error getting post by ID '{clean_id}': {e}")
            return None

        if not self._is_post(doc):
            return None
        try:
            return doc_to_post(doc)
        except ValidationError as e:
            logger.warning(f"Stored post {clean_id} is malformed: {e}")
            return None

    # --- writes ---

    async def create_post(self, data: dict) -> Post:
        now = now_ms()
        doc = {key: data[key] for key in WRITABLE_FIELDS if key in data}
        doc["type"] = POST_DOC_TYPE
        doc["createdAt"] = now
        doc["updatedAt"] = now
        if doc.get("published"):
            doc["publishedAt"] = to_epoch_ms(data.get("publishedAt")) or now
        else:
            doc["publishedAt"] = None

        saved = await run_in_threadpool(self.db.save, doc)
        logger.info(f"Post created with ID: {saved['_id']}")
        return doc_to_post(saved)

    async def update_post(self, post_id: str, updates: dict) -> Post:
        try:
            doc = await run_in_threadpool(self.db.get, post_id)
        except pycouchdb.exceptions.NotFound as e:
            raise PostNotFoundError(post_id) from e
        if not self._is_post(doc):
            raise PostNotFoundError(post_id)

        was_published = bool(doc.get("published"))
        for key in WRITABLE_FIELDS:
            if key in updates and key != "publishedAt":
                doc[key] = updates[key]
        doc["updatedAt"] = now_ms()

        if updates.get("published") is False:
            doc["publishedAt"] = None
        elif updates.get("published") is True:
            explicit = to_epoch_ms(updates.get("publishedAt"))
            if explicit is not None:
                doc["publishedAt"] = explicit
            elif not was_published or not doc.get("publishedAt"):
                doc["publishedAt"] = doc["updatedAt"]

        saved = await run_in_threadpool(self.db.save, doc)
        logger.info(f"Post updated: {post_id}")
        return doc_to_post(saved)

    async def delete_post(self, post_id: str) -> None:
        try:
            await run_in_threadpool(self.db.delete, post_id)
        except pycouchdb.exceptions.NotFound as e:
            raise PostNotFoundError(post_id) from e
        logger.info(f"Post deleted: {post_id}")

    # --- helpers ---

    def _load_post_docs(self) -> List[dict]:
        all_docs = [row.get("doc", row) for row in self.db.all(include_docs=True)]
        return [doc for doc in all_docs if self._is_post(doc)]

    @staticmethod
    def _to_posts(docs: List[dict]) -> List[Post]:
        posts = []
        for doc in docs:
            try:
                posts.append(doc_to_post(doc))
            except ValidationError as e:
                logger.warning(f"Skipping malformed post {doc.get('_id')}: {e}")
        return posts

    @staticmethod
    def _is_post(doc: dict | None) -> bool:
        if not doc:
            return False
        return doc.get("type") == POST_DOC_TYPE and not doc.get("deleted", False)
