import copy
import uuid

import pycouchdb

from inkpages.exceptions import InvalidCredentialsError, PostNotFoundError
from inkpages.schemas.blog import Post
from inkpages.services.identity import AuthSession
from inkpages.settings import Settings


class FakeCouchDB:
    """
    Minimal in-memory CouchDB stand-in.
    Set track_calls=True to record the order of get() calls.
    """

    def __init__(self, docs: dict | None = None, track_calls: bool = False):
        self.docs = docs if docs is not None else {}
        self.attachments = {}
        self.track_calls = track_calls
        self.calls = []

    def get(self, doc_id: str) -> dict:
        if self.track_calls:
            self.calls.append(doc_id)
        if doc_id not in self.docs:
            raise pycouchdb.exceptions.NotFound(doc_id)
        return copy.deepcopy(self.docs[doc_id])

    def all(self, include_docs: bool = True):
        if self.track_calls:
            self.calls.append(f"all(include_docs={include_docs})")
        if include_docs:
            return [{"id": key, "doc": copy.deepcopy(doc)} for key, doc in self.docs.items()]
        return [{"id": key} for key in self.docs]

    def save(self, doc: dict) -> dict:
        saved = copy.deepcopy(doc)
        saved.setdefault("_id", uuid.uuid4().hex)
        saved["_rev"] = uuid.uuid4().hex
        self.docs[saved["_id"]] = saved
        return copy.deepcopy(saved)

    def delete(self, doc_or_id):
        doc_id = doc_or_id if isinstance(doc_or_id, str) else doc_or_id["_id"]
        if doc_id not in self.docs:
            raise pycouchdb.exceptions.NotFound(doc_id)
        del self.docs[doc_id]

    def put_attachment(self, doc, content, filename=None, content_type=None):
        self.attachments[(doc["_id"], filename)] = content
        return doc

    def get_attachment(self, doc, filename):
        return self.attachments.get((doc["_id"], filename))


class BrokenCouchDB:
    """Every call fails as if the server were unreachable."""

    def __getattr__(self, name):
        def fail(*args, **kwargs):
            raise ConnectionError("CouchDB is down")

        return fail


class FakeHostedRepo:
    """
    In-memory stand-in for the hosted posts repo. Set ``down=True`` to make
    every call fail.
    """

    def __init__(self, posts=None, down: bool = False):
        self.posts = {p.id: p for p in posts or []}
        self.down = down
        self.created = []
        self.updated = []

    def _check(self):
        if self.down:
            raise ConnectionError("hosted store unavailable")

    async def list_posts(self):
        self._check()
        return list(self.posts.values())

    async def list_published_posts(self):
        self._check()
        return [p for p in self.posts.values() if p.published]

    async def list_posts_by_tag(self, tag):
        return [p for p in await self.list_published_posts() if tag in p.tags]

    async def get_post(self, post_id):
        self._check()
        return self.posts.get(post_id)

    async def create_post(self, data):
        self._check()
        post = Post(id=f"hosted-{len(self.posts) + 1}", createdAt=1, updatedAt=1, **data)
        self.posts[post.id] = post
        self.created.append(data)
        return post

    async def update_post(self, post_id, data):
        self._check()
        if post_id not in self.posts:
            raise PostNotFoundError(post_id)
        post = self.posts[post_id].model_copy(update=data)
        self.posts[post_id] = post
        self.updated.append((post_id, data))
        return post

    async def delete_post(self, post_id):
        self._check()
        if self.posts.pop(post_id, None) is None:
            raise PostNotFoundError(post_id)


class FakeIdentity:
    """Token -> email map standing in for the CouchDB session endpoint."""

    def __init__(self, sessions=None):
        self.sessions = dict(sessions or {})
        self.signed_out = []

    def resolve(self, token):
        email = self.sessions.get(token)
        return AuthSession(email=email, token=token) if email else None

    def sign_in(self, email, password):
        if password != "correct horse":
            raise InvalidCredentialsError("Invalid email or password")
        token = f"token-{email.split('@')[0]}"
        self.sessions[token] = email
        return AuthSession(email=email, token=token)

    def sign_out(self, token):
        self.signed_out.append(token)
        self.sessions.pop(token, None)


WRITER = "writer@example.com"


def writer_settings(**overrides) -> Settings:
    values = {
        "WRITER_EMAIL": WRITER,
        "BASE_BLOG_URL": "https://blog.example.com",
        "BLOG_API_URL": "https://api.example.com",
    }
    values.update(overrides)
    return Settings(**values)


def make_post(post_id: str, **fields) -> Post:
    values = {
        "title": post_id.replace("-", " ").title(),
        "content": f"Body of {post_id}",
        "excerpt": f"About {post_id}",
        "published": True,
        "publishedAt": 1_700_000_000_000,
        "createdAt": 1_700_000_000_000,
    }
    values.update(fields)
    return Post(id=post_id, **values)
