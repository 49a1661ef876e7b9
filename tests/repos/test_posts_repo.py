import asyncio

import pytest

from inkpages.exceptions import PostNotFoundError
from inkpages.repos.posts_repo import CouchPostsRepo, doc_to_post
from tests.conftest import BrokenCouchDB, FakeCouchDB


def post_doc(doc_id, **fields):
    doc = {
        "_id": doc_id,
        "type": "post",
        "title": doc_id.title(),
        "content": "Body",
        "excerpt": "",
        "tags": [],
        "readingTime": 1,
        "published": True,
        "publishedAt": 1_000,
        "createdAt": 1_000,
        "updatedAt": 1_000,
    }
    doc.update(fields)
    return doc


def test_list_posts_filters_non_posts_and_deleted():
    docs = {
        "a": post_doc("a", createdAt=1),
        "b": post_doc("b", createdAt=2),
        "img": {"_id": "img", "type": "image"},
        "gone": post_doc("gone", deleted=True),
    }
    repo = CouchPostsRepo(FakeCouchDB(docs))

    posts = asyncio.run(repo.list_posts())

    assert [p.id for p in posts] == ["b", "a"]


def test_list_posts_skips_malformed_docs():
    docs = {"ok": post_doc("ok"), "bad": post_doc("bad", title="")}
    repo = CouchPostsRepo(FakeCouchDB(docs))

    assert [p.id for p in asyncio.run(repo.list_posts())] == ["ok"]


def test_reads_degrade_when_couchdb_is_down():
    repo = CouchPostsRepo(BrokenCouchDB())

    assert asyncio.run(repo.list_posts()) == []
    assert asyncio.run(repo.list_published_posts()) == []
    assert asyncio.run(repo.get_post("anything")) is None


def test_reads_degrade_when_connect_fails():
    def connect():
        raise ConnectionError("refused")

    repo = CouchPostsRepo(connect=connect)

    assert asyncio.run(repo.list_posts()) == []


def test_published_listing_sorts_by_publish_date():
    docs = {
        "old": post_doc("old", publishedAt=100, createdAt=900),
        "new": post_doc("new", publishedAt=500, createdAt=100),
        "draft": post_doc("draft", published=False, publishedAt=None),
    }
    repo = CouchPostsRepo(FakeCouchDB(docs))

    posts = asyncio.run(repo.list_published_posts())

    assert [p.id for p in posts] == ["new", "old"]


def test_list_posts_by_tag_matches_exactly():
    docs = {
        "a": post_doc("a", tags=["writing", "craft"]),
        "b": post_doc("b", tags=["Writing"]),
        "c": post_doc("c", tags=["writing"], published=False),
    }
    repo = CouchPostsRepo(FakeCouchDB(docs))

    assert [p.id for p in asyncio.run(repo.list_posts_by_tag("writing"))] == ["a"]


def test_get_post_handles_blank_missing_and_wrong_type():
    docs = {"a": post_doc("a"), "img": {"_id": "img", "type": "image"}}
    repo = CouchPostsRepo(FakeCouchDB(docs))

    assert asyncio.run(repo.get_post("  ")) is None
    assert asyncio.run(repo.get_post("missing")) is None
    assert asyncio.run(repo.get_post("img")) is None
    assert asyncio.run(repo.get_post(" a ")).id == "a"


def test_create_post_stamps_times_and_publish_date(monkeypatch):
    monkeypatch.setattr("inkpages.repos.posts_repo.now_ms", lambda: 5_000)
    db = FakeCouchDB()
    repo = CouchPostsRepo(db)

    draft = asyncio.run(repo.create_post({"title": "Draft", "content": "x", "published": False}))
    live = asyncio.run(repo.create_post({"title": "Live", "content": "x", "published": True}))

    assert draft.createdAt == draft.updatedAt == 5_000
    assert draft.publishedAt is None
    assert live.publishedAt == 5_000
    assert db.docs[live.id]["type"] == "post"


def test_create_post_keeps_explicit_publish_date(monkeypatch):
    monkeypatch.setattr("inkpages.repos.posts_repo.now_ms", lambda: 5_000)
    repo = CouchPostsRepo(FakeCouchDB())

    post = asyncio.run(
        repo.create_post(
            {"title": "Back", "content": "x", "published": True, "publishedAt": "1970-01-01T00:00:01Z"}
        )
    )

    assert post.publishedAt == 1_000


def test_update_post_publishes_and_unpublishes(monkeypatch):
    monkeypatch.setattr("inkpages.repos.posts_repo.now_ms", lambda: 9_000)
    db = FakeCouchDB({"a": post_doc("a", published=False, publishedAt=None)})
    repo = CouchPostsRepo(db)

    published = asyncio.run(repo.update_post("a", {"published": True}))
    assert published.published is True
    assert published.publishedAt == 9_000
    assert published.updatedAt == 9_000

    monkeypatch.setattr("inkpages.repos.posts_repo.now_ms", lambda: 12_000)
    republished = asyncio.run(repo.update_post("a", {"title": "Renamed", "published": True}))
    assert republished.publishedAt == 9_000
    assert republished.title == "Renamed"

    unpublished = asyncio.run(repo.update_post("a", {"published": False}))
    assert unpublished.published is False
    assert unpublished.publishedAt is None


def test_update_post_without_published_keeps_publish_date():
    db = FakeCouchDB({"a": post_doc("a", publishedAt=1_234)})
    repo = CouchPostsRepo(db)

    post = asyncio.run(repo.update_post("a", {"content": "New body", "publishedAt": 99}))

    assert post.content == "New body"
    assert post.publishedAt == 1_234


def test_update_and_delete_missing_post_raise():
    repo = CouchPostsRepo(FakeCouchDB({"img": {"_id": "img", "type": "image"}}))

    with pytest.raises(PostNotFoundError):
        asyncio.run(repo.update_post("missing", {"title": "x"}))
    with pytest.raises(PostNotFoundError):
        asyncio.run(repo.update_post("img", {"title": "x"}))
    with pytest.raises(PostNotFoundError):
        asyncio.run(repo.delete_post("missing"))


def test_delete_post_removes_doc():
    db = FakeCouchDB({"a": post_doc("a")})
    repo = CouchPostsRepo(db)

    asyncio.run(repo.delete_post("a"))

    assert "a" not in db.docs


def test_writes_propagate_storage_errors():
    repo = CouchPostsRepo(BrokenCouchDB())

    with pytest.raises(ConnectionError):
        asyncio.run(repo.create_post({"title": "x", "content": "y"}))


def test_doc_to_post_normalises_iso_dates():
    post = doc_to_post(post_doc("a", publishedAt="1970-01-01T00:00:02Z", readingTime=0))

    assert post.publishedAt == 2_000
    assert post.readingTime == 1
