from functools import lru_cache
from typing import Optional

from fastapi import Depends

from inkpages.db.local_store import LocalSlotStore
from inkpages.repos.drafts_repo import DraftsRepo
from inkpages.repos.local_posts import LocalPostsRepo
from inkpages.repos.posts_repo import CouchPostsRepo
from inkpages.repos.static_posts import StaticPostsRepo
from inkpages.services.identity import IdentityClient
from inkpages.services.image_service import ImageService
from inkpages.services.posts_service import PostsService
from inkpages.settings import settings


def get_posts_repo():
    return CouchPostsRepo()


def get_static_repo():
    return StaticPostsRepo()


def get_local_store() -> Optional[LocalSlotStore]:
    if not settings.local_cache_enabled:
        return None
    return LocalSlotStore(settings.LOCAL_CACHE_DIR, settings.LOCAL_CACHE_QUOTA_BYTES)


def get_local_posts_repo(store=Depends(get_local_store)):
    return LocalPostsRepo(store) if store is not None else None


def get_drafts_repo(store=Depends(get_local_store)):
    return DraftsRepo(store) if store is not None else None


def get_image_service():
    return ImageService()


def get_posts_service(
    hosted=Depends(get_posts_repo),
    static=Depends(get_static_repo),
    local=Depends(get_local_posts_repo),
):
    return PostsService(hosted=hosted, static=static, local=local)


@lru_cache(maxsize=1)
def get_identity_client():
    return IdentityClient(settings.identity_url)
