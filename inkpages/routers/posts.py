import datetime
import logging
from itertools import groupby
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import Response

from inkpages import dependencies as deps
from inkpages.schemas.blog import ArchiveYear, PostPage, PostSummary
from inkpages.security import get_is_writer, get_settings
from inkpages.services.content_renderer import render_content
from inkpages.services.posts_service import PostsService
from inkpages.services.seo import build_post_metadata, build_structured_data, build_sitemap
from inkpages.settings import Settings

logger = logging.getLogger(__name__)

router = APIRouter()

NOT_FOUND_DETAIL = "Post not found"


@router.get("/", response_model=List[PostSummary])
async def home(service: PostsService = Depends(deps.get_posts_service)):
    """Home feed: every published post, newest first."""
    try:
        return [p.summary() for p in await service.list_published_posts()]
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Unexpected error loading home feed: {e}")
        raise HTTPException(status_code=500, detail="Failed to retrieve posts")


@router.get("/archive", response_model=List[ArchiveYear])
async def archive(service: PostsService = Depends(deps.get_posts_service)):
    """Published posts grouped by year."""
    try:
        posts = await service.list_published_posts()
    except Exception as e:
        logger.error(f"Unexpected error loading archive: {e}")
        raise HTTPException(status_code=500, detail="Failed to retrieve posts")

    return [
        ArchiveYear(year=year, posts=[p.summary() for p in group])
        for year, group in groupby(posts, key=lambda p: _year(p.publishedAt))
    ]


@router.get("/posts", response_model=List[PostSummary])
async def list_posts(
    tag: Optional[str] = None,
    service: PostsService = Depends(deps.get_posts_service),
):
    """Published posts, optionally limited to one tag."""
    try:
        posts = (
            await service.list_posts_by_tag(tag)
            if tag
            else await service.list_published_posts()
        )
        return [p.summary() for p in posts]
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Unexpected error listing posts: {e}")
        raise HTTPException(status_code=500, detail="Failed to retrieve posts")


@router.get("/posts/{post_id}", response_model=PostPage)
async def get_post(
    post_id: str,
    service: PostsService = Depends(deps.get_posts_service),
    writer: bool = Depends(get_is_writer),
    current_settings: Settings = Depends(get_settings),
):
    """A single post. Drafts are only visible to the writer."""
    try:
        post = await service.get_post_by_id_async(post_id)
        if post is None or (not post.published and not writer):
            raise HTTPException(status_code=404, detail=NOT_FOUND_DETAIL)
        return PostPage(
            post=post,
            html=render_content(post.content),
            seo=build_post_metadata(post, current_settings),
            structuredData=build_structured_data(post, current_settings),
        )
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Unexpected error retrieving post {post_id}: {e}")
        raise HTTPException(status_code=500, detail="Failed to retrieve post")


@router.get("/about")
def about(current_settings: Settings = Depends(get_settings)):
    return {
        "siteName": current_settings.SITE_NAME,
        "description": current_settings.SITE_DESCRIPTION,
        "author": current_settings.AUTHOR_NAME,
    }


@router.get("/not-found")
def not_found():
    raise HTTPException(status_code=404, detail=NOT_FOUND_DETAIL)


@router.get("/sitemap.xml")
def sitemap(
    static=Depends(deps.get_static_repo),
    current_settings: Settings = Depends(get_settings),
):
    """Static pages plus the published bundled posts."""
    xml = build_sitemap(static.list_published_posts(), current_settings)
    return Response(content=xml, media_type="application/xml")


def _year(timestamp_ms: Optional[int]) -> int:
    if timestamp_ms is None:
        return 0
    return datetime.datetime.fromtimestamp(
        timestamp_ms / 1000, tz=datetime.timezone.utc
    ).year
