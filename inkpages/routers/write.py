import logging

from fastapi import APIRouter, Depends, HTTPException

from inkpages import dependencies as deps
from inkpages.exceptions import LocalStorageError
from inkpages.schemas.blog import Post, PostForm

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/write")


def _local_posts(local=Depends(deps.get_local_posts_repo)):
    if local is None:
        raise HTTPException(status_code=503, detail="Local post cache is disabled")
    return local


def _check_form(form: PostForm) -> None:
    if not form.title.strip() or not form.content.strip():
        raise HTTPException(status_code=422, detail="Please fill in both title and content")


@router.post("", response_model=Post, status_code=201)
def create_local_post(form: PostForm, local=Depends(_local_posts)):
    """Write a post into the offline cache only."""
    _check_form(form)
    try:
        post = local.create_post(form)
    except LocalStorageError as e:
        raise HTTPException(status_code=507, detail=str(e))
    logger.info(f"Cached post {post.id} locally")
    return post


@router.put("/{post_id}", response_model=Post)
def update_local_post(post_id: str, form: PostForm, local=Depends(_local_posts)):
    _check_form(form)
    try:
        post = local.update_post(post_id, form)
    except LocalStorageError as e:
        raise HTTPException(status_code=507, detail=str(e))
    if post is None:
        raise HTTPException(status_code=404, detail="Post not found")
    return post


@router.delete("/{post_id}", status_code=204)
def delete_local_post(post_id: str, local=Depends(_local_posts)):
    try:
        deleted = local.delete_post(post_id)
    except LocalStorageError as e:
        raise HTTPException(status_code=507, detail=str(e))
    if not deleted:
        raise HTTPException(status_code=404, detail="Post not found")
    return None
