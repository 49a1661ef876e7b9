import logging
from typing import Optional

from pydantic import ValidationError

from inkpages.db.local_store import LocalSlotStore
from inkpages.schemas.blog import Draft

logger = logging.getLogger(__name__)

NEW_POST_DRAFT_KEY = "blog_post_draft"


def draft_key(post_id: Optional[str]) -> str:
    return f"blog_post_edit_{post_id}" if post_id else NEW_POST_DRAFT_KEY


class DraftsRepo:
    """In-progress editor drafts, one local slot per post."""

    def __init__(self, store: LocalSlotStore):
        self.store = store

    def get_draft(self, post_id: Optional[str]) -> Optional[Draft]:
        try:
            raw = self.store.get_item(draft_key(post_id))
        except (OSError, ValueError) as e:
            logger.error(f"Error reading draft for {post_id}: {e}")
            return None
        if not raw:
            return None
        try:
            return Draft.model_validate_json(raw)
        except ValidationError as e:
            logger.warning(f"Discarding unreadable draft for {post_id}: {e}")
            return None

    def save_draft(self, draft: Draft) -> Draft:
        self.store.set_item(draft_key(draft.postId), draft.model_dump_json())
        return draft

    def clear_draft(self, post_id: Optional[str]) -> None:
        self.store.remove_item(draft_key(post_id))
