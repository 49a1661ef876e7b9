import asyncio
import logging

from inkpages.db.local_store import LocalSlotStore
from inkpages.repos.local_posts import LocalPostsRepo
from inkpages.repos.posts_repo import CouchPostsRepo
from inkpages.services.migration import migrate_local_posts
from inkpages.settings import settings

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper()),
    format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

if __name__ == "__main__":
    store = LocalSlotStore(settings.LOCAL_CACHE_DIR, settings.LOCAL_CACHE_QUOTA_BYTES)
    try:
        result = asyncio.run(migrate_local_posts(LocalPostsRepo(store), CouchPostsRepo()))
        if result.failed:
            logger.warning(f"{len(result.failed)} posts were not migrated: {result.failed}")
        else:
            logger.info("Migration completed successfully.")
    except Exception as e:
        logger.error(f"Migration failed: {e}", exc_info=True)
