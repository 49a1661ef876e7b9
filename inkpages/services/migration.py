import logging
from dataclasses import dataclass, field
from typing import List

logger = logging.getLogger(__name__)


@dataclass
class MigrationResult:
    total: int = 0
    migrated: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)
    cleared: bool = False


async def migrate_local_posts(local, hosted) -> MigrationResult:
    """
    Copy every locally cached post into the hosted store under a new id.
    The local slot is cleared only when every post made it across.
    """
    posts = local.list_posts()
    result = MigrationResult(total=len(posts))
    if not posts:
        logger.info("No posts found in local cache")
        return result

    logger.info(f"Found {len(posts)} posts in local cache, migrating to CouchDB...")
    for post in posts:
        data = post.model_dump(exclude={"id", "createdAt", "updatedAt"})
        try:
            created = await hosted.create_post(data)
        except Exception as e:
            logger.error(f'Failed to migrate post "{post.title}": {e}')
            result.failed.append(post.id)
            continue
        logger.info(f'Migrated post "{post.title}" with new ID: {created.id}')
        result.migrated.append(created.id)

    logger.info(
        f"Migration complete: {len(result.migrated)}/{result.total} posts migrated successfully"
    )
    if not result.failed:
        local.clear()
        result.cleared = True
        logger.info("Cleared local cache after successful migration")
    return result
