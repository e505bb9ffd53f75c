import logging
from typing import Optional

from resourcehub.core.errors import classify_error
from resourcehub.core.storage import AssetStore, extract_asset_id

logger = logging.getLogger(__name__)


class AssetCleanupService:
    """
    Best-effort removal of stored files.
    Failures are logged as unresolved orphans and never raised, so they
    can't mask the error that triggered the cleanup.
    """

    def __init__(self, store: AssetStore, timeout: Optional[float] = None):
        self.store = store
        self.timeout = timeout

    def cleanup_asset(self, asset_id: str, context: str) -> bool:
        try:
            self.store.delete(asset_id, timeout=self.timeout)
        except Exception as e:
            kind = classify_error(e)
            logger.error(
                f"🧹 [CLEANUP] {kind.value}: unresolved orphan asset '{asset_id}' ({context}): {e}",
                exc_info=e,
            )
            return False
        logger.info(f"🧹 [CLEANUP] Removed asset '{asset_id}' ({context})")
        return True

    def cleanup_resource(self, asset_id: Optional[str], file_url: Optional[str], context: str) -> bool:
        """Clean up a resource post's file, recovering the id from its URL when needed."""
        asset_id = asset_id or extract_asset_id(file_url)
        if not asset_id:
            logger.warning(f"🧹 [CLEANUP] Could not extract asset id from URL '{file_url}' ({context})")
            return False
        return self.cleanup_asset(asset_id, context)
