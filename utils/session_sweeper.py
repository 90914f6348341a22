"""Background cleanup of expired sessions and stale uploaded files."""

import asyncio
import logging
from typing import Optional

from services.image_store import ImageStore
from services.sessions.session_store import SessionStore

LOGGER = logging.getLogger(__name__)


class SessionSweeper:
    """Periodically remove expired sessions and unreferenced uploads older than the retention window."""

    def __init__(
        self,
        store: SessionStore,
        image_store: Optional[ImageStore] = None,
        upload_retention_seconds: int = 86_400,
    ) -> None:
        """
        Args:
            store: Session store whose expired records are swept.
            image_store: Optional image store whose old files are pruned.
            upload_retention_seconds: Age threshold in seconds for uploaded files.
        """
        self.store = store
        self.image_store = image_store
        self.upload_retention_seconds = upload_retention_seconds

    async def sweep_once(self) -> int:
        """Run one cleanup pass and return the number of sessions removed."""
        removed = await self.store.sweep()
        if removed:
            LOGGER.info("Cleaned up %d expired session(s)", removed)
        if self.image_store is not None:
            # Files of live sessions stay even past the retention window.
            live_refs = await self.store.live_file_refs()
            await self.image_store.prune_older_than(self.upload_retention_seconds, keep=live_refs)
        return removed

    async def run_periodic_cleanup(self, interval_seconds: int = 3_600) -> None:
        """
        Repeatedly sweep at the given interval until cancelled.

        Args:
            interval_seconds: Seconds to sleep between cleanup runs.
        """
        while True:
            try:
                await asyncio.sleep(interval_seconds)
                await self.sweep_once()
            except asyncio.CancelledError:
                break
            except Exception:
                # Keep the loop alive; the next tick retries.
                LOGGER.exception("Session sweep failed")
