"""
Periodic snapshots of the user table with rotation
"""
import asyncio
import json
import logging
import time
from typing import Any, Callable, Dict, List, Optional

from userstore.db.kv_store import KeyValueStore

logger = logging.getLogger(__name__)


class BackupScheduler:
    """Writes timestamped snapshots on a fixed interval and keeps the newest few

    The snapshot callable must only read store state; the scheduler writes to
    its own key family and never touches the live table or indexes.
    """

    def __init__(
        self,
        kv: KeyValueStore,
        snapshot: Callable[[], Dict[str, Any]],
        key_prefix: str,
        interval_seconds: float = 300.0,
        retention: int = 3
    ):
        self.kv = kv
        self.snapshot = snapshot
        self.key_prefix = key_prefix
        self.interval_seconds = interval_seconds
        self.retention = retention
        self.is_running = False
        self._task: Optional[asyncio.Task] = None
        self._last_stamp = 0

    async def start(self):
        """Start the backup loop; restarts cleanly if already running"""
        if self.is_running:
            await self.stop()

        self.is_running = True
        self._task = asyncio.create_task(self._backup_loop())
        logger.info(f"Backup scheduler started (every {self.interval_seconds}s, keeping {self.retention})")

    async def stop(self):
        """Stop the backup loop; existing snapshots are kept"""
        if not self.is_running:
            return

        self.is_running = False
        if self._task and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        self._task = None
        logger.info("Backup scheduler stopped")

    async def _backup_loop(self):
        while self.is_running:
            await asyncio.sleep(self.interval_seconds)
            await self.create_backup()

    def _next_key(self) -> str:
        # Nanosecond stamps, forced strictly increasing and zero-padded so
        # lexical key order matches creation order
        stamp = max(time.time_ns(), self._last_stamp + 1)
        self._last_stamp = stamp
        return f"{self.key_prefix}{stamp:020d}"

    async def create_backup(self) -> Optional[str]:
        """Write one snapshot and rotate old ones; returns the new key"""
        try:
            data = self.snapshot()
            key = self._next_key()
            await self.kv.set(key, json.dumps(data))
            logger.info(f"Created backup {key} ({data.get('userCount', 0)} users)")
            await self.cleanup_old_backups()
            return key
        except Exception as e:
            logger.error(f"Error creating backup: {e}")
            return None

    async def list_backups(self) -> List[str]:
        """Backup keys, newest first"""
        keys = await self.kv.keys(self.key_prefix)
        return sorted(keys, reverse=True)

    async def cleanup_old_backups(self) -> int:
        """Delete all but the most recent ``retention`` backups"""
        stale = (await self.list_backups())[self.retention:]
        for key in stale:
            await self.kv.delete(key)
        if stale:
            logger.info(f"Removed {len(stale)} old backups")
        return len(stale)
