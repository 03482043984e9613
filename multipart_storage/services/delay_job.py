"""Deferred deletion of staged files, driven by a Redis sorted set scored by due time."""
import asyncio
import logging
import time
from datetime import timedelta
from pathlib import Path
from typing import List, Optional, Union

from redis.exceptions import RedisError

from multipart_storage.config import storage_config
from multipart_storage.core.config import StorageConfig
from multipart_storage.services.redis_service import RedisClientManager, redis_manager
from multipart_storage.utils.duration import format_duration, parse_duration
from multipart_storage.utils.file_utils import safe_remove
from multipart_storage.utils.logger import get_logger

logger: logging.Logger = get_logger(__name__)

DEFAULT_DELAY_DURATION = timedelta(minutes=10)


class StorageDelayJob:
    """
    Queue of filesystem paths to delete once their retention window elapses.

    Each path is a member of one sorted set; its score is the absolute due
    time, so re-adding a path reschedules it instead of duplicating it. A
    single background task per process claims and deletes due entries.
    """

    def __init__(self, manager: Optional[RedisClientManager] = None, config: Optional[StorageConfig] = None):
        self.redis_manager = manager or redis_manager
        self.config = config or storage_config
        self.queue = self.redis_manager.key("delay_job_queue")
        self.interval = self.config.delay_job_interval
        self._task: Optional[asyncio.Task] = None
        self._running = False

    def delay_duration(self) -> timedelta:
        """Configured retention window; unparsable values fall back to ten minutes."""
        try:
            return parse_duration(self.config.delay_delete_duration)
        except ValueError as e:
            logger.warning(
                "Invalid delay delete duration '%s' (%s), using %s",
                self.config.delay_delete_duration, e, format_duration(DEFAULT_DELAY_DURATION)
            )
            return DEFAULT_DELAY_DURATION

    def validity(self) -> str:
        return format_duration(self.delay_duration())

    async def add(self, file_path: Union[str, Path], duration: Optional[timedelta] = None) -> None:
        """Schedule file_path for deletion after duration (retention window by default)."""
        file_path = str(file_path)
        due = time.time() + (duration if duration is not None else self.delay_duration()).total_seconds()
        logger.debug("Add file path '%s' into delay job '%s'", file_path, self.queue)
        try:
            await self.redis_manager.client.zadd(self.queue, {file_path: due})
        except RedisError as e:
            logger.error("Add file path '%s' into delay job '%s' failed: %s", file_path, self.queue, e)

    async def remove(self, file_path: Union[str, Path]) -> None:
        """Cancel a pending deletion; unknown paths are ignored."""
        file_path = str(file_path)
        logger.debug("Remove file '%s' from delay job '%s'", file_path, self.queue)
        try:
            await self.redis_manager.client.zrem(self.queue, file_path)
        except RedisError as e:
            logger.error("Remove file '%s' from delay job '%s' failed: %s", file_path, self.queue, e)

    async def run_once(self, now: Optional[float] = None) -> List[str]:
        """
        Claim every due entry and delete its path.

        The range read and the range removal run in one MULTI/EXEC so an entry
        is claimed by exactly one tick. Claimed entries are consumed even when
        the deletion itself fails.

        Returns:
            The claimed paths.
        """
        now = time.time() if now is None else now
        try:
            async with self.redis_manager.client.pipeline(transaction=True) as pipe:
                pipe.zrangebyscore(self.queue, "-inf", now)
                pipe.zremrangebyscore(self.queue, "-inf", now)
                due_paths, _ = await pipe.execute()
        except RedisError as e:
            logger.error("Fetch delay job '%s' failed: %s", self.queue, e)
            return []

        for file_path in due_paths:
            logger.debug("Remove file '%s' by delay job '%s'", file_path, self.queue)
            # safe_remove logs its own failures
            await asyncio.to_thread(safe_remove, file_path)

        if due_paths:
            logger.info("Delay job '%s' claimed %d path(s)", self.queue, len(due_paths))
        return list(due_paths)

    def start(self) -> None:
        """Start the background loop; calling it twice is a no-op."""
        if self._running:
            return
        self._running = True
        self._task = asyncio.create_task(self._run())

    async def stop(self) -> None:
        self._running = False
        if self._task:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

    @property
    def running(self) -> bool:
        return self._running

    async def _run(self) -> None:
        logger.info("Delay job '%s' started, interval %ss", self.queue, self.interval)

        while self._running:
            try:
                await self.run_once()
                await asyncio.sleep(self.interval)
            except asyncio.CancelledError:
                break
            except Exception as e:
                logger.error(f"Delay job tick error: {e}")
                await asyncio.sleep(self.interval)

        logger.info("Delay job '%s' stopped", self.queue)


# Global delay job instance
delay_job = StorageDelayJob()
