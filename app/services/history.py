import logging
import uuid
from datetime import datetime, timezone
from typing import List

from pydantic import ValidationError
from redis.exceptions import RedisError

from app.exceptions.scan import StorageUnavailable
from app.schemas.history import HistoryItem
from app.schemas.scan import AnalysisResult, SubjectKind
from app.services.redis_manager import RedisManager

logger = logging.getLogger(__name__)


class HistoryStore:
    """
    Per-identity, newest-first log of saved diagnoses.

    Each identity owns one Redis list under `<namespace>:history:<identity>`.
    Inserts go to the head and the list is trimmed to `limit` in the same
    MULTI/EXEC block, so the cap holds even with several writers on one identity.
    """

    def __init__(self, manager: RedisManager, limit: int = 20):
        self.manager = manager
        self.limit = limit

    def _get_history_key(self, identity: str) -> str:
        """Generate Redis key for an identity's history"""
        return self.manager.key("history", identity)

    async def save(self, identity: str, subject_kind: SubjectKind, thumbnail: str,
                   result: AnalysisResult) -> HistoryItem:
        item = HistoryItem(
            id=uuid.uuid4().hex,
            created_at=datetime.now(timezone.utc),
            subject_kind=subject_kind,
            thumbnail=thumbnail,
            result=result
        )
        key = self._get_history_key(identity)
        redis = self.manager.client()

        try:
            async with redis.pipeline(transaction=True) as pipe:
                pipe.lpush(key, item.model_dump_json())
                pipe.ltrim(key, 0, self.limit - 1)
                await pipe.execute()
        except RedisError as e:
            logger.error(f"History save failed for {identity}: {e}")
            raise StorageUnavailable(f"History save failed: {e}") from e

        logger.info(f"💾 Saved history item {item.id} for {identity}")
        return item

    async def list(self, identity: str) -> List[HistoryItem]:
        key = self._get_history_key(identity)
        redis = self.manager.client()

        try:
            raw_items = await redis.lrange(key, 0, self.limit - 1)
        except RedisError as e:
            logger.error(f"History read failed for {identity}: {e}")
            raise StorageUnavailable(f"History read failed: {e}") from e

        items = []
        for raw in raw_items:
            try:
                items.append(HistoryItem.model_validate_json(raw))
            except ValidationError:
                logger.warning(f"Skipping unreadable history entry for {identity}")
        return items

    async def delete(self, identity: str, item_id: str) -> None:
        """Remove one item. Unknown or already-deleted ids are a no-op."""
        key = self._get_history_key(identity)
        redis = self.manager.client()

        try:
            for raw in await redis.lrange(key, 0, -1):
                try:
                    entry_id = HistoryItem.model_validate_json(raw).id
                except ValidationError:
                    continue
                if entry_id == item_id:
                    # LREM by exact value, so a concurrent delete of the same entry is harmless
                    await redis.lrem(key, 1, raw)
                    logger.info(f"🗑️ Deleted history item {item_id} for {identity}")
                    return
        except RedisError as e:
            logger.error(f"History delete failed for {identity}: {e}")
            raise StorageUnavailable(f"History delete failed: {e}") from e
