from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class OrphanedBlob:
    path: str
    owner_id: int
    reason: str
    recorded_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


class OrphanRegistry:
    """Blobs left on disk because their compensating delete failed.

    A reconciliation job can ``drain()`` the registry and retry the deletes.
    """

    def __init__(self) -> None:
        self._pending: list[OrphanedBlob] = []

    def record(self, path: str, owner_id: int, reason: str) -> OrphanedBlob:
        orphan = OrphanedBlob(path=path, owner_id=owner_id, reason=reason)
        self._pending.append(orphan)
        logger.error(f"[orphans] Orphaned blob {path} (owner {owner_id}): {reason}")
        return orphan

    def pending(self) -> list[OrphanedBlob]:
        return list(self._pending)

    def drain(self) -> list[OrphanedBlob]:
        drained, self._pending = self._pending, []
        return drained
