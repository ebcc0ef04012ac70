# src/agentcycle/memory.py
"""
Episodic memory collaborator.

The agent only needs a fire-and-forget ``store(entry)``; anything that
implements ``MemoryStore`` can be injected.  ``InMemoryEpisodicStore`` is
the bundled default: a bounded append-only log that drops the oldest
entries once ``capacity`` is reached.
"""

from __future__ import annotations

import logging
from collections import deque
from typing import Deque, List, Optional, Protocol, runtime_checkable

from .models import MemoryEntry, MemoryType

logger = logging.getLogger(__name__)


@runtime_checkable
class MemoryStore(Protocol):
    """Protocol for memory backends."""

    async def store(self, entry: MemoryEntry) -> None: ...


class InMemoryEpisodicStore:
    """
    Bounded in-process memory log.

    Args:
        capacity: Maximum number of entries kept; the oldest are dropped.
    """

    def __init__(self, capacity: int = 100) -> None:
        self.capacity = capacity
        self._entries: Deque[MemoryEntry] = deque(maxlen=capacity)

    async def store(self, entry: MemoryEntry) -> None:
        self._entries.append(entry)
        logger.debug(
            "Stored %s memory %s (importance=%.2f)",
            entry.type.value,
            entry.id,
            entry.importance,
        )

    def entries(
        self,
        type: Optional[MemoryType] = None,
        min_importance: Optional[float] = None,
        limit: Optional[int] = None,
    ) -> List[MemoryEntry]:
        """
        Return stored entries, oldest first.

        Args:
            type: Only entries of this memory type.
            min_importance: Only entries at or above this importance.
            limit: Only the most recent *limit* matching entries.
        """
        matches = [
            e
            for e in self._entries
            if (type is None or e.type == type)
            and (min_importance is None or e.importance >= min_importance)
        ]
        if limit is not None:
            matches = matches[-limit:] if limit > 0 else []
        return matches

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
