# FilePath: "/colloquium/storage.py"
# Project: Colloquium Bot Framework
# Description: Key-value storage for bots, scoped by (bot id, manuscript id).
#              Backs the /api/bot-storage routes used by the SDK storage client.
# Author: "Colloquium Contributors"
# Date created: "19/10/2026"
# Version: "v.1.0.0"

import asyncio
import copy
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from .models import utcnow

Scope = Tuple[str, str]


@dataclass
class StoredValue:
    key: str
    value: Any
    updated_at: datetime = field(default_factory=utcnow)


class BotStorage:
    """
    Handles per-bot, per-manuscript key-value storage.

    Current Implementation: In-Memory (Dict)
    """

    def __init__(self):
        self._values: Dict[Scope, Dict[str, StoredValue]] = {}
        self._lock = asyncio.Lock()

    async def get(self, bot_id: str, manuscript_id: str, key: str) -> Optional[StoredValue]:
        stored = self._values.get((bot_id, manuscript_id), {}).get(key)
        return copy.deepcopy(stored) if stored else None

    async def set(self, bot_id: str, manuscript_id: str, key: str, value: Any) -> StoredValue:
        stored = StoredValue(key=key, value=copy.deepcopy(value))
        async with self._lock:
            self._values.setdefault((bot_id, manuscript_id), {})[key] = stored
        return stored

    async def delete(self, bot_id: str, manuscript_id: str, key: str) -> bool:
        """Returns False when the key did not exist."""
        async with self._lock:
            return self._values.get((bot_id, manuscript_id), {}).pop(key, None) is not None

    async def list(self, bot_id: str, manuscript_id: str) -> List[StoredValue]:
        return sorted(self._values.get((bot_id, manuscript_id), {}).values(), key=lambda s: s.key)
