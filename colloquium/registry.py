"""
FILEPATH: colloquium/registry.py
PROJECT: Colloquium Bot Framework
COMPONENT: Bot Registry

LICENSE: Apache-2.0
AUTHOR: Colloquium Contributors

DESCRIPTION:
  In-memory mapping from bot id to BotDefinition. Registration replaces the whole
  record (last registration wins), so readers never observe a half-updated bot.
  The registry knows nothing about how definitions were loaded.

VERSION: 1.0.0

CREATED: 2026-10-19
"""

import logging
from typing import Dict, List, Optional

from .models import BotDefinition

logger = logging.getLogger(__name__)


class BotRegistry:
    def __init__(self):
        self._bots: Dict[str, BotDefinition] = {}

    def register(self, bot: BotDefinition) -> None:
        replaced = bot.id in self._bots
        # Copy-on-write keeps concurrent readers on a consistent snapshot
        bots = dict(self._bots)
        bots[bot.id] = bot
        self._bots = bots
        logger.info(f"{'Re-registered' if replaced else 'Registered'} bot {bot.id} v{bot.version}")

    def unregister(self, bot_id: str) -> Optional[BotDefinition]:
        bots = dict(self._bots)
        removed = bots.pop(bot_id, None)
        self._bots = bots
        return removed

    def get(self, bot_id: str) -> Optional[BotDefinition]:
        bot = self._bots.get(bot_id)
        if bot is None:
            lowered = bot_id.lower()
            bot = next((b for b in self._bots.values() if b.id.lower() == lowered), None)
        return bot

    def list(self) -> List[BotDefinition]:
        return list(self._bots.values())

    def subscribers(self, event_name: str) -> List[BotDefinition]:
        """Bots that declare a handler for the given event."""
        return [b for b in self._bots.values() if b.handles_event(event_name)]

    def search(self, keyword: str) -> List[BotDefinition]:
        keyword_lower = keyword.lower()
        return [
            b
            for b in self._bots.values()
            if keyword_lower in b.id.lower()
            or keyword_lower in b.name.lower()
            or keyword_lower in b.description.lower()
            or any(keyword_lower in k.lower() for k in b.keywords)
        ]

    def __contains__(self, bot_id: str) -> bool:
        return self.get(bot_id) is not None

    def __len__(self) -> int:
        return len(self._bots)
