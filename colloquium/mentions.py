# FilePath: "/colloquium/mentions.py"
# Project: Colloquium Bot Framework
# Description: Finds @mentions in free-text chat content and classifies each one as a
#              bot reference or a user reference resolved against conversation participants.
# Author: "Colloquium Contributors"
# Date created: "19/10/2026"
# Version: "v.1.0.0"

import logging
import re
from typing import Dict, Iterable, List, Optional, Protocol

from .models import MentionType, Participant, ResolvedMention

logger = logging.getLogger(__name__)

MENTION_TOKEN = r"[A-Za-z0-9-]{3,30}"
# Not glued to a preceding word char; ended by whitespace, end, punctuation or another @
MENTION_START = r"(?<![\w@])@"
MENTION_END = r"(?=$|[\s.,!?;:()\[\]{}\"'@])"

MENTION_PATTERN = re.compile(rf"{MENTION_START}({MENTION_TOKEN}?){MENTION_END}")

BOT_SUFFIXES = ("-bot", "-checker")


class ParticipantDirectory(Protocol):
    async def list_participants(self, conversation_id: str) -> List[Participant]:
        ...


class BotDirectory(Protocol):
    def list(self) -> Iterable:
        ...


class MentionResolver:
    """
    Single-pass @mention scanner.

    A token is a bot mention when it matches a registered bot id or ends with a bot-like
    suffix. Everything else is a user mention, matched against the participant's stable
    username. Unresolved mentions are still returned (with no id) so they can be rendered.
    """

    def __init__(
        self,
        bots: BotDirectory,
        participants: Optional[ParticipantDirectory] = None,
        bot_suffixes: Iterable[str] = BOT_SUFFIXES,
    ):
        self.bots = bots
        self.participants = participants
        self.bot_suffixes = tuple(s.lower() for s in bot_suffixes)

    def _known_bots(self) -> Dict[str, object]:
        return {bot.id.lower(): bot for bot in self.bots.list()}

    def is_bot_token(self, token: str, known: Optional[Dict[str, object]] = None) -> bool:
        known = self._known_bots() if known is None else known
        lowered = token.lower()
        return lowered in known or lowered.endswith(self.bot_suffixes)

    def find_mentions(self, content: str) -> List[ResolvedMention]:
        """Classifies mentions without touching the participant list."""
        if not content:
            return []

        known = self._known_bots()
        mentions: List[ResolvedMention] = []
        last_end = -1

        for match in MENTION_PATTERN.finditer(content):
            # Never let two mentions claim the same characters
            if match.start() < last_end:
                continue
            token = match.group(1)
            last_end = match.end()

            if self.is_bot_token(token, known):
                bot = known.get(token.lower())
                mentions.append(
                    ResolvedMention(
                        original_text=match.group(0),
                        type=MentionType.BOT,
                        start=match.start(),
                        end=match.end(),
                        bot_id=bot.id if bot else None,
                        display_name=bot.name if bot else token,
                    )
                )
            else:
                mentions.append(
                    ResolvedMention(
                        original_text=match.group(0),
                        type=MentionType.USER,
                        start=match.start(),
                        end=match.end(),
                        display_name=token,
                    )
                )

        return mentions

    async def resolve_mentions(self, content: str, conversation_id: Optional[str]) -> List[ResolvedMention]:
        mentions = self.find_mentions(content)
        user_mentions = [m for m in mentions if m.type == MentionType.USER]
        if not user_mentions or not self.participants or not conversation_id:
            return mentions

        participants = await self.participants.list_participants(conversation_id)
        by_handle = {p.username.lower(): p for p in participants if p.username}

        for mention in user_mentions:
            participant = by_handle.get((mention.display_name or "").lower())
            if participant:
                mention.user_id = participant.user_id
                mention.display_name = participant.name or participant.username
            else:
                logger.debug(f"Unresolved user mention {mention.original_text} in conversation {conversation_id}")

        return mentions

    def bot_mentions(self, mentions: Iterable[ResolvedMention]) -> List[ResolvedMention]:
        return [m for m in mentions if m.type == MentionType.BOT]
