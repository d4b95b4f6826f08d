"""
FilePath: "/colloquium/security/audit.py"
Project: Colloquium Bot Framework
Component: Bot Audit Logger
Description: Writes structured JSON audit lines for bot invocations, installation
             lifecycle changes, plugin loads and action batches.
Author: "Colloquium Contributors"
Date created: "19/10/2026"
Version: "1.0.0"
"""

import json
import logging
import os
import uuid
from typing import Any, Dict, Optional

AUDIT_LOGGER_NAME = "colloquium.audit"


class AuditLogger:
    """
    Handles audit logging for bot events.
    Writes one JSON object per line to '<log_dir>/audit.log'.
    """

    def __init__(self, log_dir: str = "logs"):
        self.log_dir = log_dir
        self.log_file = os.path.join(log_dir, "audit.log")
        self.logger = logging.getLogger(AUDIT_LOGGER_NAME)
        self.logger.setLevel(logging.INFO)
        # Audit lines stay out of the console log
        self.logger.propagate = False

        if not any(getattr(h, "baseFilename", None) == os.path.abspath(self.log_file) for h in self.logger.handlers):
            os.makedirs(log_dir, exist_ok=True)
            handler = logging.FileHandler(self.log_file, encoding="utf-8")

            # %(message)s carries the JSON-dumped details object
            formatter = logging.Formatter(
                '{"timestamp": "%(asctime)s", "level": "%(levelname)s", '
                '"event_id": "%(event_id)s", "event_type": "%(event_type)s", '
                '"bot_id": "%(bot_id)s", "user_id": "%(user_id)s", '
                '"details": %(message)s}'
            )
            handler.setFormatter(formatter)
            self.logger.addHandler(handler)

    async def log_bot_event(
        self,
        event_type: str,
        bot_id: str,
        user_id: Optional[str],
        details: Dict[str, Any],
        success: bool = True,
    ) -> str:
        """
        Log a bot-related event.
        Returns the generated event_id.
        """
        event_id = str(uuid.uuid4())

        log_details = dict(details)
        log_details["success"] = success

        self.logger.info(
            json.dumps(log_details, default=str),
            extra={
                "event_id": event_id,
                "event_type": event_type,
                "bot_id": bot_id,
                "user_id": user_id or "system",
            },
        )

        return event_id

    def close(self) -> None:
        for handler in list(self.logger.handlers):
            if getattr(handler, "baseFilename", None) == os.path.abspath(self.log_file):
                handler.close()
                self.logger.removeHandler(handler)
