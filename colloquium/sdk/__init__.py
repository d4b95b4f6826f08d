# FilePath: "/colloquium/sdk/__init__.py"
# Project: Colloquium Bot Framework
# Description: Client surface bots use to call back into the host API.
# Author: "Colloquium Contributors"

from .client import BotClient, create_bot_client
from .http import BotApiError, BotHttpClient

__all__ = ["BotClient", "create_bot_client", "BotApiError", "BotHttpClient"]
