# FilePath: "/bots/editorial/__init__.py"
# Project: Colloquium Bot Framework
# Description: Editorial bot plugin. `plugin` builds the BotPlugin from the bundled manifest.
# Author: "Colloquium Contributors"
# Date created: "19/10/2026"
# Version: "v.1.0.0"

import os

from colloquium.plugins import BotPlugin, load_manifest

from .bot import BOT_ID
from .bot import bot as definition

PLUGIN_DIR = os.path.dirname(os.path.abspath(__file__))


def plugin() -> BotPlugin:
    return BotPlugin(manifest=load_manifest(PLUGIN_DIR), bot=definition)


__all__ = ["BOT_ID", "definition", "plugin"]
