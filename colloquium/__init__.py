"""
FilePath: "/colloquium/__init__.py"
Project: Colloquium Bot Framework
Description: Bot command & plugin framework for editorial workflows. Bots are
             addressed with @-mentions inside manuscript conversations, run in
             isolation and return messages plus domain actions.
Author: "Colloquium Contributors"
Date created: "19/10/2026"
Version: "1.0.0"
"""

__version__ = "1.0.0"
