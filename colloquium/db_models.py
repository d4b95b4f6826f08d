"""
FilePath: "/colloquium/db_models.py"
Project: Colloquium Bot Framework
Description: SQLAlchemy Database Models (Tables).
Author: "Colloquium Contributors"
Date created: "19/10/2026"
Version: "1.0.0"
"""

from datetime import datetime
from typing import Any, Dict, List, Optional

from sqlalchemy import JSON, Boolean, DateTime, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from .database import Base


# --- INSTALLATION MODEL ---
class BotInstallationRecord(Base):
    __tablename__ = "bot_installations"

    bot_id: Mapped[str] = mapped_column(String(100), primary_key=True)
    is_enabled: Mapped[bool] = mapped_column(Boolean, default=True)
    is_default: Mapped[bool] = mapped_column(Boolean, default=False)
    is_required: Mapped[bool] = mapped_column(Boolean, default=False)
    config: Mapped[Dict[str, Any]] = mapped_column(JSON, default=dict)
    yaml_config: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    # NULL grants every permission the bot declares
    permissions: Mapped[Optional[List[str]]] = mapped_column(JSON, nullable=True)

    installed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    uninstalled_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
