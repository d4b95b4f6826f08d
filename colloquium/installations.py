# FilePath: "/colloquium/installations.py"
# Project: Colloquium Bot Framework
# Description: Tracks which bots are installed, enabled and configured for this deployment.
#              The InstallationManager is the authority the executor consults before any
#              invocation. Storage is swappable: in-memory dict or SQLAlchemy table.
# Author: "Colloquium Contributors"
# Date created: "19/10/2026"
# Version: "v.1.0.0"

import asyncio
import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

import yaml
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from .db_models import BotInstallationRecord
from .errors import InstallationError, RequiredBotError
from .models import BotInstallation, utcnow
from .registry import BotRegistry
from .security.policy import PermissionDecision, evaluate_installation

logger = logging.getLogger(__name__)

ConfigInput = Union[Mapping[str, Any], str, None]


# ==========================================
# Config helpers
# ==========================================
def parse_config(config: ConfigInput) -> Tuple[Dict[str, Any], Optional[str]]:
    """Accepts a mapping or YAML text. Returns (config dict, original yaml text or None)."""
    if config is None:
        return {}, None
    if isinstance(config, str):
        try:
            loaded = yaml.safe_load(config) if config.strip() else {}
        except yaml.YAMLError as e:
            raise InstallationError(f"Invalid YAML configuration: {e}", "INVALID_CONFIG") from e
        if loaded is None:
            loaded = {}
        if not isinstance(loaded, dict):
            raise InstallationError("YAML configuration must be a mapping", "INVALID_CONFIG")
        return loaded, config
    if isinstance(config, Mapping):
        return dict(config), None
    raise InstallationError(f"Unsupported configuration type: {type(config).__name__}", "INVALID_CONFIG")


def deep_merge(base: Mapping[str, Any], override: Mapping[str, Any]) -> Dict[str, Any]:
    merged = dict(base)
    for key, value in override.items():
        if isinstance(value, Mapping) and isinstance(merged.get(key), Mapping):
            merged[key] = deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


# ==========================================
# Stores
# ==========================================
class InstallationStore:
    """Persistence contract for BotInstallation records, keyed by bot id."""

    async def get(self, bot_id: str) -> Optional[BotInstallation]:
        raise NotImplementedError

    async def save(self, installation: BotInstallation) -> None:
        raise NotImplementedError

    async def list(self) -> List[BotInstallation]:
        raise NotImplementedError


class InMemoryInstallationStore(InstallationStore):
    """
    Handles installation storage.

    Current Implementation: In-Memory (Dict)
    """

    def __init__(self):
        self._installations: Dict[str, BotInstallation] = {}
        self._lock = asyncio.Lock()

    async def get(self, bot_id: str) -> Optional[BotInstallation]:
        return self._installations.get(bot_id)

    async def save(self, installation: BotInstallation) -> None:
        async with self._lock:
            self._installations[installation.bot_id] = installation

    async def list(self) -> List[BotInstallation]:
        return sorted(self._installations.values(), key=lambda i: i.bot_id)


class SqlInstallationStore(InstallationStore):
    """Stores installations in the bot_installations table."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    @staticmethod
    def _to_model(record: BotInstallationRecord) -> BotInstallation:
        return BotInstallation(
            bot_id=record.bot_id,
            is_enabled=record.is_enabled,
            is_default=record.is_default,
            is_required=record.is_required,
            config=dict(record.config or {}),
            yaml_config=record.yaml_config,
            permissions=list(record.permissions) if record.permissions is not None else None,
            installed_at=record.installed_at,
            updated_at=record.updated_at,
            uninstalled_at=record.uninstalled_at,
        )

    async def get(self, bot_id: str) -> Optional[BotInstallation]:
        async with self.session_factory() as session:
            record = await session.get(BotInstallationRecord, bot_id)
            return self._to_model(record) if record else None

    async def save(self, installation: BotInstallation) -> None:
        async with self.session_factory() as session:
            async with session.begin():
                await session.merge(BotInstallationRecord(**installation.model_dump()))

    async def list(self) -> List[BotInstallation]:
        async with self.session_factory() as session:
            result = await session.execute(select(BotInstallationRecord).order_by(BotInstallationRecord.bot_id))
            return [self._to_model(r) for r in result.scalars().all()]


# ==========================================
# Manager
# ==========================================
class BotInstallationManager:
    """Install / uninstall / enable / configure bots. Required bots refuse removal and disabling."""

    def __init__(self, store: InstallationStore, registry: BotRegistry, plugin_loader=None, audit_logger=None):
        self.store = store
        self.registry = registry
        self.plugin_loader = plugin_loader
        self.audit_logger = audit_logger
        self._write_lock = asyncio.Lock()

    async def list(self, include_uninstalled: bool = False) -> List[BotInstallation]:
        installations = await self.store.list()
        if include_uninstalled:
            return installations
        return [i for i in installations if i.is_installed]

    async def get(self, bot_id: str) -> Optional[BotInstallation]:
        return await self.store.get(bot_id)

    async def _require(self, bot_id: str) -> BotInstallation:
        installation = await self.store.get(bot_id)
        if installation is None or not installation.is_installed:
            raise InstallationError(f"Bot {bot_id} is not installed", "NOT_INSTALLED", {"bot_id": bot_id})
        return installation

    def _plugin_defaults(self, bot_id: str) -> Tuple[Dict[str, Any], bool, bool]:
        plugin = self.plugin_loader.get_plugin(bot_id) if self.plugin_loader else None
        if plugin is None:
            return {}, False, False
        section = plugin.manifest.colloquium
        return plugin.default_config, section.is_default, section.is_required

    async def install(
        self,
        bot_id: str,
        initial_config: ConfigInput = None,
        permissions: Optional[List[str]] = None,
        actor: Optional[str] = None,
    ) -> BotInstallation:
        if bot_id not in self.registry:
            raise InstallationError(f"Bot {bot_id} is not available", "BOT_NOT_FOUND", {"bot_id": bot_id})

        supplied, yaml_text = parse_config(initial_config)
        defaults, is_default, is_required = self._plugin_defaults(bot_id)

        async with self._write_lock:
            existing = await self.store.get(bot_id)
            if existing is not None and existing.is_installed:
                raise InstallationError(f"Bot {bot_id} is already installed", "ALREADY_INSTALLED", {"bot_id": bot_id})

            now = utcnow()
            installation = BotInstallation(
                bot_id=bot_id,
                is_enabled=True,
                is_default=is_default,
                is_required=is_required,
                config=deep_merge(defaults, supplied),
                yaml_config=yaml_text,
                permissions=permissions,
                installed_at=existing.installed_at if existing else now,
                updated_at=now,
            )
            await self.store.save(installation)

        logger.info(f"Installed bot {bot_id}{' (reinstated)' if existing else ''}")
        await self._audit("BOT_INSTALLED", bot_id, actor, {"reinstated": existing is not None})
        return installation

    async def uninstall(self, bot_id: str, actor: Optional[str] = None) -> BotInstallation:
        """Soft uninstall: the record is kept, disabled and stamped with uninstalled_at."""
        async with self._write_lock:
            installation = await self._require(bot_id)
            if installation.is_required:
                raise RequiredBotError(bot_id, "uninstalled")
            now = utcnow()
            updated = installation.model_copy(update={"is_enabled": False, "uninstalled_at": now, "updated_at": now})
            await self.store.save(updated)

        logger.info(f"Uninstalled bot {bot_id}")
        await self._audit("BOT_UNINSTALLED", bot_id, actor, {})
        return updated

    async def set_enabled(self, bot_id: str, enabled: bool, actor: Optional[str] = None) -> BotInstallation:
        async with self._write_lock:
            installation = await self._require(bot_id)
            if not enabled and installation.is_required:
                raise RequiredBotError(bot_id, "disabled")
            if installation.is_enabled == enabled:
                return installation
            updated = installation.model_copy(update={"is_enabled": enabled, "updated_at": utcnow()})
            await self.store.save(updated)

        logger.info(f"Bot {bot_id} {'enabled' if enabled else 'disabled'}")
        await self._audit("BOT_ENABLED" if enabled else "BOT_DISABLED", bot_id, actor, {})
        return updated

    async def update_config(self, bot_id: str, config: ConfigInput, actor: Optional[str] = None) -> BotInstallation:
        """Replaces the stored config (YAML text or mapping)."""
        parsed, yaml_text = parse_config(config)
        async with self._write_lock:
            installation = await self._require(bot_id)
            updated = installation.model_copy(
                update={"config": parsed, "yaml_config": yaml_text, "updated_at": utcnow()}
            )
            await self.store.save(updated)

        logger.info(f"Updated configuration for bot {bot_id}")
        await self._audit("BOT_CONFIGURED", bot_id, actor, {"keys": sorted(parsed)})
        return updated

    async def install_defaults(self, plugins: Iterable) -> List[BotInstallation]:
        """Installs every default or required plugin that has no installation record yet.

        A record left behind by an uninstall counts: an operator removal survives restarts.
        """
        installed: List[BotInstallation] = []
        for plugin in plugins:
            section = plugin.manifest.colloquium
            if not (section.is_default or section.is_required):
                continue
            if await self.store.get(plugin.bot_id) is not None:
                continue
            try:
                installed.append(await self.install(plugin.bot_id, actor="system"))
            except InstallationError as e:
                logger.error(f"Failed to install default bot {plugin.bot_id}: {e}")
        return installed

    async def check_invocable(self, bot_id: str) -> PermissionDecision:
        return evaluate_installation(bot_id, await self.store.get(bot_id))

    async def _audit(self, event_type: str, bot_id: str, actor: Optional[str], details: Dict[str, Any]) -> None:
        if self.audit_logger:
            await self.audit_logger.log_bot_event(event_type, bot_id, actor, details)
