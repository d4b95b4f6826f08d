"""
FILEPATH: colloquium/plugins.py
PROJECT: Colloquium Bot Framework
COMPONENT: Plugin Loader

LICENSE: Apache-2.0
AUTHOR: Colloquium Contributors

DESCRIPTION:
  Loads bot plugins (manifest + bot definition), validates the plugin contract and
  feeds accepted bots into the BotRegistry. Discovery is pluggable through PluginSource:
  a dotted module path, a plugin directory with manifest.yaml, or a pre-built object.
  A plugin that fails validation is rejected before it becomes visible in the registry.

VERSION: 1.0.0

CREATED: 2026-10-19
"""

import importlib
import inspect
import logging
import os
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from .errors import PluginError
from .models import BotDefinition, BotPermission
from .registry import BotRegistry

logger = logging.getLogger(__name__)

SEMVER_PATTERN = r"^\d+\.\d+\.\d+$"
MANIFEST_FILE = "manifest.yaml"
DEFAULT_CONFIG_FILE = "default-config.yaml"


# ==========================================
# Manifest
# ==========================================
class BotCategory(str, Enum):
    EDITORIAL = "editorial"
    ANALYSIS = "analysis"
    FORMATTING = "formatting"
    QUALITY = "quality"
    INTEGRATION = "integration"
    UTILITY = "utility"


class PluginAuthor(BaseModel):
    name: str
    email: Optional[str] = None
    url: Optional[str] = None


class ColloquiumSection(BaseModel):
    """Framework-specific part of the manifest."""

    bot_id: str = Field(pattern=r"^[a-z0-9\-]+$")
    api_version: int = Field(default=1, ge=1)
    permissions: List[str] = Field(default_factory=list)
    is_default: bool = False
    is_required: bool = False
    category: BotCategory = BotCategory.UTILITY
    supports_file_uploads: bool = False
    default_config: Dict[str, Any] = Field(default_factory=dict)

    @field_validator("permissions")
    @classmethod
    def check_permissions(cls, value: List[str]) -> List[str]:
        unknown = [p for p in value if p not in BotPermission.values()]
        if unknown:
            raise ValueError(f"unknown permissions: {', '.join(unknown)}")
        return value


class PluginManifest(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    version: str = Field(pattern=SEMVER_PATTERN)
    description: str = Field(min_length=1, max_length=500)
    author: PluginAuthor
    license: str = "MIT"
    keywords: List[str] = Field(default_factory=list)
    homepage: Optional[str] = None
    repository: Optional[str] = None
    # Module holding the bot, used by DirectoryPluginSource
    entry: Optional[str] = None
    colloquium: ColloquiumSection


def load_manifest(path: str) -> PluginManifest:
    """
    Reads a manifest.yaml (or the directory containing one). A sibling
    default-config.yaml is merged under colloquium.default_config.
    """
    manifest_path = os.path.join(path, MANIFEST_FILE) if os.path.isdir(path) else path
    if not os.path.exists(manifest_path):
        raise PluginError(f"Manifest not found at: {manifest_path}", "INVALID_SOURCE")

    with open(manifest_path, "r", encoding="utf-8") as f:
        raw = yaml.safe_load(f) or {}

    defaults_path = os.path.join(os.path.dirname(manifest_path), DEFAULT_CONFIG_FILE)
    if os.path.exists(defaults_path):
        with open(defaults_path, "r", encoding="utf-8") as f:
            defaults = yaml.safe_load(f) or {}
        section = raw.setdefault("colloquium", {})
        section["default_config"] = {**defaults, **(section.get("default_config") or {})}

    try:
        return PluginManifest.model_validate(raw)
    except ValidationError as e:
        raise PluginError(
            f"Invalid plugin manifest {manifest_path}: {e.error_count()} error(s)",
            "VALIDATION_FAILED",
            {"errors": [err["msg"] for err in e.errors()]},
        ) from e


# ==========================================
# Plugin
# ==========================================
LifecycleHook = Callable[[], Any]


@dataclass
class BotPlugin:
    manifest: PluginManifest
    bot: BotDefinition
    activate: Optional[LifecycleHook] = None
    deactivate: Optional[LifecycleHook] = None

    @property
    def bot_id(self) -> str:
        return self.bot.id

    @property
    def default_config(self) -> Dict[str, Any]:
        return dict(self.manifest.colloquium.default_config)


def validate_plugin(plugin: Any) -> List[str]:
    """Returns every contract violation found in the plugin (empty when valid)."""
    if not isinstance(plugin, BotPlugin):
        return [f"expected BotPlugin, got {type(plugin).__name__}"]

    violations: List[str] = []
    bot = plugin.bot
    manifest = plugin.manifest

    if not isinstance(bot, BotDefinition):
        return [f"plugin bot must be a BotDefinition, got {type(bot).__name__}"]

    if bot.id != manifest.colloquium.bot_id:
        violations.append(f"bot id '{bot.id}' does not match manifest bot id '{manifest.colloquium.bot_id}'")
    if not bot.name:
        violations.append("bot must have a name")
    if bot.version != manifest.version:
        violations.append(f"bot version {bot.version} does not match manifest version {manifest.version}")
    if not bot.commands and not bot.events:
        violations.append("bot must declare at least one command or event handler")

    undeclared = sorted(bot.permissions - set(manifest.colloquium.permissions))
    if undeclared:
        violations.append(f"bot permissions not declared in manifest: {', '.join(undeclared)}")

    unknown = sorted(bot.permissions - BotPermission.values())
    if unknown:
        violations.append(f"unknown permissions: {', '.join(unknown)}")

    seen = set()
    for command in bot.commands:
        lowered = command.name.lower()
        if not command.name:
            violations.append("command without a name")
        elif lowered in seen:
            violations.append(f"duplicate command name '{command.name}'")
        seen.add(lowered)

        if not command.description:
            violations.append(f"command '{command.name}' must have a description")
        if not callable(command.execute):
            violations.append(f"command '{command.name}' execute must be callable")

        excess = sorted(command.permissions - bot.permissions)
        if excess:
            violations.append(
                f"command '{command.name}' requires permissions the bot does not declare: {', '.join(excess)}"
            )

    for event_name, handler in bot.events.items():
        if not callable(handler):
            violations.append(f"event handler for '{event_name}' must be callable")

    for hook_name in ("activate", "deactivate"):
        hook = getattr(plugin, hook_name)
        if hook is not None and not callable(hook):
            violations.append(f"{hook_name} must be callable if provided")

    return violations


# ==========================================
# Plugin Sources
# ==========================================
class PluginSource:
    """Produces a BotPlugin. Subclasses decide where it comes from."""

    async def load(self) -> BotPlugin:
        raise NotImplementedError

    def describe(self) -> str:
        return self.__class__.__name__


class StaticPluginSource(PluginSource):
    def __init__(self, plugin: BotPlugin):
        self.plugin = plugin

    async def load(self) -> BotPlugin:
        return self.plugin

    def describe(self) -> str:
        return f"static:{getattr(self.plugin, 'bot_id', '?')}"


class ModulePluginSource(PluginSource):
    """Imports a module and reads its `plugin` attribute (a BotPlugin or a factory returning one)."""

    def __init__(self, module_path: str, attribute: str = "plugin"):
        self.module_path = module_path
        self.attribute = attribute

    async def load(self) -> BotPlugin:
        try:
            module = importlib.import_module(self.module_path)
        except ImportError as e:
            raise PluginError(
                f"Could not import plugin module {self.module_path}: {e}",
                "MODULE_LOAD_FAILED",
                {"module": self.module_path},
            ) from e

        candidate = getattr(module, self.attribute, None)
        if candidate is None:
            raise PluginError(
                f"Module {self.module_path} has no '{self.attribute}' attribute",
                "INVALID_SOURCE",
                {"module": self.module_path},
            )
        if callable(candidate) and not isinstance(candidate, BotPlugin):
            candidate = candidate()
            if inspect.isawaitable(candidate):
                candidate = await candidate
        return candidate

    def describe(self) -> str:
        return f"module:{self.module_path}"


class DirectoryPluginSource(PluginSource):
    """A directory holding manifest.yaml whose `entry` names the module exposing `bot`."""

    def __init__(self, path: str):
        self.path = path

    async def load(self) -> BotPlugin:
        if not os.path.isdir(self.path):
            raise PluginError(f"Plugin directory not found: {self.path}", "INVALID_SOURCE")

        manifest = load_manifest(self.path)
        if not manifest.entry:
            raise PluginError(f"Manifest in {self.path} does not declare an entry module", "INVALID_SOURCE")

        try:
            module = importlib.import_module(manifest.entry)
        except ImportError as e:
            raise PluginError(
                f"Could not import plugin entry {manifest.entry}: {e}", "MODULE_LOAD_FAILED"
            ) from e

        bot = getattr(module, "bot", None)
        if bot is None:
            raise PluginError(f"Entry module {manifest.entry} exposes no 'bot'", "INVALID_SOURCE")

        return BotPlugin(
            manifest=manifest,
            bot=bot,
            activate=getattr(module, "activate", None),
            deactivate=getattr(module, "deactivate", None),
        )

    def describe(self) -> str:
        return f"directory:{self.path}"


def source_from_spec(spec: str) -> PluginSource:
    """'path/to/dir' -> DirectoryPluginSource, 'package.module' -> ModulePluginSource."""
    if os.path.isdir(spec):
        return DirectoryPluginSource(spec)
    return ModulePluginSource(spec)


# ==========================================
# Loader
# ==========================================
async def _run_hook(hook: Optional[LifecycleHook]) -> None:
    if hook is None:
        return
    result = hook()
    if inspect.isawaitable(result):
        await result


class PluginLoader:
    """Validates plugins and registers their bots. Keeps loaded plugins by bot id."""

    def __init__(self, registry: BotRegistry, audit_logger=None):
        self.registry = registry
        self.audit_logger = audit_logger
        self._plugins: Dict[str, BotPlugin] = {}

    async def _read(self, source: PluginSource) -> BotPlugin:
        try:
            return await source.load()
        except PluginError:
            raise
        except Exception as e:
            raise PluginError(f"Failed to load plugin from {source.describe()}: {e}", "LOAD_FAILED") from e

    async def load_plugin(self, source: PluginSource) -> BotDefinition:
        plugin = await self._read(source)

        violations = validate_plugin(plugin)
        if violations:
            logger.error(f"Plugin from {source.describe()} rejected: {'; '.join(violations)}")
            await self._audit("PLUGIN_REJECTED", getattr(getattr(plugin, "bot", None), "id", "unknown"),
                              {"source": source.describe(), "violations": violations}, success=False)
            raise PluginError(
                f"Plugin validation failed: {'; '.join(violations)}",
                "VALIDATION_FAILED",
                {"violations": violations, "source": source.describe()},
            )

        try:
            await _run_hook(plugin.activate)
        except Exception as e:
            raise PluginError(f"Plugin {plugin.bot_id} failed to activate: {e}", "LOAD_FAILED") from e

        self._plugins[plugin.bot_id] = plugin
        self.registry.register(plugin.bot)
        logger.info(f"Loaded plugin {plugin.manifest.name} ({plugin.bot_id}) from {source.describe()}")
        await self._audit("PLUGIN_LOADED", plugin.bot_id, {"source": source.describe(), "version": plugin.bot.version})
        return plugin.bot

    async def load_all(self, sources: Iterable[PluginSource]) -> List[BotDefinition]:
        """Loads every source; a broken plugin is logged and skipped."""
        loaded: List[BotDefinition] = []
        for source in sources:
            try:
                loaded.append(await self.load_plugin(source))
            except PluginError as e:
                logger.error(f"Skipping plugin {source.describe()}: {e} [{e.error_code}]")
        return loaded

    async def unload(self, bot_id: str) -> None:
        plugin = self._plugins.get(bot_id)
        if plugin is None:
            raise PluginError(f"Plugin {bot_id} is not loaded", "NOT_LOADED", {"bot_id": bot_id})

        try:
            await _run_hook(plugin.deactivate)
        except Exception as e:
            logger.error(f"Plugin {bot_id} deactivate hook failed: {e}", exc_info=True)

        del self._plugins[bot_id]
        self.registry.unregister(bot_id)
        logger.info(f"Unloaded plugin {bot_id}")
        await self._audit("PLUGIN_UNLOADED", bot_id, {})

    async def reload(self, source: PluginSource) -> BotDefinition:
        """Loads a fresh copy; the registry entry is replaced only if the new copy validates."""
        plugin = await self._read(source)
        previous = self._plugins.get(getattr(plugin, "bot_id", ""))
        bot = await self.load_plugin(StaticPluginSource(plugin))
        if previous is not None and previous is not plugin:
            try:
                await _run_hook(previous.deactivate)
            except Exception as e:
                logger.error(f"Deactivate of replaced plugin {bot.id} failed: {e}", exc_info=True)
        return bot

    def get_plugin(self, bot_id: str) -> Optional[BotPlugin]:
        return self._plugins.get(bot_id)

    def list_plugins(self) -> List[BotPlugin]:
        return list(self._plugins.values())

    async def _audit(self, event_type: str, bot_id: str, details: Dict[str, Any], success: bool = True) -> None:
        if self.audit_logger:
            await self.audit_logger.log_bot_event(event_type, bot_id, "system", details, success)
