# FilePath: "/colloquium/errors.py"
# Project: Colloquium Bot Framework
# Description: Exception hierarchy for the bot framework. Every error carries a stable
#              error_code so callers can branch on the kind without parsing messages.
# Author: "Colloquium Contributors"
# Date created: "19/10/2026"
# Version: "v.1.0.0"

from typing import Any, Dict, Optional


class BotFrameworkError(Exception):
    """Base exception for all bot framework errors."""

    def __init__(self, message: str, error_code: str = "BOT_FRAMEWORK_ERROR", details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.message, "code": self.error_code, "details": self.details}


# ===== Invocation Errors =====

class UnrecognizedCommandError(BotFrameworkError):
    """The addressed bot or command does not exist."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "UNRECOGNIZED", details)


class CommandValidationError(BotFrameworkError):
    """A recognized command was given missing or malformed parameters."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "VALIDATION_FAILED", details)


class BotAuthorizationError(BotFrameworkError):
    """Bot is not installed, disabled, or lacks a permission."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "AUTHORIZATION_DENIED", details)


class BotExecutionError(BotFrameworkError):
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "EXECUTION_FAILED", details)


class BotTimeoutError(BotFrameworkError):
    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, "TIMEOUT", details)


# ===== Lifecycle Errors =====

class PluginError(BotFrameworkError):
    """Raised by the plugin loader (INVALID_SOURCE, VALIDATION_FAILED, LOAD_FAILED, MODULE_LOAD_FAILED, NOT_LOADED)."""

    def __init__(self, message: str, error_code: str = "LOAD_FAILED", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, error_code, details)


class InstallationError(BotFrameworkError):
    def __init__(self, message: str, error_code: str = "INSTALLATION_ERROR", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, error_code, details)


class RequiredBotError(InstallationError):
    """Required bots cannot be uninstalled or disabled."""

    def __init__(self, bot_id: str, operation: str):
        super().__init__(
            f"Bot '{bot_id}' is required and cannot be {operation}",
            "BOT_REQUIRED",
            {"bot_id": bot_id, "operation": operation},
        )


# ===== Security Errors =====

class ServiceTokenError(BotFrameworkError):
    def __init__(self, message: str, error_code: str = "TOKEN_INVALID", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, error_code, details)


# ===== Action Errors =====

class ActionError(BotFrameworkError):
    """A single bot action could not be applied."""

    def __init__(self, message: str, error_code: str = "ACTION_FAILED", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, error_code, details)
