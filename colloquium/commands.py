"""
FilePath: "/colloquium/commands.py"
Project: Colloquium Bot Framework
Component: Command Parser

DESCRIPTION:
  Turns mention text such as

      @bot-editorial release decision="revise" notes="Please address reviewer 2"

  into a ParsedCommand. The parser is pure: it only reads the bot snapshot handed to it.
  Unknown bots/commands are flagged with is_unrecognized; recognized commands with bad
  parameters carry validation_errors instead.

GRAMMAR:
  @<botId> <command> (key="quoted value" | key=bare | positional)*
  Quoted values may contain spaces and the escapes \\" and \\\\. Last duplicate key wins.
  Unknown keys are ignored. Bare positional tokens fill undeclared parameters in order.
"""

import logging
import math
import re
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from .help import help_command_for
from .mentions import MENTION_END, MENTION_START, MENTION_TOKEN
from .models import BotDefinition, CommandSpec, ParameterIssue, ParameterSpec, ParameterType, ParsedCommand

logger = logging.getLogger(__name__)

HELP_COMMAND = "help"

# Same token grammar as free-text mention scanning
MENTION_HEAD = re.compile(rf"{MENTION_START}(?P<bot>{MENTION_TOKEN}){MENTION_END}")

TOKEN_PATTERN = re.compile(
    r'(?P<key>[A-Za-z_][\w-]*)=(?:"(?P<qval>(?:[^"\\]|\\.)*)"|"(?P<oval>[\s\S]*)$|(?P<bval>[^\s"]*))'
    r'|"(?P<qpos>(?:[^"\\]|\\.)*)"'
    r'|(?P<bpos>\S+)'
)

_ESCAPE = re.compile(r"\\(.)")
_INTEGER = re.compile(r"^[+-]?\d+$")
_NEEDS_QUOTES = re.compile(r'[\s"\\=]')

TRUE_VALUES = {"true", "1", "yes"}
FALSE_VALUES = {"false", "0", "no"}

Token = Tuple[Optional[str], str, bool]  # (key, value, was_quoted)


# ===== Tokenizing =====

def _unescape(value: str) -> str:
    return _ESCAPE.sub(r"\1", value)


def tokenize(text: str) -> List[Token]:
    tokens: List[Token] = []
    for match in TOKEN_PATTERN.finditer(text):
        if match.group("key"):
            if match.group("qval") is not None:
                tokens.append((match.group("key"), _unescape(match.group("qval")), True))
            elif match.group("oval") is not None:
                # Unterminated quote swallows the rest of the line
                tokens.append((match.group("key"), _unescape(match.group("oval")), True))
            else:
                tokens.append((match.group("key"), match.group("bval") or "", False))
        elif match.group("qpos") is not None:
            tokens.append((None, _unescape(match.group("qpos")), True))
        else:
            tokens.append((None, match.group("bpos"), False))
    return tokens


# ===== Type Coercion =====

def coerce_value(param: ParameterSpec, value: Any) -> Any:
    """Converts a raw value to the parameter's declared type. Raises ValueError on failure."""
    if param.type == ParameterType.STRING:
        return value if isinstance(value, str) else str(value)

    if param.type == ParameterType.NUMBER:
        if isinstance(value, bool):
            raise ValueError("must be a number")
        if isinstance(value, (int, float)):
            number = value
        else:
            text = str(value).strip()
            if _INTEGER.match(text):
                return int(text)
            try:
                number = float(text)
            except ValueError:
                raise ValueError("must be a number") from None
        if not math.isfinite(number):
            raise ValueError("must be a finite number")
        return number

    if param.type == ParameterType.BOOLEAN:
        if isinstance(value, bool):
            return value
        lowered = str(value).strip().lower()
        if lowered in TRUE_VALUES:
            return True
        if lowered in FALSE_VALUES:
            return False
        raise ValueError("must be a boolean (true/false, yes/no, 1/0)")

    if param.type == ParameterType.ARRAY:
        if isinstance(value, (list, tuple)):
            items = [str(v) for v in value]
            # Arrays travel as comma-joined text, so items must survive a split
            if any("," in item or item != item.strip() or not item for item in items):
                raise ValueError("array items cannot be empty, contain commas or have surrounding spaces")
            return items
        return [item.strip() for item in str(value).split(",") if item.strip()]

    if param.type == ParameterType.ENUM:
        text = str(value)
        if text in param.enum_values:
            return text
        for allowed in param.enum_values:
            if allowed.lower() == text.lower():
                return allowed
        raise ValueError(f"must be one of: {', '.join(param.enum_values)}")

    raise ValueError(f"unsupported parameter type {param.type}")


def coerce_parameters(spec: CommandSpec, supplied: Mapping[str, Any]) -> Tuple[Dict[str, Any], List[ParameterIssue]]:
    """Applies coercion, defaults, required checks and custom validators."""
    declared = {p.name.lower(): p.name for p in spec.parameters}
    normalized: Dict[str, Any] = {}
    for key, value in supplied.items():
        name = declared.get(key.lower())
        if name is None:
            logger.debug(f"Ignoring unknown parameter '{key}' for command '{spec.name}'")
            continue
        normalized[name] = value

    parameters: Dict[str, Any] = {}
    issues: List[ParameterIssue] = []

    for param in spec.parameters:
        if param.name in normalized:
            try:
                value = coerce_value(param, normalized[param.name])
            except ValueError as e:
                issues.append(ParameterIssue(param.name, str(e)))
                continue
            if param.validator:
                problem = param.validator(value)
                if problem:
                    issues.append(ParameterIssue(param.name, problem))
                    continue
            parameters[param.name] = value
        elif param.has_default:
            parameters[param.name] = param.default_value
        elif param.required:
            issues.append(ParameterIssue(param.name, "is required"))

    return parameters, issues


# ===== Command Lookup =====

def resolve_command(bot: BotDefinition, name: str) -> Optional[CommandSpec]:
    """Finds a declared command; every bot implicitly answers 'help'."""
    command = bot.get_command(name)
    if command is None and name.lower() == HELP_COMMAND:
        command = help_command_for(bot)
    return command


def _bot_index(registered_bots: Union[Mapping[str, BotDefinition], Iterable[BotDefinition]]) -> Dict[str, BotDefinition]:
    bots = registered_bots.values() if isinstance(registered_bots, Mapping) else registered_bots
    return {bot.id.lower(): bot for bot in bots}


# ===== Parsing =====

def parse_message(
    raw_text: str,
    registered_bots: Union[Mapping[str, BotDefinition], Iterable[BotDefinition]],
    require_prefix: bool = False,
) -> Optional[ParsedCommand]:
    """
    Parses the first @mention in raw_text as a bot command.
    Returns None when the text holds no mention at all.
    """
    if not raw_text:
        return None

    text = raw_text.strip()
    head = MENTION_HEAD.search(text)
    if head is None or (require_prefix and head.start() != 0):
        return None

    mention_text = text[head.start():]
    bot_token = head.group("bot")
    tokens = tokenize(text[head.end():])

    command_name = ""
    if tokens and tokens[0][0] is None and not tokens[0][2]:
        command_name = tokens[0][1]
        tokens = tokens[1:]
    elif not tokens:
        command_name = HELP_COMMAND

    bot = _bot_index(registered_bots).get(bot_token.lower())
    if bot is None:
        logger.debug(f"Unrecognized bot '@{bot_token}'")
        return ParsedCommand(
            bot_id=bot_token,
            command=command_name,
            raw_text=mention_text,
            is_unrecognized=True,
            unrecognized_target="bot",
        )

    spec = resolve_command(bot, command_name) if command_name else None
    if spec is None:
        logger.debug(f"Unrecognized command '{command_name}' for bot '{bot.id}'")
        return ParsedCommand(
            bot_id=bot.id,
            command=command_name,
            raw_text=mention_text,
            is_unrecognized=True,
            unrecognized_target="command",
        )

    supplied: Dict[str, Any] = {}
    positional: List[str] = []
    for key, value, _quoted in tokens:
        if key is None:
            positional.append(value)
        else:
            supplied[key] = value

    supplied_lower = {k.lower() for k in supplied}
    open_params = [p for p in spec.parameters if p.name.lower() not in supplied_lower]
    for param, value in zip(open_params, positional):
        supplied[param.name] = value

    parameters, issues = coerce_parameters(spec, supplied)
    return ParsedCommand(
        bot_id=bot.id,
        command=spec.name,
        parameters=parameters,
        raw_text=mention_text,
        validation_errors=issues,
    )


def build_command(
    bot: Optional[BotDefinition], bot_id: str, command_name: str, parameters: Optional[Mapping[str, Any]] = None
) -> ParsedCommand:
    """Builds a ParsedCommand from structured input (API or bot-to-bot invocation)."""
    supplied = dict(parameters or {})
    if bot is None:
        parsed = ParsedCommand(bot_id=bot_id, command=command_name, is_unrecognized=True, unrecognized_target="bot")
        parsed.raw_text = render_command(parsed)
        return parsed

    spec = resolve_command(bot, command_name)
    if spec is None:
        parsed = ParsedCommand(bot_id=bot.id, command=command_name, is_unrecognized=True, unrecognized_target="command")
        parsed.raw_text = render_command(parsed)
        return parsed

    values, issues = coerce_parameters(spec, supplied)
    parsed = ParsedCommand(bot_id=bot.id, command=spec.name, parameters=values, validation_errors=issues)
    parsed.raw_text = render_command(parsed)
    return parsed


class CommandParser:
    """Binds parse_message to a live registry so callers always parse against the current snapshot."""

    def __init__(self, registry):
        self.registry = registry

    def parse_message(self, raw_text: str, require_prefix: bool = False) -> Optional[ParsedCommand]:
        return parse_message(raw_text, self.registry.list(), require_prefix=require_prefix)

    def build(self, bot_id: str, command_name: str, parameters: Optional[Mapping[str, Any]] = None) -> ParsedCommand:
        return build_command(self.registry.get(bot_id), bot_id, command_name, parameters)


# ===== Rendering =====

def render_value(value: Any) -> str:
    if isinstance(value, bool):
        text = "true" if value else "false"
    elif isinstance(value, (list, tuple)):
        text = ",".join(str(v) for v in value)
    else:
        text = str(value)

    if text == "" or _NEEDS_QUOTES.search(text):
        escaped = text.replace("\\", "\\\\").replace('"', '\\"')
        return f'"{escaped}"'
    return text


def render_command(parsed: ParsedCommand) -> str:
    """Canonical text form of a command; re-parsing it yields the same command."""
    parts = [f"@{parsed.bot_id}"]
    if parsed.command:
        parts.append(parsed.command)
    for key, value in parsed.parameters.items():
        if value is None:
            continue
        parts.append(f"{key}={render_value(value)}")
    return " ".join(parts)
