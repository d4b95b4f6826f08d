# FilePath: "/colloquium/help.py"
# Project: Colloquium Bot Framework
# Description: Generates markdown / plain-text help for bots and their commands.
#              Every bot answers "help" through help_command_for, even if it declares no help command.
# Author: "Colloquium Contributors"
# Date created: "19/10/2026"
# Version: "v.1.0.0"

import re
from typing import Any, Dict, List, Optional

from .models import BotDefinition, CommandSpec, ParameterSpec, ParameterType

_MARKDOWN = re.compile(r"(\*\*|`|^#+\s*)", re.MULTILINE)


def _format_parameter(param: ParameterSpec) -> str:
    details = [param.type.value, "required" if param.required else "optional"]
    if param.has_default:
        details.append(f"default: {param.default_value}")
    line = f"- **{param.name}** ({', '.join(details)})"
    if param.description:
        line += f": {param.description}"
    if param.type == ParameterType.ENUM and param.enum_values:
        line += f" One of: {', '.join(param.enum_values)}"
    return line


def format_command_help(bot: BotDefinition, command: CommandSpec) -> List[str]:
    lines = [f"### `{command.name}`", command.description, ""]
    lines.append(f"**Usage:** `{command.usage or f'@{bot.id} {command.name}'}`")
    if command.parameters:
        lines.append("")
        lines.append("**Parameters:**")
        lines.extend(_format_parameter(p) for p in command.parameters)
    if command.examples:
        lines.append("")
        lines.append("**Examples:**")
        lines.extend(f"- `{example}`" for example in command.examples)
    lines.append("")
    return lines


def _sections(bot: BotDefinition, position: str) -> List[str]:
    lines: List[str] = []
    for section in bot.help_sections:
        if section.position == position:
            lines.extend([f"## {section.title}", section.content, ""])
    return lines


def generate_bot_help(
    bot: BotDefinition,
    command_name: Optional[str] = None,
    include_metadata: bool = False,
    fmt: str = "markdown",
) -> str:
    """
    Builds help text for a bot, or for one of its commands when command_name is given.
    fmt is "markdown" (default) or "text" (markdown markers stripped).
    """
    lines: List[str] = []

    if command_name:
        command = bot.get_command(command_name)
        if command is None:
            available = ", ".join(f"`{c.name}`" for c in bot.commands) or "none"
            lines.append(f"Unknown command `{command_name}` for **{bot.name}**. Available commands: {available}")
        else:
            lines.extend(format_command_help(bot, command))
            if command.help:
                lines.extend([command.help, ""])
    else:
        lines.extend([f"# {bot.name}", bot.help_overview or bot.description, ""])
        lines.extend(_sections(bot, "before"))
        lines.append("## Commands")
        lines.append("")
        for command in bot.commands:
            lines.extend(format_command_help(bot, command))
        lines.append(f"Use `@{bot.id} help command=<name>` for details on a single command.")
        lines.append("")
        lines.extend(_sections(bot, "after"))

    if include_metadata:
        lines.extend(
            [
                "---",
                f"**Bot ID:** `{bot.id}`  **Version:** {bot.version}",
                f"**Permissions:** {', '.join(sorted(bot.permissions)) or 'none'}",
            ]
        )

    text = "\n".join(lines).rstrip() + "\n"
    if fmt == "text":
        text = _MARKDOWN.sub("", text)
    return text


def help_command_for(bot: BotDefinition) -> CommandSpec:
    """The implicit help command every bot answers."""

    async def execute(params: Dict[str, Any], context) -> Dict[str, Any]:
        return {"messages": [{"content": generate_bot_help(bot, params.get("command"))}]}

    return CommandSpec(
        name="help",
        description="Show available commands and usage",
        usage=f"@{bot.id} help [command=<name>]",
        parameters=(
            ParameterSpec(name="command", description="Show details for a single command"),
        ),
        examples=(f"@{bot.id} help",),
        execute=execute,
    )
