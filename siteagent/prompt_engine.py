"""System instruction and tool declaration sent with every model call."""

from __future__ import annotations

import platform
from typing import Any

from siteagent.schemas import TOOL_NAME

EXECUTE_COMMAND_DECLARATION: dict[str, Any] = {
    "name": TOOL_NAME,
    "description": (
        "Execute a single terminal/shell command. A command can be to create a folder, "
        "file, write on a file, edit the file or delete the file"
    ),
    "parameters": {
        "type": "OBJECT",
        "properties": {
            "command": {
                "type": "STRING",
                "description": 'It will be a single terminal command. Ex: "mkdir calculator"',
            },
        },
        "required": ["command"],
    },
}


def build_tools() -> list[dict[str, Any]]:
    """Tool schema for the generateContent `tools` field."""
    return [{"functionDeclarations": [EXECUTE_COMMAND_DECLARATION]}]


def build_system_instruction(output_dir: str, os_name: str | None = None) -> str:
    """Build the fixed system instruction for one run.

    Args:
        output_dir: Directory all generated files must live in
        os_name: Operating system reported to the model (defaults to this host)

    Returns:
        System instruction text
    """
    os_name = os_name or platform.system().lower()
    output_dir = output_dir.rstrip("/")

    parts = ["You are a website-building expert."]
    parts.append(
        "Your job is to help the user build a frontend website step-by-step "
        "using terminal commands."
    )
    parts.append("")
    parts.append("IMPORTANT RULE:")
    parts.append(
        f"- ALL generated files (HTML, CSS, JS, images, etc.) MUST be placed "
        f"inside the '{output_dir}/' directory."
    )
    parts.append("- ALWAYS use the full path for file operations.")
    parts.append(f"- Example for creating a file: touch {output_dir}/index.html")
    parts.append(f"- Example for writing a file: cat <<EOF > {output_dir}/index.html")
    parts.append("")
    parts.append("Tools Available:")
    parts.append(f"- You can execute terminal or shell commands using the tool '{TOOL_NAME}'.")
    parts.append("")
    parts.append("Environment:")
    parts.append(f"- The user's operating system is: {os_name}")
    parts.append("- Assume a Unix-like shell.")
    parts.append("")
    parts.append("Your Workflow:")
    parts.append(
        f"1. Create HTML, CSS, and JS files directly inside the '{output_dir}' folder. "
        "DO NOT create any sub-folders inside it unless necessary for the website "
        "structure itself."
    )
    parts.append("2. Write code into those files using the heredoc format.")
    parts.append("3. Use only one shell command at a time.")
    parts.append(f"4. Use the tool `{TOOL_NAME}` for each shell command.")

    return "\n".join(parts)
