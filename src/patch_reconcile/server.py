"""MCP Server for patch reconciliation.

This module implements the Model Context Protocol (MCP) server that
registers and routes the patch reconcile tools.

Tools provided:
    1. verify_patch - Check frame integrity of a patch file (read-only)
    2. upgrade_patch - Refresh patch content from target files (backup kept)
    3. offset_patch - Recompute offsets on an ephemeral git branch
    4. reconcile_patch - Upgrade, falling back to offset reconciliation
    5. reconcile_directory - Reconcile every patch file in a directory
    6. apply_patch - Add or remove a patch file with git apply (dry_run)
    7. inspect_patch - Summarize patch structure (no files needed)
    8. extract_message - Report the message embedded in a patch file
    9. restore_backup - Restore a patch file from its .backup copy
"""

import asyncio
import json
import logging
import sys
from typing import Any

from mcp.server import Server
from mcp.types import Resource, TextContent, Tool

from . import workflows
from .config import load_settings
from .tools import apply, backup, inspect, offset, upgrade, verify

logger = logging.getLogger(__name__)

server = Server("patch-reconcile")

GUIDE_URI = "reconcile://guide/workflow"

_PATCH_FILE = {"type": "string", "description": "Path to the patch file"}
_REPO_ROOT = {
    "type": "string",
    "description": "Repository root; header paths are relative to it (default: cwd)",
}
_TARGET_FILE = {
    "type": "string",
    "description": "Target file used instead of the path in the patch headers (optional)",
}
_MESSAGE = {
    "type": "string",
    "description": "Subject message to embed (default: extracted from the patch)",
}


@server.list_tools()  # type: ignore[misc,no-untyped-call]
async def list_tools() -> list[Tool]:
    """List all tools with their schemas.

    Returns:
        List of Tool objects with proper input schemas
    """
    return [
        Tool(
            name="verify_patch",
            description="""Verify that a patch still fits its target files.

Checks the unchanged context lines ("frames") directly above and below every run of
added or removed lines. Reports intact / corrupted / error per file with the exact
lines that no longer match. Read-only: nothing is modified.""",
            inputSchema={
                "type": "object",
                "properties": {
                    "patch_file": _PATCH_FILE,
                    "target_file": _TARGET_FILE,
                    "repo_root": _REPO_ROOT,
                },
                "required": ["patch_file"],
            },
        ),
        Tool(
            name="upgrade_patch",
            description="""Refresh the content of a patch from its target files.

Only files whose frames are all intact are upgraded, and only the text of added/removed
lines changes: hunk headers and line counts stay as they are. The previous patch is
kept as <patch>.backup.""",
            inputSchema={
                "type": "object",
                "properties": {
                    "patch_file": _PATCH_FILE,
                    "target_file": _TARGET_FILE,
                    "repo_root": _REPO_ROOT,
                },
                "required": ["patch_file"],
            },
        ),
        Tool(
            name="offset_patch",
            description="""Recompute a patch's offsets against the baseline branch (main).

Requires a clean working tree. Replays the patch on a temporary branch, re-diffs it
against the baseline and rewrites the patch file if anything changed. The original
branch is always restored and the temporary branch deleted.""",
            inputSchema={
                "type": "object",
                "properties": {
                    "patch_file": _PATCH_FILE,
                    "repo_root": _REPO_ROOT,
                    "message": _MESSAGE,
                },
                "required": ["patch_file"],
            },
        ),
        Tool(
            name="reconcile_patch",
            description="Upgrade a patch, falling back to offset reconciliation when its "
            "frames no longer match",
            inputSchema={
                "type": "object",
                "properties": {
                    "patch_file": _PATCH_FILE,
                    "repo_root": _REPO_ROOT,
                    "message": _MESSAGE,
                },
                "required": ["patch_file"],
            },
        ),
        Tool(
            name="reconcile_directory",
            description="Reconcile every patch file (.taylored, .patch, .diff) in a directory",
            inputSchema={
                "type": "object",
                "properties": {
                    "directory": {
                        "type": "string",
                        "description": "Directory holding the patch files",
                    },
                    "repo_root": _REPO_ROOT,
                },
                "required": ["directory"],
            },
        ),
        Tool(
            name="apply_patch",
            description="Add (or with reverse=true remove) a patch file using git apply",
            inputSchema={
                "type": "object",
                "properties": {
                    "patch_file": _PATCH_FILE,
                    "repo_root": _REPO_ROOT,
                    "reverse": {
                        "type": "boolean",
                        "description": "Remove the patch instead of adding it (default: false)",
                        "default": False,
                    },
                    "dry_run": {
                        "type": "boolean",
                        "description": "Only check that the patch applies (default: false)",
                        "default": False,
                    },
                },
                "required": ["patch_file"],
            },
        ),
        Tool(
            name="inspect_patch",
            description="Summarize a patch: files, hunks, added/removed lines, blocks",
            inputSchema={
                "type": "object",
                "properties": {
                    "patch": {
                        "type": "string",
                        "description": "Unified diff patch content",
                    },
                },
                "required": ["patch"],
            },
        ),
        Tool(
            name="extract_message",
            description="Report the commit message embedded in a patch file",
            inputSchema={
                "type": "object",
                "properties": {"patch_file": _PATCH_FILE},
                "required": ["patch_file"],
            },
        ),
        Tool(
            name="restore_backup",
            description="Restore a patch file from its .backup copy",
            inputSchema={
                "type": "object",
                "properties": {
                    "patch_file": _PATCH_FILE,
                    "backup_file": {
                        "type": "string",
                        "description": "Backup to restore from (default: <patch_file>.backup)",
                    },
                },
                "required": ["patch_file"],
            },
        ),
    ]


@server.list_resources()  # type: ignore[misc,no-untyped-call]
async def list_resources() -> list[Resource]:
    """List available documentation resources."""
    return [
        Resource(
            uri=GUIDE_URI,  # type: ignore[arg-type]
            name="Upgrade vs Offset Reconciliation",
            description="When to use upgrade_patch, offset_patch or reconcile_patch",
            mimeType="text/markdown",
        )
    ]


@server.read_resource()  # type: ignore[misc,no-untyped-call]
async def read_resource(uri: Any) -> str:
    """Read a documentation resource.

    Args:
        uri: Resource URI to read

    Returns:
        Resource content as string
    """
    if str(uri) == GUIDE_URI:
        return """# Keeping Patches Alive

## upgrade_patch
Use when the target file was edited *inside* the patched region but the
surrounding lines did not move. Frames (context lines around each run of
added/removed lines) must all still match; the patch text is refreshed
from the file and a .backup is written.

## offset_patch
Use when code around the patch moved (lines inserted above it, hunks
shifted). Needs a clean working tree and a `main` branch. The patch is
replayed on a temporary branch and re-diffed against `main`.

## reconcile_patch
Runs upgrade_patch and falls back to offset_patch when frames are broken.

## Recovery
Every upgrade keeps `<patch>.backup`; restore_backup copies it back.
"""
    raise ValueError(f"Unknown resource URI: {uri}")


@server.call_tool()  # type: ignore[misc]
async def call_tool(name: str, arguments: dict[str, Any]) -> list[TextContent]:
    """Route tool calls to appropriate implementations.

    Args:
        name: Name of the tool to call
        arguments: Dictionary of tool arguments

    Returns:
        List containing a single TextContent with JSON-formatted result

    Raises:
        ValueError: If tool name is unknown
    """
    settings = load_settings()
    result = None

    if name == "verify_patch":
        result = verify.verify_patch(
            arguments["patch_file"],
            arguments.get("target_file"),
            arguments.get("repo_root"),
            settings,
        )
    elif name == "upgrade_patch":
        result = upgrade.upgrade_patch(
            arguments["patch_file"],
            arguments.get("target_file"),
            arguments.get("repo_root"),
            settings,
        )
    elif name == "offset_patch":
        result = offset.offset_patch(
            arguments["patch_file"],
            arguments.get("repo_root"),
            arguments.get("message"),
            settings,
        )
    elif name == "reconcile_patch":
        result = workflows.reconcile_patch(
            arguments["patch_file"],
            arguments.get("repo_root"),
            arguments.get("message"),
            settings,
        )
    elif name == "reconcile_directory":
        result = workflows.reconcile_directory(
            arguments["directory"],
            arguments.get("repo_root"),
            settings,
        )
    elif name == "apply_patch":
        result = apply.apply_patch(
            arguments["patch_file"],
            arguments.get("repo_root"),
            arguments.get("reverse", False),
            arguments.get("dry_run", False),
        )
    elif name == "inspect_patch":
        result = inspect.inspect_patch(arguments["patch"], settings)
    elif name == "extract_message":
        result = inspect.extract_patch_message(arguments["patch_file"], settings)
    elif name == "restore_backup":
        result = backup.restore_backup(
            arguments["patch_file"],
            arguments.get("backup_file"),
            settings,
        )
    else:
        raise ValueError(f"Unknown tool: {name}")

    return [TextContent(type="text", text=json.dumps(result, indent=2))]


async def main() -> None:
    """Run the MCP server using stdio transport.

    Logs go to stderr; stdout carries the MCP protocol.
    """
    from mcp.server.stdio import stdio_server

    settings = load_settings()
    logging.basicConfig(
        stream=sys.stderr,
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger.info("Starting patch-reconcile server")

    async with stdio_server() as (read_stream, write_stream):
        await server.run(
            read_stream,
            write_stream,
            server.create_initialization_options(),
        )


def run() -> None:
    """Console script entry point."""
    asyncio.run(main())
