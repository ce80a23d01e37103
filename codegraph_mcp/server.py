"""Codegraph MCP Server - Code indexing and semantic search over a workspace."""

import json
import logging
import os
import sys
from typing import Any

from mcp.server import Server
from mcp.server.stdio import stdio_server
from mcp.types import Tool, TextContent

from .index import IndexBusyError, FileReadError
from .workspace import WorkspaceContext

logger = logging.getLogger(__name__)


# Global workspace context
ctx = WorkspaceContext()

# Create MCP server
server = Server("codegraph-mcp")


def make_response(
    success: bool,
    data: Any = None,
    error: str | None = None,
    next_step: dict | None = None,
) -> dict:
    """Create standardized response with next_step guidance."""
    response = {
        "success": success,
        "data": data,
        "error": error,
    }
    if next_step:
        response["next_step"] = next_step
    return response


def _path_property(description: str = "File path, absolute or relative to the workspace root") -> dict:
    return {"type": "string", "description": description}


@server.list_tools()
async def list_tools() -> list[Tool]:
    """List available codegraph tools."""
    return [
        Tool(
            name="codegraph_set_workspace",
            description="Set the workspace to index. Loads any saved index and starts a background build. Must be called before other tools.",
            inputSchema={
                "type": "object",
                "properties": {
                    "workspace_path": {
                        "type": "string",
                        "description": "Path to the workspace root directory",
                    },
                    "wait": {
                        "type": "boolean",
                        "description": "Block until the initial build finishes (default: false)",
                        "default": False,
                    },
                },
                "required": ["workspace_path"],
            },
        ),
        Tool(
            name="codegraph_status",
            description="Get index status: whether a build is running and document, chunk, symbol and vector counts.",
            inputSchema={
                "type": "object",
                "properties": {},
            },
        ),
        Tool(
            name="codegraph_semantic_search",
            description="Search indexed code by meaning. Returns the closest chunks with snippets and the query terms they contain.",
            inputSchema={
                "type": "object",
                "properties": {
                    "query": {
                        "type": "string",
                        "description": "What to look for (e.g., 'add two numbers', 'parse config file')",
                    },
                    "top_k": {
                        "type": "integer",
                        "description": "Maximum results to return (default: 10)",
                        "default": 10,
                    },
                },
                "required": ["query"],
            },
        ),
        Tool(
            name="codegraph_search_symbol",
            description="Find functions, classes, interfaces, constants and types by name (case-insensitive substring).",
            inputSchema={
                "type": "object",
                "properties": {
                    "name": {
                        "type": "string",
                        "description": "Symbol name or part of it",
                    },
                    "limit": {
                        "type": "integer",
                        "description": "Maximum results to return (default: 50)",
                        "default": 50,
                    },
                },
                "required": ["name"],
            },
        ),
        Tool(
            name="codegraph_symbols_in_file",
            description="List the symbols declared in one file.",
            inputSchema={
                "type": "object",
                "properties": {
                    "file_path": _path_property(),
                },
                "required": ["file_path"],
            },
        ),
        Tool(
            name="codegraph_related_symbols",
            description="Find symbols in files connected to a symbol's file through imports, in either direction.",
            inputSchema={
                "type": "object",
                "properties": {
                    "symbol_id": {
                        "type": "string",
                        "description": "Symbol id from codegraph_search_symbol or codegraph_symbols_in_file",
                    },
                    "max_depth": {
                        "type": "integer",
                        "description": "Maximum number of import hops (default: unlimited)",
                    },
                },
                "required": ["symbol_id"],
            },
        ),
        Tool(
            name="codegraph_similar_code",
            description="Find code similar to the function, class or block at a given line.",
            inputSchema={
                "type": "object",
                "properties": {
                    "file_path": _path_property(),
                    "line": {
                        "type": "integer",
                        "description": "1-based line inside the code of interest",
                    },
                    "limit": {
                        "type": "integer",
                        "description": "Maximum similar chunks (default: 5)",
                        "default": 5,
                    },
                },
                "required": ["file_path", "line"],
            },
        ),
        Tool(
            name="codegraph_project_context",
            description="Describe the workspace: primary language, framework, declared and imported dependencies, and the tree of indexed files.",
            inputSchema={
                "type": "object",
                "properties": {
                    "include_tree": {
                        "type": "boolean",
                        "description": "Include the file tree (default: true)",
                        "default": True,
                    },
                },
            },
        ),
        Tool(
            name="codegraph_rebuild_index",
            description="Discard the index and rebuild it from scratch in the background. Rejected while a build is running.",
            inputSchema={
                "type": "object",
                "properties": {
                    "wait": {
                        "type": "boolean",
                        "description": "Block until the rebuild finishes (default: false)",
                        "default": False,
                    },
                },
            },
        ),
        Tool(
            name="codegraph_update_document",
            description="Re-index one file after it was saved. A file that no longer exists is removed from the index.",
            inputSchema={
                "type": "object",
                "properties": {
                    "file_path": _path_property(),
                },
                "required": ["file_path"],
            },
        ),
        Tool(
            name="codegraph_remove_document",
            description="Remove a deleted file from the index.",
            inputSchema={
                "type": "object",
                "properties": {
                    "file_path": _path_property(),
                },
                "required": ["file_path"],
            },
        ),
    ]


@server.call_tool()
async def call_tool(name: str, arguments: dict) -> list[TextContent]:
    """Handle tool calls."""
    try:
        result = await _handle_tool(name, arguments)
        return [TextContent(type="text", text=json.dumps(result, indent=2))]
    except Exception as e:
        logger.exception(f"Tool {name} failed")
        error_response = make_response(False, error=str(e))
        return [TextContent(type="text", text=json.dumps(error_response, indent=2))]


async def _handle_tool(name: str, arguments: dict) -> dict:
    """Route tool calls to handlers."""

    if name == "codegraph_set_workspace":
        return await handle_set_workspace(arguments["workspace_path"], arguments.get("wait", False))

    # All other tools require a workspace
    if not ctx.is_set:
        return make_response(
            False,
            error="No workspace set. Use codegraph_set_workspace first.",
            next_step={
                "action": "Set the workspace first",
                "tool": "codegraph_set_workspace",
                "example": {"workspace_path": "~/Workspace/myproject"},
            },
        )

    if name == "codegraph_status":
        return await handle_status()
    elif name == "codegraph_semantic_search":
        return await handle_semantic_search(arguments["query"], arguments.get("top_k", 10))
    elif name == "codegraph_search_symbol":
        return await handle_search_symbol(arguments["name"], arguments.get("limit", 50))
    elif name == "codegraph_symbols_in_file":
        return await handle_symbols_in_file(arguments["file_path"])
    elif name == "codegraph_related_symbols":
        return await handle_related_symbols(arguments["symbol_id"], arguments.get("max_depth"))
    elif name == "codegraph_similar_code":
        return await handle_similar_code(
            arguments["file_path"], arguments["line"], arguments.get("limit", 5)
        )
    elif name == "codegraph_project_context":
        return await handle_project_context(arguments.get("include_tree", True))
    elif name == "codegraph_rebuild_index":
        return await handle_rebuild_index(arguments.get("wait", False))
    elif name == "codegraph_update_document":
        return await handle_update_document(arguments["file_path"])
    elif name == "codegraph_remove_document":
        return await handle_remove_document(arguments["file_path"])
    else:
        return make_response(False, error=f"Unknown tool: {name}")


async def handle_set_workspace(workspace_path: str, wait: bool = False) -> dict:
    """Handle codegraph_set_workspace."""
    try:
        paths = ctx.set_workspace(workspace_path, background=not wait)
    except ValueError as e:
        return make_response(False, error=str(e))

    coordinator = ctx.require_coordinator()
    status = coordinator.get_status()
    return make_response(
        True,
        data={
            "workspace_root": str(paths.root),
            "index_dir": str(paths.index_dir),
            "status": status.to_dict(),
            "build": ctx.last_build,
        },
        next_step={
            "action": "Search the workspace",
            "tool": "codegraph_semantic_search",
            "example": {"query": "parse configuration file"},
        },
    )


async def handle_status() -> dict:
    """Handle codegraph_status."""
    coordinator = ctx.require_coordinator()
    data = coordinator.get_status().to_dict()
    data["last_build"] = ctx.last_build
    data["last_error"] = ctx.last_error

    next_step = None
    if data["needs_full_build"] and not data["is_indexing"]:
        next_step = {
            "action": "Build the index",
            "tool": "codegraph_rebuild_index",
        }
    return make_response(True, data=data, next_step=next_step)


async def handle_semantic_search(query: str, top_k: int = 10) -> dict:
    """Handle codegraph_semantic_search."""
    coordinator = ctx.require_coordinator()
    results = coordinator.semantic_search(query, top_k)

    next_step = None
    if not results and coordinator.get_status().document_count == 0:
        next_step = {
            "action": "Index the workspace first",
            "tool": "codegraph_rebuild_index",
        }
    return make_response(
        True,
        data={
            "query": query,
            "results": [r.to_dict() for r in results],
            "count": len(results),
        },
        next_step=next_step,
    )


async def handle_search_symbol(name: str, limit: int = 50) -> dict:
    """Handle codegraph_search_symbol."""
    coordinator = ctx.require_coordinator()
    symbols = coordinator.search_symbol_by_name(name)
    return make_response(
        True,
        data={
            "name": name,
            "symbols": [s.to_dict() for s in symbols[:limit]],
            "count": len(symbols),
        },
    )


async def handle_symbols_in_file(file_path: str) -> dict:
    """Handle codegraph_symbols_in_file."""
    coordinator = ctx.require_coordinator()
    symbols = coordinator.get_symbols_in_file(file_path)
    return make_response(
        True,
        data={
            "file_path": file_path,
            "symbols": [s.to_dict() for s in symbols],
            "count": len(symbols),
        },
    )


async def handle_related_symbols(symbol_id: str, max_depth: int | None = None) -> dict:
    """Handle codegraph_related_symbols."""
    coordinator = ctx.require_coordinator()
    symbols = coordinator.find_related_symbols(symbol_id, max_depth)
    return make_response(
        True,
        data={
            "symbol_id": symbol_id,
            "symbols": [s.to_dict() for s in symbols],
            "count": len(symbols),
        },
    )


async def handle_similar_code(file_path: str, line: int, limit: int = 5) -> dict:
    """Handle codegraph_similar_code."""
    coordinator = ctx.require_coordinator()
    result = coordinator.find_similar_code(file_path, line, limit)
    if result is None:
        return make_response(
            False,
            error=f"No indexed code covers {file_path}:{line}",
            next_step={
                "action": "Index the file",
                "tool": "codegraph_update_document",
                "example": {"file_path": file_path},
            },
        )
    return make_response(True, data=result.to_dict())


async def handle_project_context(include_tree: bool = True) -> dict:
    """Handle codegraph_project_context."""
    coordinator = ctx.require_coordinator()
    data = coordinator.get_project_context().to_dict()
    if not include_tree:
        del data["file_tree"]
    return make_response(True, data=data)


async def handle_rebuild_index(wait: bool = False) -> dict:
    """Handle codegraph_rebuild_index."""
    coordinator = ctx.require_coordinator()
    if wait:
        try:
            stats = coordinator.rebuild_index()
        except IndexBusyError as e:
            return make_response(False, error=str(e))
        ctx.last_build = stats
        return make_response(True, data=stats)

    if not ctx.start_build(rebuild=True):
        return make_response(
            False,
            error="Indexing is already in progress",
            next_step={
                "action": "Check progress",
                "tool": "codegraph_status",
            },
        )
    return make_response(
        True,
        data={"started": True},
        next_step={
            "action": "Check progress",
            "tool": "codegraph_status",
        },
    )


async def handle_update_document(file_path: str) -> dict:
    """Handle codegraph_update_document."""
    coordinator = ctx.require_coordinator()
    try:
        doc = coordinator.update_document(file_path)
    except FileReadError as e:
        return make_response(False, error=str(e))

    if doc is None:
        return make_response(True, data={"file_path": file_path, "removed": True})
    return make_response(
        True,
        data={
            "file_path": doc.file_path,
            "document_id": doc.id,
            "language": doc.language,
            "symbols": len(doc.symbols),
            "chunks": len(doc.chunks),
            "parse_error": doc.parse_error,
        },
    )


async def handle_remove_document(file_path: str) -> dict:
    """Handle codegraph_remove_document."""
    coordinator = ctx.require_coordinator()
    removed = coordinator.remove_document(file_path)
    return make_response(True, data={"file_path": file_path, "removed": removed})


def main():
    """Run the MCP server."""
    import asyncio

    # stdout carries the MCP protocol
    logging.basicConfig(
        stream=sys.stderr,
        level=os.environ.get("CODEGRAPH_LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    async def run():
        async with stdio_server() as (read_stream, write_stream):
            await server.run(read_stream, write_stream, server.create_initialization_options())

    asyncio.run(run())


if __name__ == "__main__":
    main()
