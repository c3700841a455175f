from __future__ import annotations

import logging

from fastmcp import FastMCP

from ...api import get_api_functions

INSTRUCTIONS = (
    "Homework Planner exposes deterministic task planning tools. "
    "Add tasks with durations and deadlines, pick a distribution strategy, "
    "and read back the day or week plan and its stats."
)

logger = logging.getLogger(__name__)


def build_mcp_server() -> FastMCP:
    server = FastMCP(name="homework-planner", instructions=INSTRUCTIONS)
    for api_function in get_api_functions():
        logger.debug("Registering MCP tool: %s", api_function.name)
        server.tool(
            api_function.func,
            name=api_function.name,
            description=api_function.description,
            tags=set(api_function.tags),
        )
    return server


def run_mcp_server(host: str = "127.0.0.1", port: int = 8765) -> None:
    import asyncio

    server = build_mcp_server()
    logger.info("Serving planner MCP tools on %s:%d", host, port)
    asyncio.run(server.run_http_async(transport="streamable-http", host=host, port=port))
