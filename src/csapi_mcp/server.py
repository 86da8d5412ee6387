"""
CSAPI MCP Server — MCP protocol server for OGC API - Connected Systems.

Architecture:
    server.py     ← YOU ARE HERE (MCP protocol layer)
        ↓
    mapper.py     ← Translates navigator objects to MCP objects
        ↓
    endpoint.py   ← Discovery, negotiation, navigators
        ↓
    client.py     ← Pure HTTP transport

License: Apache Software License, Version 2.0
"""

import asyncio
import logging
from typing import Any

import mcp.types as types
from mcp.server import Server
from mcp.server.stdio import stdio_server

from .client import (
    CSAPICapabilityNotFound,
    CSAPIClient,
    CSAPIClientError,
    CSAPICollectionNotFound,
    CSAPINotSupported,
    CSAPIServerNotFound,
    CSAPITransportError,
)
from .config import load_settings
from .endpoint import CSAPIEndpoint
from .navigator import CSAPINavigator
from .mapper import (
    build_discovery_tools,
    build_resource_url,
    build_workflow_prompts,
    describe_result,
    format_navigator,
    format_page,
    format_server_info,
    sensor_exploration_text,
)

# ─────────────────────────────────────────────
# Setup
# ─────────────────────────────────────────────

settings = load_settings()
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("csapi-mcp-server")

app = Server("csapi-mcp-server")


# ═══════════════════════════════════════════════════════════════
# TOOLS
# ═══════════════════════════════════════════════════════════════

@app.list_tools()
async def list_tools() -> list[types.Tool]:
    return build_discovery_tools()


@app.call_tool()
async def call_tool(
    name: str,
    arguments: dict[str, Any]
) -> list[types.TextContent]:
    """
    Execute a tool by name with the provided arguments.

    Library exceptions are turned into readable error text so the
    LLM can decide what to try next.
    """
    logger.info(f"Tool called: {name} with args: {list(arguments.keys())}")

    try:
        result = await dispatch_tool(name, arguments)
        return [types.TextContent(type="text", text=result)]

    except CSAPIServerNotFound as e:
        return [types.TextContent(type="text", text=f"Error: Cannot reach server: {e}")]

    except CSAPICollectionNotFound as e:
        return [types.TextContent(type="text", text=f"Collection not found: {e}")]

    except CSAPINotSupported as e:
        return [types.TextContent(type="text", text=f"Not a Connected Systems collection: {e}")]

    except CSAPICapabilityNotFound as e:
        return [types.TextContent(type="text", text=f"No Connected Systems collection: {e}")]

    except CSAPITransportError as e:
        return [types.TextContent(
            type="text",
            text=f"HTTP error (status {e.status}) for {e.url}: {e}"
        )]

    except CSAPIClientError as e:
        return [types.TextContent(type="text", text=f"CSAPI error: {e}")]

    except (KeyError, ValueError, TypeError) as e:
        logger.warning(f"Bad arguments for tool {name}: {e}")
        return [types.TextContent(type="text", text=f"Invalid arguments: {e}")]


async def dispatch_tool(name: str, args: dict) -> str:
    """Route tool calls to endpoint / navigator operations."""
    server_url = args.get("server_url", settings.server_url)

    async with CSAPIClient(settings.fetch_options(), timeout=settings.timeout) as client:

        if name == "follow_next_page":
            url = args["url"]
            page = await client.get_page(url)
            return format_page(url, page)

        async with CSAPIEndpoint(server_url, client=client) as endpoint:

            if name == "discover_csapi_server":
                info = await endpoint.info()
                collections = await endpoint.collections()
                return format_server_info(info, collections)

            elif name == "find_csapi_collection":
                for collection in await endpoint.collections():
                    descriptor, result = await endpoint.negotiate(collection.id)
                    logger.info(f"[{descriptor.id}] {describe_result(result)}")
                    if result:
                        navigator = CSAPINavigator.from_capabilities(
                            endpoint.api_url, descriptor, result
                        )
                        return format_navigator(descriptor.id, navigator)
                raise CSAPICapabilityNotFound(
                    f"No collection at {server_url} exposes Connected Systems resources."
                )

            elif name == "build_csapi_url":
                navigator = await endpoint.navigator_for(args["collection_id"])
                return build_resource_url(navigator, args)

            elif name == "get_csapi_resources":
                navigator = await endpoint.navigator_for(args["collection_id"])
                url = build_resource_url(navigator, args)
                page = await client.get_page(url)
                return format_page(url, page)

            else:
                raise ValueError(f"Unknown tool: {name}")


# ═══════════════════════════════════════════════════════════════
# PROMPTS
# ═══════════════════════════════════════════════════════════════

@app.list_prompts()
async def list_prompts() -> list[types.Prompt]:
    return build_workflow_prompts()


@app.get_prompt()
async def get_prompt(name: str, arguments: dict) -> types.GetPromptResult:
    arguments = arguments or {}
    server_url = arguments.get("server_url", settings.server_url)
    goal = arguments.get("goal", "explore the available sensors")

    if name == "sensor_exploration_workflow":
        text = sensor_exploration_text(server_url, goal)
    else:
        text = f"Unknown prompt: {name}"

    return types.GetPromptResult(
        description=f"Workflow for: {goal}",
        messages=[
            types.PromptMessage(
                role="user",
                content=types.TextContent(type="text", text=text)
            )
        ]
    )


# ═══════════════════════════════════════════════════════════════
# SERVER STARTUP
# ═══════════════════════════════════════════════════════════════

async def main():
    async with stdio_server() as (read_stream, write_stream):
        await app.run(
            read_stream,
            write_stream,
            app.create_initialization_options()
        )


def run():
    asyncio.run(main())


if __name__ == "__main__":
    run()
