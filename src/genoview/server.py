"""MCP server setup for genoview using FastMCP."""

from __future__ import annotations

from typing import Any

from mcp.server.fastmcp import FastMCP
from mcp.types import CallToolResult, TextContent

from .config import GenoviewConfig
from .embed import EmbedConfig, ViewerSession
from .tools import (
    handle_clear_filter,
    handle_goto_region,
    handle_hit_test,
    handle_pan,
    handle_render_view,
    handle_select_samples,
    handle_set_filter,
    handle_share_link,
    handle_zoom,
)


def build_session(config: GenoviewConfig) -> ViewerSession:
    """Session with the tracks the configured data sources can feed.

    ``provider_url`` adds gene and mutation tracks served over HTTP;
    ``bam_path`` adds an alignment track.
    """
    tracks: list[dict[str, Any]] = []
    if config.provider_url:
        tracks.append({"id": "genes", "kind": "gene", "height": 60})
        tracks.append({"id": "mutations", "kind": "mutation", "height": 80})
    if config.bam_path:
        tracks.append(
            {
                "id": "reads",
                "kind": "alignment",
                "bam_path": config.bam_path,
                "reference": config.reference,
                "max_reads": config.max_reads,
            }
        )
    embed = EmbedConfig(
        genome=config.genome,
        initial_region=config.initial_region,
        pixel_width=config.pixel_width,
        tracks=tracks,
    )
    return ViewerSession(embed, settings=config)


def create_server(config: GenoviewConfig | None = None, session: ViewerSession | None = None) -> FastMCP:
    """Create and configure the genoview MCP server.

    The server drives exactly one ViewerSession, held in this closure.
    """
    if config is None:
        config = GenoviewConfig.from_env()
    if session is None:
        session = build_session(config)

    mcp = FastMCP(name="genoview", host=config.host, port=config.port)

    # -- Navigation ----------------------------------------------------------

    @mcp.tool(description="Navigate to a genomic region such as chr17:7,565,097-7,590,856")
    async def goto_region(region: str) -> str:
        result = await handle_goto_region({"region": region}, session)
        return str(result["content"][0]["text"])

    @mcp.tool(
        description=(
            "Zoom the view by a factor; values below 1 zoom in. "
            "anchor_px keeps the position under that pixel fixed (default: center)."
        ),
    )
    async def zoom(factor: float, anchor_px: float | None = None) -> str:
        result = await handle_zoom({"factor": factor, "anchor_px": anchor_px}, session)
        return str(result["content"][0]["text"])

    @mcp.tool(description="Pan the view by a pixel offset; positive values move right")
    async def pan(delta_px: float) -> str:
        result = await handle_pan({"delta_px": delta_px}, session)
        return str(result["content"][0]["text"])

    # -- Cohort state --------------------------------------------------------

    @mcp.tool(description="Select samples; mode is one of add, remove, replace, toggle")
    async def select_samples(sample_ids: list[str], mode: str = "replace") -> str:
        result = await handle_select_samples({"sample_ids": sample_ids, "mode": mode}, session)
        return str(result["content"][0]["text"])

    @mcp.tool(
        description=(
            "Filter features and samples by a field, either to a set of values "
            "or to an inclusive low/high range. Filters combine with AND."
        ),
    )
    async def set_filter(
        field: str,
        values: list[str] | None = None,
        low: float | None = None,
        high: float | None = None,
        key: str | None = None,
    ) -> str:
        result = await handle_set_filter(
            {"field": field, "values": values, "low": low, "high": high, "key": key}, session
        )
        return str(result["content"][0]["text"])

    @mcp.tool(description="Remove one filter by key, or every filter when no key is given")
    async def clear_filter(key: str | None = None) -> str:
        result = await handle_clear_filter({"key": key}, session)
        return str(result["content"][0]["text"])

    # -- Output --------------------------------------------------------------

    @mcp.tool(description="Render every track of the current view to a display list")
    async def render_view() -> CallToolResult:
        result = await handle_render_view({}, session)
        payload = result.get("_meta", {}).get("ui/init", {})
        return CallToolResult(
            content=[TextContent(type="text", text=result["content"][0]["text"])],
            structuredContent=payload or None,
        )

    @mcp.tool(description="Shareable link reproducing the current region and selection")
    async def share_link(base_url: str | None = None) -> str:
        result = await handle_share_link({"base_url": base_url}, session)
        return str(result["content"][0]["text"])

    @mcp.tool(description="Identify the feature at a viewport pixel; select=true also selects it")
    async def hit_test(px: float, py: float, select: bool = False, mode: str = "replace") -> str:
        result = await handle_hit_test({"px": px, "py": py, "select": select, "mode": mode}, session)
        return str(result["content"][0]["text"])

    return mcp
