"""MCP tool handlers driving a ViewerSession."""

from __future__ import annotations

import json
import logging
from typing import Any

from .core.region import parse_region
from .embed import ViewerSession
from .state.store import field_filter, range_filter

logger = logging.getLogger(__name__)


def _text(payload: dict[str, Any]) -> dict:
    return {"content": [{"type": "text", "text": json.dumps(payload)}]}


def view_state(session: ViewerSession) -> dict[str, Any]:
    """JSON-ready description of the region, selection, filters and track status."""
    snapshot = session.snapshot()
    return {
        "region": str(session.viewport.region),
        "bp_per_pixel": round(session.viewport.space.bp_per_pixel, 4),
        "selected_samples": sorted(snapshot.selected_sample_ids),
        "selected_features": sorted(snapshot.selected_feature_ids),
        "filters": snapshot.filters,
        "tracks": {
            t.id: {
                "kind": t.kind.value,
                "status": t.status.value,
                "features": len(t.features),
                "error": t.error.message if t.error else None,
            }
            for t in session.viewport.tracks
        },
    }


async def _after_navigation(session: ViewerSession, accepted: bool) -> dict:
    await session.settle()
    return _text({"accepted": accepted, **view_state(session)})


async def handle_goto_region(args: dict[str, Any], session: ViewerSession) -> dict:
    """Handle goto_region tool call.

    Raises:
        InvalidRegion: If the region string is malformed or off the genome.
    """
    region = parse_region(args["region"], session.genome)
    return await _after_navigation(session, session.viewport.goto(region))


async def handle_zoom(args: dict[str, Any], session: ViewerSession) -> dict:
    accepted = session.viewport.zoom(float(args["factor"]), args.get("anchor_px"))
    return await _after_navigation(session, accepted)


async def handle_pan(args: dict[str, Any], session: ViewerSession) -> dict:
    accepted = session.viewport.pan(float(args["delta_px"]))
    return await _after_navigation(session, accepted)


async def handle_select_samples(args: dict[str, Any], session: ViewerSession) -> dict:
    session.store.toggle_sample_selection(args["sample_ids"], args.get("mode", "replace"), source="mcp")
    return _text(view_state(session))


async def handle_set_filter(args: dict[str, Any], session: ViewerSession) -> dict:
    """Handle set_filter tool call.

    Either ``values`` (membership) or ``low``/``high`` (inclusive range) must
    be given.
    """
    field = args["field"]
    values = args.get("values")
    if values is not None:
        predicate = field_filter(field, values)
    elif args.get("low") is not None or args.get("high") is not None:
        predicate = range_filter(field, args.get("low"), args.get("high"))
    else:
        raise ValueError("set_filter needs either values or a low/high bound")
    session.store.set_filter(args.get("key") or field, predicate, source="mcp")
    return _text(view_state(session))


async def handle_clear_filter(args: dict[str, Any], session: ViewerSession) -> dict:
    key = args.get("key")
    if key is None:
        session.store.clear_filters(source="mcp")
    elif not session.store.clear_filter(key, source="mcp"):
        logger.debug("clear_filter: no filter named %s", key)
    return _text(view_state(session))


async def handle_render_view(args: dict[str, Any], session: ViewerSession) -> dict:
    """Render the viewport; the display list travels in ``_meta``."""
    await session.settle()
    surface = session.render()
    summary = (
        f"Rendered {session.viewport.region} at {surface.width}x{surface.height}px: "
        f"{len(surface.primitives)} primitives across {len(session.viewport.tracks)} tracks"
    )
    return {
        "content": [{"type": "text", "text": summary}],
        "_meta": {"ui/init": surface.to_dict()},
    }


async def handle_share_link(args: dict[str, Any], session: ViewerSession) -> dict:
    return _text({"link": session.share_link(args.get("base_url") or "")})


async def handle_hit_test(args: dict[str, Any], session: ViewerSession) -> dict:
    """Handle hit_test tool call; with ``select`` the hit is also selected."""
    px, py = float(args["px"]), float(args["py"])
    hit = session.viewport.hit_test(px, py)
    if hit is None:
        return _text({"track": None, "feature": None})
    track_id, feature_id = hit
    if args.get("select"):
        session.coordinator.select_at(px, py, mode=args.get("mode", "replace"))
        return _text({"track": track_id, "feature": feature_id, **view_state(session)})
    return _text({"track": track_id, "feature": feature_id})
