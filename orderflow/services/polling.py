"""
Polling Synchronization

Clients learn about changes by re-fetching, never by server push. Each
polled read carries:

    X-Poll-Interval  seconds the client should wait before the next fetch
    ETag             weak validator over the JSON body
    Cache-Control    no-cache, so intermediaries always revalidate

A request sending ``If-None-Match`` with the current tag gets an empty
304, which keeps a 5-second kitchen display cheap when nothing moved.
"""

import hashlib
import json
from enum import Enum
from typing import Any

from fastapi import Request, Response
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse

from orderflow.core.config import get_settings


class PollingView(str, Enum):
    KITCHEN_DISPLAY = "kitchen_display"
    ORDER_BOARD = "order_board"
    ORDER_HISTORY = "order_history"
    TABLE_MAP = "table_map"


def poll_interval(view: PollingView) -> int:
    """Refresh cadence advertised for ``view``, in seconds."""
    settings = get_settings()
    return {
        PollingView.KITCHEN_DISPLAY: settings.kitchen_poll_seconds,
        PollingView.ORDER_BOARD: settings.order_board_poll_seconds,
        PollingView.ORDER_HISTORY: settings.history_poll_seconds,
        PollingView.TABLE_MAP: settings.table_map_poll_seconds,
    }[view]


def compute_etag(content: Any) -> str:
    """Weak ETag over JSON-compatible ``content``."""
    raw = json.dumps(content, sort_keys=True, separators=(",", ":"), default=str)
    return f'W/"{hashlib.sha1(raw.encode("utf-8")).hexdigest()}"'


def _matches(if_none_match: str, etag: str) -> bool:
    candidates = [tag.strip() for tag in if_none_match.split(",")]
    return "*" in candidates or etag in candidates


def polled_response(
    request: Request,
    payload: Any,
    view: PollingView,
    volatile: tuple[str, ...] = (),
) -> Response:
    """
    Serialize ``payload`` (models are dumped by alias) with polling headers.

    Top-level keys named in ``volatile`` (e.g. a generation timestamp) are
    left out of the ETag. Returns 304 without a body when the client
    already holds this state.
    """
    content = jsonable_encoder(payload, by_alias=True)
    if volatile and isinstance(content, dict):
        etag = compute_etag({k: v for k, v in content.items() if k not in volatile})
    else:
        etag = compute_etag(content)
    headers = {
        "ETag": etag,
        "Cache-Control": "no-cache",
        "X-Poll-Interval": str(poll_interval(view)),
    }

    if_none_match = request.headers.get("if-none-match")
    if if_none_match and _matches(if_none_match, etag):
        return Response(status_code=304, headers=headers)

    return JSONResponse(content=content, headers=headers)
