"""Discord presentation layer.

Renders scrape results, price queries and page controls as Discord message
content and posts them through a webhook.  Navigation components are only
interactive for application-owned webhooks; plain webhooks still show the
page text.
"""
from __future__ import annotations

import logging
from typing import Iterable, List, Optional, Sequence

import requests

from .config import DISCORD_WEBHOOK_URL
from .pagination import ButtonRow, ControlDescriptor, PageSelector, RenderedPage
from .ranking import PriceQuery
from .scraper import ScrapeFailure, ScrapeResult
from .utils import get_http_session, retryable_request

logger = logging.getLogger(__name__)

# Discord component type / style codes
_ACTION_ROW = 1
_BUTTON = 2
_STRING_SELECT = 3
_STYLE_PRIMARY = 1
_STYLE_SECONDARY = 2

# Discord rejects message content longer than this.
MAX_CONTENT_LENGTH = 2000


@retryable_request
def _post(session: requests.Session, url: str, **kwargs) -> requests.Response:
    return session.post(url, **kwargs)


def render_result_line(result: ScrapeResult) -> str:
    if isinstance(result, ScrapeFailure):
        return f"[{result.id}] 🚫 **{result.name}** - Error: {result.error}\n{result.url}"
    emoji = "🔴" if result.is_out_of_stock else "🟢"
    return (
        f"[{result.id}] {emoji} **{result.name}**\n"
        f"Price: `{result.price}`\nStock: `{result.stock}`\n{result.url}"
    )


def render_page(items: Sequence[ScrapeResult], page_index: int, page_count: int) -> str:
    lines = "\n\n".join(render_result_line(r) for r in items)
    return f"📊 **Product Status Summary (Page {page_index + 1}/{page_count})**\n\n{lines}"


def render_price_query(query: PriceQuery) -> str:
    if not query.items:
        return "❌ No valid price data available"
    entries = []
    for p in query.items:
        diff = f"{p.difference:.2f}" if p.difference else "N/A"
        entries.append(
            f"[{p.id}] **{p.name}**\nPrice: `{p.price}` ({p.price_num:.2f})\nDifference: `{diff}`"
        )
    heading = f"💰 **Product Prices (Target: {query.target:g})**"
    if query.is_range:
        heading += "\nNo exact match; showing lowest, highest and median."
    return heading + "\n\n" + "\n\n".join(entries)


def render_invalid(results: Iterable[ScrapeResult]) -> str:
    failures: List[ScrapeFailure] = [r for r in results if isinstance(r, ScrapeFailure)]
    if not failures:
        return "✅ All products are working correctly!"
    listing = "\n\n".join(f"[{f.id}] **{f.name}**\n{f.url}\nError: {f.error}" for f in failures)
    return f"⚠️ **Invalid Products ({len(failures)})**\n\n{listing}"


def components_payload(controls: ControlDescriptor) -> List[dict]:
    """Discord action-row JSON for a control descriptor."""
    if isinstance(controls, ButtonRow):
        components = [
            {
                "type": _BUTTON,
                "custom_id": b.custom_id,
                "label": b.label,
                "style": _STYLE_PRIMARY if b.active else _STYLE_SECONDARY,
            }
            for b in controls.buttons
        ]
    elif isinstance(controls, PageSelector):
        components = [{
            "type": _STRING_SELECT,
            "custom_id": controls.custom_id,
            "placeholder": controls.placeholder,
            "options": [
                {"label": o.label, "description": o.description, "value": o.value}
                for o in controls.options
            ],
        }]
    else:
        raise TypeError(f"Unsupported control descriptor: {controls!r}")
    return [{"type": _ACTION_ROW, "components": components}]


def _truncate(content: str) -> str:
    if len(content) <= MAX_CONTENT_LENGTH:
        return content
    return content[: MAX_CONTENT_LENGTH - 1] + "…"


def build_payload(message: RenderedPage | str) -> dict:
    if isinstance(message, RenderedPage):
        return {
            "content": _truncate(message.content),
            "components": components_payload(message.controls),
        }
    return {"content": _truncate(message)}


def publish(
    message: RenderedPage | str,
    webhook_url: Optional[str] = None,
    session: Optional[requests.Session] = None,
) -> Optional[str]:
    """
    Post a message to the Discord webhook.
    Returns the created message id (used to bind page views) or None when
    nothing was sent.
    """
    if webhook_url is None:
        webhook_url = DISCORD_WEBHOOK_URL
    if not webhook_url:
        logger.debug("Discord webhook URL is not configured; skipping publish.")
        return None

    close_session = False
    if session is None:
        session = get_http_session()
        close_session = True

    try:
        payload = build_payload(message)
        logger.info("Posting %d chars to Discord webhook", len(payload["content"]))
        # wait=true makes Discord return the created message
        resp = _post(session, webhook_url, params={"wait": "true"}, json=payload)
        try:
            return str(resp.json().get("id") or "") or None
        except ValueError:
            return None
    finally:
        if close_session:
            session.close()
