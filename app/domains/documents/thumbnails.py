"""Thumbnail capture for version previews.

Rendering is pluggable: a renderer is any coroutine function taking the
title and blocks and returning a data URI (or None). Capture is best-effort;
a failing or slow renderer yields no thumbnail, never an error.
"""
import asyncio
import base64
import logging
from typing import Awaitable, Callable, List, Optional, Sequence
from xml.sax.saxutils import escape

from app.domains.documents.blocks import Block, BlockType, is_done, split_todo_marker
from app.domains.documents.links import strip_links

logger = logging.getLogger(__name__)

ThumbnailRenderer = Callable[[str, List[Block]], Awaitable[Optional[str]]]

WIDTH = 240
HEIGHT = 160
MAX_LINES = 6
MAX_LINE_CHARS = 34

_HEADING_SIZES = {
    BlockType.HEADING_1: 14,
    BlockType.HEADING_2: 12,
    BlockType.HEADING_3: 11,
}


def _truncate(text: str) -> str:
    text = " ".join(text.split())
    if len(text) > MAX_LINE_CHARS:
        return text[:MAX_LINE_CHARS - 1] + "…"
    return text


async def render_svg_thumbnail(title: str, blocks: Sequence[Block]) -> Optional[str]:
    """Render a small SVG preview of the page as a base64 data URI"""
    lines = [
        f'<svg xmlns="http://www.w3.org/2000/svg" width="{WIDTH}" height="{HEIGHT}">',
        f'<rect width="{WIDTH}" height="{HEIGHT}" fill="#ffffff"/>',
        f'<text x="12" y="24" font-size="16" font-weight="bold">{escape(_truncate(title))}</text>',
    ]

    y = 46
    for block in [b for b in blocks if b.content][:MAX_LINES]:
        size = _HEADING_SIZES.get(block.type, 10)
        content = strip_links(block.content)
        if block.type == BlockType.TODO_LIST:
            _, content = split_todo_marker(content)
            content = ("☑ " if is_done(block) else "☐ ") + content
        text = escape(_truncate(content))
        lines.append(f'<text x="12" y="{y}" font-size="{size}" fill="#37352f">{text}</text>')
        y += size + 8

    lines.append("</svg>")
    encoded = base64.b64encode("".join(lines).encode("utf-8")).decode("ascii")
    return f"data:image/svg+xml;base64,{encoded}"


async def capture_thumbnail(
    renderer: Optional[ThumbnailRenderer],
    title: str,
    blocks: Sequence[Block],
    timeout: float
) -> Optional[str]:
    """Run ``renderer`` under ``timeout``, returning None on any failure"""
    if renderer is None:
        return None

    try:
        return await asyncio.wait_for(renderer(title, list(blocks)), timeout=timeout)
    except asyncio.TimeoutError:
        logger.warning(f"Thumbnail rendering timed out after {timeout}s, skipping")
    except Exception:
        logger.warning("Thumbnail rendering failed, skipping", exc_info=True)
    return None
