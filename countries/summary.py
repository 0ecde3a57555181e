"""
Summary artifact: total count, last refresh time and the top countries by
estimated GDP.

The artifact format follows the configured path: ``.svg`` writes an SVG
document, anything else a PNG drawn with Pillow. Rendering happens fully in
memory; the bytes then go to a sibling temp file that is moved over the
destination, so readers never see a half-written artifact.
"""
import io
import logging
import math
import os
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional
from xml.sax.saxutils import escape

from PIL import Image, ImageDraw, ImageFont

from . import utils
from .exceptions import RenderError

logger = logging.getLogger(__name__)

TOP_N = 5
WIDTH = 900
LINE_HEIGHT = 30


@dataclass
class SummaryEntry:
    name: str
    currency_code: Optional[str]
    estimated_gdp: float

    @property
    def display(self) -> str:
        return f"{self.name} — {self.currency_code or 'N/A'} — est_gdp: {self.estimated_gdp:.2f}"


@dataclass
class Summary:
    total: int
    last_refreshed_at: str
    entries: List[SummaryEntry] = field(default_factory=list)

    @property
    def lines(self) -> List[str]:
        lines = [
            f"Total countries: {self.total}",
            f"Last refreshed: {self.last_refreshed_at}",
            f"Top {len(self.entries)} by estimated GDP:",
        ]
        lines.extend(entry.display for entry in self.entries)
        return lines


def _has_numeric_gdp(row) -> bool:
    value = getattr(row, "estimated_gdp", None)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return not math.isnan(value)


def build_summary(rows, last_refreshed_at: datetime, limit: int = TOP_N) -> Summary:
    rows = list(rows)
    ranked = sorted(
        (row for row in rows if _has_numeric_gdp(row)),
        key=lambda row: row.estimated_gdp,
        reverse=True,
    )[:limit]
    return Summary(
        total=len(rows),
        last_refreshed_at=last_refreshed_at.isoformat(),
        entries=[
            SummaryEntry(name=row.name, currency_code=row.currency_code, estimated_gdp=float(row.estimated_gdp))
            for row in ranked
        ],
    )


def _load_font(size):
    try:
        return ImageFont.truetype("arial.ttf", size)
    except OSError:
        return ImageFont.load_default(size=size)


def render_png(summary: Summary) -> bytes:
    lines = summary.lines
    height = max(200, 40 + LINE_HEIGHT * (len(lines) + 1))
    img = Image.new("RGB", (WIDTH, height), color="white")
    draw = ImageDraw.Draw(img)

    font_title = _load_font(24)
    font_body = _load_font(18)

    draw.text((20, 20), lines[0], fill="black", font=font_title)
    y = 20 + LINE_HEIGHT + 10
    for line in lines[1:3]:
        draw.text((20, y), line, fill="black", font=font_body)
        y += LINE_HEIGHT
    if not summary.entries:
        draw.text((40, y), "No GDP data available.", fill="gray", font=font_body)
    for line in lines[3:]:
        draw.text((40, y), line, fill="blue", font=font_body)
        y += LINE_HEIGHT

    buffer = io.BytesIO()
    img.save(buffer, "PNG")
    return buffer.getvalue()


def render_svg(summary: Summary) -> bytes:
    entities = {'"': "&quot;", "'": "&apos;"}
    texts = []
    y = 40
    for i, line in enumerate(summary.lines):
        size = 20 if i == 0 else (14 if i >= 3 else 16)
        x = 30 if i >= 3 else 20
        texts.append(f'<text x="{x}" y="{y}" font-size="{size}">{escape(line, entities)}</text>')
        y += LINE_HEIGHT
    height = max(200, y + 20)
    svg = (
        f'<svg xmlns="http://www.w3.org/2000/svg" width="{WIDTH}" height="{height}">\n'
        '  <rect width="100%" height="100%" fill="#fff"/>\n  '
        + "\n  ".join(texts)
        + "\n</svg>\n"
    )
    return svg.encode("utf-8")


def _write_atomic(path, data: bytes):
    directory = os.path.dirname(os.path.abspath(path))
    os.makedirs(directory, exist_ok=True)
    # created under the process umask so the artifact keeps the usual file mode
    tmp_path = os.path.join(directory, f".summary-{uuid.uuid4().hex}.tmp")
    try:
        with open(tmp_path, "xb") as fh:
            fh.write(data)
        os.replace(tmp_path, path)
    except BaseException:
        if os.path.exists(tmp_path):
            os.unlink(tmp_path)
        raise


def render_summary(rows, last_refreshed_at: datetime, path: Optional[str] = None) -> str:
    """Render the summary for ``rows`` and write it; returns the artifact path."""
    path = path or utils.get_summary_image_path()
    summary = build_summary(rows, last_refreshed_at)
    try:
        if path.lower().endswith(".svg"):
            data = render_svg(summary)
        else:
            data = render_png(summary)
        _write_atomic(path, data)
    except (OSError, ValueError) as exc:
        raise RenderError(f"Could not write summary image to {path}: {exc}") from exc
    logger.info("Summary image written to %s (%d top entries)", path, len(summary.entries))
    return path
