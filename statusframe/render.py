from __future__ import annotations

import base64
import io
import logging
from typing import List, Optional
from xml.sax.saxutils import escape, quoteattr

from PIL import Image

from statusframe.layout import Box, ImageRef, Panel, PanelLayout, TextAnchor

logger = logging.getLogger(__name__)

DEFAULT_FONT_FAMILY = "DejaVu Sans, sans-serif"
PANEL_RADIUS = 10
MARKER_RADIUS = 8


def _rotation_transform(layout: PanelLayout) -> str:
    w, h = layout.width, layout.height
    rot = layout.rotation % 360
    if rot == 90:
        return f"translate({h} 0) rotate(90)"
    if rot == 180:
        return f"translate({w} {h}) rotate(180)"
    if rot == 270:
        return f"translate(0 {w}) rotate(270)"
    return ""


def _rect(box: Box, radius: float, stroke: str = "#000", width: float = 2, fill: str = "none", dash: str = "") -> str:
    extra = f' stroke-dasharray="{dash}"' if dash else ""
    return (
        f'<rect x="{box.x:.2f}" y="{box.y:.2f}" width="{box.width:.2f}" height="{box.height:.2f}" '
        f'rx="{radius}" fill="{fill}" stroke="{stroke}" stroke-width="{width}"{extra}/>'
    )


def _text(t: TextAnchor) -> str:
    return (
        f'<text x="{t.x:.2f}" y="{t.y:.2f}" font-size="{t.size}" font-weight="{t.weight}" '
        f'text-anchor="{t.anchor}" fill="#000">{escape(t.text)}</text>'
    )


def _image(ref: ImageRef) -> str:
    encoded = base64.b64encode(ref.data).decode("ascii")
    href = quoteattr(f"data:{ref.mime_type};base64,{encoded}")
    b = ref.box
    return (
        f'<image x="{b.x:.2f}" y="{b.y:.2f}" width="{b.width:.2f}" height="{b.height:.2f}" '
        f'preserveAspectRatio="xMidYMid slice" href={href} xlink:href={href}/>'
    )


def _panel(panel: Panel) -> List[str]:
    out = [f'<g id="panel-{panel.role}">', _rect(panel.box, PANEL_RADIUS)]
    if panel.track is not None:
        out.append(f'<path d="{panel.track.path_data()}" fill="none" stroke="#000" stroke-width="3"/>')
    for frame in panel.frames:
        out.append(_rect(frame, 6, stroke="#666", width=1, dash="4 3"))
    out.extend(_image(ref) for ref in panel.images)
    out.extend(_text(t) for t in panel.texts)
    if panel.marker is not None:
        x, y = panel.marker.point
        out.append(
            f'<circle cx="{x:.2f}" cy="{y:.2f}" r="{MARKER_RADIUS}" fill="#000" stroke="#fff" stroke-width="2"/>'
        )
    out.append("</g>")
    return out


def to_svg(layout: PanelLayout, font_family: Optional[str] = None) -> str:
    out_w, out_h = layout.output_size
    family = quoteattr(font_family or DEFAULT_FONT_FAMILY)
    transform = _rotation_transform(layout)
    parts = [
        f'<svg xmlns="http://www.w3.org/2000/svg" xmlns:xlink="http://www.w3.org/1999/xlink" '
        f'width="{out_w}" height="{out_h}" viewBox="0 0 {out_w} {out_h}">',
        f'<rect width="{out_w}" height="{out_h}" fill="#fff"/>',
        f'<g font-family={family}' + (f' transform="{transform}">' if transform else ">"),
    ]
    for panel in layout.panels:
        parts.extend(_panel(panel))
    parts.append("</g>")
    parts.append("</svg>")
    return "\n".join(parts)


def _quantize_gray(img: Image.Image, levels: int) -> Image.Image:
    if levels < 2 or levels >= 256:
        return img
    step = 255 / (levels - 1)
    return img.point(lambda v: int(round(round(v / step) * step)))


def rasterize(
    layout: PanelLayout,
    font_family: Optional[str] = None,
    grayscale: bool = True,
    gray_levels: int = 0,
) -> bytes:
    import cairosvg

    svg = to_svg(layout, font_family)
    out_w, out_h = layout.output_size
    png = cairosvg.svg2png(bytestring=svg.encode("utf-8"), output_width=out_w, output_height=out_h)
    img = Image.open(io.BytesIO(png))
    if img.mode in ("RGBA", "LA", "P"):
        img = img.convert("RGBA")
        background = Image.new("RGB", img.size, "white")
        background.paste(img, (0, 0), img)
        img = background
    if img.size != (out_w, out_h):
        logger.debug("Rasterized size %s differs from %s, resizing", img.size, (out_w, out_h))
        img = img.resize((out_w, out_h))
    if grayscale:
        img = _quantize_gray(img.convert("L"), gray_levels)
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()
