"""
Static Raster Exporter

Rasterizes a rendered document and embeds the image, full width, into a
single A4 PDF page.

Capture needs unsupported color functions neutralized, which means
installing an override on the process-wide style hooks. CaptureContext
owns that override: it is installed immediately before drawing and
removed on exit, whether or not drawing succeeded.
"""

import asyncio
import io
import logging
import os
import re
import tempfile
from dataclasses import dataclass
from pathlib import Path
from typing import Awaitable, Callable

from PIL import Image, ImageColor, ImageDraw

from ..errors import CaptureFailure
from ..models import Document
from .layout import DocumentLayout, VisualTree, font_asset
from .styles import STYLE_HOOKS, StyleHookRegistry, StyleOverride, neutralize_colors

logger = logging.getLogger(__name__)

A4_MM = (210.0, 297.0)
MM_PER_INCH = 25.4

DEFAULT_TEXT_COLOR = "#111827"
PDF_MIMETYPE = "application/pdf"


@dataclass(frozen=True)
class ExportedFile:
    filename: str
    content: bytes
    mimetype: str = PDF_MIMETYPE


def export_filename(document: Document, brand: str | None = None) -> str:
    """Deterministic download name, e.g. procur-receipt-rct-2025-00491.pdf."""
    brand = brand or document.header.brand
    kind = document.kind.value.replace("_", "-")
    stem = f"{brand}-{kind}-{document.header.document_number}".lower()
    stem = re.sub(r"[^a-z0-9.-]+", "-", stem).strip("-")
    return f"{stem}.pdf"


class CaptureContext:
    """
    Scoped style override for the duration of one capture.

        with CaptureContext():
            image = rasterize(tree)
    """

    def __init__(self, hooks: StyleHookRegistry = STYLE_HOOKS, override: StyleOverride = neutralize_colors):
        self.hooks = hooks
        self.override = override
        self._token: int | None = None

    @property
    def active(self) -> bool:
        return self._token is not None

    def __enter__(self) -> "CaptureContext":
        if self._token is not None:
            raise CaptureFailure("Capture context is already active")
        self._token = self.hooks.install(self.override)
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        self.hooks.uninstall(self._token)
        self._token = None
        return False


class StaticRasterExporter:
    """Turns Documents into single-page PDF downloads."""

    def __init__(
        self,
        scale: int = 2,
        dpi: int = 150,
        background: str = "#ffffff",
        layout_timeout: float = 10.0,
        hooks: StyleHookRegistry = STYLE_HOOKS,
        logo_loader: Callable[[], Awaitable[bytes]] | None = None,
    ):
        self.scale = scale
        self.dpi = dpi
        self.background = background
        self.layout_timeout = layout_timeout
        self.hooks = hooks
        self.logo_loader = logo_loader

    @property
    def page_size(self) -> tuple[int, int]:
        """A4 in pixels at the configured dpi."""
        return tuple(round(mm / MM_PER_INCH * self.dpi) for mm in A4_MM)

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    async def export(self, document: Document) -> ExportedFile:
        """
        Lay out, capture and package a document.

        Everything happens in memory; any failure surfaces as CaptureFailure
        and the caller may simply call export again.
        """
        filename = export_filename(document)
        try:
            tree = DocumentLayout(logo_loader=self.logo_loader, scale=self.scale).build(document)
            image = await self.capture(tree)
            content = await asyncio.to_thread(self._to_pdf, image)
        except CaptureFailure:
            raise
        except Exception as e:
            logger.error(f"Export failed for {filename}: {str(e)}", exc_info=True)
            raise CaptureFailure(f"Could not export {filename}: {str(e)}") from e

        logger.info(f"Exported {filename} ({len(content)} bytes)")
        return ExportedFile(filename=filename, content=content)

    async def export_to(self, document: Document, directory: str | os.PathLike) -> Path:
        """Export and write atomically into `directory`. No partial file is left behind."""
        exported = await self.export(document)
        target_dir = Path(directory)
        target_dir.mkdir(parents=True, exist_ok=True)
        target = target_dir / exported.filename

        fd, tmp_name = tempfile.mkstemp(dir=target_dir, prefix=".export-", suffix=".part")
        try:
            with os.fdopen(fd, "wb") as fh:
                fh.write(exported.content)
            os.replace(tmp_name, target)
        except OSError as e:
            Path(tmp_name).unlink(missing_ok=True)
            raise CaptureFailure(f"Could not write {target}: {str(e)}") from e
        return target

    def export_sync(self, document: Document) -> ExportedFile:
        """Blocking wrapper for callers without an event loop (Flask views)."""
        return asyncio.run(self.export(document))

    async def capture(self, tree: VisualTree) -> Image.Image:
        """Wait for layout-complete, then draw the tree under a scoped style override."""
        try:
            await tree.wait_until_complete(self.layout_timeout)
        except asyncio.TimeoutError as e:
            raise CaptureFailure(f"Layout did not complete within {self.layout_timeout}s") from e

        with CaptureContext(self.hooks):
            return self._rasterize(tree)

    # -------------------------------------------------------------------------
    # Drawing
    # -------------------------------------------------------------------------

    def _rasterize(self, tree: VisualTree) -> Image.Image:
        s = self.scale
        image = Image.new("RGB", (tree.width * s, tree.height * s), self.background)
        draw = ImageDraw.Draw(image)

        for node in tree.root.walk():
            style = self.hooks.computed_style(node)
            box = (node.x * s, node.y * s, (node.x + node.width) * s, (node.y + node.height) * s)

            if node.tag == "box":
                fill = self._color(style.get("background-color"))
                outline = self._color(style.get("border-color"))
                if fill or outline:
                    draw.rectangle(box, fill=fill, outline=outline)
            elif node.tag == "rule":
                color = self._color(style.get("border-color")) or DEFAULT_TEXT_COLOR
                draw.line((box[0], box[1], box[2], box[1]), fill=color, width=s)
            elif node.tag == "text":
                self._draw_text(draw, tree, node, style, box)
            elif node.tag == "image":
                logo = tree.assets[node.asset]
                fitted = logo.convert("RGBA")
                fitted.thumbnail((box[2] - box[0], box[3] - box[1]))
                image.paste(fitted, (box[0], box[1]), fitted)

        return image

    def _draw_text(self, draw, tree: VisualTree, node, style, box) -> None:
        size = int(style.get("font-size", "13")) * self.scale
        font = tree.assets[font_asset(size)]
        color = self._color(style.get("color")) or DEFAULT_TEXT_COLOR
        x = box[0]
        if style.get("text-align") == "right":
            x = box[2] - draw.textlength(node.text, font=font)
        stroke = 1 if style.get("font-weight") == "bold" else 0
        draw.text((x, box[1]), node.text, fill=color, font=font, stroke_width=stroke, stroke_fill=color)

    @staticmethod
    def _color(value: str | None):
        """Parse a color; empty means "not set". Unsupported syntax raises ValueError."""
        if not value:
            return None
        return ImageColor.getrgb(value)

    def _to_pdf(self, image: Image.Image) -> bytes:
        page_w, page_h = self.page_size
        height = round(image.height * page_w / image.width)
        scaled = image.resize((page_w, height), Image.Resampling.LANCZOS)
        if height > page_h:
            logger.warning(f"Document taller than one page ({height}px > {page_h}px); bottom is cropped")
            scaled = scaled.crop((0, 0, page_w, page_h))

        page = Image.new("RGB", (page_w, page_h), self.background)
        page.paste(scaled, (0, 0))

        buf = io.BytesIO()
        page.save(buf, format="PDF", resolution=float(self.dpi))
        return buf.getvalue()
