"""
Document Layout

Converts a Document into a visual tree: absolutely positioned nodes with
CSS-like style declarations, plus the fonts and images the tree needs
before it can be drawn. Those assets load asynchronously; the tree only
reports layout-complete once every one of them has resolved.
"""

import asyncio
import io
import textwrap
from dataclasses import dataclass, field
from typing import Awaitable, Callable, Iterator

from PIL import Image, ImageFont

from ..models import Document, DocumentKind

PAGE_WIDTH = 900
PADDING = 40

# Column geometry for the itemized table: (x, width)
COL_DESCRIPTION = (PADDING, 400)
COL_QUANTITY = (460, 120)
COL_UNIT_PRICE = (590, 120)
COL_LINE_TOTAL = (720, PAGE_WIDTH - PADDING - 720)

TOTALS_LABEL = (500, 200)
TOTALS_VALUE = (700, PAGE_WIDTH - PADDING - 700)

# Variant palettes. Values mirror what a Tailwind v4 build emits: modern
# color functions, some with an sRGB fallback declared next to them.
THEMES = {
    "classic": {
        "accent": {"color": "#1f4d3a"},
        "muted": {"color": "#6b7280"},
        "border": {"border-color": "#e5e7eb"},
        "panel": {"background-color": "#ffffff"},
        "band": {"background-color": "#f4f7f5"},
    },
    "soft": {
        "accent": {"color": "oklch(0.45 0.09 160)", "color-fallback": "#2f6b55"},
        "muted": {"color": "lab(55% 0 -5)", "color-fallback": "#7b8190"},
        "border": {"border-color": "oklch(0.93 0.01 160)", "border-color-fallback": "#e3ece7"},
        "panel": {"background-color": "#fcfdfb"},
        "band": {"background-color": "color-mix(in oklab, #2f6b55 8%, white)", "background-color-fallback": "#eef4f1"},
    },
    "statement": {
        "accent": {"color": "#111827"},
        # No fallback: stripped before capture, drawn with the default color
        "muted": {"color": "lab(45% 0 0)"},
        "border": {"border-color": "#d1d5db"},
        "panel": {"background-color": "#ffffff"},
        "band": {"background-color": "#f3f4f6"},
    },
}
THEMES["compact"] = THEMES["classic"]
THEMES["summary"] = THEMES["soft"]


@dataclass
class VisualNode:
    """A positioned element: box, rule, text or image."""

    tag: str
    x: int = 0
    y: int = 0
    width: int = 0
    height: int = 0
    text: str = ""
    style: dict = field(default_factory=dict)
    asset: str | None = None
    children: list["VisualNode"] = field(default_factory=list)

    def walk(self) -> Iterator["VisualNode"]:
        yield self
        for child in self.children:
            yield from child.walk()


AssetLoader = Callable[[], Awaitable[object]]


@dataclass
class VisualTree:
    """Root node plus the assets that must load before capture."""

    root: VisualNode
    loaders: dict[str, AssetLoader] = field(default_factory=dict)
    assets: dict[str, object] = field(default_factory=dict)
    complete: bool = False

    @property
    def width(self) -> int:
        return self.root.width

    @property
    def height(self) -> int:
        return self.root.height

    async def wait_until_complete(self, timeout: float | None = None) -> None:
        """Resolve every pending asset. Raises asyncio.TimeoutError on timeout."""
        pending = {name: loader for name, loader in self.loaders.items() if name not in self.assets}
        if pending:
            names = list(pending)
            results = await asyncio.wait_for(
                asyncio.gather(*(pending[name]() for name in names)),
                timeout,
            )
            self.assets.update(zip(names, results))
        self.complete = True


def font_asset(size: int) -> str:
    return f"font:{size}"


def _font_loader(size: int) -> AssetLoader:
    async def load():
        return await asyncio.to_thread(ImageFont.load_default, size)
    return load


def image_loader_from_bytes(fetch: Callable[[], Awaitable[bytes]]) -> AssetLoader:
    """Wrap an async byte source (file read, HTTP fetch) as an image asset."""
    async def load():
        data = await fetch()
        image = await asyncio.to_thread(Image.open, io.BytesIO(data))
        await asyncio.to_thread(image.load)
        return image
    return load


class DocumentLayout:
    """Lays a Document out on a fixed-width page."""

    LINE = 22

    def __init__(self, logo_loader: Callable[[], Awaitable[bytes]] | None = None, scale: int = 1):
        self.logo_loader = logo_loader
        self.scale = scale

    def build(self, document: Document) -> VisualTree:
        theme = THEMES.get(document.variant, THEMES["classic"])
        self._theme = theme
        self._fonts: set[int] = set()
        root = VisualNode("box", 0, 0, PAGE_WIDTH, 0, style=dict(theme["panel"]))
        loaders: dict[str, AssetLoader] = {}

        y = PADDING
        if self.logo_loader is not None:
            root.children.append(VisualNode("image", PADDING, y, 160, 40, asset="logo"))
            loaders["logo"] = image_loader_from_bytes(self.logo_loader)
            y += 52

        y = self._header(root, document, y)
        y = self._parties(root, document, y)
        y = self._items(root, document, y)
        y = self._totals(root, document, y)
        if document.payment is not None:
            y = self._payment(root, document, y)
        y = self._notes(root, document, y)

        root.height = y + PADDING
        for size in sorted(self._fonts):
            loaders[font_asset(size * self.scale)] = _font_loader(size * self.scale)
        return VisualTree(root=root, loaders=loaders)

    # -------------------------------------------------------------------------
    # Primitives
    # -------------------------------------------------------------------------

    def _text(self, parent, x, y, width, text, size=13, role=None, align="left", bold=False) -> None:
        style = {"font-size": str(size), "text-align": align}
        if bold:
            style["font-weight"] = "bold"
        if role:
            style.update(self._theme[role])
        self._fonts.add(size)
        parent.children.append(VisualNode("text", x, y, width, size + 4, text=text, style=style))

    def _rule(self, parent, y) -> None:
        parent.children.append(
            VisualNode("rule", PADDING, y, PAGE_WIDTH - 2 * PADDING, 1, style=dict(self._theme["border"]))
        )

    # -------------------------------------------------------------------------
    # Sections
    # -------------------------------------------------------------------------

    def _header(self, root, document: Document, y: int) -> int:
        header = document.header
        right_x, right_w = 560, PAGE_WIDTH - PADDING - 560
        self._text(root, PADDING, y, 400, header.brand, size=22, role="accent", bold=True)
        self._text(root, right_x, y, right_w, f"No. {header.document_number}", align="right", bold=True)
        self._text(root, PADDING, y + 32, 400, header.title, size=18)
        self._text(root, right_x, y + self.LINE, right_w, f"Date: {header.date}", role="muted", align="right")
        self._text(root, right_x, y + 2 * self.LINE, right_w, f"Status: {header.status}", role="muted", align="right")
        ry = y + 3 * self.LINE
        for label, value in header.reference_numbers:
            self._text(root, right_x, ry, right_w, f"{label}: {value}", role="muted", align="right")
            ry += self.LINE
        y = max(y + 64, ry) + 12
        self._rule(root, y)
        return y + 16

    def _parties(self, root, document: Document, y: int) -> int:
        columns = len(document.parties) or 1
        col_w = (PAGE_WIDTH - 2 * PADDING) // columns
        bottom = y
        for i, (label, party) in enumerate(document.parties):
            x = PADDING + i * col_w
            self._text(root, x, y, col_w - 12, label.upper(), size=11, role="muted", bold=True)
            py = y + 20
            for line in party.lines():
                self._text(root, x, py, col_w - 12, line)
                py += 18
            bottom = max(bottom, py)
        return bottom + 16

    def _items(self, root, document: Document, y: int) -> int:
        band = VisualNode("box", PADDING, y, PAGE_WIDTH - 2 * PADDING, 28, style=dict(self._theme["band"]))
        root.children.append(band)
        ty = y + 7
        self._text(band, COL_DESCRIPTION[0] + 8, ty, COL_DESCRIPTION[1], "Description", size=11, role="muted", bold=True)
        for (x, w), label in ((COL_QUANTITY, "Quantity"), (COL_UNIT_PRICE, "Unit price"), (COL_LINE_TOTAL, "Line total")):
            self._text(band, x, ty, w - 8, label, size=11, role="muted", align="right", bold=True)
        y += 36

        for row in document.rows:
            self._text(root, COL_DESCRIPTION[0] + 8, y, COL_DESCRIPTION[1], row.description)
            self._text(root, COL_QUANTITY[0], y, COL_QUANTITY[1] - 8, row.quantity, align="right")
            self._text(root, COL_UNIT_PRICE[0], y, COL_UNIT_PRICE[1] - 8, row.unit_price, align="right")
            self._text(root, COL_LINE_TOTAL[0], y, COL_LINE_TOTAL[1] - 8, row.line_total, align="right")
            y += self.LINE
            if row.details and document.kind != DocumentKind.CHECKOUT_SUMMARY:
                self._text(root, COL_DESCRIPTION[0] + 8, y - 4, COL_DESCRIPTION[1], row.details, size=11, role="muted")
                y += 16
            self._rule(root, y)
            y += 8
        return y + 8

    def _totals(self, root, document: Document, y: int) -> int:
        for row in document.totals:
            size = 16 if row.emphasis else 13
            if row.emphasis:
                self._rule(root, y)
                y += 10
            self._text(root, TOTALS_LABEL[0], y, TOTALS_LABEL[1], row.label, size=size, bold=row.emphasis)
            self._text(root, TOTALS_VALUE[0], y, TOTALS_VALUE[1], row.value, size=size, align="right",
                       bold=row.emphasis, role="accent" if row.emphasis else None)
            y += self.LINE + (4 if row.emphasis else 0)
        return y + 12

    def _payment(self, root, document: Document, y: int) -> int:
        payment = document.payment
        self._text(root, PADDING, y, 300, "PAYMENT", size=11, role="muted", bold=True)
        y += 20
        lines = [f"Method: {payment.method}", f"Reference: {payment.reference}"]
        if payment.account_ending:
            lines.append(f"Account ending: {payment.account_ending}")
        if payment.status:
            lines.append(f"Status: {payment.status}")
        for line in lines:
            self._text(root, PADDING, y, 500, line)
            y += 18
        return y + 12

    def _notes(self, root, document: Document, y: int) -> int:
        width = PAGE_WIDTH - 2 * PADDING
        for line in document.meta_lines:
            self._text(root, PADDING, y, width, line, size=11, role="muted")
            y += 16
        if document.payment_instructions:
            y += 8
            self._text(root, PADDING, y, width, "PAYMENT INSTRUCTIONS", size=11, role="muted", bold=True)
            y += 18
            for line in document.payment_instructions:
                self._text(root, PADDING, y, width, f"• {line}", size=12)
                y += 18
        if document.footer_note:
            y += 8
            self._rule(root, y)
            y += 12
            for line in textwrap.wrap(document.footer_note, width=110):
                self._text(root, PADDING, y, width, line, size=11, role="muted")
                y += 16
        return y
