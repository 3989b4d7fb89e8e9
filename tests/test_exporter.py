"""
Tests for style hooks, layout and the static raster exporter.

Async paths are driven with asyncio.run.
"""

import asyncio
import io
import os
from decimal import Decimal

import pytest
from PIL import Image

from billing.calculators import MonetaryBreakdownCalculator
from billing.documents import CaptureContext, DocumentRenderer, StaticRasterExporter
from billing.documents.exporter import export_filename
from billing.documents.layout import DocumentLayout, VisualNode, VisualTree
from billing.documents.styles import StyleHookRegistry, is_unsupported_color, neutralize_colors
from billing.errors import CaptureFailure
from billing.models import DocumentKind, FeePolicy, LineItem, Party


@pytest.fixture
def hooks():
    return StyleHookRegistry()


@pytest.fixture
def items():
    return [
        LineItem("tomatoes", "Roma tomatoes", Decimal("24.99"), 2, unit="crate"),
        LineItem("peppers", "Scotch bonnet peppers", Decimal("18.50"), 3, unit="kg"),
    ]


def make_document(items, kind=DocumentKind.INVOICE, variant=None, number="INV-2025-0042"):
    breakdown = MonetaryBreakdownCalculator().calculate(items, "standard", FeePolicy(tax_rate=Decimal("0.08")))
    return DocumentRenderer(brand="Procur").render(
        kind,
        breakdown,
        items,
        document_number=number,
        date="14 Mar 2025",
        status="issued",
        buyer=Party(name="Island Grill Ltd"),
        seller=Party(name="Blue Mountain Farms"),
        variant=variant,
    )


class TestColorNeutralization:
    @pytest.mark.parametrize(
        "value",
        ["lab(55% 0 -5)", "LCH(50% 30 120)", "oklab(0.5 0 0)", "oklch(0.45 0.09 160)",
         "color(display-p3 1 0 0)", "color-mix(in oklab, red 10%, white)"],
    )
    def test_unsupported(self, value):
        assert is_unsupported_color(value)

    @pytest.mark.parametrize("value", ["#1f4d3a", "rgb(0, 0, 0)", "hsl(120, 50%, 50%)", "white", ""])
    def test_supported(self, value):
        assert not is_unsupported_color(value)

    def test_fallback_substituted(self):
        style = {"color": "oklch(0.45 0.09 160)", "color-fallback": "#2f6b55", "font-size": "13"}
        assert neutralize_colors(None, style) == {"color": "#2f6b55", "font-size": "13"}

    def test_stripped_without_fallback(self):
        assert neutralize_colors(None, {"color": "lab(45% 0 0)"}) == {"color": ""}

    def test_unsupported_fallback_also_stripped(self):
        style = {"color": "lab(45% 0 0)", "color-fallback": "oklch(0.4 0 0)"}
        assert neutralize_colors(None, style) == {"color": ""}


class TestStyleHooks:
    def test_no_override_returns_declared_style(self, hooks):
        node = VisualNode("text", style={"color": "lab(45% 0 0)"})
        assert hooks.computed_style(node) == {"color": "lab(45% 0 0)"}

    def test_install_and_uninstall(self, hooks):
        node = VisualNode("text", style={"color": "lab(45% 0 0)"})
        token = hooks.install(neutralize_colors)
        assert hooks.computed_style(node) == {"color": ""}
        hooks.uninstall(token)
        assert hooks.active_overrides == 0
        assert hooks.computed_style(node) == {"color": "lab(45% 0 0)"}

    def test_capture_context_scopes_override(self, hooks):
        with CaptureContext(hooks) as ctx:
            assert ctx.active
            assert hooks.active_overrides == 1
        assert hooks.active_overrides == 0

    def test_capture_context_released_on_error(self, hooks):
        with pytest.raises(RuntimeError):
            with CaptureContext(hooks):
                raise RuntimeError("draw failed")
        assert hooks.active_overrides == 0

    def test_capture_context_not_reentrant(self, hooks):
        ctx = CaptureContext(hooks)
        with ctx:
            with pytest.raises(CaptureFailure):
                ctx.__enter__()
        assert hooks.active_overrides == 0


class TestLayout:
    def test_tree_lists_font_loaders(self, items):
        tree = DocumentLayout(scale=2).build(make_document(items))
        assert tree.width == 900
        assert tree.height > 0
        assert not tree.complete
        assert all(name.startswith("font:") for name in tree.loaders)

    def test_wait_until_complete_loads_assets(self, items):
        tree = DocumentLayout().build(make_document(items))
        asyncio.run(tree.wait_until_complete(10))
        assert tree.complete
        assert set(tree.assets) == set(tree.loaders)

    def test_logo_registered(self, items):
        async def logo():
            buf = io.BytesIO()
            Image.new("RGB", (16, 16), "#1f4d3a").save(buf, format="PNG")
            return buf.getvalue()

        tree = DocumentLayout(logo_loader=logo).build(make_document(items))
        assert "logo" in tree.loaders
        asyncio.run(tree.wait_until_complete(10))
        assert tree.assets["logo"].size == (16, 16)


class TestExport:
    @pytest.fixture
    def exporter(self, hooks):
        return StaticRasterExporter(scale=1, hooks=hooks)

    def test_filename(self, items):
        document = make_document(items, kind=DocumentKind.CHECKOUT_SUMMARY, number="ORD 1001")
        assert export_filename(document) == "procur-checkout-summary-ord-1001.pdf"

    def test_exports_single_page_pdf(self, exporter, hooks, items):
        exported = exporter.export_sync(make_document(items))
        assert exported.filename == "procur-invoice-inv-2025-0042.pdf"
        assert exported.mimetype == "application/pdf"
        assert exported.content.startswith(b"%PDF")
        assert hooks.active_overrides == 0

    @pytest.mark.parametrize("variant", ["soft", "statement"])
    def test_modern_colors_exported(self, exporter, items, variant):
        exported = exporter.export_sync(make_document(items, variant=variant))
        assert exported.content.startswith(b"%PDF")

    def test_modern_colors_fail_without_neutralization(self, exporter, items):
        tree = DocumentLayout(scale=1).build(make_document(items, variant="soft"))
        asyncio.run(tree.wait_until_complete(10))
        with pytest.raises(ValueError):
            exporter._rasterize(tree)

    def test_page_size_is_a4(self, exporter):
        assert exporter.page_size == (1240, 1754)

    def test_failed_capture_releases_override(self, exporter, hooks):
        tree = VisualTree(root=VisualNode("box", 0, 0, 100, 100, style={"background-color": "not-a-color"}))
        with pytest.raises(ValueError):
            asyncio.run(exporter.capture(tree))
        assert hooks.active_overrides == 0

    def test_export_failure_is_capture_failure(self, exporter, hooks, items, monkeypatch):
        def broken(tree):
            raise RuntimeError("canvas exploded")

        monkeypatch.setattr(exporter, "_rasterize", broken)
        with pytest.raises(CaptureFailure, match="canvas exploded"):
            exporter.export_sync(make_document(items))
        assert hooks.active_overrides == 0

    def test_layout_timeout(self, exporter):
        async def never():
            await asyncio.sleep(5)

        exporter.layout_timeout = 0.01
        tree = VisualTree(root=VisualNode("box", 0, 0, 10, 10), loaders={"font:13": never})
        with pytest.raises(CaptureFailure, match="did not complete"):
            asyncio.run(exporter.capture(tree))

    def test_export_to_writes_file(self, exporter, items, tmp_path):
        target = asyncio.run(exporter.export_to(make_document(items), tmp_path))
        assert target == tmp_path / "procur-invoice-inv-2025-0042.pdf"
        assert target.read_bytes().startswith(b"%PDF")
        assert [p.name for p in tmp_path.iterdir()] == [target.name]

    def test_failed_capture_writes_no_file(self, exporter, items, tmp_path, monkeypatch):
        def broken(tree):
            raise RuntimeError("canvas exploded")

        monkeypatch.setattr(exporter, "_rasterize", broken)
        with pytest.raises(CaptureFailure):
            asyncio.run(exporter.export_to(make_document(items), tmp_path / "out"))
        assert not (tmp_path / "out").exists()

    def test_failed_write_leaves_no_partial_file(self, exporter, items, tmp_path, monkeypatch):
        def refuse(src, dst):
            raise OSError("disk full")

        monkeypatch.setattr(os, "replace", refuse)
        with pytest.raises(CaptureFailure, match="disk full"):
            asyncio.run(exporter.export_to(make_document(items), tmp_path))
        assert list(tmp_path.iterdir()) == []
