"""
Documents Package

Receipt / invoice / checkout-summary rendering and PDF export.
"""

from .exporter import CaptureContext, ExportedFile, StaticRasterExporter
from .renderer import DocumentRenderer, document_to_dict

__all__ = [
    "DocumentRenderer",
    "document_to_dict",
    "StaticRasterExporter",
    "CaptureContext",
    "ExportedFile",
]
