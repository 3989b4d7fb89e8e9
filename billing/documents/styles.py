"""
Computed Style Hooks

Every node of a visual tree carries CSS-like style declarations. Whoever
draws a node asks the process-wide registry for its computed style, and the
registry runs the declarations through any overrides currently installed.

Overrides are shared by everything rendering in the process, so they are
only ever installed through a scoped handle (see CaptureContext in
exporter.py) and removed when that scope ends.
"""

import re
import threading
from typing import Callable, Dict

Style = Dict[str, str]
StyleOverride = Callable[[object, Style], Style]

# Color functions the rasterizer cannot parse. Tailwind v4 style sheets
# emit these, usually with an sRGB fallback declared alongside.
UNSUPPORTED_COLOR_FUNCTIONS = ("lab", "lch", "oklab", "oklch", "color", "color-mix")

_UNSUPPORTED_RE = re.compile(
    r"\b(?:%s)\(" % "|".join(re.escape(f) for f in UNSUPPORTED_COLOR_FUNCTIONS),
    re.IGNORECASE,
)

FALLBACK_SUFFIX = "-fallback"


def is_unsupported_color(value: str) -> bool:
    return bool(value) and _UNSUPPORTED_RE.search(value) is not None


def neutralize_colors(node, style: Style) -> Style:
    """
    Replace unsupported color values with their declared fallback.

    `color: oklch(...)` with `color-fallback: #1f4d3a` becomes
    `color: #1f4d3a`; without a usable fallback the value is stripped
    to "" and the drawer uses its default.
    """
    out = {}
    for prop, value in style.items():
        if prop.endswith(FALLBACK_SUFFIX):
            continue
        if is_unsupported_color(value):
            fallback = style.get(prop + FALLBACK_SUFFIX, "")
            value = "" if is_unsupported_color(fallback) else fallback
        out[prop] = value
    return out


class StyleHookRegistry:
    """Process-wide computed-style hook with installable overrides."""

    def __init__(self):
        self._lock = threading.Lock()
        self._overrides: dict[int, StyleOverride] = {}
        self._next_token = 0

    def computed_style(self, node) -> Style:
        style = dict(getattr(node, "style", {}) or {})
        with self._lock:
            overrides = list(self._overrides.values())
        for override in overrides:
            style = override(node, style)
        return style

    def install(self, override: StyleOverride) -> int:
        """Install an override. Returns the token needed to remove it."""
        with self._lock:
            token = self._next_token
            self._next_token += 1
            self._overrides[token] = override
            return token

    def uninstall(self, token: int) -> None:
        with self._lock:
            self._overrides.pop(token, None)

    @property
    def active_overrides(self) -> int:
        with self._lock:
            return len(self._overrides)


STYLE_HOOKS = StyleHookRegistry()
