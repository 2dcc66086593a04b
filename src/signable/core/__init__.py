"""Core rendering, layout, and signature lifecycle logic."""

from __future__ import annotations

from typing import TYPE_CHECKING

from ..errors import SignableError

if TYPE_CHECKING:
    import types

__all__: list[str] = []


def require_pikepdf() -> types.ModuleType:
    """Lazily import pikepdf to avoid loading the C extension at startup.

    pikepdf is a required dependency; this defers the import for
    startup performance, not optionality. Layout and lifecycle code
    never needs it.
    """
    try:
        import pikepdf
    except ImportError as exc:
        raise SignableError(
            "pikepdf is required to write PDF files.\nInstall with: pip install pikepdf"
        ) from exc
    else:
        return pikepdf
