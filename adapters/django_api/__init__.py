"""
POS Django HTTP adapter.
Thin framework glue over the sales store and integration layer.
"""

from adapters.django_api.wiring import (
    PosDependencies,
    build_dependencies,
    make_dependencies,
    set_dependencies,
)

__all__ = [
    "PosDependencies",
    "build_dependencies",
    "make_dependencies",
    "set_dependencies",
]
