"""Changelog document model and insertion engine (pure, synchronous)."""

from .document import LineRole, LocationResult, RewriteCase
from .locator import iter_line_roles, locate
from .rewriter import generate_updated_changelog, rewrite
from .skeleton import create_skeleton, render_skeleton

__all__ = [
    "LineRole",
    "LocationResult",
    "RewriteCase",
    "iter_line_roles",
    "locate",
    "rewrite",
    "generate_updated_changelog",
    "create_skeleton",
    "render_skeleton",
]
