"""Site-state validation."""

from .gate import (
    ValidationGate,
    ValidationResult,
    format_validation_errors,
    iter_pages,
    page_route,
    page_slug,
    used_component_types,
)
from .registry import ComponentRegistry, PRODUCTION_COMPONENTS

__all__ = [
    "ComponentRegistry",
    "PRODUCTION_COMPONENTS",
    "ValidationGate",
    "ValidationResult",
    "format_validation_errors",
    "iter_pages",
    "page_route",
    "page_slug",
    "used_component_types",
]
