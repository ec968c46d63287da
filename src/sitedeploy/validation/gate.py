"""Structural validation of site state before any remote mutation."""

import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Set

from .registry import ComponentRegistry

HEX_COLOR = re.compile(r"^#[0-9A-Fa-f]{6}$")

THEME_COLOR_FIELDS = ("primary", "text", "background")
COMPONENT_COLOR_PROPS = ("mainColor", "textColor", "baseBgColor")
TITLED_COMPONENTS = {
    "auroraImageHero": "Hero component",
    "hero": "Hero component",
    "textAndList": "Text and list",
}
MAX_DESCRIPTION_LENGTH = 5000
ROOT_SLUGS = ("", "/", "home", "index")


@dataclass
class ValidationResult:
    """Outcome of a validation pass. Errors block, warnings do not."""

    valid: bool
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {"valid": self.valid, "errors": list(self.errors), "warnings": list(self.warnings)}


def is_hex_color(value: Any) -> bool:
    return isinstance(value, str) and bool(HEX_COLOR.match(value))


def _has_text(value: Any) -> bool:
    return isinstance(value, str) and bool(value.strip())


def iter_pages(site_state: Dict[str, Any]) -> List[Dict[str, Any]]:
    """Pages as a list, whether stored as a list or a slug mapping."""
    pages = site_state.get("pages") if isinstance(site_state, dict) else None
    if isinstance(pages, dict):
        result = []
        for slug, page in pages.items():
            if isinstance(page, dict):
                result.append({"slug": slug, **page})
        return result
    if isinstance(pages, list):
        return [p for p in pages if isinstance(p, dict)]
    return []


def page_slug(page: Dict[str, Any], index: int) -> str:
    slug = page.get("slug")
    if slug is None:
        name = page.get("name") or f"page-{index}"
        slug = re.sub(r"[^a-z0-9]+", "-", str(name).lower()).strip("-")
    return str(slug).strip("/")


def page_route(page: Dict[str, Any], index: int) -> str:
    """URL path a page is published under, without the leading slash."""
    slug = page_slug(page, index)
    return "" if slug in ROOT_SLUGS else slug


def used_component_types(site_state: Dict[str, Any]) -> Set[str]:
    used = set()
    for page in iter_pages(site_state):
        components = page.get("components")
        if isinstance(components, list):
            for component in components:
                if isinstance(component, dict) and component.get("type"):
                    used.add(component["type"])
    return used


class ValidationGate:
    """Reject a publish whose site state cannot be rendered.

    Runs synchronously over the whole document and makes no network calls,
    so it can be run speculatively before prompting the user.
    """

    def __init__(self, registry: Optional[ComponentRegistry] = None):
        self.registry = registry or ComponentRegistry()

    def validate(self, site_state: Optional[Dict[str, Any]]) -> ValidationResult:
        errors: List[str] = []
        warnings: List[str] = []

        if not site_state:
            errors.append("No website data to validate")
            return ValidationResult(valid=False, errors=errors, warnings=warnings)

        if not isinstance(site_state, dict) or not site_state.get("pages"):
            if isinstance(site_state, dict) and site_state.get("pages") is not None:
                errors.append("Website must have at least one page")
            else:
                errors.append("No pages defined in website data")
            return ValidationResult(valid=False, errors=errors, warnings=warnings)

        self._check_theme(site_state.get("colorTheme"), errors)

        pages = iter_pages(site_state)
        missing_types: List[str] = []
        for index, page in enumerate(pages):
            self._check_page(page, index, errors, warnings, missing_types)
        self._check_routes(pages, errors)

        if missing_types:
            errors.insert(0, f"Missing component types: {', '.join(missing_types)}")

        return ValidationResult(valid=not errors, errors=errors, warnings=warnings)

    @staticmethod
    def _check_theme(theme: Any, errors: List[str]) -> None:
        if not isinstance(theme, dict):
            return
        for name in THEME_COLOR_FIELDS:
            value = theme.get(name)
            if value and not is_hex_color(value):
                errors.append(f'Invalid {name} color: "{value}". Must be hex format like #FF0000')

    @staticmethod
    def _check_routes(pages: List[Dict[str, Any]], errors: List[str]) -> None:
        routes: Dict[str, List[str]] = {}
        for index, page in enumerate(pages):
            name = page.get("name") or page_slug(page, index)
            routes.setdefault(page_route(page, index), []).append(str(name))
        for route, names in routes.items():
            if len(names) > 1:
                errors.append(f"Pages {', '.join(names)} share the route '/{route}'")

    def _check_page(
        self,
        page: Dict[str, Any],
        index: int,
        errors: List[str],
        warnings: List[str],
        missing_types: List[str],
    ) -> None:
        page_name = page.get("name") or page.get("slug") or f"Page {index}"
        components = page.get("components")

        if not isinstance(components, list):
            errors.append(f"{page_name}: Components array is missing or invalid")
            return

        if not components:
            warnings.append(f"{page_name}: Has no components (empty page)")

        for comp_index, component in enumerate(components):
            if not isinstance(component, dict):
                errors.append(f"{page_name} > Component {comp_index + 1}: Not an object")
                continue

            component_type = component.get("type")
            ref = f"{page_name} > Component {comp_index + 1} ({component_type or 'unknown'})"

            if not component_type:
                errors.append(f"{ref}: Missing component type")
            elif component_type not in self.registry and component_type not in missing_types:
                missing_types.append(component_type)

            props = component.get("props")
            if not isinstance(props, dict):
                errors.append(f"{ref}: Missing props object")
                continue

            for prop in COMPONENT_COLOR_PROPS:
                value = props.get(prop)
                if value and not is_hex_color(value):
                    errors.append(f'{ref}: Invalid {prop} "{value}"')

            label = TITLED_COMPONENTS.get(component_type)
            if label and not _has_text(props.get("title")):
                warnings.append(f"{ref}: {label} has no title")

            description = props.get("description")
            if isinstance(description, str) and len(description) > MAX_DESCRIPTION_LENGTH:
                warnings.append(f"{ref}: Description is very long ({len(description)} chars)")


def format_validation_errors(result: ValidationResult) -> str:
    """Human-readable rendering of a validation result."""
    parts = []

    if result.errors:
        parts.append("Errors:")
        parts.extend(f"  - {err}" for err in result.errors)

    if result.warnings:
        if parts:
            parts.append("")
        parts.append("Warnings:")
        parts.extend(f"  - {warn}" for warn in result.warnings)

    return "\n".join(parts)
