"""Tests for site-state validation."""

import pytest

from sitedeploy.validation.gate import (
    ValidationGate,
    format_validation_errors,
    is_hex_color,
    iter_pages,
    page_route,
    used_component_types,
)
from sitedeploy.validation.registry import PRODUCTION_COMPONENTS, ComponentRegistry


@pytest.fixture
def gate():
    return ValidationGate()


class TestValidationGate:
    """ValidationGate.validate."""

    def test_valid_site(self, gate, site_state):
        result = gate.validate(site_state)
        assert result.valid is True
        assert result.errors == []
        assert result.warnings == []

    @pytest.mark.parametrize("state", [None, {}])
    def test_no_data(self, gate, state):
        result = gate.validate(state)
        assert result.valid is False
        assert result.errors == ["No website data to validate"]

    def test_missing_pages(self, gate):
        result = gate.validate({"colorTheme": {}})
        assert result.errors == ["No pages defined in website data"]

    def test_zero_pages(self, gate):
        """An empty page collection is rejected."""
        result = gate.validate({"pages": []})
        assert result.valid is False
        assert result.errors == ["Website must have at least one page"]

    def test_unregistered_component_type(self, gate, site_state):
        site_state["pages"][0]["components"].append({"type": "holoDeck", "props": {}})

        result = gate.validate(site_state)

        assert result.valid is False
        assert result.errors[0] == "Missing component types: holoDeck"
        assert "holoDeck" in result.errors[0]

    def test_missing_types_listed_once(self, gate, site_state):
        for page in site_state["pages"]:
            page["components"].append({"type": "holoDeck", "props": {}})
        site_state["pages"][1]["components"].append({"type": "warpCore", "props": {}})

        result = gate.validate(site_state)

        assert result.errors[0] == "Missing component types: holoDeck, warpCore"

    def test_empty_page_is_warning(self, gate, site_state):
        """A page with no components is allowed but flagged."""
        site_state["pages"].append({"slug": "blank", "name": "Blank", "components": []})

        result = gate.validate(site_state)

        assert result.valid is True
        assert "Blank: Has no components (empty page)" in result.warnings

    def test_components_not_a_list(self, gate, site_state):
        site_state["pages"][1]["components"] = "oops"
        result = gate.validate(site_state)
        assert "About: Components array is missing or invalid" in result.errors

    def test_component_without_type_or_props(self, gate, site_state):
        site_state["pages"][0]["components"] = [{"props": {}}, {"type": "accordion"}]

        result = gate.validate(site_state)

        assert "Home > Component 1 (unknown): Missing component type" in result.errors
        assert "Home > Component 2 (accordion): Missing props object" in result.errors

    def test_invalid_theme_color(self, gate, site_state):
        site_state["colorTheme"]["primary"] = "red"
        result = gate.validate(site_state)
        assert result.errors == ['Invalid primary color: "red". Must be hex format like #FF0000']

    def test_invalid_component_color(self, gate, site_state):
        site_state["pages"][0]["components"][0]["props"]["textColor"] = "#12345"
        result = gate.validate(site_state)
        assert any('Invalid textColor "#12345"' in e for e in result.errors)

    def test_hero_without_title_warns(self, gate, site_state):
        site_state["pages"][0]["components"][0]["props"]["title"] = "  "
        result = gate.validate(site_state)
        assert result.valid is True
        assert any("Hero component has no title" in w for w in result.warnings)

    def test_long_description_warns(self, gate, site_state):
        site_state["pages"][1]["components"][0]["props"]["description"] = "x" * 5001
        result = gate.validate(site_state)
        assert any("Description is very long (5001 chars)" in w for w in result.warnings)

    def test_pages_as_mapping(self, gate):
        state = {"pages": {"home": {"components": [{"type": "carousel", "props": {}}]}}}
        result = gate.validate(state)
        assert result.valid is True

    def test_custom_registry(self, site_state):
        gate = ValidationGate(ComponentRegistry.from_types(["auroraImageHero"]))
        result = gate.validate(site_state)
        assert result.errors[0] == "Missing component types: textAndList, profileCredentials"

    def test_pages_sharing_root_route(self, gate, site_state):
        """Home and index both render at the site root."""
        site_state["pages"].append({
            "slug": "index",
            "name": "Index",
            "components": [{"type": "textAndList", "props": {"title": "Again"}}],
        })

        result = gate.validate(site_state)

        assert result.valid is False
        assert "Pages Home, Index share the route '/'" in result.errors

    def test_pages_sharing_slug(self, gate, site_state):
        site_state["pages"].append({"name": "About", "components": []})
        result = gate.validate(site_state)
        assert "Pages About, About share the route '/about'" in result.errors


class TestHelpers:
    """Module-level helpers."""

    @pytest.mark.parametrize("value,expected", [
        ("#A1b2C3", True),
        ("#fff", False),
        ("A1B2C3", False),
        (None, False),
        (123456, False),
    ])
    def test_is_hex_color(self, value, expected):
        assert is_hex_color(value) is expected

    def test_iter_pages_mapping_keeps_slug(self):
        pages = iter_pages({"pages": {"about": {"name": "About"}}})
        assert pages == [{"slug": "about", "name": "About"}]

    def test_used_component_types(self, site_state):
        assert used_component_types(site_state) == {
            "auroraImageHero",
            "textAndList",
            "profileCredentials",
        }

    def test_registry_contents(self):
        registry = ComponentRegistry()
        assert len(registry) == len(PRODUCTION_COMPONENTS)
        assert registry.category("auroraImageHero") == "hero"
        registry.register("holoDeck", "experimental")
        assert "holoDeck" in registry

    def test_format_validation_errors(self, gate):
        result = gate.validate({"pages": []})
        text = format_validation_errors(result)
        assert text == "Errors:\n  - Website must have at least one page"

    @pytest.mark.parametrize("page,route", [
        ({"slug": "home"}, ""),
        ({"slug": "/index/"}, ""),
        ({"name": "Our Team"}, "our-team"),
        ({"slug": "contact"}, "contact"),
    ])
    def test_page_route(self, page, route):
        assert page_route(page, 0) == route
