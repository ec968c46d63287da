"""Registry of component types that have a production renderer."""

from typing import Dict, Iterable, Iterator, Mapping, Optional

PRODUCTION_COMPONENTS: Dict[str, str] = {
    # Hero banners
    "auroraHero": "hero",
    "auroraImageHero": "hero",
    "bgImageHero": "hero",
    "carouselHero": "hero",
    "centeredHero": "hero",
    "dynamicHerobanner": "hero",
    "fullBodyHero": "hero",
    "imageLogoHero": "hero",
    "splitScreenHero": "hero",
    "threeBoxHero": "hero",
    # Navigation
    "landingNavbar": "navbar",
    "landingFooter": "footer",
    # Carousels
    "carousel": "carousel",
    "googleReviews": "carousel",
    "gridCarousel": "carousel",
    "longCarousel": "carousel",
    "propertyCarousel": "carousel",
    "scrollCarousel": "carousel",
    "slideShowCarousel": "carousel",
    "stepsCarousel": "carousel",
    # Content
    "closingStatement": "content",
    "countUpImageText": "content",
    "experienceCard": "content",
    "imageTextBox": "content",
    "imageTextPoints": "content",
    "marketingShowcase": "content",
    "parallaxText": "content",
    "profileCredentials": "content",
    "samuraiCard": "content",
    "statsIntro": "content",
    "textBoxPoints": "content",
    "tiltingContent": "content",
    "verticalImageTextBox": "content",
    "imageTextAspects": "content",
    # Text
    "accordion": "text",
    "featureBoxes": "text",
    "howItWorks": "text",
    "imageAspects": "text",
    "processSteps": "text",
    "textAndList": "text",
    "valueProposition": "text",
    # Testimonials
    "testimonials": "testimonial",
    "testimonialsRealEstate": "testimonial",
    # Solutions
    "displayBoxes": "solution",
    "fullImageDisplay": "solution",
    "priceCards": "solution",
    # Animation
    "appearingGradient": "animation",
    "fadeInFromLeftText": "animation",
    "slidingText": "animation",
    "typeAlongText": "animation",
    "typeWriter": "animation",
    # Forms
    "contactCloser": "form",
}


class ComponentRegistry:
    """Component types known to the page generator."""

    def __init__(self, components: Optional[Mapping[str, str]] = None):
        self._components: Dict[str, str] = dict(
            PRODUCTION_COMPONENTS if components is None else components
        )

    def register(self, component_type: str, category: str = "misc") -> None:
        self._components[component_type] = category

    def is_registered(self, component_type: Optional[str]) -> bool:
        return component_type in self._components

    def category(self, component_type: str) -> Optional[str]:
        return self._components.get(component_type)

    def __contains__(self, component_type: object) -> bool:
        return component_type in self._components

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(self._components))

    def __len__(self) -> int:
        return len(self._components)

    @classmethod
    def from_types(cls, component_types: Iterable[str]) -> "ComponentRegistry":
        return cls({t: "misc" for t in component_types})
