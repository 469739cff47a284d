"""
Overpass QL construction.

Queries carry an output-format directive, a timeout, an optional maxsize,
the spatial filter in ``(south,west,north,east)`` order and, when a limit
is requested, a count on the ``out`` statement.
"""

from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence, Union

from .errors import ValidationError
from .validator import BoundingBox, validate_filter

DEFAULT_TIMEOUT = 180
DEFAULT_MAXSIZE = 1073741824  # 1 GiB

FilterValue = Union[str, List[str]]


def build_query(
    selectors: Sequence[str],
    bbox: BoundingBox,
    limit: Optional[int] = None,
    timeout: int = DEFAULT_TIMEOUT,
    maxsize: Optional[int] = DEFAULT_MAXSIZE,
    output_format: str = "json",
) -> str:
    """
    Build a bounding-box query from element selectors.

    Args:
        selectors: Selector strings such as ``'way["building"]'``
        bbox: Caller-facing box; emitted as south,west,north,east
        limit: Optional result count for the ``out body`` statement
        timeout: Server-side timeout directive in seconds
        maxsize: Server-side memory directive in bytes, None to omit
        output_format: "json" or "xml"

    Example:
        >>> build_query(['way["building"]'], BoundingBox(139.0, 35.0, 139.1, 35.1))
        '[out:json][timeout:180][maxsize:1073741824];\\n(\\n  way["building"](35.0,139.0,35.1,139.1);\\n);\\nout body;\\n>;\\nout skel qt;'
    """
    settings = f"[out:{output_format}][timeout:{timeout}]"
    if maxsize:
        settings += f"[maxsize:{maxsize}]"
    area = bbox.to_overpass()
    body = "\n".join(f"  {selector}({area});" for selector in selectors)
    out_statement = f"out body {limit};" if limit else "out body;"
    return f"{settings};\n(\n{body}\n);\n{out_statement}\n>;\nout skel qt;"


# === Feature categories ===


def _each(element_types: Sequence[str], filters: Sequence[str]) -> List[str]:
    return [f"{t}{f}" for t in element_types for f in filters]


def _buildings(value: FilterValue) -> List[str]:
    return [f'way["building"="{value}"]' if value != "all" else 'way["building"]']


def _roads(value: FilterValue) -> List[str]:
    types = [value] if isinstance(value, str) else list(value)
    if "all" in types:
        return ['way["highway"]']
    # One selector per type; chaining tag filters would AND them
    return [f'way["highway"="{t}"]' for t in types]


def _amenities(value: FilterValue) -> List[str]:
    tag = f'["amenity"="{value}"]' if value != "all" else '["amenity"]'
    return _each(["node", "way"], [tag])


def _waterways(value: FilterValue) -> List[str]:
    if value == "all":
        return _each(["way", "relation"], ['["waterway"]', '["natural"="water"]'])
    if value in ("lake", "reservoir", "pond"):
        return [
            f'way["natural"="water"]["water"="{value}"]',
            'way["natural"="water"][!"water"]',
            'relation["natural"="water"]',
        ]
    return _each(["way", "relation"], [f'["waterway"="{value}"]'])


_GREENSPACE_TAGS = {
    "all": [
        '["leisure"~"^(park|garden|nature_reserve)$"]',
        '["landuse"~"^(forest|farmland|grass|meadow)$"]',
        '["natural"~"^(wood|forest|grassland|scrub)$"]',
    ],
    "park": ['["leisure"="park"]'],
    "forest": ['["landuse"="forest"]', '["natural"="wood"]', '["natural"="forest"]'],
    "garden": ['["leisure"="garden"]'],
    "farmland": ['["landuse"="farmland"]'],
    "grass": ['["landuse"="grass"]', '["natural"="grassland"]'],
    "meadow": ['["landuse"="meadow"]'],
    "nature_reserve": ['["leisure"="nature_reserve"]'],
}


def _greenspaces(value: FilterValue) -> List[str]:
    return _each(["way", "relation"], _GREENSPACE_TAGS[value])


def _railways(value: FilterValue) -> List[str]:
    if value == "all":
        return _each(["way", "node", "relation"], ['["railway"]'])
    if value == "station":
        return _each(["node", "way", "relation"], ['["railway"="station"]', '["public_transport"="station"]'])
    if value == "platform":
        return _each(["way", "node"], ['["railway"="platform"]', '["public_transport"="platform"]']) + [
            'relation["public_transport"="platform"]',
        ]
    return _each(["way", "relation"], [f'["railway"="{value}"]'])


def _boundaries(value: FilterValue) -> List[str]:
    admin = f'["admin_level"="{value}"]' if value != "all" else ""
    return _each(["relation", "way"], [f'["boundary"="administrative"]{admin}'])


@dataclass(frozen=True)
class FeatureCategory:
    """A queryable feature family and the filter values it accepts."""
    name: str
    allowed: Sequence[str]
    selectors: Callable[[FilterValue], List[str]]
    multi_value: bool = False
    timeout: int = DEFAULT_TIMEOUT
    maxsize: Optional[int] = DEFAULT_MAXSIZE

    def build(
        self,
        bbox: BoundingBox,
        filter_value: Optional[FilterValue] = None,
        limit: Optional[int] = None,
    ) -> str:
        """
        Validate ``filter_value`` and build the category query.

        Raises:
            ValidationError: If the filter value is not allowed
        """
        is_valid, normalized, error = validate_filter(filter_value, self.allowed)
        if not is_valid:
            raise ValidationError(error, errors=[error])
        if isinstance(normalized, list) and not self.multi_value:
            raise ValidationError(
                f"{self.name} accepts a single filter value",
                errors=[f"{self.name} accepts a single filter value"],
            )
        return build_query(
            self.selectors(normalized), bbox, limit=limit, timeout=self.timeout, maxsize=self.maxsize,
        )


CATEGORIES: Dict[str, FeatureCategory] = {
    c.name: c
    for c in (
        FeatureCategory("buildings", ("residential", "commercial", "industrial", "public", "all"), _buildings),
        FeatureCategory(
            "roads",
            ("motorway", "trunk", "primary", "secondary", "tertiary", "residential", "all"),
            _roads,
            multi_value=True,
        ),
        FeatureCategory("amenities", ("restaurant", "hospital", "school", "bank", "cafe", "all"), _amenities),
        FeatureCategory(
            "waterways", ("river", "stream", "canal", "lake", "reservoir", "pond", "all"), _waterways,
        ),
        FeatureCategory(
            "greenspaces",
            ("park", "forest", "garden", "farmland", "grass", "meadow", "nature_reserve", "all"),
            _greenspaces,
        ),
        FeatureCategory(
            "railways", ("rail", "subway", "tram", "monorail", "station", "platform", "all"), _railways,
        ),
        FeatureCategory(
            "boundaries", ("2", "4", "6", "7", "8", "9", "10", "all"), _boundaries, timeout=60, maxsize=None,
        ),
    )
}


def get_category(name: str) -> FeatureCategory:
    try:
        return CATEGORIES[name]
    except KeyError:
        raise ValidationError(
            f"Unknown feature category: {name}. Available: {', '.join(CATEGORIES)}",
            errors=[f"Unknown feature category: {name}"],
        ) from None


def category_query(
    category: str,
    bbox: BoundingBox,
    filter_value: Optional[FilterValue] = None,
    limit: Optional[int] = None,
) -> str:
    """Query text for a named feature category."""
    return get_category(category).build(bbox, filter_value=filter_value, limit=limit)
