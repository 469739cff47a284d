"""
Input validation for spatial queries.

Fatal violations are collected into ``ValidationResult.errors`` and stop a
request before any network access. Oversized areas and large limits only
produce warnings.
"""

import logging
import numbers
from dataclasses import dataclass
from typing import Any, List, Optional, Sequence, Tuple

from .errors import ValidationError
from .types import ValidationResult

logger = logging.getLogger(__name__)

DEFAULT_MAX_AREA = 0.001  # square degrees
DEFAULT_MAX_LIMIT = 10000
DEFAULT_SLOW_LIMIT = 1000


@dataclass(frozen=True)
class BoundingBox:
    """Caller-facing west/south/east/north box in WGS84 degrees."""
    min_lon: float
    min_lat: float
    max_lon: float
    max_lat: float

    @property
    def area(self) -> float:
        return (self.max_lon - self.min_lon) * (self.max_lat - self.min_lat)

    def to_overpass(self) -> str:
        """Overpass filter order: south,west,north,east."""
        return f"{self.min_lat},{self.min_lon},{self.max_lat},{self.max_lon}"

    def as_list(self) -> List[float]:
        return [self.min_lon, self.min_lat, self.max_lon, self.max_lat]


def _is_number(value: Any) -> bool:
    return isinstance(value, numbers.Real) and not isinstance(value, bool)


def validate_bounding_box(min_lon: Any, min_lat: Any, max_lon: Any, max_lat: Any) -> List[str]:
    """
    Check coordinate ranges and ordering.

    Returns:
        List of error messages, empty when the box is valid
    """
    errors: List[str] = []

    for name, value, limit in (
        ("minLon", min_lon, 180),
        ("minLat", min_lat, 90),
        ("maxLon", max_lon, 180),
        ("maxLat", max_lat, 90),
    ):
        if not _is_number(value) or not (-limit <= value <= limit):
            errors.append(f"{name} must be a number between -{limit} and {limit}")

    # Ordering is only meaningful between numbers; zero-area boxes are rejected
    if _is_number(min_lon) and _is_number(max_lon) and min_lon >= max_lon:
        errors.append("minLon must be less than maxLon")
    if _is_number(min_lat) and _is_number(max_lat) and min_lat >= max_lat:
        errors.append("minLat must be less than maxLat")

    return errors


def validate_area_size(
    min_lon: float,
    min_lat: float,
    max_lon: float,
    max_lat: float,
    max_area: float = DEFAULT_MAX_AREA,
) -> Tuple[float, List[str]]:
    """Compute the box area and warn when it exceeds ``max_area``."""
    area = (max_lon - min_lon) * (max_lat - min_lat)
    warnings: List[str] = []
    if area > max_area:
        warnings.append(
            f"Large area detected ({area:.6f} square degrees). "
            "Consider using a smaller area to avoid timeouts."
        )
    return area, warnings


def validate_limit(
    limit: Any,
    max_limit: int = DEFAULT_MAX_LIMIT,
    slow_limit: int = DEFAULT_SLOW_LIMIT,
) -> ValidationResult:
    """
    Validate an optional result-count limit.

    ``None`` means no limit. Anything else must be an integer in
    ``[1, max_limit]``; values above ``slow_limit`` add a warning.
    """
    result = ValidationResult()
    if limit is None:
        return result

    if isinstance(limit, bool) or not isinstance(limit, numbers.Integral):
        result.errors.append("limit must be an integer")
        return result
    if limit < 1:
        result.errors.append("limit must be at least 1")
        return result
    if limit > max_limit:
        result.errors.append(f"limit must be at most {max_limit}")
        return result

    if limit > slow_limit:
        result.warnings.append(f"Fetching more than {slow_limit} results may be slow")
    result.normalized_limit = int(limit)
    return result


def validate_filter(value: Any, allowed: Sequence[str]) -> Tuple[bool, Any, Optional[str]]:
    """
    Validate a feature filter against its allowed values.

    Returns:
        (is_valid, normalized_value, error). ``None`` normalizes to "all".
    """
    allowed_str = ", ".join(allowed)
    if value is None:
        return True, "all", None

    if isinstance(value, str):
        if value in allowed:
            return True, value, None
        return False, None, f"Invalid filter value: {value}. Allowed values: {allowed_str}"

    if isinstance(value, (list, tuple)):
        invalid = [v for v in value if v not in allowed]
        if invalid:
            return (
                False,
                None,
                f"Invalid filter values: {', '.join(map(str, invalid))}. Allowed values: {allowed_str}",
            )
        return True, list(value), None

    return False, None, f"Filter value must be a string or list, got {type(value).__name__}"


class BoundingBoxValidator:
    """
    Validates spatial parameters with thresholds taken from configuration.

    Usage:
        validator = BoundingBoxValidator(max_area=0.001)
        result = validator.validate(139.76, 35.68, 139.77, 35.69, limit=100)
        if not result:
            print(result.errors)
    """

    def __init__(
        self,
        max_area: float = DEFAULT_MAX_AREA,
        max_limit: int = DEFAULT_MAX_LIMIT,
        slow_limit: int = DEFAULT_SLOW_LIMIT,
    ) -> None:
        self.max_area = max_area
        self.max_limit = max_limit
        self.slow_limit = slow_limit

    @classmethod
    def from_config(cls, config: Any) -> "BoundingBoxValidator":
        return cls(max_area=config.max_area, max_limit=config.max_limit, slow_limit=config.slow_limit)

    def validate(
        self,
        min_lon: Any,
        min_lat: Any,
        max_lon: Any,
        max_lat: Any,
        limit: Any = None,
    ) -> ValidationResult:
        """Collect every violation and warning without raising."""
        result = ValidationResult(errors=validate_bounding_box(min_lon, min_lat, max_lon, max_lat))

        if not result.errors:
            result.area, area_warnings = validate_area_size(
                min_lon, min_lat, max_lon, max_lat, max_area=self.max_area
            )
            result.warnings.extend(area_warnings)

        limit_result = validate_limit(limit, max_limit=self.max_limit, slow_limit=self.slow_limit)
        result.errors.extend(limit_result.errors)
        result.warnings.extend(limit_result.warnings)
        result.normalized_limit = limit_result.normalized_limit
        return result

    def validate_common_inputs(
        self,
        min_lon: Any,
        min_lat: Any,
        max_lon: Any,
        max_lat: Any,
        limit: Any = None,
    ) -> ValidationResult:
        """
        Validate and log warnings, raising on fatal violations.

        Raises:
            ValidationError: If the box or the limit is invalid
        """
        result = self.validate(min_lon, min_lat, max_lon, max_lat, limit)
        if result.errors:
            raise ValidationError(f"Invalid input: {', '.join(result.errors)}", errors=result.errors)
        for warning in result.warnings:
            logger.warning(warning)
        return result
