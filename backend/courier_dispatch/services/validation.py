from typing import Any, Optional

from courier_dispatch.services.errors import InvalidArgumentError
from courier_dispatch.services.geo import LatLng, clamp, coerce_number, to_location


class ValidationService:
    def require_id_list(self, value: Any, field_name: str) -> list[str]:
        """Non-empty list of non-blank ids, de-duplicated in first-seen order."""
        if not isinstance(value, list) or not value:
            raise InvalidArgumentError(f"{field_name} must be a non-empty list of ids")

        ids: list[str] = []
        seen: set[str] = set()
        for item in value:
            if not isinstance(item, str) or not item.strip():
                raise InvalidArgumentError(f"{field_name} contains an invalid id: {item!r}")
            item = item.strip()
            if item not in seen:
                seen.add(item)
                ids.append(item)
        return ids

    def optional_id_list(self, value: Any, field_name: str) -> Optional[list[str]]:
        if value is None or value == []:
            return None
        return self.require_id_list(value, field_name)

    def require_location(self, lat: Any, lng: Any, field_name: str) -> LatLng:
        location = to_location(lat, lng)
        if location is None:
            raise InvalidArgumentError(f"{field_name} must be a valid lat/lng pair")
        return location

    def knob(self, value: Any, default: float, low: float, high: float) -> float:
        """Numeric request knob: non-numeric falls back to default, then clamped."""
        return clamp(coerce_number(value, default), low, high)

    def int_knob(self, value: Any, default: float, low: float, high: float) -> int:
        return int(round(self.knob(value, default, low, high)))


validation_service = ValidationService()
