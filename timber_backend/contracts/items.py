"""
Stack Item Contract

One timber bundle description inside a cell. Several items may share a
cell (mixed bundles); the first item is the representative one.
"""

from __future__ import annotations
from dataclasses import dataclass, asdict
from typing import Any, Dict, Iterable, List, Optional, Union

from .catalog import linear_meters, cubic_meters
from .errors import ValidationError


_REQUIRED_NUMBERS = ("width_mm", "thickness_mm", "length_mm")


@dataclass(frozen=True)
class StackItem:
    """
    Immutable bundle description.

    Optional fields that are None are left out of the JSON form, matching
    what the API stores and returns.
    """
    size_id: str
    width_mm: float
    thickness_mm: float
    length_mm: float
    pieces: int = 0
    grade: Optional[str] = None
    treatment: Optional[str] = None
    bundle_id: Optional[str] = None
    notes: Optional[str] = None
    position: Optional[int] = None

    def __post_init__(self):
        if not self.size_id or not isinstance(self.size_id, str):
            raise ValidationError("size_id must be a non-empty string")
        if not isinstance(self.pieces, int) or isinstance(self.pieces, bool) or self.pieces < 0:
            raise ValidationError("pieces must be a non-negative integer")

    def to_dict(self) -> Dict[str, Any]:
        return {k: v for k, v in asdict(self).items() if v is not None}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "StackItem":
        if not isinstance(data, dict):
            raise ValidationError("Stack item must be an object")
        if "size_id" not in data:
            raise ValidationError("Stack item is missing size_id")
        for key in _REQUIRED_NUMBERS:
            if not isinstance(data.get(key), (int, float)):
                raise ValidationError(f"Stack item {key} must be a number")
        return cls(
            size_id=data["size_id"],
            width_mm=data["width_mm"],
            thickness_mm=data["thickness_mm"],
            length_mm=data["length_mm"],
            pieces=data.get("pieces", 0),
            grade=data.get("grade"),
            treatment=data.get("treatment"),
            bundle_id=data.get("bundle_id"),
            notes=data.get("notes"),
            position=data.get("position"),
        )

    @property
    def linear_meters(self) -> float:
        return linear_meters(self.to_dict())

    @property
    def cubic_meters(self) -> float:
        return cubic_meters(self.to_dict())


def coerce_items(items: Iterable[Union[StackItem, Dict[str, Any]]]) -> List[Dict[str, Any]]:
    """
    Convert a sequence of StackItems or dicts into JSON item dicts.

    Dicts are copied as-is (extra keys pass through); anything else is a
    ValidationError.
    """
    if isinstance(items, (str, bytes, dict)):
        raise ValidationError("items must be a sequence")
    result = []
    for item in items:
        if isinstance(item, StackItem):
            result.append(item.to_dict())
        elif isinstance(item, dict):
            result.append(dict(item))
        else:
            raise ValidationError("Each item must be a StackItem or an object")
    return result
