"""
Timber Catalog

Standard section sizes, lengths, grades and treatments offered when editing
a cell, plus the volume arithmetic used for stock totals.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Tuple


@dataclass(frozen=True)
class SizePreset:
    size_id: str
    width_mm: int
    thickness_mm: int


def _preset(thickness: int, width: int) -> SizePreset:
    return SizePreset(size_id=f"{thickness}x{width}", width_mm=width, thickness_mm=thickness)


SIZE_PRESETS: Tuple[SizePreset, ...] = (
    _preset(45, 90), _preset(45, 140),
    _preset(64, 90), _preset(64, 140), _preset(64, 200), _preset(64, 240),
    _preset(64, 300), _preset(64, 400), _preset(64, 600),
    _preset(90, 150), _preset(90, 200), _preset(90, 240), _preset(90, 300),
    _preset(90, 600),
    _preset(135, 150), _preset(135, 200), _preset(135, 240), _preset(135, 300),
    _preset(135, 400),
    _preset(180, 240), _preset(180, 300), _preset(180, 360), _preset(180, 400),
    _preset(180, 460), _preset(180, 540),
    _preset(225, 460),
)

LENGTH_PRESETS_MM: Tuple[int, ...] = (12000, 6000, 7000, 8900)

GRADE_PRESETS: Tuple[str, ...] = ("LVL11", "LVL11 visual", "LVL13", "LVL13 visual")

TREATMENT_PRESETS: Tuple[str, ...] = ("H1.2", "H3.2")


def find_size_preset(size_id: str) -> Optional[SizePreset]:
    for preset in SIZE_PRESETS:
        if preset.size_id == size_id:
            return preset
    return None


def _number(item: Mapping[str, Any], key: str) -> float:
    value = item.get(key)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return 0
    return value


def linear_meters(item: Mapping[str, Any]) -> float:
    """Total run of an item in metres (pieces x length)."""
    return _number(item, "pieces") * _number(item, "length_mm") / 1000


def cubic_meters(item: Mapping[str, Any]) -> float:
    """Volume of an item in cubic metres."""
    return (
        _number(item, "width_mm")
        * _number(item, "thickness_mm")
        * _number(item, "length_mm")
        * _number(item, "pieces")
        / 1e9
    )
