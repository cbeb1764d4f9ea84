"""Lecture counts for the software taught at the academy.

A batch's curriculum is stored as a free-text, comma separated list of
software names (``"Photoshop, Illustrator"``). The number of lectures a batch
needs is the sum of the per-software counts below. Names typed by staff do not
always match the table exactly, so a case-insensitive substring match is used
as a fallback.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import List, Mapping, Optional, Tuple

# Declaration order matters: the fuzzy match takes the first hit.
LECTURE_COUNTS: Mapping[str, int] = MappingProxyType(
    {
        "Photoshop": 23,
        "Illustrator": 16,
        "InDesign": 16,
        "After Effects": 16,
        "Premiere Pro": 14,
        "Figma": 12,
        "XD": 6,
        "Animate CC": 32,
        "Premiere Audition": 14,
        "HTML Java DW CSS": 24,
        "Ar. MAX + Vray": 48,
        "MAX": 89,
        "Fusion": 10,
        "Real Flow": 10,
        "Fume FX": 8,
        "Nuke": 24,
        "Thinking Particle": 10,
        "Ray Fire": 6,
        "Mocha": 6,
        "Silhouette": 6,
        "PF Track": 6,
        "Vue": 13,
        "Houdni": 12,
        "FCP": 11,
        "Maya": 92,
        "CAD UNITY": 12,
        "Mudbox": 7,
        "Unity Game Design": 24,
        "Z-Brush": 12,
        "Lumion": 6,
        "SketchUp": 12,
        "Unreal": 33,
        "Blender Pro": 72,
        "Cinema 4D": 72,
        "Substance Painter": 6,
        "3D Equalizer": 6,
        "Photography": 10,
        "Auto-Cad": 15,
        "Davinci": 10,
        "Corel": 14,
        "CorelDRAW": 14,
    }
)


def split_software(software: Optional[str]) -> List[str]:
    """Split a comma separated software string into trimmed, non-empty names."""
    if not software:
        return []
    return [part.strip() for part in software.split(",") if part.strip()]


def match_software(name: str) -> Optional[Tuple[str, int]]:
    """Return the ``(table key, lecture count)`` for a software name.

    An exact, case-sensitive match wins. Otherwise the first key (in table
    order) that contains the name, or is contained in it, ignoring case.
    """
    if name in LECTURE_COUNTS:
        return name, LECTURE_COUNTS[name]
    lowered = name.lower()
    for key, count in LECTURE_COUNTS.items():
        key_lower = key.lower()
        if lowered in key_lower or key_lower in lowered:
            return key, count
    return None


def lecture_breakdown(software: Optional[str]) -> List[Tuple[str, Optional[str], int]]:
    """Return one ``(name, matched key, lectures)`` row per listed software.

    Unrecognised names are reported with a ``None`` key and 0 lectures.
    """
    rows = []
    for name in split_software(software):
        match = match_software(name)
        if match is None:
            rows.append((name, None, 0))
        else:
            rows.append((name, match[0], match[1]))
    return rows


def total_lectures(software: Optional[str]) -> int:
    """Total number of lectures for a comma separated software string."""
    return sum(count for _, _, count in lecture_breakdown(software))
