"""Unit conversion helpers.

Scroll distances arrive from clients in CSS pixels. Everything the core
stores is an integer number of millimetres, derived with the W3C reference
pixel (96 pixels per inch), so a centimetre scrolled on any screen is worth
the same height.
"""
from __future__ import annotations

import math

CSS_PIXELS_PER_INCH = 96
MM_PER_INCH = 25.4
MM_PER_PIXEL = MM_PER_INCH / CSS_PIXELS_PER_INCH  # 0.264583...

MM_PER_METER = 1_000
MM_PER_KILOMETER = 1_000_000
KILOMETER_DISPLAY_THRESHOLD_M = 1_000
KMH_DISPLAY_THRESHOLD_MPS = 10

# Anti-cheat constants expressed in pixels / millimetres
MAX_PIXELS_PER_BATCH = 10_000
BASE_MAX_VELOCITY_MM_PER_SECOND = 2_000


def to_canonical_units(device_pixels: float) -> int:
    """Convert a pixel scroll delta to integer millimetres.

    Rounds half away from zero so that negative deltas mirror positive ones.

    Examples:
        100 px -> 26 mm, 1000 px -> 265 mm, 3780 px -> 1000 mm.
    """
    scaled = abs(device_pixels) * MM_PER_PIXEL
    rounded = math.floor(scaled + 0.5)
    return -rounded if device_pixels < 0 else rounded


MAX_MM_PER_BATCH = to_canonical_units(MAX_PIXELS_PER_BATCH)


def millimeters_to_meters(millimeters: int) -> float:
    return millimeters / MM_PER_METER


def millimeters_to_kilometers(millimeters: int) -> float:
    return millimeters / MM_PER_KILOMETER


def format_height(millimeters: int) -> str:
    """Render a height with the unit a human would pick for it."""
    meters = millimeters_to_meters(millimeters)
    if meters >= KILOMETER_DISPLAY_THRESHOLD_M:
        return f"{millimeters_to_kilometers(millimeters):.2f} km"
    return f"{meters:.2f} m"


def format_velocity(mm_per_second: float) -> str:
    """Render a climb rate as m/s, switching to km/h for fast climbs."""
    meters_per_second = mm_per_second / MM_PER_METER
    if meters_per_second >= KMH_DISPLAY_THRESHOLD_MPS:
        return f"{meters_per_second * 3.6:.1f} km/h"
    return f"{meters_per_second:.2f} m/s"
