from __future__ import annotations

"""HSL to CIE 1931 xy conversion for Hue bulbs."""

from typing import Tuple


NEUTRAL_XY: Tuple[float, float] = (0.33, 0.33)


def clamp(x: float, lo: float, hi: float) -> float:
    return lo if x < lo else hi if x > hi else x


def _hue_to_channel(p: float, q: float, t: float) -> float:
    if t < 0:
        t += 1
    if t > 1:
        t -= 1
    if t < 1 / 6:
        return p + (q - p) * 6 * t
    if t < 1 / 2:
        return q
    if t < 2 / 3:
        return p + (q - p) * (2 / 3 - t) * 6
    return p


def hsl_to_rgb(h: float, s: float, l: float) -> Tuple[float, float, float]:
    """Convert HSL (all components in 0..1) to sRGB in 0..1."""
    if s == 0:
        return l, l, l
    q = l * (1 + s) if l < 0.5 else l + s - l * s
    p = 2 * l - q
    return (
        _hue_to_channel(p, q, h + 1 / 3),
        _hue_to_channel(p, q, h),
        _hue_to_channel(p, q, h - 1 / 3),
    )


def srgb_to_linear(c: float) -> float:
    """Undo the sRGB transfer curve."""
    return ((c + 0.055) / 1.055) ** 2.4 if c > 0.04045 else c / 12.92


def rgb_to_xy(r: float, g: float, b: float) -> Tuple[float, float]:
    """Project sRGB onto the CIE xy plane using the Hue wide-gamut matrix."""
    rl = srgb_to_linear(r)
    gl = srgb_to_linear(g)
    bl = srgb_to_linear(b)

    x_ = rl * 0.664511 + gl * 0.154324 + bl * 0.162028
    y_ = rl * 0.283881 + gl * 0.668433 + bl * 0.047685
    z_ = rl * 0.000088 + gl * 0.072310 + bl * 0.986039

    total = x_ + y_ + z_
    if total == 0:
        return NEUTRAL_XY
    return round(x_ / total, 4), round(y_ / total, 4)


def hsl_to_xy(hue_deg: float, saturation_pct: float, lightness_pct: float) -> Tuple[float, float]:
    """Convert HSL given in degrees/percent to an xy chromaticity point.

    Achromatic input (zero saturation) maps to the neutral point, same as
    black.
    """
    s = saturation_pct / 100
    if s == 0:
        return NEUTRAL_XY
    r, g, b = hsl_to_rgb(hue_deg / 360, s, lightness_pct / 100)
    return rgb_to_xy(r, g, b)
