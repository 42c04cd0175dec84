"""
Numeric-to-pixel mapping and pie/donut arc geometry.

Everything here is pure and works on plain floats so the chart renderers can be
tested on exact coordinates.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Callable, List, Sequence, Tuple, TypeVar

from .models import percentage as _percentage

T = TypeVar("T")

TICK_COUNT = 5
LABEL_RADIUS_FACTOR = 0.7
START_ANGLE = -math.pi / 2
_FULL_TURN = 2 * math.pi
_EPSILON = 1e-9


def linear_scale(domain: Tuple[float, float], range_: Tuple[float, float]) -> Callable[[float], float]:
    """
    Affine map from ``domain`` onto ``range_``.

    A degenerate domain (``d0 == d1``) maps every value onto ``r0``.
    """

    d0, d1 = domain
    r0, r1 = range_
    span = d1 - d0
    slope = (r1 - r0) / span if span else 0.0

    def scale(value: float) -> float:
        return r0 + (value - d0) * slope

    return scale


def extent(series: Sequence[T], accessor: Callable[[T], float]) -> Tuple[float, float]:
    values = [accessor(item) for item in series]
    if not values:
        return 0.0, 0.0
    return min(values), max(values)


def max_value(series: Sequence[T], accessor: Callable[[T], float]) -> float:
    return max((accessor(item) for item in series), default=0.0)


def value_ticks(maximum: float, count: int = TICK_COUNT) -> List[float]:
    """``count`` evenly spaced intervals from 0 to ``maximum``, both ends included."""

    return [maximum / count * i for i in range(count + 1)]


def category_tick_indices(length: int, count: int = TICK_COUNT) -> List[int]:
    """Sample at most ``count`` indices spread evenly over a series of ``length``."""

    ticks = min(count, length)
    if ticks <= 0:
        return []
    return [math.floor(i * length / ticks) for i in range(ticks)]


def format_number(value: float) -> str:
    """Compact coordinate formatting for SVG attributes (two decimals, no trailing zeros)."""

    text = f"{value:.2f}".rstrip("0").rstrip(".")
    return "0" if text in {"-0", ""} else text


def polar(angle: float, radius: float) -> Tuple[float, float]:
    return math.cos(angle) * radius, math.sin(angle) * radius


def large_arc_flag(angle: float) -> int:
    return 1 if angle > math.pi else 0


def arc_path(start_angle: float, end_angle: float, outer_radius: float, inner_radius: float = 0.0) -> str:
    """
    SVG path for one pie (``inner_radius == 0``) or donut slice.

    Angles are in radians, measured clockwise in screen space. A slice that
    covers the whole circle is drawn as two half arcs since a single arc with
    identical end points renders nothing.
    """

    angle = end_angle - start_angle
    fmt = format_number

    if angle >= _FULL_TURN - _EPSILON:
        mid = start_angle + math.pi
        sx, sy = polar(start_angle, outer_radius)
        mx, my = polar(mid, outer_radius)
        r = fmt(outer_radius)
        path = f"M {fmt(sx)} {fmt(sy)} A {r} {r} 0 1 1 {fmt(mx)} {fmt(my)} A {r} {r} 0 1 1 {fmt(sx)} {fmt(sy)} Z"
        if inner_radius > 0:
            ix, iy = polar(start_angle, inner_radius)
            jx, jy = polar(mid, inner_radius)
            ri = fmt(inner_radius)
            path += (
                f" M {fmt(ix)} {fmt(iy)} A {ri} {ri} 0 1 0 {fmt(jx)} {fmt(jy)}"
                f" A {ri} {ri} 0 1 0 {fmt(ix)} {fmt(iy)} Z"
            )
        return path

    flag = large_arc_flag(angle)
    sx, sy = polar(start_angle, outer_radius)
    ex, ey = polar(end_angle, outer_radius)
    r = fmt(outer_radius)
    outer = f"M {fmt(sx)} {fmt(sy)} A {r} {r} 0 {flag} 1 {fmt(ex)} {fmt(ey)}"
    if inner_radius <= 0:
        return f"{outer} L 0 0 Z"

    ix, iy = polar(end_angle, inner_radius)
    jx, jy = polar(start_angle, inner_radius)
    ri = fmt(inner_radius)
    return f"{outer} L {fmt(ix)} {fmt(iy)} A {ri} {ri} 0 {flag} 0 {fmt(jx)} {fmt(jy)} Z"


@dataclass(frozen=True)
class PieSlice:
    label: str
    value: float
    start_angle: float
    end_angle: float
    path: str
    label_x: float
    label_y: float
    percentage: float

    @property
    def angle(self) -> float:
        return self.end_angle - self.start_angle

    @property
    def large_arc(self) -> int:
        return large_arc_flag(self.angle)


def pie_slices(
    items: Sequence[Tuple[str, float]],
    outer_radius: float,
    inner_radius: float = 0.0,
) -> List[PieSlice]:
    """
    Lay out ``(label, value)`` pairs clockwise from 12 o'clock.

    Returns an empty list when the values sum to zero. Zero-valued items take no
    angle and produce no slice.
    """

    total = sum(value for _, value in items)
    if total <= 0:
        return []

    slices: List[PieSlice] = []
    current = START_ANGLE
    for label, value in items:
        angle = value / total * _FULL_TURN
        start, end = current, current + angle
        current = end
        if value <= 0:
            continue
        label_x, label_y = polar((start + end) / 2, outer_radius * LABEL_RADIUS_FACTOR)
        slices.append(
            PieSlice(
                label=label,
                value=value,
                start_angle=start,
                end_angle=end,
                path=arc_path(start, end, outer_radius, inner_radius),
                label_x=label_x,
                label_y=label_y,
                percentage=_percentage(value, total),
            )
        )
    return slices
