"""
Chart renderers.

Each renderer takes aggregated view data plus the target canvas size and
returns a ``Scene``. No aggregation happens here: renderers only map the
numbers they are given through ``scales``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Sequence, Tuple

from .models import AggregatedPoint, ProjectXp, RatioResult
from .scales import (
    category_tick_indices,
    extent,
    format_number,
    linear_scale,
    max_value,
    pie_slices,
    value_ticks,
)
from .scene import Node, Scene, element, empty_scene, svg_root, text

DEFAULT_WIDTH = 800
DEFAULT_HEIGHT = 400
BAR_WIDTH_RATIO = 0.8
LABEL_MAX_CHARS = 15
PIE_PADDING = 60

PRIMARY = "#6366f1"
AXIS_COLOR = "#64748b"


@dataclass(frozen=True)
class Margin:
    top: float
    right: float
    bottom: float
    left: float


LINE_MARGIN = Margin(top=40, right=40, bottom=60, left=80)
BAR_MARGIN = Margin(top=40, right=40, bottom=120, left=80)


def _plot_area(width: float, height: float, margin: Margin) -> Tuple[Node, Node, float, float]:
    root = svg_root(width, height)
    group = root.append(
        element(
            "g",
            transform=f"translate({format_number(margin.left)},{format_number(margin.top)})",
        )
    )
    inner_width = max(0.0, width - margin.left - margin.right)
    inner_height = max(0.0, height - margin.top - margin.bottom)
    return root, group, inner_width, inner_height


def _grid_and_value_axis(group: Node, maximum: float, y_scale: Callable[[float], float], inner_width: float) -> None:
    axis = element("g", class_="axis")
    for value in value_ticks(maximum):
        y = y_scale(value)
        group.append(element("line", x1=0, y1=y, x2=inner_width, y2=y, class_="grid-line"))
        axis.append(element("line", x1=-5, y1=y, x2=0, y2=y, stroke=AXIS_COLOR, stroke_width=1))
        axis.append(text(-10, y + 4, f"{round(value):,}", "axis-label", "end"))
    group.append(axis)


def _axis_lines(group: Node, inner_width: float, inner_height: float) -> None:
    group.append(
        element("line", x1=0, y1=inner_height, x2=inner_width, y2=inner_height, class_="axis-line", stroke_width=2)
    )
    group.append(element("line", x1=0, y1=0, x2=0, y2=inner_height, class_="axis-line", stroke_width=2))


def _titles(group: Node, title: str, x_label: str, y_label: str, inner_width: float, inner_height: float, x_offset: float) -> None:
    group.append(text(inner_width / 2, -20, title, "graph-title", "middle"))
    group.append(text(inner_width / 2, inner_height + x_offset, x_label, "axis-label", "middle"))
    group.append(text(-inner_height / 2, -50, y_label, "axis-label", "middle", transform="rotate(-90)"))


def render_xp_over_time(
    points: Sequence[AggregatedPoint],
    width: float = DEFAULT_WIDTH,
    height: float = DEFAULT_HEIGHT,
) -> Scene:
    """Cumulative XP as an area with an overlaid line and one marker per day."""

    maximum = max_value(points, lambda p: p.cumulative_xp)
    if not points or maximum <= 0:
        return empty_scene("No XP data available", width, height)

    title = "Cumulative XP Over Time"
    root, group, inner_width, inner_height = _plot_area(width, height, LINE_MARGIN)

    def day_value(point: AggregatedPoint) -> float:
        return float(point.date.toordinal())

    x_scale = linear_scale(extent(points, day_value), (0, inner_width))
    y_scale = linear_scale((0, maximum), (inner_height, 0))
    coords = [(x_scale(day_value(p)), y_scale(p.cumulative_xp)) for p in points]

    _grid_and_value_axis(group, maximum, y_scale, inner_width)

    fmt = format_number
    segments = " ".join(f"L {fmt(x)} {fmt(y)}" for x, y in coords)
    first_x, last_x = coords[0][0], coords[-1][0]
    area = f"M {fmt(first_x)} {fmt(inner_height)} {segments} L {fmt(last_x)} {fmt(inner_height)} Z"
    group.append(element("path", d=area, class_="area-path", fill=PRIMARY))

    line = f"M {fmt(coords[0][0])} {fmt(coords[0][1])}"
    if len(coords) > 1:
        line += " " + " ".join(f"L {fmt(x)} {fmt(y)}" for x, y in coords[1:])
    group.append(element("path", d=line, class_="line-path", stroke=PRIMARY, fill="none", stroke_width=3))

    for x, y in coords:
        group.append(element("circle", cx=x, cy=y, r=4, fill=PRIMARY, class_="data-point"))

    x_axis = group.append(element("g", transform=f"translate(0,{fmt(inner_height)})", class_="axis"))
    for index in category_tick_indices(len(points)):
        x = coords[index][0]
        x_axis.append(element("line", x1=x, y1=0, x2=x, y2=5, stroke=AXIS_COLOR, stroke_width=1))
        x_axis.append(text(x, 20, points[index].date.isoformat(), "axis-label", "middle"))

    _axis_lines(group, inner_width, inner_height)
    _titles(group, title, "Date", "Cumulative XP", inner_width, inner_height, 45)
    return Scene(width=width, height=height, root=root, title=title)


def truncate_label(label: str, limit: int = LABEL_MAX_CHARS) -> str:
    return label[:limit] + "..." if len(label) > limit else label


def render_xp_by_project(
    projects: Sequence[ProjectXp],
    width: float = DEFAULT_WIDTH,
    height: float = DEFAULT_HEIGHT,
) -> Scene:
    maximum = max_value(projects, lambda p: p.xp)
    if not projects or maximum <= 0:
        return empty_scene("No project data available", width, height)

    title = f"XP by Project (Top {len(projects)})"
    root, group, inner_width, inner_height = _plot_area(width, height, BAR_MARGIN)
    y_scale = linear_scale((0, maximum), (inner_height, 0))

    _grid_and_value_axis(group, maximum, y_scale, inner_width)

    slot = inner_width / len(projects)
    bar_width = slot * BAR_WIDTH_RATIO
    for index, project in enumerate(projects):
        x = index * slot + (slot - bar_width) / 2
        top = y_scale(max(project.xp, 0))
        center = x + bar_width / 2
        group.append(
            element(
                "rect",
                x=x,
                y=top,
                width=bar_width,
                height=inner_height - top,
                class_="bar",
                fill=PRIMARY,
                opacity="0.8",
            )
        )
        group.append(text(center, top - 5, f"{project.xp:,}", "axis-label", "middle", font_size="12px"))
        label_y = inner_height + 15
        group.append(
            text(
                center,
                label_y,
                truncate_label(project.label),
                "axis-label",
                "middle",
                transform=f"rotate(-45 {format_number(center)} {format_number(label_y)})",
                font_size="10px",
            )
        )

    _axis_lines(group, inner_width, inner_height)
    _titles(group, title, "Project", "XP", inner_width, inner_height, 100)
    return Scene(width=width, height=height, root=root, title=title)


def _render_pie(
    ratio: RatioResult,
    title: str,
    colors: Tuple[str, str],
    empty_message: str,
    width: float,
    height: float,
    inner_radius_ratio: float = 0.0,
) -> Scene:
    if ratio.total <= 0 or ratio.passed + ratio.failed <= 0:
        return empty_scene(empty_message, width, height)

    radius = min(width, height) / 2 - PIE_PADDING
    if radius <= 0:
        return empty_scene(empty_message, width, height)

    root = svg_root(width, height)
    group = root.append(
        element("g", transform=f"translate({format_number(width / 2)},{format_number(height / 2)})")
    )

    slices = pie_slices(
        [("Passed", ratio.passed), ("Failed", ratio.failed)],
        radius,
        inner_radius=radius * inner_radius_ratio,
    )
    palette = {"Passed": colors[0], "Failed": colors[1]}
    for item in slices:
        group.append(element("path", d=item.path, fill=palette[item.label], class_="pie-slice", opacity="0.8"))
        group.append(
            text(
                item.label_x,
                item.label_y,
                f"{item.label}: {int(item.value)}",
                anchor="middle",
                fill="white",
                font_size="14px",
                font_weight="bold",
            )
        )
        group.append(
            text(item.label_x, item.label_y + 18, f"{item.percentage:.1f}%", anchor="middle", fill="white", font_size="12px")
        )

    group.append(text(0, -height / 2 + 20, title, "graph-title", "middle"))
    return Scene(width=width, height=height, root=root, title=title)


def render_pass_fail_ratio(
    ratio: RatioResult,
    width: float = DEFAULT_WIDTH,
    height: float = DEFAULT_HEIGHT,
) -> Scene:
    return _render_pie(ratio, "Pass/Fail Ratio", ("#10b981", "#ef4444"), "No result data available", width, height)


def render_audit_ratio(
    ratio: RatioResult,
    width: float = DEFAULT_WIDTH,
    height: float = DEFAULT_HEIGHT,
    donut: bool = False,
) -> Scene:
    return _render_pie(
        ratio,
        f"Audit Ratio ({ratio.label} Pass Rate)",
        (PRIMARY, "#ec4899"),
        "No audit data available",
        width,
        height,
        inner_radius_ratio=0.5 if donut else 0.0,
    )
