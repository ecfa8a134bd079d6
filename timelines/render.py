from __future__ import annotations

import io
import math
from datetime import date
from pathlib import Path
from typing import Any, Callable, Dict, List, Tuple

from jinja2 import Environment, FileSystemLoader
from matplotlib.figure import Figure
from matplotlib.ticker import MaxNLocator

from timelines.dataset import Dataset
from timelines.series import Number, Timeline

DPI = 100
WIDTH_PX = 3960
HEIGHT_PX = 1980
MARGIN_PX = {"top": 50, "right": 50, "bottom": 30, "left": 50}
INNER_RATIO = 0.37  # hollow centre, as a fraction of the outer radius

BACKGROUND = "#15202b"
RING_COLORS = {
    "active": "#ffad1f",
    "recovered": "#1da1f2",
    "deaths": "#794bc4",
}
DEFAULT_TAG = "@chjdev"


def radial_scale(inner: float, outer: float, max_value: float) -> Callable[[float], float]:
    """
    Map a value to a radius so that bar area, not length, is proportional to value.

    r(0) == inner and r(max_value) == outer.
    """
    span = outer * outer - inner * inner

    def scale(value: float) -> float:
        if max_value <= 0:
            return inner
        return math.sqrt(max(0.0, inner * inner + span * value / max_value))

    return scale


def _px_to_pt(px: float) -> float:
    return px * 72.0 / DPI


def _ring_layers(dataset: Dataset) -> List[Tuple[str, Timeline]]:
    return [
        ("active", dataset.active()),
        ("recovered", dataset.recovered),
        ("deaths", dataset.deaths),
    ]


def render_chart(
    dataset: Dataset,
    width_px: int = WIDTH_PX,
    height_px: int = HEIGHT_PX,
    fmt: str = "png",
    tag: str = DEFAULT_TAG,
) -> bytes:
    """
    Draw the radial stacked-bar chart and return the encoded image.

    One bar per day, clockwise from 12 o'clock. Each bar stacks active,
    recovered and deaths from the inside out, so its outer edge is the
    cumulative case count.

    Args:
        dataset: Aligned dataset (its invariants are already verified)
        width_px, height_px: Output size in pixels
        fmt: Any format matplotlib can save ("png", "svg", ...)
        tag: Handle printed in the lower right

    Failure modes:
        - Raises ValueError on an empty dataset
    """
    if len(dataset) == 0:
        raise ValueError("cannot render an empty dataset")

    width = width_px - MARGIN_PX["left"] - MARGIN_PX["right"]
    height = height_px - MARGIN_PX["top"] - MARGIN_PX["bottom"]
    outer = min(width, height) / 2 - 6
    inner = outer * INNER_RATIO
    cx = MARGIN_PX["left"] + width / 2
    cy = MARGIN_PX["top"] + height / 2
    font_scale = height_px / HEIGHT_PX

    max_value = max(p.value for p in dataset.cases)
    y = radial_scale(inner, outer, max_value)

    # pyplot-free Figure, no figure manager to close
    fig = Figure(figsize=(width_px / DPI, height_px / DPI), dpi=DPI, facecolor=BACKGROUND)
    ax = fig.add_axes(
        [(cx - outer) / width_px, 1 - (cy + outer) / height_px, 2 * outer / width_px, 2 * outer / height_px],
        projection="polar",
    )
    ax.set_theta_zero_location("N")
    ax.set_theta_direction(-1)
    ax.set_ylim(0, outer)
    ax.set_axis_off()

    num_bars = len(dataset)
    step = 2 * math.pi / num_bars
    thetas = [(i + 0.5) * step for i in range(num_bars)]
    bar_width = step - (math.pi / num_bars) * 0.075

    offset: List[Number] = [0] * num_bars
    for name, timeline in _ring_layers(dataset):
        bottoms = [y(o) for o in offset]
        tops = [y(o + p.value) for o, p in zip(offset, timeline)]
        ax.bar(
            thetas,
            [t - b for t, b in zip(tops, bottoms)],
            width=bar_width,
            bottom=bottoms,
            color=RING_COLORS[name],
            linewidth=0,
        )
        offset = [o + p.value for o, p in zip(offset, timeline)]

    circle = [i * 2 * math.pi / 360 for i in range(361)]
    ax.plot(circle, [y(0)] * len(circle), color="black", alpha=0.2, linewidth=1)
    for tick in MaxNLocator(nbins=5).tick_values(0, max_value):
        if tick < 0 or tick > max_value:
            continue
        r = y(tick)
        ax.plot(circle, [r] * len(circle), color="white", linewidth=1)
        ax.annotate(
            f"{tick:.0f}",
            xy=(0, r),
            xytext=(_px_to_pt(6), _px_to_pt(1)),
            textcoords="offset points",
            ha="left",
            va="bottom",
            color="white",
            fontsize=_px_to_pt(36 * font_scale),
            family="sans-serif",
        )

    fig.text(
        (cx + width * 0.125) / width_px,
        1 - (cy + height / 2 - 30 * font_scale) / height_px,
        tag,
        color="white",
        alpha=0.75,
        fontsize=_px_to_pt(48 * font_scale),
        family="sans-serif",
        style="italic",
        weight="bold",
    )

    buf = io.BytesIO()
    fig.savefig(buf, format=fmt, dpi=DPI, facecolor=fig.get_facecolor())
    return buf.getvalue()


def _get_template_env() -> Environment:
    """Create Jinja2 environment with templates directory."""
    templates_dir = Path(__file__).parent / "templates"
    return Environment(
        loader=FileSystemLoader(str(templates_dir)),
        autoescape=False,
        trim_blocks=True,
        lstrip_blocks=True,
    )


def _format_number(value: Number) -> str:
    """Format with de-AT grouping: 12345 -> "12.345"."""
    return f"{value:,.0f}".replace(",", ".")


def _format_delta(value: Number) -> str:
    sign = "-" if value < 0 else "+"
    return sign + _format_number(abs(value))


def _format_date(day: date) -> str:
    return day.strftime("%d.%m.%Y")


def _prepare_context(dataset: Dataset, tag: str) -> Dict[str, Any]:
    latest = dataset.latest()
    first: date = dataset.dates[0]
    return {
        "date": latest.date,
        "first_date": first,
        "days": len(dataset),
        "cases": latest.cases,
        "new_cases": latest.new_cases,
        "active": latest.active,
        "recovered": latest.recovered,
        "deaths": latest.deaths,
        "tag": tag,
        "format_number": _format_number,
        "format_delta": _format_delta,
        "format_date": _format_date,
    }


def render_caption(dataset: Dataset, tag: str = DEFAULT_TAG, template: str = "caption.txt.j2") -> str:
    """
    Render the post text for the latest day of the dataset.

    Failure modes:
        - Raises ValueError on an empty dataset
        - Raises jinja2.TemplateError if the template is malformed or missing
    """
    env = _get_template_env()
    context = _prepare_context(dataset, tag)
    return env.get_template(template).render(**context).strip()
