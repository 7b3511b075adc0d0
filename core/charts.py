from __future__ import annotations

from typing import Any, Dict, Mapping

import altair as alt
import pandas as pd

alt.data_transformers.disable_max_rows()

NAVY = "#003366"
PALE_BLUE = "#CCE5FF"
BAR_BLUE = "#0055A5"


def to_vega_spec(chart: alt.Chart) -> Dict[str, Any]:
    """Convert an Altair chart into a Vega-Lite spec dict (JSON-serializable)."""
    return chart.to_dict()


def status_pie_chart(breakdown: Mapping[str, int]) -> alt.Chart:
    df = pd.DataFrame(
        {
            "status": ["Complete", "Incomplete"],
            "count": [int(breakdown.get("complete", 0)), int(breakdown.get("incomplete", 0))],
        }
    )
    return (
        alt.Chart(df, title="Conversion Status")
        .mark_arc(stroke="white", strokeWidth=1)
        .encode(
            theta=alt.Theta("count:Q"),
            color=alt.Color(
                "status:N",
                title="Status",
                scale=alt.Scale(domain=["Complete", "Incomplete"], range=[NAVY, PALE_BLUE]),
            ),
            tooltip=["status", alt.Tooltip("count:Q", format=",")],
        )
        .properties(height=260)
    )


def staff_bar_chart(tally: Mapping[str, int]) -> alt.Chart:
    df = pd.DataFrame({"staff": list(tally.keys()), "books": [int(v) for v in tally.values()]})
    return (
        alt.Chart(df, title="Staff Performance")
        .mark_bar(color=BAR_BLUE)
        .encode(
            x=alt.X("staff:N", title="Staff", sort=None),
            y=alt.Y("books:Q", title="Books Processed", axis=alt.Axis(format="d")),
            tooltip=["staff", alt.Tooltip("books:Q", title="Books Processed", format=",")],
        )
        .properties(height=260)
    )
