import json
from datetime import date, timedelta
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import quote

from config import QUICKCHART_URL
from submission import format_hours

def display_name(row: Optional[Dict[str, Any]]) -> str:
    if not row:
        return "-"
    return (row.get("real_name") or row.get("username") or "").strip() or "-"

def format_profile(rank: Optional[Dict[str, Any]]) -> str:
    hours = float((rank or {}).get("total_hours") or 0)
    return (
        "👤 My Profile\n"
        f"Name: {display_name(rank)}\n"
        f"Hours: {format_hours(hours)}"
    )

def format_leaderboard(rows: List[Dict[str, Any]], title: str = "🏆 Leaderboard") -> str:
    if not rows:
        return f"{title}\n\nNo results yet."
    lines = [title, ""]
    for i, r in enumerate(rows, start=1):
        hours = float(r.get("total_hours") or 0)
        lines.append(f"{i}. {display_name(r)} - {format_hours(hours)} hrs")
    return "\n".join(lines)

def fill_days(rows: List[Dict[str, Any]], today: date, days: int = 7) -> Tuple[List[str], List[float]]:
    """Zero-filled per-day totals for the ``days`` days ending at ``today``."""
    by_day = {}
    for r in rows:
        d = r.get("study_date")
        if d is None:
            continue
        by_day[d] = by_day.get(d, 0.0) + float(r.get("hours") or 0)

    labels: List[str] = []
    values: List[float] = []
    for offset in range(days - 1, -1, -1):
        d = today - timedelta(days=offset)
        labels.append(d.strftime("%b %d"))
        values.append(round(by_day.get(d, 0.0), 2))
    return labels, values

def line_chart_url(labels: List[str], values: List[float]) -> str:
    chart = {
        "type": "line",
        "data": {
            "labels": labels,
            "datasets": [{"label": "Hrs", "data": values, "fill": False}],
        },
    }
    return f"{QUICKCHART_URL}?c={quote(json.dumps(chart, separators=(',', ':')))}"

def since_for(today: date, days: int) -> date:
    return today - timedelta(days=days - 1)
