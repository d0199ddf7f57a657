from typing import Any, Dict, List

from submission import format_hours

def format_registry(rows: List[Dict[str, Any]]) -> str:
    lines = ["📋 Student Registry", ""]
    if not rows:
        lines.append("No users found.")
        return "\n".join(lines)
    for i, r in enumerate(rows, start=1):
        name = (r.get("real_name") or "").strip() or "-"
        username = (r.get("username") or "").strip() or "-"
        hours = float(r.get("total_hours") or 0)
        lines.append(f"{i}. {name} (@{username})")
        lines.append(f"   Total: {format_hours(hours)} hrs")
        lines.append("")
    return "\n".join(lines).rstrip()
