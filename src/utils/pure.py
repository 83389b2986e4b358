from datetime import datetime
from typing import List, Optional, Sequence, Tuple


def format_local_time(value: Optional[datetime]) -> str:
    """`2025-03-04 13:00` in the machine's timezone; empty for None."""
    if value is None:
        return ""
    return value.astimezone().strftime("%Y-%m-%d %H:%M")


def markdown_key_value_table(rows: Sequence[Tuple[str, object]]) -> str:
    """
    Two-column Markdown table, keys left aligned and values right aligned.
    None values render as "-".
    """
    if not rows:
        return ""
    lines: List[str] = ["| | |", "|:---|---:|"]
    for key, value in rows:
        lines.append(f"| {key} | {'-' if value is None else value} |")
    return "\n".join(lines)
