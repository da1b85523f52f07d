from datetime import datetime, timedelta, timezone
from typing import List, Literal, Optional

CURRENCY = "KES"


def generate_markdown_table(
    headers: Optional[List[str]],
    rows: List[List[str]],
    aligns: Optional[List[Literal["l", "c", "r"]]] = None,
) -> str:
    """
    Generate a Markdown table.

    Args:
        headers: List of column headers, or None to use first row as headers.
        rows: List of rows, each a list of strings.
        aligns: List of alignments ('l', 'c', 'r') for each column.
                Defaults to all center ('c').

    Returns:
        str: Markdown formatted table.
    """
    if not rows:
        return ""

    # If no headers, take the first row as header and remove it from rows
    if not headers:
        headers, rows = rows[0], rows[1:]

    headers = list(map(str, headers))
    rows = [[str(cell).replace("|", "\\|") for cell in row] for row in rows]

    num_cols = len(headers)
    if aligns is None:
        aligns = ["c"] * num_cols
    elif len(aligns) != num_cols:
        raise ValueError("Length of aligns must match number of headers.")

    align_map = {
        "l": ":---",
        "c": ":---:",
        "r": "---:",
    }

    header_line = "| " + " | ".join(headers) + " |"
    align_line = "| " + " | ".join(align_map[a] for a in aligns) + " |"
    row_lines = ["| " + " | ".join(row) + " |" for row in rows]

    return "\n".join([header_line, align_line, *row_lines])


def format_money(amount: int) -> str:
    """Minor units -> 'KES 1,234.00'."""
    sign = "-" if amount < 0 else ""
    major, minor = divmod(abs(int(amount)), 100)
    return f"{sign}{CURRENCY} {major:,}.{minor:02d}"


def parse_money(text: str) -> int:
    """'1,234.5' or 'KES 1234.50' -> 123450. Raises ValueError on bad input."""
    cleaned = (text or "").replace(CURRENCY, "").replace(",", "").strip()
    if not cleaned:
        raise ValueError("Amount is required.")
    if cleaned.count(".") > 1 or not cleaned.replace(".", "", 1).isdigit():
        raise ValueError(f"Not an amount: {text!r}")
    major, _, minor = cleaned.partition(".")
    if len(minor) > 2:
        raise ValueError(f"At most two decimals allowed: {text!r}")
    return int(major or "0") * 100 + int(minor.ljust(2, "0") or "0")


def format_timestamp(ts: Optional[datetime]) -> str:
    if ts is None:
        return "-"
    return ts.astimezone().strftime("%Y-%m-%d %H:%M")


def expiry_in_hours(hours: float, now: Optional[datetime] = None) -> datetime:
    now = now or datetime.now(timezone.utc)
    return now + timedelta(hours=hours)
