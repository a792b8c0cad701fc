"""Term/definition import from pasted text (one pair per line)."""
from __future__ import annotations


def detect_delimiter(first_line: str) -> str:
    return "\t" if "\t" in first_line else ","


def parse_import_text(raw_text: str, delimiter: str = "auto") -> list[tuple[str, str]]:
    """
    Split pasted text into (term, definition) pairs.

    With delimiter="auto" (or blank) a tab in the first non-blank line selects
    tab, otherwise comma. Lines with fewer than two fields are skipped; fields past
    the second are ignored.
    """
    lines = [line for line in raw_text.splitlines() if line.strip()]
    if not lines:
        return []
    if delimiter == "auto" or not delimiter:
        sep = detect_delimiter(lines[0])
    else:
        sep = delimiter

    pairs: list[tuple[str, str]] = []
    for line in lines:
        parts = line.split(sep)
        if len(parts) >= 2:
            pairs.append((parts[0].strip(), parts[1].strip()))
    return pairs
