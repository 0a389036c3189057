"""
Numeric and Text Normalization

Leaf helpers that turn free-form export values into canonical ones:
- Currency/percent strings to floats
- Quote-aware CSV splitting
- Header normalization
- Date normalization to ISO format
- Fraction/percentage unit reconciliation

None of these raise on bad input; unparsable values collapse to a neutral
default so a single dirty cell never takes a whole file down.
"""

import math
import re
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List, NewType, Optional, Union

Percentage = NewType("Percentage", float)
Fraction = NewType("Fraction", float)

_NUMBER_NOISE = re.compile(r"[$,%]")
_LEADING_FLOAT = re.compile(r"^[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")
_WHITESPACE = re.compile(r"\s+")
_HEADER_STRIP = re.compile(r"[()%]")
_UNDERSCORES = re.compile(r"_+")

DATE_FORMATS = [
    "%m/%d/%Y",
    "%Y-%m-%d",
    "%m-%d-%Y",
    "%Y/%m/%d",
    "%m/%d/%y",
    "%Y%m%d",
]

_TRUE_STRINGS = {"true", "yes", "y", "1", "t"}

# Excel and POS exports often lead with a UTF-8 byte order mark
BOM = "\ufeff"


def parse_number(value: Union[str, int, float, Decimal, None]) -> float:
    """
    Parse a free-form numeric value.

    Strips ``$``, ``,`` and ``%`` and reads the leading floating point
    literal, so ``"$1,250.00"`` -> 1250.0 and ``"62.5%"`` -> 62.5.
    Empty, missing or unparsable input returns 0.0.
    """
    if value is None or isinstance(value, bool):
        return 0.0
    if isinstance(value, (int, float, Decimal)):
        number = float(value)
        return number if math.isfinite(number) else 0.0

    cleaned = _NUMBER_NOISE.sub("", str(value)).strip()
    match = _LEADING_FLOAT.match(cleaned)
    if not match:
        return 0.0
    number = float(match.group(0))
    return number if math.isfinite(number) else 0.0


def parse_int(value: Union[str, int, float, Decimal, None]) -> int:
    """Parse a count; fractional parts are truncated"""
    return int(parse_number(value))


def parse_bool(value: Any) -> bool:
    """Coerce a flag that may arrive as bool, number or string"""
    if isinstance(value, bool):
        return value
    if isinstance(value, (int, float, Decimal)):
        return value != 0
    if value is None:
        return False
    return str(value).strip().lower() in _TRUE_STRINGS


def to_percentage(value: float) -> Percentage:
    """
    Normalize a margin-style value to the 0-100 scale.

    Exports disagree on units: some carry 0.625, others 62.5. Values with
    magnitude <= 1 are read as fractions.
    """
    if abs(value) <= 1:
        return Percentage(value * 100)
    return Percentage(value)


def parse_csv_line(line: str) -> List[str]:
    """
    Split one CSV line on commas that sit outside double quotes.

    Quote characters delimit fields and are not part of the output; a
    doubled quote inside a quoted field yields one literal quote.
    """
    fields: List[str] = []
    current: List[str] = []
    in_quotes = False
    i = 0
    length = len(line)

    while i < length:
        char = line[i]
        if char == '"':
            if in_quotes and i + 1 < length and line[i + 1] == '"':
                current.append('"')
                i += 2
                continue
            in_quotes = not in_quotes
        elif char == "," and not in_quotes:
            fields.append("".join(current))
            current = []
        else:
            current.append(char)
        i += 1

    fields.append("".join(current))
    return fields


def normalize_header(header: str) -> str:
    """
    Normalize a column header to its machine-cased form.

    ``"Gross Margin %"`` -> ``"gross_margin_"``,
    ``"COGS (with excise)"`` -> ``"cogs_with_excise"``.
    """
    text = header.replace(BOM, "").strip().strip('"').strip().lower()
    text = _WHITESPACE.sub("_", text)
    text = _HEADER_STRIP.sub("", text)
    return _UNDERSCORES.sub("_", text)


def parse_csv(text: str) -> List[Dict[str, str]]:
    """
    Parse CSV text into header-keyed rows.

    The first line defines the (normalized) headers; a leading byte order
    mark is dropped. Lines whose field count differs from the header count
    are dropped.
    """
    lines = [line for line in text.lstrip(BOM).strip().splitlines() if line.strip()]
    if len(lines) < 2:
        return []

    headers = [normalize_header(h) for h in parse_csv_line(lines[0])]
    rows = []

    for line in lines[1:]:
        values = parse_csv_line(line)
        if len(values) != len(headers):
            continue
        rows.append({header: value.strip() for header, value in zip(headers, values)})

    return rows


def parse_date(value: Optional[str]) -> Optional[date]:
    """Parse a date in any of the export formats, or None"""
    if not value:
        return None
    text = str(value).strip()
    if not text:
        return None

    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue

    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        return None


def format_date(value: Optional[str]) -> str:
    """
    Normalize a date string to ``YYYY-MM-DD``.

    Unrecognized values are returned unchanged so they still group
    consistently; empty input returns an empty string.
    """
    if not value or not str(value).strip():
        return ""
    parsed = parse_date(value)
    if parsed is None:
        return str(value).strip()
    return parsed.isoformat()
