# utils/currency.py
from typing import Union

Number = Union[str, float, int, None]

# Shorthand multipliers accepted on amounts ("$1.2M", "85k")
SUFFIXES = {"k": 1_000.0, "m": 1_000_000.0}


def clean_currency(val: Number) -> float:
    """
    Cleans a currency value ("$140,000.00", "85k", 1200) into a float.
    Blank or unparseable input is treated as 0.0.
    """
    if val is None or val == "":
        return 0.0
    if isinstance(val, (int, float)):
        return float(val)

    s = str(val).strip().lower().replace("$", "").replace(",", "").replace(" ", "")
    multiplier = 1.0
    if s and s[-1] in SUFFIXES:
        multiplier = SUFFIXES[s[-1]]
        s = s[:-1]
    try:
        return float(s) * multiplier if s else 0.0
    except ValueError:
        return 0.0


def clean_percent(raw_input: Number) -> Union[float, None]:
    """
    Converts '23%', '23', 23 or 0.23 to 0.23. Values between 1 and 100 are read
    as percentages, anything else as a decimal fraction. None if unparseable.
    """
    if raw_input is None:
        return None
    if isinstance(raw_input, (int, float)):
        numeric_val = float(raw_input)
    else:
        s = str(raw_input).replace("%", "").replace(",", "").replace(" ", "").strip()
        if not s:
            return None
        try:
            numeric_val = float(s)
        except ValueError:
            return None
    return numeric_val / 100.0 if 1.0 <= numeric_val <= 100.0 else numeric_val


def format_currency_output(val, decimals=0) -> str:
    """Formats a number as $1,234,567."""
    return f"${(val or 0.0):,.{decimals}f}"


def format_percent_output(value, decimal_places: int = 1) -> str:
    """Formats 0.23 as '23.0%'."""
    if value is None:
        return ""
    return f"{float(value) * 100:.{decimal_places}f}%"
