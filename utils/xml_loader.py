# utils/xml_loader.py
import xml.etree.ElementTree as ET
from typing import Any, Dict, List
from pathlib import Path

from utils.currency import clean_currency

PERSON_TAGS = ("user", "spouse")
GROUP_TAGS = ("allocation",)
MONEY_FIELDS = ("value", "cost_basis", "payout_amount", "balance", "monthly_payment")


def try_cast(value: str) -> Any:
    """Try to convert string to bool, int or float if possible, else leave as str."""
    if value is None:
        return None
    value = value.strip()
    if value == "":
        return None
    # Booleans
    if value.lower() in ("true", "false"):
        return value.lower() == "true"

    # Integers (try first)
    try:
        if '.' not in value:
            return int(value)
    except ValueError:
        pass

    # Floats (try second)
    try:
        return float(value)
    except ValueError:
        pass

    return value # Return as string if all else fails


def _fields(element: ET.Element) -> Dict[str, Any]:
    return {child.tag: try_cast(child.text) for child in element}


def _items(element: ET.Element, tag: str) -> List[Dict[str, Any]]:
    """Rows such as <asset type="401k" owner="user"><value>...</value></asset>."""
    rows = []
    for item in element.findall(tag):
        row: Dict[str, Any] = {key: try_cast(val) for key, val in item.attrib.items()}
        row.update(_fields(item))
        for money in MONEY_FIELDS:
            if money in row:
                row[money] = clean_currency(row[money])
        if isinstance(row.get("owner"), str):
            row["owner"] = row["owner"].strip().lower()
        rows.append(row)
    return rows


def parse_household_xml(file_path) -> Dict[str, Any]:
    """
    Load a household profile snapshot from XML into the dict shape
    utils.input_adapter.build_parameters expects.
    """
    tree = ET.parse(file_path)
    root = tree.getroot()
    profile: Dict[str, Any] = {}

    for child in root:
        if child.tag in PERSON_TAGS or child.tag in GROUP_TAGS:
            profile[child.tag] = _fields(child)
        elif child.tag == "assets":
            profile["assets"] = _items(child, "asset")
        elif child.tag == "liabilities":
            profile["liabilities"] = _items(child, "liability")
        elif child.tag == "contribution_mix":
            profile["contribution_mix"] = {
                c.get("type"): float(try_cast(c.text) or 0.0) for c in child.findall("contribution")
            }
        else:
            val = try_cast(child.text)
            if child.tag in ("state", "marital_status") and isinstance(val, str):
                val = val.strip()
            profile[child.tag] = val

    return profile


CONFIG_DIR = Path(__file__).parent.parent / "config"
DEFAULT_HOUSEHOLD_XML = CONFIG_DIR / "default_household.xml"


def load_default_household() -> Dict[str, Any]:
    return parse_household_xml(DEFAULT_HOUSEHOLD_XML)
