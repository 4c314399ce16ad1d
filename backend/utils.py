import csv
import os
from typing import Any, Dict, List

LIST_SEPARATORS = (";", ",")


def read_csv_norm(fp: str) -> List[Dict[str, Any]]:
    rows = []
    if not os.path.exists(fp):
        raise FileNotFoundError(f"CSV file not found: {fp}")
    with open(fp, "r", encoding="utf-8") as f:
        reader = csv.DictReader(f)
        if reader.fieldnames is None:
            raise ValueError(f"{fp}: missing header row")
        reader.fieldnames = [h.strip().lower() for h in reader.fieldnames]
        for r in reader:
            rows.append({(k.strip().lower() if k else k): (v.strip() if isinstance(v, str) else v)
                         for k, v in r.items()})
    return rows


def get_any(d: Dict[str, Any], keys: List[str], default: Any = None) -> Any:
    if d is None:
        return default
    for k in keys:
        if k in d and d[k] not in ("", None):
            return d[k]
    return default


def split_multi(value: Any) -> List[str]:
    """Turn a multi-select survey cell into a list; lists pass through untouched."""
    if value is None:
        return []
    if isinstance(value, (list, tuple, set, frozenset)):
        return list(value)
    text = str(value)
    # case types such as "Product/Tech" contain no separators, so ';' wins when present
    for sep in LIST_SEPARATORS:
        if sep in text:
            return [s.strip() for s in text.split(sep) if s.strip()]
    return [text.strip()] if text.strip() else []


def percentage(part: float, whole: float, digits: int = 2) -> float:
    if not whole:
        return 0.0
    return round(part / whole * 100.0, digits)
