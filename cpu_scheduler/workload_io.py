from __future__ import annotations

import csv
import json
from pathlib import Path
from typing import Any, Dict, List

from .engine import normalize_processes
from .models import ProcessDescriptor


def load_workload(path: str | Path) -> List[ProcessDescriptor]:
    """
    Load a workload from a JSON or CSV file into validated process descriptors.

    Raises ValueError for unsupported files and for workloads the engine
    would reject (WorkloadError is a ValueError).
    """
    path = Path(path)
    suffix = path.suffix.lower()

    if suffix == ".json":
        rows = _load_json(path)
    elif suffix == ".csv":
        rows = _load_csv(path)
    else:
        raise ValueError(f"Unsupported workload format: {suffix} (use .json or .csv)")

    return normalize_processes(rows)


def _load_json(path: Path) -> List[Dict[str, Any]]:
    with path.open("r", encoding="utf-8") as f:
        raw = json.load(f)

    # Either a bare list or {"processes": [...]}.
    if isinstance(raw, dict):
        raw = raw.get("processes")
    if not isinstance(raw, list):
        raise ValueError("JSON workload must be a list of process objects or {\"processes\": [...]}")
    return raw


def _load_csv(path: Path) -> List[Dict[str, Any]]:
    rows: List[Dict[str, Any]] = []
    with path.open("r", encoding="utf-8", newline="") as f:
        reader = csv.DictReader(f)
        for row in reader:
            entry: Dict[str, Any] = {k.strip(): v.strip() for k, v in row.items() if k and v not in (None, "")}
            if "bursts" in entry:
                entry["bursts"] = entry["bursts"].replace(";", " ").split()
            rows.append(entry)
    return rows
