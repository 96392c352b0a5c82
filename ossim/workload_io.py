from __future__ import annotations

import csv
import json
from pathlib import Path
from typing import Any, Callable, Iterable, List, Mapping, TypeVar

from .models import DEFAULT_PRIORITY, MemoryRequest, Process

T = TypeVar("T")

MEMORY_OPS = {"alloc", "free"}


def load_workload(path: str | Path) -> List[Process]:
    """
    Load a process workload from a JSON or CSV file into a list of Process objects.
    """
    return _load(path, _process_from_mapping)


def load_memory_script(path: str | Path) -> List[MemoryRequest]:
    """
    Load a sequence of alloc/free requests from a JSON or CSV file.
    """
    return _load(path, _request_from_mapping)


def _load(path: str | Path, convert: Callable[[Mapping[str, Any]], T]) -> List[T]:
    path = Path(path)
    suffix = path.suffix.lower()

    if suffix == ".json":
        return [convert(entry) for entry in _read_json(path)]
    if suffix == ".csv":
        return [convert(row) for row in _read_csv(path)]

    raise ValueError(f"Unsupported workload format: {suffix} (use .json or .csv)")


def _read_json(path: Path) -> Iterable[Mapping[str, Any]]:
    with path.open("r", encoding="utf-8") as f:
        raw = json.load(f)

    if not isinstance(raw, list):
        raise ValueError("JSON workload must be a list of objects")
    return raw


def _read_csv(path: Path) -> List[Mapping[str, Any]]:
    with path.open("r", encoding="utf-8", newline="") as f:
        return list(csv.DictReader(f))


def _optional(mapping: Mapping[str, Any], key: str):
    value = mapping.get(key)
    return None if value in (None, "") else value


def _process_from_mapping(mapping) -> Process:
    try:
        pid = int(mapping["pid"])
        arrival = int(mapping["arrival"])
        burst = int(mapping["burst"])
        priority_val = _optional(mapping, "priority")
        priority = int(priority_val) if priority_val is not None else DEFAULT_PRIORITY
    except (KeyError, TypeError, ValueError) as exc:
        raise ValueError(f"Invalid process entry: {mapping!r}") from exc

    name = _optional(mapping, "name")
    return Process(
        pid=pid,
        name=None if name is None else str(name),
        arrival=arrival,
        burst=burst,
        priority=priority,
    )


def _request_from_mapping(mapping) -> MemoryRequest:
    try:
        op = str(mapping["op"]).strip().lower()
        pid = int(mapping["pid"])
    except (KeyError, TypeError, ValueError) as exc:
        raise ValueError(f"Invalid memory request: {mapping!r}") from exc

    if op not in MEMORY_OPS:
        raise ValueError(f"Invalid memory request: {mapping!r} (op must be alloc or free)")

    if op == "free":
        return MemoryRequest(op=op, pid=pid)

    try:
        size = int(mapping["size"])
    except (KeyError, TypeError, ValueError) as exc:
        raise ValueError(f"Invalid memory request: {mapping!r}") from exc

    label = _optional(mapping, "label")
    return MemoryRequest(op=op, pid=pid, label=f"P{pid}" if label is None else str(label), size=size)
