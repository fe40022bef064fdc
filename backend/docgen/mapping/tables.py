from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Mapping, Tuple

import yaml

# .../docgen/mapping/tables.py -> .../docgen/data
DATA_DIR = Path(__file__).resolve().parents[1] / "data"


@dataclass(frozen=True)
class MappingTables:
    """Source-field tables read from data/mapping.yml."""

    version: str
    scalars: Dict[str, Tuple[str, ...]]
    collections: Dict[str, str]
    items: Dict[str, Dict[str, Tuple[str, ...]]]
    codes: Dict[str, int]


def _keys(value: Any, where: str) -> Tuple[str, ...]:
    if isinstance(value, str):
        return (value,)
    if isinstance(value, list) and value and all(isinstance(x, str) for x in value):
        return tuple(value)
    raise ValueError(f"mapping.yml: {where} must be a non-empty list of raw keys")


def parse_tables(data: Mapping[str, Any]) -> MappingTables:
    scalars = {
        name: _keys(keys, f"scalars.{name}")
        for name, keys in (data.get("scalars") or {}).items()
    }
    collections = {str(k): str(v) for k, v in (data.get("collections") or {}).items()}
    items = {
        coll: {name: _keys(keys, f"items.{coll}.{name}") for name, keys in fields.items()}
        for coll, fields in (data.get("items") or {}).items()
    }
    codes = {str(k): int(v) for k, v in (data.get("codes") or {}).items()}
    return MappingTables(
        version=str(data.get("version", "")),
        scalars=scalars,
        collections=collections,
        items=items,
        codes=codes,
    )


@lru_cache(maxsize=1)
def load_mapping() -> MappingTables:
    path = DATA_DIR / "mapping.yml"
    data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    return parse_tables(data)


def first_present(raw: Mapping[str, Any], keys: List[str] | Tuple[str, ...]) -> Any:
    """Value of the first key present with a non-null value, else None."""
    for key in keys:
        value = raw.get(key)
        if value is not None:
            return value
    return None
