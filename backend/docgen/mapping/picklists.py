from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from typing import Any, Dict, Optional

import yaml

from .tables import DATA_DIR
from ..normalize.values import as_int


@dataclass(frozen=True)
class Picklist:
    default: str
    options: Dict[int, str]

    def label(self, value: Any, default: Optional[str] = None) -> str:
        if value is None:
            return ""
        fallback = self.default if default is None else default
        code = as_int(value)
        if code is None:
            # Non-numeric text is already a label (formatted value).
            if isinstance(value, str) and value.strip():
                return value.strip()
            return fallback
        return self.options.get(code, fallback)


@lru_cache(maxsize=1)
def _load_picklists() -> Dict[str, Picklist]:
    data = yaml.safe_load((DATA_DIR / "picklists.yml").read_text(encoding="utf-8")) or {}
    out: Dict[str, Picklist] = {}
    for name, spec in (data.get("picklists") or {}).items():
        options = {int(k): str(v) for k, v in (spec.get("options") or {}).items()}
        out[str(name)] = Picklist(default=str(spec.get("default", "")), options=options)
    return out


def resolve(list_name: str, value: Any, default: Optional[str] = None) -> str:
    """
    Option-set code -> display label.

    None -> "" (absent stays blank); unknown code -> the list default.
    """
    picklist = _load_picklists().get(list_name)
    if picklist is None:
        raise KeyError(f"Unknown picklist: {list_name}")
    return picklist.label(value, default)
