from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, Dict, List, Optional, Tuple

from ..core.errors import MalformedSourceRecord
from .tables import MappingTables, first_present, load_mapping

logger = logging.getLogger(__name__)

WorkingFields = Dict[str, Any]


class FieldProjector:
    """
    RawRecord -> WorkingFields.

    Every declared scalar is present in the output; None means "absent in
    source". A missing key is never an error and only a record that is not
    a mapping is malformed. A declared scalar holding a nested structure is
    projected as None and reported through `problems` as (field, reason).
    """

    def __init__(self, tables: Optional[MappingTables] = None) -> None:
        self._tables = tables or load_mapping()

    @property
    def field_names(self) -> list[str]:
        return list(self._tables.scalars)

    def project(
        self, raw: Any, problems: Optional[List[Tuple[str, str]]] = None
    ) -> WorkingFields:
        if not isinstance(raw, Mapping):
            raise MalformedSourceRecord(
                f"source record must be an object, got {type(raw).__name__}"
            )

        fields: WorkingFields = {}
        for name, keys in self._tables.scalars.items():
            value = first_present(raw, keys)
            if isinstance(value, (Mapping, list)):
                reason = f"{'/'.join(keys)} holds a nested {type(value).__name__}"
                logger.debug("Field %s projected as None: %s", name, reason)
                if problems is not None:
                    problems.append((name, reason))
                value = None
            fields[name] = value

        logger.debug(
            "Projected %d fields (%d present)",
            len(fields),
            sum(1 for v in fields.values() if v is not None),
        )
        return fields

    def raw_collections(self, raw: Mapping[str, Any]) -> Dict[str, Any]:
        """Declared nested collections as found in the record (None if absent)."""
        return {
            name: raw.get(nav_key)
            for name, nav_key in self._tables.collections.items()
        }
