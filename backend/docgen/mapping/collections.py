from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Generic, List, Optional, TypeVar

from pydantic import ValidationError

from ..contracts.canonical import (
    Citizenship,
    DataWarning,
    PassportDetail,
    RegulatoryHistoryEntry,
)
from ..normalize.dates import to_iso_date
from ..normalize.values import as_int, as_text, is_true, text_or_empty
from . import picklists
from .tables import MappingTables, first_present, load_mapping

logger = logging.getLogger(__name__)

T = TypeVar("T")

RawItem = Mapping[str, Any]
ItemMapper = Callable[[RawItem], Optional[T]]


@dataclass
class MappedCollection(Generic[T]):
    name: str
    items: List[T] = field(default_factory=list)
    dropped: int = 0
    warnings: List[DataWarning] = field(default_factory=list)


def map_collection(
    name: str,
    raw_items: Any,
    item_mapper: Callable[[RawItem], Optional[T]],
) -> MappedCollection[T]:
    """
    Map 0..N raw nested records into flat records, preserving source order.

    - item_mapper returning None: item has no essential data, dropped silently
    - item_mapper raising: that item is dropped with a warning, the rest continue
    """
    out: MappedCollection[T] = MappedCollection(name=name)

    if raw_items is None:
        logger.debug("[%s] no records found", name)
        return out
    if not isinstance(raw_items, list):
        out.warnings.append(
            DataWarning(
                code="collection_not_a_list",
                message=f"{name}: expected a list of records, got {type(raw_items).__name__}",
                context={"collection": name},
            )
        )
        logger.warning("[%s] expected list, got %s", name, type(raw_items).__name__)
        return out

    for index, raw in enumerate(raw_items):
        try:
            if not isinstance(raw, Mapping):
                raise TypeError(f"item is {type(raw).__name__}, not an object")
            mapped = item_mapper(raw)
        except (KeyError, ValueError, TypeError, ValidationError) as e:
            out.dropped += 1
            out.warnings.append(
                DataWarning(
                    code="collection_item_dropped",
                    message=f"{name}[{index}] could not be mapped",
                    context={"collection": name, "index": index, "reason": str(e)},
                )
            )
            logger.warning("[%s] item %d dropped: %s", name, index, e)
            continue

        if mapped is None:
            out.dropped += 1
            continue
        out.items.append(mapped)

    logger.info(
        "[%s] mapped %d of %d record(s)", name, len(out.items), len(raw_items)
    )
    return out


# ----------------------------
# Item mappers
# ----------------------------

class ItemMappers:
    """Per-collection item mappers driven by mapping.yml `items`."""

    def __init__(self, tables: Optional[MappingTables] = None) -> None:
        self._tables = tables or load_mapping()

    def _read(self, collection: str, raw: RawItem) -> Dict[str, Any]:
        return {
            name: first_present(raw, keys)
            for name, keys in self._tables.items[collection].items()
        }

    def passport(self, raw: RawItem) -> Optional[PassportDetail]:
        v = self._read("PassportDetails", raw)
        full_name = as_text(v["full_name"])
        if full_name is None:
            return None
        return PassportDetail(
            title=picklists.resolve("title", v["title"]),
            full_name=full_name,
            date_of_birth=to_iso_date(v["date_of_birth"]),
            place_of_birth=text_or_empty(v["place_of_birth"]),
            uae_resident=is_true(v["uae_resident"]),
            number_of_citizenships=picklists.resolve("citizenship_count", v["number_of_citizenships"]) or "N/A",
            other_names=text_or_empty(v["other_names"]),
            native_name=text_or_empty(v["native_name"]),
        )

    def citizenship(self, raw: RawItem) -> Optional[Citizenship]:
        v = self._read("Citizenships", raw)
        if v["country"] is None:
            return None
        return Citizenship(
            country=picklists.resolve("country", v["country"]),
            passport_no=text_or_empty(v["passport_no"]),
            expiry_date=to_iso_date(v["expiry_date"]),
        )

    def regulatory_history(self, raw: RawItem) -> Optional[RegulatoryHistoryEntry]:
        v = self._read("RegulatoryHistory", raw)
        licence_name = as_text(v["licence_name"])
        if v["regulator"] is None and licence_name is None:
            return None

        is_other = as_int(v["regulator"]) == self._tables.codes["other_regulator"]
        return RegulatoryHistoryEntry(
            regulator=picklists.resolve("regulator", v["regulator"]),
            date_started=to_iso_date(v["date_started"]),
            date_finished=to_iso_date(v["date_finished"]),
            licence_name=licence_name or "",
            register_name=text_or_empty(v["register_name"]),
            overview=text_or_empty(v["overview"]),
            is_other_regulator=is_other,
            other_regulator_details=text_or_empty(v["other_regulator_details"]) if is_other else None,
        )
