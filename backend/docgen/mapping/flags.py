from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple

from ..core.errors import FlagEvaluationError
from ..normalize.values import as_int
from .tables import load_mapping

logger = logging.getLogger(__name__)

FlagSet = Dict[str, bool]

# ----------------------------
# Flag names
# ----------------------------

REPRESENTATIVE_OFFICE = "RepresentativeOffice"
RESIDENCE_UNDER_THREE_YEARS = "ResidenceUnderThreeYears"
USED_OTHER_NAMES = "UsedOtherNames"
HAS_REGULATORY_HISTORY = "HasRegulatoryHistory"
HAS_PROPOSED_START_DATE = "HasProposedStartDate"
PREVIOUSLY_HELD_ROLE = "PreviouslyHeldRole"
LICENSED_FUNCTION_SELECTED = "LicensedFunctionSelected"

Predicate = Callable[[Mapping[str, Any]], bool]


@dataclass(frozen=True)
class FlagSpec:
    """
    One row of the flag table: the predicate sees only `inputs` (working
    fields) and `collections` (raw nested collections), never other flags.
    """

    name: str
    predicate: Predicate
    inputs: Tuple[str, ...] = ()
    collections: Tuple[str, ...] = ()


@dataclass
class FlagEvaluation:
    flags: FlagSet
    errors: List[FlagEvaluationError] = field(default_factory=list)


# ----------------------------
# Predicate builders
# ----------------------------

def affirmative(field_name: str) -> Predicate:
    def predicate(values: Mapping[str, Any]) -> bool:
        v = values[field_name]
        if v is None:
            return False
        if not isinstance(v, bool):
            raise TypeError(f"{field_name} expected boolean, got {type(v).__name__} {v!r}")
        return v

    return predicate


def equals_code(field_name: str, code: int) -> Predicate:
    def predicate(values: Mapping[str, Any]) -> bool:
        v = values[field_name]
        if v is None:
            return False
        parsed = as_int(v)
        if parsed is None:
            raise TypeError(f"{field_name} expected option-set code, got {type(v).__name__} {v!r}")
        return parsed == code

    return predicate


def is_set(field_name: str) -> Predicate:
    def predicate(values: Mapping[str, Any]) -> bool:
        return values[field_name] is not None

    return predicate


def non_empty(collection_name: str) -> Predicate:
    def predicate(values: Mapping[str, Any]) -> bool:
        v = values[collection_name]
        if v is None:
            return False
        if not isinstance(v, list):
            raise TypeError(f"{collection_name} expected a list, got {type(v).__name__}")
        return len(v) > 0

    return predicate


def default_flag_specs() -> List[FlagSpec]:
    codes = load_mapping().codes
    return [
        FlagSpec(
            REPRESENTATIVE_OFFICE,
            affirmative("applying_for_rep_office"),
            inputs=("applying_for_rep_office",),
        ),
        FlagSpec(
            RESIDENCE_UNDER_THREE_YEARS,
            equals_code("residence_duration", codes["residence_under_three_years"]),
            inputs=("residence_duration",),
        ),
        FlagSpec(
            USED_OTHER_NAMES,
            affirmative("used_other_names"),
            inputs=("used_other_names",),
        ),
        FlagSpec(
            HAS_REGULATORY_HISTORY,
            non_empty("RegulatoryHistory"),
            collections=("RegulatoryHistory",),
        ),
        FlagSpec(
            HAS_PROPOSED_START_DATE,
            affirmative("has_proposed_start_date"),
            inputs=("has_proposed_start_date",),
        ),
        FlagSpec(
            PREVIOUSLY_HELD_ROLE,
            affirmative("previously_held_role"),
            inputs=("previously_held_role",),
        ),
        FlagSpec(
            LICENSED_FUNCTION_SELECTED,
            is_set("licensed_function"),
            inputs=("licensed_function",),
        ),
    ]


class FlagEvaluator:
    """
    Single flat pass over the flag table.

    A predicate failing on an unexpected input type defaults its flag to
    False and records a FlagEvaluationError; the remaining flags are still
    evaluated.
    """

    def __init__(self, specs: Optional[Sequence[FlagSpec]] = None) -> None:
        self._specs = list(specs) if specs is not None else default_flag_specs()
        names = [s.name for s in self._specs]
        if len(set(names)) != len(names):
            raise ValueError(f"Duplicate flag names in table: {names}")

    @property
    def flag_names(self) -> List[str]:
        return [s.name for s in self._specs]

    def evaluate(
        self,
        fields: Mapping[str, Any],
        raw_collections: Optional[Mapping[str, Any]] = None,
    ) -> FlagEvaluation:
        raw_collections = raw_collections or {}
        result = FlagEvaluation(flags={})

        for spec in self._specs:
            view = {name: fields.get(name) for name in spec.inputs}
            view.update({name: raw_collections.get(name) for name in spec.collections})
            try:
                result.flags[spec.name] = bool(spec.predicate(view))
            except (TypeError, ValueError, KeyError) as e:
                err = FlagEvaluationError(spec.name, str(e))
                logger.warning("Flag %s defaulted to False: %s", spec.name, e)
                result.flags[spec.name] = False
                result.errors.append(err)

        logger.info("Condition flags built: %s", result.flags)
        return result
