from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, List, Mapping, Optional, Tuple

from ..contracts.canonical import (
    Application,
    CanonicalDocument,
    Collections,
    Contact,
    CrossReference,
    DataWarning,
    Disclosure,
    Guidelines,
    LicensedFunctions,
    OtherNames,
    Position,
    PreviousAddress,
    Requestor,
    ScalarSections,
)
from ..core.errors import AssemblyError, MalformedSourceRecord
from ..normalize.dates import to_iso_date
from ..normalize.values import as_int, as_text, is_true
from . import flags as F
from . import picklists
from .collections import ItemMappers, map_collection
from .fields import FieldProjector, WorkingFields
from .flags import FlagEvaluator, FlagSet
from .tables import MappingTables, load_mapping

logger = logging.getLogger(__name__)


@dataclass
class AssemblyResult:
    document: CanonicalDocument
    warnings: List[DataWarning] = field(default_factory=list)


class _FieldReader:
    """Lenient typed access to WorkingFields; type problems become warnings."""

    def __init__(self, fields: WorkingFields, warnings: List[DataWarning]) -> None:
        self._fields = fields
        self._warnings = warnings

    def _warn(self, name: str, reason: str) -> None:
        self._warnings.append(
            DataWarning(
                code="field_unreadable",
                message=f"Field {name!r} ignored: {reason}",
                context={"field": name},
            )
        )
        logger.warning("Field %s ignored: %s", name, reason)

    def text(self, name: str) -> str:
        try:
            return as_text(self._fields[name]) or ""
        except TypeError as e:
            self._warn(name, str(e))
            return ""

    def date(self, name: str) -> Optional[str]:
        try:
            return to_iso_date(self._fields[name])
        except ValueError as e:
            self._warn(name, str(e))
            return None

    def flag(self, name: str) -> bool:
        return is_true(self._fields[name])

    def label(self, list_name: str, name: str) -> str:
        return picklists.resolve(list_name, self._fields[name])

    def code(self, name: str) -> Optional[int]:
        return as_int(self._fields[name])


class CanonicalAssembler:
    """
    RawRecord -> CanonicalDocument.

    Fixed order: project fields -> evaluate flags -> map collections ->
    compose sections. Deterministic, no I/O. Fails only when the record is
    structurally unusable (AssemblyError); field, flag and item problems are
    returned as warnings.
    """

    def __init__(
        self,
        *,
        tables: Optional[MappingTables] = None,
        flag_evaluator: Optional[FlagEvaluator] = None,
        template_version: str = "1.0",
    ) -> None:
        self._tables = tables or load_mapping()
        self._projector = FieldProjector(self._tables)
        self._flags = flag_evaluator or FlagEvaluator()
        self._items = ItemMappers(self._tables)
        self._template_version = template_version

    def assemble(self, raw: Any) -> AssemblyResult:
        problems: List[Tuple[str, str]] = []
        try:
            fields = self._projector.project(raw, problems)
        except MalformedSourceRecord as e:
            raise AssemblyError(f"Cannot assemble document: {e}") from e

        warnings: List[DataWarning] = []
        reader = _FieldReader(fields, warnings)
        for name, reason in problems:
            reader._warn(name, reason)

        raw_collections = self._projector.raw_collections(raw)

        evaluation = self._flags.evaluate(fields, raw_collections)
        flags = evaluation.flags
        for err in evaluation.errors:
            warnings.append(
                DataWarning(
                    code="flag_defaulted",
                    message=f"Flag {err.flag_name} defaulted to false",
                    context={"flag": err.flag_name, "reason": err.reason},
                )
            )

        passports = map_collection("PassportDetails", raw_collections.get("PassportDetails"), self._items.passport)
        citizenships = map_collection("Citizenships", raw_collections.get("Citizenships"), self._items.citizenship)
        if flags.get(F.HAS_REGULATORY_HISTORY):
            history = map_collection(
                "RegulatoryHistory", raw_collections.get("RegulatoryHistory"), self._items.regulatory_history
            )
        else:
            history = map_collection("RegulatoryHistory", None, self._items.regulatory_history)
        for mapped in (passports, citizenships, history):
            warnings.extend(mapped.warnings)

        sections = self._compose_sections(reader, flags, warnings)

        document = CanonicalDocument(
            scalar_sections=sections,
            flags=flags,
            collections=Collections(
                passport_details=passports.items,
                citizenships=citizenships.items,
                regulatory_history=history.items,
            ),
            template_version=self._template_version,
        )

        logger.info(
            "DTO mapping completed: record=%s passports=%d citizenships=%d regulatory=%d warnings=%d",
            document.scalar_sections.application.record_id,
            len(passports.items),
            len(citizenships.items),
            len(history.items),
            len(warnings),
        )
        return AssemblyResult(document=document, warnings=warnings)

    # -----------------------------
    # Sections
    # -----------------------------
    def _compose_sections(
        self, r: _FieldReader, flags: FlagSet, warnings: List[DataWarning]
    ) -> ScalarSections:
        rep_office = flags[F.REPRESENTATIVE_OFFICE]

        application = Application(
            record_id=r.text("record_id"),
            firm_name=r.text("firm_name"),
            firm_number=r.text("firm_number"),
            requestor=Requestor(
                name=r.text("requestor_name"),
                position=r.text("requestor_position"),
                email=r.text("requestor_email"),
                phone=r.text("requestor_phone"),
            ),
            candidate_name=r.text("candidate_name"),
            rep_office_functions=r.label("rep_office_functions", "rep_office_functions") if rep_office else None,
        )

        contact = Contact(
            address=r.text("address"),
            postcode=r.text("postcode"),
            country=r.label("country", "country"),
            mobile=r.text("mobile"),
            email=r.text("contact_email"),
            residence_duration=r.label("residence_duration", "residence_duration"),
        )

        previous_address = None
        if flags[F.RESIDENCE_UNDER_THREE_YEARS]:
            previous_address = PreviousAddress(
                address=r.text("previous_address"),
                postcode=r.text("previous_postcode"),
                country=r.label("country", "previous_country"),
            )
            if previous_address.is_blank():
                warnings.append(
                    DataWarning(
                        code="previous_address_missing",
                        message="Residence is under three years but no previous address was provided",
                        context={"flag": F.RESIDENCE_UNDER_THREE_YEARS},
                    )
                )

        other_names = None
        if flags[F.USED_OTHER_NAMES]:
            other_names = OtherNames(
                state_other_names=r.text("other_names"),
                native_name=r.text("native_name"),
                date_changed=r.date("name_changed_on"),
                reason=r.text("name_change_reason"),
            )

        licensed_functions = None if rep_office else self._licensed_functions(r, flags)

        has_start = flags[F.HAS_PROPOSED_START_DATE]
        position = Position(
            proposed_job_title=r.text("proposed_job_title"),
            has_proposed_start_date=has_start,
            proposed_start_date=r.date("proposed_start_date") if has_start else None,
            start_date_explanation=None if has_start else r.text("start_date_explanation"),
            will_be_mlro=r.flag("will_be_principal_rep_mlro"),
        )

        cross_reference = None
        if flags[F.PREVIOUSLY_HELD_ROLE]:
            cross_reference = CrossReference(
                previous_candidate_ref=r.text("previous_candidate_ref"),
                applying_as_mlro=r.flag("applying_as_mlro"),
            )

        return ScalarSections(
            guidelines=Guidelines(confirm_read=r.label("guidelines_confirm", "guidelines_confirm")),
            disclosure=Disclosure(consent_to_disclosure=r.flag("consent_to_disclosure")),
            application=application,
            contact=contact,
            position=position,
            previous_address=previous_address,
            other_names=other_names,
            licensed_functions=licensed_functions,
            cross_reference=cross_reference,
        )

    def _licensed_functions(self, r: _FieldReader, flags: FlagSet) -> LicensedFunctions:
        choice = r.code("licensed_function")
        selected = flags[F.LICENSED_FUNCTION_SELECTED] and choice is not None
        is_responsible_officer = selected and choice == self._tables.codes["responsible_officer"]

        return LicensedFunctions(
            choice=r.label("licensed_function_key", "licensed_function"),
            choice_label=r.label("licensed_function", "licensed_function"),
            show_mandatory_functions_question=selected and not is_responsible_officer,
            senior_executive_officer=r.flag("mf_senior_executive_officer"),
            finance_officer=r.flag("mf_finance_officer"),
            compliance_officer=r.flag("mf_compliance_officer"),
            mlro=r.flag("mf_mlro"),
            no_mandatory_function=r.flag("mf_none"),
            show_responsible_officer_confirmations=is_responsible_officer,
            ro_confirmation_1=r.text("ro_confirmation_1"),
            ro_confirmation_2=r.text("ro_confirmation_2"),
            ro_confirmation_3=r.text("ro_confirmation_3"),
            executive_type=r.label("executive_type", "executive_type"),
        )


def assemble(raw: Mapping[str, Any]) -> AssemblyResult:
    """Module-level convenience with the default tables."""
    return CanonicalAssembler().assemble(raw)
