from __future__ import annotations

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_pascal


class CanonicalModel(BaseModel):
    """
    Base for renderer-facing models.

    Python attributes are snake_case; the template sees PascalCase aliases
    (Sections.Application.FirmName).
    """

    model_config = ConfigDict(
        extra="forbid",
        alias_generator=to_pascal,
        populate_by_name=True,
    )


class DataWarning(BaseModel):
    """Absorbed field- or item-level problem attached to a result."""

    model_config = ConfigDict(extra="forbid")

    code: str
    message: str
    context: Dict[str, Any] = Field(default_factory=dict)


# ----------------------------
# Repeating collection items
# ----------------------------

class PassportDetail(CanonicalModel):
    title: str = ""
    full_name: str
    date_of_birth: Optional[str] = None
    place_of_birth: str = ""
    uae_resident: bool = False
    number_of_citizenships: str = "N/A"
    other_names: str = ""
    native_name: str = ""


class Citizenship(CanonicalModel):
    country: str
    passport_no: str = ""
    expiry_date: Optional[str] = None


class RegulatoryHistoryEntry(CanonicalModel):
    regulator: str = ""
    date_started: Optional[str] = None
    date_finished: Optional[str] = None
    licence_name: str = ""
    register_name: str = ""
    overview: str = ""
    is_other_regulator: bool = False
    other_regulator_details: Optional[str] = None


# ----------------------------
# Scalar sections
# ----------------------------

class Guidelines(CanonicalModel):
    confirm_read: str = ""


class Disclosure(CanonicalModel):
    consent_to_disclosure: bool = False


class Requestor(CanonicalModel):
    name: str = ""
    position: str = ""
    email: str = ""
    phone: str = ""


class Application(CanonicalModel):
    record_id: str = ""
    firm_name: str = ""
    firm_number: str = ""
    requestor: Requestor = Field(default_factory=Requestor)
    candidate_name: str = ""
    # gated by RepresentativeOffice
    rep_office_functions: Optional[str] = None


class Contact(CanonicalModel):
    address: str = ""
    postcode: str = ""
    country: str = ""
    mobile: str = ""
    email: str = ""
    residence_duration: str = ""


class PreviousAddress(CanonicalModel):
    address: str = ""
    postcode: str = ""
    country: str = ""

    def is_blank(self) -> bool:
        return not (self.address or self.postcode or self.country)


class OtherNames(CanonicalModel):
    state_other_names: str = ""
    native_name: str = ""
    date_changed: Optional[str] = None
    reason: str = ""


class LicensedFunctions(CanonicalModel):
    choice: str = ""
    choice_label: str = ""
    show_mandatory_functions_question: bool = False
    senior_executive_officer: bool = False
    finance_officer: bool = False
    compliance_officer: bool = False
    mlro: bool = False
    no_mandatory_function: bool = False
    show_responsible_officer_confirmations: bool = False
    ro_confirmation_1: str = ""
    ro_confirmation_2: str = ""
    ro_confirmation_3: str = ""
    executive_type: str = ""


class Position(CanonicalModel):
    proposed_job_title: str = ""
    has_proposed_start_date: bool = False
    proposed_start_date: Optional[str] = None
    start_date_explanation: Optional[str] = None
    will_be_mlro: bool = False


class CrossReference(CanonicalModel):
    previous_candidate_ref: str = ""
    applying_as_mlro: bool = False


class ScalarSections(CanonicalModel):
    guidelines: Guidelines = Field(default_factory=Guidelines)
    disclosure: Disclosure = Field(default_factory=Disclosure)
    application: Application = Field(default_factory=Application)
    contact: Contact = Field(default_factory=Contact)
    position: Position = Field(default_factory=Position)

    # Optional groups: each present iff its gate flag says so.
    previous_address: Optional[PreviousAddress] = None
    other_names: Optional[OtherNames] = None
    licensed_functions: Optional[LicensedFunctions] = None
    cross_reference: Optional[CrossReference] = None


class Collections(CanonicalModel):
    passport_details: List[PassportDetail] = Field(default_factory=list)
    citizenships: List[Citizenship] = Field(default_factory=list)
    regulatory_history: List[RegulatoryHistoryEntry] = Field(default_factory=list)


class CanonicalDocument(CanonicalModel):
    scalar_sections: ScalarSections
    flags: Dict[str, bool]
    collections: Collections
    template_version: str = "1.0"

    def template_data(self) -> Dict[str, Any]:
        """Renderer-facing view: Flags / Sections / Collections / TemplateVersion."""
        return {
            "Flags": dict(self.flags),
            "Sections": self.scalar_sections.model_dump(by_alias=True),
            "Collections": self.collections.model_dump(by_alias=True),
            "TemplateVersion": self.template_version,
        }
