"""
Tests for CanonicalAssembler.
"""

import pytest

from builders import (
    RECORD_ID,
    RESIDENCE_UNDER_THREE_YEARS,
    RESPONSIBLE_OFFICER,
    citizenship,
    licence,
    make_record,
    raw_key,
)
from docgen.core.errors import AssemblyError
from docgen.mapping import flags as F
from docgen.mapping.assembler import CanonicalAssembler


class TestCanonicalAssembler:
    """Test suite for CanonicalAssembler."""

    @pytest.fixture
    def assembler(self):
        return CanonicalAssembler(template_version="2.1")

    def test_clean_record_has_no_warnings(self, assembler, raw_record):
        result = assembler.assemble(raw_record)

        assert result.warnings == []
        doc = result.document
        assert doc.template_version == "2.1"
        assert doc.scalar_sections.application.record_id == RECORD_ID
        assert doc.scalar_sections.application.firm_name == "Example Capital Ltd"
        assert doc.scalar_sections.contact.country == "United Arab Emirates"
        assert doc.scalar_sections.guidelines.confirm_read == "I confirm"
        assert len(doc.collections.passport_details) == 1
        assert len(doc.collections.citizenships) == 1
        assert len(doc.collections.regulatory_history) == 1

    def test_assembly_is_idempotent(self, assembler, raw_record):
        first = assembler.assemble(raw_record)
        second = assembler.assemble(raw_record)

        assert first.document.model_dump() == second.document.model_dump()
        assert first.warnings == second.warnings

    def test_malformed_record_raises_assembly_error(self, assembler):
        with pytest.raises(AssemblyError):
            assembler.assemble(["not", "a", "record"])

    def test_nested_scalar_is_absorbed_as_field_warning(self, assembler):
        record = make_record()
        record[raw_key("mobile")] = ["+971500000000"]

        result = assembler.assemble(record)

        assert result.document.scalar_sections.contact.mobile == ""
        assert result.document.scalar_sections.contact.email == "jane@example.com"
        assert [(w.code, w.context) for w in result.warnings] == [
            ("field_unreadable", {"field": "mobile"})
        ]

    def test_representative_office_removes_licensed_functions(self, assembler):
        record = make_record(
            applying_for_rep_office=True,
            rep_office_functions=356960001,
            licensed_function=RESPONSIBLE_OFFICER,
            mf_mlro=True,
        )
        sections = assembler.assemble(record).document.scalar_sections

        assert sections.licensed_functions is None
        assert sections.application.rep_office_functions == "Money Laundering Reporting Officer (MLRO)"

    def test_no_representative_office_keeps_licensed_functions(self, assembler, raw_record):
        sections = assembler.assemble(raw_record).document.scalar_sections

        assert sections.application.rep_office_functions is None
        lf = sections.licensed_functions
        assert lf is not None
        assert lf.choice == "LicensedDirector"
        assert lf.choice_label == "Licensed Director"
        assert lf.show_mandatory_functions_question is True
        assert lf.show_responsible_officer_confirmations is False
        assert lf.senior_executive_officer is True
        assert lf.executive_type == "Executive"

    def test_responsible_officer_shows_confirmations(self, assembler):
        record = make_record(licensed_function=RESPONSIBLE_OFFICER, ro_confirmation_1="Yes")
        lf = assembler.assemble(record).document.scalar_sections.licensed_functions

        assert lf.show_responsible_officer_confirmations is True
        assert lf.show_mandatory_functions_question is False
        assert lf.ro_confirmation_1 == "Yes"

    def test_no_licensed_function_selected(self, assembler):
        lf = assembler.assemble(make_record(licensed_function=None)).document.scalar_sections.licensed_functions

        assert lf.choice == ""
        assert lf.show_mandatory_functions_question is False
        assert lf.show_responsible_officer_confirmations is False

    def test_no_proposed_start_date_populates_explanation(self, assembler):
        record = make_record(
            has_proposed_start_date=False,
            proposed_start_date="2026-01-15",
            start_date_explanation="Awaiting visa",
        )
        position = assembler.assemble(record).document.scalar_sections.position

        assert position.proposed_start_date is None
        assert position.start_date_explanation == "Awaiting visa"

    def test_missing_explanation_is_empty_string(self, assembler):
        position = assembler.assemble(make_record(has_proposed_start_date=False)).document.scalar_sections.position

        assert position.proposed_start_date is None
        assert position.start_date_explanation == ""

    def test_proposed_start_date_clears_explanation(self, assembler):
        record = make_record(start_date_explanation="not shown")
        position = assembler.assemble(record).document.scalar_sections.position

        assert position.proposed_start_date == "2026-01-15"
        assert position.start_date_explanation is None

    def test_previous_address_gated_by_residence(self, assembler):
        record = make_record(
            residence_duration=RESIDENCE_UNDER_THREE_YEARS,
            previous_address="12 High Street",
            previous_country=356960240,
        )
        result = assembler.assemble(record)
        previous = result.document.scalar_sections.previous_address

        assert previous.address == "12 High Street"
        assert previous.country == "United Kingdom"
        assert result.warnings == []

        assert assembler.assemble(make_record(previous_address="ignored")).document.scalar_sections.previous_address is None

    def test_previous_address_missing_is_a_warning(self, assembler):
        result = assembler.assemble(make_record(residence_duration=RESIDENCE_UNDER_THREE_YEARS))

        assert result.document.scalar_sections.previous_address is not None
        assert [w.code for w in result.warnings] == ["previous_address_missing"]

    def test_other_names_and_cross_reference_gates(self, assembler):
        record = make_record(
            used_other_names=True,
            other_names="Jane Smith",
            name_changed_on="2010-05-01",
            previously_held_role=True,
            previous_candidate_ref="a1b2",
            applying_as_mlro=True,
        )
        sections = assembler.assemble(record).document.scalar_sections

        assert sections.other_names.state_other_names == "Jane Smith"
        assert sections.other_names.date_changed == "2010-05-01"
        assert sections.cross_reference.previous_candidate_ref == "a1b2"
        assert sections.cross_reference.applying_as_mlro is True

        closed = assembler.assemble(make_record(other_names="x")).document.scalar_sections
        assert closed.other_names is None
        assert closed.cross_reference is None

    def test_regulatory_history_empty_when_flag_false(self, assembler):
        doc = assembler.assemble(make_record(regulatory=[])).document

        assert doc.flags[F.HAS_REGULATORY_HISTORY] is False
        assert doc.collections.regulatory_history == []

    def test_item_problems_are_warnings(self, assembler):
        record = make_record(
            citizenships=[citizenship(), citizenship(cr5f7_expirydate1="31/01/2031")],
            regulatory=[licence(), "broken"],
        )
        result = assembler.assemble(record)

        assert len(result.document.collections.citizenships) == 1
        assert len(result.document.collections.regulatory_history) == 1
        assert [w.code for w in result.warnings] == ["collection_item_dropped", "collection_item_dropped"]

    def test_flag_error_becomes_warning(self, assembler):
        result = assembler.assemble(make_record(used_other_names="Yes", other_names="x"))

        assert result.document.flags[F.USED_OTHER_NAMES] is False
        assert result.document.scalar_sections.other_names is None
        assert [w.code for w in result.warnings] == ["flag_defaulted"]

    def test_unreadable_field_becomes_warning(self, assembler):
        result = assembler.assemble(make_record(firm_name=True))

        assert result.document.scalar_sections.application.firm_name == ""
        assert [w.code for w in result.warnings] == ["field_unreadable"]

    def test_template_data_uses_template_names(self, assembler, raw_record):
        data = assembler.assemble(raw_record).document.template_data()

        assert set(data) == {"Flags", "Sections", "Collections", "TemplateVersion"}
        assert data["Sections"]["Application"]["Requestor"]["Email"] == "requestor@example.com"
        assert data["Sections"]["LicensedFunctions"]["RoConfirmation1"] == ""
        assert data["Sections"]["PreviousAddress"] is None
        assert data["Collections"]["Citizenships"][0]["PassportNo"] == "P1234567"
        assert data["Flags"][F.REPRESENTATIVE_OFFICE] is False
        assert data["TemplateVersion"] == "2.1"
