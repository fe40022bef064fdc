"""
Built-in Authorised Individual layout.

Produces the XLSX template used when TEMPLATES_PATH holds no file for the
document type. scripts/build_template.py writes it to disk for hand editing.
"""

from __future__ import annotations

from io import BytesIO
from typing import Callable, Dict, List, Sequence, Tuple

from openpyxl import Workbook
from openpyxl.worksheet.worksheet import Worksheet

from .styles import (
    COLUMN_WIDTHS,
    FILL_SECTION,
    FILL_TABLE_HEADER,
    FILL_TITLE,
    LAST_COLUMN,
    apply_column_widths,
    apply_thin_grid,
    set_cell,
)

AUTHORISED_INDIVIDUAL = "AuthorisedIndividual"

Field = Tuple[str, str]


class _SheetWriter:
    def __init__(self, ws: Worksheet) -> None:
        self.ws = ws
        self.row = 1

    def _next(self) -> int:
        r = self.row
        self.row += 1
        return r

    def title(self, text: str) -> None:
        r = self._next()
        set_cell(self.ws, f"A{r}", text, bold=True, size=14, fill=FILL_TITLE, color="FFFFFFFF", wrap=False)
        self.ws.merge_cells(f"A{r}:{LAST_COLUMN}{r}")
        self.ws.row_dimensions[r].height = 24

    def section(self, text: str, guard: str = "") -> None:
        r = self._next()
        set_cell(self.ws, f"A{r}", f"{guard}{text}", bold=True, size=11, fill=FILL_SECTION)
        self.ws.merge_cells(f"A{r}:{LAST_COLUMN}{r}")
        apply_thin_grid(self.ws, f"A{r}", f"{LAST_COLUMN}{r}")

    def field(self, label: str, path: str, guard: str = "") -> None:
        r = self._next()
        set_cell(self.ws, f"A{r}", f"{guard}{label}")
        set_cell(self.ws, f"B{r}", f"{{{{ {path} }}}}")
        self.ws.merge_cells(f"B{r}:{LAST_COLUMN}{r}")
        apply_thin_grid(self.ws, f"A{r}", f"{LAST_COLUMN}{r}")

    def table_header(self, headers: Sequence[str], guard: str = "") -> None:
        r = self._next()
        for i, text in enumerate(headers):
            col = "ABCD"[i]
            set_cell(self.ws, f"{col}{r}", f"{guard}{text}" if i == 0 else text, bold=True, fill=FILL_TABLE_HEADER)
        apply_thin_grid(self.ws, f"A{r}", f"{LAST_COLUMN}{r}")

    def table_row(self, each: str, item_fields: Sequence[str]) -> None:
        r = self._next()
        for i, name in enumerate(item_fields):
            col = "ABCD"[i]
            prefix = f"{{{{#each {each}}}}}" if i == 0 else ""
            set_cell(self.ws, f"{col}{r}", f"{prefix}{{{{ .{name} }}}}")
        apply_thin_grid(self.ws, f"A{r}", f"{LAST_COLUMN}{r}")

    def open_block(self, kind: str, path: str) -> None:
        self.ws[f"A{self._next()}"] = f"{{{{#{kind} {path}}}}}"

    def close_block(self, kind: str) -> None:
        self.ws[f"A{self._next()}"] = f"{{{{/{kind}}}}}"

    def spacer(self) -> None:
        self._next()


def _if(path: str) -> str:
    return f"{{{{#if {path}}}}}"


def _unless(path: str) -> str:
    return f"{{{{#unless {path}}}}}"


_SCALAR_SECTIONS: List[Tuple[str, List[Field]]] = [
    ("Guidelines", [
        ("Confirmation that the DFSA guidelines have been read", "Sections.Guidelines.ConfirmRead"),
    ]),
    ("Disclosure", [
        ("Consent to disclosure of information", "Sections.Disclosure.ConsentToDisclosure"),
    ]),
    ("Application details", [
        ("Firm name", "Sections.Application.FirmName"),
        ("DFSA firm reference number", "Sections.Application.FirmNumber"),
        ("Requestor name", "Sections.Application.Requestor.Name"),
        ("Requestor position", "Sections.Application.Requestor.Position"),
        ("Requestor email", "Sections.Application.Requestor.Email"),
        ("Requestor phone", "Sections.Application.Requestor.Phone"),
        ("Candidate name", "Sections.Application.CandidateName"),
        ("Applying on behalf of a Representative Office", "Flags.RepresentativeOffice"),
    ]),
]

_CONTACT: List[Field] = [
    ("Residential address", "Sections.Contact.Address"),
    ("Postcode / P.O. Box", "Sections.Contact.Postcode"),
    ("Country", "Sections.Contact.Country"),
    ("Mobile number", "Sections.Contact.Mobile"),
    ("Email address", "Sections.Contact.Email"),
    ("Time resided at the above address", "Sections.Contact.ResidenceDuration"),
]

_PREVIOUS_ADDRESS: List[Field] = [
    ("Previous residential address", "Sections.PreviousAddress.Address"),
    ("Postcode / P.O. Box", "Sections.PreviousAddress.Postcode"),
    ("Country", "Sections.PreviousAddress.Country"),
]

_OTHER_NAMES: List[Field] = [
    ("Other names used", "Sections.OtherNames.StateOtherNames"),
    ("Name in native language", "Sections.OtherNames.NativeName"),
    ("Date of name change", "Sections.OtherNames.DateChanged"),
    ("Reason for name change", "Sections.OtherNames.Reason"),
]

_PASSPORT: List[Field] = [
    ("Title", ".Title"),
    ("Full name as it appears in the passport", ".FullName"),
    ("Date of birth", ".DateOfBirth"),
    ("Place of birth", ".PlaceOfBirth"),
    ("UAE resident", ".UaeResident"),
    ("Number of citizenships", ".NumberOfCitizenships"),
]

_MANDATORY_FUNCTIONS: List[Field] = [
    ("Senior Executive Officer", "Sections.LicensedFunctions.SeniorExecutiveOfficer"),
    ("Finance Officer", "Sections.LicensedFunctions.FinanceOfficer"),
    ("Compliance Officer", "Sections.LicensedFunctions.ComplianceOfficer"),
    ("Money Laundering Reporting Officer", "Sections.LicensedFunctions.Mlro"),
    ("None of the above", "Sections.LicensedFunctions.NoMandatoryFunction"),
]

_RO_CONFIRMATIONS: List[Field] = [
    ("Responsible Officer confirmation 1", "Sections.LicensedFunctions.RoConfirmation1"),
    ("Responsible Officer confirmation 2", "Sections.LicensedFunctions.RoConfirmation2"),
    ("Responsible Officer confirmation 3", "Sections.LicensedFunctions.RoConfirmation3"),
]

_REGULATORY_ENTRY: List[Field] = [
    ("Regulator", ".Regulator"),
    ("Licence / authorisation held", ".LicenceName"),
    ("Name on the register", ".RegisterName"),
    ("Date started", ".DateStarted"),
    ("Date finished", ".DateFinished"),
    ("Overview of the role", ".Overview"),
]


def _write_authorised_individual(ws: Worksheet) -> None:
    w = _SheetWriter(ws)

    w.title("DFSA Authorised Individual Application")
    w.field("Application ID", "Sections.Application.RecordId")
    w.field("Template version", "TemplateVersion")
    w.spacer()

    for title, fields in _SCALAR_SECTIONS:
        w.section(title)
        for label, path in fields:
            w.field(label, path)
    w.field(
        "Representative Office functions",
        "Sections.Application.RepOfficeFunctions",
        guard=_if("Flags.RepresentativeOffice"),
    )
    w.spacer()

    # Q12 passport details, one block per passport
    w.section("Candidate passport details", _if("Collections.PassportDetails"))
    w.open_block("each", "Collections.PassportDetails")
    for label, path in _PASSPORT:
        w.field(label, path)
    w.field("Other names", ".OtherNames", guard=_if(".OtherNames"))
    w.field("Name in native language", ".NativeName", guard=_if(".NativeName"))
    w.close_block("each")

    # Q13 citizenships table
    w.section("Citizenships", _if("Collections.Citizenships"))
    w.table_header(["Country / territory", "Passport number", "Expiry date"], _if("Collections.Citizenships"))
    w.table_row("Collections.Citizenships", ["Country", "PassportNo", "ExpiryDate"])
    w.spacer()

    w.section("Contact details")
    for label, path in _CONTACT:
        w.field(label, path)

    w.open_block("if", "Sections.PreviousAddress")
    w.section("Previous address")
    for label, path in _PREVIOUS_ADDRESS:
        w.field(label, path)
    w.close_block("if")

    w.open_block("if", "Sections.OtherNames")
    w.section("Other names")
    for label, path in _OTHER_NAMES:
        w.field(label, path)
    w.close_block("if")
    w.spacer()

    w.open_block("if", "Sections.LicensedFunctions")
    w.section("Licensed functions")
    w.field("Licensed function applied for", "Sections.LicensedFunctions.ChoiceLabel")
    for label, path in _MANDATORY_FUNCTIONS:
        w.field(label, path, guard=_if("Sections.LicensedFunctions.ShowMandatoryFunctionsQuestion"))
    for label, path in _RO_CONFIRMATIONS:
        w.field(label, path, guard=_if("Sections.LicensedFunctions.ShowResponsibleOfficerConfirmations"))
    w.field("Executive type", "Sections.LicensedFunctions.ExecutiveType")
    w.close_block("if")

    w.section("Position")
    w.field("Proposed job title", "Sections.Position.ProposedJobTitle")
    w.field("Proposed start date known", "Flags.HasProposedStartDate")
    w.field("Proposed start date", "Sections.Position.ProposedStartDate", guard=_if("Flags.HasProposedStartDate"))
    w.field(
        "Explanation for no proposed start date",
        "Sections.Position.StartDateExplanation",
        guard=_unless("Flags.HasProposedStartDate"),
    )
    w.field("Will be the principal Representative MLRO", "Sections.Position.WillBeMlro")
    w.spacer()

    # Q28 regulatory history
    w.section("Regulatory history", _if("Collections.RegulatoryHistory"))
    w.open_block("each", "Collections.RegulatoryHistory")
    for label, path in _REGULATORY_ENTRY:
        w.field(label, path)
    w.field("Other regulator details", ".OtherRegulatorDetails", guard=_if(".IsOtherRegulator"))
    w.spacer()
    w.close_block("each")

    w.open_block("if", "Sections.CrossReference")
    w.section("Previously held role")
    w.field("Previous candidate reference", "Sections.CrossReference.PreviousCandidateRef")
    w.field("Applying as MLRO", "Sections.CrossReference.ApplyingAsMlro")
    w.close_block("if")

    apply_column_widths(ws, COLUMN_WIDTHS)


def build_authorised_individual_workbook() -> Workbook:
    wb = Workbook()
    ws = wb.active
    ws.title = "Authorised Individual"
    _write_authorised_individual(ws)
    return wb


def authorised_individual_template_bytes() -> bytes:
    buf = BytesIO()
    build_authorised_individual_workbook().save(buf)
    return buf.getvalue()


BUILTIN_TEMPLATES: Dict[str, Callable[[], bytes]] = {
    AUTHORISED_INDIVIDUAL: authorised_individual_template_bytes,
}
