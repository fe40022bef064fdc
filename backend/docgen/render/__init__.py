"""
Render - canonical document -> XLSX bytes via a row-directive template.
"""

from .default_template import AUTHORISED_INDIVIDUAL, build_authorised_individual_workbook
from .xlsx_template import (
    XLSX_CONTENT_TYPE,
    TemplateHandle,
    XlsxTemplateRenderer,
    load_template,
)

__all__ = [
    "AUTHORISED_INDIVIDUAL",
    "XLSX_CONTENT_TYPE",
    "TemplateHandle",
    "XlsxTemplateRenderer",
    "build_authorised_individual_workbook",
    "load_template",
]
