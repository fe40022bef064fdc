from .factory import build_converter
from .graph import GraphConverter
from .libreoffice import (
    PDF_CONTENT_TYPE,
    DisabledConverter,
    LibreOfficeConverter,
    validate_pdf,
)

__all__ = [
    "PDF_CONTENT_TYPE",
    "DisabledConverter",
    "GraphConverter",
    "LibreOfficeConverter",
    "build_converter",
    "validate_pdf",
]
