"""
Source readers - PDF text extraction (PyMuPDF) and CSV/XLSX row reading (pandas).
"""

import io
import os
from dataclasses import dataclass, field
from typing import Dict, List, Optional

import fitz
import pandas as pd

from app.config import logger
from app.errors import ParseError, ValidationError

PDF_MIME_TYPES = ("application/pdf",)
SPREADSHEET_MIME_TYPES = (
    "text/csv",
    "application/csv",
    "application/vnd.ms-excel",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
)

NO_TEXT_MESSAGE = (
    "No text could be extracted from PDF. The PDF may be image-based (scanned) or corrupted. "
    "Please try OCR preprocessing."
)


@dataclass
class PdfText:
    """Concatenated text of every page plus the per-page texts."""
    text: str
    page_texts: List[str] = field(default_factory=list)

    @property
    def page_count(self) -> int:
        return len(self.page_texts)


def read_pdf_text(pdf_bytes: bytes, label: str = "PDF") -> PdfText:
    """
    Extract the text layer of every page, in page order.

    Raises ParseError when the file cannot be opened or no page yields text.
    """
    try:
        doc = fitz.open(stream=pdf_bytes, filetype="pdf")
    except Exception as e:
        logger.error(f"Failed to open {label}: {e}")
        raise ParseError(f"Failed to read {label}. The file appears to be corrupted or is not a PDF.") from e

    try:
        if doc.needs_pass:
            raise ParseError(f"{label} is password protected. Please upload an unlocked file.")
        page_texts = [page.get_text("text") for page in doc]
    except ParseError:
        raise
    except Exception as e:
        logger.error(f"Failed to extract text from {label}: {e}")
        raise ParseError(f"Failed to read {label}. The file appears to be corrupted or is not a PDF.") from e
    finally:
        doc.close()

    text = "\n".join(page_texts)
    if not text.strip():
        raise ParseError(NO_TEXT_MESSAGE)

    logger.info(f"Extracted {len(text)} chars of text from {label} ({len(page_texts)} pages)")
    return PdfText(text=text, page_texts=page_texts)


def detect_spreadsheet_format(data: bytes, content_type: Optional[str], filename: Optional[str]) -> str:
    """Return "csv" or "xlsx". Browsers often label CSV files as application/vnd.ms-excel."""
    if data[:4] == b"PK\x03\x04":
        return "xlsx"
    if data[:4] == b"\xd0\xcf\x11\xe0":
        raise ParseError("Legacy .xls workbooks are not supported. Please save the file as .xlsx or CSV.")

    ext = os.path.splitext(filename or "")[1].lower()
    if ext == ".xlsx":
        # extension says workbook but the zip header is missing
        raise ParseError("Failed to parse file. The Excel workbook appears to be corrupted.")
    if ext == ".csv" or content_type in ("text/csv", "application/csv", "application/vnd.ms-excel"):
        return "csv"
    raise ValidationError("File must be CSV or Excel format")


def read_spreadsheet_rows(
    data: bytes,
    content_type: Optional[str] = None,
    filename: Optional[str] = None,
) -> List[Dict[str, str]]:
    """
    Read the first sheet as a list of {header: raw cell string}.

    Cells are kept as strings; blank rows are skipped.
    """
    file_format = detect_spreadsheet_format(data, content_type, filename)

    try:
        if file_format == "csv":
            df = pd.read_csv(
                io.BytesIO(data),
                dtype=str,
                keep_default_na=False,
                skip_blank_lines=True,
                encoding="utf-8-sig",
            )
        else:
            df = pd.read_excel(
                io.BytesIO(data),
                sheet_name=0,
                dtype=str,
                keep_default_na=False,
                engine="openpyxl",
            )
    except pd.errors.EmptyDataError:
        raise ValidationError("No data found in file")
    except Exception as e:
        logger.error(f"Spreadsheet parse error ({file_format}): {e}")
        raise ParseError("Failed to parse file. Please check the format.") from e

    rows = []
    for record in df.to_dict(orient="records"):
        row = {str(k).strip(): ("" if v is None else str(v)) for k, v in record.items()}
        if any(value.strip() for value in row.values()):
            rows.append(row)

    logger.info(f"Read {len(rows)} rows from {file_format.upper()} file {filename or ''}".rstrip())
    return rows
