"""
Spreadsheet extraction - maps CSV/XLSX rows onto ParsedQuestion rows via the
column alias table.
"""

import re
from typing import Dict, List, Mapping, Optional, Sequence, Tuple

from app.config import logger
from app.services.catalog import DEFAULT_CATALOG, ImportCatalog, OPTION_FIELDS
from app.services.normalizer import NormalizationProfile, OPTION_COUNT, parse_int_prefix

_ZERO_BASED_RE = re.compile(r"^[0-3]$")
_LETTER_RE = re.compile(r"^[A-D]$", re.IGNORECASE)

SPREADSHEET_PROFILE = NormalizationProfile(name="spreadsheet", default_marks=1)


def lookup(row: Mapping[str, str], aliases: Sequence[str]) -> Optional[str]:
    """First non-blank cell whose header matches one of the aliases (case-insensitive)."""
    by_header = {str(k).strip().lower(): v for k, v in row.items()}
    for alias in aliases:
        value = by_header.get(alias.lower())
        if value is not None and str(value).strip():
            return str(value).strip()
    return None


def parse_correct_answer(value: Optional[str]) -> Optional[int]:
    if not value:
        return None
    if _ZERO_BASED_RE.match(value):
        return int(value)
    if _LETTER_RE.match(value):
        return ord(value.upper()) - ord("A")
    return None


def transform_row(row: Mapping[str, str], profile: NormalizationProfile = SPREADSHEET_PROFILE,
                  catalog: ImportCatalog = DEFAULT_CATALOG, row_number: int = 1) -> dict:
    aliases = catalog.column_aliases

    def field(name: str) -> Optional[str]:
        return lookup(row, aliases.get(name, ()))

    errors: List[str] = []
    text_mr = field("question_text_mr") or ""
    text_en = field("question_text_en")
    if not text_mr:
        errors.append("Missing question text (Marathi)")
        text_mr = text_en or ""

    options = [value for value in (field(name) for name in OPTION_FIELDS) if value]
    if len(options) < OPTION_COUNT:
        errors.append(f"Expected {OPTION_COUNT} options, found {len(options)}")
    options = options + [""] * (OPTION_COUNT - len(options))

    raw_answer = field("correct_answer")
    correct_answer = parse_correct_answer(raw_answer)
    if raw_answer and correct_answer is None:
        errors.append(f"Unrecognized correct answer: {raw_answer}")

    marks = parse_int_prefix(field("marks"))
    if marks is None or marks <= 0:
        marks = profile.default_marks

    return {
        "questionNumber": row_number,
        "questionTextMr": text_mr,
        "questionTextEn": text_en,
        "options": options,
        "correctAnswer": correct_answer,
        "questionType": field("question_type"),
        "difficulty": field("difficulty"),
        "marks": marks,
        "section": field("section"),
        "classLevel": field("class_level"),
        "explanation": field("explanation"),
        "parsingErrors": errors,
    }


def transform_rows(rows: List[Dict[str, str]], profile: NormalizationProfile = SPREADSHEET_PROFILE,
                   catalog: ImportCatalog = DEFAULT_CATALOG) -> Tuple[List[dict], int]:
    """
    Map spreadsheet rows to question rows, numbered by position among the kept rows.

    Returns (rows, dropped_count); rows without question text in either
    language are dropped. English-only rows carry the English text as
    questionTextMr together with a parsing error.
    """
    transformed = []
    dropped = 0
    for row in rows:
        candidate = transform_row(row, profile, catalog, row_number=len(transformed) + 1)
        if not candidate["questionTextMr"]:
            dropped += 1
            continue
        transformed.append(candidate)

    if dropped:
        logger.info(f"Spreadsheet import dropped {dropped} rows without question text")
    return transformed, dropped
