"""
Legacy rule-based PDF question parser (no AI).

Segments extracted PDF text on numbered-question lines ("12." / "12)") and
labelled option lines ("A." / "B)" / "क)" / "(1)"). Lower recall than AI
extraction; it never raises on partial matches, text it cannot segment is
simply skipped.
"""

import re
from typing import Dict, List, Optional

from app.config import logger
from app.services.normalizer import MARATHI_OPTION_LETTERS

QUESTION_LINE_RE = re.compile(r"^(?:Q\.?\s*)?(\d{1,3})[.)]\s*(.+)$", re.IGNORECASE)
OPTION_LINE_RE = re.compile(r"^(?:\(([A-Da-d]|[कखगघ1-4])\)|([A-D]|[कखगघ])[.)])\s*(.*)$")

ANSWER_KEY_PATTERNS = (
    re.compile(r"(\d+)\s*[.)\-:]\s*\(?([A-D]|[कखगघ])\)?(?![A-Za-z\u0900-\u097F])", re.IGNORECASE),
    re.compile(r"Q\.?\s*(\d+)[:\s]+\(?([A-D]|[कखगघ])\)?(?![A-Za-z\u0900-\u097F])", re.IGNORECASE),
    re.compile(r"(\d+)\s*[.)\-:]\s*\(([1-4])\)"),
)


def _option_index(label: str) -> int:
    if label in MARATHI_OPTION_LETTERS:
        return MARATHI_OPTION_LETTERS.index(label)
    if label.isdigit():
        return int(label) - 1
    return ord(label.upper()) - ord("A")


def parse_questions_from_text(text: str) -> List[dict]:
    """
    Split PDF text into question rows (ParsedQuestion JSON keys, not yet normalized).

    Continuation lines before the first option extend the question text;
    continuation lines after an option extend that option.
    """
    rows: List[dict] = []
    current: Optional[dict] = None
    options: Dict[int, str] = {}
    last_option: Optional[int] = None

    def flush():
        if current is None or not current["questionTextMr"].strip():
            return
        current["options"] = [options.get(i, "") for i in range(4)] if options else []
        rows.append(current)

    for raw_line in text.splitlines():
        line = raw_line.strip()
        if not line:
            continue

        option_match = OPTION_LINE_RE.match(line)
        if option_match and current is not None:
            label = option_match.group(1) or option_match.group(2)
            index = _option_index(label)
            options[index] = option_match.group(3).strip()
            last_option = index
            continue

        question_match = QUESTION_LINE_RE.match(line)
        if question_match:
            flush()
            current = {
                "questionNumber": int(question_match.group(1)),
                "questionTextMr": question_match.group(2).strip(),
                "questionType": "mcq_single",
                "difficulty": "medium",
            }
            options = {}
            last_option = None
            continue

        if current is None:
            continue
        if last_option is None:
            current["questionTextMr"] += " " + line
        else:
            options[last_option] = (options[last_option] + " " + line).strip()

    flush()
    logger.info(f"Legacy parser segmented {len(rows)} questions")
    return rows


def parse_answer_key(text: str) -> Dict[int, int]:
    """Parse "1. A", "1) B", "Q1: C", "1 - घ", "1. (3)" style answer keys into {number: index}."""
    answer_key: Dict[int, int] = {}
    for pattern in ANSWER_KEY_PATTERNS:
        for match in pattern.finditer(text):
            answer_key[int(match.group(1))] = _option_index(match.group(2))
    return answer_key


def apply_answer_key(rows: List[dict], answer_key: Dict[int, int]) -> List[dict]:
    """Backfill correctAnswer by question number; rows without a key entry are untouched."""
    applied = []
    for row in rows:
        number = row.get("questionNumber")
        if number in answer_key:
            row = {**row, "correctAnswer": answer_key[number]}
        applied.append(row)
    return applied


def parse_pdf_questions(pdf_text: str, answer_key_text: Optional[str] = None) -> List[dict]:
    """Legacy entry point: segment questions and apply the answer key when given."""
    rows = parse_questions_from_text(pdf_text)
    if answer_key_text:
        answer_key = parse_answer_key(answer_key_text)
        logger.info(f"Legacy parser found {len(answer_key)} answer key entries")
        rows = apply_answer_key(rows, answer_key)
    return rows
