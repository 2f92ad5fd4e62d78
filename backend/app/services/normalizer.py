"""
Normalizer - reconciles spreadsheet rows, legacy-parser output, AI output and
reviewer edits into the canonical ParsedQuestion shape.

Input rows are loose mappings using the ParsedQuestion JSON keys
(questionTextMr, options, correctAnswer, ...). normalize_question is
idempotent: feeding its own output back in yields an equal question.
"""

import re
from dataclasses import dataclass
from typing import Any, Iterable, List, Mapping, Optional, Tuple

from app.models.question import ParsedQuestion, QuestionType, Difficulty
from app.services.catalog import DEFAULT_CATALOG, ImportCatalog, MCQ_TYPES, MULTI_ANSWER_TYPES

OPTION_COUNT = 4
MARATHI_OPTION_LETTERS = ("क", "ख", "ग", "घ")

_ZERO_BASED_RE = re.compile(r"^[0-3]$")
_LETTER_RE = re.compile(r"^\(?([A-Da-d]|[कखगघ])[.)]?$")
_ONE_BASED_RE = re.compile(r"^(?:\(([1-4])\)|([1-4])[.)])$")
_INT_PREFIX_RE = re.compile(r"^\s*\+?(\d+)")


@dataclass(frozen=True)
class NormalizationProfile:
    name: str
    default_marks: int


SCHOLARSHIP_PROFILE = NormalizationProfile(name="scholarship", default_marks=2)
GENERIC_PROFILE = NormalizationProfile(name="generic", default_marks=1)


def profile_for(scholarship_mode: bool) -> NormalizationProfile:
    return SCHOLARSHIP_PROFILE if scholarship_mode else GENERIC_PROFILE


def _clean_text(value: Any) -> str:
    if value is None:
        return ""
    return str(value).strip()


def parse_int_prefix(value: Any) -> Optional[int]:
    """Leading-integer parse: "3" -> 3, "2 marks" -> 2, 2.0 -> 2, "abc" -> None."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value == value else None  # NaN check
    match = _INT_PREFIX_RE.match(str(value))
    return int(match.group(1)) if match else None


def coerce_marks(value: Any, default: int) -> int:
    marks = parse_int_prefix(value)
    if marks is None or marks <= 0:
        return default
    return marks


def coerce_difficulty(value: Any, catalog: ImportCatalog = DEFAULT_CATALOG) -> str:
    difficulty = _clean_text(value).lower()
    return difficulty if difficulty in catalog.difficulties else Difficulty.MEDIUM.value


def coerce_question_type(value: Any, catalog: ImportCatalog = DEFAULT_CATALOG) -> Tuple[str, Optional[str]]:
    """Return (question_type, parsing_error). Blank means mcq_single without an error."""
    qtype = _clean_text(value).lower()
    if not qtype:
        return QuestionType.MCQ_SINGLE.value, None
    if qtype in catalog.question_types:
        return qtype, None
    return QuestionType.MCQ_SINGLE.value, f"Unknown question type '{value}', defaulted to mcq_single"


def coerce_answer_index(value: Any) -> Optional[int]:
    """
    Map one correct-answer marker to a zero-based option index.

    Accepted: int 0-3, "0"-"3" (zero-based); "(1)"-"(4)", "1)"-"4)" (one-based
    option labels); A-D letters; Marathi labels क/ख/ग/घ. Anything else -> None.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if 0 <= value < OPTION_COUNT else None
    if isinstance(value, float):
        return int(value) if value.is_integer() and 0 <= value < OPTION_COUNT else None

    text = str(value).strip()
    if _ZERO_BASED_RE.match(text):
        return int(text)

    match = _ONE_BASED_RE.match(text)
    if match:
        return int(match.group(1) or match.group(2)) - 1

    match = _LETTER_RE.match(text)
    if match:
        letter = match.group(1)
        if letter in MARATHI_OPTION_LETTERS:
            return MARATHI_OPTION_LETTERS.index(letter)
        return ord(letter.upper()) - ord("A")
    return None


def _answer_items(value: Any) -> List[Any]:
    if isinstance(value, (list, tuple)):
        return list(value)
    if isinstance(value, str) and "," in value:
        return [part.strip() for part in value.split(",") if part.strip()]
    return [value]


def _dedupe(items: Iterable) -> list:
    seen = []
    for item in items:
        if item not in seen:
            seen.append(item)
    return seen


def _is_blank(value: Any) -> bool:
    return value is None or value == "" or value == [] or value == ()


def _resolve_answers(raw: Mapping[str, Any], question_type: str, errors: List[str]):
    raw_single = raw.get("correctAnswer")
    raw_multi = raw.get("correctAnswers")

    indices = None
    if not _is_blank(raw_multi):
        coerced = [coerce_answer_index(item) for item in _answer_items(raw_multi)]
        if coerced and all(i is not None for i in coerced):
            indices = _dedupe(coerced)
        else:
            errors.append(f"Unrecognized correct answers: {raw_multi}")

    single = None
    if not _is_blank(raw_single):
        items = _answer_items(raw_single)
        coerced = [coerce_answer_index(item) for item in items]
        if coerced and all(i is not None for i in coerced):
            single = coerced[0]
            if indices is None and len(coerced) > 1:
                indices = _dedupe(coerced)
        else:
            errors.append(f"Unrecognized correct answer: {raw_single}")

    if single is None and indices:
        single = indices[0]

    if question_type in MULTI_ANSWER_TYPES:
        multi = indices or ([single] if single is not None else None)
        return single, multi
    return single, None


def _normalize_options(raw_options: Any, question_type: str, errors: List[str]) -> List[str]:
    if _is_blank(raw_options):
        options = []
    elif isinstance(raw_options, (list, tuple)):
        options = [_clean_text(o) for o in raw_options]
    else:
        options = [_clean_text(raw_options)]

    if len(options) > OPTION_COUNT:
        errors.append(f"Expected {OPTION_COUNT} options, found {len(options)}; extra options dropped")
        options = options[:OPTION_COUNT]

    filled = sum(1 for o in options if o)
    if question_type in MCQ_TYPES and filled < OPTION_COUNT:
        errors.append(f"Expected {OPTION_COUNT} options, found {filled}")

    return options + [""] * (OPTION_COUNT - len(options))


def has_question_text(raw: Mapping[str, Any]) -> bool:
    return bool(_clean_text(raw.get("questionTextMr")) or _clean_text(raw.get("questionTextEn")))


def normalize_question(
    raw: Mapping[str, Any],
    profile: NormalizationProfile = GENERIC_PROFILE,
    catalog: ImportCatalog = DEFAULT_CATALOG,
    fallback_number: int = 1,
) -> ParsedQuestion:
    """Build one canonical ParsedQuestion from a loose row mapping."""
    errors: List[str] = [str(e) for e in (raw.get("parsingErrors") or []) if e]

    text_mr = _clean_text(raw.get("questionTextMr"))
    text_en = _clean_text(raw.get("questionTextEn"))
    if not text_mr:
        # English text stands in for the missing Marathi text; the error stays on the row.
        errors.append("Missing question text (Marathi)")
        text_mr = text_en

    question_type, type_error = coerce_question_type(raw.get("questionType"), catalog)
    if type_error:
        errors.append(type_error)

    options = _normalize_options(raw.get("options"), question_type, errors)
    correct_answer, correct_answers = _resolve_answers(raw, question_type, errors)

    number = parse_int_prefix(raw.get("questionNumber"))
    if number is None or number <= 0:
        number = fallback_number

    errors = _dedupe(errors)
    return ParsedQuestion(
        question_number=number,
        question_text_mr=text_mr,
        question_text_en=text_en or None,
        options=options,
        correct_answer=correct_answer,
        correct_answers=correct_answers,
        question_type=question_type,
        difficulty=coerce_difficulty(raw.get("difficulty"), catalog),
        marks=coerce_marks(raw.get("marks"), profile.default_marks),
        section=_clean_text(raw.get("section")) or None,
        class_level=_clean_text(raw.get("classLevel")) or None,
        chapter_id=_clean_text(raw.get("chapterId")) or None,
        explanation=_clean_text(raw.get("explanation")) or None,
        parsing_errors=errors or None,
    )


def normalize_questions(
    rows: Iterable[Mapping[str, Any]],
    profile: NormalizationProfile = GENERIC_PROFILE,
    catalog: ImportCatalog = DEFAULT_CATALOG,
) -> List[ParsedQuestion]:
    """Normalize every row that carries question text in either language; others are dropped."""
    questions = []
    for index, raw in enumerate(rows):
        if not has_question_text(raw):
            continue
        questions.append(normalize_question(raw, profile, catalog, fallback_number=index + 1))
    return questions
