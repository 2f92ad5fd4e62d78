"""Validation utilities for imported question sets."""

from typing import Any, Dict, List

from app.models.question import MAX_QUESTION_NUMBER, ParsedQuestion


def summarize_question_set(questions: List[ParsedQuestion], dropped_rows: int = 0) -> Dict[str, Any]:
    """
    Per-import diagnostics stored in batch metadata.

    Question numbers are checked for duplicates, and for gaps up to the highest
    number seen. The gap scan never goes past MAX_QUESTION_NUMBER or the number
    of questions, whichever is larger.
    """
    seen = set()
    duplicates = []
    rows_with_errors = 0
    total_marks = 0

    for q in questions:
        if q.question_number in seen and q.question_number not in duplicates:
            duplicates.append(q.question_number)
        seen.add(q.question_number)
        if q.parsing_errors:
            rows_with_errors += 1
        total_marks += q.marks

    highest = max(seen) if seen else 0
    scan_limit = min(highest, max(MAX_QUESTION_NUMBER, len(questions)))
    missing = [n for n in range(1, scan_limit + 1) if n not in seen]

    warnings = []
    if duplicates:
        warnings.append(f"Duplicate question numbers: {sorted(duplicates)}")
    if missing:
        warnings.append(f"Missing question numbers: {missing}")
    if highest > scan_limit:
        warnings.append(f"Question numbers above {scan_limit} were not checked for gaps")

    return {
        "parsedCount": len(questions),
        "droppedRows": dropped_rows,
        "rowsWithErrors": rows_with_errors,
        "duplicateNumbers": sorted(duplicates),
        "missingNumbers": missing,
        "totalMarks": total_marks,
        "warnings": warnings,
    }
