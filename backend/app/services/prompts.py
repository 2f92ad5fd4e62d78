"""
Prompt templates for AI question extraction.

The scholarship templates target the Maharashtra State Scholarship Examination
(Class 5 / Class 8, Paper I and II, 75 questions, 2 marks each, bilingual
Marathi / English, options labelled क ख ग घ or (1)-(4)).
"""

import re
from typing import Optional, Tuple

SCHOLARSHIP_SYSTEM_PROMPT = """You are an expert at extracting questions from Maharashtra State Scholarship Examination PDFs (पूर्व उच्च प्राथमिक शिष्यवृत्ती परीक्षा / माध्यमिक शिष्यवृत्ती परीक्षा).

EXAM FORMAT:
- Total: 75 questions worth 2 marks each (150 marks, 90 minutes)
- Paper I (प्रथम भाषा व गणित): Questions 1-25 First Language, 26-75 Mathematics
- Paper II (तृतीय भाषा व बुद्धिमत्ता चाचणी): Questions 1-25 Third Language, 26-75 Intelligence Test
- Options are labelled क, ख, ग, घ (Marathi) OR (1), (2), (3), (4)
- OMR format: every question has exactly 4 options
- Some questions require TWO correct answers (stated in the instructions or the question text)
- The instructions page (first 1-2 pages) must be IGNORED

EXTRACTION RULES:
1. Skip the instructions page. Start at the first numbered question (1., 2., 3., ...)
2. Preserve the exact Marathi text. Do NOT translate or modify Devanagari script
3. Question numbers may be written as "1.", "1)" or "Q1:"
4. Question type:
   - mcq_single: one correct answer (default)
   - mcq_two: TWO correct answers ("दोन पर्याय निवडा" or similar)
   - mcq_multiple: three or more correct answers
   - fill_blank: fill in the blank (_____)
   - true_false: true / false
5. Extract ALL 4 options, keeping their labels: "क) ...", "(1) ..."
6. For mcq_two give both indices in correct_answers
7. Default marks: 2
8. Extract the section when visible ("विभाग I", "प्रथम भाषा", "गणित")
9. Extract the paper number (I or II) from the header when visible

OUTPUT FORMAT (JSON only):
{
  "questions": [
    {
      "number": 1,
      "text_mr": "प्रश्न मराठीत (exact text)",
      "text_en": "English text if present, else null",
      "options": ["क) पर्याय 1", "ख) पर्याय 2", "ग) पर्याय 3", "घ) पर्याय 4"],
      "correct_answers": [0, 2],
      "type": "mcq_single",
      "marks": 2,
      "section": "गणित"
    }
  ],
  "metadata": {
    "paper_number": "I",
    "subject": "प्रथम भाषा व गणित",
    "class_level": "इयत्ता 5 वी",
    "exam_type": "पूर्व उच्च प्राथमिक शिष्यवृत्ती परीक्षा",
    "total_questions": 75
  }
}

correct_answers holds zero-based option indices (0-3). Use null for anything not present in the paper.
Options must be exactly 4 items, or an empty array when the question has none.
Always return valid JSON, even when extraction is partial."""

GENERIC_SYSTEM_PROMPT = """You are an expert at extracting questions from exam PDFs.
Extract every question and return JSON of the form
{"questions": [{"number", "text_mr", "text_en", "options", "correct_answers", "type", "marks", "section"}], "metadata": {...}}.
Put the question text in text_mr and, when the paper is in English, repeat it in text_en.
correct_answers holds zero-based option indices. Use null for anything not present in the paper."""

SCHOLARSHIP_FEW_SHOT_EXAMPLES = """
EXAMPLE 1 - numbered options:
Input:
"69. 58721 मधील दशकस्थानच्या अंकाची स्थानिक किंमत हजारस्थानच्या अंकाच्या स्थानिक किंमतीच्या किती पट आहे?
(1) 400
(2) 1/400
(3) 4000
(4) 1/4000"
Output:
{"number": 69, "text_mr": "58721 मधील दशकस्थानच्या अंकाची स्थानिक किंमत हजारस्थानच्या अंकाच्या स्थानिक किंमतीच्या किती पट आहे?", "text_en": null, "options": ["(1) 400", "(2) 1/400", "(3) 4000", "(4) 1/4000"], "correct_answers": null, "type": "mcq_single", "marks": 2, "section": "गणित"}

EXAMPLE 2 - Marathi option labels:
Input:
"1. खालीलपैकी कोणता पर्याय बरोबर आहे?
क) पर्याय 1
ख) पर्याय 2
ग) पर्याय 3
घ) पर्याय 4"
Output:
{"number": 1, "text_mr": "खालीलपैकी कोणता पर्याय बरोबर आहे?", "text_en": null, "options": ["क) पर्याय 1", "ख) पर्याय 2", "ग) पर्याय 3", "घ) पर्याय 4"], "correct_answers": null, "type": "mcq_single", "marks": 2, "section": "विभाग I"}

EXAMPLE 3 - English question:
Input:
"73. Rashid purchased 27 kg sugar at the rate ₹ 37 per kg. If he sold all the sugar at ₹ 940 then how much was the profit or loss in the trade?
(1) Profit of ₹ 49
(2) Loss of ₹ 49
(3) Profit of ₹ 59
(4) Loss of ₹ 59"
Output:
{"number": 73, "text_mr": "Rashid purchased 27 kg sugar at the rate ₹ 37 per kg. If he sold all the sugar at ₹ 940 then how much was the profit or loss in the trade?", "text_en": "Rashid purchased 27 kg sugar at the rate ₹ 37 per kg. If he sold all the sugar at ₹ 940 then how much was the profit or loss in the trade?", "options": ["(1) Profit of ₹ 49", "(2) Loss of ₹ 49", "(3) Profit of ₹ 59", "(4) Loss of ₹ 59"], "correct_answers": null, "type": "mcq_single", "marks": 2, "section": "गणित"}

EXAMPLE 4 - TWO correct answers:
Input:
"15. खालीलपैकी दोन पर्याय निवडा जे बरोबर आहेत:
क) पर्याय 1
ख) पर्याय 2
ग) पर्याय 3
घ) पर्याय 4"
Output:
{"number": 15, "text_mr": "खालीलपैकी दोन पर्याय निवडा जे बरोबर आहेत:", "text_en": null, "options": ["क) पर्याय 1", "ख) पर्याय 2", "ग) पर्याय 3", "घ) पर्याय 4"], "correct_answers": [0, 2], "type": "mcq_two", "marks": 2, "section": null}

EXAMPLE 5 - fill in the blank:
Input:
"20. महाराष्ट्राची राजधानी _____ आहे."
Output:
{"number": 20, "text_mr": "महाराष्ट्राची राजधानी _____ आहे.", "text_en": null, "options": [], "correct_answers": null, "type": "fill_blank", "marks": 2, "section": null}
"""

# First question marker: "1.", "1)", optionally preceded by "प्रश्न" / "क्र."
QUESTION_START_RE = re.compile(r"^[ \t]*((?:प्रश्न\s*)?(?:क्र\.\s*)?1[.)])\s+", re.MULTILINE)


def strip_instructions_preamble(pdf_text: str) -> str:
    """
    Drop everything before the first question-1 marker (the instructions page).

    Text without such a marker is returned unchanged.
    """
    match = QUESTION_START_RE.search(pdf_text)
    if not match:
        return pdf_text
    return pdf_text[match.start(1):]


def create_extraction_prompt(
    pdf_text: str,
    answer_key_text: Optional[str] = None,
    scholarship_mode: bool = True,
) -> str:
    """User prompt: (preamble-stripped) paper text plus optional answer key."""
    cleaned_text = strip_instructions_preamble(pdf_text) if scholarship_mode else pdf_text

    parts = [
        "Extract all questions from the following exam PDF text. The text may contain Marathi "
        "(Devanagari) characters, English text, and scanning artifacts."
    ]
    if scholarship_mode:
        parts.append("IMPORTANT: Skip any instruction pages. Extract ONLY numbered questions (1-75).")
    parts.append(f"PDF TEXT:\n{cleaned_text}")

    if answer_key_text:
        parts.append(
            f"ANSWER KEY:\n{answer_key_text}\n\n"
            "Use the answer key to populate the correct_answers field for each question. "
            "For questions requiring two answers, include both."
        )

    parts.append("Return ONLY valid JSON matching the schema, no additional text or explanation.")
    return "\n\n".join(parts)


def create_enhanced_extraction_prompt(
    pdf_text: str,
    answer_key_text: Optional[str] = None,
    scholarship_mode: bool = True,
) -> Tuple[str, str]:
    """Return (system_message, user_prompt); scholarship mode adds the few-shot examples."""
    if scholarship_mode:
        system_message = f"{SCHOLARSHIP_SYSTEM_PROMPT}\n\n{SCHOLARSHIP_FEW_SHOT_EXAMPLES}"
    else:
        system_message = GENERIC_SYSTEM_PROMPT
    return system_message, create_extraction_prompt(pdf_text, answer_key_text, scholarship_mode)
