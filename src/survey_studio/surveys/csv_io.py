"""Google Forms style CSV import/export of ``Section[]``.

Columns: ``Section, Question, Type, Required, Option 1 .. Option n``.
"""

from __future__ import annotations

import csv
import io
from typing import Dict, List, Sequence

from ..errors import DraftValidationError
from .schema import Question, Section, make_question


IMPORTED_SECTION_NAME = "Imported section"

TYPE_LABELS: Dict[str, str] = {
    "multiple_choice": "Multiple choice",
    "checkbox": "Checkboxes",
    "short_answer": "Short answer",
    "paragraph": "Paragraph",
    "dropdown": "Dropdown",
}


def _kind_from_label(label: str) -> str:
    text = label.lower()
    if "multiple choice" in text:
        return "multiple_choice"
    if "checkbox" in text:
        return "checkbox"
    if "paragraph" in text:
        return "paragraph"
    if "dropdown" in text:
        return "dropdown"
    return "short_answer"


def export_csv(sections: Sequence[Section]) -> str:
    questions = [q for s in sections for q in s.questions]
    max_options = max((len(getattr(q, "options", None) or []) for q in questions), default=0)
    header = ["Section", "Question", "Type", "Required"] + [f"Option {i + 1}" for i in range(max_options)]

    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(header)
    for q in questions:
        options = list(getattr(q, "options", None) or [])
        row = [q.section_name, q.text, TYPE_LABELS[q.type], "Yes" if q.required else "No"] + options
        row += [""] * (len(header) - len(row))
        writer.writerow(row)
    return buffer.getvalue()


def import_csv(text: str) -> List[Section]:
    """Parse an exported CSV back into sections, grouped in first-seen order.

    Raises ``DraftValidationError`` when there is no data row or the
    ``Section``/``Question``/``Type`` columns are missing.
    """
    rows = [row for row in csv.reader(io.StringIO(text)) if any(cell.strip() for cell in row)]
    if len(rows) < 2:
        raise DraftValidationError("csvMustHaveData")

    header = [h.strip() for h in rows[0]]
    try:
        section_col = header.index("Section")
        question_col = header.index("Question")
        type_col = header.index("Type")
    except ValueError:
        raise DraftValidationError("csvMissingColumns") from None
    required_col = header.index("Required") if "Required" in header else None
    option_cols = [i for i, h in enumerate(header) if h.startswith("Option")]
    option_start = option_cols[0] if option_cols else None

    grouped: Dict[str, List[Question]] = {}
    for row in rows[1:]:
        cells = [c.strip() for c in row] + [""] * max(0, len(header) - len(row))
        name = cells[section_col] or IMPORTED_SECTION_NAME
        required = required_col is not None and cells[required_col].lower() == "yes"
        options = [c for c in cells[option_start:] if c] if option_start is not None else []
        question = make_question(
            _kind_from_label(cells[type_col]),
            cells[question_col],
            options=options,
            required=required,
            section_name=name,
        )
        grouped.setdefault(name, []).append(question)

    return [Section(name=name, questions=questions) for name, questions in grouped.items()]
