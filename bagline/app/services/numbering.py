"""Human-readable document numbers: ``<PREFIX>-<year>-<sequence>``.

The next sequence is one past the highest numeric suffix already issued for
the prefix and year, so deleting an older document never hands out a number
that is still in use.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy.orm import InstrumentedAttribute, Session


def document_number(prefix: str, sequence: int, year: int | None = None) -> str:
    if year is None:
        year = datetime.now().year
    return f"{prefix}-{year}-{sequence:04d}"


def next_sequence(db: Session, column: InstrumentedAttribute, prefix: str, year: int) -> int:
    stem = f"{prefix}-{year}-"
    highest = 0
    for (number,) in db.query(column).filter(column.like(f"{stem}%")):
        suffix = number[len(stem):]
        # hand-entered numbers sharing the stem may not be numeric
        if suffix.isdigit():
            highest = max(highest, int(suffix))
    return highest + 1


def next_document_number(
    db: Session, column: InstrumentedAttribute, prefix: str, year: int | None = None
) -> str:
    if year is None:
        year = datetime.now().year
    return document_number(prefix, next_sequence(db, column, prefix, year), year)
