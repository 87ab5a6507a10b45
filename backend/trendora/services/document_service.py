# Overview: Allocates human-readable document numbers (invoice numbers).

from __future__ import annotations

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import DocumentSequence


INVOICE_DOCUMENT_TYPE = "INVOICE"
INVOICE_PREFIX = "INV"


class DocumentSequenceError(Exception):
    """Raised when document sequence operations fail."""
    pass


def _claim(document_type: str) -> int | None:
    stmt = (
        update(DocumentSequence)
        .where(DocumentSequence.document_type == document_type)
        .values(next_number=DocumentSequence.next_number + 1)
    )
    result = db.session.execute(stmt)
    if not result.rowcount:
        return None
    current = (
        db.session.query(DocumentSequence.next_number)
        .filter_by(document_type=document_type)
        .scalar()
    )
    return current - 1


def next_document_number(*, document_type: str, prefix: str, pad: int = 6) -> str:
    """
    Allocate the next number for a document type inside the caller's transaction.

    The counter row is bumped with an UPDATE so concurrent writers serialize on
    it. The first allocation creates the row inside a savepoint; losing that
    insert race falls back to the UPDATE path without discarding the caller's
    pending work.
    """
    if not document_type:
        raise DocumentSequenceError("document_type is required")

    number = _claim(document_type)
    if number is None:
        try:
            with db.session.begin_nested():
                db.session.add(DocumentSequence(document_type=document_type, next_number=2))
            number = 1
        except IntegrityError:
            number = _claim(document_type)
            if number is None:
                raise DocumentSequenceError(f"Could not allocate {document_type} number")

    return f"{prefix}-{number:0{pad}d}"


def next_invoice_number() -> str:
    """e.g. INV-000001"""
    return next_document_number(document_type=INVOICE_DOCUMENT_TYPE, prefix=INVOICE_PREFIX)
