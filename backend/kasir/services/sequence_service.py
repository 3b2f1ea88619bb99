# Overview: Per-vendor human-readable reference numbers for transactions and saved orders.

from __future__ import annotations

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import ReferenceSequence


def next_reference(*, vendor_id: int, kind: str, prefix: str, pad: int = 6) -> str:
    """
    Allocate the next reference for a vendor/kind (e.g. "TXN-000042").

    Runs inside the caller's transaction and does not commit. The increment
    is a single UPDATE, so concurrent callers serialize on the sequence row.
    """
    stmt = (
        update(ReferenceSequence)
        .where(
            ReferenceSequence.vendor_id == vendor_id,
            ReferenceSequence.kind == kind,
        )
        .values(next_number=ReferenceSequence.next_number + 1)
    )

    result = db.session.execute(stmt)
    if result.rowcount:
        current = (
            db.session.query(ReferenceSequence.next_number)
            .filter_by(vendor_id=vendor_id, kind=kind)
            .scalar()
        )
        number = current - 1
    else:
        try:
            with db.session.begin_nested():
                db.session.add(ReferenceSequence(vendor_id=vendor_id, kind=kind, next_number=2))
            number = 1
        except IntegrityError:
            # Another writer created the row first
            db.session.execute(stmt)
            current = (
                db.session.query(ReferenceSequence.next_number)
                .filter_by(vendor_id=vendor_id, kind=kind)
                .scalar()
            )
            number = current - 1

    return f"{prefix}-{number:0{pad}d}"
