# ledger/services/allocations.py
"""
Summary payments and their allocations.

A summary payment's amount is the sum of the allocation payments pointing
at it. When allocations go away without their summary, the summary shrinks
to what is left and is removed once nothing is left.
"""

import logging
from typing import Iterable

from ledger.db.schema import payments
from ledger.db.store import Filter, Unit

logger = logging.getLogger(__name__)


def settle_summaries(unit: Unit, summary_ids: Iterable[int]) -> int:
    """Bring summaries back in line with their allocations; returns summaries removed."""
    removed = 0
    for summary_id in sorted(set(summary_ids)):
        children = unit.select(payments, {"parent_payment_id": summary_id})
        if children:
            unit.update(
                payments,
                {"amount_cents": sum(row["amount_cents"] for row in children)},
                {"id": summary_id},
            )
        else:
            removed += unit.delete(payments, {"id": summary_id})
            logger.info("Removed summary payment #%s with no allocations left", summary_id)
    return removed


def delete_allocations(unit: Unit, filter: Filter) -> int:
    """Delete the payments matching `filter` and settle their summaries."""
    rows = unit.select(payments, filter)
    if not rows:
        return 0

    deleted = unit.delete(payments, {"id": [row["id"] for row in rows]})
    parents = [row["parent_payment_id"] for row in rows if row["parent_payment_id"] is not None]
    return deleted + settle_summaries(unit, parents)
