# ledger/services/status.py

from ledger.money import TOLERANCE_CENTS

UNPAID = "unpaid"
PARTIAL = "partial"
PAID = "paid"
DRAFT = "draft"


def derive_status(total_cents: int, paid_cents: int) -> str:
    """
    Map accumulated payments to an invoice (or order) payment status.

    Never returns "draft": draft is set by the caller and the deriver is not
    consulted for it. Being within one cent of the total counts as paid, so a
    zero-total invoice is paid as well.
    """
    if paid_cents >= total_cents - TOLERANCE_CENTS:
        return PAID
    if paid_cents <= 0:
        return UNPAID
    return PARTIAL
