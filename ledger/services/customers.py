# ledger/services/customers.py

import logging
from typing import List, Optional

from ledger.db.schema import customers
from ledger.db.store import Row, Store
from ledger.errors import NotFoundError, ValidationError
from ledger.models.customers import CustomerOut
from ledger.services.refresh import ChangeNotifier

logger = logging.getLogger(__name__)


def _row_to_customer(row: Row) -> CustomerOut:
    return CustomerOut(
        id=row["id"],
        name=row["name"],
        email=row["email"],
        phone=row["phone"],
        company_name=row["company_name"],
        created_at=row["created_at"],
    )


class CustomerDirectory:
    def __init__(self, store: Store, notifier: Optional[ChangeNotifier] = None):
        self.store = store
        self.notifier = notifier

    def create_customer(
        self,
        name: str,
        email: Optional[str] = None,
        phone: Optional[str] = None,
        company_name: Optional[str] = None,
    ) -> CustomerOut:
        if not name or not name.strip():
            raise ValidationError("Customer name is required")

        with self.store.begin() as unit:
            (row,) = unit.insert(
                customers,
                {
                    "name": name.strip(),
                    "email": email,
                    "phone": phone,
                    "company_name": company_name,
                },
            )

        logger.info("Created customer %s (%s)", row["id"], row["name"])
        if self.notifier is not None:
            self.notifier.publish("customers")
        return _row_to_customer(row)

    def get_customer(self, customer_id: int) -> CustomerOut:
        with self.store.begin() as unit:
            row = unit.first(customers, {"id": customer_id})
        if row is None:
            raise NotFoundError(f"Customer {customer_id} not found")
        return _row_to_customer(row)

    def list_customers(self) -> List[CustomerOut]:
        with self.store.begin() as unit:
            rows = unit.select(customers, order_by=(customers.c.name,))
        return [_row_to_customer(row) for row in rows]
