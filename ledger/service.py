# ledger/service.py
"""
The Ledger service object: one place for callers to reach every ledger
operation. Writes publish change events on `ledger.notifier`; readers that
cache derived numbers subscribe a RefreshScheduler to it.
"""

from typing import Optional

from sqlalchemy.engine import Engine

from ledger.db.engine import get_engine
from ledger.db.schema import metadata
from ledger.db.store import Store
from ledger.services.cascade import CascadeDeleter
from ledger.services.commissions import CommissionLinkage
from ledger.services.customers import CustomerDirectory
from ledger.services.debts import DebtAggregator
from ledger.services.invoices import InvoiceManager
from ledger.services.orders import OrderBook
from ledger.services.payments import PaymentEngine
from ledger.services.refresh import ChangeNotifier


class Ledger:
    def __init__(self, engine: Optional[Engine] = None, notifier: Optional[ChangeNotifier] = None):
        self.engine = engine or get_engine()
        self.store = Store(self.engine)
        self.notifier = notifier or ChangeNotifier()

        self.customers = CustomerDirectory(self.store, self.notifier)
        self.orders = OrderBook(self.store, self.notifier)
        self.invoices = InvoiceManager(self.store, self.notifier)
        self.payments = PaymentEngine(self.store, self.notifier)
        self.cascade = CascadeDeleter(self.store, self.notifier)
        self.debts = DebtAggregator(self.store)
        self.commissions = CommissionLinkage(self.store)

        # Customers and orders
        self.create_customer = self.customers.create_customer
        self.get_customer = self.customers.get_customer
        self.list_customers = self.customers.list_customers
        self.create_order = self.orders.create_order
        self.get_order = self.orders.get_order
        self.list_orders = self.orders.list_orders

        # Invoice lifecycle
        self.create_invoice = self.invoices.create_invoice
        self.edit_invoice = self.invoices.edit_invoice
        self.set_status = self.invoices.set_status
        self.delete_invoice = self.invoices.delete_invoice
        self.get_invoice = self.invoices.get_invoice
        self.list_invoices = self.invoices.list_invoices

        # Payment allocation
        self.list_outstanding = self.payments.list_outstanding
        self.cap_allocation = self.payments.cap_allocation
        self.record_payment = self.payments.record_payment
        self.record_order_payment = self.payments.record_order_payment
        self.delete_payment = self.payments.delete_payment
        self.list_payments = self.payments.list_payments

        # Cascade delete, reporting
        self.delete_order_cascade = self.cascade.delete_order_cascade
        self.list_customer_debts = self.debts.list_customer_debts
        self.debt_summary = self.debts.debt_summary
        self.list_commissions = self.commissions.list_commissions

    def create_schema(self) -> None:
        metadata.create_all(self.engine)

    def dispose(self) -> None:
        self.engine.dispose()
