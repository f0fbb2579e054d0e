# ledger/api/customers.py

from typing import List

from fastapi import APIRouter, Depends

from ledger.api.deps import get_ledger
from ledger.models.customers import CustomerIn, CustomerOut
from ledger.models.invoices import InvoiceOut
from ledger.service import Ledger

router = APIRouter(prefix="/customers", tags=["customers"])


@router.get("/", response_model=List[CustomerOut])
def list_customers(ledger: Ledger = Depends(get_ledger)) -> List[CustomerOut]:
    """
    Return all customers ordered by name.
    """
    return ledger.list_customers()


@router.post("/", response_model=CustomerOut, status_code=201)
def create_customer(body: CustomerIn, ledger: Ledger = Depends(get_ledger)) -> CustomerOut:
    return ledger.create_customer(
        name=body.name,
        email=body.email,
        phone=body.phone,
        company_name=body.company_name,
    )


@router.get("/{customer_id}", response_model=CustomerOut)
def get_customer(customer_id: int, ledger: Ledger = Depends(get_ledger)) -> CustomerOut:
    """
    Return a single customer by ID.
    """
    return ledger.get_customer(customer_id)


@router.get("/{customer_id}/outstanding", response_model=List[InvoiceOut])
def list_outstanding(customer_id: int, ledger: Ledger = Depends(get_ledger)) -> List[InvoiceOut]:
    """
    Invoices of the customer that still have a balance, oldest first.
    This is the list a payment is allocated against.
    """
    return ledger.list_outstanding(customer_id)
