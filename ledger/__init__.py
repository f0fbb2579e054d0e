# ledger/__init__.py
"""
Print shop ledger: invoices, payments and what customers still owe.

Run the API with:
    uvicorn ledger:app --reload
"""

from .main import app

__all__ = ["app"]
