"""SQLAlchemy repository for sandbox invoices.

The sandbox keeps every invoice it issues so a developer can later push a
payment status for it. Connection parameters come from
``SANDBOX_DATABASE_URL``, defaulting to a local SQLite file.
"""

import os
import secrets
from contextlib import contextmanager
from datetime import datetime, timezone
from decimal import Decimal
from typing import Optional

from sqlalchemy import DateTime, Numeric, String, create_engine
from sqlalchemy.orm import DeclarativeBase, Session, mapped_column

DATABASE_URL = os.getenv("SANDBOX_DATABASE_URL", "sqlite:///./nowpayments_sandbox.db")
engine = create_engine(DATABASE_URL, pool_pre_ping=True)


class Base(DeclarativeBase):
    pass


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Invoice(Base):
    """An invoice as the provider would store it.

    Attributes:
        id: Numeric string id, like the provider's.
        status: Last payment status pushed for this invoice (``waiting``
            until a developer changes it).
    """

    __tablename__ = "invoices"

    id = mapped_column(String(20), primary_key=True)
    order_id = mapped_column(String(64), nullable=False, index=True)
    order_description = mapped_column(String(200), nullable=True)
    price_amount = mapped_column(Numeric(12, 2), nullable=False)
    price_currency = mapped_column(String(20), nullable=False)
    pay_currency = mapped_column(String(20), nullable=True)
    ipn_callback_url = mapped_column(String(500), nullable=True)
    success_url = mapped_column(String(500), nullable=True)
    cancel_url = mapped_column(String(500), nullable=True)
    status = mapped_column(String(32), nullable=False, default="waiting")
    created_at = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = mapped_column(DateTime(timezone=True), nullable=False, default=_utcnow)


@contextmanager
def get_session():
    with Session(engine, expire_on_commit=False) as s:
        yield s


def _new_invoice_id() -> str:
    return str(1_000_000_000 + secrets.randbelow(9_000_000_000))


class InvoicesRepo:
    def create(self, **fields) -> Invoice:
        with get_session() as s:
            inv = Invoice(id=_new_invoice_id(), status="waiting", **fields)
            s.add(inv)
            s.commit()
            return inv

    def get(self, invoice_id: str) -> Optional[Invoice]:
        with get_session() as s:
            return s.get(Invoice, invoice_id)

    def set_status(self, invoice_id: str, status: str) -> Optional[Invoice]:
        with get_session() as s:
            inv = s.get(Invoice, invoice_id)
            if inv is None:
                return None
            inv.status = status
            inv.updated_at = _utcnow()
            s.commit()
            return inv


def quantize(amount: Decimal) -> Decimal:
    return amount.quantize(Decimal("0.01"))


Base.metadata.create_all(engine)
