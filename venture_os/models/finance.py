"""
Venture OS
Finance models.

Models:
    - Invoice: amount billed to a client, optionally tied to a project
    - Payment: money received against an invoice; an invoice is Paid once
      its payments cover the amount
"""

import uuid
from datetime import UTC, datetime

from venture_os.models import db


def _uuid():
    return str(uuid.uuid4())


def _now():
    return datetime.now(UTC)


def _iso(value):
    return value.isoformat() if value else None


INVOICE_STATUSES = ("Pending", "Paid", "Overdue", "Cancelled")

PAYMENT_METHODS = ("Transfer", "Card", "Cash")


class Invoice(db.Model):
    """Invoice issued to a client."""

    __tablename__ = "invoices"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    client_id = db.Column(
        db.String(36), db.ForeignKey("clients.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    project_id = db.Column(
        db.String(36), db.ForeignKey("projects.id", ondelete="SET NULL"),
        nullable=True, index=True,
    )
    amount = db.Column(db.Float, nullable=False, default=0)
    status = db.Column(
        db.String(20), nullable=False, default="Pending",
        comment="Pending | Paid | Overdue | Cancelled",
    )
    due_date = db.Column(db.DateTime(timezone=True), nullable=True)
    pdf_url = db.Column(db.String(500), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), default=_now)
    updated_at = db.Column(db.DateTime(timezone=True), default=_now, onupdate=_now)

    payments = db.relationship(
        "Payment", backref="invoice", lazy="dynamic",
        cascade="all, delete-orphan", order_by="Payment.timestamp",
    )

    def amount_paid(self):
        return sum(p.amount or 0 for p in self.payments)

    def to_dict(self, include_payments=False):
        d = {
            "id": self.id,
            "client_id": self.client_id,
            "project_id": self.project_id,
            "amount": self.amount,
            "amount_paid": self.amount_paid(),
            "status": self.status,
            "due_date": _iso(self.due_date),
            "pdf_url": self.pdf_url,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }
        if include_payments:
            d["payments"] = [p.to_dict() for p in self.payments]
        return d

    def __repr__(self):
        return f"<Invoice {self.id}: {self.amount} [{self.status}]>"


class Payment(db.Model):
    __tablename__ = "payments"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    invoice_id = db.Column(
        db.String(36), db.ForeignKey("invoices.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    amount = db.Column(db.Float, nullable=False, default=0)
    method = db.Column(db.String(20), nullable=False, default="Transfer")
    timestamp = db.Column(db.DateTime(timezone=True), default=_now)
    transaction_ref = db.Column(db.String(200), nullable=True)

    def to_dict(self):
        return {
            "id": self.id,
            "invoice_id": self.invoice_id,
            "amount": self.amount,
            "method": self.method,
            "timestamp": _iso(self.timestamp),
            "transaction_ref": self.transaction_ref,
        }
