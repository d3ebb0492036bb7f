"""
Venture OS
Sales pipeline models.

Models:
    - Opportunity: prospective sale moving through a fixed stage pipeline
    - PriceOffer: itemised quote; ``total_value`` is derived from ``items``
    - Contract: signed (or draft) agreement, optionally linked to the
      opportunity and/or price offer it came from
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


# ── Shared constants ─────────────────────────────────────────────────────

SERVICE_TYPES = ("Cloud", "Web", "Design", "Marketing")

# Draft → Price Offer Sent → Negotiating → Won | Lost
OPPORTUNITY_STAGES = ("Draft", "Price Offer Sent", "Negotiating", "Won", "Lost")

OFFER_STATUSES = ("Draft", "Sent", "Accepted", "Rejected", "Expired")

CONTRACT_STATUSES = ("Draft", "Pending Signature", "Active", "Completed", "Terminated")


class Opportunity(db.Model):
    """
    Prospective sale tracked through the pipeline.

    ``won_at`` is stamped exactly when the stage transitions to Won; that
    transition also fires the ``opportunity_won`` automation.
    """

    __tablename__ = "opportunities"
    __table_args__ = (
        db.CheckConstraint(
            "probability >= 0 AND probability <= 100",
            name="ck_opportunities_probability_range",
        ),
    )

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    client_id = db.Column(
        db.String(36), db.ForeignKey("clients.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    title = db.Column(db.String(300), nullable=False)
    description = db.Column(db.Text, default="")
    service_type = db.Column(db.String(20), default="Web", comment="Cloud | Web | Design | Marketing")
    stage = db.Column(
        db.String(30), nullable=False, default="Draft",
        comment="Draft | Price Offer Sent | Negotiating | Won | Lost",
    )
    estimated_value = db.Column(db.Float, nullable=False, default=0)
    probability = db.Column(db.Integer, nullable=False, default=25)
    expected_close = db.Column(db.Date, nullable=True)
    won_at = db.Column(db.DateTime(timezone=True), nullable=True)
    lost_reason = db.Column(db.Text, default="")

    created_at = db.Column(db.DateTime(timezone=True), default=_now)
    updated_at = db.Column(db.DateTime(timezone=True), default=_now, onupdate=_now)

    def to_dict(self):
        return {
            "id": self.id,
            "client_id": self.client_id,
            "title": self.title,
            "description": self.description,
            "service_type": self.service_type,
            "stage": self.stage,
            "estimated_value": self.estimated_value,
            "probability": self.probability,
            "expected_close": _iso(self.expected_close),
            "won_at": _iso(self.won_at),
            "lost_reason": self.lost_reason,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }

    def __repr__(self):
        return f"<Opportunity {self.id}: {self.title} [{self.stage}]>"


class PriceOffer(db.Model):
    """
    Itemised quote sent to a client.

    ``items`` is an ordered JSON list of line items
    ``{id, name, service_type, description, quantity, unit_price, total}``.
    ``total_value`` is always the sum of the item totals — see
    ``services.pipeline_service.normalize_items``.
    """

    __tablename__ = "price_offers"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    client_id = db.Column(
        db.String(36), db.ForeignKey("clients.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    opportunity_id = db.Column(
        db.String(36), db.ForeignKey("opportunities.id", ondelete="SET NULL"),
        nullable=True,
    )
    title = db.Column(db.String(300), nullable=False)
    items = db.Column(db.JSON, nullable=False, default=list)
    total_value = db.Column(db.Float, nullable=False, default=0)
    status = db.Column(
        db.String(20), nullable=False, default="Draft",
        comment="Draft | Sent | Accepted | Rejected | Expired",
    )
    valid_until = db.Column(db.Date, nullable=True)
    notes = db.Column(db.Text, default="")

    created_at = db.Column(db.DateTime(timezone=True), default=_now)
    updated_at = db.Column(db.DateTime(timezone=True), default=_now, onupdate=_now)

    def to_dict(self):
        return {
            "id": self.id,
            "client_id": self.client_id,
            "opportunity_id": self.opportunity_id,
            "title": self.title,
            "items": list(self.items or []),
            "total_value": self.total_value,
            "status": self.status,
            "valid_until": _iso(self.valid_until),
            "notes": self.notes,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }

    def __repr__(self):
        return f"<PriceOffer {self.id}: {self.title} [{self.status}]>"


class Contract(db.Model):
    """Client contract. Activation fires the ``contract_activated`` automation."""

    __tablename__ = "contracts"

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    client_id = db.Column(
        db.String(36), db.ForeignKey("clients.id", ondelete="CASCADE"),
        nullable=False, index=True,
    )
    opportunity_id = db.Column(
        db.String(36), db.ForeignKey("opportunities.id", ondelete="SET NULL"),
        nullable=True,
    )
    price_offer_id = db.Column(
        db.String(36), db.ForeignKey("price_offers.id", ondelete="SET NULL"),
        nullable=True, index=True,
    )
    title = db.Column(db.String(300), nullable=False)
    status = db.Column(
        db.String(30), nullable=False, default="Draft",
        comment="Draft | Pending Signature | Active | Completed | Terminated",
    )
    pdf_url = db.Column(db.String(500), default="")
    total_value = db.Column(db.Float, nullable=False, default=0)
    start_date = db.Column(db.Date, nullable=True)
    end_date = db.Column(db.Date, nullable=True)
    terms_md = db.Column(db.Text, default="")

    created_at = db.Column(db.DateTime(timezone=True), default=_now)
    updated_at = db.Column(db.DateTime(timezone=True), default=_now, onupdate=_now)

    def to_dict(self):
        return {
            "id": self.id,
            "client_id": self.client_id,
            "opportunity_id": self.opportunity_id,
            "price_offer_id": self.price_offer_id,
            "title": self.title,
            "status": self.status,
            "pdf_url": self.pdf_url,
            "total_value": self.total_value,
            "start_date": _iso(self.start_date),
            "end_date": _iso(self.end_date),
            "terms_md": self.terms_md,
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
        }

    def __repr__(self):
        return f"<Contract {self.id}: {self.title} [{self.status}]>"
