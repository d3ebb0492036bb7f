"""
Venture OS
Client domain model.

Models:
    - Client: a customer account. ``health_score`` (0–100) is nudged by the
      automation engine and by agent sync.
"""

import uuid
from datetime import UTC, datetime

from venture_os.models import db


def _uuid():
    return str(uuid.uuid4())


def _now():
    return datetime.now(UTC)


class Client(db.Model):
    """Customer account owning opportunities, offers, contracts and projects."""

    __tablename__ = "clients"
    __table_args__ = (
        db.CheckConstraint(
            "health_score >= 0 AND health_score <= 100",
            name="ck_clients_health_score_range",
        ),
    )

    id = db.Column(db.String(36), primary_key=True, default=_uuid)
    name = db.Column(db.String(200), nullable=False)
    email = db.Column(db.String(255), default="")
    phone = db.Column(db.String(50), default="")

    # ── Branding (portal theming)
    brand_primary = db.Column(db.String(20), default="#6366f1")
    brand_secondary = db.Column(db.String(20), default="#8b5cf6")
    brand_accent = db.Column(db.String(20), default="#06b6d4")
    logo_url = db.Column(db.String(500), default="")
    brand_assets_url = db.Column(db.String(500), default="")

    notes = db.Column(db.Text, default="")
    health_score = db.Column(db.Integer, nullable=False, default=100)
    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), default=_now)
    updated_at = db.Column(db.DateTime(timezone=True), default=_now, onupdate=_now)

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "brand_primary": self.brand_primary,
            "brand_secondary": self.brand_secondary,
            "brand_accent": self.brand_accent,
            "logo_url": self.logo_url,
            "brand_assets_url": self.brand_assets_url,
            "notes": self.notes,
            "health_score": self.health_score,
            "is_active": self.is_active,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    def __repr__(self):
        return f"<Client {self.id}: {self.name}>"
