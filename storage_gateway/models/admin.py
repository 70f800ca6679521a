"""
Admin (tenant) account model.

Each admin account is a customer company. Files, usage and quota are
accounted per admin account; the identity-provider user who owns the
account is ``owner_id``.
"""

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from storage_gateway.models.base import BaseModel


class Admin(BaseModel):
    """Tenant account owning stored files."""

    __tablename__ = "admin"

    owner_id: Mapped[str] = mapped_column(
        String(36),
        unique=True,
        nullable=False,
        index=True,
        comment="Identity-provider user id of the account owner"
    )

    company_name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
        comment="Display name, slugified into object key prefixes"
    )

    subscription_tier: Mapped[str | None] = mapped_column(
        String(50),
        nullable=True,
        comment="Billing tier (starter, professional, enterprise)"
    )

    def __repr__(self) -> str:
        return f"<Admin(id={self.id}, company_name={self.company_name})>"
