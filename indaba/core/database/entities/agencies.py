"""
Agency entity models.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlmodel import Field

from ..base import Base, new_id, utc_now


class Agency(Base, table=True):
    """A nanny agency.

    Table: agencies
    """

    __tablename__ = "agencies"
    __table_args__ = ({"extend_existing": True},)

    id: str = Field(default_factory=new_id, primary_key=True)
    name: str = Field(index=True)
    contact_person: Optional[str] = Field(default=None)
    contact_email: Optional[str] = Field(default=None)
    contact_phone: Optional[str] = Field(default=None)
    address: Optional[str] = Field(default=None)
    description: Optional[str] = Field(default=None)
    emergency_protocols: Optional[str] = Field(default=None, description="JSON document")

    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now, sa_column_kwargs={"onupdate": utc_now})


class AgencyNanny(Base, table=True):
    """Assignment of a nanny to an agency.

    Table: agency_nannies
    """

    __tablename__ = "agency_nannies"
    __table_args__ = ({"extend_existing": True},)

    id: str = Field(default_factory=new_id, primary_key=True)
    agency_id: str = Field(foreign_key="agencies.id", index=True)
    nanny_id: str = Field(foreign_key="nanny_profiles.id", index=True)
    role: Optional[str] = Field(default=None)
    status: str = Field(default="Active", description="Active, Pending, Inactive")
    pay_rate: Optional[float] = Field(default=None)
    payment_schedule: Optional[str] = Field(default=None)

    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now, sa_column_kwargs={"onupdate": utc_now})
