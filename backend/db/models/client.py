"""Client model: the business record updated by entitlement actions."""

from datetime import date
from typing import Optional

from sqlalchemy import JSON, Numeric
from sqlalchemy.orm import Mapped, mapped_column

from core.constants import ClientStatus, DEFAULT_CURRENCY
from db.base import BaseModel


class Client(BaseModel):
    """A customer company.

    Attributes:
        company_name: Unique company name, the lookup key used by actions
        status: prospect, active or churned
        onboarding_status: Free-form onboarding stage ("pending" for new clients)
        contract_value: Amount from the first purchase
        services_purchased: List of {"sku", "name", "purchased_at"}
    """

    __tablename__ = "clients"

    company_name: Mapped[str] = mapped_column(unique=True, nullable=False)
    status: Mapped[str] = mapped_column(default=ClientStatus.PROSPECT.value, index=True)
    onboarding_status: Mapped[Optional[str]] = mapped_column(nullable=True)
    contract_value: Mapped[Optional[float]] = mapped_column(Numeric(12, 2, asdecimal=False), nullable=True)
    currency: Mapped[str] = mapped_column(default=DEFAULT_CURRENCY)
    date_won: Mapped[Optional[date]] = mapped_column(nullable=True)
    services_purchased: Mapped[list] = mapped_column(JSON, default=list)
