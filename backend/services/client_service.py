"""Client service used by the entitlement and status actions."""

import logging
from datetime import date
from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from core.constants import ClientStatus, DEFAULT_CURRENCY
from core.utils import utcnow
from db.models.client import Client
from services.base import BaseService

logger = logging.getLogger(__name__)


class ClientService(BaseService[Client]):
    """Find-or-create and update clients by company name."""

    def __init__(self, db: AsyncSession):
        super().__init__(Client, db)

    async def get_by_company(self, company_name: str) -> Optional[Client]:
        result = await self.db.execute(select(Client).where(Client.company_name == company_name))
        return result.scalar_one_or_none()

    async def assign_product(
        self,
        company_name: str,
        sku: str,
        product_name: str,
        amount: Optional[float] = None,
    ) -> tuple[Client, bool]:
        """Record a purchased product on the client, creating the client if needed.

        Assigning a SKU the client already holds does not add a second entry.

        Returns:
            Tuple of (client, created)
        """
        entry = {"sku": sku, "name": product_name, "purchased_at": utcnow().isoformat()}
        client = await self.get_by_company(company_name)
        if client is None:
            client = await self.create({
                "company_name": company_name,
                "status": ClientStatus.ACTIVE.value,
                "onboarding_status": "pending",
                "contract_value": amount,
                "currency": DEFAULT_CURRENCY,
                "date_won": date.today(),
                "services_purchased": [entry],
            })
            logger.info(f"Created client '{company_name}' with {sku}")
            return client, True

        services = list(client.services_purchased or [])
        if not any(s.get("sku") == sku for s in services):
            services.append(entry)
        # Reassign so the JSON column is flagged dirty.
        client.services_purchased = services
        client.status = ClientStatus.ACTIVE.value
        await self.db.flush()
        await self.db.refresh(client)
        return client, False

    async def set_status(self, company_name: str, status: str) -> bool:
        """Set a client's status; returns False when no such client exists."""
        client = await self.get_by_company(company_name)
        if client is None:
            return False
        client.status = status
        await self.db.flush()
        return True
