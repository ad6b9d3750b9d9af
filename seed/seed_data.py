"""
Seed the database with sample recipients.

Recipients map an upstream customer id to the provider account that receives
the payout. Customers without a row are paid to the account id equal to
their customer id.

Run:
    python -m seed.seed_data
"""

import asyncio

from app.config import settings
from app.database import Database
from app.models.payout import Recipient


RECIPIENTS = [
    {"customer_id": "cust_123", "name": "Aarav Sharma", "account_number": "50100012345678", "ifsc_code": "HDFC0000001", "email": "aarav@example.com", "provider_profile_id": "16100001", "provider_account_id": "701000001"},
    {"customer_id": "cust_124", "name": "Priya Patel", "account_number": "00401234567890", "ifsc_code": "ICIC0000004", "email": "priya@example.com", "provider_profile_id": "16100001", "provider_account_id": "701000002"},
    {"customer_id": "cust_125", "name": "Rohan Iyer", "account_number": "32101234567", "ifsc_code": "SBIN0000321", "email": "rohan@example.com", "provider_profile_id": "16100001", "provider_account_id": "701000003"},
    {"customer_id": "cust_126", "name": "Meera Nair", "account_number": "91201000123456", "ifsc_code": "UTIB0000912", "email": "meera@example.com", "provider_profile_id": "16100001", "provider_account_id": "701000004"},
    # Edge case: registered but no provider account yet
    {"customer_id": "cust_199", "name": "Unlinked Customer", "account_number": None, "ifsc_code": None, "email": "unlinked@example.com", "provider_profile_id": None, "provider_account_id": None},
]


async def seed() -> None:
    database = Database(settings.database_url)
    await database.init()

    async with database.sessionmaker() as session:
        for data in RECIPIENTS:
            existing = await session.get(Recipient, data["customer_id"])
            if existing is None:
                session.add(Recipient(**data))
        await session.commit()

    await database.dispose()
    print(f"Seeded {len(RECIPIENTS)} recipients into {settings.database_url}")


if __name__ == "__main__":
    asyncio.run(seed())
