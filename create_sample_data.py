#!/usr/bin/env python3
"""Script to create sample business data (clients, orders, products, inventory)."""

import asyncio
import logging
import random
from datetime import datetime, timedelta

from sqlalchemy import delete
from sqlalchemy.ext.asyncio import AsyncSession

from opsdesk.core.database import get_data_engine, init_data_store
from opsdesk.business.models import Client, Order, Product, InventoryItem

logger = logging.getLogger("create_sample_data")

CLIENTS = [
    ("Acme Hardware", "retail"),
    ("Northwind Traders", "wholesale"),
    ("Blue Harbor Cafe", "retail"),
    ("Summit Builders", "wholesale"),
    ("Greenleaf Clinic", "corporate"),
    ("Lakeside Motors", "corporate"),
]

PRODUCTS = [
    ("Hydraulic pump", "parts", 420.0, 250.0),
    ("Air filter", "parts", 35.0, 12.5),
    ("Annual maintenance plan", "services", 900.0, 300.0),
    ("Diagnostic visit", "services", 120.0, 40.0),
    ("Pressure gauge", "tools", 60.0, 22.0),
]

STATUSES = ["pending", "processing", "completed", "cancelled"]


async def create_sample_data(order_count: int = 60, seed: int = 7) -> bool:
    """Replace the data store contents with a reproducible sample set."""
    rng = random.Random(seed)
    engine = get_data_engine()
    await init_data_store(engine)

    async with AsyncSession(engine) as session:
        try:
            for model in (Order, InventoryItem, Client, Product):
                await session.execute(delete(model))

            now = datetime.now()
            clients = [
                Client(
                    name=name,
                    email=f"contact@{name.lower().replace(' ', '')}.example",
                    phone=f"555-01{i:02d}",
                    customer_type=customer_type,
                    created_at=now - timedelta(days=400 - i * 30),
                )
                for i, (name, customer_type) in enumerate(CLIENTS)
            ]
            products = [
                Product(name=name, category=category, price=price, cost=cost,
                        created_at=now - timedelta(days=365))
                for name, category, price, cost in PRODUCTS
            ]
            session.add_all(clients + products)
            await session.flush()

            for i in range(order_count):
                created = now - timedelta(days=rng.randint(0, 180))
                session.add(Order(
                    client_id=rng.choice(clients).id,
                    status=rng.choice(STATUSES),
                    total=round(rng.uniform(20, 2500), 2),
                    created_at=created,
                    updated_at=created,
                ))

            for product in products:
                session.add(InventoryItem(
                    product_id=product.id,
                    quantity=rng.randint(0, 80),
                    min_stock=10,
                ))

            await session.commit()
            logger.info(
                "Created %d clients, %d products, %d orders", len(clients), len(products), order_count
            )
            return True
        except Exception:
            await session.rollback()
            logger.exception("Error creating sample data")
            return False


def main():
    """Main function to run the sample data creation."""
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(message)s")
    success = asyncio.run(create_sample_data())

    if success:
        logger.info("Try: curl -X POST http://localhost:8000/api/custom-reports/run "
                    "-H 'Content-Type: application/json' -d '{\"entity\": \"orders\"}'")
        return 0
    return 1


if __name__ == "__main__":
    exit(main())
