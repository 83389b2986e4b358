# fixed demo rows for the development reset endpoint
from datetime import datetime, timedelta

import aiosqlite

from domain.models import Customer, Order, OrderStatus, User, new_id, utcnow
from server import database, repository
from utils.logger import get_logger

_logger = get_logger(__name__)

DEMO_USER_NAMES = ["David", "Lena"]

DEMO_CUSTOMERS = [
    ("Bäckerei Huber", "Hauptstraße 12", 80331, "München"),
    ("Café Lindner", "Bahnhofplatz 3", 90402, "Nürnberg"),
]


async def seed(conn: aiosqlite.Connection, now: datetime) -> None:
    """
    Insert two users, two customers and four Ready orders.
    Each customer gets one order created at `now` and one ten days earlier.
    The first customer's orders both go to David; the second customer has one
    for David and one for Lena.
    """
    stamp = utcnow()
    david, lena = (User(id=new_id(), user_name=n) for n in DEMO_USER_NAMES)
    for user in (david, lena):
        await repository.insert_user(conn, user)

    customers = [
        Customer(
            id=new_id(),
            name=name,
            street_and_number=street,
            postal_code=plz,
            city=city,
            updated_at=stamp,
            version=new_id(),
        )
        for name, street, plz, city in DEMO_CUSTOMERS
    ]
    for customer in customers:
        await repository.CUSTOMERS.insert(conn, customer)

    assignments = [
        (customers[0], david, now),
        (customers[0], david, now - timedelta(days=10)),
        (customers[1], lena, now),
        (customers[1], david, now - timedelta(days=10)),
    ]
    for customer, user, created_at in assignments:
        await repository.ORDERS.insert(
            conn,
            Order(
                id=new_id(),
                customer_id=customer.id,
                created_at=created_at,
                status=OrderStatus.READY,
                assigned_user_id=user.id,
                updated_at=stamp,
                version=new_id(),
            ),
        )
    _logger.info(
        f"Seeded {len(DEMO_USER_NAMES)} users, {len(customers)} customers, "
        f"{len(assignments)} orders."
    )


async def reset(conn: aiosqlite.Connection, now: datetime) -> None:
    """Drop and recreate the database, then seed the demo rows."""
    await database.recreate(conn)
    await seed(conn, now)
    await conn.commit()
