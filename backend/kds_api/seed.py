"""
Seed data for development and demos.
Creates a small menu whose categories cover both stations.
"""

from sqlalchemy import select
from sqlalchemy.orm import Session

from kds_shared.config.constants import DisplayStation
from kds_shared.config.logging import get_logger
from kds_api.models import Category, MenuItem

logger = get_logger(__name__)

# (category, station, [(title, price_cents), ...])
DEMO_MENU: list[tuple[str, str, list[tuple[str, int]]]] = [
    ("Starters", DisplayStation.KITCHEN, [("Garlic Bread", 650), ("Soup of the Day", 800)]),
    ("Mains", DisplayStation.KITCHEN, [("Grilled Salmon", 2400), ("Steak Frites", 2900)]),
    ("Desserts", DisplayStation.KITCHEN, [("Cheesecake", 900)]),
    ("Cocktails", DisplayStation.BAR, [("Negroni", 1400), ("Margarita", 1300)]),
    ("Soft Drinks", DisplayStation.BAR, [("Lemonade", 500), ("Iced Tea", 450)]),
]


def seed(db: Session) -> int:
    """
    Insert the demo menu. Idempotent: does nothing when any category exists.
    Returns the number of menu items created.
    """
    if db.scalar(select(Category.id).limit(1)) is not None:
        logger.info("Menu already seeded, skipping")
        return 0

    created = 0
    for name, station, items in DEMO_MENU:
        category = Category(name=name, station=station)
        db.add(category)
        db.flush()
        for title, price in items:
            db.add(MenuItem(category_id=category.id, title=title, price_cents=price))
            created += 1

    db.commit()
    logger.info("Demo menu seeded", categories=len(DEMO_MENU), items=created)
    return created
