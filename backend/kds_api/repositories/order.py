"""
Order Repository - Data access for orders and their items.
"""

from sqlalchemy import Select, select, update
from sqlalchemy.orm import joinedload, selectinload

from kds_api.models import Category, MenuItem, Order, OrderItem, utcnow
from .base import BaseRepository


class OrderRepository(BaseRepository[Order]):
    """Repository for Order entities (items and their menu category preloaded)."""

    @property
    def model(self) -> type[Order]:
        return Order

    def _base_query(self) -> Select:
        return select(Order).options(
            selectinload(Order.items)
            .joinedload(OrderItem.menu_item)
            .joinedload(MenuItem.category)
        )

    def find_by_number(self, order_number: str) -> Order | None:
        return self._db.scalar(self._base_query().where(Order.order_number == order_number))

    def get_status(self, order_id: int) -> str | None:
        return self._db.scalar(select(Order.status).where(Order.id == order_id))

    def lock_status(self, order_id: int) -> str | None:
        """
        Read the status with the order row locked (SELECT ... FOR UPDATE).

        Station writes of the same order queue here, so each one reads the
        ticket set after the previous writer committed.
        """
        return self._db.scalar(
            select(Order.status).where(Order.id == order_id).with_for_update()
        )

    def set_status(self, order_id: int, expected: str, target: str) -> bool:
        """Compare-and-set on the order status; False if it moved meanwhile."""
        result = self._db.execute(
            update(Order)
            .where(Order.id == order_id, Order.status == expected)
            .values(status=target, updated_at=utcnow())
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def get_item_stations(self, order_id: int) -> list[tuple[OrderItem, str | None]]:
        """Each item of the order paired with the station of its menu category."""
        rows = self._db.execute(
            select(OrderItem, Category.station)
            .outerjoin(MenuItem, OrderItem.menu_item_id == MenuItem.id)
            .outerjoin(Category, MenuItem.category_id == Category.id)
            .where(OrderItem.order_id == order_id)
            .order_by(OrderItem.id)
        ).all()
        return [(item, station) for item, station in rows]
