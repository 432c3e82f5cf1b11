"""Repository for the Order aggregate."""

from ordering.domain import ordering
from ordering.order.order import Order

# API sort keys -> stored attribute (pricing is embedded, so its fields are prefixed)
SORTABLE_FIELDS = {
    "created_at": "created_at",
    "total_price": "pricing_total_price",
    "status": "status",
}


@ordering.repository(part_of=Order)
class OrderRepository:
    def count_coupon_usage(self, coupon_code: str, user_id: str) -> int:
        """How many orders ``user_id`` has placed with ``coupon_code``."""
        return len(self._dao.query.filter(coupon_code=coupon_code, user_id=str(user_id)).all().items)

    def find_by_tracking_token(self, order_id: str, token: str) -> Order | None:
        """Find a guest order by id and tracking token (expiry is checked by the caller)."""
        results = self._dao.query.filter(id=str(order_id), guest_tracking_token=token).all().items
        return self.get(results[0].id) if results else None

    def orders_for_user(self, user_id: str, page: int = 1, limit: int = 10) -> tuple[list[Order], int]:
        """One page of a buyer's orders, newest first, with the buyer's total order count."""
        return self._page(self._dao.query.filter(user_id=str(user_id)), "-created_at", page, limit)

    def search(
        self,
        status: str | None = None,
        user_id: str | None = None,
        created_from=None,
        created_to=None,
        sort_by: str = "created_at",
        descending: bool = True,
        page: int = 1,
        limit: int = 10,
    ) -> tuple[list[Order], int]:
        """Operator listing across all buyers.

        Every criterion is optional; ``created_from``/``created_to`` bound
        ``created_at`` inclusively.
        """
        criteria = {}
        if status:
            criteria["status"] = status
        if user_id:
            criteria["user_id"] = str(user_id)
        if created_from:
            criteria["created_at__gte"] = created_from
        if created_to:
            criteria["created_at__lte"] = created_to

        ordering_key = SORTABLE_FIELDS[sort_by]
        if descending:
            ordering_key = f"-{ordering_key}"

        queryset = self._dao.query.filter(**criteria) if criteria else self._dao.query
        return self._page(queryset, ordering_key, page, limit)

    def _page(self, queryset, ordering_key: str, page: int, limit: int) -> tuple[list[Order], int]:
        results = queryset.order_by(ordering_key).offset((page - 1) * limit).limit(limit).all()
        return [self.get(item.id) for item in results.items], results.total
