import os
import sys
import unittest
from datetime import datetime, timedelta, timezone

# Ensure project src/ is on sys.path for imports
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), os.pardir))
src_path = os.path.join(ROOT, "src")
if src_path not in sys.path:
    sys.path.insert(0, src_path)

from pydantic import ValidationError  # noqa: E402

from domain import status  # noqa: E402
from domain.models import Customer, Order, OrderStatus, new_id  # noqa: E402
from domain.schemas import OrderData  # noqa: E402
from domain.stats import compute_customer_stats, month_start  # noqa: E402

UTC = timezone.utc


def make_order(state=OrderStatus.READY, **kw) -> Order:
    defaults = dict(
        id=new_id(),
        customer_id="c1",
        created_at=datetime(2025, 3, 4, 12, 0, tzinfo=UTC),
        status=state,
        assigned_user_id="u1",
    )
    defaults.update(kw)
    return Order(**defaults)


def make_customer(cid: str) -> Customer:
    return Customer(
        id=cid, name=cid.upper(), street_and_number="Weg 1", postal_code=10115, city="Berlin"
    )


class StatusTestCase(unittest.TestCase):
    def test_ready_order_can_be_completed(self):
        order = make_order()
        done = status.complete(order)
        self.assertEqual(done.status, OrderStatus.DELIVERED)
        self.assertEqual(done.id, order.id)
        # original untouched
        self.assertEqual(order.status, OrderStatus.READY)

    def test_ready_order_can_be_cancelled(self):
        self.assertEqual(status.cancel(make_order()).status, OrderStatus.CANCELLED)

    def test_finished_orders_refuse_both_transitions(self):
        for state in (OrderStatus.DELIVERED, OrderStatus.CANCELLED):
            order = make_order(state)
            self.assertIsNone(status.complete(order))
            self.assertIsNone(status.cancel(order))
            self.assertTrue(status.is_terminal(state))
            self.assertEqual(order.status, state)

    def test_no_way_back_to_ready(self):
        for state in OrderStatus:
            self.assertFalse(status.can_transition(state, OrderStatus.READY))
        self.assertFalse(status.is_terminal(OrderStatus.READY))

    def test_same_state_is_not_a_transition(self):
        self.assertIsNone(status.transition(make_order(), OrderStatus.READY))


class StatsTestCase(unittest.TestCase):
    def test_month_start_keeps_timezone(self):
        tz = timezone(timedelta(hours=2))
        now = datetime(2025, 3, 15, 8, 30, 12, 5, tzinfo=tz)
        self.assertEqual(month_start(now), datetime(2025, 3, 1, tzinfo=tz))

    def test_counts_only_orders_of_current_month(self):
        now = datetime(2025, 3, 15, 12, 0, tzinfo=UTC)
        orders = [
            make_order(created_at=datetime(2025, 3, 10, tzinfo=UTC), assigned_user_id="u1"),
            make_order(created_at=datetime(2025, 2, 27, tzinfo=UTC), assigned_user_id="u2"),
            make_order(created_at=datetime(2025, 3, 11, tzinfo=UTC), assigned_user_id="u1"),
            make_order(customer_id="c2", created_at=datetime(2025, 2, 1, tzinfo=UTC)),
        ]
        stats = {s.customer_id: s for s in compute_customer_stats(
            [make_customer("c1"), make_customer("c2")], orders, now
        )}
        self.assertEqual(stats["c1"].orders_created_in_this_month, 2)
        self.assertEqual(stats["c1"].worker_count_for_orders, 2)
        self.assertEqual(stats["c2"].orders_created_in_this_month, 0)
        self.assertEqual(stats["c2"].worker_count_for_orders, 1)
        self.assertEqual(stats["c1"].id, "c1")
        self.assertEqual(stats["c1"].updated_at, now)

    def test_month_boundary_is_exclusive(self):
        now = datetime(2025, 3, 15, tzinfo=UTC)
        orders = [make_order(created_at=datetime(2025, 3, 1, tzinfo=UTC))]
        (stats,) = compute_customer_stats([make_customer("c1")], orders, now)
        self.assertEqual(stats.orders_created_in_this_month, 0)

    def test_unassigned_orders_are_not_workers(self):
        now = datetime(2025, 3, 15, tzinfo=UTC)
        orders = [make_order(assigned_user_id=None), make_order(assigned_user_id=None)]
        (stats,) = compute_customer_stats([make_customer("c1")], orders, now)
        self.assertEqual(stats.worker_count_for_orders, 0)
        self.assertEqual(stats.orders_created_in_this_month, 2)

    def test_customer_without_orders(self):
        now = datetime(2025, 3, 15, tzinfo=UTC)
        (stats,) = compute_customer_stats([make_customer("c9")], [], now)
        self.assertEqual(
            (stats.orders_created_in_this_month, stats.worker_count_for_orders), (0, 0)
        )


class SchemaTestCase(unittest.TestCase):
    def test_order_wire_format_is_camel_case(self):
        wire = OrderData.from_model(make_order()).to_wire()
        self.assertIn("assignedUserId", wire)
        self.assertIn("createdAt", wire)
        self.assertEqual(wire["status"], 1)
        self.assertFalse(wire["deleted"])

    def test_missing_id_gets_generated(self):
        data = OrderData.model_validate(
            {"customerId": "c1", "createdAt": "2025-03-04T12:00:00Z", "status": 2}
        )
        order = data.to_model()
        self.assertEqual(len(order.id), 26)
        self.assertEqual(order.status, OrderStatus.DELIVERED)

    def test_timestamps_without_offset_are_rejected(self):
        with self.assertRaises(ValidationError):
            OrderData.model_validate(
                {"customerId": "c1", "createdAt": "2025-03-04T12:00:00", "status": 1}
            )


if __name__ == "__main__":
    unittest.main()
