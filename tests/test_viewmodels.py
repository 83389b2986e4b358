import asyncio
import os
import sys
import tempfile
import unittest
from datetime import datetime, timezone

# Ensure project src/ is on sys.path for imports
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), os.pardir))
src_path = os.path.join(ROOT, "src")
if src_path not in sys.path:
    sys.path.insert(0, src_path)

from db import crud  # noqa: E402
from db import database as db_database  # noqa: E402
from db.models import WorklistEntry  # noqa: E402
from domain.models import Order, OrderStatus  # noqa: E402
from sync.actions import PullResult, PushResult  # noqa: E402
from utils.state import UserNameStore  # noqa: E402
from views.viewmodels import AsyncCommand, MainViewModel, OrderViewModel  # noqa: E402

T0 = datetime(2025, 3, 4, 12, 0, tzinfo=timezone.utc)


class FakeSync:
    def __init__(self, push=None, pull=None):
        self.push = push
        self.pull = pull
        self.calls = []

    async def push_all(self):
        self.calls.append("push")
        return self.push

    async def pull_all(self):
        self.calls.append("pull")
        return self.pull


class FakeOrderAction:
    def __init__(self, result: bool):
        self.result = result
        self.seen = []

    async def complete(self, order_id):
        self.seen.append(order_id)
        return self.result

    async def cancel(self, order_id):
        self.seen.append(order_id)
        return self.result


def entry(status=OrderStatus.READY) -> WorklistEntry:
    return WorklistEntry(
        order=Order(id="o1", customer_id="c1", created_at=T0, status=status),
        customer_name="Bäckerei Huber",
        orders_created_in_this_month=1,
        worker_count_for_orders=1,
    )


class AsyncCommandTestCase(unittest.IsolatedAsyncioTestCase):
    async def test_only_one_execution_in_flight(self):
        gate = asyncio.Event()
        runs = []

        async def execute():
            runs.append(1)
            await gate.wait()
            return "done"

        command = AsyncCommand(execute)
        first = asyncio.create_task(command())
        await asyncio.sleep(0)
        self.assertTrue(command.is_running)
        self.assertFalse(command.can_execute())
        self.assertIsNone(await command())

        gate.set()
        self.assertEqual(await first, "done")
        self.assertEqual(len(runs), 1)
        self.assertTrue(command.can_execute())

    async def test_predicate_blocks_execution(self):
        runs = []

        async def execute():
            runs.append(1)

        command = AsyncCommand(execute, can_execute=lambda: False)
        self.assertIsNone(await command())
        self.assertEqual(runs, [])

    async def test_running_flag_resets_after_failure(self):
        async def execute():
            raise RuntimeError("boom")

        command = AsyncCommand(execute)
        with self.assertRaises(RuntimeError):
            await command()
        self.assertFalse(command.is_running)


class OrderViewModelTestCase(unittest.IsolatedAsyncioTestCase):
    async def test_complete_success_disables_both_commands(self):
        complete = FakeOrderAction(True)
        vm = OrderViewModel(entry(), complete, FakeOrderAction(True))
        changes = []
        vm.subscribe(lambda _src, name: changes.append(name))

        self.assertTrue(vm.can_complete)
        self.assertTrue(await vm.complete())
        self.assertTrue(vm.is_completed)
        self.assertFalse(vm.can_complete)
        self.assertFalse(vm.can_cancel)
        self.assertEqual(vm.status_text, "Delivered")
        self.assertEqual(complete.seen, ["o1"])
        self.assertIn("is_completed", changes)

    async def test_refused_cancel_changes_nothing(self):
        vm = OrderViewModel(entry(), FakeOrderAction(True), FakeOrderAction(False))
        self.assertFalse(await vm.cancel())
        self.assertFalse(vm.is_canceled)
        self.assertTrue(vm.can_cancel)

    async def test_finished_order_commands_do_not_run(self):
        cancel = FakeOrderAction(True)
        vm = OrderViewModel(entry(OrderStatus.CANCELLED), FakeOrderAction(True), cancel)
        self.assertTrue(vm.is_canceled)
        self.assertIsNone(await vm.cancel())
        self.assertEqual(cancel.seen, [])


class MainViewModelTestCase(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        db_database.DB_PATH = os.path.join(self.temp_dir.name, "client.sqlite")
        db_database._initialized = False
        self.errors = []

    def tearDown(self):
        self.temp_dir.cleanup()

    async def report(self, title, message):
        self.errors.append((title, message))

    def make_vm(self, sync, store=None):
        return MainViewModel(
            sync,
            store or UserNameStore(user_name="David"),
            FakeOrderAction(True),
            FakeOrderAction(True),
            self.report,
        )

    async def test_failed_push_is_reported_and_pull_still_runs(self):
        sync = FakeSync(push=None, pull=PullResult())
        vm = self.make_vm(sync)
        await vm.synchronise()
        self.assertEqual(sync.calls, ["push", "pull"])
        self.assertEqual(self.errors, [("Datasync error", "Push: could not reach server")])
        self.assertEqual(vm.sync_summary, "0 pulled")
        self.assertFalse(vm.is_synchronising)
        self.assertTrue(vm.can_synchronise)

    async def test_both_failures_reported(self):
        vm = self.make_vm(FakeSync())
        await vm.synchronise()
        self.assertEqual(
            [m for _, m in self.errors],
            ["Push: could not reach server", "Pull: could not reach server"],
        )

    async def test_successful_sync_loads_orders(self):
        await crud.apply_pulled("orders", [entry().order])
        vm = self.make_vm(FakeSync(push=PushResult(), pull=PullResult()))
        seen = []
        vm.subscribe(lambda _src, name: seen.append(name))
        await vm.synchronise()
        self.assertEqual(self.errors, [])
        self.assertEqual([o.id for o in vm.orders], ["o1"])
        self.assertIsNotNone(vm.find_order("o1"))
        self.assertIn("orders", seen)
        self.assertIn("is_synchronising", seen)

    async def test_summary_names_overwritten_and_rejected_rows(self):
        push = PushResult(pushed=1, conflicts=["o1"], rejected=["o2"])
        pull = PullResult(items={"orders": 2, "customers": 1})
        vm = self.make_vm(FakeSync(push=push, pull=pull))
        seen = []
        vm.subscribe(lambda _src, name: seen.append(name))
        await vm.synchronise()
        self.assertEqual(
            vm.sync_summary,
            "1 pushed; 1 overwritten by the server, 1 no longer yours; 3 pulled",
        )
        self.assertIn("sync_summary", seen)

    async def test_sync_not_reentrant(self):
        gate = asyncio.Event()

        class SlowSync(FakeSync):
            async def push_all(self):
                self.calls.append("push")
                await gate.wait()
                return PushResult()

        sync = SlowSync(pull=PullResult())
        vm = self.make_vm(sync)
        first = asyncio.create_task(vm.synchronise())
        await asyncio.sleep(0)
        self.assertTrue(vm.is_synchronising)
        self.assertFalse(vm.synchronise.can_execute())
        await vm.synchronise()
        gate.set()
        await first
        self.assertEqual(sync.calls, ["push", "pull"])

    async def test_user_name_written_through_unless_empty(self):
        store = UserNameStore(user_name="David")
        vm = self.make_vm(FakeSync(), store)
        self.assertEqual(vm.user_name, "David")
        vm.user_name = "Lena"
        self.assertEqual(store.user_name, "Lena")
        vm.user_name = ""
        self.assertEqual(vm.user_name, "")
        self.assertEqual(store.user_name, "Lena")


if __name__ == "__main__":
    unittest.main()
