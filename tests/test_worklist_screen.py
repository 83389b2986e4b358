import asyncio
import os
import sys
import tempfile
import unittest

# Ensure project src/ is on sys.path for imports
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), os.pardir))
src_path = os.path.join(ROOT, "src")
if src_path not in sys.path:
    sys.path.insert(0, src_path)

from textual.app import App  # noqa: E402

from db import database as db_database  # noqa: E402
from sync.actions import (  # noqa: E402
    CancelOrderAction,
    CompleteOrderAction,
    PullResult,
    PushResult,
)
from utils.state import UserNameStore  # noqa: E402
from views.scr_worklist import WorklistScreen  # noqa: E402
from views.viewmodels import MainViewModel  # noqa: E402


class GatedSync:
    """push_all blocks until `gate` is set and records what happened to it."""

    def __init__(self):
        self.gate = asyncio.Event()
        self.events = []

    async def push_all(self):
        self.events.append("push-start")
        try:
            await self.gate.wait()
        except asyncio.CancelledError:
            self.events.append("push-cancelled")
            raise
        self.events.append("push-done")
        return PushResult()

    async def pull_all(self):
        self.events.append("pull")
        return PullResult()


class WorklistHarness(App):
    def __init__(self, view_model: MainViewModel):
        super().__init__()
        self.view_model = view_model

    def on_mount(self) -> None:
        self.push_screen(WorklistScreen(self.view_model))


class WorklistScreenTestCase(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        db_database.DB_PATH = os.path.join(self.temp_dir.name, "client.sqlite")
        db_database._initialized = False
        self.sync = GatedSync()
        self.errors = []

    def tearDown(self):
        self.temp_dir.cleanup()

    async def report(self, title, message):
        self.errors.append((title, message))

    def make_app(self) -> WorklistHarness:
        view_model = MainViewModel(
            self.sync,
            UserNameStore(user_name="David"),
            CompleteOrderAction(),
            CancelOrderAction(),
            self.report,
        )
        return WorklistHarness(view_model)

    async def test_second_sync_key_leaves_running_sync_alone(self):
        app = self.make_app()
        async with app.run_test() as pilot:
            await pilot.pause(0.1)
            await pilot.press("ctrl+s")
            await pilot.pause(0.1)
            self.assertEqual(self.sync.events, ["push-start"])

            await pilot.press("ctrl+s")
            await pilot.pause(0.1)
            self.assertEqual(self.sync.events, ["push-start"])

            self.sync.gate.set()
            await app.workers.wait_for_complete()
            await pilot.pause()

        self.assertEqual(self.sync.events, ["push-start", "push-done", "pull"])
        self.assertEqual(self.errors, [])

    async def test_sync_can_run_again_once_finished(self):
        self.sync.gate.set()
        app = self.make_app()
        async with app.run_test() as pilot:
            await pilot.pause(0.1)
            await pilot.press("ctrl+s")
            await app.workers.wait_for_complete()
            await pilot.pause()
            await pilot.press("ctrl+s")
            await app.workers.wait_for_complete()
            await pilot.pause()

        self.assertEqual(
            self.sync.events,
            ["push-start", "push-done", "pull", "push-start", "push-done", "pull"],
        )


if __name__ == "__main__":
    unittest.main()
