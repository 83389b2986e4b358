from textual import on, work
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.widgets import LoadingIndicator

from db.database import connect
from sync.actions import CancelOrderAction, CompleteOrderAction, SynchronisationAction
from sync.http import create_client
from utils.logger import get_logger
from utils.messages import QuitRequestedMessage
from utils.state import UserNameStore
from views.modal_dialog import ErrorDialogModal
from views.scr_worklist import WorklistScreen
from views.viewmodels import MainViewModel

_logger = get_logger(__name__)


class WorklistApp(App):
    BINDINGS = [
        Binding("ctrl+t", "switch_light", "Toggle Theme", show=True),
    ]

    CSS_PATH = [
        "views/styles/worklist.tcss",
    ]

    def __init__(self):
        super().__init__()
        self.user_name_store = UserNameStore()
        self.view_model = MainViewModel(
            SynchronisationAction(lambda: create_client(self.user_name_store)),
            self.user_name_store,
            CompleteOrderAction(),
            CancelOrderAction(),
            self.show_error,
        )

    def compose(self) -> ComposeResult:
        yield LoadingIndicator()

    async def on_mount(self) -> None:
        self.main_flow()

    def action_switch_light(self):
        if self.theme == "textual-dark":
            self.theme = "solarized-light"
        else:
            self.theme = "textual-dark"
        self.notify(f"Theme changed to {self.theme}")

    async def show_error(self, title: str, message: str) -> None:
        # called from the sync worker, so waiting for the dialog is allowed
        await self.push_screen_wait(ErrorDialogModal(title, message))

    @on(QuitRequestedMessage)
    def handle_quit(self):
        self.exit()

    @work
    async def main_flow(self):
        # open once so the local mirror exists before the screen queries it
        async with connect():
            _logger.info("Local database ready.")
        await self.push_screen(WorklistScreen(self.view_model))


def run() -> None:
    WorklistApp().run()


if __name__ == "__main__":
    run()
