from typing import Dict, Literal, Tuple

from typing_extensions import override

from textual.app import ComposeResult
from textual.containers import Container, Horizontal
from textual.screen import ModalScreen
from textual.widgets import Button, Label

from utils.messages import QuitRequestedMessage

Tone = Literal["default", "error"]


class DialogModal(ModalScreen[bool]):
    """
    A simple dialog box with an optional title line.
    """

    VARIANT_MAP: Dict[str, Tuple[str, str]] = {
        "default": ("primary", "default"),
        "error": ("error", "primary"),
    }

    def __init__(
        self,
        caption: str,
        primary_text: str = "OK",
        secondary_text: str = "",
        tone: Tone = "default",
        title: str = "",
    ):
        super().__init__()
        self.caption = caption
        self.primary_text = primary_text
        self.secondary_text = secondary_text
        self.tone = tone
        self.title_text = title

    def compose(self) -> ComposeResult:
        with Container(id="div-dialog"):
            if self.title_text:
                yield Label(self.title_text, id="dialog-title")
            yield Label(self.caption, id="caption")
            with Horizontal(id="dialog"):
                if self.secondary_text:
                    yield Button(
                        self.secondary_text,
                        variant=DialogModal.VARIANT_MAP[self.tone][1],
                        id="btn-secondary",
                    )
                yield Button(
                    self.primary_text,
                    variant=DialogModal.VARIANT_MAP[self.tone][0],
                    id="btn-primary",
                )

    def on_mount(self):
        # destructive choices default to the safe button
        if self.secondary_text and self.tone == "error":
            self.query_one("#btn-secondary").focus()
        else:
            self.query_one("#btn-primary").focus()

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "btn-primary":
            self.dismiss(True)
        if event.button.id == "btn-secondary":
            self.dismiss(False)


class ErrorDialogModal(DialogModal):
    def __init__(self, title: str, message: str):
        super().__init__(message, tone="error", title=title)


class QuitDialogModal(DialogModal):
    def __init__(self):
        super().__init__("Are you sure you want to quit?", "Yes", "No", "error")

    @override
    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "btn-primary":
            self.post_message(QuitRequestedMessage())
            self.dismiss(True)
        else:
            self.dismiss(False)
