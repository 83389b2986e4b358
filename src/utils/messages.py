from textual.message import Message


class QuitRequestedMessage(Message):
    """
    broadcasted when the app is about to quit
    """

    bubble = True


class ViewModelChangedMessage(Message):
    """
    Posted when a view-model property changes, so the screen re-renders
    on its own message loop instead of inside the view-model callback.
    """

    bubble = True

    def __init__(self, source: object, name: str) -> None:
        super().__init__()
        self.source = source
        self.name = name
