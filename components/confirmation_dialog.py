"""Centered yes/no confirmation dialog."""
from textual.screen import ModalScreen
from textual.containers import Vertical
from textual.widgets import Label
from textual.binding import Binding


class ConfirmationDialog(ModalScreen[bool]):
    """Modal question with an optional warning line (unsaved take, held notes)."""

    BINDINGS = [
        Binding("y", "answer(True)", "Yes", show=False),
        Binding("enter", "answer(True)", "Confirm", show=False),
        Binding("n", "answer(False)", "No", show=False),
        Binding("escape", "answer(False)", "Cancel", show=False),
    ]

    CSS = """
    ConfirmationDialog {
        align: center middle;
    }

    #dialog {
        width: 52;
        height: auto;
        border: thick #66b6ff;
        background: #1a1a1a;
        padding: 1 2;
    }

    #message {
        width: 100%;
        content-align: center middle;
        color: #9ad8ff;
    }

    #detail {
        width: 100%;
        content-align: center middle;
        color: #ff8c69;
    }

    #options {
        width: 100%;
        content-align: center middle;
        margin-top: 1;
    }
    """

    def __init__(self, message: str, detail: str = ""):
        super().__init__()
        self.message = message
        self.detail = detail

    def compose(self):
        with Vertical(id="dialog"):
            yield Label(self.message, id="message")
            if self.detail:
                yield Label(self.detail, id="detail")
            yield Label("[Y]es  [N]o", id="options", markup=False)

    def action_answer(self, confirmed: bool):
        self.dismiss(confirmed)
