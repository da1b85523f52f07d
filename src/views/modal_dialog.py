from typing import Dict, Literal, Tuple

from typing_extensions import override

from textual import on
from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Container, Horizontal
from textual.screen import ModalScreen
from textual.widgets import Button, Label

from utils.messages import QuitRequestedMessage

Tone = Literal["default", "positive", "warning", "error"]
ButtonVariant = Literal["primary", "default", "success", "warning", "error"]

# (confirm button, cancel button) per tone
TONE_VARIANTS: Dict[Tone, Tuple[ButtonVariant, ButtonVariant]] = {
    "default": ("primary", "default"),
    "positive": ("success", "default"),
    "warning": ("warning", "default"),
    "error": ("error", "primary"),
}


class DialogModal(ModalScreen[bool]):
    """
    Message or yes/no question over the current screen.
    Dismisses with True when confirmed, False when cancelled or escaped.
    """

    BINDINGS = [Binding("escape", "cancel", "Cancel", show=False)]

    def __init__(
        self,
        caption: str,
        confirm_label: str = "OK",
        cancel_label: str = "",
        tone: Tone = "default",
        detail: str = "",
    ):
        super().__init__()
        self.caption = caption
        self.detail = detail
        self.confirm_label = confirm_label
        self.cancel_label = cancel_label
        self.tone = tone

    def compose(self) -> ComposeResult:
        confirm_variant, cancel_variant = TONE_VARIANTS[self.tone]
        with Container(id="div-dialog"):
            yield Label(self.caption, id="caption")
            if self.detail:
                yield Label(self.detail, id="detail")
            with Horizontal(id="dialog"):
                if self.cancel_label:
                    yield Button(self.cancel_label, variant=cancel_variant, id="btn-cancel")
                yield Button(self.confirm_label, variant=confirm_variant, id="btn-confirm")

    def on_mount(self):
        # destructive questions start on the safe answer
        if self.cancel_label and self.tone == "error":
            self.query_one("#btn-cancel").focus()
        else:
            self.query_one("#btn-confirm").focus()

    @on(Button.Pressed, "#btn-confirm")
    def handle_confirm(self) -> None:
        self.confirmed()

    def confirmed(self) -> None:
        self.dismiss(True)

    @on(Button.Pressed, "#btn-cancel")
    def action_cancel(self) -> None:
        self.dismiss(False)


class SimpleDialogModal(DialogModal):
    def __init__(self, caption: str, detail: str = ""):
        super().__init__(caption, detail=detail)


class ConfirmDialogModal(DialogModal):
    def __init__(self, caption: str, tone: Tone = "warning"):
        super().__init__(caption, "Yes", "No", tone)


class QuitDialogModal(ConfirmDialogModal):
    def __init__(self):
        super().__init__("Are you sure you want to quit?", tone="error")

    @override
    def confirmed(self) -> None:
        self.app.post_message(QuitRequestedMessage())
        self.dismiss(True)
