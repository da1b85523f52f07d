from typing import List, Optional

from textual import on, work
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.events import ScreenResume
from textual.widgets import (
    Button,
    DataTable,
    Label,
    MarkdownViewer,
    TabbedContent,
    TabPane,
    TextArea,
)

from db.models import Message
from shop.errors import NotAuthorizedError, NotFoundError, PersistenceFailure
from utils.messages import ModeSwitchedMessage
from utils.pure import format_timestamp
from views.base_screen import BaseScreen


class AdminInboxScreen(BaseScreen):
    """
    Customer messages, and the about-us / contact text shown on the contact page.
    """

    def __init__(self) -> None:
        super().__init__()
        self._messages: List[Message] = []

    def compose(self) -> ComposeResult:
        yield from super().compose()
        with TabbedContent():
            with TabPane("Messages", id="tab-messages"):
                with Vertical():
                    yield DataTable(id="table-messages")
                    yield MarkdownViewer(id="md-message", show_table_of_contents=False)
                    with Horizontal(id="hort-table-control"):
                        yield Button("Refresh", id="btn-refresh")
                        yield Button("Mark as Read", id="btn-mark-read", variant="success")
            with TabPane("Page Content", id="tab-content"):
                with Vertical():
                    yield Label("About Us (markdown)")
                    yield TextArea(id="textarea-about")
                    yield Label("Contact Info (markdown)")
                    yield TextArea(id="textarea-contact")
                    yield Button("Save Content", id="btn-save-content", variant="primary")

    def on_mount(self) -> None:
        table = self.query_one(DataTable)
        table.cursor_type = "row"
        table.zebra_stripes = True
        table.add_columns("ID", "Received", "From", "Email", "Status")

    @on(Button.Pressed, "#btn-refresh")
    @on(ModeSwitchedMessage)
    @on(ScreenResume)
    @work(exclusive=True, group="load")
    async def handle_reload(self) -> None:
        inbox = self.app.state.inbox
        self._messages = await inbox.list()

        table = self.query_one(DataTable)
        table.clear()
        for m in self._messages:
            table.add_row(
                m.id, format_timestamp(m.created_at), m.name, m.email, m.status, key=m.id
            )
        self._show_message(self._highlighted())

    @on(ModeSwitchedMessage)
    @on(ScreenResume)
    @work(exclusive=True, group="content")
    async def load_content(self) -> None:
        content = await self.app.state.inbox.get_content()
        self.query_one("#textarea-about", TextArea).load_text(content.get("about_us", ""))
        self.query_one("#textarea-contact", TextArea).load_text(
            content.get("contact_info", "")
        )

    def _highlighted(self) -> Optional[Message]:
        table = self.query_one(DataTable)
        if table.row_count == 0 or table.cursor_row is None:
            return None
        message_id = table.get_row_at(table.cursor_row)[0]
        return next((m for m in self._messages if m.id == message_id), None)

    @on(DataTable.RowHighlighted)
    def handle_row_highlight(self) -> None:
        self._show_message(self._highlighted())

    def _show_message(self, message: Optional[Message]) -> None:
        viewer = self.query_one("#md-message", MarkdownViewer)
        self.query_one("#btn-mark-read", Button).disabled = (
            message is None or message.status != "New"
        )
        if message is None:
            viewer.document.update("### No messages.")
            return
        viewer.document.update(
            f"### From {message.name} <{message.email}>\n"
            f"Received {format_timestamp(message.created_at)}\n\n"
            f"{message.body}"
        )

    @on(Button.Pressed, "#btn-mark-read")
    @work(exclusive=True, group="edit")
    async def handle_mark_read(self) -> None:
        message = self._highlighted()
        if message is None:
            return
        try:
            await self.app.state.inbox.mark_read(self.app.state.session, message.id)
        except (NotAuthorizedError, NotFoundError, PersistenceFailure) as exc:
            self.notify(f"Could not update message: {exc}", severity="error")
            return
        self.notify(f"Message {message.id} marked as read.")
        self.handle_reload()

    @on(Button.Pressed, "#btn-save-content")
    @work(exclusive=True, group="edit")
    async def handle_save_content(self) -> None:
        try:
            await self.app.state.inbox.save_content(
                self.app.state.session,
                about_us=self.query_one("#textarea-about", TextArea).text,
                contact_info=self.query_one("#textarea-contact", TextArea).text,
            )
        except (NotAuthorizedError, PersistenceFailure) as exc:
            self.notify(f"Content not saved: {exc}", severity="error")
            return
        self.notify("Page content saved.")
