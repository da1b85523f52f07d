from typing import List, Optional

from textual import on, work
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.events import ScreenResume
from textual.widgets import Button, DataTable, Input, Label, TabbedContent, TabPane

from db.models import ProfileUpdate, User
from shop.errors import NotAuthorizedError, NotFoundError, PersistenceFailure
from utils.messages import ModeSwitchedMessage
from utils.pure import format_timestamp
from views.base_screen import BaseScreen


class AdminAccountsScreen(BaseScreen):
    """
    Account administration:
    - applicants waiting for approval
    - pending profile changes, approved or rejected by a colleague
    - a form to request a change to one's own profile
    """

    def __init__(self) -> None:
        super().__init__()
        self._applicants: List[User] = []
        self._updates: List[ProfileUpdate] = []

    def compose(self) -> ComposeResult:
        yield from super().compose()
        with TabbedContent():
            with TabPane("Applicants", id="tab-applicants"):
                with Vertical():
                    yield DataTable(id="table-applicants")
                    with Horizontal(id="hort-table-control"):
                        yield Button("Approve", id="btn-approve", variant="success")
            with TabPane("Profile Changes", id="tab-updates"):
                with Vertical():
                    yield DataTable(id="table-updates")
                    with Horizontal(id="hort-table-control"):
                        yield Button("Approve", id="btn-approve-update", variant="success")
                        yield Button("Reject", id="btn-reject-update", variant="error")
            with TabPane("My Profile", id="tab-profile"):
                with Vertical():
                    yield Label("", id="label-profile")
                    yield Label("New Name")
                    yield Input(id="input-profile-name", placeholder="leave blank to keep")
                    yield Label("New Phone")
                    yield Input(id="input-profile-phone", placeholder="leave blank to keep")
                    yield Button("Request Change", id="btn-request", variant="primary")

    def on_mount(self) -> None:
        applicants = self.query_one("#table-applicants", DataTable)
        applicants.cursor_type = "row"
        applicants.add_columns("Email", "Name", "Role")

        updates = self.query_one("#table-updates", DataTable)
        updates.cursor_type = "row"
        updates.add_columns("ID", "Requested", "Account", "Changes")

    @on(ModeSwitchedMessage)
    @on(ScreenResume)
    @work(exclusive=True, group="load")
    async def handle_reload(self) -> None:
        state = self.app.state
        try:
            self._applicants = await state.identity.list_applicants()
            self._updates = await state.identity.list_profile_updates()
        except PersistenceFailure as exc:
            self.notify(f"Accounts unavailable: {exc}", severity="warning")
            self._applicants, self._updates = [], []

        applicants = self.query_one("#table-applicants", DataTable)
        applicants.clear()
        for u in self._applicants:
            applicants.add_row(u.email, u.name or "-", u.role.value, key=u.email)
        self.query_one("#btn-approve", Button).disabled = not self._applicants

        updates = self.query_one("#table-updates", DataTable)
        updates.clear()
        for upd in self._updates:
            changes = ", ".join(f"{k}: {v}" for k, v in upd.changes.items())
            updates.add_row(
                upd.id, format_timestamp(upd.created_at), upd.email, changes, key=upd.id
            )
        self.query_one("#btn-approve-update", Button).disabled = not self._updates
        self.query_one("#btn-reject-update", Button).disabled = not self._updates

        user = state.session.user
        if user:
            self.query_one("#label-profile", Label).update(
                f"{user.email}: {user.name or '-'}, {user.phone or 'no phone'}"
            )

    @staticmethod
    def _cursor_key(table: DataTable) -> Optional[str]:
        if table.row_count == 0 or table.cursor_row is None:
            return None
        return table.get_row_at(table.cursor_row)[0]

    @on(Button.Pressed, "#btn-approve")
    @work(exclusive=True, group="edit")
    async def handle_approve(self) -> None:
        email = self._cursor_key(self.query_one("#table-applicants", DataTable))
        if email is None:
            return
        try:
            await self.app.state.identity.approve(self.app.state.session, email)
        except (NotAuthorizedError, NotFoundError, PersistenceFailure) as exc:
            self.notify(f"Approval failed: {exc}", severity="error")
            return
        self.notify(f"{email} can now log in.")
        self.handle_reload()

    @on(Button.Pressed, "#btn-approve-update")
    @work(exclusive=True, group="edit")
    async def handle_approve_update(self) -> None:
        update_id = self._cursor_key(self.query_one("#table-updates", DataTable))
        if update_id is None:
            return
        state = self.app.state
        try:
            user = await state.identity.approve_profile_update(
                state.session, update_id, sessions=(state.session,)
            )
        except (NotAuthorizedError, NotFoundError, PersistenceFailure) as exc:
            self.notify(f"Approval failed: {exc}", severity="error")
            return
        self.notify(f"Profile of {user.email} updated.")
        self.handle_reload()

    @on(Button.Pressed, "#btn-reject-update")
    @work(exclusive=True, group="edit")
    async def handle_reject_update(self) -> None:
        update_id = self._cursor_key(self.query_one("#table-updates", DataTable))
        if update_id is None:
            return
        try:
            await self.app.state.identity.reject_profile_update(
                self.app.state.session, update_id
            )
        except (NotAuthorizedError, NotFoundError, PersistenceFailure) as exc:
            self.notify(f"Reject failed: {exc}", severity="error")
            return
        self.notify(f"Change {update_id} rejected.")
        self.handle_reload()

    @on(Button.Pressed, "#btn-request")
    @work(exclusive=True, group="edit")
    async def handle_request(self) -> None:
        name_input = self.query_one("#input-profile-name", Input)
        phone_input = self.query_one("#input-profile-phone", Input)
        state = self.app.state
        try:
            update = await state.identity.request_profile_update(
                state.session, {"name": name_input.value, "phone": phone_input.value}
            )
        except ValueError as exc:
            self.notify(str(exc), severity="warning")
            return
        except (NotAuthorizedError, PersistenceFailure) as exc:
            self.notify(str(exc), severity="error")
            return

        name_input.value = ""
        phone_input.value = ""
        self.notify(f"Change {update.id} sent for approval.")
        self.handle_reload()
