from textual import on, work
from textual.app import ComposeResult
from textual.containers import Container, Horizontal, Vertical
from textual.events import Key
from textual.screen import ModalScreen
from textual.widgets import Button, Input, Label, TabbedContent, TabPane

from shop.errors import (
    DuplicateAccountError,
    InvalidCredentialsError,
    PendingApprovalError,
    PersistenceFailure,
)
from utils.messages import UserLoginMessage
from views.modal_dialog import SimpleDialogModal


class LoginModal(ModalScreen[bool]):
    """
    Administrator login, plus a sign-up tab for applicants.
    Dismisses with True when an administrator logged in.
    """

    def compose(self) -> ComposeResult:
        with TabbedContent(id="super-tab-loginscr"):
            with TabPane("Login", id="tab-login"):
                with Vertical(id="div-login"):
                    yield Label("Email")
                    yield Input(placeholder="owner@biltone.com", id="input-login-email")
                    yield Label("Password")
                    yield Input(
                        placeholder="*********", password=True, id="input-login-pwd"
                    )
                    with Horizontal(id="div-login-btns"):
                        yield Button("Back to Shop", id="btn-back")
                        yield Button("Login", id="btn-login", variant="primary")

            with TabPane("Apply for Access", id="tab-signup"):
                with Vertical(id="div-reg"):
                    yield Label("Name")
                    yield Input(placeholder="Jane Doe", id="input-reg-name")
                    yield Label("Email")
                    yield Input(placeholder="user@example.com", id="input-reg-email")
                    yield Label("Password")
                    yield Input(
                        placeholder="*********", password=True, id="input-reg-pwd"
                    )
                    with Container(id="div-reg-btns"):
                        yield Button("Apply", id="btn-reg", variant="primary")

    def on_mount(self):
        self.query_one("#input-login-email").focus()

    def on_key(self, event: Key) -> None:
        if event.key == "escape":
            self.dismiss(False)
        if event.key == "enter" and self.focused == self.query_one("#input-login-pwd"):
            self.handle_login_submit()
        if event.key == "enter" and self.focused == self.query_one("#input-reg-pwd"):
            self.handle_registration_submit()

    @on(Button.Pressed, "#btn-login")
    @work(exclusive=True)
    async def handle_login_submit(self) -> None:
        email = self.query_one("#input-login-email", Input).value.strip()
        pwd = self.query_one("#input-login-pwd", Input).value

        if not email or not pwd:
            self.notify("Email or password cannot be empty!", severity="error")
            return

        state = self.app.state
        input_login_pwd = self.query_one("#input-login-pwd", Input)
        try:
            user = await state.identity.login(state.session, email, pwd)
        except PendingApprovalError:
            self.notify(
                "Your account is waiting for approval by the owner.",
                title="Pending approval",
                severity="warning",
            )
            return
        except InvalidCredentialsError:
            self.notify("Invalid email or password.", severity="error")
            input_login_pwd.value = ""
            input_login_pwd.focus()
            input_login_pwd.add_class("-invalid")
            return
        except PersistenceFailure:
            self.notify("Login is unavailable right now, try again.", severity="error")
            return

        self.notify(f"Hello {user.name or user.email}!")
        self.app.post_message(UserLoginMessage())
        self.dismiss(True)

    @on(Button.Pressed, "#btn-reg")
    @work(exclusive=True)
    async def handle_registration_submit(self) -> None:
        name = self.query_one("#input-reg-name", Input).value.strip()
        email = self.query_one("#input-reg-email", Input).value.strip()
        pwd = self.query_one("#input-reg-pwd", Input).value

        if not name or not email or not pwd:
            self.notify("Make sure all inputs are filled.", severity="error")
            return

        try:
            await self.app.state.identity.register_applicant(email, pwd, name)
        except DuplicateAccountError:
            self.notify("Email already registered.", severity="error")
            return
        except (ValueError, PersistenceFailure) as exc:
            self.notify(str(exc), severity="error")
            return

        await self.app.push_screen_wait(
            SimpleDialogModal(
                "Application received.",
                detail="You can log in once the owner approves your account.",
            )
        )
        self.query_one(TabbedContent).active = "tab-login"
        self.query_one("#input-login-email", Input).value = email
        self.query_one("#input-login-pwd", Input).focus()

    @on(Button.Pressed, "#btn-back")
    def handle_back(self) -> None:
        self.dismiss(False)
