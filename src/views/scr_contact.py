from textual import on, work
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.events import ScreenResume
from textual.widgets import Button, Input, Label, MarkdownViewer, TextArea

from shop.errors import PersistenceFailure
from views.base_screen import BaseScreen


class ContactScreen(BaseScreen):
    """
    About-us page and a contact form that lands in the admin inbox.
    """

    def compose(self) -> ComposeResult:
        yield from super().compose()
        with Horizontal():
            yield MarkdownViewer(id="md-about", show_table_of_contents=False)
            with Vertical(id="div-contact-form"):
                yield Label("Your Name")
                yield Input(placeholder="Jane Doe", id="input-msg-name")
                yield Label("Your Email")
                yield Input(placeholder="user@example.com", id="input-msg-email")
                yield Label("Message")
                yield TextArea(id="textarea-msg-body")
                yield Button("Send Message", id="btn-send", variant="primary")

    @on(ScreenResume)
    @work(exclusive=True)
    async def load_content(self) -> None:
        content = await self.app.state.inbox.get_content()
        md = content.get("about_us") or "# About Us"
        if content.get("contact_info"):
            md += "\n\n" + content["contact_info"]
        await self.query_one("#md-about", MarkdownViewer).document.update(md)

    @on(Button.Pressed, "#btn-send")
    @work(exclusive=True)
    async def handle_send(self) -> None:
        name_input = self.query_one("#input-msg-name", Input)
        email_input = self.query_one("#input-msg-email", Input)
        body_area = self.query_one("#textarea-msg-body", TextArea)

        try:
            await self.app.state.inbox.send(
                name_input.value, email_input.value, body_area.text
            )
        except ValueError as exc:
            self.notify(str(exc), severity="error")
            return
        except PersistenceFailure:
            self.notify("Message could not be sent, please try again.", severity="error")
            return

        name_input.value = ""
        email_input.value = ""
        body_area.load_text("")
        self.notify("Thank you! We will get back to you soon.")
