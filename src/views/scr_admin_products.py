from __future__ import annotations

import dataclasses
from typing import List, Optional

from textual import on, work
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical
from textual.validation import Number
from textual.widgets import Button, Input, Label, MarkdownViewer, OptionList
from textual.widgets.option_list import Option

from db.models import Product
from shop.errors import NotAuthorizedError, NotFoundError, PersistenceFailure
from utils.pure import (
    format_money,
    format_timestamp,
    expiry_in_hours,
    generate_markdown_table,
    parse_money,
)
from views.base_screen import BaseScreen
from views.modal_dialog import ConfirmDialogModal


class AdminProductsScreen(BaseScreen):
    """
    Administrators search the catalog, then edit a product's details,
    put it on offer, or delete it. "New Product" starts from a blank form.
    """

    current_pid: Optional[int] = None

    def compose(self) -> ComposeResult:
        yield from super().compose()
        with Vertical():
            with Horizontal(id="hort-search"):
                yield Input(id="input-search", placeholder="Search for product...")
                yield Button("New Product", id="btn-new", variant="primary")
            yield OptionList(id="optlist-prods")
            yield MarkdownViewer(id="md-prod", show_table_of_contents=False)
            with Vertical(id="div-controls"):
                with Horizontal(classes="form-row"):
                    with Vertical():
                        yield Label("Title")
                        yield Input(id="input-title")
                    with Vertical():
                        yield Label("Category")
                        yield Input(id="input-category")
                    with Vertical():
                        yield Label("Image URL")
                        yield Input(id="input-image")
                with Horizontal(classes="form-row"):
                    with Vertical():
                        yield Label("Price (KES)")
                        yield Input(id="input-price", placeholder="2,500.00")
                    with Vertical():
                        yield Label("Stock")
                        yield Input(
                            id="input-stock",
                            type="integer",
                            validators=[Number(minimum=0)],
                        )
                    with Horizontal(classes="div-button"):
                        yield Button("Save", id="btn-save", variant="success")
                        yield Button("Delete", id="btn-delete", variant="error")
                with Horizontal(classes="form-row", id="div-offer"):
                    with Vertical():
                        yield Label("Offer Price (KES)")
                        yield Input(id="input-offer-price")
                    with Vertical():
                        yield Label("Offer Runs For (hours)")
                        yield Input(
                            id="input-offer-hours",
                            value="24",
                            type="number",
                            validators=[Number(minimum=0.1)],
                        )
                    with Horizontal(classes="div-button"):
                        yield Button("Set Offer", id="btn-set-offer", variant="success")
                        yield Button("End Offer", id="btn-clear-offer", variant="warning")

    def on_mount(self) -> None:
        self.query_one("#input-search", Input).focus()
        self.query_one("#optlist-prods").add_class("hidden")
        self.query_one("#md-prod").add_class("hidden")
        self.query_one("#div-controls").add_class("hidden")

    def on_input_changed(self, message: Input.Changed) -> None:
        if message.input.id == "input-search":
            self.query_one("#optlist-prods").remove_class("hidden")
            self.update_optlist(message.value)

    def on_option_list_option_selected(self, message: OptionList.OptionSelected):
        self.current_pid = int(message.option.id)
        self.render_product()

        self.query_one("#optlist-prods").add_class("hidden")
        self.query_one("#md-prod").remove_class("hidden")
        self.query_one("#div-controls").remove_class("hidden")

    @work(exclusive=True, group="search")
    async def update_optlist(self, query: str):
        """
        fill option list with search results
        """
        results: List[Product] = await self.app.state.catalog.search(query)

        opt_list = self.query_one("#optlist-prods", OptionList)
        opt_list.clear_options()
        opt_list.add_options(
            [Option(f"{p.id} {p.title} ({format_money(p.price)})", id=str(p.id)) for p in results]
        )

    @on(Button.Pressed, "#btn-new")
    def handle_new(self) -> None:
        self.current_pid = None
        for input_id in ("#input-title", "#input-category", "#input-image", "#input-price"):
            self.query_one(input_id, Input).value = ""
        self.query_one("#input-stock", Input).value = "0"
        self.query_one("#input-offer-price", Input).value = ""
        self.query_one("#md-prod", MarkdownViewer).document.update("### New Product")
        self.query_one("#div-offer").add_class("hidden")
        self.query_one("#btn-delete").display = False

        self.query_one("#optlist-prods").add_class("hidden")
        self.query_one("#md-prod").remove_class("hidden")
        self.query_one("#div-controls").remove_class("hidden")
        self.query_one("#input-title", Input).focus()

    @work(exclusive=True, group="render")
    async def render_product(self) -> None:
        catalog = self.app.state.catalog
        prod = await catalog.get(self.current_pid)
        if prod is None:
            self.notify(f"Product {self.current_pid} was not found.", severity="error")
            self.query_one("#div-controls").add_class("hidden")
            return

        rows = [
            ["ID", prod.id],
            ["Category", prod.category or "-"],
            ["Price", format_money(prod.price)],
            ["Stock", prod.stock],
            ["Image", prod.image or "-"],
        ]
        if prod.offer_price is not None:
            state = "active" if catalog.has_offer(prod) else "expired"
            rows.append(["Offer", f"{format_money(prod.offer_price)} ({state})"])
            rows.append(["Offer ends", format_timestamp(prod.offer_expires_at)])
        rows.append(["Customers pay", format_money(catalog.price_of(prod))])
        md_table = generate_markdown_table(["Attribute", "Value"], rows, ["l", "l"])
        await self.query_one("#md-prod", MarkdownViewer).document.update(
            f"### Product Detail: {prod.title}\n\n" + md_table
        )

        # prefill inputs with current values for convenience
        self.query_one("#input-title", Input).value = prod.title
        self.query_one("#input-category", Input).value = prod.category
        self.query_one("#input-image", Input).value = prod.image
        self.query_one("#input-price", Input).value = format_money(prod.price)
        self.query_one("#input-stock", Input).value = str(prod.stock)
        self.query_one("#input-offer-price", Input).value = (
            format_money(prod.offer_price) if prod.offer_price is not None else ""
        )
        self.query_one("#div-offer").remove_class("hidden")
        self.query_one("#btn-delete").display = True

    def _form_product(self) -> Optional[Product]:
        price_input = self.query_one("#input-price", Input)
        stock_input = self.query_one("#input-stock", Input)
        try:
            price = parse_money(price_input.value)
        except ValueError as exc:
            price_input.focus()
            price_input.add_class("-invalid")
            self.notify(str(exc), severity="error")
            return None
        if not stock_input.value.strip().isdigit():
            stock_input.focus()
            stock_input.add_class("-invalid")
            self.notify("Stock must be a whole number.", severity="error")
            return None

        return Product(
            id=self.current_pid or 0,
            title=self.query_one("#input-title", Input).value.strip(),
            price=price,
            stock=int(stock_input.value),
            category=self.query_one("#input-category", Input).value.strip(),
            image=self.query_one("#input-image", Input).value.strip(),
        )

    @on(Button.Pressed, "#btn-save")
    @work(exclusive=True, group="edit")
    async def handle_save(self) -> None:
        form = self._form_product()
        if form is None:
            return

        catalog = self.app.state.catalog
        if self.current_pid:
            current = await catalog.get(self.current_pid)
            if current is None:
                self.notify("This product no longer exists.", severity="error")
                return
            # editing details keeps whatever offer is set
            form = dataclasses.replace(
                form,
                offer_price=current.offer_price,
                offer_expires_at=current.offer_expires_at,
            )
            if form == current:
                self.notify("Nothing to update.", severity="warning")
                return

        try:
            saved = await catalog.save(self.app.state.session, form)
        except ValueError as exc:
            self.notify(str(exc), severity="error")
            return
        except (NotAuthorizedError, NotFoundError, PersistenceFailure) as exc:
            self.notify(f"Save failed: {exc}", severity="error")
            return

        self.notify(f"Product {saved.id} saved.")
        self.current_pid = saved.id
        self.render_product()

    @on(Button.Pressed, "#btn-delete")
    @work(exclusive=True, group="edit")
    async def handle_delete(self) -> None:
        if not self.current_pid:
            return
        if not await self.app.push_screen_wait(
            ConfirmDialogModal(f"Delete product {self.current_pid}?", tone="error")
        ):
            return
        try:
            await self.app.state.catalog.delete(
                self.app.state.session, self.current_pid
            )
        except (NotAuthorizedError, NotFoundError, PersistenceFailure) as exc:
            self.notify(f"Delete failed: {exc}", severity="error")
            return

        self.notify(f"Product {self.current_pid} deleted.")
        self.current_pid = None
        self.query_one("#md-prod").add_class("hidden")
        self.query_one("#div-controls").add_class("hidden")
        self.update_optlist(self.query_one("#input-search", Input).value)

    @on(Button.Pressed, "#btn-set-offer")
    @work(exclusive=True, group="edit")
    async def handle_set_offer(self) -> None:
        if not self.current_pid:
            return
        offer_input = self.query_one("#input-offer-price", Input)
        hours_input = self.query_one("#input-offer-hours", Input)
        try:
            offer_price = parse_money(offer_input.value)
            hours = float(hours_input.value)
        except ValueError as exc:
            self.notify(str(exc), severity="error")
            return
        if hours <= 0:
            hours_input.add_class("-invalid")
            self.notify("The offer must run for some time.", severity="error")
            return

        try:
            prod = await self.app.state.catalog.set_offer(
                self.app.state.session,
                self.current_pid,
                offer_price,
                expiry_in_hours(hours),
            )
        except ValueError as exc:
            self.notify(str(exc), severity="error")
            return
        except (NotAuthorizedError, NotFoundError, PersistenceFailure) as exc:
            self.notify(f"Offer not saved: {exc}", severity="error")
            return

        self.notify(
            f"{prod.title} on offer at {format_money(offer_price)} "
            f"until {format_timestamp(prod.offer_expires_at)}."
        )
        self.render_product()

    @on(Button.Pressed, "#btn-clear-offer")
    @work(exclusive=True, group="edit")
    async def handle_clear_offer(self) -> None:
        if not self.current_pid:
            return
        try:
            await self.app.state.catalog.clear_offer(
                self.app.state.session, self.current_pid
            )
        except (NotAuthorizedError, NotFoundError, PersistenceFailure) as exc:
            self.notify(f"Offer not cleared: {exc}", severity="error")
            return
        self.notify("Offer ended.")
        self.render_product()
