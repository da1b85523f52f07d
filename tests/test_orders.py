import re
from datetime import timedelta

from support import (
    NOW,
    BrokenTableStore,
    Clock,
    FailingInsertStore,
    FlakyKeyValueStore,
    TempDatabaseTestCase,
    make_product,
    staff_session,
)

from db.models import Cart, CustomerDetails, OrderStatus, Role
from shop.cart import CartEngine
from shop.errors import (
    EmptyCartError,
    InvalidTransitionError,
    NotAuthorizedError,
    NotFoundError,
    PersistenceFailure,
)
from shop.orders import OrderLifecycle, parse_status, validate_customer
from shop.session import SessionContext

CUSTOMER = CustomerDetails(name="Jane Wanjiru", phone="0712345678", email="jane@example.com")


class OrderLifecycleTestCase(TempDatabaseTestCase):
    def setUp(self):
        super().setUp()
        self.clock = Clock()
        self.warnings = []
        self.orders = OrderLifecycle(
            self.store, clock=self.clock, on_warning=self.warnings.append
        )
        self.kv = FlakyKeyValueStore()
        self.cart = CartEngine(self.kv, clock=self.clock)
        self.admin = staff_session()

    async def fill_cart(self):
        await self.cart.add_item(make_product(1, price=250000), 2)
        await self.cart.add_item(
            make_product(2, price=450000, offer_price=399900, offer_expires_at=NOW + timedelta(hours=1))
        )

    # ---------- placing ----------

    async def test_place_order_from_empty_cart_fails_and_stores_nothing(self):
        with self.assertRaises(EmptyCartError):
            await self.orders.place_order(Cart(), CUSTOMER)
        with self.assertRaises(EmptyCartError):
            await self.orders.checkout(self.cart, CUSTOMER)
        self.assertEqual(await self.orders.list(), [])

    async def test_placed_order_copies_cart(self):
        await self.fill_cart()
        order = await self.orders.place_order(self.cart.snapshot(), CUSTOMER)

        self.assertRegex(order.id, r"^ORD-[0-9A-F]{12}$")
        self.assertEqual(order.status, OrderStatus.PENDING)
        self.assertEqual(order.created_at, NOW)
        self.assertEqual(order.total, 2 * 250000 + 399900)
        self.assertEqual(order.total, sum(line.line_total for line in order.lines))
        self.assertEqual(
            [(line.product_id, line.quantity, line.unit_price) for line in order.lines],
            [(1, 2, 250000), (2, 1, 399900)],
        )

        # later cart changes do not touch the stored order
        await self.cart.set_quantity(1, 9)
        stored = await self.orders.get(order.id)
        self.assertEqual(stored.lines, order.lines)
        self.assertEqual(stored.total, order.total)
        self.assertEqual(stored.customer, CUSTOMER)

    async def test_customer_name_and_phone_required(self):
        await self.fill_cart()
        with self.assertRaises(ValueError):
            await self.orders.place_order(
                self.cart.snapshot(), CustomerDetails(name=" ", phone="0712")
            )
        with self.assertRaises(ValueError):
            validate_customer(CustomerDetails(name="Jane", phone=""))
        self.assertEqual(
            validate_customer(CustomerDetails(name=" Jane ", phone=" 07 ")).name, "Jane"
        )

    async def test_checkout_clears_cart_after_order_is_stored(self):
        await self.fill_cart()
        order = await self.orders.checkout(self.cart, CUSTOMER)
        self.assertTrue(self.cart.is_empty)
        self.assertEqual((await self.orders.get(order.id)).total, order.total)

    async def test_failed_order_write_keeps_cart(self):
        await self.fill_cart()
        before = self.cart.lines
        orders = OrderLifecycle(FailingInsertStore("orders"), clock=self.clock)

        with self.assertRaises(PersistenceFailure):
            await orders.checkout(self.cart, CUSTOMER)
        self.assertEqual(self.cart.lines, before)
        self.assertEqual(await self.orders.list(), [])

    async def test_cart_clear_failure_still_returns_order(self):
        await self.fill_cart()
        self.kv.fail_writes = True
        order = await self.orders.checkout(self.cart, CUSTOMER)

        self.assertEqual((await self.orders.get(order.id)).id, order.id)
        self.assertFalse(self.cart.is_empty)
        self.assertEqual(len(self.warnings), 1)
        self.assertIn(order.id, self.warnings[0])

    # ---------- listing & lookup ----------

    async def test_list_is_most_recent_first(self):
        ids = []
        for minutes in (0, 5, 10):
            self.clock.now = NOW + timedelta(minutes=minutes)
            await self.cart.add_item(make_product(1))
            ids.append((await self.orders.checkout(self.cart, CUSTOMER)).id)

        self.assertEqual([o.id for o in await self.orders.list()], list(reversed(ids)))

    async def test_get_unknown_order(self):
        with self.assertRaises(NotFoundError):
            await self.orders.get("ORD-MISSING")

    async def test_unreachable_store_lists_nothing_with_warning(self):
        orders = OrderLifecycle(BrokenTableStore(), on_warning=self.warnings.append)
        self.assertEqual(await orders.list(), [])
        self.assertEqual(len(self.warnings), 1)

    # ---------- status ----------

    async def test_any_transition_allowed_by_default(self):
        await self.fill_cart()
        order = await self.orders.checkout(self.cart, CUSTOMER)

        shipped = await self.orders.set_status(self.admin, order.id, OrderStatus.SHIPPED)
        self.assertEqual(shipped.status, OrderStatus.SHIPPED)
        back = await self.orders.set_status(self.admin, order.id, "pending")
        self.assertEqual(back.status, OrderStatus.PENDING)
        self.assertEqual((await self.orders.get(order.id)).status, OrderStatus.PENDING)

    async def test_set_status_unknown_order(self):
        with self.assertRaises(NotFoundError):
            await self.orders.set_status(self.admin, "ORD-MISSING", OrderStatus.SHIPPED)

    async def test_strict_transitions(self):
        await self.fill_cart()
        order = await self.orders.checkout(self.cart, CUSTOMER)
        strict = OrderLifecycle(self.store, strict=True)

        await strict.set_status(self.admin, order.id, OrderStatus.PROCESSING)
        await strict.set_status(self.admin, order.id, OrderStatus.PROCESSING)
        await strict.set_status(self.admin, order.id, OrderStatus.SHIPPED)
        with self.assertRaises(InvalidTransitionError):
            await strict.set_status(self.admin, order.id, OrderStatus.PENDING)
        with self.assertRaises(InvalidTransitionError):
            await strict.set_status(self.admin, order.id, OrderStatus.CANCELLED)
        self.assertEqual((await strict.get(order.id)).status, OrderStatus.SHIPPED)

    async def test_set_status_needs_staff_session(self):
        await self.fill_cart()
        order = await self.orders.checkout(self.cart, CUSTOMER)

        for session in (SessionContext(), staff_session("ann@example.com", approved=False)):
            with self.assertRaises(NotAuthorizedError):
                await self.orders.set_status(session, order.id, OrderStatus.CANCELLED)
        self.assertEqual((await self.orders.get(order.id)).status, OrderStatus.PENDING)

        admin = staff_session("ann@example.com", role=Role.ADMIN)
        shipped = await self.orders.set_status(admin, order.id, OrderStatus.SHIPPED)
        self.assertEqual(shipped.status, OrderStatus.SHIPPED)

    def test_parse_status(self):
        self.assertIs(parse_status("Shipped"), OrderStatus.SHIPPED)
        self.assertIs(parse_status(" cancelled "), OrderStatus.CANCELLED)
        self.assertIs(parse_status(OrderStatus.PENDING), OrderStatus.PENDING)
        with self.assertRaises(ValueError):
            parse_status("Delivered")

    # ---------- summary ----------

    async def test_summary_excludes_cancelled_revenue(self):
        await self.cart.add_item(make_product(1, price=1000), 2)
        first = await self.orders.checkout(self.cart, CUSTOMER)
        self.clock.now = NOW + timedelta(days=10)
        await self.cart.add_item(make_product(3, price=500), 1)
        second = await self.orders.checkout(self.cart, CUSTOMER)
        await self.cart.add_item(make_product(4, price=700), 1)
        third = await self.orders.checkout(self.cart, CUSTOMER)
        await self.orders.set_status(self.admin, third.id, OrderStatus.CANCELLED)

        overall = await self.orders.summary()
        self.assertEqual(overall.order_count, 3)
        self.assertEqual(overall.revenue, first.total + second.total)
        self.assertEqual(overall.item_count, 3)
        self.assertEqual(overall.pending_count, 2)

        recent = await self.orders.summary(since=NOW + timedelta(days=1))
        self.assertEqual(recent.order_count, 2)
        self.assertEqual(recent.revenue, second.total)

    async def test_order_ids_are_unique(self):
        seen = set()
        for _ in range(5):
            await self.cart.add_item(make_product(1))
            seen.add((await self.orders.checkout(self.cart, CUSTOMER)).id)
        self.assertEqual(len(seen), 5)
        self.assertTrue(all(re.match(r"^ORD-", i) for i in seen))
