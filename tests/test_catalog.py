import dataclasses
import unittest
from datetime import datetime, timedelta

from support import (
    NOW,
    BrokenTableStore,
    Clock,
    TempDatabaseTestCase,
    make_product,
    staff_session,
)

from shop.catalog import Catalog, effective_price, offer_is_active, validate_product
from shop.errors import NotAuthorizedError, NotFoundError, PersistenceFailure
from shop.session import SessionContext


class EffectivePriceTestCase(unittest.TestCase):
    def test_no_offer(self):
        self.assertEqual(effective_price(make_product(price=1000), NOW), 1000)

    def test_active_offer(self):
        p = make_product(price=1000, offer_price=800, offer_expires_at=NOW + timedelta(seconds=1))
        self.assertTrue(offer_is_active(p, NOW))
        self.assertEqual(effective_price(p, NOW), 800)

    def test_offer_ends_at_expiry_instant(self):
        p = make_product(price=1000, offer_price=800, offer_expires_at=NOW)
        self.assertFalse(offer_is_active(p, NOW))
        self.assertEqual(effective_price(p, NOW), 1000)
        self.assertEqual(effective_price(p, NOW - timedelta(seconds=1)), 800)

    def test_offer_without_expiry_is_ignored(self):
        p = make_product(price=1000, offer_price=800)
        self.assertEqual(effective_price(p, NOW), 1000)

    def test_validate_product(self):
        validate_product(make_product(price=0, stock=0))
        for bad in (
            make_product(title=" "),
            make_product(price=-1),
            make_product(stock=-1),
            make_product(price=1000, offer_price=1000),
            make_product(price=1000, offer_price=-5),
        ):
            with self.assertRaises(ValueError):
                validate_product(bad)


class CatalogTestCase(TempDatabaseTestCase):
    def setUp(self):
        super().setUp()
        self.clock = Clock(datetime.now(NOW.tzinfo))
        self.catalog = Catalog(self.store, clock=self.clock)
        self.admin = staff_session()

    async def test_seeded_products(self):
        products = await self.catalog.list()
        self.assertEqual([p.id for p in products], list(range(1, 11)))
        shears = await self.catalog.require(1)
        self.assertEqual(shears.title, "Professional Barber Shears")
        self.assertEqual(shears.price, 250000)

        clipper = await self.catalog.get(2)
        self.assertTrue(self.catalog.has_offer(clipper))
        self.assertEqual(self.catalog.price_of(clipper), 399900)

    async def test_missing_product(self):
        self.assertIsNone(await self.catalog.get(999))
        with self.assertRaises(NotFoundError):
            await self.catalog.require(999)
        with self.assertRaises(NotFoundError):
            await self.catalog.delete(self.admin, 999)

    async def test_search(self):
        self.assertEqual(len(await self.catalog.search("")), 10)
        self.assertEqual([p.id for p in await self.catalog.search("7")], [7])
        self.assertEqual(
            [p.id for p in await self.catalog.search("grooming")], [3, 5, 7]
        )
        # exact phrase first, then single words, no duplicates
        ids = [p.id for p in await self.catalog.search("hair dryer")]
        self.assertEqual(ids[0], 6)
        self.assertIn(2, ids)
        self.assertEqual(len(ids), len(set(ids)))
        self.assertEqual(await self.catalog.search("unicorn"), [])

    async def test_save_new_and_existing(self):
        created = await self.catalog.save(
            self.admin,
            make_product(0, title="Comb Set", price=15000, stock=12, category="Tools"),
        )
        self.assertGreater(created.id, 10)
        self.assertEqual((await self.catalog.require(created.id)).title, "Comb Set")

        edited = await self.catalog.save(self.admin, dataclasses.replace(created, stock=3))
        self.assertEqual(edited.stock, 3)

        with self.assertRaises(ValueError):
            await self.catalog.save(self.admin, dataclasses.replace(created, price=-1))
        with self.assertRaises(NotFoundError):
            await self.catalog.save(self.admin, make_product(555))

    async def test_restock_and_delete(self):
        self.assertEqual((await self.catalog.restock(self.admin, 4, 7)).stock, 7)
        with self.assertRaises(ValueError):
            await self.catalog.restock(self.admin, 4, -1)
        await self.catalog.delete(self.admin, 4)
        self.assertIsNone(await self.catalog.get(4))

    async def test_offers(self):
        expires = self.clock.now + timedelta(hours=6)
        p = await self.catalog.set_offer(self.admin, 1, 200000, expires)
        self.assertEqual(p.offer_price, 200000)
        self.assertEqual(p.offer_expires_at, expires)
        self.assertEqual(self.catalog.price_of(p), 200000)

        self.clock.now = expires
        self.assertEqual(self.catalog.price_of(p), 250000)

        cleared = await self.catalog.clear_offer(self.admin, 1)
        self.assertIsNone(cleared.offer_price)
        self.assertIsNone(cleared.offer_expires_at)

    async def test_offer_validation(self):
        later = self.clock.now + timedelta(hours=1)
        with self.assertRaises(ValueError):
            await self.catalog.set_offer(self.admin, 1, 300000, later)
        with self.assertRaises(ValueError):
            await self.catalog.set_offer(
                self.admin, 1, 100, self.clock.now - timedelta(seconds=1)
            )
        with self.assertRaises(ValueError):
            await self.catalog.set_offer(self.admin, 1, 100, later.replace(tzinfo=None))
        with self.assertRaises(NotFoundError):
            await self.catalog.set_offer(self.admin, 999, 100, later)

    async def test_unreachable_store_degrades_reads(self):
        warnings = []
        catalog = Catalog(BrokenTableStore(), on_warning=warnings.append)
        self.assertEqual(await catalog.list(), [])
        self.assertEqual(await catalog.search("shears"), [])
        self.assertIsNone(await catalog.get(1))
        self.assertEqual(len(warnings), 3)

        with self.assertRaises(PersistenceFailure):
            await catalog.save(staff_session(), make_product(1))

    async def test_admin_writes_refuse_customer_sessions(self):
        expires = self.clock.now + timedelta(hours=6)
        for session in (SessionContext(), staff_session(approved=False)):
            with self.assertRaises(NotAuthorizedError):
                await self.catalog.save(session, make_product(0, title="Sneaky"))
            with self.assertRaises(NotAuthorizedError):
                await self.catalog.delete(session, 1)
            with self.assertRaises(NotAuthorizedError):
                await self.catalog.restock(session, 1, 0)
            with self.assertRaises(NotAuthorizedError):
                await self.catalog.set_offer(session, 1, 100, expires)
            with self.assertRaises(NotAuthorizedError):
                await self.catalog.clear_offer(session, 2)

        # nothing was written
        self.assertEqual(len(await self.catalog.list()), 10)
        shears = await self.catalog.require(1)
        self.assertEqual(shears.stock, 50)
        self.assertIsNone(shears.offer_price)
        self.assertTrue(self.catalog.has_offer(await self.catalog.require(2)))
