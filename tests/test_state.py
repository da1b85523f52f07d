import os

from support import TempDatabaseTestCase, make_product

from db import database as db_database
from db.kvstore import MemoryKeyValueStore
from db.remote import SupabaseTableStore
from db.tables import SqliteTableStore
from utils.config import Settings
from utils.state import AppState


class AppStateTestCase(TempDatabaseTestCase):
    async def test_start_bootstraps_owner_and_restores_cart(self):
        kv = MemoryKeyValueStore()
        settings = Settings(db_path=self.db_path, owner_password="owner-pw")

        first = AppState.from_settings(settings, kv=kv)
        self.assertIsInstance(first.store, SqliteTableStore)
        await first.start()
        await first.cart.add_item(make_product(1, price=1000), 3)

        # same device, new run
        second = AppState.from_settings(settings, kv=kv)
        await second.start()
        self.assertEqual(second.cart.count(), 3)
        self.assertEqual(second.cart.total(), 3000)

        self.assertFalse(second.is_staff)
        await second.identity.login(second.session, settings.owner_email, "owner-pw")
        self.assertTrue(second.is_staff)
        self.assertEqual(second.role.value, "owner")

    async def test_without_owner_password_no_user_is_created(self):
        state = AppState.from_settings(Settings(db_path=self.db_path), kv=MemoryKeyValueStore())
        await state.start()
        self.assertEqual(await state.store.select("users"), [])

    async def test_warnings_reach_listener(self):
        state = AppState.from_settings(Settings(db_path=self.db_path), kv=MemoryKeyValueStore())
        heard = []
        state.warning_listener = heard.append
        await state.kv.set(state.settings.cart_key, b"garbage")
        await state.start()

        self.assertEqual(len(state.warnings), 1)
        self.assertEqual(heard, state.warnings)
        self.assertTrue(state.cart.is_empty)

    async def test_supabase_backend_selected(self):
        settings = Settings(
            db_path=self.db_path,
            backend="supabase",
            supabase_url="https://demo.supabase.co",
            supabase_key="anon",
        )
        state = AppState.from_settings(settings, kv=MemoryKeyValueStore())
        self.assertIsInstance(state.store, SupabaseTableStore)
        await state.close()

    async def test_configured_database_path_is_used(self):
        other = os.path.join(self.temp_dir.name, "shop", "biltone.sqlite")
        state = AppState.from_settings(Settings(db_path=other))
        self.assertEqual(db_database.DB_PATH, other)

        await state.start()
        await state.cart.add_item(make_product(1, price=1000))
        self.assertTrue(os.path.exists(other))
        # a fresh file is seeded like the default one
        self.assertEqual(len(await state.catalog.list()), 10)

        again = AppState.from_settings(Settings(db_path=other))
        await again.start()
        self.assertEqual(again.cart.count(), 1)
