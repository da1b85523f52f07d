import json
import unittest

import httpx
from support import NOW

from db import crud
from db.remote import SupabaseTableStore
from shop.errors import PersistenceFailure

PRODUCT_ROW = {
    "id": 2,
    "title": "Electric Hair Clipper",
    "price": 450000,
    "offer_price": 399900,
    "offer_expires": "2026-03-02T12:00:00+00:00",
    "image_url": "",
    "stock": 30,
    "category": "Electronics",
    "created_at": "2026-01-01T00:00:00+00:00",
}


class SupabaseTableStoreTestCase(unittest.IsolatedAsyncioTestCase):
    def setUp(self):
        self.requests = []
        self.responses = []

        def handler(request: httpx.Request) -> httpx.Response:
            self.requests.append(request)
            return self.responses.pop(0)

        client = httpx.AsyncClient(
            base_url="https://demo.supabase.co/rest/v1",
            transport=httpx.MockTransport(handler),
        )
        self.store = SupabaseTableStore("https://demo.supabase.co", "anon-key", client=client)

    async def asyncTearDown(self):
        await self.store.aclose()

    async def test_select_builds_postgrest_query(self):
        self.responses.append(httpx.Response(200, json=[PRODUCT_ROW]))
        rows = await self.store.select(
            "products", {"category": "Electronics", "offer_price": None},
            order_by="id", descending=True, limit=5,
        )
        self.assertEqual(rows, [PRODUCT_ROW])

        request = self.requests[0]
        self.assertEqual(request.method, "GET")
        self.assertEqual(request.url.path, "/rest/v1/products")
        params = request.url.params
        self.assertEqual(params["select"], "*")
        self.assertEqual(params["category"], "eq.Electronics")
        self.assertEqual(params["offer_price"], "is.null")
        self.assertEqual(params["order"], "id.desc")
        self.assertEqual(params["limit"], "5")

    async def test_insert_returns_representation(self):
        self.responses.append(httpx.Response(201, json=[{"id": "MSG-X", "status": "New"}]))
        row = await self.store.insert("messages", {"id": "MSG-X", "date": NOW, "status": "New"})
        self.assertEqual(row["id"], "MSG-X")

        request = self.requests[0]
        self.assertEqual(request.method, "POST")
        self.assertEqual(request.headers["Prefer"], "return=representation")
        self.assertEqual(
            json.loads(request.content),
            [{"id": "MSG-X", "date": "2026-03-01T12:00:00+00:00", "status": "New"}],
        )

    async def test_update_and_delete_count_returned_rows(self):
        self.responses.append(httpx.Response(200, json=[{"id": "ORD-1"}]))
        self.responses.append(httpx.Response(200, json=[]))
        self.assertEqual(await self.store.update("orders", {"status": "Shipped"}, {"id": "ORD-1"}), 1)
        self.assertEqual(await self.store.delete("orders", {"id": "ORD-2"}), 0)
        self.assertEqual(self.requests[0].method, "PATCH")
        self.assertEqual(self.requests[0].url.params["id"], "eq.ORD-1")
        self.assertEqual(self.requests[1].method, "DELETE")

    async def test_booleans_are_encoded_for_filters(self):
        self.responses.append(httpx.Response(200, json=[]))
        await self.store.select("users", {"approved": False})
        self.assertEqual(self.requests[0].url.params["approved"], "eq.false")

    async def test_rejected_request_is_persistence_failure(self):
        self.responses.append(httpx.Response(401, json={"message": "bad key"}))
        with self.assertRaises(PersistenceFailure):
            await self.store.select("products")

    async def test_network_error_is_persistence_failure(self):
        def refuse(request):
            raise httpx.ConnectError("connection refused", request=request)

        store = SupabaseTableStore(
            "https://demo.supabase.co",
            "anon-key",
            client=httpx.AsyncClient(
                base_url="https://demo.supabase.co/rest/v1",
                transport=httpx.MockTransport(refuse),
            ),
        )
        with self.assertRaises(PersistenceFailure):
            await store.insert("messages", {"id": "MSG-X"})
        await store.aclose()

    async def test_unknown_column_never_sent(self):
        with self.assertRaises(ValueError):
            await self.store.select("products", {"secret": 1})
        self.assertEqual(self.requests, [])

    async def test_crud_maps_remote_rows(self):
        self.responses.append(httpx.Response(200, json=[PRODUCT_ROW]))
        product = await crud.get_product(self.store, 2)
        self.assertEqual(product.title, "Electric Hair Clipper")
        self.assertEqual(product.offer_price, 399900)
        self.assertEqual(product.offer_expires_at.isoformat(), "2026-03-02T12:00:00+00:00")
        self.assertEqual(self.requests[0].url.params["id"], "eq.2")
        self.assertEqual(self.requests[0].url.params["limit"], "1")

    def test_default_client_carries_api_key(self):
        store = SupabaseTableStore("https://demo.supabase.co/", "anon-key")
        self.assertEqual(str(store.client.base_url), "https://demo.supabase.co/rest/v1/")
        self.assertEqual(store.client.headers["apikey"], "anon-key")
        self.assertEqual(store.client.headers["Authorization"], "Bearer anon-key")
