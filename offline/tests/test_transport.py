import asyncio
import unittest

from aiohttp import web
from aiohttp.test_utils import TestServer

from offline.exceptions import NetworkError
from offline.transport import HttpBatchTransport

ITEM = {
    "entity_type": "inspection",
    "entity_id": None,
    "client_uuid": "u1",
    "action": "create",
    "payload_json": {"hive_id": "h1"},
}


class HttpBatchTransportTests(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.requests = []
        self.reply = lambda body: web.json_response(
            {"results": [{"client_uuid": i["client_uuid"], "status": "synced", "server_id": "S1"} for i in body["items"]]}
        )

        app = web.Application()
        app.router.add_post("/api/v1/sync/queue/", self.handle)
        self.server = TestServer(app)
        await self.server.start_server()
        self.transport = HttpBatchTransport(str(self.server.make_url("/api/v1")), access_token="access-token")

    async def asyncTearDown(self):
        await self.transport.close()
        await self.server.close()

    async def handle(self, request):
        body = await request.json()
        self.requests.append((dict(request.headers), body))
        reply = self.reply(body)
        if asyncio.iscoroutine(reply):
            reply = await reply
        return reply

    async def test_posts_batch_with_bearer_token(self):
        results = await self.transport.send_batch([ITEM])

        headers, body = self.requests[0]
        self.assertEqual(results, [{"client_uuid": "u1", "status": "synced", "server_id": "S1"}])
        self.assertEqual(body, {"items": [ITEM]})
        self.assertEqual(headers["Authorization"], "Bearer access-token")

    async def test_multi_status_is_a_response(self):
        self.reply = lambda body: web.json_response(
            {"results": [{"client_uuid": "u1", "status": "failed", "error": "hive_id: Invalid"}]}, status=207
        )

        results = await self.transport.send_batch([ITEM])

        self.assertEqual(results[0]["status"], "failed")

    async def test_server_error_raises_network_error(self):
        self.reply = lambda body: web.json_response({"error": "Batch sync failed"}, status=500)

        with self.assertRaises(NetworkError):
            await self.transport.send_batch([ITEM])

    async def test_unauthorized_raises_network_error(self):
        self.reply = lambda body: web.json_response({"detail": "Given token not valid"}, status=401)

        with self.assertRaises(NetworkError):
            await self.transport.send_batch([ITEM])

    async def test_undecodable_body_raises_network_error(self):
        self.reply = lambda body: web.Response(text="<html>gateway</html>", content_type="text/html")

        with self.assertRaises(NetworkError):
            await self.transport.send_batch([ITEM])

    async def test_missing_results_raises_network_error(self):
        self.reply = lambda body: web.json_response({"ok": True})

        with self.assertRaises(NetworkError):
            await self.transport.send_batch([ITEM])

    async def test_timeout_raises_network_error(self):
        async def slow(body):
            await asyncio.sleep(1)
            return web.json_response({"results": []})

        self.reply = slow
        transport = HttpBatchTransport(str(self.server.make_url("/api/v1")), timeout=0.1)
        self.addAsyncCleanup(transport.close)

        with self.assertRaises(NetworkError):
            await transport.send_batch([ITEM])

    async def test_unreachable_host_raises_network_error(self):
        url = str(self.server.make_url("/api/v1"))
        await self.server.close()

        transport = HttpBatchTransport(url)
        self.addAsyncCleanup(transport.close)

        with self.assertRaises(NetworkError):
            await transport.send_batch([ITEM])
