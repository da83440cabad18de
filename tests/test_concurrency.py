import asyncio
import random
import unittest
from datetime import datetime, timedelta, timezone

import httpx

from signalcast.main import app

from .helpers import auth, create_user, reset_database

N = 25


class TestConcurrentCreates(unittest.IsolatedAsyncioTestCase):

    async def asyncSetUp(self):
        reset_database()
        self.token = create_user("u@x.com")
        self.client = httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test")

    async def asyncTearDown(self):
        await self.client.aclose()

    async def test_concurrent_creates_are_all_listed_once_in_order(self):
        base = datetime(2024, 5, 1, tzinfo=timezone.utc)
        stamps = [(base + timedelta(minutes=i)).isoformat() for i in range(N)]
        random.shuffle(stamps)

        responses = await asyncio.gather(*[
            self.client.post(
                "/api/signals",
                json={"type": "burst", "eventTimestamp": ts, "payload": {"n": i}},
                headers=auth(self.token),
            )
            for i, ts in enumerate(stamps)
        ])
        self.assertTrue(all(resp.status_code == 201 for resp in responses))
        created_ids = {resp.json()["id"] for resp in responses}

        listing = await self.client.get("/api/signals", headers=auth(self.token))
        records = listing.json()
        ids = [record["id"] for record in records]

        self.assertEqual(len(records), N)
        self.assertEqual(len(set(ids)), N)
        self.assertEqual(set(ids), created_ids)
        times = [record["eventTimestamp"] for record in records]
        self.assertEqual(times, sorted(times, reverse=True))


if __name__ == "__main__":
    unittest.main()
