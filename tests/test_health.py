"""Health endpoint: database and Redis reachability."""

from restaurant_crm import main


class FakeRedis:
    def __init__(self, reachable: bool):
        self.reachable = reachable
        self.closed = False

    async def ping(self):
        if not self.reachable:
            raise ConnectionError("Connection refused")
        return True

    async def aclose(self):
        self.closed = True


async def test_health_is_operational_when_redis_answers(client, monkeypatch):
    redis_client = FakeRedis(reachable=True)
    monkeypatch.setattr(main.aioredis, "from_url", lambda *args, **kwargs: redis_client)

    response = await client.get("/health")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "operational"
    assert body["database"] == "healthy"
    assert body["redis"] == "healthy"
    assert redis_client.closed is True


async def test_health_is_degraded_when_redis_is_down(client, monkeypatch):
    monkeypatch.setattr(
        main.aioredis, "from_url", lambda *args, **kwargs: FakeRedis(reachable=False)
    )

    response = await client.get("/health")

    body = response.json()
    assert body["status"] == "degraded"
    assert body["database"] == "healthy"
    assert body["redis"] == "unhealthy: Connection refused"
