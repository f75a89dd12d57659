import json

import httpx

from campus_delivery.tasks import projection


def test_backoff_doubles_each_retry():
    assert [projection.backoff_delay(n, base_delay=5) for n in range(4)] == [5, 10, 20, 40]


def test_project_order_posts_to_backend(monkeypatch):
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append((request.url.path, json.loads(request.content)))
        return httpx.Response(200, json={"message": "Order submitted"})

    real_client = httpx.Client
    monkeypatch.setattr(
        projection.httpx,
        "Client",
        lambda **kwargs: real_client(transport=httpx.MockTransport(handler), **kwargs),
    )

    result = projection.project_order.apply(args=[{"email": "f220001@cfd.nu.edu.pk", "grandTotal": 850}])

    assert result.get() == 200
    assert seen == [("/submit-order", {"email": "f220001@cfd.nu.edu.pk", "grandTotal": 850})]
