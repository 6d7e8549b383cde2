from storefront.observability import get_metrics_snapshot


def test_health_endpoint(client):
    response = client.get("/health")
    assert response.status_code == 200
    body = response.get_json()
    assert body["status"] == "UP"
    assert body["components"]["database"]["status"] == "UP"


def test_request_id_is_echoed(client):
    response = client.get("/health", headers={"X-Request-ID": "req-123"})
    assert response.headers["X-Request-ID"] == "req-123"
    assert client.get("/health").headers["X-Request-ID"]


def test_admin_metrics_requires_token(client, admin_headers):
    assert client.get("/admin/metrics").status_code == 403
    client.get("/health")
    response = client.get("/admin/metrics", headers=admin_headers)
    assert response.status_code == 200
    assert "http_requests_total" in response.get_json()["counters"]


def test_products_are_listed_in_display_order(client, sample_products):
    body = client.get("/api/products").get_json()
    assert [product["productCode"] for product in body] == ["MB-01", "MB-02", "MB-03"]
    assert body[2]["amount"] == 1299
    assert body[2]["isInStock"] is False


def test_delivery_address_admin_crud(client, admin_headers):
    assert client.get("/api/delivery-addresses").get_json() == []
    assert client.post("/api/delivery-addresses", json={"name": "Gate 2"}).status_code == 403

    first = client.post("/api/delivery-addresses", json={"name": "Gate 2"}, headers=admin_headers)
    second = client.post("/api/delivery-addresses", json={"name": "Hostel C"}, headers=admin_headers)
    assert first.status_code == 201
    assert second.get_json()["displayOrder"] == first.get_json()["displayOrder"] + 1

    address_id = first.get_json()["id"]
    renamed = client.patch(
        f"/api/delivery-addresses/{address_id}",
        json={"name": "Main Gate", "displayOrder": 10},
        headers=admin_headers,
    )
    assert renamed.status_code == 200
    names = [entry["name"] for entry in client.get("/api/delivery-addresses").get_json()]
    assert names == ["Hostel C", "Main Gate"]

    assert client.delete(f"/api/delivery-addresses/{address_id}", headers=admin_headers).status_code == 200
    assert client.delete(f"/api/delivery-addresses/{address_id}", headers=admin_headers).status_code == 404
    assert client.post("/api/delivery-addresses", json={"name": ""}, headers=admin_headers).status_code == 400


def test_place_and_fetch_order(client, sample_addresses, order_payload):
    response = client.post("/api/orders", json=order_payload)
    assert response.status_code == 201
    order = response.get_json()
    assert len(order["orderNumber"]) == 5

    fetched = client.get(f"/api/orders/{order['orderNumber']}")
    assert fetched.status_code == 200
    assert fetched.get_json()["customerName"] == "Asha Verma"

    assert client.get("/api/orders/99999999").status_code == 404


def test_try_now_order_gets_synthetic_number(client, sample_addresses, order_payload):
    order_payload["isTryNowChallenge"] = True
    response = client.post("/api/orders", json=order_payload)
    assert response.status_code == 201
    order_number = response.get_json()["orderNumber"]
    assert order_number.startswith("TRY-")
    assert client.get(f"/api/orders/{order_number}").status_code == 404


def test_order_validation_errors(client, sample_addresses, order_payload):
    order_payload.pop("customerName")
    response = client.post("/api/orders", json=order_payload)
    assert response.status_code == 400
    assert response.get_json()["error"] == "customerName is required"

    assert client.post("/api/orders", data="not json", content_type="text/plain").status_code == 400


def test_request_metrics_are_recorded(client):
    client.get("/api/checkout-discount")
    snapshot = get_metrics_snapshot()
    assert "http_request_latency_ms" in snapshot["histograms"]
