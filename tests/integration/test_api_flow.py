"""
Integration tests for the HTTP API.

Drives submit, summary and export through FastAPI's TestClient against a
real store in a temp directory.
"""

import re
import xml.etree.ElementTree as ET

import pytest
from fastapi.testclient import TestClient

from order_desk.api.server import create_app
from order_desk.order.manager import OrderManager
from order_desk.order.store import OrderStore

SS = "{urn:schemas-microsoft-com:office:spreadsheet}"

pytestmark = pytest.mark.integration


@pytest.fixture
def client(order_manager):
    return TestClient(create_app(order_manager))


def _rows(document):
    root = ET.fromstring(document)
    return [
        [(data.get(f"{SS}Type"), data.text) for data in row.iter(f"{SS}Data")]
        for row in root.iter(f"{SS}Row")
    ]


class TestSubmitOrder:

    def test_scenario_order(self, client, sample_order_payload):
        response = client.post("/api/orders", json=sample_order_payload)

        assert response.status_code == 201
        body = response.json()
        assert body["message"] == "Order placed successfully."
        assert body["orderId"].startswith("ORD-")
        assert body["orderCount"] == 1

    def test_missing_field_is_rejected(self, client, sample_order_payload):
        payload = dict(sample_order_payload, phone="")

        response = client.post("/api/orders", json=payload)

        assert response.status_code == 400
        assert response.json() == {"error": "Missing required field: phone."}
        assert client.get("/api/orders/summary").json()["orderCount"] == 0

    def test_no_valid_items_is_rejected(self, client, sample_order_payload):
        payload = dict(sample_order_payload, items=[{"name": "Polo", "quantity": 0, "price": 88}])

        response = client.post("/api/orders", json=payload)

        assert response.status_code == 400
        assert response.json() == {"error": "Order must include at least one valid item."}

    @pytest.mark.parametrize("body", ["not json", "[1, 2]", '"text"'])
    def test_malformed_body(self, client, body):
        response = client.post(
            "/api/orders", content=body, headers={"Content-Type": "application/json"}
        )

        assert response.status_code == 400
        assert response.json() == {"error": "Invalid JSON body."}

    @pytest.mark.parametrize("body", ["", "  \n"])
    def test_empty_body_reports_missing_field(self, client, body):
        response = client.post(
            "/api/orders", content=body, headers={"Content-Type": "application/json"}
        )

        assert response.status_code == 400
        assert response.json() == {"error": "Missing required field: customerName."}
        assert client.get("/api/orders/summary").json()["orderCount"] == 0

    def test_storage_failure_is_generic(self, client, orders_file, sample_order_payload):
        orders_file.write_text("{corrupted", encoding="utf-8")

        response = client.post("/api/orders", json=sample_order_payload)

        assert response.status_code == 500
        assert response.json() == {"error": "Failed to save order."}
        assert orders_file.read_text(encoding="utf-8") == "{corrupted"


class TestSummary:

    def test_empty_summary(self, client):
        response = client.get("/api/orders/summary")

        assert response.status_code == 200
        assert response.json() == {"orderCount": 0, "orders": []}

    def test_back_to_back_orders(self, client, sample_order_payload):
        first = client.post("/api/orders", json=sample_order_payload).json()
        second = client.post(
            "/api/orders", json=dict(sample_order_payload, customerName="John Roe")
        ).json()

        summary = client.get("/api/orders/summary").json()

        assert summary["orderCount"] == 2
        assert [order["id"] for order in summary["orders"]] == [first["orderId"], second["orderId"]]
        assert summary["orders"][0]["total"] == 176
        assert summary["orders"][0]["items"] == [{"name": "Polo", "quantity": 2, "price": 88}]

    def test_corrupted_store_is_not_empty(self, client, orders_file):
        orders_file.write_text('{"orders": []}', encoding="utf-8")

        response = client.get("/api/orders/summary")

        assert response.status_code == 500
        assert response.json() == {"error": "Failed to load orders."}


class TestExport:

    def test_export_headers_and_rows(self, client, sample_order_payload):
        client.post("/api/orders", json=sample_order_payload)

        response = client.get("/api/orders/export")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("application/vnd.ms-excel")
        assert re.fullmatch(
            r'attachment; filename="golf-orders-\d+\.xls"',
            response.headers["content-disposition"],
        )
        rows = _rows(response.text)
        assert len(rows) == 2
        assert rows[1][6:] == [
            ("Number", "2"), ("Number", "88"), ("Number", "176"), ("Number", "176"),
        ]

    def test_export_empty(self, client):
        rows = _rows(client.get("/api/orders/export").text)
        assert rows[1:] == [[("String", "No orders yet.")]]

    def test_export_row_per_item(self, client, sample_order_payload):
        client.post("/api/orders", json=dict(sample_order_payload, items=[
            {"name": "Polo", "quantity": 2, "price": 88},
            {"name": "Cap & <Visor>", "quantity": 1, "price": 25},
        ]))
        client.post("/api/orders", json=sample_order_payload)

        rows = _rows(client.get("/api/orders/export").text)

        assert len(rows) == 1 + 3
        assert rows[2][5] == ("String", "Cap & <Visor>")

    def test_export_storage_failure(self, client, orders_file):
        orders_file.write_text("[", encoding="utf-8")

        response = client.get("/api/orders/export")

        assert response.status_code == 500
        assert response.json() == {"error": "Failed to load orders."}


class TestStaticPages:

    def test_static_dir_is_mounted(self, tmp_path):
        public = tmp_path / "public"
        public.mkdir()
        (public / "index.html").write_text("<h1>Golf Shop</h1>", encoding="utf-8")
        store = OrderStore(tmp_path / "orders.json")
        client = TestClient(create_app(OrderManager(store), static_dir=str(public)))

        assert "Golf Shop" in client.get("/").text
        assert client.get("/api/orders/summary").json()["orderCount"] == 0

    def test_missing_static_dir_serves_api_only(self, tmp_path):
        store = OrderStore(tmp_path / "orders.json")
        client = TestClient(create_app(OrderManager(store), static_dir=str(tmp_path / "nope")))

        assert client.get("/").status_code == 404
        assert client.get("/api/orders/summary").status_code == 200
