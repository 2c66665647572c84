# Overview: Pytest coverage for sales and stock reports.

from datetime import timedelta

import pytest

from pos.errors import InvalidInput, OutletNotFound
from pos.services import catalog_service, order_service, reporting_service
from pos.services.reporting_service import ReportError
from pos.time_utils import utcnow


def window():
    today = utcnow().date()
    return (today - timedelta(days=1)).isoformat(), (today + timedelta(days=1)).isoformat()


@pytest.fixture
def sales(ctx_a, owner_a, outlet_a, retail_product):
    """Two live orders (1 and 2 notebooks) plus one cancelled order."""
    orders = [
        order_service.create_order(ctx_a, owner_a.id, outlet_a.uuid, [
            {"product_uuid": retail_product.uuid, "quantity": quantity},
        ])
        for quantity in (1, 2, 1)
    ]
    order_service.cancel_order(ctx_a, owner_a.id, orders[2].uuid)
    return orders


class TestSalesByOutlet:

    def test_totals_exclude_cancelled(self, owner_a, outlet_a, sales):
        start, end = window()
        report = reporting_service.sales_by_outlet(owner_a.id, outlet_a.uuid, start, end)

        assert len(report["orders"]) == 3
        assert report["totals"] == {
            "order_count": 2,
            "cancelled_count": 1,
            "gross_total": 30000.0,
            "paid_total": 0.0,
        }

    def test_single_day_window_includes_that_day(self, owner_a, outlet_a, sales):
        """start == end == today still covers every order placed today."""
        today = utcnow().date().isoformat()
        report = reporting_service.sales_by_outlet(owner_a.id, outlet_a.uuid, today, today)
        assert report["totals"]["order_count"] == 2
        assert report["totals"]["cancelled_count"] == 1

    def test_window_ending_yesterday_excludes_today(self, owner_a, outlet_a, sales):
        yesterday = (utcnow().date() - timedelta(days=1)).isoformat()
        report = reporting_service.sales_by_outlet(owner_a.id, outlet_a.uuid, yesterday, yesterday)
        assert report["orders"] == []

    def test_window_outside_orders_is_empty(self, owner_a, outlet_a, sales):
        report = reporting_service.sales_by_outlet(owner_a.id, outlet_a.uuid, "2020-01-01", "2020-01-31")
        assert report["orders"] == []
        assert report["totals"]["order_count"] == 0

    @pytest.mark.parametrize("start, end", [
        (None, "2024-01-01"),
        ("2024-01-01", None),
        ("01/01/2024", "2024-01-02"),
        ("2024-02-01", "2024-01-01"),
    ])
    def test_bad_dates(self, owner_a, outlet_a, start, end):
        with pytest.raises(ReportError):
            reporting_service.sales_by_outlet(owner_a.id, outlet_a.uuid, start, end)

    def test_report_error_is_invalid_input(self):
        assert issubclass(ReportError, InvalidInput)

    def test_foreign_outlet(self, owner_b, outlet_a):
        start, end = window()
        with pytest.raises(OutletNotFound):
            reporting_service.sales_by_outlet(owner_b.id, outlet_a.uuid, start, end)


class TestSalesByProduct:

    def test_quantity_and_revenue(self, owner_a, retail_product, sales):
        start, end = window()
        report = reporting_service.sales_by_product(owner_a.id, retail_product.uuid, start, end)

        assert len(report["items"]) == 3
        assert report["totals"] == {"quantity": 3, "revenue": 30000.0}
        assert {line["order_status"] for line in report["items"]} == {"pending", "cancelled"}


class TestStockByOutlet:

    def test_stock_with_variants(self, ctx_a, owner_a, outlet_a, retail_product):
        catalog_service.add_variant(ctx_a, owner_a.id, retail_product.uuid, {
            "name": "A5", "sku": "NB-001-A5", "price": 12000,
        })
        report = reporting_service.stock_by_outlet(owner_a.id, outlet_a.uuid)

        assert len(report["stocks"]) == 1
        row = report["stocks"][0]
        assert row["product_uuid"] == retail_product.uuid
        assert row["quantity"] == 5.0
        assert [v["variant_name"] for v in row["variants"]] == ["A5"]

    def test_deleted_product_hidden(self, ctx_a, owner_a, outlet_a, retail_product):
        catalog_service.delete_product(ctx_a, owner_a.id, retail_product.uuid)
        assert reporting_service.stock_by_outlet(owner_a.id, outlet_a.uuid)["stocks"] == []


class TestReportApi:

    def test_sales_endpoint(self, client, auth_headers, manager_a, outlet_a, sales):
        start, end = window()
        response = client.get(
            f"/api/reports/outlets/{outlet_a.uuid}/sales?start_date={start}&end_date={end}",
            headers=auth_headers(manager_a),
        )
        assert response.status_code == 200
        assert response.json["totals"]["order_count"] == 2

    def test_missing_dates_400(self, client, auth_headers, owner_a, outlet_a):
        response = client.get(f"/api/reports/outlets/{outlet_a.uuid}/sales", headers=auth_headers(owner_a))
        assert response.status_code == 400
        assert response.json["error"] == "invalid_input"

    def test_cashier_forbidden(self, client, auth_headers, cashier_a, outlet_a):
        response = client.get(f"/api/reports/outlets/{outlet_a.uuid}/stocks", headers=auth_headers(cashier_a))
        assert response.status_code == 403
