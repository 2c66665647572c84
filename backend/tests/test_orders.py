# Overview: Pytest coverage for order creation, recipe expansion, add-ons and line maintenance.

"""
Order Engine Tests

Creating an order prices its lines and deducts stock in one transaction:
either every line is written with its stock movements, or nothing is.
"""

from decimal import Decimal

import pytest

from conftest import stock_of
from pos.errors import (
    AddOnNotBound,
    Conflict,
    InsufficientStock,
    InvalidInput,
    OrderItemNotFound,
    OrderNotPending,
    RecipeMissing,
    StockNotFound,
    VariantNotFound,
)
from pos.extensions import db
from pos.models import Order, OrderItem, OrderItemConsumption, StockMovement
from pos.models.inventory import MOVEMENT_ORDER
from pos.models.orders import ORDER_STATUS_CANCELLED, ORDER_STATUS_PENDING
from pos.services import catalog_service, order_service, payment_service, recipe_service, stock_service


def order_movements(order):
    return (
        db.session.query(StockMovement)
        .filter(StockMovement.reference_id == order.uuid)
        .order_by(StockMovement.id)
        .all()
    )


class TestRetailOrders:
    """Retail items deduct their own stock."""

    def test_create_order_deducts_stock(self, ctx_a, owner_a, outlet_a, retail_product):
        """2 x 10,000 leaves 3 on hand and one Order movement of -2."""
        order = order_service.create_order(ctx_a, owner_a.id, outlet_a.uuid, [
            {"product_uuid": retail_product.uuid, "quantity": 2},
        ])

        assert order.status == ORDER_STATUS_PENDING
        assert Decimal(order.total_amount) == Decimal("20000")
        assert Decimal(order.paid_amount) == Decimal("0")
        assert order.user_id == owner_a.id
        assert stock_of(owner_a, outlet_a, retail_product) == Decimal("3")

        movements = order_movements(order)
        assert len(movements) == 1
        assert movements[0].movement_type == MOVEMENT_ORDER
        assert Decimal(movements[0].quantity_change) == Decimal("-2")

    def test_line_snapshots_name_and_price(self, ctx_a, owner_a, outlet_a, retail_product):
        """Later price changes do not rewrite existing lines."""
        order = order_service.create_order(ctx_a, owner_a.id, outlet_a.uuid, [
            {"product_uuid": retail_product.uuid, "quantity": 1},
        ])
        catalog_service.update_product(ctx_a, owner_a.id, retail_product.uuid, {"price": 99999, "name": "Renamed"})

        item = order_service.get_order(owner_a.id, order.uuid).live_items[0]
        assert item.product_name == "Notebook"
        assert Decimal(item.price) == Decimal("10000")

    def test_insufficient_stock_writes_nothing(self, ctx_a, owner_a, outlet_a, retail_product):
        """Asking for 6 of 5 aborts with no order, no lines and no movements."""
        with pytest.raises(InsufficientStock) as excinfo:
            order_service.create_order(ctx_a, owner_a.id, outlet_a.uuid, [
                {"product_uuid": retail_product.uuid, "quantity": 6},
            ])

        assert excinfo.value.params["available"] == "5"
        assert db.session.query(Order).count() == 0
        assert db.session.query(OrderItem).count() == 0
        assert stock_of(owner_a, outlet_a, retail_product) == Decimal("5")
        assert len(stock_service.list_movements(owner_a.id, outlet_a.uuid)) == 1

    def test_multi_line_failure_rolls_back_earlier_lines(self, ctx_a, owner_a, outlet_a, retail_product):
        """The second line failing leaves the first line's stock untouched."""
        pen = catalog_service.create_product(ctx_a, owner_a.id, {"name": "Pen", "type": "retail_item", "price": 3000})
        stock_service.set_stock(ctx_a, owner_a.id, outlet_a.uuid, pen.uuid, 1)

        with pytest.raises(InsufficientStock):
            order_service.create_order(ctx_a, owner_a.id, outlet_a.uuid, [
                {"product_uuid": retail_product.uuid, "quantity": 2},
                {"product_uuid": pen.uuid, "quantity": 2},
            ])
        assert stock_of(owner_a, outlet_a, retail_product) == Decimal("5")
        assert stock_of(owner_a, outlet_a, pen) == Decimal("1")

    def test_product_without_stock_row(self, ctx_a, owner_a, cafe_a, retail_product):
        """An outlet that never stocked the product reports StockNotFound."""
        with pytest.raises(StockNotFound):
            order_service.create_order(ctx_a, owner_a.id, cafe_a.uuid, [
                {"product_uuid": retail_product.uuid, "quantity": 1},
            ])

    def test_variant_uses_variant_price(self, ctx_a, owner_a, outlet_a, retail_product):
        """A variant line is priced at the variant and deducts the parent product."""
        variant = catalog_service.add_variant(ctx_a, owner_a.id, retail_product.uuid, {
            "name": "Notebook A5", "price": 12500, "sku": "NB-A5",
        })
        order = order_service.create_order(ctx_a, owner_a.id, outlet_a.uuid, [
            {"variant_uuid": variant.uuid, "quantity": 2},
        ])
        item = order.live_items[0]
        assert item.product_name == "Notebook A5"
        assert Decimal(order.total_amount) == Decimal("25000")
        assert stock_of(owner_a, outlet_a, retail_product) == Decimal("3")

    def test_variant_of_deleted_product(self, ctx_a, owner_a, outlet_a, retail_product):
        variant = catalog_service.add_variant(ctx_a, owner_a.id, retail_product.uuid, {
            "name": "Notebook A5", "price": 12500,
        })
        catalog_service.delete_product(ctx_a, owner_a.id, retail_product.uuid)

        with pytest.raises(VariantNotFound):
            order_service.create_order(ctx_a, owner_a.id, outlet_a.uuid, [
                {"variant_uuid": variant.uuid, "quantity": 1},
            ])
        assert db.session.query(Order).count() == 0

    @pytest.mark.parametrize("lines", [
        [],
        [{"quantity": 1}],
        [{"product_uuid": "not-a-uuid", "quantity": 1}],
    ])
    def test_malformed_lines_rejected(self, ctx_a, owner_a, outlet_a, lines):
        with pytest.raises(InvalidInput):
            order_service.create_order(ctx_a, owner_a.id, outlet_a.uuid, lines)

    @pytest.mark.parametrize("quantity", [0, -1, 1.5, "2", True])
    def test_quantity_must_be_positive_integer(self, ctx_a, owner_a, outlet_a, retail_product, quantity):
        with pytest.raises(InvalidInput):
            order_service.create_order(ctx_a, owner_a.id, outlet_a.uuid, [
                {"product_uuid": retail_product.uuid, "quantity": quantity},
            ])


class TestRecipeOrders:
    """FnB main products deduct their recipe components."""

    def test_recipe_expansion(self, ctx_a, owner_a, cafe_a, latte_menu):
        """2 lattes consume 0.036 beans and 0.4 milk."""
        order = order_service.create_order(ctx_a, owner_a.id, cafe_a.uuid, [
            {"product_uuid": latte_menu["latte"].uuid, "quantity": 2},
        ])

        assert Decimal(order.total_amount) == Decimal("50000")
        assert stock_of(owner_a, cafe_a, latte_menu["beans"]) == Decimal("0.964")
        assert stock_of(owner_a, cafe_a, latte_menu["milk"]) == Decimal("9.6")
        changes = {m.product_id: Decimal(m.quantity_change) for m in order_movements(order)}
        assert changes == {
            latte_menu["beans"].id: Decimal("-0.036"),
            latte_menu["milk"].id: Decimal("-0.4"),
        }

    def test_component_shortage_aborts(self, ctx_a, owner_a, cafe_a, latte_menu):
        """56 lattes need 1.008 beans; only 1 is on hand."""
        with pytest.raises(InsufficientStock):
            order_service.create_order(ctx_a, owner_a.id, cafe_a.uuid, [
                {"product_uuid": latte_menu["latte"].uuid, "quantity": 56},
            ])
        assert stock_of(owner_a, cafe_a, latte_menu["milk"]) == Decimal("10")

    def test_main_without_recipe(self, ctx_a, owner_a, cafe_a):
        mocha = catalog_service.create_product(ctx_a, owner_a.id, {
            "name": "Mocha", "type": "fnb_main_product", "price": 30000,
        })
        with pytest.raises(RecipeMissing):
            order_service.create_order(ctx_a, owner_a.id, cafe_a.uuid, [
                {"product_uuid": mocha.uuid, "quantity": 1},
            ])

    def test_recipe_type_rules(self, ctx_a, owner_a, latte_menu, retail_product):
        """Only fnb_main_product -> fnb_component edges are accepted."""
        with pytest.raises(InvalidInput):
            recipe_service.create_recipe(
                ctx_a, owner_a.id,
                main_product_uuid=retail_product.uuid,
                component_uuid=latte_menu["beans"].uuid,
                quantity=1,
            )
        with pytest.raises(InvalidInput):
            recipe_service.create_recipe(
                ctx_a, owner_a.id,
                main_product_uuid=latte_menu["latte"].uuid,
                component_uuid=retail_product.uuid,
                quantity=1,
            )

    def test_duplicate_component_conflict(self, ctx_a, owner_a, latte_menu):
        with pytest.raises(Conflict):
            recipe_service.create_recipe(
                ctx_a, owner_a.id,
                main_product_uuid=latte_menu["latte"].uuid,
                component_uuid=latte_menu["milk"].uuid,
                quantity="0.1",
            )

    def test_recipe_update_applies_to_next_order(self, ctx_a, owner_a, cafe_a, latte_menu):
        edge = next(
            r for r in recipe_service.list_recipes(owner_a.id, latte_menu["latte"].uuid)
            if r.component_id == latte_menu["milk"].id
        )
        recipe_service.update_recipe_quantity(ctx_a, owner_a.id, edge.uuid, "0.5")
        order_service.create_order(ctx_a, owner_a.id, cafe_a.uuid, [
            {"product_uuid": latte_menu["latte"].uuid, "quantity": 1},
        ])
        assert stock_of(owner_a, cafe_a, latte_menu["milk"]) == Decimal("9.5")


class TestAddOns:
    """Add-on pricing and optional add-on inventory."""

    def test_add_on_priced_at_binding(self, ctx_a, owner_a, cafe_a, latte_menu):
        """2 lattes with one extra shot: 2 x 25,000 + 1 x 6,000."""
        order = order_service.create_order(ctx_a, owner_a.id, cafe_a.uuid, [{
            "product_uuid": latte_menu["latte"].uuid,
            "quantity": 2,
            "add_ons": [{"product_add_on_uuid": latte_menu["extra_shot"].uuid, "quantity": 1}],
        }])
        item = order.live_items[0]
        assert Decimal(order.total_amount) == Decimal("56000")
        assert len(item.add_ons) == 1
        assert item.add_ons[0].name == "Extra Shot"
        assert Decimal(item.add_ons[0].price) == Decimal("6000")

    def test_add_on_stock_untouched_by_default(self, ctx_a, owner_a, cafe_a, latte_menu):
        order_service.create_order(ctx_a, owner_a.id, cafe_a.uuid, [{
            "product_uuid": latte_menu["latte"].uuid,
            "quantity": 1,
            "add_ons": [{"product_add_on_uuid": latte_menu["extra_shot"].uuid, "quantity": 2}],
        }])
        assert stock_of(owner_a, cafe_a, latte_menu["shot"]) == Decimal("20")

    def test_add_on_inventory_setting(self, ctx_a, owner_a, cafe_a, latte_menu):
        """With inventory_add_ons on, 2 lattes x 2 shots deduct 4 shots."""
        catalog_service.update_owner_settings(ctx_a, owner_a.id, {"inventory_add_ons": True})
        order_service.create_order(ctx_a, owner_a.id, cafe_a.uuid, [{
            "product_uuid": latte_menu["latte"].uuid,
            "quantity": 2,
            "add_ons": [{"product_add_on_uuid": latte_menu["extra_shot"].uuid, "quantity": 2}],
        }])
        assert stock_of(owner_a, cafe_a, latte_menu["shot"]) == Decimal("16")

    def test_unbound_add_on_rejected(self, ctx_a, owner_a, cafe_a, latte_menu):
        """A binding that belongs to another product is not accepted."""
        croissant = catalog_service.create_product(ctx_a, owner_a.id, {
            "name": "Croissant", "type": "retail_item", "price": 15000,
        })
        stock_service.set_stock(ctx_a, owner_a.id, cafe_a.uuid, croissant.uuid, 5)
        with pytest.raises(AddOnNotBound):
            order_service.create_order(ctx_a, owner_a.id, cafe_a.uuid, [{
                "product_uuid": croissant.uuid,
                "quantity": 1,
                "add_ons": [{"product_add_on_uuid": latte_menu["extra_shot"].uuid}],
            }])

    def test_unbound_after_soft_delete(self, ctx_a, owner_a, cafe_a, latte_menu):
        catalog_service.unbind_add_on(ctx_a, owner_a.id, latte_menu["latte"].uuid, latte_menu["extra_shot"].uuid)
        with pytest.raises(AddOnNotBound):
            order_service.create_order(ctx_a, owner_a.id, cafe_a.uuid, [{
                "product_uuid": latte_menu["latte"].uuid,
                "quantity": 1,
                "add_ons": [{"product_add_on_uuid": latte_menu["extra_shot"].uuid}],
            }])

    def test_bind_requires_add_on_type(self, ctx_a, owner_a, latte_menu):
        with pytest.raises(InvalidInput):
            catalog_service.bind_add_on(ctx_a, owner_a.id, latte_menu["latte"].uuid, {
                "add_on_product_uuid": latte_menu["milk"].uuid,
            })


class TestCancel:
    """Cancelling a pending order returns its stock."""

    def test_cancel_restores_stock(self, ctx_a, owner_a, cafe_a, latte_menu):
        order = order_service.create_order(ctx_a, owner_a.id, cafe_a.uuid, [
            {"product_uuid": latte_menu["latte"].uuid, "quantity": 3},
        ])
        cancelled = order_service.cancel_order(ctx_a, owner_a.id, order.uuid)

        assert cancelled.status == ORDER_STATUS_CANCELLED
        assert stock_of(owner_a, cafe_a, latte_menu["beans"]) == Decimal("1")
        assert stock_of(owner_a, cafe_a, latte_menu["milk"]) == Decimal("10")
        net = sum((Decimal(m.quantity_change) for m in order_movements(order)), Decimal("0"))
        assert net == Decimal("0")

    def test_cancel_uses_journal_not_current_recipe(self, ctx_a, owner_a, cafe_a, latte_menu):
        """Changing the recipe after ordering does not change what cancel returns."""
        order = order_service.create_order(ctx_a, owner_a.id, cafe_a.uuid, [
            {"product_uuid": latte_menu["latte"].uuid, "quantity": 1},
        ])
        edge = next(
            r for r in recipe_service.list_recipes(owner_a.id, latte_menu["latte"].uuid)
            if r.component_id == latte_menu["milk"].id
        )
        recipe_service.update_recipe_quantity(ctx_a, owner_a.id, edge.uuid, 5)

        order_service.cancel_order(ctx_a, owner_a.id, order.uuid)
        assert stock_of(owner_a, cafe_a, latte_menu["milk"]) == Decimal("10")

    def test_cancel_twice(self, ctx_a, owner_a, outlet_a, retail_product):
        order = order_service.create_order(ctx_a, owner_a.id, outlet_a.uuid, [
            {"product_uuid": retail_product.uuid, "quantity": 1},
        ])
        order_service.cancel_order(ctx_a, owner_a.id, order.uuid)
        with pytest.raises(OrderNotPending):
            order_service.cancel_order(ctx_a, owner_a.id, order.uuid)
        assert stock_of(owner_a, outlet_a, retail_product) == Decimal("5")

    def test_cancel_with_payment_rejected(self, ctx_a, owner_a, outlet_a, retail_product, payment_methods):
        """A partially paid order keeps its stock."""
        order = order_service.create_order(ctx_a, owner_a.id, outlet_a.uuid, [
            {"product_uuid": retail_product.uuid, "quantity": 2},
        ])
        payment_service.create_payment(
            ctx_a, owner_a.id,
            order_uuid=order.uuid,
            payment_method_id=payment_methods["Cash"].id,
            amount=5000,
        )
        with pytest.raises(Conflict):
            order_service.cancel_order(ctx_a, owner_a.id, order.uuid)
        assert stock_of(owner_a, outlet_a, retail_product) == Decimal("3")


class TestLineMaintenance:
    """Adding and removing lines on a pending order."""

    def test_add_item(self, ctx_a, owner_a, outlet_a, retail_product):
        order = order_service.create_order(ctx_a, owner_a.id, outlet_a.uuid, [
            {"product_uuid": retail_product.uuid, "quantity": 1},
        ])
        updated = order_service.add_order_item(ctx_a, owner_a.id, order.uuid, {
            "product_uuid": retail_product.uuid, "quantity": 2,
        })
        assert len(updated.live_items) == 2
        assert Decimal(updated.total_amount) == Decimal("30000")
        assert stock_of(owner_a, outlet_a, retail_product) == Decimal("2")

    def test_add_item_insufficient(self, ctx_a, owner_a, outlet_a, retail_product):
        order = order_service.create_order(ctx_a, owner_a.id, outlet_a.uuid, [
            {"product_uuid": retail_product.uuid, "quantity": 4},
        ])
        with pytest.raises(InsufficientStock):
            order_service.add_order_item(ctx_a, owner_a.id, order.uuid, {
                "product_uuid": retail_product.uuid, "quantity": 2,
            })
        refreshed = order_service.get_order(owner_a.id, order.uuid)
        assert len(refreshed.live_items) == 1
        assert Decimal(refreshed.total_amount) == Decimal("40000")

    def test_delete_item_returns_stock(self, ctx_a, owner_a, outlet_a, retail_product):
        order = order_service.create_order(ctx_a, owner_a.id, outlet_a.uuid, [
            {"product_uuid": retail_product.uuid, "quantity": 1},
            {"product_uuid": retail_product.uuid, "quantity": 2},
        ])
        second = order.live_items[1]
        updated = order_service.delete_order_item(ctx_a, owner_a.id, order.uuid, second.uuid)

        assert [i.uuid for i in updated.live_items] == [order.live_items[0].uuid]
        assert Decimal(updated.total_amount) == Decimal("10000")
        assert stock_of(owner_a, outlet_a, retail_product) == Decimal("4")

    def test_line_records_consumption(self, ctx_a, owner_a, cafe_a, latte_menu):
        order = order_service.create_order(ctx_a, owner_a.id, cafe_a.uuid, [
            {"product_uuid": latte_menu["latte"].uuid, "quantity": 2},
        ])
        rows = db.session.query(OrderItemConsumption).filter_by(
            order_item_id=order.live_items[0].id,
        ).all()
        taken = {row.product_id: Decimal(row.quantity) for row in rows}
        assert taken == {
            latte_menu["beans"].id: Decimal("0.036"),
            latte_menu["milk"].id: Decimal("0.4"),
        }

    def test_delete_item_after_recipe_edit(self, ctx_a, owner_a, cafe_a, latte_menu):
        """Removing a line returns what it took, not what the edited recipe says."""
        order = order_service.create_order(ctx_a, owner_a.id, cafe_a.uuid, [
            {"product_uuid": latte_menu["latte"].uuid, "quantity": 1},
            {"product_uuid": latte_menu["latte"].uuid, "quantity": 1},
        ])
        assert stock_of(owner_a, cafe_a, latte_menu["milk"]) == Decimal("9.6")

        milk_edge = next(
            r for r in recipe_service.list_recipes(owner_a.id, latte_menu["latte"].uuid)
            if r.component_id == latte_menu["milk"].id
        )
        recipe_service.update_recipe_quantity(ctx_a, owner_a.id, milk_edge.uuid, "5")

        order_service.delete_order_item(ctx_a, owner_a.id, order.uuid, order.live_items[1].uuid)
        assert stock_of(owner_a, cafe_a, latte_menu["milk"]) == Decimal("9.8")
        assert stock_of(owner_a, cafe_a, latte_menu["beans"]) == Decimal("0.982")

    @pytest.mark.parametrize("inventoried_at_order", [False, True])
    def test_delete_item_after_add_on_setting_change(self, ctx_a, owner_a, cafe_a, latte_menu, inventoried_at_order):
        """Flipping inventory_add_ons between order and removal neither creates nor loses shots."""
        catalog_service.update_owner_settings(ctx_a, owner_a.id, {"inventory_add_ons": inventoried_at_order})
        order = order_service.create_order(ctx_a, owner_a.id, cafe_a.uuid, [
            {
                "product_uuid": latte_menu["latte"].uuid,
                "quantity": 1,
                "add_ons": [{"product_add_on_uuid": latte_menu["extra_shot"].uuid, "quantity": 2}],
            },
            {"product_uuid": latte_menu["latte"].uuid, "quantity": 1},
        ])
        catalog_service.update_owner_settings(ctx_a, owner_a.id, {"inventory_add_ons": not inventoried_at_order})

        order_service.delete_order_item(ctx_a, owner_a.id, order.uuid, order.live_items[0].uuid)
        assert stock_of(owner_a, cafe_a, latte_menu["shot"]) == Decimal("20")

    def test_cancel_after_line_removal(self, ctx_a, owner_a, cafe_a, latte_menu):
        order = order_service.create_order(ctx_a, owner_a.id, cafe_a.uuid, [
            {"product_uuid": latte_menu["latte"].uuid, "quantity": 1},
            {"product_uuid": latte_menu["latte"].uuid, "quantity": 2},
        ])
        order_service.delete_order_item(ctx_a, owner_a.id, order.uuid, order.live_items[1].uuid)
        order_service.cancel_order(ctx_a, owner_a.id, order.uuid)
        assert stock_of(owner_a, cafe_a, latte_menu["milk"]) == Decimal("10")
        assert stock_of(owner_a, cafe_a, latte_menu["beans"]) == Decimal("1")

    def test_delete_last_item_rejected(self, ctx_a, owner_a, outlet_a, retail_product):
        order = order_service.create_order(ctx_a, owner_a.id, outlet_a.uuid, [
            {"product_uuid": retail_product.uuid, "quantity": 1},
        ])
        with pytest.raises(Conflict):
            order_service.delete_order_item(ctx_a, owner_a.id, order.uuid, order.live_items[0].uuid)

    def test_delete_unknown_item(self, ctx_a, owner_a, outlet_a, retail_product):
        order = order_service.create_order(ctx_a, owner_a.id, outlet_a.uuid, [
            {"product_uuid": retail_product.uuid, "quantity": 1},
        ])
        with pytest.raises(OrderItemNotFound):
            order_service.delete_order_item(ctx_a, owner_a.id, order.uuid, "00000000-0000-0000-0000-000000000000")


class TestOrderApi:
    """Order endpoints."""

    def test_create_and_fetch(self, client, auth_headers, cashier_a, outlet_a, retail_product):
        headers = auth_headers(cashier_a)
        response = client.post("/api/orders", headers=headers, json={
            "outlet_uuid": outlet_a.uuid,
            "items": [{"product_uuid": retail_product.uuid, "quantity": 2}],
        })
        assert response.status_code == 201
        body = response.json
        assert body["total_amount"] == 20000.0
        assert body["status"] == "pending"
        assert body["user"]["name"] == "Cashier A"

        fetched = client.get(f"/api/orders/{body['uuid']}", headers=headers)
        assert fetched.status_code == 200
        assert fetched.json["items"][0]["quantity"] == 2

    def test_insufficient_stock_409(self, client, auth_headers, owner_a, outlet_a, retail_product):
        response = client.post("/api/orders", headers=auth_headers(owner_a), json={
            "outlet_uuid": outlet_a.uuid,
            "items": [{"product_uuid": retail_product.uuid, "quantity": 9}],
        })
        assert response.status_code == 409
        assert response.json["error"] == "insufficient_stock"

    def test_list_by_outlet_with_status(self, client, auth_headers, ctx_a, owner_a, outlet_a, retail_product):
        first = order_service.create_order(ctx_a, owner_a.id, outlet_a.uuid, [
            {"product_uuid": retail_product.uuid, "quantity": 1},
        ])
        order_service.create_order(ctx_a, owner_a.id, outlet_a.uuid, [
            {"product_uuid": retail_product.uuid, "quantity": 1},
        ])
        order_service.cancel_order(ctx_a, owner_a.id, first.uuid)

        response = client.get(f"/api/outlets/{outlet_a.uuid}/orders?status=pending", headers=auth_headers(owner_a))
        assert response.status_code == 200
        assert response.json["count"] == 1

    def test_cancel_endpoint(self, client, auth_headers, ctx_a, owner_a, outlet_a, retail_product):
        order = order_service.create_order(ctx_a, owner_a.id, outlet_a.uuid, [
            {"product_uuid": retail_product.uuid, "quantity": 1},
        ])
        response = client.post(f"/api/orders/{order.uuid}/cancel", headers=auth_headers(owner_a))
        assert response.status_code == 200
        assert response.json["status"] == "cancelled"
