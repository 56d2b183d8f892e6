# Overview: Pytest coverage for sales orders (numbering, totals, updates, fulfillment).

"""
Sales Order Tests

Verifies:
1. Order numbers are SO-YYYYMMDD-NNN, sequential per company and day
2. Totals are the sum of quantity x unit price; tax and discount stay zero
3. Invalid items are rejected before anything is written
4. Only confirmed orders can be fulfilled
5. Fulfillment writes one 'out' movement per item and ships the order atomically
"""

from datetime import date, datetime
from decimal import Decimal

import pytest

from stockroom.errors import FailedPreconditionError, InvalidArgumentError, NotFoundError
from stockroom.models import SalesOrder, SalesOrderItem, StockLevel, StockMovement
from stockroom.services import document_service, sales_order_service, stock_service
from stockroom.time_utils import utctoday
from stockroom.validation import validate_order_items

ORDER_DATE = datetime(2024, 5, 21, 9, 30)


def _create(company, items, customer=None, notes=None):
    patch = {"order_date": ORDER_DATE, "notes": notes}
    if customer is not None:
        patch["customer_id"] = customer.id
    return sales_order_service.create_sales_order(
        company_id=company.id, patch=patch, items=validate_order_items(items)
    )


def _confirm(company, order):
    return sales_order_service.update_sales_order(
        company_id=company.id, order_id=order.id, patch={"status": "confirmed"}
    )


class TestOrderNumbers:
    def test_sequential_numbers_same_day(self, db_session, company_a, product_a):
        items = [{"productId": product_a.id, "quantity": 1, "unitPrice": 10}]
        first = _create(company_a, items)
        second = _create(company_a, items)

        prefix = f"SO-{utctoday().strftime('%Y%m%d')}"
        assert first.order_number == f"{prefix}-001"
        assert second.order_number == f"{prefix}-002"

    def test_numbers_are_per_company(self, db_session, company_a, company_b, product_a, product_b):
        a = _create(company_a, [{"productId": product_a.id, "quantity": 1, "unitPrice": 1}])
        b = _create(company_b, [{"productId": product_b.id, "quantity": 1, "unitPrice": 1}])

        assert a.order_number.endswith("-001")
        assert b.order_number.endswith("-001")

    def test_numbering_restarts_each_day(self, db_session, company_a):
        assert document_service.generate_order_number(company_a.id, day=date(2024, 5, 21)) == "SO-20240521-001"
        assert document_service.generate_order_number(company_a.id, day=date(2024, 5, 21)) == "SO-20240521-002"
        assert document_service.generate_order_number(company_a.id, day=date(2024, 5, 22)) == "SO-20240522-001"


class TestCreateSalesOrder:
    def test_empty_items_rejected(self, db_session, company_a):
        with pytest.raises(InvalidArgumentError, match="at least one item"):
            validate_order_items([])

    @pytest.mark.parametrize(
        "item",
        [
            {"productId": 1, "quantity": 0, "unitPrice": 10},
            {"productId": 1, "quantity": 1.5, "unitPrice": 10},
            {"productId": 1, "quantity": 2, "unitPrice": -1},
            {"productId": "1", "quantity": 2, "unitPrice": 10},
            {"productId": 1, "quantity": 2},
        ],
    )
    def test_malformed_items_rejected(self, item):
        with pytest.raises(InvalidArgumentError):
            validate_order_items([item])

    def test_single_item_totals(self, db_session, company_a, customer_a, product_a):
        order = _create(
            company_a,
            [{"productId": product_a.id, "quantity": 2, "unitPrice": 10}],
            customer=customer_a,
        )

        assert order.status == "pending"
        assert order.subtotal == Decimal("20.00")
        assert order.total_amount == Decimal("20.00")
        assert order.tax_amount == Decimal("0.00")
        assert order.discount_amount == Decimal("0.00")

        data = order.to_dict(include_items=True)
        assert data["customerName"] == "Customer A"
        assert data["subtotal"] == 20.0
        assert data["items"][0]["productName"] == "Product A"
        assert data["items"][0]["productSku"] == "PROD-A-001"
        assert data["items"][0]["totalPrice"] == 20.0

    def test_multi_item_totals_keep_cents(self, db_session, company_a, product_a, product_a2):
        order = _create(
            company_a,
            [
                {"productId": product_a.id, "quantity": 3, "unitPrice": "19.99"},
                {"productId": product_a2.id, "quantity": 1, "unitPrice": 0.1},
            ],
        )
        assert order.total_amount == Decimal("60.07")
        assert [i.total_price for i in order.items] == [Decimal("59.97"), Decimal("0.10")]

    def test_foreign_product_rolls_back_nothing_written(self, db_session, company_a, product_a, product_b):
        with pytest.raises(NotFoundError):
            _create(
                company_a,
                [
                    {"productId": product_a.id, "quantity": 1, "unitPrice": 1},
                    {"productId": product_b.id, "quantity": 1, "unitPrice": 1},
                ],
            )
        assert db_session.query(SalesOrder).count() == 0
        assert db_session.query(SalesOrderItem).count() == 0

    def test_foreign_customer_not_found(self, db_session, company_a, customer_b, product_a):
        with pytest.raises(NotFoundError):
            _create(company_a, [{"productId": product_a.id, "quantity": 1, "unitPrice": 1}], customer=customer_b)

    def test_failure_mid_items_rolls_back_order(self, db_session, company_a, product_a, monkeypatch):
        def _broken_item(**kwargs):
            raise RuntimeError("item insert failed")

        monkeypatch.setattr(sales_order_service, "SalesOrderItem", _broken_item)

        with pytest.raises(RuntimeError):
            _create(company_a, [{"productId": product_a.id, "quantity": 1, "unitPrice": 5}])

        assert db_session.query(SalesOrder).count() == 0
        assert db_session.query(SalesOrderItem).count() == 0


class TestListAndGet:
    def test_list_newest_first(self, db_session, company_a, company_b, product_a, product_b):
        first = _create(company_a, [{"productId": product_a.id, "quantity": 1, "unitPrice": 1}])
        second = _create(company_a, [{"productId": product_a.id, "quantity": 1, "unitPrice": 1}])
        _create(company_b, [{"productId": product_b.id, "quantity": 1, "unitPrice": 1}])

        orders = sales_order_service.list_sales_orders(company_a.id)
        assert [o.id for o in orders] == [second.id, first.id]

    def test_get_includes_items_in_order(self, db_session, company_a, product_a, product_a2):
        order = _create(
            company_a,
            [
                {"productId": product_a2.id, "quantity": 1, "unitPrice": 1},
                {"productId": product_a.id, "quantity": 2, "unitPrice": 1},
            ],
        )
        fetched = sales_order_service.get_sales_order(company_a.id, order.id)
        assert [i.product_id for i in fetched.items] == [product_a2.id, product_a.id]


class TestUpdateSalesOrder:
    def test_status_and_notes_patch(self, db_session, company_a, product_a):
        order = _create(company_a, [{"productId": product_a.id, "quantity": 1, "unitPrice": 1}], notes="x")
        updated = sales_order_service.update_sales_order(
            company_id=company_a.id, order_id=order.id, patch={"status": "confirmed"}
        )
        assert updated.status == "confirmed"
        assert updated.notes == "x"

    def test_foreign_customer_rejected(self, db_session, company_a, customer_b, product_a):
        order = _create(company_a, [{"productId": product_a.id, "quantity": 1, "unitPrice": 1}])
        with pytest.raises(NotFoundError):
            sales_order_service.update_sales_order(
                company_id=company_a.id, order_id=order.id, patch={"customer_id": customer_b.id}
            )


class TestFulfillSalesOrder:
    def test_pending_order_cannot_be_fulfilled(self, db_session, company_a, product_a, warehouse_a):
        order = _create(company_a, [{"productId": product_a.id, "quantity": 1, "unitPrice": 1}])

        with pytest.raises(FailedPreconditionError):
            sales_order_service.fulfill_sales_order(
                company_id=company_a.id, order_id=order.id, warehouse_id=warehouse_a.id
            )
        assert db_session.query(StockMovement).count() == 0

    def test_confirmed_order_ships_and_deducts(
        self, db_session, company_a, product_a, product_a2, warehouse_a
    ):
        for product in (product_a, product_a2):
            stock_service.adjust_stock(
                company_id=company_a.id, product_id=product.id, warehouse_id=warehouse_a.id, delta=10
            )
        order = _create(
            company_a,
            [
                {"productId": product_a.id, "quantity": 3, "unitPrice": 10},
                {"productId": product_a2.id, "quantity": 4, "unitPrice": 4},
            ],
        )
        _confirm(company_a, order)

        shipped = sales_order_service.fulfill_sales_order(
            company_id=company_a.id, order_id=order.id, warehouse_id=warehouse_a.id
        )

        assert shipped.status == "shipped"
        outs = (
            db_session.query(StockMovement)
            .filter_by(movement_type="out", reference_type="sales_order", reference_id=order.id)
            .all()
        )
        assert len(outs) == 2
        assert all(m.notes == f"Fulfilled sales order {order.order_number}" for m in outs)

        levels = {
            lvl.product_id: lvl.quantity
            for lvl in db_session.query(StockLevel).populate_existing().all()
        }
        assert levels == {product_a.id: 7, product_a2.id: 6}

    def test_second_fulfillment_fails(self, db_session, company_a, product_a, warehouse_a):
        order = _create(company_a, [{"productId": product_a.id, "quantity": 1, "unitPrice": 1}])
        _confirm(company_a, order)
        sales_order_service.fulfill_sales_order(
            company_id=company_a.id, order_id=order.id, warehouse_id=warehouse_a.id
        )

        with pytest.raises(FailedPreconditionError):
            sales_order_service.fulfill_sales_order(
                company_id=company_a.id, order_id=order.id, warehouse_id=warehouse_a.id
            )
        assert db_session.query(StockMovement).count() == 1

    def test_failure_leaves_order_confirmed_and_stock_untouched(
        self, db_session, company_a, product_a, product_a2, warehouse_a, monkeypatch
    ):
        stock_service.adjust_stock(
            company_id=company_a.id, product_id=product_a.id, warehouse_id=warehouse_a.id, delta=10
        )
        order = _create(
            company_a,
            [
                {"productId": product_a.id, "quantity": 2, "unitPrice": 1},
                {"productId": product_a2.id, "quantity": 2, "unitPrice": 1},
            ],
        )
        _confirm(company_a, order)

        real_inner = sales_order_service._record_movement_inner
        calls = []

        def _fail_second(**kwargs):
            calls.append(kwargs)
            if len(calls) == 2:
                raise RuntimeError("ledger unavailable")
            return real_inner(**kwargs)

        monkeypatch.setattr(sales_order_service, "_record_movement_inner", _fail_second)

        with pytest.raises(RuntimeError):
            sales_order_service.fulfill_sales_order(
                company_id=company_a.id, order_id=order.id, warehouse_id=warehouse_a.id
            )

        reloaded = db_session.get(SalesOrder, order.id, populate_existing=True)
        assert reloaded.status == "confirmed"
        assert db_session.query(StockMovement).filter_by(movement_type="out").count() == 0
        level = db_session.query(StockLevel).filter_by(product_id=product_a.id).populate_existing().one()
        assert level.quantity == 10

    def test_foreign_warehouse_not_found(self, db_session, company_a, product_a, warehouse_b):
        order = _create(company_a, [{"productId": product_a.id, "quantity": 1, "unitPrice": 1}])
        _confirm(company_a, order)

        with pytest.raises(NotFoundError):
            sales_order_service.fulfill_sales_order(
                company_id=company_a.id, order_id=order.id, warehouse_id=warehouse_b.id
            )
