# Overview: Pytest coverage for the product catalog service.

from datetime import datetime

import pytest

from stockroom.errors import AlreadyExistsError, FailedPreconditionError, NotFoundError
from stockroom.models import Product, StockLevel, StockMovement, Warehouse
from stockroom.services import products_service, sales_order_service, stock_service
from stockroom.validation import validate_order_items


class TestCreateProduct:
    def test_create_returns_stock_fields(self, db_session, company_a):
        created = products_service.create_product(
            company_id=company_a.id,
            patch={"sku": "NEW-1", "name": "Widget", "reorder_level": 2},
        )

        assert created["sku"] == "NEW-1"
        assert created["totalStock"] == 0
        assert created["stockByWarehouse"] == []
        assert created["lowStock"] is True

    def test_duplicate_sku_in_company_rejected(self, db_session, company_a, product_a):
        with pytest.raises(AlreadyExistsError):
            products_service.create_product(
                company_id=company_a.id, patch={"sku": product_a.sku, "name": "Dup"}
            )

    def test_same_sku_allowed_in_other_company(self, db_session, company_b, product_a):
        created = products_service.create_product(
            company_id=company_b.id, patch={"sku": product_a.sku, "name": "Other tenant"}
        )
        assert created["companyId"] == company_b.id


class TestReadProducts:
    def test_totals_across_warehouses(self, db_session, company_a, product_a, warehouse_a):
        second = Warehouse(company_id=company_a.id, name="Annex")
        db_session.add(second)
        db_session.commit()

        stock_service.adjust_stock(
            company_id=company_a.id, product_id=product_a.id, warehouse_id=warehouse_a.id, delta=4
        )
        stock_service.adjust_stock(
            company_id=company_a.id, product_id=product_a.id, warehouse_id=second.id, delta=6
        )

        product = products_service.get_product(company_a.id, product_a.id)
        assert product["totalStock"] == 10
        assert product["lowStock"] is False
        assert [(s["warehouseName"], s["quantity"]) for s in product["stockByWarehouse"]] == [
            ("Annex", 6),
            ("Main Warehouse A", 4),
        ]

    def test_list_ordered_by_name_and_scoped(self, db_session, company_a, product_a, product_a2, product_b):
        names = [p["name"] for p in products_service.list_products(company_a.id)]
        assert names == ["Product A", "Product A2"]

    def test_low_stock_at_or_below_reorder_level(self, db_session, company_a, product_a, product_a2, warehouse_a):
        # product_a reorders at 5, product_a2 at 0
        stock_service.adjust_stock(
            company_id=company_a.id, product_id=product_a.id, warehouse_id=warehouse_a.id, delta=5
        )
        stock_service.adjust_stock(
            company_id=company_a.id, product_id=product_a2.id, warehouse_id=warehouse_a.id, delta=1
        )

        low = products_service.list_low_stock_products(company_a.id)
        assert [p["id"] for p in low] == [product_a.id]

    def test_foreign_product_not_found(self, db_session, company_a, product_b):
        with pytest.raises(NotFoundError):
            products_service.get_product(company_a.id, product_b.id)


class TestUpdateProduct:
    def test_partial_patch_keeps_other_fields(self, db_session, company_a, product_a):
        updated = products_service.update_product(
            company_id=company_a.id, product_id=product_a.id, patch={"name": "Renamed"}
        )
        assert updated["name"] == "Renamed"
        assert updated["sku"] == "PROD-A-001"
        assert updated["unitPrice"] == 10.0

    def test_sku_change_to_taken_sku_rejected(self, db_session, company_a, product_a, product_a2):
        with pytest.raises(AlreadyExistsError):
            products_service.update_product(
                company_id=company_a.id, product_id=product_a2.id, patch={"sku": product_a.sku}
            )


class TestDeleteProduct:
    def test_delete_removes_stock_rows(self, db_session, company_a, product_a, warehouse_a):
        stock_service.adjust_stock(
            company_id=company_a.id, product_id=product_a.id, warehouse_id=warehouse_a.id, delta=3
        )
        product_id = product_a.id

        products_service.delete_product(company_id=company_a.id, product_id=product_id)

        assert db_session.get(Product, product_id) is None
        assert db_session.query(StockLevel).count() == 0
        assert db_session.query(StockMovement).count() == 0

    def test_product_on_order_cannot_be_deleted(self, db_session, company_a, product_a):
        sales_order_service.create_sales_order(
            company_id=company_a.id,
            patch={"order_date": datetime(2024, 1, 1)},
            items=validate_order_items([{"productId": product_a.id, "quantity": 1, "unitPrice": 1}]),
        )

        with pytest.raises(FailedPreconditionError):
            products_service.delete_product(company_id=company_a.id, product_id=product_a.id)

    def test_foreign_delete_not_found(self, db_session, company_a, product_b):
        with pytest.raises(NotFoundError):
            products_service.delete_product(company_id=company_a.id, product_id=product_b.id)
        assert db_session.get(Product, product_b.id) is not None
