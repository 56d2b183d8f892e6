# Overview: Pytest coverage for warehouse, customer and supplier CRUD.

from datetime import datetime

import pytest

from stockroom.errors import NotFoundError
from stockroom.models import Customer, SalesOrder, StockLevel, StockMovement, Supplier, Warehouse
from stockroom.services import directory_service, stock_service


@pytest.mark.parametrize("model", [Warehouse, Customer, Supplier])
class TestDirectoryCrud:
    def test_create_list_get_update_delete(self, db_session, company_a, model):
        zeta = directory_service.create_entry(model, company_id=company_a.id, patch={"name": "Zeta"})
        alpha = directory_service.create_entry(model, company_id=company_a.id, patch={"name": "Alpha"})

        names = [e.name for e in directory_service.list_entries(model, company_a.id)]
        assert names == ["Alpha", "Zeta"]

        updated = directory_service.update_entry(
            model, company_id=company_a.id, entry_id=zeta.id, patch={"address": "1 Dock Road"}
        )
        assert updated.name == "Zeta"
        assert updated.address == "1 Dock Road"

        directory_service.delete_entry(model, company_id=company_a.id, entry_id=alpha.id)
        assert [e.id for e in directory_service.list_entries(model, company_a.id)] == [zeta.id]

    def test_other_company_cannot_see_or_touch(self, db_session, company_a, company_b, model):
        entry = directory_service.create_entry(model, company_id=company_b.id, patch={"name": "Private"})

        assert directory_service.list_entries(model, company_a.id) == []
        with pytest.raises(NotFoundError):
            directory_service.get_entry(model, company_a.id, entry.id)
        with pytest.raises(NotFoundError):
            directory_service.update_entry(model, company_id=company_a.id, entry_id=entry.id, patch={"name": "x"})
        with pytest.raises(NotFoundError):
            directory_service.delete_entry(model, company_id=company_a.id, entry_id=entry.id)

        assert directory_service.get_entry(model, company_b.id, entry.id).name == "Private"


class TestDeletes:
    def test_warehouse_delete_removes_stock(self, db_session, company_a, product_a, warehouse_a):
        stock_service.adjust_stock(
            company_id=company_a.id, product_id=product_a.id, warehouse_id=warehouse_a.id, delta=3
        )

        directory_service.delete_entry(Warehouse, company_id=company_a.id, entry_id=warehouse_a.id)

        assert db_session.query(StockLevel).count() == 0
        assert db_session.query(StockMovement).count() == 0

    def test_customer_delete_unlinks_orders(self, db_session, company_a, customer_a):
        order = SalesOrder(
            company_id=company_a.id,
            order_number="SO-20240101-001",
            customer_id=customer_a.id,
            order_date=datetime(2024, 1, 1),
        )
        db_session.add(order)
        db_session.commit()

        directory_service.delete_entry(Customer, company_id=company_a.id, entry_id=customer_a.id)

        reloaded = db_session.get(SalesOrder, order.id, populate_existing=True)
        assert reloaded.customer_id is None
        assert reloaded.to_dict()["customerName"] is None
