# Overview: Pytest coverage for the Flask CLI commands.

from stockroom.models import StockLevel
from stockroom.services import stock_service
from stockroom.services.auth_service import verify_token


def test_issue_token_round_trips(app, db_session):
    runner = app.test_cli_runner()
    result = runner.invoke(args=["auth", "issue-token", "cli-user"])

    assert result.exit_code == 0
    assert verify_token(result.output.strip()) == "cli-user"


def test_stock_check_passes_on_consistent_ledger(app, db_session, company_a, product_a, warehouse_a):
    stock_service.adjust_stock(
        company_id=company_a.id, product_id=product_a.id, warehouse_id=warehouse_a.id, delta=4
    )

    result = app.test_cli_runner().invoke(args=["stock", "check", "--company-id", str(company_a.id)])

    assert result.exit_code == 0
    assert "PASS" in result.output


def test_stock_check_reports_drift(app, db_session, company_a, product_a, warehouse_a):
    stock_service.adjust_stock(
        company_id=company_a.id, product_id=product_a.id, warehouse_id=warehouse_a.id, delta=4
    )
    db_session.query(StockLevel).update({StockLevel.quantity: 1})
    db_session.commit()

    result = app.test_cli_runner().invoke(args=["stock", "check"])

    assert result.exit_code == 1
    assert f"product={product_a.id} warehouse={warehouse_a.id} level=1 replay=4" in result.output
