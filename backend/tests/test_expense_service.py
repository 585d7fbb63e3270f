# Overview: Pytest coverage for operating expenses.

from datetime import datetime

import pytest

from app.errors import NotFoundError, ValidationError
from app.services import expense_service


class TestExpenses:
    def test_create_and_list(self, db_session, actor_id):
        expense_service.create_expense(category="Rent", amount_cents=50000, actor_id=actor_id, note="March")
        expense_service.create_expense(category="Power", amount_cents=4200, actor_id=actor_id)

        result = expense_service.list_expenses(category="Rent")
        assert result["count"] == 1
        assert result["items"][0]["note"] == "March"
        assert result["items"][0]["created_by_user_id"] == actor_id

    def test_date_range(self, db_session, actor_id):
        expense_service.create_expense(
            category="Rent", amount_cents=100, actor_id=actor_id, occurred_at=datetime(2025, 1, 15)
        )
        expense_service.create_expense(
            category="Rent", amount_cents=200, actor_id=actor_id, occurred_at=datetime(2025, 2, 15)
        )

        result = expense_service.list_expenses(start=datetime(2025, 2, 1), end=datetime(2025, 2, 28, 23, 59))
        assert [item["amount_cents"] for item in result["items"]] == [200]

    @pytest.mark.parametrize("amount", [-1, 1.5, "10"])
    def test_amount_validated(self, db_session, actor_id, amount):
        with pytest.raises(ValidationError):
            expense_service.create_expense(category="Rent", amount_cents=amount, actor_id=actor_id)

    def test_category_required(self, db_session, actor_id):
        with pytest.raises(ValidationError):
            expense_service.create_expense(category=" ", amount_cents=1, actor_id=actor_id)

    def test_delete(self, db_session, actor_id):
        expense_id = expense_service.create_expense(category="Rent", amount_cents=1, actor_id=actor_id).id
        expense_service.delete_expense(expense_id)
        assert expense_service.list_expenses()["count"] == 0

        with pytest.raises(NotFoundError):
            expense_service.delete_expense(expense_id)
