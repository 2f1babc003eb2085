"""
Tests for draft and statement validation.
"""

import pytest

from app.core.validation import validate_gstin, validate_invoice_draft, validate_pl_statement


VALID_DRAFT = {
    "supplier_gstin": "27AAAAA0000A1Z5",
    "buyer_gstin": None,
    "supplier_state": "27",
    "buyer_state": "27",
    "place_of_supply": "27",
    "items": [
        {"description": "Consulting", "hsn_sac": "998311", "quantity": 2, "unit": "Hrs", "rate": 1500, "gst_rate": 18},
    ],
}


def fields(result):
    return [e.field for e in result.errors]


class TestGSTIN:
    def test_valid(self):
        assert validate_gstin("27AAAAA0000A1Z5") is True

    def test_lower_case_is_upper_cased(self):
        assert validate_gstin("27aaaaa0000a1z5") is True

    def test_missing_z(self):
        assert validate_gstin("27AAAAA0000A125") is False

    @pytest.mark.parametrize("value", ["", None, "27AAAAA0000A1Z", "2AAAAA0000A1Z5X", "27AAAAA0000A0Z5"])
    def test_invalid(self, value):
        assert validate_gstin(value) is False


class TestInvoiceDraft:
    def test_valid_draft(self):
        result = validate_invoice_draft(VALID_DRAFT)
        assert result.ok
        assert result.errors == []

    def test_invalid_supplier_gstin(self):
        result = validate_invoice_draft({**VALID_DRAFT, "supplier_gstin": "27AAAAA0000A125"})
        assert not result.ok
        assert fields(result) == ["supplier_gstin"]

    def test_missing_supplier_gstin(self):
        result = validate_invoice_draft({**VALID_DRAFT, "supplier_gstin": ""})
        assert fields(result) == ["supplier_gstin"]

    def test_buyer_gstin_checked_when_present(self):
        result = validate_invoice_draft({**VALID_DRAFT, "buyer_gstin": "NOT-A-GSTIN"})
        assert fields(result) == ["buyer_gstin"]

    def test_invalid_state_codes(self):
        result = validate_invoice_draft({**VALID_DRAFT, "supplier_state": "25", "place_of_supply": "Maharashtra"})
        assert fields(result) == ["supplier_state", "place_of_supply"]

    def test_no_items(self):
        result = validate_invoice_draft({**VALID_DRAFT, "items": []})
        assert fields(result) == ["items"]

    def test_reports_every_item_problem(self):
        bad_item = {"description": " ", "hsn_sac": "", "quantity": -1, "unit": "Dozen", "rate": -5, "gst_rate": 15}
        result = validate_invoice_draft({**VALID_DRAFT, "items": [VALID_DRAFT["items"][0], bad_item]})

        assert fields(result) == [
            "items[1].description",
            "items[1].hsn_sac",
            "items[1].quantity",
            "items[1].rate",
            "items[1].unit",
            "items[1].gst_rate",
        ]

    def test_result_serializes_errors(self):
        result = validate_invoice_draft({**VALID_DRAFT, "items": []})
        assert result.to_list() == [{"field": "items", "message": "At least one line item is required"}]


def statement(total_revenue, revenue_parts, total_expenses, expense_parts):
    return {
        "revenue": {
            "total_revenue": total_revenue,
            "breakdown": [{"category": f"R{i}", "amount": a} for i, a in enumerate(revenue_parts)],
        },
        "expenses": {
            "total_expenses": total_expenses,
            "breakdown": [{"category": f"E{i}", "amount": a} for i, a in enumerate(expense_parts)],
        },
    }


class TestPLStatement:
    def test_matching_breakdowns(self):
        assert validate_pl_statement(statement(1000, [600, 400], 500, [500])).ok

    def test_within_one_percent(self):
        assert validate_pl_statement(statement(1000, [600, 409], 500, [504])).ok

    def test_revenue_mismatch(self):
        result = validate_pl_statement(statement(1000, [600, 411], 500, [500]))
        assert fields(result) == ["statement.revenue.breakdown"]
        assert result.errors[0].message == "Revenue breakdown does not match total revenue"

    def test_expense_mismatch(self):
        result = validate_pl_statement(statement(1000, [1000], 500, [400]))
        assert fields(result) == ["statement.expenses.breakdown"]

    def test_custom_tolerance(self):
        assert not validate_pl_statement(statement(1000, [995], 500, [500]), tolerance=0.001).ok
        assert validate_pl_statement(statement(1000, [995], 500, [500]), tolerance=0.01).ok

    def test_zero_totals(self):
        assert validate_pl_statement(statement(0, [], 0, [])).ok
