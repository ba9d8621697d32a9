"""
Tests for export, CSV and import (including approximate recovery).
"""

import asyncio
import json
from collections import Counter
from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from fintrack.ledger import build_csv, csv_safe, parse_import_document
from fintrack.ledger.transfer import (
    FORMAT_ERROR,
    PARSE_ERROR,
    ImportedCategory,
    build_category_id_map,
    build_month_rows,
    category_rows,
    dedupe_categories,
    fallback_category_id,
)
from fintrack.models import Category, Expense, LedgerEventType


def _expense(name: str, amount: str, category_id=None) -> Expense:
    return Expense(
        id="e1",
        name=name,
        amount=Decimal(amount),
        category_id=category_id,
        date=date(2024, 3, 15),
        created_at=datetime(2024, 3, 15, tzinfo=timezone.utc),
    )


def _fill(ledger, category_named):
    asyncio.run(ledger.add_category("Pets", "#aa00aa"))
    asyncio.run(ledger.add_expense("Coffee", "4.50", category_named("Food").id, "2024-03-15"))
    asyncio.run(ledger.add_expense("Vet", "80", category_named("Pets").id, "2024-03-02"))
    asyncio.run(ledger.add_expense("Bus", "2.75", category_named("Transport").id, "2024-02-11"))
    asyncio.run(ledger.set_budget("1200"))
    asyncio.run(ledger.set_income("3000.50"))


def _snapshot(ledger) -> dict:
    """Comparable view of a ledger: category names/colors and per-month data."""
    names = {category.id: category.name for category in ledger.get_categories()}
    months = {}
    for key, bucket in ledger.state.monthly_data.items():
        months[key] = (
            bucket.budget,
            bucket.income,
            Counter(
                (expense.name, expense.amount, expense.date, names.get(expense.category_id))
                for expense in bucket.expenses
            ),
        )
    return {
        "categories": sorted((category.name, category.color) for category in ledger.get_categories()),
        "months": months,
    }


class TestCsv:
    """Tests for the CSV export."""

    @pytest.mark.parametrize("value, expected", [
        ("=SUM(A1:A9)", "'=SUM(A1:A9)"),
        ("+1", "'+1"),
        ("-1", "'-1"),
        ("@cmd", "'@cmd"),
        ("\tTab", "'\tTab"),
        ("\rReturn", "'\rReturn"),
        ("Coffee", "Coffee"),
    ])
    def test_csv_safe(self, value, expected):
        """Test formula prefixes are neutralized."""
        assert csv_safe(value) == expected

    def test_build_csv_quotes_every_cell(self):
        """Test header, quoting, quote doubling and amount formatting."""
        categories = [Category(id="food", name="Food")]
        text = build_csv(
            [_expense('Say "hi"', "4.5", "food"), _expense("=cmd()", "10", "ghost")],
            categories,
            "$",
        )
        assert text == (
            '"Description","Category","Date","Amount"\n'
            '"Say ""hi""","Food","2024-03-15","$4.50"\n'
            '"\'=cmd()","Other","2024-03-15","$10.00"'
        )

    def test_build_csv_empty(self):
        """Test there is nothing to export without expenses."""
        assert build_csv([], [], "$") is None

    def test_export_csv_uses_active_month(self, ledger, category_named):
        """Test the ledger exports the active month with its currency."""
        asyncio.run(ledger.set_profile("Mine", "€"))
        asyncio.run(ledger.add_expense("Coffee", "4.5", category_named("Food").id, "2024-03-15"))
        asyncio.run(ledger.add_expense("Bus", "2", None, "2024-02-15"))
        lines = ledger.export_csv().split("\n")
        assert lines[1] == '"Coffee","Food","2024-03-15","€4.50"'
        assert len(lines) == 2

    def test_export_csv_none_for_empty_month(self, ledger):
        """Test an empty month exports nothing."""
        assert ledger.export_csv() is None


class TestExport:
    """Tests for the export document."""

    def test_document_shape(self, ledger, category_named):
        """Test the export document layout and value types."""
        _fill(ledger, category_named)
        document = json.loads(ledger.export_data())

        assert document["profile"] == {"name": "My Profile", "currency": "$"}
        assert document["currentMonth"] == "2024-03"
        assert {"id", "name", "color", "systemKey"} == set(document["categories"][0])
        march = document["monthlyData"]["2024-03"]
        assert march["budget"] == 1200
        assert march["income"] == 3000.5
        coffee = next(item for item in march["expenses"] if item["name"] == "Coffee")
        assert coffee["amount"] == 4.5
        assert coffee["date"] == "2024-03-15"
        assert coffee["categoryId"] == category_named("Food").id
        assert datetime.fromisoformat(coffee["createdAt"]).year == 2024
        assert document["monthlyData"]["2024-02"]["budget"] == 0


class TestImportParsing:
    """Tests for document validation and import planning."""

    @pytest.mark.parametrize("text, error", [
        ("{not json", PARSE_ERROR),
        ("", PARSE_ERROR),
        ("[]", FORMAT_ERROR),
        ('{"categories": []}', FORMAT_ERROR),
        ('{"monthlyData": {}, "categories": {}}', FORMAT_ERROR),
        ('{"monthlyData": [], "categories": []}', FORMAT_ERROR),
        ('{"monthlyData": {"March": {}}, "categories": []}', FORMAT_ERROR),
        ('{"monthlyData": {"2024-03": 5}, "categories": []}', FORMAT_ERROR),
    ])
    def test_rejects_malformed(self, text, error):
        """Test malformed documents are rejected with the right message."""
        document, message = parse_import_document(text)
        assert document is None
        assert message == error

    def test_accepts_minimal_document(self):
        """Test the smallest valid document."""
        document, error = parse_import_document('{"monthlyData": {}, "categories": []}')
        assert error is None
        assert document == {"monthlyData": {}, "categories": []}

    def test_floats_parse_as_decimal(self):
        """Test amounts keep their exact decimal value."""
        document, _ = parse_import_document(
            '{"monthlyData": {"2024-03": {"budget": 0.1}}, "categories": []}'
        )
        assert document["monthlyData"]["2024-03"]["budget"] == Decimal("0.1")

    def test_dedupe_categories(self):
        """Test first occurrence wins, blanks are skipped and Other is kept."""
        deduped = dedupe_categories([
            {"id": "a", "name": "Food", "color": "#111111"},
            {"id": "b", "name": " food ", "color": "#222222"},
            {"id": "c", "name": "  "},
            "not a category",
            {"id": "d", "name": "other"},
        ])
        assert deduped == [
            ImportedCategory("a", "Food", "#111111"),
            ImportedCategory("d", "other", "#6e8899"),
        ]

    def test_dedupe_appends_other(self):
        """Test an Other category is synthesized when missing."""
        deduped = dedupe_categories([{"id": "a", "name": "Food"}])
        assert deduped[-1] == ImportedCategory("other", "Other", "#6e8899")

    def test_category_rows_mark_other(self):
        """Test only the category named Other gets the system key."""
        rows = category_rows("p1", [
            ImportedCategory("a", "Food", "#111111"),
            ImportedCategory("other", "Other", "#6e8899"),
        ])
        assert [row["system_key"] for row in rows] == [None, "other"]

    def test_id_map_and_fallback(self):
        """Test old ids and lowercased names both map to new ids."""
        imported = [ImportedCategory("a", "Food", "#1"), ImportedCategory(None, "Other", "#2")]
        inserted = [{"id": "n1", "system_key": None}, {"id": "n2", "system_key": "other"}]
        id_map = build_category_id_map(imported, inserted)
        assert id_map == {"a": "n1", "food": "n1", "other": "n2"}
        assert fallback_category_id(inserted) == "n2"
        assert fallback_category_id([{"id": "n1", "system_key": None}]) == "n1"
        assert fallback_category_id([]) is None

    def test_build_month_rows(self):
        """Test clamping, defaults and category remapping."""
        monthly_data = {
            "2024-03": {
                "budget": Decimal("-5"),
                "income": "oops",
                "expenses": [
                    {"name": "A", "amount": Decimal("4.5"), "categoryId": "a", "date": "2024-03-15"},
                    {"amount": 0, "categoryId": "FOOD"},
                    {"name": "C", "amount": -3, "categoryId": "ghost", "date": "bad"},
                    "skipped",
                ],
            },
        }
        month_rows, expense_rows = build_month_rows(
            "p1", monthly_data, {"a": "n1", "food": "n1"}, "n2",
        )
        assert month_rows == [{
            "profile_id": "p1",
            "month_key": "2024-03",
            "budget": Decimal("0"),
            "income": Decimal("0"),
        }]
        assert [(row["name"], row["amount"], row["date"], row["category_id"]) for row in expense_rows] == [
            ("A", Decimal("4.5"), "2024-03-15", "n1"),
            ("Expense", Decimal("0.01"), "2024-03-01", "n1"),
            ("C", Decimal("0.01"), "2024-03-01", "n2"),
        ]


class TestImport:
    """Tests for importing into the active profile."""

    def test_round_trip(self, ledger, category_named):
        """Test export → reset → import reproduces the ledger."""
        _fill(ledger, category_named)
        before = _snapshot(ledger)
        exported = ledger.export_data()

        asyncio.run(ledger.reset_all())
        result = asyncio.run(ledger.import_data(exported))

        assert result.success
        assert result.error is None
        assert _snapshot(ledger) == before

    def test_missing_monthly_data_deletes_nothing(self, ledger, store):
        """Test a malformed document returns an error with no remote deletes."""
        store.calls.clear()
        result = asyncio.run(ledger.import_data('{"categories": []}'))
        assert result.error == FORMAT_ERROR
        assert not result.success
        assert store.calls_for("delete") == []
        assert len(ledger.get_categories()) == 8

    def test_unparseable_document(self, ledger, store):
        """Test garbage input is rejected before any remote call."""
        store.calls.clear()
        result = asyncio.run(ledger.import_data("definitely not json"))
        assert result.error == PARSE_ERROR
        assert store.calls == []

    def test_import_applies_profile_and_month(self, ledger):
        """Test imported profile settings and current month are applied."""
        document = {
            "profile": {"name": "Household", "currency": "€"},
            "currentMonth": "2024-01",
            "categories": [{"id": "x", "name": "Groceries", "color": "#00ff00"}],
            "monthlyData": {
                "2024-01": {
                    "budget": 500,
                    "income": 900,
                    "expenses": [{"name": "Milk", "amount": 1.2, "categoryId": "x", "date": "2024-01-05"}],
                },
            },
        }
        result = asyncio.run(ledger.import_data(json.dumps(document)))

        assert result.success
        assert ledger.get_profile().name == "Household"
        assert ledger.get_currency() == "€"
        assert ledger.get_current_month() == "2024-01"
        assert ledger.get_budget() == Decimal("500")
        assert [category.name for category in ledger.get_categories()] == ["Groceries", "Other"]
        groceries = ledger.get_categories()[0]
        assert ledger.get_expenses()[0].category_id == groceries.id
        assert ledger.get_expenses()[0].amount == Decimal("1.2")

    def test_import_keeps_exactly_one_other(self, ledger):
        """Test the imported profile ends with one "other" category."""
        document = {"categories": [{"name": "OTHER"}, {"name": "Other"}], "monthlyData": {}}
        asyncio.run(ledger.import_data(json.dumps(document)))
        others = [category for category in ledger.get_categories() if category.is_other]
        assert len(others) == 1
        assert others[0].name == "OTHER"

    def test_failure_restores_categories(self, ledger, store, category_named, audit_logger):
        """Test a failed import re-inserts the previous categories (approximate recovery)."""
        _fill(ledger, category_named)
        document = {
            "categories": [{"id": "f", "name": "Food"}, {"id": "o", "name": "Other"}],
            "monthlyData": {"2024-03": {"expenses": [{"name": "Tea", "amount": 2, "categoryId": "f"}]}},
        }
        store.fail("insert", "expenses")

        result = asyncio.run(ledger.import_data(json.dumps(document)))

        assert not result.success
        assert result.restored
        assert result.error == "Import failed: simulated outage. Previous categories were restored."
        names = sorted(category.name for category in ledger.get_categories())
        assert names == sorted(
            ["Entertainment", "Food", "Health", "Housing", "Other", "Pets", "Shopping", "Transport", "Utilities"]
        )
        assert sum(1 for category in ledger.get_categories() if category.is_other) == 1
        # Expenses from before the import are not brought back
        assert ledger.get_expenses() == []
        assert audit_logger.recent_events(1)[0].event_type == LedgerEventType.IMPORT_FAILED

    def test_delete_failure_aborts_and_restores(self, ledger, store, category_named):
        """Test a failed delete stops the sequence before categories are touched."""
        _fill(ledger, category_named)
        store.fail("delete", "monthly_stats")

        result = asyncio.run(ledger.import_data('{"monthlyData": {}, "categories": []}'))

        assert result.restored
        assert store.calls_for("delete").count("categories") == 0
        assert len(ledger.get_categories()) == 9
        assert ledger.get_budget() == Decimal("1200")

    def test_failed_recovery_is_reported(self, ledger, store, audit_logger):
        """Test the result says so when the categories could not be restored."""
        store.fail("insert", "expenses")
        store.fail("select", "categories")
        document = {
            "categories": [{"name": "Food"}],
            "monthlyData": {"2024-03": {"expenses": [{"name": "Tea", "amount": 2}]}},
        }

        result = asyncio.run(ledger.import_data(json.dumps(document)))

        assert result.restored is False
        assert result.error.endswith("Previous categories could not be restored.")
        types = [event.event_type for event in audit_logger.recent_events(2)]
        assert types == [LedgerEventType.IMPORT_FAILED, LedgerEventType.IMPORT_RESTORE_FAILED]


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
