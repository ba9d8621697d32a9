"""
Import / Export

Pure helpers behind the ledger's backup features:
- the JSON export document (also used as the pre-import snapshot)
- the CSV export of one month, hardened against spreadsheet formula injection
- parsing, validating and planning an import into remote rows

Nothing here talks to the remote store. The ledger manager sequences the
remote calls and owns the recovery path.
"""

import csv
import io
import json
from collections.abc import Mapping, Sequence
from decimal import Decimal
from typing import Any, NamedTuple, Optional

from fintrack.ledger.state import LedgerState
from fintrack.models.ledger import (
    DEFAULT_CATEGORY_COLOR,
    OTHER_SYSTEM_KEY,
    Category,
    Expense,
)
from fintrack.utils.amounts import ZERO, clamp_non_negative, to_decimal
from fintrack.utils.months import is_month_key, parse_iso_date

CSV_HEADER = ("Description", "Category", "Date", "Amount")
FORMULA_PREFIXES = ("=", "+", "-", "@", "\t", "\r")
MIN_IMPORTED_AMOUNT = Decimal("0.01")

PARSE_ERROR = "Failed to parse the imported file."
FORMAT_ERROR = "Invalid data format. Expected FinTrack export."


# =============================================================================
# EXPORT
# =============================================================================

def _number(value: Decimal) -> Any:
    """JSON number for an amount (ints stay ints)."""
    if value == value.to_integral_value():
        return int(value)
    return float(value)


def build_export_document(state: LedgerState) -> dict:
    """Serialize the mirror into the export document."""
    profile = state.profile
    document = {
        "profile": {
            "name": profile.name if profile else "",
            "currency": profile.currency if profile else "$",
        },
        "currentMonth": state.current_month,
        "categories": [
            {
                "id": category.id,
                "name": category.name,
                "color": category.color,
                "systemKey": category.system_key,
            }
            for category in state.categories
        ],
        "monthlyData": {},
    }

    for month_key, bucket in state.monthly_data.items():
        document["monthlyData"][month_key] = {
            "budget": _number(bucket.budget),
            "income": _number(bucket.income),
            "expenses": [
                {
                    "id": expense.id,
                    "name": expense.name,
                    "amount": _number(expense.amount),
                    "categoryId": expense.category_id,
                    "date": expense.date.isoformat(),
                    "createdAt": expense.created_at.isoformat(),
                }
                for expense in bucket.expenses
            ],
        }

    return document


def dump_document(document: Mapping[str, Any]) -> str:
    return json.dumps(document, indent=2)


def csv_safe(value: Any) -> str:
    """
    Neutralize spreadsheet formulas.

    A cell starting with =, +, -, @, tab or carriage return gets a leading
    apostrophe so spreadsheet apps treat it as text. Quote doubling is left
    to the csv writer.
    """
    text = str(value)
    if text.startswith(FORMULA_PREFIXES):
        text = "'" + text
    return text


def build_csv(
    expenses: Sequence[Expense],
    categories: Sequence[Category],
    currency: str,
) -> Optional[str]:
    """CSV export of a list of expenses, or None when there is nothing to export."""
    if not expenses:
        return None

    names = {category.id: category.name for category in categories}
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(CSV_HEADER)
    for expense in expenses:
        writer.writerow([
            csv_safe(expense.name),
            csv_safe(names.get(expense.category_id) or "Other"),
            csv_safe(expense.date.isoformat()),
            csv_safe(f"{currency}{expense.amount:.2f}"),
        ])
    # No trailing newline after the last row
    return buffer.getvalue()[:-1]


# =============================================================================
# IMPORT
# =============================================================================

class ImportedCategory(NamedTuple):
    old_id: Optional[str]
    name: str
    color: str


def parse_import_document(text: str) -> tuple[Optional[dict], Optional[str]]:
    """
    Parse and structurally validate an export document.

    Returns:
        (document, None) when valid, (None, error_message) otherwise
    """
    try:
        document = json.loads(text, parse_float=Decimal)
    except (TypeError, ValueError):
        return None, PARSE_ERROR

    if not isinstance(document, dict):
        return None, FORMAT_ERROR
    monthly_data = document.get("monthlyData")
    if not isinstance(monthly_data, dict) or not isinstance(document.get("categories"), list):
        return None, FORMAT_ERROR

    # Month keys become remote rows, reject anything that could not be reloaded
    for month_key, month in monthly_data.items():
        if not is_month_key(month_key) or not isinstance(month, dict):
            return None, FORMAT_ERROR

    return document, None


def dedupe_categories(
    raw_categories: Sequence[Any],
    default_color: str = DEFAULT_CATEGORY_COLOR,
) -> list[ImportedCategory]:
    """
    Deduplicate by case-insensitive name (first occurrence wins).

    A synthesized "Other" is appended when no category carries that name.
    """
    deduped: list[ImportedCategory] = []
    seen: set[str] = set()

    for raw in raw_categories:
        if not isinstance(raw, dict):
            continue
        name = str(raw.get("name") or "").strip()
        if not name:
            continue
        key = name.casefold()
        if key in seen:
            continue
        seen.add(key)
        old_id = raw.get("id")
        deduped.append(ImportedCategory(
            old_id=str(old_id) if old_id is not None else None,
            name=name,
            color=str(raw.get("color") or default_color),
        ))

    if OTHER_SYSTEM_KEY not in seen:
        deduped.append(ImportedCategory(old_id=OTHER_SYSTEM_KEY, name="Other", color=default_color))

    return deduped


def category_rows(profile_id: str, categories: Sequence[ImportedCategory]) -> list[dict]:
    return [
        {
            "profile_id": profile_id,
            "name": category.name,
            "color": category.color,
            "system_key": OTHER_SYSTEM_KEY if category.name.casefold() == OTHER_SYSTEM_KEY else None,
        }
        for category in categories
    ]


def build_category_id_map(
    categories: Sequence[ImportedCategory],
    inserted: Sequence[Mapping[str, Any]],
) -> dict[str, str]:
    """
    Map document category ids (and lowercased names) to inserted ids.

    Indexing by name tolerates documents whose expense references drifted
    from the category ids.
    """
    id_map: dict[str, str] = {}
    for source, row in zip(categories, inserted):
        new_id = str(row["id"])
        if source.old_id:
            id_map[source.old_id] = new_id
        id_map[source.name.casefold()] = new_id
    return id_map


def fallback_category_id(inserted: Sequence[Mapping[str, Any]]) -> Optional[str]:
    """The inserted "other" category, else the first inserted one."""
    for row in inserted:
        if row.get("system_key") == OTHER_SYSTEM_KEY:
            return str(row["id"])
    return str(inserted[0]["id"]) if inserted else None


def build_month_rows(
    profile_id: str,
    monthly_data: Mapping[str, Mapping[str, Any]],
    id_map: Mapping[str, str],
    fallback_id: Optional[str],
) -> tuple[list[dict], list[dict]]:
    """
    Turn the document's monthlyData into monthly_stats and expenses rows.

    Returns:
        (monthly_stats_rows, expense_rows)
    """
    month_rows = []
    expense_rows = []

    for month_key, month in monthly_data.items():
        month_rows.append({
            "profile_id": profile_id,
            "month_key": month_key,
            "budget": clamp_non_negative(month.get("budget")),
            "income": clamp_non_negative(month.get("income")),
        })

        expenses = month.get("expenses")
        if not isinstance(expenses, list):
            continue
        for expense in expenses:
            if not isinstance(expense, dict):
                continue
            reference = expense.get("categoryId")
            reference = str(reference) if reference is not None else ""
            category_id = (
                id_map.get(reference)
                or id_map.get(reference.casefold())
                or fallback_id
            )

            amount = to_decimal(expense.get("amount"))
            if amount is None or amount <= ZERO:
                amount = MIN_IMPORTED_AMOUNT
            amount = max(MIN_IMPORTED_AMOUNT, amount)

            expense_date = parse_iso_date(expense.get("date"))
            date_text = expense_date.isoformat() if expense_date else f"{month_key}-01"

            expense_rows.append({
                "profile_id": profile_id,
                "category_id": category_id,
                "name": str(expense.get("name") or "Expense"),
                "amount": amount,
                "date": date_text,
            })

    return month_rows, expense_rows
