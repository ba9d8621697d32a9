"""
Demo Data

Builds a realistic export document (six months of templated expenses
ending at the current month) that a demo session imports into a fresh
profile. The document goes through the normal import path, so demo data
obeys every ledger rule real data does.
"""

import calendar
import random
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional

from fintrack.models.ledger import DEFAULT_CATEGORIES
from fintrack.utils.months import current_month_key, parse_month_key, shift_month
from fintrack.utils.months import today as current_day

DEMO_EMAIL = "demo@fintrack.app"
DEMO_PROFILE_NAME = "Demo User"

# (name, min amount, max amount) per category system key
EXPENSE_TEMPLATES: dict[str, list[tuple[str, float, float]]] = {
    "housing": [
        ("Monthly Rent", 1200, 1200),
        ("Home Insurance", 80, 120),
        ("Maintenance Fee", 50, 90),
    ],
    "food": [
        ("Grocery Store", 40, 120),
        ("Coffee Shop", 4, 8),
        ("Lunch - Restaurant", 12, 25),
        ("Dinner Out", 30, 65),
        ("Takeout Pizza", 15, 28),
        ("Bakery", 5, 15),
        ("Supermarket", 60, 140),
        ("Fruit Market", 8, 20),
    ],
    "transport": [
        ("Bus Pass", 45, 60),
        ("Uber Ride", 10, 30),
        ("Gas Station", 35, 65),
        ("Parking Fee", 5, 15),
        ("Car Wash", 10, 20),
    ],
    "entertainment": [
        ("Netflix Subscription", 15, 15),
        ("Spotify Premium", 10, 10),
        ("Movie Tickets", 20, 35),
        ("Concert Tickets", 50, 120),
        ("Video Game", 30, 70),
        ("Book Purchase", 10, 25),
    ],
    "health": [
        ("Gym Membership", 30, 50),
        ("Pharmacy", 15, 45),
        ("Doctor Visit", 40, 100),
        ("Vitamins & Supplements", 20, 40),
    ],
    "utilities": [
        ("Electric Bill", 60, 130),
        ("Water Bill", 25, 50),
        ("Internet Service", 50, 70),
        ("Phone Plan", 35, 55),
    ],
    "shopping": [
        ("New Shoes", 50, 120),
        ("Clothing Store", 30, 90),
        ("Electronics", 20, 200),
        ("Amazon Order", 15, 80),
        ("Home Decor", 20, 60),
    ],
    "other": [
        ("Haircut", 15, 35),
        ("Gift for Friend", 20, 60),
        ("Charity Donation", 10, 50),
        ("Dry Cleaning", 10, 25),
    ],
}


def _category_id(system_key: str) -> str:
    return f"demo-cat-{system_key}"


def _round_to_50(value: float) -> int:
    return int(round(value / 50) * 50)


def _month_expenses(rng: random.Random, month_key: str, count: int, next_id) -> list[dict]:
    year, month = parse_month_key(month_key)
    days = calendar.monthrange(year, month)[1]
    keys = list(EXPENSE_TEMPLATES)

    expenses = []
    for _ in range(count):
        system_key = rng.choice(keys)
        name, low, high = rng.choice(EXPENSE_TEMPLATES[system_key])
        day = date(year, month, rng.randint(1, days))
        created_at = datetime.combine(day, time(), tzinfo=timezone.utc) + timedelta(
            seconds=rng.randint(0, 86399)
        )
        expenses.append({
            "id": next_id(),
            "name": name,
            "amount": round(rng.uniform(low, high), 2),
            "categoryId": _category_id(system_key),
            "date": day.isoformat(),
            "createdAt": created_at.isoformat(),
        })

    expenses.sort(key=lambda item: (item["date"], item["createdAt"]), reverse=True)
    return expenses


def generate_demo_document(
    today: Optional[date] = None,
    seed: Optional[int] = None,
    months: int = 6,
) -> dict:
    """
    Build a demo export document.

    Args:
        today: Day the demo ends at (defaults to today)
        seed: Seed for reproducible data
        months: Number of months ending at the current one

    Returns:
        A document accepted by LedgerManager.import_data()
    """
    rng = random.Random(seed)
    current = current_month_key(today or current_day())
    counter = 0

    def next_id() -> str:
        nonlocal counter
        counter += 1
        return f"demo-exp-{counter}"

    monthly_data = {}
    for offset in range(months - 1, -1, -1):
        key = shift_month(current, -offset)
        expenses = _month_expenses(rng, key, rng.randint(15, 30), next_id)
        spent = sum(expense["amount"] for expense in expenses)
        # Income a bit above spending, budget between the two
        monthly_data[key] = {
            "budget": _round_to_50(spent * (1.05 + rng.random() * 0.15)),
            "income": _round_to_50(spent * (1.15 + rng.random() * 0.25)),
            "expenses": expenses,
        }

    return {
        "profile": {"name": DEMO_PROFILE_NAME, "currency": "$"},
        "currentMonth": current,
        "categories": [
            {
                "id": _category_id(category["system_key"]),
                "name": category["name"],
                "color": category["color"],
                "systemKey": category["system_key"],
            }
            for category in DEFAULT_CATEGORIES
        ],
        "monthlyData": monthly_data,
    }
