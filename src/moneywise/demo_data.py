"""
MoneyWise - Demo Data Generator

Generates realistic fake financial data for demo mode.
Creates a persona with about three months of expense history, monthly
income, recurring templates, a few savings goals and spending limits.
"""

import logging
import random
from datetime import date, timedelta

from faker import Faker

from .models import EXPENSE, HOUSEHOLD, INCOME, PERSONAL

LOG = logging.getLogger(__name__)

HISTORY_DAYS = 90

# Format: category, descriptions, min, max, frequency in days, expense type
EXPENSE_TEMPLATES = [
    ("Alimentari", ["Esselunga", "Coop", "Conad", "Mercato rionale"], 25, 110, 4, HOUSEHOLD),
    ("Ristoranti", ["Pizzeria", "Trattoria", "Sushi", "Bar colazione"], 8, 60, 5, PERSONAL),
    ("Trasporti", ["Benzina", "Abbonamento bus", "Taxi", "Treno"], 2, 60, 6, PERSONAL),
    ("Shopping", ["Amazon", "Zara", "Decathlon", "Libreria"], 15, 150, 12, PERSONAL),
    ("Intrattenimento", ["Cinema", "Concerto", "Museo", "Videogioco"], 8, 70, 14, PERSONAL),
    ("Salute", ["Farmacia", "Visita medica", "Dentista"], 10, 120, 25, PERSONAL),
    ("Casa", ["Ferramenta", "IKEA", "Pulizie"], 10, 90, 20, HOUSEHOLD),
]

RECURRING_TEMPLATES = [
    {"title": "Affitto", "amount": "750.00", "category": "Casa", "expense_type": HOUSEHOLD, "recurring_period": "monthly"},
    {"title": "Bolletta luce e gas", "amount": "95.00", "category": "Bollette", "expense_type": HOUSEHOLD, "recurring_period": "monthly"},
    {"title": "Internet", "amount": "29.90", "category": "Bollette", "expense_type": HOUSEHOLD, "recurring_period": "monthly"},
    {"title": "Palestra", "amount": "45.00", "category": "Salute", "expense_type": PERSONAL, "recurring_period": "monthly"},
    {"title": "Assicurazione auto", "amount": "420.00", "category": "Trasporti", "expense_type": PERSONAL, "recurring_period": "yearly"},
]

SPENDING_LIMITS = {
    "Alimentari": "400.00",
    "Ristoranti": "150.00",
    "Shopping": "200.00",
    "Intrattenimento": "80.00",
}


def generate_demo_data(engine, session, today=None, seed=None):
    """
    Generate realistic demo data for a user.

    Creates:
    - The default categories
    - ~3 months of random expenses with a personal/household split
    - A salary on the 27th of each month
    - Recurring templates (rent, bills, subscriptions)
    - Savings goals with some progress, and spending limits

    Returns:
        dict: summary of what was generated
    """
    rng = random.Random(seed)
    fake = Faker('it_IT')
    if seed is not None:
        fake.seed_instance(seed)

    current_date = today or date.today()
    start_date = current_date - timedelta(days=HISTORY_DAYS)

    LOG.info("[DEMO] Generating demo data from %s to %s for user %s", start_date, current_date, session.user_id)

    engine.initialize_default_categories(session)

    # ===== GENERATE HISTORICAL EXPENSES =====

    expense_count = 0
    expense_date = start_date
    while expense_date <= current_date:
        for category, descriptions, low, high, frequency, expense_type in EXPENSE_TEMPLATES:
            if rng.random() < (1.0 / frequency):
                ok, message, _tx = engine.create_transaction(session, {
                    "title": rng.choice(descriptions),
                    "amount": f"{rng.uniform(low, high):.2f}",
                    "category": category,
                    "transaction_type": EXPENSE,
                    "expense_type": expense_type,
                    "date": expense_date.isoformat(),
                })
                if ok:
                    expense_count += 1
                else:
                    LOG.warning("[DEMO] Could not add expense: %s", message)
        expense_date += timedelta(days=1)

    # ===== GENERATE INCOME =====

    employer = fake.company()
    income_count = 0
    payday = start_date.replace(day=27) if start_date.day <= 27 else (start_date.replace(day=1) + timedelta(days=32)).replace(day=27)
    while payday <= current_date:
        engine.create_transaction(session, {
            "title": f"Stipendio - {employer}",
            "amount": f"{rng.uniform(1800, 2200):.2f}",
            "category": "Altro",
            "transaction_type": INCOME,
            "date": payday.isoformat(),
        })
        income_count += 1
        payday = (payday.replace(day=1) + timedelta(days=32)).replace(day=27)

    # ===== RECURRING TEMPLATES =====

    for template in RECURRING_TEMPLATES:
        engine.create_transaction(session, dict(
            template,
            transaction_type=EXPENSE,
            is_recurring=True,
            date=start_date.replace(day=1).isoformat(),
        ))

    # ===== GOALS =====

    goals = [
        ("Fondo emergenza", "Emergenza", 3000, 180),
        ("Vacanza estiva", "Vacanze", 1500, 120),
        (f"Corso di {fake.job().split()[0].lower()}", "Educazione", 600, 60),
    ]
    for title, category, target, days_ahead in goals:
        engine.create_goal(session, {
            "title": title,
            "category": category,
            "target_amount": str(target),
            "current_amount": f"{target * rng.uniform(0.1, 0.6):.2f}",
            "target_date": (current_date + timedelta(days=days_ahead)).isoformat(),
            "description": fake.sentence(nb_words=6),
        })

    # ===== SPENDING LIMITS =====

    for category, monthly_limit in SPENDING_LIMITS.items():
        engine.set_spending_limit(session, category, monthly_limit)

    LOG.info("[DEMO] Generated %d expenses and %d paychecks", expense_count, income_count)

    return {
        "persona": fake.name(),
        "employer": employer,
        "transactions_generated": expense_count + income_count,
        "recurring_templates": len(RECURRING_TEMPLATES),
        "goals": len(goals),
        "spending_limits": len(SPENDING_LIMITS),
        "date_range": f"{start_date} to {current_date}",
    }
