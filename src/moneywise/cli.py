"""
MoneyWise - Terminal Client

A menu-driven client over the same engine the API serves:
dashboard, statistics, entering transactions, recording recurring
templates and contributing to goals.

Usage:
    moneywise              interactive menu
    moneywise seed-demo    create a demo user with generated data
"""

import getpass
import os
import sys
import uuid

from .auth import AuthService
from .config import Config
from .demo_data import generate_demo_data
from .engine import MoneyWiseEngine
from .errors import StorageError, ValidationError
from .log import setup_logging
from .models import CONTRIBUTION_PRESETS, EXPENSE, INCOME, PERIOD_MONTH, PERIOD_YEAR
from .setup_sqlite import create_database

STATUS_LABELS = {'near': 'NEAR LIMIT', 'exceeded': 'EXCEEDED'}


# =============================================================================
# FORMATTING
# =============================================================================

def format_money(amount):
    return f"€{amount:,.2f}"


def format_dashboard(view):
    """Return the dashboard as a list of printable lines."""
    projection = view.projection
    lines = [
        "=" * 60,
        "      MONEYWISE - THIS MONTH",
        "=" * 60,
        f"Spent:      {format_money(view.monthly_spent)}",
        f"Budget:     {format_money(view.monthly_budget)}  ({view.budget_percentage:.1f}% used)",
        f"Remaining:  {format_money(view.remaining_budget)}",
        f"Projection: {format_money(projection.projected)} "
        f"({format_money(projection.daily_rate)}/day) - "
        f"{'OVER BUDGET' if projection.over_budget else 'within budget'}",
    ]
    if view.limit_alerts:
        lines.append("-" * 60)
        for usage in view.limit_alerts:
            lines.append(
                f"[{STATUS_LABELS[usage.status]}] {usage.category}: "
                f"{format_money(usage.current_spent)} of {format_money(usage.monthly_limit)} "
                f"({usage.percentage:.1f}%)"
            )
    lines.append("-" * 60)
    lines.append("Recent transactions:")
    if not view.recent_transactions:
        lines.append("  (none)")
    for tx in view.recent_transactions:
        sign = '-' if tx.transaction_type == EXPENSE else '+'
        lines.append(f"  {tx.date}  {tx.title:<24} {tx.category:<16} {sign}{format_money(tx.amount)}")
    return lines


def format_statistics(view):
    """Return the statistics page as a list of printable lines."""
    lines = [
        "=" * 60,
        f"      STATISTICS - {view.start} to {view.end}",
        "=" * 60,
        f"Total spent: {format_money(view.total_spent)} in {view.transaction_count} expense(s)",
    ]
    if view.split is not None and view.total_spent:
        lines.append(
            f"Personal {format_money(view.split.personal)} ({view.split.personal_percentage:.1f}%)  "
            f"Household {format_money(view.split.household)} ({view.split.household_percentage:.1f}%)"
        )
    lines.append("-" * 60)
    for stat in view.categories:
        line = f"{stat.category:<18} {format_money(stat.total):>12} {stat.percentage:5.1f}%"
        if stat.limit is not None:
            line += f"  limit {format_money(stat.limit)} ({stat.limit_percentage:.0f}%)"
            if stat.limit_status in STATUS_LABELS:
                line += f" {STATUS_LABELS[stat.limit_status]}"
        lines.append(line)
    return lines


def _print_lines(lines):
    for line in lines:
        print(line)


def _choose(options, prompt="> "):
    """Print numbered options and return the chosen one, or None."""
    for i, option in enumerate(options):
        print(f"  [{i+1}] {option}")
    try:
        index = int(input(prompt)) - 1
    except ValueError:
        return None
    if 0 <= index < len(options):
        return options[index]
    return None


# =============================================================================
# MENU HANDLERS
# =============================================================================

def handle_dashboard(engine, session):
    os.system('cls' if os.name == 'nt' else 'clear')
    _print_lines(format_dashboard(engine.dashboard(session)))
    input("\nPress Enter to return to the menu...")


def handle_statistics(engine, session, period):
    _print_lines(format_statistics(engine.statistics(session, period)))
    input("\nPress Enter to return to the menu...")


def handle_add_transaction(engine, session):
    """Handles user input for a new income or expense."""
    print("\n--- Add Transaction ---")
    transaction_type = _choose([EXPENSE, INCOME])
    if transaction_type is None:
        print("Invalid selection.")
        return

    print("Category:")
    category = _choose(engine.category_names(session))
    if category is None:
        print("Invalid selection.")
        return

    data = {
        'transaction_type': transaction_type,
        'category': category,
        'title': input("Title: "),
        'amount': input("Amount: €"),
        'date': input("Date (YYYY-MM-DD, empty for today): "),
    }
    if transaction_type == EXPENSE:
        data['expense_type'] = 'household' if input("Household expense? (y/N): ").lower() == 'y' else 'personal'
    if input("Recurring template? (y/N): ").lower() == 'y':
        data['is_recurring'] = True
        data['recurring_period'] = input("Period (weekly/monthly/quarterly/yearly) [monthly]: ") or 'monthly'

    # Templates are not spend until recorded, so only one-off expenses are checked
    if transaction_type == EXPENSE and not data.get('is_recurring'):
        try:
            warning = engine.limit_warning(session, category, data['amount'])
        except ValidationError as err:
            print(f"  -> {err.message}")
            return
        if warning:
            print(f"  !! This brings {category} to {warning.percentage:.0f}% of its monthly limit.")
            if input("  Save anyway? (y/N): ").lower() != 'y':
                return

    success, message, _tx = engine.create_transaction(session, data)
    print(f"  -> {message}")


def handle_record_recurring(engine, session):
    """Record a recurring template as this period's one-off transaction."""
    print("\n--- Record Recurring Transaction ---")
    templates = engine.recurring_transactions(session)
    if not templates:
        print("No recurring transactions.")
        return
    labels = [f"{tx.title} ({tx.recurring_period}, {format_money(tx.amount)})" for tx in templates]
    choice = _choose(labels)
    if choice is None:
        print("Invalid selection.")
        return
    template = templates[labels.index(choice)]
    amount = input(f"Amount [{template.amount}]: ")
    success, message, _tx = engine.clone_recurring(session, template.id, {'amount': amount or None})
    print(f"  -> {message}")


def handle_contribute(engine, session):
    print("\n--- Contribute to Goal ---")
    goals = [goal for goal in engine.list_goals(session) if not goal.is_completed]
    if not goals:
        print("No open goals.")
        return
    labels = [
        f"{goal.title} - {format_money(goal.current_amount)} / {format_money(goal.target_amount)} ({goal.progress:.0f}%)"
        for goal in goals
    ]
    choice = _choose(labels)
    if choice is None:
        print("Invalid selection.")
        return
    goal = goals[labels.index(choice)]
    presets = ", ".join(str(int(preset)) for preset in CONTRIBUTION_PRESETS)
    amount = input(f"Amount ({presets} or any other): €")
    success, message, _goal = engine.contribute_to_goal(session, goal.id, amount)
    print(f"  -> {message}")


def handle_spending_limits(engine, session):
    print("\n--- Spending Limits ---")
    for usage in engine.spending_limits(session):
        print(f"  {usage.category:<18} {format_money(usage.current_spent):>12} / "
              f"{format_money(usage.monthly_limit):<12} {usage.percentage:5.1f}% {usage.status}")
    category = input("Category to set (empty to go back): ").strip()
    if category:
        success, message, _limit = engine.set_spending_limit(session, category, input("Monthly limit: €"))
        print(f"  -> {message}")


def run_main_menu(engine, session):
    while True:
        print(f"\n--- MAIN MENU ({session.display_name}) ---")
        print("1. Dashboard")
        print("2. Statistics (this month)")
        print("3. Statistics (this year)")
        print("4. Add Transaction")
        print("5. Record Recurring Transaction")
        print("6. Contribute to Goal")
        print("7. Spending Limits")
        print("8. Exit")

        choice = input("> ")

        try:
            if not _dispatch(engine, session, choice):
                print("Goodbye!")
                break
        except StorageError as err:
            print(f"  -> {err}")


def _dispatch(engine, session, choice):
    """Run one menu entry. Returns False when the user chose to exit."""
    if choice == '1':
        handle_dashboard(engine, session)
    elif choice == '2':
        handle_statistics(engine, session, PERIOD_MONTH)
    elif choice == '3':
        handle_statistics(engine, session, PERIOD_YEAR)
    elif choice == '4':
        handle_add_transaction(engine, session)
    elif choice == '5':
        handle_record_recurring(engine, session)
    elif choice == '6':
        handle_contribute(engine, session)
    elif choice == '7':
        handle_spending_limits(engine, session)
    elif choice == '8':
        return False
    else:
        print("Invalid choice, please try again.")
    return True


def sign_in_prompt(auth):
    """Ask for credentials until the user signs in, registers or gives up."""
    while True:
        print("\n1. Sign in   2. Register   3. Exit")
        choice = input("> ")
        if choice == '3':
            return None
        email = input("Email: ")
        password = getpass.getpass("Password: ")
        if choice == '1':
            user_session, message = auth.sign_in(email, password)
        elif choice == '2':
            _ok, message, user_session = auth.sign_up(email, password, first_name=input("First name (optional): "))
        else:
            continue
        print(f"  -> {message}")
        if user_session:
            return user_session


def seed_demo(engine, auth):
    email = f"demo_{uuid.uuid4().hex[:6]}@demo.moneywise"
    password = uuid.uuid4().hex[:12]
    success, message, user_session = auth.sign_up(email, password, first_name="Demo")
    if not success:
        print(f"[ERROR] {message}")
        return None
    info = generate_demo_data(engine, user_session)
    print(f"[OK] Demo user created: {email} / {password}")
    print(f"[OK] {info['transactions_generated']} transactions, {info['goals']} goals, "
          f"{info['spending_limits']} spending limits ({info['date_range']})")
    return user_session


def main(argv=None):
    argv = sys.argv[1:] if argv is None else argv
    config = Config.from_env()
    setup_logging(config.LOG_LEVEL, log_dir=config.LOG_DIR, console=False)

    if not config.DB_PATH.exists() and not create_database(config.DB_PATH, verbose=False):
        print(f"[ERROR] Could not create the database at {config.DB_PATH}. Check the log for details.")
        return 1

    engine = MoneyWiseEngine.from_sqlite(config.DB_PATH)
    auth = AuthService(config.DB_PATH, bcrypt_rounds=config.BCRYPT_ROUNDS)

    if argv and argv[0] == 'seed-demo':
        return 0 if seed_demo(engine, auth) else 1

    user_session = sign_in_prompt(auth)
    if user_session is None:
        return 0
    engine.initialize_default_categories(user_session)
    run_main_menu(engine, user_session)
    return 0


if __name__ == "__main__":
    sys.exit(main())
