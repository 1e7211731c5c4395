"""MoneyWise - personal finance tracking with goals and monthly spending limits."""

__version__ = "1.0.0"
