#!/usr/bin/env python3
"""
MoneyWise - Simple Launcher

Runs the same startup sequence as the ``moneywise-server`` command:
version and dependency checks, database setup or restore, backup,
migrations, then the Flask server.

Usage:
    python start.py
"""

from moneywise.launcher import main

if __name__ == "__main__":
    main()
