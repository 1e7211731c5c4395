"""
MoneyWise - Authentication

Email/password accounts stored in the ``users`` table of the same SQLite
file as the financial data. Passwords are hashed with bcrypt; the plain
text never reaches storage or the logs.

Every successful call returns a ``UserSession``, which is what the engine
and the repositories are scoped to.
"""

import logging
import sqlite3

import bcrypt

from .models import UserSession
from .repositories import SQLiteRepository

LOG = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6


class AuthService(SQLiteRepository):
    """Sign-up, sign-in and session lookup against the ``users`` table."""

    def __init__(self, db_path, bcrypt_rounds=12):
        super().__init__(db_path)
        self.bcrypt_rounds = bcrypt_rounds

    @staticmethod
    def _row_to_session(row):
        return UserSession(
            user_id=row['user_id'],
            email=row['email'],
            first_name=row['first_name'],
            last_name=row['last_name'],
        )

    @staticmethod
    def _normalize_email(email):
        return (email or '').strip().lower()

    def sign_up(self, email, password, first_name=None, last_name=None):
        """
        Register a new user with a bcrypt-hashed password.

        Returns:
            tuple: (success bool, message str, UserSession or None)
        """
        email = self._normalize_email(email)
        if not email or '@' not in email:
            return False, "A valid email address is required.", None
        if not password or len(password) < MIN_PASSWORD_LENGTH:
            return False, f"Password must be at least {MIN_PASSWORD_LENGTH} characters.", None

        conn, cursor = self._get_db_connection()
        try:
            cursor.execute("SELECT user_id FROM users WHERE email = ?", (email,))
            if cursor.fetchone():
                return False, "An account with this email already exists.", None

            password_hash = bcrypt.hashpw(password.encode('utf-8'), bcrypt.gensalt(rounds=self.bcrypt_rounds))
            cursor.execute(
                "INSERT INTO users (email, password_hash, first_name, last_name) VALUES (?, ?, ?, ?)",
                (email, password_hash.decode('utf-8'), (first_name or '').strip() or None, (last_name or '').strip() or None)
            )
            new_user_id = cursor.lastrowid
            conn.commit()
            LOG.info("Registered user %s", new_user_id)
            return True, "Account created successfully.", UserSession(
                user_id=new_user_id,
                email=email,
                first_name=(first_name or '').strip() or None,
                last_name=(last_name or '').strip() or None,
            )
        except sqlite3.Error as err:
            conn.rollback()
            LOG.error("Sign-up failed: %s", err)
            return False, "Could not create the account. Please try again.", None
        finally:
            cursor.close()
            conn.close()

    def sign_in(self, email, password):
        """
        Authenticate with email and password.

        Returns:
            tuple: (UserSession or None, message str)
        """
        email = self._normalize_email(email)
        if not email or not password:
            return None, "Email and password are required."

        conn, cursor = self._get_db_connection()
        try:
            cursor.execute(
                "SELECT user_id, email, password_hash, first_name, last_name FROM users WHERE email = ?",
                (email,)
            )
            row = cursor.fetchone()
            if not row:
                return None, "Invalid email or password."

            if bcrypt.checkpw(password.encode('utf-8'), row['password_hash'].encode('utf-8')):
                return self._row_to_session(row), "Login successful."
            return None, "Invalid email or password."

        except sqlite3.Error as err:
            LOG.error("Sign-in failed: %s", err)
            return None, "Could not sign in. Please try again."
        finally:
            cursor.close()
            conn.close()

    def get_user(self, user_id):
        """The session for ``user_id``, or None when the user no longer exists."""
        conn, cursor = self._get_db_connection()
        try:
            cursor.execute(
                "SELECT user_id, email, first_name, last_name FROM users WHERE user_id = ?",
                (user_id,)
            )
            row = cursor.fetchone()
            return self._row_to_session(row) if row else None
        except sqlite3.Error as err:
            raise self._fail(conn, "load user", err) from err
        finally:
            cursor.close()
            conn.close()

    def delete_user(self, user_id):
        """Remove a user and, through the cascades, everything they own."""
        conn, cursor = self._get_db_connection()
        try:
            cursor.execute("DELETE FROM users WHERE user_id = ?", (user_id,))
            conn.commit()
            return cursor.rowcount > 0
        except sqlite3.Error as err:
            raise self._fail(conn, "delete user", err) from err
        finally:
            cursor.close()
            conn.close()


__all__ = ['AuthService', 'MIN_PASSWORD_LENGTH']
