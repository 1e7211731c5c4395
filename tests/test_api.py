from __future__ import annotations

import datetime

import pytest


def test_health(client) -> None:
    response = client.get("/api/health")
    assert response.status_code == 200
    assert response.get_json() == {"status": "ok", "database": True}


@pytest.mark.parametrize(
    ("method", "path"),
    [
        ("get", "/api/check_session"),
        ("get", "/api/categories"),
        ("post", "/api/transactions"),
        ("get", "/api/dashboard"),
        ("get", "/api/statistics"),
        ("post", "/api/logout"),
    ],
)
def test_protected_routes_require_login(client, method: str, path: str) -> None:
    response = getattr(client, method)(path)
    assert response.status_code == 401
    assert response.get_json()["success"] is False


def test_register_login_logout(client) -> None:
    body = {"email": "anna@example.com", "password": "secret-pass", "first_name": "Anna"}
    response = client.post("/api/register", json=body)
    assert response.status_code == 200
    assert response.get_json()["user"]["email"] == "anna@example.com"

    assert client.post("/api/register", json=body).status_code == 409
    assert client.post("/api/register", json={"email": "x@y.it", "password": "1"}).status_code == 400

    session_info = client.get("/api/check_session").get_json()
    assert session_info["display_name"] == "Anna"
    assert session_info["is_demo"] is False

    assert client.post("/api/logout").status_code == 200
    assert client.get("/api/check_session").status_code == 401

    assert client.post("/api/login", json={"email": "anna@example.com", "password": "wrong-pass"}).status_code == 401
    assert client.post("/api/login", json={"email": "anna@example.com", "password": "secret-pass"}).status_code == 200
    assert client.get("/api/check_session").status_code == 200


def test_register_seeds_default_categories(logged_in_client) -> None:
    categories = logged_in_client.get("/api/categories").get_json()
    assert len(categories) == 10
    assert all(category["is_default"] for category in categories)

    response = logged_in_client.post("/api/categories/defaults")
    assert response.get_json()["created"] == 0


def test_default_category_cannot_be_deleted(logged_in_client) -> None:
    default = logged_in_client.get("/api/categories").get_json()[0]
    response = logged_in_client.delete(f"/api/categories/{default['id']}")
    assert response.status_code == 400
    assert response.get_json()["message"] == "Default categories cannot be deleted."

    created = logged_in_client.post("/api/categories", json={"name": "Animali"}).get_json()["category"]
    assert logged_in_client.delete(f"/api/categories/{created['id']}").status_code == 200


def test_category_names(logged_in_client) -> None:
    names = logged_in_client.get("/api/categories/names").get_json()
    assert "Alimentari" in names
    goal_names = logged_in_client.get("/api/categories/names?kind=goal").get_json()
    assert "Alimentari" in goal_names


def test_transaction_crud_and_serialization(logged_in_client) -> None:
    response = logged_in_client.post(
        "/api/transactions",
        json={"title": "Coop", "amount": "42.50", "category": "Alimentari", "date": "2024-03-02"},
    )
    assert response.status_code == 200
    tx = response.get_json()["transaction"]
    assert tx["amount"] == 42.5
    assert tx["date"] == "2024-03-02"
    assert tx["expense_type"] == "personal"

    bad = logged_in_client.post("/api/transactions", json={"title": "Coop", "amount": "abc", "category": "Alimentari"})
    assert bad.status_code == 400
    assert bad.get_json()["message"] == "Amount must be a number."

    update = {"title": "Esselunga", "amount": "40", "category": "Alimentari", "date": "2024-03-02"}
    assert logged_in_client.put(f"/api/transactions/{tx['id']}", json=update).status_code == 200
    listed = logged_in_client.get("/api/transactions?limit=5").get_json()
    assert [item["title"] for item in listed] == ["Esselunga"]

    assert logged_in_client.delete(f"/api/transactions/{tx['id']}").status_code == 200
    assert logged_in_client.get("/api/transactions").get_json() == []


def test_recurring_clone(logged_in_client) -> None:
    template = logged_in_client.post(
        "/api/transactions",
        json={"title": "Affitto", "amount": "750", "category": "Casa", "is_recurring": True},
    ).get_json()["transaction"]

    recurring = logged_in_client.get("/api/transactions/recurring").get_json()
    assert [item["id"] for item in recurring] == [template["id"]]

    response = logged_in_client.post(f"/api/transactions/{template['id']}/clone", json={"amount": "760"})
    assert response.status_code == 200
    clone = response.get_json()["transaction"]
    assert clone["is_recurring"] is False
    assert clone["amount"] == 760.0
    assert clone["date"] == datetime.date.today().isoformat()

    assert logged_in_client.post("/api/transactions/99999/clone", json={}).status_code == 404


def test_spending_limits_and_limit_check(logged_in_client) -> None:
    response = logged_in_client.post("/api/spending_limits", json={"category": "Alimentari", "monthly_limit": "100"})
    assert response.status_code == 200
    logged_in_client.post("/api/transactions", json={"title": "Coop", "amount": "70", "category": "Alimentari"})

    check = logged_in_client.post("/api/transactions/limit_check", json={"category": "Alimentari", "amount": "15"})
    warning = check.get_json()["warning"]
    assert warning["status"] == "near"
    assert warning["current_spent"] == 85.0

    quiet = logged_in_client.post("/api/transactions/limit_check", json={"category": "Alimentari", "amount": "1"})
    assert quiet.get_json() == {"warning": None}

    invalid = logged_in_client.post("/api/transactions/limit_check", json={"category": "Alimentari", "amount": "x"})
    assert invalid.status_code == 400
    assert invalid.get_json()["field"] == "amount"

    limits = logged_in_client.get("/api/spending_limits").get_json()
    assert limits[0]["percentage"] == 70.0
    assert limits[0]["remaining"] == 30.0

    assert logged_in_client.delete(f"/api/spending_limits/{limits[0]['id']}").status_code == 200
    assert logged_in_client.get("/api/spending_limits").get_json() == []


def test_goals_and_contributions(logged_in_client) -> None:
    goal = logged_in_client.post(
        "/api/goals",
        json={"title": "Vacanza", "target_amount": "100", "target_date": "2030-07-01", "category": "Vacanze"},
    ).get_json()["goal"]
    assert goal["progress"] == 0.0

    response = logged_in_client.post(f"/api/goals/{goal['id']}/contribute", json={"amount": "150"})
    assert response.status_code == 200
    body = response.get_json()
    assert body["message"] == "Goal completed!"
    assert body["goal"]["current_amount"] == 100.0
    assert body["goal"]["is_completed"] is True

    assert logged_in_client.post("/api/goals/99999/contribute", json={"amount": "10"}).status_code == 404
    assert logged_in_client.put(f"/api/goals/{goal['id']}", json={"target_amount": "500"}).status_code == 200
    assert logged_in_client.get("/api/goals").get_json()[0]["is_completed"] is False
    assert logged_in_client.delete(f"/api/goals/{goal['id']}").status_code == 200


def test_dashboard_and_statistics(logged_in_client) -> None:
    logged_in_client.post("/api/goals", json={
        "title": "Fondo", "target_amount": "1000", "target_date": "2030-01-01", "category": "Risparmio",
    })
    logged_in_client.post("/api/transactions", json={
        "title": "Coop", "amount": "30", "category": "Alimentari", "expense_type": "household",
    })

    dashboard = logged_in_client.get("/api/dashboard").get_json()
    assert dashboard["monthly_spent"] == 30.0
    assert dashboard["monthly_budget"] == 1000.0
    assert len(dashboard["active_goals"]) == 1
    assert "projection" in dashboard

    stats = logged_in_client.get("/api/statistics?period=year").get_json()
    assert stats["period"] == "year"
    assert stats["total_spent"] == 30.0
    assert stats["split"]["household_percentage"] == 100.0
    assert stats["categories"][0]["category"] == "Alimentari"

    assert logged_in_client.get("/api/statistics?period=week").status_code == 400


def test_users_cannot_see_each_other(client) -> None:
    client.post("/api/register", json={"email": "anna@example.com", "password": "secret-pass"})
    tx = client.post(
        "/api/transactions", json={"title": "Coop", "amount": "10", "category": "Alimentari"}
    ).get_json()["transaction"]
    client.post("/api/logout")

    client.post("/api/register", json={"email": "marco@example.com", "password": "secret-pass"})
    assert client.get("/api/transactions").get_json() == []
    client.delete(f"/api/transactions/{tx['id']}")
    client.post("/api/logout")

    client.post("/api/login", json={"email": "anna@example.com", "password": "secret-pass"})
    assert len(client.get("/api/transactions").get_json()) == 1


def test_demo_login_creates_and_discards_demo_user(client, app) -> None:
    response = client.post("/api/demo_login")
    assert response.status_code == 200
    info = response.get_json()["demo_info"]
    assert info["goals"] == 3

    session_info = client.get("/api/check_session").get_json()
    assert session_info["is_demo"] is True
    assert client.get("/api/spending_limits").get_json()

    assert client.post("/api/logout").status_code == 200
    assert client.get("/api/check_session").status_code == 401

    # The demo account is gone, so its address is free again
    auth = app.extensions["moneywise"]["auth"]
    ok, _message, _user = auth.sign_up(session_info["email"], "another-pass")
    assert ok
