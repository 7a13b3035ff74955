"""
Tests for Transactions API endpoints
"""
from unittest.mock import ANY

from app.auth import hash_password
from app.infrastructure.db.models import User
from app.utils import clock


def _create(client, user_id, **body):
    payload = {"type": "EXPENSE", "amount": "200.00", "date": "2025-10-12"}
    payload.update(body)
    return client.post(f"/api/v1/users/{user_id}/transactions", json=payload)


def _balance(client, user_id, account_id) -> str:
    return client.get(f"/api/v1/users/{user_id}/accounts/{account_id}").json()["balance"]


def test_create_expense(auth_client, user_id, make_account):
    account_id = make_account(user_id, "1000.00")

    response = _create(auth_client, user_id, accountId=account_id, description="Продукты")

    assert response.status_code == 201
    data = response.json()
    assert data["type"] == "EXPENSE"
    assert data["accountId"] == account_id
    assert data["amount"] == "200.00"
    assert data["transferAccountId"] is None
    assert data["description"] == "Продукты"
    assert _balance(auth_client, user_id, account_id) == "800.00"


def test_create_transfer_and_delete(auth_client, user_id, make_account):
    a = make_account(user_id, "1000.00")
    b = make_account(user_id, "300.00", name="Вклад")

    created = _create(auth_client, user_id, type="TRANSFER", accountId=a, transferAccountId=b, amount="250")
    assert created.status_code == 201
    assert _balance(auth_client, user_id, a) == "750.00"
    assert _balance(auth_client, user_id, b) == "550.00"

    deleted = auth_client.delete(f"/api/v1/users/{user_id}/transactions/{created.json()['id']}")
    assert deleted.status_code == 204
    assert _balance(auth_client, user_id, a) == "1000.00"
    assert _balance(auth_client, user_id, b) == "300.00"


def test_insufficient_funds_is_400(auth_client, user_id, make_account):
    account_id = make_account(user_id, "100")

    response = _create(auth_client, user_id, accountId=account_id, amount="100.01")

    assert response.status_code == 400
    assert "Insufficient funds" in response.json()["detail"]
    assert _balance(auth_client, user_id, account_id) == "100.00"


def test_invalid_amount_is_400(auth_client, user_id, make_account):
    account_id = make_account(user_id, "100")
    for amount in ("abc", "0", "-5", "1.234"):
        assert _create(auth_client, user_id, accountId=account_id, amount=amount).status_code == 400


def test_foreign_account_is_404(auth_client, user_id, other_user_id, make_account):
    foreign = make_account(other_user_id, "1000")
    assert _create(auth_client, user_id, accountId=foreign).status_code == 404


def test_update_partial(auth_client, user_id, make_account):
    account_id = make_account(user_id, "1000")
    txn_id = _create(auth_client, user_id, accountId=account_id).json()["id"]

    response = auth_client.put(f"/api/v1/users/{user_id}/transactions/{txn_id}", json={"amount": "300,00"})

    assert response.status_code == 200
    assert response.json()["amount"] == "300.00"
    assert response.json()["date"] == "2025-10-12"
    assert _balance(auth_client, user_id, account_id) == "700.00"


def test_update_reassign_account(auth_client, user_id, make_account):
    a = make_account(user_id, "1000")
    b = make_account(user_id, "500", name="Наличные")
    txn_id = _create(auth_client, user_id, accountId=a, amount="100").json()["id"]

    response = auth_client.put(f"/api/v1/users/{user_id}/transactions/{txn_id}", json={"accountId": b})

    assert response.status_code == 200
    assert _balance(auth_client, user_id, a) == "1000.00"
    assert _balance(auth_client, user_id, b) == "400.00"


def test_list_get_and_filter(auth_client, user_id, make_account):
    a = make_account(user_id, "1000")
    b = make_account(user_id, "0", name="Вклад")
    first = _create(auth_client, user_id, accountId=a, amount="10", date="2025-10-01").json()
    transfer = _create(auth_client, user_id, type="TRANSFER", accountId=a, transferAccountId=b,
                       amount="20", date="2025-10-05").json()
    _create(auth_client, user_id, type="INCOME", accountId=a, amount="30", date="2025-11-01")

    listed = auth_client.get(f"/api/v1/users/{user_id}/transactions").json()
    assert [t["date"] for t in listed] == ["2025-11-01", "2025-10-05", "2025-10-01"]

    got = auth_client.get(f"/api/v1/users/{user_id}/transactions/{first['id']}")
    assert got.status_code == 200
    assert got.json()["amount"] == "10.00"

    by_account = auth_client.get(f"/api/v1/users/{user_id}/transactions/filter", params={"accountId": b}).json()
    assert [t["id"] for t in by_account] == [transfer["id"]]

    october = auth_client.get(
        f"/api/v1/users/{user_id}/transactions/filter",
        params={"dateFrom": "2025-10-01", "dateTo": "2025-10-31", "type": "EXPENSE"},
    ).json()
    assert [t["id"] for t in october] == [first["id"]]


def test_get_unknown_transaction_is_404(auth_client, user_id):
    assert auth_client.get(f"/api/v1/users/{user_id}/transactions/999").status_code == 404


def test_statistics(auth_client, user_id, make_account):
    account_id = make_account(user_id, "1000")
    today = clock.today().isoformat()
    _create(auth_client, user_id, accountId=account_id, amount="100", date=today)

    response = auth_client.get(f"/api/v1/users/{user_id}/transactions/statistics", params={"months": 1})

    assert response.status_code == 200
    data = response.json()
    assert data["expensesByCategory"] == {}
    assert data["monthlyExpenses"] == {today[:7]: "100.00"}
    assert data["averageExpense"] == "100.00"
    assert data["maxExpensePerDay"] == {"date": today, "amount": "100.00"}
    assert data["maxExpensePerCategory"] is None
    assert data["endDate"] == today


def test_statistics_invalid_months(auth_client, user_id):
    response = auth_client.get(f"/api/v1/users/{user_id}/transactions/statistics", params={"months": 2})
    assert response.status_code == 400


def test_other_user_path_is_forbidden(auth_client, other_user_id):
    assert auth_client.get(f"/api/v1/users/{other_user_id}/transactions").status_code == 403


def test_anonymous_is_401(client, user_id):
    assert client.get(f"/api/v1/users/{user_id}/transactions").status_code == 401


def test_photo_upload_publishes_task(auth_client, publisher, user_id, make_account):
    account_id = make_account(user_id, "0")

    response = auth_client.post(
        f"/api/v1/users/{user_id}/transactions/photo",
        params={"accountId": account_id},
        files={"file": ("check.jpg", b"jpeg-bytes", "image/jpeg")},
    )

    assert response.status_code == 200
    assert response.json()["taskId"]
    publisher.publish.assert_called_once_with("image", ANY)


def test_photo_upload_with_bus_disabled_is_503(auth_client, user_id, make_account):
    account_id = make_account(user_id, "0")

    response = auth_client.post(
        f"/api/v1/users/{user_id}/transactions/photo",
        params={"accountId": account_id},
        files={"file": ("check.jpg", b"jpeg-bytes", "image/jpeg")},
    )

    assert response.status_code == 503


def test_login_session_authorizes_requests(client, seed):
    """Вход по паролю кладёт user_id в session cookie"""
    user_id = seed(User(email="login@example.com", name="Вход", surname="Тестов",
                        password_hash=hash_password("s3cret")))[0]

    assert client.post("/api/v1/auth/login", json={"email": "LOGIN@example.com", "password": "bad"}).status_code == 401

    login = client.post("/api/v1/auth/login", json={"email": "LOGIN@example.com", "password": "s3cret"})
    assert login.status_code == 200
    assert login.json()["userId"] == user_id

    assert client.get(f"/api/v1/users/{user_id}/transactions").status_code == 200
    assert client.get("/api/v1/user/me").json()["email"] == "login@example.com"

    client.post("/api/v1/auth/logout")
    assert client.get(f"/api/v1/users/{user_id}/transactions").status_code == 401


def test_amount_beyond_column_range_is_400(auth_client, user_id, make_account):
    account_id = make_account(user_id, "100")

    response = _create(auth_client, user_id, type="INCOME", accountId=account_id,
                       amount="1000000000000000000000000000")

    assert response.status_code == 400
    assert _balance(auth_client, user_id, account_id) == "100.00"
