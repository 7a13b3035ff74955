"""
Tests for Accounts API endpoints
"""


def test_create_and_get_account(auth_client, user_id):
    response = auth_client.post(f"/api/v1/users/{user_id}/accounts", json={
        "accountType": "CARD",
        "name": "Зарплатная",
        "balance": "1500,50",
    })

    assert response.status_code == 201
    data = response.json()
    assert data["currency"] == "RUB"
    assert data["balance"] == "1500.50"
    assert data["includeInTotal"] is True

    got = auth_client.get(f"/api/v1/users/{user_id}/accounts/{data['id']}")
    assert got.status_code == 200
    assert got.json()["name"] == "Зарплатная"


def test_create_credit_account_negative_balance(auth_client, user_id):
    response = auth_client.post(f"/api/v1/users/{user_id}/accounts", json={
        "accountType": "CREDIT", "name": "Кредитка", "balance": "-15000", "creditLimit": "50000",
    })
    assert response.status_code == 201
    assert response.json()["balance"] == "-15000.00"


def test_create_card_negative_balance_is_400(auth_client, user_id):
    response = auth_client.post(f"/api/v1/users/{user_id}/accounts", json={
        "accountType": "CARD", "name": "Карта", "balance": "-1",
    })
    assert response.status_code == 400


def test_unknown_account_type_is_400(auth_client, user_id):
    response = auth_client.post(f"/api/v1/users/{user_id}/accounts", json={"accountType": "GOLD", "name": "X"})
    assert response.status_code == 400


def test_update_account_keeps_balance(auth_client, user_id, make_account):
    account_id = make_account(user_id, "700")

    response = auth_client.put(f"/api/v1/users/{user_id}/accounts/{account_id}", json={
        "name": "Новое имя", "isActive": False, "balance": "1000000",
    })

    assert response.status_code == 200
    assert response.json()["name"] == "Новое имя"
    assert response.json()["isActive"] is False
    assert response.json()["balance"] == "700.00"


def test_total_balance(auth_client, user_id, make_account):
    make_account(user_id, "100.25")
    make_account(user_id, "200")

    response = auth_client.get(f"/api/v1/users/{user_id}/accounts/balance")

    assert response.status_code == 200
    assert response.json() == {"totalAccounts": 2, "balancesByCurrency": {"RUB": "300.25"}}


def test_list_and_delete(auth_client, user_id, make_account):
    first = make_account(user_id, "1", name="A")
    make_account(user_id, "2", name="B")

    assert [a["name"] for a in auth_client.get(f"/api/v1/users/{user_id}/accounts").json()] == ["A", "B"]
    assert auth_client.delete(f"/api/v1/users/{user_id}/accounts/{first}").status_code == 204
    assert [a["name"] for a in auth_client.get(f"/api/v1/users/{user_id}/accounts").json()] == ["B"]
    assert auth_client.get(f"/api/v1/users/{user_id}/accounts/{first}").status_code == 404


def test_foreign_account_is_404(auth_client, user_id, other_user_id, make_account):
    foreign = make_account(other_user_id, "1")
    assert auth_client.get(f"/api/v1/users/{user_id}/accounts/{foreign}").status_code == 404
    assert auth_client.delete(f"/api/v1/users/{user_id}/accounts/{foreign}").status_code == 404


def test_create_account_huge_balance_is_400(auth_client, user_id):
    response = auth_client.post(f"/api/v1/users/{user_id}/accounts", json={
        "accountType": "CARD", "name": "Миллиардер", "balance": "1" + "0" * 20,
    })
    assert response.status_code == 400
