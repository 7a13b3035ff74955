"""
Tests for profile, categories, reminders, advices API endpoints
"""
from app.application.advices import IngestAdviceResultUseCase
from app.infrastructure.db.models import Category
from app.infrastructure.messaging.messages import AdviceResultMessage
from app.utils import clock


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.text == "ok"


def test_register_profile(client):
    response = client.post("/api/v1/users/profile", json={
        "email": "New@Example.com", "name": "Анна", "surname": "Смирнова", "password": "pass1234",
    })

    assert response.status_code == 201
    assert response.json()["email"] == "new@example.com"
    assert response.json()["isPremium"] is False

    duplicate = client.post("/api/v1/users/profile", json={
        "email": "new@example.com", "name": "Анна", "surname": "Смирнова",
    })
    assert duplicate.status_code == 400


def test_get_and_update_profile(auth_client, user_id):
    response = auth_client.put(f"/api/v1/users/profile/{user_id}", json={"birthday": "1991-02-03"})

    assert response.status_code == 200
    assert response.json()["birthday"] == "1991-02-03"
    assert auth_client.get(f"/api/v1/users/profile/{user_id}").json()["name"] == "Иван"


def test_categories(auth_client, user_id, other_user_id, seed):
    seed(
        Category(user_id=None, name="Продукты", is_default=True),
        Category(user_id=other_user_id, name="Чужая"),
    )

    created = auth_client.post(f"/api/v1/categories/user/{user_id}/category", json={"name": "Аптека", "icon": "pill"})
    assert created.status_code == 201
    assert created.json()["categoryType"] == "BOTH"
    category_id = created.json()["id"]

    defaults = auth_client.get("/api/v1/categories/default").json()
    assert [c["name"] for c in defaults] == ["Продукты"]
    visible = auth_client.get(f"/api/v1/categories/user/{user_id}/all").json()
    assert [c["name"] for c in visible] == ["Продукты", "Аптека"]

    renamed = auth_client.put(
        f"/api/v1/categories/user/{user_id}/category/{category_id}", json={"name": "Лекарства"}
    )
    assert renamed.json()["name"] == "Лекарства"

    default_id = defaults[0]["id"]
    assert auth_client.delete(f"/api/v1/categories/user/{user_id}/category/{default_id}").status_code == 404
    assert auth_client.delete(f"/api/v1/categories/user/{user_id}/category/{category_id}").status_code == 204
    assert auth_client.get(f"/api/v1/categories/user/{user_id}/custom").json() == []


def test_default_categories_require_login(client):
    assert client.get("/api/v1/categories/default").status_code == 401


def test_reminders(auth_client, user_id):
    base = f"/api/v1/users/{user_id}/reminders"

    daily = auth_client.post(base, json={"title": "Обед", "amount": "350", "recurrenceType": "DAILY"})
    assert daily.status_code == 201
    assert daily.json()["amount"] == "350.00"

    invalid = auth_client.post(base, json={"title": "Спорт", "amount": "1000", "recurrenceType": "WEEKLY"})
    assert invalid.status_code == 400

    upcoming = auth_client.get(f"{base}/upcoming", params={"days": 3}).json()
    assert [(r["id"], r["nextDate"]) for r in upcoming] == [(daily.json()["id"], clock.today().isoformat())]

    reminder_id = daily.json()["id"]
    paused = auth_client.put(f"{base}/{reminder_id}", json={"isActive": False})
    assert paused.json()["isActive"] is False
    assert auth_client.get(f"{base}/upcoming").json() == []

    assert auth_client.delete(f"{base}/{reminder_id}").status_code == 204
    assert auth_client.get(f"{base}/{reminder_id}").status_code == 404


def test_advice_request_and_recent(auth_client, publisher, session_factory, user_id):
    response = auth_client.post(f"/api/v1/users/{user_id}/advices", json={
        "goal": "Buy a car", "targetDate": "2026-06-01",
    })

    assert response.status_code == 202
    task_id = response.json()["taskId"]
    queue, payload = publisher.publish.call_args.args
    assert queue == "advice-tasks"
    assert payload["task_id"] == task_id

    with session_factory() as db:
        IngestAdviceResultUseCase(db).execute(AdviceResultMessage.model_validate({
            "task_id": task_id,
            "status": "SUCCESS",
            "goal": "Buy a car",
            "advice": [
                {"id": 1, "title": "Spend less", "priority": "High", "description": "..."},
                {"id": 2, "title": "Save more", "priority": "Medium", "description": "..."},
            ],
        }))

    recent = auth_client.get(f"/api/v1/users/{user_id}/advices/recent").json()
    assert len(recent) == 1
    assert recent[0]["targetDate"] == "2026-06-01"
    assert [i["title"] for i in recent[0]["items"]] == ["Spend less", "Save more"]


def test_advice_with_bus_disabled_is_503(auth_client, user_id):
    response = auth_client.post(f"/api/v1/users/{user_id}/advices", json={"goal": "Накопить"})
    assert response.status_code == 503
