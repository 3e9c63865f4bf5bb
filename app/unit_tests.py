from unittest.mock import MagicMock

from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError

from api_endpoints import app, get_db
from conftest import create_property_dict, create_user_dict, insert_reservation, insert_user

# ---------- HAPPY PATH TESTS ----------

def test_create_and_get_user(client):
    data = create_user_dict()
    r = client.post("/users/", json=data)
    assert r.status_code == 201
    user = r.json()
    assert user["name"] == data["name"]
    assert user["email"] == data["email"]
    assert "password" not in user

    # Get user by id: name only
    r2 = client.get(f"/users/{user['id']}")
    assert r2.status_code == 200
    assert r2.json() == {"name": data["name"]}

def test_get_user_by_email(client):
    created = client.post("/users/", json=create_user_dict(email="x@example.com")).json()
    r = client.get("/users/", params={"email": "x@example.com"})
    assert r.status_code == 200
    assert r.json() == created

def test_create_and_search_property(client):
    owner = client.post("/users/", json=create_user_dict()).json()
    r = client.post("/properties/", json=create_property_dict(owner["id"]))
    assert r.status_code == 201
    prop = r.json()
    assert prop["owner_id"] == owner["id"]
    assert prop["average_rating"] is None

    r2 = client.get("/properties/", params={"owner_id": owner["id"]})
    assert r2.status_code == 200
    assert r2.json() == [prop]

def test_search_properties_by_city_and_price(client):
    owner = client.post("/users/", json=create_user_dict()).json()
    client.post("/properties/", json=create_property_dict(owner["id"], title="A", city="Vancouver", cost_per_night=9000))
    client.post("/properties/", json=create_property_dict(owner["id"], title="B", city="Vancouver", cost_per_night=15000))
    client.post("/properties/", json=create_property_dict(owner["id"], title="C", city="Calgary", cost_per_night=12000))
    r = client.get("/properties/", params={"city": "Van", "minimum_price_per_night": 100, "maximum_price_per_night": 200})
    assert r.status_code == 200
    assert [p["title"] for p in r.json()] == ["B"]

def test_search_properties_limit(client):
    owner = client.post("/users/", json=create_user_dict()).json()
    for i in range(4):
        client.post("/properties/", json=create_property_dict(owner["id"], title=f"P{i}", cost_per_night=1000 * (4 - i)))
    r = client.get("/properties/", params={"limit": 2})
    assert r.status_code == 200
    assert [p["cost_per_night"] for p in r.json()] == [1000, 2000]

def test_list_guest_reservations(client, db_session):
    owner = insert_user(db_session, name="Owner", email="owner@example.com")
    guest = insert_user(db_session, name="Guest", email="guest@example.com")
    prop = client.post("/properties/", json=create_property_dict(owner.id)).json()
    insert_reservation(db_session, guest.id, prop["id"], "2024-02-01", rating=4)
    insert_reservation(db_session, guest.id, prop["id"], "2024-01-01")
    r = client.get(f"/users/{guest.id}/reservations", params={"limit": 5})
    assert r.status_code == 200
    res = r.json()
    assert [x["start_date"] for x in res] == ["2024-01-01", "2024-02-01"]
    assert all(x["guest_id"] == guest.id for x in res)
    assert res[0]["property"]["average_rating"] == 4.0

# ---------- EDGE CASE TESTS ----------

def test_create_user_duplicate_email(client):
    data = create_user_dict(email="x@y.com")
    client.post("/users/", json=data)
    r2 = client.post("/users/", json=data)
    assert r2.status_code == 400
    assert "Email already registered" in r2.text

def test_get_nonexistent_user(client):
    r = client.get("/users/999")
    assert r.status_code == 404

def test_get_user_by_unknown_email(client):
    r = client.get("/users/", params={"email": "nobody@example.com"})
    assert r.status_code == 404

def test_guest_without_reservations(client):
    r = client.get("/users/999/reservations")
    assert r.status_code == 200
    assert r.json() == []

def test_create_property_unknown_owner(client):
    r = client.post("/properties/", json=create_property_dict(999))
    assert r.status_code == 400
    assert "Owner does not exist" in r.text

def test_search_properties_inverted_price_range(client):
    r = client.get("/properties/", params={"minimum_price_per_night": 300, "maximum_price_per_night": 100})
    assert r.status_code == 422

def test_search_properties_bad_limit(client):
    r = client.get("/properties/", params={"limit": 0})
    assert r.status_code == 422

def test_store_unavailable():
    session = MagicMock()
    session.query.side_effect = OperationalError("SELECT", {}, Exception("connection refused"))

    def override_get_db():
        yield session

    app.dependency_overrides[get_db] = override_get_db
    try:
        r = TestClient(app).get("/properties/", params={"city": "Van"})
    finally:
        app.dependency_overrides.clear()
    assert r.status_code == 503
    assert r.json() == {"detail": "Store unavailable"}

def test_search_properties_rejects_oversized_numbers(client):
    for params in (
        {"owner_id": 10**20},
        {"maximum_price_per_night": 1e300},
        {"maximum_price_per_night": "inf"},
        {"minimum_price_per_night": "nan"},
        {"limit": 10**20},
    ):
        r = client.get("/properties/", params=params)
        assert r.status_code == 422, params

def test_user_routes_reject_oversized_ids(client):
    assert client.get(f"/users/{10**20}").status_code == 422
    assert client.get(f"/users/{10**20}/reservations").status_code == 422
    assert client.get("/users/0").status_code == 422

def test_create_property_rejects_oversized_owner_id(client):
    r = client.post("/properties/", json=create_property_dict(10**20))
    assert r.status_code == 422
