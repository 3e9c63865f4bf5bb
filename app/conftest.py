import datetime

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from api_endpoints import app, get_db
from database import create_store_engine
import models_sqlalchemy as models

# ---------- TEST FIXTURES ----------

# Use in-memory SQLite for test isolation
TEST_DATABASE_URL = "sqlite://"

@pytest.fixture(scope="function")
def engine():
    engine = create_store_engine(TEST_DATABASE_URL)
    models.Base.metadata.create_all(bind=engine)
    yield engine
    models.Base.metadata.drop_all(bind=engine)
    engine.dispose()

@pytest.fixture(scope="function")
def db_session(engine):
    """A new DB session on a fresh database for each test."""
    Session = sessionmaker(bind=engine, autoflush=False)
    session = Session()
    yield session
    session.close()

@pytest.fixture(scope="function")
def client(db_session):
    """Override get_db dependency for FastAPI TestClient."""

    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    client = TestClient(app)
    yield client
    app.dependency_overrides.clear()

# ---------- TEST DATA HELPERS ----------

def create_user_dict(name="Alice", email="alice@example.com", password="password"):
    return {
        "name": name,
        "email": email,
        "password": password,
    }

def create_property_dict(owner_id, title="Cozy Cabin", city="Vancouver", cost_per_night=10000):
    return {
        "owner_id": owner_id,
        "title": title,
        "description": "description",
        "thumbnail_photo_url": "https://images.example.com/thumb.jpg",
        "cover_photo_url": "https://images.example.com/cover.jpg",
        "cost_per_night": cost_per_night,
        "parking_spaces": 1,
        "number_of_bathrooms": 1,
        "number_of_bedrooms": 2,
        "country": "Canada",
        "street": "123 Main St",
        "city": city,
        "province": "BC",
        "post_code": "V5K 0A1",
        "active": True,
    }

def insert_user(session, name="Alice", email="alice@example.com"):
    user = models.User(name=name, email=email, password="password")
    session.add(user)
    session.commit()
    return user

def insert_property(session, owner_id, **kwargs):
    prop = models.Property(**create_property_dict(owner_id, **kwargs))
    session.add(prop)
    session.commit()
    return prop

def insert_reservation(session, guest_id, property_id, start, nights=3, rating=None):
    start_date = datetime.date.fromisoformat(start)
    reservation = models.Reservation(
        guest_id=guest_id,
        property_id=property_id,
        start_date=start_date,
        end_date=start_date + datetime.timedelta(days=nights),
    )
    session.add(reservation)
    session.commit()
    if rating is not None:
        insert_review(session, guest_id, property_id, reservation.id, rating)
    return reservation

def insert_review(session, guest_id, property_id, reservation_id, rating):
    review = models.PropertyReview(
        guest_id=guest_id,
        property_id=property_id,
        reservation_id=reservation_id,
        rating=rating,
        message="message",
    )
    session.add(review)
    session.commit()
    return review
