import os
import tempfile

_tmp = tempfile.mkdtemp(prefix="trips-tests-")
os.environ.setdefault("DATABASE_URL", f"sqlite:///{_tmp}/app.db")
os.environ.setdefault("API_LOG_PATH", os.path.join(_tmp, "api.log"))

import itertools
from datetime import datetime, timedelta

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from main import app
from database import Base, get_db
from models import Family, FamilyStatus, GearItem, Trip, TripAttendance, User, UserType
from services.authorization import Caller, Role


@pytest.fixture
def engine(tmp_path):
    # File-backed so that separate sessions (and threads) really contend
    eng = create_engine(
        f"sqlite:///{tmp_path}/test.db",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    Base.metadata.create_all(bind=eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def super_admin():
    return Caller(user_id=9000, role=Role.SUPER_ADMIN)


_emails = itertools.count(1)


def make_family(db, name="Levi", approved=True, active=True, children=0):
    family = Family(
        name=name,
        status=FamilyStatus.APPROVED if approved else FamilyStatus.PENDING,
        is_active=active,
    )
    slug = name.lower().replace(" ", "_")
    family.members.append(User(type=UserType.ADULT, name=f"{name} parent", email=f"{slug}-{next(_emails)}@example.com"))
    for i in range(children):
        family.members.append(User(type=UserType.CHILD, name=f"{name} kid {i}", age=8 + i))
    db.add(family)
    db.commit()
    db.refresh(family)
    return family


def adult_of(family):
    return next(m for m in family.members if m.type == UserType.ADULT)


def make_trip(db, start=None, end=None, cutoff=None, published=False, admins=()):
    start = start or datetime(2099, 7, 15)
    end = end or start + timedelta(days=5)
    trip = Trip(
        name="Galilee weekend",
        location="Kibbutz Ginosar",
        start_date=start,
        end_date=end,
        attendance_cutoff_date=cutoff,
        draft=not published,
    )
    trip.admins = list(admins)
    db.add(trip)
    db.commit()
    db.refresh(trip)
    return trip


def attend(db, trip, family):
    db.add(TripAttendance(trip_id=trip.id, family_id=family.id))
    db.commit()


def make_gear_item(db, trip, name="Tent", quantity_needed=5):
    item = GearItem(trip_id=trip.id, name=name, quantity_needed=quantity_needed, version=0)
    db.add(item)
    db.commit()
    db.refresh(item)
    return item


def family_caller(family):
    return Caller(user_id=adult_of(family).id, role=Role.FAMILY, family_id=family.id)


def trip_admin_caller(user):
    return Caller(user_id=user.id, role=Role.TRIP_ADMIN, family_id=user.family_id)


def headers_for(caller):
    h = {"X-User-Id": str(caller.user_id), "X-User-Role": caller.role.value}
    if caller.family_id is not None:
        h["X-Family-Id"] = str(caller.family_id)
    return h
