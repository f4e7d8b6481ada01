from models import ActivityLog
from services.authorization import Caller, Role
from .conftest import (
    adult_of,
    attend,
    family_caller,
    headers_for,
    make_family,
    make_gear_item,
    make_trip,
    trip_admin_caller,
)

SUPER = headers_for(Caller(user_id=9000, role=Role.SUPER_ADMIN))

TRIP = {
    "name": "Hanukkah camping",
    "location": "Nahal Amud",
    "start_date": "2099-12-10T08:00:00",
    "end_date": "2099-12-12T16:00:00",
    "attendance_cutoff_date": "2099-12-01T00:00:00",
}


def test_missing_identity_is_rejected(client):
    resp = client.get("/trips/")
    assert resp.status_code == 401


def test_unknown_role_is_rejected(client):
    resp = client.get("/trips/", headers={"X-User-Id": "1", "X-User-Role": "JANITOR"})
    assert resp.status_code == 401


def test_trip_lifecycle_over_http(client, db):
    admin = adult_of(make_family(db, "Admin"))

    created = client.post("/trips/", json=TRIP, headers=SUPER)
    assert created.status_code == 201
    body = created.json()
    assert body["draft"] is True
    assert body["status"] == "draft"
    trip_id = body["id"]

    resp = client.post(f"/trips/{trip_id}/publish", headers=SUPER)
    assert resp.status_code == 409
    assert resp.json()["error"] == "precondition_failed"

    resp = client.put(f"/trips/{trip_id}/admins", json={"admin_ids": [admin.id]}, headers=SUPER)
    assert resp.status_code == 200
    assert [a["id"] for a in resp.json()["admins"]] == [admin.id]

    resp = client.post(f"/trips/{trip_id}/publish", headers=SUPER)
    assert resp.status_code == 200
    assert resp.json()["draft"] is False
    assert resp.json()["status"] == "upcoming"

    resp = client.post(f"/trips/{trip_id}/publish", headers=SUPER)
    assert resp.status_code == 409
    assert resp.json()["error"] == "already_in_state"

    resp = client.delete(f"/trips/{trip_id}/admins/{admin.id}", headers=SUPER)
    assert resp.status_code == 409


def test_bad_dates_are_400(client):
    resp = client.post("/trips/", json={**TRIP, "end_date": "2099-12-01T00:00:00"}, headers=SUPER)
    assert resp.status_code == 400
    assert resp.json()["error"] == "validation_error"


def test_family_cannot_create_trip(client, db):
    family = make_family(db)
    resp = client.post("/trips/", json=TRIP, headers=headers_for(family_caller(family)))
    assert resp.status_code == 403


def test_partial_update(client, db):
    admin = adult_of(make_family(db, "Admin"))
    trip = make_trip(db, admins=[admin])

    resp = client.put(f"/trips/{trip.id}", json={"location": "Mitzpe Ramon"}, headers=headers_for(trip_admin_caller(admin)))
    assert resp.status_code == 200
    assert resp.json()["location"] == "Mitzpe Ramon"
    assert resp.json()["name"] == "Galilee weekend"


def test_attendance_and_gear_flow(client, db):
    admin = adult_of(make_family(db, "Admin"))
    x = make_family(db, "X")
    y = make_family(db, "Y")
    trip = make_trip(db, published=True, admins=[admin])
    x_headers = headers_for(family_caller(x))
    y_headers = headers_for(family_caller(y))
    admin_headers = headers_for(trip_admin_caller(admin))

    for family, headers in ((x, x_headers), (y, y_headers)):
        resp = client.post(f"/trips/{trip.id}/attendance", json={"family_id": family.id, "attending": True}, headers=headers)
        assert resp.status_code == 200
    assert len(resp.json()["attendees"]) == 2

    resp = client.post("/gear/", json={"trip_id": trip.id, "name": "Tent", "quantity_needed": 5}, headers=admin_headers)
    assert resp.status_code == 201
    item_id = resp.json()["id"]

    resp = client.post(f"/gear/{item_id}/assign", json={"family_id": x.id, "quantity_assigned": 3}, headers=x_headers)
    assert resp.status_code == 200
    assert resp.json()["total_assigned"] == 3

    resp = client.post(f"/gear/{item_id}/assign", json={"family_id": y.id, "quantity_assigned": 3}, headers=y_headers)
    assert resp.status_code == 409
    assert resp.json()["error"] == "capacity_exceeded"
    assert "Available: 2" in resp.json()["detail"]

    resp = client.post(f"/gear/{item_id}/assign", json={"family_id": y.id, "quantity_assigned": 2}, headers=y_headers)
    assert resp.status_code == 200

    summary = client.get(f"/gear/trip/{trip.id}/summary", headers=x_headers).json()
    assert summary[0]["status"] == "complete"
    assert summary[0]["total_assigned"] == 5

    resp = client.put(f"/gear/{item_id}", json={"quantity_needed": 4}, headers=admin_headers)
    assert resp.status_code == 409
    assert "minimum is 5" in resp.json()["detail"]

    resp = client.delete(f"/gear/{item_id}/assign/{y.id}", headers=y_headers)
    assert resp.status_code == 204
    resp = client.delete(f"/gear/{item_id}/assign/{y.id}", headers=y_headers)
    assert resp.status_code == 404

    mine = client.get(f"/gear/trip/{trip.id}/family/{x.id}", headers=x_headers).json()
    assert mine == [{"gear_item_id": item_id, "family_id": x.id, "quantity_assigned": 3}]


def test_mutations_are_logged(client, db):
    admin = adult_of(make_family(db, "Admin"))
    x = make_family(db, "X")
    trip = make_trip(db, published=True, admins=[admin])
    attend(db, trip, x)
    item = make_gear_item(db, trip)

    resp = client.post(f"/gear/{item.id}/assign", json={"family_id": x.id, "quantity_assigned": 1}, headers=headers_for(family_caller(x)))
    assert resp.status_code == 200

    entry = db.query(ActivityLog).filter_by(entity_type="GearItem", entity_id=item.id).one()
    assert entry.action == "ASSIGN"
    assert entry.details == {"family_id": x.id, "quantity_assigned": 1}


def test_failed_mutation_is_not_logged(client, db):
    admin = adult_of(make_family(db, "Admin"))
    trip = make_trip(db, admins=[admin])

    resp = client.post(f"/trips/{trip.id}/unpublish", headers=SUPER)
    assert resp.status_code == 409
    assert db.query(ActivityLog).count() == 0


def test_family_routes(client, db):
    resp = client.post("/families/", json={
        "name": "Goldberg",
        "adults": [{"name": "Dana", "email": "dana@example.com"}],
        "children": [{"name": "Noa", "age": 7}],
    })
    assert resp.status_code == 201
    family = resp.json()
    assert family["status"] == "PENDING"
    assert len(family["members"]) == 2

    resp = client.post(f"/families/{family['id']}/approve", headers=SUPER)
    assert resp.status_code == 200
    assert resp.json()["status"] == "APPROVED"

    resp = client.post(f"/families/{family['id']}/approve", headers=SUPER)
    assert resp.status_code == 409

    resp = client.post(f"/families/{family['id']}/deactivate", headers=SUPER)
    assert resp.json()["is_active"] is False


def test_admin_changes_are_logged(client, db):
    first = adult_of(make_family(db, "First"))
    second = adult_of(make_family(db, "Second"))
    trip = make_trip(db, admins=[first])

    assert client.post(f"/trips/{trip.id}/admins/{second.id}", headers=SUPER).status_code == 200
    assert client.delete(f"/trips/{trip.id}/admins/{first.id}", headers=SUPER).status_code == 200

    entries = (
        db.query(ActivityLog)
        .filter_by(entity_type="Trip", entity_id=trip.id)
        .order_by(ActivityLog.id)
        .all()
    )
    assert [(e.action, e.details) for e in entries] == [
        ("UPDATE", {"added_admin_id": second.id}),
        ("UPDATE", {"removed_admin_id": first.id}),
    ]


def test_family_listing_and_members_over_http(client, db):
    waiting = make_family(db, "Waiting", approved=False)
    make_family(db, "Done")

    resp = client.get("/families/", params={"status": "PENDING"}, headers=SUPER)
    assert resp.status_code == 200
    assert [f["id"] for f in resp.json()] == [waiting.id]

    nosy = make_family(db, "Nosy")
    resp = client.get(f"/families/{waiting.id}", headers=headers_for(family_caller(nosy)))
    assert resp.status_code == 403

    resp = client.post(
        f"/families/{waiting.id}/members",
        json={"type": "CHILD", "name": "Gil", "age": 3},
        headers=headers_for(family_caller(waiting)),
    )
    assert resp.status_code == 201
    assert resp.json()["type"] == "CHILD"

    resp = client.delete(f"/families/{waiting.id}/members/{resp.json()['id']}", headers=SUPER)
    assert resp.status_code == 204


def test_deleting_the_family_of_a_sole_admin_is_409(client, db):
    hosts = make_family(db, "Hosts")
    make_trip(db, published=True, admins=[adult_of(hosts)])

    resp = client.delete(f"/families/{hosts.id}", headers=SUPER)
    assert resp.status_code == 409
    assert resp.json()["error"] == "precondition_failed"
