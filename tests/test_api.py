from datetime import date, timedelta

from app.models.enums import BookingStatus, PaymentType, ServiceCategory
from app.utils.deadlines import utcnow

from conftest import COUPLE_ID, OTHER_VENDOR_ID, VENDOR_ID

FUTURE = utcnow().date() + timedelta(days=200)


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_missing_token_is_rejected(client):
    assert client.get("/bookings/1").status_code in (401, 403)


def test_booking_request_flow(client, auth_header, make_listing):
    listing = make_listing()
    couple, vendor = auth_header(COUPLE_ID, "couple"), auth_header(VENDOR_ID, "vendor")

    response = client.post("/bookings/", headers=couple, json={
        "vendor_id": VENDOR_ID,
        "reserved_date": FUTURE.isoformat(),
        "selected_services": [{"service_listing_id": listing.id, "total_price": "5000.00"}],
    })
    assert response.status_code == 201
    booking_id = response.json()["id"]
    assert response.json()["status"] == "pending_vendor_confirmation"

    response = client.post(f"/bookings/{booking_id}/accept", headers=vendor)
    assert response.status_code == 200
    assert response.json()["status"] == "pending_deposit_payment"
    assert response.json()["deposit_due_date"] == (FUTURE - timedelta(days=60)).isoformat()

    response = client.post(f"/bookings/{booking_id}/payments", headers=couple, json={
        "payment_type": "deposit", "amount": "1500.00", "payment_method": "touch_n_go",
    })
    assert response.status_code == 201

    response = client.get(f"/bookings/{booking_id}/status", headers=couple)
    assert response.json() == {"booking_id": booking_id, "status": "confirmed"}


def test_couple_cannot_accept(client, auth_header, make_booking):
    booking = make_booking()

    response = client.post(f"/bookings/{booking.id}/accept", headers=auth_header(COUPLE_ID, "couple"))

    assert response.status_code == 403


def test_invalid_transition_returns_409_with_statuses(client, auth_header, make_booking):
    booking = make_booking(status=BookingStatus.CONFIRMED)

    response = client.post(f"/bookings/{booking.id}/reject", headers=auth_header(VENDOR_ID, "vendor"))

    assert response.status_code == 409
    body = response.json()
    assert body["current_status"] == "confirmed"
    assert body["attempted_status"] == "rejected"


def test_other_vendor_sees_not_found(client, auth_header, make_booking):
    booking = make_booking()

    response = client.get(f"/bookings/{booking.id}", headers=auth_header(999, "vendor"))

    assert response.status_code == 404


def test_payment_type_mismatch_is_400(client, auth_header, make_booking):
    booking = make_booking(status=BookingStatus.PENDING_DEPOSIT_PAYMENT)

    response = client.post(f"/bookings/{booking.id}/payments", headers=auth_header(COUPLE_ID, "couple"), json={
        "payment_type": "final", "amount": "100", "payment_method": "credit_card",
    })

    assert response.status_code == 400


def test_cancellation_quote_and_fee_required(client, auth_header, make_booking):
    near = utcnow().date() + timedelta(days=3)
    booking = make_booking(
        status=BookingStatus.CONFIRMED,
        reserved_date=near,
        payments=[(PaymentType.DEPOSIT, "3000.00")],
    )
    couple = auth_header(COUPLE_ID, "couple")

    quote = client.get(f"/bookings/{booking.id}/cancellation-quote", headers=couple).json()
    assert quote["tier"] == "<7"
    assert quote["requires_payment"] is True

    response = client.post(f"/bookings/{booking.id}/cancel", headers=couple, json={"reason": "Changed plans"})
    assert response.status_code == 200
    assert response.json()["requires_payment"] is True
    assert response.json()["status"] == "confirmed"
    assert response.json()["cancellation"] is None


def test_vendor_cancel(client, auth_header, make_booking, notifier):
    booking = make_booking(status=BookingStatus.CONFIRMED, payments=[(PaymentType.DEPOSIT, "3000.00")])

    response = client.post(f"/bookings/{booking.id}/cancel", headers=auth_header(VENDOR_ID, "vendor"))

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "cancelled_by_vendor"
    assert body["cancellation"]["refund_amount"] in ("3000.00", "3000.0", 3000.0)
    assert "cancellation_completed" in notifier.kinds(COUPLE_ID)


def test_replace_project_venue(db, client, auth_header, make_project, make_booking):
    project = make_project(wedding_date=FUTURE)
    dependent = make_booking(status=BookingStatus.CONFIRMED, project=project)
    dependent.is_pending_venue_replacement = True
    db.commit()
    venue = make_booking(
        status=BookingStatus.CONFIRMED, project=project, vendor_id=OTHER_VENDOR_ID,
        category=ServiceCategory.VENUE.value,
    )

    response = client.put(
        f"/projects/{project.id}/venue",
        headers=auth_header(COUPLE_ID, "couple"),
        json={"venue_booking_id": venue.id},
    )

    assert response.status_code == 200
    assert response.json()["rebound_booking_ids"] == [dependent.id]


def test_replace_venue_with_non_venue_is_409(client, auth_header, make_project, make_booking):
    project = make_project(wedding_date=FUTURE)
    caterer = make_booking(status=BookingStatus.CONFIRMED, project=project)

    response = client.put(
        f"/projects/{project.id}/venue",
        headers=auth_header(COUPLE_ID, "couple"),
        json={"venue_booking_id": caterer.id},
    )

    assert response.status_code == 409


def test_time_off_conflict(client, auth_header, make_booking):
    make_booking(status=BookingStatus.CONFIRMED, reserved_date=date(2030, 1, 1))
    vendor = auth_header(VENDOR_ID, "vendor")

    assert client.post("/time-slots/", headers=vendor, json={"date": "2030-01-02"}).status_code == 201
    assert client.post("/time-slots/", headers=vendor, json={"date": "2030-01-01"}).status_code == 409
    assert len(client.get("/time-slots/", headers=vendor).json()) == 1
    assert client.delete("/time-slots/2030-01-02", headers=vendor).status_code == 200


def test_admin_runs_scanner(client, auth_header):
    response = client.post("/admin/auto-cancellation/run", headers=auth_header(1, "admin"))

    assert response.status_code == 200
    assert response.json()["skipped"] is False


def test_scanner_run_is_admin_only(client, auth_header):
    response = client.post("/admin/auto-cancellation/run", headers=auth_header(COUPLE_ID, "couple"))

    assert response.status_code == 403
