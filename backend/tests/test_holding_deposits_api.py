"""API tests for the holding deposit workflow."""

from __future__ import annotations

import uuid
from datetime import date, timedelta
from typing import Any

import pytest
from httpx import AsyncClient
from sqlalchemy import func, select

from app.models import (
    Application,
    ApplicationStatus,
    EmailState,
    HoldingDeposit,
    QueuedEmail,
)
from app.services import email_service

from conftest import seed_agency

pytestmark = pytest.mark.asyncio


async def _authenticate(client: AsyncClient, email: str, password: str) -> str:
    response = await client.post(
        "/api/v1/auth/token",
        data={"username": email, "password": password},
        headers={"Content-Type": "application/x-www-form-urlencoded"},
    )
    assert response.status_code == 200
    return response.json()["access_token"]


async def _admin_headers(app_context: dict[str, Any]) -> dict[str, str]:
    token = await _authenticate(
        app_context["client"],
        app_context["admin_email"],
        app_context["admin_password"],
    )
    return {"Authorization": f"Bearer {token}"}


async def _add_application(
    app_context: dict[str, Any],
    *,
    first_name: str,
    surname: str,
    status: ApplicationStatus = ApplicationStatus.SUBMITTED,
) -> uuid.UUID:
    async with app_context["sessionmaker"]() as session:
        application = Application(
            agency_id=app_context["agency_id"],
            user_id=app_context["tenant_id"],
            status=status,
            first_name=first_name,
            surname=surname,
        )
        session.add(application)
        await session.commit()
        return application.id


async def _count_deposits(app_context: dict[str, Any]) -> int:
    async with app_context["sessionmaker"]() as session:
        result = await session.execute(select(func.count(HoldingDeposit.id)))
        return int(result.scalar_one())


async def _application_status(
    app_context: dict[str, Any], application_id: uuid.UUID
) -> ApplicationStatus:
    async with app_context["sessionmaker"]() as session:
        application = await session.get(Application, application_id)
        assert application is not None
        return application.status


def _payload(app_context: dict[str, Any], **overrides: Any) -> dict[str, Any]:
    payload: dict[str, Any] = {
        "application_id": str(app_context["application_id"]),
        "amount": "150.00",
        "date_received": date.today().isoformat(),
        "payment_reference": "HD-0001",
        "bedroom_id": str(app_context["bedroom_id"]),
        "property_id": str(app_context["property_id"]),
        "reservation_days": 30,
    }
    payload.update(overrides)
    return payload


async def test_create_deposit_approves_application_and_queues_email(
    app_context: dict[str, Any],
) -> None:
    client: AsyncClient = app_context["client"]
    headers = await _admin_headers(app_context)

    response = await client.post(
        "/api/v1/holding-deposits", json=_payload(app_context), headers=headers
    )
    assert response.status_code == 201, response.text
    body = response.json()
    assert body["message"] == "Holding deposit recorded and application approved"
    deposit = body["deposit"]
    assert deposit["status"] == "held"
    assert deposit["amount"] == "150.00"
    assert deposit["applicant_name"] == "Jane Doe"
    assert deposit["bedroom_name"] == "Room 1"
    assert deposit["property_address"] == "12 Hyde Park Road"
    assert deposit["changed_by_name"] == "Alex Admin"
    expected_expiry = date.today() + timedelta(days=30)
    assert deposit["reservation_expires_at"].startswith(expected_expiry.isoformat())

    assert (
        await _application_status(app_context, app_context["application_id"])
        == ApplicationStatus.APPROVED
    )
    assert await _count_deposits(app_context) == 1

    async with app_context["sessionmaker"]() as session:
        emails = (await session.execute(select(QueuedEmail))).scalars().all()
    assert len(emails) == 1
    assert emails[0].to_email == app_context["tenant_email"]
    assert emails[0].subject == "Your Application Has Been Approved - Test Lettings"
    assert emails[0].state == EmailState.QUEUED


async def test_create_deposit_rejects_invalid_amount(
    app_context: dict[str, Any],
) -> None:
    client: AsyncClient = app_context["client"]
    headers = await _admin_headers(app_context)

    for _ in range(2):
        response = await client.post(
            "/api/v1/holding-deposits",
            json=_payload(app_context, amount="-5"),
            headers=headers,
        )
        assert response.status_code == 400
        assert response.json()["detail"] == "Amount must be a valid number greater than 0"
        assert response.headers["X-Error-Code"] == "validation_error"

    assert await _count_deposits(app_context) == 0
    assert (
        await _application_status(app_context, app_context["application_id"])
        == ApplicationStatus.SUBMITTED
    )


async def test_create_deposit_requires_core_fields(app_context: dict[str, Any]) -> None:
    client: AsyncClient = app_context["client"]
    headers = await _admin_headers(app_context)

    response = await client.post(
        "/api/v1/holding-deposits",
        json={"application_id": str(app_context["application_id"]), "amount": "100"},
        headers=headers,
    )
    assert response.status_code == 400
    assert (
        response.json()["detail"]
        == "Application ID, amount, and date received are required"
    )


async def test_create_deposit_rejects_non_submitted_application(
    app_context: dict[str, Any],
) -> None:
    client: AsyncClient = app_context["client"]
    headers = await _admin_headers(app_context)
    pending_id = await _add_application(
        app_context,
        first_name="Sam",
        surname="Pending",
        status=ApplicationStatus.APPROVED,
    )

    response = await client.post(
        "/api/v1/holding-deposits",
        json=_payload(app_context, application_id=str(pending_id)),
        headers=headers,
    )
    assert response.status_code == 409
    assert "'approved'" in response.json()["detail"]
    assert response.headers["X-Error-Code"] == "state_conflict"
    assert await _count_deposits(app_context) == 0


async def test_second_deposit_for_application_conflicts(
    app_context: dict[str, Any],
) -> None:
    client: AsyncClient = app_context["client"]
    headers = await _admin_headers(app_context)

    first = await client.post(
        "/api/v1/holding-deposits",
        json=_payload(app_context, bedroom_id=None, property_id=None),
        headers=headers,
    )
    assert first.status_code == 201

    second = await client.post(
        "/api/v1/holding-deposits",
        json=_payload(app_context, bedroom_id=None, property_id=None),
        headers=headers,
    )
    assert second.status_code == 409
    assert second.headers["X-Error-Code"] == "state_conflict"
    assert await _count_deposits(app_context) == 1


async def test_reserved_bedroom_conflict_names_applicant(
    app_context: dict[str, Any],
) -> None:
    client: AsyncClient = app_context["client"]
    headers = await _admin_headers(app_context)

    first = await client.post(
        "/api/v1/holding-deposits", json=_payload(app_context), headers=headers
    )
    assert first.status_code == 201

    other_id = await _add_application(app_context, first_name="Tom", surname="Brown")
    response = await client.post(
        "/api/v1/holding-deposits",
        json=_payload(app_context, application_id=str(other_id)),
        headers=headers,
    )
    assert response.status_code == 409
    assert response.headers["X-Error-Code"] == "reservation_conflict"
    expiry = (date.today() + timedelta(days=30)).isoformat()
    assert response.json()["detail"] == (
        f"Bedroom is already reserved by Jane Doe until {expiry}"
    )
    assert await _application_status(app_context, other_id) == ApplicationStatus.SUBMITTED


async def test_refunded_deposit_frees_bedroom(app_context: dict[str, Any]) -> None:
    client: AsyncClient = app_context["client"]
    headers = await _admin_headers(app_context)

    first = await client.post(
        "/api/v1/holding-deposits", json=_payload(app_context), headers=headers
    )
    deposit_id = first.json()["deposit"]["id"]
    refund = await client.patch(
        f"/api/v1/holding-deposits/{deposit_id}/status",
        json={"status": "refunded"},
        headers=headers,
    )
    assert refund.status_code == 200

    other_id = await _add_application(app_context, first_name="Tom", surname="Brown")
    response = await client.post(
        "/api/v1/holding-deposits",
        json=_payload(app_context, application_id=str(other_id)),
        headers=headers,
    )
    assert response.status_code == 201


async def test_status_change_is_final(app_context: dict[str, Any]) -> None:
    client: AsyncClient = app_context["client"]
    headers = await _admin_headers(app_context)

    created = await client.post(
        "/api/v1/holding-deposits", json=_payload(app_context), headers=headers
    )
    deposit_id = created.json()["deposit"]["id"]

    refund = await client.patch(
        f"/api/v1/holding-deposits/{deposit_id}/status",
        json={"status": "refunded", "notes": "Applicant withdrew"},
        headers=headers,
    )
    assert refund.status_code == 200
    body = refund.json()
    assert body["message"] == "Holding deposit refunded successfully"
    assert body["deposit"]["status"] == "refunded"
    assert body["deposit"]["notes"] == "Applicant withdrew"

    again = await client.patch(
        f"/api/v1/holding-deposits/{deposit_id}/status",
        json={"status": "forfeited"},
        headers=headers,
    )
    assert again.status_code == 409
    assert again.json()["detail"] == (
        "Cannot change status from 'refunded' to 'forfeited'. "
        "Only 'held' deposits can be refunded or forfeited."
    )

    invalid = await client.patch(
        f"/api/v1/holding-deposits/{deposit_id}/status",
        json={"status": "held"},
        headers=headers,
    )
    assert invalid.status_code == 400
    assert invalid.json()["detail"] == "Invalid status. Must be one of: refunded, forfeited"


async def test_read_endpoints(app_context: dict[str, Any]) -> None:
    client: AsyncClient = app_context["client"]
    headers = await _admin_headers(app_context)

    empty = await client.get(
        f"/api/v1/holding-deposits/application/{app_context['application_id']}",
        headers=headers,
    )
    assert empty.status_code == 200
    assert empty.json() == {"deposit": None}

    created = await client.post(
        "/api/v1/holding-deposits", json=_payload(app_context), headers=headers
    )
    deposit_id = created.json()["deposit"]["id"]

    listed = await client.get("/api/v1/holding-deposits", headers=headers)
    assert listed.status_code == 200
    assert [item["id"] for item in listed.json()] == [deposit_id]

    held = await client.get(
        "/api/v1/holding-deposits", params={"status": "refunded"}, headers=headers
    )
    assert held.json() == []

    bad_filter = await client.get(
        "/api/v1/holding-deposits", params={"status": "lost"}, headers=headers
    )
    assert bad_filter.status_code == 400

    by_application = await client.get(
        f"/api/v1/holding-deposits/application/{app_context['application_id']}",
        headers=headers,
    )
    assert by_application.json()["deposit"]["id"] == deposit_id

    single = await client.get(f"/api/v1/holding-deposits/{deposit_id}", headers=headers)
    assert single.status_code == 200
    assert single.json()["applicant_name"] == "Jane Doe"

    missing = await client.get(
        f"/api/v1/holding-deposits/{uuid.uuid4()}", headers=headers
    )
    assert missing.status_code == 404
    assert missing.json()["detail"] == "Holding deposit not found"

    missing_status = await client.patch(
        f"/api/v1/holding-deposits/{uuid.uuid4()}/status",
        json={"status": "refunded"},
        headers=headers,
    )
    assert missing_status.status_code == 404


async def test_missing_application_and_bedroom(app_context: dict[str, Any]) -> None:
    client: AsyncClient = app_context["client"]
    headers = await _admin_headers(app_context)

    response = await client.post(
        "/api/v1/holding-deposits",
        json=_payload(app_context, application_id=str(uuid.uuid4())),
        headers=headers,
    )
    assert response.status_code == 404
    assert response.json()["detail"] == "Application not found"

    response = await client.post(
        "/api/v1/holding-deposits",
        json=_payload(app_context, bedroom_id=str(uuid.uuid4()), property_id=None),
        headers=headers,
    )
    assert response.status_code == 404
    assert response.json()["detail"] == "Bedroom not found"


async def test_tenant_view_and_permissions(app_context: dict[str, Any]) -> None:
    client: AsyncClient = app_context["client"]
    admin_headers = await _admin_headers(app_context)
    tenant_token = await _authenticate(
        client, app_context["tenant_email"], app_context["tenant_password"]
    )
    tenant_headers = {"Authorization": f"Bearer {tenant_token}"}

    forbidden = await client.post(
        "/api/v1/holding-deposits", json=_payload(app_context), headers=tenant_headers
    )
    assert forbidden.status_code == 403

    created = await client.post(
        "/api/v1/holding-deposits", json=_payload(app_context), headers=admin_headers
    )
    assert created.status_code == 201

    mine = await client.get(
        f"/api/v1/holding-deposits/my-application/{app_context['application_id']}",
        headers=tenant_headers,
    )
    assert mine.status_code == 200
    body = mine.json()
    assert body["deposit"]["status"] == "held"
    assert body["bank_details"] == {
        "bank_name": "Northern Bank",
        "sort_code": "12-34-56",
        "account_number": "87654321",
    }

    unknown = await client.get(
        f"/api/v1/holding-deposits/my-application/{uuid.uuid4()}",
        headers=tenant_headers,
    )
    assert unknown.status_code == 404


async def test_tenant_cannot_view_other_applicants_deposit(
    app_context: dict[str, Any],
) -> None:
    client: AsyncClient = app_context["client"]
    async with app_context["sessionmaker"]() as session:
        from app.core.security import get_password_hash
        from app.models import User, UserRole, UserStatus

        other = User(
            agency_id=app_context["agency_id"],
            email="other@example.com",
            hashed_password=get_password_hash("Other123!"),
            first_name="Olly",
            last_name="Other",
            role=UserRole.TENANT,
            status=UserStatus.ACTIVE,
        )
        session.add(other)
        await session.commit()

    token = await _authenticate(client, "other@example.com", "Other123!")
    response = await client.get(
        f"/api/v1/holding-deposits/my-application/{app_context['application_id']}",
        headers={"Authorization": f"Bearer {token}"},
    )
    assert response.status_code == 403
    assert response.json()["detail"] == "You do not have permission to access this deposit"


async def test_agencies_are_isolated(app_context: dict[str, Any]) -> None:
    client: AsyncClient = app_context["client"]
    async with app_context["sessionmaker"]() as session:
        other = await seed_agency(
            session,
            name="Other Lettings",
            admin_email="admin@other.example.com",
            tenant_email="tenant@other.example.com",
        )
        await session.commit()

    headers = await _admin_headers(app_context)
    created = await client.post(
        "/api/v1/holding-deposits", json=_payload(app_context), headers=headers
    )
    deposit_id = created.json()["deposit"]["id"]

    other_token = await _authenticate(
        client, "admin@other.example.com", app_context["admin_password"]
    )
    other_headers = {"Authorization": f"Bearer {other_token}"}

    listed = await client.get("/api/v1/holding-deposits", headers=other_headers)
    assert listed.json() == []

    fetched = await client.get(
        f"/api/v1/holding-deposits/{deposit_id}", headers=other_headers
    )
    assert fetched.status_code == 404

    cross = await client.post(
        "/api/v1/holding-deposits",
        json=_payload(
            app_context,
            bedroom_id=str(other["bedroom_id"]),
            property_id=None,
            application_id=str(other["application_id"]),
        ),
        headers=headers,
    )
    assert cross.status_code == 404
    assert cross.json()["detail"] == "Application not found"

    mismatch = await client.get(
        "/api/v1/holding-deposits",
        headers={**headers, "X-Agency-Slug": str(other["agency_slug"])},
    )
    assert mismatch.status_code == 403
    assert mismatch.json()["detail"] == "Agency mismatch"

    matching = await client.get(
        "/api/v1/holding-deposits",
        headers={**headers, "X-Agency-Slug": str(app_context["agency_slug"])},
    )
    assert matching.status_code == 200


async def test_token_for_other_agency_is_rejected(app_context: dict[str, Any]) -> None:
    from app.core.security import create_access_token

    client: AsyncClient = app_context["client"]
    forged = create_access_token(
        str(app_context["admin_id"]), agency_id=str(uuid.uuid4())
    )
    response = await client.get(
        "/api/v1/holding-deposits", headers={"Authorization": f"Bearer {forged}"}
    )
    assert response.status_code == 401


async def test_notification_failure_does_not_undo_deposit(
    app_context: dict[str, Any], monkeypatch: pytest.MonkeyPatch
) -> None:
    async def _boom(*_args: Any, **_kwargs: Any) -> uuid.UUID:
        raise RuntimeError("mail outage")

    monkeypatch.setattr(email_service, "queue_email", _boom)
    client: AsyncClient = app_context["client"]
    headers = await _admin_headers(app_context)

    response = await client.post(
        "/api/v1/holding-deposits", json=_payload(app_context), headers=headers
    )
    assert response.status_code == 201
    assert await _count_deposits(app_context) == 1
    assert (
        await _application_status(app_context, app_context["application_id"])
        == ApplicationStatus.APPROVED
    )


async def test_release_expired_endpoint(app_context: dict[str, Any]) -> None:
    client: AsyncClient = app_context["client"]
    headers = await _admin_headers(app_context)

    stale = (date.today() - timedelta(days=60)).isoformat()
    created = await client.post(
        "/api/v1/holding-deposits",
        json=_payload(app_context, date_received=stale, reservation_days=7),
        headers=headers,
    )
    assert created.status_code == 201

    response = await client.post(
        "/api/v1/holding-deposits/release-expired", headers=headers
    )
    assert response.status_code == 200
    assert response.json() == {"released": 1}

    deposit_id = created.json()["deposit"]["id"]
    fetched = await client.get(f"/api/v1/holding-deposits/{deposit_id}", headers=headers)
    assert fetched.json()["reservation_released"] is True
    assert fetched.json()["status"] == "held"


async def test_fractional_reservation_days_is_a_validation_error(
    app_context: dict[str, Any],
) -> None:
    client: AsyncClient = app_context["client"]
    headers = await _admin_headers(app_context)

    response = await client.post(
        "/api/v1/holding-deposits",
        json=_payload(app_context, reservation_days=30.5),
        headers=headers,
    )
    assert response.status_code == 400
    assert response.json()["detail"] == "Reservation days must be between 1 and 365"
    assert await _count_deposits(app_context) == 0
