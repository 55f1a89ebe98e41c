"""Tests for the staff application review endpoints."""

import pytest
from httpx import AsyncClient

from admissions.schemas.applications import ApplicationSubmit
from admissions.services import application_service

from conftest import auth_for, submission


@pytest.fixture
def submitted(db, make_form, email_sender):
    form = make_form("IELTS Prep")
    created = [
        application_service.submit_application(
            db, form.id, ApplicationSubmit.model_validate(submission(email, full_name=name)), email_sender
        )
        for email, name in (("ana@x.com", "Ana Lopez"), ("ben@x.com", "Ben Okafor"))
    ]
    email_sender.sent.clear()
    return created


@pytest.mark.asyncio
async def test_review_requires_staff_role(client: AsyncClient, db, tutor_user):
    token = auth_for(tutor_user).token
    response = await client.get(
        "/api/forms/applications", headers={"Authorization": f"Bearer {token}"}
    )
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_list_applications(counsellor_client: AsyncClient, submitted):
    response = await counsellor_client.get("/api/forms/applications", params={"search": "okafor"})
    assert response.status_code == 200
    data = response.json()["data"]
    assert data["pagination"]["totalItems"] == 1
    [item] = data["applications"]
    assert item["studentInfo"]["fullName"] == "Ben Okafor"
    assert item["applicationForm"]["slug"] == "ielts-prep"
    assert item["status"] == "pending"
    assert "formData" not in item


@pytest.mark.asyncio
async def test_application_detail(counsellor_client: AsyncClient, submitted):
    ana = submitted[0]
    response = await counsellor_client.get(f"/api/forms/applications/{ana.id}")
    assert response.status_code == 200
    application = response.json()["data"]["application"]
    assert application["id"] == ana.id
    assert application["formData"] == {"fullName": "Ana Lopez"}
    assert application["statusHistory"] == []
    [welcome] = application["communication"]["emailsSent"]
    assert welcome["type"] == "welcome"
    assert welcome["delivered"] is True


@pytest.mark.asyncio
async def test_application_detail_not_found(counsellor_client: AsyncClient):
    response = await counsellor_client.get(f"/api/forms/applications/{'0' * 24}")
    assert response.status_code == 404
    assert response.json()["message"] == "Application not found"


@pytest.mark.asyncio
async def test_update_status(counsellor_client: AsyncClient, submitted, counsellor_user, email_sender):
    ana = submitted[0]
    response = await counsellor_client.put(
        f"/api/forms/applications/{ana.id}/status",
        json={"status": "approved", "reason": "Strong placement test", "notes": "Fast-track"},
    )
    assert response.status_code == 200
    application = response.json()["data"]["application"]
    assert application["status"] == "approved"
    [history] = application["statusHistory"]
    assert history["previousStatus"] == "pending"
    assert history["reason"] == "Strong placement test"
    assert history["changedBy"]["id"] == counsellor_user.id
    assert application["reviewNotes"][0]["note"] == "Fast-track"
    assert email_sender.subjects_to("ana@x.com") == ["Application Approved - IELTS Prep"]


@pytest.mark.asyncio
async def test_update_status_rejects_unknown_value(counsellor_client: AsyncClient, submitted):
    response = await counsellor_client.put(
        f"/api/forms/applications/{submitted[0].id}/status", json={"status": "enrolled"}
    )
    assert response.status_code == 400
    assert response.json()["errors"][0]["field"] == "status"


@pytest.mark.asyncio
async def test_assign(counsellor_client: AsyncClient, submitted, counsellor_user, tutor_user):
    ana = submitted[0]
    response = await counsellor_client.put(
        f"/api/forms/applications/{ana.id}/assign", json={"assignedTo": counsellor_user.id}
    )
    assert response.status_code == 200
    assert response.json()["data"]["application"]["assignedTo"]["id"] == counsellor_user.id

    not_staff = await counsellor_client.put(
        f"/api/forms/applications/{ana.id}/assign", json={"assignedTo": tutor_user.id}
    )
    assert not_staff.status_code == 404
    assert not_staff.json()["message"] == "Staff member not found"


@pytest.mark.asyncio
async def test_add_note(counsellor_client: AsyncClient, submitted):
    ana = submitted[0]
    response = await counsellor_client.post(
        f"/api/forms/applications/{ana.id}/notes", json={"note": "Called twice", "isInternal": False}
    )
    assert response.status_code == 200
    [note] = response.json()["data"]["notes"]
    assert note["note"] == "Called twice"
    assert note["isInternal"] is False
    assert note["addedBy"]["name"] == "Cole Counsellor"

    blank = await counsellor_client.post(f"/api/forms/applications/{ana.id}/notes", json={"note": "   "})
    assert blank.status_code == 400


@pytest.mark.asyncio
async def test_send_email(counsellor_client: AsyncClient, submitted, email_sender):
    ana = submitted[0]
    payload = {"subject": "Placement test", "message": "See you on Monday at 10am."}

    response = await counsellor_client.post(f"/api/forms/applications/{ana.id}/send-email", json=payload)
    assert response.status_code == 200
    assert response.json()["message"] == "Email sent successfully"
    assert email_sender.subjects_to("ana@x.com") == ["Placement test"]

    email_sender.fail = True
    failed = await counsellor_client.post(f"/api/forms/applications/{ana.id}/send-email", json=payload)
    assert failed.status_code == 502
    assert failed.json() == {"success": False, "message": "Failed to send email"}


@pytest.mark.asyncio
async def test_archive_defaults_to_archiving(counsellor_client: AsyncClient, submitted):
    ana = submitted[0]
    response = await counsellor_client.put(f"/api/forms/applications/{ana.id}/archive")
    assert response.status_code == 200
    assert response.json()["message"] == "Application archived successfully"
    assert response.json()["data"]["application"]["isArchived"] is True

    restored = await counsellor_client.put(
        f"/api/forms/applications/{ana.id}/archive", json={"archive": False}
    )
    assert restored.json()["message"] == "Application unarchived successfully"


@pytest.mark.asyncio
async def test_bulk(counsellor_client: AsyncClient, submitted):
    ids = [a.id for a in submitted]
    response = await counsellor_client.post(
        "/api/forms/applications/bulk",
        json={"action": "setPriority", "applicationIds": ids, "data": {"priority": "high"}},
    )
    assert response.status_code == 200
    assert response.json()["message"] == "Bulk setPriority completed successfully"
    assert response.json()["data"] == {"matchedCount": 2, "modifiedCount": 2}

    invalid = await counsellor_client.post(
        "/api/forms/applications/bulk", json={"action": "setPriority", "applicationIds": ids}
    )
    assert invalid.status_code == 400


@pytest.mark.asyncio
async def test_stats(counsellor_client: AsyncClient, submitted):
    response = await counsellor_client.get("/api/forms/applications/stats")
    assert response.status_code == 200
    stats = response.json()["data"]
    assert stats["totalApplications"] == 2
    assert stats["statusBreakdown"] == [{"status": "pending", "count": 2}]
    assert stats["priorityBreakdown"] == [{"priority": "medium", "count": 2}]
    assert stats["formBreakdown"][0]["formName"] == "IELTS Prep"
    assert stats["recentActivity"][0]["count"] == 2


@pytest.mark.asyncio
async def test_admin_may_review(authed_client: AsyncClient, submitted):
    response = await authed_client.get("/api/forms/applications")
    assert response.status_code == 200
    assert response.json()["data"]["pagination"]["totalItems"] == 2
