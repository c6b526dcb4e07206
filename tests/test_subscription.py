from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest
from sqlalchemy import select

from syncschool.models.base import utcnow
from syncschool.models.user import User
from syncschool.schemas.enums import BillingCycle, SubscriptionStatus, SubscriptionTier, UserRoleEnum
from syncschool.services.subscription_service import calculate_quote, evaluate_access
from tests.conftest import auth_headers

NOW = datetime(2026, 1, 31, 9, 0, tzinfo=timezone.utc)
STARTER = SimpleNamespace(monthly_price=3500, yearly_price=35000, included_students=175)


def school_state(status, trial_ends_at=None, subscription_ends_at=None):
    return SimpleNamespace(
        subscription_status=status,
        subscription_tier=SubscriptionTier.STARTER,
        trial_ends_at=trial_ends_at,
        subscription_ends_at=subscription_ends_at,
    )


@pytest.mark.parametrize(
    "cycle, base, overage",
    [
        (BillingCycle.MONTHLY, 3500, 500),
        (BillingCycle.QUARTERLY, 10500, 1500),
        (BillingCycle.ANNUAL, 35000, 6000),
    ],
)
def test_quote_charges_students_beyond_the_included_count(cycle, base, overage):
    quote = calculate_quote(STARTER, cycle, current_students=200, per_student_price=20, start=NOW)
    assert quote.base_amount == base
    assert quote.overage_students == 25
    assert quote.overage_amount == overage
    assert quote.total_amount == base + overage


def test_quote_without_overage_and_period_end():
    quote = calculate_quote(STARTER, BillingCycle.MONTHLY, current_students=40, per_student_price=20, start=NOW)
    assert quote.overage_students == 0
    assert quote.total_amount == 3500
    # Calendar months, clamped to the end of February
    assert quote.period_end == datetime(2026, 2, 28, 9, 0, tzinfo=timezone.utc)

    annual = calculate_quote(STARTER, BillingCycle.ANNUAL, current_students=40, per_student_price=20, start=NOW)
    assert annual.period_end == datetime(2027, 1, 31, 9, 0, tzinfo=timezone.utc)


def test_trial_in_progress_is_allowed():
    check = evaluate_access(school_state(SubscriptionStatus.TRIAL, trial_ends_at=NOW + timedelta(days=3)), now=NOW)
    assert check.allowed
    assert check.days_until_expiry == 3


def test_partial_days_round_up():
    check = evaluate_access(
        school_state(SubscriptionStatus.TRIAL, trial_ends_at=NOW + timedelta(days=2, hours=1)),
        now=NOW,
    )
    assert check.days_until_expiry == 3


def test_trial_uses_trial_end_not_subscription_end():
    check = evaluate_access(
        school_state(
            SubscriptionStatus.TRIAL,
            trial_ends_at=NOW - timedelta(days=1),
            subscription_ends_at=NOW + timedelta(days=100),
        ),
        now=NOW,
    )
    assert not check.allowed
    assert check.reason == "Your trial has expired"


def test_lapsed_subscription_is_blocked():
    check = evaluate_access(
        school_state(SubscriptionStatus.ACTIVE, subscription_ends_at=NOW - timedelta(minutes=1)),
        now=NOW,
    )
    assert not check.allowed
    assert check.reason == "Your subscription has expired"


@pytest.mark.parametrize("status", [SubscriptionStatus.EXPIRED, SubscriptionStatus.SUSPENDED, SubscriptionStatus.CANCELLED])
def test_blocked_statuses(status):
    check = evaluate_access(school_state(status, subscription_ends_at=NOW + timedelta(days=30)), now=NOW)
    assert not check.allowed
    assert check.reason == f"Your subscription is {status.value.lower()}"


def test_naive_expiry_is_treated_as_utc():
    naive = (NOW + timedelta(days=5)).replace(tzinfo=None)
    check = evaluate_access(school_state(SubscriptionStatus.ACTIVE, subscription_ends_at=naive), now=NOW)
    assert check.allowed
    assert check.days_until_expiry == 5


def class_payload(teacher, term, name="Grade One"):
    return {"name": name, "gradeLevel": 1, "teacherId": teacher.id, "academicTermId": term.id}


async def test_expired_trial_blocks_writes(client, session, school, admin, teacher, term):
    school.trial_ends_at = utcnow() - timedelta(days=1)
    await session.commit()

    response = await client.post("/api/v1/classes", json=class_payload(teacher, term), headers=auth_headers(admin))
    assert response.status_code == 402
    body = response.json()
    assert body["error"] == "subscription_required"
    assert body["message"] == "Your trial has expired"
    assert body["status"] == "TRIAL"
    assert body["tier"] == "FREE"
    assert body["upgradeRequired"] is True

    # Reads keep working so the school can still see its data
    assert (await client.get("/api/v1/classes", headers=auth_headers(admin))).status_code == 200


async def test_suspended_school_is_blocked(client, session, school, admin, teacher, term):
    school.subscription_status = SubscriptionStatus.SUSPENDED
    await session.commit()

    response = await client.post("/api/v1/classes", json=class_payload(teacher, term), headers=auth_headers(admin))
    assert response.status_code == 402
    assert response.json()["message"] == "Your subscription is suspended"


async def test_warning_header_close_to_expiry(client, session, school, admin, teacher, term):
    school.trial_ends_at = utcnow() + timedelta(days=3)
    await session.commit()

    response = await client.post("/api/v1/classes", json=class_payload(teacher, term), headers=auth_headers(admin))
    assert response.status_code == 201
    assert response.headers["X-Subscription-Warning"] == "Subscription expires in 3 days"


async def test_no_warning_early_in_trial(client, school, admin, teacher, term):
    response = await client.post("/api/v1/classes", json=class_payload(teacher, term), headers=auth_headers(admin))
    assert response.status_code == 201
    assert "X-Subscription-Warning" not in response.headers


async def test_class_limit_on_free_plan(client, school, admin, teacher, term):
    headers = auth_headers(admin)
    for name in ("Grade One", "Grade Two", "Grade Three"):
        response = await client.post("/api/v1/classes", json=class_payload(teacher, term, name), headers=headers)
        assert response.status_code == 201

    over = await client.post("/api/v1/classes", json=class_payload(teacher, term, "Grade Four"), headers=headers)
    assert over.status_code == 403
    body = over.json()
    assert body["error"] == "limit_exceeded"
    assert body["resource"] == "classes"
    assert body["currentCount"] == 3
    assert body["maxAllowed"] == 3
    assert body["tier"] == "FREE"


async def test_system_owner_bypasses_billing(client, session, school, system_owner, teacher, term):
    school.subscription_status = SubscriptionStatus.EXPIRED
    await session.commit()

    response = await client.post(
        "/api/v1/classes",
        json=class_payload(teacher, term),
        headers={**auth_headers(system_owner), "X-Tenant-Slug": "chalo-primary"},
    )
    assert response.status_code == 201


async def test_plans_are_public_and_ordered(client, database):
    response = await client.get("/api/v1/subscription/plans")
    assert response.status_code == 200
    plans = response.json()
    assert [p["tier"] for p in plans] == ["FREE", "STARTER", "PROFESSIONAL", "ENTERPRISE"]
    assert [p["isPopular"] for p in plans] == [False, False, True, False]
    assert plans[3]["maxStudents"] == 0
    assert plans[1]["includedStudents"] == 175


async def test_status_reports_usage(client, school, admin, school_class, student):
    response = await client.get("/api/v1/subscription/status", headers=auth_headers(admin))
    assert response.status_code == 200
    body = response.json()
    assert body["tier"] == "FREE"
    assert body["status"] == "TRIAL"
    assert body["daysUntilExpiry"] == 14
    assert body["usage"]["students"] == {"current": 1, "max": 10, "percentage": 10.0}
    assert body["usage"]["classes"]["current"] == 1
    assert body["usage"]["users"]["current"] == 2
    assert "attendance" in body["features"]


async def starter_plan_id(client):
    plans = (await client.get("/api/v1/subscription/plans")).json()
    return next(p["id"] for p in plans if p["tier"] == "STARTER")


async def test_upgrade_and_confirm(client, school, admin, student):
    headers = auth_headers(admin)
    upgrade = await client.post(
        "/api/v1/subscription/upgrade",
        json={"planId": await starter_plan_id(client), "billingCycle": "QUARTERLY"},
        headers=headers,
    )
    assert upgrade.status_code == 200
    quote = upgrade.json()
    assert quote["amount"] == 10500
    assert quote["overageStudents"] == 0
    assert quote["currency"] == "ZMW"
    assert quote["message"] == "Please complete payment via Mobile Money or Bank Transfer"

    history = await client.get("/api/v1/subscription/payments", headers=headers)
    assert history.json()["data"][0]["status"] == "PENDING"

    confirmed = await client.post(
        f"/api/v1/subscription/payments/{quote['paymentId']}/confirm",
        json={"externalRef": "MM-88231"},
        headers=headers,
    )
    assert confirmed.status_code == 200
    payment = confirmed.json()
    assert payment["status"] == "COMPLETED"
    assert payment["externalRef"] == "MM-88231"
    assert payment["receiptNumber"].startswith("RCP-")
    assert payment["receiptNumber"].endswith(f"-{quote['paymentId']}")

    status = (await client.get("/api/v1/subscription/status", headers=headers)).json()
    assert status["tier"] == "STARTER"
    assert status["status"] == "ACTIVE"
    assert status["usage"]["students"]["max"] == 175
    assert "parent_portal" in status["features"]

    again = await client.post(f"/api/v1/subscription/payments/{quote['paymentId']}/confirm", headers=headers)
    assert again.status_code == 400
    assert again.json()["error"] == "Payment already processed"


async def test_confirm_revives_expired_school(client, session, school, admin, system_owner, teacher, term):
    school.subscription_status = SubscriptionStatus.EXPIRED
    await session.commit()

    upgrade = await client.post(
        "/api/v1/subscription/upgrade",
        json={"planId": await starter_plan_id(client)},
        headers=auth_headers(admin),
    )
    assert upgrade.status_code == 200

    # The platform owner confirms without picking a tenant
    confirmed = await client.post(
        f"/api/v1/subscription/payments/{upgrade.json()['paymentId']}/confirm",
        headers=auth_headers(system_owner),
    )
    assert confirmed.status_code == 200

    response = await client.post("/api/v1/classes", json=class_payload(teacher, term), headers=auth_headers(admin))
    assert response.status_code == 201


async def test_upgrade_to_unknown_plan(client, school, admin):
    response = await client.post(
        "/api/v1/subscription/upgrade",
        json={"planId": 9999},
        headers=auth_headers(admin),
    )
    assert response.status_code == 404
    assert response.json()["error"] == "Plan not found"


async def test_other_school_cannot_confirm(client, session, school, other_school, admin):
    upgrade = await client.post(
        "/api/v1/subscription/upgrade",
        json={"planId": await starter_plan_id(client)},
        headers=auth_headers(admin),
    )
    result = await session.execute(
        select(User).where(User.school_id == other_school.id, User.role == UserRoleEnum.SUPER_ADMIN)
    )
    other_admin = result.scalar_one()

    response = await client.post(
        f"/api/v1/subscription/payments/{upgrade.json()['paymentId']}/confirm",
        headers=auth_headers(other_admin),
    )
    assert response.status_code == 404
