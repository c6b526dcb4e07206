from syncschool.schemas.enums import UserRoleEnum
from syncschool.services.dashboard_service import outstanding_fees
from tests.conftest import auth_headers, make_student, make_user


async def record(client, user, student_id, amount, **extra):
    return await client.post(
        "/api/v1/payments",
        json={"studentId": student_id, "amount": amount, "method": "CASH", **extra},
        headers=auth_headers(user),
    )


async def test_record_payment(client, school, bursar, student):
    response = await record(client, bursar, student.id, 250)
    assert response.status_code == 201
    body = response.json()
    assert body["transactionId"].startswith("TXN")
    assert body["status"] == "COMPLETED"
    assert body["studentName"] == "Mary Phiri"
    assert body["className"] == "Grade Three"


async def test_repeat_payment_is_flagged_until_forced(client, school, bursar, student):
    first = await record(client, bursar, student.id, 250)
    assert first.status_code == 201

    repeat = await record(client, bursar, student.id, 250)
    assert repeat.status_code == 409
    body = repeat.json()
    assert body["warning"] == "POTENTIAL_DUPLICATE"
    assert body["existingPayment"]["transactionId"] == first.json()["transactionId"]

    forced = await record(client, bursar, student.id, 250, forceCreate=True)
    assert forced.status_code == 201
    assert forced.json()["transactionId"] != first.json()["transactionId"]

    different_amount = await record(client, bursar, student.id, 300)
    assert different_amount.status_code == 201


async def test_check_duplicate(client, school, bursar, student):
    headers = auth_headers(bursar)
    clean = await client.get(
        "/api/v1/payments/check-duplicate",
        params={"studentId": student.id, "amount": 100},
        headers=headers,
    )
    assert clean.json() == {"hasDuplicateRisk": False, "recentPayments": []}

    await record(client, bursar, student.id, 100)
    risky = await client.get(
        "/api/v1/payments/check-duplicate",
        params={"studentId": student.id, "amount": 100},
        headers=headers,
    )
    assert risky.json()["hasDuplicateRisk"] is True
    assert len(risky.json()["recentPayments"]) == 1


async def test_void_payment(client, school, bursar, student):
    payment = (await record(client, bursar, student.id, 250)).json()
    headers = auth_headers(bursar)

    voided = await client.post(
        f"/api/v1/payments/{payment['id']}/void",
        json={"reason": "Entered against the wrong student"},
        headers=headers,
    )
    assert voided.status_code == 200
    assert voided.json()["status"] == "VOIDED"
    assert voided.json()["voidReason"] == "Entered against the wrong student"

    again = await client.post(
        f"/api/v1/payments/{payment['id']}/void",
        json={"reason": "Entered against the wrong student"},
        headers=headers,
    )
    assert again.status_code == 400

    # A voided payment no longer blocks the same amount
    assert (await record(client, bursar, student.id, 250)).status_code == 201


async def test_void_needs_a_reason(client, school, bursar, student):
    payment = (await record(client, bursar, student.id, 250)).json()
    response = await client.post(
        f"/api/v1/payments/{payment['id']}/void",
        json={"reason": "no"},
        headers=auth_headers(bursar),
    )
    assert response.status_code == 400


async def test_teacher_cannot_record_payments(client, school, teacher, student):
    response = await record(client, teacher, student.id, 250)
    assert response.status_code == 403


async def test_payment_for_another_schools_student(client, session, school, other_school, bursar, student):
    other_bursar = await make_user(session, other_school, UserRoleEnum.BURSAR, "bursar@lusaka.example.com")
    response = await record(client, other_bursar, student.id, 250)
    assert response.status_code == 404


async def test_list_payments_paginated(client, school, bursar, student):
    for amount in (100, 200, 300):
        await record(client, bursar, student.id, amount)

    response = await client.get("/api/v1/payments", params={"page": 1, "limit": 2}, headers=auth_headers(bursar))
    assert response.status_code == 200
    body = response.json()
    assert len(body["data"]) == 2
    assert body["meta"] == {"total": 3, "page": 1, "limit": 2, "totalPages": 2}


async def test_fee_summary_and_finance_stats(client, school, bursar, student):
    headers = auth_headers(bursar)
    fee = await client.post(
        "/api/v1/fees",
        json={"studentId": student.id, "description": "Tuition Term 1", "amountDue": 1200},
        headers=headers,
    )
    assert fee.status_code == 201
    await record(client, bursar, student.id, 500)

    summary = await client.get(f"/api/v1/fees/student/{student.id}", headers=headers)
    assert summary.json()["totalDue"] == 1200
    assert summary.json()["totalPaid"] == 500
    assert summary.json()["balance"] == 700

    stats = await client.get("/api/v1/payments/stats", headers=headers)
    body = stats.json()
    assert body["totalRevenue"] == 500
    assert body["totalTransactions"] == 1
    assert body["pendingFees"] == 700
    assert body["overdueCount"] == 1
    assert len(body["recentActivity"]) == 1


def test_outstanding_fees_is_school_wide():
    assert outstanding_fees(700, 600) == 100
    assert outstanding_fees(500, 800) == 0


async def test_admin_dashboard(client, session, school, admin, bursar, school_class, student):
    second = await make_student(session, school, school_class, "ADM-002", first_name="John", last_name="Banda")
    headers = auth_headers(bursar)
    await client.post("/api/v1/fees", json={"studentId": student.id, "description": "Tuition", "amountDue": 500}, headers=headers)
    await client.post("/api/v1/fees", json={"studentId": second.id, "description": "Tuition", "amountDue": 200}, headers=headers)
    # Mary overpays; the surplus offsets John's balance
    await record(client, bursar, student.id, 600)
    voided = (await record(client, bursar, second.id, 50)).json()
    await client.post(f"/api/v1/payments/{voided['id']}/void", json={"reason": "Cheque bounced"}, headers=headers)

    response = await client.get("/api/v1/dashboard/stats", headers=auth_headers(admin))
    assert response.status_code == 200
    body = response.json()
    assert body["view"] == "admin"
    assert body["dailyRevenue"] == 600
    assert body["activeStudents"] == 2
    assert body["outstandingFees"] == 100
    assert len(body["recentPayments"]) == 2


async def test_teacher_dashboard(client, school, teacher, school_class, student):
    response = await client.get("/api/v1/dashboard/stats", headers=auth_headers(teacher))
    assert response.status_code == 200
    body = response.json()
    assert body["view"] == "teacher"
    assert body["totalClasses"] == 1
    assert body["totalStudents"] == 1
    assert body["myClasses"][0]["name"] == "Grade Three"
