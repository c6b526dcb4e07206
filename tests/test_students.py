from sqlalchemy import select

from syncschool.models.academic import Class
from syncschool.models.student import ClassMovementLog, Student
from tests.conftest import auth_headers, make_student

REGISTER_CSV = (
    "NAME,GRADE\n"
    "BANDA.john*,3\n"
    "phiri  grace,3\n"
    "TEMBO.kondwani,5\n"
    ",3\n"
    "Name,Grade\n"
)


def student_payload(class_id, admission_number="ADM-100", **overrides):
    payload = {
        "firstName": "Chanda",
        "lastName": "Mwila",
        "admissionNumber": admission_number,
        "dateOfBirth": "2016-07-21",
        "gender": "MALE",
        "guardianName": "Esther Mwila",
        "guardianPhone": "+260966111222",
        "classId": class_id,
    }
    payload.update(overrides)
    return payload


async def test_create_student(client, school, admin, school_class):
    response = await client.post(
        "/api/v1/students",
        json=student_payload(school_class.id),
        headers=auth_headers(admin),
    )
    assert response.status_code == 201
    body = response.json()
    assert body["admissionNumber"] == "ADM-100"
    assert body["status"] == "ACTIVE"
    assert body["class"]["name"] == "Grade Three"


async def test_duplicate_admission_number(client, school, admin, school_class, student):
    response = await client.post(
        "/api/v1/students",
        json=student_payload(school_class.id, admission_number=student.admission_number),
        headers=auth_headers(admin),
    )
    assert response.status_code == 400


async def test_student_limit_blocks_creation(client, session, school, admin, school_class, student):
    school.max_students = 1
    await session.commit()

    response = await client.post(
        "/api/v1/students",
        json=student_payload(school_class.id),
        headers=auth_headers(admin),
    )
    assert response.status_code == 403
    body = response.json()
    assert body["error"] == "limit_exceeded"
    assert body["resource"] == "students"
    assert body["currentCount"] == 1
    assert body["maxAllowed"] == 1
    assert body["upgradeRequired"] is True
    assert body["upgradeUrl"] == "/subscription/upgrade"


async def test_bulk_create_over_limit_is_rejected(client, session, school, admin, school_class, student):
    school.max_students = 2
    await session.commit()

    rows = [student_payload(school_class.id, admission_number=f"B-{i}") for i in range(2)]
    response = await client.post("/api/v1/students/bulk", json=rows, headers=auth_headers(admin))
    assert response.status_code == 403


async def test_bulk_limit_ignores_rows_already_on_file(client, session, school, admin, school_class, student):
    school.max_students = 2
    await session.commit()

    # Re-sending an existing student alongside one new row fits the plan
    rows = [
        student_payload(school_class.id, admission_number=student.admission_number),
        student_payload(school_class.id, admission_number="B-1"),
    ]
    response = await client.post("/api/v1/students/bulk", json=rows, headers=auth_headers(admin))
    assert response.status_code == 201
    assert response.json()["count"] == 1


async def test_bulk_create_skips_duplicates(client, school, admin, school_class, student):
    rows = [
        student_payload(school_class.id, admission_number="B-1"),
        student_payload(school_class.id, admission_number=student.admission_number),
        student_payload(school_class.id, admission_number="B-1"),
    ]
    response = await client.post("/api/v1/students/bulk", json=rows, headers=auth_headers(admin))
    assert response.status_code == 201
    assert response.json()["count"] == 1


async def test_import_register_file(client, session, school, admin, school_class, student):
    school.max_students = 2
    await session.commit()

    response = await client.post(
        "/api/v1/students/import",
        files={"file": ("register.csv", REGISTER_CSV.encode(), "text/csv")},
        headers=auth_headers(admin),
    )
    assert response.status_code == 200
    body = response.json()
    assert body["count"] == 1
    assert body["skipped"] == 2
    assert body["errors"] == [
        {"row": 3, "error": "Student limit reached for your plan"},
        {"row": 4, "error": "No matching class for grade"},
    ]

    result = await session.execute(
        select(Student).where(Student.school_id == school.id, Student.id != student.id)
    )
    imported = result.scalar_one()
    assert (imported.first_name, imported.last_name) == ("Banda", "John")
    assert imported.class_id == school_class.id
    assert imported.admission_number.endswith("0001")


async def test_import_keeps_numeric_admission_numbers(client, session, school, admin, school_class):
    csv = "NAME,GRADE,ADMISSION_NUMBER\nJohn Banda,3,1001\nMary Tembo,3,\n"
    headers = auth_headers(admin)
    response = await client.post(
        "/api/v1/students/import",
        files={"file": ("register.csv", csv.encode(), "text/csv")},
        headers=headers,
    )
    assert response.json()["count"] == 2

    result = await session.execute(select(Student.admission_number).where(Student.school_id == school.id))
    numbers = result.scalars().all()
    assert "1001" in numbers
    assert "1001.0" not in numbers

    again = await client.post(
        "/api/v1/students/import",
        files={"file": ("register.csv", "NAME,GRADE,ADMISSION_NUMBER\nJohn Banda,3,1001\n".encode(), "text/csv")},
        headers=headers,
    )
    assert again.json()["count"] == 0


async def test_import_rejects_other_formats(client, school, admin, school_class):
    response = await client.post(
        "/api/v1/students/import",
        files={"file": ("register.txt", b"NAME,GRADE\n", "text/plain")},
        headers=auth_headers(admin),
    )
    assert response.status_code == 400


async def test_import_requires_name_and_grade_columns(client, school, admin, school_class):
    response = await client.post(
        "/api/v1/students/import",
        files={"file": ("register.csv", b"FULLNAME,CLASS\nJohn Banda,3\n", "text/csv")},
        headers=auth_headers(admin),
    )
    assert response.status_code == 400
    assert response.json()["error"] == "Missing required columns: GRADE, NAME"


async def test_list_and_search(client, session, school, admin, school_class, student):
    await make_student(session, school, school_class, "ADM-002", first_name="John", last_name="Banda")
    headers = auth_headers(admin)

    everyone = await client.get("/api/v1/students", headers=headers)
    assert [s["lastName"] for s in everyone.json()] == ["Banda", "Phiri"]

    found = await client.get("/api/v1/students", params={"search": "adm-002"}, headers=headers)
    assert [s["firstName"] for s in found.json()] == ["John"]


async def test_soft_delete_hides_student(client, session, school, admin, student):
    headers = auth_headers(admin)
    response = await client.delete(f"/api/v1/students/{student.id}", headers=headers)
    assert response.status_code == 204

    assert (await client.get(f"/api/v1/students/{student.id}", headers=headers)).status_code == 404
    assert (await client.get("/api/v1/students", headers=headers)).json() == []

    row = await session.execute(
        select(Student.deleted_at).where(Student.id == student.id).execution_options(populate_existing=True)
    )
    assert row.scalar_one() is not None


async def test_bulk_delete(client, session, school, admin, school_class, student):
    second = await make_student(session, school, school_class, "ADM-002")
    response = await client.post(
        "/api/v1/students/bulk-delete",
        json={"ids": [student.id, second.id, 999]},
        headers=auth_headers(admin),
    )
    assert response.json()["count"] == 2


async def test_class_change_is_logged(client, session, school, admin, teacher, term, school_class, student):
    grade_four = Class(school_id=school.id, name="Grade Four", grade_level=4, teacher_id=teacher.id, academic_term_id=term.id)
    session.add(grade_four)
    await session.commit()

    response = await client.put(
        f"/api/v1/students/{student.id}",
        json={"classId": grade_four.id, "reason": "Promoted mid-term"},
        headers=auth_headers(admin),
    )
    assert response.status_code == 200
    assert response.json()["classId"] == grade_four.id

    logs = await session.execute(select(ClassMovementLog).where(ClassMovementLog.student_id == student.id))
    log = logs.scalar_one()
    assert (log.from_class_id, log.to_class_id, log.reason) == (school_class.id, grade_four.id, "Promoted mid-term")


async def test_parent_sees_own_children(client, session, school, parent, school_class, student):
    student.parent_id = parent.id
    await session.commit()
    await make_student(session, school, school_class, "ADM-002", first_name="John", last_name="Banda")

    response = await client.get("/api/v1/students/my-children", headers=auth_headers(parent))
    assert response.status_code == 200
    assert [s["id"] for s in response.json()] == [student.id]


async def test_parent_cannot_list_all_students(client, school, parent):
    response = await client.get("/api/v1/students", headers=auth_headers(parent))
    assert response.status_code == 403
