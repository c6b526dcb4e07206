from datetime import date

from sqlalchemy import func, select

from syncschool.models.academic import AcademicTerm, Class, Subject
from syncschool.schemas.enums import UserRoleEnum
from tests.conftest import auth_headers, make_student, make_user


async def test_duplicate_subject_code_is_rejected(client, session, school, admin):
    headers = auth_headers(admin)
    first = await client.post("/api/v1/subjects", json={"name": "Mathematics", "code": "MATH"}, headers=headers)
    assert first.status_code == 201
    assert first.json()["code"] == "MATH"

    second = await client.post("/api/v1/subjects", json={"name": "Maths Again", "code": "MATH"}, headers=headers)
    assert second.status_code == 400
    assert second.json()["error"] == "Subject with this code already exists"

    count = await session.execute(select(func.count(Subject.id)).where(Subject.school_id == school.id))
    assert count.scalar_one() == 1


async def test_same_subject_code_in_two_schools(client, school, other_school, admin, session):
    other_admin = await make_user(session, other_school, UserRoleEnum.SUPER_ADMIN, "second@lusaka.example.com")
    for user in (admin, other_admin):
        response = await client.post(
            "/api/v1/subjects",
            json={"name": "English", "code": "ENG"},
            headers=auth_headers(user),
        )
        assert response.status_code == 201


async def test_subject_update_and_delete(client, session, school, admin):
    headers = auth_headers(admin)
    created = (await client.post("/api/v1/subjects", json={"name": "Science", "code": "SCI"}, headers=headers)).json()
    await client.post("/api/v1/subjects", json={"name": "Social Studies", "code": "SST"}, headers=headers)

    clash = await client.put(f"/api/v1/subjects/{created['id']}", json={"code": "SST"}, headers=headers)
    assert clash.status_code == 400

    renamed = await client.put(f"/api/v1/subjects/{created['id']}", json={"name": "Integrated Science"}, headers=headers)
    assert renamed.status_code == 200
    assert renamed.json()["name"] == "Integrated Science"
    assert renamed.json()["code"] == "SCI"

    deleted = await client.delete(f"/api/v1/subjects/{created['id']}", headers=headers)
    assert deleted.status_code == 204
    assert (await client.delete(f"/api/v1/subjects/{created['id']}", headers=headers)).status_code == 404


async def test_only_one_active_term(client, session, school, admin, term):
    headers = auth_headers(admin)
    response = await client.post(
        "/api/v1/academic-terms",
        json={"name": "Term 2 2026", "startDate": "2026-05-04", "endDate": "2026-08-07", "isActive": True},
        headers=headers,
    )
    assert response.status_code == 201
    second_id = response.json()["id"]

    current = await client.get("/api/v1/academic-terms/current", headers=headers)
    assert current.json()["id"] == second_id

    activated = await client.patch(f"/api/v1/academic-terms/{term.id}/activate", headers=headers)
    assert activated.status_code == 200
    assert activated.json()["isActive"] is True

    result = await session.execute(
        select(AcademicTerm.id).where(AcademicTerm.school_id == school.id, AcademicTerm.is_active.is_(True))
    )
    assert result.scalars().all() == [term.id]


async def test_term_dates_must_be_ordered(client, school, admin):
    response = await client.post(
        "/api/v1/academic-terms",
        json={"name": "Backwards", "startDate": "2026-05-04", "endDate": "2026-01-01"},
        headers=auth_headers(admin),
    )
    assert response.status_code == 400


async def test_term_update_ignores_nulls(client, school, admin, term):
    headers = auth_headers(admin)
    response = await client.put(
        f"/api/v1/academic-terms/{term.id}",
        json={"startDate": None, "endDate": "2026-04-17"},
        headers=headers,
    )
    assert response.status_code == 200
    body = response.json()
    assert body["startDate"] == "2026-01-12"
    assert body["endDate"] == "2026-04-17"

    renamed = await client.put(f"/api/v1/academic-terms/{term.id}", json={"name": None}, headers=headers)
    assert renamed.status_code == 200
    assert renamed.json()["name"] == "Term 1 2026"


async def test_term_update_keeps_dates_ordered(client, school, admin, term):
    response = await client.put(
        f"/api/v1/academic-terms/{term.id}",
        json={"endDate": "2026-01-01"},
        headers=auth_headers(admin),
    )
    assert response.status_code == 400


async def test_no_current_term(client, school, admin):
    response = await client.get("/api/v1/academic-terms/current", headers=auth_headers(admin))
    assert response.status_code == 404


async def test_create_class_with_subjects(client, session, school, admin, teacher, term):
    headers = auth_headers(admin)
    subject = (await client.post("/api/v1/subjects", json={"name": "Mathematics", "code": "MATH"}, headers=headers)).json()

    response = await client.post(
        "/api/v1/classes",
        json={
            "name": "Grade One",
            "gradeLevel": 1,
            "teacherId": teacher.id,
            "academicTermId": term.id,
            "subjectIds": [subject["id"]],
        },
        headers=headers,
    )
    assert response.status_code == 201
    body = response.json()
    assert body["teacher"]["fullName"] == "Alice Zulu"
    assert [s["code"] for s in body["subjects"]] == ["MATH"]
    assert body["studentCount"] == 0


async def test_create_class_with_teacher_from_another_school(client, session, school, other_school, admin, term):
    outsider = await make_user(session, other_school, UserRoleEnum.TEACHER, "outsider@lusaka.example.com")
    response = await client.post(
        "/api/v1/classes",
        json={"name": "Grade Two", "gradeLevel": 2, "teacherId": outsider.id, "academicTermId": term.id},
        headers=auth_headers(admin),
    )
    assert response.status_code == 404
    assert response.json()["error"] == "Teacher not found"


async def test_bulk_classes_fall_back_to_defaults_and_skip_duplicates(client, session, school, admin, teacher, term, school_class):
    response = await client.post(
        "/api/v1/classes/bulk",
        json=[
            {"name": "Reception Class", "gradeLevel": 0, "teacherId": 99999, "academicTermId": 99999},
            {"name": "grade three", "gradeLevel": 3},
        ],
        headers=auth_headers(admin),
    )
    assert response.status_code == 201
    assert response.json()["count"] == 1
    assert response.json()["skipped"] == 1

    result = await session.execute(
        select(Class).where(Class.school_id == school.id, Class.name == "Reception Class")
    )
    reception = result.scalar_one()
    # The admin was created first, so it is the default teacher
    assert reception.teacher_id == admin.id
    assert reception.academic_term_id == term.id


async def test_class_teacher_must_teach(client, school, admin, bursar, term):
    response = await client.post(
        "/api/v1/classes",
        json={"name": "Grade Two", "gradeLevel": 2, "teacherId": bursar.id, "academicTermId": term.id},
        headers=auth_headers(admin),
    )
    assert response.status_code == 404
    assert response.json()["error"] == "Teacher not found"


async def test_bulk_classes_replace_non_teaching_teacher(client, session, school, admin, bursar, term):
    response = await client.post(
        "/api/v1/classes/bulk",
        json=[{"name": "Grade Five", "gradeLevel": 5, "teacherId": bursar.id}],
        headers=auth_headers(admin),
    )
    assert response.json()["count"] == 1

    result = await session.execute(select(Class.teacher_id).where(Class.name == "Grade Five"))
    assert result.scalar_one() == admin.id


async def test_bulk_classes_without_active_term_are_skipped(client, session, school, admin, teacher):
    response = await client.post(
        "/api/v1/classes/bulk",
        json=[{"name": "Grade One", "gradeLevel": 1}],
        headers=auth_headers(admin),
    )
    assert response.status_code == 201
    assert response.json() == {"message": "Successfully created 0 classes", "count": 0, "skipped": 1}


async def test_teacher_sees_only_own_classes(client, session, school, admin, teacher, term, school_class):
    other_teacher = await make_user(session, school, UserRoleEnum.TEACHER, "second.teacher@chalo.example.com")
    session.add(Class(
        school_id=school.id,
        name="Grade Four",
        grade_level=4,
        teacher_id=other_teacher.id,
        academic_term_id=term.id,
    ))
    await session.commit()

    mine = await client.get("/api/v1/classes", headers=auth_headers(teacher))
    assert [c["name"] for c in mine.json()] == ["Grade Three"]

    everything = await client.get("/api/v1/classes", headers=auth_headers(admin))
    assert [c["name"] for c in everything.json()] == ["Grade Three", "Grade Four"]


async def test_class_with_students_cannot_be_deleted(client, school, admin, school_class, student):
    response = await client.delete(f"/api/v1/classes/{school_class.id}", headers=auth_headers(admin))
    assert response.status_code == 400


async def test_add_students_to_class_logs_movement(client, session, school, admin, teacher, term, school_class, student):
    target = Class(school_id=school.id, name="Grade Four", grade_level=4, teacher_id=teacher.id, academic_term_id=term.id)
    session.add(target)
    await session.commit()

    response = await client.post(
        f"/api/v1/classes/{target.id}/students",
        json={"studentIds": [student.id]},
        headers=auth_headers(admin),
    )
    assert response.status_code == 200
    assert response.json()["count"] == 1

    roster = await client.get(f"/api/v1/classes/{target.id}/students", headers=auth_headers(admin))
    assert [s["id"] for s in roster.json()] == [student.id]

    detail = await client.get(f"/api/v1/students/{student.id}", headers=auth_headers(admin))
    assert detail.json()["classId"] == target.id


async def test_students_of_another_school_cannot_be_added(client, session, school, other_school, admin, school_class):
    other_teacher = await make_user(session, other_school, UserRoleEnum.TEACHER, "t@lusaka.example.com")
    other_term = AcademicTerm(
        school_id=other_school.id, name="Term 1", start_date=date(2026, 1, 12), end_date=date(2026, 4, 10)
    )
    session.add(other_term)
    await session.commit()
    other_class = Class(
        school_id=other_school.id, name="Grade One", grade_level=1,
        teacher_id=other_teacher.id, academic_term_id=other_term.id,
    )
    session.add(other_class)
    await session.commit()
    foreign = await make_student(session, other_school, other_class, "LA-001")

    response = await client.post(
        f"/api/v1/classes/{school_class.id}/students",
        json={"studentIds": [foreign.id]},
        headers=auth_headers(admin),
    )
    assert response.status_code == 400
