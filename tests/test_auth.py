from sqlalchemy import select

from syncschool.models.academic import Subject
from syncschool.models.user import User
from syncschool.schemas.enums import UserRoleEnum
from tests.conftest import PASSWORD, auth_headers, make_user


async def test_login_within_tenant(client, school, admin):
    response = await client.post(
        "/api/v1/auth/login",
        json={"email": "admin@chalo.example.com", "password": PASSWORD},
        headers={"X-Tenant-Slug": "chalo-primary"},
    )
    assert response.status_code == 200
    body = response.json()
    assert body["token"]
    assert body["tenantSlug"] == "chalo-primary"
    assert body["user"]["role"] == "SUPER_ADMIN"
    assert body["user"]["schoolId"] == school.id


async def test_login_wrong_password(client, school, admin):
    response = await client.post(
        "/api/v1/auth/login",
        json={"email": "admin@chalo.example.com", "password": "not-it"},
        headers={"X-Tenant-Slug": "chalo-primary"},
    )
    assert response.status_code == 401
    assert response.json()["error"] == "Invalid credentials"


async def test_login_without_tenant_prefers_active_school(client, session, school, other_school):
    # Same email in two schools; the first school is switched off
    await make_user(session, school, UserRoleEnum.BURSAR, "shared@example.com")
    other = await make_user(session, other_school, UserRoleEnum.BURSAR, "shared@example.com")
    school.is_active = False
    await session.commit()

    response = await client.post("/api/v1/auth/login", json={"email": "shared@example.com", "password": PASSWORD})
    assert response.status_code == 200
    assert response.json()["user"]["id"] == other.id
    assert response.json()["tenantSlug"] == "lusaka-academy"


async def test_system_owner_login_has_no_tenant(client, system_owner):
    response = await client.post(
        "/api/v1/auth/login",
        json={"email": "owner@example.com", "password": "owner-password"},
    )
    assert response.status_code == 200
    assert response.json()["tenantSlug"] is None
    assert response.json()["user"]["schoolId"] is None


async def test_login_to_inactive_school_is_forbidden(client, session, school, admin):
    school.is_active = False
    await session.commit()

    response = await client.post(
        "/api/v1/auth/login",
        json={"email": "admin@chalo.example.com", "password": PASSWORD},
        headers={"X-Tenant-Slug": "chalo-primary"},
    )
    assert response.status_code == 403


async def test_inactive_account_cannot_log_in(client, session, school, admin):
    admin.is_active = False
    await session.commit()

    response = await client.post(
        "/api/v1/auth/login",
        json={"email": "admin@chalo.example.com", "password": PASSWORD},
        headers={"X-Tenant-Slug": "chalo-primary"},
    )
    assert response.status_code == 401
    assert response.json()["error"] == "Invalid credentials or inactive account"


async def test_inactive_accounts_in_every_school_cannot_log_in(client, session, school, other_school):
    first = await make_user(session, school, UserRoleEnum.BURSAR, "shared@example.com")
    second = await make_user(session, other_school, UserRoleEnum.BURSAR, "shared@example.com")
    first.is_active = False
    second.is_active = False
    await session.commit()

    response = await client.post("/api/v1/auth/login", json={"email": "shared@example.com", "password": PASSWORD})
    assert response.status_code == 401
    assert response.json()["error"] == "Invalid credentials or inactive account"


async def test_register_requires_tenant(client, school):
    response = await client.post(
        "/api/v1/auth/register",
        json={"email": "new@example.com", "password": PASSWORD, "fullName": "New Staff", "role": "TEACHER"},
    )
    assert response.status_code == 400
    assert response.json()["error"] == "Tenant context missing"


async def test_register_staff_in_tenant(client, session, school):
    response = await client.post(
        "/api/v1/auth/register",
        json={"email": "New@Example.com", "password": PASSWORD, "fullName": "New Staff", "role": "TEACHER"},
        headers={"X-Tenant-Slug": "chalo-primary"},
    )
    assert response.status_code == 201
    assert response.json()["user"]["email"] == "new@example.com"

    duplicate = await client.post(
        "/api/v1/auth/register",
        json={"email": "new@example.com", "password": PASSWORD, "fullName": "New Staff", "role": "TEACHER"},
        headers={"X-Tenant-Slug": "chalo-primary"},
    )
    assert duplicate.status_code == 400

    result = await session.execute(select(User).where(User.email == "new@example.com"))
    assert len(result.scalars().all()) == 1


async def test_register_rejects_parent_and_owner_roles(client, school):
    for role in ("PARENT", "SYSTEM_OWNER"):
        response = await client.post(
            "/api/v1/auth/register",
            json={"email": "x@example.com", "password": PASSWORD, "fullName": "Someone", "role": role},
            headers={"X-Tenant-Slug": "chalo-primary"},
        )
        assert response.status_code == 400


async def test_me_requires_token(client):
    response = await client.get("/api/v1/auth/me")
    assert response.status_code == 401


async def test_me(client, teacher):
    response = await client.get("/api/v1/auth/me", headers=auth_headers(teacher))
    assert response.status_code == 200
    assert response.json()["fullName"] == "Alice Zulu"


async def test_tenant_lookup(client, school):
    response = await client.get("/api/v1/auth/tenant/chalo-primary")
    assert response.status_code == 200
    assert response.json()["name"] == "Chalo Primary School"
    assert response.json()["subscriptionTier"] == "FREE"

    missing = await client.get("/api/v1/auth/tenant/nowhere")
    assert missing.status_code == 404


async def test_system_owner_needs_tenant_header_for_school_data(client, system_owner, school):
    response = await client.get("/api/v1/subjects", headers=auth_headers(system_owner))
    assert response.status_code == 400
    assert response.json()["error"] == "Tenant context missing"

    scoped = await client.get(
        "/api/v1/subjects",
        headers={**auth_headers(system_owner), "X-Tenant-Slug": "chalo-primary"},
    )
    assert scoped.status_code == 200


async def test_staff_of_inactive_school_are_locked_out(client, session, school, teacher):
    school.is_active = False
    await session.commit()

    response = await client.get("/api/v1/subjects", headers=auth_headers(teacher))
    assert response.status_code == 403


async def test_staff_cannot_switch_tenant_with_header(client, session, school, other_school, admin):
    session.add(Subject(school_id=school.id, name="Mathematics", code="MATH"))
    await session.commit()

    response = await client.get(
        "/api/v1/subjects",
        headers={**auth_headers(admin), "X-Tenant-Slug": "lusaka-academy"},
    )
    assert response.status_code == 200
    assert [s["code"] for s in response.json()] == ["MATH"]


async def test_role_gate(client, school, teacher):
    response = await client.post(
        "/api/v1/subjects",
        json={"name": "Mathematics", "code": "MATH"},
        headers=auth_headers(teacher),
    )
    assert response.status_code == 403
