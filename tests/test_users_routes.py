"""User management and client assignment."""

from sqlalchemy import event, select

from app.models import AccessLevel, ClientUser, User, UserRole


def _new_user(**overrides):
    payload = {
        "name": "New Person",
        "email": "new.person@example.com",
        "password": "s3cret-pass",
        "password_confirmation": "s3cret-pass",
        "role": "user",
        "clients": [],
    }
    payload.update(overrides)
    return payload


async def _flashes(client):
    return (await client.get("/clients")).json()["flashes"]


async def test_admin_creates_manager_with_grants(client, login, make_user, make_client, fresh):
    await login(await make_user(UserRole.admin))
    a = await make_client("A")
    b = await make_client("B")

    response = await client.post(
        "/users",
        json=_new_user(
            role="manager",
            email="New.Manager@Example.com",
            clients=[
                {"client_id": a.id, "access_level": "write"},
                {"client_id": b.id},
            ],
        ),
    )

    assert response.status_code == 201
    body = response.json()
    assert body["role"] == "manager"
    assert body["email"] == "new.manager@example.com"
    assert sorted((g["client_id"], g["access_level"]) for g in body["grants"]) == sorted(
        [(a.id, "write"), (b.id, "read")]
    )
    assert "hashed_password" not in body
    assert await _flashes(client) == [{"level": "success", "message": "User created successfully."}]


async def test_created_user_can_log_in(client, login, make_user):
    await login(await make_user(UserRole.admin))
    await client.post("/users", json=_new_user())
    await client.post("/logout")

    response = await client.post(
        "/login", data={"email": "new.person@example.com", "password": "s3cret-pass"}
    )

    assert response.status_code == 303


async def test_manager_cannot_create_admin(client, login, make_user, fresh):
    await login(await make_user(UserRole.manager))

    response = await client.post("/users", json=_new_user(role="admin"))

    assert response.status_code == 303
    assert await _flashes(client) == [
        {"level": "error", "message": "Managers can only create users with the 'user' role."}
    ]

    async def exists(session):
        result = await session.execute(select(User).where(User.email == "new.person@example.com"))
        return result.scalar_one_or_none()

    assert await fresh(exists) is None


async def test_manager_assigns_only_writable_clients(
    client, login, make_user, make_client, grant
):
    manager = await make_user(UserRole.manager)
    writable = await make_client("Writable")
    readable = await make_client("Readable")
    await grant(manager, writable, AccessLevel.write)
    await grant(manager, readable, AccessLevel.read)
    await login(manager)

    allowed = await client.post(
        "/users", json=_new_user(clients=[{"client_id": writable.id}])
    )
    denied = await client.post(
        "/users",
        json=_new_user(email="second@example.com", clients=[{"client_id": readable.id}]),
    )

    assert allowed.status_code == 201
    assert denied.status_code == 303
    assert await _flashes(client) == [
        {"level": "success", "message": "User created successfully."},
        {"level": "error", "message": "You cannot assign users to client 'Readable'."},
    ]


async def test_assigning_unknown_client_is_a_field_error(client, login, make_user):
    await login(await make_user(UserRole.admin))

    response = await client.post("/users", json=_new_user(clients=[{"client_id": "missing"}]))

    assert response.status_code == 422
    assert response.json()["errors"] == {"clients": "Client 'missing' does not exist."}


async def test_duplicate_email_is_rejected(client, login, make_user):
    await make_user(email="taken@example.com")
    await login(await make_user(UserRole.admin))

    response = await client.post("/users", json=_new_user(email="TAKEN@example.com"))

    assert response.status_code == 422
    assert response.json()["errors"] == {"email": "The email has already been taken."}


async def test_password_confirmation_must_match(client, login, make_user):
    await login(await make_user(UserRole.admin))

    response = await client.post(
        "/users", json=_new_user(password_confirmation="something-else")
    )

    assert response.status_code == 422
    assert "__all__" in response.json()["errors"]


async def test_short_password_is_rejected(client, login, make_user):
    await login(await make_user(UserRole.admin))

    response = await client.post(
        "/users", json=_new_user(password="short", password_confirmation="short")
    )

    assert response.status_code == 422
    assert "password" in response.json()["errors"]


async def test_user_role_cannot_create_users(client, login, make_user):
    await login(await make_user(UserRole.user))

    response = await client.post("/users", json=_new_user())

    assert response.status_code == 303
    assert await _flashes(client) == [{"level": "error", "message": "Required role: admin, manager"}]


async def test_create_form_options_by_role(client, login, make_user, make_client, grant):
    manager = await make_user(UserRole.manager)
    writable = await make_client("Writable")
    await grant(manager, writable, AccessLevel.admin)
    await make_client("Hidden")
    await login(manager)

    body = (await client.get("/users/create")).json()

    assert body["roles"] == ["user"]
    assert body["access_levels"] == ["read", "write", "admin"]
    assert body["clients"] == [{"id": writable.id, "name": "Writable"}]


async def test_admin_form_offers_every_role(client, login, make_user):
    await login(await make_user(UserRole.admin))

    body = (await client.get("/users/create")).json()

    assert body["roles"] == ["admin", "manager", "user"]


async def test_listing_includes_grants(client, login, make_user, make_client, grant):
    admin = await make_user(UserRole.admin, name="Alice Admin")
    user = await make_user(UserRole.user, name="Bob User")
    lakeside = await make_client()
    await grant(user, lakeside, AccessLevel.write)
    await login(admin)

    body = (await client.get("/users")).json()

    assert [u["name"] for u in body] == ["Alice Admin", "Bob User"]
    assert body[0]["grants"] == []
    assert body[1]["grants"] == [{"client_id": lakeside.id, "access_level": "write"}]


async def test_listing_loads_grants_in_one_query(client, login, make_user, make_client, grant, engine):
    admin = await make_user(UserRole.admin)
    lakeside = await make_client()
    for _ in range(3):
        await grant(await make_user(UserRole.user), lakeside)
    await login(admin)

    statements = []

    def record(conn, cursor, statement, parameters, context, executemany):
        statements.append(statement)

    event.listen(engine.sync_engine, "before_cursor_execute", record)
    try:
        response = await client.get("/users")
    finally:
        event.remove(engine.sync_engine, "before_cursor_execute", record)

    assert response.status_code == 200
    assert len(response.json()) == 4
    assert len([s for s in statements if "FROM client_user" in s]) == 1


async def test_admin_update_replaces_grants(client, login, make_user, make_client, grant, fresh):
    await login(await make_user(UserRole.admin))
    user = await make_user(UserRole.user)
    a = await make_client("A")
    b = await make_client("B")
    await grant(user, a)

    response = await client.put(
        f"/users/{user.id}",
        json={"role": "manager", "clients": [{"client_id": b.id, "access_level": "write"}]},
    )

    assert response.status_code == 200
    assert response.json()["role"] == "manager"
    assert response.json()["grants"] == [{"client_id": b.id, "access_level": "write"}]

    async def grants(session):
        result = await session.execute(
            select(ClientUser.client_id).where(ClientUser.user_id == user.id)
        )
        return result.scalars().all()

    assert await fresh(grants) == [b.id]


async def test_update_without_clients_keeps_grants(client, login, make_user, make_client, grant):
    await login(await make_user(UserRole.admin))
    user = await make_user(UserRole.user)
    lakeside = await make_client()
    await grant(user, lakeside)

    response = await client.put(f"/users/{user.id}", json={"name": "Renamed"})

    assert response.json()["name"] == "Renamed"
    assert response.json()["grants"] == [{"client_id": lakeside.id, "access_level": "read"}]


async def test_edit_form_shows_current_values(client, login, make_user, make_client, grant):
    await login(await make_user(UserRole.admin))
    user = await make_user(UserRole.user)
    lakeside = await make_client()
    await grant(user, lakeside)

    body = (await client.get(f"/users/{user.id}/edit")).json()

    assert body["user"]["id"] == user.id
    assert body["user"]["grants"] == [{"client_id": lakeside.id, "access_level": "read"}]


async def test_manager_cannot_edit_users(client, login, make_user):
    await login(await make_user(UserRole.manager))
    user = await make_user(UserRole.user)

    response = await client.put(f"/users/{user.id}", json={"role": "admin"})

    assert response.status_code == 303
    assert await _flashes(client) == [{"level": "error", "message": "Required role: admin"}]


async def test_admin_deletes_user_and_grants(client, login, make_user, make_client, grant, fresh):
    await login(await make_user(UserRole.admin))
    user = await make_user(UserRole.user)
    await grant(user, await make_client())

    response = await client.delete(f"/users/{user.id}")

    assert response.status_code == 303
    assert response.headers["location"] == "/users"

    async def leftovers(session):
        return (
            await session.get(User, user.id),
            (await session.execute(select(ClientUser))).scalars().all(),
        )

    assert await fresh(leftovers) == (None, [])


async def test_admin_cannot_delete_self(client, login, make_user):
    admin = await make_user(UserRole.admin)
    await login(admin)

    response = await client.delete(f"/users/{admin.id}")

    assert response.status_code == 422
    assert response.json()["errors"] == {"user": "You cannot delete your own account."}


async def test_unknown_user_is_404(client, login, make_user):
    await login(await make_user(UserRole.admin))

    response = await client.get("/users/missing/edit")

    assert response.status_code == 404
    assert response.json()["resource"] == "User"
