"""Tests for the client_user grant store."""

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError

from app.models import AccessLevel, ClientUser, UserRole
from app.services.access_grants import AccessGrantStore


async def _grant_rows(db, user_id):
    result = await db.execute(
        select(func.count()).select_from(ClientUser).where(ClientUser.user_id == user_id)
    )
    return result.scalar_one()


async def test_new_grant_is_immediately_visible(db, make_user, make_client):
    user = await make_user(UserRole.user)
    client = await make_client()
    store = AccessGrantStore(db)

    await store.grant(user.id, client.id, AccessLevel.write)

    assert await store.has_access(user.id, client.id) is True
    assert await store.access_level(user.id, client.id) is AccessLevel.write


async def test_has_access_false_without_grant(db, make_user, make_client):
    user = await make_user()
    client = await make_client()

    assert await AccessGrantStore(db).has_access(user.id, client.id) is False
    assert await AccessGrantStore(db).access_level(user.id, client.id) is None


async def test_grant_is_an_upsert(db, make_user, make_client):
    user = await make_user()
    client = await make_client()
    store = AccessGrantStore(db)

    await store.grant(user.id, client.id, AccessLevel.read)
    await store.grant(user.id, client.id, AccessLevel.read)
    await store.grant(user.id, client.id, AccessLevel.admin)
    await db.commit()

    assert await _grant_rows(db, user.id) == 1
    assert await store.access_level(user.id, client.id) is AccessLevel.admin


async def test_grants_for_returns_client_level_pairs(db, make_user, make_client):
    user = await make_user(UserRole.manager)
    a = await make_client("A")
    b = await make_client("B")
    store = AccessGrantStore(db)
    await store.grant(user.id, a.id, AccessLevel.write)
    await store.grant(user.id, b.id, AccessLevel.read)

    assert await store.grants_for(user.id) == {
        (a.id, AccessLevel.write),
        (b.id, AccessLevel.read),
    }
    assert sorted(await store.client_ids_for(user.id)) == sorted([a.id, b.id])


async def test_revoke(db, make_user, make_client):
    user = await make_user()
    client = await make_client()
    store = AccessGrantStore(db)
    await store.grant(user.id, client.id)

    assert await store.revoke(user.id, client.id) is True
    assert await store.revoke(user.id, client.id) is False
    assert await store.has_access(user.id, client.id) is False


async def test_sync_replaces_the_whole_grant_set(db, make_user, make_client):
    user = await make_user()
    a = await make_client("A")
    b = await make_client("B")
    c = await make_client("C")
    store = AccessGrantStore(db)
    await store.grant(user.id, a.id, AccessLevel.read)
    await store.grant(user.id, b.id, AccessLevel.read)

    await store.sync(user.id, {b.id: AccessLevel.write, c.id: AccessLevel.read})
    await db.commit()

    assert await store.grants_for(user.id) == {
        (b.id, AccessLevel.write),
        (c.id, AccessLevel.read),
    }


async def test_sync_with_nothing_removes_every_grant(db, make_user, make_client):
    user = await make_user()
    store = AccessGrantStore(db)
    await store.grant(user.id, (await make_client()).id)

    await store.sync(user.id, {})

    assert await store.grants_for(user.id) == set()


async def test_table_rejects_duplicate_pairs(db, make_user, make_client):
    user = await make_user()
    client = await make_client()
    db.add(ClientUser(user_id=user.id, client_id=client.id, access_level="read"))
    await db.commit()

    db.add(ClientUser(user_id=user.id, client_id=client.id, access_level="write"))
    with pytest.raises(IntegrityError):
        await db.commit()
    await db.rollback()


async def test_grants_cascade_with_client_delete(db, make_user, make_client, grant):
    user = await make_user()
    client = await make_client()
    await grant(user, client)

    await db.delete(client)
    await db.commit()

    assert await _grant_rows(db, user.id) == 0


async def test_grants_cascade_with_user_delete(db, make_user, make_client, grant):
    user = await make_user()
    client = await make_client()
    await grant(user, client)
    user_id = user.id

    await db.delete(user)
    await db.commit()

    assert await _grant_rows(db, user_id) == 0


async def test_grants_by_user_groups_rows_per_user(db, make_user, make_client):
    alice = await make_user()
    bob = await make_user()
    carol = await make_user()
    a = await make_client("A")
    b = await make_client("B")
    store = AccessGrantStore(db)
    await store.grant(alice.id, a.id, AccessLevel.admin)
    await store.grant(alice.id, b.id, AccessLevel.read)
    await store.grant(bob.id, b.id, AccessLevel.write)
    await store.grant(carol.id, a.id)

    grouped = await store.grants_by_user([alice.id, bob.id])

    assert grouped == {
        alice.id: sorted([(a.id, AccessLevel.admin), (b.id, AccessLevel.read)]),
        bob.id: [(b.id, AccessLevel.write)],
    }
    assert await store.grants_by_user([]) == {}
