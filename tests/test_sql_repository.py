"""
Smoke tests for the SQLRepository against a temporary SQLite database.
"""
from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy.exc import IntegrityError

from socialapp.db import models
from socialapp.db.session import get_session
from socialapp.repositories.sql_repository import SQLRepository


def test_create_account_adds_privacy_defaults_and_user_role(make_user):
    repo = SQLRepository()
    user = make_user(email="alice@example.com")

    privacy = repo.get_privacy_setting(user.id)
    assert privacy.profile_privacy == "friends"
    assert privacy.who_can_add == "everyone"
    assert repo.get_user_roles(user.id) == ["user"]
    assert repo.get_user_by_email("ALICE@example.com").id == user.id
    assert repo.email_taken("alice@example.com")
    assert not repo.email_taken("alice@example.com", exclude_user_id=user.id)


def test_attach_role_is_idempotent(make_user):
    repo = SQLRepository()
    user = make_user()
    assert repo.attach_role(user.id, "admin") is True
    assert repo.attach_role(user.id, "admin") is False
    assert repo.get_user_roles(user.id) == ["admin", "user"]


def test_replace_current_avatar_flips_previous_flag(make_user):
    repo = SQLRepository()
    user = make_user()
    first = repo.replace_current_avatar(user.id, f"{user.id}/1.png")
    second = repo.replace_current_avatar(user.id, f"{user.id}/2.jpg")

    avatars = repo.list_avatars(user.id)
    assert [a.id for a in avatars] == [first.id, second.id]
    assert [a.is_current_avatar for a in avatars] == [False, True]
    assert repo.get_current_avatar(user.id).path == f"{user.id}/2.jpg"


def test_partial_index_rejects_second_current_row(make_user):
    user = make_user()
    with get_session() as session:
        session.add(models.UserAvatar(user_id=user.id, path="a.png", is_current_avatar=True))
        session.add(models.UserAvatar(user_id=user.id, path="b.png", is_current_avatar=False))
        session.commit()
        session.add(models.UserAvatar(user_id=user.id, path="c.png", is_current_avatar=True))
        with pytest.raises(IntegrityError):
            session.commit()


def test_search_matches_prefix_with_current_avatar(make_user):
    repo = SQLRepository()
    ana = make_user(firstname="Ana")
    make_user(firstname="Anabel")
    make_user(firstname="Bruno")
    make_user(firstname="A_x")
    repo.replace_current_avatar(ana.id, f"{ana.id}/old.png")
    repo.replace_current_avatar(ana.id, f"{ana.id}/new.png")

    found = repo.search_users("Ana")
    assert [u["firstname"] for u in found] == ["Ana", "Anabel"]
    assert found[0]["path"] == f"{ana.id}/new.png"
    assert found[1]["path"] is None
    # LIKE wildcards are matched literally
    assert [u["firstname"] for u in repo.search_users("A_")] == ["A_x"]


def test_delete_user_cascades(make_user):
    repo = SQLRepository()
    user = make_user()
    repo.replace_current_avatar(user.id, f"{user.id}/1.png")
    token = repo.create_session(user.id, datetime.now(timezone.utc) + timedelta(hours=1))

    assert repo.delete_user(user.id) is True
    assert repo.get_user(user.id) is None
    assert repo.list_avatars(user.id) == []
    assert repo.get_privacy_setting(user.id) is None
    assert repo.get_session(token) is None
    assert repo.delete_user(user.id) is False


def test_pagination_helpers(make_user):
    repo = SQLRepository()
    ids = [make_user().id for _ in range(5)]
    assert repo.count_users() == 5
    assert [u.id for u in repo.list_users(offset=2, limit=2)] == ids[2:4]


def test_permissions_and_post_dislikes_tables(make_user):
    from sqlalchemy import inspect

    from socialapp.db.session import get_engine

    tables = set(inspect(get_engine()).get_table_names())
    assert {"permissions", "post_dislikes"} <= tables

    user = make_user()
    with get_session() as session:
        session.add(models.PostDislike(post_id=7, user_id=user.id))
        session.add(models.Permission(slug="posts.delete"))
        session.commit()
        session.add(models.Permission(slug="posts.delete"))
        with pytest.raises(IntegrityError):
            session.commit()

    SQLRepository().delete_user(user.id)
    with get_session() as session:
        assert session.query(models.PostDislike).count() == 0
