"""Tests for tags and the replace-all reminder/tag association."""

from datetime import datetime

import pytest
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.sql.expression import Insert

import crud
import notifications_crud
import tags_crud
from database import Notification, Reminder, SendChannelEnum, Tag, User, reminder_tags
from errors import InvalidInputError, NotFoundError


@pytest.fixture
def owner(make_user):
    return make_user()


@pytest.fixture
def reminder(db, owner):
    return crud.create_reminder(db, owner.id, {"titulo": "Pagar luz", "tipo": "Contas a Pagar"})


@pytest.fixture
def tag_ids(db, owner):
    return [
        tags_crud.create_tag(db, owner.id, {"nome": name}).id
        for name in ("casa", "urgente", "mensal")
    ]


def linked_ids(db, reminder_id):
    rows = db.execute(
        reminder_tags.select().where(reminder_tags.c.lembrete_id == reminder_id)
    ).all()
    return {row.tag_id for row in rows}


class TestTagCrud:
    def test_default_color(self, db, owner):
        tag = tags_crud.create_tag(db, owner.id, {"nome": "casa", "icone": "🏠"})
        assert tag.cor == "#FFFFFF"
        assert tag.icone == "🏠"

    def test_update_and_scope(self, db, make_user, owner):
        other = make_user()
        tag = tags_crud.create_tag(db, owner.id, {"nome": "casa"})

        updated = tags_crud.update_tag(db, tag.id, owner.id, {"cor": "#FF0000"})
        assert updated.cor == "#FF0000"

        with pytest.raises(NotFoundError):
            tags_crud.update_tag(db, tag.id, other.id, {"nome": "x"})
        assert tags_crud.get_tags_by_user(db, other.id) == []

    def test_delete_removes_links(self, db, owner, reminder, tag_ids):
        tags_crud.replace_reminder_tags(db, reminder.id, tag_ids, owner.id)
        tags_crud.delete_tag(db, tag_ids[0], owner.id)
        assert linked_ids(db, reminder.id) == set(tag_ids[1:])


class TestReplaceReminderTags:
    def test_replace_is_not_additive(self, db, owner, reminder, tag_ids):
        a, b, c = tag_ids
        tags_crud.replace_reminder_tags(db, reminder.id, [a, b], owner.id)
        result = tags_crud.replace_reminder_tags(db, reminder.id, [b, c], owner.id)

        assert {t.id for t in result} == {b, c}
        assert linked_ids(db, reminder.id) == {b, c}

    def test_duplicates_are_collapsed(self, db, owner, reminder, tag_ids):
        a = tag_ids[0]
        result = tags_crud.replace_reminder_tags(db, reminder.id, [a, a, a], owner.id)
        assert [t.id for t in result] == [a]

    def test_foreign_tag_rejects_whole_call(self, db, make_user, owner, reminder, tag_ids):
        a, b, c = tag_ids
        stranger = make_user()
        foreign = tags_crud.create_tag(db, stranger.id, {"nome": "alheia"})
        tags_crud.replace_reminder_tags(db, reminder.id, [a, b], owner.id)

        with pytest.raises(InvalidInputError) as exc:
            tags_crud.replace_reminder_tags(db, reminder.id, [c, foreign.id], owner.id)

        assert exc.value.errors["ids"] == [foreign.id]
        assert linked_ids(db, reminder.id) == {a, b}

    def test_nonexistent_tag_rejects_whole_call(self, db, owner, reminder, tag_ids):
        tags_crud.replace_reminder_tags(db, reminder.id, tag_ids[:1], owner.id)
        with pytest.raises(InvalidInputError):
            tags_crud.replace_reminder_tags(db, reminder.id, [tag_ids[1], 9999], owner.id)
        assert linked_ids(db, reminder.id) == {tag_ids[0]}

    def test_reminder_of_other_user_is_not_found(self, db, make_user, reminder, tag_ids):
        stranger = make_user()
        with pytest.raises(NotFoundError):
            tags_crud.replace_reminder_tags(db, reminder.id, tag_ids, stranger.id)

    @pytest.mark.parametrize("value", [None, []])
    def test_empty_list_rejected(self, db, owner, reminder, value):
        with pytest.raises(InvalidInputError):
            tags_crud.replace_reminder_tags(db, reminder.id, value, owner.id)

    def test_failure_after_delete_rolls_back(self, db, monkeypatch, owner, reminder, tag_ids):
        a, b, c = tag_ids
        tags_crud.replace_reminder_tags(db, reminder.id, [a, b], owner.id)

        real_execute = db.execute

        def execute_failing_on_insert(statement, *args, **kwargs):
            if isinstance(statement, Insert):
                raise SQLAlchemyError("disk I/O error")
            return real_execute(statement, *args, **kwargs)

        monkeypatch.setattr(db, "execute", execute_failing_on_insert)
        with pytest.raises(SQLAlchemyError):
            tags_crud.replace_reminder_tags(db, reminder.id, [c], owner.id)
        monkeypatch.undo()

        assert linked_ids(db, reminder.id) == {a, b}

    def test_list_reminder_tags(self, db, make_user, owner, reminder, tag_ids):
        assert tags_crud.list_reminder_tags(db, reminder.id, owner.id) == []
        tags_crud.replace_reminder_tags(db, reminder.id, tag_ids[:2], owner.id)
        assert [t.id for t in tags_crud.list_reminder_tags(db, reminder.id, owner.id)] == tag_ids[:2]

        with pytest.raises(NotFoundError):
            tags_crud.list_reminder_tags(db, reminder.id, make_user().id)


def test_deleting_user_cascades(db, owner, reminder, tag_ids):
    tags_crud.replace_reminder_tags(db, reminder.id, tag_ids, owner.id)
    notifications_crud.create_notification(db, owner.id, {
        "lembrete_id": reminder.id,
        "tipo_envio": SendChannelEnum.SMS,
        "data_envio": datetime(2026, 10, 1, 9, 0),
    })

    db.delete(db.get(User, owner.id))
    db.commit()

    assert db.query(Reminder).count() == 0
    assert db.query(Tag).count() == 0
    assert db.query(Notification).count() == 0
    assert db.execute(reminder_tags.select()).all() == []
