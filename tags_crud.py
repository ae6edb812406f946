"""CRUD operations for tags and reminder/tag associations.

Associations are replaced as a whole: the caller sends the full tag set for
a reminder and the previous links are dropped and re-inserted inside one
transaction. A failure at any step leaves the previous links untouched.
"""

from typing import List, Optional

from sqlalchemy import delete, insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from crud import get_reminder
from database import Tag, reminder_tags
from errors import InvalidInputError, NotFoundError
from logger_config import setup_logger

logger = setup_logger(__name__, 'crud.log')


def create_tag(db: Session, owner_id: int, tag_data: dict) -> Tag:
    tag = Tag(
        usuario_id=owner_id,
        nome=tag_data['nome'],
        cor=tag_data.get('cor') or "#FFFFFF",
        icone=tag_data.get('icone'),
    )
    db.add(tag)
    db.commit()
    db.refresh(tag)
    logger.info(f"Tag {tag.id} created for user {owner_id}")
    return tag


def get_tags_by_user(db: Session, owner_id: int) -> List[Tag]:
    return db.query(Tag).filter(Tag.usuario_id == owner_id).order_by(Tag.id).all()


def get_tag(db: Session, tag_id: int, owner_id: int) -> Tag:
    """Get a tag owned by ``owner_id``; NotFoundError otherwise."""
    tag = db.query(Tag).filter(Tag.id == tag_id, Tag.usuario_id == owner_id).first()
    if tag is None:
        raise NotFoundError("Tag não encontrada")
    return tag


def update_tag(db: Session, tag_id: int, owner_id: int, updates: dict) -> Tag:
    if not updates:
        raise InvalidInputError("Nenhum campo para atualizar")

    tag = get_tag(db, tag_id, owner_id)
    for key, value in updates.items():
        if key in ('nome', 'cor') and value is None:
            raise InvalidInputError.for_field(key, f"O campo '{key}' não pode ser nulo")
        setattr(tag, key, value)

    db.commit()
    db.refresh(tag)
    logger.info(f"Tag {tag_id} updated for user {owner_id}: {sorted(updates)}")
    return tag


def delete_tag(db: Session, tag_id: int, owner_id: int) -> None:
    """Delete a tag; its links to reminders go with it."""
    tag = get_tag(db, tag_id, owner_id)
    db.delete(tag)
    db.commit()
    logger.info(f"Tag {tag_id} deleted for user {owner_id}")


def _dedupe(tag_ids: List[int]) -> List[int]:
    seen = set()
    unique = []
    for tag_id in tag_ids:
        if tag_id not in seen:
            seen.add(tag_id)
            unique.append(tag_id)
    return unique


def replace_reminder_tags(
    db: Session,
    reminder_id: int,
    tag_ids: Optional[List[int]],
    owner_id: int
) -> List[Tag]:
    """Replace the full tag set of a reminder.

    Steps, all in one transaction:
    1. the reminder must belong to ``owner_id`` (NotFoundError)
    2. every tag id must belong to ``owner_id`` (InvalidInputError, no partial links)
    3. delete every existing link of the reminder
    4. insert one link per tag id (duplicates in the input are collapsed)

    Args:
        db: Database session
        reminder_id: Reminder whose tags are replaced
        tag_ids: New tag set; must be a non-empty list
        owner_id: Authenticated user id

    Returns:
        List[Tag]: The reminder's tags after the replacement

    Raises:
        InvalidInputError: Missing/empty list or a tag not owned by the caller
        NotFoundError: Reminder not owned by the caller
        SQLAlchemyError: Database failure; the transaction is rolled back first
    """
    if not tag_ids:
        raise InvalidInputError.for_field("tagIds", "Lista de IDs de tags é obrigatória")

    unique_ids = _dedupe(tag_ids)

    try:
        reminder = get_reminder(db, reminder_id, owner_id)

        owned = {
            row.id for row in db.query(Tag.id).filter(
                Tag.id.in_(unique_ids),
                Tag.usuario_id == owner_id
            ).all()
        }
        missing = [tag_id for tag_id in unique_ids if tag_id not in owned]
        if missing:
            raise InvalidInputError(
                "Uma ou mais tags não encontradas", errors={"campo": "tagIds", "ids": missing}
            )

        db.execute(delete(reminder_tags).where(reminder_tags.c.lembrete_id == reminder_id))
        db.execute(
            insert(reminder_tags),
            [{"lembrete_id": reminder_id, "tag_id": tag_id} for tag_id in unique_ids]
        )
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.error(f"Replacing tags of reminder {reminder_id} failed, rolled back", exc_info=True)
        raise
    except (InvalidInputError, NotFoundError):
        db.rollback()
        raise

    db.expire(reminder, ['tags'])
    logger.info(f"Reminder {reminder_id} tags replaced with {unique_ids} for user {owner_id}")
    return list(reminder.tags)


def list_reminder_tags(db: Session, reminder_id: int, owner_id: int) -> List[Tag]:
    """Tags linked to an owned reminder; an empty list when it has none."""
    reminder = get_reminder(db, reminder_id, owner_id)
    return list(reminder.tags)
