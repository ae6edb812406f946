"""CRUD operations for notifications (logged delivery attempts).

Notifications are owned through their reminder. Logging a successful
attempt completes the reminder in the same transaction as the insert.
"""

from typing import List, Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from crud import get_reminder
from database import (
    Notification,
    Reminder,
    ReminderStatusEnum,
    SendOutcomeEnum,
)
from errors import InvalidInputError, NotFoundError
from logger_config import setup_logger

logger = setup_logger(__name__, 'crud.log')


def create_notification(db: Session, owner_id: int, notification_data: dict) -> Notification:
    """Log a delivery attempt for an owned reminder.

    When ``status`` is Sucesso the parent reminder is set to Concluído before
    the single commit, so both writes land or neither does.

    Raises:
        NotFoundError: Reminder not owned by the caller
    """
    reminder = get_reminder(db, notification_data['lembrete_id'], owner_id)

    notification = Notification(
        lembrete_id=reminder.id,
        tipo_envio=notification_data['tipo_envio'],
        data_envio=notification_data['data_envio'],
        status=notification_data.get('status') or SendOutcomeEnum.SUCCESS,
        mensagem=notification_data.get('mensagem'),
    )

    try:
        db.add(notification)
        if notification.status == SendOutcomeEnum.SUCCESS:
            reminder.status = ReminderStatusEnum.COMPLETED
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.error(f"Logging notification for reminder {reminder.id} failed, rolled back", exc_info=True)
        raise

    db.refresh(notification)
    logger.info(
        f"Notification {notification.id} logged for reminder {notification.lembrete_id} "
        f"({notification.tipo_envio.value}, {notification.status.value})"
    )
    return notification


def _owned_query(db: Session, owner_id: int):
    return db.query(Notification).join(Reminder, Notification.lembrete_id == Reminder.id).filter(
        Reminder.usuario_id == owner_id
    )


def get_notifications_by_user(db: Session, owner_id: int, reminder_id: Optional[int] = None) -> List[Notification]:
    query = _owned_query(db, owner_id)
    if reminder_id is not None:
        query = query.filter(Notification.lembrete_id == reminder_id)
    return query.order_by(Notification.data_envio.desc(), Notification.id.desc()).all()


def get_notifications_by_reminder(db: Session, reminder_id: int, owner_id: int) -> List[Notification]:
    """Notifications of one reminder; NotFoundError when the reminder is not owned."""
    get_reminder(db, reminder_id, owner_id)
    return get_notifications_by_user(db, owner_id, reminder_id)


def get_notification(db: Session, notification_id: int, owner_id: int) -> Notification:
    notification = _owned_query(db, owner_id).filter(Notification.id == notification_id).first()
    if notification is None:
        raise NotFoundError("Notificação não encontrada")
    return notification


def update_notification(db: Session, notification_id: int, owner_id: int, updates: dict) -> Notification:
    """Partial update. Changing the outcome here does not touch the reminder."""
    if not updates:
        raise InvalidInputError("Nenhum campo para atualizar")

    notification = get_notification(db, notification_id, owner_id)
    for key, value in updates.items():
        if key != 'mensagem' and value is None:
            raise InvalidInputError.for_field(key, f"O campo '{key}' não pode ser nulo")
        setattr(notification, key, value)

    db.commit()
    db.refresh(notification)
    logger.info(f"Notification {notification_id} updated for user {owner_id}: {sorted(updates)}")
    return notification


def delete_notification(db: Session, notification_id: int, owner_id: int) -> None:
    notification = get_notification(db, notification_id, owner_id)
    db.delete(notification)
    db.commit()
    logger.info(f"Notification {notification_id} deleted for user {owner_id}")
