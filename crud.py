"""CRUD operations for reminders.

Every read, update and delete filters by ``(id, owner)``. A miss - wrong
owner or nonexistent id - raises NotFoundError, never a permission error,
so the existence of other users' rows is not revealed.
"""

from typing import Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session, selectinload

from database import (
    FrequencyEnum,
    Reminder,
    ReminderStatusEnum,
    ReminderTypeEnum,
)
from errors import InvalidInputError, NotFoundError
from logger_config import setup_logger
from validation import validate_reminder

logger = setup_logger(__name__, 'crud.log')

REMINDER_FIELDS = (
    "titulo", "descricao", "tipo", "status", "data_hora", "recorrente",
    "frequencia", "dia", "hora", "dia_semana", "mes",
)


def _parse_filter(enum_cls, value: Optional[str], name: str):
    if value is None:
        return None
    try:
        return enum_cls(value)
    except ValueError:
        raise InvalidInputError.for_field(name, f"Valor inválido para filtro '{name}': {value!r}")


def create_reminder(db: Session, owner_id: int, reminder_data: dict) -> Reminder:
    """Validate and persist a new reminder.

    Args:
        db: Database session
        owner_id: Authenticated user id
        reminder_data: Reminder fields as received (see schemas.ReminderCreate)

    Returns:
        Reminder: Created reminder

    Raises:
        InvalidInputError: When a field rule fails; nothing is persisted
    """
    data = validate_reminder(reminder_data)

    values = {name: data.get(name) for name in REMINDER_FIELDS}
    values["recorrente"] = bool(values["recorrente"])
    if values["status"] is None:
        values["status"] = ReminderStatusEnum.ACTIVE

    db_reminder = Reminder(usuario_id=owner_id, **values)
    db.add(db_reminder)
    db.commit()
    db.refresh(db_reminder)
    logger.info(f"Reminder {db_reminder.id} created for user {owner_id} (recorrente={db_reminder.recorrente})")
    return db_reminder


def get_reminder(db: Session, reminder_id: int, owner_id: int) -> Reminder:
    """Get a reminder owned by ``owner_id``.

    Raises:
        NotFoundError: No such reminder for this owner
    """
    reminder = db.query(Reminder).filter(
        Reminder.id == reminder_id,
        Reminder.usuario_id == owner_id
    ).first()
    if reminder is None:
        raise NotFoundError("Lembrete não encontrado")
    return reminder


def get_reminders_by_user(
    db: Session,
    owner_id: int,
    tipo: Optional[str] = None,
    status: Optional[str] = None,
    recorrente: Optional[bool] = None,
    frequencia: Optional[str] = None,
) -> List[Reminder]:
    """List the owner's reminders, optionally filtered.

    Filters take wire values ("Contas a Pagar", "Mensal", ...); an unknown
    value is an InvalidInputError.
    """
    query = db.query(Reminder).options(selectinload(Reminder.tags)).filter(
        Reminder.usuario_id == owner_id
    )

    tipo_enum = _parse_filter(ReminderTypeEnum, tipo, "tipo")
    if tipo_enum is not None:
        query = query.filter(Reminder.tipo == tipo_enum)

    status_enum = _parse_filter(ReminderStatusEnum, status, "status")
    if status_enum is not None:
        query = query.filter(Reminder.status == status_enum)

    if recorrente is not None:
        query = query.filter(Reminder.recorrente == recorrente)

    frequency_enum = _parse_filter(FrequencyEnum, frequencia, "frequencia")
    if frequency_enum is not None:
        query = query.filter(Reminder.frequencia == frequency_enum)

    return query.order_by(Reminder.id).all()


def count_reminders(db: Session, owner_id: int) -> Dict:
    """Group-by counts over all of the owner's reminders.

    Returns:
        dict: ``total`` plus ``por_tipo``, ``por_status`` and ``por_frequencia``
        keyed by wire value (non-recurring reminders count under "Nenhuma")
    """
    def grouped(column, none_label=None):
        rows = db.query(column, func.count(Reminder.id)).filter(
            Reminder.usuario_id == owner_id
        ).group_by(column).all()
        counts = {}
        for key, count in rows:
            label = key.value if key is not None else none_label
            counts[label] = count
        return counts

    by_type = grouped(Reminder.tipo)
    return {
        "total": sum(by_type.values()),
        "por_tipo": by_type,
        "por_status": grouped(Reminder.status),
        "por_frequencia": grouped(Reminder.frequencia, none_label="Nenhuma"),
    }


def update_reminder(db: Session, reminder_id: int, owner_id: int, updates: dict) -> Reminder:
    """Apply a partial update.

    ``updates`` holds only the fields the caller sent. They are merged over
    the stored row and the merged result is validated exactly like a create.

    Raises:
        InvalidInputError: Empty update or a broken field rule
        NotFoundError: No such reminder for this owner
    """
    if not updates:
        raise InvalidInputError("Nenhum campo para atualizar")

    reminder = get_reminder(db, reminder_id, owner_id)

    merged = {name: getattr(reminder, name) for name in REMINDER_FIELDS}
    merged.update(updates)
    data = validate_reminder(merged)

    for key in updates:
        setattr(reminder, key, data[key])
    if reminder.recorrente is None:
        reminder.recorrente = False

    db.commit()
    db.refresh(reminder)
    logger.info(f"Reminder {reminder_id} updated for user {owner_id}: {sorted(updates)}")
    return reminder


def delete_reminder(db: Session, reminder_id: int, owner_id: int) -> None:
    """Delete a reminder together with its tag links and notifications.

    Raises:
        NotFoundError: No such reminder for this owner
    """
    reminder = get_reminder(db, reminder_id, owner_id)
    db.delete(reminder)
    db.commit()
    logger.info(f"Reminder {reminder_id} deleted for user {owner_id}")
