"""Field rules for reminders, shared by create and update.

Checks run in a fixed order and stop at the first failure:
required fields, enum membership, per-frequency fields, day-of-month type
and range. ``dia`` reaches this module unparsed so a malformed day never
pre-empts a missing required field.
"""

from database import (
    FrequencyEnum,
    MonthEnum,
    ReminderStatusEnum,
    ReminderTypeEnum,
    WeekdayEnum,
)
from errors import InvalidInputError

REQUIRED_FIELDS = ("titulo", "tipo")

ENUM_FIELDS = {
    "tipo": ReminderTypeEnum,
    "status": ReminderStatusEnum,
    "frequencia": FrequencyEnum,
    "dia_semana": WeekdayEnum,
    "mes": MonthEnum,
}

# Fields a recurring reminder needs for each frequency
FREQUENCY_FIELDS = {
    FrequencyEnum.DAILY: ("hora",),
    FrequencyEnum.WEEKLY: ("dia_semana", "hora"),
    FrequencyEnum.MONTHLY: ("dia", "hora"),
    FrequencyEnum.YEARLY: ("dia", "mes", "hora"),
}

MIN_DAY, MAX_DAY = 1, 31


def _is_blank(value) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _as_day(value):
    """Integer day from an int or a numeric string; None for anything else."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str) and value.strip().lstrip("-").isdigit():
        return int(value)
    return None


def validate_reminder(fields: dict) -> dict:
    """Validate a full set of reminder fields.

    Args:
        fields: Reminder fields; enum fields may be wire values or enum members

    Returns:
        dict: Copy of ``fields`` with enum fields converted to enum members

    Raises:
        InvalidInputError: On the first rule broken, naming the field
    """
    data = dict(fields)

    for name in REQUIRED_FIELDS:
        if _is_blank(data.get(name)):
            raise InvalidInputError.for_field(name, f"O campo '{name}' é obrigatório")

    for name, enum_cls in ENUM_FIELDS.items():
        value = data.get(name)
        if value is None or isinstance(value, enum_cls):
            continue
        try:
            data[name] = enum_cls(value)
        except ValueError:
            allowed = ", ".join(member.value for member in enum_cls)
            raise InvalidInputError.for_field(
                name, f"Valor inválido para '{name}': {value!r}. Permitidos: {allowed}"
            )

    if data.get("recorrente"):
        frequency = data.get("frequencia")
        if frequency is None:
            raise InvalidInputError.for_field(
                "frequencia", "A frequência é obrigatória para lembretes recorrentes"
            )
        for name in FREQUENCY_FIELDS[frequency]:
            if data.get(name) is None:
                raise InvalidInputError.for_field(
                    name, f"O campo '{name}' é obrigatório para a frequência {frequency.value}"
                )

    if data.get("dia") is not None:
        day = _as_day(data["dia"])
        if day is None or not MIN_DAY <= day <= MAX_DAY:
            raise InvalidInputError.for_field("dia", f"O dia deve ser um inteiro entre {MIN_DAY} e {MAX_DAY}")
        data["dia"] = day

    return data
