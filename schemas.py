"""Pydantic schemas for Lembreto Service.

This module defines request and response schemas for API validation.
Pydantic parses ISO datetime strings to datetime objects; aware datetimes
are converted to naive wall-clock time in settings.TIMEZONE, which is how
every datetime is stored.

Reminder request schemas keep enum fields as plain strings and accept ``dia``
as int or string: membership, day type and range, and the recurrence
cross-field rules are checked by validation.validate_reminder so create and
update report errors in the same order.
"""

from datetime import datetime, time
from typing import List, Optional, Union
from zoneinfo import ZoneInfo

from pydantic import BaseModel, Field, field_validator, model_validator

from config import settings
from database import (
    FrequencyEnum,
    MonthEnum,
    ReminderStatusEnum,
    ReminderTypeEnum,
    SendChannelEnum,
    SendOutcomeEnum,
    UserStatusEnum,
    WeekdayEnum,
)

EMAIL_PATTERN = r'^[^@\s]+@[^@\s]+\.[^@\s]+$'
HEX_COLOR_PATTERN = r'^#[0-9A-Fa-f]{6}$'


def to_local_naive(value: Optional[datetime]) -> Optional[datetime]:
    """Aware datetimes become naive wall-clock time in settings.TIMEZONE."""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(ZoneInfo(settings.TIMEZONE)).replace(tzinfo=None)


# ---------------------------------------------------------------- users

class UserRegister(BaseModel):
    nome: str = Field(..., min_length=1, max_length=100)
    email: str = Field(..., pattern=EMAIL_PATTERN, max_length=100)
    senha: str = Field(..., min_length=1)
    telefone: str = Field(..., min_length=1, max_length=30, examples=["(63) 98419-3411"])


class UserLogin(BaseModel):
    """Login by phone or by email."""

    telefone: Optional[str] = None
    email: Optional[str] = None
    senha: str = Field(..., min_length=1)

    @model_validator(mode="after")
    def require_identifier(self):
        if not self.telefone and not self.email:
            raise ValueError("Telefone ou email é obrigatório")
        return self


class UserUpdate(BaseModel):
    """All fields optional - only provided fields are updated."""

    nome: Optional[str] = Field(None, min_length=1, max_length=100)
    email: Optional[str] = Field(None, pattern=EMAIL_PATTERN, max_length=100)
    senha: Optional[str] = Field(None, min_length=1)
    telefone: Optional[str] = Field(None, min_length=1, max_length=30)
    foto_perfil: Optional[str] = Field(None, max_length=255)
    onboarding_concluido: Optional[bool] = None


class UserResponse(BaseModel):
    id: int
    nome: str
    email: str
    telefone: str
    data_criacao: Optional[datetime] = None
    status: UserStatusEnum
    api_key: Optional[str] = None
    foto_perfil: Optional[str] = None
    onboarding_concluido: Optional[bool] = None

    class Config:
        from_attributes = True


# ---------------------------------------------------------------- tags

class TagCreate(BaseModel):
    nome: str = Field(..., min_length=1, max_length=50)
    cor: str = Field("#FFFFFF", pattern=HEX_COLOR_PATTERN, description="Hex color")
    icone: Optional[str] = Field(None, max_length=100, description="Icon token, e.g. an emoji")


class TagUpdate(BaseModel):
    nome: Optional[str] = Field(None, min_length=1, max_length=50)
    cor: Optional[str] = Field(None, pattern=HEX_COLOR_PATTERN)
    icone: Optional[str] = Field(None, max_length=100)


class TagResponse(BaseModel):
    id: int
    nome: str
    cor: str
    icone: Optional[str] = None

    class Config:
        from_attributes = True


class TagAssociation(BaseModel):
    """Replacement tag set for a reminder."""

    tagIds: Optional[List[int]] = Field(None, description="Tag ids that replace the current set")


# ---------------------------------------------------------------- reminders

class ReminderCreate(BaseModel):
    """Schema for creating a reminder.

    Example of a monthly reminder:
    ```json
    {"titulo": "Pagar aluguel", "tipo": "Contas a Pagar",
     "recorrente": true, "frequencia": "Mensal", "dia": 5, "hora": "10:00"}
    ```
    """

    titulo: Optional[str] = Field(None, max_length=255, description="Reminder title (required)")
    descricao: Optional[str] = None
    tipo: Optional[str] = Field(None, description="Contas a Pagar | Saúde | Normal (required)")
    status: Optional[str] = Field(None, description="Ativo | Concluído | Cancelado")
    data_hora: Optional[datetime] = Field(None, description="One-shot schedule (ISO 8601)")
    recorrente: bool = False
    frequencia: Optional[str] = Field(None, description="Diária | Semanal | Mensal | Anual")
    dia: Optional[Union[int, str]] = Field(None, description="Day of month for monthly/yearly, 1-31")
    hora: Optional[time] = Field(None, description="Time of day for recurring reminders")
    dia_semana: Optional[str] = Field(None, description="Domingo ... Sábado, for weekly")
    mes: Optional[str] = Field(None, description="Janeiro ... Dezembro, for yearly")

    @field_validator("data_hora")
    @classmethod
    def localize_data_hora(cls, value):
        return to_local_naive(value)


class ReminderUpdate(BaseModel):
    """Schema for updating a reminder. Only provided fields are updated."""

    titulo: Optional[str] = Field(None, max_length=255)
    descricao: Optional[str] = None
    tipo: Optional[str] = None
    status: Optional[str] = None
    data_hora: Optional[datetime] = None
    recorrente: Optional[bool] = None
    frequencia: Optional[str] = None
    dia: Optional[Union[int, str]] = None
    hora: Optional[time] = None
    dia_semana: Optional[str] = None
    mes: Optional[str] = None

    @field_validator("data_hora")
    @classmethod
    def localize_data_hora(cls, value):
        return to_local_naive(value)


class ReminderResponse(BaseModel):
    id: int
    usuario_id: int
    titulo: str
    descricao: Optional[str] = None
    tipo: ReminderTypeEnum
    status: ReminderStatusEnum
    data_hora: Optional[datetime] = None
    recorrente: bool
    frequencia: Optional[FrequencyEnum] = None
    dia: Optional[int] = None
    hora: Optional[time] = None
    dia_semana: Optional[WeekdayEnum] = None
    mes: Optional[MonthEnum] = None
    data_criacao: Optional[datetime] = None
    data_atualizacao: Optional[datetime] = None
    tags: List[TagResponse] = []
    proxima_ocorrencia: Optional[datetime] = Field(
        None, description="Derived on read, never stored"
    )

    class Config:
        from_attributes = True


# ---------------------------------------------------------------- notifications

class NotificationCreate(BaseModel):
    lembrete_id: int
    tipo_envio: SendChannelEnum
    data_envio: datetime
    status: SendOutcomeEnum = SendOutcomeEnum.SUCCESS
    mensagem: Optional[str] = None

    @field_validator("data_envio")
    @classmethod
    def localize_data_envio(cls, value):
        return to_local_naive(value)


class NotificationUpdate(BaseModel):
    tipo_envio: Optional[SendChannelEnum] = None
    data_envio: Optional[datetime] = None
    status: Optional[SendOutcomeEnum] = None
    mensagem: Optional[str] = None

    @field_validator("data_envio")
    @classmethod
    def localize_data_envio(cls, value):
        return to_local_naive(value)


class NotificationResponse(BaseModel):
    id: int
    lembrete_id: int
    tipo_envio: SendChannelEnum
    data_envio: datetime
    status: SendOutcomeEnum
    mensagem: Optional[str] = None

    class Config:
        from_attributes = True


# ---------------------------------------------------------------- WhatsApp

class WhatsAppMessage(BaseModel):
    telefone: str = Field(..., min_length=1)
    mensagem: str = Field(..., min_length=1)
    delay: Optional[int] = Field(None, ge=0, description="Typing delay in milliseconds")
    lembrete_id: Optional[int] = Field(
        None, description="When set, the attempt is logged as a notification of this reminder"
    )


class NumberVerification(BaseModel):
    numeros: List[str] = Field(..., min_length=1)


class ContactRequest(BaseModel):
    api_key: str = Field(..., min_length=1)
