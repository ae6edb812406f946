"""Database module for Lembreto Service.

This module defines SQLAlchemy models and database session management.

Ownership: reminders and tags belong to a user, notifications belong to a
reminder, and reminder_tags links reminders to tags. Every foreign key
cascades on delete, so removing a user removes everything it owns.
"""

import enum

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Enum as SQLEnum,
    ForeignKey,
    Index,
    Integer,
    String,
    Table,
    Text,
    Time,
    create_engine,
    event,
    func,
)
from sqlalchemy.orm import declarative_base, relationship, sessionmaker
from sqlalchemy.pool import StaticPool

from config import settings

# SQLAlchemy Base
Base = declarative_base()


class UserStatusEnum(str, enum.Enum):
    ACTIVE = "Ativo"
    INACTIVE = "Inativo"


class ReminderTypeEnum(str, enum.Enum):
    """Reminder category"""
    BILLS = "Contas a Pagar"
    HEALTH = "Saúde"
    NORMAL = "Normal"


class ReminderStatusEnum(str, enum.Enum):
    """Lifecycle status values for reminders"""
    ACTIVE = "Ativo"
    COMPLETED = "Concluído"
    CANCELLED = "Cancelado"


class FrequencyEnum(str, enum.Enum):
    DAILY = "Diária"
    WEEKLY = "Semanal"
    MONTHLY = "Mensal"
    YEARLY = "Anual"


class WeekdayEnum(str, enum.Enum):
    """Day of week, declared Sunday first like the wire format."""
    SUNDAY = "Domingo"
    MONDAY = "Segunda"
    TUESDAY = "Terça"
    WEDNESDAY = "Quarta"
    THURSDAY = "Quinta"
    FRIDAY = "Sexta"
    SATURDAY = "Sábado"

    @property
    def iso_index(self) -> int:
        """Matches ``datetime.weekday()`` (Monday == 0)."""
        return (list(WeekdayEnum).index(self) - 1) % 7


class MonthEnum(str, enum.Enum):
    JANUARY = "Janeiro"
    FEBRUARY = "Fevereiro"
    MARCH = "Março"
    APRIL = "Abril"
    MAY = "Maio"
    JUNE = "Junho"
    JULY = "Julho"
    AUGUST = "Agosto"
    SEPTEMBER = "Setembro"
    OCTOBER = "Outubro"
    NOVEMBER = "Novembro"
    DECEMBER = "Dezembro"

    @property
    def number(self) -> int:
        """Calendar month number, 1-12."""
        return list(MonthEnum).index(self) + 1


class SendChannelEnum(str, enum.Enum):
    WHATSAPP = "WhatsApp"
    SMS = "SMS"


class SendOutcomeEnum(str, enum.Enum):
    SUCCESS = "Sucesso"
    FAILURE = "Falha"


class User(Base):
    """Registered user. Email, phone and API key are unique."""

    __tablename__ = "usuarios"

    id = Column(Integer, primary_key=True, autoincrement=True)
    nome = Column(String(100), nullable=False)
    email = Column(String(100), nullable=False, unique=True)
    senha = Column(String(255), nullable=False, doc="bcrypt hash, never the raw password")
    telefone = Column(String(20), nullable=False, unique=True, doc="Digits only")
    data_criacao = Column(DateTime, server_default=func.now())
    status = Column(SQLEnum(UserStatusEnum), nullable=False, default=UserStatusEnum.ACTIVE)
    api_key = Column(String(100), unique=True, nullable=True)
    foto_perfil = Column(String(255), nullable=True)
    onboarding_concluido = Column(Boolean, nullable=True)

    reminders = relationship(
        "Reminder", back_populates="usuario", cascade="all, delete-orphan", passive_deletes=True
    )
    tags = relationship(
        "Tag", back_populates="usuario", cascade="all, delete-orphan", passive_deletes=True
    )

    def __repr__(self):
        return f"<User(id={self.id}, email={self.email}, status={self.status})>"


reminder_tags = Table(
    "lembretes_tags",
    Base.metadata,
    Column("lembrete_id", Integer, ForeignKey("lembretes.id", ondelete="CASCADE"), primary_key=True),
    Column("tag_id", Integer, ForeignKey("tags.id", ondelete="CASCADE"), primary_key=True, index=True),
)


class Reminder(Base):
    """Reminder model.

    A reminder is either one-shot (``data_hora``, possibly null for a plain
    to-do) or recurring (``recorrente`` with ``frequencia`` and the fields
    that frequency needs: ``hora`` always, ``dia_semana`` for weekly,
    ``dia`` for monthly, ``dia`` + ``mes`` for yearly).
    """

    __tablename__ = "lembretes"

    id = Column(Integer, primary_key=True, autoincrement=True)
    usuario_id = Column(Integer, ForeignKey("usuarios.id", ondelete="CASCADE"), nullable=False, index=True)

    titulo = Column(String(255), nullable=False)
    descricao = Column(Text, nullable=True)
    tipo = Column(SQLEnum(ReminderTypeEnum), nullable=False)
    status = Column(SQLEnum(ReminderStatusEnum), nullable=False, default=ReminderStatusEnum.ACTIVE)

    # One-shot schedule (wall-clock time in settings.TIMEZONE)
    data_hora = Column(DateTime, nullable=True)

    # Recurring schedule
    recorrente = Column(Boolean, nullable=False, default=False)
    frequencia = Column(SQLEnum(FrequencyEnum), nullable=True)
    dia = Column(Integer, nullable=True, doc="Day of month, 1-31")
    hora = Column(Time, nullable=True)
    dia_semana = Column(SQLEnum(WeekdayEnum), nullable=True)
    mes = Column(SQLEnum(MonthEnum), nullable=True)

    data_criacao = Column(DateTime, server_default=func.now())
    data_atualizacao = Column(DateTime, server_default=func.now(), onupdate=func.now())

    usuario = relationship("User", back_populates="reminders")
    tags = relationship("Tag", secondary=reminder_tags, back_populates="reminders", order_by="Tag.id")
    notifications = relationship(
        "Notification", back_populates="reminder", cascade="all, delete-orphan", passive_deletes=True
    )

    __table_args__ = (
        Index('idx_lembretes_usuario_tipo', 'usuario_id', 'tipo'),
        Index('idx_lembretes_usuario_status', 'usuario_id', 'status'),
    )

    def __repr__(self):
        return (
            f"<Reminder(id={self.id}, user={self.usuario_id}, titulo={self.titulo}, "
            f"recorrente={self.recorrente}, frequencia={self.frequencia})>"
        )


class Tag(Base):
    __tablename__ = "tags"

    id = Column(Integer, primary_key=True, autoincrement=True)
    usuario_id = Column(Integer, ForeignKey("usuarios.id", ondelete="CASCADE"), nullable=False, index=True)
    nome = Column(String(50), nullable=False)
    cor = Column(String(7), nullable=False, default="#FFFFFF")
    icone = Column(String(100), nullable=True)

    usuario = relationship("User", back_populates="tags")
    reminders = relationship("Reminder", secondary=reminder_tags, back_populates="tags")

    def __repr__(self):
        return f"<Tag(id={self.id}, user={self.usuario_id}, nome={self.nome})>"


class Notification(Base):
    """A logged delivery attempt for a reminder."""

    __tablename__ = "notificacoes"

    id = Column(Integer, primary_key=True, autoincrement=True)
    lembrete_id = Column(Integer, ForeignKey("lembretes.id", ondelete="CASCADE"), nullable=False, index=True)
    data_envio = Column(DateTime, nullable=False)
    tipo_envio = Column(SQLEnum(SendChannelEnum), nullable=False)
    status = Column(SQLEnum(SendOutcomeEnum), nullable=False, default=SendOutcomeEnum.SUCCESS)
    mensagem = Column(Text, nullable=True)

    reminder = relationship("Reminder", back_populates="notifications")

    def __repr__(self):
        return f"<Notification(id={self.id}, lembrete={self.lembrete_id}, status={self.status})>"


def _enable_sqlite_foreign_keys(dbapi_connection, connection_record):
    """SQLite ignores ON DELETE CASCADE unless foreign keys are switched on per connection."""
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def create_db_engine(url: str):
    """Create the engine for ``url``.

    In-memory SQLite shares one connection so every session sees the same database.
    """
    kwargs = {"echo": False}
    is_sqlite = url.startswith("sqlite")
    if is_sqlite:
        kwargs["connect_args"] = {"check_same_thread": False}
        if url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
    else:
        kwargs["pool_pre_ping"] = True

    db_engine = create_engine(url, **kwargs)
    if is_sqlite:
        event.listen(db_engine, "connect", _enable_sqlite_foreign_keys)
    return db_engine


# Database Engine Setup
engine = create_db_engine(settings.DATABASE_URL)

# Session Factory
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db():
    """Database session dependency for FastAPI.

    Yields:
        Session: SQLAlchemy database session, closed when the request ends
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


# Create all tables
Base.metadata.create_all(bind=engine)
