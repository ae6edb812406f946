"""FastAPI REST API server for Lembreto Service.

This module provides HTTP endpoints for users, reminders, tags,
notifications and WhatsApp messaging. Every response uses the envelope
built in api_response; domain errors raised anywhere below are turned into
that envelope by the exception handlers registered here.
"""

import asyncio
from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, FastAPI, Query, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from starlette.exceptions import HTTPException as StarletteHTTPException

import crud
import database
import notifications_crud
import schemas
import tags_crud
import users_crud
from api_response import (
    MSG_CREATED,
    MSG_INTERNAL_ERROR,
    MSG_VALIDATION_ERROR,
    error_response,
    success_response,
)
from auth import get_current_user
from config import settings
from database import SendChannelEnum, SendOutcomeEnum, User
from errors import AppError, GatewayError, InvalidInputError, NotFoundError
from logger_config import setup_logger
from recurrence import local_now, next_occurrence
from whatsapp_client import WhatsAppGateway, get_whatsapp_gateway, normalize_phone

logger = setup_logger(__name__, 'api.log')

# Create FastAPI application
app = FastAPI(
    title="Lembreto API",
    description="Personal reminders with tags, recurrence and WhatsApp notifications",
    version="1.0.0",
    docs_url="/api-docs",
    redoc_url="/redoc"
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "X-XSS-Protection": "1; mode=block",
}


@app.middleware("http")
async def request_timeout_and_headers(request: Request, call_next):
    """Answer 504 when a request outlives REQUEST_TIMEOUT_SECONDS; add security headers."""
    try:
        response = await asyncio.wait_for(call_next(request), timeout=settings.REQUEST_TIMEOUT_SECONDS)
    except asyncio.TimeoutError:
        logger.error(f"Request timed out: {request.method} {request.url.path}")
        response = JSONResponse(
            status_code=504,
            content=error_response(504, "Tempo limite da requisição excedido"),
        )
    for header, value in SECURITY_HEADERS.items():
        response.headers[header] = value
    return response


# ---------------------------------------------------------------- error handlers

@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    logger.warning(f"{request.method} {request.url.path} -> {exc.status_code} {exc.message}")
    return JSONResponse(
        status_code=exc.status_code,
        content=error_response(exc.status_code, exc.message, exc.errors),
    )


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = []
    for error in exc.errors():
        loc = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
        errors.append({"campo": ".".join(loc) or None, "message": error.get("msg")})
    logger.warning(f"{request.method} {request.url.path} -> 400 {errors}")
    return JSONResponse(status_code=400, content=error_response(400, MSG_VALIDATION_ERROR, errors))


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    message = "Rota não encontrada" if exc.status_code == 404 else str(exc.detail)
    return JSONResponse(status_code=exc.status_code, content=error_response(exc.status_code, message))


@app.exception_handler(IntegrityError)
async def integrity_error_handler(request: Request, exc: IntegrityError):
    logger.warning(f"{request.method} {request.url.path} -> 409 {exc.orig}")
    return JSONResponse(status_code=409, content=error_response(409, "Registro duplicado"))


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.error(f"Unhandled error on {request.method} {request.url.path}: {str(exc)}", exc_info=exc)
    detail = str(exc) if settings.is_development else None
    return JSONResponse(status_code=500, content=error_response(500, MSG_INTERNAL_ERROR, detail))


# ---------------------------------------------------------------- serialization

def _reminder_out(reminder, now: Optional[datetime] = None) -> dict:
    out = schemas.ReminderResponse.model_validate(reminder)
    out.proxima_ocorrencia = next_occurrence(reminder, now)
    return out.model_dump(mode="json")


def _tag_out(tag) -> dict:
    return schemas.TagResponse.model_validate(tag).model_dump(mode="json")


def _notification_out(notification) -> dict:
    return schemas.NotificationResponse.model_validate(notification).model_dump(mode="json")


def _user_out(user) -> dict:
    return schemas.UserResponse.model_validate(user).model_dump(mode="json")


# ---------------------------------------------------------------- service

@app.get("/")
def root():
    """Root endpoint - service information"""
    return success_response(200, "Bem-vindo à API Lembreto", {
        "docs": "/api-docs",
        "health": "/health",
    })


@app.get("/health")
def health_check():
    """Health check endpoint for monitoring"""
    return success_response(200, "API está funcionando corretamente", {
        "service": "lembreto",
        "database": settings.DATABASE_URL.split("://")[0],
        "environment": settings.ENVIRONMENT,
        "timestamp": local_now().isoformat(),
    })


# ---------------------------------------------------------------- usuarios

usuarios = APIRouter(prefix="/usuarios", tags=["Usuarios"])


@usuarios.post("/registro", status_code=201)
def register(payload: schemas.UserRegister, db: Session = Depends(database.get_db)):
    """Register a user. Returns the id and the API key."""
    user = users_crud.register_user(db, payload.model_dump())
    return success_response(201, MSG_CREATED, {"id": user.id, "api_key": user.api_key})


@usuarios.post("/login")
def login(payload: schemas.UserLogin, db: Session = Depends(database.get_db)):
    """Login by phone or email. Returns a session token and the API key."""
    result = users_crud.authenticate(db, payload.senha, telefone=payload.telefone, email=payload.email)
    return success_response(200, "Login realizado com sucesso", result)


@usuarios.get("")
@usuarios.get("/perfil")
def get_profile(user: User = Depends(get_current_user)):
    return success_response(200, "Perfil recuperado com sucesso", _user_out(user))


@usuarios.put("")
def update_profile(
    payload: schemas.UserUpdate,
    db: Session = Depends(database.get_db),
    user: User = Depends(get_current_user),
):
    updates = payload.model_dump(exclude_unset=True)
    if not updates:
        raise InvalidInputError("Nenhum campo para atualizar")
    user = users_crud.update_user(db, user, updates)
    return success_response(200, "Perfil atualizado com sucesso", _user_out(user))


@usuarios.post("/regenerar-api-key")
def regenerate_api_key(db: Session = Depends(database.get_db), user: User = Depends(get_current_user)):
    api_key = users_crud.regenerate_api_key(db, user)
    return success_response(200, "API Key regenerada com sucesso", {"api_key": api_key})


# ---------------------------------------------------------------- lembretes

lembretes = APIRouter(prefix="/lembretes", tags=["Lembretes"])


@lembretes.post("", status_code=201)
def create_reminder(
    payload: schemas.ReminderCreate,
    db: Session = Depends(database.get_db),
    user: User = Depends(get_current_user),
):
    """Create a reminder.

    Request body example:
    ```json
    {"titulo": "Pagar aluguel", "tipo": "Contas a Pagar",
     "recorrente": true, "frequencia": "Mensal", "dia": 5, "hora": "10:00"}
    ```
    """
    reminder = crud.create_reminder(db, user.id, payload.model_dump())
    return success_response(201, MSG_CREATED, _reminder_out(reminder))


@lembretes.get("")
def list_reminders(
    tipo: Optional[str] = Query(None, description="Contas a Pagar | Saúde | Normal"),
    status: Optional[str] = Query(None, description="Ativo | Concluído | Cancelado"),
    recorrente: Optional[bool] = Query(None),
    frequencia: Optional[str] = Query(None, description="Diária | Semanal | Mensal | Anual"),
    db: Session = Depends(database.get_db),
    user: User = Depends(get_current_user),
):
    """List the caller's reminders with ``proxima_ocorrencia`` and group-by counts in metadata."""
    reminders = crud.get_reminders_by_user(db, user.id, tipo, status, recorrente, frequencia)
    now = local_now()
    metadata = crud.count_reminders(db, user.id)
    metadata["quantidade"] = len(reminders)
    return success_response(
        200,
        "Lembretes recuperados com sucesso",
        [_reminder_out(reminder, now) for reminder in reminders],
        metadata,
    )


@lembretes.get("/{reminder_id}")
def get_reminder(
    reminder_id: int,
    db: Session = Depends(database.get_db),
    user: User = Depends(get_current_user),
):
    reminder = crud.get_reminder(db, reminder_id, user.id)
    return success_response(200, "Lembrete recuperado com sucesso", _reminder_out(reminder))


@lembretes.put("/{reminder_id}")
def update_reminder(
    reminder_id: int,
    payload: schemas.ReminderUpdate,
    db: Session = Depends(database.get_db),
    user: User = Depends(get_current_user),
):
    """Only provided fields are updated; the result is re-validated like a create."""
    reminder = crud.update_reminder(db, reminder_id, user.id, payload.model_dump(exclude_unset=True))
    return success_response(200, "Lembrete atualizado com sucesso", _reminder_out(reminder))


@lembretes.delete("/{reminder_id}")
def delete_reminder(
    reminder_id: int,
    db: Session = Depends(database.get_db),
    user: User = Depends(get_current_user),
):
    crud.delete_reminder(db, reminder_id, user.id)
    return success_response(200, "Lembrete removido com sucesso")


# ---------------------------------------------------------------- tags

tags = APIRouter(prefix="/tags", tags=["Tags"])


@tags.post("", status_code=201)
def create_tag(
    payload: schemas.TagCreate,
    db: Session = Depends(database.get_db),
    user: User = Depends(get_current_user),
):
    tag = tags_crud.create_tag(db, user.id, payload.model_dump())
    return success_response(201, "Tag criada com sucesso", _tag_out(tag))


@tags.get("")
def list_tags(db: Session = Depends(database.get_db), user: User = Depends(get_current_user)):
    return success_response(
        200, "Tags recuperadas com sucesso", [_tag_out(tag) for tag in tags_crud.get_tags_by_user(db, user.id)]
    )


@tags.put("/{tag_id}")
def update_tag(
    tag_id: int,
    payload: schemas.TagUpdate,
    db: Session = Depends(database.get_db),
    user: User = Depends(get_current_user),
):
    tag = tags_crud.update_tag(db, tag_id, user.id, payload.model_dump(exclude_unset=True))
    return success_response(200, "Tag atualizada com sucesso", _tag_out(tag))


@tags.delete("/{tag_id}")
def delete_tag(tag_id: int, db: Session = Depends(database.get_db), user: User = Depends(get_current_user)):
    tags_crud.delete_tag(db, tag_id, user.id)
    return success_response(200, "Tag removida com sucesso")


@tags.post("/lembrete/{reminder_id}")
def replace_reminder_tags(
    reminder_id: int,
    payload: schemas.TagAssociation,
    db: Session = Depends(database.get_db),
    user: User = Depends(get_current_user),
):
    """Replace the reminder's whole tag set with ``tagIds``."""
    linked = tags_crud.replace_reminder_tags(db, reminder_id, payload.tagIds, user.id)
    return success_response(200, "Tags associadas com sucesso", [_tag_out(tag) for tag in linked])


@tags.get("/lembrete/{reminder_id}")
def list_reminder_tags(
    reminder_id: int,
    db: Session = Depends(database.get_db),
    user: User = Depends(get_current_user),
):
    linked = tags_crud.list_reminder_tags(db, reminder_id, user.id)
    return success_response(200, "Tags do lembrete recuperadas com sucesso", [_tag_out(tag) for tag in linked])


# ---------------------------------------------------------------- notificacoes

notificacoes = APIRouter(prefix="/notificacoes", tags=["Notificacoes"])


@notificacoes.post("", status_code=201)
def create_notification(
    payload: schemas.NotificationCreate,
    db: Session = Depends(database.get_db),
    user: User = Depends(get_current_user),
):
    """Log a delivery attempt. A Sucesso attempt completes the reminder."""
    notification = notifications_crud.create_notification(db, user.id, payload.model_dump())
    return success_response(201, "Notificação criada com sucesso", _notification_out(notification))


@notificacoes.get("")
def list_notifications(
    lembrete_id: Optional[int] = Query(None),
    db: Session = Depends(database.get_db),
    user: User = Depends(get_current_user),
):
    found = notifications_crud.get_notifications_by_user(db, user.id, lembrete_id)
    return success_response(
        200, "Notificações recuperadas com sucesso", [_notification_out(n) for n in found]
    )


@notificacoes.get("/lembrete/{reminder_id}")
def list_reminder_notifications(
    reminder_id: int,
    db: Session = Depends(database.get_db),
    user: User = Depends(get_current_user),
):
    found = notifications_crud.get_notifications_by_reminder(db, reminder_id, user.id)
    return success_response(
        200, "Notificações recuperadas com sucesso", [_notification_out(n) for n in found]
    )


@notificacoes.put("/{notification_id}")
def update_notification(
    notification_id: int,
    payload: schemas.NotificationUpdate,
    db: Session = Depends(database.get_db),
    user: User = Depends(get_current_user),
):
    notification = notifications_crud.update_notification(
        db, notification_id, user.id, payload.model_dump(exclude_unset=True)
    )
    return success_response(200, "Notificação atualizada com sucesso", _notification_out(notification))


@notificacoes.delete("/{notification_id}")
def delete_notification(
    notification_id: int,
    db: Session = Depends(database.get_db),
    user: User = Depends(get_current_user),
):
    notifications_crud.delete_notification(db, notification_id, user.id)
    return success_response(200, "Notificação removida com sucesso")


# ---------------------------------------------------------------- mensagens / verificacao

mensagens = APIRouter(prefix="/mensagens", tags=["Mensagens"])


@mensagens.post("/whatsapp")
def send_whatsapp_message(
    payload: schemas.WhatsAppMessage,
    db: Session = Depends(database.get_db),
    user: User = Depends(get_current_user),
    gateway: WhatsAppGateway = Depends(get_whatsapp_gateway),
):
    """Send a WhatsApp text.

    With ``lembrete_id`` the attempt is logged against that reminder: Sucesso
    on provider ack, Falha when the provider fails (the error is still returned).
    """
    reminder = None
    if payload.lembrete_id is not None:
        reminder = crud.get_reminder(db, payload.lembrete_id, user.id)

    phone = normalize_phone(payload.telefone)

    def log_attempt(outcome: SendOutcomeEnum):
        notifications_crud.create_notification(db, user.id, {
            "lembrete_id": reminder.id,
            "tipo_envio": SendChannelEnum.WHATSAPP,
            "data_envio": local_now(),
            "status": outcome,
            "mensagem": payload.mensagem,
        })

    try:
        ack = gateway.send_text(phone, payload.mensagem, payload.delay)
    except GatewayError:
        if reminder is not None:
            log_attempt(SendOutcomeEnum.FAILURE)
        raise

    if reminder is not None:
        log_attempt(SendOutcomeEnum.SUCCESS)
    return success_response(200, "Mensagem enviada com sucesso", ack)


verificacao = APIRouter(prefix="/verificacao", tags=["Verificacao"])


@verificacao.post("/whatsapp")
def verify_whatsapp_numbers(
    payload: schemas.NumberVerification,
    gateway: WhatsAppGateway = Depends(get_whatsapp_gateway),
):
    numbers = [normalize_phone(number) for number in payload.numeros]
    results = gateway.verify_numbers(numbers)
    return success_response(200, "Verificação realizada com sucesso", results)


@verificacao.post("/salvar-contato")
def send_contact_card(
    payload: schemas.ContactRequest,
    db: Session = Depends(database.get_db),
    gateway: WhatsAppGateway = Depends(get_whatsapp_gateway),
):
    """Send the service's contact card to the phone of the user owning ``api_key``."""
    user = users_crud.get_active_user_by_api_key(db, payload.api_key)
    if user is None:
        raise NotFoundError("Usuário não encontrado", errors={"message": "API Key inválida"})

    contact = {"fullName": settings.CONTACT_CARD_NAME, "phoneNumber": settings.CONTACT_CARD_PHONE}
    result = gateway.send_contact(normalize_phone(user.telefone), contact)
    return success_response(200, "Contato enviado com sucesso", result)


for router in (usuarios, lembretes, tags, notificacoes, mensagens, verificacao):
    app.include_router(router, prefix=settings.API_PREFIX)


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        app,
        host=settings.API_HOST,
        port=settings.API_PORT,
        log_level="info"
    )
