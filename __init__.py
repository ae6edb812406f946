"""Lembreto Service - personal reminders with WhatsApp notifications.

This package provides a REST API for managing reminders per user.

Features:
- Registration and login by phone or email, API key or session token auth
- One-shot and recurring reminders (daily, weekly, monthly, yearly)
- Next-occurrence calculation on every read
- Per-user tags with replace-all association to reminders
- Notification log; a successful delivery completes the reminder
- WhatsApp messaging, number verification and contact card

Components:
- config: Application settings
- database: SQLAlchemy models and session management
- schemas: Pydantic validation schemas
- crud, tags_crud, notifications_crud, users_crud: Database operations
- recurrence: Next occurrence resolution
- whatsapp_client: Messaging gateway client
- api_server: FastAPI REST API

Usage:
    python api_server.py
"""

__version__ = "1.0.0"
__description__ = "Reminder service with recurrence, tags and WhatsApp notifications"
