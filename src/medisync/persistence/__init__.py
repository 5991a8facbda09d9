"""Database persistence layer."""

from .db import dispose_engines_async, get_async_engine, get_async_session, init_db_async
from .models import Appointment, Base, Invoice, Patient, ScraperActivity, Service
from .repo import RunSummary, SqlRepository

__all__ = [
    "dispose_engines_async",
    "get_async_engine",
    "get_async_session",
    "init_db_async",
    "Appointment",
    "Base",
    "Invoice",
    "Patient",
    "ScraperActivity",
    "Service",
    "RunSummary",
    "SqlRepository",
]
