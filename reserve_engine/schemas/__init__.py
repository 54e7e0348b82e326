"""Pydantic schemas for reservation payloads and records."""

from .reservation import ReservationCreate, ReservationRecord

__all__ = ["ReservationCreate", "ReservationRecord"]
