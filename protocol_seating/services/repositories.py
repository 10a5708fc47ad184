"""
Repository layer abstracting storage (SQLAlchemy vs Firebase Firestore).

Both backends behave like a row store: list by event, create, partial update
by id and delete. No transactions or row locking are assumed.
"""

from __future__ import annotations

import json
import secrets
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from protocol_seating.core.config import settings
from protocol_seating.core.db import SessionLocal
from protocol_seating.models import Event, Guest
from protocol_seating.schemas.event import EventCreate, EventResponse
from protocol_seating.schemas.guest import GuestRecord
from protocol_seating.schemas.layout import GridLayout
from protocol_seating.services.firebase_client import get_firestore_client

NOTES_SEPARATOR = "|"


def use_firestore() -> bool:
    return settings.USE_FIREBASE is True


def split_notes(value: Optional[str]) -> List[str]:
    if not value:
        return []
    return [note.strip() for note in value.split(NOTES_SEPARATOR) if note.strip()]


def _plain(fields: Dict[str, Any]) -> Dict[str, Any]:
    """Enum members to their values, for storage"""
    return {k: (v.value if isinstance(v, Enum) else v) for k, v in fields.items()}


def _layout_from_json(raw: Optional[str]) -> Optional[GridLayout]:
    if not raw:
        return None
    return GridLayout(**json.loads(raw))


def new_id() -> str:
    return secrets.token_urlsafe(8)


# -------- Event repository --------

class SqlEventRepo:
    def __init__(self, session_factory: Callable[[], Session] = SessionLocal):
        self.session_factory = session_factory

    @staticmethod
    def _to_response(event: Event) -> EventResponse:
        return EventResponse(
            id=event.id,
            title=event.title,
            date=event.date,
            location=event.location or "",
            description=event.description or "",
            status=event.status,
            seat_layout=_layout_from_json(event.seat_layout),
            created_at=event.created_at,
            updated_at=event.updated_at,
        )

    def list_events(self) -> List[EventResponse]:
        with self.session_factory() as db:
            events = db.query(Event).order_by(Event.date).all()
            return [self._to_response(e) for e in events]

    def get_event(self, event_id: str) -> Optional[EventResponse]:
        with self.session_factory() as db:
            event = db.query(Event).filter(Event.id == event_id).first()
            return self._to_response(event) if event else None

    def create_event(self, data: EventCreate) -> EventResponse:
        with self.session_factory() as db:
            event_id = new_id()
            while db.query(Event).filter(Event.id == event_id).first():
                event_id = new_id()
            event = Event(id=event_id, **_plain(data.model_dump()))
            db.add(event)
            db.commit()
            db.refresh(event)
            return self._to_response(event)

    def update_event(self, event_id: str, fields: Dict[str, Any]) -> Optional[EventResponse]:
        with self.session_factory() as db:
            event = db.query(Event).filter(Event.id == event_id).first()
            if not event:
                return None
            for key, value in _plain(fields).items():
                setattr(event, key, value)
            event.updated_at = datetime.utcnow()
            db.commit()
            db.refresh(event)
            return self._to_response(event)

    def set_layout(self, event_id: str, layout: Optional[GridLayout]) -> None:
        with self.session_factory() as db:
            event = db.query(Event).filter(Event.id == event_id).first()
            if not event:
                return
            event.seat_layout = layout.model_dump_json() if layout else None
            event.updated_at = datetime.utcnow()
            db.commit()

    def delete_event(self, event_id: str) -> bool:
        with self.session_factory() as db:
            event = db.query(Event).filter(Event.id == event_id).first()
            if not event:
                return False
            db.delete(event)
            db.commit()
            return True


class FirestoreEventRepo:
    # Firestore shape: collection "events/{event_id}" document with fields

    @staticmethod
    def _to_response(event_id: str, data: Dict[str, Any]) -> EventResponse:
        layout = data.get("seat_layout")
        return EventResponse(
            id=event_id,
            title=data.get("title", ""),
            date=data.get("date"),
            location=data.get("location", ""),
            description=data.get("description", ""),
            status=data.get("status", "upcoming"),
            seat_layout=GridLayout(**layout) if layout else None,
            created_at=data.get("created_at"),
            updated_at=data.get("updated_at"),
        )

    def list_events(self) -> List[EventResponse]:
        fs = get_firestore_client()
        docs = fs.collection("events").order_by("date").get()
        return [self._to_response(d.id, d.to_dict()) for d in docs]

    def get_event(self, event_id: str) -> Optional[EventResponse]:
        fs = get_firestore_client()
        doc = fs.collection("events").document(event_id).get()
        return self._to_response(doc.id, doc.to_dict()) if doc.exists else None

    def create_event(self, data: EventCreate) -> EventResponse:
        fs = get_firestore_client()
        now = datetime.utcnow().isoformat()
        payload = _plain(data.model_dump())
        payload.update({"date": data.date.isoformat(), "created_at": now, "updated_at": now})
        event_id = new_id()
        fs.collection("events").document(event_id).set(payload)
        return self._to_response(event_id, payload)

    def update_event(self, event_id: str, fields: Dict[str, Any]) -> Optional[EventResponse]:
        fs = get_firestore_client()
        ref = fs.collection("events").document(event_id)
        if not ref.get().exists:
            return None
        payload = _plain(fields)
        if isinstance(payload.get("date"), datetime):
            payload["date"] = payload["date"].isoformat()
        payload["updated_at"] = datetime.utcnow().isoformat()
        ref.set(payload, merge=True)
        return self.get_event(event_id)

    def set_layout(self, event_id: str, layout: Optional[GridLayout]) -> None:
        fs = get_firestore_client()
        fs.collection("events").document(event_id).set({
            "seat_layout": layout.model_dump() if layout else None,
            "updated_at": datetime.utcnow().isoformat(),
        }, merge=True)

    def delete_event(self, event_id: str) -> bool:
        fs = get_firestore_client()
        ref = fs.collection("events").document(event_id)
        if not ref.get().exists:
            return False
        for doc in ref.collection("guests").get():
            doc.reference.delete()
        ref.delete()
        return True


# -------- Guest repository --------

class SqlGuestRepo:
    def __init__(self, session_factory: Callable[[], Session] = SessionLocal):
        self.session_factory = session_factory

    @staticmethod
    def to_record(guest: Guest) -> GuestRecord:
        return GuestRecord(
            id=guest.id,
            event_id=guest.event_id,
            name=guest.name,
            organization=guest.organization or "",
            position=guest.position or "",
            guest_type=guest.guest_type,
            status=guest.status,
            seat_number=guest.seat_number,
            biography=guest.biography,
            protocol_notes=split_notes(guest.protocol_notes),
            updated_at=guest.updated_at or datetime.utcnow(),
        )

    @staticmethod
    def _row_fields(fields: Dict[str, Any]) -> Dict[str, Any]:
        fields = _plain(fields)
        fields.pop("version", None)
        if "protocol_notes" in fields:
            fields["protocol_notes"] = NOTES_SEPARATOR.join(fields["protocol_notes"] or [])
        return fields

    def list_guests(self, event_id: str) -> List[GuestRecord]:
        with self.session_factory() as db:
            guests = db.query(Guest).filter(Guest.event_id == event_id).order_by(Guest.position_order).all()
            return [self.to_record(g) for g in guests]

    def create_guests(self, records: List[GuestRecord]) -> None:
        if not records:
            return
        with self.session_factory() as db:
            next_order = (db.query(func.max(Guest.position_order)).filter(
                Guest.event_id == records[0].event_id
            ).scalar() or 0) + 1
            for offset, record in enumerate(records):
                db.add(Guest(position_order=next_order + offset, **self._row_fields(record.model_dump())))
            db.commit()

    def create_guest(self, record: GuestRecord) -> None:
        self.create_guests([record])

    def update_guest(self, guest_id: str, fields: Dict[str, Any]) -> None:
        with self.session_factory() as db:
            guest = db.query(Guest).filter(Guest.id == guest_id).first()
            if not guest:
                raise LookupError(f"Guest {guest_id} not found in storage")
            for key, value in self._row_fields(fields).items():
                setattr(guest, key, value)
            db.commit()

    def delete_guest(self, guest_id: str) -> None:
        with self.session_factory() as db:
            db.query(Guest).filter(Guest.id == guest_id).delete()
            db.commit()

    def delete_event_guests(self, event_id: str) -> None:
        with self.session_factory() as db:
            db.query(Guest).filter(Guest.event_id == event_id).delete()
            db.commit()


class FirestoreGuestRepo:
    # Firestore guest docs under collection events/{event_id}/guests

    @staticmethod
    def _collection(event_id: str):
        fs = get_firestore_client()
        return fs.collection("events").document(event_id).collection("guests")

    @staticmethod
    def _doc_fields(fields: Dict[str, Any]) -> Dict[str, Any]:
        fields = _plain(fields)
        fields.pop("version", None)
        if isinstance(fields.get("updated_at"), datetime):
            fields["updated_at"] = fields["updated_at"].isoformat()
        return fields

    def list_guests(self, event_id: str) -> List[GuestRecord]:
        docs = self._collection(event_id).order_by("position_order").get()
        results: List[GuestRecord] = []
        for d in docs:
            item = d.to_dict()
            item.pop("position_order", None)
            item["id"] = d.id
            results.append(GuestRecord(**item))
        return results

    def create_guests(self, records: List[GuestRecord]) -> None:
        if not records:
            return
        collection = self._collection(records[0].event_id)
        next_order = len(collection.get()) + 1
        for offset, record in enumerate(records):
            data = self._doc_fields(record.model_dump())
            data["position_order"] = next_order + offset
            collection.document(record.id).set(data)

    def create_guest(self, record: GuestRecord) -> None:
        self.create_guests([record])

    def _find(self, guest_id: str):
        fs = get_firestore_client()
        # guest ids are unique across events, so a collection group lookup is enough
        docs = fs.collection_group("guests").where("id", "==", guest_id).get()
        if not docs:
            raise LookupError(f"Guest {guest_id} not found in storage")
        return docs[0].reference

    def update_guest(self, guest_id: str, fields: Dict[str, Any]) -> None:
        self._find(guest_id).set(self._doc_fields(fields), merge=True)

    def delete_guest(self, guest_id: str) -> None:
        self._find(guest_id).delete()

    def delete_event_guests(self, event_id: str) -> None:
        for doc in self._collection(event_id).get():
            doc.reference.delete()


def get_event_repo():
    return FirestoreEventRepo() if use_firestore() else SqlEventRepo()


def get_guest_repo():
    return FirestoreGuestRepo() if use_firestore() else SqlGuestRepo()
