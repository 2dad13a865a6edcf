"""Data access, one method per operation.

Every event write takes the owner id and filters on it, so a row that belongs
to someone else looks exactly like a missing row.
"""

from datetime import timedelta

from sqlalchemy import func

from models import (
    ROLES,
    EmailLog,
    Event,
    ImageGenerationLog,
    Profile,
    Translation,
    User,
    UserRole,
    db,
)
from utils import utcnow


class UserStore:
    def get(self, user_id: int) -> User | None:
        return db.session.get(User, user_id)

    def by_email(self, email: str) -> User | None:
        return User.query.filter_by(email=email).first()

    def create(self, name: str, email: str, password_hash: str) -> User:
        u = User(name=name, email=email, password_hash=password_hash)
        db.session.add(u)
        db.session.flush()
        db.session.add(UserRole(user_id=u.id, role="user"))
        db.session.commit()
        return u

    def count(self) -> int:
        return db.session.query(func.count(User.id)).scalar() or 0

    def list_with_stats(self):
        event_counts = dict(
            db.session.query(Event.user_id, func.count(Event.id)).group_by(Event.user_id).all()
        )
        roles = {r.user_id: r.role for r in UserRole.query.all()}
        names = {p.user_id: p.display_name for p in Profile.query.all()}
        rows = []
        for u in User.query.order_by(User.created_at.desc(), User.id.desc()).all():
            row = u.to_dict()
            row["role"] = roles.get(u.id)
            row["displayName"] = names.get(u.id)
            row["eventCount"] = int(event_counts.get(u.id, 0))
            rows.append(row)
        return rows


class ProfileStore:
    FIELDS = {"displayName": "display_name", "username": "username", "bio": "bio", "avatarUrl": "avatar_url"}

    def get(self, user_id: int) -> Profile | None:
        return Profile.query.filter_by(user_id=user_id).first()

    def username_taken(self, username: str, user_id: int) -> bool:
        return Profile.query.filter(Profile.username == username, Profile.user_id != user_id).first() is not None

    def create(self, user_id: int, fields: dict) -> Profile:
        p = Profile(user_id=user_id, **fields)
        db.session.add(p)
        db.session.commit()
        return p

    def update(self, user_id: int, fields: dict) -> Profile | None:
        p = self.get(user_id)
        if not p:
            return None
        for name, value in fields.items():
            setattr(p, name, value)
        db.session.commit()
        return p


class EventStore:
    def list_for_owner(self, owner_id: int) -> list[Event]:
        return (
            Event.query
            .filter_by(user_id=owner_id)
            .order_by(Event.event_date.desc(), Event.id.desc())
            .all()
        )

    def get(self, event_id: int, owner_id: int) -> Event | None:
        return Event.query.filter_by(id=event_id, user_id=owner_id).first()

    def create(self, owner_id: int, fields: dict) -> Event:
        e = Event(user_id=owner_id, **fields)
        db.session.add(e)
        db.session.commit()
        return e

    def create_many(self, owner_id: int, batch: list[dict]) -> list[Event]:
        created = [Event(user_id=owner_id, **fields) for fields in batch]
        db.session.add_all(created)
        db.session.commit()
        return created

    def update(self, event_id: int, owner_id: int, fields: dict) -> Event | None:
        e = self.get(event_id, owner_id)
        if not e:
            return None
        for name, value in fields.items():
            setattr(e, name, value)
        e.updated_at = utcnow()
        db.session.commit()
        return e

    def delete(self, event_id: int, owner_id: int) -> bool:
        deleted = Event.query.filter_by(id=event_id, user_id=owner_id).delete()
        db.session.commit()
        return deleted > 0

    def count(self) -> int:
        return db.session.query(func.count(Event.id)).scalar() or 0


class RoleStore:
    def get(self, user_id: int) -> UserRole | None:
        return UserRole.query.filter_by(user_id=user_id).order_by(UserRole.created_at.desc()).first()

    def has_role(self, user_id: int, role: str) -> bool:
        return UserRole.query.filter_by(user_id=user_id, role=role).first() is not None

    def assign(self, user_id: int, role: str | None) -> UserRole | None:
        """Replace whatever role the user had; ``None`` leaves them without one."""
        if role is not None and role not in ROLES:
            raise ValueError(f"unknown role: {role!r}")
        UserRole.query.filter_by(user_id=user_id).delete()
        assigned = None
        if role is not None:
            assigned = UserRole(user_id=user_id, role=role)
            db.session.add(assigned)
        db.session.commit()
        return assigned


class TranslationStore:
    FIELDS = {
        "namespace": "namespace",
        "arabicText": "arabic_text",
        "englishText": "english_text",
        "description": "description",
    }

    def list_all(self) -> list[Translation]:
        return Translation.query.order_by(Translation.namespace.asc(), Translation.key.asc()).all()

    def get(self, key: str) -> Translation | None:
        return Translation.query.filter_by(key=key).first()

    def create(self, key: str, fields: dict) -> Translation:
        row = Translation(key=key, **fields)
        db.session.add(row)
        db.session.commit()
        return row

    def update(self, key: str, fields: dict) -> Translation | None:
        row = self.get(key)
        if not row:
            return None
        for name, value in fields.items():
            setattr(row, name, value)
        row.updated_at = utcnow()
        db.session.commit()
        return row

    def delete(self, key: str) -> bool:
        deleted = Translation.query.filter_by(key=key).delete()
        db.session.commit()
        return deleted > 0

    def count(self) -> int:
        return db.session.query(func.count(Translation.id)).scalar() or 0


class ActivityLog:
    def record_email(self, user_id: int, to: str, subject: str, status: str, error: str | None = None) -> None:
        db.session.add(EmailLog(
            user_id=user_id,
            recipient_email=to,
            subject=subject,
            status=status,
            error_message=error,
        ))
        db.session.commit()

    def record_image(self, user_id: int, prompt: str, status: str, error: str | None = None) -> None:
        db.session.add(ImageGenerationLog(
            user_id=user_id,
            prompt=prompt,
            status=status,
            error_message=error,
        ))
        db.session.commit()

    def recent_image_count(self, user_id: int, window: timedelta = timedelta(hours=1)) -> int:
        since = utcnow() - window
        return (
            db.session.query(func.count(ImageGenerationLog.id))
            .filter(
                ImageGenerationLog.user_id == user_id,
                ImageGenerationLog.status == "success",
                ImageGenerationLog.generated_at >= since,
            )
            .scalar()
        ) or 0


users = UserStore()
profiles = ProfileStore()
events = EventStore()
roles = RoleStore()
translations = TranslationStore()
activity = ActivityLog()
