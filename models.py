from flask_login import UserMixin
from flask_sqlalchemy import SQLAlchemy

from utils import DAYS_LEFT, DEFAULT_EVENT_TYPE, format_instant, utcnow

db = SQLAlchemy()

ROLES = ("admin", "moderator", "user")


class User(UserMixin, db.Model):
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    email = db.Column(db.String(255), unique=True, nullable=False, index=True)
    password_hash = db.Column(db.String(255), nullable=False)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "email": self.email,
            "createdAt": format_instant(self.created_at),
        }


class Profile(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("user.id"), unique=True, nullable=False)
    username = db.Column(db.String(80), unique=True)
    display_name = db.Column(db.String(120))
    bio = db.Column(db.Text)
    avatar_url = db.Column(db.Text)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "userId": self.user_id,
            "username": self.username,
            "displayName": self.display_name,
            "bio": self.bio,
            "avatarUrl": self.avatar_url,
            "createdAt": format_instant(self.created_at),
            "updatedAt": format_instant(self.updated_at),
        }


class Event(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=False, index=True)
    title = db.Column(db.String(100), nullable=False)
    event_date = db.Column(db.DateTime, nullable=False)
    event_type = db.Column(db.String(50), nullable=False, default=DEFAULT_EVENT_TYPE)
    calculation_type = db.Column(db.String(20), nullable=False, default=DAYS_LEFT)
    repeat_option = db.Column(db.String(10), nullable=False, default="none")
    background_image = db.Column(db.Text)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "userId": self.user_id,
            "title": self.title,
            "eventDate": format_instant(self.event_date),
            "eventType": self.event_type,
            "calculationType": self.calculation_type,
            "repeatOption": self.repeat_option,
            "backgroundImage": self.background_image,
            "createdAt": format_instant(self.created_at),
            "updatedAt": format_instant(self.updated_at),
        }


class UserRole(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=False, index=True)
    role = db.Column(db.String(20), nullable=False)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "userId": self.user_id,
            "role": self.role,
            "createdAt": format_instant(self.created_at),
        }


class Translation(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    key = db.Column(db.String(255), unique=True, nullable=False)
    namespace = db.Column(db.String(80), nullable=False, default="common")
    arabic_text = db.Column(db.Text, nullable=False)
    english_text = db.Column(db.Text, nullable=False)
    description = db.Column(db.Text)
    created_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    def to_dict(self):
        return {
            "id": self.id,
            "key": self.key,
            "namespace": self.namespace,
            "arabicText": self.arabic_text,
            "englishText": self.english_text,
            "description": self.description,
            "createdAt": format_instant(self.created_at),
            "updatedAt": format_instant(self.updated_at),
        }


class EmailLog(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=False)
    recipient_email = db.Column(db.String(255), nullable=False)
    subject = db.Column(db.String(255), nullable=False)
    sent_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    status = db.Column(db.String(10), nullable=False, default="sent")
    error_message = db.Column(db.Text)


class ImageGenerationLog(db.Model):
    id = db.Column(db.Integer, primary_key=True)
    user_id = db.Column(db.Integer, db.ForeignKey("user.id"), nullable=False, index=True)
    prompt = db.Column(db.Text, nullable=False)
    generated_at = db.Column(db.DateTime, nullable=False, default=utcnow)
    status = db.Column(db.String(10), nullable=False, default="success")
    error_message = db.Column(db.Text)
