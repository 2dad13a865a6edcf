import os
import secrets
from datetime import timedelta
from functools import wraps
from urllib.parse import urlparse, urljoin

from flask import Flask, render_template, redirect, url_for, request, flash, abort, session, jsonify, has_request_context
from flask_login import LoginManager, login_user, logout_user, login_required, current_user
from werkzeug.exceptions import HTTPException
from werkzeug.security import generate_password_hash, check_password_hash
from sqlalchemy import inspect

import mailer
import media
import storage
from errors import ApiError, AuthenticationRequired, AuthorizationDenied, Conflict, NotFound, ValidationError
from i18n import LANGUAGES, TranslationDictionary, normalize_language
from models import ROLES, db
from utils import (
    CALCULATION_TYPES,
    EVENT_TYPES,
    REPEAT_OPTIONS,
    calculate_countdown,
    countdown_label_key,
    format_instant,
    is_valid_email,
    parse_instant,
    sanitize_title,
    utcnow,
    validate_event_fields,
)

EVENT_FORM_KEYS = ("title", "eventDate", "eventType", "calculationType", "repeatOption", "backgroundImage")


def create_app(config=None):
    app = Flask(__name__)
    app.config["SECRET_KEY"] = os.environ.get("SECRET_KEY", "dev-secret-change-me")
    app.config["SQLALCHEMY_DATABASE_URI"] = os.environ.get("DATABASE_URL", "sqlite:///countdown.db")
    app.config["SQLALCHEMY_TRACK_MODIFICATIONS"] = False
    app.config["SESSION_COOKIE_HTTPONLY"] = True
    app.config["SESSION_COOKIE_SAMESITE"] = os.environ.get("SESSION_COOKIE_SAMESITE", "Lax")
    app.config["SESSION_COOKIE_SECURE"] = os.environ.get("SESSION_COOKIE_SECURE", "0") == "1"
    app.config["REMEMBER_COOKIE_HTTPONLY"] = True
    app.config["REMEMBER_COOKIE_SAMESITE"] = os.environ.get("REMEMBER_COOKIE_SAMESITE", "Lax")
    app.config["REMEMBER_COOKIE_SECURE"] = os.environ.get("REMEMBER_COOKIE_SECURE", "0") == "1"
    app.config["REMEMBER_COOKIE_DURATION"] = timedelta(days=int(os.environ.get("REMEMBER_COOKIE_DAYS", "30")))
    app.config["PASSWORD_MIN_LENGTH"] = int(os.environ.get("PASSWORD_MIN_LENGTH", "8"))
    app.config["PASSWORD_REQUIRE_DIGIT"] = os.environ.get("PASSWORD_REQUIRE_DIGIT", "1") == "1"
    app.config["PASSWORD_REQUIRE_LETTER"] = os.environ.get("PASSWORD_REQUIRE_LETTER", "1") == "1"
    app.config["PASSWORD_REQUIRE_UPPER"] = os.environ.get("PASSWORD_REQUIRE_UPPER", "0") == "1"
    app.config["PASSWORD_REQUIRE_LOWER"] = os.environ.get("PASSWORD_REQUIRE_LOWER", "0") == "1"
    app.config["DEFAULT_LANGUAGE"] = normalize_language(os.environ.get("DEFAULT_LANGUAGE", "ar"))
    app.config["EVENT_TITLE_MAX_LENGTH"] = int(os.environ.get("EVENT_TITLE_MAX_LENGTH", "100"))
    app.config["PENDING_EVENTS_LIMIT"] = max(1, int(os.environ.get("PENDING_EVENTS_LIMIT", "20")))
    app.config["PENDING_SESSION_MAX_BYTES"] = int(os.environ.get("PENDING_SESSION_MAX_BYTES", "3500"))
    app.config["UPLOAD_MAX_BYTES"] = int(os.environ.get("UPLOAD_MAX_BYTES", str(2 * 1024 * 1024)))
    app.config["MAX_CONTENT_LENGTH"] = int(os.environ.get("MAX_CONTENT_LENGTH", str(8 * 1024 * 1024)))
    # background images arrive as data URLs inside ordinary form fields
    app.config["MAX_FORM_MEMORY_SIZE"] = app.config["MAX_CONTENT_LENGTH"]
    app.config["OPENAI_API_KEY"] = os.environ.get("OPENAI_API_KEY", "")
    app.config["OPENAI_IMAGE_MODEL"] = os.environ.get("OPENAI_IMAGE_MODEL", "dall-e-3")
    app.config["OPENAI_IMAGE_SIZE"] = os.environ.get("OPENAI_IMAGE_SIZE", "1024x1024")
    app.config["OPENAI_IMAGE_QUALITY"] = os.environ.get("OPENAI_IMAGE_QUALITY", "standard")
    app.config["OPENAI_TIMEOUT_SECONDS"] = max(1, int(os.environ.get("OPENAI_TIMEOUT_SECONDS", "60")))
    app.config["IMAGE_PROMPT_MAX_LENGTH"] = int(os.environ.get("IMAGE_PROMPT_MAX_LENGTH", "1000"))
    app.config["IMAGE_GENERATION_HOURLY_LIMIT"] = max(0, int(os.environ.get("IMAGE_GENERATION_HOURLY_LIMIT", "5")))
    app.config["MAIL_HOST"] = os.environ.get("MAIL_HOST", "")
    app.config["MAIL_PORT"] = int(os.environ.get("MAIL_PORT", "587"))
    app.config["MAIL_USERNAME"] = os.environ.get("MAIL_USERNAME", "")
    app.config["MAIL_PASSWORD"] = os.environ.get("MAIL_PASSWORD", "")
    app.config["MAIL_USE_TLS"] = os.environ.get("MAIL_USE_TLS", "1") == "1"
    app.config["MAIL_USE_SSL"] = os.environ.get("MAIL_USE_SSL", "0") == "1"
    app.config["MAIL_FROM"] = os.environ.get("MAIL_FROM", "no-reply@example.com")
    app.config["MAIL_TIMEOUT_SECONDS"] = max(1, int(os.environ.get("MAIL_TIMEOUT_SECONDS", "10")))
    if config:
        app.config.update(config)

    db.init_app(app)

    dictionary = TranslationDictionary()
    app.extensions["i18n"] = dictionary

    def get_lang():
        return normalize_language(session.get("lang"), app.config["DEFAULT_LANGUAGE"])

    def t(key: str, **kwargs) -> str:
        return dictionary.translate(get_lang(), key, **kwargs)

    app.jinja_env.globals["t"] = t
    app.jinja_env.globals["password_min_length"] = app.config["PASSWORD_MIN_LENGTH"]

    def reload_translations() -> int:
        count = dictionary.reload(storage.translations.list_all())
        app.logger.info("Loaded %d translation overrides", count)
        return count

    def is_api_request() -> bool:
        return has_request_context() and request.path.startswith("/api/")

    def is_safe_url(target: str) -> bool:
        if not target or not has_request_context():
            return False
        ref_url = urlparse(request.host_url)
        test_url = urlparse(urljoin(request.host_url, target))
        return test_url.scheme in ("http", "https") and ref_url.netloc == test_url.netloc

    def safe_next_url(target: str, fallback: str) -> str:
        return target if target and is_safe_url(target) else fallback

    def password_is_strong(password: str) -> bool:
        if not password or len(password) < app.config["PASSWORD_MIN_LENGTH"]:
            return False
        if app.config["PASSWORD_REQUIRE_DIGIT"] and not any(c.isdigit() for c in password):
            return False
        if app.config["PASSWORD_REQUIRE_LETTER"] and not any(c.isalpha() for c in password):
            return False
        if app.config["PASSWORD_REQUIRE_UPPER"] and not any(c.isupper() for c in password):
            return False
        if app.config["PASSWORD_REQUIRE_LOWER"] and not any(c.islower() for c in password):
            return False
        return True

    def json_body() -> dict:
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            raise ValidationError(key="error.invalid_payload")
        return data

    def event_fields(data, partial=False) -> dict:
        return validate_event_fields(data, partial=partial, title_max_length=app.config["EVENT_TITLE_MAX_LENGTH"])

    dummy_password_hash = generate_password_hash("invalid-password")

    login_manager = LoginManager()
    login_manager.session_protection = "strong"
    login_manager.init_app(app)

    with app.app_context():
        if "translation" in inspect(db.engine).get_table_names():
            reload_translations()

    @login_manager.user_loader
    def load_user(user_id):
        return storage.users.get(int(user_id))

    @login_manager.unauthorized_handler
    def unauthorized():
        if is_api_request():
            raise AuthenticationRequired()
        return redirect(url_for("login", next=request.path))

    def is_admin() -> bool:
        return current_user.is_authenticated and storage.roles.has_role(current_user.id, "admin")

    def admin_required(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            if not current_user.is_authenticated:
                return login_manager.unauthorized()
            if not is_admin():
                if is_api_request():
                    raise AuthorizationDenied()
                abort(403)
            return view(*args, **kwargs)
        return wrapper

    @app.context_processor
    def inject_ui_state():
        return {
            "lang": get_lang(),
            "text_dir": "rtl" if get_lang() == "ar" else "ltr",
            "is_admin": is_admin(),
        }

    # ---------- Errors ----------
    @app.errorhandler(ApiError)
    def handle_api_error(exc):
        db.session.rollback()
        return jsonify({"error": exc.describe(t)}), exc.status_code

    @app.errorhandler(HTTPException)
    def handle_http_error(exc):
        if not is_api_request():
            return exc
        keys = {401: "error.login_required", 403: "error.admin_required", 404: "error.not_found"}
        message = t(keys[exc.code]) if exc.code in keys else exc.description
        return jsonify({"error": message}), exc.code

    @app.errorhandler(Exception)
    def handle_unexpected_error(exc):
        app.logger.exception("Unhandled error on %s %s", request.method, request.path)
        db.session.rollback()
        if is_api_request():
            return jsonify({"error": t("error.generic")}), 500
        return t("error.generic"), 500

    # ---------- Pending events (anonymous visitors) ----------
    def pending_events():
        return list(session.get("pending_events") or [])

    def pending_item(fields, pending_id=None) -> dict:
        image = fields.get("background_image")
        return {
            "id": pending_id or "p" + secrets.token_hex(4),
            "title": fields["title"],
            "eventDate": format_instant(fields["event_date"]),
            "eventType": fields["event_type"],
            "calculationType": fields["calculation_type"],
            "repeatOption": fields["repeat_option"],
            # data URLs do not fit in a cookie session
            "backgroundImage": image if image and not image.startswith("data:") else None,
        }

    def store_pending_events(items) -> None:
        limit = app.config["PENDING_EVENTS_LIMIT"]
        if len(items) > limit:
            raise ValidationError(key="error.pending_too_many", limit=limit)
        # the whole session travels in one cookie; refuse to grow it past what browsers keep
        candidate = dict(session)
        candidate["pending_events"] = items
        serializer = app.session_interface.get_signing_serializer(app)
        if serializer is not None and len(serializer.dumps(candidate)) > app.config["PENDING_SESSION_MAX_BYTES"]:
            raise ValidationError(key="error.pending_too_large")
        session["pending_events"] = items

    def stash_pending_event(data) -> dict:
        item = pending_item(event_fields(data))
        store_pending_events(pending_events() + [item])
        return item

    def edit_pending_event(pending_id: str, data) -> dict | None:
        items = pending_events()
        for index, item in enumerate(items):
            if item.get("id") == pending_id:
                break
        else:
            return None
        items[index] = pending_item(event_fields({**item, **data}), pending_id)
        store_pending_events(items)
        return items[index]

    def merge_pending_events(user_id: int) -> int:
        batch = []
        for item in session.pop("pending_events", None) or []:
            try:
                batch.append(event_fields(item))
            except ValidationError:
                app.logger.warning("Dropping invalid pending event for user=%s", user_id)
        if batch:
            storage.events.create_many(user_id, batch)
            app.logger.info("Merged %d pending events for user=%s", len(batch), user_id)
        return len(batch)

    def event_cards(now):
        if current_user.is_authenticated:
            rows = [
                {
                    "id": e.id,
                    "title": e.title,
                    "event_date": e.event_date,
                    "event_type": e.event_type,
                    "calculation_type": e.calculation_type,
                    "repeat_option": e.repeat_option,
                    "background_image": e.background_image,
                }
                for e in storage.events.list_for_owner(current_user.id)
            ]
        else:
            rows = [
                {
                    "id": item["id"],
                    "title": item["title"],
                    "event_date": parse_instant(item["eventDate"]),
                    "event_type": item["eventType"],
                    "calculation_type": item["calculationType"],
                    "repeat_option": item["repeatOption"],
                    "background_image": item.get("backgroundImage"),
                }
                for item in pending_events()
            ]
        for row in rows:
            row["countdown"] = calculate_countdown(row["event_date"], now, row["calculation_type"])
            row["label_key"] = countdown_label_key(row["calculation_type"])
        return rows

    def after_login(user) -> None:
        session.permanent = True
        login_user(user, remember=True)
        merged = merge_pending_events(user.id)
        if merged:
            flash(t("flash.pending_merged", count=merged), "success")

    # ---------- Pages ----------
    @app.get("/")
    def index():
        return render_template(
            "index.html",
            cards=event_cards(utcnow()),
            is_pending=not current_user.is_authenticated,
            calculation_types=CALCULATION_TYPES,
            repeat_options=REPEAT_OPTIONS,
            event_types=EVENT_TYPES,
            title_max_length=app.config["EVENT_TITLE_MAX_LENGTH"],
        )

    @app.post("/language")
    def set_language():
        session["lang"] = normalize_language(request.form.get("lang"), app.config["DEFAULT_LANGUAGE"])
        next_url = request.form.get("next") or request.referrer or url_for("index")
        return redirect(safe_next_url(next_url, url_for("index")))

    def event_form_data() -> dict:
        return {key: request.form[key] for key in EVENT_FORM_KEYS if key in request.form}

    @app.post("/events")
    def add_event_form():
        data = event_form_data()
        try:
            if current_user.is_authenticated:
                storage.events.create(current_user.id, event_fields(data))
                flash(t("flash.event_added"), "success")
            else:
                stash_pending_event(data)
                flash(t("flash.event_pending"), "info")
        except ValidationError as exc:
            flash(exc.describe(t), "error")
        return redirect(url_for("index"))

    @app.post("/events/<int:event_id>")
    @login_required
    def edit_event_form(event_id: int):
        try:
            e = storage.events.update(event_id, current_user.id, event_fields(event_form_data(), partial=True))
        except ValidationError as exc:
            flash(exc.describe(t), "error")
            return redirect(url_for("index"))
        if not e:
            abort(404)
        flash(t("flash.event_updated"), "success")
        return redirect(url_for("index"))

    @app.post("/events/<int:event_id>/delete")
    @login_required
    def delete_event_form(event_id: int):
        if not storage.events.delete(event_id, current_user.id):
            abort(404)
        flash(t("flash.event_deleted"), "success")
        return redirect(url_for("index"))

    @app.post("/events/pending/<pending_id>")
    def edit_pending_event_form(pending_id: str):
        try:
            item = edit_pending_event(pending_id, event_form_data())
        except ValidationError as exc:
            flash(exc.describe(t), "error")
            return redirect(url_for("index"))
        if item is None:
            abort(404)
        flash(t("flash.event_updated"), "success")
        return redirect(url_for("index"))

    @app.post("/events/pending/<pending_id>/delete")
    def delete_pending_event(pending_id: str):
        items = pending_events()
        kept = [item for item in items if item.get("id") != pending_id]
        if len(kept) == len(items):
            abort(404)
        session["pending_events"] = kept
        flash(t("flash.event_deleted"), "success")
        return redirect(url_for("index"))

    # ---------- Auth ----------
    @app.get("/register")
    def register():
        if current_user.is_authenticated:
            return redirect(url_for("index"))
        return render_template("register.html")

    @app.post("/register")
    def register_post():
        name = request.form.get("name", "").strip()
        email = request.form.get("email", "").strip().lower()
        password = request.form.get("password", "")
        confirm_password = request.form.get("confirm_password", "")

        if not name or not email or not password or not confirm_password:
            flash(t("flash.fill_all_fields"), "error")
            return redirect(url_for("register"))

        if password != confirm_password:
            flash(t("flash.passwords_no_match"), "error")
            return redirect(url_for("register"))

        if not password_is_strong(password):
            flash(t("flash.password_too_weak", min_len=app.config["PASSWORD_MIN_LENGTH"]), "error")
            return redirect(url_for("register"))

        if storage.users.by_email(email):
            flash(t("flash.email_registered"), "error")
            return redirect(url_for("login"))

        u = storage.users.create(name=name, email=email, password_hash=generate_password_hash(password))
        after_login(u)
        return redirect(url_for("index"))

    @app.get("/login")
    def login():
        if current_user.is_authenticated:
            return redirect(url_for("index"))
        return render_template("login.html")

    @app.post("/login")
    def login_post():
        email = request.form.get("email", "").strip().lower()
        password = request.form.get("password", "")
        next_raw = request.args.get("next") or request.form.get("next")
        next_url = safe_next_url(next_raw, "")
        u = storage.users.by_email(email)
        if not u or not check_password_hash(u.password_hash, password):
            if not u:
                check_password_hash(dummy_password_hash, password)
            flash(t("flash.invalid_login"), "error")
            return redirect(url_for("login", next=next_url) if next_url else url_for("login"))
        after_login(u)
        return redirect(next_url or url_for("index"))

    @app.route("/logout", methods=["GET", "POST"])
    @login_required
    def logout():
        logout_user()
        return redirect(url_for("login"))

    @app.get("/api/auth/user")
    def current_user_info():
        if not current_user.is_authenticated:
            return jsonify(None)
        role = storage.roles.get(current_user.id)
        info = current_user.to_dict()
        info["role"] = role.role if role else None
        return jsonify(info)

    # ---------- Events API ----------
    @app.get("/api/events")
    @login_required
    def list_events():
        return jsonify([e.to_dict() for e in storage.events.list_for_owner(current_user.id)])

    @app.post("/api/events")
    @login_required
    def create_event():
        e = storage.events.create(current_user.id, event_fields(request.get_json(silent=True)))
        return jsonify(e.to_dict()), 201

    @app.put("/api/events/<int:event_id>")
    @login_required
    def update_event(event_id: int):
        e = storage.events.update(event_id, current_user.id, event_fields(json_body(), partial=True))
        if not e:
            raise NotFound(key="error.event_not_found")
        return jsonify(e.to_dict())

    @app.delete("/api/events/<int:event_id>")
    @login_required
    def delete_event(event_id: int):
        if not storage.events.delete(event_id, current_user.id):
            raise NotFound(key="error.event_not_found")
        return jsonify({"success": True})

    @app.get("/api/events/countdowns")
    def event_countdowns():
        now = utcnow()
        return jsonify({
            "now": format_instant(now),
            "events": [
                {
                    "id": card["id"],
                    "title": card["title"],
                    "eventDate": format_instant(card["event_date"]),
                    "label": t(card["label_key"]),
                    "countdown": card["countdown"].to_dict(),
                }
                for card in event_cards(now)
            ],
        })

    @app.post("/api/events/pending")
    @login_required
    def save_pending_events():
        data = request.get_json(silent=True)
        if isinstance(data, dict):
            data = data.get("events")
        if not isinstance(data, list):
            raise ValidationError(key="error.pending_invalid")
        limit = app.config["PENDING_EVENTS_LIMIT"]
        if len(data) > limit:
            raise ValidationError(key="error.pending_too_many", limit=limit)
        batch = [event_fields(item) for item in data]
        created = storage.events.create_many(current_user.id, batch) if batch else []
        return jsonify([e.to_dict() for e in created]), 201

    # ---------- Profile & roles ----------
    def profile_fields(data) -> dict:
        fields = {}
        for name, column in storage.profiles.FIELDS.items():
            if name not in data:
                continue
            value = data[name]
            if value is not None and not isinstance(value, str):
                raise ValidationError(key="error.invalid_payload")
            value = sanitize_title(value) if column in ("username", "display_name") else (value or "").strip()
            fields[column] = value or None
        username = fields.get("username")
        if username:
            if len(username) > 80:
                raise ValidationError(key="error.invalid_payload")
            if storage.profiles.username_taken(username, current_user.id):
                raise Conflict(key="error.username_taken")
        return fields

    @app.get("/api/profile")
    @login_required
    def get_profile():
        p = storage.profiles.get(current_user.id)
        return jsonify(p.to_dict() if p else None)

    @app.post("/api/profile")
    @login_required
    def create_profile():
        if storage.profiles.get(current_user.id):
            raise Conflict(key="error.profile_exists")
        p = storage.profiles.create(current_user.id, profile_fields(json_body()))
        return jsonify(p.to_dict()), 201

    @app.put("/api/profile")
    @login_required
    def update_profile():
        p = storage.profiles.update(current_user.id, profile_fields(json_body()))
        if not p:
            raise NotFound(key="error.profile_not_found")
        return jsonify(p.to_dict())

    @app.get("/api/user/role")
    @login_required
    def get_user_role():
        role = storage.roles.get(current_user.id)
        return jsonify({"role": role.role if role else None})

    @app.post("/api/user/role/check")
    @login_required
    def check_user_role():
        role = json_body().get("role")
        if role not in ROLES:
            raise ValidationError(key="error.role_invalid")
        return jsonify({"hasRole": storage.roles.has_role(current_user.id, role)})

    # ---------- Translations ----------
    @app.get("/api/translations")
    def list_translations():
        return jsonify([row.to_dict() for row in storage.translations.list_all()])

    @app.get("/api/i18n/<lang>")
    def i18n_dictionary(lang: str):
        if lang not in LANGUAGES:
            raise NotFound(key="error.language_invalid")
        return jsonify(dictionary.nested(lang))

    def translation_fields(data, partial=False) -> dict:
        fields = {}
        for name, column in storage.translations.FIELDS.items():
            if name not in data:
                continue
            value = data[name]
            if value is not None and not isinstance(value, str):
                raise ValidationError(key="error.invalid_payload")
            fields[column] = (value or "").strip() or None
        if fields.get("namespace") is None and (not partial or "namespace" in fields):
            fields["namespace"] = "common"
        for column in ("arabic_text", "english_text"):
            if (not partial or column in fields) and not fields.get(column):
                raise ValidationError(key="error.translation_fields_required")
        return fields

    @app.post("/api/translations")
    @admin_required
    def create_translation():
        data = json_body()
        key = (data.get("key") or "").strip() if isinstance(data.get("key"), str) else ""
        if not key:
            raise ValidationError(key="error.translation_fields_required")
        fields = translation_fields(data)
        if storage.translations.get(key):
            raise Conflict(key="error.translation_exists")
        row = storage.translations.create(key, fields)
        reload_translations()
        return jsonify(row.to_dict()), 201

    @app.put("/api/translations/<key>")
    @admin_required
    def update_translation(key: str):
        row = storage.translations.update(key, translation_fields(json_body(), partial=True))
        if not row:
            raise NotFound(key="error.translation_not_found")
        reload_translations()
        return jsonify(row.to_dict())

    @app.delete("/api/translations/<key>")
    @admin_required
    def delete_translation(key: str):
        if not storage.translations.delete(key):
            raise NotFound(key="error.translation_not_found")
        reload_translations()
        return jsonify({"success": True})

    @app.post("/api/translations/reload")
    @admin_required
    def reload_translations_api():
        return jsonify({"count": reload_translations()})

    # ---------- Media ----------
    @app.post("/api/generate-image")
    @login_required
    def generate_image():
        image_url = media.generate_image(json_body().get("prompt"), current_user.id)
        return jsonify({"success": True, "imageUrl": image_url})

    @app.post("/api/upload-image")
    @login_required
    def upload_image():
        data_url = media.image_to_data_url(request.files.get("image"))
        return jsonify({"success": True, "dataUrl": data_url})

    # ---------- Email ----------
    @app.post("/api/send-email")
    @admin_required
    def send_email_api():
        data = json_body()
        to = (data.get("to") or "").strip() if isinstance(data.get("to"), str) else ""
        subject = (data.get("subject") or "").strip() if isinstance(data.get("subject"), str) else ""
        html = data.get("html") if isinstance(data.get("html"), str) else ""
        if not to or not subject or not html.strip():
            raise ValidationError(key="error.email_fields_required")
        if not is_valid_email(to):
            raise ValidationError(key="error.email_invalid")
        mailer.send_email(to, subject, html, current_user.id)
        return jsonify({"success": True, "message": "Email sent successfully"})

    # ---------- Admin ----------
    @app.get("/admin")
    @admin_required
    def admin():
        return render_template(
            "admin.html",
            stats={
                "users": storage.users.count(),
                "events": storage.events.count(),
                "translations": storage.translations.count(),
            },
            users=storage.users.list_with_stats(),
            translations=storage.translations.list_all(),
            roles=ROLES,
        )

    @app.get("/api/admin/stats")
    @admin_required
    def admin_stats():
        return jsonify({
            "userCount": storage.users.count(),
            "eventCount": storage.events.count(),
            "translationCount": storage.translations.count(),
        })

    @app.get("/api/admin/users")
    @admin_required
    def admin_users():
        return jsonify(storage.users.list_with_stats())

    @app.put("/api/admin/users/<int:user_id>/role")
    @admin_required
    def admin_set_role(user_id: int):
        role = json_body().get("role")
        if role != "none" and role not in ROLES:
            raise ValidationError(key="error.role_invalid")
        if not storage.users.get(user_id):
            raise NotFound(key="error.user_not_found")
        if user_id == current_user.id and role != "admin":
            raise ValidationError(key="error.cannot_demote_self")
        assigned = storage.roles.assign(user_id, None if role == "none" else role)
        app.logger.info("User %s set role of user=%s to %s", current_user.id, user_id, role)
        return jsonify({"userId": user_id, "role": assigned.role if assigned else None})

    return app


def init_db(app):
    with app.app_context():
        db.create_all()
        print("Database initialized.")


def grant_role(app, email: str, role: str):
    with app.app_context():
        u = storage.users.by_email(email.strip().lower())
        if not u:
            print(f"No user with email {email}")
            return False
        storage.roles.assign(u.id, None if role == "none" else role)
        print(f"{u.email} is now {role}.")
        return True


if __name__ == "__main__":
    import sys
    app = create_app()
    if len(sys.argv) >= 2 and sys.argv[1] == "init-db":
        init_db(app)
    elif len(sys.argv) >= 4 and sys.argv[1] == "grant-role":
        init_db(app)
        sys.exit(0 if grant_role(app, sys.argv[2], sys.argv[3]) else 1)
    else:
        # auto-create tables (safe for sqlite dev)
        with app.app_context():
            db.create_all()
        app.run(debug=True)
