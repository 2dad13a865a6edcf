import base64
import re
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from errors import ValidationError

MS_PER_SECOND = 1000
MS_PER_MINUTE = 60 * MS_PER_SECOND
MS_PER_HOUR = 60 * MS_PER_MINUTE
MS_PER_DAY = 24 * MS_PER_HOUR
ONE_MS = timedelta(milliseconds=1)

DAYS_LEFT = "days-left"
DAYS_PASSED = "days-passed"
MONTHS_DURATION = "months-duration"
WEEKS_DURATION = "weeks-duration"
YEARS_MONTHS = "years-months"

CALCULATION_TYPES = (DAYS_LEFT, DAYS_PASSED, MONTHS_DURATION, WEEKS_DURATION, YEARS_MONTHS)
DURATION_CALCULATION_TYPES = frozenset((DAYS_PASSED, MONTHS_DURATION, WEEKS_DURATION, YEARS_MONTHS))
REPEAT_OPTIONS = ("none", "daily", "weekly", "monthly", "yearly")
EVENT_TYPES = (
    "eid", "ramadan", "love", "exams", "birthday", "diet", "exercise",
    "travel", "marriage", "work", "quit-smoking", "newborn", "custom",
)
DEFAULT_EVENT_TYPE = "countdown"
EVENT_TYPE_MAX_LENGTH = 50

STATUS_UPCOMING = "upcoming"
STATUS_EXPIRED = "expired"
STATUS_ONGOING = "ongoing"

TAG_RE = re.compile(r"<[^>]*>")
EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
DATA_IMAGE_RE = re.compile(r"^data:image/[A-Za-z0-9.+-]+;base64,[A-Za-z0-9+/]+=*$")
# characters that could close a CSS url() or an HTML attribute
UNSAFE_URL_CHARS_RE = re.compile(r"[\s'\"()\\<>]")


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


def as_utc(value: datetime) -> datetime:
    """Naive datetimes are UTC already; aware ones are converted and made naive."""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def parse_instant(raw) -> datetime:
    if isinstance(raw, datetime):
        return as_utc(raw)
    if not isinstance(raw, str) or not raw.strip():
        raise ValueError("empty date")
    value = raw.strip()
    if value.endswith(("Z", "z")):
        value = value[:-1] + "+00:00"
    try:
        return as_utc(datetime.fromisoformat(value))
    except OverflowError as exc:
        # offsets near year 1 or 9999 leave the datetime range
        raise ValueError(f"date out of range: {raw!r}") from exc


def format_instant(value: datetime | None) -> str | None:
    if value is None:
        return None
    return as_utc(value).isoformat(timespec="milliseconds") + "Z"


def is_duration_calculation(calculation_type: str) -> bool:
    return calculation_type in DURATION_CALCULATION_TYPES


@dataclass(frozen=True)
class Countdown:
    calculation_type: str
    status: str
    days: int = 0
    hours: int = 0
    minutes: int = 0
    seconds: int = 0
    weeks: int | None = None
    months: int | None = None
    years: int | None = None

    @property
    def has_breakdown(self) -> bool:
        return self.status != STATUS_EXPIRED

    def breakdown(self):
        if not self.has_breakdown:
            return None
        out = {
            "days": self.days,
            "hours": self.hours,
            "minutes": self.minutes,
            "seconds": self.seconds,
        }
        for unit in ("weeks", "months", "years"):
            value = getattr(self, unit)
            if value is not None:
                out[unit] = value
        return out

    def to_dict(self):
        return {
            "calculationType": self.calculation_type,
            "status": self.status,
            "breakdown": self.breakdown(),
        }


def _split_remainder(diff_ms: int) -> tuple[int, int, int]:
    rest = diff_ms % MS_PER_DAY
    hours = rest // MS_PER_HOUR
    minutes = (rest % MS_PER_HOUR) // MS_PER_MINUTE
    seconds = (rest % MS_PER_MINUTE) // MS_PER_SECOND
    return hours, minutes, seconds


def calculate_countdown(event_date: datetime, now: datetime, calculation_type: str = DAYS_LEFT) -> Countdown:
    """Turn an event date and the current instant into a displayable countdown.

    ``days-left`` counts down and expires once the date is reached. Every other
    mode is a duration: ``days-passed`` waits for the date and then counts up,
    the week/month/year modes always report the distance to the anchor date.
    None of the duration modes ever expire.
    """
    if calculation_type not in CALCULATION_TYPES:
        raise ValueError(f"unknown calculation type: {calculation_type!r}")

    diff_ms = (as_utc(event_date) - as_utc(now)) // ONE_MS

    if not is_duration_calculation(calculation_type):
        if diff_ms <= 0:
            return Countdown(calculation_type, STATUS_EXPIRED)
        days = -(-diff_ms // MS_PER_DAY)
        hours, minutes, seconds = _split_remainder(diff_ms)
        return Countdown(calculation_type, STATUS_UPCOMING, days, hours, minutes, seconds)

    if calculation_type == DAYS_PASSED:
        if diff_ms > 0:
            return Countdown(calculation_type, STATUS_UPCOMING)
        elapsed_ms = -diff_ms
    else:
        elapsed_ms = abs(diff_ms)

    days = elapsed_ms // MS_PER_DAY
    hours, minutes, seconds = _split_remainder(elapsed_ms)
    extra = {}
    if calculation_type == WEEKS_DURATION:
        extra["weeks"] = days // 7
    elif calculation_type == MONTHS_DURATION:
        extra["months"] = days // 30
    elif calculation_type == YEARS_MONTHS:
        extra["years"] = days // 365
        extra["months"] = (days % 365) // 30
    return Countdown(calculation_type, STATUS_ONGOING, days, hours, minutes, seconds, **extra)


def countdown_label_key(calculation_type: str) -> str:
    if calculation_type == DAYS_LEFT:
        return "events.time_until"
    if calculation_type == DAYS_PASSED:
        return "events.time_since"
    return "events.duration"


def sanitize_title(raw) -> str:
    return TAG_RE.sub("", raw or "").strip()


def is_valid_image_ref(value: str) -> bool:
    """Accept base64 image data URLs, absolute http(s) URLs and site paths.

    The value ends up inside ``url('...')`` on the board, so anything that
    could close the quote or the parenthesis is refused.
    """
    if value.startswith("data:"):
        return DATA_IMAGE_RE.match(value) is not None
    if UNSAFE_URL_CHARS_RE.search(value):
        return False
    if value.startswith(("http://", "https://")):
        return True
    return value.startswith("/") and not value.startswith("//")


def validate_event_fields(data, partial: bool = False, title_max_length: int = 100) -> dict:
    """Check an incoming event payload and return model field values.

    With ``partial`` only the keys present are validated and no defaults are
    applied, which is what an update wants.
    """
    if not isinstance(data, dict):
        raise ValidationError(key="error.invalid_payload")
    fields = {}

    if not partial or "title" in data:
        raw_title = data.get("title")
        if raw_title is not None and not isinstance(raw_title, str):
            raise ValidationError(key="error.title_required")
        raw_title = (raw_title or "").strip()
        if len(raw_title) > title_max_length:
            raise ValidationError(key="error.title_too_long", max_len=title_max_length)
        title = sanitize_title(raw_title)
        if not title:
            raise ValidationError(key="error.title_required")
        fields["title"] = title

    if not partial or "eventDate" in data:
        raw_date = data.get("eventDate")
        if not raw_date:
            raise ValidationError(key="error.event_date_required")
        try:
            fields["event_date"] = parse_instant(raw_date)
        except (TypeError, ValueError):
            raise ValidationError(key="error.event_date_invalid")

    if "eventType" in data or not partial:
        event_type = data.get("eventType")
        if event_type is None or (isinstance(event_type, str) and not event_type.strip()):
            if not partial:
                fields["event_type"] = DEFAULT_EVENT_TYPE
        else:
            if not isinstance(event_type, str) or len(event_type.strip()) > EVENT_TYPE_MAX_LENGTH:
                raise ValidationError(key="error.event_type_invalid")
            fields["event_type"] = sanitize_title(event_type) or DEFAULT_EVENT_TYPE

    if "calculationType" in data or not partial:
        calc = data.get("calculationType")
        if calc is None or calc == "":
            if not partial:
                fields["calculation_type"] = DAYS_LEFT
        elif calc not in CALCULATION_TYPES:
            raise ValidationError(key="error.calculation_type_invalid")
        else:
            fields["calculation_type"] = calc

    if "repeatOption" in data or not partial:
        repeat = data.get("repeatOption")
        if repeat is None or repeat == "":
            if not partial:
                fields["repeat_option"] = "none"
        elif repeat not in REPEAT_OPTIONS:
            raise ValidationError(key="error.repeat_option_invalid")
        else:
            fields["repeat_option"] = repeat

    if "backgroundImage" in data:
        image = data.get("backgroundImage")
        if isinstance(image, str):
            image = image.strip()
        if image is None or image == "":
            fields["background_image"] = None
        elif not isinstance(image, str) or not is_valid_image_ref(image):
            raise ValidationError(key="error.background_image_invalid")
        else:
            fields["background_image"] = image

    return fields


def is_valid_email(value: str) -> bool:
    return bool(value) and EMAIL_RE.match(value) is not None


def encode_data_url(payload: bytes, mimetype: str) -> str:
    return f"data:{mimetype};base64,{base64.b64encode(payload).decode('ascii')}"
