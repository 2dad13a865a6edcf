from utils import utcnow

LANGUAGES = ("ar", "en")
FALLBACK_LANGUAGE = "en"

TRANSLATIONS = {
    "en": {
        "app.name": "Countdown",
        "app.tagline": "Count the days to what matters",
        "menu.language_to_en": "English",
        "menu.language_to_ar": "العربية",
        "menu.login": "Login",
        "menu.register": "Create account",
        "menu.logout": "Logout",
        "menu.admin": "Admin",
        "common.save": "Save",
        "common.cancel": "Cancel",
        "common.delete": "Delete",
        "common.delete_confirm": "Delete this event?",
        "common.add": "Add",
        "login.title": "Login",
        "login.email_label": "Email",
        "login.password_label": "Password",
        "login.button": "Login",
        "login.create_account": "Create account",
        "login.email_placeholder": "you@example.com",
        "register.title": "Create account",
        "register.name_label": "Name",
        "register.email_label": "Email",
        "register.password_label": "Password",
        "register.confirm_password_label": "Confirm password",
        "register.password_help": "Use at least {min_len} characters, including a letter and a number.",
        "register.button": "Create account",
        "register.have_account": "Already have an account?",
        "events.title": "My events",
        "events.empty": "No events yet. Add your first countdown.",
        "events.pending_notice": "These events are kept in this browser session. Log in to save them.",
        "events.time_until": "Time until",
        "events.time_since": "Time since",
        "events.duration": "Duration",
        "events.days": "days",
        "events.hours": "hours",
        "events.minutes": "minutes",
        "events.seconds": "seconds",
        "events.weeks": "weeks",
        "events.months": "months",
        "events.years": "years",
        "events.event_passed": "Event has passed",
        "events.not_started": "Not started yet",
        "add_event.title": "Add event",
        "add_event.title_label": "Title",
        "add_event.title_placeholder": "e.g. Ramadan",
        "add_event.date_label": "Date",
        "add_event.type_label": "Event type",
        "add_event.calculation_label": "Calculation",
        "add_event.repeat_label": "Repeat",
        "add_event.image_label": "Background image URL",
        "add_event.button": "Add event",
        "add_event.upload_label": "Upload an image",
        "add_event.upload_button": "Upload",
        "add_event.generate_label": "Describe an image to generate",
        "add_event.generate_button": "Generate with AI",
        "add_event.working": "Working...",
        "add_event.image_ready": "Background image ready.",
        "edit_event.title": "Edit",
        "edit_event.button": "Save changes",
        "calc.days-left": "Days left",
        "calc.days-passed": "Days passed",
        "calc.months-duration": "Duration in months",
        "calc.weeks-duration": "Duration in weeks",
        "calc.years-months": "Years and months",
        "repeat.none": "Does not repeat",
        "repeat.daily": "Daily",
        "repeat.weekly": "Weekly",
        "repeat.monthly": "Monthly",
        "repeat.yearly": "Yearly",
        "event_types.countdown": "Countdown",
        "event_types.eid": "Eid",
        "event_types.ramadan": "Ramadan",
        "event_types.love": "Love",
        "event_types.exams": "Exams",
        "event_types.birthday": "Birthday",
        "event_types.diet": "Diet",
        "event_types.exercise": "Exercise",
        "event_types.travel": "Travel",
        "event_types.marriage": "Marriage",
        "event_types.work": "Work",
        "event_types.quit-smoking": "Quit smoking",
        "event_types.newborn": "Newborn",
        "event_types.custom": "Custom",
        "admin.title": "Admin",
        "admin.users": "Users",
        "admin.translations": "Translations",
        "admin.user_count": "Users",
        "admin.event_count": "Events",
        "admin.translation_count": "Translations",
        "admin.role": "Role",
        "admin.email": "Email",
        "admin.joined": "Joined",
        "admin.key": "Key",
        "admin.arabic": "Arabic",
        "admin.english": "English",
        "admin.namespace": "Namespace",
        "admin.description": "Description",
        "admin.add_translation": "Add translation",
        "admin.save": "Save",
        "admin.delete": "Delete",
        "admin.delete_translation_confirm": "Delete this translation?",
        "flash.fill_all_fields": "Please fill in all fields.",
        "flash.passwords_no_match": "Passwords do not match.",
        "flash.password_too_weak": "Password must be at least {min_len} characters and include a letter and a number.",
        "flash.email_registered": "Email already registered. Please log in.",
        "flash.invalid_login": "Invalid email or password.",
        "flash.event_added": "Event added.",
        "flash.event_pending": "Event saved for this session. Log in to keep it.",
        "flash.event_deleted": "Event deleted.",
        "flash.pending_merged": "{count} saved event(s) added to your account.",
        "flash.event_updated": "Event updated.",
        "error.generic": "Something went wrong. Please try again.",
        "error.invalid_payload": "The request body is not valid.",
        "error.login_required": "Please log in to continue.",
        "error.admin_required": "Admin role required.",
        "error.not_found": "Not found.",
        "error.event_not_found": "Event not found.",
        "error.translation_not_found": "Translation not found.",
        "error.profile_not_found": "Profile not found.",
        "error.user_not_found": "User not found.",
        "error.conflict": "This already exists.",
        "error.profile_exists": "A profile already exists for this account.",
        "error.username_taken": "That username is taken.",
        "error.translation_exists": "A translation with this key already exists.",
        "error.rate_limited": "Too many requests. Try again later.",
        "error.image_rate_limited": "Rate limit exceeded: maximum {limit} image generations per hour.",
        "error.upstream": "An external service failed. Try again later.",
        "error.title_required": "Title is required.",
        "error.title_too_long": "Title must be at most {max_len} characters.",
        "error.event_date_required": "Event date is required.",
        "error.event_date_invalid": "Event date is not a valid date.",
        "error.event_type_invalid": "Event type is not valid.",
        "error.calculation_type_invalid": "Calculation type is not valid.",
        "error.repeat_option_invalid": "Repeat option is not valid.",
        "error.background_image_invalid": "Background image must be a URL or an image data URL.",
        "error.translation_fields_required": "Key, Arabic text and English text are required.",
        "error.role_invalid": "Role is not valid.",
        "error.cannot_demote_self": "You cannot remove your own admin role.",
        "error.email_fields_required": "Missing required fields: to, subject, html.",
        "error.email_invalid": "Invalid email address.",
        "error.email_disabled": "Email service is not configured.",
        "error.email_failed": "Failed to send email.",
        "error.prompt_required": "Prompt is required.",
        "error.prompt_too_long": "Prompt too long (max {max_len} characters).",
        "error.openai_not_configured": "Image generation is not configured.",
        "error.openai_invalid_key": "Invalid OpenAI API key.",
        "error.openai_quota": "OpenAI API quota exceeded.",
        "error.openai_bad_request": "Invalid request to OpenAI API.",
        "error.openai_failed": "Failed to generate image.",
        "error.image_required": "Please choose an image file.",
        "error.image_type_invalid": "Please select an image file.",
        "error.image_too_large": "Image size must be less than {max_mb} MB.",
        "error.pending_invalid": "Pending events must be sent as a list.",
        "error.pending_too_many": "At most {limit} pending events can be saved at once.",
        "error.pending_too_large": "This browser session cannot hold more events. Log in to save them.",
        "error.language_invalid": "Unsupported language.",
    },
    "ar": {
        "app.name": "العد التنازلي",
        "app.tagline": "احسب الأيام لما يهمك",
        "menu.language_to_en": "English",
        "menu.language_to_ar": "العربية",
        "menu.login": "تسجيل الدخول",
        "menu.register": "إنشاء حساب",
        "menu.logout": "تسجيل الخروج",
        "menu.admin": "لوحة الإدارة",
        "common.save": "حفظ",
        "common.cancel": "إلغاء",
        "common.delete": "حذف",
        "common.delete_confirm": "هل تريد حذف هذا الحدث؟",
        "common.add": "إضافة",
        "login.title": "تسجيل الدخول",
        "login.email_label": "البريد الإلكتروني",
        "login.password_label": "كلمة المرور",
        "login.button": "دخول",
        "login.create_account": "إنشاء حساب",
        "login.email_placeholder": "you@example.com",
        "register.title": "إنشاء حساب",
        "register.name_label": "الاسم",
        "register.email_label": "البريد الإلكتروني",
        "register.password_label": "كلمة المرور",
        "register.confirm_password_label": "تأكيد كلمة المرور",
        "register.password_help": "استخدم {min_len} أحرف على الأقل، تتضمن حرفاً ورقماً.",
        "register.button": "إنشاء حساب",
        "register.have_account": "لديك حساب بالفعل؟",
        "events.title": "مناسباتي",
        "events.empty": "لا توجد مناسبات بعد. أضف أول عد تنازلي.",
        "events.pending_notice": "هذه المناسبات محفوظة في جلسة المتصفح. سجّل الدخول لحفظها.",
        "events.time_until": "الوقت المتبقي",
        "events.time_since": "الوقت المنقضي",
        "events.duration": "المدة",
        "events.days": "يوم",
        "events.hours": "ساعة",
        "events.minutes": "دقيقة",
        "events.seconds": "ثانية",
        "events.weeks": "أسبوع",
        "events.months": "شهر",
        "events.years": "سنة",
        "events.event_passed": "انتهى الحدث",
        "events.not_started": "لم يبدأ بعد",
        "add_event.title": "إضافة حدث",
        "add_event.title_label": "العنوان",
        "add_event.title_placeholder": "مثال: رمضان",
        "add_event.date_label": "التاريخ",
        "add_event.type_label": "نوع الحدث",
        "add_event.calculation_label": "طريقة الحساب",
        "add_event.repeat_label": "التكرار",
        "add_event.image_label": "رابط صورة الخلفية",
        "add_event.button": "إضافة الحدث",
        "add_event.upload_label": "رفع صورة",
        "add_event.upload_button": "رفع",
        "add_event.generate_label": "صف الصورة المطلوب توليدها",
        "add_event.generate_button": "توليد بالذكاء الاصطناعي",
        "add_event.working": "جارٍ العمل...",
        "add_event.image_ready": "صورة الخلفية جاهزة.",
        "edit_event.title": "تعديل",
        "edit_event.button": "حفظ التغييرات",
        "calc.days-left": "الأيام المتبقية",
        "calc.days-passed": "الأيام المنقضية",
        "calc.months-duration": "المدة بالأشهر",
        "calc.weeks-duration": "المدة بالأسابيع",
        "calc.years-months": "السنوات والأشهر",
        "repeat.none": "بدون تكرار",
        "repeat.daily": "يومياً",
        "repeat.weekly": "أسبوعياً",
        "repeat.monthly": "شهرياً",
        "repeat.yearly": "سنوياً",
        "event_types.countdown": "عد تنازلي",
        "event_types.eid": "العيد",
        "event_types.ramadan": "رمضان",
        "event_types.love": "حب",
        "event_types.exams": "امتحانات",
        "event_types.birthday": "عيد ميلاد",
        "event_types.diet": "حمية",
        "event_types.exercise": "رياضة",
        "event_types.travel": "سفر",
        "event_types.marriage": "زواج",
        "event_types.work": "عمل",
        "event_types.quit-smoking": "الإقلاع عن التدخين",
        "event_types.newborn": "مولود جديد",
        "event_types.custom": "مخصص",
        "admin.title": "لوحة الإدارة",
        "admin.users": "المستخدمون",
        "admin.translations": "الترجمات",
        "admin.user_count": "المستخدمون",
        "admin.event_count": "الأحداث",
        "admin.translation_count": "الترجمات",
        "admin.role": "الدور",
        "admin.email": "البريد الإلكتروني",
        "admin.joined": "تاريخ الانضمام",
        "admin.key": "المفتاح",
        "admin.arabic": "العربية",
        "admin.english": "الإنجليزية",
        "admin.namespace": "النطاق",
        "admin.description": "الوصف",
        "admin.add_translation": "إضافة ترجمة",
        "admin.save": "حفظ",
        "admin.delete": "حذف",
        "admin.delete_translation_confirm": "هل تريد حذف هذه الترجمة؟",
        "flash.fill_all_fields": "يرجى تعبئة جميع الحقول.",
        "flash.passwords_no_match": "كلمتا المرور غير متطابقتين.",
        "flash.password_too_weak": "يجب أن تتكون كلمة المرور من {min_len} أحرف على الأقل وتتضمن حرفاً ورقماً.",
        "flash.email_registered": "البريد الإلكتروني مسجل مسبقاً. يرجى تسجيل الدخول.",
        "flash.invalid_login": "البريد الإلكتروني أو كلمة المرور غير صحيحة.",
        "flash.event_added": "تمت إضافة الحدث.",
        "flash.event_pending": "تم حفظ الحدث لهذه الجلسة. سجّل الدخول للاحتفاظ به.",
        "flash.event_deleted": "تم حذف الحدث.",
        "flash.pending_merged": "تمت إضافة {count} من الأحداث المحفوظة إلى حسابك.",
        "flash.event_updated": "تم تحديث الحدث.",
        "error.generic": "حدث خطأ ما. يرجى المحاولة مرة أخرى.",
        "error.invalid_payload": "محتوى الطلب غير صالح.",
        "error.login_required": "يرجى تسجيل الدخول للمتابعة.",
        "error.admin_required": "يتطلب هذا صلاحية المدير.",
        "error.not_found": "غير موجود.",
        "error.event_not_found": "الحدث غير موجود.",
        "error.translation_not_found": "الترجمة غير موجودة.",
        "error.profile_not_found": "الملف الشخصي غير موجود.",
        "error.user_not_found": "المستخدم غير موجود.",
        "error.conflict": "هذا العنصر موجود مسبقاً.",
        "error.profile_exists": "يوجد ملف شخصي لهذا الحساب مسبقاً.",
        "error.username_taken": "اسم المستخدم محجوز.",
        "error.translation_exists": "توجد ترجمة بهذا المفتاح مسبقاً.",
        "error.rate_limited": "طلبات كثيرة. حاول لاحقاً.",
        "error.image_rate_limited": "تم تجاوز الحد: {limit} صور كحد أقصى في الساعة.",
        "error.upstream": "فشلت خدمة خارجية. حاول لاحقاً.",
        "error.title_required": "العنوان مطلوب.",
        "error.title_too_long": "يجب ألا يتجاوز العنوان {max_len} حرفاً.",
        "error.event_date_required": "تاريخ الحدث مطلوب.",
        "error.event_date_invalid": "تاريخ الحدث غير صالح.",
        "error.event_type_invalid": "نوع الحدث غير صالح.",
        "error.calculation_type_invalid": "طريقة الحساب غير صالحة.",
        "error.repeat_option_invalid": "خيار التكرار غير صالح.",
        "error.background_image_invalid": "يجب أن تكون صورة الخلفية رابطاً أو صورة مضمّنة.",
        "error.translation_fields_required": "المفتاح والنص العربي والنص الإنجليزي مطلوبة.",
        "error.role_invalid": "الدور غير صالح.",
        "error.cannot_demote_self": "لا يمكنك إزالة صلاحية المدير عن نفسك.",
        "error.email_fields_required": "حقول مطلوبة مفقودة: المستلم، الموضوع، المحتوى.",
        "error.email_invalid": "عنوان البريد الإلكتروني غير صالح.",
        "error.email_disabled": "خدمة البريد غير مهيأة.",
        "error.email_failed": "فشل إرسال البريد.",
        "error.prompt_required": "الوصف مطلوب.",
        "error.prompt_too_long": "الوصف طويل جداً (الحد الأقصى {max_len} حرف).",
        "error.openai_not_configured": "توليد الصور غير مهيأ.",
        "error.openai_invalid_key": "مفتاح OpenAI غير صالح.",
        "error.openai_quota": "تم تجاوز حصة OpenAI.",
        "error.openai_bad_request": "طلب غير صالح إلى OpenAI.",
        "error.openai_failed": "فشل توليد الصورة.",
        "error.image_required": "يرجى اختيار ملف صورة.",
        "error.image_type_invalid": "يرجى اختيار ملف صورة.",
        "error.image_too_large": "يجب أن يكون حجم الصورة أقل من {max_mb} ميغابايت.",
        "error.pending_invalid": "يجب إرسال الأحداث المعلقة كقائمة.",
        "error.pending_too_many": "يمكن حفظ {limit} أحداث معلقة كحد أقصى دفعة واحدة.",
        "error.pending_too_large": "لا تتسع جلسة المتصفح لمزيد من الأحداث. سجّل الدخول لحفظها.",
        "error.language_invalid": "اللغة غير مدعومة.",
    },
}


def normalize_language(lang, default: str = "ar") -> str:
    lang = (lang or "").strip().lower()
    return lang if lang in LANGUAGES else default


class TranslationDictionary:
    """Built-in strings plus overrides loaded from the translations table.

    The app keeps one instance in ``app.extensions["i18n"]``; nothing changes
    it except an explicit ``reload`` with the current rows.
    """

    def __init__(self, defaults=None):
        self.defaults = defaults if defaults is not None else TRANSLATIONS
        self.overrides = {lang: {} for lang in LANGUAGES}
        self.loaded_at = None

    def reload(self, rows) -> int:
        overrides = {lang: {} for lang in LANGUAGES}
        count = 0
        for row in rows:
            overrides["ar"][row.key] = row.arabic_text
            overrides["en"][row.key] = row.english_text
            count += 1
        self.overrides = overrides
        self.loaded_at = utcnow()
        return count

    def lookup(self, lang: str, key: str) -> str | None:
        for candidate in (lang, FALLBACK_LANGUAGE):
            text = self.overrides.get(candidate, {}).get(key) or self.defaults.get(candidate, {}).get(key)
            if text:
                return text
        return None

    def translate(self, lang: str, key: str, **kwargs) -> str:
        text = self.lookup(lang, key) or key
        if kwargs:
            try:
                text = text.format(**kwargs)
            except (KeyError, IndexError, ValueError):
                pass
        return text

    def catalog(self, lang: str) -> dict:
        merged = dict(self.defaults.get(lang, {}))
        merged.update(self.overrides.get(lang, {}))
        return merged

    def nested(self, lang: str) -> dict:
        """Dot-path keys folded into nested objects, e.g. ``events.days``."""
        result = {}
        for key, text in sorted(self.catalog(lang).items()):
            parts = key.split(".")
            current = result
            for part in parts[:-1]:
                node = current.get(part)
                if not isinstance(node, dict):
                    node = {}
                    current[part] = node
                current = node
            if not isinstance(current.get(parts[-1]), dict):
                current[parts[-1]] = text
        return result
