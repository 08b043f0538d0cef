"""
English/Arabic message catalog.

``get_translation`` is a pure lookup: the requested language first, then
English, then the key itself so a missing entry is visible rather than blank.
"""
from typing import Dict, Literal

Language = Literal["en", "ar"]

DEFAULT_LANGUAGE: Language = "en"
RTL_LANGUAGES = {"ar"}

TRANSLATIONS: Dict[str, Dict[str, str]] = {
    "en": {
        # Login
        "auth.login.title": "Sign in to EventHub",
        "auth.login.success.title": "Welcome back",
        "auth.login.success.description": "You have signed in successfully.",
        "auth.login.error.title": "Sign in failed",
        "auth.login.error.description": "Invalid username or password.",
        # Registration
        "auth.register.success.title": "Account created",
        "auth.register.success.description": "Your account is ready.",
        "auth.register.error.title": "Registration failed",
        "auth.register.error.description": "We could not create your account.",
        # Logout
        "auth.logout.success.title": "Signed out",
        "auth.logout.error.title": "Sign out failed",
        "auth.logout.error.description": "We could not sign you out. Please try again.",
        # Forgot password, step 1
        "auth.forgot.title": "Forgot your password?",
        "auth.forgot.subtitle": "Enter your email to continue.",
        "auth.forgot.success.title": "Email verified",
        "auth.forgot.success.description": "Choose a new password for your account.",
        "auth.forgot.error.title": "Something went wrong",
        "auth.forgot.error.description": "We could not verify this email. Please try again later.",
        # Forgot password, step 2
        "auth.forgot.password.title": "Set a new password",
        "auth.forgot.password.success.title": "Password updated",
        "auth.forgot.password.success.description": "You can now sign in with your new password.",
        "auth.forgot.password.error.title": "Password reset failed",
        "auth.forgot.password.error.description": "We could not reset your password. Please start again.",
        # Reset by emailed token
        "auth.reset.title": "Reset your password",
        "auth.reset.loading": "Loading...",
        "auth.reset.success.title": "Password updated",
        "auth.reset.success.description": "You can now sign in with your new password.",
        "auth.reset.error.title": "Password reset failed",
        "auth.reset.error.description": "This reset link is invalid or has expired.",
        "auth.reset.error.notoken": "The reset link is missing its token.",
        # Form validation
        "validation.required": "This field is required.",
        "validation.email.invalid": "Please enter a valid email address.",
        "validation.password.min": "Password must be at least 8 characters long.",
        "validation.password.strength": "Password must contain at least one letter and one number.",
        "validation.password.mismatch": "Passwords do not match.",
        "validation.role.invalid": "Please choose a valid role.",
        "validation.invalid": "Please check this field.",
        # Roles
        "role.admin": "Administrator",
        "role.organizer": "Event organizer",
        "role.attendee": "Attendee",
        "role.sponsor": "Sponsor",
        "role.service_provider": "Service provider",
    },
    "ar": {
        "auth.login.title": "تسجيل الدخول إلى EventHub",
        "auth.login.success.title": "مرحباً بعودتك",
        "auth.login.success.description": "تم تسجيل الدخول بنجاح.",
        "auth.login.error.title": "فشل تسجيل الدخول",
        "auth.login.error.description": "اسم المستخدم أو كلمة المرور غير صحيحة.",
        "auth.register.success.title": "تم إنشاء الحساب",
        "auth.register.success.description": "حسابك جاهز.",
        "auth.register.error.title": "فشل التسجيل",
        "auth.register.error.description": "تعذر إنشاء حسابك.",
        "auth.logout.success.title": "تم تسجيل الخروج",
        "auth.logout.error.title": "فشل تسجيل الخروج",
        "auth.logout.error.description": "تعذر تسجيل خروجك. يرجى المحاولة مرة أخرى.",
        "auth.forgot.title": "نسيت كلمة المرور؟",
        "auth.forgot.subtitle": "أدخل بريدك الإلكتروني للمتابعة.",
        "auth.forgot.success.title": "تم التحقق من البريد الإلكتروني",
        "auth.forgot.success.description": "اختر كلمة مرور جديدة لحسابك.",
        "auth.forgot.error.title": "حدث خطأ ما",
        "auth.forgot.error.description": "تعذر التحقق من هذا البريد الإلكتروني. يرجى المحاولة لاحقاً.",
        "auth.forgot.password.title": "تعيين كلمة مرور جديدة",
        "auth.forgot.password.success.title": "تم تحديث كلمة المرور",
        "auth.forgot.password.success.description": "يمكنك الآن تسجيل الدخول بكلمة المرور الجديدة.",
        "auth.forgot.password.error.title": "فشل إعادة تعيين كلمة المرور",
        "auth.forgot.password.error.description": "تعذر إعادة تعيين كلمة المرور. يرجى البدء من جديد.",
        "auth.reset.title": "إعادة تعيين كلمة المرور",
        "auth.reset.loading": "جارٍ التحميل...",
        "auth.reset.success.title": "تم تحديث كلمة المرور",
        "auth.reset.success.description": "يمكنك الآن تسجيل الدخول بكلمة المرور الجديدة.",
        "auth.reset.error.title": "فشل إعادة تعيين كلمة المرور",
        "auth.reset.error.description": "رابط إعادة التعيين غير صالح أو منتهي الصلاحية.",
        "auth.reset.error.notoken": "رابط إعادة التعيين لا يحتوي على الرمز.",
        "validation.required": "هذا الحقل مطلوب.",
        "validation.email.invalid": "يرجى إدخال بريد إلكتروني صحيح.",
        "validation.password.min": "يجب أن تتكون كلمة المرور من 8 أحرف على الأقل.",
        "validation.password.strength": "يجب أن تحتوي كلمة المرور على حرف واحد ورقم واحد على الأقل.",
        "validation.password.mismatch": "كلمتا المرور غير متطابقتين.",
        "validation.role.invalid": "يرجى اختيار دور صالح.",
        "validation.invalid": "يرجى التحقق من هذا الحقل.",
        "role.admin": "مدير النظام",
        "role.organizer": "منظم فعاليات",
        "role.attendee": "حاضر",
        "role.sponsor": "راعٍ",
        "role.service_provider": "مقدم خدمة",
    },
}


def get_translation(language: str, key: str) -> str:
    """Return the localized string for ``key``, falling back to English, then the key."""
    catalog = TRANSLATIONS.get(language) or TRANSLATIONS[DEFAULT_LANGUAGE]
    if key in catalog:
        return catalog[key]
    return TRANSLATIONS[DEFAULT_LANGUAGE].get(key, key)


def normalize_language(value: str) -> Language:
    """Map a stored preference or Accept-Language value to a supported language."""
    if not value:
        return DEFAULT_LANGUAGE
    primary = value.split(",")[0].split(";")[0].strip().lower()
    if primary.startswith("ar"):
        return "ar"
    return DEFAULT_LANGUAGE


class Translator:
    """Holds the active language for a client session."""

    def __init__(self, language: str = DEFAULT_LANGUAGE):
        self.language: Language = normalize_language(language)

    def set_language(self, language: str) -> None:
        self.language = normalize_language(language)

    @property
    def is_rtl(self) -> bool:
        return self.language in RTL_LANGUAGES

    @property
    def direction(self) -> str:
        return "rtl" if self.is_rtl else "ltr"

    def t(self, key: str) -> str:
        return get_translation(self.language, key)
