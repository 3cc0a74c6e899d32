"""Input Validators: usernames, emails, passwords, HTML and slugs.

Invariants:
    - Validators return bool or an error message; they never raise
    - sanitize_html removes <script> blocks and inline on*= handlers only
"""

import re


MAX_TITLE_LENGTH = 200
MAX_CONTENT_LENGTH = 10000
MAX_FORUM_NAME_LENGTH = 100
MAX_BIO_LENGTH = 500
MAX_LOCATION_LENGTH = 100
MAX_REPORT_REASON_LENGTH = 500

USERNAME_MIN_LENGTH = 3
USERNAME_MAX_LENGTH = 30

_USERNAME_RE = re.compile(r"[a-zA-Z0-9_]{3,20}")
_USERNAME_CHARS_RE = re.compile(r"[a-zA-Z0-9_]+")
_EMAIL_RE = re.compile(r"[^\s@]+@[^\s@]+\.[^\s@]+")
_SCRIPT_RE = re.compile(
    r"<script\b[^<]*(?:(?!</script>)<[^<]*)*</script>", re.IGNORECASE,
)
_HANDLER_DQ_RE = re.compile(r'on\w+="[^"]*"', re.IGNORECASE)
_HANDLER_SQ_RE = re.compile(r"on\w+='[^']*'", re.IGNORECASE)
_URL_RE = re.compile(r"https?://[^\s/$.?#][^\s]*", re.IGNORECASE)


def validate_username(username: str) -> bool:
    return bool(_USERNAME_RE.fullmatch(username))


def check_username_format(username: str | None) -> str | None:
    """Error message for an onboarding/change username, None when acceptable."""
    if not username or not username.strip():
        return "Username is required"
    username = username.strip()
    if len(username) < USERNAME_MIN_LENGTH:
        return f"Username must be at least {USERNAME_MIN_LENGTH} characters"
    if len(username) > USERNAME_MAX_LENGTH:
        return f"Username must be at most {USERNAME_MAX_LENGTH} characters"
    if not _USERNAME_CHARS_RE.fullmatch(username):
        return "Username can only contain letters, numbers and underscores"
    return None


def validate_email(email: str) -> bool:
    return bool(_EMAIL_RE.fullmatch(email))


def validate_password(password: str) -> bool:
    """At least 8 characters with at least one letter and one digit."""
    return (
        len(password) >= 8
        and re.search(r"[a-zA-Z]", password) is not None
        and re.search(r"[0-9]", password) is not None
    )


def validate_url(url: str) -> bool:
    return bool(_URL_RE.fullmatch(url))


def sanitize_html(html: str) -> str:
    html = _SCRIPT_RE.sub("", html)
    html = _HANDLER_DQ_RE.sub("", html)
    return _HANDLER_SQ_RE.sub("", html)


def truncate_text(text: str, max_length: int) -> str:
    if len(text) <= max_length:
        return text
    return text[: max_length - 3] + "..."


def slugify(name: str, max_length: int = 50) -> str:
    slug = name.lower()
    slug = re.sub(r"[^a-z0-9\s-]", "", slug)
    slug = re.sub(r"\s+", "-", slug.strip())
    slug = re.sub(r"-+", "-", slug)
    return slug[:max_length].strip("-")
