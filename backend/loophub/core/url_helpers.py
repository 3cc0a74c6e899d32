"""Public URL helpers for links embedded in notifications and responses."""

DEFAULT_BASE_URL = "https://loophub.vercel.app"


def get_base_url(base_url: str | None = None, vercel_url: str | None = None) -> str:
    """Explicit base URL, then the deployment host, then the production default."""
    if base_url:
        return base_url.rstrip("/")
    if vercel_url:
        return f"https://{vercel_url}"
    return DEFAULT_BASE_URL


def get_full_url(path: str, base_url: str) -> str:
    clean_path = path if path.startswith("/") else f"/{path}"
    return f"{base_url.rstrip('/')}{clean_path}"


def thread_path(thread_id: str) -> str:
    return f"/thread/{thread_id}"


def profile_path(user_id: str) -> str:
    return f"/profile/{user_id}"


def community_invite_path(code: str) -> str:
    return f"/communities/invite/{code}"


def notification_path(thread_id: str | None, from_user_id: str | None) -> str | None:
    """Threads win over people: a comment notification opens the thread."""
    if thread_id:
        return thread_path(thread_id)
    if from_user_id:
        return profile_path(from_user_id)
    return None
