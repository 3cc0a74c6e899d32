"""Poll Rules: option cleaning, closing, per-type vote limits and result tallies.

Invariants:
    - A poll has 2-6 submitted options and at least 2 non-blank ones after trimming
    - A single-choice poll accepts one ballot per user; multiple-choice caps total picks at max_choices
    - A poll is closed when flagged or once closes_at has passed
    - Percentages are 0 when nobody voted

Design Decisions:
    - Rule checks return an error message (None = ok); services turn it into BusinessRuleError
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable


MIN_OPTIONS = 2
MAX_OPTIONS = 6
MIN_QUESTION_LENGTH = 5


def ensure_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes (SQLite drops tzinfo on the way back)."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def check_question(question: str | None) -> str | None:
    if not question or len(question.strip()) < MIN_QUESTION_LENGTH:
        return f"Question must be at least {MIN_QUESTION_LENGTH} characters"
    return None


def clean_options(options: list[str] | None) -> tuple[list[str], str | None]:
    """Trimmed non-blank options plus an error message when the set is unusable."""
    if not options or len(options) < MIN_OPTIONS or len(options) > MAX_OPTIONS:
        return [], f"Poll must have {MIN_OPTIONS}-{MAX_OPTIONS} options"
    cleaned = [o.strip() for o in options if o and o.strip()]
    if len(cleaned) < MIN_OPTIONS:
        return [], f"At least {MIN_OPTIONS} valid options required"
    return cleaned, None


def is_poll_closed(
    is_closed: bool, closes_at: datetime | None, now: datetime | None = None,
) -> bool:
    if is_closed:
        return True
    if closes_at is None:
        return False
    now = now or datetime.now(timezone.utc)
    return ensure_utc(closes_at) <= ensure_utc(now)


def check_vote(
    poll_type: str, max_choices: int, existing_votes: int, new_votes: int,
) -> str | None:
    if new_votes == 0:
        return "At least one option must be selected"
    if poll_type == "single":
        if existing_votes > 0:
            return "You have already voted on this poll"
        if new_votes > 1:
            return "You can only select one option"
        return None
    if existing_votes + new_votes > max_choices:
        return f"You can only select up to {max_choices} options"
    return None


@dataclass
class OptionResult:
    option_id: str
    option_text: str
    option_order: int
    vote_count: int
    percentage: float

    def to_dict(self) -> dict:
        return {
            "option_id": self.option_id,
            "option_text": self.option_text,
            "option_order": self.option_order,
            "vote_count": self.vote_count,
            "percentage": self.percentage,
        }


def tally_results(
    options: Iterable[tuple[str, str, int]], voted_option_ids: Iterable[str],
) -> list[OptionResult]:
    """Count votes per (option_id, text, order) and compute percentages of all votes."""
    counts: dict[str, int] = {}
    total = 0
    for option_id in voted_option_ids:
        counts[str(option_id)] = counts.get(str(option_id), 0) + 1
        total += 1
    results = [
        OptionResult(
            option_id=str(option_id),
            option_text=text,
            option_order=order,
            vote_count=counts.get(str(option_id), 0),
            percentage=(
                round(counts.get(str(option_id), 0) * 100 / total, 2) if total else 0
            ),
        )
        for option_id, text, order in options
    ]
    return sorted(results, key=lambda r: r.option_order)
