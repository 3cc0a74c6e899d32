"""Poll Rules: option cleaning, closing, vote limits and tallies."""

from datetime import datetime, timedelta, timezone

from loophub.core.polls import (
    check_question, check_vote, clean_options, ensure_utc, is_poll_closed, tally_results,
)


NOW = datetime(2026, 5, 1, 12, 0, tzinfo=timezone.utc)


def test_question_needs_five_characters():
    assert check_question("Why?") is not None
    assert check_question("   Why?   ") is not None
    assert check_question("Which one?") is None
    assert check_question(None) is not None


def test_clean_options_trims_and_drops_blanks():
    cleaned, error = clean_options(["  Red ", "", "Blue", "   "])
    assert error is None
    assert cleaned == ["Red", "Blue"]


def test_clean_options_counts_submitted_entries():
    assert clean_options(["only"])[1] == "Poll must have 2-6 options"
    assert clean_options([str(i) for i in range(7)])[1] == "Poll must have 2-6 options"
    assert clean_options(None)[1] is not None


def test_clean_options_needs_two_valid():
    cleaned, error = clean_options(["Yes", "  "])
    assert cleaned == []
    assert error == "At least 2 valid options required"


def test_closed_flag_wins():
    assert is_poll_closed(True, None, now=NOW)


def test_closes_at_boundary():
    assert not is_poll_closed(False, None, now=NOW)
    assert not is_poll_closed(False, NOW + timedelta(seconds=1), now=NOW)
    assert is_poll_closed(False, NOW, now=NOW)


def test_naive_closes_at_is_treated_as_utc():
    naive = (NOW - timedelta(minutes=1)).replace(tzinfo=None)
    assert is_poll_closed(False, naive, now=NOW)
    assert ensure_utc(naive).tzinfo is timezone.utc


def test_single_choice_rules():
    assert check_vote("single", 1, 0, 1) is None
    assert check_vote("single", 1, 1, 1) == "You have already voted on this poll"
    assert check_vote("single", 1, 0, 2) == "You can only select one option"


def test_multiple_choice_caps_total_picks():
    assert check_vote("multiple", 3, 1, 2) is None
    assert check_vote("multiple", 3, 2, 2) == "You can only select up to 3 options"


def test_empty_selection_rejected():
    assert check_vote("multiple", 3, 0, 0) == "At least one option must be selected"


def test_tally_percentages_and_order():
    options = [("b", "Blue", 1), ("a", "Red", 0), ("c", "Green", 2)]
    results = tally_results(options, ["a", "a", "b", "a"])
    assert [r.option_text for r in results] == ["Red", "Blue", "Green"]
    assert [r.vote_count for r in results] == [3, 1, 0]
    assert [r.percentage for r in results] == [75.0, 25.0, 0]


def test_tally_without_votes_is_zero():
    results = tally_results([("a", "Red", 0), ("b", "Blue", 1)], [])
    assert all(r.vote_count == 0 and r.percentage == 0 for r in results)


def test_tally_rounds_to_two_decimals():
    results = tally_results([("a", "A", 0), ("b", "B", 1)], ["a", "b", "b"])
    assert results[0].percentage == 33.33
    assert results[1].to_dict()["percentage"] == 66.67
