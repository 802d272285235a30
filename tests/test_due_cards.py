"""
Tests for due card selection.
"""
from datetime import timedelta

from cardscheduler.schemas.card import DueCardFilters, DueCardLimits
from cardscheduler.services.answer_service import submit_answer
from cardscheduler.services.due_card_service import card_priority, list_due_cards
from cardscheduler.services.scheduler_config import update_settings

from conftest import NOW


def due_ids(response):
    return [card.card_id for card in response.cards]


class TestExclusions:
    """Cards that are never selected."""

    def test_suspended_and_buried_cards_excluded(self, session, make_card):
        visible = make_card()
        make_card(is_suspended=True)
        make_card(is_buried=True, buried_until=NOW + timedelta(hours=1))

        response = list_due_cards(session, 1, now=NOW)
        assert due_ids(response) == [visible.id]

    def test_inactive_questions_excluded(self, session, make_card, make_question):
        visible = make_card()
        make_card(question=make_question(status="inactive"))
        make_card(question=make_question(status="draft"))

        assert due_ids(list_due_cards(session, 1, now=NOW)) == [visible.id]

    def test_other_users_cards_excluded(self, session, make_card):
        make_card(user_id=2)
        assert list_due_cards(session, 1, now=NOW).counts.total == 0


class TestBuckets:
    """Due conditions per bucket."""

    def test_learning_due_by_now(self, session, make_card):
        due = make_card(card_type="learning", due_date=NOW - timedelta(minutes=5))
        make_card(card_type="learning", due_date=NOW + timedelta(minutes=5))
        make_card(card_type="relearning", due_date=NOW + timedelta(minutes=1))

        response = list_due_cards(session, 1, now=NOW)
        assert due_ids(response) == [due.id]
        assert response.counts.learning == 1

    def test_review_due_anytime_today(self, session, make_card):
        later_today = make_card(card_type="review", interval_days=3, due_date=NOW + timedelta(hours=12))
        make_card(card_type="review", interval_days=3, due_date=NOW + timedelta(hours=14))

        response = list_due_cards(session, 1, now=NOW)
        assert due_ids(response) == [later_today.id]
        assert response.counts.review == 1

    def test_counts(self, session, make_card):
        make_card()
        make_card()
        make_card(card_type="learning", due_date=NOW)
        make_card(card_type="review", due_date=NOW - timedelta(days=1))

        counts = list_due_cards(session, 1, now=NOW).counts
        assert (counts.new, counts.learning, counts.review, counts.total) == (2, 1, 1, 4)


class TestOrdering:
    """Priority then due date."""

    def test_priority_order(self, session, make_card):
        review_today = make_card(card_type="review", due_date=NOW + timedelta(hours=3))
        learning = make_card(card_type="learning", due_date=NOW - timedelta(minutes=2))
        overdue = make_card(card_type="review", due_date=NOW - timedelta(days=2))
        new = make_card(due_date=NOW - timedelta(days=1))

        response = list_due_cards(session, 1, now=NOW)
        assert due_ids(response) == [overdue.id, new.id, learning.id, review_today.id]
        assert [card.priority for card in response.cards] == [1, 1, 2, 3]

    def test_new_cards_last_when_configured(self, session, make_card):
        update_settings(session, 1, {"show_new_cards_first": False})
        new = make_card(due_date=NOW - timedelta(days=1))
        learning = make_card(card_type="learning", due_date=NOW - timedelta(minutes=2))

        response = list_due_cards(session, 1, now=NOW)
        assert due_ids(response) == [learning.id, new.id]

    def test_card_priority(self, make_card, config):
        assert card_priority(make_card(), config, NOW) == 1
        assert card_priority(make_card(card_type="relearning"), config, NOW) == 2
        assert card_priority(make_card(card_type="review", due_date=NOW + timedelta(hours=1)), config, NOW) == 3


class TestFiltersAndLimits:
    """Filters apply before limits, per bucket."""

    def test_subject_filter(self, session, make_card, make_question):
        biology = make_card(question=make_question(subject_id=5))
        make_card(question=make_question(subject_id=6))

        response = list_due_cards(session, 1, filters=DueCardFilters(subject_ids=[5]), now=NOW)
        assert due_ids(response) == [biology.id]

    def test_subtopic_and_year_filters(self, session, make_card, make_question):
        match = make_card(question=make_question(subtopic_id=11, year=2022))
        make_card(question=make_question(subtopic_id=11, year=2021))
        make_card(question=make_question(subtopic_id=12, year=2022))

        filters = DueCardFilters(subtopic_ids=[11], years=[2022])
        assert due_ids(list_due_cards(session, 1, filters=filters, now=NOW)) == [match.id]

    def test_bucket_limits(self, session, make_card):
        for _ in range(3):
            make_card()
        for minutes in (1, 2, 3):
            make_card(card_type="learning", due_date=NOW - timedelta(minutes=minutes))

        limits = DueCardLimits(new=1, learning=2, review=0)
        counts = list_due_cards(session, 1, limits=limits, now=NOW).counts
        assert (counts.new, counts.learning, counts.review) == (1, 2, 0)

    def test_zero_limit_returns_nothing(self, session, make_card):
        make_card()
        limits = DueCardLimits(new=0, learning=0, review=0)
        assert list_due_cards(session, 1, limits=limits, now=NOW).counts.total == 0


class TestDailyCaps:
    """New card and review caps count today's answers."""

    def test_new_cards_cap(self, session, make_card):
        update_settings(session, 1, {"new_cards_per_day": 1})
        first = make_card()
        make_card()

        submit_answer(session, 1, first.id, "good", now=NOW)
        response = list_due_cards(session, 1, now=NOW + timedelta(minutes=1))

        assert response.counts.new == 0
        assert due_ids(response) == [first.id]

    def test_cap_resets_next_day(self, session, make_card):
        update_settings(session, 1, {"new_cards_per_day": 1})
        first = make_card()
        second = make_card()

        submit_answer(session, 1, first.id, "easy", now=NOW)
        response = list_due_cards(session, 1, now=NOW + timedelta(days=1))

        assert second.id in due_ids(response)
        assert response.counts.new == 1
