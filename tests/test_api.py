"""
Tests for the HTTP API.
"""
import logging
from datetime import timedelta

from cardscheduler.core.exceptions import ConflictError
from cardscheduler.services import answer_service
from cardscheduler.utils.time_utils import utcnow

from conftest import NOW

API = "/api/v1"


class TestService:
    """Service endpoints."""

    def test_root(self, client):
        response = client.get("/")
        assert response.status_code == 200
        assert response.json()["status"] == "running"

    def test_health(self, client):
        assert client.get("/health").json() == {"status": "healthy"}


class TestCardEndpoints:
    """Card scheduling endpoints."""

    def test_init_card_is_idempotent(self, client, make_question):
        question = make_question()
        first = client.post(f"{API}/cards/init", params={"user_id": 1}, json={"question_id": question.id})
        second = client.post(f"{API}/cards/init", params={"user_id": 1}, json={"question_id": question.id})

        assert first.status_code == 200
        assert first.json()["card_type"] == "new"
        assert second.json()["id"] == first.json()["id"]

    def test_init_unknown_question(self, client):
        response = client.post(f"{API}/cards/init", params={"user_id": 1}, json={"question_id": 404})
        assert response.status_code == 404
        assert response.json()["type"] == "NotFoundError"

    def test_due_cards(self, client, make_card):
        card = make_card()
        make_card(is_suspended=True)

        response = client.get(f"{API}/cards/due", params={"user_id": 1})
        assert response.status_code == 200
        body = response.json()
        assert [item["card_id"] for item in body["cards"]] == [card.id]
        assert body["cards"][0]["question_text"] == "Which planet is closest to the sun?"
        assert body["counts"] == {"new": 1, "learning": 0, "review": 0, "total": 1}

    def test_due_cards_filters(self, client, make_card, make_question):
        card = make_card(question=make_question(subject_id=3, year=2020))
        make_card(question=make_question(subject_id=4, year=2020))

        response = client.get(f"{API}/cards/due", params={"user_id": 1, "subjects": "3, 9", "years": "2020"})
        assert [item["card_id"] for item in response.json()["cards"]] == [card.id]

    def test_due_cards_bad_filter(self, client):
        response = client.get(f"{API}/cards/due", params={"user_id": 1, "subjects": "math"})
        assert response.status_code == 400

    def test_due_cards_releases_expired_burials(self, client, make_card):
        card = make_card(is_buried=True, buried_until=NOW)
        response = client.get(f"{API}/cards/due", params={"user_id": 1})
        assert [item["card_id"] for item in response.json()["cards"]] == [card.id]

    def test_answer(self, client, make_card):
        card = make_card()
        response = client.post(
            f"{API}/cards/answer",
            params={"user_id": 1},
            json={"card_id": card.id, "grade": "good", "response_time_seconds": 5, "selected_option": "b"},
        )

        assert response.status_code == 200
        body = response.json()
        assert body["is_correct"] is True
        assert body["card_state"]["card_type"] == "learning"
        assert body["next_review"] == "1 minutes"

        history = client.get(f"{API}/cards/{card.id}/history", params={"user_id": 1})
        assert [entry["review_grade"] for entry in history.json()] == ["good"]

    def test_answer_bad_grade(self, client, make_card):
        card = make_card()
        response = client.post(
            f"{API}/cards/answer", params={"user_id": 1}, json={"card_id": card.id, "grade": "perfect"}
        )
        assert response.status_code == 400
        assert response.json()["type"] == "ValidationError"

    def test_answer_negative_time_rejected(self, client, make_card):
        card = make_card()
        response = client.post(
            f"{API}/cards/answer",
            params={"user_id": 1},
            json={"card_id": card.id, "grade": "good", "response_time_seconds": -3},
        )
        assert response.status_code == 422

    def test_answer_unknown_card(self, client):
        response = client.post(f"{API}/cards/answer", params={"user_id": 1}, json={"card_id": 77, "grade": "good"})
        assert response.status_code == 404

    def test_answer_store_failure(self, client, make_card, monkeypatch):
        card = make_card()

        def always_conflicts(*args, **kwargs):
            raise ConflictError("lost the race")

        monkeypatch.setattr(answer_service, "save_card", always_conflicts)
        response = client.post(
            f"{API}/cards/answer", params={"user_id": 1}, json={"card_id": card.id, "grade": "good"}
        )
        assert response.status_code == 503
        assert "try again" in response.json()["detail"]

    def test_answer_replay(self, client, make_card):
        card = make_card()
        payload = {"card_id": card.id, "grade": "good", "submission_id": "abc-1"}
        first = client.post(f"{API}/cards/answer", params={"user_id": 1}, json=payload)
        second = client.post(f"{API}/cards/answer", params={"user_id": 1}, json=payload)

        assert first.json()["replayed"] is False
        assert second.json()["replayed"] is True
        assert second.json()["card_state"] == first.json()["card_state"]

    def test_answer_replay_after_another_answer(self, client, make_card):
        card = make_card()
        first = client.post(
            f"{API}/cards/answer", params={"user_id": 1},
            json={"card_id": card.id, "grade": "good", "submission_id": "abc-1"}
        ).json()
        client.post(
            f"{API}/cards/answer", params={"user_id": 1},
            json={"card_id": card.id, "grade": "good", "submission_id": "abc-2"}
        )
        replay = client.post(
            f"{API}/cards/answer", params={"user_id": 1},
            json={"card_id": card.id, "grade": "good", "submission_id": "abc-1"}
        ).json()

        assert replay["replayed"] is True
        assert replay["card_state"] == first["card_state"]
        assert replay["next_review"] == first["next_review"]

    def test_suspend_and_unsuspend(self, client, make_card):
        card = make_card()
        suspended = client.post(f"{API}/cards/{card.id}/suspend", params={"user_id": 1})
        assert suspended.json()["is_suspended"] is True

        unsuspended = client.post(f"{API}/cards/{card.id}/unsuspend", params={"user_id": 1})
        assert unsuspended.json()["is_suspended"] is False

    def test_suspend_other_users_card(self, client, make_card):
        card = make_card(user_id=1)
        response = client.post(f"{API}/cards/{card.id}/suspend", params={"user_id": 2})
        assert response.status_code == 404

    def test_bury_and_unbury(self, client, make_card):
        card = make_card()
        buried = client.post(f"{API}/cards/{card.id}/bury", params={"user_id": 1})
        assert buried.json()["is_buried"] is True

        response = client.post(f"{API}/cards/unbury", params={"user_id": 1})
        assert response.json()["unburied_count"] == 1

    def test_reset(self, client, make_card):
        card = make_card(card_type="review", interval_days=12, lapses=9, is_leech=True)
        response = client.post(f"{API}/cards/{card.id}/reset", params={"user_id": 1})
        body = response.json()
        assert body["card_type"] == "new"
        assert body["lapses"] == 0
        assert body["is_leech"] is False

    def test_leeches_and_stats(self, client, make_card):
        leech = make_card(card_type="review", lapses=9, is_leech=True, due_date=NOW + timedelta(days=3))
        make_card()

        leeches = client.get(f"{API}/cards/leeches", params={"user_id": 1}).json()
        assert [card["id"] for card in leeches] == [leech.id]

        stats = client.get(f"{API}/cards/stats", params={"user_id": 1}).json()
        assert stats["totals"] == {"total_cards": 2, "total_leeches": 1, "total_suspended": 0}

    def test_list_cards(self, client, make_card, make_question):
        leech = make_card(card_type="review", is_leech=True, question=make_question(subject_id=2))
        make_card(card_type="review", question=make_question(subject_id=2))
        make_card(question=make_question(subject_id=3))

        response = client.get(
            f"{API}/cards", params={"user_id": 1, "subject_id": 2, "is_leech": "true", "card_type": "review"}
        )
        assert response.status_code == 200
        assert [card["id"] for card in response.json()] == [leech.id]
        assert response.json()[0]["subject_id"] == 2

    def test_list_cards_paging(self, client, make_card):
        ids = [make_card(due_date=NOW + timedelta(hours=hours)).id for hours in range(3)]
        page = client.get(f"{API}/cards", params={"user_id": 1, "limit": 2, "offset": 1}).json()
        assert [card["id"] for card in page] == ids[1:]

    def test_list_cards_bad_type(self, client):
        response = client.get(f"{API}/cards", params={"user_id": 1, "card_type": "mastered"})
        assert response.status_code == 400

    def test_overdue_cards(self, client, make_card):
        overdue = make_card(card_type="review", due_date=utcnow() - timedelta(days=3))
        make_card(card_type="review", due_date=utcnow() + timedelta(days=3))

        body = client.get(f"{API}/cards/overdue", params={"user_id": 1}).json()
        assert [card["id"] for card in body] == [overdue.id]
        assert body[0]["days_overdue"] == 3

    def test_stats_by_subject(self, client, make_card, make_question):
        make_card(question=make_question(subject_id=5), total_reviews=3)
        make_card(question=make_question(subject_id=6))

        stats = client.get(f"{API}/cards/stats", params={"user_id": 1, "subject_id": 5}).json()
        assert stats["totals"]["total_cards"] == 1
        assert stats["card_stats"][0]["avg_reviews"] == 3.0

    def test_answer_is_logged(self, client, make_card, caplog):
        card = make_card()
        with caplog.at_level(logging.INFO, logger="cardscheduler.api.v1.endpoints.cards"):
            client.post(
                f"{API}/cards/answer", params={"user_id": 1},
                json={"card_id": card.id, "grade": "good", "submission_id": "log-1"}
            )
        assert f"card_id={card.id}" in caplog.text
        assert "submission_id=log-1" in caplog.text


class TestSettingsEndpoints:
    """Scheduler settings endpoints."""

    def test_get_defaults(self, client):
        response = client.get(f"{API}/settings", params={"user_id": 1})
        assert response.status_code == 200
        body = response.json()
        assert body["user_id"] == 1
        assert body["settings"]["learning_steps"] == [1, 10]
        assert body["settings"]["leech_action"] == "suspend"

    def test_update(self, client):
        response = client.put(
            f"{API}/settings", params={"user_id": 1}, json={"learning_steps": [1, 5, 30], "leech_threshold": 5}
        )
        assert response.status_code == 200
        assert response.json()["settings"]["learning_steps"] == [1, 5, 30]

        stored = client.get(f"{API}/settings", params={"user_id": 1}).json()
        assert stored["settings"]["leech_threshold"] == 5

    def test_update_out_of_bounds(self, client):
        response = client.put(f"{API}/settings", params={"user_id": 1}, json={"leech_threshold": 50})
        assert response.status_code == 400
        assert "leech_threshold" in response.json()["detail"]

    def test_update_is_logged(self, client, caplog):
        with caplog.at_level(logging.INFO, logger="cardscheduler.api.v1.endpoints.settings"):
            client.put(f"{API}/settings", params={"user_id": 7}, json={"leech_threshold": 5})
        assert "user_id=7" in caplog.text
        assert "leech_threshold" in caplog.text
