"""
Tests for per-user scheduler settings.
"""
import logging

import pytest
from pydantic import ValidationError as PydanticValidationError

from cardscheduler.core.exceptions import ValidationError
from cardscheduler.models.enums import LeechAction
from cardscheduler.models.scheduler_settings import SchedulerSettings
from cardscheduler.schemas.settings import SchedulerConfig
from cardscheduler.services.scheduler_config import (
    config_from_row,
    get_or_create_settings,
    update_settings,
)


class TestDefaults:
    """Out-of-the-box settings."""

    def test_documented_defaults(self, config):
        assert config.learning_steps == (1, 10)
        assert config.graduating_interval == 1
        assert config.easy_interval == 4
        assert config.starting_ease == 2.50
        assert config.easy_bonus == 1.30
        assert config.maximum_interval == 36500
        assert config.hard_interval_multiplier == 1.20
        assert config.new_interval_percentage == 0.0
        assert config.minimum_interval == 1
        assert config.leech_threshold == 8
        assert config.leech_action == LeechAction.SUSPEND
        assert config.new_cards_per_day == 20
        assert config.maximum_reviews_per_day == 200
        assert config.show_new_cards_first is True

    def test_snapshot_is_immutable(self, config):
        with pytest.raises(PydanticValidationError):
            config.leech_threshold = 3

    @pytest.mark.parametrize("field, value", [
        ("learning_steps", []),
        ("learning_steps", [0, 10]),
        ("starting_ease", 1.0),
        ("leech_threshold", 2),
        ("easy_interval", 1),
        ("leech_action", "delete"),
    ])
    def test_out_of_bounds_values_rejected(self, field, value):
        with pytest.raises(PydanticValidationError):
            SchedulerConfig(**{field: value})


class TestGetOrCreate:
    """Settings are created once per user."""

    def test_first_access_persists_defaults(self, session):
        config = get_or_create_settings(session, 7)
        assert config == SchedulerConfig()

        row = session.get(SchedulerSettings, 7)
        assert row is not None
        assert row.learning_steps == [1, 10]
        assert row.leech_action == "suspend"

    def test_second_access_reads_stored_row(self, session):
        get_or_create_settings(session, 7)
        row = session.get(SchedulerSettings, 7)
        row.leech_threshold = 5
        session.add(row)
        session.commit()

        assert get_or_create_settings(session, 7).leech_threshold == 5

    def test_malformed_row_falls_back_to_defaults(self, caplog):
        row = SchedulerSettings(user_id=3, learning_steps=[], leech_threshold=0)
        with caplog.at_level(logging.WARNING, logger="cardscheduler.services.scheduler_config"):
            config = config_from_row(row)

        assert config == SchedulerConfig()
        assert "Malformed scheduler settings for user 3" in caplog.text


class TestUpdate:
    """Partial updates are validated as a whole."""

    def test_partial_update(self, session):
        updated = update_settings(session, 7, {"learning_steps": [1, 10, 60], "leech_action": "tag"})
        assert updated.learning_steps == (1, 10, 60)
        assert updated.leech_action == LeechAction.TAG
        assert updated.graduating_interval == 1

        stored = get_or_create_settings(session, 7)
        assert stored == updated

    def test_invalid_update_rejected_and_not_saved(self, session):
        with pytest.raises(ValidationError, match="leech_threshold"):
            update_settings(session, 7, {"leech_threshold": 50})

        assert get_or_create_settings(session, 7).leech_threshold == 8

    def test_none_values_are_ignored(self, session):
        updated = update_settings(session, 7, {"easy_bonus": None, "minimum_interval": 2})
        assert updated.easy_bonus == 1.30
        assert updated.minimum_interval == 2
