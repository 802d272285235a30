"""
Tests for leech detection.
"""
import logging
from datetime import datetime

import pytest

from cardscheduler.models.enums import LeechAction
from cardscheduler.schemas.settings import SchedulerConfig
from cardscheduler.services import leech_service
from cardscheduler.services.leech_service import check_leech, is_leech_lapse

from conftest import NOW, make_state


def lapse(previous_lapses: int):
    previous = make_state(card_type="review", interval_days=10, lapses=previous_lapses)
    updated = previous.model_copy(update={"card_type": "relearning", "lapses": previous_lapses + 1})
    return previous, updated


class TestLeechThreshold:
    """When a lapse counts as a leech."""

    def test_lapse_reaching_threshold_flags_card(self, config):
        previous, updated = lapse(7)
        assert is_leech_lapse(previous, updated, config)

    def test_lapse_below_threshold_is_ignored(self, config):
        previous, updated = lapse(6)
        result = check_leech(previous, updated, config, NOW)
        assert result == updated
        assert not result.is_leech

    def test_no_new_lapse_is_ignored(self, config):
        previous = make_state(card_type="review", lapses=9)
        updated = previous.model_copy(update={"interval_days": 20})
        assert check_leech(previous, updated, config, NOW) == updated

    def test_every_lapse_past_threshold_reapplies(self, config):
        previous, updated = lapse(10)
        result = check_leech(previous, updated, config, NOW)
        assert result.is_leech
        assert result.is_suspended


class TestLeechActions:
    """The configured action applied to a new leech."""

    def test_suspend(self, config):
        result = check_leech(*lapse(7), config, NOW)
        assert result.is_leech
        assert result.is_suspended
        assert not result.is_buried

    def test_tag_only_marks(self):
        config = SchedulerConfig(leech_action=LeechAction.TAG)
        result = check_leech(*lapse(7), config, NOW)
        assert result.is_leech
        assert not result.is_suspended
        assert not result.is_buried

    def test_bury_until_next_midnight(self):
        config = SchedulerConfig(leech_action="bury")
        result = check_leech(*lapse(7), config, NOW)
        assert result.is_leech
        assert result.is_buried
        assert result.buried_until == datetime(2024, 3, 16)
        assert not result.is_suspended


class TestLeechFailures:
    """The leech check never blocks an answer."""

    def test_failure_returns_unflagged_state(self, config, monkeypatch, caplog):
        def broken(*args, **kwargs):
            raise RuntimeError("boom")

        monkeypatch.setattr(leech_service, "apply_leech_action", broken)
        previous, updated = lapse(7)
        with caplog.at_level(logging.ERROR, logger="cardscheduler.services.leech_service"):
            result = check_leech(previous, updated, config, NOW)

        assert result == updated
        assert not result.is_leech
        assert "Failed to apply leech action" in caplog.text


@pytest.mark.parametrize("threshold", [3, 8, 20])
def test_threshold_is_configurable(threshold):
    config = SchedulerConfig(leech_threshold=threshold)
    assert check_leech(*lapse(threshold - 1), config, NOW).is_leech
    assert not check_leech(*lapse(threshold - 2), config, NOW).is_leech
