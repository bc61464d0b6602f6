"""Unit tests for progression event channels (progression_engine/gamification/events.py)"""
import pytest
from unittest.mock import Mock

from progression_engine.gamification.events import EventChannel, ProgressionEvents


class TestEventChannel:
    """Test a single channel"""

    def test_publish_reaches_subscribers(self):
        """Test every subscriber receives the payload"""
        channel = EventChannel("xpAdded")
        first, second = Mock(), Mock()
        channel.subscribe(first)
        channel.subscribe(second)

        channel.publish(42)

        first.assert_called_once_with(42)
        second.assert_called_once_with(42)

    def test_unsubscribe_function(self):
        """Test the returned function removes the subscriber"""
        channel = EventChannel("xpAdded")
        callback = Mock()
        unsubscribe = channel.subscribe(callback)

        unsubscribe()
        channel.publish(1)

        callback.assert_not_called()
        assert len(channel) == 0

    def test_unsubscribe_unknown_callback_is_ignored(self):
        """Test removing a callback twice does not raise"""
        channel = EventChannel("xpAdded")
        callback = Mock()
        channel.subscribe(callback)

        channel.unsubscribe(callback)
        channel.unsubscribe(callback)

    def test_failing_subscriber_is_isolated(self):
        """Test a raising subscriber does not stop the others"""
        channel = EventChannel("rewardUnlocked")
        failing = Mock(side_effect=RuntimeError("subscriber bug"))
        healthy = Mock()
        channel.subscribe(failing)
        channel.subscribe(healthy)

        channel.publish("payload")

        healthy.assert_called_once_with("payload")

    def test_subscriber_can_unsubscribe_while_publishing(self):
        """Test self-removal during publish"""
        channel = EventChannel("initialized")
        calls = []

        def once(payload):
            calls.append(payload)
            channel.unsubscribe(once)

        channel.subscribe(once)
        channel.publish(1)
        channel.publish(2)

        assert calls == [1]

    def test_len_counts_subscribers(self):
        """Test len reports the current subscriber count"""
        channel = EventChannel("initialized")
        unsubscribe = channel.subscribe(Mock())
        channel.subscribe(Mock())
        unsubscribe()

        assert len(channel) == 1


class TestProgressionEvents:
    """Test the channel set"""

    def test_channel_names(self):
        """Test all published event names are available"""
        events = ProgressionEvents()

        assert set(events.names()) == {
            "initialized",
            "profileUpdated",
            "achievementCompleted",
            "missionCompleted",
            "xpAdded",
            "streakUpdated",
            "rewardUnlocked",
            "profileReset",
        }

    def test_channel_lookup(self):
        """Test lookup by name returns the attribute channel"""
        events = ProgressionEvents()

        assert events.channel("xpAdded") is events.xp_added
        assert events.channel("profileUpdated") is events.profile_updated

    def test_unknown_channel(self):
        """Test unknown names raise KeyError"""
        with pytest.raises(KeyError):
            ProgressionEvents().channel("levelUp")
