"""
Pytest fixtures for notification tests.

Usage:
    def test_example(dispatcher, mailoutbox):
        dispatcher.send_with_retry("jane@example.com", "Hello", "<p>Hi</p>")
        assert len(mailoutbox) == 1
"""

from unittest.mock import MagicMock

import pytest

from notifications.services import ConfirmationNotifier, NotificationDispatcher


@pytest.fixture
def fake_sleep():
    return MagicMock()


@pytest.fixture
def dispatcher(fake_sleep):
    return NotificationDispatcher(max_attempts=3, sleep=fake_sleep)


@pytest.fixture
def notifier(dispatcher):
    return ConfirmationNotifier(dispatcher=dispatcher)
