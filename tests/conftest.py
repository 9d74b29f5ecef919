"""Pytest configuration and shared fixtures."""

import pytest

from bindable import PubSub


class RecordingTransport(PubSub):
    """PubSub that also records the chain of every published message, in order."""

    def __init__(self):
        super().__init__()
        self.published = []

    def publish(self, channel, message):
        self.published.append(message["chain"])
        super().publish(channel, message)


@pytest.fixture
def transport():
    return RecordingTransport()
