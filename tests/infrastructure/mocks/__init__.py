"""Mock links and collaborators for testing without a display attached."""

from .link_mocks import FakeLink
from .display_mocks import RecordingDisplay

__all__ = ["FakeLink", "RecordingDisplay"]
