"""Tomato - conversational pomodoro and work-tracking assistant."""

__version__ = "0.1.0"
