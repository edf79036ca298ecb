"""Configuration settings for Tomato."""

import os
from pathlib import Path

# Paths
DATA_DIR = Path(os.environ.get("TOMATO_DATA_DIR", Path.home() / ".tomato"))
DB_PATH = Path(os.environ.get("TOMATO_DB_PATH", DATA_DIR / "tomato.db"))

# Server
HOST = os.environ.get("TOMATO_HOST", "127.0.0.1")
PORT = int(os.environ.get("TOMATO_PORT", "7879"))

# Logging
LOG_LEVEL = os.environ.get("TOMATO_LOG_LEVEL", "INFO").upper()
LOG_FILE = os.environ.get("TOMATO_LOG_FILE") or None

# API
API_PREFIX = "/api"
API_VERSION = "0.1.0"

# Intent classifier (Anthropic Messages API)
ANTHROPIC_API_KEY = os.environ.get("ANTHROPIC_API_KEY", "")
ANTHROPIC_BASE_URL = os.environ.get("ANTHROPIC_BASE_URL", "https://api.anthropic.com")
TOMATO_MODEL = os.environ.get("TOMATO_MODEL", "claude-3-5-sonnet-latest")
CLASSIFIER_TIMEOUT = float(os.environ.get("TOMATO_CLASSIFIER_TIMEOUT", "30"))

# Pomodoro defaults (applied by callers, never by the lifecycle engine)
DEFAULT_WORK_MINUTES = 25
DEFAULT_BREAK_MINUTES = 5
DEFAULT_ESTIMATED_MINUTES = 25
DAILY_GOAL = 8

# Resolution
SUGGESTION_LIMIT = 3

# Conversation history
HISTORY_LIMIT = 10  # messages kept per conversation
PROMPT_HISTORY_MESSAGES = 3  # messages shown to the classifier
