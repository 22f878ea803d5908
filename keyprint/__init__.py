# ABOUTME: Package initialization for keyprint keystroke timing capture
"""
Keyprint

Keystroke interval capture with trailing-mean anomaly detection and a
client for the remote keyprint storage and verification service.
"""

__version__ = "1.0.0"
__description__ = "Keystroke timing capture and keyprint verification client"

from .tracker import ANOMALY_THRESHOLD, TypingSession, TypingTracker
from .client import (
    KeyprintAPIError,
    KeyprintClient,
    KeyprintError,
    KeyprintTimeoutError,
    KeyprintValidationError,
)
from .utils import ConfigManager, KeyprintSnapshot, VerificationResult

__all__ = [
    "ANOMALY_THRESHOLD",
    "TypingSession",
    "TypingTracker",
    "KeyprintClient",
    "KeyprintError",
    "KeyprintValidationError",
    "KeyprintTimeoutError",
    "KeyprintAPIError",
    "ConfigManager",
    "KeyprintSnapshot",
    "VerificationResult",
]
