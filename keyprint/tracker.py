# ABOUTME: Keystroke interval capture with trailing-mean anomaly detection
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional

import numpy as np

try:
    from .utils import KeyprintSnapshot, generate_session_id, round_half_up
except ImportError:
    from utils import KeyprintSnapshot, generate_session_id, round_half_up  # type: ignore


# Multiplier of the trailing mean above which an interval is anomalous
ANOMALY_THRESHOLD = 2.5

# Anomaly detection starts once more than this many intervals exist
MIN_INTERVALS_FOR_ANOMALIES = 3

BACKSPACE_KEY = "Backspace"


def monotonic_ms() -> int:
    """Milliseconds from the monotonic clock."""
    return int(time.monotonic() * 1000)


class MacOSClipboard:
    """Write text to the macOS general pasteboard."""

    def write_text(self, text: str) -> None:
        from Cocoa import NSPasteboard, NSPasteboardTypeString

        pasteboard = NSPasteboard.generalPasteboard()
        pasteboard.clearContents()
        if not pasteboard.setString_forType_(text, NSPasteboardTypeString):
            raise RuntimeError("Pasteboard rejected the write")


@dataclass
class TypingSession:
    """Raw state of a single capture window."""

    key_times: List[int] = field(default_factory=list)
    intervals: List[int] = field(default_factory=list)
    anomalies: List[int] = field(default_factory=list)
    backspace_count: int = 0
    start: Optional[int] = None
    end: Optional[int] = None
    session_id: str = field(default_factory=generate_session_id)


class TypingTracker:
    """Turns key presses into intervals, anomalies and snapshots."""

    def __init__(
        self,
        session: Optional[TypingSession] = None,
        clock: Optional[Callable[[], int]] = None,
        clipboard: Optional[Any] = None,
    ):
        self.session = session if session is not None else TypingSession()
        self.clock = clock or monotonic_ms
        self.clipboard = clipboard if clipboard is not None else MacOSClipboard()

    def handle_key_press(self, key: str, ts: Optional[int] = None) -> None:
        """Record one key press at ``ts`` (or now)."""
        current_time = self.clock() if ts is None else ts
        session = self.session

        if session.start is None:
            session.start = current_time
        session.end = current_time

        if key == BACKSPACE_KEY:
            session.backspace_count += 1

        if session.key_times:
            interval = current_time - session.key_times[-1]
            session.intervals.append(interval)

            if len(session.intervals) > MIN_INTERVALS_FOR_ANOMALIES:
                self._detect_anomalies()

        session.key_times.append(current_time)

    def _detect_anomalies(self) -> None:
        """Flag the newest interval against the mean of all earlier ones."""
        intervals = self.session.intervals
        previous = intervals[:-1]
        avg = sum(previous) / len(previous)
        latest = intervals[-1]

        if latest > avg * ANOMALY_THRESHOLD:
            index = len(intervals) - 1
            self.session.anomalies.append(index)
            logging.debug(
                f"Anomalous interval {latest}ms at index {index} (trailing mean {avg:.1f}ms)"
            )

    def reset_tracking(self) -> None:
        """Discard everything captured so far, in place."""
        fresh = TypingSession()
        for name in (
            "key_times", "intervals", "anomalies", "backspace_count", "start", "end", "session_id"
        ):
            setattr(self.session, name, getattr(fresh, name))

    @property
    def intervals(self) -> List[int]:
        return list(self.session.intervals)

    @property
    def anomalies(self) -> List[int]:
        return list(self.session.anomalies)

    @property
    def backspace_count(self) -> int:
        return self.session.backspace_count

    @property
    def key_count(self) -> int:
        return len(self.session.key_times)

    @property
    def duration(self) -> int:
        if self.session.start is None or self.session.end is None:
            return 0
        return self.session.end - self.session.start

    @property
    def average_interval(self) -> int:
        intervals = self.session.intervals
        if not intervals:
            return 0
        return round_half_up(sum(intervals) / len(intervals))

    @property
    def snapshot(self) -> KeyprintSnapshot:
        return KeyprintSnapshot(
            intervals=tuple(self.session.intervals),
            duration=self.duration,
            backspace_count=self.session.backspace_count,
        )

    @property
    def formatted_snapshot(self) -> str:
        return self.snapshot.to_json(indent=2)

    def copy_snapshot_to_clipboard(self) -> bool:
        """Copy the formatted snapshot; failures are logged, never raised."""
        try:
            self.clipboard.write_text(self.formatted_snapshot)
            return True
        except Exception as e:
            logging.error(f"Failed to copy metrics: {e}")
            return False

    def interval_summary(self) -> Dict[str, Any]:
        """Distribution of the captured intervals."""
        intervals = self.session.intervals
        if not intervals:
            return {
                "count": 0,
                "mean": 0,
                "median": 0,
                "p90": 0,
                "min": 0,
                "max": 0,
                "stdev": 0,
                "anomaly_count": 0,
            }

        values = np.asarray(intervals, dtype=float)
        return {
            "count": int(values.size),
            "mean": float(np.mean(values)),
            "median": float(np.median(values)),
            "p90": float(np.percentile(values, 90)),
            "min": int(values.min()),
            "max": int(values.max()),
            "stdev": float(np.std(values)),
            "anomaly_count": len(self.session.anomalies),
        }
