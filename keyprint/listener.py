# ABOUTME: pynput key source that feeds a TypingTracker, plus the keyprint command line entry point
import json
import logging
import re
import sys
import threading
from typing import Any, Optional

from pynput import keyboard

try:
    from .client import KeyprintClient, KeyprintError
    from .tracker import BACKSPACE_KEY, TypingTracker
    from .utils import ConfigManager, setup_logging
except ImportError:
    from client import KeyprintClient, KeyprintError  # type: ignore
    from tracker import BACKSPACE_KEY, TypingTracker  # type: ignore
    from utils import ConfigManager, setup_logging  # type: ignore


def key_identifier(key: Any) -> str:
    """Extract the key identifier the tracker understands from a pynput key."""
    if getattr(key, "char", None):
        return key.char
    name = getattr(key, "name", None)
    if name:
        return BACKSPACE_KEY if name == "backspace" else name
    return str(key)


class KeyprintListener:
    """Capture one typing session from the keyboard."""

    def __init__(self, tracker: TypingTracker, stop_key: Optional[str] = "enter"):
        self.tracker = tracker
        self.stop_key = stop_key
        self.listener: Optional[keyboard.Listener] = None
        self._done = threading.Event()

    def on_key_press(self, key: Any) -> Optional[bool]:
        """Forward a press to the tracker; returning False stops pynput."""
        if self._done.is_set():
            return False

        identifier = key_identifier(key)
        if self.stop_key and identifier == self.stop_key:
            logging.info("Stop key pressed, ending capture")
            self._done.set()
            return False

        self.tracker.handle_key_press(identifier)
        return None

    def capture(self, max_seconds: Optional[float] = None) -> TypingTracker:
        """Block until the stop key is pressed or ``max_seconds`` elapses."""
        self._done.clear()
        timer = None
        if max_seconds:
            timer = threading.Timer(max_seconds, self.stop)
            timer.daemon = True
            timer.start()
            logging.info(f"Capture will end after {max_seconds}s")

        listener = keyboard.Listener(on_press=self.on_key_press)
        self.listener = listener
        listener.start()
        try:
            while not self._done.is_set() and listener.is_alive():
                self._done.wait(0.1)
        except KeyboardInterrupt:
            logging.info("Keyboard interrupt received")
        finally:
            self.stop()
            if timer:
                timer.cancel()

        logging.info(
            f"Session {self.tracker.session.session_id}: captured "
            f"{self.tracker.key_count} key presses in {self.tracker.duration}ms"
        )
        return self.tracker

    def stop(self) -> None:
        self._done.set()
        listener, self.listener = self.listener, None
        if listener:
            listener.stop()


def parse_duration(duration_str: str) -> float:
    """Parse duration string like '30s', '5m', '1h' into seconds."""
    match = re.match(r"^(\d+)([hms])$", duration_str.strip().lower())
    if not match:
        raise ValueError(f"Invalid duration format: {duration_str}")

    value, unit = match.groups()
    value = int(value)

    if unit == "s":
        return value
    elif unit == "m":
        return value * 60
    return value * 3600


def print_report(tracker: TypingTracker) -> None:
    """Print the snapshot and a short timing summary."""
    summary = tracker.interval_summary()

    print("\n=== Keyprint Snapshot ===")
    print(f"Session: {tracker.session.session_id}")
    print(tracker.formatted_snapshot)
    print("\n=== Timing Summary ===")
    print(f"Key presses: {tracker.key_count}")
    print(f"Duration: {tracker.duration}ms")
    print(f"Average interval: {tracker.average_interval}ms")
    print(f"Median / 90th percentile: {summary['median']:.0f}ms / {summary['p90']:.0f}ms")
    print(f"Backspaces: {tracker.backspace_count}")
    if tracker.anomalies:
        print(f"Anomalous intervals at: {', '.join(str(i) for i in tracker.anomalies)}")
    else:
        print("No anomalous intervals")


def main(argv: Optional[list] = None) -> int:
    """Main entry point for keyprint capture."""
    import argparse

    parser = argparse.ArgumentParser(description="Capture a keystroke timing keyprint")
    parser.add_argument(
        "--config", default="config.yaml", help="Path to configuration file"
    )
    parser.add_argument("--user", help="User identifier for store/verify")
    parser.add_argument(
        "--action",
        choices=["show", "store", "verify"],
        default="show",
        help="What to do with the captured keyprint",
    )
    parser.add_argument(
        "--copy",
        action="store_true",
        help="Copy the snapshot to the clipboard (macOS only; elsewhere the copy is reported as failed)",
    )
    parser.add_argument(
        "--duration", type=str, help="Maximum capture time (e.g. '30s', '5m')"
    )

    args = parser.parse_args(argv)

    config = ConfigManager(args.config)
    setup_logging(
        config.get("output.log_level", "INFO"), config.get("output.log_file")
    )

    if args.action != "show" and not args.user:
        parser.error(f"--user is required for --action {args.action}")

    max_seconds = config.get("capture.max_seconds")
    if args.duration:
        try:
            max_seconds = parse_duration(args.duration)
        except ValueError as e:
            parser.error(str(e))

    tracker = TypingTracker()
    listener = KeyprintListener(tracker, stop_key=config.get("capture.stop_key", "enter"))

    print("Type your phrase, then press Enter to finish.")
    listener.capture(max_seconds)

    print_report(tracker)

    if args.copy:
        if tracker.copy_snapshot_to_clipboard():
            print("\nSnapshot copied to clipboard")
        else:
            print("\nCould not copy snapshot to clipboard")

    if args.action == "show":
        return 0

    with KeyprintClient(config=config) as client:
        try:
            if args.action == "store":
                reply = client.store(args.user, tracker.snapshot)
                print("\nStored keyprint:")
                print(json.dumps(reply, indent=2))
            else:
                result = client.verify(args.user, tracker.snapshot)
                verdict = "MATCH" if result.is_match else "NO MATCH"
                print(f"\nVerification: {verdict} (similarity {result.similarity:.2f})")
        except KeyprintError as e:
            print(f"\n{args.action.capitalize()} failed: {e}")
            return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
