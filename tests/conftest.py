# ABOUTME: Shared fixtures; a scripted stand-in for pynput so capture runs without a display
import enum
import importlib
import sys
import types

import pytest


class FakeKey(enum.Enum):
    backspace = "backspace"
    enter = "enter"
    shift = "shift"
    space = "space"


class FakeKeyboardListener:
    """Replays ``presses`` into the callback when started, like a fast typist."""

    presses: list = []

    def __init__(self, on_press=None, **kwargs):
        self.on_press = on_press
        self.stopped = False
        self._alive = False

    def start(self):
        self._alive = True
        for key in list(self.presses):
            if self.on_press(key) is False:
                break
        self._alive = False

    def stop(self):
        self.stopped = True
        self._alive = False

    def is_alive(self):
        return self._alive


@pytest.fixture
def fake_keyboard(monkeypatch):
    """Install a fake ``pynput.keyboard`` for the duration of a test."""
    keyboard = types.ModuleType("pynput.keyboard")
    keyboard.Key = FakeKey
    keyboard.Listener = type("Listener", (FakeKeyboardListener,), {"presses": []})

    pynput = types.ModuleType("pynput")
    pynput.keyboard = keyboard

    monkeypatch.setitem(sys.modules, "pynput", pynput)
    monkeypatch.setitem(sys.modules, "pynput.keyboard", keyboard)
    return keyboard


@pytest.fixture
def listener_module(fake_keyboard, monkeypatch):
    """``keyprint.listener`` imported against the fake keyboard."""
    monkeypatch.delitem(sys.modules, "keyprint.listener", raising=False)
    module = importlib.import_module("keyprint.listener")
    yield module
    sys.modules.pop("keyprint.listener", None)
