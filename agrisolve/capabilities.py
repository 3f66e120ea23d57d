"""
Device capabilities injected into the app state.

Geolocation and speech live in the client; the server side only sees what
the client forwards. Each capability has an "unavailable" variant so callers
degrade the same way everywhere.
"""
from typing import Optional

from .models import Coordinate


class CapabilityUnavailable(Exception):
    pass


class LocationError(Exception):
    pass


class Geolocation:
    def current_position(self) -> Coordinate:
        raise NotImplementedError


class UnavailableGeolocation(Geolocation):
    def current_position(self) -> Coordinate:
        raise LocationError("Geolocation is not supported by this browser")


class ReportedGeolocation(Geolocation):
    """Position reported by the client, or the client's error message."""

    def __init__(self, coordinate: Optional[Coordinate] = None, error: Optional[str] = None):
        self.coordinate = coordinate
        self.error = error

    def current_position(self) -> Coordinate:
        if self.coordinate is None:
            raise LocationError(self.error or "User denied Geolocation")
        return self.coordinate


class SpeechToText:
    available = True

    def start(self, locale: str):
        raise NotImplementedError

    def stop(self):
        raise NotImplementedError


class UnavailableSpeechToText(SpeechToText):
    available = False

    def start(self, locale: str):
        raise CapabilityUnavailable("Speech recognition is not supported in this browser")

    def stop(self):
        pass


class TextToSpeech:
    available = True

    def speak(self, text: str, locale: str) -> bool:
        raise NotImplementedError


class UnavailableTextToSpeech(TextToSpeech):
    available = False

    def speak(self, text: str, locale: str) -> bool:
        return False


class RelayedSpeechToText(SpeechToText):
    """Recognition runs in the browser; only the session flag lives here."""

    def __init__(self):
        self.locale: Optional[str] = None

    def start(self, locale: str):
        self.locale = locale

    def stop(self):
        self.locale = None


class RelayedTextToSpeech(TextToSpeech):
    """Replies are handed back to the browser to be spoken there."""

    def speak(self, text: str, locale: str) -> bool:
        return bool(text)
