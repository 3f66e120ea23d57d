"""
Per-session application state.

`AppState` holds what one browser tab sees: the signed-in user, UI
preferences, the last known location, cached shops and scan history, and
the focused scan/shop. It is created explicitly and handed to the services
that mutate it. `SessionRegistry` hands one state to each access token and
serialises access to the token map.
"""
import logging
import sqlite3
import threading
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional

from .auth import SIGNED_OUT, AuthProvider, Session, User
from .capabilities import (
    Geolocation,
    LocationError,
    SpeechToText,
    TextToSpeech,
    UnavailableGeolocation,
    UnavailableSpeechToText,
    UnavailableTextToSpeech,
)
from .i18n import DEFAULT_LANGUAGE, is_supported, speech_locale, translate
from .models import AnalysisResult, Coordinate, RankedShop, Scan, Shop
from .services.history import RecordOutcome, record_scan
from .services.shops import rank_shops
from .store import Store, StoreError

logger = logging.getLogger(__name__)

UNAUTHENTICATED = "unauthenticated"
AUTHENTICATING = "authenticating"
AUTHENTICATED = "authenticated"


class AppState:
    def __init__(
        self,
        store: Store,
        auth: Optional[AuthProvider] = None,
        geolocation: Optional[Geolocation] = None,
        speech_to_text: Optional[SpeechToText] = None,
        text_to_speech: Optional[TextToSpeech] = None,
    ):
        self.store = store
        self.auth = auth
        self.geolocation = geolocation or UnavailableGeolocation()
        self.speech_to_text = speech_to_text or UnavailableSpeechToText()
        self.text_to_speech = text_to_speech or UnavailableTextToSpeech()

        self.session: Optional[Session] = None
        self.user: Optional[User] = None
        self.loading = True
        self.language = DEFAULT_LANGUAGE
        self.field_mode = False
        self.location: Optional[Coordinate] = None
        self.location_error: Optional[str] = None
        self.scans: List[Scan] = []
        self.current_scan: Optional[Scan] = None
        self.shops: List[Shop] = []
        self.selected_shop: Optional[Shop] = None
        self.is_listening = False

        self._access_token: Optional[str] = None
        self._unsubscribe: Optional[Callable[[], None]] = None
        self._generation = 0

    # -- lifecycle -------------------------------------------------------

    @property
    def auth_status(self) -> str:
        if self.loading:
            return AUTHENTICATING
        return AUTHENTICATED if self.user else UNAUTHENTICATED

    def start(self, access_token: Optional[str] = None):
        """Load shops, follow auth changes for `access_token` and poll its session once."""
        self._access_token = access_token
        self.refresh_shops()
        if self.auth is not None and self._unsubscribe is None:
            self._unsubscribe = self.auth.on_auth_state_change(self._handle_auth_event)
        session = self.auth.get_session(access_token) if (self.auth and access_token) else None
        self.set_session(session)

    def close(self):
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def _handle_auth_event(self, event: str, session: Optional[Session]):
        if session is None or self._access_token is None:
            return
        if session.access_token != self._access_token:
            return
        self.set_session(None if event == SIGNED_OUT else session)

    def set_session(self, session: Optional[Session]):
        """Apply the provider's view of the session. Re-applying the same user is a no-op."""
        self.loading = False
        self.session = session
        new_user = session.user if session else None
        if new_user is not None:
            self._access_token = session.access_token
        if (self.user.id if self.user else None) == (new_user.id if new_user else None):
            return

        self.user = new_user
        if new_user is None:
            self.scans = []
            self.current_scan = None
            return
        self._load_profile()
        self.refresh_scans()

    def sign_in(self, email: str, password: str) -> Session:
        session = self.auth.sign_in(email, password)
        self._access_token = session.access_token
        self.set_session(session)
        return session

    def sign_out(self):
        if self.auth is not None and self.session is not None:
            self.auth.sign_out(self.session.access_token)
        self.set_session(None)
        self.scans = []
        self.current_scan = None

    def _load_profile(self):
        try:
            profile = self.store.get_profile(self.user.id)
        except (StoreError, sqlite3.Error) as e:
            logger.warning("[state] profile load failed: %s", e)
            return
        if profile is None:
            return
        if is_supported(profile.preferred_language):
            self.language = profile.preferred_language
        self.field_mode = profile.field_mode_enabled

    # -- data ------------------------------------------------------------

    def refresh_scans(self):
        """Reload the user's history, newest first. Keeps the old list on failure."""
        if self.user is None:
            return
        try:
            self.scans = self.store.list_scans(self.user.id)
        except (StoreError, sqlite3.Error) as e:
            logger.warning("[state] refresh_scans failed for user=%s: %s", self.user.id, e)

    def refresh_shops(self):
        try:
            self.shops = self.store.list_shops()
        except (StoreError, sqlite3.Error) as e:
            logger.warning("[state] refresh_shops failed: %s", e)

    def push_scan(self, scan: Scan):
        self.scans = [scan, *self.scans]
        self.current_scan = scan

    def add_scan(self, crop_type: str, result: AnalysisResult, image_ref: Optional[str]) -> RecordOutcome:
        user_id = self.user.id if self.user else None
        return record_scan(self, user_id, crop_type, result, image_ref)

    def set_current_scan(self, scan: Optional[Scan]):
        self.current_scan = scan

    def find_scan(self, scan_id: str) -> Optional[Scan]:
        return next((s for s in self.scans if s.id == scan_id), None)

    def select_shop(self, shop: Optional[Shop]):
        self.selected_shop = shop

    @property
    def nearby_shops(self) -> List[RankedShop]:
        return rank_shops(self.shops, self.location)

    # -- analysis ordering ----------------------------------------------

    def begin_analysis(self) -> int:
        self._generation += 1
        return self._generation

    def is_current(self, token: int) -> bool:
        return token == self._generation

    def reset_scanner(self):
        """Drop the focused scan and invalidate any analysis still in flight."""
        self._generation += 1
        self.current_scan = None

    # -- preferences and devices -----------------------------------------

    def set_language(self, language: str):
        if not is_supported(language):
            raise ValueError(f"unsupported language: {language}")
        self.language = language
        if self.user is not None:
            self.store.update_profile(self.user.id, preferred_language=language)

    def toggle_field_mode(self) -> bool:
        self.field_mode = not self.field_mode
        if self.user is not None:
            self.store.update_profile(self.user.id, field_mode_enabled=self.field_mode)
        return self.field_mode

    def request_location(self, geolocation: Optional[Geolocation] = None) -> Optional[Coordinate]:
        """One-shot position lookup; failures land in `location_error`."""
        source = geolocation or self.geolocation
        try:
            self.location = source.current_position()
            self.location_error = None
        except LocationError as e:
            self.location_error = str(e)
        return self.location

    def set_listening(self, listening: bool):
        if listening:
            self.speech_to_text.start(speech_locale(self.language))
        else:
            self.speech_to_text.stop()
        self.is_listening = listening

    def translate(self, key: str) -> str:
        return translate(self.language, key)


class SessionRegistry:
    """Access token -> `AppState` for the web layer.

    Capabilities are given as factories so every state gets its own
    instances. Sync handlers run on a worker pool, so the token map is only
    touched under `_lock`; states whose session has expired are closed the
    next time a session is opened.
    """

    def __init__(self, store: Store, auth: AuthProvider, **capability_factories: Callable[[], object]):
        self.store = store
        self.auth = auth
        self.capability_factories = capability_factories
        self._states: Dict[str, AppState] = {}
        self._lock = threading.RLock()

    def _capabilities(self) -> Dict[str, object]:
        return {name: factory() for name, factory in self.capability_factories.items()}

    def _new_state(self) -> AppState:
        return AppState(self.store, auth=self.auth, **self._capabilities())

    def open(self, session: Session) -> AppState:
        with self._lock:
            self.prune_expired()
            state = self._states.get(session.access_token)
            if state is None:
                state = self._new_state()
                state.start(session.access_token)
                self._states[session.access_token] = state
            return state

    def get(self, access_token: Optional[str]) -> Optional[AppState]:
        """State for a live session, or None when the token is missing or dead."""
        if not access_token:
            return None
        session = self.auth.get_session(access_token)
        if session is None:
            self.close(access_token)
            return None
        return self.open(session)

    def anonymous(self) -> AppState:
        state = AppState(self.store, **self._capabilities())
        state.start()
        return state

    def prune_expired(self, now: Optional[datetime] = None) -> int:
        """Close states whose session expired or was dropped; returns how many."""
        now = now or datetime.now(timezone.utc)
        with self._lock:
            dead = [
                token for token, state in self._states.items()
                if state.session is None or state.session.expires_at <= now
            ]
            for token in dead:
                self.close(token)
        if dead:
            logger.info("[registry] pruned %d expired session(s)", len(dead))
        return len(dead)

    def close(self, access_token: str):
        with self._lock:
            state = self._states.pop(access_token, None)
        if state is not None:
            state.close()

    def __len__(self):
        return len(self._states)
