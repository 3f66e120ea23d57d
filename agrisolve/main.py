import logging
import os
from typing import Any, Dict, Optional

from dotenv import load_dotenv
load_dotenv()

from fastapi import FastAPI, Header, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from .auth import AuthError, AuthProvider
from .capabilities import (
    CapabilityUnavailable,
    RelayedSpeechToText,
    RelayedTextToSpeech,
    ReportedGeolocation,
)
from .i18n import SUPPORTED_LANGUAGES, TRANSLATIONS
from .models import Coordinate
from .services.geo import directions_url, format_distance
from .services.scanner import ScanInputError, run_scan
from .services.shops import filter_by_radius
from .services.vision import AnalysisError, ScanAnalysisClient
from .services.voice import respond_to_command
from .services.weather import fetch_weather
from .state import AppState, SessionRegistry
from .store import Store

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("agrisolve-api")

app = FastAPI(title="Agri-Solve Pro API", version="0.1.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

_STORE: Optional[Store] = None
_AUTH: Optional[AuthProvider] = None
_REGISTRY: Optional[SessionRegistry] = None
_CLIENT: Optional[ScanAnalysisClient] = None


def configure(db_path: Optional[str] = None, analysis_client: Optional[ScanAnalysisClient] = None,
              jwt_secret: Optional[str] = None):
    """Wire the store, auth provider, session registry and analysis client."""
    global _STORE, _AUTH, _REGISTRY, _CLIENT
    _STORE = Store(db_path)
    _AUTH = AuthProvider(_STORE, secret=jwt_secret)
    _REGISTRY = SessionRegistry(
        _STORE,
        _AUTH,
        speech_to_text=RelayedSpeechToText,
        text_to_speech=RelayedTextToSpeech,
    )
    _CLIENT = analysis_client or ScanAnalysisClient()

    seed_file = os.getenv("SHOPS_SEED_FILE")
    if seed_file and _STORE.count_shops() == 0:
        try:
            _STORE.load_shops_file(seed_file)
        except (OSError, ValueError, KeyError) as e:
            logger.warning("Could not seed shops from %s: %s", seed_file, e)


@app.on_event("startup")
def startup_configure():
    """Ensure the database is ready when the server starts."""
    if _STORE is None:
        configure()


def _registry() -> SessionRegistry:
    if _REGISTRY is None:
        configure()
    return _REGISTRY


def _bearer(authorization: Optional[str]) -> Optional[str]:
    if not authorization:
        return None
    if authorization.lower().startswith("bearer "):
        return authorization.split(" ", 1)[1]
    return authorization


def _state_for(authorization: Optional[str]) -> AppState:
    """The caller's session state, or a fresh anonymous one."""
    registry = _registry()
    return registry.get(_bearer(authorization)) or registry.anonymous()


def _signed_in_state(authorization: Optional[str]) -> AppState:
    state = _registry().get(_bearer(authorization))
    if state is None or state.user is None:
        raise HTTPException(status_code=401, detail="authentication_required")
    return state


# --- Request models ---

class AnalyzeRequest(BaseModel):
    imageBase64: Optional[str] = None
    cropType: Optional[str] = None


class SignUpRequest(BaseModel):
    email: str
    password: str
    full_name: Optional[str] = None


class ConfirmRequest(BaseModel):
    token: str


class SignInRequest(BaseModel):
    email: str
    password: str


class ProfileUpdate(BaseModel):
    full_name: Optional[str] = None
    preferred_language: Optional[str] = None
    field_mode_enabled: Optional[bool] = None


class VoiceCommandRequest(BaseModel):
    text: str
    language: Optional[str] = None


class ListeningRequest(BaseModel):
    listening: bool


# --- API Endpoints ---

@app.get("/healthz")
def healthz():
    return {"status": "ok"}


@app.post("/api/analyze_crop")
async def analyze_crop(req: AnalyzeRequest):
    """Diagnose one leaf image without touching any session."""
    if not req.imageBase64:
        raise HTTPException(status_code=400, detail="Image data is required")
    client = _CLIENT or ScanAnalysisClient()
    try:
        result = await client.analyze(req.imageBase64, req.cropType)
    except AnalysisError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        logger.exception("analyze_crop failed: %s", e)
        raise HTTPException(status_code=500, detail=str(e))
    return result.model_dump()


@app.post("/api/scans")
async def create_scan(req: AnalyzeRequest, authorization: Optional[str] = Header(None)):
    state = _state_for(authorization)
    client = _CLIENT or ScanAnalysisClient()
    try:
        outcome = await run_scan(state, client, req.imageBase64, req.cropType)
    except ScanInputError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except AnalysisError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        logger.exception("create_scan failed: %s", e)
        raise HTTPException(status_code=500, detail=str(e))
    return outcome.model_dump(mode="json")


@app.get("/api/scans")
def list_scans(authorization: Optional[str] = Header(None)):
    state = _signed_in_state(authorization)
    return {"scans": [s.model_dump() for s in state.scans]}


@app.get("/api/scans/current")
def current_scan(authorization: Optional[str] = Header(None)):
    state = _signed_in_state(authorization)
    return {"scan": state.current_scan.model_dump() if state.current_scan else None}


@app.put("/api/scans/current/{scan_id}")
def focus_scan(scan_id: str, authorization: Optional[str] = Header(None)):
    state = _signed_in_state(authorization)
    scan = state.find_scan(scan_id)
    if scan is None:
        raise HTTPException(status_code=404, detail="scan_not_found")
    state.set_current_scan(scan)
    return {"scan": scan.model_dump()}


@app.post("/api/scanner/reset")
def reset_scanner(authorization: Optional[str] = Header(None)):
    state = _registry().get(_bearer(authorization))
    if state is not None:
        state.reset_scanner()
    return {"status": "reset"}


@app.get("/api/shops")
def nearby_shops(lat: Optional[float] = None, lon: Optional[float] = None,
                 radius_km: Optional[float] = None, location_error: Optional[str] = None,
                 authorization: Optional[str] = Header(None)):
    """Shops nearest first when a position is given, otherwise best rated first."""
    state = _state_for(authorization)
    if lat is not None and lon is not None:
        state.request_location(ReportedGeolocation(Coordinate(latitude=lat, longitude=lon)))
    elif location_error:
        state.request_location(ReportedGeolocation(error=location_error))

    ranked = state.nearby_shops
    if radius_km is not None and state.location is not None:
        ranked = filter_by_radius(ranked, radius_km)

    shops = []
    for shop in ranked:
        entry = shop.model_dump()
        entry["distance_label"] = format_distance(shop.distance_km)
        entry["directions_url"] = directions_url(shop.latitude, shop.longitude)
        shops.append(entry)
    return {"shops": shops, "location_error": state.location_error}


@app.post("/api/auth/signup")
def sign_up(req: SignUpRequest):
    try:
        result = _registry().auth.sign_up(req.email, req.password, req.full_name)
    except AuthError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    # no mail transport: the challenge goes back to the caller
    return result.model_dump()


@app.post("/api/auth/confirm")
def confirm(req: ConfirmRequest):
    registry = _registry()
    try:
        session = registry.auth.confirm(req.token)
    except AuthError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    registry.open(session)
    return {"session": session.model_dump(mode="json")}


@app.post("/api/auth/signin")
def sign_in(req: SignInRequest):
    registry = _registry()
    try:
        session = registry.auth.sign_in(req.email, req.password)
    except AuthError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    registry.open(session)
    return {"session": session.model_dump(mode="json")}


@app.post("/api/auth/signout")
def sign_out(authorization: Optional[str] = Header(None)):
    token = _bearer(authorization)
    registry = _registry()
    state = registry.get(token)
    if state is not None:
        state.sign_out()
        registry.close(token)
    return {"status": "signed_out"}


def _profile_payload(state: AppState) -> Dict[str, Any]:
    profile = state.store.get_profile(state.user.id)
    return {
        "user": state.user.model_dump(),
        "full_name": profile.full_name if profile else state.user.full_name,
        "preferred_language": state.language,
        "field_mode_enabled": state.field_mode,
    }


@app.get("/api/profile")
def get_profile(authorization: Optional[str] = Header(None)):
    return _profile_payload(_signed_in_state(authorization))


@app.patch("/api/profile")
def update_profile(req: ProfileUpdate, authorization: Optional[str] = Header(None)):
    state = _signed_in_state(authorization)
    if req.preferred_language is not None:
        try:
            state.set_language(req.preferred_language)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))
    if req.field_mode_enabled is not None and req.field_mode_enabled != state.field_mode:
        state.toggle_field_mode()
    if req.full_name is not None:
        state.store.update_profile(state.user.id, full_name=req.full_name)
    return _profile_payload(state)


@app.get("/api/translations/{language}")
def get_translations(language: str):
    if language not in SUPPORTED_LANGUAGES:
        raise HTTPException(status_code=404, detail="unsupported_language")
    return {"language": language, "name": SUPPORTED_LANGUAGES[language], "strings": TRANSLATIONS[language]}


@app.post("/api/voice/command")
def voice_command(req: VoiceCommandRequest, authorization: Optional[str] = Header(None)):
    state = _state_for(authorization)
    language = req.language if req.language in SUPPORTED_LANGUAGES else state.language
    return respond_to_command(req.text, language, tts=state.text_to_speech).model_dump()


@app.post("/api/voice/listening")
def voice_listening(req: ListeningRequest, authorization: Optional[str] = Header(None)):
    state = _state_for(authorization)
    try:
        state.set_listening(req.listening)
    except CapabilityUnavailable as e:
        raise HTTPException(status_code=501, detail=str(e))
    return {"listening": state.is_listening, "locale": state.speech_to_text.locale if req.listening else None}


@app.get("/api/weather")
def weather(lat: Optional[float] = None, lon: Optional[float] = None):
    location = Coordinate(latitude=lat, longitude=lon) if lat is not None and lon is not None else None
    try:
        return fetch_weather(location).model_dump()
    except ValueError as e:
        raise HTTPException(status_code=502, detail=str(e))


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=int(os.getenv("PORT", "8000")))
