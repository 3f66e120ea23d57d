import json

import httpx
import pytest

from agrisolve.auth import AuthProvider
from agrisolve.models import AnalysisResult
from agrisolve.services.vision import ScanAnalysisClient
from agrisolve.state import AppState
from agrisolve.store import Store

LEAF_DATA_URL = "data:image/jpeg;base64,/9j/4AAQSkZJRgABAQAAAQABAAD/2wBDAAEBAQ=="


def chat_completion(content):
    return {"choices": [{"message": {"role": "assistant", "content": content}}]}


class FakeGateway:
    """Records requests and answers with a canned chat-completion response."""

    def __init__(self, content=None, status_code=200, body=None):
        self.content = content
        self.status_code = status_code
        self.body = body
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if self.status_code != 200:
            return httpx.Response(self.status_code, text="gateway says no")
        body = self.body if self.body is not None else chat_completion(self.content)
        return httpx.Response(200, json=body)

    @property
    def last_payload(self):
        return json.loads(self.requests[-1].content)

    def client(self):
        return ScanAnalysisClient(
            api_key="test-key",
            gateway_url="https://gateway.test/v1/chat/completions",
            model="test/model",
            transport=httpx.MockTransport(self),
        )


@pytest.fixture
def store(tmp_path):
    return Store(str(tmp_path / "agrisolve.db"))


@pytest.fixture
def auth(store):
    return AuthProvider(store, secret="test-secret")


@pytest.fixture
def state(store, auth):
    s = AppState(store, auth=auth)
    yield s
    s.close()


@pytest.fixture
def confirmed_user(auth):
    """Sign up and confirm a user; returns (email, password, session)."""
    email, password = "farmer@example.com", "s3cret-pass"
    signup = auth.sign_up(email, password, "Ravi Kumar")
    session = auth.confirm(signup.confirmation_token)
    return email, password, session


@pytest.fixture
def signed_in_state(state, confirmed_user):
    _, _, session = confirmed_user
    state.start(session.access_token)
    return state


@pytest.fixture
def sample_result():
    return AnalysisResult(
        diagnosis="Rice Blast (Pyricularia oryzae)",
        cause="Fungal infection favoured by high humidity.",
        organicCure="Apply Trichoderma viride (5g/L water).",
        chemicalCure="Apply Tricyclazole 75% WP (0.6g/L).",
        confidence=88,
        isHealthy=False,
        preventionTips="Plant resistant varieties.",
        healthyImage="https://images.unsplash.com/photo-1536304993881-ff6e9eefa2a6?w=400",
    )


SAMPLE_SHOPS = [
    {"id": "s-far", "name": "Kisan Seva Kendra", "latitude": 10.2, "longitude": 10.2, "rating": 4.9,
     "pesticide_stock_list": ["Mancozeb"], "organic_products": ["Neem oil"]},
    {"id": "s-near", "name": "Green Agro Mart", "latitude": 10.001, "longitude": 10.001, "rating": 4.1,
     "phone": "+91-9000000000"},
    {"id": "s-mid", "name": "Village Fertilizers", "latitude": 10.05, "longitude": 10.05, "rating": None},
]


@pytest.fixture
def shops(store):
    return [store.add_shop(dict(s)) for s in SAMPLE_SHOPS]
