"""
Crop Scan Analysis Client
Sends a leaf photo plus the selected crop type to a multimodal chat-completion
gateway and turns the model's JSON reply into an `AnalysisResult`.
"""
import base64
import json
import logging
import os
from typing import Any, Dict, Optional, Union

import httpx
from pydantic import ValidationError

from ..models import AnalysisReply, AnalysisResult

logger = logging.getLogger(__name__)

DEFAULT_GATEWAY_URL = "https://ai.gateway.lovable.dev/v1/chat/completions"
DEFAULT_MODEL = "google/gemini-2.5-flash"
TEMPERATURE = 0.3

CROP_TYPES = ("rice", "wheat", "cotton", "tomato", "potato", "maize", "sugarcane", "other")

# Healthy leaf photos shown next to the upload for comparison.
HEALTHY_REFERENCE_IMAGES = {
    "rice": "https://images.unsplash.com/photo-1536304993881-ff6e9eefa2a6?w=400",
    "wheat": "https://images.unsplash.com/photo-1574323347407-f5e1ad6d020b?w=400",
    "tomato": "https://images.unsplash.com/photo-1592841200221-a6898f307baa?w=400",
    "cotton": "https://images.unsplash.com/photo-1605000797499-95a51c5269ae?w=400",
    "potato": "https://images.unsplash.com/photo-1518977676601-b53f82ber72a?w=400",
    "maize": "https://images.unsplash.com/photo-1551754655-cd27e38d2076?w=400",
    "sugarcane": "https://images.unsplash.com/photo-1555012155-1f0b9e29a29c?w=400",
    "other": "https://images.unsplash.com/photo-1416879595882-3373a0480b5b?w=400",
}

SYSTEM_PROMPT = """You are an expert agricultural pathologist and crop disease specialist. Analyze the provided leaf/plant image for diseases, pests, or nutrient deficiencies.

Your response MUST be a valid JSON object with exactly this structure:
{
  "diagnosis": "Name of the disease or condition (e.g., 'Rice Blast (Pyricularia oryzae)' or 'Healthy - No Disease Detected')",
  "confidence": <number between 0-100>,
  "isHealthy": <boolean>,
  "cause": "Detailed explanation of what causes this condition, environmental factors, and how it spreads",
  "organicCure": "Natural and organic treatment methods, including bio-fungicides, cultural practices, and preventive measures",
  "chemicalCure": "Chemical treatment options with specific product names, concentrations, and application instructions",
  "preventionTips": "Best practices to prevent this disease in the future"
}

Guidelines:
- Be specific and accurate in your diagnosis
- If the plant appears healthy, set isHealthy to true and provide general care tips
- Include specific product names and dosages when recommending treatments
- Consider the crop type provided for context-specific recommendations
- Confidence should reflect your certainty based on image quality and visible symptoms"""

INCONCLUSIVE_REPLY = AnalysisReply(
    diagnosis="Analysis Inconclusive",
    confidence=0,
    isHealthy=False,
    cause="Unable to analyze the image. Please try with a clearer image of the affected plant part.",
    organicCure="Consult with a local agricultural extension officer for proper diagnosis.",
    chemicalCure="Professional diagnosis recommended before chemical treatment.",
    preventionTips="Ensure good image quality with proper lighting for accurate analysis.",
)


class AnalysisError(Exception):
    """Base class for failures surfaced to the caller as a short message."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class InvalidImageError(AnalysisError):
    status_code = 400


class RateLimitedError(AnalysisError):
    status_code = 429


class CreditsExhaustedError(AnalysisError):
    status_code = 402


class UpstreamError(AnalysisError):
    pass


class EmptyResponseError(AnalysisError):
    pass


class GatewayNotConfiguredError(AnalysisError):
    pass


def get_gateway_url() -> str:
    return os.getenv("AI_GATEWAY_URL", DEFAULT_GATEWAY_URL)


def get_gateway_api_key() -> str:
    """Return the gateway key; `LOVABLE_API_KEY` is accepted as an alias."""
    return os.getenv("AI_GATEWAY_API_KEY", "") or os.getenv("LOVABLE_API_KEY", "")


def get_model() -> str:
    return os.getenv("AI_MODEL", DEFAULT_MODEL)


def get_timeout() -> float:
    try:
        return float(os.getenv("AI_GATEWAY_TIMEOUT", "60"))
    except ValueError:
        return 60.0


def healthy_reference_image(crop_type: Optional[str]) -> str:
    return HEALTHY_REFERENCE_IMAGES.get((crop_type or "").lower(), HEALTHY_REFERENCE_IMAGES["other"])


def build_image_url(image_data: Union[str, bytes, None]) -> str:
    """Normalise the upload into a data URL the gateway accepts.

    Data URLs and http(s) URLs pass through; bare base64 and raw bytes are
    wrapped as JPEG.
    """
    if isinstance(image_data, (bytes, bytearray)):
        if not image_data:
            raise InvalidImageError("Image data is required")
        return "data:image/jpeg;base64," + base64.b64encode(bytes(image_data)).decode("ascii")
    text = (image_data or "").strip()
    if not text:
        raise InvalidImageError("Image data is required")
    if text.startswith("data:") or text.startswith("http://") or text.startswith("https://"):
        return text
    return f"data:image/jpeg;base64,{text}"


def build_user_message(crop_type: Optional[str]) -> str:
    if crop_type:
        return (
            f"Analyze this {crop_type} plant/leaf image for any diseases, pests, or health issues. "
            "Provide detailed diagnosis and treatment recommendations."
        )
    return (
        "Analyze this plant/leaf image for any diseases, pests, or health issues. "
        "Provide detailed diagnosis and treatment recommendations."
    )


def build_payload(image_url: str, crop_type: Optional[str], model: Optional[str] = None) -> Dict[str, Any]:
    return {
        "model": model or get_model(),
        "messages": [
            {"role": "system", "content": SYSTEM_PROMPT},
            {
                "role": "user",
                "content": [
                    {"type": "text", "text": build_user_message(crop_type)},
                    {"type": "image_url", "image_url": {"url": image_url}},
                ],
            },
        ],
        "temperature": TEMPERATURE,
    }


def strip_code_fences(content: str) -> str:
    """Remove an optional leading ```json / ``` and trailing ``` marker."""
    txt = (content or "").strip()
    if txt.startswith("```json"):
        txt = txt[7:]
    elif txt.startswith("```"):
        txt = txt[3:]
    if txt.endswith("```"):
        txt = txt[:-3]
    return txt.strip()


def parse_reply(content: str, crop_type: Optional[str] = None) -> AnalysisResult:
    """Parse the model's text into a result, never raising on malformed JSON."""
    healthy_image = healthy_reference_image(crop_type)
    try:
        data = json.loads(strip_code_fences(content))
        if not isinstance(data, dict):
            raise ValueError(f"expected a JSON object, got {type(data).__name__}")
        reply = AnalysisReply.model_validate(data)
    except (ValueError, ValidationError) as e:
        # json.JSONDecodeError is a ValueError
        logger.warning("[parse_reply] could not parse AI reply (%s): %.200s", e, content)
        return INCONCLUSIVE_REPLY.to_result(healthy_image)
    return reply.to_result(healthy_image)


def _extract_content(body: Dict[str, Any]) -> Optional[str]:
    choices = body.get("choices") or []
    if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
        return None
    message = choices[0].get("message") or {}
    if not isinstance(message, dict):
        return None
    content = message.get("content")
    if isinstance(content, list):
        # some gateways return content parts instead of a single string
        content = "".join(str(part.get("text") or "") for part in content if isinstance(part, dict))
    if not isinstance(content, str):
        return None
    return content or None


def _raise_for_gateway_status(response: httpx.Response) -> None:
    if response.is_success:
        return
    logger.warning("[analyze] AI gateway error: status=%s body=%.300s", response.status_code, response.text)
    if response.status_code == 429:
        raise RateLimitedError("Rate limit exceeded. Please try again in a moment.")
    if response.status_code == 402:
        raise CreditsExhaustedError("AI service credits exhausted. Please add credits to continue.")
    raise UpstreamError(f"AI gateway error: {response.status_code}")


class ScanAnalysisClient:
    """Client for the multimodal analysis gateway.

    Configuration defaults come from the environment; `transport` lets tests
    plug in an `httpx.MockTransport`.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        gateway_url: Optional[str] = None,
        model: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key if api_key is not None else get_gateway_api_key()
        self.gateway_url = gateway_url or get_gateway_url()
        self.model = model or get_model()
        self.timeout = timeout if timeout is not None else get_timeout()
        self.transport = transport

    async def analyze(self, image_data: Union[str, bytes, None], crop_type: Optional[str] = None) -> AnalysisResult:
        """Diagnose the leaf in `image_data`.

        Gateway failures raise an `AnalysisError` subclass and are not retried.
        A reply that is not valid JSON yields the "Analysis Inconclusive" result.
        """
        image_url = build_image_url(image_data)
        if not self.api_key:
            raise GatewayNotConfiguredError("AI_GATEWAY_API_KEY is not configured")

        payload = build_payload(image_url, crop_type, model=self.model)
        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(self.gateway_url, json=payload, headers=headers)
        except httpx.HTTPError as e:
            logger.warning("[analyze] AI gateway request failed: %s", e)
            raise UpstreamError(f"Failed to reach AI gateway: {e}")

        logger.info("[analyze] gateway status=%s crop=%s", response.status_code, crop_type)
        _raise_for_gateway_status(response)

        try:
            body = response.json()
        except ValueError:
            body = {}
        content = _extract_content(body) if isinstance(body, dict) else None
        if not content:
            raise EmptyResponseError("No response from AI model")

        return parse_reply(content, crop_type)
