from typing import Optional

from pydantic import BaseModel

from ..capabilities import TextToSpeech, UnavailableTextToSpeech
from ..i18n import DEFAULT_LANGUAGE, speech_locale

COMMAND_REPLIES = {
    "en": 'You said: "{text}". I can help you scan crops, find nearby stores, or check the weather. '
          'Try saying "scan my crop" or "find fertilizer shop".',
    "hi": 'आपने कहा: "{text}"। मैं आपकी फसलों को स्कैन करने, नजदीकी दुकानों को खोजने या मौसम की जांच करने में मदद कर सकता हूं।',
    "ta": 'நீங்கள் சொன்னீர்கள்: "{text}". நான் பயிர்களை ஸ்கேன் செய்யவும், அருகிலுள்ள கடைகளைக் கண்டறியவும், வானிலையைச் சரிபார்க்கவும் உதவ முடியும்.',
    "te": 'మీరు చెప్పారు: "{text}". నేను పంటలను స్కాన్ చేయడానికి, సమీపంలోని దుకాణాలను కనుగొనడానికి లేదా వాతావరణాన్ని తనిఖీ చేయడానికి సహాయం చేయగలను.',
}


class VoiceReply(BaseModel):
    transcript: str
    reply: str
    locale: str
    spoken: bool


def respond_to_command(text: str, language: str = DEFAULT_LANGUAGE, tts: Optional[TextToSpeech] = None) -> VoiceReply:
    """Build the assistant's reply to a final transcript and speak it if possible."""
    transcript = (text or "").strip()
    template = COMMAND_REPLIES.get(language) or COMMAND_REPLIES[DEFAULT_LANGUAGE]
    reply = template.format(text=transcript)
    locale = speech_locale(language)
    spoken = (tts or UnavailableTextToSpeech()).speak(reply, locale)
    return VoiceReply(transcript=transcript, reply=reply, locale=locale, spoken=spoken)
