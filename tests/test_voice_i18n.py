import pytest

from agrisolve.capabilities import RelayedTextToSpeech
from agrisolve.i18n import SUPPORTED_LANGUAGES, TRANSLATIONS, speech_locale, translate
from agrisolve.services.voice import respond_to_command


def test_every_language_has_the_same_keys():
    keys = set(TRANSLATIONS["en"])
    for language in SUPPORTED_LANGUAGES:
        assert set(TRANSLATIONS[language]) == keys


def test_translate_falls_back():
    assert translate("hi", "scanLeaf") == "पत्ती स्कैन करें"
    assert translate("hi", "noSuchKey") == "noSuchKey"
    assert translate("fr", "scanLeaf") == "Scan Leaf"


@pytest.mark.parametrize("language, locale", [
    ("en", "en-US"), ("hi", "hi-IN"), ("ta", "ta-IN"), ("te", "te-IN"), ("fr", "en-US"),
])
def test_speech_locale(language, locale):
    assert speech_locale(language) == locale


def test_reply_echoes_transcript_and_is_spoken():
    reply = respond_to_command("  find fertilizer shop ", "en", tts=RelayedTextToSpeech())
    assert reply.transcript == "find fertilizer shop"
    assert reply.reply.startswith('You said: "find fertilizer shop".')
    assert reply.locale == "en-US"
    assert reply.spoken is True


def test_reply_in_hindi_without_speech():
    reply = respond_to_command("मौसम", "hi")
    assert reply.reply.startswith('आपने कहा: "मौसम"')
    assert reply.locale == "hi-IN"
    assert reply.spoken is False
