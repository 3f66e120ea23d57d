"""UI strings for the supported languages."""
from typing import Dict

DEFAULT_LANGUAGE = "en"

SUPPORTED_LANGUAGES = {
    "en": "English",
    "hi": "Hindi (हिंदी)",
    "ta": "Tamil (தமிழ்)",
    "te": "Telugu (తెలుగు)",
}

# BCP-47 tags handed to the browser speech APIs
SPEECH_LOCALES = {
    "en": "en-US",
    "hi": "hi-IN",
    "ta": "ta-IN",
    "te": "te-IN",
}

TRANSLATIONS: Dict[str, Dict[str, str]] = {
    "en": {
        "welcome": "Welcome to Agri-Solve Pro",
        "scanLeaf": "Scan Leaf",
        "uploadImage": "Upload or capture a leaf image",
        "dragDrop": "Drag & drop or click to upload",
        "analyzing": "Analyzing your crop...",
        "diagnosis": "Diagnosis",
        "cause": "Cause of Infection",
        "organicCure": "Organic Cure",
        "chemicalCure": "Chemical Cure",
        "nearbyShops": "Nearby Shops",
        "findStores": "Find fertilizer stores near you",
        "weather": "Weather",
        "voiceAssistant": "Voice Assistant",
        "tapToSpeak": "Tap to speak",
        "listening": "Listening...",
        "fieldMode": "Field Mode",
        "history": "Scan History",
        "settings": "Settings",
        "signIn": "Sign In",
        "signUp": "Sign Up",
        "signOut": "Sign Out",
        "email": "Email",
        "password": "Password",
        "name": "Full Name",
        "healthy": "Healthy",
        "infected": "Infected",
        "confidence": "Confidence",
        "distance": "Distance",
        "call": "Call",
        "directions": "Directions",
        "noScans": "No scans yet",
        "startScanning": "Start scanning your crops!",
        "cropType": "Crop Type",
        "selectCrop": "Select crop type",
        "rice": "Rice",
        "wheat": "Wheat",
        "cotton": "Cotton",
        "tomato": "Tomato",
        "potato": "Potato",
        "maize": "Maize",
        "sugarcane": "Sugarcane",
        "other": "Other",
    },
    "hi": {
        "welcome": "एग्री-सॉल्व प्रो में आपका स्वागत है",
        "scanLeaf": "पत्ती स्कैन करें",
        "uploadImage": "पत्ती की छवि अपलोड या कैप्चर करें",
        "dragDrop": "खींचें और छोड़ें या अपलोड करने के लिए क्लिक करें",
        "analyzing": "आपकी फसल का विश्लेषण हो रहा है...",
        "diagnosis": "निदान",
        "cause": "संक्रमण का कारण",
        "organicCure": "जैविक उपचार",
        "chemicalCure": "रासायनिक उपचार",
        "nearbyShops": "नजदीकी दुकानें",
        "findStores": "अपने पास उर्वरक स्टोर खोजें",
        "weather": "मौसम",
        "voiceAssistant": "वॉयस असिस्टेंट",
        "tapToSpeak": "बोलने के लिए टैप करें",
        "listening": "सुन रहा हूं...",
        "fieldMode": "फील्ड मोड",
        "history": "स्कैन इतिहास",
        "settings": "सेटिंग्स",
        "signIn": "साइन इन करें",
        "signUp": "साइन अप करें",
        "signOut": "साइन आउट",
        "email": "ईमेल",
        "password": "पासवर्ड",
        "name": "पूरा नाम",
        "healthy": "स्वस्थ",
        "infected": "संक्रमित",
        "confidence": "विश्वास",
        "distance": "दूरी",
        "call": "कॉल",
        "directions": "दिशा-निर्देश",
        "noScans": "अभी तक कोई स्कैन नहीं",
        "startScanning": "अपनी फसलों को स्कैन करना शुरू करें!",
        "cropType": "फसल प्रकार",
        "selectCrop": "फसल प्रकार चुनें",
        "rice": "चावल",
        "wheat": "गेहूं",
        "cotton": "कपास",
        "tomato": "टमाटर",
        "potato": "आलू",
        "maize": "मक्का",
        "sugarcane": "गन्ना",
        "other": "अन्य",
    },
    "ta": {
        "welcome": "அக்ரி-சால்வ் புரோவுக்கு வரவேற்கிறோம்",
        "scanLeaf": "இலையை ஸ்கேன் செய்",
        "uploadImage": "இலை படத்தை பதிவேற்றவும் அல்லது படம் எடுக்கவும்",
        "dragDrop": "இழுத்து விடவும் அல்லது பதிவேற்ற கிளிக் செய்யவும்",
        "analyzing": "உங்கள் பயிரை பகுப்பாய்வு செய்கிறது...",
        "diagnosis": "நோய் கண்டறிதல்",
        "cause": "தொற்றின் காரணம்",
        "organicCure": "இயற்கை தீர்வு",
        "chemicalCure": "இரசாயன தீர்வு",
        "nearbyShops": "அருகிலுள்ள கடைகள்",
        "findStores": "அருகிலுள்ள உர கடைகளைக் கண்டறியவும்",
        "weather": "வானிலை",
        "voiceAssistant": "குரல் உதவியாளர்",
        "tapToSpeak": "பேச தட்டவும்",
        "listening": "கேட்கிறேன்...",
        "fieldMode": "வயல் பயன்முறை",
        "history": "ஸ்கேன் வரலாறு",
        "settings": "அமைப்புகள்",
        "signIn": "உள்நுழைக",
        "signUp": "பதிவு செய்க",
        "signOut": "வெளியேறு",
        "email": "மின்னஞ்சல்",
        "password": "கடவுச்சொல்",
        "name": "முழு பெயர்",
        "healthy": "ஆரோக்கியமான",
        "infected": "பாதிக்கப்பட்ட",
        "confidence": "நம்பிக்கை",
        "distance": "தூரம்",
        "call": "அழைப்பு",
        "directions": "வழிகள்",
        "noScans": "இன்னும் ஸ்கேன்கள் இல்லை",
        "startScanning": "உங்கள் பயிர்களை ஸ்கேன் செய்யத் தொடங்குங்கள்!",
        "cropType": "பயிர் வகை",
        "selectCrop": "பயிர் வகையைத் தேர்ந்தெடுக்கவும்",
        "rice": "அரிசி",
        "wheat": "கோதுமை",
        "cotton": "பருத்தி",
        "tomato": "தக்காளி",
        "potato": "உருளைக்கிழங்கு",
        "maize": "சோளம்",
        "sugarcane": "கரும்பு",
        "other": "மற்றவை",
    },
    "te": {
        "welcome": "అగ్రి-సాల్వ్ ప్రోకి స్వాగతం",
        "scanLeaf": "ఆకును స్కాన్ చేయండి",
        "uploadImage": "ఆకు చిత్రాన్ని అప్‌లోడ్ చేయండి లేదా క్యాప్చర్ చేయండి",
        "dragDrop": "డ్రాగ్ & డ్రాప్ చేయండి లేదా అప్‌లోడ్ చేయడానికి క్లిక్ చేయండి",
        "analyzing": "మీ పంటను విశ్లేషిస్తోంది...",
        "diagnosis": "వ్యాధి నిర్ధారణ",
        "cause": "సంక్రమణ కారణం",
        "organicCure": "సేంద్రీయ చికిత్స",
        "chemicalCure": "రసాయన చికిత్స",
        "nearbyShops": "సమీపంలోని దుకాణాలు",
        "findStores": "మీ సమీపంలో ఎరువుల దుకాణాలను కనుగొనండి",
        "weather": "వాతావరణం",
        "voiceAssistant": "వాయిస్ అసిస్టెంట్",
        "tapToSpeak": "మాట్లాడటానికి నొక్కండి",
        "listening": "వింటున్నాను...",
        "fieldMode": "ఫీల్డ్ మోడ్",
        "history": "స్కాన్ చరిత్ర",
        "settings": "సెట్టింగ్‌లు",
        "signIn": "సైన్ ఇన్",
        "signUp": "సైన్ అప్",
        "signOut": "సైన్ అవుట్",
        "email": "ఇమెయిల్",
        "password": "పాస్‌వర్డ్",
        "name": "పూర్తి పేరు",
        "healthy": "ఆరోగ్యకరమైన",
        "infected": "సంక్రమించిన",
        "confidence": "నమ్మకం",
        "distance": "దూరం",
        "call": "కాల్",
        "directions": "దిశలు",
        "noScans": "ఇంకా స్కాన్‌లు లేవు",
        "startScanning": "మీ పంటలను స్కాన్ చేయడం ప్రారంభించండి!",
        "cropType": "పంట రకం",
        "selectCrop": "పంట రకాన్ని ఎంచుకోండి",
        "rice": "బియ్యం",
        "wheat": "గోధుమ",
        "cotton": "పత్తి",
        "tomato": "టమాటో",
        "potato": "బంగాళాదుంప",
        "maize": "మొక్కజొన్న",
        "sugarcane": "చెరకు",
        "other": "ఇతర",
    },
}


def is_supported(language: str) -> bool:
    return language in SUPPORTED_LANGUAGES


def translate(language: str, key: str) -> str:
    """Look up `key` for `language`; unknown keys come back unchanged."""
    table = TRANSLATIONS.get(language) or TRANSLATIONS[DEFAULT_LANGUAGE]
    return table.get(key) or key


def speech_locale(language: str) -> str:
    return SPEECH_LOCALES.get(language, SPEECH_LOCALES[DEFAULT_LANGUAGE])
