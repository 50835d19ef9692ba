"""
Customer-facing message catalog (English and Hindi).

Messages use ``{{name}}`` placeholders. Lookups fall back to English and
then to the key itself, so a missing translation never breaks a response.
"""
import re
from typing import Dict

from hellofixo.lib.logging import get_logger

logger = get_logger(__name__)

SUPPORTED_LANGUAGES = ("en", "hi")

TRANSLATIONS: Dict[str, Dict[str, str]] = {
    "en": {
        "errorTitle": "Something went wrong",
        "bookingError": "Please fix the errors in the form",
        "bookingNotFound": "Booking not found. Please check your Order ID.",
        "orderIdRequired": "Order ID cannot be empty.",
        "errorInvalidPincode": "Please enter a valid 6-digit pincode.",
        "errorCouldNotFindPincode": "Could not find details for this pincode.",
        "errorFailedToFetchLocation": "Failed to fetch location details.",
        "errorNoDistrict": "Could not determine district from pincode.",
        "errorNotServiceable": "Sorry, we do not currently service {{district}}.",
        "referralEmpty": "Enter referral code",
        "referralApplied": "REFERRAL APPLIED!",
        "referralInvalid": "Invalid referral code.",
        "referralUnavailable": "Could not verify referral code.",
        "unexpectedError": "An unexpected error occurred.",
        "cancelReasonRequired": "Please select a reason for cancellation.",
        "cancelOtherReasonRequired": "Please provide a reason if you select 'Other'.",
        "bookingNotCancellable": "This booking can no longer be cancelled.",
        "quoteNotPending": "This quote is no longer awaiting your decision.",
        "photoRequired": "Please upload at least one photo of the issue to proceed.",
    },
    "hi": {
        "errorTitle": "कुछ गलत हो गया",
        "bookingError": "कृपया फ़ॉर्म की त्रुटियाँ ठीक करें",
        "bookingNotFound": "बुकिंग नहीं मिली। कृपया अपना ऑर्डर आईडी जांचें।",
        "orderIdRequired": "ऑर्डर आईडी खाली नहीं हो सकता।",
        "errorInvalidPincode": "कृपया एक मान्य 6-अंकों का पिनकोड दर्ज करें।",
        "errorCouldNotFindPincode": "इस पिनकोड का विवरण नहीं मिला।",
        "errorFailedToFetchLocation": "स्थान का विवरण प्राप्त करने में विफल।",
        "errorNotServiceable": "क्षमा करें, हम अभी {{district}} में सेवा नहीं देते हैं।",
        "referralInvalid": "अमान्य रेफ़रल कोड।",
        "bookingNotCancellable": "यह बुकिंग अब रद्द नहीं की जा सकती।",
        "photoRequired": "आगे बढ़ने के लिए समस्या की कम से कम एक फ़ोटो अपलोड करें।",
    },
}

_PLACEHOLDER = re.compile(r"\{\{(\w+)\}\}")


def normalize_language(lang: str | None) -> str:
    """Map any incoming language tag to a supported one ('hi' or 'en')."""
    if lang and lang.lower().startswith("hi"):
        return "hi"
    return "en"


def translate(key: str, lang: str | None = "en", **variables) -> str:
    """
    Look up a message and substitute ``{{var}}`` placeholders.

    Args:
        key: Message key
        lang: Language tag
        **variables: Placeholder values

    Returns:
        Translated text, the English text, or the key itself
    """
    lang = normalize_language(lang)
    text = TRANSLATIONS[lang].get(key)
    if text is None:
        if lang != "en":
            logger.debug("Missing translation: %s.%s", lang, key)
        text = TRANSLATIONS["en"].get(key, key)

    if not variables:
        return text
    return _PLACEHOLDER.sub(
        lambda match: str(variables.get(match.group(1), match.group(0))),
        text,
    )
