"""
Supported output languages for the AgriScan analysis service.
"""
from enum import Enum


class Language(str, Enum):
    EN = 'en'
    HI = 'hi'
    KN = 'kn'
    TA = 'ta'
    TE = 'te'
    MR = 'mr'


# How each language is named inside the model prompt
PROMPT_LANGUAGE_NAMES = {
    'en': 'English',
    'hi': 'Hindi (Devanagari script)',
    'kn': 'Kannada (Kannada script)',
    'ta': 'Tamil (Tamil script)',
    'te': 'Telugu (Telugu script)',
    'mr': 'Marathi (Devanagari script)',
}

# Default language
DEFAULT_LANGUAGE = Language.EN


def get_prompt_language(language: Language) -> str:
    return PROMPT_LANGUAGE_NAMES.get(language.value, 'English')
