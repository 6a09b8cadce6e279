"""Text-diffable machine translation of line-oriented JSON files."""
from translate_json.engine import Engine, TranslateConfig, TranslateStats
from translate_json.errors import (
    ConfigurationError,
    InputError,
    OutputError,
    TranslateJsonError,
    TranslationError,
)
from translate_json.translators import IdentityTranslator, OpenAITranslator, Translator

__all__ = [
    "Engine",
    "TranslateConfig",
    "TranslateStats",
    "Translator",
    "IdentityTranslator",
    "OpenAITranslator",
    "TranslateJsonError",
    "ConfigurationError",
    "InputError",
    "TranslationError",
    "OutputError",
]
