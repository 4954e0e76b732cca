"""
Naming helpers shared by the analyzer and the emitter.
"""

import keyword
import re

# Regex pattern to split text into words, handling camelCase boundaries
_WORD_PATTERN = re.compile(r"[a-z]+|[A-Z][a-z]*|[0-9]+")

# Splits camelCase runs while keeping acronyms together ("HTTPVerb" -> "HTTP", "Verb")
_SNAKE_BOUNDARY = re.compile(r"(?<=[a-z0-9])(?=[A-Z])|(?<=[A-Z])(?=[A-Z][a-z])")


def _normalize_separators(text: str) -> str:
    """Normalize separators (underscores, hyphens, dots) to spaces."""
    return text.replace("_", " ").replace("-", " ").replace(".", " ")


def _split_into_words(text: str) -> list[str]:
    """Split text into words, handling camelCase boundaries."""
    return _WORD_PATTERN.findall(text)


def _capitalize_and_join(words: list[str]) -> str:
    """Capitalize each word and join them together."""
    return "".join(word.capitalize() for word in words if word)


def snake_to_pascal_case(text: str) -> str:
    """Convert snake_case, camelCase, dotted or hyphenated text to PascalCase.

    Examples:
        "first_name" -> "FirstName"
        "dateTime" -> "DateTime"
        "Patient.Contact" -> "PatientContact"
        "AdministrativeGender-list" -> "AdministrativeGenderList"

    Args:
        text: The text to convert

    Returns:
        PascalCase string
    """
    if not text:
        return ""
    normalized = _normalize_separators(text)
    words = _split_into_words(normalized)
    return _capitalize_and_join(words)


def to_snake_case(text: str) -> str:
    """Convert a schema name to snake_case.

    Examples:
        "deceasedBoolean" -> "deceased_boolean"
        "Patient.Contact" -> "patient_contact"
        "string-primitive" -> "string_primitive"
        "HTTPVerb" -> "http_verb"
    """
    parts = []
    for chunk in _normalize_separators(text).split():
        parts.extend(_SNAKE_BOUNDARY.split(chunk))
    return "_".join(part.lower() for part in parts if part)


def python_identifier(name: str) -> str:
    """snake_case attribute name, escaped when it collides with a Python keyword."""
    ident = to_snake_case(name)
    if keyword.iskeyword(ident):
        ident += "_"
    if ident and ident[0].isdigit():
        ident = "_" + ident
    return ident
