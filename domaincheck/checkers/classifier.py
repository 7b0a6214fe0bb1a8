"""Availability classification of WHOIS responses."""


def is_available(response_text: str, pattern: str) -> bool:
    """True if ``pattern`` occurs verbatim in ``response_text``.

    Patterns are per-TLD wording such as ``"No match for"`` or
    ``"NOT FOUND"`` and are compared case-sensitively.
    """
    return pattern in response_text
