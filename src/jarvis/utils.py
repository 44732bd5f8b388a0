"""Shared helpers."""

_MAX_OUTPUT_CHARS = 8000


def truncate_output(text: str, max_length: int = _MAX_OUTPUT_CHARS) -> str:
    """Truncate text to max_length characters.

    Args:
        text: The text to truncate
        max_length: Maximum length kept before the marker is appended

    Returns:
        The text, or its head followed by a truncation marker
    """
    if len(text) <= max_length:
        return text
    return text[:max_length] + f"\n\n[Output truncated - showing first {max_length} characters]"


def mask_secret(value: str | None, visible: int = 4) -> str:
    """Mask all but the last few characters of a secret for display."""
    if not value:
        return "not set"
    if len(value) <= visible:
        return "*" * len(value)
    return "*" * 8 + value[-visible:]
