"""Text normalization applied to free-text model output before parsing."""

_FENCE = "```"
_OPENING_MARKERS = ("```json", "```JSON", _FENCE)


def strip_code_fence(text: str) -> str:
    """Remove a fenced-code wrapper around the response, if present.

    Applying it to already-stripped text returns the text unchanged.
    """
    cleaned = text.strip()
    for marker in _OPENING_MARKERS:
        if cleaned.startswith(marker):
            cleaned = cleaned[len(marker):]
            break
    if cleaned.endswith(_FENCE):
        cleaned = cleaned[: -len(_FENCE)]
    return cleaned.strip()
