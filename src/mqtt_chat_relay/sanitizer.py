"""Size bounding for messages crossing the relay."""

TRUNCATION_MARKER = "..."


def truncate_message(text: str, max_length: int) -> str:
    """Bound ``text`` to ``max_length`` UTF-8 bytes.

    Oversized text keeps as many whole characters as fit in
    ``max_length - 3`` bytes and ends with ``"..."``. Characters that
    cannot be encoded, such as lone surrogates, become ``"?"``.
    """
    try:
        encoded = text.encode("utf-8")
    except UnicodeEncodeError:
        # Lone surrogates, e.g. decoded from a JSON "\\ud83d" escape
        text = text.encode("utf-8", errors="replace").decode("utf-8")
        encoded = text.encode("utf-8")
    if len(encoded) <= max_length:
        return text

    if max_length <= len(TRUNCATION_MARKER):
        return TRUNCATION_MARKER[: max(max_length, 0)]

    head = encoded[: max_length - len(TRUNCATION_MARKER)]
    # A cut through a multi-byte sequence leaves only an incomplete tail
    return head.decode("utf-8", errors="ignore") + TRUNCATION_MARKER
