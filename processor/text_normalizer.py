"""Text normalization and legacy escape decoding."""
import logging
import re
from typing import Any

from processor.models import EncodedText, PlainText

logger = logging.getLogger(__name__)

_WHITESPACE_RUN = re.compile(r'\s+')
_LEGACY_ESCAPE = re.compile(r'=([0-9A-Fa-f]{2})')


def normalize(value: Any) -> str:
    """
    Canonicalize line endings and whitespace.

    Args:
        value: Text to normalize; anything that is not a str yields ''

    Returns:
        Text with CRLF converted, whitespace runs collapsed and ends trimmed
    """
    if not isinstance(value, str):
        return ''

    text = value.replace('\r\n', '\n')
    return _WHITESPACE_RUN.sub(' ', text).strip()


def decode_legacy_escapes(text: Any) -> Any:
    """
    Replace each =XX escape with the character of that byte value.

    Decoding is best effort: on any failure the input is returned unchanged.

    Args:
        text: Possibly escaped text

    Returns:
        Decoded text, or the original input
    """
    if not isinstance(text, str):
        return text

    try:
        return _LEGACY_ESCAPE.sub(lambda m: chr(int(m.group(1), 16)), text)
    except (TypeError, ValueError) as e:
        logger.debug(f"Legacy escape decoding failed, keeping original: {e}")
        return text


def decode_title(carrier: Any) -> str:
    """
    Turn a title carrier into normalized text.

    Args:
        carrier: PlainText, EncodedText, or None

    Returns:
        Normalized title text ('' when nothing usable is carried)
    """
    if isinstance(carrier, EncodedText):
        return normalize(decode_legacy_escapes(carrier.raw))
    if isinstance(carrier, PlainText):
        return normalize(carrier.text)
    return ''
