# utils/option_codec.py
import json
import logging

logger = logging.getLogger(__name__)


def encode_options(options):
    """Serialize a SELECT option list to the JSON text stored on the template."""
    return json.dumps([str(option) for option in options])


def decode_options(raw):
    """
    Read a stored option list back. Never raises: missing, empty or corrupt
    text decodes to an empty list so a broken template still renders.
    """
    if not raw:
        return []

    try:
        parsed = json.loads(raw)
    except (TypeError, ValueError):
        logger.warning(f"Ignoring malformed options_json: {str(raw)[:50]!r}")
        return []

    if not isinstance(parsed, list):
        return []
    return [str(value) for value in parsed]


def parse_option_input(raw):
    """Split the admin form's "a, b, c" text into a clean option list."""
    if not raw:
        return []
    return [item.strip() for item in str(raw).split(",") if item.strip()]
