# utils/dynamic_fields.py
"""
Dynamic (per-category) field values at the form and query-string boundary.

Inputs for category templates travel as flat ``df__<key>`` names. They are
decoded into a plain ``{key: value}`` dict here, once, so nothing further in
the app has to know about the prefix.
"""
from decimal import Decimal, InvalidOperation

from ..models import FieldType

DYNAMIC_FIELD_PREFIX = "df__"

TRUE_VALUES = {"true", "1", "yes", "on"}
FALSE_VALUES = {"false", "0", "no", "off"}


def dynamic_field_name(key):
    return f"{DYNAMIC_FIELD_PREFIX}{key}"


def first_value(data, name):
    # QueryDict.get returns the last value; browse and forms use the first
    if hasattr(data, "getlist"):
        values = data.getlist(name)
        return values[0] if values else ""
    value = data.get(name)
    if isinstance(value, (list, tuple)):
        return value[0] if value else ""
    return value


def extract_dynamic_fields(submitted):
    """
    Collect ``df__``-prefixed entries of a submitted form or query dict.

    Keys and values are trimmed; entries whose key is empty after trimming
    are dropped. Names without the prefix are ignored.
    """
    values = {}
    for name in submitted.keys():
        if not name.startswith(DYNAMIC_FIELD_PREFIX):
            continue
        key = name[len(DYNAMIC_FIELD_PREFIX):].strip()
        if not key:
            continue
        raw = first_value(submitted, name)
        values[key] = str(raw if raw is not None else "").strip()
    return values


def non_empty_values(dynamic_values):
    return {key: value for key, value in dynamic_values.items() if value.strip()}


def coerce_value(field_type, raw):
    """
    Typed view of a stored string. Returns None when the text does not
    parse for the type (NUMBER, BOOLEAN); TEXT and SELECT stay strings.
    """
    if raw is None:
        return None
    text = str(raw).strip()

    if field_type == FieldType.NUMBER:
        try:
            number = Decimal(text.replace(",", "."))
        except InvalidOperation:
            return None
        return number if number.is_finite() else None

    if field_type == FieldType.BOOLEAN:
        lowered = text.lower()
        if lowered in TRUE_VALUES:
            return True
        if lowered in FALSE_VALUES:
            return False
        return None

    return text


def normalize_value(field_type, raw):
    """Canonical string form of a value, or None if it is not valid for the type."""
    typed = coerce_value(field_type, raw)
    if typed is None or typed == "":
        return None
    if field_type == FieldType.BOOLEAN:
        return "true" if typed else "false"
    if field_type == FieldType.NUMBER:
        # 124000.0 and 124000 both read back as "124000"
        normalized = typed.normalize()
        return format(normalized, "f")
    return typed


def display_value(field_type, raw):
    typed = coerce_value(field_type, raw)
    if typed is None:
        return str(raw or "")
    if field_type == FieldType.BOOLEAN:
        return "Yes" if typed else "No"
    if field_type == FieldType.NUMBER:
        return format(typed.normalize(), "f")
    return typed


def build_field_inputs(templates, values=None):
    """Render-ready description of each template's form input."""
    values = values or {}
    return [
        {
            "name": dynamic_field_name(template.key),
            "key": template.key,
            "label": template.label,
            "type": template.type,
            "required": template.required,
            "options": template.options,
            "value": values.get(template.key, ""),
        }
        for template in templates
    ]


def listing_attributes(templates, values):
    """(label, display) pairs for the templates that have a stored value."""
    attributes = []
    for template in templates:
        raw = values.get(template.key, "")
        if not raw.strip():
            continue
        attributes.append((template.label, display_value(template.type, raw)))
    return attributes
