from decimal import Decimal

from django.http import QueryDict
from django.test import SimpleTestCase

from market_app.models import CategoryFieldTemplate, FieldType
from market_app.utils.dynamic_fields import (
    build_field_inputs,
    coerce_value,
    display_value,
    dynamic_field_name,
    extract_dynamic_fields,
    listing_attributes,
    non_empty_values,
    normalize_value,
)


class ExtractDynamicFieldsTests(SimpleTestCase):
    """Tests for decoding df__ inputs into a key -> value mapping"""

    def test_extracts_trimmed_prefixed_fields_only(self):
        """Test that only df__ names are read, trimmed, and empty keys dropped"""
        submitted = {"df__brand": " Toyota ", "df__": "ignored", "title": "x"}
        self.assertEqual(extract_dynamic_fields(submitted), {"brand": "Toyota"})

    def test_whitespace_key_is_dropped(self):
        """Test that a key that is blank after trimming is ignored"""
        self.assertEqual(extract_dynamic_fields({"df__  ": "value"}), {})

    def test_key_is_trimmed(self):
        """Test that surrounding whitespace in the key is removed"""
        self.assertEqual(extract_dynamic_fields({"df__ km ": "120"}), {"km": "120"})

    def test_empty_values_are_kept(self):
        """Test that an empty value is kept so required checks can see it"""
        self.assertEqual(extract_dynamic_fields({"df__km": "   "}), {"km": ""})

    def test_query_dict_uses_first_value(self):
        """Test that repeated names resolve to their first value"""
        submitted = QueryDict("df__color=red&df__color=blue&page=2")
        self.assertEqual(extract_dynamic_fields(submitted), {"color": "red"})

    def test_non_empty_values(self):
        """Test that blank values are not written"""
        self.assertEqual(non_empty_values({"a": "1", "b": "", "c": "  "}), {"a": "1"})

    def test_dynamic_field_name(self):
        self.assertEqual(dynamic_field_name("brand"), "df__brand")


class TypedValueTests(SimpleTestCase):
    """Tests for reading stored text according to the template type"""

    def test_number_coercion(self):
        """Test NUMBER values parse to Decimal and accept a decimal comma"""
        self.assertEqual(coerce_value(FieldType.NUMBER, "124000"), Decimal("124000"))
        self.assertEqual(coerce_value(FieldType.NUMBER, " 1,5 "), Decimal("1.5"))
        self.assertIsNone(coerce_value(FieldType.NUMBER, "a lot"))
        self.assertIsNone(coerce_value(FieldType.NUMBER, "NaN"))

    def test_boolean_coercion(self):
        """Test the accepted boolean spellings"""
        self.assertIs(coerce_value(FieldType.BOOLEAN, "Yes"), True)
        self.assertIs(coerce_value(FieldType.BOOLEAN, "on"), True)
        self.assertIs(coerce_value(FieldType.BOOLEAN, "0"), False)
        self.assertIsNone(coerce_value(FieldType.BOOLEAN, "maybe"))

    def test_text_and_select_stay_strings(self):
        self.assertEqual(coerce_value(FieldType.TEXT, " Golf "), "Golf")
        self.assertEqual(coerce_value(FieldType.SELECT, "Diesel"), "Diesel")

    def test_normalize_value(self):
        """Test the canonical string form used for filtering"""
        self.assertEqual(normalize_value(FieldType.NUMBER, "124000.0"), "124000")
        self.assertEqual(normalize_value(FieldType.NUMBER, "0.50"), "0.5")
        self.assertEqual(normalize_value(FieldType.BOOLEAN, "YES"), "true")
        self.assertEqual(normalize_value(FieldType.BOOLEAN, "off"), "false")
        self.assertIsNone(normalize_value(FieldType.NUMBER, "x"))
        self.assertIsNone(normalize_value(FieldType.TEXT, "   "))

    def test_display_value(self):
        """Test human readable rendering of stored values"""
        self.assertEqual(display_value(FieldType.BOOLEAN, "true"), "Yes")
        self.assertEqual(display_value(FieldType.BOOLEAN, "false"), "No")
        self.assertEqual(display_value(FieldType.NUMBER, "124000.00"), "124000")
        # unparseable values are shown as stored
        self.assertEqual(display_value(FieldType.NUMBER, "about 5"), "about 5")


class FieldRenderingTests(SimpleTestCase):
    def setUp(self):
        self.templates = [
            CategoryFieldTemplate(key="brand", label="Brand", type=FieldType.TEXT, required=True, order=1),
            CategoryFieldTemplate(
                key="fuel",
                label="Fuel",
                type=FieldType.SELECT,
                order=2,
                options_json='["Petrol", "Diesel"]',
            ),
            CategoryFieldTemplate(key="furnished", label="Furnished", type=FieldType.BOOLEAN, order=3),
        ]

    def test_build_field_inputs(self):
        """Test that each template becomes a prefixed input with its current value"""
        inputs = build_field_inputs(self.templates, {"brand": "VW"})
        self.assertEqual([field["name"] for field in inputs], ["df__brand", "df__fuel", "df__furnished"])
        self.assertEqual(inputs[0]["value"], "VW")
        self.assertTrue(inputs[0]["required"])
        self.assertEqual(inputs[1]["options"], ["Petrol", "Diesel"])
        self.assertEqual(inputs[1]["value"], "")

    def test_listing_attributes_skip_missing_values(self):
        """Test that only templates with a stored value are listed"""
        attributes = listing_attributes(self.templates, {"brand": "VW", "fuel": "", "furnished": "true"})
        self.assertEqual(attributes, [("Brand", "VW"), ("Furnished", "Yes")])
