import unittest

from services.errors import ValidationError
from services.forms import validate_form_data

FIELDS = [
    {"name": "fullName", "type": "text", "required": True},
    {"name": "petType", "type": "select", "required": True, "options": ["Dog", "Cat"]},
    {"name": "notes", "type": "textarea", "required": False},
]


class TestValidateFormData(unittest.TestCase):
    def test_valid_passes_through_unchanged(self):
        data = {"fullName": "Jane", "petType": "Dog", "extra": 3, "consent": True}
        self.assertIs(validate_form_data(FIELDS, data), data)

    def test_missing_and_blank_required(self):
        with self.assertRaises(ValidationError) as ctx:
            validate_form_data(FIELDS, {"fullName": "", "notes": "x"})
        self.assertEqual(ctx.exception.missing, ["fullName", "petType"])

    def test_option_membership(self):
        with self.assertRaises(ValidationError):
            validate_form_data(FIELDS, {"fullName": "Jane", "petType": "Parrot"})

    def test_nested_values_rejected(self):
        """Values must be primitives; nested objects are not part of the form contract."""
        with self.assertRaises(ValidationError):
            validate_form_data([], {"address": {"city": "Austin"}})

    def test_no_fields_configured(self):
        self.assertEqual(validate_form_data(None, {}), {})
