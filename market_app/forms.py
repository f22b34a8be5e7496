from decimal import ROUND_HALF_UP, Decimal

from django import forms
from django.core.exceptions import ValidationError

from .models import Currency, FieldType, ListingCondition
from .utils.listing_writer import PLAN_PAY_PER_LISTING, PLAN_SUBSCRIPTION, ListingFields
from .utils.option_codec import parse_option_input

MAX_PRICE = Decimal("99999999.99")


class ListingForm(forms.Form):
    """Fixed listing fields. Dynamic ``df__`` inputs are read separately."""

    title = forms.CharField(max_length=120, required=False)
    description = forms.CharField(max_length=4000, required=False)
    price = forms.CharField(required=False)
    currency = forms.ChoiceField(choices=Currency.choices, initial=Currency.MKD, required=False)
    categoryId = forms.IntegerField(
        error_messages={"required": "Category is required.", "invalid": "Selected category is invalid."}
    )
    cityId = forms.IntegerField(
        error_messages={"required": "City is required.", "invalid": "Selected city is invalid."}
    )
    condition = forms.ChoiceField(
        choices=ListingCondition.choices, initial=ListingCondition.USED, required=False
    )
    intent = forms.CharField(required=False)
    plan = forms.ChoiceField(
        choices=[(PLAN_PAY_PER_LISTING, "Pay per listing"), (PLAN_SUBSCRIPTION, "Subscription")],
        required=False,
    )

    def clean_title(self):
        return self.cleaned_data["title"].strip()

    def clean_price(self):
        raw = (self.cleaned_data.get("price") or "").strip().replace(",", ".")
        if not raw:
            return 0
        try:
            amount = Decimal(raw)
        except ArithmeticError:
            raise ValidationError("Enter a valid price.")
        if not amount.is_finite():
            raise ValidationError("Enter a valid price.")
        if amount < 0:
            raise ValidationError("Price cannot be negative.")
        if amount > MAX_PRICE:
            raise ValidationError("Price cannot exceed 99,999,999.99.")
        # stored in minor units
        return int((amount * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))

    def clean_intent(self):
        return (self.cleaned_data.get("intent") or "draft").strip()

    def to_fields(self):
        cd = self.cleaned_data
        return ListingFields(
            title=cd["title"],
            description=cd.get("description", ""),
            price_cents=cd["price"],
            currency=cd.get("currency") or Currency.MKD,
            category_id=cd["categoryId"],
            city_id=cd["cityId"],
            condition=cd.get("condition") or ListingCondition.USED,
            plan=cd.get("plan") or PLAN_PAY_PER_LISTING,
        )


class FieldTemplateForm(forms.Form):
    categoryId = forms.IntegerField()
    key = forms.CharField(max_length=64)
    label = forms.CharField(max_length=120)
    type = forms.ChoiceField(choices=FieldType.choices, initial=FieldType.TEXT)
    required = forms.BooleanField(required=False)
    order = forms.IntegerField(required=False)
    options = forms.CharField(required=False)

    def clean_order(self):
        return self.cleaned_data.get("order") or 0

    def clean_options(self):
        return parse_option_input(self.cleaned_data.get("options"))
