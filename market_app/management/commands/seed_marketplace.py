from django.core.management.base import BaseCommand
from django.db import transaction

from market_app.models import Category, CategoryFieldTemplate, City, FieldType
from market_app.utils.option_codec import encode_options

CITIES = [
    "Skopje",
    "Bitola",
    "Kumanovo",
    "Prilep",
    "Tetovo",
    "Veles",
    "Stip",
    "Ohrid",
    "Gostivar",
    "Strumica",
    "Kavadarci",
    "Kocani",
    "Kicevo",
    "Struga",
    "Gevgelija",
]

CATEGORIES = [
    ("Cars", "cars"),
    ("Real Estate", "real-estate"),
    ("Electronics", "electronics"),
    ("Jobs", "jobs"),
    ("Services", "services"),
    ("Furniture", "furniture"),
    ("Phones", "phones"),
    ("Fashion", "fashion"),
]

# (key, label, type, required, options)
TEMPLATES = {
    "cars": [
        ("brand", "Brand", FieldType.TEXT, True, None),
        ("model", "Model", FieldType.TEXT, True, None),
        ("year", "Year", FieldType.NUMBER, True, None),
        ("km", "Kilometers", FieldType.NUMBER, True, None),
        ("fuel", "Fuel", FieldType.SELECT, True, ["Petrol", "Diesel", "Hybrid", "Electric"]),
        ("transmission", "Transmission", FieldType.SELECT, True, ["Manual", "Automatic"]),
    ],
    "real-estate": [
        ("sqm", "Square meters", FieldType.NUMBER, True, None),
        ("rooms", "Rooms", FieldType.NUMBER, True, None),
        ("floor", "Floor", FieldType.NUMBER, False, None),
        ("furnished", "Furnished", FieldType.BOOLEAN, True, None),
        ("heating", "Heating", FieldType.SELECT, False, ["Central", "Electric", "Wood", "Gas"]),
    ],
    "jobs": [
        ("company", "Company", FieldType.TEXT, True, None),
        ("position", "Position", FieldType.TEXT, True, None),
        ("salary", "Salary", FieldType.NUMBER, False, None),
        ("remote", "Remote", FieldType.BOOLEAN, True, None),
        ("contract", "Contract", FieldType.SELECT, True, ["Full-time", "Part-time", "Contract", "Internship"]),
    ],
    "phones": [
        ("brand", "Brand", FieldType.TEXT, True, None),
        ("model", "Model", FieldType.TEXT, True, None),
        ("storage", "Storage", FieldType.SELECT, True, ["64GB", "128GB", "256GB", "512GB"]),
        ("condition", "Phone Condition", FieldType.SELECT, True, ["New", "Used", "Refurbished"]),
        ("warranty", "Warranty", FieldType.BOOLEAN, False, None),
    ],
    "electronics": [
        ("brand", "Brand", FieldType.TEXT, True, None),
        ("model", "Model", FieldType.TEXT, True, None),
        ("specs", "Specs", FieldType.TEXT, False, None),
    ],
    "services": [
        ("serviceType", "Service type", FieldType.SELECT, True, ["Repair", "Cleaning", "Consulting", "Transport"]),
        ("availability", "Availability", FieldType.TEXT, False, None),
    ],
    "furniture": [
        ("material", "Material", FieldType.SELECT, True, ["Wood", "Metal", "Plastic", "Glass"]),
        ("dimensions", "Dimensions", FieldType.TEXT, False, None),
        ("color", "Color", FieldType.SELECT, False, ["White", "Black", "Brown", "Gray"]),
    ],
    "fashion": [
        ("size", "Size", FieldType.SELECT, True, ["XS", "S", "M", "L", "XL"]),
        ("brand", "Brand", FieldType.TEXT, False, None),
        ("color", "Color", FieldType.SELECT, False, ["Black", "White", "Blue", "Red", "Green"]),
    ],
}


class Command(BaseCommand):
    help = "Create or refresh the default cities, categories and category field templates."

    @transaction.atomic
    def handle(self, *args, **options):
        for name in CITIES:
            City.objects.get_or_create(name=name)
        self.stdout.write(f"Cities ensured: {len(CITIES)}")

        template_count = 0
        for name, slug in CATEGORIES:
            category, _ = Category.objects.update_or_create(
                slug=slug, defaults={"name": name, "is_active": True}
            )
            for order, (key, label, field_type, required, choices) in enumerate(TEMPLATES.get(slug, []), start=1):
                CategoryFieldTemplate.objects.update_or_create(
                    category=category,
                    key=key,
                    defaults={
                        "label": label,
                        "type": field_type,
                        "required": required,
                        "order": order,
                        "is_active": True,
                        "options_json": encode_options(choices) if choices else None,
                    },
                )
                template_count += 1
        self.stdout.write(f"Categories ensured: {len(CATEGORIES)}")
        self.stdout.write(f"Templates ensured: {template_count}")

        self.stdout.write(self.style.SUCCESS("Marketplace seeded."))
