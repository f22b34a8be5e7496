from django.http import QueryDict
from django.test import SimpleTestCase, TestCase

from market_app.models import (
    Category,
    CategoryFieldTemplate,
    City,
    FieldType,
    Listing,
    ListingCondition,
    ListingFieldValue,
    ListingStatus,
)
from market_app.utils.browse_query import build_listing_query, price_to_cents
from market_app.utils.listing_writer import ListingFields, ListingWriter
from market_app.utils.template_store import TemplateStore

from .helpers import create_user, fresh_breaker


class PriceToCentsTests(SimpleTestCase):
    """Tests for converting price bounds to minor units"""

    def test_bounds_are_floored(self):
        """Test that fractional cents are floored, never rounded up"""
        self.assertEqual(price_to_cents("9.999"), 999)
        self.assertEqual(price_to_cents("10"), 1000)
        self.assertEqual(price_to_cents("0.015"), 1)

    def test_decimal_comma(self):
        self.assertEqual(price_to_cents("12,50"), 1250)

    def test_unusable_input(self):
        """Test that bad bounds are dropped rather than reported"""
        for raw in (None, "", "  ", "cheap", "-5", "Infinity"):
            self.assertIsNone(price_to_cents(raw), raw)


class BrowseQueryTestCase(TestCase):
    def setUp(self):
        self.templates = TemplateStore(breaker=fresh_breaker()[0])
        self.seller = create_user("seller")
        self.skopje = City.objects.create(name="Skopje")
        self.ohrid = City.objects.create(name="Ohrid")

        self.vehicles = Category.objects.create(name="Vehicles", slug="vehicles")
        self.cars = Category.objects.create(name="Cars", slug="cars", parent=self.vehicles)
        self.electronics = Category.objects.create(name="Electronics", slug="electronics")

        for key, label, field_type in (
            ("brand", "Brand", FieldType.TEXT),
            ("km", "Kilometers", FieldType.NUMBER),
            ("fuel", "Fuel", FieldType.SELECT),
            ("garaged", "Garaged", FieldType.BOOLEAN),
        ):
            CategoryFieldTemplate.objects.create(category=self.cars, key=key, label=label, type=field_type)
        CategoryFieldTemplate.objects.create(category=self.electronics, key="model", label="Model")

    def listing(self, title, category, price_cents=100000, status=ListingStatus.ACTIVE, city=None, **values):
        listing = Listing.objects.create(
            seller=self.seller,
            title=title,
            price_cents=price_cents,
            category=category,
            city=city or self.skopje,
            status=status,
        )
        for key, value in values.items():
            ListingFieldValue.objects.create(listing=listing, key=key, value=value)
        return listing

    def search(self, query_string):
        query = build_listing_query(QueryDict(query_string), templates=self.templates)
        return query, list(query.apply())


class BuildListingQueryTests(BrowseQueryTestCase):
    """Tests for parsing browse parameters"""

    def test_out_of_scope_dynamic_filter_not_applied(self):
        """Test that a filter on a key the category has no template for is ignored"""
        galaxy = self.listing("Galaxy S22", self.electronics, brand="Apple")

        query, results = self.search("category=electronics&df__brand=Samsung")

        self.assertEqual(query.category, self.electronics)
        self.assertEqual(query.filtered_keys(), [])
        self.assertEqual(results, [galaxy])

    def test_dynamic_filters_need_a_category(self):
        query, _ = self.search("df__brand=Golf")
        self.assertIsNone(query.category)
        self.assertEqual(query.templates_in_scope, [])
        self.assertEqual(query.dynamic_filters, [])

    def test_min_bound_is_floored(self):
        query, _ = self.search("min=9.999")
        self.assertEqual(query.min_cents, 999)

    def test_reversed_bounds_are_swapped(self):
        query, _ = self.search("min=500&max=100")
        self.assertEqual((query.min_cents, query.max_cents), (10000, 50000))

    def test_subcategory_wins_over_category(self):
        query, _ = self.search("cat=vehicles&sub=cars")
        self.assertEqual(query.category, self.cars)
        self.assertEqual(
            [template.key for template in query.templates_in_scope], ["brand", "km", "fuel", "garaged"]
        )

    def test_category_by_id(self):
        query, _ = self.search(f"cat={self.electronics.id}")
        self.assertEqual(query.category, self.electronics)

    def test_unknown_or_inactive_category_ignored(self):
        self.electronics.is_active = False
        self.electronics.save()
        query, _ = self.search("cat=electronics")
        self.assertIsNone(query.category)

        query, _ = self.search("cat=boats")
        self.assertIsNone(query.category)

    def test_lenient_parameters(self):
        """Test that unparseable parameters fall back to defaults"""
        query, _ = self.search("city=abc&condition=broken&sort=cheapest&page=-2&min=x")
        self.assertIsNone(query.city_id)
        self.assertIsNone(query.condition)
        self.assertEqual(query.sort, "newest")
        self.assertEqual(query.page, 1)
        self.assertIsNone(query.min_cents)

    def test_condition_is_case_insensitive(self):
        query, _ = self.search("condition=new")
        self.assertEqual(query.condition, ListingCondition.NEW)

    def test_invalid_typed_filter_dropped(self):
        query, _ = self.search("sub=cars&df__km=lots&df__garaged=maybe")
        self.assertEqual(query.dynamic_filters, [])


class ApplyListingQueryTests(BrowseQueryTestCase):
    """Tests for the listings a browse query returns"""

    def setUp(self):
        super().setUp()
        self.golf = self.listing(
            "VW Golf 7", self.cars, price_cents=350000, brand="Volkswagen", km="124000", fuel="Diesel",
            garaged="true",
        )
        self.polo = self.listing(
            "VW Polo", self.cars, price_cents=220000, city=self.ohrid, brand="Volkswagen", km="90000",
            fuel="Petrol", garaged="no",
        )
        self.draft = self.listing("VW Passat", self.cars, status=ListingStatus.DRAFT, brand="Volkswagen")
        self.tv = self.listing("Smart TV", self.electronics, price_cents=49000)

    def test_only_active_listings(self):
        _, results = self.search("")
        self.assertNotIn(self.draft, results)
        self.assertEqual(set(results), {self.golf, self.polo, self.tv})

    def test_search_title_and_description(self):
        self.tv.description = "Samsung 4K panel"
        self.tv.save()
        _, results = self.search("q=samsung")
        self.assertEqual(results, [self.tv])

        _, results = self.search("q=golf")
        self.assertEqual(results, [self.golf])

    def test_exact_category_match(self):
        """Test that a parent category does not include its subcategories' listings"""
        _, results = self.search("cat=vehicles")
        self.assertEqual(results, [])

    def test_text_filter_is_substring_match(self):
        _, results = self.search("sub=cars&df__brand=volks")
        self.assertEqual(set(results), {self.golf, self.polo})

    def test_select_filter_is_case_insensitive_exact(self):
        _, results = self.search("sub=cars&df__fuel=diesel")
        self.assertEqual(results, [self.golf])

    def test_number_filter_uses_normalized_value(self):
        _, results = self.search("sub=cars&df__km=124000.0")
        self.assertEqual(results, [self.golf])

    def test_boolean_filter_matches_spellings(self):
        _, results = self.search("sub=cars&df__garaged=false")
        self.assertEqual(results, [self.polo])

    def test_all_dynamic_filters_must_match(self):
        """Test that each dynamic filter narrows the result on its own key"""
        _, results = self.search("sub=cars&df__brand=Volkswagen&df__fuel=Petrol")
        self.assertEqual(results, [self.polo])

        _, results = self.search("sub=cars&df__fuel=Petrol&df__km=124000")
        self.assertEqual(results, [])

    def test_price_city_and_sort(self):
        _, results = self.search("sort=price-asc")
        self.assertEqual(results, [self.tv, self.polo, self.golf])

        _, results = self.search("sort=price-desc&min=1000&max=3000")
        self.assertEqual(results, [self.polo])

        _, results = self.search(f"city={self.ohrid.id}")
        self.assertEqual(results, [self.polo])

    def test_condition_filter(self):
        Listing.objects.filter(pk=self.tv.pk).update(condition=ListingCondition.NEW)
        _, results = self.search("condition=NEW")
        self.assertEqual(results, [self.tv])


class SavedListingSearchTests(BrowseQueryTestCase):
    """Tests that listings saved by sellers are found by their own values"""

    def setUp(self):
        super().setUp()
        writer = ListingWriter(breaker=fresh_breaker()[0], templates=self.templates)
        fields = ListingFields(
            title="VW Golf 7 2016", price_cents=820000, category_id=self.cars.id, city_id=self.skopje.id
        )
        listing_id = writer.save_listing(
            self.seller, fields, {"km": "124000.0", "garaged": "on", "brand": "Volkswagen"}, "publish"
        )
        self.golf = Listing.objects.get(pk=listing_id)

    def test_number_found_by_any_spelling(self):
        """Test that a number typed with decimals or an exponent matches its filter"""
        for value in ("124000.0", "124000", "1.24e5"):
            _, results = self.search(f"cat=cars&df__km={value}")
            self.assertEqual(results, [self.golf], value)

        _, results = self.search("cat=cars&df__km=124001")
        self.assertEqual(results, [])

    def test_boolean_found(self):
        _, results = self.search("cat=cars&df__garaged=yes")
        self.assertEqual(results, [self.golf])

        _, results = self.search("cat=cars&df__garaged=false")
        self.assertEqual(results, [])
