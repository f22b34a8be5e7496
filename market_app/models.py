from django.db import models
from django.conf import settings
from django.contrib.auth.models import User
from django.core.exceptions import ValidationError
from django.db.models.signals import post_save
from django.dispatch import receiver


class Role(models.TextChoices):
    BUYER = "BUYER", "Buyer"
    SELLER = "SELLER", "Seller"
    STAFF = "STAFF", "Staff"
    ADMIN = "ADMIN", "Admin"


SELL_ACCESS_ROLES = {Role.SELLER, Role.STAFF, Role.ADMIN}


class UserProfile(models.Model):
    # Link to Django's built-in User (for authentication)
    user = models.OneToOneField(User, on_delete=models.CASCADE, related_name="profile")

    role = models.CharField(max_length=10, choices=Role.choices, default=Role.SELLER)

    # Timestamps
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.user.email} Profile ({self.role})"

    @property
    def can_sell(self):
        return self.role in SELL_ACCESS_ROLES

    @property
    def is_admin(self):
        return self.role == Role.ADMIN


class City(models.Model):
    name = models.CharField(max_length=80, unique=True)

    class Meta:
        ordering = ["name"]
        verbose_name_plural = "Cities"

    def __str__(self):
        return self.name


class Category(models.Model):
    """
    Two-level category tree. Top-level categories own subcategories;
    a subcategory can never be a parent itself.
    """

    name = models.CharField(max_length=80)
    slug = models.SlugField(max_length=80, unique=True)
    parent = models.ForeignKey(
        "self",
        on_delete=models.PROTECT,
        related_name="children",
        null=True,
        blank=True,
    )
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["name"]
        verbose_name_plural = "Categories"

    def __str__(self):
        return self.name

    def clean(self):
        if self.parent_id is None:
            return
        if self.pk is not None and self.parent_id == self.pk:
            raise ValidationError("A category cannot be its own parent.")
        if self.parent.parent_id is not None:
            raise ValidationError("Subcategories cannot have subcategories of their own.")
        if self.pk is not None and self.children.exists():
            raise ValidationError("A category with subcategories cannot become a subcategory.")

    def save(self, *args, **kwargs):
        if self.pk is not None:
            stored_slug = (
                Category.objects.filter(pk=self.pk).values_list("slug", flat=True).first()
            )
            if stored_slug is not None and stored_slug != self.slug:
                raise ValidationError("Category slug cannot change after creation.")
        self.clean()
        super().save(*args, **kwargs)


class FieldType(models.TextChoices):
    TEXT = "TEXT", "Text"
    NUMBER = "NUMBER", "Number"
    SELECT = "SELECT", "Select"
    BOOLEAN = "BOOLEAN", "Boolean"


class CategoryFieldTemplate(models.Model):
    """
    One admin-defined field of a category's listing schema.

    ``key`` and ``type`` are fixed once created; stored listing values are
    keyed by ``key`` and read according to ``type``.
    """

    category = models.ForeignKey(
        Category, on_delete=models.CASCADE, related_name="field_templates"
    )
    key = models.CharField(max_length=64)
    label = models.CharField(max_length=120)
    type = models.CharField(max_length=10, choices=FieldType.choices, default=FieldType.TEXT)
    required = models.BooleanField(default=False)
    order = models.IntegerField(default=0, help_text="Display and validation order")
    is_active = models.BooleanField(default=True)
    # JSON array of strings, SELECT only
    options_json = models.TextField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["order", "id"]
        verbose_name = "Category Field Template"
        verbose_name_plural = "Category Field Templates"
        constraints = [
            models.UniqueConstraint(
                fields=["category", "key"], name="uq_field_template_category_key"
            ),
        ]

    def __str__(self):
        return f"{self.category.name}: {self.label} ({self.key})"

    @property
    def options(self):
        from .utils.option_codec import decode_options

        return decode_options(self.options_json)


class Currency(models.TextChoices):
    MKD = "MKD", "MKD"
    EUR = "EUR", "EUR"


class ListingCondition(models.TextChoices):
    NEW = "NEW", "New"
    USED = "USED", "Used"
    REFURBISHED = "REFURBISHED", "Refurbished"


class ListingStatus(models.TextChoices):
    DRAFT = "DRAFT", "Draft"
    ACTIVE = "ACTIVE", "Active"
    INACTIVE = "INACTIVE", "Inactive"
    REMOVED = "REMOVED", "Removed"


class Listing(models.Model):
    seller = models.ForeignKey(
        settings.AUTH_USER_MODEL, on_delete=models.CASCADE, related_name="listings"
    )
    title = models.CharField(max_length=120)
    description = models.TextField(max_length=4000, blank=True, default="")
    # minor currency units
    price_cents = models.PositiveIntegerField(default=0)
    currency = models.CharField(max_length=3, choices=Currency.choices, default=Currency.MKD)
    category = models.ForeignKey(Category, on_delete=models.PROTECT, related_name="listings")
    city = models.ForeignKey(City, on_delete=models.PROTECT, related_name="listings")
    condition = models.CharField(
        max_length=12, choices=ListingCondition.choices, default=ListingCondition.USED
    )
    status = models.CharField(
        max_length=10, choices=ListingStatus.choices, default=ListingStatus.DRAFT
    )
    # pay-per-listing expiry; empty for subscription sellers
    active_until = models.DateTimeField(null=True, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        indexes = [
            models.Index(fields=["status", "-created_at"], name="listing_status_created_idx"),
            models.Index(fields=["category", "status"], name="listing_category_status_idx"),
        ]

    def __str__(self):
        return self.title

    @property
    def price(self):
        return self.price_cents / 100

    @property
    def primary_image(self):
        first_image = self.images.first()
        return first_image.image if first_image else None

    def field_value_map(self):
        return {value.key: value.value for value in self.field_values.all()}


class ListingFieldValue(models.Model):
    """A dynamic field value, always stored as text."""

    listing = models.ForeignKey(Listing, on_delete=models.CASCADE, related_name="field_values")
    key = models.CharField(max_length=64)
    value = models.TextField()

    class Meta:
        ordering = ["id"]
        constraints = [
            models.UniqueConstraint(
                fields=["listing", "key"], name="uq_field_value_listing_key"
            ),
        ]
        indexes = [
            models.Index(fields=["key", "value"], name="field_value_key_value_idx"),
        ]

    def __str__(self):
        return f"{self.key}={self.value}"


class ListingImage(models.Model):
    """Images for a listing (up to MARKETPLACE_MAX_IMAGES)"""

    listing = models.ForeignKey(Listing, on_delete=models.CASCADE, related_name="images")
    image = models.ImageField(upload_to="uploads/listings/")
    order = models.IntegerField(default=0, help_text="Order of image display (0 = primary)")
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["order", "created_at"]
        verbose_name = "Listing Image"
        verbose_name_plural = "Listing Images"

    def __str__(self):
        return f"Image {self.order} for {self.listing.title}"


# Signal to automatically create profile when User is created
@receiver(post_save, sender=User)
def create_user_profile(sender, instance, created, **kwargs):
    if created:
        UserProfile.objects.create(user=instance)
