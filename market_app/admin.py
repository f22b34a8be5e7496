from django.contrib import admin

from .models import (
    Category,
    CategoryFieldTemplate,
    City,
    Listing,
    ListingFieldValue,
    ListingImage,
    UserProfile,
)


@admin.register(Category)
class CategoryAdmin(admin.ModelAdmin):
    list_display = ["name", "slug", "parent", "is_active", "created_at"]
    search_fields = ["name", "slug"]
    list_filter = ["is_active", "created_at"]

    def get_readonly_fields(self, request, obj=None):
        if obj is not None:
            return ["slug", "created_at"]
        return ["created_at"]


@admin.register(CategoryFieldTemplate)
class CategoryFieldTemplateAdmin(admin.ModelAdmin):
    list_display = ["label", "key", "type", "category", "required", "order", "is_active"]
    list_filter = ["type", "required", "is_active", "category"]
    search_fields = ["key", "label", "category__name"]
    ordering = ["category__name", "order"]

    def get_readonly_fields(self, request, obj=None):
        # stored values are keyed by key and read by type
        if obj is not None:
            return ["category", "key", "type", "created_at"]
        return ["created_at"]


class ListingFieldValueInline(admin.TabularInline):
    model = ListingFieldValue
    extra = 0


class ListingImageInline(admin.TabularInline):
    model = ListingImage
    extra = 0


@admin.register(Listing)
class ListingAdmin(admin.ModelAdmin):
    list_display = ["title", "seller", "category", "city", "price_cents", "currency", "status", "created_at"]
    list_filter = ["status", "currency", "condition", "category", "created_at"]
    search_fields = ["title", "description", "seller__email"]
    readonly_fields = ["created_at", "updated_at"]
    inlines = [ListingFieldValueInline, ListingImageInline]


@admin.register(UserProfile)
class UserProfileAdmin(admin.ModelAdmin):
    list_display = ["user", "role", "created_at"]
    list_filter = ["role"]
    search_fields = ["user__email", "user__username"]


admin.site.register(City)


admin.site.site_header = "Local Marketplace Admin"
admin.site.site_title = "Local Marketplace Admin Portal"
admin.site.index_title = "Welcome to Local Marketplace Admin Portal"
