# market_app/views.py
import logging

from django.conf import settings
from django.contrib import messages
from django.contrib.auth import authenticate, login, logout
from django.contrib.auth.decorators import login_required
from django.core.paginator import Paginator
from django.db.models import Count, Prefetch
from django.http import Http404
from django.shortcuts import redirect, render
from django.utils.http import url_has_allowed_host_and_scheme
from django.views.decorators.http import require_POST

from .decorators import admin_required, seller_required
from .exceptions import NotFoundError, TransientStoreError, ValidationError
from .forms import FieldTemplateForm, ListingForm
from .models import (
    Category,
    CategoryFieldTemplate,
    City,
    Currency,
    Listing,
    ListingCondition,
    ListingImage,
    ListingStatus,
    User,
)
from .utils.browse_query import SORT_ORDERING, build_listing_query
from .utils.circuit_breaker import store_breaker, store_guard
from .utils.dynamic_fields import build_field_inputs, extract_dynamic_fields, listing_attributes
from .utils.listing_writer import PLAN_PAY_PER_LISTING, PLAN_SUBSCRIPTION, listing_writer
from .utils.template_store import orphaned_field_values, template_store

logger = logging.getLogger(__name__)


def browse(request):
    """Public listing search with category-specific filters."""
    query = None
    page = None
    category_tree = []
    cities = []
    db_unavailable = False

    try:
        with store_guard(store_breaker):
            query = build_listing_query(request.GET, templates=template_store)
            listings = (
                query.apply()
                .select_related("city", "category")
                .prefetch_related("images")
            )
            paginator = Paginator(listings, settings.MARKETPLACE_BROWSE_PAGE_SIZE)
            page = paginator.get_page(query.page)
            # evaluate while the guard is active
            page.object_list = list(page.object_list)
            category_tree = template_store.category_tree()
            cities = list(City.objects.all())
    except TransientStoreError:
        logger.warning("Browse rendered without data: store unavailable")
        db_unavailable = True

    submitted = extract_dynamic_fields(request.GET)
    filter_fields = build_field_inputs(query.templates_in_scope if query else [], submitted)

    params = request.GET.copy()
    params.pop("page", None)

    context = {
        "query": query,
        "page": page,
        "categories": category_tree,
        "cities": cities,
        "conditions": ListingCondition.choices,
        "sort_options": list(SORT_ORDERING),
        "filter_fields": filter_fields,
        "base_query": params.urlencode(),
        "db_unavailable": db_unavailable,
    }
    return render(request, "market_app/browse.html", context)


def listing_detail(request, listing_id):
    with store_guard(store_breaker):
        listing = (
            Listing.objects.select_related("category", "city", "seller")
            .filter(pk=listing_id)
            .first()
        )
    is_owner = listing is not None and listing.seller_id == request.user.id
    if listing is None or (listing.status != ListingStatus.ACTIVE and not is_owner):
        raise Http404("Listing not found")

    templates = template_store.list_active_templates(listing.category_id)
    context = {
        "listing": listing,
        "images": listing.images.all(),
        "attributes": listing_attributes(templates, listing.field_value_map()),
        "is_owner": is_owner,
    }
    return render(request, "market_app/listing_detail.html", context)


def _flatten_categories():
    flattened = []
    for parent in template_store.category_tree():
        flattened.append(parent)
        flattened.extend(parent.children.all())
    return flattened


def _listing_form_context(data, values, listing=None):
    categories = _flatten_categories()
    templates = template_store.templates_by_category(
        category_ids=[category.id for category in categories]
    )
    selected = str(data.get("categoryId") or "")
    category_fields = [
        {
            "category": category,
            "selected": str(category.id) == selected,
            "fields": build_field_inputs(templates.get(category.id, []), values),
        }
        for category in categories
    ]
    return {
        "listing": listing,
        "data": data,
        "categories": categories,
        "category_fields": category_fields,
        "cities": City.objects.all(),
        "currencies": Currency.choices,
        "conditions": ListingCondition.choices,
        "plans": [PLAN_PAY_PER_LISTING, PLAN_SUBSCRIPTION],
    }


def _initial_data(listing):
    return {
        "title": listing.title,
        "description": listing.description,
        "price": f"{listing.price_cents / 100:.2f}",
        "currency": listing.currency,
        "categoryId": listing.category_id,
        "cityId": listing.city_id,
        "condition": listing.condition,
        "plan": (
            PLAN_SUBSCRIPTION
            if listing.status == ListingStatus.ACTIVE and not listing.active_until
            else PLAN_PAY_PER_LISTING
        ),
    }


def _image_errors(images):
    errors = []
    if len(images) > settings.MARKETPLACE_MAX_IMAGES:
        errors.append(f"You can upload a maximum of {settings.MARKETPLACE_MAX_IMAGES} images.")
    for image in images:
        if not (image.content_type or "").startswith("image/"):
            errors.append(f"{image.name} must be an image file.")
        elif image.size > settings.MARKETPLACE_MAX_IMAGE_BYTES:
            errors.append(f"{image.name} must be 6MB or smaller.")
    return errors


def _attach_images(listing_id, images):
    start = ListingImage.objects.filter(listing_id=listing_id).count()
    for index, image in enumerate(images):
        ListingImage.objects.create(listing_id=listing_id, image=image, order=start + index)


def _submit_listing(request, template_name, listing=None):
    form = ListingForm(request.POST)
    dynamic_values = extract_dynamic_fields(request.POST)
    images = request.FILES.getlist("images")

    errors = []
    if not form.is_valid():
        errors.extend(message for field_errors in form.errors.values() for message in field_errors)
    errors.extend(_image_errors(images))

    if not errors:
        try:
            listing_id = listing_writer.save_listing(
                request.user,
                form.to_fields(),
                dynamic_values,
                form.cleaned_data["intent"],
                listing_id=listing.id if listing else None,
            )
        except ValidationError as e:
            errors.extend(e.messages)
        except NotFoundError:
            raise Http404("Listing not found")

    if errors:
        for message in errors:
            messages.error(request, message)
        context = _listing_form_context(request.POST, dynamic_values, listing=listing)
        return render(request, template_name, context, status=400)

    if images:
        _attach_images(listing_id, images)

    if form.cleaned_data["intent"] == "publish":
        messages.success(request, "Listing published successfully!")
    else:
        messages.success(request, "Draft saved.")
    return redirect("market_app:my_listings")


@seller_required
def sell(request):
    if request.method == "POST":
        return _submit_listing(request, "market_app/listing_form.html")

    context = _listing_form_context(request.GET, {})
    return render(request, "market_app/listing_form.html", context)


@seller_required
def edit_listing(request, listing_id):
    listing = Listing.objects.filter(pk=listing_id, seller=request.user).first()
    if listing is None or listing.status == ListingStatus.REMOVED:
        raise Http404("Listing not found")

    if request.method == "POST":
        return _submit_listing(request, "market_app/listing_form.html", listing=listing)

    context = _listing_form_context(_initial_data(listing), listing.field_value_map(), listing=listing)
    return render(request, "market_app/listing_form.html", context)


@seller_required
@require_POST
def delete_listing(request, listing_id):
    try:
        listing_writer.delete_draft(request.user, listing_id)
    except NotFoundError:
        raise Http404("Draft not found")
    messages.success(request, "Draft deleted.")
    return redirect("market_app:my_listings")


@seller_required
def my_listings(request):
    listings = (
        Listing.objects.filter(seller=request.user)
        .exclude(status=ListingStatus.REMOVED)
        .select_related("category", "city")
        .order_by("-updated_at")
    )
    return render(request, "market_app/my_listings.html", {"listings": listings})


@admin_required
def admin_categories(request):
    templates = CategoryFieldTemplate.objects.order_by("order", "id")
    categories = list(
        Category.objects.select_related("parent")
        .prefetch_related(Prefetch("field_templates", queryset=templates))
        .order_by("name")
    )
    orphan_counts = dict(
        orphaned_field_values()
        .order_by()
        .values_list("listing__category_id")
        .annotate(total=Count("id"))
    )
    for category in categories:
        category.orphan_count = orphan_counts.get(category.id, 0)

    context = {
        "categories": categories,
        "field_types": CategoryFieldTemplate._meta.get_field("type").choices,
    }
    return render(request, "market_app/admin_categories.html", context)


def _post_int(request, name):
    try:
        return int(request.POST.get(name, ""))
    except ValueError:
        raise Http404(f"Invalid {name}")


@admin_required
@require_POST
def toggle_category(request):
    category_id = _post_int(request, "categoryId")
    is_active = request.POST.get("isActive") == "true"
    try:
        template_store.set_category_active(category_id, not is_active)
    except NotFoundError:
        raise Http404("Category not found")
    return redirect("market_app:admin_categories")


@admin_required
@require_POST
def create_template(request):
    form = FieldTemplateForm(request.POST)
    if not form.is_valid():
        for field_errors in form.errors.values():
            for message in field_errors:
                messages.error(request, message)
        return redirect("market_app:admin_categories")

    cd = form.cleaned_data
    try:
        template = template_store.create_template(
            cd["categoryId"],
            cd["key"],
            cd["label"],
            cd["type"],
            required=cd["required"],
            order=cd["order"],
            options=cd["options"],
        )
    except ValidationError as e:
        for message in e.messages:
            messages.error(request, message)
    except NotFoundError:
        raise Http404("Category not found")
    else:
        messages.success(request, f'Field "{template.label}" added.')
    return redirect("market_app:admin_categories")


@admin_required
@require_POST
def update_template(request):
    template_id = _post_int(request, "id")
    try:
        template_store.update_template(
            template_id,
            label=request.POST.get("label", ""),
            # unchecked boxes are absent from POST
            required=request.POST.get("required") == "on",
            is_active=request.POST.get("isActive") == "on",
        )
    except ValidationError as e:
        for message in e.messages:
            messages.error(request, message)
    except NotFoundError:
        raise Http404("Field template not found")
    else:
        messages.success(request, "Field template saved.")
    return redirect("market_app:admin_categories")


@admin_required
@require_POST
def delete_template(request):
    try:
        template_store.delete_template(_post_int(request, "id"))
    except NotFoundError:
        raise Http404("Field template not found")
    messages.success(request, "Field template deleted.")
    return redirect("market_app:admin_categories")


def login_view(request):
    if request.method == "POST":
        email = (request.POST.get("email") or "").strip().lower()
        password = request.POST.get("password")

        if not email or not password:
            messages.error(request, "Please provide both email and password.")
            return redirect("market_app:login")

        user = User.objects.filter(email__iexact=email).first()
        authenticated_user = None
        if user is not None:
            authenticated_user = authenticate(request, username=user.username, password=password)

        if authenticated_user is None:
            # Don't reveal whether email exists for security
            messages.error(request, "Invalid email or password.")
            return redirect("market_app:login")

        login(request, authenticated_user)
        messages.success(request, f"Welcome back, {authenticated_user.first_name or authenticated_user.username}!")
        next_url = request.GET.get("next")
        if next_url and url_has_allowed_host_and_scheme(next_url, allowed_hosts={request.get_host()}):
            return redirect(next_url)
        return redirect("market_app:browse")

    return render(request, "market_app/login.html")


@login_required
def logout_view(request):
    logout(request)
    messages.success(request, "You have been logged out successfully.")
    return redirect("market_app:browse")
