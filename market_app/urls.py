from django.urls import path

from . import views

app_name = "market_app"

urlpatterns = [
    path("", views.browse, name="browse"),
    path("listing/<int:listing_id>/", views.listing_detail, name="listing_detail"),
    path("sell/", views.sell, name="sell"),
    path("sell/listings/", views.my_listings, name="my_listings"),
    path("sell/<int:listing_id>/edit/", views.edit_listing, name="edit_listing"),
    path("sell/<int:listing_id>/delete/", views.delete_listing, name="delete_listing"),
    path("admin/categories/", views.admin_categories, name="admin_categories"),
    path("admin/categories/toggle/", views.toggle_category, name="toggle_category"),
    path("admin/templates/create/", views.create_template, name="create_template"),
    path("admin/templates/update/", views.update_template, name="update_template"),
    path("admin/templates/delete/", views.delete_template, name="delete_template"),
    path("login/", views.login_view, name="login"),
    path("logout/", views.logout_view, name="logout"),
]
