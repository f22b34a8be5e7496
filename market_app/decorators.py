from functools import wraps

from django.contrib import messages
from django.contrib.auth.decorators import login_required
from django.shortcuts import redirect


def _profile(user):
    return getattr(user, "profile", None)


def seller_required(view):
    """Logged in with a role that may create and edit listings."""

    @login_required
    @wraps(view)
    def wrapper(request, *args, **kwargs):
        profile = _profile(request.user)
        if profile is None or not profile.can_sell:
            messages.error(request, "Only sellers can manage listings.")
            return redirect("market_app:browse")
        return view(request, *args, **kwargs)

    return wrapper


def admin_required(view):
    @login_required
    @wraps(view)
    def wrapper(request, *args, **kwargs):
        profile = _profile(request.user)
        if profile is None or not profile.is_admin:
            messages.error(request, "You are not authorized to manage categories.")
            return redirect("market_app:browse")
        return view(request, *args, **kwargs)

    return wrapper
