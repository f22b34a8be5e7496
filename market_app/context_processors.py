from .models import Category
from .utils.circuit_breaker import store_breaker


def categories(request):
    """
    Expose active top-level categories to all templates (e.g., navbar links).
    """
    if store_breaker.is_open():
        return {"nav_categories": []}
    return {
        "nav_categories": Category.objects.filter(is_active=True, parent__isnull=True),
    }
