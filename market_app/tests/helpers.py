from io import BytesIO

from django.contrib.auth.models import User
from django.core.files.uploadedfile import SimpleUploadedFile
from PIL import Image

from market_app.models import Role
from market_app.utils.circuit_breaker import StoreCircuitBreaker


def create_test_image(name="test.png", size=(100, 100), color="red"):
    """Helper function to create a test image file"""
    file = BytesIO()
    image = Image.new("RGB", size, color)
    image.save(file, "PNG")
    file.seek(0)
    return SimpleUploadedFile(name, file.read(), content_type="image/png")


def create_user(username, role=Role.SELLER, password="testpass123"):
    """Create a user; the profile is auto-created via signal, then given ``role``."""
    user = User.objects.create_user(
        username=username,
        email=f"{username}@marketplace.mkd",
        password=password,
        first_name=username.title(),
    )
    user.profile.role = role
    user.profile.save()
    return user


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


def fresh_breaker(cooldown=60):
    clock = FakeClock()
    return StoreCircuitBreaker(cooldown=cooldown, clock=clock), clock
