from django.contrib.auth.models import AbstractUser
from django.db import models

from .managers import UserManager


class User(AbstractUser):
    username = None

    email = models.EmailField(unique=True)
    phone_number = models.CharField(max_length=20, blank=True, null=True)

    USERNAME_FIELD = "email"
    REQUIRED_FIELDS = []

    ROLE_CHOICES = (
        ("ADMIN", "Admin"),
        ("STAFF", "Staff"),
        ("FRANCHISEE", "Franchisee"),
    )

    role = models.CharField(max_length=20, choices=ROLE_CHOICES, default="FRANCHISEE")
    unit_code = models.PositiveIntegerField(
        null=True,
        blank=True,
        help_text="Franchise unit the user belongs to (franchisees only)",
    )

    objects = UserManager()

    @property
    def is_internal(self):
        return self.is_superuser or self.role in ("ADMIN", "STAFF")

    def __str__(self):
        return self.email
