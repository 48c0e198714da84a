from django.contrib.auth.models import AbstractUser
from django.db import models


class User(AbstractUser):
    GUEST = "guest"
    OWNER = "owner"
    ADMIN = "admin"
    ROLES = [
        (GUEST, "Guest"),
        (OWNER, "Owner"),
        (ADMIN, "Admin"),
    ]

    email = models.EmailField(unique=True)
    display_name = models.CharField(max_length=120, blank=True)
    role = models.CharField(max_length=10, choices=ROLES, default=GUEST)
    phone = models.CharField(max_length=30, blank=True)
    company_name = models.CharField(max_length=200, blank=True)
    crm_contact_id = models.CharField(max_length=120, blank=True)
    crm_synced_at = models.DateTimeField(null=True, blank=True)

    @property
    def is_admin(self) -> bool:
        return self.is_superuser or self.role == self.ADMIN

    @property
    def is_owner(self) -> bool:
        return self.role == self.OWNER

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()
