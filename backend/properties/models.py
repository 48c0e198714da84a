from decimal import Decimal

from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator
from django.db import models
from django.utils import timezone
from django.utils.text import slugify


class Property(models.Model):
    """A rentable group house listed by an owner."""

    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    STATUSES = [
        (PENDING, "Pending approval"),
        (APPROVED, "Approved"),
        (REJECTED, "Rejected"),
    ]

    title = models.CharField(max_length=200)
    slug = models.SlugField(max_length=220, unique=True, blank=True)
    location = models.CharField(max_length=200)
    region = models.CharField(max_length=120, blank=True)
    sleeps_min = models.PositiveIntegerField(default=1, validators=[MinValueValidator(1)])
    sleeps_max = models.PositiveIntegerField(validators=[MinValueValidator(1)])
    bedrooms = models.PositiveIntegerField(default=1)
    bathrooms = models.PositiveIntegerField(default=1)
    price_midweek = models.DecimalField(max_digits=10, decimal_places=2, validators=[MinValueValidator(Decimal("0"))])
    price_weekend = models.DecimalField(max_digits=10, decimal_places=2, validators=[MinValueValidator(Decimal("0"))])
    cleaning_fee = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("0.00"))
    security_deposit = models.DecimalField(max_digits=10, decimal_places=2, default=Decimal("0.00"))
    description = models.TextField(blank=True)
    house_rules = models.TextField(blank=True)
    check_in_out = models.CharField(max_length=200, blank=True)
    hero_image = models.URLField(blank=True)
    owner = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="properties",
    )
    status = models.CharField(max_length=12, choices=STATUSES, default=PENDING)
    is_published = models.BooleanField(default=False)
    featured = models.BooleanField(default=False)
    approved_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="approved_properties",
    )
    approved_at = models.DateTimeField(null=True, blank=True)
    rejection_reason = models.TextField(blank=True)
    crm_id = models.CharField(max_length=120, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["-featured", "title"]
        verbose_name_plural = "properties"

    def __str__(self):
        return f"{self.title} ({self.location})"

    @property
    def is_bookable(self) -> bool:
        return self.status == self.APPROVED and self.is_published

    def clean(self):
        super().clean()
        if self.sleeps_min and self.sleeps_max and self.sleeps_max < self.sleeps_min:
            raise ValidationError({"sleeps_max": "Maximum guests must be at least the minimum."})

    def save(self, *args, **kwargs):
        if not self.slug:
            self.slug = self._unique_slug()
        self.full_clean()
        return super().save(*args, **kwargs)

    def _unique_slug(self) -> str:
        base = slugify(self.title)[:200] or "property"
        slug = base
        counter = 2
        while Property.objects.filter(slug=slug).exclude(pk=self.pk).exists():
            slug = f"{base}-{counter}"
            counter += 1
        return slug

    def approve(self, user):
        self.status = self.APPROVED
        self.is_published = True
        self.approved_by = user
        self.approved_at = timezone.now()
        self.rejection_reason = ""
        self.save(update_fields=["status", "is_published", "approved_by", "approved_at", "rejection_reason", "updated_at"])

    def reject(self, reason: str = ""):
        self.status = self.REJECTED
        self.is_published = False
        self.rejection_reason = reason
        self.save(update_fields=["status", "is_published", "rejection_reason", "updated_at"])

    def unpublish(self):
        if self.is_published:
            self.is_published = False
            self.save(update_fields=["is_published", "updated_at"])
