from django.conf import settings
from django.core.exceptions import ValidationError
from django.core.validators import MinValueValidator, MaxValueValidator
from django.db import models

WEEKDAYS = ['sunday', 'monday', 'tuesday', 'wednesday', 'thursday', 'friday', 'saturday']


def default_slot_capacity():
    return getattr(settings, 'PICKUP_DEFAULT_SLOT_CAPACITY', 10)


def validate_opening_hours(value):
    """Opening hours must map weekday names to well-formed open/close times."""
    from .hours import parse_hhmm

    if not isinstance(value, dict):
        raise ValidationError('Opening hours must be an object keyed by weekday.')

    unknown = set(value) - set(WEEKDAYS)
    if unknown:
        raise ValidationError(f"Unknown weekday(s): {', '.join(sorted(unknown))}")

    for day, entry in value.items():
        if not isinstance(entry, dict):
            raise ValidationError(f'{day}: expected an object with open/close.')
        if entry.get('closed'):
            continue
        for key in ('open', 'close'):
            try:
                parse_hhmm(entry.get(key))
            except ValueError:
                raise ValidationError(f'{day}: "{key}" must be a 24h HH:MM time.')


class StoreQuerySet(models.QuerySet):

    def available(self):
        return self.filter(is_active=True, pickup_available=True)


class Store(models.Model):
    """
    Physical store where customers collect pickup orders.

    ``opening_hours`` maps each weekday (``sunday`` .. ``saturday``) to
    ``{"open": "HH:MM", "close": "HH:MM", "closed": bool}``. A close time
    earlier than the open time means the store closes after midnight.
    """
    code = models.CharField(max_length=50, unique=True, help_text='Public store identifier, e.g. store_001')
    name = models.CharField(max_length=255)
    address = models.CharField(max_length=255, blank=True)
    city = models.CharField(max_length=100, blank=True)
    state = models.CharField(max_length=100, blank=True)
    zip_code = models.CharField(max_length=20, blank=True)
    phone = models.CharField(max_length=30, blank=True, null=True)
    email = models.EmailField(blank=True, null=True)
    latitude = models.FloatField(validators=[MinValueValidator(-90), MaxValueValidator(90)])
    longitude = models.FloatField(validators=[MinValueValidator(-180), MaxValueValidator(180)])
    opening_hours = models.JSONField(default=dict, validators=[validate_opening_hours])
    features = models.JSONField(
        default=list,
        blank=True,
        help_text='Informational tags such as parking or wheelchair_accessible'
    )
    pickup_available = models.BooleanField(default=True)
    estimated_pickup_minutes = models.PositiveIntegerField(
        default=30,
        help_text='Baseline preparation time for a pickup order'
    )
    max_pickup_hours = models.PositiveIntegerField(
        default=24,
        validators=[MinValueValidator(1)],
        help_text='Upper bound for the estimated preparation time'
    )
    slot_capacity = models.PositiveIntegerField(
        default=default_slot_capacity,
        validators=[MinValueValidator(1)],
        help_text='Live orders allowed per one-hour pickup slot'
    )
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    objects = StoreQuerySet.as_manager()

    class Meta:
        db_table = 'stores'
        ordering = ['name']
        indexes = [
            models.Index(fields=['is_active', 'pickup_available'], name='stores_available_idx'),
        ]

    def __str__(self):
        return f"{self.name} ({self.code})"
