import django.core.validators
from django.db import migrations, models
import stores.models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name='Store',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('code', models.CharField(help_text='Public store identifier, e.g. store_001', max_length=50, unique=True)),
                ('name', models.CharField(max_length=255)),
                ('address', models.CharField(blank=True, max_length=255)),
                ('city', models.CharField(blank=True, max_length=100)),
                ('state', models.CharField(blank=True, max_length=100)),
                ('zip_code', models.CharField(blank=True, max_length=20)),
                ('phone', models.CharField(blank=True, max_length=30, null=True)),
                ('email', models.EmailField(blank=True, max_length=254, null=True)),
                ('latitude', models.FloatField(validators=[django.core.validators.MinValueValidator(-90), django.core.validators.MaxValueValidator(90)])),
                ('longitude', models.FloatField(validators=[django.core.validators.MinValueValidator(-180), django.core.validators.MaxValueValidator(180)])),
                ('opening_hours', models.JSONField(default=dict, validators=[stores.models.validate_opening_hours])),
                ('features', models.JSONField(blank=True, default=list, help_text='Informational tags such as parking or wheelchair_accessible')),
                ('pickup_available', models.BooleanField(default=True)),
                ('estimated_pickup_minutes', models.PositiveIntegerField(default=30, help_text='Baseline preparation time for a pickup order')),
                ('max_pickup_hours', models.PositiveIntegerField(default=24, help_text='Upper bound for the estimated preparation time', validators=[django.core.validators.MinValueValidator(1)])),
                ('slot_capacity', models.PositiveIntegerField(default=stores.models.default_slot_capacity, help_text='Live orders allowed per one-hour pickup slot', validators=[django.core.validators.MinValueValidator(1)])),
                ('is_active', models.BooleanField(default=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'db_table': 'stores',
                'ordering': ['name'],
                'indexes': [models.Index(fields=['is_active', 'pickup_available'], name='stores_available_idx')],
            },
        ),
    ]
