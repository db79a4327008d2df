from decimal import Decimal
import django.core.validators
import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('stores', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='PickupOrder',
            fields=[
                ('id', models.CharField(editable=False, max_length=64, primary_key=True, serialize=False)),
                ('pickup_code', models.CharField(db_index=True, editable=False, max_length=16)),
                ('customer_name', models.CharField(max_length=255)),
                ('customer_phone', models.CharField(max_length=30)),
                ('customer_email', models.EmailField(max_length=254)),
                ('customer_id_document', models.CharField(blank=True, max_length=64, null=True)),
                ('scheduled_time', models.DateTimeField(blank=True, null=True)),
                ('preparation_time_minutes', models.PositiveIntegerField()),
                ('actual_ready_time', models.DateTimeField(blank=True, null=True)),
                ('picked_up_at', models.DateTimeField(blank=True, null=True)),
                ('cancelled_at', models.DateTimeField(blank=True, null=True)),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('preparing', 'Preparing'), ('ready', 'Ready'), ('picked_up', 'Picked Up'), ('cancelled', 'Cancelled'), ('expired', 'Expired')], default='pending', max_length=20)),
                ('notes', models.TextField(blank=True, null=True)),
                ('total', models.DecimalField(decimal_places=2, max_digits=12, validators=[django.core.validators.MinValueValidator(Decimal('0.00'))])),
                ('order_received_notified', models.BooleanField(default=False)),
                ('preparing_notified', models.BooleanField(default=False)),
                ('ready_notified', models.BooleanField(default=False)),
                ('reminder_sent', models.BooleanField(default=False)),
                ('created_at', models.DateTimeField()),
                ('updated_at', models.DateTimeField()),
                ('expires_at', models.DateTimeField()),
                ('store', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='pickup_orders', to='stores.store')),
                ('user', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='pickup_orders', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'pickup_orders',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['store', 'scheduled_time'], name='pickup_store_slot_idx'),
                    models.Index(fields=['user', '-created_at'], name='pickup_user_created_idx'),
                    models.Index(fields=['status'], name='pickup_status_idx'),
                    models.Index(fields=['expires_at'], name='pickup_expires_idx'),
                ],
                'constraints': [
                    models.UniqueConstraint(condition=models.Q(('status__in', ['pending', 'preparing', 'ready'])), fields=('pickup_code',), name='unique_live_pickup_code'),
                    models.CheckConstraint(condition=models.Q(('expires_at__gt', models.F('created_at'))), name='pickup_expires_after_creation'),
                ],
            },
        ),
        migrations.CreateModel(
            name='PickupOrderItem',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('position', models.PositiveIntegerField(default=0)),
                ('product_id', models.CharField(max_length=100)),
                ('quantity', models.PositiveIntegerField(validators=[django.core.validators.MinValueValidator(1)])),
                ('price', models.DecimalField(decimal_places=2, max_digits=10, validators=[django.core.validators.MinValueValidator(Decimal('0.00'))])),
                ('notes', models.CharField(blank=True, max_length=255, null=True)),
                ('order', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='items', to='pickup.pickuporder')),
            ],
            options={
                'db_table': 'pickup_order_items',
                'ordering': ['order', 'position'],
            },
        ),
    ]
