# Generated migration for storefront configs and scanned orders

from decimal import Decimal
from django.conf import settings
import django.core.validators
from django.db import migrations, models
import django.db.models.deletion
import uuid


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='StoreConfig',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('shop_name', models.CharField(max_length=200)),
                ('shopify_domain', models.CharField(max_length=200, unique=True)),
                ('access_token', models.CharField(max_length=200)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
            ],
            options={
                'ordering': ['shop_name'],
            },
        ),
        migrations.CreateModel(
            name='ScannedOrder',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('order_name', models.CharField(max_length=100)),
                ('shop_name', models.CharField(blank=True, max_length=200)),
                ('shopify_domain', models.CharField(blank=True, max_length=200)),
                ('line_items', models.JSONField(blank=True, default=list)),
                ('total_price', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12, validators=[django.core.validators.MinValueValidator(Decimal('0.00'))])),
                ('customer_name', models.CharField(blank=True, max_length=200)),
                ('customer_email', models.CharField(blank=True, max_length=200)),
                ('status', models.CharField(choices=[('imported', 'Imported'), ('partial', 'Partially imported')], default='imported', max_length=20)),
                ('notes', models.TextField(blank=True)),
                ('synced_at', models.DateTimeField(auto_now_add=True)),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='scanned_orders', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'ordering': ['-synced_at'],
                'indexes': [models.Index(fields=['order_name'], name='scanned_order_name_idx')],
            },
        ),
    ]
