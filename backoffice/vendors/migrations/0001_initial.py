# Generated manually
import django.db.models.deletion
from decimal import Decimal
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('core', '0001_initial'),
        ('ingredients', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='VendorCode',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('vendor_id', models.CharField(max_length=100)),
                ('code', models.CharField(max_length=100)),
                ('variation_label', models.CharField(blank=True, max_length=100)),
                ('note', models.TextField(blank=True)),
                ('is_current', models.BooleanField(default=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('master_ingredient', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='vendor_codes', to='ingredients.masteringredient')),
                ('organization', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='vendor_codes', to='core.organization')),
            ],
            options={
                'db_table': 'vendor_codes',
                'ordering': ['vendor_id', 'code'],
                'indexes': [
                    models.Index(fields=['organization', 'vendor_id', 'code'], name='idx_vendor_code_lookup'),
                ],
                'constraints': [
                    models.UniqueConstraint(condition=models.Q(is_current=True), fields=('master_ingredient', 'vendor_id'), name='uniq_current_vendor_code'),
                ],
            },
        ),
        migrations.CreateModel(
            name='VendorImport',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('vendor_id', models.CharField(max_length=100)),
                ('import_type', models.CharField(choices=[('csv', 'CSV'), ('pdf', 'PDF'), ('photo', 'Photo'), ('manual', 'Manual')], default='csv', max_length=10)),
                ('file_name', models.CharField(blank=True, max_length=255)),
                ('file', models.FileField(blank=True, null=True, upload_to='invoices/%Y/%m/')),
                ('invoice_date', models.DateField(blank=True, null=True)),
                ('items_count', models.IntegerField(default=0)),
                ('price_changes_count', models.IntegerField(default=0)),
                ('new_items_count', models.IntegerField(default=0)),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('completed', 'Completed'), ('failed', 'Failed')], default='pending', max_length=20)),
                ('error_message', models.TextField(blank=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='vendor_imports', to=settings.AUTH_USER_MODEL)),
                ('organization', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='vendor_imports', to='core.organization')),
            ],
            options={
                'db_table': 'vendor_imports',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['organization', '-created_at'], name='idx_import_org_created'),
                ],
            },
        ),
        migrations.CreateModel(
            name='VendorPriceHistory',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('vendor_id', models.CharField(max_length=100)),
                ('price', models.DecimalField(decimal_places=2, max_digits=12)),
                ('effective_date', models.DateField()),
                ('notes', models.TextField(blank=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='recorded_prices', to=settings.AUTH_USER_MODEL)),
                ('invoice', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='price_history', to='vendors.vendorimport')),
                ('master_ingredient', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='price_history', to='ingredients.masteringredient')),
                ('organization', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='vendor_price_history', to='core.organization')),
                ('vendor_code', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='price_history', to='vendors.vendorcode')),
            ],
            options={
                'db_table': 'vendor_price_history',
                'ordering': ['-effective_date', '-created_at'],
                'indexes': [
                    models.Index(fields=['master_ingredient', 'vendor_id', '-effective_date'], name='idx_price_ingredient_date'),
                    models.Index(fields=['organization', '-effective_date'], name='idx_price_org_date'),
                ],
            },
        ),
        migrations.CreateModel(
            name='VendorPriceChange',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('vendor_id', models.CharField(max_length=100)),
                ('item_code', models.CharField(blank=True, max_length=100)),
                ('product_name', models.CharField(max_length=255)),
                ('old_price', models.DecimalField(decimal_places=2, max_digits=12)),
                ('new_price', models.DecimalField(decimal_places=2, max_digits=12)),
                ('change_percent', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=9)),
                ('invoice_date', models.DateField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('master_ingredient', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='price_changes', to='ingredients.masteringredient')),
                ('organization', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='vendor_price_changes', to='core.organization')),
            ],
            options={
                'db_table': 'vendor_price_changes',
                'ordering': ['-created_at'],
                'indexes': [
                    models.Index(fields=['organization', '-created_at'], name='idx_price_change_org_created'),
                ],
            },
        ),
        migrations.CreateModel(
            name='VendorTemplate',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('vendor_id', models.CharField(max_length=100)),
                ('name', models.CharField(blank=True, max_length=200)),
                ('item_code_column', models.CharField(max_length=100)),
                ('product_name_column', models.CharField(max_length=100)),
                ('unit_price_column', models.CharField(max_length=100)),
                ('unit_of_measure_column', models.CharField(blank=True, max_length=100)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('organization', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='vendor_templates', to='core.organization')),
            ],
            options={
                'db_table': 'vendor_templates',
                'unique_together': {('organization', 'vendor_id')},
            },
        ),
    ]
