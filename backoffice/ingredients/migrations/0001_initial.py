# Generated manually
import django.db.models.deletion
from decimal import Decimal
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('core', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='MasterIngredient',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('product', models.CharField(max_length=255)),
                ('item_code', models.CharField(blank=True, db_index=True, max_length=100)),
                ('vendor', models.CharField(blank=True, max_length=100)),
                ('category', models.CharField(blank=True, max_length=100)),
                ('sub_category', models.CharField(blank=True, max_length=100)),
                ('case_size', models.CharField(blank=True, max_length=100)),
                ('units_per_case', models.DecimalField(decimal_places=2, default=Decimal('1.00'), max_digits=10)),
                ('current_price', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12)),
                ('unit_of_measure', models.CharField(blank=True, max_length=50)),
                ('storage_area', models.CharField(blank=True, max_length=100)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('organization', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='master_ingredients', to='core.organization')),
            ],
            options={
                'db_table': 'master_ingredients',
                'ordering': ['product'],
                'indexes': [
                    models.Index(fields=['organization', 'vendor'], name='idx_ingredient_org_vendor'),
                    models.Index(fields=['organization', 'item_code'], name='idx_ingredient_org_code'),
                ],
            },
        ),
        migrations.CreateModel(
            name='UmbrellaIngredient',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=255)),
                ('description', models.TextField(blank=True)),
                ('category', models.CharField(blank=True, max_length=100)),
                ('sub_category', models.CharField(blank=True, max_length=100)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('organization', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='umbrella_ingredients', to='core.organization')),
                ('primary_master_ingredient', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='primary_for_umbrellas', to='ingredients.masteringredient')),
            ],
            options={
                'db_table': 'umbrella_ingredients',
                'ordering': ['name'],
            },
        ),
        migrations.CreateModel(
            name='UmbrellaIngredientMember',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('master_ingredient', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='umbrella_memberships', to='ingredients.masteringredient')),
                ('umbrella_ingredient', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='memberships', to='ingredients.umbrellaingredient')),
            ],
            options={
                'db_table': 'umbrella_ingredient_master_ingredients',
                'unique_together': {('umbrella_ingredient', 'master_ingredient')},
            },
        ),
        migrations.AddField(
            model_name='umbrellaingredient',
            name='master_ingredients',
            field=models.ManyToManyField(blank=True, related_name='umbrella_ingredients', through='ingredients.UmbrellaIngredientMember', to='ingredients.masteringredient'),
        ),
    ]
