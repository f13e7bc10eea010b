import django.db.models.deletion
from decimal import Decimal
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('workspaces', '0001_initial'),
        ('locations', '0001_initial'),
    ]

    operations = [
        migrations.CreateModel(
            name='Carrier',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name_ar', models.CharField(max_length=200)),
                ('name_en', models.CharField(blank=True, max_length=200)),
                ('tracking_url', models.URLField(blank=True, max_length=500)),
                ('is_active', models.BooleanField(default=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('business', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='carriers', to='workspaces.business')),
            ],
            options={
                'db_table': 'carriers',
                'ordering': ['name_ar'],
            },
        ),
        migrations.CreateModel(
            name='CarrierSettings',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('good_threshold', models.DecimalField(decimal_places=2, default=Decimal('70.00'), max_digits=5)),
                ('warning_threshold', models.DecimalField(decimal_places=2, default=Decimal('50.00'), max_digits=5)),
                ('good_color', models.CharField(default='#10B981', max_length=7)),
                ('warning_color', models.CharField(default='#F59E0B', max_length=7)),
                ('poor_color', models.CharField(default='#EF4444', max_length=7)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('carrier', models.OneToOneField(on_delete=django.db.models.deletion.CASCADE, related_name='settings', to='carriers.carrier')),
            ],
            options={
                'db_table': 'carrier_settings',
                'verbose_name_plural': 'carrier settings',
            },
        ),
        migrations.CreateModel(
            name='CarrierCityPrice',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('shipping_cost', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('carrier', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='city_prices', to='carriers.carrier')),
                ('city', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='carrier_prices', to='locations.city')),
            ],
            options={
                'db_table': 'carrier_city_prices',
                'unique_together': {('carrier', 'city')},
            },
        ),
    ]
