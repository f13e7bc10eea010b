import django.db.models.deletion
from decimal import Decimal
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('workspaces', '0001_initial'),
        ('catalog', '0001_initial'),
        ('orders', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='AdCampaign',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('campaign_date', models.DateField()),
                ('platform', models.CharField(choices=[('facebook', 'Facebook'), ('instagram', 'Instagram'), ('tiktok', 'TikTok'), ('google', 'Google'), ('snapchat', 'Snapchat'), ('twitter', 'Twitter'), ('linkedin', 'LinkedIn'), ('other', 'Other')], default='facebook', max_length=20)),
                ('campaign_name', models.CharField(blank=True, max_length=255)),
                ('total_cost', models.DecimalField(decimal_places=2, max_digits=12)),
                ('notes', models.TextField(blank=True)),
                ('is_allocated', models.BooleanField(default=False)),
                ('allocated_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('business', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='ad_campaigns', to='workspaces.business')),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'db_table': 'ad_campaigns',
                'ordering': ['-campaign_date', '-created_at'],
            },
        ),
        migrations.CreateModel(
            name='AdCampaignProduct',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('allocation_percentage', models.DecimalField(decimal_places=2, max_digits=5)),
                ('cost_amount', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('campaign', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='products', to='advertising.adcampaign')),
                ('product', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='ad_campaign_links', to='catalog.product')),
            ],
            options={
                'db_table': 'ad_campaign_products',
                'unique_together': {('campaign', 'product')},
            },
        ),
        migrations.CreateModel(
            name='AdCostLog',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('allocated_cost', models.DecimalField(decimal_places=2, max_digits=12)),
                ('allocation_method', models.CharField(choices=[('daily', 'Daily'), ('per_order', 'Per Order'), ('product_based', 'Product Based')], default='product_based', max_length=20)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('campaign', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='cost_logs', to='advertising.adcampaign')),
                ('order', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='ad_cost_logs', to='orders.order')),
                ('product', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='+', to='catalog.product')),
            ],
            options={
                'db_table': 'ad_cost_logs',
            },
        ),
    ]
