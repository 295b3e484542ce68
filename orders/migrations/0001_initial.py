import django.db.models.deletion
from decimal import Decimal
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ('accounts', '0001_initial'),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='OrderCollection',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=255)),
                ('description', models.TextField(blank=True, default='')),
                ('total_orders', models.PositiveIntegerField(default=0)),
                ('completed_orders', models.PositiveIntegerField(default=0)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('tailor', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='order_collections', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'Order Collection',
                'verbose_name_plural': 'Order Collections',
            },
        ),
        migrations.CreateModel(
            name='Order',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('order_number', models.CharField(max_length=32)),
                ('status', models.CharField(choices=[('PENDING', 'Pending'), ('CONFIRMED', 'Confirmed'), ('IN_PROGRESS', 'In progress'), ('READY_FOR_FITTING', 'Ready for fitting'), ('FITTING_DONE', 'Fitting done'), ('COMPLETED', 'Completed'), ('CANCELLED', 'Cancelled')], default='PENDING', max_length=20)),
                ('garment_type', models.CharField(choices=[('KABA_AND_SLIT', 'Kaba and slit'), ('DASHIKI', 'Dashiki'), ('SMOCK_BATAKARI', 'Smock / Batakari'), ('KAFTAN', 'Kaftan'), ('AGBADA', 'Agbada'), ('COMPLET', 'Complet'), ('KENTE_CLOTH', 'Kente cloth'), ('BOUBOU', 'Boubou'), ('SUIT', 'Suit'), ('DRESS', 'Dress'), ('SHIRT', 'Shirt'), ('TROUSERS', 'Trousers'), ('SKIRT', 'Skirt'), ('BLOUSE', 'Blouse'), ('OTHER', 'Other')], default='OTHER', max_length=20)),
                ('garment_description', models.TextField(blank=True, default='')),
                ('style_notes', models.TextField(blank=True, default='')),
                ('quantity', models.PositiveIntegerField(default=1)),
                ('progress_notes', models.TextField(blank=True, default='')),
                ('material_cost', models.DecimalField(blank=True, decimal_places=2, max_digits=12, null=True)),
                ('labor_cost', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12)),
                ('total_amount', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12)),
                ('paid_amount', models.DecimalField(decimal_places=2, default=Decimal('0.00'), max_digits=12)),
                ('deadline', models.DateField(blank=True, null=True)),
                ('started_at', models.DateTimeField(blank=True, null=True)),
                ('completed_at', models.DateTimeField(blank=True, null=True)),
                ('version', models.PositiveIntegerField(default=1)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('client', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='orders', to='accounts.client')),
                ('collection', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='orders', to='orders.ordercollection')),
                ('tailor', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='orders', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'verbose_name': 'Order',
                'verbose_name_plural': 'Orders',
                'indexes': [
                    models.Index(fields=['tailor', 'status'], name='order_tailor_status_idx'),
                    models.Index(fields=['tailor', 'created_at'], name='order_tailor_created_idx'),
                    models.Index(fields=['client', 'created_at'], name='order_client_created_idx'),
                ],
                'constraints': [
                    models.UniqueConstraint(fields=('tailor', 'order_number'), name='unique_order_number_per_tailor'),
                ],
            },
        ),
    ]
