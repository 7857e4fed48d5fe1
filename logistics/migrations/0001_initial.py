import uuid

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Driver',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('name', models.CharField(max_length=150, verbose_name='Name')),
                ('phone', models.CharField(blank=True, max_length=30, verbose_name='Phone')),
                ('photo', models.URLField(blank=True, max_length=500, verbose_name='Photo URL')),
                ('vehicle_type', models.CharField(max_length=50, verbose_name='Vehicle type')),
                ('status', models.CharField(choices=[('active', 'Active'), ('inactive', 'Inactive')], default='active', max_length=20, verbose_name='Status')),
                ('current_address', models.CharField(blank=True, max_length=255, verbose_name='Current address')),
                ('current_lat', models.FloatField(blank=True, null=True)),
                ('current_lng', models.FloatField(blank=True, null=True)),
                ('location_updated_at', models.DateTimeField(blank=True, null=True)),
                ('average_response_time', models.PositiveIntegerField(default=0, verbose_name='Average response time (min)')),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('user', models.OneToOneField(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='driver_profile', to=settings.AUTH_USER_MODEL, verbose_name='User account')),
            ],
            options={
                'verbose_name': 'Driver',
                'verbose_name_plural': 'Drivers',
                'ordering': ['name'],
            },
        ),
        migrations.CreateModel(
            name='DeliveryRequest',
            fields=[
                ('id', models.UUIDField(default=uuid.uuid4, editable=False, primary_key=True, serialize=False)),
                ('tracking_id', models.CharField(blank=True, db_index=True, max_length=10, null=True, unique=True, verbose_name='Tracking ID')),
                ('status', models.CharField(choices=[('pending', 'Pending'), ('in_progress', 'In progress'), ('picked_up', 'Picked up'), ('in_transit', 'In transit'), ('completed', 'Completed'), ('declined', 'Declined')], default='pending', max_length=20, verbose_name='Status')),
                ('priority', models.CharField(choices=[('normal', 'Normal'), ('urgent', 'Urgent')], default='normal', max_length=10, verbose_name='Priority')),
                ('package_type', models.CharField(choices=[('standard', 'Standard'), ('temperature-controlled', 'Temperature controlled'), ('specimen', 'Specimen'), ('pharmaceutical', 'Pharmaceutical'), ('equipment', 'Equipment'), ('documents', 'Documents')], default='standard', max_length=30, verbose_name='Package type')),
                ('pickup_location', models.CharField(max_length=255, verbose_name='Pickup location')),
                ('delivery_location', models.CharField(max_length=255, verbose_name='Delivery location')),
                ('pickup_lat', models.FloatField(blank=True, null=True)),
                ('pickup_lng', models.FloatField(blank=True, null=True)),
                ('delivery_lat', models.FloatField(blank=True, null=True)),
                ('delivery_lng', models.FloatField(blank=True, null=True)),
                ('current_lat', models.FloatField(blank=True, null=True)),
                ('current_lng', models.FloatField(blank=True, null=True)),
                ('requester_name', models.CharField(blank=True, max_length=150, verbose_name='Requester')),
                ('contact_phone', models.CharField(blank=True, max_length=30, verbose_name='Contact phone')),
                ('contact_email', models.EmailField(blank=True, max_length=254, verbose_name='Contact email')),
                ('special_instructions', models.TextField(blank=True, verbose_name='Special instructions')),
                ('pickup_time', models.DateTimeField(blank=True, null=True, verbose_name='Requested pickup time')),
                ('estimated_distance', models.FloatField(blank=True, null=True, verbose_name='Estimated distance (mi)')),
                ('estimated_cost', models.DecimalField(blank=True, decimal_places=2, max_digits=10, null=True, verbose_name='Estimated cost (USD)')),
                ('estimated_delivery', models.DateTimeField(blank=True, null=True)),
                ('is_live_tracking', models.BooleanField(default=False)),
                ('simulation_speed', models.CharField(choices=[('slow', 'Slow'), ('normal', 'Normal'), ('fast', 'Fast')], default='normal', max_length=10)),
                ('traffic_condition', models.CharField(choices=[('good', 'Good'), ('moderate', 'Moderate'), ('heavy', 'Heavy')], default='good', max_length=10)),
                ('last_simulated_at', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('assigned_driver', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='deliveries', to='logistics.driver', verbose_name='Assigned driver')),
                ('created_by', models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='delivery_requests', to=settings.AUTH_USER_MODEL, verbose_name='Created by')),
            ],
            options={
                'verbose_name': 'Delivery request',
                'verbose_name_plural': 'Delivery requests',
                'ordering': ['-created_at'],
            },
        ),
        migrations.AddField(
            model_name='driver',
            name='current_delivery',
            field=models.OneToOneField(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='current_driver', to='logistics.deliveryrequest', verbose_name='Current delivery'),
        ),
        migrations.CreateModel(
            name='TrackingUpdate',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('status', models.CharField(max_length=50, verbose_name='Status label')),
                ('timestamp', models.DateTimeField(verbose_name='Timestamp')),
                ('location', models.CharField(blank=True, max_length=255)),
                ('note', models.TextField(blank=True)),
                ('lat', models.FloatField(blank=True, null=True)),
                ('lng', models.FloatField(blank=True, null=True)),
                ('delivery', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='tracking_updates', to='logistics.deliveryrequest')),
            ],
            options={
                'verbose_name': 'Tracking update',
                'verbose_name_plural': 'Tracking updates',
                'ordering': ['timestamp', 'id'],
            },
        ),
        migrations.AddIndex(
            model_name='deliveryrequest',
            index=models.Index(fields=['status', 'created_at'], name='delivery_status_created_idx'),
        ),
        migrations.AddIndex(
            model_name='deliveryrequest',
            index=models.Index(fields=['is_live_tracking'], name='delivery_live_tracking_idx'),
        ),
    ]
