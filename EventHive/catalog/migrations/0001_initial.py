import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models

import catalog.models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='Event',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('title', models.CharField(max_length=255)),
                ('description', models.TextField(blank=True, null=True)),
                ('venue_name', models.CharField(max_length=255)),
                ('venue_address', models.CharField(blank=True, max_length=500)),
                ('start_datetime', models.DateTimeField()),
                ('end_datetime', models.DateTimeField(blank=True, null=True)),
                ('is_active', models.BooleanField(default=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('organizer', models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name='organized_events', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'ordering': ['-created_at'],
                'indexes': [models.Index(fields=['is_active', 'start_datetime'], name='event_active_start_idx')],
            },
        ),
        migrations.CreateModel(
            name='TicketTier',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('name', models.CharField(max_length=100)),
                ('description', models.TextField(blank=True)),
                ('price', models.DecimalField(decimal_places=2, max_digits=10)),
                ('currency', models.CharField(default=catalog.models.default_currency, max_length=3)),
                ('total_quantity', models.PositiveIntegerField()),
                ('remaining_quantity', models.PositiveIntegerField(blank=True)),
                ('max_per_user', models.PositiveIntegerField(default=10)),
                ('is_active', models.BooleanField(default=True)),
                ('sale_start_datetime', models.DateTimeField(blank=True, null=True)),
                ('sale_end_datetime', models.DateTimeField(blank=True, null=True)),
                ('created_at', models.DateTimeField(auto_now_add=True)),
                ('updated_at', models.DateTimeField(auto_now=True)),
                ('event', models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name='ticket_tiers', to='catalog.event')),
            ],
            options={
                'ordering': ['price', 'id'],
                'indexes': [models.Index(fields=['event', 'is_active'], name='tier_event_active_idx')],
                'constraints': [
                    models.CheckConstraint(condition=models.Q(('price__gte', 0)), name='tier_price_non_negative'),
                    models.CheckConstraint(condition=models.Q(('remaining_quantity__lte', models.F('total_quantity'))), name='tier_remaining_within_total'),
                ],
            },
        ),
    ]
