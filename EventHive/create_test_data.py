#!/usr/bin/env python
"""
Script to create test data for the EventHive checkout API
Run this after migrating the database

Writes buyer tokens and ids to ct_seed.json for concurrency_test.py

Env vars:
  CT_USERS       number of buyers to create (default 20)
  CT_CAPACITY    capacity of the free tier used by the stress test (default 10)
"""

import json
import os
from datetime import timedelta
from decimal import Decimal

import django

# Setup Django environment
os.environ.setdefault('DJANGO_SETTINGS_MODULE', 'EventHive.settings')
django.setup()

from django.contrib.auth import get_user_model  # noqa: E402
from django.utils import timezone  # noqa: E402
from rest_framework.authtoken.models import Token  # noqa: E402

from catalog.models import Event, TicketTier  # noqa: E402

User = get_user_model()

NUM_USERS = int(os.environ.get("CT_USERS", "20"))
FREE_CAPACITY = int(os.environ.get("CT_CAPACITY", "10"))
SEED_FILE = os.path.join(os.path.dirname(os.path.abspath(__file__)), "ct_seed.json")


def get_or_create_user(username, **extra):
    user, created = User.objects.get_or_create(
        username=username,
        defaults={'email': f"{username}@example.com", **extra},
    )
    if created:
        user.set_password("testpass123")
        user.save()
        print(f"✅ Created user: {user.username} (ID: {user.id})")
    token, _ = Token.objects.get_or_create(user=user)
    return user, token


def create_test_data():
    """Create buyers, an event and its ticket tiers"""
    print("🚀 Creating test data for EventHive...")

    organizer, _ = get_or_create_user("organizer", first_name="Event", last_name="Organizer", is_staff=True)

    event, created = Event.objects.get_or_create(
        title="Test Concert",
        defaults={
            'organizer': organizer,
            'description': "A test concert for API testing",
            'venue_name': "Test Venue",
            'venue_address': "1 Test Street",
            'start_datetime': timezone.now() + timedelta(days=30),
        },
    )
    print(f"{'✅ Created' if created else '✅ Found'} event: {event.title} (ID: {event.id})")

    tiers = {}
    for name, price, quantity, cap in [
        ("General Admission", Decimal("500.00"), 200, 6),
        ("VIP", Decimal("1500.00"), 20, 2),
        ("Community Pass", Decimal("0.00"), FREE_CAPACITY, 1),
    ]:
        tier, created = TicketTier.objects.get_or_create(
            event=event,
            name=name,
            defaults={'price': price, 'total_quantity': quantity, 'max_per_user': cap},
        )
        tiers[name] = tier
        print(f"  🎟️ {tier.name}: {tier.price} {tier.currency}, {tier.remaining_quantity}/{tier.total_quantity} left (ID: {tier.id})")

    buyers = []
    for i in range(NUM_USERS):
        user, token = get_or_create_user(f"ct_buyer_{i}", first_name="Buyer", last_name=str(i))
        buyers.append({'user_id': user.id, 'token': token.key})

    with open(SEED_FILE, "w") as fh:
        json.dump(
            {
                'event_id': event.id,
                'free_tier_id': tiers["Community Pass"].id,
                'free_capacity': tiers["Community Pass"].total_quantity,
                'buyers': buyers,
            },
            fh,
            indent=2,
        )

    print(f"\n📋 Seed written to {SEED_FILE}")
    print(f"Event ID: {event.id}")
    print(f"Buyers: {len(buyers)}")
    print(f"\n🔗 Availability: GET /api/events/{event.id}/availability/")


if __name__ == "__main__":
    create_test_data()
