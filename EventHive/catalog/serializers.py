from rest_framework import serializers


class TierAvailabilitySerializer(serializers.Serializer):
    tier_id = serializers.IntegerField()
    name = serializers.CharField()
    price = serializers.DecimalField(max_digits=10, decimal_places=2)
    currency = serializers.CharField()
    remaining_quantity = serializers.IntegerField()
    max_per_user = serializers.IntegerField()
    on_sale = serializers.BooleanField()


class AvailabilitySerializer(serializers.Serializer):
    """
    Serializer for event availability
    """
    event_id = serializers.IntegerField()
    title = serializers.CharField()
    total_capacity = serializers.IntegerField()
    available_tickets = serializers.IntegerField()
    is_sold_out = serializers.SerializerMethodField()
    tiers = TierAvailabilitySerializer(many=True)

    def get_is_sold_out(self, obj):
        return obj['available_tickets'] == 0
