from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response
import logging

from utils.cache_utils import availability_cache_key, cache_response

from .reader import CatalogReader
from .serializers import AvailabilitySerializer

logger = logging.getLogger(__name__)


@api_view(['GET'])
@permission_classes([AllowAny])
@cache_response(availability_cache_key)
def check_availability(request, event_id):
    """
    Check Availability API
    Endpoint: GET /api/events/{event_id}/availability/
    """
    availability = CatalogReader.get_availability(event_id)
    if availability is None:
        return Response(
            {'error': 'Event not found', 'code': 'EVENT_NOT_FOUND'},
            status=status.HTTP_404_NOT_FOUND
        )
    return Response(AvailabilitySerializer(availability).data)
