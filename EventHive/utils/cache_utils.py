"""
Caching utilities for EventHive application
"""
import hashlib
from functools import wraps
from django.conf import settings
from django.core.cache import cache
from rest_framework.response import Response
import logging

logger = logging.getLogger(__name__)

# Cache key prefixes
CACHE_PREFIXES = {
    'event_availability': 'eventhive:events:availability',
}


def generate_cache_key(prefix, *args, **kwargs):
    """
    Generate a unique cache key from prefix and arguments
    """
    key_parts = [str(prefix)]
    for arg in args:
        key_parts.append(str(arg))

    # Sorted for consistency
    for key, value in sorted(kwargs.items()):
        key_parts.append(f"{key}:{value}")

    key_string = ":".join(key_parts)
    key_hash = hashlib.md5(key_string.encode()).hexdigest()
    return f"{prefix}:{key_hash}"


def availability_cache_key(event_id):
    return generate_cache_key(CACHE_PREFIXES['event_availability'], event_id=int(event_id))


def cache_response(key_func, ttl=None):
    """
    Decorator to cache successful API responses

    Args:
        key_func: builds the cache key from the view's URL kwargs
        ttl: time to live in seconds (default: AVAILABILITY_CACHE_TTL)
    """
    def decorator(view_func):
        @wraps(view_func)
        def wrapper(request, *args, **kwargs):
            cache_key = key_func(**kwargs)
            cached_response = cache.get(cache_key)
            if cached_response is not None:
                logger.info(f"Cache hit for key: {cache_key}")
                return Response(cached_response['data'], status=cached_response['status'])

            response = view_func(request, *args, **kwargs)

            if hasattr(response, 'status_code') and response.status_code == 200:
                timeout = ttl if ttl is not None else settings.AVAILABILITY_CACHE_TTL
                cache.set(cache_key, {'data': response.data, 'status': response.status_code}, timeout)
                logger.info(f"Cached response for key: {cache_key} (TTL: {timeout}s)")

            return response

        return wrapper
    return decorator


def invalidate_availability_cache(event_id):
    """
    Drop the cached availability of one event
    """
    try:
        cache.delete(availability_cache_key(event_id))
        logger.info(f"Invalidated availability cache for event {event_id}")
    except Exception as e:
        logger.error(f"Error invalidating availability cache for event {event_id}: {e}")
