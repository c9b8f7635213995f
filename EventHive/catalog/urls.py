from django.urls import path
from . import views

urlpatterns = [
    # Check Availability API
    path('events/<int:event_id>/availability/', views.check_availability, name='check_availability'),
]
