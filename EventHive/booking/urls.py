from django.urls import path
from . import views

urlpatterns = [
    # Checkout
    path('checkout/orders/', views.create_checkout_order, name='create_checkout_order'),
    path('checkout/verify/', views.verify_payment, name='verify_payment'),

    # Bookings
    path('bookings/id/<int:booking_id>/', views.get_booking_by_id, name='get_booking_by_id'),
    path('bookings/<str:reference>/', views.get_booking, name='get_booking'),
    path('bookings/<str:reference>/cancel/', views.cancel_booking, name='cancel_booking'),

    # Public ticket verification
    path('tickets/verify/<str:token>/', views.verify_ticket, name='verify_ticket'),
]
