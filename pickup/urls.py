from django.urls import path
from . import views

urlpatterns = [
    path('orders/', views.PickupOrderListCreateView.as_view(), name='pickup-order-list-create'),
    path('orders/<str:pk>/', views.PickupOrderDetailView.as_view(), name='pickup-order-detail'),
    path('orders/<str:pk>/cancel/', views.cancel_pickup_order, name='pickup-order-cancel'),
    path('orders/<str:pk>/preparing/', views.start_preparing_pickup_order, name='pickup-order-preparing'),
    path('orders/<str:pk>/ready/', views.mark_pickup_order_ready, name='pickup-order-ready'),
    path('orders/<str:pk>/picked-up/', views.mark_pickup_order_picked_up, name='pickup-order-picked-up'),
    path('verify/', views.verify_pickup_code, name='pickup-verify-code'),
]
