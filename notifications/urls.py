from django.urls import path
from . import views

urlpatterns = [
    path('', views.NotificationListView.as_view(), name='notification-list'),
    path('unread-count/', views.notification_unread_count, name='notification-unread-count'),
    path('<int:pk>/read/', views.mark_notification_read, name='notification-mark-read'),
    path('orders/<str:order_id>/', views.order_notifications, name='notification-order-history'),
]
