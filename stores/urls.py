from django.urls import path
from rest_framework.routers import DefaultRouter
from . import views

router = DefaultRouter()
router.register(r'stores', views.StoreViewSet, basename='store')

urlpatterns = [
    path('stores/<str:code>/status/', views.store_open_status, name='store-open-status'),
    path('stores/<str:code>/slots/', views.store_pickup_slots, name='store-pickup-slots'),
    path('stores/<str:code>/distance/', views.store_distance, name='store-distance'),
    path('stores/<str:code>/estimate/', views.store_pickup_estimate, name='store-pickup-estimate'),
] + router.urls
