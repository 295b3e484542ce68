from django.urls import path, include
from rest_framework.routers import DefaultRouter
from .views import OrderCollectionViewSet, OrderViewSet

router = DefaultRouter()
router.register(r'order-collections', OrderCollectionViewSet, basename='order-collection')
router.register(r'orders', OrderViewSet, basename='order')

urlpatterns = [
    path('', include(router.urls)),
]
