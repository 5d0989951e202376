from django.urls import path, include
from rest_framework.routers import DefaultRouter
from . import views

router = DefaultRouter()
router.register(r'stores', views.StoreConfigViewSet, basename='storeconfig')
router.register(r'scanned-orders', views.ScannedOrderViewSet, basename='scannedorder')

urlpatterns = [
    path('stores/verify/', views.verify_store, name='verify_store'),
    path('orders/lookup/', views.lookup_order, name='lookup_order'),
    path('orders/import/', views.import_order, name='import_order'),
    path('', include(router.urls)),
]
