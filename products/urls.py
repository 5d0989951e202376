from django.urls import path, include
from rest_framework.routers import DefaultRouter
from . import views

router = DefaultRouter()
router.register(r'products', views.ProductViewSet, basename='product')

urlpatterns = [
    path('', include(router.urls)),
    path('hash/', views.hash_image, name='product-hash-image'),
    path('<uuid:product_id>/supplier-suggestion/', views.supplier_suggestion, name='product-supplier-suggestion'),
]
