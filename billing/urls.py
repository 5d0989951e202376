from django.urls import path, include
from rest_framework.routers import DefaultRouter
from . import views

router = DefaultRouter()
router.register(r'entries', views.BillingEntryViewSet, basename='billingentry')

urlpatterns = [
    path('entries/upsert/', views.upsert_billing_entry, name='upsert_billing_entry'),
    path('entries/<uuid:billing_id>/gst/', views.toggle_gst, name='toggle_gst'),
    path('entries/<uuid:billing_id>/proof/', views.attach_proof, name='attach_billing_proof'),
    path('', include(router.urls)),
]
