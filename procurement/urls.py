from django.urls import path, include
from rest_framework.routers import DefaultRouter
from . import views

router = DefaultRouter()
router.register(r'logs', views.DailyLogViewSet, basename='dailylog')
router.register(r'purchase-orders', views.PurchaseOrderViewSet, basename='purchaseorder')

urlpatterns = [
    # Lifecycle actions (listed before the router so "merge" is not read as a log id)
    path('orders/', views.create_order, name='create_order'),
    path('logs/merge/', views.merge_logs, name='merge_logs'),
    path('logs/<uuid:log_id>/details/', views.adjust_log_details, name='adjust_log_details'),
    path('logs/<uuid:log_id>/supplier/', views.update_log_supplier, name='update_log_supplier'),
    path('logs/<uuid:log_id>/pickup/', views.process_pickup, name='process_pickup'),
    path('logs/<uuid:log_id>/receive/', views.process_receiving, name='process_receiving'),

    # Read-only summaries
    path('summaries/orders/', views.orders_summary, name='summary_orders'),
    path('summaries/pickup/', views.pickup_summary, name='summary_pickup'),
    path('summaries/incoming/', views.incoming_summary, name='summary_incoming'),
    path('summaries/received/', views.received_summary, name='summary_received'),
    path('summaries/billing/', views.billing_summary, name='summary_billing'),
    path('summaries/merge-candidates/', views.merge_candidates, name='summary_merge_candidates'),

    path('', include(router.urls)),
]
