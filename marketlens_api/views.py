from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response


@api_view(['GET'])
@permission_classes([AllowAny])
def api_overview(request):
    """
    API overview for the Market Lens backend
    """

    api_endpoints = {
        "base_url": request.build_absolute_uri('/')[:-1],
        "version": "1.0",
        "description": "Market Lens - photo order capture, market pickup, warehouse inward and supplier billing",

        "authentication": {
            "login": "/api/auth/login/",
            "token_refresh": "/api/auth/token/refresh/",
            "user_profile": "/api/auth/profile/",
        },

        "suppliers": {
            "list_suppliers": "/api/suppliers/suppliers/?search={name}",
            "supplier_detail": "/api/suppliers/suppliers/{id}/",
        },

        "products": {
            "list_products": "/api/products/products/",
            "product_detail": "/api/products/products/{id}/",
            "hash_image": "/api/products/hash/ [POST multipart image]",
            "supplier_suggestion": "/api/products/{id}/supplier-suggestion/",
        },

        "procurement": {
            "daily_logs": "/api/procurement/logs/?date={YYYY-MM-DD}&status={status}",
            "log_detail": "/api/procurement/logs/{id}/",
            "create_or_merge_order": "/api/procurement/orders/ [POST]",
            "adjust_details": "/api/procurement/logs/{id}/details/ [POST]",
            "change_supplier": "/api/procurement/logs/{id}/supplier/ [POST]",
            "pickup": "/api/procurement/logs/{id}/pickup/ [POST]",
            "receive": "/api/procurement/logs/{id}/receive/ [POST]",
            "merge": "/api/procurement/logs/merge/ [POST]",
            "purchase_orders": "/api/procurement/purchase-orders/",
            "summaries": {
                "orders": "/api/procurement/summaries/orders/",
                "pickup": "/api/procurement/summaries/pickup/",
                "incoming": "/api/procurement/summaries/incoming/",
                "received": "/api/procurement/summaries/received/?start={date}&end={date}",
                "billing": "/api/procurement/summaries/billing/",
                "merge_candidates": "/api/procurement/summaries/merge-candidates/",
            },
        },

        "billing": {
            "entries": "/api/billing/entries/",
            "upsert": "/api/billing/entries/upsert/ [POST]",
            "toggle_gst": "/api/billing/entries/{id}/gst/ [POST]",
            "attach_proof": "/api/billing/entries/{id}/proof/ [POST]",
            "delete": "/api/billing/entries/{id}/ [DELETE]",
        },

        "storefronts": {
            "stores": "/api/storefronts/stores/",
            "verify_store": "/api/storefronts/stores/verify/ [POST]",
            "lookup_order": "/api/storefronts/orders/lookup/ [POST]",
            "import_order": "/api/storefronts/orders/import/ [POST]",
            "scanned_orders": "/api/storefronts/scanned-orders/",
        },

        "documentation": {
            "schema": "/api/schema/",
            "swagger": "/api/docs/",
            "redoc": "/api/redoc/",
        },
    }

    return Response(api_endpoints)
