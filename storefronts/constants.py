VALID_TOKEN_PREFIXES = ('shpat_', 'shpca_', 'shpss_', 'shpua_', 'shppa_')
SHOPIFY_DOMAIN_SUFFIX = '.myshopify.com'
DEFAULT_VARIANT_TITLE = 'Default Title'

SCANNED_STATUS_IMPORTED = 'imported'
SCANNED_STATUS_PARTIAL = 'partial'

SCANNED_STATUS_CHOICES = [
    (SCANNED_STATUS_IMPORTED, 'Imported'),
    (SCANNED_STATUS_PARTIAL, 'Partially imported'),
]
