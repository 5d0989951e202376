"""
Thin Shopify Admin API client used for order lookups.

Only read endpoints are used. GETs go through a session whose adapter
retries 429 and 5xx answers with backoff, so callers see a single
``ExternalLookupError`` once the retries are spent.
"""

import logging
import re

import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry
from django.conf import settings

from marketlens_api.exceptions import ExternalLookupError
from .constants import VALID_TOKEN_PREFIXES, SHOPIFY_DOMAIN_SUFFIX

logger = logging.getLogger(__name__)

DOMAIN_PATTERN = re.compile(r'^[a-zA-Z0-9][a-zA-Z0-9-]*[a-zA-Z0-9]$')
RETRY_STATUSES = (429, 500, 502, 503, 504)


def clean_domain(domain):
    """``my-shop.myshopify.com`` -> ``my-shop``"""
    return (domain or '').strip().replace(SHOPIFY_DOMAIN_SUFFIX, '').strip().strip('/')


def validate_credentials(domain, access_token):
    """Raise ``ExternalLookupError(invalid_config)`` for malformed credentials."""
    token = (access_token or '').strip()
    if not token or not domain:
        raise ExternalLookupError(
            ExternalLookupError.INVALID_CONFIG, 'Both shop domain and access token are required'
        )
    if not token.startswith(VALID_TOKEN_PREFIXES):
        raise ExternalLookupError(
            ExternalLookupError.INVALID_CONFIG,
            'Access token must start with one of: ' + ', '.join(VALID_TOKEN_PREFIXES)
        )
    if not DOMAIN_PATTERN.match(clean_domain(domain)):
        raise ExternalLookupError(
            ExternalLookupError.INVALID_CONFIG,
            f'Invalid shop domain "{domain}". Use only letters, numbers and hyphens'
        )


def build_session(retries=3):
    session = requests.Session()
    retry = Retry(
        total=retries,
        backoff_factor=0.5,
        status_forcelist=RETRY_STATUSES,
        allowed_methods=frozenset(['GET']),
        raise_on_status=False,
        respect_retry_after_header=True,
    )
    session.mount('https://', HTTPAdapter(max_retries=retry))
    return session


class ShopifyClient:
    """Read-only access to one store"""

    def __init__(self, domain, access_token, timeout=None, session=None):
        validate_credentials(domain, access_token)
        self.domain = clean_domain(domain)
        self.access_token = access_token.strip()
        self.timeout = timeout or settings.SHOPIFY_TIMEOUT_SECONDS
        self.session = session or build_session()

    @property
    def base_url(self):
        return f"https://{self.domain}{SHOPIFY_DOMAIN_SUFFIX}/admin/api/{settings.SHOPIFY_API_VERSION}"

    def _get(self, path, params=None):
        url = f"{self.base_url}/{path}"
        try:
            response = self.session.get(
                url,
                params=params,
                headers={
                    'X-Shopify-Access-Token': self.access_token,
                    'Content-Type': 'application/json',
                },
                timeout=self.timeout,
            )
        except requests.exceptions.Timeout as e:
            logger.warning(f"Shopify request to {self.domain} timed out: {e}")
            raise ExternalLookupError(
                ExternalLookupError.TIMEOUT,
                f'Connection to {self.domain} timed out after {self.timeout}s'
            ) from e
        except requests.exceptions.RequestException as e:
            logger.warning(f"Shopify request to {self.domain} failed: {e}")
            raise ExternalLookupError(
                ExternalLookupError.UNAVAILABLE, f'Could not reach {self.domain}: {e}'
            ) from e

        if response.status_code in (401, 403):
            raise ExternalLookupError(
                ExternalLookupError.AUTH_INVALID,
                f'Shopify rejected the access token for {self.domain}'
            )
        if response.status_code == 404:
            raise ExternalLookupError(ExternalLookupError.NOT_FOUND, f'{path} not found on {self.domain}')
        if response.status_code == 429:
            raise ExternalLookupError(
                ExternalLookupError.RATE_LIMITED, f'Shopify rate limit reached for {self.domain}'
            )
        if not 200 <= response.status_code < 300:
            logger.error(f"Shopify {path} on {self.domain} returned {response.status_code}: {response.text[:500]}")
            raise ExternalLookupError(
                ExternalLookupError.UNAVAILABLE,
                f'Shopify API error {response.status_code} from {self.domain}'
            )

        try:
            return response.json()
        except ValueError as e:
            raise ExternalLookupError(
                ExternalLookupError.UNAVAILABLE, f'Unreadable response from {self.domain}'
            ) from e

    def verify(self):
        """Check the credentials and return the shop's name, domain and email"""
        shop = self._get('shop.json').get('shop') or {}
        logger.info(f"Verified Shopify store {self.domain} ({shop.get('name')})")
        return {
            'shop_name': shop.get('name', ''),
            'shop_domain': shop.get('domain', ''),
            'shop_email': shop.get('email', ''),
        }

    def _image_for(self, item):
        if not item.get('product_id'):
            return None
        try:
            product = self._get(f"products/{item['product_id']}.json").get('product') or {}
        except ExternalLookupError as e:
            # The order is still usable without a picture for this line
            logger.warning(f"No image for product {item['product_id']} on {self.domain}: {e.message}")
            return None

        variant_id = item.get('variant_id')
        if variant_id:
            for image in product.get('images') or []:
                if variant_id in (image.get('variant_ids') or []):
                    return image.get('src')
        main_image = product.get('image')
        return main_image.get('src') if main_image else None

    def find_order(self, order_name):
        """
        Look an order up by its display name (e.g. ``#1001``).

        Each line item carries the variant image when there is one, else the
        product's main image.
        """
        data = self._get('orders.json', params={'name': order_name, 'status': 'any'})
        orders = data.get('orders') or []
        if not orders:
            raise ExternalLookupError(
                ExternalLookupError.NOT_FOUND, f'Order "{order_name}" not found on {self.domain}'
            )

        order = orders[0]
        customer = order.get('customer')
        line_items = []
        for item in order.get('line_items') or []:
            line_items.append({
                'id': item.get('id'),
                'product_id': item.get('product_id'),
                'variant_id': item.get('variant_id'),
                'title': item.get('title', ''),
                'variant_title': item.get('variant_title'),
                'quantity': item.get('quantity', 0),
                'price': item.get('price'),
                'sku': item.get('sku'),
                'image_url': self._image_for(item),
            })

        return {
            'order_id': order.get('id'),
            'order_name': order.get('name', order_name),
            'customer': (
                f"{customer.get('first_name') or ''} {customer.get('last_name') or ''}".strip()
                if customer else 'No Customer'
            ),
            'customer_email': (customer or {}).get('email') or order.get('email') or '',
            'total_price': order.get('total_price'),
            'line_items': line_items,
        }
