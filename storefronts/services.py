"""
Store configs, cross-store order lookup and the scan-to-order import.
"""

from concurrent.futures import ThreadPoolExecutor, as_completed
from decimal import Decimal, InvalidOperation
from typing import Optional
import logging

import requests
from django.conf import settings

from marketlens_api.exceptions import (
    MarketLensError, ExternalLookupError, ValidationError, StoreNotFoundError,
)
from marketlens_api.persistence import atomic_batch, lock_row
from marketlens_api.storage import save_bytes, discard
from procurement.constants import SIZE_TOTAL_KEY
from procurement.services import create_or_merge_order, create_purchase_order
from products.imaging import compute_image_hash
from products.services import find_by_hash
from .client import ShopifyClient, clean_domain, validate_credentials
from .constants import DEFAULT_VARIANT_TITLE, SCANNED_STATUS_IMPORTED, SCANNED_STATUS_PARTIAL
from .models import StoreConfig, ScannedOrder

logger = logging.getLogger(__name__)


# Store configs

def save_store(shop_name, shopify_domain, access_token, store_id=None) -> StoreConfig:
    """Create or update a store config after checking the credential format"""
    validate_credentials(shopify_domain, access_token)
    domain = clean_domain(shopify_domain)
    with atomic_batch():
        clash = StoreConfig.objects.filter(shopify_domain__iexact=domain)
        if store_id:
            clash = clash.exclude(id=store_id)
        if clash.exists():
            raise ValidationError(f'A store with domain "{domain}" is already configured')
        if store_id:
            store = lock_row(StoreConfig.objects.all(), store_id, StoreNotFoundError)
        else:
            store = StoreConfig()
        store.shop_name = (shop_name or '').strip() or domain
        store.shopify_domain = domain
        store.access_token = access_token.strip()
        store.save()
    logger.info(f"Saved store config {store.shopify_domain}")
    return store


def delete_store(store_id) -> None:
    with atomic_batch():
        store = lock_row(StoreConfig.objects.all(), store_id, StoreNotFoundError)
        store.delete()
    logger.info(f"Deleted store config {store_id}")


def verify_store(shopify_domain, access_token):
    return ShopifyClient(shopify_domain, access_token).verify()


# Lookup

def _lookup(store, order_name):
    client = ShopifyClient(store.shopify_domain, store.access_token)
    order = client.find_order(order_name)
    order['shop_name'] = store.shop_name
    order['shopify_domain'] = client.domain
    return order


def find_order_across_stores(order_name, stores=None):
    """
    Ask every configured store for ``order_name`` at the same time.

    The first store that has it wins. When none do, the most telling failure
    is raised: the first error other than ``not_found`` (bad token,
    timeout...) so a broken store is never hidden, else ``not_found``.
    """
    order_name = (order_name or '').strip()
    if not order_name:
        raise ValidationError('Order name is required')

    stores = list(StoreConfig.objects.all() if stores is None else stores)
    if not stores:
        raise ExternalLookupError(ExternalLookupError.INVALID_CONFIG, 'No Shopify store is configured')

    failures = []
    workers = max(1, min(len(stores), settings.SHOPIFY_LOOKUP_WORKERS))
    with ThreadPoolExecutor(max_workers=workers) as pool:
        futures = {pool.submit(_lookup, store, order_name): (index, store) for index, store in enumerate(stores)}
        for future in as_completed(futures):
            index, store = futures[future]
            try:
                order = future.result()
            except ExternalLookupError as e:
                logger.info(f"Order {order_name} not available from {store.shopify_domain}: {e.reason}")
                failures.append((index, e))
                continue
            for other in futures:
                other.cancel()
            logger.info(f"Found order {order_name} in {store.shop_name}")
            return order

    other_errors = [e for _, e in sorted(failures, key=lambda pair: pair[0]) if e.reason != ExternalLookupError.NOT_FOUND]
    if other_errors:
        raise other_errors[0]
    raise ExternalLookupError(
        ExternalLookupError.NOT_FOUND, f'Order "{order_name}" was not found in any configured store'
    )


# Import

def size_key_for(variant_title) -> Optional[str]:
    """Variant title as the size key, ``None`` for Shopify's default variant"""
    title = (variant_title or '').strip()
    if not title or title == DEFAULT_VARIANT_TITLE:
        return None
    return title


def download_image(url, timeout=None) -> bytes:
    try:
        response = requests.get(url, timeout=timeout or settings.SHOPIFY_TIMEOUT_SECONDS)
        response.raise_for_status()
    except requests.exceptions.Timeout as e:
        raise ExternalLookupError(ExternalLookupError.TIMEOUT, f'Image download timed out: {url}') from e
    except requests.exceptions.RequestException as e:
        raise ExternalLookupError(ExternalLookupError.UNAVAILABLE, f'Image download failed: {e}') from e
    return response.content


def _to_decimal(value):
    try:
        return Decimal(str(value)) if value not in (None, '') else None
    except InvalidOperation:
        return None


def _import_line(item, user):
    """Order one line item. Returns the order result and the image URL it stored, if any."""
    image_bytes = download_image(item['image_url'])
    image_hash = compute_image_hash(image_bytes)
    size = size_key_for(item.get('variant_title'))
    quantity = int(item.get('quantity') or 0)
    # Known photos already have a stored image
    image_url = '' if find_by_hash(image_hash) else save_bytes(image_bytes, 'products')
    try:
        result = create_or_merge_order(
            image_hash,
            {size or SIZE_TOTAL_KEY: quantity},
            has_sizes=size is not None,
            description=item.get('title') or None,
            price=_to_decimal(item.get('price')),
            image_url=image_url,
            user=user,
        )
    except MarketLensError:
        discard(image_url)
        raise
    return result, image_url


def import_order(order_name, user=None):
    """
    Turn a storefront order into daily logs and a linked purchase order.

    Lines without an image (or whose image cannot be fetched or decoded)
    are skipped and noted on the scanned order. Everything is written in one
    transaction, so a failure leaves no scanned order, log or purchase order
    behind. Returns ``(scanned_order, purchase_order, skipped_titles)``.
    """
    order = find_order_across_stores(order_name)
    stored_images = []

    try:
        with atomic_batch():
            scanned = ScannedOrder.objects.create(
                order_name=order['order_name'],
                shop_name=order.get('shop_name', ''),
                shopify_domain=order.get('shopify_domain', ''),
                line_items=order['line_items'],
                total_price=_to_decimal(order.get('total_price')) or Decimal('0.00'),
                customer_name=order.get('customer') or '',
                customer_email=order.get('customer_email') or '',
                created_by=user if getattr(user, 'pk', None) else None,
            )

            log_ids = []
            skipped = []
            for item in order['line_items']:
                if not item.get('image_url') or int(item.get('quantity') or 0) <= 0:
                    skipped.append(item.get('title') or str(item.get('id')))
                    continue
                try:
                    result, image_url = _import_line(item, user)
                except MarketLensError as e:
                    logger.warning(f"Skipping line {item.get('title')} of {scanned.order_name}: {e.message}")
                    skipped.append(item.get('title') or str(item.get('id')))
                    continue
                if image_url:
                    stored_images.append(image_url)
                if result.log.id not in log_ids:
                    log_ids.append(result.log.id)

            if not log_ids:
                raise ValidationError(f'No line item of order {order_name} could be imported')

            po = create_purchase_order(
                log_ids,
                notes=f'Imported from {scanned.shop_name} order {scanned.order_name}',
                linked_order=scanned,
                user=user,
            )

            if skipped:
                scanned.status = SCANNED_STATUS_PARTIAL
                scanned.notes = 'Skipped: ' + ', '.join(skipped)
            else:
                scanned.status = SCANNED_STATUS_IMPORTED
            scanned.save(update_fields=['status', 'notes'])
    except MarketLensError:
        for url in stored_images:
            discard(url)
        raise

    logger.info(f"Imported order {scanned.order_name}: {len(log_ids)} log(s), {len(skipped)} skipped, {po.po_number}")
    return scanned, po, skipped
