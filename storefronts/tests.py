import tempfile
from unittest.mock import Mock, patch

import requests
from django.conf import settings
from django.core.files.storage import default_storage
from django.test import TestCase, override_settings
from django.urls import reverse
from rest_framework.test import APITestCase
from rest_framework import status

from accounts.models import User
from marketlens_api.exceptions import ExternalLookupError, PersistenceError, ValidationError
from procurement.models import DailyLog, PurchaseOrder
from products.tests import make_image_bytes
from .client import ShopifyClient, clean_domain, validate_credentials
from .models import StoreConfig, ScannedOrder
from . import services

TOKEN = 'shpat_0123456789abcdef'


def fake_response(status_code=200, payload=None):
    response = Mock(status_code=status_code, text='')
    response.json.return_value = payload or {}
    return response


def client_with(*responses):
    session = Mock()
    session.get.side_effect = list(responses)
    return ShopifyClient('my-shop.myshopify.com', TOKEN, timeout=5, session=session), session


ORDER_PAYLOAD = {
    'orders': [{
        'id': 555,
        'name': '#1001',
        'email': 'asha@example.com',
        'total_price': '450.00',
        'customer': {'first_name': 'Asha', 'last_name': 'Rao'},
        'line_items': [
            {'id': 1, 'product_id': 10, 'variant_id': 11, 'title': 'Rose Bunch',
             'variant_title': 'Large', 'quantity': 2, 'price': '150.00', 'sku': 'RB-L'},
            {'id': 2, 'product_id': None, 'title': 'Gift Note', 'quantity': 1, 'price': '0.00'},
        ],
    }],
}

PRODUCT_PAYLOAD = {
    'product': {
        'image': {'src': 'https://cdn.example.com/main.jpg'},
        'images': [
            {'src': 'https://cdn.example.com/other.jpg', 'variant_ids': [99]},
            {'src': 'https://cdn.example.com/large.jpg', 'variant_ids': [11]},
        ],
    },
}


class CredentialValidationTest(TestCase):

    def test_clean_domain(self):
        self.assertEqual(clean_domain(' my-shop.myshopify.com '), 'my-shop')
        self.assertEqual(clean_domain('my-shop'), 'my-shop')

    def test_token_prefix_required(self):
        with self.assertRaises(ExternalLookupError) as context:
            validate_credentials('my-shop', 'abc123')
        self.assertEqual(context.exception.reason, ExternalLookupError.INVALID_CONFIG)

    def test_domain_format(self):
        for domain in ['-shop', 'my_shop', 'shop!', 'a']:
            with self.assertRaises(ExternalLookupError):
                validate_credentials(domain, TOKEN)

    def test_all_token_kinds_accepted(self):
        for prefix in ['shpat_', 'shpca_', 'shpss_', 'shpua_', 'shppa_']:
            validate_credentials('my-shop', prefix + 'x')


class ShopifyClientTest(TestCase):
    """Test the Shopify client against a fake session"""

    def test_verify(self):
        client, session = client_with(fake_response(200, {
            'shop': {'name': 'Petal Co', 'domain': 'petal.example.com', 'email': 'hi@petal.example.com'}
        }))

        shop = client.verify()

        self.assertEqual(shop['shop_name'], 'Petal Co')
        url = session.get.call_args[0][0]
        self.assertEqual(
            url, f'https://my-shop.myshopify.com/admin/api/{settings.SHOPIFY_API_VERSION}/shop.json'
        )
        self.assertEqual(session.get.call_args[1]['headers']['X-Shopify-Access-Token'], TOKEN)
        self.assertEqual(session.get.call_args[1]['timeout'], 5)

    def test_error_statuses(self):
        cases = {
            401: ExternalLookupError.AUTH_INVALID,
            403: ExternalLookupError.AUTH_INVALID,
            404: ExternalLookupError.NOT_FOUND,
            429: ExternalLookupError.RATE_LIMITED,
            500: ExternalLookupError.UNAVAILABLE,
        }
        for status_code, reason in cases.items():
            client, _ = client_with(fake_response(status_code))
            with self.assertRaises(ExternalLookupError) as context:
                client.verify()
            self.assertEqual(context.exception.reason, reason, status_code)

    def test_timeout(self):
        client, _ = client_with(requests.exceptions.Timeout('slow'))
        with self.assertRaises(ExternalLookupError) as context:
            client.verify()
        self.assertEqual(context.exception.reason, ExternalLookupError.TIMEOUT)
        self.assertEqual(context.exception.status_code, 504)

    def test_connection_error(self):
        client, _ = client_with(requests.exceptions.ConnectionError('refused'))
        with self.assertRaises(ExternalLookupError) as context:
            client.verify()
        self.assertEqual(context.exception.reason, ExternalLookupError.UNAVAILABLE)

    def test_find_order_with_variant_image(self):
        client, session = client_with(fake_response(200, ORDER_PAYLOAD), fake_response(200, PRODUCT_PAYLOAD))

        order = client.find_order('#1001')

        self.assertEqual(order['order_name'], '#1001')
        self.assertEqual(order['customer'], 'Asha Rao')
        self.assertEqual(order['line_items'][0]['image_url'], 'https://cdn.example.com/large.jpg')
        self.assertEqual(order['line_items'][0]['variant_title'], 'Large')
        self.assertIsNone(order['line_items'][1]['image_url'])
        self.assertEqual(session.get.call_args_list[0][1]['params'], {'name': '#1001', 'status': 'any'})
        self.assertEqual(session.get.call_count, 2)

    def test_find_order_falls_back_to_main_image(self):
        payload = {'product': {'image': {'src': 'https://cdn.example.com/main.jpg'}, 'images': []}}
        client, _ = client_with(fake_response(200, ORDER_PAYLOAD), fake_response(200, payload))

        order = client.find_order('#1001')
        self.assertEqual(order['line_items'][0]['image_url'], 'https://cdn.example.com/main.jpg')

    def test_find_order_survives_missing_product(self):
        client, _ = client_with(fake_response(200, ORDER_PAYLOAD), fake_response(404))

        order = client.find_order('#1001')
        self.assertIsNone(order['line_items'][0]['image_url'])

    def test_order_not_found(self):
        client, _ = client_with(fake_response(200, {'orders': []}))
        with self.assertRaises(ExternalLookupError) as context:
            client.find_order('#404')
        self.assertEqual(context.exception.reason, ExternalLookupError.NOT_FOUND)


class CrossStoreLookupTest(TestCase):

    def setUp(self):
        self.first = StoreConfig.objects.create(shop_name='Petal Co', shopify_domain='petal', access_token=TOKEN)
        self.second = StoreConfig.objects.create(shop_name='Leaf Co', shopify_domain='leaf', access_token=TOKEN)

    def test_no_stores_configured(self):
        StoreConfig.objects.all().delete()
        with self.assertRaises(ExternalLookupError) as context:
            services.find_order_across_stores('#1001')
        self.assertEqual(context.exception.reason, ExternalLookupError.INVALID_CONFIG)

    def test_blank_order_name(self):
        with self.assertRaises(ValidationError):
            services.find_order_across_stores('  ')

    def test_first_hit_wins(self):
        def lookup(store, order_name):
            if store.shopify_domain == 'leaf':
                return {'order_name': order_name, 'shop_name': store.shop_name, 'line_items': []}
            raise ExternalLookupError(ExternalLookupError.NOT_FOUND)

        with patch('storefronts.services._lookup', side_effect=lookup):
            order = services.find_order_across_stores('#1001')

        self.assertEqual(order['shop_name'], 'Leaf Co')

    def test_not_found_anywhere(self):
        with patch('storefronts.services._lookup',
                   side_effect=ExternalLookupError(ExternalLookupError.NOT_FOUND)):
            with self.assertRaises(ExternalLookupError) as context:
                services.find_order_across_stores('#1001')
        self.assertEqual(context.exception.reason, ExternalLookupError.NOT_FOUND)

    def test_all_stores_failing_reports_the_failure(self):
        with patch('storefronts.services._lookup',
                   side_effect=ExternalLookupError(ExternalLookupError.AUTH_INVALID)):
            with self.assertRaises(ExternalLookupError) as context:
                services.find_order_across_stores('#1001')
        self.assertEqual(context.exception.reason, ExternalLookupError.AUTH_INVALID)

    def test_broken_store_is_not_hidden_behind_not_found(self):
        def lookup(store, order_name):
            if store.shopify_domain == 'leaf':
                raise ExternalLookupError(ExternalLookupError.AUTH_INVALID)
            raise ExternalLookupError(ExternalLookupError.NOT_FOUND)

        with patch('storefronts.services._lookup', side_effect=lookup):
            with self.assertRaises(ExternalLookupError) as context:
                services.find_order_across_stores('#1001')
        self.assertEqual(context.exception.reason, ExternalLookupError.AUTH_INVALID)


def found_order(line_items):
    return {
        'order_id': 555,
        'order_name': '#1001',
        'shop_name': 'Petal Co',
        'shopify_domain': 'petal',
        'customer': 'Asha Rao',
        'customer_email': 'asha@example.com',
        'total_price': '450.00',
        'line_items': line_items,
    }


@override_settings(MEDIA_ROOT=tempfile.mkdtemp())
class ImportOrderTest(TestCase):
    """Scanning an order into daily logs"""

    def setUp(self):
        self.user = User.objects.create_user(email='wh@example.com', password='x', role='warehouse')
        self.images = {
            'https://cdn.example.com/rose.jpg': make_image_bytes(split=True),
            'https://cdn.example.com/lily.jpg': make_image_bytes(),
        }

    def _import(self, line_items):
        with patch('storefronts.services.find_order_across_stores', return_value=found_order(line_items)), \
                patch('storefronts.services.download_image', side_effect=lambda url: self.images[url]):
            return services.import_order('#1001', user=self.user)

    def test_import_creates_logs_and_linked_purchase_order(self):
        scanned, po, skipped = self._import([
            {'id': 1, 'title': 'Rose Bunch', 'variant_title': 'Large', 'quantity': 2,
             'price': '150.00', 'image_url': 'https://cdn.example.com/rose.jpg'},
            {'id': 2, 'title': 'Lily Stem', 'variant_title': 'Default Title', 'quantity': 3,
             'price': '50.00', 'image_url': 'https://cdn.example.com/lily.jpg'},
            {'id': 3, 'title': 'Gift Note', 'variant_title': None, 'quantity': 1,
             'price': '0.00', 'image_url': None},
        ])

        self.assertEqual(skipped, ['Gift Note'])
        self.assertEqual(scanned.status, 'partial')
        self.assertEqual(po.linked_order, scanned)
        self.assertEqual(len(po.items), 2)

        rose = DailyLog.objects.get(product__description='Rose Bunch')
        self.assertTrue(rose.has_sizes)
        self.assertEqual(rose.ordered_qty, {'Large': 2})
        lily = DailyLog.objects.get(product__description='Lily Stem')
        self.assertFalse(lily.has_sizes)
        self.assertEqual(lily.ordered_qty, {'Total': 3})

    def test_lines_for_the_same_photo_share_a_log(self):
        scanned, po, skipped = self._import([
            {'id': 1, 'title': 'Rose Bunch', 'variant_title': 'Large', 'quantity': 2,
             'price': '150.00', 'image_url': 'https://cdn.example.com/rose.jpg'},
            {'id': 2, 'title': 'Rose Bunch', 'variant_title': 'Small', 'quantity': 1,
             'price': '90.00', 'image_url': 'https://cdn.example.com/rose.jpg'},
        ])

        self.assertEqual(scanned.status, 'imported')
        self.assertEqual(DailyLog.objects.count(), 1)
        self.assertEqual(DailyLog.objects.get().ordered_qty, {'Large': 2, 'Small': 1})
        self.assertEqual(len(po.items), 1)

    def test_known_photo_is_stored_once(self):
        rose = {'title': 'Rose Bunch', 'price': '150.00', 'image_url': 'https://cdn.example.com/rose.jpg'}
        with patch('storefronts.services.save_bytes', return_value='/media/products/rose.jpg') as save:
            self._import([
                dict(rose, id=1, variant_title='Large', quantity=2),
                dict(rose, id=2, variant_title='Small', quantity=1),
            ])

        self.assertEqual(save.call_count, 1)

    @override_settings(MEDIA_ROOT=tempfile.mkdtemp())
    def test_failed_import_leaves_nothing_behind(self):
        with patch('storefronts.services.create_purchase_order', side_effect=PersistenceError('disk full')):
            with self.assertRaises(PersistenceError):
                self._import([
                    {'id': 1, 'title': 'Lily Stem', 'quantity': 3,
                     'image_url': 'https://cdn.example.com/lily.jpg'},
                ])

        self.assertFalse(ScannedOrder.objects.exists())
        self.assertFalse(DailyLog.objects.exists())
        self.assertEqual(default_storage.listdir('products')[1], [])

    def test_nothing_importable(self):
        with self.assertRaises(ValidationError):
            self._import([{'id': 3, 'title': 'Gift Note', 'quantity': 1, 'image_url': None}])

        self.assertFalse(ScannedOrder.objects.exists())
        self.assertFalse(PurchaseOrder.objects.exists())

    def test_undecodable_image_is_skipped(self):
        self.images['https://cdn.example.com/broken.jpg'] = b'not an image'
        scanned, po, skipped = self._import([
            {'id': 1, 'title': 'Broken', 'quantity': 1, 'image_url': 'https://cdn.example.com/broken.jpg'},
            {'id': 2, 'title': 'Lily Stem', 'quantity': 1, 'image_url': 'https://cdn.example.com/lily.jpg'},
        ])

        self.assertEqual(skipped, ['Broken'])
        self.assertIn('Broken', scanned.notes)

    def test_size_key(self):
        self.assertIsNone(services.size_key_for('Default Title'))
        self.assertIsNone(services.size_key_for(None))
        self.assertEqual(services.size_key_for(' XL '), 'XL')


class StorefrontAPITest(APITestCase):
    """Test storefront endpoints"""

    def setUp(self):
        self.admin = User.objects.create_user(email='admin@example.com', password='x', role='admin')
        self.warehouse = User.objects.create_user(email='wh@example.com', password='x', role='warehouse')
        self.client.force_authenticate(user=self.admin)

    def test_create_store_cleans_domain_and_hides_token(self):
        response = self.client.post(reverse('storeconfig-list'), {
            'shop_name': 'Petal Co',
            'shopify_domain': 'petal-co.myshopify.com',
            'access_token': TOKEN,
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['shopify_domain'], 'petal-co')
        self.assertNotIn('access_token', response.data)
        self.assertTrue(response.data['token_preview'].startswith('shpat_'))

    def test_create_store_rejects_bad_token(self):
        response = self.client.post(reverse('storeconfig-list'), {
            'shop_name': 'Petal Co', 'shopify_domain': 'petal-co', 'access_token': 'secret',
        }, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['reason'], 'invalid_config')

    def test_duplicate_domain_rejected(self):
        StoreConfig.objects.create(shop_name='Petal Co', shopify_domain='petal-co', access_token=TOKEN)
        response = self.client.post(reverse('storeconfig-list'), {
            'shop_name': 'Again', 'shopify_domain': 'petal-co.myshopify.com', 'access_token': TOKEN,
        }, format='json')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_warehouse_cannot_manage_stores(self):
        self.client.force_authenticate(user=self.warehouse)
        response = self.client.get(reverse('storeconfig-list'))
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_verify_store(self):
        with patch('storefronts.services.ShopifyClient') as client_class:
            client_class.return_value.verify.return_value = {
                'shop_name': 'Petal Co', 'shop_domain': 'petal.example.com', 'shop_email': '',
            }
            response = self.client.post(reverse('verify_store'), {
                'shopify_domain': 'petal-co', 'access_token': TOKEN,
            }, format='json')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['shop_name'], 'Petal Co')

    def test_lookup_without_stores(self):
        response = self.client.post(reverse('lookup_order'), {'order_name': '#1001'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertEqual(response.data['reason'], 'invalid_config')

    def test_lookup_rate_limited(self):
        StoreConfig.objects.create(shop_name='Petal Co', shopify_domain='petal-co', access_token=TOKEN)
        with patch('storefronts.services._lookup',
                   side_effect=ExternalLookupError(ExternalLookupError.RATE_LIMITED)):
            response = self.client.post(reverse('lookup_order'), {'order_name': '#1001'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_429_TOO_MANY_REQUESTS)

    @override_settings(MEDIA_ROOT=tempfile.mkdtemp())
    def test_import_endpoint(self):
        order = found_order([{'id': 1, 'title': 'Lily Stem', 'variant_title': 'Default Title',
                              'quantity': 3, 'price': '50.00', 'image_url': 'https://cdn.example.com/lily.jpg'}])
        with patch('storefronts.services.find_order_across_stores', return_value=order), \
                patch('storefronts.services.download_image', return_value=make_image_bytes()):
            response = self.client.post(reverse('import_order'), {'order_name': '#1001'}, format='json')

        self.assertEqual(response.status_code, status.HTTP_201_CREATED)
        self.assertEqual(response.data['scanned_order']['order_name'], '#1001')
        self.assertEqual(
            str(response.data['purchase_order']['linked_order']), str(response.data['scanned_order']['id'])
        )
        self.assertEqual(response.data['skipped'], [])
