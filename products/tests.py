from io import BytesIO
from decimal import Decimal

from PIL import Image
from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import TestCase
from django.urls import reverse
from rest_framework.test import APITestCase
from rest_framework import status

from accounts.models import User
from marketlens_api.exceptions import ValidationError
from suppliers.models import Supplier
from .imaging import compute_image_hash, hash_upload
from .models import Product, ProductSupplierAssignment
from . import services


def make_image_bytes(size=(16, 16), color=(0, 0, 0), mode='RGB', split=False, fmt='PNG'):
    img = Image.new(mode, size, color)
    if split:
        # Left half black, right half white
        for x in range(size[0] // 2):
            for y in range(size[1]):
                img.putpixel((x, y), (0, 0, 0) if mode == 'RGB' else (0, 0, 0, 255))
        for x in range(size[0] // 2, size[0]):
            for y in range(size[1]):
                img.putpixel((x, y), (255, 255, 255) if mode == 'RGB' else (255, 255, 255, 255))
    buffer = BytesIO()
    img.save(buffer, format=fmt)
    return buffer.getvalue()


class ImageHashTest(TestCase):
    """Test the perceptual block hash"""

    def test_hash_is_64_hex_chars(self):
        image_hash = compute_image_hash(make_image_bytes(size=(120, 80)))
        self.assertEqual(len(image_hash), 64)
        int(image_hash, 16)

    def test_uniform_image_is_all_ones(self):
        self.assertEqual(compute_image_hash(make_image_bytes()), 'f' * 64)

    def test_half_dark_image(self):
        self.assertEqual(compute_image_hash(make_image_bytes(split=True)), '00ff' * 16)

    def test_deterministic(self):
        data = make_image_bytes(split=True, fmt='JPEG')
        self.assertEqual(compute_image_hash(data), compute_image_hash(data))

    def test_rgba_is_flattened(self):
        data = make_image_bytes(mode='RGBA', color=(0, 0, 0, 255), split=True)
        self.assertEqual(compute_image_hash(data), '00ff' * 16)

    def test_undecodable_bytes(self):
        with self.assertRaises(ValidationError):
            compute_image_hash(b'not an image at all')

    def test_empty_bytes(self):
        with self.assertRaises(ValidationError):
            compute_image_hash(b'')

    def test_hash_upload_rewinds(self):
        upload = SimpleUploadedFile('photo.png', make_image_bytes(split=True), content_type='image/png')
        self.assertEqual(hash_upload(upload), '00ff' * 16)
        self.assertEqual(upload.read()[:4], b'\x89PNG')


class ProductServiceTest(TestCase):
    """Test product resolution and memory"""

    def setUp(self):
        self.supplier = Supplier.objects.create(name='Ravi Traders')
        self.other = Supplier.objects.create(name='Meena Flowers')

    def test_resolve_creates_with_defaults(self):
        product = services.resolve_product('a' * 64)
        self.assertEqual(product.description, 'Item')
        self.assertIsNone(product.last_price)

    def test_resolve_reuses_exact_hash(self):
        first = services.resolve_product('a' * 64, description='Roses', price=Decimal('10.00'))
        second = services.resolve_product('a' * 64, description='Ignored', price=Decimal('12.00'),
                                          supplier=self.supplier)

        self.assertEqual(first.id, second.id)
        self.assertEqual(Product.objects.count(), 1)
        second.refresh_from_db()
        self.assertEqual(second.description, 'Roses')
        self.assertEqual(second.last_price, Decimal('12.00'))
        self.assertEqual(second.last_supplier, self.supplier)

    def test_similar_hash_is_a_different_product(self):
        services.resolve_product('a' * 64)
        services.resolve_product('a' * 63 + 'b')
        self.assertEqual(Product.objects.count(), 2)

    def test_assignment_counts_and_suggestion(self):
        product = services.resolve_product('a' * 64)
        services.record_assignment(product, self.supplier)
        services.record_assignment(product, self.supplier)
        services.record_assignment(product, self.other)

        assignment = ProductSupplierAssignment.objects.get(product=product, supplier=self.supplier)
        self.assertEqual(assignment.assignment_count, 2)
        self.assertEqual(services.most_frequent_supplier(product).supplier, self.supplier)

    def test_no_suggestion_without_history(self):
        product = services.resolve_product('a' * 64)
        self.assertIsNone(services.most_frequent_supplier(product))


class ProductAPITest(APITestCase):
    """Test product API endpoints"""

    def setUp(self):
        self.user = User.objects.create_user(email='wh@example.com', password='x', role='warehouse')
        self.client.force_authenticate(user=self.user)
        self.product = Product.objects.create(image_hash='00ff' * 16, description='Roses', category='Flowers')

    def test_list_and_search(self):
        Product.objects.create(image_hash='f' * 64, description='Lilies')
        response = self.client.get(reverse('product-list'), {'search': 'rose'})

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(len(response.data['results']), 1)
        self.assertEqual(response.data['results'][0]['description'], 'Roses')

    def test_products_cannot_be_created_directly(self):
        response = self.client.post(reverse('product-list'), {'image_hash': 'b' * 64}, format='json')
        self.assertEqual(response.status_code, status.HTTP_405_METHOD_NOT_ALLOWED)

    def test_patch_description(self):
        response = self.client.patch(
            reverse('product-detail', args=[self.product.id]), {'description': 'Red Roses'}, format='json'
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['description'], 'Red Roses')
        self.assertEqual(response.data['image_hash'], '00ff' * 16)

    def test_hash_image_finds_match(self):
        upload = SimpleUploadedFile('photo.png', make_image_bytes(split=True), content_type='image/png')
        response = self.client.post(reverse('product-hash-image'), {'image': upload}, format='multipart')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['image_hash'], '00ff' * 16)
        self.assertEqual(response.data['product']['id'], str(self.product.id))

    def test_hash_image_without_match(self):
        upload = SimpleUploadedFile('photo.png', make_image_bytes(), content_type='image/png')
        response = self.client.post(reverse('product-hash-image'), {'image': upload}, format='multipart')

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIsNone(response.data['product'])

    def test_hash_image_requires_image(self):
        response = self.client.post(reverse('product-hash-image'), {}, format='multipart')
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_supplier_suggestion(self):
        supplier = Supplier.objects.create(name='Ravi Traders')
        services.record_assignment(self.product, supplier)

        response = self.client.get(reverse('product-supplier-suggestion', args=[self.product.id]))

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data['suggestion']['supplier_name'], 'Ravi Traders')
        self.assertEqual(response.data['suggestion']['assignment_count'], 1)
