"""
Perceptual block hash used as the product photo fingerprint.

The photo is reduced to a 16x16 grayscale grid and each cell becomes one bit
(1 when at or above the mean brightness). The 256 bits are packed four to a
hex digit, so every hash is 64 characters regardless of the input size.
Products are matched on exact hash equality.
"""

from io import BytesIO

from PIL import Image, UnidentifiedImageError

from marketlens_api.exceptions import ValidationError

HASH_SIZE = 16
HASH_LENGTH = HASH_SIZE * HASH_SIZE // 4


def _open_rgb(image_bytes):
    try:
        img = Image.open(BytesIO(image_bytes))
        img.load()
    except (UnidentifiedImageError, OSError, ValueError) as e:
        raise ValidationError(f'Could not decode image: {e}') from e

    if img.mode == "RGBA":
        rgb_img = Image.new("RGB", img.size, (255, 255, 255))
        rgb_img.paste(img, mask=img.split()[3])
        return rgb_img
    if img.mode != "RGB":
        return img.convert("RGB")
    return img


def compute_image_hash(image_bytes):
    if not image_bytes:
        raise ValidationError('Image is empty')

    img = _open_rgb(image_bytes).resize((HASH_SIZE, HASH_SIZE), Image.Resampling.BILINEAR)

    grays = [r * 0.299 + g * 0.587 + b * 0.114 for r, g, b in img.getdata()]
    mean = sum(grays) / len(grays)
    bits = ''.join('1' if gray >= mean else '0' for gray in grays)

    return ''.join(format(int(bits[i:i + 4], 2), 'x') for i in range(0, len(bits), 4))


def hash_upload(upload):
    """Hash a Django ``UploadedFile``."""
    if hasattr(upload, 'seek'):
        upload.seek(0)
    data = upload.read()
    if hasattr(upload, 'seek'):
        upload.seek(0)
    return compute_image_hash(data)
