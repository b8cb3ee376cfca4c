from PIL import Image, UnidentifiedImageError
import base64
import io

from app.exceptions.scan import ThumbnailFailed


class ImageService:
    """Fixed thumbnail policy: longest side scaled to `max_size`, JPEG at `quality`."""

    def __init__(self, max_size: int = 150, quality: int = 70):
        self.max_size = max_size
        self.quality = quality

    def thumbnail_size(self, width: int, height: int) -> tuple[int, int]:
        if width >= height:
            return self.max_size, max(1, round(height * self.max_size / width))
        return max(1, round(width * self.max_size / height)), self.max_size

    def derive_thumbnail(self, image_bytes: bytes) -> bytes:
        try:
            image = Image.open(io.BytesIO(image_bytes))
            image.load()
        except (UnidentifiedImageError, OSError, ValueError, Image.DecompressionBombError) as e:
            raise ThumbnailFailed(f"Cannot decode image: {e}") from e

        if image.mode != 'RGB':
            image = image.convert('RGB')

        # No cropping or letterboxing, aspect ratio follows the source exactly
        resized = image.resize(self.thumbnail_size(*image.size), Image.Resampling.LANCZOS)

        output_buffer = io.BytesIO()
        resized.save(output_buffer, format="JPEG", quality=self.quality)
        return output_buffer.getvalue()

    def derive_thumbnail_b64(self, image_bytes: bytes) -> str:
        return base64.b64encode(self.derive_thumbnail(image_bytes)).decode("ascii")
