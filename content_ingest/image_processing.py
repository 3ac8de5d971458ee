import io
import struct
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Any

from PIL import Image, UnidentifiedImageError

from content_ingest.common import MAX_IMAGE_DIMENSION, MAX_INPUT_PIXELS
from content_ingest.errors import CorruptInputError, ProcessingError
from content_ingest.file_types import SniffedFormat

logger = logging.getLogger(__name__)

# Pillow refuses to open anything above twice this, so raise it to our own
# limit and enforce that limit explicitly in ImageNormalizer
Image.MAX_IMAGE_PIXELS = MAX_INPUT_PIXELS

# Pillow format names for each sniffed extension we can re-encode
PILLOW_FORMATS = {
    'jpg': 'JPEG',
    'png': 'PNG',
    'gif': 'GIF',
    'webp': 'WEBP',
    'tif': 'TIFF',
    'bmp': 'BMP',
    'ico': 'ICO',
}

JPEG_OPTIONS = {'quality': 85, 'progressive': True}
PNG_OPTIONS = {'compress_level': 9}


class DecodeFailure(Enum):
    CORRUPT_INPUT = 'corrupt_input'
    UNSUPPORTED_FORMAT = 'unsupported_format'
    TOO_LARGE = 'too_large'
    OTHER = 'other'


# Pillow raises plain OSError/SyntaxError/ValueError, so the message text is
# the only signal for malformed data
CORRUPT_MESSAGES = (
    'invalid sos parameters',
    'premature end',
    'truncated',
    'broken',
    'corrupt',
    'unexpected end',
    'unrecognized data stream',
    'decoding error',
    'buffer overrun',
    'could not create decoder',
    'failed to read next frame',
)
UNSUPPORTED_MESSAGES = (
    'cannot identify image file',
    'unsupported image format',
)


def classify_failure(error: Exception) -> DecodeFailure:
    """Map an exception raised by Pillow onto a DecodeFailure"""
    if isinstance(error, UnidentifiedImageError):
        return DecodeFailure.UNSUPPORTED_FORMAT
    if isinstance(error, Image.DecompressionBombError):
        return DecodeFailure.TOO_LARGE
    if isinstance(error, struct.error):
        # short reads inside chunk or marker headers
        return DecodeFailure.CORRUPT_INPUT

    message = str(error).lower()
    if any(fragment in message for fragment in UNSUPPORTED_MESSAGES):
        return DecodeFailure.UNSUPPORTED_FORMAT
    if any(fragment in message for fragment in CORRUPT_MESSAGES):
        return DecodeFailure.CORRUPT_INPUT
    return DecodeFailure.OTHER


class ImageDecodeError(Exception):
    """Structured failure from the decode/encode step"""

    def __init__(self, failure: DecodeFailure, cause: Exception):
        self.failure = failure
        self.cause = cause
        super().__init__(f"{failure.value}: {cause}")


@dataclass(frozen=True)
class NormalizedImage:
    data: bytes
    width: int
    height: int


class ImageNormalizer:
    """Bounded resize and format-preserving re-encode"""

    def __init__(self, max_dimension: int = MAX_IMAGE_DIMENSION):
        self.max_dimension = max_dimension

    @staticmethod
    def save_options(image_format: str, info: Dict[str, Any]) -> Dict[str, Any]:
        options = {}
        if image_format == 'JPEG':
            options.update(JPEG_OPTIONS)
        elif image_format == 'PNG':
            options.update(PNG_OPTIONS)

        # Keep orientation and colour profile
        if info.get('exif'):
            options['exif'] = info['exif']
        if info.get('icc_profile'):
            options['icc_profile'] = info['icc_profile']
        return options

    def _transform(self, image_bytes: bytes, sniffed: SniffedFormat) -> NormalizedImage:
        try:
            image = Image.open(io.BytesIO(image_bytes))
            width, height = image.size
            if width * height > MAX_INPUT_PIXELS:
                raise Image.DecompressionBombError(
                    f"Image size ({width * height} pixels) exceeds limit of {MAX_INPUT_PIXELS} pixels"
                )
            image_format = PILLOW_FORMATS.get(sniffed.extension, image.format)

            # thumbnail() loads the pixels itself, letting JPEG decode at a reduced scale
            image.thumbnail((self.max_dimension, self.max_dimension), Image.LANCZOS)
            info = dict(image.info)

            output = io.BytesIO()
            image.save(output, format=image_format, **self.save_options(image_format, info))
        except (OSError, SyntaxError, ValueError, KeyError, struct.error,
                Image.DecompressionBombError) as e:
            raise ImageDecodeError(classify_failure(e), e) from e

        width, height = image.size
        return NormalizedImage(data=output.getvalue(), width=width, height=height)

    def normalize(self, image_bytes: bytes, sniffed: SniffedFormat) -> NormalizedImage:
        try:
            normalized = self._transform(image_bytes, sniffed)
        except ImageDecodeError as e:
            logger.warning("Image processing failed (%s): %s", e.failure.value, e.cause)
            if e.failure is DecodeFailure.UNSUPPORTED_FORMAT:
                raise CorruptInputError('Processing error: unsupported image format')
            if e.failure is DecodeFailure.CORRUPT_INPUT:
                raise CorruptInputError('Processing error: corrupt image data')
            if e.failure is DecodeFailure.TOO_LARGE:
                raise CorruptInputError('Processing error: image dimensions exceed limit')
            raise ProcessingError(f'Processing error: {e.cause}')

        logger.debug("Normalized image to %dx%d", normalized.width, normalized.height)
        return normalized
