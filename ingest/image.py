"""Barcode image ingestion.

Decoding needs the zbar shared library, so pyzbar is only imported when an
image is actually decoded; text and spreadsheet ingestion keep working on
hosts without it.
"""

from io import BytesIO
from typing import List

from PIL import Image, ImageOps

from core.errors import MeatDeskError
from core.models.traceability import TraceabilityRecord
from core.observability.logging import get_logger
from label_parser.parser import LabelParseResult
from ingest.text_input import parse_typed_input


logger = get_logger(__name__)


class BarcodeDecodeError(MeatDeskError):
    """The image could not be opened or the decoder is unavailable."""
    pass


def decode_barcodes(blob: bytes) -> List[str]:
    """Decode every barcode in an image, in the order zbar reports them.

    A grayscale pass is tried first and an inverted pass second, for labels
    printed light-on-dark.

    Raises:
        BarcodeDecodeError: If the image is unreadable or pyzbar is missing
    """
    try:
        from pyzbar import pyzbar
    except ImportError as e:
        raise BarcodeDecodeError(
            "Barcode decoding requires pyzbar and the zbar library: pip install pyzbar"
        ) from e

    try:
        image = Image.open(BytesIO(blob))
        image.load()
    except (OSError, ValueError) as e:
        raise BarcodeDecodeError(f"Unreadable image: {e}") from e

    gray = ImageOps.grayscale(image)
    decoded = pyzbar.decode(gray)
    if not decoded:
        decoded = pyzbar.decode(ImageOps.invert(gray))

    values = []
    for symbol in decoded:
        try:
            values.append(symbol.data.decode("utf-8"))
        except UnicodeDecodeError:
            logger.warning(f"Skipping non-UTF-8 {symbol.type} barcode")
    return values


def parse_image(blob: bytes) -> LabelParseResult:
    """Parse the barcodes found in an image as one block of typed input.

    A label-format barcode keeps its excluded label numbers in the result.
    """
    values = decode_barcodes(blob)
    logger.info(f"Decoded {len(values)} barcode(s) from image")
    return parse_typed_input("\n".join(values))


def records_from_image(blob: bytes) -> List[TraceabilityRecord]:
    """Records from the barcodes found in an image."""
    return parse_image(blob).records
