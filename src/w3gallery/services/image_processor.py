"""Photo validation for w3gallery uploads."""

import io
import os
import time
from pathlib import Path

from PIL import Image, UnidentifiedImageError

from w3gallery.ui.handlers.error import ValidationError
from ..logging_config import get_logger, log_performance
from ..models.post import PhotoUpload

logger = get_logger(__name__)

# Pillow format name -> stored extension
FORMAT_EXTENSIONS = {
    "JPEG": "jpg",
    "PNG": "png",
    "GIF": "gif",
    "WEBP": "webp",
    "BMP": "bmp",
    "TIFF": "tiff",
    "HEIF": "heic",
}


class ImageProcessor:
    """Checks photo bytes and decides the extension they are stored under."""

    def __init__(self) -> None:
        self.MAX_FILE_SIZE = int(os.getenv("MAX_FILE_SIZE", 50 * 1024 * 1024))  # Default: 50MB
        self.MIN_FILE_SIZE = int(os.getenv("MIN_FILE_SIZE", 1))

    def validate_file_size(self, image_data: bytes, filename: str) -> None:
        """
        Validate that the file size is within acceptable limits.

        Raises:
            ValidationError: If file size is outside acceptable limits
        """
        file_size = len(image_data)

        if file_size < self.MIN_FILE_SIZE:
            logger.warning("file_size_too_small", filename=filename, file_size=file_size, min_size=self.MIN_FILE_SIZE)
            raise ValidationError(
                f"File '{filename}' is too small ({file_size} bytes). Minimum size: {self.MIN_FILE_SIZE} bytes",
                code="file_too_small",
                details={"filename": filename, "file_size": file_size, "min_size": self.MIN_FILE_SIZE},
            )

        if file_size > self.MAX_FILE_SIZE:
            max_size_mb = self.MAX_FILE_SIZE / (1024 * 1024)
            logger.warning("file_size_too_large", filename=filename, file_size=file_size, max_size=self.MAX_FILE_SIZE)
            raise ValidationError(
                f"File '{filename}' is too large. Maximum size: {max_size_mb:.0f}MB",
                code="file_too_large",
                details={"filename": filename, "file_size": file_size, "max_size": self.MAX_FILE_SIZE},
            )

    def detect_format(self, image_data: bytes, filename: str = "") -> str:
        """
        Identify the image format with Pillow.

        Raises:
            ValidationError: If the bytes are not a readable image
        """
        try:
            with Image.open(io.BytesIO(image_data)) as image:
                image.verify()
                return str(image.format or "")
        except (UnidentifiedImageError, OSError, SyntaxError) as e:
            raise ValidationError(
                f"File '{filename or 'upload'}' is not a readable image: {e}",
                code="invalid_image",
                user_message="The selected file is not a readable image.",
                details={"filename": filename, "file_size": len(image_data)},
                original_exception=e,
            ) from e

    def resolve_extension(self, photo: PhotoUpload) -> str:
        """
        Extension the photo is stored under.

        The filename's extension wins, as in ``photo.<ext>``; files without one
        fall back to the detected format.
        """
        suffix = Path(photo.filename).suffix.lower().lstrip(".")
        if suffix:
            return suffix

        detected = self.detect_format(photo.data, photo.filename)
        return FORMAT_EXTENSIONS.get(detected.upper(), detected.lower() or "bin")

    def validate_photo(self, photo: PhotoUpload) -> str:
        """
        Validate an upload and return its extension.

        Raises:
            ValidationError: If the photo is empty, too large or unreadable
        """
        start_time = time.perf_counter()
        filename = photo.filename or "upload"

        self.validate_file_size(photo.data, filename)
        detected = self.detect_format(photo.data, filename)
        extension = self.resolve_extension(photo)

        log_performance(
            "validate_photo",
            time.perf_counter() - start_time,
            filename=filename,
            file_size=len(photo.data),
            format=detected,
        )
        return extension


image_processor = ImageProcessor()


def get_image_processor() -> ImageProcessor:
    """Get the global image processor instance."""
    return image_processor
