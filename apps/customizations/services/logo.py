"""
apps.customizations.services.logo
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~
Validation, storage and removal of organisation logos.

Accepted: SVG, PNG and JPEG up to ``LOGO_MAX_BYTES``.  The declared content
type must match the bytes: rasters are identified by Pillow, SVGs must parse
as an ``<svg>`` document and are stored sanitized (see ``svg.py``).  Raster
images must be at least ``LOGO_MIN_DIMENSION`` pixels on each side.  A PNG
without any transparent pixel is accepted with a warning.

Files are stored under ``{organization_id}/logo-{timestamp}.{ext}`` in the
default storage; the extension always follows the content type.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

import structlog
from django.conf import settings
from django.core.files.base import ContentFile
from django.core.files.storage import default_storage
from django.core.files.uploadedfile import UploadedFile
from django.utils import timezone
from PIL import Image, UnidentifiedImageError

from ..exceptions import LogoValidationError
from .svg import UnsafeSvgError, sanitize_svg

logger = structlog.get_logger(__name__)

SVG = "image/svg+xml"
PNG = "image/png"
JPEG = "image/jpeg"
ALLOWED_LOGO_FORMATS: tuple[str, ...] = (SVG, PNG, JPEG)

_EXTENSIONS = {SVG: "svg", PNG: "png", JPEG: "jpg"}
_FORMAT_NAMES = {SVG: "SVG", PNG: "PNG", JPEG: "JPEG"}
_PILLOW_FORMATS = {PNG: "PNG", JPEG: "JPEG"}


@dataclass(frozen=True)
class LogoValidationResult:
    valid: bool
    error: str | None = None
    warning: str | None = None
    width: int | None = None
    height: int | None = None
    sanitized: bytes | None = None


@dataclass(frozen=True)
class LogoMetadata:
    url: str
    path: str
    format: str
    file_size: int
    uploaded_at: datetime
    width: int | None = None
    height: int | None = None
    warning: str | None = None

    def as_customization_fields(self) -> dict:
        return {
            "logo_url": self.url,
            "logo_format": self.format,
            "logo_file_size": self.file_size,
            "logo_uploaded_at": self.uploaded_at.isoformat(),
        }


def format_file_size(size: int) -> str:
    if size < 1024:
        return f"{size} B"
    if size < 1024 * 1024:
        return f"{size / 1024:.1f} KB"
    return f"{size / (1024 * 1024):.1f} MB"


def get_format_display_name(content_type: str) -> str:
    return _FORMAT_NAMES.get(content_type, content_type)


def get_logo_recommendation() -> str:
    return (
        "For best results use an SVG, or a PNG with a transparent background, "
        f"at least {settings.LOGO_MIN_DIMENSION}x{settings.LOGO_MIN_DIMENSION} pixels "
        f"and no larger than {format_file_size(settings.LOGO_MAX_BYTES)}."
    )


def _has_transparency(image: Image.Image) -> bool:
    if image.mode in ("RGBA", "LA", "PA") or (image.mode == "P" and "transparency" in image.info):
        alpha = image.convert("RGBA").getchannel("A")
        return alpha.getextrema()[0] < 255
    return False


def validate_logo_upload(upload: UploadedFile) -> LogoValidationResult:
    content_type = (upload.content_type or "").lower()
    if content_type not in ALLOWED_LOGO_FORMATS:
        return LogoValidationResult(
            valid=False,
            error="Invalid file format. Please upload an SVG, PNG, or JPEG image.",
        )

    if upload.size > settings.LOGO_MAX_BYTES:
        return LogoValidationResult(
            valid=False,
            error=(
                f"File size ({format_file_size(upload.size)}) exceeds the "
                f"{format_file_size(settings.LOGO_MAX_BYTES)} limit."
            ),
        )

    if content_type == SVG:
        upload.seek(0)
        try:
            sanitized = sanitize_svg(upload.read())
        except UnsafeSvgError:
            return LogoValidationResult(valid=False, error="The file could not be read as an SVG image.")
        finally:
            upload.seek(0)
        return LogoValidationResult(valid=True, sanitized=sanitized)

    try:
        upload.seek(0)
        with Image.open(upload) as image:
            image.load()
            detected = image.format
            width, height = image.size
            transparent = _has_transparency(image)
    except (UnidentifiedImageError, OSError):
        return LogoValidationResult(valid=False, error="The file could not be read as an image.")
    finally:
        upload.seek(0)

    if detected != _PILLOW_FORMATS[content_type]:
        return LogoValidationResult(
            valid=False,
            error=f"The file is not a {get_format_display_name(content_type)} image.",
        )

    minimum = settings.LOGO_MIN_DIMENSION
    if width < minimum or height < minimum:
        return LogoValidationResult(
            valid=False,
            error=f"Image is {width}x{height}px; logos must be at least {minimum}x{minimum}px.",
            width=width,
            height=height,
        )

    warning = None
    if content_type == PNG and not transparent:
        warning = "This PNG has no transparent background. It may not look right on coloured surfaces."
    return LogoValidationResult(valid=True, warning=warning, width=width, height=height)


def upload_organization_logo(upload: UploadedFile, organization_id, *, now: datetime | None = None) -> LogoMetadata:
    """
    Validate and store *upload*.

    Raises:
        LogoValidationError: If the upload is not an acceptable logo.
    """
    result = validate_logo_upload(upload)
    if not result.valid:
        raise LogoValidationError(result.error)

    content_type = upload.content_type.lower()
    now = now or timezone.now()
    path = f"{organization_id}/logo-{int(now.timestamp() * 1000)}.{_EXTENSIONS[content_type]}"

    content = ContentFile(result.sanitized) if result.sanitized is not None else upload
    stored = default_storage.save(path, content)
    metadata = LogoMetadata(
        url=default_storage.url(stored),
        path=stored,
        format=content_type,
        file_size=content.size,
        uploaded_at=now,
        width=result.width,
        height=result.height,
        warning=result.warning,
    )
    logger.info(
        "logo_uploaded",
        organization_id=str(organization_id),
        path=stored,
        format=content_type,
        file_size=metadata.file_size,
    )
    return metadata


def _storage_path(logo_url: str) -> str | None:
    media_url = settings.MEDIA_URL or ""
    if media_url and media_url in logo_url:
        return logo_url.split(media_url, 1)[1].lstrip("/") or None
    if "://" in logo_url:
        return None
    return logo_url.lstrip("/") or None


def delete_organization_logo(logo_url: str) -> bool:
    """Remove a stored logo by URL or storage path.  Returns whether a file was deleted."""
    path = _storage_path(logo_url or "")
    if path is None:
        logger.warning("logo_delete_unrecognised_url", logo_url=logo_url)
        return False
    if not default_storage.exists(path):
        return False
    default_storage.delete(path)
    logger.info("logo_deleted", path=path)
    return True
