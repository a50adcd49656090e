"""
Turn raw attachment bytes into a normalized set of display images.

Nothing here touches the database or object storage: callers hand in bytes
and a media kind and get back encoded JPEG pages.

- image: one page, bounded to IMPORT_IMAGE_MAX_DIMENSION on the long edge
  (never upscaled), plus a center-cropped square thumbnail.
- document: one page per PDF page rendered at IMPORT_PDF_DPI, same bounds,
  thumbnail on the first page only.
"""
from dataclasses import dataclass
from io import BytesIO

import fitz
from django.conf import settings
from PIL import Image, ImageOps, UnidentifiedImageError

from .exceptions import ConversionFailure
from .units import DOCUMENT, IMAGE


@dataclass
class RenderedPage:
    page_number: int
    data: bytes
    width: int
    height: int
    thumbnail: bytes | None = None


def _to_rgb(img: Image.Image) -> Image.Image:
    """Flatten transparency onto white; JPEG has no alpha channel."""
    if img.mode in ("RGBA", "LA") or (img.mode == "P" and "transparency" in img.info):
        rgba = img.convert("RGBA")
        background = Image.new("RGB", rgba.size, (255, 255, 255))
        background.paste(rgba, mask=rgba.getchannel("A"))
        return background
    return img.convert("RGB")


def _encode_jpeg(img: Image.Image, quality: int, progressive: bool = False) -> bytes:
    buf = BytesIO()
    img.save(buf, format="JPEG", quality=quality, optimize=True, progressive=progressive)
    return buf.getvalue()


def resize_within(img: Image.Image, max_dimension: int) -> Image.Image:
    bounded = img.copy()
    # thumbnail() keeps the aspect ratio and never enlarges.
    bounded.thumbnail((max_dimension, max_dimension), Image.Resampling.LANCZOS)
    return bounded


def make_thumbnail(img: Image.Image, size: int, quality: int) -> bytes:
    cropped = ImageOps.fit(img, (size, size), Image.Resampling.LANCZOS, centering=(0.5, 0.5))
    return _encode_jpeg(cropped, quality)


def render_page(img: Image.Image, page_number: int, *, with_thumbnail: bool, options: dict) -> RenderedPage:
    rgb = _to_rgb(img)
    bounded = resize_within(rgb, options["max_dimension"])
    thumbnail = None
    if with_thumbnail:
        thumbnail = make_thumbnail(rgb, options["thumbnail_size"], options["thumbnail_quality"])
    return RenderedPage(
        page_number=page_number,
        data=_encode_jpeg(bounded, options["quality"], progressive=True),
        width=bounded.width,
        height=bounded.height,
        thumbnail=thumbnail,
    )


def conversion_options(**overrides) -> dict:
    options = {
        "max_dimension": settings.IMPORT_IMAGE_MAX_DIMENSION,
        "thumbnail_size": settings.IMPORT_THUMBNAIL_SIZE,
        "quality": settings.IMPORT_IMAGE_QUALITY,
        "thumbnail_quality": settings.IMPORT_THUMBNAIL_QUALITY,
        "dpi": settings.IMPORT_PDF_DPI,
    }
    options.update({k: v for k, v in overrides.items() if v is not None})
    return options


def convert_image(data: bytes, **overrides) -> list[RenderedPage]:
    options = conversion_options(**overrides)
    try:
        img = Image.open(BytesIO(data))
        img.load()
        img = ImageOps.exif_transpose(img)
        return [render_page(img, 1, with_thumbnail=True, options=options)]
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as exc:
        raise ConversionFailure(f"Could not decode image: {exc}") from exc


def convert_document(data: bytes, **overrides) -> list[RenderedPage]:
    options = conversion_options(**overrides)
    try:
        doc = fitz.open(stream=data, filetype="pdf")
    except (fitz.FileDataError, RuntimeError, ValueError) as exc:
        raise ConversionFailure(f"Could not open document: {exc}") from exc

    pages = []
    try:
        if doc.page_count == 0:
            raise ConversionFailure("Document has no pages")
        for index, page in enumerate(doc):
            try:
                pix = page.get_pixmap(dpi=options["dpi"], alpha=False)
                img = Image.frombytes("RGB", (pix.width, pix.height), pix.samples)
            except (RuntimeError, ValueError) as exc:
                raise ConversionFailure(f"Could not render page {index + 1}: {exc}") from exc
            page_number = index + 1
            pages.append(render_page(img, page_number, with_thumbnail=page_number == 1, options=options))
    finally:
        doc.close()
    return pages


def convert_attachment(data: bytes, kind: str, **overrides) -> list[RenderedPage]:
    if kind == IMAGE:
        return convert_image(data, **overrides)
    if kind == DOCUMENT:
        return convert_document(data, **overrides)
    raise ConversionFailure(f"Unsupported attachment kind: {kind}")
