from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence

from PIL import ExifTags, Image, JpegImagePlugin, TiffImagePlugin, UnidentifiedImageError
import piexif

from exif_harvest.services.errors import MetadataParseFailure


logger = logging.getLogger(__name__)

TARGET_FORMAT = "JPEG"

# conventional short names for a few Exif IFD tags
FIELD_ALIASES = {
	"ISOSpeedRatings": "ISO",
	"ExposureBiasValue": "ExposureCompensation",
	"PixelXDimension": "ExifImageWidth",
	"PixelYDimension": "ExifImageHeight",
	"DateTimeDigitized": "CreateDate",
}

# opaque vendor blobs, not meaningful as text
SKIPPED_FIELDS = {"MakerNote"}


def identify_format(path: Path) -> str:
	"""Report the codec Pillow detects from the file bytes, or "" when unknown."""
	try:
		with Image.open(path) as img:
			# multi-picture files (MPO) are JPEG streams too
			if isinstance(img, JpegImagePlugin.JpegImageFile):
				return TARGET_FORMAT
			return img.format or ""
	except (UnidentifiedImageError, OSError) as e:
		logger.error("identify failed for %s: %s", path, e)
		return ""


def is_jpeg(image_format: Optional[str]) -> bool:
	return bool(image_format) and TARGET_FORMAT in image_format.upper()


def _number_to_str(x: float) -> str:
	return str(int(x)) if x.is_integer() else repr(x)


def _rational_to_str(x: TiffImagePlugin.IFDRational) -> str:
	if not x.denominator:
		return f"{x.numerator}/{x.denominator}"
	return _number_to_str(float(x))


def _bytes_to_str(v: bytes) -> str:
	return v.decode("utf-8", errors="ignore").strip("\x00").strip()


def _value_to_str(value: Any) -> str:
	if isinstance(value, bytes):
		return _bytes_to_str(value)
	if isinstance(value, str):
		return value.strip("\x00").strip()
	if isinstance(value, TiffImagePlugin.IFDRational):
		return _rational_to_str(value)
	if isinstance(value, tuple):
		return ",".join(_value_to_str(v) for v in value)
	return str(value)


def _field_name(tag_id: int) -> str:
	info = piexif.TAGS["Exif"].get(tag_id)
	if info:
		return info["name"]
	return ExifTags.TAGS.get(tag_id, str(tag_id))


def extract_exif(path: Path) -> Dict[str, str]:
	"""
	Parse the Exif IFD of a JPEG into a flat ``{field name: text}`` map.

	Pillow reads the IFD (tag data is bounds-checked against the APP1
	segment); tag ids are named after piexif's tag table, a few renamed
	through ``FIELD_ALIASES``. Rationals become decimal text, byte strings
	are decoded, multi-valued tags are comma-joined. Any failure to read or
	walk the block raises ``MetadataParseFailure``.
	"""
	try:
		with Image.open(path) as img:
			if not isinstance(img, JpegImagePlugin.JpegImageFile):
				raise MetadataParseFailure(f"{path} is {img.format}, not a JPEG")
			exif_ifd = img.getexif().get_ifd(ExifTags.IFD.Exif)
			fields: Dict[str, str] = {}
			for tag_id, value in exif_ifd.items():
				name = _field_name(tag_id)
				if name in SKIPPED_FIELDS:
					continue
				fields[FIELD_ALIASES.get(name, name)] = _value_to_str(value)
	except MetadataParseFailure:
		raise
	except Exception as e:
		raise MetadataParseFailure(f"could not parse EXIF in {path}: {e}") from e
	return fields


def flatten_fields(fields: Mapping[str, Any]) -> List[str]:
	"""{'a': 4, 'b': 8} -> ['a', '4', 'b', '8']"""
	flat: List[str] = []
	for key, value in fields.items():
		flat.extend((key, str(value)))
	return flat


def group_pairs(flat: Sequence[str]) -> Dict[str, str]:
	if len(flat) % 2:
		raise ValueError("flattened field list must hold key/value pairs")
	return {flat[i]: flat[i + 1] for i in range(0, len(flat), 2)}
