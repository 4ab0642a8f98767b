from __future__ import annotations


class ExifHarvestError(Exception):
	"""Base class for ingestion and lookup failures."""


class TransportError(ExifHarvestError):
	"""Manifest or blob fetch failed (connection, status or content type)."""


class FormatMismatch(ExifHarvestError):
	"""On-disk blob is not a JPEG despite its name."""


class MetadataParseFailure(ExifHarvestError):
	"""EXIF block could not be parsed."""


class FilesystemError(ExifHarvestError):
	"""Unexpected filesystem failure while inspecting a local blob."""


class StoreError(ExifHarvestError):
	pass


class StoreUnavailable(StoreError):
	"""Redis could not be reached."""


class StoreWriteFailure(StoreError):
	"""Redis rejected a metadata write."""
