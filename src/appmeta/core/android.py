"""Android decoding: binary manifest and resource-table lookups."""

import logging
from pathlib import Path
from xml.etree import ElementTree

from PIL import Image
from pyaxmlparser import APK
from pyaxmlparser.axmlprinter import AXMLPrinter
from pydantic import ValidationError

from appmeta.exceptions import (
    IconNotFoundError,
    ManifestDecodeError,
    ManifestNotFoundError,
)
from appmeta.models.android import AndroidManifestRecord
from appmeta.utils.png import decode_image

logger = logging.getLogger(__name__)

# XML attribute local name -> AndroidManifestRecord field
MANIFEST_ATTRIBUTES: dict[str, str] = {
    "package": "package_name",
    "versionName": "version_name",
    "versionCode": "version_code",
}
APPLICATION_ATTRIBUTES: dict[str, str] = {
    "debuggable": "debuggable",
}


def _local_name(name: str) -> str:
    """Strip '{namespace}' or 'prefix:' from an XML name."""
    return name.rsplit("}", 1)[-1].rsplit(":", 1)[-1]


def _collect(element: ElementTree.Element, mapping: dict[str, str]) -> dict[str, str]:
    values: dict[str, str] = {}
    for key, value in element.attrib.items():
        field = mapping.get(_local_name(key))
        if field is not None:
            values[field] = value
    return values


def decode_manifest(data: bytes | None) -> AndroidManifestRecord:
    """Decode binary AndroidManifest.xml bytes.

    Args:
        data: Raw manifest entry bytes, or None if the archive had none.

    Returns:
        AndroidManifestRecord with raw attribute values.

    Raises:
        ManifestNotFoundError: If data is None.
        ManifestDecodeError: If binary XML or attribute decoding fails.
    """
    if data is None:
        raise ManifestNotFoundError()

    try:
        printer = AXMLPrinter(data)
        if not printer.is_valid():
            raise ManifestDecodeError("AndroidManifest.xml is not valid binary XML")
        root = ElementTree.fromstring(printer.get_buff())
    except ManifestDecodeError:
        raise
    except Exception as e:
        # pyaxmlparser raises a wide range of errors on corrupt input
        raise ManifestDecodeError(f"Failed to decode AndroidManifest.xml: {e}") from e

    if _local_name(root.tag) != "manifest":
        raise ManifestDecodeError(f"Unexpected manifest root element: {root.tag}")

    fields = _collect(root, MANIFEST_ATTRIBUTES)
    for child in root:
        if _local_name(child.tag) == "application":
            fields.update(_collect(child, APPLICATION_ATTRIBUTES))
            break

    try:
        return AndroidManifestRecord.model_validate(fields)
    except ValidationError as e:
        raise ManifestDecodeError(f"Invalid manifest attributes: {e}") from e


class ApkResources:
    """Resource-table view of an APK, backed by pyaxmlparser.

    Opened independently of the ZIP reader because icon and label
    resolution need the compiled resources (resources.arsc).
    """

    def __init__(self, apk_path: Path):
        """Open an APK for resource lookups.

        Args:
            apk_path: Path to the APK file.
        """
        self.apk_path = apk_path
        self._apk: APK | None = APK(str(apk_path))

    def _require_open(self) -> APK:
        if self._apk is None:
            raise ValueError(f"Resources already closed: {self.apk_path}")
        return self._apk

    def icon(self, density: int) -> Image.Image:
        """Return the best icon at or below the given density.

        Raises:
            IconNotFoundError: If the resource table names no icon.
            IconDecodeError: If the icon file is not a raster image
                (e.g., an adaptive-icon XML drawable).
        """
        apk = self._require_open()
        icon_path = apk.get_app_icon(max_dpi=density)
        if not icon_path:
            raise IconNotFoundError()
        return decode_image(apk.get_file(icon_path))

    def label(self) -> str:
        """Return the default (unlocalized) application label."""
        label = self._require_open().get_app_name() or ""
        if label.startswith("@"):
            # Unresolved resource reference (no resources.arsc)
            return ""
        return label

    def close(self) -> None:
        self._apk = None

    def __enter__(self) -> "ApkResources":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
