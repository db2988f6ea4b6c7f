"""Package parsing: open an .apk/.ipa and assemble its PackageInfo."""

import logging
import os
import zlib
from collections.abc import Callable
from pathlib import Path
from zipfile import BadZipFile, ZipFile, ZipInfo

from PIL import Image

from appmeta.core.android import ApkResources, decode_manifest
from appmeta.core.inspector import ArchiveEntries, inspect_archive
from appmeta.core.ios import decode_icon, decode_info_plist, decode_profile
from appmeta.exceptions import (
    ArchiveFormatError,
    IconError,
    PackageIOError,
    UnsupportedPlatformError,
)
from appmeta.models.package import PackageInfo
from appmeta.utils.config import get_android_icon_density

logger = logging.getLogger(__name__)

ANDROID_EXTENSION = ".apk"
IOS_EXTENSION = ".ipa"

# Raised by ZipFile.read on corrupt member data
ENTRY_READ_ERRORS = (BadZipFile, OSError, EOFError, zlib.error)


class PackageParser:
    """Extract metadata from Android (.apk) and iOS (.ipa) packages."""

    def __init__(
        self,
        path: Path | str,
        *,
        icon_density: int | None = None,
        resource_accessor: Callable[[Path], ApkResources] = ApkResources,
    ):
        """Initialize package parser.

        Args:
            path: Path to the .apk or .ipa file.
            icon_density: Target density for Android icon lookup. Defaults to
                the configured value (720 unless overridden).
            resource_accessor: Factory opening an APK for icon/label lookups.
        """
        self.path = Path(path)
        self.icon_density = icon_density
        self.resource_accessor = resource_accessor

    @staticmethod
    def _read_entry(archive: ZipFile, entry: ZipInfo | None) -> bytes | None:
        if entry is None:
            return None
        return archive.read(entry)

    def _parse_android(
        self, archive: ZipFile, entries: ArchiveEntries, size: int
    ) -> PackageInfo:
        manifest = decode_manifest(self._read_entry(archive, entries.manifest))
        icon, label = self._android_resources()

        return PackageInfo(
            name=label,
            bundle_id=manifest.package_name,
            version=manifest.version_name,
            build=manifest.version_code,
            icon=icon,
            size_bytes=size,
            android_debuggable=manifest.is_debuggable,
        )

    def _android_resources(self) -> tuple[Image.Image | None, str]:
        """Best-effort icon and label lookup; failures leave fields empty."""
        density = self.icon_density
        if density is None:
            density = get_android_icon_density()

        try:
            resources = self.resource_accessor(self.path)
        except Exception as e:
            # pyaxmlparser can fail in many ways on unusual resource tables
            logger.debug("Resource lookup unavailable for %s: %s", self.path, e)
            return None, ""

        with resources:
            try:
                icon = resources.icon(density)
            except Exception as e:
                logger.debug("No usable icon in %s: %s", self.path, e)
                icon = None

            try:
                label = resources.label()
            except Exception as e:
                logger.debug("No label in %s: %s", self.path, e)
                label = ""

        return icon, label

    def _parse_ios(
        self, archive: ZipFile, entries: ArchiveEntries, size: int
    ) -> PackageInfo:
        bundle = decode_info_plist(self._read_entry(archive, entries.info_plist))
        signing = decode_profile(
            self._read_entry(archive, entries.provisioning_profile)
        )

        try:
            icon = decode_icon(self._read_entry(archive, entries.ios_icon))
        except (IconError, *ENTRY_READ_ERRORS) as e:
            logger.debug("No usable icon in %s: %s", self.path, e)
            icon = None

        return PackageInfo(
            name=bundle.resolved_name,
            bundle_id=bundle.bundle_identifier,
            version=bundle.short_version,
            build=bundle.bundle_version,
            icon=icon,
            size_bytes=size,
            ios_platforms=signing.platforms,
            ios_signing_type=signing.signing_type,
            ios_signing_expiration=signing.expiration,
            ios_provisioned_devices=signing.provisioned_devices,
        )

    def parse(self) -> PackageInfo:
        """Open the package and extract its metadata.

        Returns:
            PackageInfo for the package.

        Raises:
            PackageIOError: If the file cannot be opened or stat'ed.
            ArchiveFormatError: If the file is not a ZIP archive.
            UnsupportedPlatformError: If the extension is not .apk or .ipa.
            AppMetaError: Subclasses for manifest, metadata and profile
                failures.
        """
        try:
            package_file = self.path.open("rb")
        except OSError as e:
            raise PackageIOError(self.path, str(e)) from e

        with package_file:
            try:
                size = os.fstat(package_file.fileno()).st_size
            except OSError as e:
                raise PackageIOError(self.path, str(e)) from e

            try:
                archive = ZipFile(package_file)
            except (BadZipFile, OSError) as e:
                raise ArchiveFormatError(
                    f"Invalid package (not a valid ZIP file): {self.path}: {e}"
                ) from e

            with archive:
                entries = inspect_archive(archive)

                try:
                    if self.path.suffix == ANDROID_EXTENSION:
                        return self._parse_android(archive, entries, size)
                    if self.path.suffix == IOS_EXTENSION:
                        return self._parse_ios(archive, entries, size)
                except ENTRY_READ_ERRORS as e:
                    raise ArchiveFormatError(
                        f"Failed to read archive entry in {self.path}: {e}"
                    ) from e

                raise UnsupportedPlatformError(self.path)


def parse_package(path: Path | str) -> PackageInfo:
    """Extract metadata from an .apk or .ipa file.

    Args:
        path: Filesystem path ending in .apk or .ipa.

    Returns:
        PackageInfo describing the package.

    Raises:
        AppMetaError: Subclass identifying the failing stage.
    """
    return PackageParser(path).parse()
