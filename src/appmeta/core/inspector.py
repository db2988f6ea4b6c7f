"""Archive inspection: locate the entries each platform decoder needs."""

import re
from dataclasses import dataclass
from zipfile import ZipFile, ZipInfo

ANDROID_MANIFEST = "AndroidManifest.xml"
INFO_PLIST_PATTERN = re.compile(r"Payload/[^/]+/Info\.plist")
IOS_ICON_MARKER = "AppIcon60x60"
PROVISIONING_PROFILE_MARKER = "embedded.mobileprovision"


@dataclass
class ArchiveEntries:
    """Entries of interest found in a package archive (None when absent)."""

    manifest: ZipInfo | None = None
    info_plist: ZipInfo | None = None
    ios_icon: ZipInfo | None = None
    provisioning_profile: ZipInfo | None = None


def inspect_archive(archive: ZipFile) -> ArchiveEntries:
    """Classify archive entries by name; the first match for each slot wins.

    Each entry fills at most one slot, checked in the order manifest,
    Info.plist, icon, profile.
    """
    entries = ArchiveEntries()

    for info in archive.infolist():
        name = info.filename
        if name == ANDROID_MANIFEST:
            if entries.manifest is None:
                entries.manifest = info
        elif INFO_PLIST_PATTERN.fullmatch(name):
            if entries.info_plist is None:
                entries.info_plist = info
        elif IOS_ICON_MARKER in name:
            if entries.ios_icon is None:
                entries.ios_icon = info
        elif PROVISIONING_PROFILE_MARKER in name:
            if entries.provisioning_profile is None:
                entries.provisioning_profile = info

    return entries
