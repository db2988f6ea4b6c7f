"""Typed exception hierarchy for appmeta."""

from pathlib import Path


class AppMetaError(Exception):
    """Base exception for all appmeta errors."""

    pass


class PackageIOError(AppMetaError):
    """Raised when the package file cannot be opened or stat'ed."""

    def __init__(self, path: Path, reason: str):
        self.path = path
        self.reason = reason
        super().__init__(f"Failed to read package {path}: {reason}")


class ArchiveFormatError(AppMetaError):
    """Raised when the package is not a readable ZIP archive."""

    pass


class UnsupportedPlatformError(AppMetaError):
    """Raised when the file extension is neither .apk nor .ipa."""

    def __init__(self, path: Path):
        self.path = path
        super().__init__(
            f"Unsupported package type '{path.suffix}' (expected .apk or .ipa): {path}"
        )


class ManifestError(AppMetaError):
    """Raised when the Android manifest cannot be used."""

    pass


class ManifestNotFoundError(ManifestError):
    """Raised when the archive has no AndroidManifest.xml entry."""

    def __init__(self) -> None:
        super().__init__("AndroidManifest.xml not found")


class ManifestDecodeError(ManifestError):
    """Raised when the binary manifest cannot be decoded."""

    pass


class MetadataError(AppMetaError):
    """Raised when the iOS Info.plist cannot be used."""

    pass


class MetadataNotFoundError(MetadataError):
    """Raised when the archive has no Payload/<app>/Info.plist entry."""

    def __init__(self) -> None:
        super().__init__("Info.plist not found")


class MetadataDecodeError(MetadataError):
    """Raised when Info.plist is not a valid property list."""

    pass


class ProfileError(AppMetaError):
    """Raised when the embedded provisioning profile cannot be used."""

    pass


class ProfileNotFoundError(ProfileError):
    """Raised when the archive has no embedded.mobileprovision entry."""

    def __init__(self) -> None:
        super().__init__("embedded.mobileprovision not found")


class ProfileDecodeError(ProfileError):
    """Raised when the profile payload is not a valid property list."""

    pass


class IconError(AppMetaError):
    """Raised when the application icon cannot be produced."""

    pass


class IconNotFoundError(IconError):
    """Raised when the package carries no usable icon."""

    def __init__(self, detail: str = "icon not found"):
        super().__init__(detail)


class IconDecodeError(IconError):
    """Raised when icon bytes cannot be turned into an image."""

    pass


class EnvelopeError(AppMetaError):
    """Raised when a CMS signed envelope cannot be used."""

    pass


class EnvelopeParseError(EnvelopeError):
    """Raised when bytes are not a CMS SignedData structure."""

    pass


class EnvelopeVerifyError(EnvelopeError):
    """Raised when a SignedData signature does not verify."""

    pass
