"""Pydantic models for the normalized package record."""

from enum import StrEnum

from PIL import Image
from pydantic import BaseModel, ConfigDict, Field


class SigningType(StrEnum):
    """Distribution type of an iOS build, derived from its provisioning profile."""

    DEVELOPMENT = "development"
    AD_HOC = "ad-hoc"
    ENTERPRISE = "enterprise"
    APP_STORE = "app-store"


class SigningInfo(BaseModel):
    """Platform and signing fields contributed by the provisioning profile."""

    platforms: list[str]
    """Target platforms declared by the profile (e.g., 'iOS')."""

    signing_type: SigningType
    """Classified distribution type."""

    expiration: str
    """Profile expiration as decimal epoch seconds."""

    provisioned_devices: list[str] | None = None
    """Device UDIDs, or None when the profile lists no devices key at all."""


class PackageInfo(BaseModel):
    """Metadata extracted from one .apk or .ipa file."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    name: str = ""
    """Display name (Android label, or iOS display/bundle name)."""

    bundle_id: str = ""
    """Package name or bundle identifier (e.g., com.example.app)."""

    version: str = ""
    """User-facing version string (e.g., 1.2.3)."""

    build: str = ""
    """Build number / version code."""

    icon: Image.Image | None = Field(default=None, exclude=True)
    """Decoded application icon, None when not found."""

    size_bytes: int = 0
    """Size of the package file in bytes."""

    android_debuggable: bool = False
    """Whether the manifest marks the application debuggable."""

    ios_platforms: list[str] = Field(default_factory=list)
    ios_signing_type: SigningType | None = None
    ios_signing_expiration: str = ""
    ios_provisioned_devices: list[str] | None = None

    @property
    def has_icon(self) -> bool:
        """Check if an icon was decoded."""
        return self.icon is not None
