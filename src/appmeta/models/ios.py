"""Pydantic models for iOS property lists (Info.plist, mobileprovision)."""

from datetime import datetime, timezone

from pydantic import BaseModel, ConfigDict, Field

# Zero value for a missing ExpirationDate (0001-01-01T00:00:00Z)
ZERO_TIME = datetime(1, 1, 1, tzinfo=timezone.utc)


class IosBundleRecord(BaseModel):
    """Bundle keys read from Payload/<app>/Info.plist."""

    model_config = ConfigDict(populate_by_name=True)

    display_name: str = Field("", alias="CFBundleDisplayName")
    bundle_name: str = Field("", alias="CFBundleName")
    bundle_version: str = Field("", alias="CFBundleVersion")
    short_version: str = Field("", alias="CFBundleShortVersionString")
    bundle_identifier: str = Field("", alias="CFBundleIdentifier")

    @property
    def resolved_name(self) -> str:
        """Display name if set, otherwise the bundle name."""
        return self.display_name or self.bundle_name


class ProfileEntitlements(BaseModel):
    """Entitlements dictionary of a provisioning profile."""

    model_config = ConfigDict(populate_by_name=True)

    get_task_allow: bool = Field(False, alias="get-task-allow")
    beta_reports_active: bool = Field(False, alias="beta-reports-active")
    application_identifier: str = Field("", alias="application-identifier")


class ProvisioningProfileRecord(BaseModel):
    """Signed payload of embedded.mobileprovision."""

    model_config = ConfigDict(populate_by_name=True)

    platforms: list[str] = Field(default_factory=list, alias="Platform")

    provisioned_devices: list[str] | None = Field(None, alias="ProvisionedDevices")
    """None when the key is absent; an empty list when present but empty."""

    provisions_all_devices: bool = Field(False, alias="ProvisionsAllDevices")
    expiration_date: datetime = Field(ZERO_TIME, alias="ExpirationDate")
    entitlements: ProfileEntitlements = Field(
        default_factory=ProfileEntitlements, alias="Entitlements"
    )

    @property
    def expiration_epoch(self) -> str:
        """Expiration date as decimal epoch seconds (naive dates are UTC)."""
        expires = self.expiration_date
        if expires.tzinfo is None:
            expires = expires.replace(tzinfo=timezone.utc)
        return str(int(expires.timestamp()))
