"""iOS decoding: Info.plist, provisioning profile, and app icon."""

import logging
import plistlib
from typing import Any
from xml.parsers.expat import ExpatError

from PIL import Image
from pydantic import ValidationError

from appmeta.exceptions import (
    EnvelopeError,
    IconNotFoundError,
    MetadataDecodeError,
    MetadataNotFoundError,
    ProfileDecodeError,
    ProfileNotFoundError,
)
from appmeta.models.ios import IosBundleRecord, ProvisioningProfileRecord
from appmeta.models.package import SigningInfo, SigningType
from appmeta.utils.pkcs7 import load_signed_content
from appmeta.utils.png import decode_image, revert_png_optimization

logger = logging.getLogger(__name__)

PLIST_ERRORS = (
    plistlib.InvalidFileException,
    ExpatError,
    ValueError,
    # plistlib on an unparseable <date>
    AttributeError,
    ValidationError,
)


def _load_plist(data: bytes) -> dict[str, Any]:
    """Parse XML or binary plist bytes whose root must be a dictionary."""
    root = plistlib.loads(data)
    if not isinstance(root, dict):
        raise ValueError(f"plist root is {type(root).__name__}, expected dict")
    return root


def decode_info_plist(data: bytes | None) -> IosBundleRecord:
    """Decode Payload/<app>/Info.plist bytes.

    Raises:
        MetadataNotFoundError: If data is None.
        MetadataDecodeError: If the plist is malformed or keys have wrong types.
    """
    if data is None:
        raise MetadataNotFoundError()

    try:
        return IosBundleRecord.model_validate(_load_plist(data))
    except PLIST_ERRORS as e:
        raise MetadataDecodeError(f"Failed to decode Info.plist: {e}") from e


def classify_signing(profile: ProvisioningProfileRecord) -> SigningType:
    """Classify the distribution type of a provisioning profile.

    A ProvisionedDevices key, even an empty one, means a device-bound build
    (development or ad-hoc, split on get-task-allow). Without it the profile
    is enterprise when ProvisionsAllDevices is set, otherwise App Store.
    """
    if profile.provisioned_devices is not None:
        if profile.entitlements.get_task_allow:
            return SigningType.DEVELOPMENT
        return SigningType.AD_HOC
    if profile.provisions_all_devices:
        return SigningType.ENTERPRISE
    return SigningType.APP_STORE


def decode_profile_payload(payload: bytes) -> ProvisioningProfileRecord:
    """Decode the plist carried inside a provisioning profile envelope.

    Empty payload decodes to a record with every field at its default.

    Raises:
        ProfileDecodeError: If the payload is not a valid profile plist.
    """
    if not payload:
        return ProvisioningProfileRecord()

    try:
        return ProvisioningProfileRecord.model_validate(_load_plist(payload))
    except PLIST_ERRORS as e:
        raise ProfileDecodeError(f"Failed to decode provisioning profile: {e}") from e


def decode_profile(data: bytes | None) -> SigningInfo:
    """Extract signing information from embedded.mobileprovision bytes.

    An envelope that fails to parse or verify is logged and treated as
    empty content, which classifies as app-store.

    Raises:
        ProfileNotFoundError: If data is None.
        ProfileDecodeError: If the signed payload is not a valid profile.
    """
    if data is None:
        raise ProfileNotFoundError()

    try:
        payload = load_signed_content(data)
    except EnvelopeError as e:
        # TODO: surface this as ProfileDecodeError once callers can tell an
        # unverifiable profile from an App Store one.
        logger.warning("Provisioning profile envelope rejected: %s", e)
        payload = b""

    profile = decode_profile_payload(payload)
    return SigningInfo(
        platforms=profile.platforms,
        signing_type=classify_signing(profile),
        expiration=profile.expiration_epoch,
        provisioned_devices=profile.provisioned_devices,
    )


def decode_icon(data: bytes | None) -> Image.Image:
    """Decode an AppIcon60x60 asset (CgBI or standard PNG).

    Raises:
        IconNotFoundError: If data is None.
        IconDecodeError: If reversal or decoding fails.
    """
    if data is None:
        raise IconNotFoundError()

    return decode_image(revert_png_optimization(data))
