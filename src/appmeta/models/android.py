"""Pydantic models for decoded Android manifest data."""

from pydantic import BaseModel


class AndroidManifestRecord(BaseModel):
    """Attributes of AndroidManifest.xml relevant to package metadata.

    Values are kept as the raw attribute text; ``debuggable`` is compared
    literally against ``"true"``.
    """

    package_name: str = ""
    version_name: str = ""
    version_code: str = ""
    debuggable: str = ""

    @property
    def is_debuggable(self) -> bool:
        return self.debuggable == "true"
