"""appmeta - metadata extraction for Android and iOS application packages."""

from appmeta.core.parser import PackageParser, parse_package
from appmeta.models.package import PackageInfo, SigningType

__version__ = "0.1.0"

__all__ = [
    "PackageInfo",
    "PackageParser",
    "SigningType",
    "__version__",
    "parse_package",
]
