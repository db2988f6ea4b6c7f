"""Fixtures that build synthetic .apk/.ipa contents on disk."""

import datetime
import plistlib
import struct
import zipfile
import zlib
from io import BytesIO
from pathlib import Path

import pytest
from cryptography import x509
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec, rsa
from cryptography.hazmat.primitives.serialization import Encoding, pkcs7
from cryptography.x509.oid import NameOID
from PIL import Image

from appmeta.utils import config

ANDROID_NS = "http://schemas.android.com/apk/res/android"

# Android framework attribute resource IDs
ANDROID_ATTR_IDS = {
    "versionCode": 0x0101021B,
    "versionName": 0x0101021C,
    "debuggable": 0x0101000F,
    "label": 0x01010001,
}

TYPE_STRING = 0x03
TYPE_INT_DEC = 0x10
TYPE_INT_BOOLEAN = 0x12
NO_INDEX = 0xFFFFFFFF


def _chunk(chunk_type: int, header_size: int, body: bytes) -> bytes:
    return struct.pack("<HHI", chunk_type, header_size, 8 + len(body)) + body


def _string_pool(strings: list[str]) -> bytes:
    offsets = []
    data = b""
    for s in strings:
        offsets.append(len(data))
        encoded = s.encode("utf-16-le")
        data += struct.pack("<H", len(s)) + encoded + b"\x00\x00"
    while len(data) % 4:
        data += b"\x00"

    strings_start = 28 + 4 * len(strings)
    header = struct.pack("<IIIII", len(strings), 0, 0, strings_start, 0)
    offset_table = b"".join(struct.pack("<I", o) for o in offsets)
    return _chunk(0x0001, 28, header + offset_table + data)


class AxmlWriter:
    """Minimal Android binary XML writer for manifest fixtures."""

    def __init__(self) -> None:
        # Attribute names with resource IDs come first, matching aapt output
        self.strings: list[str] = list(ANDROID_ATTR_IDS)
        self.nodes: list[bytes] = []

    def idx(self, value: str) -> int:
        if value not in self.strings:
            self.strings.append(value)
        return self.strings.index(value)

    def _node(self, chunk_type: int, ext: bytes) -> bytes:
        return _chunk(chunk_type, 0x10, struct.pack("<II", 1, NO_INDEX) + ext)

    def start_namespace(self, prefix: str, uri: str) -> None:
        ext = struct.pack("<II", self.idx(prefix), self.idx(uri))
        self.nodes.append(self._node(0x0100, ext))

    def end_namespace(self, prefix: str, uri: str) -> None:
        ext = struct.pack("<II", self.idx(prefix), self.idx(uri))
        self.nodes.append(self._node(0x0101, ext))

    def start_element(self, name: str, attrs: list[tuple]) -> None:
        """attrs: (namespace or None, name, value) with str/bool/int values."""
        encoded = b""
        for ns, attr_name, value in attrs:
            ns_idx = self.idx(ns) if ns else NO_INDEX
            name_idx = self.idx(attr_name)
            if isinstance(value, bool):
                raw, kind, data = NO_INDEX, TYPE_INT_BOOLEAN, NO_INDEX if value else 0
            elif isinstance(value, int):
                raw, kind, data = NO_INDEX, TYPE_INT_DEC, value
            else:
                raw = self.idx(value)
                kind, data = TYPE_STRING, raw
            encoded += struct.pack("<IIIHBBI", ns_idx, name_idx, raw, 8, 0, kind, data)

        ext = struct.pack(
            "<IIHHHHHH", NO_INDEX, self.idx(name), 0x14, 0x14, len(attrs), 0, 0, 0
        )
        self.nodes.append(self._node(0x0102, ext + encoded))

    def end_element(self, name: str) -> None:
        ext = struct.pack("<II", NO_INDEX, self.idx(name))
        self.nodes.append(self._node(0x0103, ext))

    def build(self) -> bytes:
        pool = _string_pool(self.strings)
        resource_map = _chunk(
            0x0180, 8, b"".join(struct.pack("<I", i) for i in ANDROID_ATTR_IDS.values())
        )
        return _chunk(0x0003, 8, pool + resource_map + b"".join(self.nodes))


def make_manifest(
    package: str = "com.x.y",
    version_name: str = "1.2.3",
    version_code: int | str = 45,
    debuggable: bool | str | None = False,
    label: str | None = None,
) -> bytes:
    """Binary AndroidManifest.xml with <manifest> and <application>."""
    writer = AxmlWriter()
    writer.start_namespace("android", ANDROID_NS)
    writer.start_element(
        "manifest",
        [
            (ANDROID_NS, "versionCode", version_code),
            (ANDROID_NS, "versionName", version_name),
            (None, "package", package),
        ],
    )
    app_attrs = []
    if debuggable is not None:
        app_attrs.append((ANDROID_NS, "debuggable", debuggable))
    if label is not None:
        app_attrs.append((ANDROID_NS, "label", label))
    writer.start_element("application", app_attrs)
    writer.end_element("application")
    writer.end_element("manifest")
    writer.end_namespace("android", ANDROID_NS)
    return writer.build()


def write_zip(path: Path, entries: dict[str, bytes]) -> Path:
    with zipfile.ZipFile(path, "w", zipfile.ZIP_DEFLATED) as zf:
        for name, data in entries.items():
            zf.writestr(name, data)
    return path


def make_info_plist(**keys: str) -> bytes:
    return plistlib.dumps(keys, fmt=plistlib.FMT_BINARY)


def make_png(size: tuple[int, int] = (4, 4), color=(10, 20, 30, 255)) -> bytes:
    buf = BytesIO()
    Image.new("RGBA", size, color).save(buf, "PNG")
    return buf.getvalue()


def _png_chunk(kind: bytes, body: bytes) -> bytes:
    crc = zlib.crc32(kind + body) & 0xFFFFFFFF
    return struct.pack(">I", len(body)) + kind + body + struct.pack(">I", crc)


def make_cgbi_png(
    rows: list[list[tuple[int, int, int, int]]], sub_filter: bool = False
) -> bytes:
    """Xcode-style optimized PNG: premultiplied BGRA, raw deflate, CgBI chunk."""
    height, width = len(rows), len(rows[0])
    raw = b""
    for y, row in enumerate(rows):
        line = bytearray()
        for r, g, b, a in row:
            line += bytes([b * a // 255, g * a // 255, r * a // 255, a])
        if sub_filter and y % 2:
            filtered = bytearray(line)
            for i in range(4, len(line)):
                filtered[i] = (line[i] - line[i - 4]) & 0xFF
            raw += b"\x01" + bytes(filtered)
        else:
            raw += b"\x00" + bytes(line)

    compressor = zlib.compressobj(9, zlib.DEFLATED, -zlib.MAX_WBITS)
    idat = compressor.compress(raw) + compressor.flush()
    header = struct.pack(">IIBBBBB", width, height, 8, 6, 0, 0, 0)
    return (
        b"\x89PNG\r\n\x1a\n"
        + _png_chunk(b"CgBI", b"\x50\x00\x20\x02")
        + _png_chunk(b"IHDR", header)
        + _png_chunk(b"IDAT", idat)
        + _png_chunk(b"IEND", b"")
    )


def _self_signed(key) -> x509.Certificate:
    name = x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, "Test Distribution")])
    now = datetime.datetime.now(datetime.timezone.utc)
    return (
        x509.CertificateBuilder()
        .subject_name(name)
        .issuer_name(name)
        .public_key(key.public_key())
        .serial_number(x509.random_serial_number())
        .not_valid_before(now - datetime.timedelta(days=1))
        .not_valid_after(now + datetime.timedelta(days=365))
        .sign(key, hashes.SHA256())
    )


@pytest.fixture(scope="session")
def rsa_identity():
    key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    return key, _self_signed(key)


@pytest.fixture(scope="session")
def ec_identity():
    key = ec.generate_private_key(ec.SECP256R1())
    return key, _self_signed(key)


@pytest.fixture
def sign_payload(rsa_identity):
    """Wrap bytes in an attached CMS SignedData envelope (DER)."""

    def _sign(payload: bytes, identity=None) -> bytes:
        key, cert = identity or rsa_identity
        return (
            pkcs7.PKCS7SignatureBuilder()
            .set_data(payload)
            .add_signer(cert, key, hashes.SHA256())
            .sign(Encoding.DER, [pkcs7.PKCS7Options.Binary])
        )

    return _sign


def profile_plist(
    devices: list[str] | None = None,
    get_task_allow: bool = False,
    all_devices: bool | None = None,
) -> bytes:
    profile = {
        "Platform": ["iOS"],
        "ExpirationDate": datetime.datetime(2030, 1, 1),
        "Entitlements": {
            "get-task-allow": get_task_allow,
            "application-identifier": "ABCDE12345.com.x.y",
        },
    }
    if devices is not None:
        profile["ProvisionedDevices"] = devices
    if all_devices is not None:
        profile["ProvisionsAllDevices"] = all_devices
    return plistlib.dumps(profile)


@pytest.fixture
def make_ipa(tmp_path, sign_payload):
    """Write an .ipa with Info.plist, signed profile and optional icon."""

    def _make(
        name: str = "App.ipa",
        info: bytes | None = None,
        profile: bytes | None = None,
        icon: bytes | None = None,
        extra: dict[str, bytes] | None = None,
    ) -> Path:
        entries: dict[str, bytes] = {}
        entries["Payload/App.app/Info.plist"] = info or make_info_plist(
            CFBundleDisplayName="My App",
            CFBundleName="App",
            CFBundleIdentifier="com.x.y",
            CFBundleShortVersionString="2.0",
            CFBundleVersion="7",
        )
        entries["Payload/App.app/embedded.mobileprovision"] = profile or sign_payload(
            profile_plist(devices=["udid-1"], get_task_allow=True)
        )
        if icon is not None:
            entries["Payload/App.app/AppIcon60x60@2x.png"] = icon
        entries.update(extra or {})
        return write_zip(tmp_path / name, entries)

    return _make


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Point the user config at a temp file so tests never read ~/.appmeta."""
    monkeypatch.setattr(config, "CONFIG_FILE", tmp_path / "appmeta-config.json")
    config.reload_config()
    yield
    config.reload_config()
