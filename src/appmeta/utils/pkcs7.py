"""CMS/PKCS#7 SignedData parsing and signature verification.

Provisioning profiles are DER-encoded ``SignedData`` envelopes that embed the
profile property list as encapsulated content. Parsing uses asn1crypto and
signature checks use cryptography. Only the signer signature is verified
against the certificate carried in the envelope; the certificate chain is
not validated.
"""

from dataclasses import dataclass

from asn1crypto import cms, x509 as asn1_x509
from cryptography import x509
from cryptography.exceptions import InvalidSignature, UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.asymmetric import ec, padding, rsa

from appmeta.exceptions import EnvelopeParseError, EnvelopeVerifyError

HASH_ALGORITHMS: dict[str, type[hashes.HashAlgorithm]] = {
    "sha1": hashes.SHA1,
    "sha224": hashes.SHA224,
    "sha256": hashes.SHA256,
    "sha384": hashes.SHA384,
    "sha512": hashes.SHA512,
}

# DER tag of a universal SET; signed attributes are hashed with this tag
# instead of their [0] IMPLICIT tag.
_SET_TAG = b"\x31"


@dataclass
class SignedMessage:
    """A parsed SignedData envelope."""

    signed_data: cms.SignedData

    @property
    def content(self) -> bytes:
        """Encapsulated content bytes (empty for detached signatures)."""
        content = self.signed_data["encap_content_info"]["content"]
        if content.native is None:
            return b""
        return content.native

    def _find_certificate(self, signer: cms.SignerInfo) -> asn1_x509.Certificate:
        sid = signer["sid"]
        for choice in self.signed_data["certificates"] or []:
            if choice.name != "certificate":
                continue
            cert = choice.chosen
            if sid.name == "issuer_and_serial_number":
                issuer_serial = sid.chosen
                if (
                    cert.issuer == issuer_serial["issuer"]
                    and cert.serial_number == issuer_serial["serial_number"].native
                ):
                    return cert
            elif sid.name == "subject_key_identifier":
                if cert.key_identifier == sid.chosen.native:
                    return cert
        raise EnvelopeVerifyError("Signer certificate not found in envelope")

    def _verify_signer(self, signer: cms.SignerInfo, content: bytes) -> None:
        digest_name = signer["digest_algorithm"]["algorithm"].native
        hash_cls = HASH_ALGORITHMS.get(digest_name)
        if hash_cls is None:
            raise EnvelopeVerifyError(f"Unsupported digest algorithm: {digest_name}")

        signed_attrs = signer["signed_attrs"]
        if signed_attrs.native:
            digest = hashes.Hash(hash_cls())
            digest.update(content)
            expected = None
            for attr in signed_attrs:
                if attr["type"].native == "message_digest":
                    expected = attr["values"][0].native
                    break
            if expected is None:
                raise EnvelopeVerifyError("Signed attributes lack a message digest")
            if digest.finalize() != expected:
                raise EnvelopeVerifyError("Content digest does not match signature")
            signed_bytes = _SET_TAG + signed_attrs.dump()[1:]
        else:
            signed_bytes = content

        cert = self._find_certificate(signer)
        try:
            public_key = x509.load_der_x509_certificate(cert.dump()).public_key()
        except (ValueError, UnsupportedAlgorithm) as e:
            raise EnvelopeVerifyError(f"Unreadable signer certificate: {e}") from e

        signature = signer["signature"].native
        signature_algorithm = signer["signature_algorithm"]["algorithm"].native
        try:
            if isinstance(public_key, rsa.RSAPublicKey):
                if signature_algorithm == "rsassa_pss":
                    pad: padding.AsymmetricPadding = padding.PSS(
                        mgf=padding.MGF1(hash_cls()),
                        salt_length=padding.PSS.AUTO,
                    )
                else:
                    pad = padding.PKCS1v15()
                public_key.verify(signature, signed_bytes, pad, hash_cls())
            elif isinstance(public_key, ec.EllipticCurvePublicKey):
                public_key.verify(signature, signed_bytes, ec.ECDSA(hash_cls()))
            else:
                raise EnvelopeVerifyError(
                    f"Unsupported signer key type: {type(public_key).__name__}"
                )
        except InvalidSignature as e:
            raise EnvelopeVerifyError("Signature verification failed") from e

    def verify(self) -> None:
        """Verify every signer of the envelope.

        Raises:
            EnvelopeVerifyError: If any signer fails or there are no signers.
        """
        signer_infos = self.signed_data["signer_infos"]
        if not len(signer_infos):
            raise EnvelopeVerifyError("Envelope has no signers")

        content = self.content
        for signer in signer_infos:
            try:
                self._verify_signer(signer, content)
            except (ValueError, TypeError, KeyError, IndexError) as e:
                raise EnvelopeVerifyError(f"Malformed signer info: {e}") from e


def parse_signed_message(data: bytes) -> SignedMessage:
    """Parse DER bytes as a CMS ContentInfo holding SignedData.

    Raises:
        EnvelopeParseError: If the bytes are not a SignedData envelope.
    """
    try:
        content_info = cms.ContentInfo.load(data)
        content_type = content_info["content_type"].native
        if content_type != "signed_data":
            raise EnvelopeParseError(f"Unexpected CMS content type: {content_type}")
        signed_data = content_info["content"]
        # Force a full parse so malformed inner structures surface here
        signed_data.native
    except EnvelopeParseError:
        raise
    except (ValueError, TypeError, KeyError, IndexError) as e:
        # asn1crypto raises KeyError on unknown algorithm OIDs
        raise EnvelopeParseError(f"Invalid CMS envelope: {e}") from e

    return SignedMessage(signed_data=signed_data)


def load_signed_content(data: bytes) -> bytes:
    """Parse and verify an envelope, returning its verified content."""
    message = parse_signed_message(data)
    message.verify()
    return message.content
