"""
Authentication Module

Resolves the client certificate identity used for mutual TLS against the
patch portal and builds the matching SSL context.
"""

import hashlib
import logging
import re
import ssl
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional

from .constants import ErrorMessages, FileConstants
from .exceptions import AuthenticationError, CredentialAmbiguityError
from .utils import mask_sensitive_info, normalize_thumbprint

logger = logging.getLogger(__name__)

_PEM_CERT_PATTERN = re.compile(
    r'-----BEGIN CERTIFICATE-----.+?-----END CERTIFICATE-----', re.DOTALL
)


@dataclass(frozen=True)
class CertificateIdentity:
    """A client certificate selected by thumbprint"""
    thumbprint: str
    cert_file: Path
    key_file: Optional[Path] = None


def compute_thumbprint(pem_text: str) -> Optional[str]:
    """
    Compute the SHA-1 thumbprint of the first certificate in PEM text.

    Returns:
        Upper-case hex thumbprint, or None if the text holds no certificate
    """
    match = _PEM_CERT_PATTERN.search(pem_text)
    if not match:
        return None
    der = ssl.PEM_cert_to_DER_cert(match.group(0))
    return hashlib.sha1(der).hexdigest().upper()


class CertificateAuth:
    """Selects a client certificate from a PEM store and remembers the choice"""

    def __init__(self, cert_store: str = FileConstants.DEFAULT_CERT_STORE,
                 default_thumbprint: Optional[str] = None, verify_tls: bool = True):
        """
        Initialize certificate authentication

        Args:
            cert_store: Directory holding PEM client certificates
            default_thumbprint: Thumbprint from configuration (optional)
            verify_tls: Whether to verify the portal's server certificate
        """
        self.cert_store = Path(cert_store).expanduser()
        self.default_thumbprint = normalize_thumbprint(default_thumbprint) if default_thumbprint else None
        self.verify_tls = verify_tls
        self._selected: Optional[CertificateIdentity] = None

    @property
    def selected(self) -> Optional[CertificateIdentity]:
        """The identity chosen by the last successful resolve"""
        return self._selected

    def discover_certificates(self) -> Dict[str, CertificateIdentity]:
        """
        Scan the certificate store

        Returns:
            Dict mapping thumbprint to identity, in file name order
        """
        identities = {}
        if not self.cert_store.is_dir():
            logger.debug(f"Certificate store does not exist: {self.cert_store}")
            return identities

        extensions = [str(ext) for ext in FileConstants.FileExtension.get_certificate_extensions()]
        for cert_file in sorted(self.cert_store.iterdir()):
            if cert_file.suffix.lower() not in extensions or not cert_file.is_file():
                continue
            try:
                thumbprint = compute_thumbprint(cert_file.read_text(encoding='utf-8', errors='replace'))
            except (OSError, ValueError) as e:
                logger.warning(f"Skipping unreadable certificate {cert_file.name}: {e}")
                continue
            if not thumbprint:
                continue

            key_file = cert_file.with_suffix(str(FileConstants.FileExtension.KEY))
            identities[thumbprint] = CertificateIdentity(
                thumbprint=thumbprint,
                cert_file=cert_file,
                key_file=key_file if key_file.exists() else None
            )

        logger.debug(f"Found {len(identities)} certificate(s) in {self.cert_store}")
        return identities

    def resolve_identity(self, thumbprint: Optional[str] = None) -> CertificateIdentity:
        """
        Determine which certificate to authenticate with

        Explicit thumbprint first, then the previous selection, then the
        configured thumbprint, then the only certificate in the store.

        Raises:
            CredentialAmbiguityError: If no single identity can be determined
        """
        if thumbprint is None and self._selected is not None:
            logger.debug("Reusing previously selected certificate")
            return self._selected

        wanted = normalize_thumbprint(thumbprint) if thumbprint else self.default_thumbprint
        identities = self.discover_certificates()

        if wanted:
            identity = identities.get(wanted)
            if identity is None:
                raise CredentialAmbiguityError(
                    str(ErrorMessages.CredentialError.NOT_FOUND).format(
                        thumbprint=wanted, store=self.cert_store
                    )
                )
        elif len(identities) == 1:
            identity = next(iter(identities.values()))
        elif not identities:
            raise CredentialAmbiguityError(
                str(ErrorMessages.CredentialError.NO_CERTIFICATES).format(store=self.cert_store)
            )
        else:
            raise CredentialAmbiguityError(
                str(ErrorMessages.CredentialError.AMBIGUOUS).format(
                    store=self.cert_store,
                    thumbprints=', '.join(identities)
                )
            )

        self._selected = identity
        logger.info(f"Using client certificate {mask_sensitive_info(identity.thumbprint)}")
        return identity

    def build_ssl_context(self, identity: CertificateIdentity) -> ssl.SSLContext:
        """
        Build a mutual-TLS context for the given identity

        Raises:
            AuthenticationError: If the certificate or key cannot be loaded
        """
        context = ssl.create_default_context()
        if not self.verify_tls:
            context.check_hostname = False
            context.verify_mode = ssl.CERT_NONE

        try:
            context.load_cert_chain(
                certfile=str(identity.cert_file),
                keyfile=str(identity.key_file) if identity.key_file else None
            )
        except (OSError, ssl.SSLError) as e:
            raise AuthenticationError(f"Failed to load client certificate {identity.cert_file}: {e}")

        return context
