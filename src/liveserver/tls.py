"""
=============================================================================
TLS MATERIAL
=============================================================================

Loads the key and certificate used when the server runs with ``use_tls``.

Both files are read fresh on every start. A developer who regenerates a
self-signed certificate while the server is running gets it picked up by
the next restart, no relaunch needed.

    loader = TLSConfigLoader()
    material = loader.load("ssl/server.key", "ssl/server.crt")
    context = material.create_context()

Python's ssl module only loads certificate chains from files, so the
context is built from the paths; the bytes read here are what we validate.

=============================================================================
"""

import logging
import os
import ssl
from dataclasses import dataclass, field

from .errors import ConfigurationError


logger = logging.getLogger(__name__)

PEM_MARKER = b"-----BEGIN"


@dataclass(frozen=True)
class TLSMaterial:
    """Key and certificate as read at load time."""

    key_path: str
    cert_path: str
    key: bytes = field(repr=False)
    cert: bytes = field(repr=False)

    def create_context(self) -> ssl.SSLContext:
        """
        Build a server-side SSLContext.

        Raises:
            ConfigurationError: The key and certificate do not load or match.
        """
        context = ssl.create_default_context(ssl.Purpose.CLIENT_AUTH)
        try:
            context.load_cert_chain(certfile=self.cert_path, keyfile=self.key_path)
        except ssl.SSLError as e:
            raise ConfigurationError(
                f'Could not load SSL key "{self.key_path}" and certificate "{self.cert_path}": {e}'
            ) from e
        return context


class TLSConfigLoader:
    """Reads and validates TLS key/certificate files."""

    def load(self, key_path: str, cert_path: str) -> TLSMaterial:
        """
        Raises:
            ConfigurationError: A file is missing or is not PEM encoded.
        """
        if not os.path.exists(key_path):
            raise ConfigurationError(
                f"SSL key couldn't be found in \"{key_path}\", "
                f"please provide a path to an existing ssl key file with --ssl-key"
            )
        if not os.path.exists(cert_path):
            raise ConfigurationError(
                f"SSL certificate couldn't be found in \"{cert_path}\", "
                f"please provide a path to an existing ssl certificate file with --ssl-cert"
            )

        key = self._read_pem(key_path, "key")
        cert = self._read_pem(cert_path, "certificate")

        logger.debug(f"Loaded TLS material: key={key_path} cert={cert_path}")
        return TLSMaterial(key_path=key_path, cert_path=cert_path, key=key, cert=cert)

    @staticmethod
    def _read_pem(path: str, kind: str) -> bytes:
        try:
            with open(path, "rb") as f:
                data = f.read()
        except OSError as e:
            raise ConfigurationError(f'Could not read SSL {kind} "{path}": {e}') from e

        if PEM_MARKER not in data:
            raise ConfigurationError(f'SSL {kind} "{path}" is not a PEM encoded file')
        return data
