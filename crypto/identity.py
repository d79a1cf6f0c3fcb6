import hashlib
import os

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PrivateKey

from protocol.message import MAX_FINGERPRINT


def fingerprint_from_key(public_bytes: bytes) -> int:
    """Fold a public key into a fingerprint in 1..65535 (0 is reserved)."""
    digest = hashlib.sha256(public_bytes).digest()
    return int.from_bytes(digest[:4], "big") % MAX_FINGERPRINT + 1


class Identity:
    """
    Persistent node key. Only used to derive a stable default
    fingerprint; peers are not authenticated with it.
    """

    def __init__(self, key_path):
        self.key_path = key_path
        if os.path.exists(key_path):
            with open(key_path, "rb") as f:
                self.private_key = serialization.load_pem_private_key(f.read(), password=None)
            if not isinstance(self.private_key, Ed25519PrivateKey):
                raise ValueError(f"{key_path} does not hold an Ed25519 key")
        else:
            self.private_key = Ed25519PrivateKey.generate()
            directory = os.path.dirname(key_path)
            if directory:
                os.makedirs(directory, exist_ok=True)
            with open(key_path, "wb") as f:
                f.write(self.private_key.private_bytes(
                    encoding=serialization.Encoding.PEM,
                    format=serialization.PrivateFormat.PKCS8,
                    encryption_algorithm=serialization.NoEncryption()
                ))
        self.public_key = self.private_key.public_key()

    def get_public_key_bytes(self):
        # Use raw encoding for consistency
        return self.public_key.public_bytes(
            encoding=serialization.Encoding.Raw,
            format=serialization.PublicFormat.Raw
        )

    @property
    def fingerprint(self):
        return fingerprint_from_key(self.get_public_key_bytes())
