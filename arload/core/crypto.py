"""
Cryptographic primitives for transaction preparation.

This module provides:
- SHA-256 / SHA-384 digests and the hash-of-hashes combinator
- RSA wallets (JWK, PEM or freshly generated) for RSA-PSS signing
- Signature verification against a bare public modulus
"""

import hashlib
import json
import logging
import threading
from pathlib import Path
from typing import Any, Iterable, Optional

from cryptography.exceptions import InvalidSignature, UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa
from pydantic import BaseModel, ConfigDict, PrivateAttr

from ..config import ArloadConfig
from ..exceptions import CryptoError, MalformedInputError
from .encoding import b64url_decode, b64url_encode

logger = logging.getLogger(__name__)

# Digest widths in bytes
SHA256 = 32
SHA384 = 48

_HASH_FUNCTIONS = {
    SHA256: hashlib.sha256,
    SHA384: hashlib.sha384,
}

MIN_MODULUS_BITS = 2048
MAX_MODULUS_BITS = 8192
PUBLIC_EXPONENT = 65537


def digest(data: bytes, width: int = SHA256) -> bytes:
    """
    Hash bytes with the algorithm matching the requested width.

    Args:
        data: Bytes to hash
        width: 32 for SHA-256, 48 for SHA-384

    Returns:
        Digest of exactly `width` bytes
    """
    try:
        hash_fn = _HASH_FUNCTIONS[width]
    except KeyError:
        raise MalformedInputError(f"Unsupported digest width: {width}", field="width") from None
    return hash_fn(data).digest()


def digest_concat(items: Iterable[bytes], width: int = SHA256) -> bytes:
    """
    Hash the concatenation of the digests of each item.

    This is hash-of-hashes: H(H(a) || H(b) || ...), not H(a || b || ...).
    """
    return digest(b"".join(digest(item, width) for item in items), width)


def _pss() -> padding.PSS:
    return padding.PSS(
        mgf=padding.MGF1(hashes.SHA256()),
        salt_length=padding.PSS.DIGEST_LENGTH,
    )


def _int_to_bytes(value: int) -> bytes:
    """Big-endian bytes without a leading zero byte."""
    return value.to_bytes((value.bit_length() + 7) // 8, "big")


def _b64_int(jwk: dict[str, Any], name: str) -> int:
    try:
        return int.from_bytes(b64url_decode(jwk[name]), "big")
    except KeyError:
        raise CryptoError(f"JWK is missing required field {name!r}") from None
    except MalformedInputError as e:
        raise CryptoError(f"JWK field {name!r} is not valid base64url") from e


def public_key_from_owner(owner: bytes) -> rsa.RSAPublicKey:
    """Build an RSA public key from an owner modulus (exponent 65537)."""
    modulus = int.from_bytes(owner, "big")
    if not MIN_MODULUS_BITS <= modulus.bit_length() <= MAX_MODULUS_BITS:
        raise CryptoError(f"Owner modulus must be 2048-8192 bits, got {modulus.bit_length()}")
    try:
        return rsa.RSAPublicNumbers(PUBLIC_EXPONENT, modulus).public_key()
    except ValueError as e:
        raise CryptoError(f"Invalid owner modulus: {e}") from e


def verify_signature(message: bytes, signature: bytes, owner: bytes) -> bool:
    """
    Verify an RSA-PSS signature against an owner modulus.

    Args:
        message: The signed message
        signature: The signature to verify
        owner: Public modulus bytes (big-endian)

    Returns:
        True if signature is valid, False otherwise

    Raises:
        CryptoError: If the owner is not a usable RSA modulus
    """
    key = public_key_from_owner(owner)
    try:
        key.verify(
            signature,
            message,
            padding.PSS(mgf=padding.MGF1(hashes.SHA256()), salt_length=padding.PSS.AUTO),
            hashes.SHA256(),
        )
        return True
    except InvalidSignature:
        return False


def batch_verify_signatures(
    items: list[tuple[bytes, bytes, bytes]],
    parallel: bool = True,
    max_workers: int | None = None
) -> list[bool]:
    """
    Verify multiple signatures with optional parallelization.

    Args:
        items: List of (message, signature, owner) tuples
        parallel: Whether to verify in parallel (default: True)
        max_workers: Max parallel workers (default: executor default)

    Returns:
        List of verification results (True/False for each)
    """
    if not items:
        return []

    # For small batches, sequential is faster (no overhead)
    if len(items) <= 4 or not parallel:
        return [verify_signature(m, s, o) for m, s, o in items]

    import concurrent.futures

    with concurrent.futures.ThreadPoolExecutor(max_workers=max_workers) as executor:
        futures = [
            executor.submit(verify_signature, m, s, o)
            for m, s, o in items
        ]
        return [f.result() for f in futures]


class Wallet(BaseModel):
    """
    An RSA signing wallet.

    The wallet is immutable once built; signing takes an internal lock so
    one instance can be shared by worker threads.
    """

    private_key: rsa.RSAPrivateKey

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    _sign_lock: threading.Lock = PrivateAttr(default_factory=threading.Lock)

    def model_post_init(self, __context: Any) -> None:
        bits = self.private_key.key_size
        if not MIN_MODULUS_BITS <= bits <= MAX_MODULUS_BITS:
            raise CryptoError(f"RSA modulus must be 2048-8192 bits, got {bits}")

    @classmethod
    def generate(cls, key_size: int = 4096) -> "Wallet":
        """Generate a new wallet with a fresh RSA key."""
        if not MIN_MODULUS_BITS <= key_size <= MAX_MODULUS_BITS:
            raise CryptoError(f"RSA modulus must be 2048-8192 bits, got {key_size}")
        key = rsa.generate_private_key(public_exponent=PUBLIC_EXPONENT, key_size=key_size)
        return cls(private_key=key)

    @classmethod
    def from_pem(cls, data: bytes, password: Optional[bytes] = None) -> "Wallet":
        """Load a wallet from a PEM encoded private key."""
        try:
            key = serialization.load_pem_private_key(data, password=password)
        except (ValueError, TypeError, UnsupportedAlgorithm) as e:
            raise CryptoError(f"Could not parse PEM private key: {e}") from e
        if not isinstance(key, rsa.RSAPrivateKey):
            raise CryptoError("PEM key is not an RSA private key")
        return cls(private_key=key)

    @classmethod
    def from_jwk(cls, jwk: dict[str, Any]) -> "Wallet":
        """
        Load a wallet from a JSON Web Key.

        CRT parameters are recomputed when absent; the primes are recovered
        when only n, e and d are given.
        """
        if jwk.get("kty") != "RSA":
            raise CryptoError(f"JWK must have kty 'RSA', got {jwk.get('kty')!r}")

        n = _b64_int(jwk, "n")
        e = _b64_int(jwk, "e")
        d = _b64_int(jwk, "d")

        if "p" in jwk and "q" in jwk:
            p = _b64_int(jwk, "p")
            q = _b64_int(jwk, "q")
        else:
            try:
                p, q = rsa.rsa_recover_prime_factors(n, e, d)
            except ValueError as err:
                raise CryptoError(f"Could not recover RSA primes: {err}") from err

        dp = _b64_int(jwk, "dp") if "dp" in jwk else rsa.rsa_crt_dmp1(d, p)
        dq = _b64_int(jwk, "dq") if "dq" in jwk else rsa.rsa_crt_dmq1(d, q)
        qi = _b64_int(jwk, "qi") if "qi" in jwk else rsa.rsa_crt_iqmp(p, q)

        numbers = rsa.RSAPrivateNumbers(
            p=p, q=q, d=d, dmp1=dp, dmq1=dq, iqmp=qi,
            public_numbers=rsa.RSAPublicNumbers(e, n),
        )
        try:
            key = numbers.private_key()
        except ValueError as err:
            raise CryptoError(f"Invalid RSA key material: {err}") from err
        return cls(private_key=key)

    @classmethod
    def from_keyfile(cls, path: Path | str) -> "Wallet":
        """Load a wallet from a JWK JSON keyfile."""
        path = Path(path)
        logger.debug(f"Loading keyfile {path}")
        try:
            jwk = json.loads(path.read_text())
        except json.JSONDecodeError as e:
            raise CryptoError(f"Keyfile {path} is not valid JSON") from e
        if not isinstance(jwk, dict):
            raise CryptoError(f"Keyfile {path} does not contain a JWK object")
        return cls.from_jwk(jwk)

    @classmethod
    def from_config(cls, config: ArloadConfig) -> "Wallet":
        """
        Load the configured keyfile, or generate a key of `config.key_size`
        when no keyfile is set.
        """
        if config.keyfile is not None:
            return cls.from_keyfile(config.keyfile)
        logger.info(f"No keyfile configured, generating a {config.key_size}-bit key")
        return cls.generate(key_size=config.key_size)

    def to_jwk(self) -> dict[str, str]:
        """Export the private key as a JSON Web Key."""
        numbers = self.private_key.private_numbers()
        public = numbers.public_numbers
        return {
            "kty": "RSA",
            "n": b64url_encode(_int_to_bytes(public.n)),
            "e": b64url_encode(_int_to_bytes(public.e)),
            "d": b64url_encode(_int_to_bytes(numbers.d)),
            "p": b64url_encode(_int_to_bytes(numbers.p)),
            "q": b64url_encode(_int_to_bytes(numbers.q)),
            "dp": b64url_encode(_int_to_bytes(numbers.dmp1)),
            "dq": b64url_encode(_int_to_bytes(numbers.dmq1)),
            "qi": b64url_encode(_int_to_bytes(numbers.iqmp)),
        }

    @property
    def key_size(self) -> int:
        return self.private_key.key_size

    @property
    def owner(self) -> bytes:
        """Public modulus, big-endian without leading zero byte."""
        return _int_to_bytes(self.private_key.public_key().public_numbers().n)

    @property
    def address(self) -> str:
        """Wallet address: base64url of the SHA-256 of the owner."""
        return b64url_encode(digest(self.owner, SHA256))

    def sign(self, message: bytes) -> bytes:
        """
        Sign a message with RSA-PSS over SHA-256.

        Returns:
            Signature with the same length as the modulus in bytes
        """
        try:
            with self._sign_lock:
                return self.private_key.sign(message, _pss(), hashes.SHA256())
        except (ValueError, TypeError) as e:
            raise CryptoError(f"Signing failed: {e}") from e

    def verify(self, signature: bytes, message: bytes) -> bool:
        """Verify a signature made by this wallet's key."""
        return verify_signature(message, signature, self.owner)

    def __repr__(self) -> str:
        return f"Wallet(address={self.address}, bits={self.key_size})"
