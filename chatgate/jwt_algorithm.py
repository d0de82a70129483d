"""Signing and verification of JSON Web Token segments for the HS, RS and ES families."""

from __future__ import annotations

import base64
import binascii
import hashlib
import hmac
from enum import Enum
from typing import Union

from cryptography.exceptions import InvalidSignature, UnsupportedAlgorithm
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import ec, padding, rsa
from cryptography.hazmat.primitives.asymmetric.utils import (
    decode_dss_signature,
    encode_dss_signature,
)

BytesLike = Union[str, bytes, bytearray]


class Algorithm(Enum):
    """JWT signing algorithms."""

    NONE = 0
    HS256 = 1
    HS384 = 2
    HS512 = 3
    RS256 = 4
    RS384 = 5
    RS512 = 6
    ES256 = 7
    ES384 = 8
    ES512 = 9
    UNKN = 10
    TERM = 11


class AlgorithmError(Exception):
    """Base class for signing and verification failures."""


class SigningError(AlgorithmError):
    """The data could not be signed with the given key."""


class VerificationError(AlgorithmError):
    """The signature could not be checked at all (malformed or mismatched input)."""


class InvalidKeyError(AlgorithmError):
    """The verification key could not be loaded."""


class NoneAlgorithmUsed(AlgorithmError):
    """The NONE algorithm was asked to sign or verify; there is nothing to do."""


_HMAC_DIGESTS = {
    Algorithm.HS256: hashlib.sha256,
    Algorithm.HS384: hashlib.sha384,
    Algorithm.HS512: hashlib.sha512,
}

_PEM_HASHES = {
    Algorithm.RS256: hashes.SHA256,
    Algorithm.RS384: hashes.SHA384,
    Algorithm.RS512: hashes.SHA512,
    Algorithm.ES256: hashes.SHA256,
    Algorithm.ES384: hashes.SHA384,
    Algorithm.ES512: hashes.SHA512,
}

_RSA_ALGORITHMS = frozenset({Algorithm.RS256, Algorithm.RS384, Algorithm.RS512})
_EC_ALGORITHMS = frozenset({Algorithm.ES256, Algorithm.ES384, Algorithm.ES512})

_BY_NAME = {
    alg.name: alg
    for alg in Algorithm
    if alg not in (Algorithm.UNKN, Algorithm.TERM)
}


def alg_to_str(alg):
    """The canonical name of ``alg``."""
    if not isinstance(alg, Algorithm):
        raise ValueError(f"unknown algorithm: {alg!r}")
    return alg.name


def str_to_alg(name):
    """The algorithm named by ``name``, compared case-insensitively; UNKN if none."""
    if not name:
        return Algorithm.UNKN
    return _BY_NAME.get(name.upper(), Algorithm.UNKN)


def _coerce(alg) -> Algorithm:
    return alg if isinstance(alg, Algorithm) else str_to_alg(alg)


def _as_bytes(value: BytesLike) -> bytes:
    if isinstance(value, str):
        return value.encode("utf-8")
    return bytes(value)


def base64url_encode(data):
    """URL-safe base64 of ``data`` without padding."""
    return base64.urlsafe_b64encode(_as_bytes(data)).rstrip(b"=").decode("ascii")


def base64url_decode(text):
    """Decode URL-safe base64, padding optional."""
    raw = _as_bytes(text).rstrip(b"=")
    try:
        return base64.urlsafe_b64decode(raw + b"=" * (-len(raw) % 4))
    except binascii.Error as exc:
        raise ValueError(f"invalid base64url text: {exc}") from exc


def hmac_sign(alg, key, data):
    """Raw HMAC signature of ``data`` under ``key``."""
    alg = _coerce(alg)
    if alg is Algorithm.NONE:
        raise NoneAlgorithmUsed("the NONE algorithm produces no signature")
    try:
        digest = _HMAC_DIGESTS[alg]
    except KeyError:
        raise ValueError(f"{alg.name} is not an HMAC algorithm") from None
    return hmac.new(_as_bytes(key), _as_bytes(data), digest).digest()


def hmac_verify(alg, key, head, signature):
    """True if ``signature`` (base64url) is the HMAC of ``head`` under ``key``."""
    alg = _coerce(alg)
    if alg is Algorithm.NONE:
        raise NoneAlgorithmUsed("the NONE algorithm has no signature to verify")
    expected = base64url_encode(hmac_sign(alg, key, head)).encode("ascii")
    return hmac.compare_digest(expected, _as_bytes(signature))


def _check_pem_alg(alg: Algorithm) -> None:
    if alg is Algorithm.NONE:
        raise NoneAlgorithmUsed("the NONE algorithm has no key")
    if alg not in _PEM_HASHES:
        raise ValueError(f"{alg.name} is not a PEM key algorithm")


def _key_matches(alg: Algorithm, key) -> bool:
    if alg in _RSA_ALGORITHMS:
        return isinstance(key, (rsa.RSAPrivateKey, rsa.RSAPublicKey))
    return isinstance(key, (ec.EllipticCurvePrivateKey, ec.EllipticCurvePublicKey))


def pem_sign(alg, key, data):
    """Raw RSA signature, or ``r || s`` for ECDSA, of ``data`` under a PEM private key."""
    alg = _coerce(alg)
    _check_pem_alg(alg)
    try:
        private_key = serialization.load_pem_private_key(_as_bytes(key), password=None)
    except (ValueError, TypeError, UnsupportedAlgorithm) as exc:
        raise SigningError(f"cannot load private key: {exc}") from exc
    if not _key_matches(alg, private_key):
        raise SigningError(f"key type does not suit {alg.name}")

    message = _as_bytes(data)
    digest = _PEM_HASHES[alg]()
    if alg in _RSA_ALGORITHMS:
        return private_key.sign(message, padding.PKCS1v15(), digest)

    der = private_key.sign(message, ec.ECDSA(digest))
    r, s = decode_dss_signature(der)
    bn_len = (private_key.curve.key_size + 7) // 8
    if r.bit_length() > bn_len * 8 or s.bit_length() > bn_len * 8:
        raise SigningError("ECDSA signature does not fit the curve size")
    return r.to_bytes(bn_len, "big") + s.to_bytes(bn_len, "big")


def pem_verify(alg, key, head, signature):
    """True if ``signature`` (base64url) signs ``head`` under a PEM public key.

    Raises InvalidKeyError if the key cannot be loaded and VerificationError if
    the key type or the signature's shape does not suit the algorithm.
    """
    alg = _coerce(alg)
    _check_pem_alg(alg)
    try:
        raw = base64url_decode(signature)
    except ValueError as exc:
        raise VerificationError(str(exc)) from exc
    try:
        public_key = serialization.load_pem_public_key(_as_bytes(key))
    except (ValueError, TypeError, UnsupportedAlgorithm) as exc:
        raise InvalidKeyError(f"cannot load public key: {exc}") from exc
    if not _key_matches(alg, public_key):
        raise VerificationError(f"key type does not suit {alg.name}")

    message = _as_bytes(head)
    digest = _PEM_HASHES[alg]()
    try:
        if alg in _RSA_ALGORITHMS:
            public_key.verify(raw, message, padding.PKCS1v15(), digest)
        else:
            bn_len = (public_key.curve.key_size + 7) // 8
            if len(raw) != 2 * bn_len:
                raise VerificationError("ECDSA signature has the wrong length")
            r = int.from_bytes(raw[:bn_len], "big")
            s = int.from_bytes(raw[bn_len:], "big")
            public_key.verify(encode_dss_signature(r, s), message, ec.ECDSA(digest))
    except InvalidSignature:
        return False
    return True


def sign(alg, key, data):
    """Raw signature of ``data`` with whichever family ``alg`` belongs to."""
    alg = _coerce(alg)
    if alg is Algorithm.NONE or alg in _HMAC_DIGESTS:
        return hmac_sign(alg, key, data)
    if alg in _PEM_HASHES:
        return pem_sign(alg, key, data)
    raise ValueError(f"cannot sign with {alg.name}")


def verify(alg, key, head, signature):
    """Check a base64url ``signature`` of ``head`` with whichever family ``alg`` belongs to."""
    alg = _coerce(alg)
    if alg is Algorithm.NONE or alg in _HMAC_DIGESTS:
        return hmac_verify(alg, key, head, signature)
    if alg in _PEM_HASHES:
        return pem_verify(alg, key, head, signature)
    raise ValueError(f"cannot verify with {alg.name}")