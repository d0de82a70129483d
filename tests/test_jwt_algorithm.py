import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec, rsa

from chatgate.jwt_algorithm import (
    Algorithm,
    InvalidKeyError,
    NoneAlgorithmUsed,
    SigningError,
    VerificationError,
    alg_to_str,
    base64url_decode,
    base64url_encode,
    hmac_sign,
    hmac_verify,
    pem_sign,
    pem_verify,
    sign,
    str_to_alg,
    verify,
)

HEAD = "eyJhbGciOiJIUzI1NiJ9.eyJzdWIiOiJ1c2VyIn0"


def _pems(private_key):
    private_pem = private_key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.PKCS8,
        serialization.NoEncryption(),
    )
    public_pem = private_key.public_key().public_bytes(
        serialization.Encoding.PEM,
        serialization.PublicFormat.SubjectPublicKeyInfo,
    )
    return private_pem, public_pem


@pytest.fixture(scope="module")
def rsa_pems():
    return _pems(rsa.generate_private_key(public_exponent=65537, key_size=2048))


@pytest.fixture(scope="module")
def ec_pems():
    return {
        Algorithm.ES256: _pems(ec.generate_private_key(ec.SECP256R1())),
        Algorithm.ES384: _pems(ec.generate_private_key(ec.SECP384R1())),
        Algorithm.ES512: _pems(ec.generate_private_key(ec.SECP521R1())),
    }


@pytest.mark.parametrize(
    "alg,name",
    [
        (Algorithm.HS256, "HS256"),
        (Algorithm.HS384, "HS384"),
        (Algorithm.HS512, "HS512"),
        (Algorithm.RS256, "RS256"),
        (Algorithm.RS384, "RS384"),
        (Algorithm.RS512, "RS512"),
        (Algorithm.ES256, "ES256"),
        (Algorithm.ES384, "ES384"),
        (Algorithm.ES512, "ES512"),
        (Algorithm.NONE, "NONE"),
        (Algorithm.UNKN, "UNKN"),
        (Algorithm.TERM, "TERM"),
    ],
)
def test_alg_to_str(alg, name):
    assert alg_to_str(alg) == name


def test_str_to_alg_case_insensitive():
    assert str_to_alg("hs256") is Algorithm.HS256
    assert str_to_alg("Es512") is Algorithm.ES512
    assert str_to_alg("none") is Algorithm.NONE


def test_str_to_alg_unknown_and_empty():
    assert str_to_alg("") is Algorithm.UNKN
    assert str_to_alg("HS999") is Algorithm.UNKN
    assert str_to_alg("TERM") is Algorithm.UNKN


def test_alg_str_round_trip():
    for alg in Algorithm:
        if alg in (Algorithm.UNKN, Algorithm.TERM):
            continue
        assert str_to_alg(alg_to_str(alg)) is alg


def test_base64url_uses_url_alphabet_without_padding():
    assert base64url_encode(b"\xfb\xff") == "-_8"
    assert base64url_decode("-_8") == b"\xfb\xff"


def test_base64url_round_trip():
    for data in (b"", b"a", b"ab", b"abc", bytes(range(256))):
        encoded = base64url_encode(data)
        assert "=" not in encoded
        assert base64url_decode(encoded) == data


@pytest.mark.parametrize(
    "alg,size", [(Algorithm.HS256, 32), (Algorithm.HS384, 48), (Algorithm.HS512, 64)]
)
def test_hmac_sign_length_and_verify(alg, size):
    raw = hmac_sign(alg, "secret", HEAD)
    assert len(raw) == size
    assert hmac_verify(alg, "secret", HEAD, base64url_encode(raw))


def test_hmac_verify_rejects_wrong_key_and_data():
    signature = base64url_encode(hmac_sign(Algorithm.HS256, "secret", HEAD))
    assert not hmac_verify(Algorithm.HS256, "password", HEAD, signature)
    assert not hmac_verify(Algorithm.HS256, "secret", HEAD + "x", signature)
    assert not hmac_verify(Algorithm.HS256, "secret", HEAD, signature + "A")


def test_hmac_sign_accepts_name():
    assert hmac_sign("hs384", "secret", HEAD) == hmac_sign(Algorithm.HS384, "secret", HEAD)


def test_hmac_sign_rejects_other_family():
    with pytest.raises(ValueError):
        hmac_sign(Algorithm.RS256, "secret", HEAD)


def test_none_algorithm_signals():
    with pytest.raises(NoneAlgorithmUsed):
        sign(Algorithm.NONE, "", HEAD)
    with pytest.raises(NoneAlgorithmUsed):
        verify(Algorithm.NONE, "", HEAD, "")


@pytest.mark.parametrize("alg", [Algorithm.RS256, Algorithm.RS384, Algorithm.RS512])
def test_rsa_round_trip(alg, rsa_pems):
    private_pem, public_pem = rsa_pems
    raw = pem_sign(alg, private_pem, HEAD)
    assert len(raw) == 256
    signature = base64url_encode(raw)
    assert pem_verify(alg, public_pem, HEAD, signature)
    assert not pem_verify(alg, public_pem, HEAD + "x", signature)


@pytest.mark.parametrize("alg", [Algorithm.ES256, Algorithm.ES384, Algorithm.ES512])
def test_ec_round_trip(alg, ec_pems):
    private_pem, public_pem = ec_pems[alg]
    raw = pem_sign(alg, private_pem, HEAD)
    curve_size = serialization.load_pem_public_key(public_pem).curve.key_size
    assert len(raw) == 2 * ((curve_size + 7) // 8)
    signature = base64url_encode(raw)
    assert verify(alg, public_pem, HEAD, signature)
    assert not verify(alg, public_pem, HEAD + "x", signature)


def test_ec_wrong_signature_length(ec_pems):
    _, public_pem = ec_pems[Algorithm.ES256]
    with pytest.raises(VerificationError):
        pem_verify(Algorithm.ES256, public_pem, HEAD, base64url_encode(b"\x01" * 10))


def test_sign_with_mismatched_key_type(rsa_pems, ec_pems):
    with pytest.raises(SigningError):
        pem_sign(Algorithm.RS256, ec_pems[Algorithm.ES256][0], HEAD)
    with pytest.raises(SigningError):
        pem_sign(Algorithm.ES256, rsa_pems[0], HEAD)


def test_verify_with_mismatched_key_type(rsa_pems, ec_pems):
    private_pem, _ = rsa_pems
    signature = base64url_encode(pem_sign(Algorithm.RS256, private_pem, HEAD))
    with pytest.raises(VerificationError):
        pem_verify(Algorithm.RS256, ec_pems[Algorithm.ES256][1], HEAD, signature)


def test_unloadable_keys():
    with pytest.raises(SigningError):
        pem_sign(Algorithm.RS256, "placeholder", HEAD)
    with pytest.raises(InvalidKeyError):
        pem_verify(Algorithm.RS256, "placeholder", HEAD, "AAAA")


def test_dispatch_rejects_unknown():
    with pytest.raises(ValueError):
        sign(Algorithm.UNKN, "secret", HEAD)
    with pytest.raises(ValueError):
        verify(Algorithm.TERM, "secret", HEAD, "")


def test_dispatch_matches_hmac():
    raw = sign(Algorithm.HS512, "secret", HEAD)
    assert raw == hmac_sign(Algorithm.HS512, "secret", HEAD)
    assert verify("HS512", "secret", HEAD, base64url_encode(raw))