"""Tests for authenticated encryption."""

import pytest
from nacl.bindings import crypto_aead_xchacha20poly1305_ietf_decrypt

from emcipher.crypto import encrypt, decrypt
from emcipher.types import AuthenticationError, MalformedInputError
from .test_vectors import TEST_KEY, TEST_MESSAGES


def _flip(data: bytes, index: int, bit: int = 0) -> bytes:
    flipped = bytearray(data)
    flipped[index] ^= 1 << bit
    return bytes(flipped)


class TestEncryption:
    """Test message encryption."""

    def test_output_sizes(self) -> None:
        """Nonce is 24 bytes, ciphertext is plaintext plus a 16-byte tag."""
        nonce, ciphertext = encrypt(TEST_KEY, b"Hello", b"v=1")

        assert len(nonce) == 24
        assert len(ciphertext) == len(b"Hello") + 16

    def test_fresh_nonce_per_call(self) -> None:
        """Every call draws a new random nonce."""
        nonces = {encrypt(TEST_KEY, b"same", b"")[0] for _ in range(100)}
        assert len(nonces) == 100

    def test_is_xchacha20_poly1305(self) -> None:
        """Ciphertexts decrypt with libsodium's XChaCha20-Poly1305 directly."""
        nonce, ciphertext = encrypt(TEST_KEY, b"interop", b"aad")

        plaintext = crypto_aead_xchacha20poly1305_ietf_decrypt(ciphertext, b"aad", nonce, TEST_KEY)
        assert plaintext == b"interop"

    @pytest.mark.parametrize("key", [b"", bytes(16), bytes(33)])
    def test_invalid_key(self, key: bytes) -> None:
        with pytest.raises(MalformedInputError, match="32 bytes"):
            encrypt(key, b"x", b"")


class TestDecryption:
    """Test message decryption and authentication."""

    @pytest.mark.parametrize("message_key,message", TEST_MESSAGES.items())
    def test_round_trip(self, message_key: str, message: str) -> None:
        """Each test message decrypts back to the original."""
        aad = f"v=1;case={message_key}".encode("utf-8")
        nonce, ciphertext = encrypt(TEST_KEY, message.encode("utf-8"), aad)

        plaintext = decrypt(TEST_KEY, nonce, ciphertext, aad)
        assert plaintext.decode("utf-8") == message, f"Message mismatch for {message_key}"

    def test_empty_aad(self) -> None:
        nonce, ciphertext = encrypt(TEST_KEY, b"no aad", b"")
        assert decrypt(TEST_KEY, nonce, ciphertext, b"") == b"no aad"

    def test_binary_plaintext(self) -> None:
        data = bytes(range(256))
        nonce, ciphertext = encrypt(TEST_KEY, data, b"bin")
        assert decrypt(TEST_KEY, nonce, ciphertext, b"bin") == data

    def test_ciphertext_bit_flips(self) -> None:
        """Flipping any bit of the ciphertext fails authentication."""
        nonce, ciphertext = encrypt(TEST_KEY, b"attack at dawn", b"v=1")

        for index in range(len(ciphertext)):
            for bit in (0, 7):
                with pytest.raises(AuthenticationError):
                    decrypt(TEST_KEY, nonce, _flip(ciphertext, index, bit), b"v=1")

    def test_nonce_bit_flips(self) -> None:
        """Flipping any bit of the nonce fails authentication."""
        nonce, ciphertext = encrypt(TEST_KEY, b"attack at dawn", b"v=1")

        for index in range(len(nonce)):
            with pytest.raises(AuthenticationError):
                decrypt(TEST_KEY, _flip(nonce, index), ciphertext, b"v=1")

    def test_aad_bit_flips(self) -> None:
        """Flipping any bit of the AAD fails authentication."""
        aad = b"v=1;ctr=1"
        nonce, ciphertext = encrypt(TEST_KEY, b"attack at dawn", aad)

        for index in range(len(aad)):
            with pytest.raises(AuthenticationError):
                decrypt(TEST_KEY, nonce, ciphertext, _flip(aad, index))

    def test_missing_aad(self) -> None:
        nonce, ciphertext = encrypt(TEST_KEY, b"msg", b"v=1")
        with pytest.raises(AuthenticationError):
            decrypt(TEST_KEY, nonce, ciphertext, b"")

    def test_wrong_key(self) -> None:
        nonce, ciphertext = encrypt(TEST_KEY, b"msg", b"v=1")
        with pytest.raises(AuthenticationError):
            decrypt(bytes(32), nonce, ciphertext, b"v=1")

    def test_truncated_ciphertext(self) -> None:
        """Dropping trailing bytes fails authentication."""
        nonce, ciphertext = encrypt(TEST_KEY, b"message", b"")
        with pytest.raises(AuthenticationError):
            decrypt(TEST_KEY, nonce, ciphertext[:-1], b"")

    @pytest.mark.parametrize("nonce", [b"", bytes(12), bytes(23), bytes(25)])
    def test_invalid_nonce_length(self, nonce: bytes) -> None:
        _, ciphertext = encrypt(TEST_KEY, b"message", b"")
        with pytest.raises(MalformedInputError, match="Nonce"):
            decrypt(TEST_KEY, nonce, ciphertext, b"")

    def test_ciphertext_shorter_than_tag(self) -> None:
        with pytest.raises(MalformedInputError, match="Ciphertext"):
            decrypt(TEST_KEY, bytes(24), bytes(15), b"")

    def test_invalid_key(self) -> None:
        nonce, ciphertext = encrypt(TEST_KEY, b"message", b"")
        with pytest.raises(MalformedInputError, match="Message key"):
            decrypt(bytes(31), nonce, ciphertext, b"")
