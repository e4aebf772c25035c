# chat_common/cipher.py

"""
Textbook RSA used to protect every line of chat traffic.

The transform is deliberately unpadded and deterministic: the same plaintext
block under the same public key always yields the same cipher block. Key
material comes from the `cryptography` RSA generator; the exponentiation and
the string block encoding are done here on plain integers.
"""

import logging
from typing import List, NamedTuple

from cryptography.hazmat.primitives.asymmetric import rsa

logger = logging.getLogger(__name__)

PUBLIC_EXPONENT = 65537
DEFAULT_KEY_SIZE = 1024
BLOCK_DELIMITER = " "

# Prepended to every plaintext chunk so leading zero bytes survive int conversion.
_BLOCK_MARKER = 0x01


class MalformedCiphertext(ValueError):
    """Raised when an encrypted line cannot be turned back into text."""


class PublicKey(NamedTuple):
    exponent: int
    modulus: int


class KeyPair(NamedTuple):
    public_exponent: int
    modulus: int
    private_exponent: int

    @property
    def public_key(self) -> PublicKey:
        return PublicKey(self.public_exponent, self.modulus)


def block_size(modulus: int) -> int:
    """
    Number of plaintext bytes carried by one cipher block.

    One byte of the block is taken by the marker, and the whole block must
    stay strictly below the modulus.
    """
    return (modulus.bit_length() - 1) // 8 - 1


class KeyPairEngine:
    """
    Generates key pairs of a fixed modulus size and runs the RSA transform.
    """
    def __init__(self, key_size: int = DEFAULT_KEY_SIZE):
        self.key_size = key_size

    def generate(self) -> KeyPair:
        private_key = rsa.generate_private_key(
            public_exponent=PUBLIC_EXPONENT,
            key_size=self.key_size,
        )
        numbers = private_key.private_numbers()
        key_pair = KeyPair(
            public_exponent=numbers.public_numbers.e,
            modulus=numbers.public_numbers.n,
            private_exponent=numbers.d,
        )
        logger.debug("Generated %d-bit key pair.", key_pair.modulus.bit_length())
        return key_pair

    @staticmethod
    def encrypt(value: int, key: PublicKey) -> int:
        if not 0 <= value < key.modulus:
            raise ValueError("Plaintext block does not fit under the modulus")
        return pow(value, key.exponent, key.modulus)

    @staticmethod
    def decrypt(value: int, key_pair: KeyPair) -> int:
        if not 0 <= value < key_pair.modulus:
            raise MalformedCiphertext("Cipher block does not fit under the modulus")
        return pow(value, key_pair.private_exponent, key_pair.modulus)

    def encrypt_string(self, text: str, key: PublicKey) -> str:
        """
        Encrypts a string into one line of space-separated decimal blocks.
        The empty string encrypts to the empty line.
        """
        data = text.encode('utf-8')
        size = block_size(key.modulus)
        if size < 1:
            raise ValueError("Modulus is too small to carry any plaintext")

        blocks: List[str] = []
        for start in range(0, len(data), size):
            chunk = bytes([_BLOCK_MARKER]) + data[start:start + size]
            value = int.from_bytes(chunk, 'big')
            blocks.append(str(self.encrypt(value, key)))
        return BLOCK_DELIMITER.join(blocks)

    def decrypt_string(self, line: str, key_pair: KeyPair) -> str:
        """
        Reverses encrypt_string.

        Raises:
            MalformedCiphertext: if a block is not a decimal number under the
                modulus, does not decrypt to a marked chunk, or the joined
                bytes are not valid UTF-8.
        """
        if not line:
            return ""

        size = block_size(key_pair.modulus)
        data = bytearray()
        for token in line.split(BLOCK_DELIMITER):
            if not (token.isascii() and token.isdigit()):
                raise MalformedCiphertext(f"Invalid cipher block: {token[:32]!r}")

            value = self.decrypt(int(token), key_pair)
            chunk = value.to_bytes((value.bit_length() + 7) // 8, 'big')
            if not chunk or chunk[0] != _BLOCK_MARKER or len(chunk) - 1 > size:
                raise MalformedCiphertext("Cipher block did not decrypt to a valid chunk")
            data += chunk[1:]

        try:
            return data.decode('utf-8')
        except UnicodeDecodeError as e:
            raise MalformedCiphertext("Decrypted bytes are not valid UTF-8") from e
