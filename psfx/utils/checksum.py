"""
psfx Checksum Utility
Hashes payloads and reconstructed files by the algorithm named in the manifest.
"""
import hashlib
from typing import Union

from ..errors import UnsupportedHashAlgorithmError

# Manifest spelling -> hashlib name
ALGORITHMS = {
    'md5': 'md5',
    'sha1': 'sha1',
    'sha-1': 'sha1',
    'sha256': 'sha256',
    'sha-256': 'sha256',
    'sha384': 'sha384',
    'sha512': 'sha512',
}


def resolve_algorithm(algorithm: str) -> str:
    """Map a manifest algorithm name to a hashlib name, or raise"""
    name = ALGORITHMS.get((algorithm or '').strip().lower())
    if name is None:
        raise UnsupportedHashAlgorithmError(f"Unsupported hash algorithm: {algorithm!r}")
    return name


def calculate_bytes_checksum(data: Union[bytes, str], algorithm: str = 'sha256') -> str:
    """
    Calculates the checksum of a byte string or text string.

    Args:
        data: The input data (bytes or string)
        algorithm: Manifest algorithm name, e.g. "SHA256"

    Returns:
        str: The lowercase hexadecimal hash string
    """
    if isinstance(data, str):
        data = data.encode('utf-8')

    digest = hashlib.new(resolve_algorithm(algorithm))
    digest.update(data)
    return digest.hexdigest()


def calculate_file_checksum(file_path: str, algorithm: str = 'sha256') -> str:
    """
    Calculates the checksum of a file efficiently.
    """
    digest = hashlib.new(resolve_algorithm(algorithm))
    with open(file_path, "rb") as f:
        # Read in 64kb chunks to save memory
        for byte_block in iter(lambda: f.read(65536), b""):
            digest.update(byte_block)
    return digest.hexdigest()


def checksum_matches(data: bytes, algorithm: str, expected: str) -> bool:
    return calculate_bytes_checksum(data, algorithm) == expected.strip().lower()


__all__ = [
    "resolve_algorithm",
    "calculate_bytes_checksum",
    "calculate_file_checksum",
    "checksum_matches",
]
