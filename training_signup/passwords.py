# passwords.py
import base64, os
from cryptography.exceptions import InvalidKey
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC
from cryptography.hazmat.primitives import hashes

SCHEME = "pbkdf2_sha256"
DEFAULT_ITERATIONS = 200_000

def _kdf(salt: bytes, iterations: int) -> PBKDF2HMAC:
    return PBKDF2HMAC(algorithm=hashes.SHA256(), length=32, salt=salt, iterations=iterations)

def hash_password(password: str, iterations: int = DEFAULT_ITERATIONS) -> str:
    salt = os.urandom(16)
    key = _kdf(salt, iterations).derive(password.encode())
    return "$".join([SCHEME, str(iterations), base64.b64encode(salt).decode(), base64.b64encode(key).decode()])

def verify_password(password: str, encoded: str) -> bool:
    try:
        scheme, iterations, salt_b64, key_b64 = encoded.split("$")
    except ValueError:
        return False
    if scheme != SCHEME:
        return False
    try:
        _kdf(base64.b64decode(salt_b64), int(iterations)).verify(password.encode(), base64.b64decode(key_b64))
    except InvalidKey:
        return False
    return True
