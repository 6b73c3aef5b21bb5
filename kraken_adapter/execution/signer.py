import base64, hashlib, hmac
from typing import Mapping
from urllib.parse import urlencode


def sign(path: str, form: Mapping[str, object], secret: str) -> str:
    """API-Sign header: HMAC-SHA512 over path + SHA256(nonce + body), keyed with the decoded secret."""
    body = urlencode(form)
    digest = hashlib.sha256((str(form["nonce"]) + body).encode()).digest()
    mac = hmac.new(base64.b64decode(secret), path.encode() + digest, hashlib.sha512)
    return base64.b64encode(mac.digest()).decode()
