from __future__ import annotations

"""Link di condivisione in sola lettura: snapshot JSON codificato base64 nel frammento URL."""

import base64
import binascii
import json
from urllib.parse import parse_qs, urlsplit

from .models import Snapshot
from .snapshot import snapshot_from_dict, snapshot_to_dict
from .utils import LoaderError


READONLY_MODE = "readonly"
_FRAGMENT_KEY = "data"


class ShareLinkError(LoaderError):
    """Link di condivisione non decodificabile."""


def encode_share_link(snapshot: Snapshot, base_url: str) -> str:
    payload = json.dumps(snapshot_to_dict(snapshot), ensure_ascii=False, separators=(",", ":"))
    encoded = base64.urlsafe_b64encode(payload.encode("utf-8")).decode("ascii")
    base = base_url.split("#", 1)[0]
    separator = "&" if "?" in base else "?"
    return f"{base}{separator}mode={READONLY_MODE}#{_FRAGMENT_KEY}={encoded}"


def is_readonly_link(url: str) -> bool:
    query = parse_qs(urlsplit(url).query)
    return READONLY_MODE in query.get("mode", [])


def decode_share_link(url: str) -> Snapshot:
    """Decodifica lo snapshot contenuto nel frammento di un link in sola lettura."""
    if not is_readonly_link(url):
        raise ShareLinkError("link: modalità sola lettura non indicata")
    fragment = urlsplit(url).fragment
    prefix = f"{_FRAGMENT_KEY}="
    if not fragment.startswith(prefix):
        raise ShareLinkError("link: frammento dati mancante")
    encoded = fragment[len(prefix):]
    try:
        padded = encoded + "=" * (-len(encoded) % 4)
        doc = json.loads(base64.urlsafe_b64decode(padded.encode("ascii")).decode("utf-8"))
        return snapshot_from_dict(doc)
    except (binascii.Error, UnicodeError, ValueError, LoaderError) as exc:
        raise ShareLinkError(f"link: dati non decodificabili ({exc})") from exc
