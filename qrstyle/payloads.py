"""String builders for structured QR payloads: WiFi, vCard, mailto and tel."""

import re
from collections.abc import Mapping
from dataclasses import dataclass, fields
from urllib.parse import quote

from qrstyle.errors import PayloadError
from qrstyle.logging import trace

WIFI_SECURITY = {"WPA": "WPA", "WEP": "WEP", "NOPASS": "nopass"}

_WIFI_SPECIAL = re.compile(r'([\\;,":])')

# Characters encodeURIComponent leaves alone besides alphanumerics
_URI_COMPONENT_SAFE = "-_.!~*'()"


def escape_wifi(value: str) -> str:
    """Backslash-escape the characters the WIFI: scheme treats as syntax."""
    return _WIFI_SPECIAL.sub(r"\\\1", value)


@trace
def build_wifi_payload(ssid: str, password: str = "", security: str = "WPA", hidden: bool = False) -> str:
    """``WIFI:T:<security>;S:<ssid>;P:<password>;H:<true|false>;;``"""
    if not ssid or not ssid.strip():
        raise PayloadError("WiFi SSID cannot be empty")
    try:
        sec = WIFI_SECURITY[security.upper()]
    except KeyError:
        raise PayloadError(f"Unknown WiFi security {security!r} (use WPA, WEP or nopass)") from None
    return (
        f"WIFI:T:{sec};S:{escape_wifi(ssid)};P:{escape_wifi(password or '')};"
        f"H:{'true' if hidden else 'false'};;"
    )


@dataclass(frozen=True)
class Contact:
    first_name: str = ""
    last_name: str = ""
    organization: str = ""
    phone: str = ""
    email: str = ""
    url: str = ""
    address: str = ""

    @classmethod
    def from_mapping(cls, data: Mapping) -> "Contact":
        """Accept snake_case or camelCase keys (``first_name`` / ``firstName``)."""
        values = {}
        for f in fields(cls):
            head, *rest = f.name.split("_")
            camel = head + "".join(part.title() for part in rest)
            value = data.get(f.name, data.get(camel))
            if value is not None:
                values[f.name] = str(value)
        return cls(**values)


@trace
def build_vcard_payload(contact: Contact | Mapping) -> str:
    """vCard 3.0 text with empty fields omitted.

    Raises:
        PayloadError: the contact has neither a name nor an email address.
    """
    if not isinstance(contact, Contact):
        contact = Contact.from_mapping(contact)

    first = contact.first_name.strip()
    last = contact.last_name.strip()
    email = contact.email.strip()
    if not (first or last or email):
        raise PayloadError("At least name or email is required for vCard")

    lines = ["BEGIN:VCARD", "VERSION:3.0"]
    if first or last:
        lines.append("FN:" + " ".join(part for part in (first, last) if part))
    if first:
        lines.append(f"N:{last};{first};;;")
    for tag, value in (
        ("ORG", contact.organization),
        ("TEL", contact.phone),
        ("EMAIL", email),
        ("URL", contact.url),
    ):
        if value.strip():
            lines.append(f"{tag}:{value.strip()}")
    if contact.address.strip():
        lines.append(f"ADR:;;{contact.address.strip()};;;;")
    lines.append("END:VCARD")
    return "\n".join(lines)


@trace
def build_mailto_payload(email: str, subject: str = "", body: str = "") -> str:
    """``mailto:<email>?subject=<enc>&body=<enc>`` with URI-component encoding."""
    if not email or not email.strip():
        raise PayloadError("Email address cannot be empty")
    return (
        f"mailto:{email.strip()}"
        f"?subject={quote(subject or '', safe=_URI_COMPONENT_SAFE)}"
        f"&body={quote(body or '', safe=_URI_COMPONENT_SAFE)}"
    )


@trace
def build_tel_payload(phone: str) -> str:
    if not phone or not phone.strip():
        raise PayloadError("Phone number cannot be empty")
    return f"tel:{phone.strip()}"
