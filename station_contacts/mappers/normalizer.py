import re
from urllib.parse import urlparse

# Extension suffix: "ext 12", "ext. 12", "extension 12", "x12"
_EXTENSION_RE = re.compile(
    r"(?:ext(?:ension)?\.?|x)\s*[:.]?\s*(\d+)\s*$",
    re.IGNORECASE,
)

# Local-parts that mark template/placeholder addresses
PLACEHOLDER_LOCAL_PARTS = (
    "example", "test", "sample", "noreply", "no-reply", "donotreply", "placeholder",
)

# Image/asset names that look like emails (logo@2x.png)
_ASSET_SUFFIXES = (".png", ".jpg", ".jpeg", ".gif", ".webp", ".svg", ".css", ".js")

_SOCIAL_NETWORK_RE = re.compile(
    r"(facebook|twitter|instagram|youtube|linkedin|tiktok)",
    re.IGNORECASE,
)

# Social networks, reference sites and the regulator itself
_NON_STATION_RE = re.compile(
    r"(facebook|twitter|instagram|youtube|linkedin|tiktok|wikipedia|wikimedia"
    r"|fcc\.gov|rabbitears|imdb|archive\.org)",
    re.IGNORECASE,
)

MAP_SERVICE_MARKERS = (
    "geohack", "google.com/maps", "maps.google.", "openstreetmap.org", "mapquest.com",
)


def phone_digits(phone: str) -> str:
    return re.sub(r"\D", "", phone)


def normalize_phone(raw: str | None) -> str | None:
    """Canonicalize a US phone number to "(AAA) BBB-CCCC[ ext. N]".

    Returns None for anything that is not 10 digits, or 11 digits with a
    leading country code 1.
    """
    if not raw:
        return None

    text = raw.strip()
    extension = None
    match = _EXTENSION_RE.search(text)
    if match:
        extension = match.group(1)
        text = text[: match.start()]

    digits = phone_digits(text)
    if len(digits) == 11 and digits.startswith("1"):
        digits = digits[1:]
    if len(digits) != 10:
        return None

    formatted = f"({digits[:3]}) {digits[3:6]}-{digits[6:]}"
    return f"{formatted} ext. {extension}" if extension else formatted


def is_placeholder_email(email: str) -> bool:
    local = email.split("@", 1)[0].lower()
    return any(local.endswith(word) for word in PLACEHOLDER_LOCAL_PARTS)


def normalize_email(raw: str | None) -> str | None:
    """Lower-case an email, dropping placeholders and asset file names."""
    if not raw:
        return None
    email = raw.strip().lower()
    if "@" not in email:
        return None
    if is_placeholder_email(email):
        return None
    if email.endswith(_ASSET_SUFFIXES):
        return None
    return email


def is_social_url(url: str) -> bool:
    return bool(_SOCIAL_NETWORK_RE.search(url))


def is_non_station_url(url: str) -> bool:
    return bool(_NON_STATION_RE.search(url))


def is_map_service_url(url: str) -> bool:
    lower = url.lower()
    return any(marker in lower for marker in MAP_SERVICE_MARKERS)


def clean_url(url: str | None) -> str | None:
    """Drop the fragment, add a scheme if missing, and validate."""
    if not url:
        return None

    url = url.split("#")[0].strip()
    if url.startswith("//"):
        url = "https:" + url
    elif not url.startswith("http"):
        url = "https://" + url

    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        return None
    return url


def is_station_website(url: str) -> bool:
    """An absolute http(s) URL outside the non-station and map-service domains."""
    parsed = urlparse(url)
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        return False
    return not is_non_station_url(url) and not is_map_service_url(url)
