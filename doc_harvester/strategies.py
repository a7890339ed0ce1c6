"""Request strategy catalog and per-URL strategy ordering.

Each strategy is a fixed header profile that imitates a particular client.
Hosts that reject one profile often accept another, so every URL gets the
full catalog, ordered by which profiles tend to work for its site family.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Sequence
from urllib.parse import urlparse

GENERIC_REFERER = "https://www.google.com/"

WATERMARK_MARKER = "OverlayWatermark"
DEFAULT_GOVERNMENT_MARKERS = ("publicaccess", "hillsclerk")

USER_AGENTS = [
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Edge/120.0.0.0",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/17.0 Safari/605.1.15",
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64; rv:120.0) Gecko/20100101 Firefox/120.0",
]

MOBILE_USER_AGENT = (
    "Mozilla/5.0 (iPhone; CPU iPhone OS 17_0 like Mac OS X) AppleWebKit/605.1.15 "
    "(KHTML, like Gecko) Version/17.0 Mobile/15E148 Safari/604.1"
)

_NAVIGATE = {
    "Sec-Fetch-Dest": "document",
    "Sec-Fetch-Mode": "navigate",
}


@dataclass(frozen=True)
class StrategyProfile:
    name: str
    headers: Dict[str, str] = field(default_factory=dict)
    uses_dynamic_referer: bool = False
    uses_origin: bool = False
    sends_referer: bool = True


STRATEGIES: Dict[str, StrategyProfile] = {
    "standard": StrategyProfile(
        name="standard",
        headers={
            "Accept": "application/pdf,application/octet-stream,*/*",
            "Accept-Language": "en-US,en;q=0.9",
            "Cache-Control": "no-cache",
        },
    ),
    "corporate": StrategyProfile(
        name="corporate",
        headers={
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/webp,"
                      "image/apng,*/*;q=0.8,application/signed-exchange;v=b3;q=0.7",
            "Accept-Language": "en-US,en;q=0.9",
            "Accept-Encoding": "gzip, deflate, br",
            "Cache-Control": "max-age=0",
            **_NAVIGATE,
            "Sec-Fetch-Site": "same-origin",
            "Upgrade-Insecure-Requests": "1",
        },
        uses_dynamic_referer=True,
    ),
    "direct": StrategyProfile(
        name="direct",
        headers={
            "Accept": "application/pdf,application/msword,"
                      "application/vnd.openxmlformats-officedocument.wordprocessingml.document,*/*",
            "Accept-Language": "en-US,en;q=0.9",
            "Cache-Control": "no-cache",
            "Pragma": "no-cache",
        },
        sends_referer=False,
    ),
    "mobile": StrategyProfile(
        name="mobile",
        headers={
            "Accept": "*/*",
            "Accept-Language": "en-US,en;q=0.9",
            "Cache-Control": "no-cache",
            "User-Agent": MOBILE_USER_AGENT,
        },
    ),
    "form_automation": StrategyProfile(
        name="form_automation",
        headers={
            "Accept": "application/pdf,application/octet-stream,*/*",
            "Accept-Language": "en-US,en;q=0.9",
            "Cache-Control": "no-cache",
            **_NAVIGATE,
            "Sec-Fetch-Site": "same-origin",
        },
    ),
    "government": StrategyProfile(
        name="government",
        headers={
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,application/pdf,*/*;q=0.8",
            "Accept-Language": "en-US,en;q=0.9",
            "Accept-Encoding": "gzip, deflate, br",
            "Cache-Control": "max-age=0",
            **_NAVIGATE,
            "Sec-Fetch-Site": "cross-site",
            "Upgrade-Insecure-Requests": "1",
        },
    ),
    "watermark": StrategyProfile(
        name="watermark",
        headers={
            "Accept": "application/pdf,application/octet-stream,*/*",
            "Accept-Language": "en-US,en;q=0.9",
            "Cache-Control": "no-cache",
            **_NAVIGATE,
            "Sec-Fetch-Site": "same-origin",
            "Upgrade-Insecure-Requests": "1",
        },
        uses_dynamic_referer=True,
        uses_origin=True,
    ),
    "aggressive": StrategyProfile(
        name="aggressive",
        headers={"Accept": "*/*"},
        sends_referer=False,
    ),
}

WATERMARK_ORDER = ["watermark", "form_automation", "government", "standard",
                   "corporate", "direct", "mobile", "aggressive"]
GOVERNMENT_ORDER = ["government", "form_automation", "watermark", "standard",
                    "corporate", "direct", "mobile", "aggressive"]
FORM_ORDER = ["form_automation", "government", "standard", "corporate",
              "direct", "mobile", "aggressive"]
DEFAULT_ORDER = ["standard", "form_automation", "corporate", "direct",
                 "mobile", "government", "aggressive"]


def is_watermark_url(url: str) -> bool:
    return WATERMARK_MARKER in url


def is_government_url(url: str, markers: Sequence[str] = DEFAULT_GOVERNMENT_MARKERS) -> bool:
    return any(m in url for m in markers)


def select_strategies(url: str, government_markers: Sequence[str] = DEFAULT_GOVERNMENT_MARKERS) -> List[str]:
    """Return strategy names to try for *url*, most likely to succeed first."""
    if is_watermark_url(url):
        return list(WATERMARK_ORDER)
    if is_government_url(url, government_markers):
        return list(GOVERNMENT_ORDER)
    if "form" in url or "automation" in url:
        return list(FORM_ORDER)
    return list(DEFAULT_ORDER)


def timeout_for(url: str, default: float = 45.0, slow: float = 90.0,
                government_markers: Sequence[str] = DEFAULT_GOVERNMENT_MARKERS) -> float:
    """Watermark and government portals render documents on demand and are slow."""
    if is_watermark_url(url) or is_government_url(url, government_markers):
        return slow
    return default


def build_headers(profile: StrategyProfile, url: str, user_agent: str) -> Dict[str, str]:
    """Headers for one request: the profile's set, a user agent, then Referer/Origin."""
    headers = {"User-Agent": user_agent}
    headers.update(profile.headers)

    parsed = urlparse(url)
    origin = f"{parsed.scheme}://{parsed.netloc}"

    if profile.sends_referer:
        headers["Referer"] = origin + "/" if profile.uses_dynamic_referer else GENERIC_REFERER
    if profile.uses_origin:
        headers["Origin"] = origin
    return headers
