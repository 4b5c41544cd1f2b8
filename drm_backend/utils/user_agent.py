"""
User-Agent parsing for request logging.
Extracts a browser, OS and platform class from a UA string with ordered regex tables.
"""

import re
from typing import List, NamedTuple, Optional, Pattern, Tuple


class ParsedUserAgent(NamedTuple):
    browser: Optional[str]
    platform: Optional[str]
    os: Optional[str]
    raw: Optional[str]


def _table(entries: List[Tuple[str, str]]) -> List[Tuple[Pattern, str]]:
    return [(re.compile(pattern), name) for pattern, name in entries]


# First match wins, so more specific browsers come first
BROWSER_PATTERNS = _table([
    (r"edge|edg/|edgios|edga", "Edge"),
    (r"samsungbrowser", "Samsung Internet"),
    (r"opr/|opera|opios", "Opera"),
    (r"yabrowser", "Yandex Browser"),
    (r"vivaldi", "Vivaldi"),
    (r"chrome|crios|crmo", "Chrome"),
    (r"firefox|fxios|fennec", "Firefox"),
    (r"safari|applewebkit(?!.*chrome)", "Safari"),
    (r"msie|trident.*rv", "Internet Explorer"),
    (r"whale", "Whale"),
    (r"ucbrowser|ucmini|uc web", "UC Browser"),
    (r"baidubrowser", "Baidu Browser"),
    (r"duckduckgo", "DuckDuckGo"),
    (r"brave", "Brave"),
    (r"silk", "Amazon Silk"),
])

OS_PATTERNS = _table([
    (r"windows nt 10", "Windows 10"),
    (r"windows nt 6\.3", "Windows 8.1"),
    (r"windows nt 6\.2", "Windows 8"),
    (r"windows nt 6\.1", "Windows 7"),
    (r"windows nt 6\.0", "Windows Vista"),
    (r"windows nt 5\.2", "Windows Server 2003/XP x64"),
    (r"windows nt 5\.1|windows xp", "Windows XP"),
    (r"windows nt 5\.0", "Windows 2000"),
    (r"windows phone", "Windows Phone"),
    (r"iphone|ipad|ipod", "iOS"),
    (r"mac os x", "macOS"),
    (r"android", "Android"),
    (r"cros", "ChromeOS"),
    (r"ubuntu", "Ubuntu"),
    (r"debian", "Debian"),
    (r"fedora", "Fedora"),
    (r"linux", "Linux"),
    (r"freebsd", "FreeBSD"),
    (r"openbsd", "OpenBSD"),
])

PLATFORM_PATTERNS = _table([
    (r"ipad|android(?!.*mobile)|tablet", "Tablet"),
    (r"mobile|iphone|ipod", "Mobile"),
    (r"xbox", "Xbox"),
    (r"playstation", "PlayStation"),
    (r"nintendo", "Nintendo"),
    (r"smart-tv|smarttv|google tv|appletv|apple tv|web0s|tizen", "Smart TV"),
    (r"windows|mac os|linux|cros|freebsd|openbsd", "Desktop"),
])


def _first_match(table: List[Tuple[Pattern, str]], ua: str) -> Optional[str]:
    for pattern, name in table:
        if pattern.search(ua):
            return name
    return None


def parse_user_agent(user_agent: Optional[str]) -> ParsedUserAgent:
    if not user_agent:
        return ParsedUserAgent(None, None, None, None)
    ua = user_agent.lower()
    return ParsedUserAgent(
        browser=_first_match(BROWSER_PATTERNS, ua),
        platform=_first_match(PLATFORM_PATTERNS, ua),
        os=_first_match(OS_PATTERNS, ua),
        raw=user_agent,
    )


def format_user_agent(user_agent: Optional[str]) -> str:
    """'Chrome • Desktop • Windows 10' style summary."""
    parsed = parse_user_agent(user_agent)
    parts = [p for p in (parsed.browser, parsed.platform) if p]
    if parsed.os and parsed.os != parsed.platform:
        parts.append(parsed.os)
    if parts:
        return " • ".join(parts)
    return "Unknown" if user_agent else "N/A"


def get_short_user_agent_info(user_agent: Optional[str]) -> str:
    parsed = parse_user_agent(user_agent)
    if parsed.browser and parsed.platform:
        return f"{parsed.browser} ({parsed.platform})"
    if parsed.browser or parsed.platform:
        return parsed.browser or parsed.platform
    return "Unknown" if user_agent else "N/A"
