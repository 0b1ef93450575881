from typing import Mapping, Optional


def parse_user_agent(user_agent: Optional[str]) -> dict:
    if not user_agent:
        return {"device": "Unknown", "browser": "Unknown", "os": "Unknown"}
    ua = user_agent.lower()

    os_name = "Unknown"
    if "windows" in ua:
        os_name = "Windows"
    elif "android" in ua:
        os_name = "Android"
    elif "iphone" in ua or "ipad" in ua or " ios" in ua:
        os_name = "iOS"
    elif "mac os" in ua or "macos" in ua:
        os_name = "macOS"
    elif "linux" in ua:
        os_name = "Linux"

    # Order matters: Edge and Opera also advertise Chrome
    browser = "Unknown"
    if "edg" in ua:
        browser = "Edge"
    elif "opr" in ua or "opera" in ua:
        browser = "Opera"
    elif "chrome" in ua:
        browser = "Chrome"
    elif "firefox" in ua:
        browser = "Firefox"
    elif "safari" in ua:
        browser = "Safari"

    device = "Desktop"
    if "tablet" in ua or "ipad" in ua:
        device = "Tablet"
    elif "mobile" in ua:
        device = "Mobile"

    return {"device": device, "browser": browser, "os": os_name}


def extract_metadata(headers: Mapping[str, str], client_host: Optional[str] = None) -> dict:
    """Client ip, user agent and parsed device info from request headers."""
    forwarded = headers.get("x-forwarded-for")
    ip = (forwarded.split(",")[0].strip() if forwarded else None) or headers.get("x-real-ip") or client_host
    user_agent = headers.get("user-agent")
    meta = {"ip": ip, "user_agent": user_agent[:512] if user_agent else None, "country": None}
    meta.update(parse_user_agent(user_agent))
    return meta
