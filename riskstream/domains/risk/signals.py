"""Device, geolocation and network risk proxies, each in [0, 1].

Absent inputs are not zero risk: callers substitute the neutral defaults from
``NeutralDefaults`` when the field is missing.
"""

import ipaddress

from .config import SignalSettings
from .models import GeoLocation


def device_risk(fingerprint: str) -> float:
    """Stable pseudo-reputation derived from the fingerprint's characters."""
    return (sum(ord(ch) for ch in fingerprint) % 100) / 100


def geolocation_risk(geo: GeoLocation, settings: SignalSettings, neutral: float) -> float:
    country = (geo.country or "").upper()
    if country in settings.high_risk_countries:
        return 0.9
    # (0, 0) is the default emitted by broken or spoofed location providers
    if geo.latitude == 0.0 and geo.longitude == 0.0:
        return 0.8
    if not country:
        return neutral
    if country not in settings.home_countries:
        return 0.3
    return 0.1


def network_risk(ip_address: str, settings: SignalSettings) -> float:
    if ip_address in settings.suspicious_ips:
        return 0.9
    try:
        ip = ipaddress.ip_address(ip_address)
    except ValueError:
        return 0.7
    if ip.is_unspecified or ip.is_multicast or ip.is_reserved:
        return 0.8
    if ip.is_loopback or ip.is_link_local:
        return 0.6
    if ip.is_private:
        return 0.2
    return 0.1
