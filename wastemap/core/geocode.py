# wastemap/core/geocode.py
from __future__ import annotations
from typing import Optional, Tuple

import httpx

from wastemap.core.config import settings

# Global timeout
_CLIENT = httpx.Client(timeout=12)

class GeocodeError(Exception):
    pass

def geocode_address(address: str, client: Optional[httpx.Client] = None) -> Tuple[float, float]:
    """
    Returns (lat, lng). Raises GeocodeError on failure.
    """
    a = (address or "").strip()
    if not a:
        raise GeocodeError("Empty address")
    client = client or _CLIENT

    try:
        if settings.geocoder.lower() == "opencage":
            if not settings.opencage_key:
                raise GeocodeError("OPENCAGE_KEY not set")
            r = client.get(
                "https://api.opencagedata.com/geocode/v1/json",
                params={"q": a, "key": settings.opencage_key, "limit": 1},
            )
            r.raise_for_status()
            js = r.json()
            if not js.get("results"):
                raise GeocodeError("No results")
            g = js["results"][0]["geometry"]
            return float(g["lat"]), float(g["lng"])

        # Default: Nominatim (no key). Their policy wants a UA with contact.
        headers = {"User-Agent": f"WasteMap/1.0 (+{settings.admin_contact})"}
        r = client.get(
            "https://nominatim.openstreetmap.org/search",
            params={"q": a, "format": "json", "limit": 1},
            headers=headers,
        )
        r.raise_for_status()
        js = r.json()
        if not js:
            raise GeocodeError("No results")
        return float(js[0]["lat"]), float(js[0]["lon"])
    except httpx.HTTPError as ex:
        raise GeocodeError(f"Geocoder request failed: {ex}") from ex
    except (ValueError, KeyError, IndexError, TypeError, AttributeError) as ex:
        # non-JSON body or a result without coordinates
        raise GeocodeError(f"Unexpected geocoder response: {ex!r}") from ex
