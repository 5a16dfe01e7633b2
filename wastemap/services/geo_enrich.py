# wastemap/services/geo_enrich.py
import logging
from typing import Any, Dict, Optional

import httpx

from wastemap.core.geocode import geocode_address, GeocodeError

logger = logging.getLogger(__name__)

def format_address(address: Dict[str, Any]) -> str:
    parts = [address.get(k) for k in ("street", "city", "state", "zip_code")]
    return ", ".join(str(p).strip() for p in parts if p and str(p).strip())

def ensure_coordinates(address: Dict[str, Any], client: Optional[httpx.Client] = None) -> Dict[str, Any]:
    """Fill address["coordinates"] from the geocoder when missing.

    Never raises: a failed lookup leaves the address without coordinates.
    """
    coords = address.get("coordinates") or {}
    if coords.get("lat") is not None and coords.get("lng") is not None:
        return address

    text = format_address(address)
    if not text:
        return address
    try:
        lat, lng = geocode_address(text, client=client)
    except GeocodeError as ex:
        logger.warning("Geocoding failed for %r: %s", text, ex)
        address.pop("coordinates", None)
        return address

    address["coordinates"] = {"lat": lat, "lng": lng}
    return address
