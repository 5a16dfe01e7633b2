import httpx

from wastemap.services.geo_enrich import ensure_coordinates, format_address

ADDRESS = {"street": "12 Moi Avenue", "city": "Nairobi", "state": "Nairobi", "zip_code": "00100"}


def _client(handler):
    return httpx.Client(transport=httpx.MockTransport(handler))


def test_format_address_skips_blanks():
    assert format_address({"street": " 5 Lane ", "city": "", "state": "Kisumu"}) == "5 Lane, Kisumu"

def test_fills_coordinates_from_nominatim():
    seen = {}

    def handler(request: httpx.Request):
        seen["q"] = request.url.params["q"]
        seen["ua"] = request.headers["user-agent"]
        return httpx.Response(200, json=[{"lat": "-1.2841", "lon": "36.8155"}])

    out = ensure_coordinates(dict(ADDRESS), client=_client(handler))
    assert out["coordinates"] == {"lat": -1.2841, "lng": 36.8155}
    assert seen["q"] == "12 Moi Avenue, Nairobi, Nairobi, 00100"
    assert seen["ua"].startswith("WasteMap/1.0")

def test_existing_coordinates_untouched():
    def handler(request):
        raise AssertionError("geocoder should not be called")

    addr = {**ADDRESS, "coordinates": {"lat": 1.0, "lng": 2.0}}
    assert ensure_coordinates(addr, client=_client(handler))["coordinates"] == {"lat": 1.0, "lng": 2.0}

def test_failures_leave_address_without_coordinates():
    def empty(request):
        return httpx.Response(200, json=[])

    def down(request):
        return httpx.Response(503)

    assert "coordinates" not in ensure_coordinates(dict(ADDRESS), client=_client(empty))
    assert "coordinates" not in ensure_coordinates(dict(ADDRESS), client=_client(down))

    def throttled(request):
        return httpx.Response(200, text="<html>rate limited</html>")

    def no_coordinates(request):
        return httpx.Response(200, json=[{"display_name": "Nairobi"}])

    assert "coordinates" not in ensure_coordinates(dict(ADDRESS), client=_client(throttled))
    assert "coordinates" not in ensure_coordinates(dict(ADDRESS), client=_client(no_coordinates))
