import os
import threading

import pytest
import requests

from osm_cache.exceptions.osm_cache_exceptions import UpstreamError
from osm_cache.models.config import ServerConfig
from osm_cache.models.provider import Provider
from osm_cache.services.http_server_service import HTTPServerService
from osm_cache.services.provider_registry import ProviderRegistry

from conftest import FakeDownloader, PAYLOAD


def start_server(registry, base_path="/", allowed_origins=None):
    config = ServerConfig(port=0, base_path=base_path,
                          allowed_origins=allowed_origins or ["http://localhost:8000"])
    service = HTTPServerService(registry, config, host="127.0.0.1")
    httpd = service.create_server()
    threading.Thread(target=httpd.serve_forever, daemon=True).start()
    return service


@pytest.fixture
def upstreams():
    return {
        'osm': FakeDownloader({(3, 1, 2, 'png'): PAYLOAD, (3, 1, 2, 'jpg'): b"jpeg"}),
        'topo': FakeDownloader({(3, 1, 2, 'png'): b"topo"}),
        'broken': FakeDownloader(error=UpstreamError("boom", status_code=500)),
    }


@pytest.fixture
def registry(tmp_path, upstreams):
    providers = [
        Provider(name=name, url=f"http://{name}/{{z}}/{{x}}/{{y}}.{{format}}",
                 dir=str(tmp_path / name), downloader=downloader)
        for name, downloader in upstreams.items()
    ]
    return ProviderRegistry(providers)


@pytest.fixture
def client():
    session = requests.Session()
    session.trust_env = False
    return session


@pytest.fixture
def server(registry):
    service = start_server(registry, allowed_origins=["https://map.example.com"])
    yield service
    service.stop()


def url(service, path):
    return f"http://127.0.0.1:{service.server_port}{path}"


def test_tile_from_default_provider(server, client, tmp_path):
    response = client.get(url(server, "/3/1/2.png"))

    assert response.status_code == 200
    assert response.content == PAYLOAD
    assert response.headers['Content-Type'] == "image/png"
    assert response.headers['Content-Disposition'] == 'inline; filename="2.png"'
    assert os.path.isfile(tmp_path / "osm" / "3" / "1" / "2.png")


def test_tile_from_named_provider(server, client):
    response = client.get(url(server, "/topo/3/1/2.png"))

    assert response.status_code == 200
    assert response.content == b"topo"


def test_jpeg_token_normalized(server, client, tmp_path):
    response = client.get(url(server, "/osm/3/1/2.JPEG"))

    assert response.status_code == 200
    assert response.content == b"jpeg"
    assert response.headers['Content-Type'] == "image/jpg"
    assert response.headers['Content-Disposition'] == 'inline; filename="2.jpg"'
    assert os.path.isfile(tmp_path / "osm" / "3" / "1" / "2.jpg")


@pytest.mark.parametrize("path", ["/3/a/2.png", "/3/1/2.gif", "/osm/x/1/2.png"])
def test_bad_input_is_client_error(server, client, path):
    assert client.get(url(server, path)).status_code == 400


def test_unknown_provider(server, client):
    response = client.get(url(server, "/nope/3/1/2.png"))

    assert response.status_code == 404
    assert "nope" in response.text


def test_upstream_not_found(server, client):
    assert client.get(url(server, "/9/9/9.png")).status_code == 404


def test_upstream_failure(server, client):
    response = client.get(url(server, "/broken/3/1/2.png"))

    assert response.status_code == 502
    assert response.text.strip() == "boom"


def test_unrouted_paths(server, client):
    assert client.get(url(server, "/3/1/2")).status_code == 404
    assert client.get(url(server, "/a/b/c/d/e.png")).status_code == 404


def test_list_providers(server, client):
    response = client.get(url(server, "/providers"))

    assert response.status_code == 200
    assert response.json() == ["osm", "topo", "broken"]


def test_head_has_headers_only(server, client):
    response = client.head(url(server, "/3/1/2.png"))

    assert response.status_code == 200
    assert response.headers['Content-Length'] == str(len(PAYLOAD))
    assert response.content == b""


def test_cors_allowed_origin(server, client):
    response = client.get(url(server, "/providers"), headers={'Origin': "https://map.example.com"})

    assert response.headers['Access-Control-Allow-Origin'] == "https://map.example.com"
    assert "X-Requested-With" in response.headers['Access-Control-Allow-Headers']


def test_cors_other_origin(server, client):
    response = client.get(url(server, "/providers"), headers={'Origin': "https://evil.example.com"})

    assert 'Access-Control-Allow-Origin' not in response.headers


def test_preflight(server, client):
    response = client.options(url(server, "/3/1/2.png"), headers={'Origin': "https://map.example.com"})

    assert response.status_code == 200
    assert "OPTIONS" in response.headers['Access-Control-Allow-Methods']


def test_base_path(registry, client):
    service = start_server(registry, base_path="/tiles/")
    try:
        assert client.get(url(service, "/tiles/3/1/2.png")).content == PAYLOAD
        assert client.get(url(service, "/tiles/providers")).json() == ["osm", "topo", "broken"]
        assert client.get(url(service, "/3/1/2.png")).status_code == 404
        assert client.get(url(service, "/tilesx/3/1/2.png")).status_code == 404
    finally:
        service.stop()


def test_update_tiles(server, client, upstreams, tmp_path):
    upstreams['topo'].tiles.update({(10, x, y, 'png'): b"t" for x in range(580, 611) for y in range(370, 401)})
    # bounding box around Istanbul at zoom 10 covers a handful of tiles
    params = {'topLat': 41.2, 'topLon': 28.5, 'bottomLat': 40.8, 'bottomLon': 29.5,
              'minZoom': 10, 'maxZoom': 10, 'provider': 'topo'}

    response = client.post(url(server, "/update-tiles"), params=params)

    assert response.status_code == 200
    body = response.json()
    assert body['failed'] == 0
    assert body['total'] == len(body['downloaded']) > 0
    assert all(os.path.isfile(path) for path in body['downloaded'])


def test_update_tiles_invalid_bbox(server, client):
    response = client.post(url(server, "/update-tiles"), params={'topLat': 'north'})

    assert response.status_code == 400
    assert "Invalid bounding box values" in response.text


def test_update_tiles_limit(server, client):
    params = {'topLat': 41.02, 'topLon': 28.98, 'bottomLat': 41.0, 'bottomLon': 29.0}

    response = client.post(url(server, "/update-tiles"), params=params)

    assert response.status_code == 400
    assert "Cannot download more than 250 tiles" in response.text


def test_update_tiles_limit_at_low_zoom(server, client, upstreams):
    # 312 tiles around Istanbul at zoom 13
    params = {'topLat': 41.2, 'topLon': 28.5, 'bottomLat': 40.8, 'bottomLon': 29.5,
              'minZoom': 13, 'maxZoom': 13}

    response = client.post(url(server, "/update-tiles"), params=params)

    assert response.status_code == 400
    assert "Cannot download more than 250 tiles" in response.text
    assert upstreams['osm'].calls == []


def test_update_tiles_zoom_out_of_range(server, client):
    params = {'topLat': 1, 'topLon': 1, 'bottomLat': 0, 'bottomLon': 0, 'minZoom': 1100}

    response = client.post(url(server, "/update-tiles"), params=params)

    assert response.status_code == 400
    assert "Invalid zoom value for minZoom" in response.text


@pytest.fixture
def faulty_server(tmp_path):
    provider = Provider(name="faulty", url="http://faulty/{z}/{x}/{y}.{format}",
                        dir=str(tmp_path / "faulty"), downloader=FakeDownloader(error=RuntimeError("kaboom")))
    service = start_server(ProviderRegistry([provider]))
    yield service
    service.stop()


def test_unexpected_tile_error_is_server_error(faulty_server, client, caplog):
    response = client.get(url(faulty_server, "/3/1/2.png"))

    assert response.status_code == 500
    assert "kaboom" in response.text
    assert "Unexpected error serving" in caplog.text


def test_unexpected_seed_error_is_server_error(faulty_server, client, caplog):
    params = {'topLat': 0.1, 'topLon': 0, 'bottomLat': 0, 'bottomLon': 0.1, 'minZoom': 1, 'maxZoom': 1}

    response = client.post(url(faulty_server, "/update-tiles"), params=params)

    assert response.status_code == 500
    assert "kaboom" in response.text
    assert "Unexpected error seeding" in caplog.text
