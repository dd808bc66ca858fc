import pytest
from datetime import timedelta
from fastapi.testclient import TestClient

from bromley_bins.app import TEST_BINS_FOR_TOMORROW, create_app
from bromley_bins.config import Settings
from bromley_bins.data_fetchers.bromley_bin_data import FETCH_ERROR, NO_ID_ERROR
from bromley_bins.scheduler import PREWARM_JOB_ID


@pytest.fixture
def page_fetcher(make_page_fetcher, results_page):
    return make_page_fetcher(results_page)


@pytest.fixture
def app(page_fetcher, fake_clock):
    return create_app(settings=Settings(), page_fetcher=page_fetcher, start_scheduler=False, clock=fake_clock)


@pytest.fixture
def client(app):
    return TestClient(app)


def test_legacy_healthcheck(client):
    assert client.get("/healthcheck").json() == {"status": "ok"}


def test_healthcheck_reports_empty_cache(client):
    assert client.get("/api/v1/healthcheck").json() == {"status": "error", "message": "No cache data found"}


def test_healthcheck_reports_cache_size(client):
    client.get("/api/v1/bin/123")
    assert client.get("/api/v1/healthcheck").json() == {"status": "ok", "cacheSize": 1}


def test_bin_details(client, page_fetcher):
    response = client.get("/api/v1/bin/123")
    assert response.status_code == 200
    body = response.json()
    assert list(body) == ["Food Waste", "Paper & Cardboard"]
    assert body["Food Waste"]["nextCollection"] == "Monday, 5th May"
    assert body["Food Waste"]["nextCollectionUTC"] == "2025-05-04T23:00:00.000Z"
    assert page_fetcher.calls[0][0].endswith("/waste/123")


def test_bin_details_served_from_cache(client, page_fetcher, fake_clock):
    first = client.get("/api/v1/bin/123").content
    fake_clock.advance(timedelta(minutes=30))
    second = client.get("/api/v1/bin/123").content
    assert first == second
    assert len(page_fetcher.calls) == 1


def test_bin_details_invalid_id(client, page_fetcher):
    response = client.get("/api/v1/bin/abc")
    assert response.status_code == 200
    assert response.json() == {"error": NO_ID_ERROR, "id": "abc"}
    assert page_fetcher.calls == []


def test_bin_details_fetch_failure_is_not_cached(make_page_fetcher, fake_clock):
    failing = make_page_fetcher(RuntimeError("net::ERR_NAME_NOT_RESOLVED"))
    client = TestClient(create_app(settings=Settings(), page_fetcher=failing, start_scheduler=False, clock=fake_clock))

    body = client.get("/api/v1/bin/123").json()

    assert body["error"] == FETCH_ERROR
    assert body["id"] == 123
    assert "ERR_NAME_NOT_RESOLVED" in body["cause"]
    assert client.get("/api/v1/cache").json() == {}


def test_bin_details_overlong_id(client, page_fetcher):
    bin_id = "9" * 5000
    response = client.get(f"/api/v1/bin/{bin_id}")
    assert response.status_code == 200
    assert response.json() == {"error": NO_ID_ERROR, "id": bin_id}
    assert page_fetcher.calls == []


def test_next_collections(client):
    body = client.get("/api/v1/bin/123/next_collections").json()
    assert body["bins"] == ["Food Waste"]
    assert body["nextCollectionDate"] == "2025-05-05"
    assert body["nextCollectionDateFriendly"] == "Monday, May 5th"
    assert body["isTomorrow"] is True


def test_next_collections_invalid_id(client):
    assert client.get("/api/v1/bin/-1/next_collections").json() == {"error": NO_ID_ERROR, "id": "-1"}


def test_bins_for_tomorrow(client):
    assert client.get("/api/v1/bin/123/bins_for_tomorrow").json() == ["Food Waste"]


def test_bins_for_tomorrow_test_data(client, page_fetcher):
    assert client.get("/api/v1/bin/123/bins_for_tomorrow_test").json() == TEST_BINS_FOR_TOMORROW
    assert page_fetcher.calls == []


def test_cache_contents(client, fake_clock):
    client.get("/api/v1/bin/123")
    body = client.get("/api/v1/cache").json()
    assert list(body) == ["123"]
    assert body["123"]["timestamp"] == fake_clock.now.isoformat()
    assert set(body["123"]["data"]) == {"Food Waste", "Paper & Cardboard"}


def test_debug_render_requires_url(client):
    response = client.get("/api/v1/debug/render")
    assert response.text == "please provide url"


def test_debug_render_returns_markup(client, page_fetcher, results_page):
    response = client.get("/api/v1/debug/render", params={"url": "https://example.com/page"})
    assert response.text == results_page
    assert len(page_fetcher.calls) == 1
    assert page_fetcher.calls[0][0] == "https://example.com/page"


def test_debug_render_single_attempt_on_error(make_page_fetcher, fake_clock):
    failing = make_page_fetcher(RuntimeError("boom"))
    client = TestClient(create_app(settings=Settings(), page_fetcher=failing, start_scheduler=False, clock=fake_clock))

    response = client.get("/api/v1/debug/render", params={"url": "https://example.com/page"})

    assert response.text == "Error fetching https://example.com/page"
    assert len(failing.calls) == 1


def test_lifespan_starts_and_stops_prewarm_scheduler(page_fetcher, fake_clock):
    app = create_app(settings=Settings(prewarm_bin_ids=[123]), page_fetcher=page_fetcher, clock=fake_clock)
    with TestClient(app):
        scheduler = app.state.scheduler
        assert scheduler.running
        assert scheduler.get_job(PREWARM_JOB_ID) is not None
    assert not scheduler.running


def test_lifespan_without_prewarm_ids(page_fetcher, fake_clock):
    app = create_app(settings=Settings(), page_fetcher=page_fetcher, clock=fake_clock)
    with TestClient(app):
        assert app.state.scheduler is None
