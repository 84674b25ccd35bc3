"""API endpoint tests using FastAPI TestClient."""

import pytest
from fastapi.testclient import TestClient

from api import server
from api.server import app
from tryon_studio.catalogs import POSE_INSTRUCTIONS
from tryon_studio.errors import SynthesisError


GARMENT_URL = "https://cdn.example.com/shirt.png"


@pytest.fixture
def client(monkeypatch, manager):
    monkeypatch.setattr(server, "_manager", manager)
    return TestClient(app)


@pytest.fixture
def studio(client, png_data_url):
    """Client with a model photo already uploaded."""
    response = client.post("/api/model", json={"model_photo": png_data_url})
    assert response.status_code == 200
    return client


def add_shirt(client):
    return client.post("/api/garments", json={"id": "shirt", "name": "Shirt", "garment_url": GARMENT_URL})


class TestHealthEndpoints:
    """Tests for health check endpoints."""

    def test_root_endpoint(self, client):
        response = client.get("/")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert data["service"] == "Try-On Studio API"

    def test_health_endpoint(self, client):
        data = client.get("/health").json()

        assert data["status"] == "ok"
        assert data["busy"] is False
        assert data["model_loaded"] is False
        assert data["saved_outfits"] == 0


class TestCatalog:

    def test_catalog_lists_poses_and_backgrounds(self, client):
        data = client.get("/api/catalog").json()

        assert data["poses"] == list(POSE_INSTRUCTIONS)
        assert data["backgrounds"][0]["id"] == "studio"
        assert data["wardrobe"] == []


class TestModelPhoto:

    def test_upload_initializes_outfit(self, client, png_data_url):
        response = client.post("/api/model", json={"model_photo": png_data_url})

        assert response.status_code == 200
        state = response.json()["state"]
        assert state["model_image"].startswith("data:image/png;base64,")
        assert state["outfit"] == [None]
        assert state["display_image"] == state["model_image"]

    def test_invalid_image_rejected(self, client):
        response = client.post("/api/model", json={"model_photo": "data:image/png;base64,aGVsbG8="})
        assert response.status_code == 422

    def test_missing_photo_rejected(self, client):
        response = client.post("/api/model", json={})
        assert response.status_code == 422


class TestGarments:

    def test_add_garment(self, studio):
        response = add_shirt(studio)

        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["state"]["active_garment_ids"] == ["shirt"]
        assert data["state"]["display_image"].endswith(f"+{GARMENT_URL}")
        assert [item["id"] for item in data["state"]["wardrobe"]] == ["shirt"]

    def test_garment_requires_image(self, studio):
        response = studio.post("/api/garments", json={"id": "shirt", "name": "Shirt"})
        assert response.status_code == 422

    def test_uploaded_garment_photo(self, studio, png_data_url):
        response = studio.post("/api/garments", json={"id": "tee", "name": "Tee", "garment_photo": png_data_url})

        assert response.json()["success"] is True
        assert response.json()["state"]["wardrobe"][0]["image_url"].startswith("data:image/png;base64,")

    def test_add_garment_without_model_fails(self, client):
        data = add_shirt(client).json()
        assert data["success"] is False

    def test_remove_last_garment(self, studio):
        add_shirt(studio)

        data = studio.post("/api/garments/remove-last").json()

        assert data["success"] is True
        assert data["state"]["active_garment_ids"] == []
        assert data["state"]["can_remove_garment"] is False

    def test_service_failure_reported(self, studio, service):
        service.render_with_garment.side_effect = SynthesisError("quota exhausted")

        data = add_shirt(studio).json()

        assert data["success"] is False
        assert data["error"] == "Failed to apply garment. quota exhausted"
        assert data["state"]["busy"] is False

    def test_declined_call_does_not_repeat_earlier_error(self, studio, service):
        service.render_with_garment.side_effect = SynthesisError("quota exhausted")
        add_shirt(studio)

        data = studio.post("/api/pose", json={"pose_index": 99}).json()

        assert data["success"] is False
        assert data["error"] is None
        assert data["state"]["error"] == "Failed to apply garment. quota exhausted"


class TestPoseAndBackground:

    def test_select_pose(self, studio):
        data = studio.post("/api/pose", json={"pose_index": 2}).json()

        assert data["success"] is True
        assert data["state"]["pose_index"] == 2
        assert data["state"]["display_image"].endswith(f"@{POSE_INSTRUCTIONS[2]}")

    def test_select_out_of_range_pose(self, studio):
        data = studio.post("/api/pose", json={"pose_index": 99}).json()
        assert data["success"] is False

    def test_change_background(self, studio):
        data = studio.post("/api/background", json={"background_id": "abstract"}).json()

        assert data["success"] is True
        assert data["state"]["background_id"] == "abstract"

    def test_unknown_background(self, studio):
        data = studio.post("/api/background", json={"background_id": "moon-base"}).json()

        assert data["success"] is False
        assert data["state"]["background_id"] == "studio"


class TestOutfits:

    def test_save_and_list(self, studio):
        add_shirt(studio)

        data = studio.post("/api/outfits", json={"name": "Weekend"}).json()
        outfits = studio.get("/api/outfits").json()

        assert data["success"] is True
        assert [outfit["name"] for outfit in outfits] == ["Weekend"]
        assert outfits[0]["layers"][0] is None
        assert outfits[0]["layers"][1]["id"] == "shirt"

    def test_save_without_garment_declined(self, studio):
        data = studio.post("/api/outfits", json={}).json()
        assert data["success"] is False

    def test_load_saved_outfit(self, studio):
        add_shirt(studio)
        studio.post("/api/outfits", json={})
        outfit_id = studio.get("/api/outfits").json()[0]["id"]
        studio.post("/api/garments/remove-last")

        data = studio.post(f"/api/outfits/{outfit_id}/load").json()

        assert data["success"] is True
        assert data["state"]["active_garment_ids"] == ["shirt"]
        assert data["state"]["pose_index"] == 0

    def test_delete_outfit(self, studio):
        add_shirt(studio)
        studio.post("/api/outfits", json={})
        outfit_id = studio.get("/api/outfits").json()[0]["id"]

        data = studio.delete(f"/api/outfits/{outfit_id}").json()

        assert data["success"] is True
        assert studio.get("/api/outfits").json() == []
        assert data["state"]["active_garment_ids"] == ["shirt"]

    def test_unknown_outfit_returns_404(self, studio):
        assert studio.post("/api/outfits/missing/load").status_code == 404
        assert studio.delete("/api/outfits/missing").status_code == 404


class TestStartOver:

    def test_start_over_clears_model(self, studio):
        add_shirt(studio)

        data = studio.post("/api/start-over").json()

        assert data["success"] is True
        assert data["state"]["model_image"] is None
        assert data["state"]["outfit"] == []
        assert data["state"]["wardrobe"] == []
