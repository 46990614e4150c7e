"""
End-to-end tests for the HTTP API with a synthetic extractor.
"""
import base64

from PIL import Image

from .conftest import BLUE, GREEN, GREY, RED, make_image_b64


def test_register_then_recognize(client):
    response = client.post("/register", json={"name": "Alice", "image": make_image_b64(RED)})
    assert response.status_code == 201
    assert response.json() == {"message": "Face registered for Alice"}

    response = client.post("/recognize", json={"image": make_image_b64(RED)})
    assert response.status_code == 200
    assert response.json() == {"message": "Recognized: Alice"}


def test_data_url_prefix_is_optional(client):
    response = client.post(
        "/register",
        json={"name": "Alice", "image": "data:image/png;base64," + make_image_b64(RED)}
    )
    assert response.status_code == 201

    response = client.post(
        "/recognize",
        json={"image": "data:image/jpeg;base64," + make_image_b64(RED)}
    )
    assert response.status_code == 200


def test_register_missing_name_fails_fast(client, extractor):
    response = client.post("/register", json={"image": make_image_b64(RED)})

    assert response.status_code == 400
    assert response.json()["error"] == "ValidationError"
    assert extractor.calls == 0


def test_register_missing_image(client):
    response = client.post("/register", json={"name": "Alice"})
    assert response.status_code == 400


def test_register_corrupted_image(client):
    response = client.post("/register", json={"name": "Alice", "image": "not-base64!!"})

    assert response.status_code == 400
    assert response.json()["message"] == "Unsupported image type or corrupted data"


def test_register_no_face(client):
    response = client.post("/register", json={"name": "Nobody", "image": make_image_b64(GREY)})

    assert response.status_code == 400
    assert response.json()["error"] == "NoFaceError"
    assert client.get("/records").json()["total_count"] == 0


def test_recognize_no_face_leaves_store_untouched(client):
    client.post("/register", json={"name": "Alice", "image": make_image_b64(RED)})

    response = client.post("/recognize", json={"image": make_image_b64(GREY)})

    assert response.status_code == 400
    assert response.json() == {"error": "NoFaceError", "message": "No face detected in the image"}
    assert client.get("/records").json()["total_count"] == 1


def test_recognize_missing_image(client):
    response = client.post("/recognize", json={})
    assert response.status_code == 400


def test_recognize_empty_store(client):
    response = client.post("/recognize", json={"image": make_image_b64(RED)})

    assert response.status_code == 404
    assert response.json() == {"error": "NotFoundError", "message": "No user found"}


def test_recognize_unknown_person(client):
    client.post("/register", json={"name": "Alice", "image": make_image_b64(RED)})
    client.post("/register", json={"name": "Bob", "image": make_image_b64(GREEN)})

    response = client.post("/recognize", json={"image": make_image_b64(BLUE)})

    assert response.status_code == 404


def test_recognize_is_repeatable(client):
    client.post("/register", json={"name": "Bob", "image": make_image_b64(GREEN)})

    first = client.post("/recognize", json={"image": make_image_b64(GREEN)})
    second = client.post("/recognize", json={"image": make_image_b64(GREEN)})

    assert first.status_code == second.status_code == 200
    assert first.json() == second.json()


def test_non_json_body_is_a_validation_error(client):
    response = client.post("/recognize", content=b"garbage", headers={"Content-Type": "application/json"})

    assert response.status_code == 400
    assert response.json()["error"] == "ValidationError"


def test_list_records(client):
    client.post("/register", json={"name": "Alice", "image": make_image_b64(RED)})
    client.post("/register", json={"name": "Alice", "image": make_image_b64(GREEN)})

    body = client.get("/records").json()

    assert body["total_count"] == 2
    assert {r["name"] for r in body["records"]} == {"Alice"}
    assert all(r["dimension"] == 128 for r in body["records"])
    assert all("embedding" not in r for r in body["records"])


def test_health(client):
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {
        "status": "healthy",
        "model_loaded": True,
        "database_status": "healthy",
        "total_records": 0
    }


def test_register_damaged_png_is_a_client_error(client):
    raw = bytearray(base64.b64decode(make_image_b64(RED, size=(32, 32))))
    idx = raw.index(b"IDAT")
    length = int.from_bytes(raw[idx - 4:idx], "big")
    raw[idx + 4:idx + 4 + length] = b"\xff" * length

    response = client.post(
        "/register",
        json={"name": "Alice", "image": base64.b64encode(bytes(raw)).decode("ascii")}
    )

    assert response.status_code == 400
    assert response.json() == {
        "error": "ValidationError",
        "message": "Unsupported image type or corrupted data"
    }


def test_oversized_dimensions_are_a_client_error(client, monkeypatch):
    monkeypatch.setattr(Image, "MAX_IMAGE_PIXELS", 10)

    response = client.post("/recognize", json={"image": make_image_b64(RED)})

    assert response.status_code == 400
    assert response.json()["error"] == "ValidationError"


def test_unknown_route_uses_error_shape(client):
    response = client.get("/does-not-exist")

    assert response.status_code == 404
    assert response.json()["error"] == "HTTPException"
    assert "message" in response.json()


def test_wrong_method_uses_error_shape(client):
    response = client.get("/register")

    assert response.status_code == 405
    assert set(response.json()) == {"error", "message"}
