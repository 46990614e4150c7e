"""
Shared fixtures: solid-colour PNGs stand in for faces, and a synthetic
extractor maps each colour to a fixed embedding.
"""
import base64
import time
from io import BytesIO

import numpy as np
import pytest
from fastapi.testclient import TestClient
from PIL import Image

from face_registry.database import build_engine, build_session_maker
from face_registry.main import create_app
from face_registry.service import FaceRegistryService

RED = (255, 0, 0)
GREEN = (0, 255, 0)
BLUE = (0, 0, 255)
GREY = (128, 128, 128)  # no face in this one


def make_image_b64(color, size=(8, 8), fmt="PNG") -> str:
    buffer = BytesIO()
    Image.new("RGB", size, color).save(buffer, format=fmt)
    return base64.b64encode(buffer.getvalue()).decode("ascii")


class ColorExtractor:
    """Returns the embedding registered for the image's top-left pixel colour."""

    def __init__(self, embeddings, delay: float = 0.0):
        self.embeddings = {tuple(k): np.asarray(v, dtype=np.float64) for k, v in embeddings.items()}
        self.delay = delay
        self.loaded = False
        self.calls = 0

    def load(self):
        self.loaded = True

    def extract(self, img_array):
        self.calls += 1
        if self.delay:
            time.sleep(self.delay)
        color = tuple(int(v) for v in img_array[0, 0])
        return self.embeddings.get(color)


def default_embeddings():
    alice = np.zeros(128)
    bob = np.zeros(128)
    bob[0] = 1.0
    stranger = np.zeros(128)
    stranger[1] = 5.0
    return {RED: alice, GREEN: bob, BLUE: stranger}


@pytest.fixture
def db_url(tmp_path):
    return f"sqlite+aiosqlite:///{tmp_path / 'faces.db'}"


@pytest.fixture
def extractor():
    return ColorExtractor(default_embeddings())


@pytest.fixture
def client(db_url, extractor):
    engine = build_engine(db_url)
    service = FaceRegistryService(extractor=extractor, session_maker=build_session_maker(engine))
    app = create_app(service=service, engine=engine)
    with TestClient(app) as test_client:
        yield test_client
