"""
Shared pytest fixtures and stub edit clients for all tests
"""
import io

import pytest
from PIL import Image

from services.ai import EditResult, EncodedImage

# 1x1 PNG the stub service hands back as the "edited" image
KNOWN_PNG_B64 = (
    "iVBORw0KGgoAAAANSUhEUgAAAAEAAAABCAYAAAAfFcSJAAAADUlEQVR42mNkYPhfDwAChwGA60e6kgAAAABJRU5ErkJggg=="
)


class StubEditClient:
    """Records every call and answers with a fixed result or error"""

    def __init__(self, result=None, error=None):
        self.result = result if result is not None else EditResult(image=KNOWN_PNG_B64)
        self.error = error
        self.calls = []

    async def edit(self, image, prompt):
        self.calls.append((image, prompt))
        if self.error is not None:
            raise self.error
        return self.result


@pytest.fixture
def red_square_png():
    """Raw bytes of a small red PNG"""
    buffer = io.BytesIO()
    Image.new("RGB", (8, 8), (255, 0, 0)).save(buffer, "PNG")
    return buffer.getvalue()


@pytest.fixture
def red_square(red_square_png):
    """The red square as an EncodedImage"""
    import base64

    return EncodedImage(data=base64.b64encode(red_square_png).decode("ascii"), mime_type="image/png")


@pytest.fixture
def stub_client():
    return StubEditClient()


@pytest.fixture
def app(stub_client):
    from app_factory import create_app
    from config import TestingConfig

    return create_app(TestingConfig, edit_client=stub_client)


@pytest.fixture
def client(app):
    """Provide FastAPI test client bound to the stubbed app"""
    from fastapi.testclient import TestClient

    return TestClient(app)
