import pytest

from trendfactory.config import config
from trendfactory.services import imagen, veo
from trendfactory.services.veo import GenerationStatus, VeoClient


@pytest.fixture
def veo_client(monkeypatch):
    monkeypatch.setattr(veo.storage, "Client", lambda project=None: object())
    return VeoClient(project_id="test-project", output_bucket="gs://test-bucket", retry_delay=0)


def test_missing_input_image_fails_generation(veo_client, monkeypatch, tmp_path):
    def fail_post(url, body):
        raise AssertionError("Veo must not be called without an input image")

    monkeypatch.setattr(veo_client, "_post", fail_post)

    result = veo_client.generate_clip(
        "A kitchen table at dawn",
        tmp_path / "clip.mp4",
        scene_id="scene_02",
        image_path=tmp_path / "frames" / "missing.png",
    )

    assert result.status == GenerationStatus.FAILED
    assert "Cannot read input image" in result.error_message
    assert result.local_path is None


def test_input_image_is_inlined(veo_client, monkeypatch, tmp_path):
    image = tmp_path / "scene_01_last.png"
    image.write_bytes(b"\x89PNG")
    requests_sent = []

    def capture_post(url, body):
        requests_sent.append((url, body))
        return {}

    monkeypatch.setattr(veo_client, "_post", capture_post)

    result = veo_client.generate_clip(
        "A kitchen table at dawn", tmp_path / "clip.mp4", image_path=image, seed=7
    )

    url, body = requests_sent[0]
    assert url.endswith(":predictLongRunning")
    assert body["instances"][0]["image"] == {"bytesBase64Encoded": "iVBORw==", "mimeType": "image/png"}
    assert body["parameters"]["seed"] == 7
    # No operation name in the response
    assert result.status == GenerationStatus.FAILED


class FakeCredentials:
    token = None

    def refresh(self, request):
        self.token = "fresh-token"


def test_access_token_uses_configured_service_account(monkeypatch, tmp_path):
    key_file = tmp_path / "service-account.json"
    loaded = []

    def from_file(path, scopes=None):
        loaded.append((path, scopes))
        return FakeCredentials()

    monkeypatch.setattr(config, "google_application_credentials", str(key_file))
    monkeypatch.setattr(imagen.service_account.Credentials, "from_service_account_file", from_file)
    monkeypatch.setattr(imagen.google.auth, "default", lambda scopes=None: pytest.fail("ADC used"))

    assert imagen.get_access_token() == "fresh-token"
    assert loaded == [(str(key_file), [imagen.CLOUD_PLATFORM_SCOPE])]


def test_access_token_falls_back_to_default_credentials(monkeypatch):
    monkeypatch.setattr(config, "google_application_credentials", "")
    monkeypatch.setattr(imagen.google.auth, "default", lambda scopes=None: (FakeCredentials(), "p"))

    assert imagen.get_access_token() == "fresh-token"
