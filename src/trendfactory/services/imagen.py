"""Google Imagen API client wrapper via Vertex AI."""

import base64
import logging
import time
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Optional

import google.auth
import google.auth.transport.requests
import requests
from google.oauth2 import service_account

from ..config import config
from ..errors import ExternalServiceError

logger = logging.getLogger(__name__)

CLOUD_PLATFORM_SCOPE = "https://www.googleapis.com/auth/cloud-platform"


@dataclass
class ImageResult:
    """Result of an Imagen generation operation."""

    prompt: str
    local_path: Optional[Path] = None
    created_at: Optional[datetime] = None
    metadata: dict = field(default_factory=dict)


def load_credentials():
    """Load the service account named by GOOGLE_APPLICATION_CREDENTIALS.

    Falls back to the application default credentials when the variable is
    unset.
    """
    if config.google_application_credentials:
        return service_account.Credentials.from_service_account_file(
            config.google_application_credentials, scopes=[CLOUD_PLATFORM_SCOPE]
        )
    credentials, _ = google.auth.default(scopes=[CLOUD_PLATFORM_SCOPE])
    return credentials


def get_access_token() -> str:
    """Return a fresh OAuth token for Vertex AI requests."""
    credentials = load_credentials()
    credentials.refresh(google.auth.transport.requests.Request())
    return credentials.token


class ImagenClient:
    """Client wrapper for Google Imagen image generation via Vertex AI."""

    DEFAULT_LOCATION = "us-central1"
    DEFAULT_MAX_RETRIES = 3
    DEFAULT_RETRY_DELAY = 2.0
    REQUEST_TIMEOUT = 120

    def __init__(
        self,
        project_id: Optional[str] = None,
        location: str = DEFAULT_LOCATION,
        model: Optional[str] = None,
        max_retries: int = DEFAULT_MAX_RETRIES,
        retry_delay: float = DEFAULT_RETRY_DELAY,
    ) -> None:
        """Initialize the Imagen client.

        Args:
            project_id: Google Cloud project ID.
            location: GCP region for Vertex AI.
            model: Imagen model name. Defaults to config.imagen_model.
            max_retries: Attempts for 429 / 5xx responses.
            retry_delay: Base delay between retries (exponential backoff).
        """
        self._project_id = project_id or config.google_cloud_project
        self._location = location
        self._model = model or config.imagen_model
        self._max_retries = max_retries
        self._retry_delay = retry_delay

        if not self._project_id:
            raise ValueError("GOOGLE_CLOUD_PROJECT not set")

    @property
    def project_id(self) -> str:
        return self._project_id

    @property
    def model(self) -> str:
        return self._model

    def generate_image(
        self,
        prompt: str,
        output_path: Path,
        aspect_ratio: str = "16:9",
        negative_prompt: Optional[str] = None,
        seed: Optional[int] = None,
    ) -> ImageResult:
        """Generate an image from a text prompt and save it as PNG.

        Args:
            prompt: Text description of the image to generate.
            output_path: Local path to save the generated image.
            aspect_ratio: Image aspect ratio ('1:1', '16:9', '9:16', '4:3', '3:4').
            negative_prompt: Things to avoid in the image.
            seed: Optional generation seed.

        Returns:
            ImageResult with the saved path.

        Raises:
            ExternalServiceError: If the API fails or returns no image.
        """
        if not prompt or not prompt.strip():
            raise ValueError("Prompt cannot be empty")

        url = (
            f"https://{self._location}-aiplatform.googleapis.com/v1/"
            f"projects/{self._project_id}/locations/{self._location}/"
            f"publishers/google/models/{self._model}:predict"
        )

        parameters = {
            "sampleCount": 1,
            "aspectRatio": aspect_ratio,
        }
        if negative_prompt:
            parameters["negativePrompt"] = negative_prompt
        if seed is not None:
            # Imagen rejects seeds while the watermark is on
            parameters["seed"] = seed
            parameters["addWatermark"] = False

        request_body = {"instances": [{"prompt": prompt}], "parameters": parameters}

        logger.info(f"Generating image with Imagen: {prompt[:50]}...")
        data = self._post(url, request_body)

        predictions = data.get("predictions", [])
        if not predictions:
            raise ExternalServiceError(
                "Imagen returned no predictions (prompt may have been filtered)"
            )

        image_data = predictions[0].get("bytesBase64Encoded")
        if not image_data:
            raise ExternalServiceError("No image data in Imagen response")

        output_path.parent.mkdir(parents=True, exist_ok=True)
        with open(output_path, "wb") as f:
            f.write(base64.b64decode(image_data))

        logger.info(f"Saved image to {output_path}")
        return ImageResult(
            prompt=prompt,
            local_path=output_path,
            created_at=datetime.now(),
            metadata={"aspect_ratio": aspect_ratio, "model": self._model, "seed": seed},
        )

    def _post(self, url: str, body: dict) -> dict:
        """POST with retry on rate limits and server errors."""
        last_error = ""
        for attempt in range(self._max_retries):
            headers = {
                "Authorization": f"Bearer {get_access_token()}",
                "Content-Type": "application/json",
            }
            try:
                response = requests.post(
                    url, json=body, headers=headers, timeout=self.REQUEST_TIMEOUT
                )
            except requests.RequestException as e:
                last_error = str(e)
            else:
                if response.status_code == 200:
                    return response.json()
                last_error = f"{response.status_code}: {response.text[:500]}"
                if response.status_code != 429 and response.status_code < 500:
                    logger.error(f"Imagen API error: {last_error}")
                    raise ExternalServiceError(f"Imagen API error {last_error}")

            if attempt < self._max_retries - 1:
                delay = self._retry_delay * (2**attempt)
                logger.warning(f"Imagen request failed ({last_error}). Retrying in {delay}s...")
                time.sleep(delay)

        raise ExternalServiceError(
            f"Imagen request failed after {self._max_retries} attempts: {last_error}"
        )
