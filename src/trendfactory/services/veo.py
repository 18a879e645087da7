"""Google Veo API client wrapper via Vertex AI."""

import base64
import logging
import mimetypes
import time
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Optional

import requests
from google.api_core import exceptions as google_exceptions
from google.cloud import storage

from ..config import config
from ..errors import ExternalServiceError
from .imagen import get_access_token

logger = logging.getLogger(__name__)


class GenerationStatus(str, Enum):
    """Status of a Veo generation operation."""

    PENDING = "pending"
    STARTED = "started"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"


@dataclass
class GenerationResult:
    """Result of a Veo generation operation."""

    operation_id: str
    status: GenerationStatus
    output_uri: Optional[str] = None
    local_path: Optional[Path] = None
    error_message: Optional[str] = None
    started_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    metadata: dict = field(default_factory=dict)


class VeoClient:
    """Client wrapper for Google Veo video generation via Vertex AI.

    This client handles:
    - Submitting text-to-video and image-to-video requests
    - Polling the long-running operation until it finishes or times out
    - Downloading the generated video from GCS (or decoding inline bytes)
    """

    DEFAULT_LOCATION = "us-central1"
    DEFAULT_POLL_INTERVAL = 10.0  # seconds
    DEFAULT_MAX_POLL_TIME = 600.0  # 10 minutes
    DEFAULT_MAX_RETRIES = 3
    DEFAULT_RETRY_DELAY = 2.0
    REQUEST_TIMEOUT = 120

    def __init__(
        self,
        project_id: Optional[str] = None,
        location: str = DEFAULT_LOCATION,
        output_bucket: Optional[str] = None,
        model: Optional[str] = None,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        max_poll_time: float = DEFAULT_MAX_POLL_TIME,
        max_retries: int = DEFAULT_MAX_RETRIES,
        retry_delay: float = DEFAULT_RETRY_DELAY,
    ) -> None:
        """Initialize the Veo client.

        Args:
            project_id: Google Cloud project ID. Defaults to GOOGLE_CLOUD_PROJECT env var.
            location: GCP region for Vertex AI. Defaults to us-central1.
            output_bucket: GCS bucket for output videos. Defaults to VEO_OUTPUT_BUCKET env var.
            model: Veo model name. Defaults to config.veo_model.
            poll_interval: Seconds between polling checks.
            max_poll_time: Maximum seconds to wait for generation.
            max_retries: Maximum retry attempts for transient errors.
            retry_delay: Base delay between retries (exponential backoff).
        """
        self._project_id = project_id or config.google_cloud_project
        self._location = location
        self._output_bucket = output_bucket or config.veo_output_bucket
        self._model = model or config.veo_model
        self._poll_interval = poll_interval
        self._max_poll_time = max_poll_time
        self._max_retries = max_retries
        self._retry_delay = retry_delay

        self._validate_config()
        self._storage_client = storage.Client(project=self._project_id)
        logger.info(
            f"Initialized Veo client for project {self._project_id} in {self._location}"
        )

    def _validate_config(self) -> None:
        """Validate that required configuration is set."""
        missing = []
        if not self._project_id:
            missing.append("GOOGLE_CLOUD_PROJECT")
        if not self._output_bucket:
            missing.append("VEO_OUTPUT_BUCKET")

        if missing:
            raise ValueError(
                f"Missing required configuration: {', '.join(missing)}. "
                "Set the corresponding environment variables."
            )

        if not self._output_bucket.startswith("gs://"):
            raise ValueError(
                f"VEO_OUTPUT_BUCKET must be a GCS URI starting with 'gs://'. "
                f"Got: {self._output_bucket}"
            )

    @property
    def project_id(self) -> str:
        """Return the Google Cloud project ID."""
        return self._project_id

    @property
    def output_bucket(self) -> str:
        """Return the output GCS bucket."""
        return self._output_bucket

    @property
    def _model_url(self) -> str:
        return (
            f"https://{self._location}-aiplatform.googleapis.com/v1/"
            f"projects/{self._project_id}/locations/{self._location}/"
            f"publishers/google/models/{self._model}"
        )

    def generate_clip(
        self,
        prompt: str,
        output_path: Path,
        duration: float = 6.0,
        aspect_ratio: str = "16:9",
        scene_id: Optional[str] = None,
        image_path: Optional[Path] = None,
        seed: Optional[int] = None,
    ) -> GenerationResult:
        """Generate a video clip from a text prompt, optionally seeded by an image.

        Args:
            prompt: Text description of the video to generate.
            output_path: Local path to save the generated video.
            duration: Desired duration in seconds (clamped to Veo's 5-8s range).
            aspect_ratio: Video aspect ratio ('16:9' or '9:16').
            scene_id: Optional identifier for tracking.
            image_path: Optional first frame for image-to-video generation.
            seed: Optional generation seed.

        Returns:
            GenerationResult with operation details and status. Service
            failures are reported through ``status`` and ``error_message``.

        Raises:
            ValueError: If prompt is empty or parameters are invalid.
        """
        if not prompt or not prompt.strip():
            raise ValueError("Prompt cannot be empty")

        if aspect_ratio not in ("16:9", "9:16"):
            raise ValueError(f"Invalid aspect_ratio: {aspect_ratio}. Must be '16:9' or '9:16'")

        duration = max(5.0, min(8.0, duration))

        operation_id = f"veo-{scene_id or 'clip'}-{int(time.time())}"
        result = GenerationResult(
            operation_id=operation_id,
            status=GenerationStatus.PENDING,
            started_at=datetime.now(),
            metadata={
                "prompt": prompt,
                "duration": duration,
                "aspect_ratio": aspect_ratio,
                "scene_id": scene_id,
                "image_path": str(image_path) if image_path else None,
            },
        )

        try:
            logger.info(f"Starting Veo generation: {operation_id}")
            logger.debug(f"Prompt: {prompt[:100]}...")

            bucket_name = self._output_bucket.replace("gs://", "").rstrip("/")
            storage_uri = f"gs://{bucket_name}/{operation_id}/"

            instance: dict = {"prompt": prompt}
            if image_path is not None:
                instance["image"] = _encode_image(Path(image_path))

            parameters: dict = {
                "aspectRatio": aspect_ratio,
                "durationSeconds": int(duration),
                "sampleCount": 1,
                "storageUri": storage_uri,
            }
            if seed is not None:
                parameters["seed"] = seed

            response = self._post(
                f"{self._model_url}:predictLongRunning",
                {"instances": [instance], "parameters": parameters},
            )
            operation_name = response.get("name")
            if not operation_name:
                raise ExternalServiceError("Veo did not return an operation name")

            result.status = GenerationStatus.STARTED
            final_result = self._poll_operation(operation_name, result)

            if final_result.status == GenerationStatus.COMPLETED:
                self._save_video(final_result, output_path)
                final_result.local_path = output_path
                logger.info(f"Downloaded generated video to {output_path}")

            return final_result

        except (ExternalServiceError, requests.RequestException, google_exceptions.GoogleAPICallError) as e:
            logger.error(f"Veo generation failed: {e}")
            result.status = GenerationStatus.FAILED
            result.error_message = str(e)
            result.completed_at = datetime.now()
            return result

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
                    raise ExternalServiceError(f"Veo API error {last_error}")

            if attempt < self._max_retries - 1:
                delay = self._retry_delay * (2**attempt)
                logger.warning(f"Veo request failed ({last_error}). Retrying in {delay}s...")
                time.sleep(delay)

        raise ExternalServiceError(
            f"Veo request failed after {self._max_retries} attempts: {last_error}"
        )

    def _poll_operation(
        self,
        operation_name: str,
        result: GenerationResult,
    ) -> GenerationResult:
        """Poll an operation until completion or timeout.

        Args:
            operation_name: The operation resource name to poll.
            result: The GenerationResult to update.

        Returns:
            Updated GenerationResult with final status.
        """
        start_time = time.time()
        poll_count = 0

        while True:
            elapsed = time.time() - start_time
            if elapsed > self._max_poll_time:
                logger.warning(f"Operation {operation_name} timed out after {elapsed:.1f}s")
                result.status = GenerationStatus.FAILED
                result.error_message = f"Operation timed out after {self._max_poll_time}s"
                result.completed_at = datetime.now()
                return result

            poll_count += 1
            logger.debug(f"Polling operation (attempt {poll_count}): {operation_name}")

            operation = self._post(
                f"{self._model_url}:fetchPredictOperation",
                {"operationName": operation_name},
            )

            if operation.get("done"):
                result.completed_at = datetime.now()
                if "error" in operation:
                    message = operation["error"].get("message", "unknown error")
                    logger.error(f"Operation {operation_name} failed: {message}")
                    result.status = GenerationStatus.FAILED
                    result.error_message = message
                    return result

                response = operation.get("response", {})
                videos = response.get("videos") or []
                if not videos:
                    filtered = response.get("raiMediaFilteredCount", 0)
                    result.status = GenerationStatus.FAILED
                    result.error_message = (
                        f"No video returned ({filtered} filtered by safety checks)"
                    )
                    return result

                logger.info(f"Operation {operation_name} completed successfully")
                result.status = GenerationStatus.COMPLETED
                result.output_uri = videos[0].get("gcsUri")
                result.metadata["inline_video"] = videos[0].get("bytesBase64Encoded")
                return result

            result.status = GenerationStatus.PROCESSING
            time.sleep(self._poll_interval)

    def _save_video(self, result: GenerationResult, local_path: Path) -> None:
        """Write the finished video to disk from GCS or inline bytes."""
        inline = result.metadata.pop("inline_video", None)
        if result.output_uri:
            self._download_from_gcs(result.output_uri, local_path)
        elif inline:
            local_path.parent.mkdir(parents=True, exist_ok=True)
            with open(local_path, "wb") as f:
                f.write(base64.b64decode(inline))
        else:
            raise ExternalServiceError("Veo response has neither a GCS URI nor video bytes")

    def _download_from_gcs(self, gcs_uri: str, local_path: Path) -> None:
        """Download a file from GCS to local path.

        Args:
            gcs_uri: GCS URI (gs://bucket/path/to/file).
            local_path: Local path to save the file.
        """
        if not gcs_uri.startswith("gs://"):
            raise ValueError(f"Invalid GCS URI: {gcs_uri}")

        uri_parts = gcs_uri[5:].split("/", 1)
        if len(uri_parts) != 2:
            raise ValueError(f"Invalid GCS URI format: {gcs_uri}")

        bucket_name, blob_name = uri_parts

        local_path.parent.mkdir(parents=True, exist_ok=True)

        for attempt in range(self._max_retries):
            try:
                bucket = self._storage_client.bucket(bucket_name)
                blob = bucket.blob(blob_name)
                blob.download_to_filename(str(local_path))
                logger.debug(f"Downloaded {gcs_uri} to {local_path}")
                return

            except google_exceptions.NotFound:
                logger.error(f"File not found in GCS: {gcs_uri}")
                raise

            except google_exceptions.GoogleAPICallError as e:
                delay = self._retry_delay * (2**attempt)
                logger.warning(f"Download failed (attempt {attempt + 1}): {e}. Retrying in {delay}s...")
                if attempt == self._max_retries - 1:
                    raise
                time.sleep(delay)


def _encode_image(path: Path) -> dict:
    """Build the inline image payload for image-to-video requests."""
    mime_type = mimetypes.guess_type(str(path))[0] or "image/png"
    try:
        with open(path, "rb") as f:
            data = base64.b64encode(f.read()).decode("ascii")
    except OSError as e:
        raise ExternalServiceError(f"Cannot read input image {path}: {e}") from e
    return {"bytesBase64Encoded": data, "mimeType": mime_type}
