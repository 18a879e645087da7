"""Configuration management."""

import os
from pathlib import Path
from pydantic import BaseModel, Field
from dotenv import load_dotenv

# Load environment variables
load_dotenv()


class Config(BaseModel):
    """Application configuration."""

    # API Keys
    anthropic_api_key: str = Field(
        default_factory=lambda: os.getenv("ANTHROPIC_API_KEY", ""),
        description="Anthropic API key"
    )
    google_application_credentials: str = Field(
        default_factory=lambda: os.getenv("GOOGLE_APPLICATION_CREDENTIALS", ""),
        description="Path to Google Cloud service account JSON"
    )
    google_cloud_project: str = Field(
        default_factory=lambda: os.getenv("GOOGLE_CLOUD_PROJECT", ""),
        description="Google Cloud project ID"
    )
    veo_output_bucket: str = Field(
        default_factory=lambda: os.getenv("VEO_OUTPUT_BUCKET", ""),
        description="GCS bucket for Veo output"
    )

    # Paths
    workspace: Path = Field(
        default_factory=lambda: Path(os.getenv("TF_WORKSPACE", ".")),
        description="Directory holding project.state.json"
    )
    output_dir: Path = Field(
        default_factory=lambda: Path(os.getenv("TF_OUTPUT_DIR", "output")),
        description="Directory for concept images, clips and the final video"
    )

    # Model settings
    default_model: str = Field(
        default_factory=lambda: os.getenv("TF_MODEL", "claude-sonnet-4-20250514"),
        description="Claude model used by the text agents"
    )
    imagen_model: str = Field(
        default_factory=lambda: os.getenv("TF_IMAGEN_MODEL", "imagen-3.0-generate-002"),
        description="Imagen model used for concept images"
    )
    veo_model: str = Field(
        default_factory=lambda: os.getenv("TF_VEO_MODEL", "veo-2.0-generate-001"),
        description="Veo model used for scene clips"
    )

    model_config = {"frozen": False}

    def validate_required(self) -> None:
        """Validate that required credentials are set."""
        if not self.anthropic_api_key:
            raise ValueError("ANTHROPIC_API_KEY not set")

    def validate_google_required(self) -> None:
        """Validate that Imagen / Veo Google Cloud settings are set.

        Raises:
            ValueError: If any required Google Cloud configuration is missing.
        """
        missing: list[str] = []

        if not self.google_cloud_project:
            missing.append("GOOGLE_CLOUD_PROJECT")
        if not self.veo_output_bucket:
            missing.append("VEO_OUTPUT_BUCKET")

        if missing:
            raise ValueError(
                f"Missing required Google Cloud configuration: {', '.join(missing)}. "
                "Set the corresponding environment variables."
            )

        # Validate bucket format
        if not self.veo_output_bucket.startswith("gs://"):
            raise ValueError(
                f"VEO_OUTPUT_BUCKET must be a GCS URI starting with 'gs://'. "
                f"Got: {self.veo_output_bucket}"
            )


# Global config instance
config = Config()
