"""Application configuration via environment variables."""

from pydantic_settings import BaseSettings

from errors import ConfigurationError


class Settings(BaseSettings):
    # Google Drive
    google_drive_api_key: str = ""
    google_drive_root_id: str = ""
    root_folder_name: str = "Streaming"
    drive_api_url: str = "https://www.googleapis.com/drive/v3"
    drive_timeout: float = 10.0

    # Library scan
    scan_batch_size: int = 10
    scan_batch_delay: float = 0.1  # seconds between listing batches

    # Device-local state
    db_path: str = "/data/drivestream.db"

    # Playback
    resume_checkpoint_seconds: float = 10.0
    intro_start: float = 10.0
    intro_end: float = 90.0
    outro_length: float = 300.0  # outro starts this many seconds before the end
    chapter_interval: float = 600.0

    # Server
    host: str = "0.0.0.0"
    port: int = 8787
    log_level: str = "INFO"

    model_config = {"env_prefix": "", "env_file": ".env"}

    @property
    def drive_enabled(self) -> bool:
        return bool(self.google_drive_api_key)

    def require_api_key(self) -> str:
        if not self.drive_enabled:
            raise ConfigurationError("Google Drive API key not configured")
        return self.google_drive_api_key


settings = Settings()
