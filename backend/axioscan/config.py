# backend/axioscan/config.py
from pathlib import Path
from pydantic_settings import BaseSettings, SettingsConfigDict

class Settings(BaseSettings):
    # Database
    DATABASE_URL: str = "sqlite:///./axioscan.db"  # Default if not in .env

    # Storage Paths
    STORAGE_PATH: Path = Path("storage")
    BLOBS_PATH: Path | None = None  # Will be set based on STORAGE_PATH
    EXPORTS_PATH: Path | None = None  # Will be set based on STORAGE_PATH

    # Public prefix for page URLs handed to clients (empty means relative to this API)
    PUBLIC_BASE_URL: str = ""

    # Imaging
    JPEG_QUALITY: int = 80
    THUMBNAIL_MAX_SIZE: int = 300
    WATERMARK_FONT_PATH: Path | None = None

    # Export canvas in PDF points (US Letter)
    PDF_PAGE_WIDTH: float = 612
    PDF_PAGE_HEIGHT: float = 792

    # Number of blobs kept by the in-process read cache
    BLOB_CACHE_SIZE: int = 64

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore"
    )

    def model_post_init(self, __context) -> None:
        """Post initialization hook to set derived paths"""
        # Convert STORAGE_PATH to Path if it's a string
        if isinstance(self.STORAGE_PATH, str):
            self.STORAGE_PATH = Path(self.STORAGE_PATH)

        # Set derived paths if not explicitly provided
        self.BLOBS_PATH = Path(self.BLOBS_PATH) if self.BLOBS_PATH else self.STORAGE_PATH / "blobs"
        self.EXPORTS_PATH = Path(self.EXPORTS_PATH) if self.EXPORTS_PATH else self.STORAGE_PATH / "exports"

        self.create_storage_dirs()

    def create_storage_dirs(self) -> None:
        """Create necessary storage directories if they don't exist"""
        for path in [self.STORAGE_PATH, self.BLOBS_PATH, self.EXPORTS_PATH]:
            path.mkdir(parents=True, exist_ok=True)

settings = Settings()
