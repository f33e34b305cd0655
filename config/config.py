"""
Configuration for the Restocker backend
"""
import os
from pathlib import Path

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"


class Config:
    """Configuration built once at process start and handed to the app"""

    # ===== Base Directory =====

    BASE_DIR = Path(__file__).parent.parent.absolute()  # Project root (parent of config/)

    def __init__(self, **overrides):
        # ===== Document Store =====

        self.DB_PATH: str = os.getenv(
            "DB_PATH",
            str(self.BASE_DIR / "data" / "databases" / "restocker.db")
        )

        # ===== Auth =====

        self.JWT_SECRET: str = os.getenv("JWT_SECRET", "")
        self.JWT_ALGORITHM: str = "HS256"
        self.ACCESS_TOKEN_EXPIRE_MINUTES: int = int(
            os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", str(3 * 24 * 60))  # 3 days
        )
        self.COOKIE_SECURE: bool = _env_bool("COOKIE_SECURE", "True")

        # ===== LLM Configuration =====

        # NVIDIA API Configuration
        self.NVIDIA_API_KEY: str = os.getenv("NVIDIA_API_KEY", "")
        self.NVIDIA_MODEL: str = os.getenv(
            "NVIDIA_MODEL", "nvidia/llama-3.3-nemotron-super-49b-v1.5"
        )

        # Near-deterministic sampling keeps the model on literal JSON
        self.LLM_TEMPERATURE: float = float(os.getenv("LLM_TEMPERATURE", "0.2"))
        self.LLM_MAX_OUTPUT_TOKENS: int = int(os.getenv("LLM_MAX_OUTPUT_TOKENS", "300"))
        self.LLM_TIMEOUT_SECONDS: float = float(os.getenv("LLM_TIMEOUT_SECONDS", "20"))

        # ===== HTTP =====

        self.FRONTEND_URL: str = os.getenv("FRONTEND_URL", "")
        self.CORS_ORIGINS: list = [
            origin for origin in ["http://localhost:5173", self.FRONTEND_URL] if origin
        ]

        # ===== Debug Settings =====

        self.DEBUG: bool = _env_bool("DEBUG", "False")
        self.LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")

        for key, value in overrides.items():
            if not hasattr(self, key):
                raise AttributeError(f"Unknown config option: {key}")
            setattr(self, key, value)
