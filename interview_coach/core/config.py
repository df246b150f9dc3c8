import os
from functools import lru_cache


class Settings:
    """Application settings loaded from environment variables with validation."""

    # Database settings
    db_user: str = os.getenv("DB_USER", "postgres")
    db_password: str = os.getenv("DB_PASSWORD", "postgres")
    db_host: str = os.getenv("DB_HOST", "postgres")
    db_port: str = os.getenv("DB_PORT", "5432")
    db_name: str = os.getenv("DB_NAME", "interview")

    @property
    def database_url(self) -> str:
        override = os.getenv("DATABASE_URL", "").strip()
        if override:
            return override
        return (
            f"postgresql+asyncpg://{self.db_user}:{self.db_password}"
            f"@{self.db_host}:{self.db_port}/{self.db_name}"
        )

    # Question generation
    @property
    def gemini_api_key(self) -> str | None:
        return os.getenv("GEMINI_API_KEY")

    @property
    def gemini_model(self) -> str:
        return os.getenv("GEMINI_MODEL", "gemini-1.5-pro")

    @property
    def interview_question_count(self) -> int:
        """Number of question/answer pairs requested per generated interview"""
        try:
            return int(os.getenv("INTERVIEW_QUESTION_COUNT", "5"))
        except ValueError:
            return 5

    # Speech providers
    @property
    def openai_api_key(self) -> str | None:
        return os.getenv("OPENAI_API_KEY")

    @property
    def openai_tts_voice(self) -> str:
        return os.getenv("OPENAI_TTS_VOICE", "coral")

    @property
    def tts_provider(self) -> str:
        """auto, openai, gtts or silence"""
        return os.getenv("TTS_PROVIDER", "auto").lower()

    @property
    def recognition_provider(self) -> str:
        """client (browser recognition relayed over HTTP) or whisper"""
        return os.getenv("RECOGNITION_PROVIDER", "client").lower()

    # Session timings (seconds)
    @property
    def session_settle_delay(self) -> float:
        try:
            return float(os.getenv("SESSION_SETTLE_DELAY", "0.5"))
        except ValueError:
            return 0.5

    @property
    def recognition_restart_delay(self) -> float:
        try:
            return float(os.getenv("RECOGNITION_RESTART_DELAY", "1.0"))
        except ValueError:
            return 1.0

    @property
    def recognition_max_restarts(self) -> int:
        try:
            return int(os.getenv("RECOGNITION_MAX_RESTARTS", "5"))
        except ValueError:
            return 5

    @property
    def voice_load_timeout(self) -> float:
        try:
            return float(os.getenv("VOICE_LOAD_TIMEOUT", "1.0"))
        except ValueError:
            return 1.0

    @property
    def speech_ack_timeout(self) -> float:
        """Upper bound on waiting for the client to finish playing a question"""
        try:
            return float(os.getenv("SPEECH_ACK_TIMEOUT", "30"))
        except ValueError:
            return 30.0

    @property
    def recognition_drain_timeout(self) -> float:
        """How long moving on waits for the last transcription of an answer"""
        try:
            return float(os.getenv("RECOGNITION_DRAIN_TIMEOUT", "10"))
        except ValueError:
            return 10.0

    @property
    def session_ttl(self) -> float:
        """Idle seconds before a session is closed and evicted"""
        try:
            return float(os.getenv("SESSION_TTL", "3600"))
        except ValueError:
            return 3600.0

    # Security & Secrets
    @property
    def environment(self) -> str:
        return os.getenv("ENVIRONMENT", "development")

    @property
    def debug(self) -> bool:
        return os.getenv("DEBUG", "false").lower() in {"1", "true", "yes"}

    # CORS origins (comma-separated). If empty, defaults are used in main.py
    @property
    def cors_allowed_origins(self) -> list[str]:
        raw = os.getenv("ALLOWED_ORIGINS", "").strip()
        if not raw:
            return []
        return [o.strip() for o in raw.split(",") if o.strip()]

    @property
    def jwt_secret(self) -> str:
        val = os.getenv("JWT_SECRET", "")
        if self.environment == "production":
            if len(val) < 32:
                raise ValueError("JWT_SECRET must be set and at least 32 characters in production")
        else:
            if not val:
                # Dev-safe default; DO NOT use in production
                val = (os.getenv("DB_PASSWORD", "dev") + os.getenv("DB_USER", "dev")).ljust(32, "_")
        return val

    @property
    def auth_cookie_name(self) -> str:
        return os.getenv("AUTH_COOKIE_NAME", "token")

    @property
    def auth_cookie_max_age(self) -> int:
        try:
            return int(os.getenv("AUTH_COOKIE_MAX_AGE", str(60 * 60 * 24)))
        except ValueError:
            return 60 * 60 * 24

    @property
    def cookie_secure(self) -> bool:
        raw = os.getenv("COOKIE_SECURE")
        if raw is None:
            return self.environment == "production"
        return raw.lower() in {"1", "true", "yes"}


@lru_cache
def get_settings() -> Settings:
    return Settings()


settings = get_settings()
