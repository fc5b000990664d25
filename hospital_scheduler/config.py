# hospital_scheduler/config.py
from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ===== App =====
    APP_NAME: str = "hospital_scheduler"
    ENV: str = "dev"
    # TZ local del hospital (define qué es "hoy" para las colas)
    TIMEZONE: str = "America/Mexico_City"

    # ===== DB =====
    # En producción define DATABASE_URL con tu Postgres. Local cae a SQLite.
    DATABASE_URL: str = "sqlite:///./hospital_scheduler.db"

    # Opciones de pool (solo aplican fuera de SQLite)
    DB_POOL_SIZE: int = 2
    DB_MAX_OVERFLOW: int = 5
    DB_POOL_TIMEOUT: int = 30
    DB_POOL_RECYCLE: int = 1800  # 30 min

    # ===== Agenda =====
    SLOT_MINUTES: int = 30
    DEFAULT_DURATION_MIN: int = 30

    # ===== Reconciliación periódica de colas =====
    ENABLE_SCHEDULER: bool = True
    RECONCILE_EVERY_MIN: int = 15

    # ===== Admin =====
    ADMIN_TOKEN: Optional[str] = None

    def model_post_init(self, __context) -> None:
        """
        Normaliza URLs heredadas de Heroku/Render (postgres://) al esquema
        que entiende SQLAlchemy 2.x (postgresql://).
        """
        if self.DATABASE_URL.startswith("postgres://"):
            self.DATABASE_URL = "postgresql://" + self.DATABASE_URL[len("postgres://"):]

        if self.SLOT_MINUTES <= 0:
            raise ValueError("SLOT_MINUTES debe ser mayor que 0.")


settings = Settings()
