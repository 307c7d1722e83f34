"""
Application configuration loaded from environment variables.

Uses pydantic-settings for type-safe env var parsing with automatic
.env file loading. Nothing here is secret; the defaults match a local
development setup (incident backend on :5002, risk service on :1801).

To extend: add new fields here and document them in .env.example.
See https://docs.pydantic.dev/latest/concepts/pydantic_settings/
"""

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    # ─── Core ──────────────────────────────────────────────────────
    environment: str = "development"
    debug: bool = False

    # ─── Upstream services ─────────────────────────────────────────
    # The incident store and the risk model are separate Flask services.
    backend_url: str = "http://localhost:5002"
    risk_service_url: str = "http://localhost:1801"
    http_timeout_seconds: float = 10.0

    # ─── Geocoding (Nominatim) ─────────────────────────────────────
    # Nominatim's usage policy requires an identifying User-Agent.
    geocoder_url: str = "https://nominatim.openstreetmap.org"
    geocoder_user_agent: str = "SafeWatch/1.0 (contato@safewatch.example)"
    geocoder_region_qualifier: str = "Brasília, DF, Brasil"
    geocode_concurrency: int = 4

    # ─── Fallbacks ─────────────────────────────────────────────────
    # Brasília city centre. Used whenever a coordinate cannot be resolved.
    fallback_lat: float = -15.7801
    fallback_lng: float = -47.9292
    fallback_region: str = "Arniqueiras"
    unknown_region: str = "Região Desconhecida"

    # ─── Timing ────────────────────────────────────────────────────
    poll_interval_seconds: float = 60.0
    geolocation_timeout_seconds: float = 60.0
    location_retry_seconds: float = 5.0
    display_timezone: str = "America/Sao_Paulo"

    # ─── Device ────────────────────────────────────────────────────
    # False when the host has no way to receive device positions at all.
    location_enabled: bool = True

    # ─── Host surface ──────────────────────────────────────────────
    submission_rate_limit: str = "10/minute"
    # Comma-separated allowed origins for the dashboard front-end.
    cors_origins_str: str = "http://localhost:5173,http://localhost:3000"

    @property
    def cors_origins(self) -> list[str]:
        return [o.strip() for o in self.cors_origins_str.split(",") if o.strip()]

    # ─── Panic flow ────────────────────────────────────────────────
    emergency_contact_1: str = "+55 11 99999-9999"
    emergency_contact_2: str = "+55 11 88888-8888"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",  # Don't fail on unknown env vars
    )


# Module-level singleton; import this everywhere instead of instantiating Settings()
settings = Settings()
