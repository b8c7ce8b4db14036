from pydantic_settings import BaseSettings, SettingsConfigDict
from functools import lru_cache


class Settings(BaseSettings):
    # App
    app_name: str = "TaskTrack"
    debug: bool = False
    
    # CORS
    cors_origins: str = "http://localhost:4200"
    
    @property
    def cors_origins_list(self) -> list[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]
    
    # Database
    database_url: str = "sqlite:///./data/taskmanager.db"
    
    # Security
    secret_key: str = "dev-secret-key-change-in-production"
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 30
    
    # Logging
    log_level: str = "INFO"
    log_dir: str = "./logs"
    file_logging: bool = False
    
    # Audit
    audit_enabled: bool = True
    audit_skip_prefixes: str = "/api/auth,/api/audit-log"
    audit_page_size_default: int = 20
    audit_page_size_max: int = 100
    
    @property
    def audit_skip_prefixes_list(self) -> list[str]:
        return [p.strip() for p in self.audit_skip_prefixes.split(",") if p.strip()]
    
    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore"  # Allow extra env vars without raising validation errors
    )


@lru_cache
def get_settings() -> Settings:
    return Settings()
