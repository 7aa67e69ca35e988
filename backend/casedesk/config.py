from pydantic import model_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # App
    environment: str = "development"
    log_level: str = "INFO"
    log_format: str = "json"  # json | text

    # Security
    allowed_origins: str = "http://localhost:3000,http://localhost"

    # Documents
    max_upload_size_mb: int = 10
    allowed_document_types: str = "application/pdf,image/png,image/jpeg"

    # Case workflow: kinds that must be APPROVED before a case is SUBMITTED,
    # unless the organization overrides them.
    default_required_docs: list[str] = ["ID"]

    model_config = {"env_file": ".env", "extra": "ignore"}

    @property
    def origins(self) -> list[str]:
        return [o.strip() for o in self.allowed_origins.split(",") if o.strip()]

    @property
    def document_types(self) -> set[str]:
        return {t.strip() for t in self.allowed_document_types.split(",") if t.strip()}

    @model_validator(mode="after")
    def _validate_production(self):
        if self.environment == "production":
            if "*" in self.origins:
                raise ValueError(
                    "Production must not allow wildcard CORS origins"
                )
        if self.log_format not in ("json", "text"):
            raise ValueError("LOG_FORMAT must be 'json' or 'text'")
        return self


settings = Settings()
