from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="NORMALIZED_QUERY_", env_file=".env", extra="ignore")

    log_level: str = "INFO"

    allow_string_key_references: bool = True
    undefined_request_for_skip: bool = True

    base_url: str = ""
    types_import_path: str = "./types/generated/api"
    client_import_path: str = "./api-client/generated/client-functions"

settings = Settings()
