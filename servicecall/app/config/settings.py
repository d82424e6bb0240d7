from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from servicecall.app.constants import DEFAULT_DOWNLOAD_CHUNK_SIZE, DEFAULT_UPLOAD_CHUNK_SIZE


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    base_url: str = Field(..., validation_alias="SERVICE_BASE_URL")
    application_name: str = Field("", validation_alias="SERVICE_APPLICATION_NAME")

    transport_backend: str = Field("httpx", validation_alias="TRANSPORT_BACKEND")
    subscription_store_backend: str = Field("inmemory", validation_alias="SUBSCRIPTION_STORE_BACKEND")

    connect_timeout_seconds: float = Field(5.0, validation_alias="CONNECT_TIMEOUT_SECONDS")
    read_timeout_seconds: float = Field(30.0, validation_alias="READ_TIMEOUT_SECONDS")

    disable_gzip_content: bool = Field(False, validation_alias="DISABLE_GZIP_CONTENT")
    # Carry every verb except GET/POST through X-HTTP-Method-Override.
    override_all_methods: bool = Field(False, validation_alias="OVERRIDE_ALL_METHODS")

    upload_chunk_size: int = Field(DEFAULT_UPLOAD_CHUNK_SIZE, validation_alias="UPLOAD_CHUNK_SIZE")
    download_chunk_size: int = Field(DEFAULT_DOWNLOAD_CHUNK_SIZE, validation_alias="DOWNLOAD_CHUNK_SIZE")
    direct_download_enabled: bool = Field(False, validation_alias="DIRECT_DOWNLOAD_ENABLED")
