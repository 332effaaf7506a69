"""
配置文件 - 项目配置管理
"""
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator
from typing import Any
from pydantic import model_validator


class Settings(BaseSettings):
    """项目配置"""

    # 基础配置
    PROJECT_NAME: str = Field(default="Storj Storage Adapter", env=["PROJECT_NAME", "APP_NAME"])
    VERSION: str = Field(default="0.1.0", env=["VERSION", "APP_VERSION"])
    DEBUG: bool = Field(default=False, env="DEBUG")
    ENVIRONMENT: str = Field(default="development", env="ENVIRONMENT")

    # 存储服务：按名称分组的配置（storj / storj_public ...），由 storj_storage.load_config 校验
    default_storage_service: str = Field(default="storj")
    storage_services: dict[str, dict[str, Any]] = Field(default_factory=dict)

    # pydantic-settings v2 configuration
    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="allow",
        env_nested_delimiter="__",
    )

    @field_validator("storage_services", mode="before")
    @classmethod
    def _normalize_service_names(cls, v):
        """Service names are matched case-insensitively; store them lowercased."""
        if isinstance(v, dict):
            return {str(name).lower(): value for name, value in v.items()}
        return v

    @model_validator(mode="after")
    def _validate_default_service(self):
        # 仅在配置了服务时校验默认服务名，避免空环境下无法导入
        if self.storage_services and self.default_storage_service.lower() not in self.storage_services:
            raise ValueError(
                f"default_storage_service '{self.default_storage_service}' is not one of "
                f"{sorted(self.storage_services)}"
            )
        return self


settings = Settings()
