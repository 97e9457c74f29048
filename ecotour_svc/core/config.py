# ecotour_svc/core/config.py
from __future__ import annotations
from pydantic_settings import BaseSettings
from pydantic import Field
from functools import cached_property
from pathlib import Path
from typing import Optional
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa


class Settings(BaseSettings):
    # DB
    database_url: str = Field(..., alias="DATABASE_URL")

    # Tokens
    access_token_exp_minutes: int = Field(default=60 * 24 * 7, alias="ACCESS_TOKEN_EXP_MINUTES")  # 7 days
    token_issuer: str = Field(default="ecotour-svc", alias="TOKEN_ISSUER")

    # JWT (either supply paths OR inline PEM strings; if neither is supplied, we auto-generate)
    jwt_private_key_path: Optional[str] = Field(default=None, alias="JWT_PRIVATE_KEY_PATH")
    jwt_public_key_path: Optional[str] = Field(default=None, alias="JWT_PUBLIC_KEY_PATH")
    jwt_private_key_inline: Optional[str] = Field(default=None, alias="JWT_PRIVATE_KEY")
    jwt_public_key_inline: Optional[str] = Field(default=None, alias="JWT_PUBLIC_KEY")

    # First admin, created at startup when missing
    bootstrap_admin_email: Optional[str] = Field(default=None, alias="BOOTSTRAP_ADMIN_EMAIL")
    bootstrap_admin_password: Optional[str] = Field(default=None, alias="BOOTSTRAP_ADMIN_PASSWORD")
    bootstrap_admin_name: str = Field(default="Administrator", alias="BOOTSTRAP_ADMIN_NAME")

    cors_origins: str = Field(
        default="http://localhost:5173,http://127.0.0.1:5173,http://localhost:3000,http://127.0.0.1:3000",
        alias="CORS_ORIGINS",
    )
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    default_page_size: int = Field(default=12, alias="DEFAULT_PAGE_SIZE")
    max_page_size: int = Field(default=100, alias="MAX_PAGE_SIZE")

    class Config:
        env_file = ".env"
        env_prefix = ""
        case_sensitive = False
        populate_by_name = True

    @property
    def cors_origin_list(self) -> list[str]:
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    # --- Load or generate keys ---
    @cached_property
    def jwt_private_key(self) -> str:
        pem = self._load_pem_from_any(source_path=self.jwt_private_key_path,
                                      inline=self.jwt_private_key_inline)
        if pem:
            return pem
        # ephemeral pair; tokens do not survive a restart
        private_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
        return private_key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.PKCS8,
            encryption_algorithm=serialization.NoEncryption(),
        ).decode("utf-8")

    @cached_property
    def jwt_public_key(self) -> str:
        pem = self._load_pem_from_any(source_path=self.jwt_public_key_path,
                                      inline=self.jwt_public_key_inline)
        if pem:
            return pem
        # derive from the private key we generated/loaded
        from cryptography.hazmat.primitives.serialization import load_pem_private_key
        private_key = load_pem_private_key(self.jwt_private_key.encode("utf-8"), password=None)
        return private_key.public_key().public_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PublicFormat.SubjectPublicKeyInfo,
        ).decode("utf-8")

    @staticmethod
    def _load_pem_from_any(*, source_path: Optional[str], inline: Optional[str]) -> Optional[str]:
        if inline and "BEGIN" in inline:
            return inline
        if source_path:
            p = Path(source_path)
            if p.exists():
                return p.read_text(encoding="utf-8")
        return None


_settings: Settings | None = None


def get_settings() -> Settings:
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
