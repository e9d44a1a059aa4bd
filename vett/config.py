from __future__ import annotations

import os
from dataclasses import dataclass, field


@dataclass
class Config:
    secret_key: str = "change-me"
    database_url: str = "sqlite:///dev.db"
    jwt_secrets: list[str] = field(default_factory=list)  # first element used for signing; all accepted for verification
    jwt_issuer: str = "vett"
    jwt_audience: str = "api"
    jwt_leeway_seconds: int = 60
    upload_folder: str = ""  # empty -> <instance>/uploads
    max_profile_images: int = 6
    max_image_bytes: int = 5 * 1024 * 1024
    notification_poll_seconds: int = 30
    csrf_enabled: bool = True
    debug_endpoints: bool = False
    log_level: str = "INFO"
    login_window_seconds: int = 300
    login_max_failures: int = 5
    login_lock_seconds: int = 600

    @classmethod
    def from_env(cls) -> Config:
        jwt_multi = os.getenv("JWT_SECRETS", "")
        # JWT_SECRETS allows key rotation: comma-separated secrets; first used for signing.
        jwt_list = [s for s in [j.strip() for j in jwt_multi.split(",")] if s]
        return cls(
            secret_key=os.getenv("SECRET_KEY", "change-me"),
            database_url=os.getenv("DATABASE_URL", "sqlite:///dev.db"),
            jwt_secrets=jwt_list,
            jwt_issuer=os.getenv("JWT_ISSUER", "vett"),
            jwt_audience=os.getenv("JWT_AUDIENCE", "api"),
            jwt_leeway_seconds=int(os.getenv("JWT_LEEWAY_SECONDS", "60")),
            upload_folder=os.getenv("UPLOAD_FOLDER", ""),
            max_profile_images=int(os.getenv("MAX_PROFILE_IMAGES", "6")),
            max_image_bytes=int(os.getenv("MAX_IMAGE_BYTES", str(5 * 1024 * 1024))),
            notification_poll_seconds=int(os.getenv("NOTIFICATION_POLL_SECONDS", "30")),
            csrf_enabled=os.getenv("CSRF_ENABLED", "1").lower() in ("1", "true", "yes"),
            debug_endpoints=os.getenv("DEBUG_ENDPOINTS", "0").lower() in ("1", "true", "yes"),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            login_window_seconds=int(os.getenv("LOGIN_WINDOW_SECONDS", "300")),
            login_max_failures=int(os.getenv("LOGIN_MAX_FAILURES", "5")),
            login_lock_seconds=int(os.getenv("LOGIN_LOCK_SECONDS", "600")),
        )

    def override(self, d: dict):
        for k, v in d.items():
            if hasattr(self, k):
                setattr(self, k, v)

    def to_flask_dict(self):
        return {
            "SECRET_KEY": self.secret_key,
            "SQLALCHEMY_DATABASE_URI": self.database_url,
            "JWT_SECRETS": self.jwt_secrets,
            "JWT_ISSUER": self.jwt_issuer,
            "JWT_AUDIENCE": self.jwt_audience,
            "JWT_LEEWAY_SECONDS": self.jwt_leeway_seconds,
            "UPLOAD_FOLDER": self.upload_folder,
            "MAX_PROFILE_IMAGES": self.max_profile_images,
            "MAX_IMAGE_BYTES": self.max_image_bytes,
            # Whole multipart body: all profile images plus form fields
            "MAX_CONTENT_LENGTH": self.max_image_bytes * (self.max_profile_images + 1),
            "NOTIFICATION_POLL_SECONDS": self.notification_poll_seconds,
            "CSRF_ENABLED": self.csrf_enabled,
            "DEBUG_ENDPOINTS": self.debug_endpoints,
            "LOG_LEVEL": self.log_level,
            "AUTH_RATE_LIMIT": {
                "window_sec": self.login_window_seconds,
                "max_failures": self.login_max_failures,
                "lock_sec": self.login_lock_seconds,
            },
            # Harden session cookie defaults (still allow override in tests)
            "SESSION_COOKIE_HTTPONLY": True,
            "SESSION_COOKIE_SAMESITE": "Lax",
        }
