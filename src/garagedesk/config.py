from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass
from decimal import Decimal
from pathlib import Path


class ConfigError(Exception):
    pass


@dataclass(frozen=True)
class DbConfig:
    host: str
    port: int
    name: str
    user: str
    password: str
    sslmode: str = "disable"
    pool_min: int = 2
    pool_max: int = 10

    @property
    def conninfo(self) -> str:
        return (
            f"host={self.host} port={self.port} dbname={self.name} "
            f"user={self.user} password={self.password} sslmode={self.sslmode}"
        )


@dataclass(frozen=True)
class AuthConfig:
    jwt_secret: str
    jwt_expiration_hours: int = 168
    jwt_algorithm: str = "HS256"


@dataclass(frozen=True)
class BusinessConfig:
    default_tax_rate: Decimal = Decimal("16")
    default_page_size: int = 20
    max_page_size: int = 100
    default_reorder_level: int = 5


@dataclass(frozen=True)
class AppConfig:
    name: str
    log_level: str
    environment: str
    log_dir: str
    db: DbConfig
    auth: AuthConfig
    business: BusinessConfig

    @property
    def is_development(self) -> bool:
        return self.environment == "development"


def load_config(path: str | Path | None = None) -> AppConfig:
    p = Path(path or os.environ.get("GARAGEDESK_CONFIG", "config.toml"))
    if not p.exists():
        raise ConfigError(f"Config file not found: {p.resolve()}")

    try:
        data = tomllib.loads(p.read_text(encoding="utf-8"))
    except Exception as e:
        raise ConfigError(f"Failed to read config TOML: {e}") from e

    return config_from_dict(data, env=os.environ)


def config_from_dict(data: dict, env: dict | None = None) -> AppConfig:
    env = env or {}
    try:
        app = data["app"]
        db = data["db"]
        auth = data.get("auth", {})
        business = data.get("business", {})

        jwt_secret = env.get("GARAGEDESK_JWT_SECRET") or auth.get("jwt_secret")
        if not jwt_secret:
            raise ConfigError("Missing config key: 'auth.jwt_secret' (or GARAGEDESK_JWT_SECRET)")

        environment = str(app.get("environment", "production"))
        if environment not in ("development", "production"):
            raise ConfigError(f"Unknown environment: {environment}")

        pool_min = int(db.get("pool_min", 2))
        pool_max = int(db.get("pool_max", 10))
        if pool_min < 1 or pool_max < pool_min:
            raise ConfigError("db.pool_min must be >= 1 and <= db.pool_max")

        max_page_size = int(business.get("max_page_size", 100))
        default_page_size = int(business.get("default_page_size", 20))
        if default_page_size < 1 or max_page_size < 1:
            raise ConfigError("Page sizes must be positive")

        return AppConfig(
            name=str(app.get("name", "GarageDesk")),
            log_level=str(app.get("log_level", "INFO")).upper(),
            environment=environment,
            log_dir=str(app.get("log_dir", "logs")),
            db=DbConfig(
                host=str(db["host"]),
                port=int(db.get("port", 5432)),
                name=str(db["name"]),
                user=str(db["user"]),
                password=str(env.get("GARAGEDESK_DB_PASSWORD") or db["password"]),
                sslmode=str(db.get("sslmode", "disable")),
                pool_min=pool_min,
                pool_max=pool_max,
            ),
            auth=AuthConfig(
                jwt_secret=str(jwt_secret),
                jwt_expiration_hours=int(auth.get("jwt_expiration_hours", 168)),
            ),
            business=BusinessConfig(
                default_tax_rate=Decimal(str(business.get("default_tax_rate", "16"))),
                default_page_size=default_page_size,
                max_page_size=max_page_size,
                default_reorder_level=int(business.get("default_reorder_level", 5)),
            ),
        )
    except ConfigError:
        raise
    except KeyError as e:
        raise ConfigError(f"Missing config key: {e}") from e
    except Exception as e:
        raise ConfigError(f"Invalid config values: {e}") from e
