"""
Configuration loader for the portal.

Settings come from environment variables (a `.env` file is loaded first) and
may be overlaid by a YAML file named in PORTAL_CONFIG_PATH. Environment
variables that are set always win over the YAML file.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError

logger = logging.getLogger(__name__)

EMAILJS_SEND_URL = "https://api.emailjs.com/api/v1.0/email/send"


class RemoteStoreConfig(BaseModel):
    """Hosted relational store (REST or direct SQL)"""

    url: Optional[str] = None
    anon_key: Optional[str] = None
    database_url: Optional[str] = None
    use_sql: bool = False
    timeout_seconds: float = Field(default=15.0, gt=0)


class LocalStoreConfig(BaseModel):
    """Local fallback store: JSON directory, Redis, or memory when both are unset"""

    directory: Optional[str] = None
    redis_url: Optional[str] = None


class EmailConfig(BaseModel):
    api_url: str = EMAILJS_SEND_URL
    public_key: Optional[str] = None
    service_id: Optional[str] = None
    quotation_template_id: Optional[str] = None
    contact_template_id: Optional[str] = None
    timeout_seconds: float = Field(default=15.0, gt=0)


class CompanyConfig(BaseModel):
    """Company details quoted in outgoing emails"""

    name: str = "PVC Pro Supply"
    email: str = "info@pvcprosupply.com.au"
    phone: str = "+61 2 1234 5678"
    address: str = "123 Industrial Drive, Sydney NSW 2000"


class AdminConfig(BaseModel):
    """Bootstrap admin account, created in the local store when none exists"""

    username: Optional[str] = None
    password_hash: Optional[str] = None
    email: str = ""
    full_name: str = "Administrator"
    session_ttl_hours: int = Field(default=24, ge=1)


class PortalConfig(BaseModel):
    log_level: str = "INFO"
    remote_store: RemoteStoreConfig = Field(default_factory=RemoteStoreConfig)
    local_store: LocalStoreConfig = Field(default_factory=LocalStoreConfig)
    email: EmailConfig = Field(default_factory=EmailConfig)
    company: CompanyConfig = Field(default_factory=CompanyConfig)
    admin: AdminConfig = Field(default_factory=AdminConfig)


# section -> field -> environment variable
_ENV_MAP: Dict[str, Dict[str, str]] = {
    "remote_store": {
        "url": "REMOTE_STORE_URL",
        "anon_key": "REMOTE_STORE_ANON_KEY",
        "database_url": "DATABASE_URL",
        "use_sql": "USE_SQL_REMOTE_STORE",
        "timeout_seconds": "REMOTE_STORE_TIMEOUT",
    },
    "local_store": {
        "directory": "LOCAL_STORE_DIR",
        "redis_url": "REDIS_URL",
    },
    "email": {
        "api_url": "EMAIL_API_URL",
        "public_key": "EMAIL_PUBLIC_KEY",
        "service_id": "EMAIL_SERVICE_ID",
        "quotation_template_id": "EMAIL_QUOTATION_TEMPLATE_ID",
        "contact_template_id": "EMAIL_CONTACT_TEMPLATE_ID",
    },
    "company": {
        "name": "COMPANY_NAME",
        "email": "COMPANY_EMAIL",
        "phone": "COMPANY_PHONE",
        "address": "COMPANY_ADDRESS",
    },
    "admin": {
        "username": "ADMIN_USERNAME",
        "password_hash": "ADMIN_PASSWORD_HASH",
        "email": "ADMIN_EMAIL",
        "session_ttl_hours": "SESSION_TTL_HOURS",
    },
}


def _env_overrides(environ) -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    for section, fields in _ENV_MAP.items():
        for field, var in fields.items():
            value = environ.get(var)
            if value is None or value.strip() == "":
                continue
            if field == "use_sql":
                value = value.strip().lower() in ("1", "true", "yes")
            out.setdefault(section, {})[field] = value.strip() if isinstance(value, str) else value
    if environ.get("LOG_LEVEL"):
        out["log_level"] = environ["LOG_LEVEL"].strip().upper()
    return out


def _read_yaml(config_path: Path) -> Dict[str, Any]:
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")
    with open(config_path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def load_config(config_path: Optional[Path] = None, environ=None) -> PortalConfig:
    """
    Build the portal configuration.

    Args:
        config_path: Optional YAML file. Defaults to PORTAL_CONFIG_PATH when set.
        environ: Mapping to read variables from. Defaults to os.environ after
            loading `.env`.

    Raises:
        FileNotFoundError: If an explicit config file doesn't exist
        ValidationError: If the merged values don't match the schema
    """
    if environ is None:
        load_dotenv()
        environ = os.environ

    data: Dict[str, Any] = {}
    if config_path is None and environ.get("PORTAL_CONFIG_PATH"):
        config_path = Path(environ["PORTAL_CONFIG_PATH"])
    if config_path is not None:
        data = _read_yaml(config_path)

    for section, values in _env_overrides(environ).items():
        if isinstance(values, dict):
            data.setdefault(section, {}).update(values)
        else:
            data[section] = values

    try:
        config = PortalConfig(**data)
    except ValidationError as e:
        logger.error("Config validation failed: %s", e)
        raise
    if config_path is not None:
        logger.info("Loaded portal config from %s", config_path)
    return config
