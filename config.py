# config.py

"""Application configuration utilities.

Settings come from ``BILLING_*`` environment variables (or a ``.env`` file).
The seller profile itself is a single record seeded from ``profile_path``
into the store; see :func:`load_profile_file`.
"""

import json
import logging
from functools import lru_cache
from pathlib import Path
from typing import Optional, Union

from pydantic_settings import BaseSettings, SettingsConfigDict

from models import CompanyProfile

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"


class ProfileNotConfiguredError(RuntimeError):
    """Raised when there is not exactly one seller profile to print with."""


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="BILLING_", env_file=".env", extra="ignore")

    database_url: str = "sqlite:///billing.db"
    profile_path: str = "company_profile.json"
    default_state_code: str = "24"
    log_level: str = "INFO"


# Cached singleton to avoid re-reading the environment
@lru_cache
def get_settings() -> Settings:
    return Settings()


def configure_logging(level: Optional[str] = None) -> None:
    logging.basicConfig(level=(level or get_settings().log_level).upper(), format=LOG_FORMAT)


def load_profile_file(path: Union[str, Path]) -> CompanyProfile:
    """Read the seller profile seed file.

    The file holds one JSON object, or a list with exactly one object.
    Anything else means the installation has no usable profile.
    """
    path = Path(path)
    if not path.exists():
        raise ProfileNotConfiguredError(f"profile file not found: {path}")
    data = json.loads(path.read_text(encoding="utf-8"))
    if isinstance(data, list):
        if len(data) != 1:
            raise ProfileNotConfiguredError(f"expected exactly one profile in {path}, found {len(data)}")
        data = data[0]
    logger.info("Loaded seller profile %r from %s", data.get("name"), path)
    return CompanyProfile.from_dict(data)
