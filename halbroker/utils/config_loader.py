"""
Configuration loader for the broker client
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, List, Literal, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).parent.parent.parent / "config" / "broker_config.yml"


class AuthConfig(BaseModel):
    """Broker credentials"""

    scheme: Literal["none", "basic", "bearer", "legacy"] = "none"
    username: Optional[str] = None
    password: Optional[str] = None
    token: Optional[str] = None

    def credentials(self) -> List[str]:
        """Credential list in the form the transport expects"""
        scheme = "basic" if self.scheme == "legacy" else self.scheme
        if scheme == "none":
            # no explicit scheme: a username means basic, a token means bearer
            if self.username:
                scheme = "basic"
            elif self.token:
                scheme = "bearer"
            else:
                return []
        if scheme == "basic":
            if not self.username:
                raise ValueError("Basic authentication needs a username")
            return ["basic", self.username, self.password or ""]
        if not self.token:
            raise ValueError("Bearer authentication needs a token")
        return ["bearer", self.token]


class HalClientConfig(BaseModel):
    """Retry and authentication behaviour of the HAL client"""

    max_publish_retries: int = Field(default=5, ge=0)
    publish_retry_interval: int = Field(default=3000, ge=0)  # milliseconds
    preemptive_authentication: bool = False


class VerificationConfig(BaseModel):
    """Publishing policy for verification results"""

    publish_results: bool = False
    provider_version: Optional[str] = None
    build_url: Optional[str] = None


class BrokerConfig(BaseModel):
    """Complete broker client configuration"""

    url: str = "http://localhost:9292"
    authentication: AuthConfig = Field(default_factory=AuthConfig)
    hal_client: HalClientConfig = Field(default_factory=HalClientConfig)
    verification: VerificationConfig = Field(default_factory=VerificationConfig)

    def client_options(self) -> Dict[str, Any]:
        """Option map accepted by HalClient and BrokerClient"""
        options: Dict[str, Any] = {
            "halClient": {
                "maxPublishRetries": self.hal_client.max_publish_retries,
                "publishRetryInterval": self.hal_client.publish_retry_interval,
            },
        }
        credentials = self.authentication.credentials()
        if credentials:
            options["authentication"] = credentials
        if self.hal_client.preemptive_authentication:
            options["preemptiveAuthentication"] = True
        return options


def _env_flag(value: str) -> bool:
    return value.strip().lower() == "true"


def apply_env_overrides(config: BrokerConfig) -> BrokerConfig:
    """
    Overlay PACT_* environment variables on top of file values

    Returns a new config; the input is left untouched.
    """
    data = config.model_dump()
    env = os.environ

    if env.get("PACT_BROKER_URL"):
        data["url"] = env["PACT_BROKER_URL"]
    if env.get("PACT_BROKER_USERNAME"):
        data["authentication"].update(scheme="basic", username=env["PACT_BROKER_USERNAME"],
                                      password=env.get("PACT_BROKER_PASSWORD", ""))
    elif env.get("PACT_BROKER_TOKEN"):
        data["authentication"].update(scheme="bearer", token=env["PACT_BROKER_TOKEN"])
    if "PACT_BROKER_PREEMPTIVE_AUTHENTICATION" in env:
        data["hal_client"]["preemptive_authentication"] = _env_flag(env["PACT_BROKER_PREEMPTIVE_AUTHENTICATION"])
    if "PACT_VERIFIER_PUBLISH_RESULTS" in env:
        data["verification"]["publish_results"] = _env_flag(env["PACT_VERIFIER_PUBLISH_RESULTS"])
    if env.get("PACT_PROVIDER_VERSION"):
        data["verification"]["provider_version"] = env["PACT_PROVIDER_VERSION"]

    return BrokerConfig(**data)


def load_broker_config(config_path: Optional[Path] = None, use_env: bool = True) -> BrokerConfig:
    """
    Load and validate broker configuration from YAML file

    Args:
        config_path: Path to config file. Defaults to config/broker_config.yml
        use_env: Apply PACT_* environment overrides after loading

    Returns:
        Validated BrokerConfig object

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValidationError: If config doesn't match schema
    """
    if config_path is None:
        config_path = DEFAULT_CONFIG_PATH

    if not config_path.exists():
        raise FileNotFoundError(f"Broker config file not found: {config_path}")

    with open(config_path, "r", encoding="utf-8") as f:
        config_data = yaml.safe_load(f) or {}

    try:
        config = BrokerConfig(**config_data)
        logger.info(f"Successfully loaded broker config from {config_path}")
    except ValidationError as e:
        logger.error(f"Broker config validation failed: {e}")
        raise

    return apply_env_overrides(config) if use_env else config
