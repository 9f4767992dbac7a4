"""
Contract Client - Configuration

Configuration loading from environment variables. Every value has a default
suitable for a local development node, so an empty environment works.
"""

import os
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .endpoint import normalize_endpoint

logger = logging.getLogger(__name__)

DEFAULT_NODE_URL = "ws://127.0.0.1:9944"
DEFAULT_SEED_PHRASE = "//Alice"

TRUE_VALUES = ("true", "1", "yes", "on")


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in TRUE_VALUES


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning(f"Ignoring non-numeric {name}={raw!r}, using {default}")
        return default


@dataclass
class ClientConfig:
    """
    Configuration for the contract client.

    All configuration is loaded from environment variables (see from_env).
    """

    # Node endpoint (ws/wss/http/https)
    node_url: str

    # Seed phrase / secret URI of the default identity
    seed_phrase: str

    # Timeouts and polling (seconds)
    rpc_timeout: float = 10.0
    finalization_timeout: float = 60.0
    poll_interval: float = 0.5

    # Wait for finality (True) or only block inclusion (False)
    wait_for_finalization: bool = True

    # Directory holding contract artifacts (<dir>/<name>/<name>.json)
    artifacts_dir: Path = Path("artifacts")

    # Test mode: "mock" (in-memory node stub) or "live" (real node)
    test_mode: Optional[str] = None

    # Log level name
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "ClientConfig":
        """
        Load configuration from environment variables.

        Environment variables:
            INK_NODE_URL: Node endpoint (default: ws://127.0.0.1:9944)
            INK_SEED_PHRASE: Default identity seed (default: //Alice)
            INK_RPC_TIMEOUT: Per-request timeout in seconds (default: 10)
            INK_FINALIZATION_TIMEOUT: Max wait for finalization (default: 60)
            INK_POLL_INTERVAL: Status poll interval in seconds (default: 0.5)
            INK_WAIT_FOR_FINALIZATION: true/false (default: true)
            INK_ARTIFACTS_DIR: Contract artifacts directory (default: ./artifacts)
            INK_TEST_MODE: Test mode (mock|live)
            INK_LOG_LEVEL: Log level (default: INFO)

        Returns:
            ClientConfig: Configuration instance
        """
        return cls(
            node_url=os.getenv("INK_NODE_URL") or DEFAULT_NODE_URL,
            seed_phrase=os.getenv("INK_SEED_PHRASE") or DEFAULT_SEED_PHRASE,
            rpc_timeout=_env_float("INK_RPC_TIMEOUT", 10.0),
            finalization_timeout=_env_float("INK_FINALIZATION_TIMEOUT", 60.0),
            poll_interval=_env_float("INK_POLL_INTERVAL", 0.5),
            wait_for_finalization=_env_bool("INK_WAIT_FOR_FINALIZATION", "true"),
            artifacts_dir=Path(os.getenv("INK_ARTIFACTS_DIR") or "artifacts"),
            test_mode=os.getenv("INK_TEST_MODE"),
            log_level=(os.getenv("INK_LOG_LEVEL") or "INFO").upper(),
        )

    @property
    def endpoint(self) -> str:
        """Normalized HTTP(S) endpoint for node_url."""
        return normalize_endpoint(self.node_url)

    def metadata_path(self, contract_name: str) -> Path:
        """Path of a contract's artifact: <artifacts_dir>/<name>/<name>.json."""
        return self.artifacts_dir / contract_name / f"{contract_name}.json"

    def validate(self) -> tuple[bool, list[str]]:
        """
        Validate configuration.

        Returns:
            Tuple of (is_valid: bool, errors: list[str])
        """
        errors = []

        try:
            normalize_endpoint(self.node_url)
        except ValueError as e:
            errors.append(f"INK_NODE_URL is invalid: {e}")

        if not self.seed_phrase or not self.seed_phrase.strip():
            errors.append("INK_SEED_PHRASE must not be empty")

        if self.rpc_timeout <= 0:
            errors.append(f"INK_RPC_TIMEOUT must be positive, got {self.rpc_timeout}")

        if self.finalization_timeout <= 0:
            errors.append(
                f"INK_FINALIZATION_TIMEOUT must be positive, got {self.finalization_timeout}"
            )

        if self.poll_interval <= 0:
            errors.append(f"INK_POLL_INTERVAL must be positive, got {self.poll_interval}")
        elif self.poll_interval > self.finalization_timeout:
            errors.append(
                "INK_POLL_INTERVAL exceeds INK_FINALIZATION_TIMEOUT; "
                "finalization would never be observed in time"
            )

        if self.test_mode is not None and self.test_mode not in ("mock", "live"):
            errors.append(f"INK_TEST_MODE must be 'mock' or 'live', got {self.test_mode!r}")

        if self.log_level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            errors.append(f"INK_LOG_LEVEL is not a log level: {self.log_level}")

        if not self.artifacts_dir.exists():
            logger.warning(f"Configuration warning: artifacts directory does not exist: {self.artifacts_dir}")

        is_valid = len(errors) == 0
        return is_valid, errors

    def is_test_mode(self) -> bool:
        """Check if running in test mode."""
        return self.test_mode in ("mock", "live")

    def is_mock_mode(self) -> bool:
        """Check if running in mock test mode."""
        return self.test_mode == "mock"

    def is_live_mode(self) -> bool:
        """Check if running in live test mode."""
        return self.test_mode == "live"

    def __str__(self) -> str:
        """String representation; mnemonic seeds and raw keys are redacted."""
        seed = self.seed_phrase
        if not seed.startswith("//"):
            seed = "***REDACTED***"
        return (
            f"ClientConfig("
            f"node_url={self.node_url}, "
            f"seed_phrase={seed}, "
            f"rpc_timeout={self.rpc_timeout}, "
            f"finalization_timeout={self.finalization_timeout}, "
            f"poll_interval={self.poll_interval}, "
            f"wait_for_finalization={self.wait_for_finalization}, "
            f"artifacts_dir={self.artifacts_dir}, "
            f"test_mode={self.test_mode})"
        )
