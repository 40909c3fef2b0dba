"""Root conftest for the fleetcert test suite."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import pytest
import yaml

# ---------------------------------------------------------------------------
# Make ``src/`` importable without installing the package
# ---------------------------------------------------------------------------
_SRC = str(Path(__file__).resolve().parent.parent / "src")
if _SRC not in sys.path:
    sys.path.insert(0, _SRC)


# ---------------------------------------------------------------------------
# Minimal config data shared by multiple test modules
# ---------------------------------------------------------------------------


@pytest.fixture()
def minimal_config_data() -> dict:
    """Return a dict containing the minimum required config fields."""
    return {
        "database": {"database": "fleetcert_test", "user": "testuser"},
        "ca": {"external": {"base_url": "https://ca.example.com"}},
        "admission": {"crl_bucket": "fleet-crl"},
        "renewal": {
            "queue_url": "https://queue.example.com/renewals",
            "certificates_bucket": "fleet-certificates",
        },
    }


@pytest.fixture()
def tmp_config_file(tmp_path: Path, minimal_config_data: dict) -> Path:
    """Write *minimal_config_data* to a temp YAML file and return its path."""
    cfg = tmp_path / "config.yaml"
    cfg.write_text(
        yaml.safe_dump(minimal_config_data, default_flow_style=False, sort_keys=False),
        encoding="utf-8",
    )
    return cfg


# ---------------------------------------------------------------------------
# ConfigKit singleton cleanup: autouse so every test gets a fresh slate
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def fresh_config():
    """Reset the FleetCertConfig singleton before and after every test."""
    from fleetcert.config.fleetcert_config import FleetCertConfig

    FleetCertConfig.reset()
    yield
    FleetCertConfig.reset()


@pytest.fixture(autouse=True)
def restore_fleetcert_logger():
    """Undo configure_logging() so caplog keeps seeing fleetcert records."""
    logger = logging.getLogger("fleetcert")
    saved = (list(logger.handlers), logger.level, logger.propagate)
    yield
    for handler in logger.handlers:
        if handler not in saved[0]:
            handler.close()
    logger.handlers[:] = saved[0]
    logger.setLevel(saved[1])
    logger.propagate = saved[2]
