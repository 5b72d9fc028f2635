"""
cf_attributes.api.__main__

`python -m cf_attributes.api`: serve the enrichment API with uvicorn.

Responsibilities:
- Load settings from the environment and reject a bad Cloud Foundry block before binding a port.
- Hand uvicorn an app whose logs go through structlog.
"""

from __future__ import annotations

import sys

import uvicorn

from cf_attributes.api.app import create_app
from cf_attributes.errors import ConfigurationError
from cf_attributes.observability.logging import configure_logging, get_logger
from cf_attributes.settings import get_settings

log = get_logger(__name__)


def main() -> int:
    settings = get_settings()
    configure_logging(
        service_name=settings.service_name, level=settings.log_level, fmt=settings.log_format
    )
    try:
        settings.cloud_foundry.validate_config()
    except ConfigurationError as e:
        log.error("invalid_configuration", error=str(e))
        return 2

    uvicorn.run(
        create_app(settings=settings),
        host=settings.api_host,
        port=settings.api_port,
        log_config=None,
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
