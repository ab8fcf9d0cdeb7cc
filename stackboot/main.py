"""Main module entrypoint for local runtime execution.

This module validates startup configuration and runs one CLI command or
launches the FastAPI service.
"""

import argparse
import logging

import uvicorn

from stackboot.adapters import CredentialApiError
from stackboot.bootstrap import (
    bootstrap_create_application,
    bootstrap_create_lifecycle_sequencer,
    bootstrap_create_token_cache_service,
)
from stackboot.config import config_load_settings
from stackboot.db import SQLAlchemyCacheStore, db_create_engine
from stackboot.domain import CredentialValidationError
from stackboot.jobs import REFRESH_TRIGGERS
from stackboot.logging_config import logging_configure

logger = logging.getLogger(__name__)


def main() -> None:
    """Run selected runtime command with validated startup configuration.

    Returns:
        None: This function does not return a runtime value.

    Raises:
        SettingsLoadError: Raised when configuration validation fails.
        SystemExit: Raised with status 1 when the command did not succeed.
    """

    argument_parser = argparse.ArgumentParser(description="stackboot runtime entrypoint")
    argument_parser.add_argument(
        "command",
        nargs="?",
        default="api",
        choices=("api", "lifecycle-run", "credential-refresh"),
        help="Runtime command: `api` starts server, `lifecycle-run` runs one bootstrap lifecycle, "
        "`credential-refresh` validates and caches a machine token",
        type=str,
    )
    argument_parser.add_argument(
        "--rebuild",
        action="store_true",
        help="Drop the run config lock and cached open payloads before `lifecycle-run`",
    )
    argument_parser.add_argument("--auth", dest="auth", type=str, help="Machine token for `credential-refresh`")
    argument_parser.add_argument(
        "--trigger",
        dest="trigger",
        default="pull",
        choices=REFRESH_TRIGGERS,
        help="Command that requested `credential-refresh`",
    )
    argument_parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    parsed_arguments = argument_parser.parse_args()

    settings = config_load_settings()
    logging_configure(level=settings.log_level, debug_mode=parsed_arguments.debug)

    if parsed_arguments.command == "api":
        application = bootstrap_create_application()
        uvicorn.run(
            application,
            host=settings.application_host,
            port=settings.application_port,
        )
        return

    cache_store = SQLAlchemyCacheStore(engine=db_create_engine(database_url=settings.database_url))

    if parsed_arguments.command == "lifecycle-run":
        lifecycle_sequencer = bootstrap_create_lifecycle_sequencer(settings, cache_store)
        run_result = lifecycle_sequencer.lifecycle_execute(rebuild=parsed_arguments.rebuild)
        for warning in run_result.warnings:
            logger.warning("%s", warning)
        if run_result.status == "failed":
            raise SystemExit(1)
        return

    token_cache_service = bootstrap_create_token_cache_service(settings, cache_store)
    try:
        refresh_result = token_cache_service.token_cache_refresh(
            auth=parsed_arguments.auth,
            trigger=parsed_arguments.trigger,
        )
    except (CredentialValidationError, CredentialApiError) as error:
        logger.error("%s", error)
        raise SystemExit(1) from error
    logger.info("credential refresh %s", refresh_result.status)


if __name__ == "__main__":
    main()
