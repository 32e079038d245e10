import os
import logging

import uvicorn

from config.config_entry import Configuration
from core.call_logger import CallLogger, level_for
from core.dispatcher import build_data_context
from core.message_renderer import MessageRenderer
from core.server_factory import create_server
from core.telemetry import init_open_telemetry
from stress.stress_runner import start_stress_routines

logger = logging.getLogger(__name__)

UVICORN_LOG_LEVELS = {
    logging.DEBUG: "debug",
    logging.INFO: "info",
    logging.WARNING: "warning",
    logging.ERROR: "error",
}


def configure_logging(level_name: str) -> int:
    level = level_for(level_name)
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        force=True,
    )
    return level


def start_server(conf: Configuration) -> None:
    """
    Start the simulated service and block until it stops.

    Args:
        conf: Validated configuration of the service
    """
    level = configure_logging(conf.log_level)
    shutdown_telemetry = init_open_telemetry(conf.otel, conf.service_name)

    try:
        start_stress_routines(conf)

        service_logger = CallLogger(conf.logging, MessageRenderer())
        data = build_data_context(conf.service_name, dict(os.environ))
        service_logger.log_before(data)
        service_logger.log_after(data)

        logger.info(f"🚀 Starting {conf.service_name} on {conf.address}:{conf.port}")
        logger.info(f"🔧 Loaded {len(conf.endpoints)} endpoints")
        app = create_server(conf)

        ssl_options = {}
        if conf.certificate.enabled:
            ssl_options = {
                "ssl_certfile": conf.certificate.cert_file,
                "ssl_keyfile": conf.certificate.key_file,
            }

        uvicorn.run(
            app,
            host=conf.address,
            port=conf.port,
            log_level=UVICORN_LOG_LEVELS[level],
            **ssl_options
        )
    finally:
        shutdown_telemetry()
        logger.info("🛑 Server stopped")
