# cli/cli_serve_command.py

import os
from colorama import Fore, Style

from cli.cli_exit_codes import EXIT_CONFIG_ERROR, EXIT_SUCCESS
from config.config_loader import ConfigLoader, ConfigLoadError
from core.server import start_server


def resolve_config_file(args):
    """CONFIG_FILE from the environment wins over the --config flag."""
    return os.environ.get("CONFIG_FILE") or getattr(args, "config", None)


def handle_serve_command(args) -> int:
    """
    Handles the 'serve' CLI command by starting the simulated service.
    """
    config_file = resolve_config_file(args)

    try:
        conf = ConfigLoader.load(config_file)
    except ConfigLoadError as e:
        print(f"{Fore.RED}❌ {e}{Style.RESET_ALL}")
        return EXIT_CONFIG_ERROR

    print(f"{Fore.GREEN}🚀 {conf.service_name} serving {len(conf.endpoints)} endpoints "
          f"at http://{conf.address}:{conf.port}{Style.RESET_ALL}")
    start_server(conf)

    return EXIT_SUCCESS
