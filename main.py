import argparse
import sys
import os

# Patch sys.path for local imports
ROOT_DIR = os.path.abspath(os.path.dirname(__file__))
if ROOT_DIR not in sys.path:
    sys.path.insert(0, ROOT_DIR)

from cli.cli_generate_command import handle_generate_command
from cli.cli_serve_command import handle_serve_command


# --- CLI Setup ---
def create_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="sim",
        description="🔧 sim: configurable microservice simulator",
        epilog="""Examples:
  sim -c config.toml
  sim -c config.toml serve
  sim -c services.toml generate -o target -n demo

The CONFIG_FILE environment variable overrides --config when serving.""",
        formatter_class=argparse.RawTextHelpFormatter
    )
    parser.add_argument("-c", "--config", type=str, default=None,
                        help="Path to the TOML or YAML configuration file")

    # Subcommands accept --config too; SUPPRESS keeps them from clobbering the global value.
    config_parent = argparse.ArgumentParser(add_help=False)
    config_parent.add_argument("-c", "--config", type=str, default=argparse.SUPPRESS,
                               help="Path to the TOML or YAML configuration file")

    subparsers = parser.add_subparsers(
        dest="command",
        title="Available Commands",
        metavar="{serve, generate}"
    )

    # serve
    serve_parser = subparsers.add_parser("serve", parents=[config_parent],
                                         help="Start the simulated service (default)")
    serve_parser.set_defaults(func=handle_serve_command)

    # generate
    generate_parser = subparsers.add_parser("generate", parents=[config_parent],
                                            help="Generate a Helm chart from a multi-service config")
    generate_parser.add_argument("-o", "--output", type=str, default="target",
                                 help="Directory the chart is written into")
    generate_parser.add_argument("-n", "--name", type=str, default="sim-service",
                                 help="Name of the generated chart")
    generate_parser.set_defaults(func=handle_generate_command)

    parser.set_defaults(func=handle_serve_command)
    return parser


def main(argv=None):
    parser = create_parser()
    args = parser.parse_args(argv)

    exit_code = args.func(args)
    sys.exit(exit_code)


if __name__ == "__main__":
    main()
