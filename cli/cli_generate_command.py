import click

from cli.cli_exit_codes import EXIT_CONFIG_ERROR, EXIT_GENERATION_ERROR, EXIT_SUCCESS, EXIT_USAGE_ERROR
from config.config_loader import ConfigLoadError
from templates.chart_generator import generate_chart


def handle_generate_command(args) -> int:
    """
    Handles the 'generate' CLI command: writes a Helm chart for a multi-service config.
    """
    if not args.config:
        click.secho("❌ config file is required", fg="red", err=True)
        return EXIT_USAGE_ERROR

    click.echo(f"Generating Helm Chart {args.name}")
    try:
        chart_dir = generate_chart(args.config, args.name, args.output)
    except ConfigLoadError as e:
        click.secho(f"❌ {e}", fg="red", err=True)
        return EXIT_CONFIG_ERROR
    except OSError as e:
        click.secho(f"❌ Failed to write chart: {e}", fg="red", err=True)
        return EXIT_GENERATION_ERROR

    click.secho(f"🎉 Done! Chart written to {chart_dir}", fg="green")
    return EXIT_SUCCESS
