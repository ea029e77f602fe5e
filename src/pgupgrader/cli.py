import logging
import os

import click
from rich.logging import RichHandler

from .constants import COMMANDS, DEFAULT_CONFIG_NAME, HELP_COMMAND
from .core import PgUpgrader, UpgraderError
from .services.config_loader import ConfigLoader
from .services.parameters import ParameterResolver


def _resolve_option(cli_value, config, key, default=None):
    if cli_value is not None:
        return cli_value
    if key in config:
        return config[key]
    return default


logging.basicConfig(
    level="INFO",
    format="%(message)s",
    datefmt="[%X]",
    handlers=[RichHandler(rich_tracebacks=True, show_level=False, show_path=False)],
)


class UpgradeCommand(click.Command):
    """Reports usage errors with exit code 1 instead of click's default 2."""

    def make_context(self, info_name, args, parent=None, **extra):
        try:
            return super().make_context(info_name, args, parent=parent, **extra)
        except click.UsageError as exc:
            exc.exit_code = 1
            raise


@click.command(cls=UpgradeCommand)
@click.argument("command", required=False, type=click.Choice(COMMANDS))
@click.option("--old-path", required=False, help="Data directory of the old cluster.")
@click.option("--new-path", required=False, help="Data directory of the new cluster.")
@click.option("--old-bin-path", required=False, help="Bin directory of the old PostgreSQL version.")
@click.option("--new-bin-path", required=False, help="Bin directory of the new PostgreSQL version.")
@click.option("--old-port", required=False, type=int, help="Port of the old cluster.")
@click.option("--new-port", required=False, type=int, help="Port of the new cluster.")
@click.option("--pguser", required=False, help="Administrative database user.")
@click.option("--pg-old-version", required=False, help="Old PostgreSQL version, e.g. 13.")
@click.option("--pg-new-version", required=False, help="New PostgreSQL version, e.g. 16.")
@click.option(
    "--extensions",
    required=False,
    help="Comma-separated extensions to drop before and recreate after the upgrade.",
)
@click.option(
    "--jobs",
    required=False,
    type=int,
    default=None,
    help="Parallel jobs for the post-upgrade analyze (default: CPU count).",
)
@click.option(
    "--config",
    required=False,
    type=click.Path(),
    help=f"Path to a YAML configuration file. Defaults to {DEFAULT_CONFIG_NAME} if present.",
)
@click.option("--verbose", is_flag=True, default=None, help="Enable verbose logging")
@click.option("--log-file", type=click.Path(), help="Path to log file")
@click.option(
    "--summary-file",
    required=False,
    type=click.Path(),
    help="Path of the timing summary (default: pg_upgrade_summary.log).",
)
@click.option(
    "--sql-script",
    required=False,
    type=click.Path(),
    help="SQL script run on the new cluster after the upgrade if it exists "
    "(default: update_extensions.sql).",
)
@click.option("--yes", is_flag=True, default=None, help="Skip the confirmation prompt.")
@click.pass_context
def main(
    ctx,
    command,
    old_path,
    new_path,
    old_bin_path,
    new_bin_path,
    old_port,
    new_port,
    pguser,
    pg_old_version,
    pg_new_version,
    extensions,
    jobs,
    config,
    verbose,
    log_file,
    summary_file,
    sql_script,
    yes,
):
    """Upgrade a PostgreSQL cluster in place with pg_upgrade.

    COMMAND is one of check, clone, link, copy or help.
    """
    logger = logging.getLogger("pgupgrader")

    if command == HELP_COMMAND:
        click.echo(ctx.get_help())
        ctx.exit(0)
    if command is None:
        click.echo(ctx.get_help(), err=True)
        raise click.ClickException("Missing command. Use one of: " + ", ".join(COMMANDS) + ".")

    try:
        config_loader = ConfigLoader()
        resolved_config = config
        if resolved_config is None:
            default_config_path = os.path.join(os.getcwd(), DEFAULT_CONFIG_NAME)
            if os.path.exists(default_config_path):
                resolved_config = default_config_path

        config_values = config_loader.load(resolved_config)
    except UpgraderError as exc:
        raise click.ClickException(str(exc)) from exc

    values = {
        "old_path": _resolve_option(old_path, config_values, "old_path"),
        "new_path": _resolve_option(new_path, config_values, "new_path"),
        "old_bin_path": _resolve_option(old_bin_path, config_values, "old_bin_path"),
        "new_bin_path": _resolve_option(new_bin_path, config_values, "new_bin_path"),
        "old_port": _resolve_option(old_port, config_values, "old_port"),
        "new_port": _resolve_option(new_port, config_values, "new_port"),
        "pguser": _resolve_option(pguser, config_values, "pguser"),
        "pg_old_version": _resolve_option(pg_old_version, config_values, "pg_old_version"),
        "pg_new_version": _resolve_option(pg_new_version, config_values, "pg_new_version"),
        "extensions": _resolve_option(extensions, config_values, "extensions"),
        "jobs": _resolve_option(jobs, config_values, "jobs"),
        "summary_file": _resolve_option(summary_file, config_values, "summary_file"),
        "sql_script": _resolve_option(sql_script, config_values, "sql_script"),
    }
    verbose = bool(_resolve_option(verbose, config_values, "verbose", default=False))
    log_file = _resolve_option(log_file, config_values, "log_file")
    yes = bool(_resolve_option(yes, config_values, "yes", default=False))

    if verbose:
        logging.getLogger().setLevel(logging.DEBUG)
        logger.setLevel(logging.DEBUG)
    else:
        logger.setLevel(logging.INFO)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(logging.DEBUG if verbose else logging.INFO)
        file_handler.setFormatter(logging.Formatter("%(asctime)s [%(levelname)s] %(message)s"))
        logger.addHandler(file_handler)

    try:
        upgrade_config = ParameterResolver().resolve(command, values)
    except UpgraderError as exc:
        click.echo(ctx.get_usage(), err=True)
        raise click.ClickException(str(exc)) from exc

    upgrader = PgUpgrader(config=upgrade_config, assume_yes=yes)
    raise SystemExit(upgrader.run())


if __name__ == "__main__":
    main()
