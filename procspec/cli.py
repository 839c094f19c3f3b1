from pathlib import Path
from typing import TYPE_CHECKING, Any, Optional

if TYPE_CHECKING:
    from click import Group

    from procspec.adapters.oracledb import OraclePoolProvider

__all__ = ("add_invoke_command", "build_provider", "get_procspec_group", "load_attributes", "main")


def build_provider(dsn: str, user: Optional[str], password: Optional[str]) -> "OraclePoolProvider":
    """Create a single-connection Oracle pool provider for one CLI run.

    Raises:
        MissingDependencyError: If the `oracledb` package is not installed.

    Returns:
        The pool provider.
    """
    from procspec.exceptions import MissingDependencyError

    try:
        from procspec.adapters.oracledb import OraclePoolProvider
    except ImportError as e:
        raise MissingDependencyError(package="oracledb") from e

    pool_config: dict[str, Any] = {"dsn": dsn, "min": 1, "max": 1, "increment": 1}
    if user is not None:
        pool_config["user"] = user
    if password is not None:
        pool_config["password"] = password
    return OraclePoolProvider(pool_config=pool_config)


def load_attributes(attributes_file: Optional[Path], pairs: "tuple[str, ...]") -> "dict[str, str]":
    """Collect invocation attributes from a JSON file and ``KEY=VALUE`` pairs.

    Pairs override file entries. Non-string JSON values are converted to text.

    Raises:
        ImproperConfigurationError: If the file is not a JSON object or a pair has no ``=``.

    Returns:
        The merged attributes.
    """
    from procspec._serialization import decode_json
    from procspec.exceptions import ImproperConfigurationError, wrap_exceptions

    attributes: dict[str, str] = {}
    if attributes_file is not None:
        with wrap_exceptions(ImproperConfigurationError, f"Could not read attributes file {attributes_file}"):
            loaded = decode_json(attributes_file.read_bytes())
        if not isinstance(loaded, dict):
            msg = f"Attributes file {attributes_file} must contain a JSON object"
            raise ImproperConfigurationError(msg)
        attributes.update({str(key): value if isinstance(value, str) else str(value) for key, value in loaded.items()})
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            msg = f"Attribute {pair!r} must be given as KEY=VALUE"
            raise ImproperConfigurationError(msg)
        attributes[key] = value
    return attributes


def get_procspec_group() -> "Group":
    """Get the procspec CLI group.

    Raises:
        MissingDependencyError: If the `click` package is not installed.

    Returns:
        The procspec CLI group.
    """
    from procspec.exceptions import MissingDependencyError

    try:
        import click
    except ImportError as e:
        raise MissingDependencyError(package="click", install_package="cli") from e

    @click.group(name="procspec")
    @click.option(
        "--log-level",
        help="Logging level for procspec loggers.",
        type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"], case_sensitive=False),
        default="WARNING",
        show_default=True,
    )
    @click.option("--log-format", type=click.Choice(["structured", "simple"]), default="simple", show_default=True)
    @click.pass_context
    def procspec_group(ctx: "click.Context", log_level: str, log_format: str) -> None:
        """procspec CLI commands."""
        from procspec.utils.logging import configure_logging

        ctx.ensure_object(dict)
        configure_logging(level=log_level, format_style=log_format)

    return procspec_group


def add_invoke_command(procspec_group: Optional["Group"] = None) -> "Group":
    """Add the ``invoke`` command to the procspec group.

    Args:
        procspec_group: The group to add the command to.

    Raises:
        MissingDependencyError: If the `click` package is not installed.

    Returns:
        The group with the ``invoke`` command added.
    """
    from procspec.exceptions import MissingDependencyError

    try:
        import click
    except ImportError as e:
        raise MissingDependencyError(package="click", install_package="cli") from e
    from rich.console import Console
    from rich.table import Table

    console = Console(stderr=True)

    if procspec_group is None:
        procspec_group = get_procspec_group()

    @procspec_group.command(name="invoke", help="Invoke a stored procedure and print its JSON document.")
    @click.option("--dsn", help="Oracle data source name.", type=str, required=True)
    @click.option("--user", help="Database user.", type=str, default=None)
    @click.option("--password", help="Database password.", type=str, default=None)
    @click.option("--statement", help="Routine name or call statement.", type=str, default=None)
    @click.option("--timeout", help="Execution timeout in seconds; 0 disables it.", type=int, default=0, show_default=True)
    @click.option("--attr", "pairs", help="Parameter attribute as KEY=VALUE.", multiple=True)
    @click.option(
        "--attributes-file",
        help="JSON object of parameter attributes.",
        type=click.Path(exists=True, dir_okay=False, path_type=Path),
        default=None,
    )
    @click.option(
        "--output",
        help="Write the document to this file instead of standard output.",
        type=click.Path(dir_okay=False, writable=True, path_type=Path),
        default=None,
    )
    def invoke_procedure(  # pyright: ignore[reportUnusedFunction]
        dsn: str,
        user: Optional[str],
        password: Optional[str],
        statement: Optional[str],
        timeout: int,
        pairs: "tuple[str, ...]",
        attributes_file: Optional[Path],
        output: Optional[Path],
    ) -> None:
        """Invoke a stored procedure."""
        from procspec.config import InvocationConfig
        from procspec.exceptions import ProcSpecError
        from procspec.invoker import RoutineInvoker

        ctx = click.get_current_context()
        try:
            attributes = load_attributes(attributes_file, pairs)
            config = InvocationConfig(statement=statement, timeout=timeout)
            provider = build_provider(dsn, user, password)
        except ProcSpecError as e:
            console.print(f"[red]Error: {e}[/]")
            ctx.exit(1)

        try:
            result = RoutineInvoker(provider, config).invoke(attributes)
        except ProcSpecError as e:
            console.print(f"[red]Stored procedure failed: {e}[/]")
            ctx.exit(1)
        finally:
            provider.close_pool()

        if output is None:
            click.echo(result.text)
        else:
            output.write_bytes(result.document)
            console.print(f"[green]Document written to {output}[/]")

        table = Table(title=result.statement)
        table.add_column("Attribute", style="cyan")
        table.add_column("Value", justify="right")
        for key, value in result.attributes().items():
            table.add_row(key, value)
        console.print(table)

    return procspec_group


def main() -> None:
    """Console script entry point."""
    add_invoke_command()(prog_name="procspec")
