"""Main CLI entry point for the portal-sync command.

This module provides the Typer application that serves as the entry point
for the portal-sync command-line tool. Service identification and logging
options live on the top-level callback; each operation is a subcommand.
"""

import logging
import sys
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

import typer

from src.blob_transfer.blob_client import BlobTransferClient
from src.cli.config import ConfigLoader
from src.cli.errors import CLIError
from src.cli.models import ExitCode, SyncSettings
from src.cli.output import OutputHandler
from src.portal_client.auth import Authenticator
from src.portal_client.content_client import RemoteContentClient
from src.portal_client.errors import (
    ForbiddenError,
    InvalidCredentialsError,
    NetworkError,
    SyncError,
    UnauthorizedError,
)
from src.portal_client.http_client import ManagementHttpClient
from src.snapshot.snapshot_store import SnapshotStore
from src.sync_engine.engine import SyncEngine

app = typer.Typer(
    name="portal-sync",
    help="""Capture, generate and clean up API Management developer portal content.

QUICK START:
  portal-sync --service-name <name> capture                 # Service -> ./dist/snapshot
  portal-sync --service-name <name> generate --publish      # Snapshot -> service, then publish
  portal-sync --service-name <name> cleanup --confirm       # Delete all content and media

Subscription, resource group and service name can also come from
portal-sync.yaml or AZURE_SUBSCRIPTION_ID, AZURE_RESOURCE_GROUP_NAME and
AZURE_SERVICE_NAME.""",
    add_completion=False,
    rich_markup_mode=None,
    no_args_is_help=True,
)

logger = logging.getLogger(__name__)


def _configure_logging(verbosity: int, logdir: Optional[str] = None) -> None:
    """Configure logging based on verbosity level.

    Configures only the 'src' namespace logger to avoid affecting third-party
    libraries such as the Azure SDK. The root logger is left unchanged.

    Args:
        verbosity: Verbosity level (0=WARNING, 1=INFO, 2=DEBUG)
        logdir: Optional directory for log files (creates timestamped log file)
    """
    if verbosity == 0:
        level = logging.WARNING
    elif verbosity == 1:
        level = logging.INFO
    else:  # verbosity >= 2
        level = logging.DEBUG

    app_logger = logging.getLogger("src")
    app_logger.setLevel(level)

    log_format = "%(asctime)s [%(levelname)8s] %(message)s"
    date_format = "%Y-%m-%d %H:%M:%S"
    formatter = logging.Formatter(log_format, datefmt=date_format)

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    app_logger.addHandler(console_handler)

    if logdir:
        log_path = Path(logdir)
        log_path.mkdir(parents=True, exist_ok=True)

        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        log_file = log_path / f"portal-sync_{timestamp}.log"

        file_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        file_formatter = logging.Formatter(file_format, datefmt=date_format)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(file_formatter)
        app_logger.addHandler(file_handler)

        logger.info(f"Logging to file: {log_file}")


def _exit_code_for(error: BaseException) -> ExitCode:
    if isinstance(error, (UnauthorizedError, ForbiddenError, InvalidCredentialsError)):
        return ExitCode.AUTH_ERROR
    if isinstance(error, NetworkError):
        return ExitCode.NETWORK_ERROR
    return ExitCode.GENERAL_ERROR


def _load_settings(options: Dict[str, Any]) -> SyncSettings:
    return ConfigLoader.load(
        options['config'],
        subscription_id=options['subscription_id'],
        resource_group_name=options['resource_group_name'],
        service_name=options['service_name'],
        folder=options['folder'],
    )


def _build_engine(
    settings: SyncSettings,
    options: Dict[str, Any],
    folder: Optional[Path] = None,
) -> SyncEngine:
    """Wire the clients for one service into a SyncEngine."""
    authenticator = Authenticator(
        tenant_id=options['tenant_id'],
        client_id=options['service_principal'],
        client_secret=options['service_principal_secret'],
    )
    http_client = ManagementHttpClient(
        settings.to_service_config(), authenticator.get_bearer_token
    )
    content_client = RemoteContentClient(http_client)
    blob_client = BlobTransferClient(content_client)
    store = SnapshotStore(folder) if folder is not None else None
    return SyncEngine(content_client, blob_client, store)


def _run_operation(
    ctx: typer.Context,
    label: str,
    action: Callable[[SyncSettings, OutputHandler], None],
) -> None:
    """Run one operation and translate its outcome into an exit code."""
    options = ctx.obj
    output = OutputHandler(verbosity=options['verbosity'], no_color=options['no_color'])

    try:
        settings = _load_settings(options)
        output.info(f"  Target Service: {settings.service_name}")
        output.info(f"  Resource Group: {settings.resource_group_name}")
        action(settings, output)
    except typer.Exit:
        raise
    except SyncError as e:
        logger.error(f"{label} failed: {e}")
        output.failure(label, e)
        raise typer.Exit(_exit_code_for(e))
    except Exception as e:
        logger.exception(f"Unexpected error during {label.lower()}")
        output.failure(label, e)
        raise typer.Exit(ExitCode.GENERAL_ERROR)

    raise typer.Exit(ExitCode.SUCCESS)


@app.callback()
def main_callback(
    ctx: typer.Context,
    subscription_id: Optional[str] = typer.Option(
        None, "--subscription-id", "--subscriptionId", help="Azure subscription ID.",
    ),
    resource_group_name: Optional[str] = typer.Option(
        None, "--resource-group-name", "--resourceGroupName", help="Azure resource group name.",
    ),
    service_name: Optional[str] = typer.Option(
        None, "--service-name", "--serviceName", help="API Management service name.",
    ),
    folder: Optional[str] = typer.Option(
        None, "--folder", help="Snapshot folder (default: ./dist/snapshot).",
    ),
    config: Optional[str] = typer.Option(
        None, "--config", help="YAML configuration file (default: portal-sync.yaml if present).",
    ),
    tenant_id: Optional[str] = typer.Option(
        None, "--tenant-id", "--tenantId", help="Azure tenant ID (or AZURE_TENANT_ID).",
    ),
    service_principal: Optional[str] = typer.Option(
        None, "--service-principal", "--servicePrincipal",
        help="Service principal client ID (or AZURE_CLIENT_ID).",
    ),
    service_principal_secret: Optional[str] = typer.Option(
        None, "--service-principal-secret", "--servicePrincipalSecret",
        help="Service principal secret (or AZURE_CLIENT_SECRET).",
    ),
    logdir: Optional[str] = typer.Option(
        None, "--logdir", help="Directory for log files (creates timestamped log file)",
    ),
    verbosity: int = typer.Option(
        0, "--verbosity", "-v", help="Verbosity level: 0=summary, 1=info, 2=debug",
    ),
    no_color: bool = typer.Option(False, "--no-color", help="Disable colored output"),
) -> None:
    """Capture, generate and clean up API Management developer portal content."""
    _configure_logging(verbosity, logdir)
    ctx.obj = {
        'subscription_id': subscription_id,
        'resource_group_name': resource_group_name,
        'service_name': service_name,
        'folder': folder,
        'config': config,
        'tenant_id': tenant_id,
        'service_principal': service_principal,
        'service_principal_secret': service_principal_secret,
        'verbosity': verbosity,
        'no_color': no_color,
    }


@app.command()
def capture(
    ctx: typer.Context,
    timestamp: bool = typer.Option(
        False, "--timestamp", help="Add a timestamp to the folder where the content is stored",
    ),
) -> None:
    """Capture portal content and media into a snapshot folder."""

    def action(settings: SyncSettings, output: OutputHandler) -> None:
        folder = Path(settings.folder).resolve()
        if timestamp:
            folder = Path(f"{folder}-{datetime.now().strftime('%Y%m%d%H%M%S')}")

        output.info(f"  Target folder: {folder}")
        engine = _build_engine(settings, ctx.obj, folder)
        with output.spinner("Capturing content..."):
            summary = engine.capture()

        output.print_summary("Capture", summary)
        output.success(f"Content successfully captured in: {folder}")

    _run_operation(ctx, "Capture", action)


@app.command()
def generate(
    ctx: typer.Context,
    publish: bool = typer.Option(
        False, "--publish", help="Publish the developer portal after import.",
    ),
) -> None:
    """Generate portal content and media from a snapshot folder."""

    def action(settings: SyncSettings, output: OutputHandler) -> None:
        folder = Path(settings.folder).resolve()
        if not folder.is_dir():
            raise CLIError(f"Snapshot folder not found: {folder}")

        output.info(f"  Source folder: {folder}")
        engine = _build_engine(settings, ctx.obj, folder)
        with output.spinner("Importing content..."):
            summary = engine.generate()
        output.print_summary("Generate", summary)
        output.success("Content imported successfully")

        if publish:
            with output.spinner("Publishing changes..."):
                revision = engine.publish()
            output.success(f"Changes published (revision {revision.revision_id})")
        else:
            output.info("Skipped publishing changes. Run with --publish to publish.")

    _run_operation(ctx, "Generate", action)


@app.command()
def cleanup(
    ctx: typer.Context,
    confirm: bool = typer.Option(
        False, "--confirm", help="Confirm deletion of ALL portal content and media.",
    ),
    ignore_missing: bool = typer.Option(
        False, "--ignore-missing", help="Skip content items that are already gone.",
    ),
) -> None:
    """Delete all content and media from the developer portal."""

    def action(settings: SyncSettings, output: OutputHandler) -> None:
        if not confirm:
            output.warning("This will DELETE ALL content from the API Management developer portal!")
            output.warning(f"  Service: {settings.service_name}")
            output.warning(f"  Resource Group: {settings.resource_group_name}")
            output.warning(f"  Subscription: {settings.subscription_id}")
            output.print("To proceed, add the --confirm flag to your command.")
            return

        engine = _build_engine(settings, ctx.obj)
        with output.spinner("Cleaning up..."):
            summary = engine.cleanup(ignore_missing=ignore_missing)
        output.print_summary("Cleanup", summary)
        output.success("Cleanup completed successfully")

    _run_operation(ctx, "Cleanup", action)


@app.command()
def publish(ctx: typer.Context) -> None:
    """Publish the developer portal."""

    def action(settings: SyncSettings, output: OutputHandler) -> None:
        engine = _build_engine(settings, ctx.obj)
        with output.spinner("Publishing changes..."):
            revision = engine.publish()
        output.success(f"Changes published (revision {revision.revision_id})")

    _run_operation(ctx, "Publish", action)


@app.command()
def gtm(
    ctx: typer.Context,
    gtm_container_id: str = typer.Option(
        ..., "--gtm-container-id", "--gtmContainerId", help="Google Tag Manager container ID, e.g. GTM-ABC123",
    ),
    skip_publish: bool = typer.Option(
        False, "--skip-publish", "--skipPublish", help="Do not publish after applying the tag.",
    ),
) -> None:
    """Apply a Google Tag Manager container to the portal configuration."""

    def action(settings: SyncSettings, output: OutputHandler) -> None:
        engine = _build_engine(settings, ctx.obj)
        with output.spinner("Applying GTM configuration..."):
            engine.apply_gtm(gtm_container_id)
        output.success(f"GTM container {gtm_container_id} applied")

        if not skip_publish:
            with output.spinner("Publishing changes..."):
                revision = engine.publish()
            output.success(f"Changes published (revision {revision.revision_id})")

    _run_operation(ctx, "GTM setup", action)


@app.command("update-urls")
def update_urls(
    ctx: typer.Context,
    existing_urls: List[str] = typer.Option(
        ..., "--existing-url", help="Permalink to replace (repeatable).",
    ),
    replace_urls: List[str] = typer.Option(
        ..., "--replace-url", help="Replacement permalink, paired by position (repeatable).",
    ),
) -> None:
    """Replace permalinks of url content items."""

    def action(settings: SyncSettings, output: OutputHandler) -> None:
        engine = _build_engine(settings, ctx.obj)
        updated = engine.update_content_urls(existing_urls, replace_urls)
        for resource_id in updated:
            output.info(f"  Updated {resource_id}")
        output.success(f"Updated {len(updated)} URL(s)")

    _run_operation(ctx, "URL update", action)


def main() -> None:
    """Main entry point for the CLI application.

    This function is called when the module is executed directly or
    when the console script is invoked.
    """
    app()


# Allow running as: python -m src.cli.main
if __name__ == "__main__":
    main()
