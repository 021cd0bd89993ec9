"""Main CLI entry point for localexpose."""

from __future__ import annotations

from pathlib import Path
from typing import TYPE_CHECKING

import click
from rich.console import Console

from localexpose import __version__
from localexpose.core.exceptions import LocalExposeError

if TYPE_CHECKING:
    from localexpose.clients.docker_cli import DockerCLI
    from localexpose.core.config import ExposeConfig
    from localexpose.core.kubeconfig import KubeCredentialSnapshot
    from localexpose.expose.proxy_manager import ProxyManager

# stdout carries the server URL only
console = Console(stderr=True)


class ExposeContext:
    """Shared context for CLI commands with lazy initialization."""

    def __init__(self, config_path: str | None, kubeconfig: str, context: str | None):
        """Initialize context.

        Args:
            config_path: Path to configuration file (optional)
            kubeconfig: Path to the host kubeconfig
            context: Host kube context, current-context if None
        """
        self.config_path = config_path
        self.kubeconfig = kubeconfig
        self.context = context
        self._config: ExposeConfig | None = None
        self._host_config: KubeCredentialSnapshot | None = None
        self._runtime: DockerCLI | None = None
        self._proxy_manager: ProxyManager | None = None

    @property
    def config(self) -> ExposeConfig:
        """Get or create config lazily."""
        if self._config is None:
            from localexpose.core.config import ExposeConfig

            if self.config_path:
                self._config = ExposeConfig.from_file(self.config_path)
            else:
                self._config = ExposeConfig()
        return self._config

    @property
    def host_config(self) -> KubeCredentialSnapshot:
        """Get or load the host kubeconfig snapshot lazily."""
        if self._host_config is None:
            from localexpose.core.kubeconfig import KubeCredentialSnapshot

            self._host_config = KubeCredentialSnapshot.from_file(
                self.kubeconfig, context=self.context
            )
        return self._host_config

    @property
    def runtime(self) -> DockerCLI:
        """Get or create the container runtime lazily."""
        if self._runtime is None:
            from localexpose.clients.docker_cli import DockerCLI

            self._runtime = DockerCLI(
                binary=self.config.runtime.binary,
                timeout=self.config.runtime.command_timeout,
            )
        return self._runtime

    @property
    def proxy_manager(self) -> ProxyManager:
        """Get or create the proxy manager lazily."""
        if self._proxy_manager is None:
            from localexpose.expose.proxy_manager import ProxyManager
            from localexpose.expose.verifier import ConnectivityVerifier

            verifier = ConnectivityVerifier(request_timeout=self.config.timeouts.request_timeout)
            self._proxy_manager = ProxyManager(self.runtime, verifier, self.config)
        return self._proxy_manager


@click.group()
@click.version_option(version=__version__)
@click.option(
    "--config",
    type=click.Path(exists=True, dir_okay=False),
    default=None,
    help="Path to configuration file",
)
@click.option(
    "--kubeconfig",
    envvar="KUBECONFIG",
    default="~/.kube/config",
    help="Path to the host kubeconfig",
)
@click.option("--context", default=None, help="Host kube context (defaults to current-context)")
@click.option("--log-level", default=None, help="Override the configured log level")
@click.option(
    "--log-format",
    type=click.Choice(["console", "json"]),
    default=None,
    help="Override the configured log format",
)
@click.pass_context
def cli(
    ctx: click.Context,
    config: str | None,
    kubeconfig: str,
    context: str | None,
    log_level: str | None,
    log_format: str | None,
) -> None:
    """Expose virtual cluster API servers of local Kubernetes distributions to the host."""
    from localexpose.utils.logging import setup_logging

    # KUBECONFIG may hold a path list; the first file wins
    kubeconfig = kubeconfig.split(":")[0]
    expose_ctx = ExposeContext(config_path=config, kubeconfig=kubeconfig, context=context)

    try:
        logging_config = expose_ctx.config.logging
    except LocalExposeError as e:
        console.print(f"[red]Error: {e}[/red]")
        ctx.exit(1)

    setup_logging(
        level=log_level or logging_config.level,
        format=log_format or logging_config.format,
        output=logging_config.output,
    )
    ctx.obj = expose_ctx


@cli.command()
@click.option("--vcluster", "vcluster_name", required=True, help="Virtual cluster name")
@click.option("-n", "--namespace", required=True, help="Virtual cluster namespace")
@click.option(
    "--vcluster-kubeconfig",
    type=click.Path(exists=True, dir_okay=False),
    required=True,
    help="Kubeconfig of the virtual cluster",
)
@click.option("--service", default=None, help="Service to expose (defaults to the vcluster name)")
@click.option("--local-port", type=int, default=None, help="Host port for a proxy container")
@click.option(
    "--out",
    type=click.Path(dir_okay=False, writable=True),
    default=None,
    help="Write the virtual cluster kubeconfig pointing at the exposed server",
)
@click.pass_context
def expose(
    ctx: click.Context,
    vcluster_name: str,
    namespace: str,
    vcluster_kubeconfig: str,
    service: str | None,
    local_port: int | None,
    out: str | None,
) -> None:
    """Make the virtual cluster API reachable from this machine and print its URL."""
    from localexpose.clients.kubernetes_client import KubernetesClient
    from localexpose.core.kubeconfig import KubeCredentialSnapshot
    from localexpose.core.models import ExposureTarget
    from localexpose.expose.detect import detect_cluster_type
    from localexpose.expose.dispatcher import ExposureDispatcher

    expose_ctx: ExposeContext = ctx.obj

    try:
        host_config = expose_ctx.host_config
        cluster_type = detect_cluster_type(host_config.current_context)
        console.print(f"Host context: [cyan]{host_config.current_context}[/cyan] ({cluster_type.value})")

        host_client = KubernetesClient.from_kubeconfig(
            kubeconfig_path=str(Path(expose_ctx.kubeconfig).expanduser()),
            context=host_config.current_context or None,
        )
        try:
            target = ExposureTarget.from_service(
                host_client.get_service(service or vcluster_name, namespace)
            )
        finally:
            host_client.close()

        vcluster_config = KubeCredentialSnapshot.from_file(vcluster_kubeconfig)
        dispatcher = ExposureDispatcher(expose_ctx.proxy_manager)
        server = dispatcher.expose_local(
            cluster_type,
            vcluster_name,
            namespace,
            host_config,
            vcluster_config,
            target,
            local_port=local_port,
        )
    except LocalExposeError as e:
        console.print(f"[red]Error: {e}[/red]")
        ctx.exit(1)

    if not server:
        console.print("[yellow]No direct exposure available, use port-forwarding instead[/yellow]")
        return

    if out:
        Path(out).write_text(vcluster_config.with_server(server).to_yaml())
        console.print(f"[green]✓ Kubeconfig written to {out}[/green]")

    click.echo(server)


@cli.command()
@click.option("--vcluster", "vcluster_name", required=True, help="Virtual cluster name")
@click.option("-n", "--namespace", required=True, help="Virtual cluster namespace")
@click.option("--background", is_flag=True, help="Also remove the background connect proxy")
@click.pass_context
def cleanup(ctx: click.Context, vcluster_name: str, namespace: str, background: bool) -> None:
    """Stop proxy containers created for a virtual cluster."""
    from localexpose.expose.detect import detect_cluster_type
    from localexpose.expose.naming import background_proxy_name
    from localexpose.expose.teardown import TeardownCoordinator

    expose_ctx: ExposeContext = ctx.obj

    try:
        host_config = expose_ctx.host_config
        coordinator = TeardownCoordinator(expose_ctx.proxy_manager)
        coordinator.cleanup_local(
            vcluster_name,
            namespace,
            host_config,
            detect_cluster_type(host_config.current_context),
        )
        if background:
            coordinator.cleanup_background_proxy(
                background_proxy_name(vcluster_name, namespace, host_config.current_context)
            )
    except LocalExposeError as e:
        console.print(f"[red]Error: {e}[/red]")
        ctx.exit(1)

    console.print("[green]✓ Cleanup complete[/green]")


@cli.command(name="background-proxy")
@click.option("--vcluster", "vcluster_name", required=True, help="Virtual cluster name")
@click.option("-n", "--namespace", required=True, help="Virtual cluster namespace")
@click.option(
    "--vcluster-kubeconfig",
    type=click.Path(exists=True, dir_okay=False),
    required=True,
    help="Kubeconfig of the virtual cluster",
)
@click.option("--local-port", type=int, default=None, help="Host port to forward from")
@click.pass_context
def background_proxy(
    ctx: click.Context,
    vcluster_name: str,
    namespace: str,
    vcluster_kubeconfig: str,
    local_port: int | None,
) -> None:
    """Start a port-forwarding container that outlives this command."""
    from localexpose.core.kubeconfig import KubeCredentialSnapshot
    from localexpose.expose.background import BackgroundProxy
    from localexpose.utils.network import pick_free_loopback_port

    expose_ctx: ExposeContext = ctx.obj

    try:
        if not expose_ctx.runtime.ping():
            console.print("[red]Error: container runtime is not running[/red]")
            ctx.exit(1)

        server = BackgroundProxy(expose_ctx.proxy_manager).create(
            vcluster_name,
            namespace,
            expose_ctx.host_config,
            KubeCredentialSnapshot.from_file(vcluster_kubeconfig),
            local_port or pick_free_loopback_port(),
        )
    except LocalExposeError as e:
        console.print(f"[red]Error: {e}[/red]")
        ctx.exit(1)

    click.echo(server)


@cli.command(name="parse-name")
@click.argument("name")
def parse_name(name: str) -> None:
    """Split a vcluster context or proxy name into its parts."""
    from rich.table import Table

    from localexpose.expose.naming import parse_vcluster_context

    vcluster_name, vcluster_namespace, context = parse_vcluster_context(name)
    if not vcluster_name:
        console.print(f"[yellow]{name} is not a vcluster context name[/yellow]")
        return

    table = Table(title=name)
    table.add_column("Part", style="cyan")
    table.add_column("Value")
    table.add_row("vcluster", vcluster_name)
    table.add_row("namespace", vcluster_namespace or "-")
    table.add_row("context", context or "-")
    console.print(table)


if __name__ == "__main__":
    cli()
