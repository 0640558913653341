import os
from importlib.metadata import PackageNotFoundError, version as package_version
from typing import Optional

import typer
from typing_extensions import Annotated

from dotenv import load_dotenv, find_dotenv

load_dotenv(find_dotenv())

app = typer.Typer(
    help="Gateway operator: provisions DataPlanes and ControlPlanes for Gateways",
    add_completion=False,
)


def _set_env(name, value):
    if value is None:
        return
    if isinstance(value, bool):
        value = "true" if value else "false"
    os.environ[name] = str(value)


@app.command("run")
def run_operator(
    controller_name: Annotated[
        Optional[str],
        typer.Option("--controller-name", help="GatewayClass controllerName to reconcile"),
    ] = None,
    leader_election: Annotated[
        Optional[bool],
        typer.Option(
            "--leader-election/--no-leader-election",
            help="Only run reconcilers in the elected instance",
        ),
    ] = None,
    cluster_ca_secret: Annotated[
        Optional[str], typer.Option("--cluster-ca-secret", help="Cluster CA secret name")
    ] = None,
    cluster_ca_secret_namespace: Annotated[
        Optional[str],
        typer.Option("--cluster-ca-secret-namespace", help="Cluster CA secret namespace"),
    ] = None,
    worker_limit: Annotated[
        Optional[int], typer.Option("--worker-limit", help="Workers per controller")
    ] = None,
    webhook_cert_dir: Annotated[
        Optional[str],
        typer.Option("--webhook-cert-dir", help="Directory with ca.crt, tls.crt and tls.key"),
    ] = None,
    log_level: Annotated[
        Optional[str], typer.Option("--log-level", help="Logging level")
    ] = None,
):
    """Run the Kubernetes operator (connects to cluster)."""
    _set_env("CONTROLLER_NAME", controller_name)
    _set_env("LEADER_ELECTION", leader_election)
    _set_env("CLUSTER_CA_SECRET", cluster_ca_secret)
    _set_env("CLUSTER_CA_SECRET_NAMESPACE", cluster_ca_secret_namespace)
    _set_env("WORKER_LIMIT", worker_limit)
    _set_env("WEBHOOK_CERT_DIR", webhook_cert_dir)
    _set_env("LOG_LEVEL", log_level)

    from gateway_operator.main import main

    main()


@app.command("check-config")
def check_config():
    """Validate the operator configuration from the environment."""
    from gateway_operator.config import OperatorConfig
    from gateway_operator.errors import ConfigurationError

    try:
        config = OperatorConfig.from_env()
    except ConfigurationError as e:
        typer.echo(f"Invalid configuration: {e}")
        raise typer.Exit(1)

    for key, value in config.model_dump().items():
        typer.echo(f"{key}: {value}")


@app.command("version")
def show_version():
    """Print the operator version."""
    try:
        typer.echo(package_version("gateway-operator"))
    except PackageNotFoundError:
        typer.echo("unknown")
