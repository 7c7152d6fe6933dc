"""
Command line entry point: ``helm-rollout-wait upgrade RELEASE_NAME``.
"""
from __future__ import annotations

import logging
from typing import Optional

import typer
from rich.console import Console

from config import WaitOptions, settings
from errors import RolloutTimeoutError, RolloutWaitError
from release_wait import wait_for_release

EXIT_FAILED = 1
EXIT_TIMEOUT = 2

UPGRADE_HELP = """
Compare the current revision of the given release with its previous revision
and wait until all changes of the current revision have been applied.

Example:

  $ helm-rollout-wait upgrade my-release --timeout 600
"""

app = typer.Typer(help="Wait for the changed resources of a Helm release to roll out.")
console = Console(highlight=False)

LINE_STYLES = {
    "++": "green",
    "~~": "yellow",
    "--": "red",
}


def _echo(line: str) -> None:
    style = LINE_STYLES.get(line[:2])
    if style is None and " is not ready " in line:
        style = "dim"
    console.print(line, style=style, markup=False)


@app.command(help=UPGRADE_HELP)
def upgrade(
    release_name: str = typer.Argument(..., help="Name of the release."),
    timeout: int = typer.Option(
        settings.WAIT_TIMEOUT_SECS,
        "--timeout",
        min=1,
        help="Time in seconds to wait for all changed resources.",
    ),
    namespace: Optional[str] = typer.Option(
        None,
        "--namespace",
        "-n",
        envvar="HELM_NAMESPACE",
        help="Namespace of the release.",
    ),
    kubeconfig: Optional[str] = typer.Option(None, "--kubeconfig", help="Path to the kubeconfig file."),
    kube_context: Optional[str] = typer.Option(
        None,
        "--kube-context",
        envvar="HELM_KUBECONTEXT",
        help="Name of the kubeconfig context to use.",
    ),
    wait_for_deployments: bool = typer.Option(
        settings.TRACK_DEPLOYMENTS,
        "--wait-for-deployments/--no-wait-for-deployments",
        help="Wait for Kubernetes Deployment resources.",
    ),
    wait_for_deployment_configs: bool = typer.Option(
        settings.TRACK_DEPLOYMENT_CONFIGS,
        "--wait-for-deployment-configs/--no-wait-for-deployment-configs",
        help="Wait for OpenShift DeploymentConfig resources.",
    ),
    wait_for_stateful_sets: bool = typer.Option(
        settings.TRACK_STATEFUL_SETS,
        "--wait-for-stateful-sets/--no-wait-for-stateful-sets",
        help="Wait for Kubernetes StatefulSet resources.",
    ),
    check_existing: bool = typer.Option(
        settings.CHECK_EXISTING,
        "--check-existing/--no-check-existing",
        help="Wait for all resources of the release, not only the changed ones.",
    ),
    include_test_hooks: bool = typer.Option(
        settings.INCLUDE_TEST_HOOKS,
        "--include-test-hooks/--no-include-test-hooks",
        help="Include release-test hooks in the comparison.",
    ),
    poll_interval: float = typer.Option(
        settings.POLL_INTERVAL_SECS,
        "--poll-interval",
        min=0.1,
        help="Seconds between readiness checks.",
    ),
    parallel: int = typer.Option(
        settings.MAX_PARALLEL_LOOKUPS,
        "--parallel",
        min=1,
        help="Concurrent cluster lookups per check.",
    ),
) -> None:
    logging.basicConfig(level=settings.LOG_LEVEL.upper())
    options = WaitOptions.from_settings(
        settings,
        timeout=timeout,
        namespace=namespace,
        kubeconfig=kubeconfig,
        kube_context=kube_context,
        track_deployments=wait_for_deployments,
        track_deployment_configs=wait_for_deployment_configs,
        track_stateful_sets=wait_for_stateful_sets,
        check_existing=check_existing,
        include_test_hooks=include_test_hooks,
        poll_interval=poll_interval,
        max_workers=parallel,
    )

    try:
        wait_for_release(release_name, options, echo=_echo)
    except RolloutTimeoutError as exc:
        console.print(f"Error: {exc}", style="bold red", markup=False)
        raise typer.Exit(code=EXIT_TIMEOUT)
    except RolloutWaitError as exc:
        console.print(f"Error: {exc}", style="bold red", markup=False)
        raise typer.Exit(code=EXIT_FAILED)

    console.print(f"✅ Release {release_name} is ready", style="bold green", markup=False)


@app.command()
def version() -> None:
    """Show the version of helm-rollout-wait."""
    typer.echo(settings.APP_VERSION)


def main() -> None:
    app()


if __name__ == "__main__":  # pragma: no cover
    main()
