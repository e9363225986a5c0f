import asyncio
from typing import Optional

import httpx
import typer

from wasteflow.core.config import settings
from wasteflow.core.errors import ApiError, AuthMissing
from wasteflow.core.logging import get_logger, setup_logging
from wasteflow.core.session import SessionContext
from wasteflow.services.api_client import ApiClient
from wasteflow.services.job_lists import split_jobs
from wasteflow.services.workflow import JobOrderWorkflow, Outcome

app = typer.Typer(help="wasteflow driver console")
log = get_logger("cli")

DriverOpt = typer.Option(None, "--driver-id", envvar="WASTEFLOW_DRIVER_ID", help="Logged-in driver id")
TokenOpt = typer.Option(None, "--token", envvar="WASTEFLOW_TOKEN", help="Bearer token")
ApiOpt = typer.Option(None, "--api", envvar="WASTEFLOW_API_BASE", help="API base URL")


def build_client(api_base: Optional[str]) -> ApiClient:
    return ApiClient(api_base or settings.api_base)


def _session(driver_id: Optional[str], token: Optional[str]) -> SessionContext:
    return SessionContext(driver_id=driver_id or settings.driver_id, token=token or settings.token)


def _render(outcome: Outcome) -> None:
    for line in outcome.notices():
        typer.echo(line)
    rec = outcome.record
    if rec is not None:
        typer.echo(f"{rec.id}: {rec.status.value}")
    if outcome.navigate is not None:
        typer.echo(f"-> {outcome.navigate.value}")
    if not outcome.ok:
        raise typer.Exit(code=1)


def _load(api: ApiClient, session: SessionContext, job_id: str) -> JobOrderWorkflow:
    try:
        return JobOrderWorkflow.load(api, session, job_id)
    except ApiError as ex:
        typer.echo(f"Could not load job order {job_id}: {ex.status_code}")
        raise typer.Exit(code=1)
    except httpx.HTTPError as ex:
        typer.echo(f"Network error: {ex}")
        raise typer.Exit(code=1)


@app.callback()
def main(log_level: Optional[str] = typer.Option(None, "--log-level", help="DEBUG, INFO, WARNING...")):
    setup_logging(level=log_level)


@app.command()
def jobs(driver_id: Optional[str] = DriverOpt, token: Optional[str] = TokenOpt, api: Optional[str] = ApiOpt):
    """
    Lists the driver's active, available and completed job orders.
    """
    session = _session(driver_id, token)
    with build_client(api) as client:
        try:
            records = client.get_payments_by_driver_id(session.require_driver_id(), session.bearer())
        except AuthMissing:
            typer.echo("Authentication error. Please log in again.")
            raise typer.Exit(code=1)
        except (ApiError, httpx.HTTPError, ValueError) as ex:
            typer.echo(f"Failed to load job orders: {ex}")
            raise typer.Exit(code=1)

    buckets = split_jobs(records)
    for title, items in (("Active", buckets.active), ("Available", buckets.available),
                         ("Completed", buckets.completed)):
        typer.echo(f"--- {title} ({len(items)}) ---")
        for rec in items:
            typer.echo(f"{rec.id} | {rec.status.value} | {rec.address or '-'} | {rec.waste_type} | {rec.total_amount:.2f}")
    if buckets.has_active and buckets.available:
        typer.echo("Complete your active job order before accepting a new one")


@app.command()
def show(job_id: str, driver_id: Optional[str] = DriverOpt, token: Optional[str] = TokenOpt,
         api: Optional[str] = ApiOpt):
    """
    Shows one job order and what the driver can do with it.
    """
    with build_client(api) as client:
        wf = _load(client, _session(driver_id, token), job_id)
    rec, ctl = wf.record, wf.controls()
    typer.echo(ctl.title)
    typer.echo(f"{rec.id} | {rec.status.value} | {rec.customer_name or '-'} | {rec.address or '-'}")
    typer.echo(f"Action: {ctl.action_label} ({'enabled' if ctl.action_enabled else 'disabled'})")
    if ctl.cancel_visible:
        typer.echo("Cancel: available")
    if ctl.proof_upload_visible:
        typer.echo("Proof photo: required before completion")
    if ctl.rating is not None:
        typer.echo(f"Rating: {ctl.rating}/5 - {ctl.rating_feedback}")


@app.command()
def accept(job_id: str, driver_id: Optional[str] = DriverOpt, token: Optional[str] = TokenOpt,
           api: Optional[str] = ApiOpt):
    """Accepts an available job order."""
    with build_client(api) as client:
        _render(_load(client, _session(driver_id, token), job_id).accept())


@app.command("go")
def go_to_location(job_id: str, driver_id: Optional[str] = DriverOpt, token: Optional[str] = TokenOpt,
                   api: Optional[str] = ApiOpt):
    """Continues to the pickup location of an active job order."""
    with build_client(api) as client:
        _render(_load(client, _session(driver_id, token), job_id).continue_to_location())


@app.command()
def arrive(job_id: str, driver_id: Optional[str] = DriverOpt, token: Optional[str] = TokenOpt,
           api: Optional[str] = ApiOpt):
    """Confirms arrival at the pickup location."""
    with build_client(api) as client:
        _render(_load(client, _session(driver_id, token), job_id).confirm_arrival())


@app.command()
def proof(job_id: str, image_url: str, driver_id: Optional[str] = DriverOpt, token: Optional[str] = TokenOpt,
          api: Optional[str] = ApiOpt):
    """Saves a hosted proof photo URL against the job order."""
    with build_client(api) as client:
        _render(_load(client, _session(driver_id, token), job_id).attach_proof(image_url))


@app.command()
def complete(job_id: str, proof_url: Optional[str] = typer.Option(None, "--proof-url"),
             driver_id: Optional[str] = DriverOpt, token: Optional[str] = TokenOpt,
             api: Optional[str] = ApiOpt):
    """Marks the collection completed (needs a proof photo)."""
    with build_client(api) as client:
        wf = _load(client, _session(driver_id, token), job_id)
        if proof_url:
            attached = wf.attach_proof(proof_url)
            if not attached.ok:
                _render(attached)
        _render(wf.complete())


@app.command()
def cancel(job_id: str, driver_id: Optional[str] = DriverOpt, token: Optional[str] = TokenOpt,
           api: Optional[str] = ApiOpt):
    """Cancels an accepted job order."""
    with build_client(api) as client:
        _render(_load(client, _session(driver_id, token), job_id).cancel())


@app.command()
def token(driver_id: str, role: str = typer.Option("driver", help="driver, dispatcher or admin")):
    """Prints a dev-server bearer token for DRIVER_ID."""
    from wasteflow.devserver.security import create_token
    typer.echo(create_token(driver_id, role=role))


@app.command()
def devserver(host: str = typer.Option("127.0.0.1"), port: int = typer.Option(8080),
              seed: bool = typer.Option(True, help="Load demo job orders")):
    """Runs the in-memory dev API."""
    import uvicorn
    from wasteflow.devserver.main import create_app
    from wasteflow.devserver.repo import InMemoryJobRepo, seed_demo

    repo = InMemoryJobRepo()
    if seed:
        ids = asyncio.run(seed_demo(repo))
        log.info("seeded job orders: %s", ", ".join(ids))
    uvicorn.run(create_app(repo), host=host, port=port)


if __name__ == "__main__":
    app()
